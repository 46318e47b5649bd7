# ui/production_dialog.py
from __future__ import annotations

import flet as ft

from core.settings import UI
from models.catalog import Batch, Piece
from services.production_form import (
    EntryValidationError,
    adjust_quantity,
    quick_quantities,
    validate_entry,
)
from ui.dialogs import close_alert_dialog, open_alert_dialog


class ProductionDialog:
    """Apontamento de produção for one piece."""

    def __init__(self, app, batch: Batch, piece: Piece):
        self.app = app
        self.batch = batch
        self.piece = piece
        self._dlg: ft.AlertDialog | None = None

        self.produced = ft.TextField(
            label="Quantidade Produzida",
            value="0",
            keyboard_type=ft.KeyboardType.NUMBER,
            text_align=ft.TextAlign.CENTER,
            expand=True,
        )
        self.rework = ft.TextField(
            label="Quantidade para Retrabalho",
            value="0",
            keyboard_type=ft.KeyboardType.NUMBER,
            text_align=ft.TextAlign.CENTER,
            expand=True,
        )
        self.reason = ft.TextField(label="Motivo do retrabalho", multiline=True, min_lines=2, max_lines=4)
        self.operator = ft.TextField(
            label="Nome do operador",
            value=app.config.last_operator_name or "",
        )
        self._fields = {
            "produced_qty": self.produced,
            "rework_qty": self.rework,
            "reason_text": self.reason,
            "operator_name": self.operator,
        }

    # ---------- layout ----------
    def _stepper(self, field: ft.TextField) -> ft.Row:
        return ft.Row(
            [
                ft.IconButton(icon=ft.Icons.REMOVE, on_click=lambda e: self._step(field, -1)),
                field,
                ft.IconButton(icon=ft.Icons.ADD, on_click=lambda e: self._step(field, 1)),
            ],
            spacing=8,
        )

    def _build(self) -> ft.Control:
        piece = self.piece
        info = ft.Container(
            ft.Column(
                [
                    ft.Text(f"{piece.code} · {piece.description}", weight=ft.FontWeight.BOLD),
                    ft.Text(f"Lote: {self.batch.code} {self.batch.name}", color=UI.theme.text_subtle),
                    ft.Text(f"Planejado: {piece.quantity}   Produzido: {piece.produced_quantity}"),
                ],
                spacing=4,
            ),
            padding=12,
            border_radius=8,
            bgcolor=ft.Colors.SURFACE_CONTAINER_HIGHEST,
        )
        quick = ft.Row(
            [
                ft.OutlinedButton(str(value), on_click=lambda e, v=value: self._set(self.produced, v))
                for value in quick_quantities()
            ],
            spacing=8,
        )
        return ft.Column(
            [
                info,
                quick,
                self._stepper(self.produced),
                self._stepper(self.rework),
                self.reason,
                self.operator,
            ],
            width=UI.dialog_width,
            tight=True,
            spacing=12,
            scroll=ft.ScrollMode.AUTO,
        )

    # ---------- handlers ----------
    def _set(self, field: ft.TextField, value: int):
        field.value = str(value)
        field.error_text = None
        self.app.page.update()

    def _step(self, field: ft.TextField, delta: int):
        try:
            current = int(field.value or 0)
        except ValueError:
            current = 0
        self._set(field, adjust_quantity(current, delta))

    def _clear_errors(self):
        for field in self._fields.values():
            field.error_text = None

    async def _submit(self, e):
        self._clear_errors()
        try:
            entry = validate_entry(
                self.piece.id,
                self.produced.value,
                self.rework.value,
                self.reason.value,
                self.operator.value,
            )
        except EntryValidationError as exc:
            target = self._fields.get(exc.field)
            if target is not None:
                target.error_text = str(exc)
            self.app.page.update()
            return
        close_alert_dialog(self.app.page, self._dlg)
        await self.app.record_entry(entry)

    def open(self):
        self._dlg = open_alert_dialog(
            self.app.page,
            title="Apontar Produção",
            content=self._build(),
            actions=[
                ft.TextButton("Cancelar", on_click=lambda e: close_alert_dialog(self.app.page, self._dlg)),
                ft.FilledButton("Registrar", icon=ft.Icons.CHECK, on_click=self._submit),
            ],
        )
        return self._dlg
