# ui/pages/operator.py
from __future__ import annotations

import logging

import flet as ft

from core.settings import UI
from models.catalog import Batch, Piece
from services.catalog import STATUS_COMPLETED, STATUS_LABELS, STATUS_REWORK, filter_batches, find_piece_by_code, piece_status
from ui.dialogs import show_snack
from ui.production_dialog import ProductionDialog


logger = logging.getLogger("tracker.ui")


class OperatorPage:
    def __init__(self, app):
        self.app = app
        self.batches: list[Batch] = []

        self.search = ft.TextField(
            hint_text="Buscar peça ou ler código de barras",
            prefix_icon=ft.Icons.SEARCH,
            on_change=lambda e: self.render(),
            on_submit=self.on_scan,
            expand=True,
        )
        self.reload_btn = ft.IconButton(icon=ft.Icons.REFRESH, tooltip="Atualizar", on_click=self.on_reload)
        self.status = ft.Text(color=UI.theme.text_subtle)
        self.list = ft.ListView(expand=True, spacing=12, padding=ft.padding.only(bottom=20))

        self.view = ft.Container(
            ft.Column(
                [
                    ft.Row([self.search, self.reload_btn]),
                    self.status,
                    self.list,
                ],
                expand=True,
                spacing=12,
            ),
            expand=True,
            padding=20,
        )

    # ---------- data ----------
    async def load(self):
        if not self.app.sync.is_online:
            self.status.value = "Sem conexão: lista de peças pode estar desatualizada"
            self.render()
            return
        try:
            self.batches = await self.app.catalog.active_batches()
            self.status.value = f"{len(self.batches)} lote(s) em andamento"
        except Exception as exc:
            logger.error("Cannot load batches: %s", exc)
            self.status.value = "Erro ao carregar dados do banco"
        self.render()

    async def on_reload(self, e):
        await self.load()

    # ---------- render ----------
    def _piece_card(self, batch: Batch, piece: Piece) -> ft.Control:
        status = piece_status(piece)
        bgcolor = {STATUS_COMPLETED: UI.theme.completed_bg, STATUS_REWORK: UI.theme.rework_bg}.get(status)
        return ft.Card(
            ft.Container(
                ft.Column(
                    [
                        ft.Row(
                            [
                                ft.Text(piece.code, weight=ft.FontWeight.BOLD),
                                ft.Text(STATUS_LABELS[status], color=UI.theme.text_subtle),
                            ],
                            alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                        ),
                        ft.Text(piece.description),
                        ft.ProgressBar(value=piece.progress / 100.0),
                        ft.Text(f"{piece.produced_quantity} / {piece.quantity}", size=12),
                    ],
                    spacing=6,
                ),
                padding=12,
                bgcolor=bgcolor,
                on_click=lambda e, b=batch, p=piece: self.open_piece(b, p),
            )
        )

    def render(self):
        self.list.controls.clear()
        for batch in filter_batches(self.batches, self.search.value):
            self.list.controls.append(
                ft.Text(f"{batch.code} · {batch.name}", size=18, weight=ft.FontWeight.W_600)
            )
            for piece in batch.pieces:
                self.list.controls.append(self._piece_card(batch, piece))
        if not self.list.controls:
            self.list.controls.append(ft.Text("Nenhuma peça encontrada", color=UI.theme.text_subtle))
        self.app.page.update()

    # ---------- actions ----------
    def open_piece(self, batch: Batch, piece: Piece):
        ProductionDialog(self.app, batch, piece).open()

    def on_scan(self, e):
        found = find_piece_by_code(self.batches, self.search.value)
        if not found:
            show_snack(self.app.page, "Código não encontrado", error=True)
            return
        batch, piece = found
        self.search.value = ""
        self.render()
        self.open_piece(batch, piece)
