# ui/pages/pending.py
from __future__ import annotations

from datetime import timezone

import flet as ft

from core.settings import UI
from models.pending_record import FAILURE_PERMANENT, PendingRecord


class PendingPage:
    def __init__(self, app):
        self.app = app

        self.summary = ft.Text(size=16, weight=ft.FontWeight.W_600)
        self.last_flush = ft.Text(color=UI.theme.text_subtle)
        self.sync_btn = ft.ElevatedButton("Sincronizar agora", icon=ft.Icons.SYNC, on_click=self.sync_now)
        self.purge_btn = ft.OutlinedButton(
            "Limpar sincronizados",
            icon=ft.Icons.CLEANING_SERVICES_OUTLINED,
            on_click=self.purge,
        )
        self.refresh_log_btn = ft.TextButton("Atualizar log", icon=ft.Icons.ARTICLE, on_click=self.refresh_log)
        self.records = ft.Column(spacing=8)
        self.log_view = ft.Text("", selectable=True, size=12)

        content = ft.Column(
            controls=[
                ft.Text("Apontamentos pendentes", size=24, weight=ft.FontWeight.BOLD),
                self.summary,
                self.last_flush,
                ft.Row([self.sync_btn, self.purge_btn], spacing=12),
                self.records,
                ft.Column(
                    [
                        ft.Text("Log de sincronização", size=18, weight=ft.FontWeight.W_600),
                        ft.Container(self.log_view, height=200, padding=10, bgcolor=UI.theme.nav_bg),
                        self.refresh_log_btn,
                    ],
                    spacing=8,
                ),
            ],
            expand=True,
            spacing=16,
            scroll=ft.ScrollMode.AUTO,
        )
        self.view = ft.Container(content=content, expand=True, padding=20)

    def _format_dt(self, value) -> str:
        if not value:
            return "-"
        if getattr(value, "tzinfo", None) is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone().strftime("%d/%m/%Y %H:%M:%S")

    def _record_tile(self, record: PendingRecord) -> ft.Control:
        if record.synced:
            icon, color, state = ft.Icons.CLOUD_DONE, ft.Colors.GREEN, "sincronizado"
        elif record.failure_kind == FAILURE_PERMANENT:
            icon, color, state = ft.Icons.ERROR_OUTLINE, ft.Colors.RED, "erro permanente"
        else:
            icon, color, state = ft.Icons.CLOUD_UPLOAD_OUTLINED, UI.theme.pending_badge, "pendente"
        details = f"Produzido {record.produced_qty} · Retrabalho {record.rework_qty} · {record.operator_name}"
        subtitle = [ft.Text(details), ft.Text(f"{self._format_dt(record.created_at)} · {state}", size=12)]
        if record.last_error and not record.synced:
            subtitle.append(ft.Text(f"Tentativas: {record.attempts} · {record.last_error}", size=12, color=ft.Colors.RED))
        return ft.ListTile(
            leading=ft.Icon(icon, color=color),
            title=ft.Text(f"Peça {record.piece_id}"),
            subtitle=ft.Column(subtitle, spacing=2, tight=True),
        )

    def refresh(self):
        status = self.app.sync.status()
        self.summary.value = f"{status['pending']} apontamento(s) aguardando sincronização"
        self.last_flush.value = "Última sincronização: " + self._format_dt(status.get("lastFlushAt"))
        self.records.controls = [self._record_tile(record) for record in reversed(self.app.queue.records())]
        self.log_view.value = self.app.read_sync_log()
        self.app.page.update()

    async def sync_now(self, _):
        self.sync_btn.disabled = True
        self.app.page.update()
        try:
            await self.app.flush_queue()
        finally:
            self.sync_btn.disabled = False
            self.refresh()

    def purge(self, _):
        self.app.purge_synced()
        self.refresh()

    def refresh_log(self, _):
        self.log_view.value = self.app.read_sync_log()
        self.app.page.update()
