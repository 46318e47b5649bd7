# ui/app_shell.py
from __future__ import annotations

import logging

import flet as ft

from core.settings import SYNC, SYNC_LOG_PATH, UI
from services.catalog import CatalogService
from services.connectivity import ConnectivitySignal, Probe, tcp_probe, watch_connectivity
from services.data_store import DataStore, SupabaseDataStore
from services.pending_records_queue import PendingRecordQueue
from services.production_form import ProductionEntry
from services.reports import ReportService
from services.sync_service import FlushResult, ProductionSync
from storage.config import load_config, update_config
from storage.queue_storage import QueueStorageError, build_queue_storage
from ui.dialogs import show_snack

from .pages.operator import OperatorPage
from .pages.pending import PendingPage
from .pages.reports import ReportsPage


logger = logging.getLogger("tracker.ui")


def default_probe() -> Probe:
    return tcp_probe(SYNC.resolved_probe_host(), SYNC.probe_port, SYNC.probe_timeout_sec)


class AppShell:
    def __init__(
        self,
        page: ft.Page,
        *,
        connectivity: ConnectivitySignal,
        probe: Probe | None = None,
        store: DataStore | None = None,
        queue: PendingRecordQueue | None = None,
    ):
        self.page = page
        self.page.title = UI.app_title
        self.page.horizontal_alignment = ft.CrossAxisAlignment.STRETCH
        self.page.vertical_alignment = ft.MainAxisAlignment.START

        self.config = load_config()
        self.store = store or SupabaseDataStore()
        self.queue = queue or PendingRecordQueue(build_queue_storage())
        self.connectivity = connectivity
        self.probe = probe or default_probe()
        self.sync = ProductionSync(self.queue, self.store, self.connectivity)
        self.catalog = CatalogService(self.store)
        self.reports = ReportService(self.store)
        self.connectivity.subscribe(self._on_connectivity_changed)

        self._operator = OperatorPage(self)
        self._pending = PendingPage(self)
        self._reports = ReportsPage(self)

        self.content = ft.Container(expand=True)

        self.offline_banner = ft.Container(
            ft.Row(
                [
                    ft.Icon(ft.Icons.WIFI_OFF, color=UI.theme.banner_offline_text),
                    ft.Text(
                        "Sem conexão. Os apontamentos ficam salvos e serão sincronizados automaticamente.",
                        color=UI.theme.banner_offline_text,
                    ),
                ]
            ),
            bgcolor=UI.theme.banner_offline_bg,
            padding=10,
            visible=False,
        )
        self.pending_badge = ft.Container(
            ft.Text(color=ft.Colors.WHITE, size=12, weight=ft.FontWeight.BOLD),
            bgcolor=UI.theme.pending_badge,
            border_radius=12,
            padding=ft.padding.symmetric(horizontal=10, vertical=4),
            visible=False,
            on_click=lambda e: self.show_view(1),
            tooltip="Apontamentos pendentes",
        )

        self.nav = ft.NavigationRail(
            selected_index=0,
            label_type=ft.NavigationRailLabelType.ALL,
            min_width=90,
            group_alignment=-0.9,
            on_change=self.on_nav_change,
            destinations=[
                ft.NavigationRailDestination(
                    icon=ft.Icons.PRECISION_MANUFACTURING_OUTLINED,
                    selected_icon=ft.Icons.PRECISION_MANUFACTURING,
                    label="Produção",
                ),
                ft.NavigationRailDestination(
                    icon=ft.Icons.CLOUD_UPLOAD_OUTLINED,
                    selected_icon=ft.Icons.CLOUD_UPLOAD,
                    label="Pendentes",
                ),
                ft.NavigationRailDestination(
                    icon=ft.Icons.BAR_CHART_OUTLINED,
                    selected_icon=ft.Icons.BAR_CHART,
                    label="Relatórios",
                ),
            ],
        )

        self.root = ft.Column(
            [
                self.offline_banner,
                ft.Row(
                    controls=[
                        ft.Container(self.nav, width=88, bgcolor=UI.theme.nav_bg),
                        ft.VerticalDivider(width=1),
                        self.content,
                    ],
                    expand=True,
                    spacing=0,
                ),
            ],
            expand=True,
            spacing=0,
        )

    # ---------- mount ----------
    async def mount(self):
        self.page.controls.clear()
        if self.page.appbar is not None:
            self.page.appbar.actions = [self.pending_badge, ft.Container(width=12)]
        self.page.add(self.root)
        self.content.content = self._operator.view
        self.refresh_indicators()

        self.page.run_task(watch_connectivity, self.connectivity, self.probe, SYNC.probe_interval_sec)
        if self.sync.is_online and self.queue.unsynced_count():
            await self.flush_queue()
        await self._operator.load()

    # ---------- navigation ----------
    def show_view(self, idx: int):
        self.nav.selected_index = idx
        if idx == 0:
            self.content.content = self._operator.view
            self.page.run_task(self._operator.load)
        elif idx == 1:
            self.content.content = self._pending.view
            self._pending.refresh()
        else:
            self.content.content = self._reports.view
            self.page.run_task(self._reports.load)
        self.page.update()

    def on_nav_change(self, e: ft.ControlEvent):
        self.show_view(int(e.control.selected_index))

    # ---------- indicators ----------
    def refresh_indicators(self, online: bool | None = None):
        if online is None:
            online = self.connectivity.is_online()
        pending = self.queue.unsynced_count()
        self.offline_banner.visible = not online
        self.pending_badge.visible = pending > 0
        self.pending_badge.content.value = f"{pending} pendente(s)"
        self.page.update()

    def _on_connectivity_changed(self, online: bool):
        self.refresh_indicators(online)
        if online:
            self.page.run_task(self._after_reconnect)

    async def _after_reconnect(self):
        await self.sync.wait_idle()
        self.refresh_indicators()
        if self.nav.selected_index == 1:
            self._pending.refresh()
        else:
            await self._operator.load()

    # ---------- core entry points ----------
    async def record_entry(self, entry: ProductionEntry):
        try:
            record = await self.sync.record_entry(
                entry.piece_id,
                entry.produced_qty,
                entry.rework_qty,
                entry.reason_text,
                entry.operator_name,
            )
        except QueueStorageError as exc:
            logger.error("Cannot store production entry: %s", exc)
            show_snack(self.page, "Falha ao salvar o apontamento no dispositivo", error=True, duration=5000)
            return None
        self.config = update_config(last_operator_name=entry.operator_name)
        if record.synced:
            show_snack(self.page, "Apontamento registrado com sucesso!")
            await self._operator.load()
        else:
            show_snack(self.page, "Apontamento salvo; será sincronizado quando houver conexão")
        self.refresh_indicators()
        return record

    async def flush_queue(self) -> FlushResult | None:
        try:
            result = await self.sync.flush_queue()
        except QueueStorageError as exc:
            logger.error("Drain aborted: %s", exc)
            show_snack(self.page, "Falha ao atualizar a fila local", error=True)
            return None
        if result.failed:
            show_snack(self.page, f"{len(result.failed)} apontamento(s) continuam pendentes", error=True)
        elif result.synced:
            show_snack(self.page, f"{len(result.synced)} apontamento(s) sincronizado(s)")
        self.refresh_indicators()
        return result

    def purge_synced(self) -> int:
        try:
            removed = self.queue.purge_synced()
        except QueueStorageError as exc:
            logger.error("Cleanup failed: %s", exc)
            show_snack(self.page, "Falha ao limpar a fila local", error=True)
            return 0
        self.refresh_indicators()
        return removed

    def read_sync_log(self, lines: int = 100) -> str:
        try:
            with open(SYNC_LOG_PATH, "r", encoding="utf-8") as fh:
                content = fh.readlines()
        except FileNotFoundError:
            return "O log de sincronização ainda não foi criado."
        return "\n".join(line.rstrip("\n") for line in content[-lines:])
