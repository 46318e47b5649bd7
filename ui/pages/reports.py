# ui/pages/reports.py
from __future__ import annotations

import logging

import flet as ft

from core.settings import UI
from services.reports import ProductionSummary


logger = logging.getLogger("tracker.ui")


def _metric(title: str, value: str) -> ft.Control:
    return ft.Card(
        ft.Container(
            ft.Column(
                [ft.Text(title, size=12, color=UI.theme.text_subtle), ft.Text(value, size=22, weight=ft.FontWeight.BOLD)],
                spacing=4,
            ),
            padding=12,
            width=180,
        )
    )


class ReportsPage:
    def __init__(self, app):
        self.app = app
        self.header = ft.Text(color=UI.theme.text_subtle)
        self.body = ft.Column(spacing=16)
        self.view = ft.Container(
            ft.Column(
                [
                    ft.Row(
                        [
                            ft.Text("Relatórios", size=24, weight=ft.FontWeight.BOLD),
                            ft.IconButton(icon=ft.Icons.REFRESH, on_click=self.on_reload),
                        ],
                        alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                    ),
                    self.header,
                    self.body,
                ],
                expand=True,
                spacing=12,
                scroll=ft.ScrollMode.AUTO,
            ),
            expand=True,
            padding=20,
        )

    async def load(self):
        if not self.app.sync.is_online:
            self.header.value = "Relatórios indisponíveis sem conexão"
            self.body.controls = []
            self.app.page.update()
            return
        try:
            batches = await self.app.catalog.active_batches()
            summary = await self.app.reports.summary(batches, days=UI.report_window_days)
        except Exception as exc:
            logger.error("Cannot build report: %s", exc)
            self.header.value = "Erro ao carregar relatórios"
            self.app.page.update()
            return
        self.render(summary)

    async def on_reload(self, e):
        await self.load()

    def render(self, summary: ProductionSummary):
        self.header.value = f"Período: {summary.start:%d/%m/%Y} a {summary.end:%d/%m/%Y}"
        metrics = ft.Row(
            [
                _metric("Total Produzido", str(summary.total_produced)),
                _metric("Retrabalho", str(summary.total_rework)),
                _metric("Taxa de retrabalho", f"{summary.rework_rate:.1f}%"),
                _metric("Lotes Ativos", str(len(summary.batches))),
            ],
            wrap=True,
        )
        remaining = ft.Column(
            [ft.Text("Peças Restantes por Lote", size=18, weight=ft.FontWeight.W_600)]
            + [
                ft.Column(
                    [
                        ft.Text(f"{item.code} · {item.name}: {item.remaining} de {item.planned} ({item.percent:.0f}%)"),
                        ft.ProgressBar(value=item.percent / 100.0),
                    ],
                    spacing=4,
                )
                for item in summary.batches
            ],
            spacing=8,
        )
        daily = ft.DataTable(
            columns=[
                ft.DataColumn(ft.Text("Dia")),
                ft.DataColumn(ft.Text("Produzido"), numeric=True),
                ft.DataColumn(ft.Text("Retrabalho"), numeric=True),
            ],
            rows=[
                ft.DataRow(
                    cells=[
                        ft.DataCell(ft.Text(f"{item.day:%d/%m}")),
                        ft.DataCell(ft.Text(str(item.produced))),
                        ft.DataCell(ft.Text(str(item.rework))),
                    ]
                )
                for item in summary.daily
            ],
        )
        rework = ft.Column(
            [ft.Text("Retrabalho", size=18, weight=ft.FontWeight.W_600)]
            + [
                ft.Text(f"{item.piece_code} · {item.quantity} un. · {item.reason} ({item.operator_name})")
                for item in summary.rework
            ],
            spacing=4,
        )
        self.body.controls = [metrics, remaining, daily, rework]
        self.app.page.update()
