# tracker/main.py
import flet as ft

from core.settings import APP_NAME, UI
from services.connectivity import ConnectivitySignal
from storage.db import init_db
from ui.app_shell import AppShell, default_probe


async def main(page: ft.Page):
    page.title = UI.app_title
    page.theme_mode = UI.theme_mode
    page.theme = ft.Theme(color_scheme_seed=UI.color_scheme_seed)
    page.appbar = ft.AppBar(title=ft.Text(APP_NAME), center_title=False)
    page.padding = 0
    page.window.min_width = UI.window_min_width
    page.window.min_height = UI.window_min_height

    init_db()
    probe = default_probe()
    # initial state comes from the platform before anything subscribes
    connectivity = ConnectivitySignal(online=await probe())
    shell = AppShell(page, connectivity=connectivity, probe=probe)
    await shell.mount()


def run():
    ft.app(target=main)


if __name__ == "__main__":
    run()
