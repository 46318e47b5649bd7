import flet as ft


def open_alert_dialog(
    page: ft.Page,
    *,
    title: str,
    content: ft.Control,
    actions: list[ft.Control],
) -> ft.AlertDialog:
    dlg = ft.AlertDialog(
        modal=True,
        title=ft.Text(title),
        content=content,
        actions=actions,
        actions_alignment=ft.MainAxisAlignment.END,
    )
    page.open(dlg)
    return dlg


def close_alert_dialog(page: ft.Page, dlg: ft.AlertDialog | None):
    if dlg is not None and dlg.open:
        page.close(dlg)


def show_snack(page: ft.Page, message: str, *, error: bool = False, duration: int = 2000):
    bar = ft.SnackBar(
        ft.Text(message),
        bgcolor=ft.Colors.ERROR_CONTAINER if error else None,
        duration=duration,
    )
    page.open(bar)
