"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlparse
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env if env is not None else os.environ)
    home_dir = Path(home or Path.home())
    name = (app_name.strip() or "app").replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = home_dir / "Library" / "Application Support"
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return base.expanduser() / name


APP_NAME = "ShopfloorTracker"


DATA_DIR = Path(os.environ.get("TRACKER_DATA_DIR") or get_default_data_dir(APP_NAME))
STORAGE_DIR = DATA_DIR / "storage"
LOG_DIR = DATA_DIR / "logs"

for _dir in (DATA_DIR, STORAGE_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


DB_PATH = DATA_DIR / "tracker.db"
QUEUE_JSON_PATH = STORAGE_DIR / "pending_records.json"
CONFIG_PATH = STORAGE_DIR / "config.json"
SYNC_LOG_PATH = LOG_DIR / "sync.log"


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class RemoteSettings:
    url: str = field(default_factory=lambda: _env("SUPABASE_URL"))
    key: str = field(default_factory=lambda: _env("SUPABASE_KEY"))
    batches_table: str = "batches"
    pieces_table: str = "pieces"
    records_table: str = "production_records"
    # Postgres function doing ``produced_quantity = produced_quantity + delta``
    increment_rpc: Optional[str] = "increment_piece_produced_quantity"
    active_batch_status: str = "Em andamento"

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)


REMOTE = RemoteSettings()


@dataclass(frozen=True)
class SyncSettings:
    queue_key: str = "pendingProductionRecords"
    queue_backend: str = "sqlite"  # sqlite / json
    probe_host: Optional[str] = None
    probe_port: int = 443
    probe_interval_sec: int = 15
    probe_timeout_sec: float = 3.0
    error_max_length: int = 500

    def resolved_probe_host(self, remote: RemoteSettings = REMOTE) -> Optional[str]:
        if self.probe_host:
            return self.probe_host
        if not remote.url:
            return None
        return urlparse(remote.url).hostname


SYNC = SyncSettings()


@dataclass(frozen=True)
class ThemeColors:
    banner_offline_bg: str = "#FDE68A"
    banner_offline_text: str = "#78350F"
    pending_badge: str = "#F97316"
    completed_bg: str = "#DCFCE7"
    rework_bg: str = "#FFEDD5"
    text_subtle: str = "#6B7280"
    nav_bg: str = "#F1F5F9"


@dataclass(frozen=True)
class UISettings:
    app_title: str = "Apontamento de Produção"
    theme_mode: str = "system"
    color_scheme_seed: str = "#2563EB"
    window_min_width: int = 720
    window_min_height: int = 560
    dialog_width: int = 460
    quick_quantities: tuple[int, ...] = (5, 10, 20, 50)
    report_window_days: int = 7
    theme: ThemeColors = ThemeColors()


UI = UISettings()


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "STORAGE_DIR",
    "LOG_DIR",
    "DB_PATH",
    "QUEUE_JSON_PATH",
    "CONFIG_PATH",
    "SYNC_LOG_PATH",
    "REMOTE",
    "SYNC",
    "UI",
    "RemoteSettings",
    "SyncSettings",
    "get_default_data_dir",
]
