"""Operator preferences kept between sessions."""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from core.settings import CONFIG_PATH


@dataclass
class AppConfig:
    last_operator_name: Optional[str] = None
    last_batch_id: Optional[str] = None


def _read(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Optional[Path] = None) -> AppConfig:
    data = _read(path or CONFIG_PATH)
    return AppConfig(
        last_operator_name=data.get("last_operator_name"),
        last_batch_id=data.get("last_batch_id"),
    )


def save_config(config: AppConfig, path: Optional[Path] = None) -> None:
    target = path or CONFIG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_suffix(".tmp")
    try:
        tmp.write_text(json.dumps(asdict(config), ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, target)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def update_config(path: Optional[Path] = None, **changes: Any) -> AppConfig:
    cfg = load_config(path)
    for key, value in changes.items():
        if not hasattr(cfg, key):
            raise AttributeError(f"Unknown config field: {key}")
        setattr(cfg, key, value)
    save_config(cfg, path)
    return cfg


__all__ = ["AppConfig", "load_config", "save_config", "update_config"]
