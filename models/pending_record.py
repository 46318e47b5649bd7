"""Production entry captured locally before the data store confirms it."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from datetime_utils import parse_timestamp, to_timestamp, utc_now


FAILURE_RETRYABLE = "retryable"
FAILURE_PERMANENT = "permanent"


_last_stamp_ms = 0


def new_record_id() -> str:
    """Epoch milliseconds plus a random suffix.

    The millisecond part is strictly increasing within the process, so ids
    sort in creation order even when several are made in the same millisecond.
    """

    global _last_stamp_ms
    now_ms = time.time_ns() // 1_000_000
    _last_stamp_ms = now_ms if now_ms > _last_stamp_ms else _last_stamp_ms + 1
    return f"{_last_stamp_ms:013d}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class PendingRecord:
    piece_id: str
    produced_qty: int
    rework_qty: int
    reason_text: str
    operator_name: str
    id: str = field(default_factory=new_record_id)
    created_at: datetime = field(default_factory=utc_now)
    synced: bool = False
    event_written: bool = False
    attempts: int = 0
    last_error: Optional[str] = None
    failure_kind: Optional[str] = None

    @property
    def notes(self) -> Optional[str]:
        text = (self.reason_text or "").strip()
        return text or None

    def with_synced(self) -> "PendingRecord":
        return replace(self, synced=True, last_error=None, failure_kind=None)

    def with_event_written(self) -> "PendingRecord":
        return replace(self, event_written=True)

    def with_failure(self, error: str, kind: str) -> "PendingRecord":
        return replace(
            self,
            attempts=self.attempts + 1,
            last_error=error,
            failure_kind=kind,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = to_timestamp(self.created_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingRecord":
        created_at = parse_timestamp(data.get("created_at")) or utc_now()
        return cls(
            id=str(data["id"]),
            piece_id=str(data["piece_id"]),
            produced_qty=int(data.get("produced_qty") or 0),
            rework_qty=int(data.get("rework_qty") or 0),
            reason_text=data.get("reason_text") or "",
            operator_name=data.get("operator_name") or "",
            created_at=created_at,
            synced=bool(data.get("synced", False)),
            event_written=bool(data.get("event_written", False)),
            attempts=int(data.get("attempts") or 0),
            last_error=data.get("last_error"),
            failure_kind=data.get("failure_kind"),
        )


__all__ = [
    "FAILURE_PERMANENT",
    "FAILURE_RETRYABLE",
    "PendingRecord",
    "new_record_id",
]
