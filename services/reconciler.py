"""Turns one pending record into remote writes.

Two separate remote operations make up a synced record: the immutable
production-event row and the increment of the piece's cumulative
``produced_quantity``. There is no multi-statement transaction, so a
failure between them leaves the event written and the counter behind;
the record then stays pending with ``event_written`` set and only the
counter step is repeated later.
"""

from __future__ import annotations

from models.catalog import ProductionEvent
from models.pending_record import PendingRecord
from services.data_store import DataStore, classify_failure


STAGE_EVENT = "event"
STAGE_COUNTER = "counter"


class RemoteWriteError(RuntimeError):
    def __init__(self, stage: str, kind: str, cause: BaseException) -> None:
        self.stage = stage
        self.kind = kind
        self.cause = cause
        detail = str(cause) or cause.__class__.__name__
        super().__init__(f"{stage} write failed ({kind}): {detail}")


def build_event(record: PendingRecord) -> ProductionEvent:
    return ProductionEvent(
        piece_id=record.piece_id,
        operator_name=record.operator_name,
        quantity_produced=record.produced_qty,
        quantity_rework=record.rework_qty if record.rework_qty > 0 else None,
        notes=record.notes,
    )


class RecordWriter:
    def __init__(self, store: DataStore) -> None:
        self.store = store

    async def write_event(self, record: PendingRecord) -> None:
        try:
            await self.store.insert_production_event(build_event(record))
        except Exception as exc:
            raise RemoteWriteError(STAGE_EVENT, classify_failure(exc), exc) from exc

    async def apply_counter(self, record: PendingRecord) -> None:
        if record.produced_qty <= 0:
            return
        try:
            await self.store.increment_produced_quantity(record.piece_id, record.produced_qty)
        except Exception as exc:
            raise RemoteWriteError(STAGE_COUNTER, classify_failure(exc), exc) from exc


__all__ = ["RecordWriter", "RemoteWriteError", "STAGE_COUNTER", "STAGE_EVENT", "build_event"]
