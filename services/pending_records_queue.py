from __future__ import annotations

from typing import Callable, List, Optional

from models.pending_record import PendingRecord
from storage.queue_storage import QueueStorage


class PendingRecordQueue:
    """Ordered holding area for entries not yet confirmed by the data store.

    Every mutation builds the new collection aside, persists it through the
    storage port and only then replaces the in-memory list, so a failing
    save leaves the queue exactly as it was.
    """

    def __init__(self, storage: QueueStorage) -> None:
        self.storage = storage
        self._records: List[PendingRecord] = list(storage.load())

    # ------------------------------------------------------------------
    def _commit(self, records: List[PendingRecord]) -> None:
        self.storage.save(records)
        self._records = records

    def _update(self, record_id: str, change: Callable[[PendingRecord], Optional[PendingRecord]]) -> bool:
        for index, record in enumerate(self._records):
            if record.id != record_id:
                continue
            updated = change(record)
            if updated is None or updated == record:
                return False
            records = list(self._records)
            records[index] = updated
            self._commit(records)
            return True
        return False

    # ------------------------------------------------------------------
    def enqueue(
        self,
        piece_id: str,
        produced_qty: int,
        rework_qty: int,
        reason_text: str,
        operator_name: str,
    ) -> PendingRecord:
        record = PendingRecord(
            piece_id=piece_id,
            produced_qty=int(produced_qty),
            rework_qty=int(rework_qty),
            reason_text=reason_text or "",
            operator_name=operator_name,
        )
        self._commit(self._records + [record])
        return record

    def mark_synced(self, record_id: str) -> None:
        self._update(record_id, lambda r: None if r.synced else r.with_synced())

    def mark_event_written(self, record_id: str) -> None:
        self._update(record_id, lambda r: None if r.event_written else r.with_event_written())

    def note_failure(self, record_id: str, error: str, kind: str) -> None:
        self._update(record_id, lambda r: None if r.synced else r.with_failure(error, kind))

    def purge_synced(self) -> int:
        remaining = [record for record in self._records if not record.synced]
        removed = len(self._records) - len(remaining)
        if removed:
            self._commit(remaining)
        return removed

    # ------------------------------------------------------------------
    def get(self, record_id: str) -> Optional[PendingRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def list_unsynced(self) -> List[PendingRecord]:
        return [record for record in self._records if not record.synced]

    def records(self) -> List[PendingRecord]:
        return list(self._records)

    def unsynced_count(self) -> int:
        return sum(1 for record in self._records if not record.synced)


__all__ = ["PendingRecordQueue"]
