from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Set

from core.settings import SYNC, SYNC_LOG_PATH
from datetime_utils import utc_now
from models.pending_record import PendingRecord
from services.connectivity import ConnectivitySignal
from services.data_store import DataStore
from services.pending_records_queue import PendingRecordQueue
from services.reconciler import RecordWriter, RemoteWriteError


def _ensure_logger() -> logging.Logger:
    logger = logging.getLogger("tracker.sync")
    if not logger.handlers:
        Path(SYNC_LOG_PATH).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(SYNC_LOG_PATH, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


class ConnectionState(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class FlushResult:
    attempted: int = 0
    synced: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class ProductionSync:
    """Drains the pending-record queue whenever the data store is reachable."""

    def __init__(
        self,
        queue: PendingRecordQueue,
        store: DataStore,
        connectivity: ConnectivitySignal,
    ) -> None:
        self.queue = queue
        self.writer = RecordWriter(store)
        self.connectivity = connectivity
        self.logger = _ensure_logger()
        self.state = ConnectionState.ONLINE if connectivity.is_online() else ConnectionState.OFFLINE
        self.last_flush_at: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._drains: Set[asyncio.Task] = set()
        connectivity.subscribe(self._on_connectivity_changed)

    @property
    def is_online(self) -> bool:
        return self.state is ConnectionState.ONLINE

    def close(self) -> None:
        self.connectivity.unsubscribe(self._on_connectivity_changed)

    # ------------------------------------------------------------------
    # State machine
    def _on_connectivity_changed(self, online: bool) -> None:
        previous = self.state
        self.state = ConnectionState.ONLINE if online else ConnectionState.OFFLINE
        if previous is self.state:
            return
        self.logger.info("State %s -> %s", previous.value, self.state.value)
        if self.state is ConnectionState.ONLINE:
            self._schedule_flush()

    def _schedule_flush(self) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning("No running event loop, drain deferred to the next trigger")
            return None
        task = loop.create_task(self.flush_queue())
        self._drains.add(task)
        task.add_done_callback(self._drain_finished)
        return task

    def _drain_finished(self, task: asyncio.Task) -> None:
        self._drains.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("Background drain failed: %s", exc)

    async def wait_idle(self) -> None:
        while self._drains:
            await asyncio.gather(*list(self._drains), return_exceptions=True)

    # ------------------------------------------------------------------
    # Public API
    async def record_entry(
        self,
        piece_id: str,
        produced_qty: int,
        rework_qty: int,
        reason_text: str,
        operator_name: str,
    ) -> PendingRecord:
        record = self.queue.enqueue(piece_id, produced_qty, rework_qty, reason_text, operator_name)
        self.logger.info(
            "Recorded %s: piece=%s produced=%s rework=%s",
            record.id,
            piece_id,
            produced_qty,
            rework_qty,
        )
        if self.is_online:
            await self._sync_record(record)
        return self.queue.get(record.id) or record

    async def flush_queue(self) -> FlushResult:
        snapshot = self.queue.list_unsynced()
        result = FlushResult(attempted=len(snapshot))
        if snapshot:
            self.logger.info("Draining %s pending record(s)", len(snapshot))
        for record in snapshot:
            if await self._sync_record(record):
                result.synced.append(record.id)
            else:
                result.failed.append(record.id)
        self.last_flush_at = utc_now()
        if not result.failed:
            self.last_error = None
        if snapshot:
            self.logger.info("Drain finished: %s synced, %s failed", len(result.synced), len(result.failed))
        return result

    def status(self) -> dict:
        return {
            "online": self.is_online,
            "pending": self.queue.unsynced_count(),
            "lastFlushAt": self.last_flush_at,
            "lastError": self.last_error,
        }

    # ------------------------------------------------------------------
    async def _sync_record(self, record: PendingRecord) -> bool:
        current = self.queue.get(record.id) or record
        if current.synced:
            return True
        try:
            if not current.event_written:
                await self.writer.write_event(current)
                self.queue.mark_event_written(current.id)
            # a concurrent drain may have finished this record meanwhile
            latest = self.queue.get(current.id)
            if latest is not None and latest.synced:
                return True
            await self.writer.apply_counter(current)
        except RemoteWriteError as exc:
            self.logger.warning("Record %s still pending: %s", current.id, exc)
            self._remember_failure(current.id, str(exc), exc.kind)
            return False
        self.queue.mark_synced(current.id)
        self.logger.info("Record %s synced", current.id)
        return True

    def _remember_failure(self, record_id: str, error: str, kind: str) -> None:
        message = error[: SYNC.error_max_length]
        self.last_error = message
        self.queue.note_failure(record_id, message, kind)


__all__ = ["ConnectionState", "FlushResult", "ProductionSync"]
