"""Durable backends for the pending-record queue.

The queue is stored as one ordered JSON collection under a single key and
is overwritten wholesale on every mutation.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from core.settings import QUEUE_JSON_PATH, SYNC
from datetime_utils import utc_now
from models.local_value import LocalValue
from models.pending_record import PendingRecord


class QueueStorageError(RuntimeError):
    """Local durable storage of the queue could not be read or written."""


class QueueStorage(Protocol):
    def load(self) -> List[PendingRecord]:
        ...

    def save(self, records: Sequence[PendingRecord]) -> None:
        ...


def _serialise(records: Sequence[PendingRecord]) -> str:
    return json.dumps([record.to_dict() for record in records], ensure_ascii=False)


def _deserialise(payload: Optional[str], source: str) -> List[PendingRecord]:
    if not payload:
        return []
    try:
        data = json.loads(payload)
        if not isinstance(data, list):
            raise ValueError("expected a list of records")
        if not all(isinstance(item, dict) for item in data):
            raise ValueError("expected every record to be an object")
        return [PendingRecord.from_dict(item) for item in data]
    except (ValueError, KeyError, TypeError) as exc:
        # never load a corrupt payload as an empty queue
        raise QueueStorageError(f"Corrupt pending queue in {source}: {exc}") from exc


class SqlQueueStorage:
    """Keeps the collection in the ``localvalue`` table of the app database."""

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        key: str = SYNC.queue_key,
    ) -> None:
        if session_factory is None:
            from storage.db import get_session

            session_factory = get_session
        self._session_factory = session_factory
        self.key = key

    def load(self) -> List[PendingRecord]:
        try:
            with self._session_factory() as session:
                row = session.get(LocalValue, self.key)
                payload = row.value if row else None
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Cannot read pending queue: {exc}") from exc
        return _deserialise(payload, f"key {self.key!r}")

    def save(self, records: Sequence[PendingRecord]) -> None:
        payload = _serialise(records)
        try:
            with self._session_factory() as session:
                row = session.get(LocalValue, self.key)
                if row is None:
                    row = LocalValue(key=self.key, value=payload)
                else:
                    row.value = payload
                    row.updated_at = utc_now()
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise QueueStorageError(f"Cannot persist pending queue: {exc}") from exc


class JsonFileQueueStorage:
    """Keeps the collection in a JSON file replaced atomically on save."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path or QUEUE_JSON_PATH)

    def load(self) -> List[PendingRecord]:
        try:
            payload = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise QueueStorageError(f"Cannot read {self.path}: {exc}") from exc
        return _deserialise(payload, str(self.path))

    def save(self, records: Sequence[PendingRecord]) -> None:
        payload = _serialise(records)
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            raise QueueStorageError(f"Cannot write {self.path}: {exc}") from exc
        finally:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError:
                    pass


def build_queue_storage(backend: Optional[str] = None) -> QueueStorage:
    kind = (backend or SYNC.queue_backend).lower()
    if kind == "sqlite":
        return SqlQueueStorage()
    if kind == "json":
        return JsonFileQueueStorage()
    raise ValueError(f"Unsupported queue backend: {kind}")


__all__ = [
    "JsonFileQueueStorage",
    "QueueStorage",
    "QueueStorageError",
    "SqlQueueStorage",
    "build_queue_storage",
]
