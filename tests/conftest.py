import os
import tempfile

os.environ.setdefault("TRACKER_DATA_DIR", tempfile.mkdtemp(prefix="tracker-tests-"))

from dataclasses import replace
from typing import Dict, List, Optional

import httpx
import pytest
from postgrest.exceptions import APIError
from sqlmodel import Session, SQLModel, create_engine

from models import Batch, PendingRecord, Piece, ProductionEvent
from services.data_store import MissingPieceError
from services.pending_records_queue import PendingRecordQueue
from storage.queue_storage import QueueStorageError


class MemoryQueueStorage:
    """In-memory stand-in for the durable queue storage."""

    def __init__(self):
        self.saved: List[dict] = []
        self.save_calls = 0
        self.fail_saves = False

    def load(self):
        return [PendingRecord.from_dict(item) for item in self.saved]

    def save(self, records):
        self.save_calls += 1
        if self.fail_saves:
            raise QueueStorageError("disk full")
        self.saved = [record.to_dict() for record in records]


def foreign_key_error() -> APIError:
    return APIError(
        {
            "message": 'insert or update on table "production_records" violates foreign key constraint',
            "code": "23503",
            "hint": None,
            "details": None,
        }
    )


class FakeDataStore:
    """Data store keeping batches, pieces and events in dictionaries."""

    def __init__(self, pieces: Optional[List[Piece]] = None, batches: Optional[List[Batch]] = None):
        self.pieces: Dict[str, Piece] = {piece.id: piece for piece in pieces or []}
        self.batches: List[Batch] = list(batches or [])
        self.events: List[ProductionEvent] = []
        self.fail_insert_for: set[str] = set()
        self.offline = False
        self.fail_increments = 0
        self.increments: List[tuple] = []

    def _check_network(self):
        if self.offline:
            raise httpx.ConnectError("network unreachable")

    async def insert_production_event(self, event):
        self._check_network()
        if event.piece_id in self.fail_insert_for:
            raise foreign_key_error()
        self.events.append(event)

    async def get_produced_quantity(self, piece_id):
        self._check_network()
        piece = self.pieces.get(piece_id)
        if piece is None:
            raise MissingPieceError(piece_id)
        return piece.produced_quantity

    async def update_produced_quantity(self, piece_id, value):
        self._check_network()
        if piece_id not in self.pieces:
            raise MissingPieceError(piece_id)
        self.pieces[piece_id].produced_quantity = value

    async def increment_produced_quantity(self, piece_id, delta):
        self._check_network()
        if self.fail_increments:
            self.fail_increments -= 1
            raise httpx.ReadTimeout("counter update timed out")
        total = await self.get_produced_quantity(piece_id) + delta
        await self.update_produced_quantity(piece_id, total)
        self.increments.append((piece_id, delta))
        return total

    async def list_batches(self, status=None):
        self._check_network()
        return [replace(batch, pieces=[]) for batch in self.batches if status is None or batch.status == status]

    async def list_pieces(self, batch_id):
        self._check_network()
        return [piece for piece in self.pieces.values() if piece.batch_id == batch_id]

    async def list_production_events(self, since, until):
        self._check_network()
        return [event for event in self.events if event.created_at and since <= event.created_at < until]

    async def rework_totals(self, piece_ids):
        self._check_network()
        totals = {}
        for event in self.events:
            if event.piece_id in piece_ids and event.quantity_rework:
                totals[event.piece_id] = totals.get(event.piece_id, 0) + event.quantity_rework
        return totals


def make_piece(piece_id="P1", produced=10, quantity=100, batch_id="B1", code=None, description="Painel lateral"):
    return Piece(
        id=piece_id,
        batch_id=batch_id,
        code=code or f"PC-{piece_id}",
        description=description,
        quantity=quantity,
        produced_quantity=produced,
    )


@pytest.fixture()
def memory_storage():
    return MemoryQueueStorage()


@pytest.fixture()
def queue(memory_storage):
    return PendingRecordQueue(memory_storage)


@pytest.fixture()
def store():
    return FakeDataStore(pieces=[make_piece("P1", produced=10), make_piece("P2", produced=0), make_piece("P3", produced=0)])


@pytest.fixture()
def session_factory():
    engine = create_engine("sqlite:///:memory:")
    SQLModel.metadata.create_all(engine)

    def factory():
        return Session(engine)

    return factory
