"""Remote data store: batches, pieces and production records on Supabase."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from core.settings import REMOTE, RemoteSettings
from datetime_utils import to_timestamp
from models.catalog import Batch, Piece, ProductionEvent
from models.pending_record import FAILURE_PERMANENT, FAILURE_RETRYABLE


logger = logging.getLogger("tracker.sync.store")

# PostgREST: ``.single()`` matched no rows / unknown RPC function
NO_ROWS = "PGRST116"
UNKNOWN_FUNCTION = "PGRST202"
PERMANENT_SQLSTATE_CLASSES = {"22", "23"}
RETRYABLE_HTTP_STATUS = {408, 425, 429}


class MissingPieceError(LookupError):
    """The referenced piece no longer exists in the data store."""


class DataStore(Protocol):
    async def insert_production_event(self, event: ProductionEvent) -> None:
        ...

    async def get_produced_quantity(self, piece_id: str) -> int:
        ...

    async def update_produced_quantity(self, piece_id: str, value: int) -> None:
        ...

    async def increment_produced_quantity(self, piece_id: str, delta: int) -> int:
        ...

    async def list_batches(self, status: Optional[str] = None) -> List[Batch]:
        ...

    async def list_pieces(self, batch_id: str) -> List[Piece]:
        ...

    async def list_production_events(self, since: datetime, until: datetime) -> List[ProductionEvent]:
        ...

    async def rework_totals(self, piece_ids: List[str]) -> Dict[str, int]:
        ...


def classify_failure(exc: BaseException) -> str:
    """Tell apart failures worth retrying from ones that will never succeed."""

    if isinstance(exc, MissingPieceError):
        return FAILURE_PERMANENT
    if isinstance(exc, APIError):
        code = str(getattr(exc, "code", "") or "")
        if code == NO_ROWS or code[:2] in PERMANENT_SQLSTATE_CLASSES:
            return FAILURE_PERMANENT
        return FAILURE_RETRYABLE
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status >= 500 or status in RETRYABLE_HTTP_STATUS:
            return FAILURE_RETRYABLE
        return FAILURE_PERMANENT
    return FAILURE_RETRYABLE


class SupabaseDataStore:
    def __init__(self, settings: RemoteSettings = REMOTE, client: Optional[AsyncClient] = None) -> None:
        self.settings = settings
        self._client = client
        self._rpc_available = bool(settings.increment_rpc)

    async def connect(self) -> AsyncClient:
        if self._client is not None:
            return self._client
        if not self.settings.configured:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        self._client = await acreate_client(self.settings.url, self.settings.key)
        return self._client

    # ------------------------------------------------------------------
    # Production records / counters
    async def insert_production_event(self, event: ProductionEvent) -> None:
        client = await self.connect()
        await client.table(self.settings.records_table).insert(event.to_row()).execute()

    async def get_produced_quantity(self, piece_id: str) -> int:
        client = await self.connect()
        try:
            response = (
                await client.table(self.settings.pieces_table)
                .select("produced_quantity")
                .eq("id", piece_id)
                .single()
                .execute()
            )
        except APIError as exc:
            if exc.code == NO_ROWS:
                raise MissingPieceError(piece_id) from exc
            raise
        data: Dict[str, Any] = response.data or {}
        return int(data.get("produced_quantity") or 0)

    async def update_produced_quantity(self, piece_id: str, value: int) -> None:
        client = await self.connect()
        response = (
            await client.table(self.settings.pieces_table)
            .update({"produced_quantity": int(value)})
            .eq("id", piece_id)
            .execute()
        )
        if not response.data:
            raise MissingPieceError(piece_id)

    async def increment_produced_quantity(self, piece_id: str, delta: int) -> int:
        if self._rpc_available:
            client = await self.connect()
            try:
                response = await client.rpc(
                    self.settings.increment_rpc,
                    {"piece_id": piece_id, "delta": int(delta)},
                ).execute()
            except APIError as exc:
                if exc.code != UNKNOWN_FUNCTION:
                    raise
                logger.warning(
                    "RPC %s is not installed, falling back to read-modify-write",
                    self.settings.increment_rpc,
                )
                self._rpc_available = False
            else:
                if response.data is None:
                    raise MissingPieceError(piece_id)
                return int(response.data)

        # last write wins between concurrent operators on the same piece
        current = await self.get_produced_quantity(piece_id)
        total = current + int(delta)
        await self.update_produced_quantity(piece_id, total)
        return total

    # ------------------------------------------------------------------
    # Catalog reads
    async def list_batches(self, status: Optional[str] = None) -> List[Batch]:
        client = await self.connect()
        query = client.table(self.settings.batches_table).select("*")
        if status:
            query = query.eq("status", status)
        response = await query.order("created_at", desc=True).execute()
        return [Batch.from_row(row) for row in response.data or []]

    async def list_pieces(self, batch_id: str) -> List[Piece]:
        client = await self.connect()
        response = (
            await client.table(self.settings.pieces_table)
            .select("*")
            .eq("batch_id", batch_id)
            .order("code")
            .execute()
        )
        return [Piece.from_row(row) for row in response.data or []]

    async def list_production_events(self, since: datetime, until: datetime) -> List[ProductionEvent]:
        client = await self.connect()
        response = (
            await client.table(self.settings.records_table)
            .select("*")
            .gte("created_at", to_timestamp(since))
            .lt("created_at", to_timestamp(until))
            .order("created_at")
            .execute()
        )
        return [ProductionEvent.from_row(row) for row in response.data or []]

    async def rework_totals(self, piece_ids: List[str]) -> Dict[str, int]:
        """Sum of reworked quantities per piece over all production records."""

        if not piece_ids:
            return {}
        client = await self.connect()
        response = (
            await client.table(self.settings.records_table)
            .select("piece_id, quantity_rework")
            .in_("piece_id", list(piece_ids))
            .not_.is_("quantity_rework", "null")
            .execute()
        )
        totals: Dict[str, int] = {}
        for row in response.data or []:
            piece_id = str(row.get("piece_id") or "")
            totals[piece_id] = totals.get(piece_id, 0) + int(row.get("quantity_rework") or 0)
        return totals


__all__ = [
    "DataStore",
    "MissingPieceError",
    "SupabaseDataStore",
    "classify_failure",
]
