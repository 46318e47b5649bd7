from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Iterable, List, Optional, Tuple

from core.settings import REMOTE
from models.catalog import Batch, Piece
from services.data_store import DataStore


logger = logging.getLogger("tracker.sync.catalog")

STATUS_COMPLETED = "completed"
STATUS_REWORK = "rework"
STATUS_IN_PRODUCTION = "in_production"

STATUS_LABELS = {
    STATUS_COMPLETED: "Concluído",
    STATUS_REWORK: "Retrabalho",
    STATUS_IN_PRODUCTION: "Em Produção",
}


def piece_status(piece: Piece, rework: Optional[int] = None) -> str:
    if rework is None:
        rework = piece.rework_total
    if piece.completed:
        return STATUS_COMPLETED
    if rework > 0:
        return STATUS_REWORK
    return STATUS_IN_PRODUCTION


def find_piece_by_code(batches: Iterable[Batch], code: str) -> Optional[Tuple[Batch, Piece]]:
    """Locate a scanned barcode among the loaded batches."""

    wanted = (code or "").strip()
    if not wanted:
        return None
    for batch in batches:
        for piece in batch.pieces:
            if piece.code == wanted:
                return batch, piece
    return None


def filter_batches(batches: Iterable[Batch], term: str) -> List[Batch]:
    """Keep pieces whose code or description contains ``term``; drop empty batches."""

    needle = (term or "").strip().lower()
    result: List[Batch] = []
    for batch in batches:
        if not needle:
            result.append(batch)
            continue
        pieces = [
            piece
            for piece in batch.pieces
            if needle in piece.code.lower() or needle in piece.description.lower()
        ]
        if pieces:
            result.append(replace(batch, pieces=pieces))
    return result


class CatalogService:
    def __init__(self, store: DataStore, active_status: str = REMOTE.active_batch_status) -> None:
        self.store = store
        self.active_status = active_status

    async def active_batches(self) -> List[Batch]:
        batches = await self.store.list_batches(status=self.active_status)
        piece_lists = await asyncio.gather(
            *(self.store.list_pieces(batch.id) for batch in batches),
            return_exceptions=True,
        )
        for batch, pieces in zip(batches, piece_lists):
            if isinstance(pieces, Exception):
                logger.warning("Cannot load pieces of batch %s: %s", batch.code, pieces)
                batch.pieces = []
            else:
                batch.pieces = list(pieces)

        piece_ids = [piece.id for batch in batches for piece in batch.pieces]
        try:
            totals = await self.store.rework_totals(piece_ids)
        except Exception as exc:
            logger.warning("Cannot load rework totals: %s", exc)
            totals = {}
        for batch in batches:
            for piece in batch.pieces:
                piece.rework_total = totals.get(piece.id, 0)
        return batches


__all__ = [
    "CatalogService",
    "STATUS_COMPLETED",
    "STATUS_IN_PRODUCTION",
    "STATUS_LABELS",
    "STATUS_REWORK",
    "filter_batches",
    "find_piece_by_code",
    "piece_status",
]
