"""Aggregates shown on the reports page."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional

from datetime_utils import day_start_utc, iter_days, utc_now
from models.catalog import Batch, Piece, ProductionEvent
from services.data_store import DataStore


@dataclass
class BatchProgress:
    batch_id: str
    code: str
    name: str
    planned: int
    produced: int

    @property
    def remaining(self) -> int:
        return max(self.planned - self.produced, 0)

    @property
    def percent(self) -> float:
        if self.planned <= 0:
            return 100.0
        return round(min(self.produced * 100.0 / self.planned, 100.0), 1)


@dataclass
class DailyTotal:
    day: date
    produced: int = 0
    rework: int = 0


@dataclass
class ReworkEntry:
    piece_id: str
    piece_code: str
    description: str
    quantity: int
    reason: str
    operator_name: str
    created_at: Optional[datetime] = None


@dataclass
class ProductionSummary:
    start: date
    end: date
    batches: List[BatchProgress] = field(default_factory=list)
    daily: List[DailyTotal] = field(default_factory=list)
    rework: List[ReworkEntry] = field(default_factory=list)

    @property
    def total_produced(self) -> int:
        return sum(item.produced for item in self.daily)

    @property
    def total_rework(self) -> int:
        return sum(item.rework for item in self.daily)

    @property
    def rework_rate(self) -> float:
        """Rework as a percentage of produced units in the window."""
        if not self.total_produced:
            return 0.0
        return round(self.total_rework * 100.0 / self.total_produced, 1)


def batch_progress(batch: Batch) -> BatchProgress:
    return BatchProgress(
        batch_id=batch.id,
        code=batch.code,
        name=batch.name,
        planned=sum(piece.quantity for piece in batch.pieces),
        produced=sum(min(piece.produced_quantity, piece.quantity) for piece in batch.pieces),
    )


def daily_totals(
    events: Iterable[ProductionEvent],
    start: date,
    end: date,
    tz: Optional[tzinfo] = None,
) -> List[DailyTotal]:
    """One entry per day of ``[start, end]``, days without events included."""

    buckets: Dict[date, DailyTotal] = {day: DailyTotal(day) for day in iter_days(start, end)}
    for event in events:
        if event.created_at is None:
            continue
        day = event.created_at.astimezone(tz).date() if tz else event.created_at.date()
        bucket = buckets.get(day)
        if bucket is None:
            continue
        bucket.produced += event.quantity_produced
        bucket.rework += event.quantity_rework or 0
    return [buckets[day] for day in sorted(buckets)]


def rework_entries(events: Iterable[ProductionEvent], pieces: Iterable[Piece]) -> List[ReworkEntry]:
    by_id = {piece.id: piece for piece in pieces}
    entries: List[ReworkEntry] = []
    for event in events:
        if not event.quantity_rework:
            continue
        piece = by_id.get(event.piece_id)
        entries.append(
            ReworkEntry(
                piece_id=event.piece_id,
                piece_code=piece.code if piece else event.piece_id,
                description=piece.description if piece else "",
                quantity=event.quantity_rework,
                reason=event.notes or "",
                operator_name=event.operator_name,
                created_at=event.created_at,
            )
        )
    entries.sort(key=lambda item: (item.created_at is None, item.created_at or 0))
    return entries


class ReportService:
    def __init__(self, store: DataStore) -> None:
        self.store = store

    async def summary(self, batches: List[Batch], days: int = 7, today: Optional[date] = None) -> ProductionSummary:
        end = today or utc_now().date()
        start = end - timedelta(days=max(days, 1) - 1)
        events = await self.store.list_production_events(
            day_start_utc(start), day_start_utc(end + timedelta(days=1))
        )
        pieces = [piece for batch in batches for piece in batch.pieces]
        return ProductionSummary(
            start=start,
            end=end,
            batches=[batch_progress(batch) for batch in batches],
            daily=daily_totals(events, start, end),
            rework=rework_entries(events, pieces),
        )


__all__ = [
    "BatchProgress",
    "DailyTotal",
    "ProductionSummary",
    "ReportService",
    "ReworkEntry",
    "batch_progress",
    "daily_totals",
    "rework_entries",
]
