"""Rows read from the remote data store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from datetime_utils import parse_timestamp


@dataclass
class Piece:
    id: str
    batch_id: str
    code: str
    description: str
    quantity: int
    produced_quantity: int = 0
    color: Optional[str] = None
    rework_total: int = 0

    @property
    def completed(self) -> bool:
        return self.produced_quantity >= self.quantity

    @property
    def remaining(self) -> int:
        return max(self.quantity - self.produced_quantity, 0)

    @property
    def progress(self) -> float:
        """Completion percentage capped at 100."""
        if self.quantity <= 0:
            return 100.0
        return min(self.produced_quantity * 100.0 / self.quantity, 100.0)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Piece":
        return cls(
            id=str(row["id"]),
            batch_id=str(row.get("batch_id") or ""),
            code=row.get("code") or "",
            description=row.get("description") or "",
            quantity=int(row.get("quantity") or 0),
            produced_quantity=int(row.get("produced_quantity") or 0),
            color=row.get("color"),
        )


@dataclass
class Batch:
    id: str
    code: str
    name: str
    status: str
    color: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    pieces: List[Piece] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Batch":
        return cls(
            id=str(row["id"]),
            code=row.get("code") or "",
            name=row.get("name") or "",
            status=row.get("status") or "",
            color=row.get("color"),
            description=row.get("description"),
            start_date=row.get("start_date"),
            end_date=row.get("end_date"),
        )


@dataclass
class ProductionEvent:
    piece_id: str
    operator_name: str
    quantity_produced: int
    quantity_rework: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "piece_id": self.piece_id,
            "operator_name": self.operator_name,
            "quantity_produced": self.quantity_produced,
            "quantity_rework": self.quantity_rework,
            "notes": self.notes,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ProductionEvent":
        rework = row.get("quantity_rework")
        return cls(
            piece_id=str(row.get("piece_id") or ""),
            operator_name=row.get("operator_name") or "",
            quantity_produced=int(row.get("quantity_produced") or 0),
            quantity_rework=int(rework) if rework is not None else None,
            notes=row.get("notes"),
            created_at=parse_timestamp(row.get("created_at")),
        )


__all__ = ["Batch", "Piece", "ProductionEvent"]
