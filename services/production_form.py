"""Checks the operator form runs before an entry reaches the queue."""
from __future__ import annotations

from dataclasses import dataclass

from core.settings import UI


class EntryValidationError(ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


@dataclass(frozen=True)
class ProductionEntry:
    piece_id: str
    produced_qty: int
    rework_qty: int
    reason_text: str
    operator_name: str


def _as_quantity(value, field: str) -> int:
    if value in (None, ""):
        return 0
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise EntryValidationError(field, "Quantidade inválida") from None
    if qty < 0:
        raise EntryValidationError(field, "Quantidade não pode ser negativa")
    return qty


def validate_entry(piece_id, produced_qty, rework_qty, reason_text, operator_name) -> ProductionEntry:
    if not piece_id:
        raise EntryValidationError("piece_id", "Selecione uma peça")
    produced = _as_quantity(produced_qty, "produced_qty")
    rework = _as_quantity(rework_qty, "rework_qty")
    reason = (reason_text or "").strip()
    operator = (operator_name or "").strip()

    if produced <= 0 and rework <= 0:
        raise EntryValidationError(
            "produced_qty",
            "Informe a quantidade produzida ou a quantidade para retrabalho",
        )
    if rework > 0 and not reason:
        raise EntryValidationError("reason_text", "Informe o motivo do retrabalho")
    if not operator:
        raise EntryValidationError("operator_name", "Informe o nome do operador")

    return ProductionEntry(
        piece_id=str(piece_id),
        produced_qty=produced,
        rework_qty=rework,
        reason_text=reason,
        operator_name=operator,
    )


def adjust_quantity(current: int, delta: int) -> int:
    return max(0, int(current or 0) + delta)


def quick_quantities() -> tuple[int, ...]:
    return UI.quick_quantities


__all__ = [
    "EntryValidationError",
    "ProductionEntry",
    "adjust_quantity",
    "quick_quantities",
    "validate_entry",
]
