"""Models exposed by the Shopfloor Tracker application."""
from .catalog import Batch, Piece, ProductionEvent
from .local_value import LocalValue
from .pending_record import PendingRecord

__all__ = ["Batch", "LocalValue", "PendingRecord", "Piece", "ProductionEvent"]
