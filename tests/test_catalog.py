import asyncio

from models import Batch
from services.catalog import (
    STATUS_COMPLETED,
    STATUS_IN_PRODUCTION,
    STATUS_REWORK,
    CatalogService,
    filter_batches,
    find_piece_by_code,
    piece_status,
)

from conftest import FakeDataStore, make_piece


def _batch(batch_id="B1", status="Em andamento", pieces=None):
    return Batch(id=batch_id, code=f"L-{batch_id}", name=f"Lote {batch_id}", status=status, pieces=pieces or [])


def test_piece_status():
    assert piece_status(make_piece(produced=100, quantity=100)) == STATUS_COMPLETED
    assert piece_status(make_piece(produced=100, quantity=100), rework=2) == STATUS_COMPLETED
    assert piece_status(make_piece(produced=3), rework=1) == STATUS_REWORK
    assert piece_status(make_piece(produced=3)) == STATUS_IN_PRODUCTION


def test_find_piece_by_scanned_code():
    target = make_piece("P2", code="7891234")
    batches = [_batch("B1", pieces=[make_piece("P1")]), _batch("B2", pieces=[target])]

    assert find_piece_by_code(batches, " 7891234 ") == (batches[1], target)
    assert find_piece_by_code(batches, "0000") is None
    assert find_piece_by_code(batches, "") is None


def test_filter_batches_matches_code_or_description():
    batches = [
        _batch("B1", pieces=[make_piece("P1", description="Porta"), make_piece("P2", description="Gaveta")]),
        _batch("B2", pieces=[make_piece("P3", description="Tampo")]),
    ]

    filtered = filter_batches(batches, "gav")

    assert [b.id for b in filtered] == ["B1"]
    assert [p.id for p in filtered[0].pieces] == ["P2"]
    assert len(batches[0].pieces) == 2
    assert filter_batches(batches, "  ") == batches
    assert [p.id for p in filter_batches(batches, "pc-p3")[0].pieces] == ["P3"]


def test_active_batches_loads_pieces_and_skips_failures():
    store = FakeDataStore(
        pieces=[make_piece("P1", batch_id="B1"), make_piece("P2", batch_id="B2")],
        batches=[_batch("B1"), _batch("B2"), _batch("B3", status="Concluído")],
    )
    original = store.list_pieces

    async def flaky_list_pieces(batch_id):
        if batch_id == "B2":
            raise OSError("timeout")
        return await original(batch_id)

    store.list_pieces = flaky_list_pieces

    batches = asyncio.run(CatalogService(store, "Em andamento").active_batches())

    assert [b.id for b in batches] == ["B1", "B2"]
    assert [p.id for p in batches[0].pieces] == ["P1"]
    assert batches[1].pieces == []


def test_active_batches_mark_pieces_with_rework():
    from models import ProductionEvent

    store = FakeDataStore(
        pieces=[make_piece("P1", produced=3), make_piece("P2", produced=3), make_piece("P3", produced=100)],
        batches=[_batch("B1")],
    )
    store.events = [
        ProductionEvent("P1", "Ana", 0, 2, "Riscos"),
        ProductionEvent("P1", "Ana", 0, 1, "Trinca"),
        ProductionEvent("P3", "Ana", 0, 4, "Empeno"),
    ]

    batches = asyncio.run(CatalogService(store, "Em andamento").active_batches())

    pieces = {piece.id: piece for piece in batches[0].pieces}
    assert pieces["P1"].rework_total == 3
    assert piece_status(pieces["P1"]) == STATUS_REWORK
    assert piece_status(pieces["P2"]) == STATUS_IN_PRODUCTION
    assert piece_status(pieces["P3"]) == STATUS_COMPLETED
