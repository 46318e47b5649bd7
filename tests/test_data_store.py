import asyncio
from types import SimpleNamespace

import httpx
import pytest
from postgrest.exceptions import APIError

from core.settings import RemoteSettings
from models.pending_record import FAILURE_PERMANENT, FAILURE_RETRYABLE
from services.data_store import MissingPieceError, SupabaseDataStore, classify_failure

from conftest import foreign_key_error


def _api_error(code):
    return APIError({"message": "boom", "code": code, "hint": None, "details": None})


class FakeQuery:
    """Chainable stand-in for a PostgREST request builder."""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def _chain(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return _chain

    @property
    def not_(self):
        self.calls.append(("not_", (), {}))
        return self

    async def execute(self):
        self.client.executed.append((self.table, self.calls))
        names = [name for name, _, _ in self.calls]
        if "update" in names:
            values = self.calls[names.index("update")][1][0]
            piece = self.client.pieces.get(self._eq_value())
            if piece is None:
                return SimpleNamespace(data=[])
            piece.update(values)
            return SimpleNamespace(data=[piece])
        if "single" in names:
            piece = self.client.pieces.get(self._eq_value())
            if piece is None:
                raise _api_error("PGRST116")
            return SimpleNamespace(data=dict(piece))
        if "insert" in names:
            self.client.inserted.append(self.calls[names.index("insert")][1][0])
            return SimpleNamespace(data=[])
        return SimpleNamespace(data=list(self.client.rows.get(self.table, [])))

    def _eq_value(self):
        for name, args, _ in self.calls:
            if name == "eq":
                return args[1]
        return None


class FakeRpc:
    def __init__(self, client, name, params):
        self.client = client
        self.name = name
        self.params = params

    async def execute(self):
        self.client.rpc_calls.append((self.name, self.params))
        if not self.client.rpc_installed:
            raise _api_error("PGRST202")
        piece = self.client.pieces.get(self.params["piece_id"])
        if piece is None:
            return SimpleNamespace(data=None)
        piece["produced_quantity"] += self.params["delta"]
        return SimpleNamespace(data=piece["produced_quantity"])


class FakeClient:
    def __init__(self, rpc_installed=True):
        self.rpc_installed = rpc_installed
        self.pieces = {"P1": {"id": "P1", "produced_quantity": 10}}
        self.rows = {}
        self.inserted = []
        self.executed = []
        self.rpc_calls = []

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)


SETTINGS = RemoteSettings(url="https://example.supabase.co", key="anon")


def test_increment_uses_store_side_function():
    client = FakeClient(rpc_installed=True)
    store = SupabaseDataStore(SETTINGS, client=client)

    total = asyncio.run(store.increment_produced_quantity("P1", 5))

    assert total == 15
    assert client.rpc_calls == [("increment_piece_produced_quantity", {"piece_id": "P1", "delta": 5})]


def test_increment_falls_back_to_read_modify_write_once_function_is_missing():
    client = FakeClient(rpc_installed=False)
    store = SupabaseDataStore(SETTINGS, client=client)

    async def scenario():
        first = await store.increment_produced_quantity("P1", 5)
        second = await store.increment_produced_quantity("P1", 2)
        return first, second

    assert asyncio.run(scenario()) == (15, 17)
    assert len(client.rpc_calls) == 1
    assert client.pieces["P1"]["produced_quantity"] == 17


def test_missing_piece_is_reported():
    store = SupabaseDataStore(SETTINGS, client=FakeClient(rpc_installed=False))
    with pytest.raises(MissingPieceError):
        asyncio.run(store.increment_produced_quantity("nope", 1))

    store = SupabaseDataStore(SETTINGS, client=FakeClient(rpc_installed=True))
    with pytest.raises(MissingPieceError):
        asyncio.run(store.increment_produced_quantity("nope", 1))


def test_insert_event_sends_nullable_columns():
    from models.catalog import ProductionEvent

    client = FakeClient()
    store = SupabaseDataStore(SETTINGS, client=client)
    asyncio.run(store.insert_production_event(ProductionEvent("P1", "Ana", 3)))

    assert client.inserted == [
        {
            "piece_id": "P1",
            "operator_name": "Ana",
            "quantity_produced": 3,
            "quantity_rework": None,
            "notes": None,
        }
    ]
    assert client.executed[0][0] == "production_records"


def test_connect_requires_credentials():
    store = SupabaseDataStore(RemoteSettings(url="", key=""))
    with pytest.raises(RuntimeError):
        asyncio.run(store.connect())


@pytest.mark.parametrize(
    "exc, kind",
    [
        (foreign_key_error(), FAILURE_PERMANENT),
        (_api_error("22P02"), FAILURE_PERMANENT),
        (_api_error("PGRST116"), FAILURE_PERMANENT),
        (_api_error("57014"), FAILURE_RETRYABLE),
        (MissingPieceError("P1"), FAILURE_PERMANENT),
        (httpx.ConnectError("unreachable"), FAILURE_RETRYABLE),
        (OSError("network down"), FAILURE_RETRYABLE),
    ],
)
def test_classify_failure(exc, kind):
    assert classify_failure(exc) == kind


def test_classify_http_status():
    request = httpx.Request("POST", "https://example.supabase.co/rest/v1/production_records")

    def status_error(code):
        response = httpx.Response(code, request=request)
        return httpx.HTTPStatusError("status", request=request, response=response)

    assert classify_failure(status_error(503)) == FAILURE_RETRYABLE
    assert classify_failure(status_error(429)) == FAILURE_RETRYABLE
    assert classify_failure(status_error(403)) == FAILURE_PERMANENT


def test_rework_totals_sum_per_piece():
    client = FakeClient()
    client.rows["production_records"] = [
        {"piece_id": "P1", "quantity_rework": 2},
        {"piece_id": "P1", "quantity_rework": 3},
        {"piece_id": "P2", "quantity_rework": 1},
    ]
    store = SupabaseDataStore(SETTINGS, client=client)

    assert asyncio.run(store.rework_totals(["P1", "P2"])) == {"P1": 5, "P2": 1}
    table, calls = client.executed[0]
    assert table == "production_records"
    assert ("not_", (), {}) in calls
    assert ("in_", ("piece_id", ["P1", "P2"]), {}) in calls
    assert asyncio.run(store.rework_totals([])) == {}
