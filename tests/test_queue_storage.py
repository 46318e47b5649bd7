import json

import pytest
from sqlmodel import select

from models import LocalValue, PendingRecord
from storage import queue_storage
from storage.queue_storage import (
    JsonFileQueueStorage,
    QueueStorageError,
    SqlQueueStorage,
    build_queue_storage,
)


def _record(**overrides):
    fields = dict(piece_id="P1", produced_qty=3, rework_qty=1, reason_text="Medida incorreta", operator_name="Ana")
    fields.update(overrides)
    return PendingRecord(**fields)


def test_sql_storage_keeps_collection_under_one_key(session_factory):
    storage = SqlQueueStorage(session_factory, key="pendingProductionRecords")
    first, second = _record(), _record(piece_id="P2", synced=True)

    storage.save([first, second])
    storage.save([second])

    with session_factory() as session:
        rows = session.exec(select(LocalValue)).all()
    assert [row.key for row in rows] == ["pendingProductionRecords"]
    assert [item["piece_id"] for item in json.loads(rows[0].value)] == ["P2"]
    assert storage.load() == [second]


def test_sql_storage_empty_database_loads_nothing(session_factory):
    assert SqlQueueStorage(session_factory).load() == []


def test_json_storage_missing_file_is_empty_queue(tmp_path):
    assert JsonFileQueueStorage(tmp_path / "queue.json").load() == []


def test_json_storage_replaces_file_and_leaves_no_tmp(tmp_path):
    path = tmp_path / "nested" / "queue.json"
    storage = JsonFileQueueStorage(path)
    record = _record()

    storage.save([record])

    assert path.exists()
    assert not path.with_suffix(".tmp").exists()
    assert storage.load() == [record]


@pytest.mark.parametrize("payload", ["{not json", "{}", "[1]", '["x"]', '[{"piece_id": "P1"}]'])
def test_corrupt_payload_is_reported_not_dropped(tmp_path, payload):
    path = tmp_path / "queue.json"
    path.write_text(payload, encoding="utf-8")

    with pytest.raises(QueueStorageError):
        JsonFileQueueStorage(path).load()
    assert path.read_text(encoding="utf-8") == payload


def test_unwritable_location_raises_queue_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    storage = JsonFileQueueStorage(blocker / "queue.json")

    with pytest.raises(QueueStorageError):
        storage.save([_record()])


def test_older_payload_without_observability_fields_loads():
    legacy = {
        "id": "1718000000000",
        "piece_id": "P9",
        "produced_qty": 4,
        "rework_qty": 0,
        "reason_text": "",
        "operator_name": "Rui",
        "created_at": "2024-06-10T08:00:00Z",
        "synced": False,
    }
    record = PendingRecord.from_dict(legacy)
    assert record.event_written is False
    assert record.attempts == 0
    assert record.created_at.year == 2024


def test_build_queue_storage_backends(monkeypatch, tmp_path):
    monkeypatch.setattr(queue_storage, "QUEUE_JSON_PATH", tmp_path / "q.json")
    assert isinstance(build_queue_storage("json"), JsonFileQueueStorage)
    assert isinstance(build_queue_storage("sqlite"), SqlQueueStorage)
    with pytest.raises(ValueError):
        build_queue_storage("redis")
