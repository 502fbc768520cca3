"""Unit tests for the flat-file strategy data store."""

import json
from pathlib import Path

import pytest

from app.core.errors import DataNotFoundError, DataStoreError, ValidationAppError
from app.services.data_store import READABLE_TYPES, StrategyDataStore


@pytest.fixture
def store(tmp_path: Path) -> StrategyDataStore:
    return StrategyDataStore(tmp_path / "data")


def test_write_then_read(store: StrategyDataStore) -> None:
    payload = {"outcomes": [{"id": 1, "name": "Grow midstream", "progress": 40}]}

    path = store.write("outcomes", payload)

    assert path.name == "strategic-outcomes.json"
    assert store.read("outcomes") == payload
    assert path.read_text(encoding="utf-8") == json.dumps(payload, indent=2)


def test_write_creates_data_dir(store: StrategyDataStore) -> None:
    assert not store.data_dir.exists()
    store.write("history", [])
    assert (store.data_dir / "kpi-history.json").is_file()


def test_write_keeps_backup_of_previous_version(store: StrategyDataStore) -> None:
    store.write("priorities", {"version": 1})
    store.write("priorities", {"version": 2})

    backup = store.data_dir / "priorities.backup.json"
    assert json.loads(backup.read_text(encoding="utf-8")) == {"version": 1}
    assert store.read("priorities") == {"version": 2}


def test_first_write_has_no_backup(store: StrategyDataStore) -> None:
    store.write("revenue", {"target": 100})
    assert not (store.data_dir / "revenue-targets.backup.json").exists()


def test_read_missing_document_raises_not_found(store: StrategyDataStore) -> None:
    with pytest.raises(DataNotFoundError) as exc_info:
        store.read("revenue")
    assert exc_info.value.code == "data_not_found"


def test_read_all_returns_none_for_missing(store: StrategyDataStore) -> None:
    store.write("outcomes", {"a": 1})

    result = store.read("all")

    assert result == {"outcomes": {"a": 1}, "revenue": None, "priorities": None, "history": None}


def test_read_corrupt_document_is_treated_as_missing(store: StrategyDataStore) -> None:
    store.data_dir.mkdir(parents=True)
    (store.data_dir / "priorities.json").write_text("{not json", encoding="utf-8")

    assert store.read("all")["priorities"] is None
    with pytest.raises(DataNotFoundError):
        store.read("priorities")


@pytest.mark.parametrize("data_type", ["unknown", "../etc", "", "OUTCOMES"])
def test_read_rejects_unknown_type(store: StrategyDataStore, data_type: str) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        store.read(data_type)

    assert exc_info.value.code == "invalid_type"
    assert exc_info.value.details["allowed_types"] == list(READABLE_TYPES)


def test_write_rejects_all(store: StrategyDataStore) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        store.write("all", {"x": 1})
    assert "all" not in exc_info.value.details["allowed_types"]


def test_write_rejects_missing_payload(store: StrategyDataStore) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        store.write("outcomes", None)
    assert exc_info.value.code == "missing_data"


def test_write_failure_raises_data_store_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file", encoding="utf-8")
    store = StrategyDataStore(blocker)

    with pytest.raises(DataStoreError) as exc_info:
        store.write("outcomes", {"a": 1})
    assert exc_info.value.code == "data_store_error"


def test_read_rejects_missing_type(store: StrategyDataStore) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        store.read(None)
    assert exc_info.value.code == "invalid_type"


@pytest.mark.parametrize("payload", [0, 0.0, False, ""])
def test_write_rejects_falsy_payload(store: StrategyDataStore, payload) -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        store.write("outcomes", payload)

    assert exc_info.value.code == "missing_data"
    assert not (store.data_dir / "strategic-outcomes.json").exists()


@pytest.mark.parametrize("payload", [[], {}])
def test_write_accepts_empty_containers(store: StrategyDataStore, payload) -> None:
    store.write("outcomes", payload)
    assert store.read("outcomes") == payload
