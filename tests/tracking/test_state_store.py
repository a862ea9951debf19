"""Tests for the tracking state store."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from taskly.tracking.errors import CorruptStateError, StatePersistError
from taskly.tracking.models import CompletedSession, Session, TrackingState
from taskly.tracking.store import StateStore


class TestStateStore:
    """Test StateStore."""

    def test_load_creates_default_document(self, store: StateStore) -> None:
        assert not store.state_file.exists()

        state = store.load()

        assert state.active is None
        assert state.log == []
        assert json.loads(store.state_file.read_text()) == {"active": None, "log": []}

    def test_load_creates_missing_directory(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "nested" / "dir")

        store.load()

        assert store.state_file.exists()

    def test_default_data_dir_from_environment(self, isolated_home: Path) -> None:
        store = StateStore()

        assert store.state_file == isolated_home / "timeline.json"

    def test_save_and_load(self, store: StateStore) -> None:
        state = TrackingState(
            active=Session(project="b", start_time=5_000, pid=99, last_update=10_000),
            log=[CompletedSession("a", 1_000, 2_000, "1.00 sec")],
        )

        store.save(state)
        loaded = store.load()

        assert loaded == state

    def test_save_load_round_trip_preserves_file(self, store: StateStore) -> None:
        document = {
            "active": {"project": "x", "startTime": 10, "pid": 3, "lastUpdate": 20},
            "log": [{"project": "y", "startTime": 1, "endTime": 5, "duration": "0.00 sec"}],
        }
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text(json.dumps(document))

        store.save(store.load())

        assert json.loads(store.state_file.read_text()) == document

    def test_save_writes_valid_json_without_temp_leftovers(self, store: StateStore) -> None:
        store.save(TrackingState())

        assert json.loads(store.state_file.read_text()) == {"active": None, "log": []}
        assert list(store.data_dir.glob("*.tmp")) == []

    def test_deleted_file_is_recreated(self, store: StateStore) -> None:
        store.load()
        store.state_file.unlink()

        state = store.load()

        assert state.active is None
        assert store.state_file.exists()

    def test_invalid_json_raises_corrupt_state(self, store: StateStore) -> None:
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text("{not json")

        with pytest.raises(CorruptStateError, match="invalid JSON"):
            store.load()

    def test_wrong_shape_raises_corrupt_state(self, store: StateStore) -> None:
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text(json.dumps({"active": None, "log": "nope"}))

        with pytest.raises(CorruptStateError):
            store.load()

    def test_missing_keys_raise_corrupt_state(self, store: StateStore) -> None:
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text(json.dumps({"active": {"project": "a"}, "log": []}))

        with pytest.raises(CorruptStateError):
            store.load()

    def test_corrupt_file_is_left_untouched(self, store: StateStore) -> None:
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text("garbage")

        with pytest.raises(CorruptStateError):
            store.load()

        assert store.state_file.read_text() == "garbage"

    def test_null_last_update_is_accepted(self, store: StateStore) -> None:
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text(
            json.dumps(
                {
                    "active": {"project": "a", "startTime": 1_000, "pid": 7, "lastUpdate": None},
                    "log": [],
                }
            )
        )

        active = store.load().active

        assert active is not None
        assert active.last_update is None

    def test_empty_active_project_is_accepted(self, store: StateStore) -> None:
        """Test files written with a blank project still load."""
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text(
            json.dumps({"active": {"project": "", "startTime": 1_000, "pid": 7}, "log": []})
        )

        active = store.load().active

        assert active is not None
        assert active.project == ""

    def test_save_failure_raises_persist_error(self, store: StateStore) -> None:
        store.save(TrackingState())
        before = store.state_file.read_bytes()

        with patch(
            "taskly.tracking.store.write_json_atomic", side_effect=OSError("disk full")
        ):
            with pytest.raises(StatePersistError, match="disk full"):
                store.save(TrackingState(active=Session(project="a", start_time=1, pid=7)))

        assert store.state_file.read_bytes() == before


class TestTransaction:
    """Test locked read-modify-write."""

    def test_transaction_saves_changes(self, store: StateStore) -> None:
        with store.transaction() as state:
            state.active = Session(project="a", start_time=1, pid=2)

        assert store.load().active == Session(project="a", start_time=1, pid=2)

    def test_transaction_discards_changes_on_error(self, store: StateStore) -> None:
        store.load()
        before = store.state_file.read_bytes()

        with pytest.raises(RuntimeError):
            with store.transaction() as state:
                state.active = Session(project="a", start_time=1, pid=2)
                raise RuntimeError("boom")

        assert store.state_file.read_bytes() == before

    def test_transaction_creates_lock_file(self, store: StateStore) -> None:
        with store.transaction():
            pass

        assert store.lock_file.exists()


class TestReset:
    """Test recovery from a corrupt file."""

    def test_reset_backs_up_and_writes_default(self, store: StateStore) -> None:
        store.data_dir.mkdir(parents=True)
        store.state_file.write_text("garbage")

        backup = store.reset()

        assert backup is not None
        assert backup.read_text() == "garbage"
        assert backup.name.startswith("timeline.json.corrupt-")
        assert store.load() == TrackingState()

    def test_reset_without_existing_file(self, store: StateStore) -> None:
        backup = store.reset()

        assert backup is None
        assert store.load() == TrackingState()
