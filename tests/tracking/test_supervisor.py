"""Tests for the session supervisor."""

import json
import os
import re
import subprocess
import sys
import time
from pathlib import Path
from typing import Iterator
from unittest.mock import MagicMock, Mock, patch

import psutil  # type: ignore[import-untyped]
import pytest

from taskly.tracking.errors import (
    AlreadyTrackingError,
    NotTrackingError,
    ProcessNotFoundError,
    ProcessTerminationError,
    SpawnError,
    StatePersistError,
)
from taskly.tracking.models import CompletedSession, Session, TrackingState
from taskly.tracking.store import StateStore
from taskly.tracking.supervisor import TICKER_MODULE, SessionSupervisor

DURATION_PATTERN = re.compile(r"^\d+\.\d{2} sec$")


@pytest.fixture
def popen() -> Iterator[Mock]:
    """Replace process spawning with a fake child."""
    with patch("taskly.tracking.supervisor.subprocess.Popen") as mock_popen:
        mock_popen.return_value = Mock(pid=4242)
        yield mock_popen


@pytest.fixture
def process() -> Iterator[MagicMock]:
    """Replace psutil.Process with a fake heartbeat process."""
    fake = MagicMock()
    fake.cmdline.return_value = [sys.executable, "-m", TICKER_MODULE, "a"]
    with patch("taskly.tracking.supervisor.psutil.Process", return_value=fake):
        yield fake


@pytest.fixture
def supervisor(store: StateStore) -> SessionSupervisor:
    return SessionSupervisor(store, stop_timeout=0.5)


class TestStart:
    """Test starting a session."""

    def test_start_records_active_session(
        self, supervisor: SessionSupervisor, store: StateStore, popen: Mock
    ) -> None:
        """Test start writes the spawned pid and project."""
        handle = supervisor.start("writing")

        assert handle.project == "writing"
        assert handle.pid == 4242

        active = store.load().active
        assert active is not None
        assert active.project == "writing"
        assert active.pid == 4242
        assert active.start_time == handle.start_time
        assert active.last_update is None

    def test_start_spawns_ticker_module(
        self, supervisor: SessionSupervisor, store: StateStore, popen: Mock
    ) -> None:
        """Test the child command line and environment."""
        supervisor.start("writing")

        popen.assert_called_once()
        args, kwargs = popen.call_args
        assert args[0] == [sys.executable, "-m", TICKER_MODULE, "writing"]
        assert kwargs["env"]["TASKLY_HOME"] == str(store.data_dir)
        assert kwargs["stdin"] == subprocess.DEVNULL
        assert kwargs["stdout"] == subprocess.DEVNULL

    def test_start_strips_project_name(self, supervisor: SessionSupervisor, popen: Mock) -> None:
        handle = supervisor.start("  writing  ")

        assert handle.project == "writing"

    def test_start_empty_project(
        self, supervisor: SessionSupervisor, store: StateStore, popen: Mock
    ) -> None:
        """Test blank project names are rejected before spawning."""
        with pytest.raises(ValueError, match="cannot be empty"):
            supervisor.start("   ")

        popen.assert_not_called()
        assert store.load().active is None

    def test_start_when_already_tracking(
        self, supervisor: SessionSupervisor, store: StateStore, popen: Mock
    ) -> None:
        """Test a second start fails and leaves the file alone."""
        supervisor.start("first")
        before = store.state_file.read_bytes()

        with pytest.raises(AlreadyTrackingError) as exc_info:
            supervisor.start("second")

        assert exc_info.value.existing_project == "first"
        assert str(exc_info.value) == "Already tracking: first"
        assert store.state_file.read_bytes() == before
        assert popen.call_count == 1

    def test_start_spawn_failure(
        self, supervisor: SessionSupervisor, store: StateStore, popen: Mock
    ) -> None:
        popen.side_effect = OSError("no such interpreter")

        with pytest.raises(SpawnError):
            supervisor.start("writing")

        assert store.load().active is None

    def test_start_save_failure_terminates_child(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        """Test an unrecorded child is not left running."""
        store.load()

        failure = StatePersistError(store.state_file, OSError("disk full"))
        with patch.object(store, "save", side_effect=failure):
            with pytest.raises(StatePersistError, match="disk full"):
                supervisor.start("writing")

        process.terminate.assert_called_once()
        assert store.load().active is None


class TestStop:
    """Test stopping a session."""

    def test_stop_without_session(self, supervisor: SessionSupervisor, store: StateStore) -> None:
        """Test stop fails when idle and leaves the log unchanged."""
        store.save(TrackingState(log=[CompletedSession("a", 1_000, 2_000, "1.00 sec")]))

        with pytest.raises(NotTrackingError, match="No active tracking session"):
            supervisor.stop()

        assert len(store.load().log) == 1

    def test_stop_terminates_and_logs(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        """Test the normal stop path."""
        handle = supervisor.start("writing")

        result = supervisor.stop()

        process.terminate.assert_called_once()
        process.wait.assert_called_once_with(timeout=0.5)
        process.kill.assert_not_called()

        assert result.warning is None
        assert result.session.project == "writing"
        assert result.session.start_time == handle.start_time
        assert result.session.end_time >= handle.start_time
        assert DURATION_PATTERN.match(result.session.duration)

        state = store.load()
        assert state.active is None
        assert state.log == [result.session]

    def test_stop_appends_to_existing_log(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        store.save(TrackingState(log=[CompletedSession("old", 1_000, 2_000, "1.00 sec")]))

        supervisor.start("new")
        supervisor.stop()

        log = store.load().log
        assert [entry.project for entry in log] == ["old", "new"]

    def test_stop_process_already_gone(
        self, supervisor: SessionSupervisor, store: StateStore
    ) -> None:
        """Test a vanished process still finalizes with a warning."""
        store.save(TrackingState(active=Session(project="a", start_time=1_000, pid=4242)))

        with patch(
            "taskly.tracking.supervisor.psutil.Process",
            side_effect=psutil.NoSuchProcess(4242),
        ):
            result = supervisor.stop()

        assert isinstance(result.warning, ProcessNotFoundError)
        assert result.warning.pid == 4242
        assert store.load().active is None
        assert len(store.load().log) == 1

    def test_stop_gone_process_ends_at_last_heartbeat(
        self, supervisor: SessionSupervisor, store: StateStore
    ) -> None:
        store.save(
            TrackingState(
                active=Session(project="a", start_time=1_000, pid=4242, last_update=11_000)
            )
        )

        with patch(
            "taskly.tracking.supervisor.psutil.Process",
            side_effect=psutil.NoSuchProcess(4242),
        ):
            result = supervisor.stop()

        assert result.session.end_time == 11_000
        assert result.session.duration == "10.00 sec"

    def test_stop_termination_failure_keeps_state(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        """Test a failed stop can be retried without duplicate entries."""
        supervisor.start("writing")
        before = store.state_file.read_bytes()
        process.terminate.side_effect = psutil.AccessDenied(4242)

        with pytest.raises(ProcessTerminationError) as exc_info:
            supervisor.stop()

        assert exc_info.value.pid == 4242
        assert store.state_file.read_bytes() == before

        process.terminate.side_effect = None
        supervisor.stop()

        state = store.load()
        assert state.active is None
        assert len(state.log) == 1

    def test_stop_write_failure_keeps_state(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        """Test a failed log write is reported and stop can be retried."""
        supervisor.start("writing")
        before = store.state_file.read_bytes()

        with patch(
            "taskly.tracking.store.write_json_atomic", side_effect=OSError("disk full")
        ):
            with pytest.raises(StatePersistError) as exc_info:
                supervisor.stop()

        assert isinstance(exc_info.value.cause, OSError)
        assert store.state_file.read_bytes() == before

        process.cmdline.side_effect = psutil.NoSuchProcess(4242)
        result = supervisor.stop()

        assert isinstance(result.warning, ProcessNotFoundError)
        assert len(store.load().log) == 1

    def test_stop_kills_after_timeout(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        supervisor.start("writing")
        process.wait.side_effect = [psutil.TimeoutExpired(0.5, 4242), None]

        result = supervisor.stop()

        process.kill.assert_called_once()
        assert result.warning is None
        assert store.load().active is None

    def test_stop_does_not_signal_reused_pid(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        """Test a pid now owned by another program is left alone."""
        supervisor.start("writing")
        process.cmdline.return_value = ["/usr/bin/vim", "notes.txt"]

        result = supervisor.stop()

        process.terminate.assert_not_called()
        assert isinstance(result.warning, ProcessNotFoundError)
        assert store.load().active is None

    def test_stop_unreadable_cmdline_still_terminates(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        supervisor.start("writing")
        process.cmdline.side_effect = psutil.AccessDenied(4242)

        result = supervisor.stop()

        process.terminate.assert_called_once()
        assert result.warning is None

    def test_concurrent_stop_finalizes_once(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        """Test a stop that loses the race does not append a second entry."""
        supervisor.start("writing")

        def finalized_elsewhere() -> None:
            store.save(TrackingState(log=[CompletedSession("writing", 1, 2, "0.00 sec")]))

        process.terminate.side_effect = finalized_elsewhere

        with pytest.raises(NotTrackingError):
            supervisor.stop()

        assert len(store.load().log) == 1


class TestScenarios:
    """End-to-end flows with a fake child process."""

    def test_start_stop_start_stop(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        supervisor.start("a")
        supervisor.stop()
        supervisor.start("b")
        supervisor.stop()

        state = store.load()
        assert state.active is None
        assert [entry.project for entry in state.log] == ["a", "b"]
        for entry in state.log:
            assert entry.end_time >= entry.start_time
            assert DURATION_PATTERN.match(entry.duration)

    def test_stop_twice(
        self,
        supervisor: SessionSupervisor,
        store: StateStore,
        popen: Mock,
        process: MagicMock,
    ) -> None:
        supervisor.start("a")
        supervisor.stop()

        with pytest.raises(NotTrackingError):
            supervisor.stop()

        assert len(store.load().log) == 1


@pytest.mark.integration
@pytest.mark.slow
class TestRealProcess:
    """Runs the actual heartbeat process."""

    def test_heartbeat_and_stop(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        src_dir = Path(__file__).resolve().parents[2] / "src"
        monkeypatch.setenv(
            "PYTHONPATH", os.pathsep.join(filter(None, [str(src_dir), os.environ.get("PYTHONPATH")]))
        )
        data_dir.mkdir(parents=True)
        (data_dir / "config.yml").write_text(
            'version: "1.0"\ntracking:\n  heartbeat_interval: 1\n'
        )

        store = StateStore(data_dir)
        supervisor = SessionSupervisor(store, stop_timeout=5.0)
        handle = supervisor.start("integration")

        try:
            deadline = time.time() + 10
            last_update = None
            while time.time() < deadline:
                active = store.load().active
                if active is not None and active.last_update is not None:
                    last_update = active.last_update
                    break
                time.sleep(0.2)
            assert last_update is not None
            assert last_update >= handle.start_time
        finally:
            result = supervisor.stop()

        assert result.warning is None
        assert not psutil.pid_exists(handle.pid) or (
            psutil.Process(handle.pid).status() == psutil.STATUS_ZOMBIE
        )
        saved = json.loads(store.state_file.read_text())
        assert saved["active"] is None
        assert saved["log"][0]["project"] == "integration"
