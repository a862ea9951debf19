"""Starting and stopping background tracking sessions."""

import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import psutil  # type: ignore[import-untyped]

from taskly.tracking.errors import (
    AlreadyTrackingError,
    NotTrackingError,
    ProcessNotFoundError,
    ProcessTerminationError,
    SpawnError,
    StatePersistError,
)
from taskly.tracking.models import CompletedSession, Session, ms_to_datetime, now_ms
from taskly.tracking.platform import DATA_DIR_ENV, detached_spawn_kwargs
from taskly.tracking.store import StateStore

logger = logging.getLogger(__name__)

TICKER_MODULE = "taskly.tracking.ticker"


@dataclass
class SessionHandle:
    """Describes a session that was just started."""

    project: str
    start_time: int
    pid: int

    @property
    def started_at(self) -> datetime:
        return ms_to_datetime(self.start_time)


@dataclass
class StopResult:
    """Outcome of a successful stop.

    Attributes:
        session: The session appended to the log
        warning: Set when the heartbeat process was already gone
    """

    session: CompletedSession
    warning: Optional[ProcessNotFoundError] = None


class SessionSupervisor:
    """Owns the lifecycle of the background heartbeat process."""

    def __init__(self, store: Optional[StateStore] = None, stop_timeout: float = 3.0):
        """Initialize session supervisor.

        Args:
            store: State store instance. Creates default if None.
            stop_timeout: Seconds to wait for the heartbeat to exit after SIGTERM
        """
        self.store = store or StateStore()
        self.stop_timeout = stop_timeout

    def ticker_command(self, project: str) -> list[str]:
        """Argument vector that launches the heartbeat for ``project``."""
        return [sys.executable, "-m", TICKER_MODULE, project]

    def _spawn(self, project: str) -> int:
        """Launch the detached heartbeat process.

        Returns:
            Child process ID

        Raises:
            SpawnError: If the process could not be started
        """
        env = os.environ.copy()
        env[DATA_DIR_ENV] = str(self.store.data_dir)

        try:
            child = subprocess.Popen(
                self.ticker_command(project),
                env=env,
                **detached_spawn_kwargs(),
            )
        except OSError as e:
            logger.error(f"Failed to launch tracking process: {e}")
            raise SpawnError(f"Failed to launch tracking process: {e}")

        logger.info(f"Spawned tracking process {child.pid} for {project!r}")
        return int(child.pid)

    def start(self, project: str) -> SessionHandle:
        """Start tracking ``project`` in a background process.

        Args:
            project: Project label

        Returns:
            Handle describing the started session

        Raises:
            ValueError: If the project name is empty
            AlreadyTrackingError: If a session is already active
            SpawnError: If the heartbeat process could not be launched
            StatePersistError: If the session could not be recorded; the
                spawned heartbeat is terminated before raising
        """
        project = project.strip()
        if not project:
            raise ValueError("Project name cannot be empty")

        with self.store.locked():
            state = self.store.load()
            if state.active is not None:
                raise AlreadyTrackingError(state.active.project)

            pid = self._spawn(project)
            start_time = now_ms()
            state.active = Session(project=project, start_time=start_time, pid=pid)

            try:
                self.store.save(state)
            except StatePersistError:
                # Don't leave an unrecorded heartbeat running
                logger.error(f"Failed to record session, terminating process {pid}")
                try:
                    self._terminate(pid)
                except ProcessTerminationError as e:
                    logger.error(str(e))
                raise

        logger.info(f"Tracking started for {project!r} (pid {pid})")
        return SessionHandle(project=project, start_time=start_time, pid=pid)

    def stop(self) -> StopResult:
        """Stop the active session and move it to the log.

        The heartbeat is terminated before the state is touched. If the
        process is already gone the session is still finalized and the
        returned result carries a warning.

        Returns:
            The completed session and an optional warning

        Raises:
            NotTrackingError: If no session is active
            ProcessTerminationError: If the heartbeat could not be terminated;
                state is left unchanged so the stop can be retried
            StatePersistError: If the log could not be written; the stop can
                be retried
        """
        active = self.store.load().active
        if active is None:
            raise NotTrackingError()

        warning = self._terminate(active.pid)
        if warning is not None:
            logger.warning(str(warning))

        with self.store.transaction() as state:
            current = state.active
            if current is None or (current.pid, current.start_time) != (
                active.pid,
                active.start_time,
            ):
                # Finalized by a concurrent stop while we were terminating
                raise NotTrackingError()

            end_time = now_ms()
            if warning is not None and current.last_update is not None:
                end_time = max(current.start_time, current.last_update)

            completed = CompletedSession.from_session(current, end_time)
            state.log.append(completed)
            state.active = None

        logger.info(f"Tracking stopped for {completed.project!r} ({completed.duration})")
        return StopResult(session=completed, warning=warning)

    def _terminate(self, pid: int) -> Optional[ProcessNotFoundError]:
        """Terminate the heartbeat process.

        Returns:
            A ProcessNotFoundError warning if the process was already gone,
            otherwise None

        Raises:
            ProcessTerminationError: If the process exists but could not be stopped
        """
        try:
            process = psutil.Process(pid)
            if not self._is_ticker(process):
                logger.warning(f"Process {pid} is not a tracking process, not signalling it")
                return ProcessNotFoundError(pid)

            process.terminate()
            try:
                process.wait(timeout=self.stop_timeout)
            except psutil.TimeoutExpired:
                logger.warning(f"Process {pid} ignored SIGTERM, killing it")
                process.kill()
                process.wait(timeout=self.stop_timeout)

        except psutil.NoSuchProcess:
            return ProcessNotFoundError(pid)
        except (psutil.Error, OSError) as e:
            logger.error(f"Failed to stop process {pid}: {e}")
            raise ProcessTerminationError(pid, e)

        logger.info(f"Tracking process {pid} stopped")
        return None

    def _is_ticker(self, process: psutil.Process) -> bool:
        """Check that ``process`` is a heartbeat and not a reused pid."""
        try:
            cmdline = process.cmdline()
        except psutil.AccessDenied:
            # Can't tell; trust the recorded pid
            return True
        return TICKER_MODULE in cmdline
