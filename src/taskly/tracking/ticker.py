"""Background heartbeat process for an active tracking session.

Internal entry point, launched only by the session supervisor::

    python -m taskly.tracking.ticker <project>

The process records a heartbeat (``active.lastUpdate``) every interval until
it receives a termination signal.
"""

import logging
import os
import signal
import sys
import threading
from typing import Any, Optional

from taskly.core.config import ConfigManager
from taskly.core.logs import setup_logging
from taskly.tracking.errors import CorruptStateError
from taskly.tracking.models import now_ms
from taskly.tracking.platform import get_config_path, get_log_file_path
from taskly.tracking.store import StateStore

logger = logging.getLogger(__name__)

EXIT_NO_PROJECT = 3
DEFAULT_INTERVAL = 5


class BackgroundTicker:
    """Periodically marks the active session as alive."""

    def __init__(
        self,
        project: str,
        store: Optional[StateStore] = None,
        interval: float = DEFAULT_INTERVAL,
        pid: Optional[int] = None,
    ):
        """Initialize ticker.

        Args:
            project: Project being tracked
            store: State store instance. Creates default if None.
            interval: Seconds between heartbeats
            pid: Process ID that owns the session (default: this process)
        """
        self.project = project
        self.store = store or StateStore()
        self.interval = interval
        self.pid = pid if pid is not None else os.getpid()
        self.ticks = 0
        self._shutdown_event = threading.Event()

    def tick(self) -> bool:
        """Record one heartbeat.

        Only writes when the active session still belongs to this process,
        so a late tick can't revive a stopped session.

        Returns:
            True if ``lastUpdate`` was written
        """
        with self.store.locked():
            state = self.store.load()
            active = state.active

            if active is None:
                logger.debug("No active session, skipping heartbeat")
                return False
            if active.pid != self.pid:
                logger.debug(f"Active session belongs to pid {active.pid}, skipping heartbeat")
                return False

            active.last_update = now_ms()
            self.store.save(state)

        self.ticks += 1
        logger.debug(f"Heartbeat {self.ticks} for {self.project!r}")
        return True

    def run(self) -> None:
        """Tick until :meth:`shutdown` is called or a signal arrives."""
        logger.info(
            f"Ticker started for {self.project!r} (PID: {self.pid}, interval: {self.interval}s)"
        )

        while not self._shutdown_event.wait(self.interval):
            try:
                self.tick()
            except CorruptStateError as e:
                logger.error(f"{e}; skipping heartbeat")
            except Exception as e:
                logger.error(f"Error in heartbeat: {e}")

        logger.info(f"Ticker stopped after {self.ticks} heartbeats")

    def shutdown(self) -> None:
        """Ask the loop to exit."""
        self._shutdown_event.set()

    def install_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, shutting down...")
        self.shutdown()


def main(argv: Optional[list[str]] = None) -> int:
    """Run the heartbeat for the project named in ``argv``.

    Returns:
        Process exit code
    """
    args = sys.argv[1:] if argv is None else argv
    project = args[0].strip() if args else ""
    if not project:
        return EXIT_NO_PROJECT

    interval: float = DEFAULT_INTERVAL
    log_level = "INFO"
    config_error = None
    try:
        config = ConfigManager(get_config_path())
        interval = config.get("tracking.heartbeat_interval", DEFAULT_INTERVAL)
        log_level = config.get("advanced.log_level", "INFO")
    except ValueError as e:
        config_error = e

    setup_logging(get_log_file_path(), log_level)
    if config_error is not None:
        logger.warning(f"Using default settings: {config_error}")

    ticker = BackgroundTicker(project, interval=interval)
    ticker.install_signal_handlers()
    ticker.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
