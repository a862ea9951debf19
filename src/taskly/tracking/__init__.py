"""
Background time tracking.

- StateStore: the JSON tracking document on disk
- SessionSupervisor: starts and stops the detached heartbeat process
- ticker: the heartbeat entry point run inside that process (not imported
  here; it is executed with ``python -m``)
- SessionInspector: read-only status and history
"""

from taskly.tracking.errors import (
    AlreadyTrackingError,
    CorruptStateError,
    NotTrackingError,
    ProcessNotFoundError,
    ProcessTerminationError,
    SpawnError,
    TrackingError,
)
from taskly.tracking.inspector import ActiveSessionView, SessionInspector
from taskly.tracking.models import CompletedSession, Session, TrackingState
from taskly.tracking.store import StateStore
from taskly.tracking.supervisor import SessionHandle, SessionSupervisor, StopResult

__all__ = [
    "ActiveSessionView",
    "AlreadyTrackingError",
    "CompletedSession",
    "CorruptStateError",
    "NotTrackingError",
    "ProcessNotFoundError",
    "ProcessTerminationError",
    "Session",
    "SessionHandle",
    "SessionInspector",
    "SessionSupervisor",
    "SpawnError",
    "StateStore",
    "StopResult",
    "TrackingError",
    "TrackingState",
]
