"""JSON file helpers with advisory locking and atomic writes."""

import json
import logging
import os
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Blocks until the lock is available.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        # msvcrt has no shared mode; LK_LOCK retries for ~10s before failing
        file_obj.seek(0)
        msvcrt.locking(file_obj.fileno(), msvcrt.LK_LOCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way.

    Args:
        file_obj: File object to unlock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        file_obj.seek(0)
        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


@contextmanager
def file_lock(lock_path: Path, exclusive: bool = True) -> Iterator[None]:
    """Hold an advisory lock on a sidecar lock file.

    The lock file is never removed; its content is irrelevant.

    Args:
        lock_path: Path of the lock file
        exclusive: Acquire an exclusive lock (default) or a shared one
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a+") as f:
        _lock_file(f, exclusive=exclusive)
        try:
            yield
        finally:
            _unlock_file(f)


def write_json_atomic(file_path: Path, data: Any) -> None:
    """Write JSON atomically using a temporary file and rename.

    Args:
        file_path: Target file path
        data: JSON-serializable document
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    temp_file = file_path.with_suffix(file_path.suffix + ".tmp")

    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())

        temp_file.replace(file_path)
        logger.debug(f"Wrote {file_path}")

    except Exception as e:
        if temp_file.exists():
            temp_file.unlink()
        raise e


def read_json(file_path: Path) -> Any:
    """Read and parse a JSON file.

    Raises:
        OSError: If the file cannot be read
        json.JSONDecodeError: If the content is not valid JSON
    """
    with open(file_path, encoding="utf-8") as f:
        return json.load(f)
