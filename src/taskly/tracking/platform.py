"""Platform-specific paths and process spawning options."""

import os
import platform
import subprocess
from enum import Enum
from pathlib import Path
from typing import Any, Optional

DATA_DIR_ENV = "TASKLY_HOME"


class Platform(Enum):
    """Supported platforms."""

    LINUX = "linux"
    MACOS = "darwin"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


def get_platform() -> Platform:
    """Detect the current platform.

    Returns:
        Platform enum value
    """
    system = platform.system().lower()
    if system == "linux":
        return Platform.LINUX
    elif system == "darwin":
        return Platform.MACOS
    elif system == "windows":
        return Platform.WINDOWS
    else:
        return Platform.UNKNOWN


def get_data_dir(data_dir: Optional[Path] = None) -> Path:
    """Resolve the per-user data directory.

    Precedence: explicit argument, then ``$TASKLY_HOME``, then ``~/.taskly``.
    """
    if data_dir is not None:
        return Path(data_dir).expanduser()
    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".taskly"


def get_log_file_path(data_dir: Optional[Path] = None) -> Path:
    """Get the background ticker log file path."""
    return get_data_dir(data_dir) / "logs" / "ticker.log"


def get_config_path(data_dir: Optional[Path] = None) -> Path:
    """Get the configuration file path."""
    return get_data_dir(data_dir) / "config.yml"


def detached_spawn_kwargs() -> dict[str, Any]:
    """Keyword arguments for ``subprocess.Popen`` that detach the child.

    The child gets its own session (POSIX) or process group (Windows), no
    console, and no inherited standard streams, so it outlives the CLI.
    """
    kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }

    if get_platform() == Platform.WINDOWS:
        kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0x08) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0x200
        )
    else:
        kwargs["start_new_session"] = True

    return kwargs
