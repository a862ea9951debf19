"""Shared infrastructure: configuration, logging and JSON file storage."""

from taskly.core.config import ConfigManager
from taskly.core.storage import file_lock, read_json, write_json_atomic

__all__ = ["ConfigManager", "file_lock", "read_json", "write_json_atomic"]
