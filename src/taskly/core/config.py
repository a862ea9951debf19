"""Configuration management for Taskly.

Settings live in a YAML file next to the data files (``config.yml``). Missing
keys fall back to :data:`DEFAULT_CONFIG`; the merged result is checked against
:data:`CONFIG_SCHEMA` with jsonschema.
"""

import copy
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

DEFAULT_CONFIG: dict[str, Any] = {
    "version": "1.0",
    "tracking": {"heartbeat_interval": 5, "stop_timeout": 3.0},
    "todo": {"search_threshold": 0.3},
    "display": {"time_format": "%Y-%m-%d %H:%M:%S"},
    "advanced": {"log_level": "INFO"},
}

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _section(**properties: dict[str, Any]) -> dict[str, Any]:
    return {"type": "object", "properties": properties}


CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["version"],
    "properties": {
        "version": {"type": "string"},
        "tracking": _section(
            heartbeat_interval={"type": "integer", "minimum": 1, "maximum": 3600},
            stop_timeout={"type": "number", "minimum": 0, "maximum": 60},
        ),
        "todo": _section(search_threshold={"type": "number", "minimum": 0, "maximum": 1}),
        "display": _section(time_format={"type": "string", "minLength": 1}),
        "advanced": _section(log_level={"type": "string", "enum": LOG_LEVELS}),
    },
}


def _merged(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive copy of ``base`` with ``override`` applied on top."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _merged(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class ConfigManager:
    """Manage application configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to ~/.taskly/config.yml

        Raises:
            ValueError: If an existing file was invalid. The file has been
                moved to ``config.yml.backup`` and replaced with defaults,
                so constructing the manager again succeeds.
        """
        self.config_path = config_path or Path.home() / ".taskly" / "config.yml"
        self._config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)

        if not self.config_path.exists():
            self.save()
            return

        try:
            self._config = _merged(DEFAULT_CONFIG, self._read_file())
            self.validate()
        except (ValueError, yaml.YAMLError) as e:
            backup_path = self._discard_file()
            raise ValueError(
                f"Config validation failed, backed up to {backup_path}. "
                f"Using defaults. Error: {e}"
            )

    def _read_file(self) -> dict[str, Any]:
        with open(self.config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError("Invalid configuration: top level must be a mapping")
        return data

    def _discard_file(self) -> Path:
        """Move the current file aside and write defaults in its place."""
        backup_path = self.config_path.with_suffix(".yml.backup")
        self.config_path.replace(backup_path)
        self.reset()
        return backup_path

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Example:
            >>> config.get('tracking.heartbeat_interval')
            5
            >>> config.get('nonexistent.key', 'default')
            'default'
        """
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation and save.

        Raises:
            ValueError: If the new value fails validation (nothing is changed)
        """
        *parents, leaf = key.split(".")
        candidate = copy.deepcopy(self._config)
        node = candidate
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value

        self._check(candidate)
        self._config = candidate
        self.save()

    @staticmethod
    def _check(config: dict[str, Any]) -> None:
        try:
            validate(instance=config, schema=CONFIG_SCHEMA)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e.message}")

    def validate(self) -> bool:
        """Validate configuration against schema.

        Raises:
            ValueError: If configuration is invalid
        """
        self._check(self._config)
        return True

    def save(self) -> None:
        """Write the configuration as block-style YAML."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)

    def reset(self) -> None:
        """Reset to default configuration."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        self.save()

    def to_dict(self) -> dict[str, Any]:
        """Get full configuration as dictionary."""
        return copy.deepcopy(self._config)

    def get_all_keys(self) -> list[str]:
        """All leaf keys in dot notation, in file order.

        Example:
            >>> config.get_all_keys()
            ['version', 'tracking.heartbeat_interval', 'tracking.stop_timeout', ...]
        """
        keys: list[str] = []

        def walk(node: dict[str, Any], prefix: str) -> None:
            for name, value in node.items():
                path = f"{prefix}{name}"
                if isinstance(value, dict):
                    walk(value, path + ".")
                else:
                    keys.append(path)

        walk(self._config, "")
        return keys
