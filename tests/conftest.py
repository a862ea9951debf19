"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest  # type: ignore[import-not-found]

from taskly.tracking.store import StateStore


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real ~/.taskly."""
    home = tmp_path / "home"
    monkeypatch.setenv("TASKLY_HOME", str(home))
    return home


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory for a test."""
    return tmp_path / "data"


@pytest.fixture
def store(data_dir: Path) -> StateStore:
    """State store in a temporary directory."""
    return StateStore(data_dir)
