"""Shared pytest configuration and fixtures for the logtail viewer tests."""

import asyncio
import sys
import time
from pathlib import Path
from typing import Callable

import pytest
import structlog

# Add src/ to Python path so the package imports without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from logtail_viewer.config import ENV_VARS  # noqa: E402


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    """Path of a log file that does not exist yet."""
    return tmp_path / "app.log"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """Remove every config environment variable and point CONFIG_DIR at tmp_path."""
    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    return monkeypatch


@pytest.fixture
def reset_structlog():
    """Undo any structlog.configure() done by the test."""
    yield
    structlog.reset_defaults()


def append_text(path: Path, text: str) -> None:
    """Append like an external producer: one write, then close."""
    with open(path, "a", encoding="utf-8", newline="") as f:
        f.write(text)


async def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Yield to the loop until ``predicate()`` holds or ``timeout`` expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()
