"""Pytest fixtures and path configuration for distributed selection tests."""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
for _path in (SRC_DIR, REPO_ROOT):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))
# ruff: noqa: E402

import pytest

from distributed_selection.config import RuntimeConfig
from distributed_selection.runtime import LocalRuntime
from distributed_selection.store import InMemoryCoordinationStore

_SELECTION_ENV = (
    "SELECTION_STORE_ADAPTER",
    "SELECTION_STORE_PATH",
    "SELECTION_STORE_NAMESPACE",
    "SELECTION_PARALLELISM",
)


@pytest.fixture(autouse=True)
def _clear_selection_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _SELECTION_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runtime() -> LocalRuntime:
    return LocalRuntime(RuntimeConfig(parallelism=4, seed=7))


@pytest.fixture
def memory_store() -> InMemoryCoordinationStore:
    return InMemoryCoordinationStore(namespace="test")
