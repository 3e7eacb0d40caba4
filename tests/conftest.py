"""Shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from mnemo.config import BackendConfig, MemoryConfig, MnemoConfig
from mnemo.memory.store import MemoryStore

from tests.helpers import Clock, FakeBackend


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def offline_backend() -> FakeBackend:
    return FakeBackend(online=False)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    return MemoryStore(tmp_path / "memory")


@pytest.fixture
def config(tmp_path: Path) -> MnemoConfig:
    return MnemoConfig(
        backend=BackendConfig(api_key="test-key"),
        memory=MemoryConfig(),
        memory_dir=tmp_path / "memory",
    )
