#!/usr/bin/env python3
"""
Global pytest configuration and fixtures.

This module provides:
- An isolated working directory (MSTODO_SYNC_HOME) per test
- A temporary vault and config
- A SyncEngine wired to the in-memory fake To Do service
"""

import os
import sys
from pathlib import Path
from typing import Callable

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mstodo_sync.core.models import SyncConfig
from mstodo_sync.obsidian.vault import VaultDocuments
from mstodo_sync.sync.cache import DeltaCacheStore
from mstodo_sync.sync.context import SyncContext
from mstodo_sync.sync.engine import SyncEngine
from tests.e2e.fake_todo_api import FakeTodoApi


def pytest_configure(config):
    """Configure pytest environment."""
    config.addinivalue_line("markers", "e2e: end-to-end test against the fake To Do service")


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory, monkeypatch) -> Path:
    """Keep every test away from the real per-user directory and token."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("MSTODO_SYNC_HOME", str(home))
    monkeypatch.delenv("MSTODO_ACCESS_TOKEN", raising=False)
    return home


@pytest.fixture
def vault_dir(tmp_path) -> Path:
    vault = tmp_path / "Vault"
    vault.mkdir()
    (vault / ".obsidian").mkdir()
    return vault


@pytest.fixture
def write_note(vault_dir) -> Callable[..., Path]:
    """Write a note and optionally pin its mtime (POSIX seconds)."""
    def _write(rel_path: str, content: str, mtime: float = None) -> Path:
        path = vault_dir / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path
    return _write


@pytest.fixture
def config_path(tmp_path) -> str:
    return str(tmp_path / "config" / "config.json")


@pytest.fixture
def sync_config(vault_dir, tmp_path) -> SyncConfig:
    return SyncConfig(
        vault_path=str(vault_dir),
        list_id="list-inbox",
        list_name="Inbox",
        cache_path=str(tmp_path / "cache" / "tasks_delta.json"),
        lock_timeout=2.0,
    )


@pytest.fixture
def fake_api() -> FakeTodoApi:
    api = FakeTodoApi()
    api.seed_list("list-inbox", "Inbox")
    return api


@pytest.fixture
def cache_store(sync_config) -> DeltaCacheStore:
    return DeltaCacheStore(sync_config.cache_path, lock_timeout=sync_config.lock_timeout)


@pytest.fixture
def engine(sync_config, fake_api, config_path) -> SyncEngine:
    context = SyncContext.from_config(sync_config, api=fake_api)
    return SyncEngine(sync_config, context=context, config_path=config_path)


@pytest.fixture
def vault(vault_dir) -> VaultDocuments:
    return VaultDocuments(str(vault_dir))
