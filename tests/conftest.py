"""Shared fixtures for building fake Cursor workspace storage."""

import json
import logging
import sqlite3
from collections.abc import Callable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def write_state_db(db_path: Path, items: dict[str, Any]) -> Path:
    """Create a state.vscdb with an ItemTable holding the given items.

    Non-string values are stored JSON-encoded; strings are stored verbatim
    so tests can store malformed JSON.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("CREATE TABLE IF NOT EXISTS ItemTable (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
        for key, value in items.items():
            stored = value if isinstance(value, str) else json.dumps(value)
            conn.execute("INSERT INTO ItemTable (key, value) VALUES (?, ?)", (key, stored))
        conn.commit()
    finally:
        conn.close()
    return db_path


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Deterministic id factory yielding id-1, id-2, ..."""
    counter = iter(range(1, 1_000_000))
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Empty workspaceStorage directory."""
    root = tmp_path / "workspaceStorage"
    root.mkdir()
    return root


@pytest.fixture
def make_workspace(storage_root: Path) -> Callable[..., Path]:
    """Factory creating <storage_root>/<hash>/state.vscdb and workspace.json."""

    def _make(
        workspace_hash: str,
        items: dict[str, Any],
        folder: str | None = None,
    ) -> Path:
        workspace_dir = storage_root / workspace_hash
        write_state_db(workspace_dir / "state.vscdb", items)
        if folder is not None:
            (workspace_dir / "workspace.json").write_text(json.dumps({"folder": folder}))
        return workspace_dir

    return _make


@pytest.fixture
def state_db_writer() -> Callable[[Path, dict[str, Any]], Path]:
    """The write_state_db helper, for tests that build databases directly."""
    return write_state_db


@pytest.fixture(autouse=True)
def reset_chat_miner_logging() -> Iterator[None]:
    """Drop handlers installed by setup_logging so each test starts clean."""
    yield
    root = logging.getLogger("chat_miner")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
