"""Read-only access to a workspace's state.vscdb key-value database.

The database has a single ``ItemTable (key TEXT, value BLOB)`` table whose
values are mostly JSON documents. Lookups never raise: every method returns
a StorageResult, with ``success=False`` when the query or JSON decoding fails.
"""

import json
import sqlite3
import urllib.parse
from pathlib import Path
from typing import Any, Self

from chat_miner.logging import get_logger
from chat_miner.models import StorageResult, Workspace
from chat_miner.storage.workspaces import DATABASE_FILENAME

logger = get_logger("database")

CHAT_DATA_KEY = "workbench.panel.aichat.view.aichat.chatdata"
GENERATIONS_KEY = "aiService.generations"
PROMPTS_KEY = "aiService.prompts"

# Largest row that looks like chat data, used when the legacy key is absent
CHAT_SEARCH_QUERY = """
    SELECT [key], value, length(value) AS len
    FROM ItemTable
    WHERE value LIKE '%"conversations"%'
       OR value LIKE '%"messages"%'
       OR value LIKE '%"assistant"%'
       OR value LIKE '%"role":"assistant"%'
    ORDER BY len DESC
    LIMIT 1
"""


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _decode_lossy(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class WorkspaceDatabase:
    """Read-only connection to one workspace's state database."""

    def __init__(self, db_path: Path) -> None:
        """Open the database read-only.

        Args:
            db_path: Path to state.vscdb

        Raises:
            sqlite3.Error: If the database cannot be opened
        """
        self._db_path = db_path
        uri = f"file:{urllib.parse.quote(str(db_path))}?mode=ro"
        self._conn = sqlite3.connect(uri, uri=True)
        self._conn.row_factory = sqlite3.Row

    @classmethod
    def for_workspace(cls, workspace: Workspace) -> Self:
        return cls(Path(workspace.path) / DATABASE_FILENAME)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_json(self, key: str) -> StorageResult:
        """Look up and decode a single key."""
        try:
            row = self._conn.execute(
                "SELECT value FROM ItemTable WHERE [key] = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            return StorageResult(success=False, error=str(e), key=key)

        if row is None:
            return StorageResult(success=True, data=None, key=key)

        try:
            data = json.loads(_decode(row["value"]))
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            return StorageResult(success=False, error=f"Failed to parse {key}: {e}", key=key)
        return StorageResult(success=True, data=data, key=key)

    def get_chat_data(self) -> StorageResult:
        """Find the chat data blob.

        Tries the legacy chat panel key first, then the largest value that
        mentions conversations, messages or an assistant role.
        """
        legacy = self._get_json(CHAT_DATA_KEY)
        if not legacy.success or legacy.data is not None:
            return legacy

        try:
            row = self._conn.execute(CHAT_SEARCH_QUERY).fetchone()
        except sqlite3.Error as e:
            return StorageResult(success=False, error=str(e))

        if row is None:
            return StorageResult(success=True, data=None)

        key = row["key"]
        try:
            data = json.loads(_decode(row["value"]))
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            return StorageResult(
                success=False,
                error=f"Failed to parse chat-like data from key {key}: {e}",
                key=key,
            )
        logger.debug("Found chat-like data by search: db=%s key=%s", self._db_path, key)
        return StorageResult(success=True, data=data, key=key)

    def get_ai_generations(self) -> StorageResult:
        return self._get_json(GENERATIONS_KEY)

    def get_ai_prompts(self) -> StorageResult:
        return self._get_json(PROMPTS_KEY)

    def get_all_storage_data(self) -> StorageResult:
        """All keys with values decoded as JSON where possible."""
        try:
            rows = self._conn.execute("SELECT [key], value FROM ItemTable ORDER BY [key]").fetchall()
        except sqlite3.Error as e:
            return StorageResult(success=False, error=str(e))

        data: dict[str, Any] = {}
        for row in rows:
            try:
                data[row["key"]] = json.loads(_decode(row["value"]))
            except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
                data[row["key"]] = row["value"]
        return StorageResult(success=True, data=data)

    def search_in_data(self, term: str) -> StorageResult:
        """Rows whose raw value contains `term`."""
        try:
            rows = self._conn.execute(
                "SELECT [key], value FROM ItemTable WHERE value LIKE ? ORDER BY [key]",
                (f"%{term}%",),
            ).fetchall()
        except sqlite3.Error as e:
            return StorageResult(success=False, error=str(e))

        return StorageResult(
            success=True,
            data=[{"key": row["key"], "value": _decode_lossy(row["value"])} for row in rows],
        )

    def top_keys(self, limit: int = 30) -> StorageResult:
        """Keys ordered by value size, largest first."""
        try:
            rows = self._conn.execute(
                "SELECT [key], length(value) AS len FROM ItemTable ORDER BY len DESC LIMIT ?",
                (limit,),
            ).fetchall()
        except sqlite3.Error as e:
            return StorageResult(success=False, error=str(e))

        return StorageResult(success=True, data=[{"key": row["key"], "len": row["len"]} for row in rows])

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Exit context manager, closing database connection."""
        self.close()
