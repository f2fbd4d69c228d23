"""Discovery of Cursor workspace storage directories.

Cursor keeps one directory per opened folder under ``workspaceStorage``,
named by an MD5 hash, each holding a ``state.vscdb`` SQLite database:
    ~/.config/Cursor/User/workspaceStorage/<hash>/state.vscdb (Linux)
    ~/Library/Application Support/Cursor/User/workspaceStorage/<hash>/ (macOS)
    ~/AppData/Roaming/Cursor/User/workspaceStorage/<hash>/ (Windows)
"""

import json
import platform
import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from chat_miner.logging import get_logger
from chat_miner.models import Workspace

logger = get_logger("workspaces")

DATABASE_FILENAME = "state.vscdb"
MD5_PATTERN = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)


def get_default_workspace_storage_path() -> Path:
    """Platform default location of Cursor's workspaceStorage directory.

    Raises:
        RuntimeError: On platforms Cursor does not support
    """
    system = platform.system()
    home = Path.home()

    if system == "Darwin":  # macOS
        return home / "Library" / "Application Support" / "Cursor" / "User" / "workspaceStorage"
    if system == "Windows":
        return home / "AppData" / "Roaming" / "Cursor" / "User" / "workspaceStorage"
    if system == "Linux":
        return home / ".config" / "Cursor" / "User" / "workspaceStorage"
    raise RuntimeError(f"Unsupported platform: {system}")


def _strip_file_uri(folder: str) -> str:
    # folder is typically "file:///path/to/workspace"
    if folder.startswith("file://"):
        return folder[7:]
    return folder


def extract_project_path(workspace_path: Path) -> str | None:
    """Read the opened folder from workspace.json, falling back to storage.json.

    Args:
        workspace_path: The <hash> workspace directory

    Returns:
        Project folder path, or None if neither file names one
    """
    candidates = [
        (workspace_path / "workspace.json", ("folder", "workspace.folder", "workspaceFolder")),
        (workspace_path / "storage.json", ("folder", "workspace.folder")),
    ]
    for json_path, fields in candidates:
        try:
            with open(json_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            continue
        if not isinstance(data, dict):
            continue

        for field_name in fields:
            value = data
            for part in field_name.split("."):
                value = value.get(part) if isinstance(value, dict) else None
            if isinstance(value, str) and value:
                return _strip_file_uri(value)

    return None


class WorkspaceScanner:
    """Enumerates workspaces under a workspaceStorage directory."""

    def __init__(
        self,
        custom_path: Path | str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize scanner.

        Args:
            custom_path: workspaceStorage directory; the platform default
                         when None
            clock: Current time source for age filtering (UTC now when None)
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        if custom_path is None:
            self._storage_path = get_default_workspace_storage_path()
        else:
            self._storage_path = Path(custom_path)

    @property
    def storage_path(self) -> Path:
        return self._storage_path

    def scan_workspaces(self) -> list[Workspace]:
        """List workspaces that have a state database, newest first.

        Raises:
            OSError: If the workspaceStorage directory cannot be read
        """
        workspaces: list[Workspace] = []

        for entry in self._storage_path.iterdir():
            if not entry.is_dir() or not MD5_PATTERN.match(entry.name):
                continue

            db_path = entry / DATABASE_FILENAME
            try:
                mtime = db_path.stat().st_mtime
            except OSError:
                continue

            workspaces.append(
                Workspace(
                    hash=entry.name,
                    path=str(entry),
                    last_modified=datetime.fromtimestamp(mtime, tz=timezone.utc),
                    project_path=extract_project_path(entry),
                )
            )

        workspaces.sort(key=lambda w: w.last_modified, reverse=True)
        logger.debug("Scanned workspaces: path=%s count=%d", self._storage_path, len(workspaces))
        return workspaces

    def get_latest_workspace(self) -> Workspace | None:
        workspaces = self.scan_workspaces()
        return workspaces[0] if workspaces else None

    def get_workspaces_by_age(self, days: int = 30) -> list[Workspace]:
        """Workspaces whose database changed within the last `days` days."""
        cutoff = self._clock() - timedelta(days=days)
        return [w for w in self.scan_workspaces() if w.last_modified >= cutoff]

    def find_workspaces_by_project_path(self, project_path: str) -> list[Workspace]:
        """Workspaces whose project path contains the basename of `project_path`."""
        name = Path(project_path).name
        return [w for w in self.scan_workspaces() if w.project_path and name in w.project_path]
