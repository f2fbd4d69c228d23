"""Canonical data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class CodeBlock:
    """A fenced code block extracted from message text."""

    language: str
    code: str
    filename: str | None = None

    def to_dict(self) -> dict:
        doc: dict[str, Any] = {"language": self.language, "code": self.code}
        if self.filename is not None:
            doc["filename"] = self.filename
        return doc


@dataclass
class ContextFile:
    """File context attached to a message."""

    path: str = ""
    content: str = ""
    language: str = "text"

    def to_dict(self) -> dict:
        return {"path": self.path, "content": self.content, "language": self.language}


@dataclass
class Message:
    """A single conversation turn."""

    id: str
    type: str  # user, assistant
    text: str
    created_at: str  # ISO-8601
    bubble_id: str | None = None
    context_files: list[ContextFile] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to the exported JSON shape."""
        doc: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "text": self.text,
            "createdAt": self.created_at,
        }
        if self.bubble_id is not None:
            doc["bubbleId"] = self.bubble_id
        doc["contextFiles"] = [f.to_dict() for f in self.context_files]
        doc["codeBlocks"] = [b.to_dict() for b in self.code_blocks]
        return doc


@dataclass
class Conversation:
    """A reconstructed chat session between a user and the assistant."""

    id: str
    title: str
    created_at: str
    updated_at: str
    messages: list[Message] = field(default_factory=list)
    workspace_folder: str | None = None  # Tagged by the caller after parsing

    @property
    def code_block_count(self) -> int:
        """Number of code blocks across all messages."""
        return sum(len(m.code_blocks) for m in self.messages)

    def to_dict(self) -> dict:
        """Convert to the exported JSON shape."""
        doc: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.workspace_folder is not None:
            doc["workspaceFolder"] = self.workspace_folder
        doc["messages"] = [m.to_dict() for m in self.messages]
        return doc


@dataclass
class FileChange:
    """A code change attributed to one assistant code block."""

    file: str
    type: str  # create, modify, delete
    additions: int
    deletions: int
    content: str | None = None

    def to_dict(self) -> dict:
        doc: dict[str, Any] = {
            "file": self.file,
            "type": self.type,
            "additions": self.additions,
            "deletions": self.deletions,
        }
        if self.content is not None:
            doc["content"] = self.content
        return doc


@dataclass
class CodeAnalysis:
    """Per-conversation code change rollup."""

    total_lines_added: int = 0
    total_lines_modified: int = 0
    total_lines_deleted: int = 0
    file_changes: list[FileChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalLinesAdded": self.total_lines_added,
            "totalLinesModified": self.total_lines_modified,
            "totalLinesDeleted": self.total_lines_deleted,
            "fileChanges": [c.to_dict() for c in self.file_changes],
        }


@dataclass
class StatisticsReport:
    """Cross-conversation statistics bucketed by day, workspace and language."""

    total_conversations: int = 0
    total_messages: int = 0
    total_code_blocks: int = 0
    total_lines_added: int = 0
    total_lines_modified: int = 0
    total_lines_deleted: int = 0
    language_stats: dict[str, dict[str, int]] = field(default_factory=dict)
    workspace_stats: dict[str, dict[str, int]] = field(default_factory=dict)
    daily_stats: dict[str, dict[str, int]] = field(default_factory=dict)
    file_changes: list[FileChange] = field(default_factory=list)
    group_by: str = "day"
    period_stats: dict[str, dict[str, int]] | None = None

    def to_dict(self) -> dict:
        doc: dict[str, Any] = {
            "totalConversations": self.total_conversations,
            "totalMessages": self.total_messages,
            "totalCodeBlocks": self.total_code_blocks,
            "totalLinesAdded": self.total_lines_added,
            "totalLinesModified": self.total_lines_modified,
            "totalLinesDeleted": self.total_lines_deleted,
            "languageStats": self.language_stats,
            "workspaceStats": self.workspace_stats,
            "dailyStats": self.daily_stats,
            "fileChanges": [c.to_dict() for c in self.file_changes],
            "groupBy": self.group_by,
        }
        if self.period_stats is not None:
            doc["periodStats"] = self.period_stats
        return doc


@dataclass
class Workspace:
    """A Cursor workspaceStorage directory holding a state.vscdb database."""

    hash: str  # MD5 directory name
    path: str
    last_modified: datetime
    project_path: str | None = None

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "path": self.path,
            "lastModified": self.last_modified.isoformat(),
            "projectPath": self.project_path,
        }


@dataclass
class StorageResult:
    """Outcome of a storage lookup.

    A successful lookup of an absent key has success=True and data=None.
    """

    success: bool
    data: Any = None  # Decoded JSON value of unknown shape
    error: str | None = None
    key: str | None = None  # ItemTable key the data was read from
