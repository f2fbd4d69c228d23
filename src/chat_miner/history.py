"""Chat history service over all Cursor workspaces.

Ties workspace discovery, the storage reader, the parsers and the analyzers
together. Every public operation returns a result dict::

    {"success": True, "data": ..., ...}   or   {"success": False, "error": "..."}

and never raises. A failure in one workspace is logged and reported in the
result's ``errors`` list while the remaining workspaces are still processed.
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from chat_miner.analysis.diff import analyze_code_changes, analyze_conversation
from chat_miner.analysis.statistics import aggregate_statistics
from chat_miner.config import Config
from chat_miner.exporters import export_conversations
from chat_miner.logging import get_logger
from chat_miner.models import Conversation, Workspace
from chat_miner.parsers import (
    ConversationParser,
    GenerationSynthesizer,
    PairingRegistry,
    PositionalPairing,
    parse_timestamp,
    to_iso,
)
from chat_miner.parsers.base import Clock, IdFactory, generate_id, utc_now
from chat_miner.storage.database import WorkspaceDatabase
from chat_miner.storage.workspaces import WorkspaceScanner

logger = get_logger("history")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _ok(data: Any, **extra: Any) -> dict[str, Any]:
    return {"success": True, "data": data, **extra}


def _fail(error: Exception | str) -> dict[str, Any]:
    return {"success": False, "error": str(error)}


def _sort_key(conversation: Conversation) -> datetime:
    return parse_timestamp(conversation.updated_at) or _EPOCH


class ChatHistory:
    """Reads and analyzes chat history across Cursor workspaces."""

    def __init__(
        self,
        config: Config | None = None,
        database_factory: Callable[[Workspace], WorkspaceDatabase] = WorkspaceDatabase.for_workspace,
        id_factory: IdFactory = generate_id,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            config: Application configuration (defaults when None)
            database_factory: Opens the state database of a workspace
            id_factory: Id generator for records that carry none
            clock: Current time source
        """
        self._config = config or Config()
        self._database_factory = database_factory
        self._clock = clock

        strategy = PairingRegistry.get(self._config.pairing_strategy)
        if strategy is None:
            logger.warning(
                "Unknown pairing strategy, using positional: strategy=%s",
                self._config.pairing_strategy,
            )
            strategy = PositionalPairing()

        self._parser = ConversationParser(id_factory, clock)
        self._synthesizer = GenerationSynthesizer(strategy, id_factory, clock)
        self._workspaces: list[Workspace] = []

    def _scanner(self) -> WorkspaceScanner:
        return WorkspaceScanner(self._config.workspace_storage_path, clock=self._clock)

    def _scan(self) -> list[Workspace]:
        self._workspaces = self._scanner().scan_workspaces()
        return self._workspaces

    def load_workspace_conversations(self, workspace: Workspace) -> tuple[list[Conversation], str | None]:
        """Reconstruct the conversations of one workspace.

        Canonical chat data is parsed first; when it is missing, malformed or
        yields nothing, a conversation is synthesized from the generation
        timeline.

        Args:
            workspace: Workspace to read

        Returns:
            Tuple of (conversations, error message or None)

        Raises:
            sqlite3.Error: If the workspace database cannot be opened
        """
        error: str | None = None
        conversations: list[Conversation] = []

        with self._database_factory(workspace) as db:
            chat = db.get_chat_data()
            if not chat.success:
                error = chat.error
                logger.warning("Malformed chat data: workspace=%s error=%s", workspace.hash, chat.error)
            elif chat.data is not None:
                conversations = self._parser.parse_blob(chat.data)

            if not conversations:
                generations = db.get_ai_generations()
                if not generations.success:
                    error = error or generations.error
                    logger.warning(
                        "Malformed generations: workspace=%s error=%s", workspace.hash, generations.error
                    )
                elif isinstance(generations.data, list) and generations.data:
                    prompts = db.get_ai_prompts()
                    prompt_events = prompts.data if prompts.success and isinstance(prompts.data, list) else []
                    conversations = self._synthesizer.synthesize(
                        generations.data, prompt_events, workspace.hash
                    )

        for conv in conversations:
            conv.workspace_folder = workspace.project_path

        logger.debug(
            "Loaded workspace: hash=%s conversations=%d", workspace.hash, len(conversations)
        )
        return conversations, error

    def _collect(self, workspaces: list[Workspace]) -> tuple[list[Conversation], list[dict[str, str]]]:
        conversations: list[Conversation] = []
        errors: list[dict[str, str]] = []

        for workspace in workspaces:
            try:
                loaded, error = self.load_workspace_conversations(workspace)
            except Exception as e:
                logger.exception("Error processing workspace: hash=%s", workspace.hash)
                errors.append({"workspace": workspace.hash, "error": str(e)})
                continue

            conversations.extend(loaded)
            if error:
                errors.append({"workspace": workspace.hash, "error": error})

        conversations.sort(key=_sort_key, reverse=True)
        return conversations, errors

    def _all_conversations(self) -> tuple[list[Conversation], list[dict[str, str]]]:
        return self._collect(self._scan())

    def _result(self, data: Any, errors: list[dict[str, str]], **extra: Any) -> dict[str, Any]:
        result = _ok(data, **extra)
        if errors:
            result["errors"] = errors
        return result

    def list_workspaces(self, recent_days: int | None = None) -> dict[str, Any]:
        """List workspaces, optionally only those modified in the last N days."""
        try:
            scanner = self._scanner()
            if recent_days:
                workspaces = scanner.get_workspaces_by_age(recent_days)
            else:
                workspaces = scanner.scan_workspaces()
        except Exception as e:
            logger.exception("Failed to list workspaces")
            return _fail(e)

        return _ok([w.to_dict() for w in workspaces], totalWorkspaces=len(workspaces))

    def get_all_conversations(self, limit: int | None = None) -> dict[str, Any]:
        """All conversations, most recently updated first."""
        try:
            conversations, errors = self._all_conversations()
        except Exception as e:
            logger.exception("Failed to load conversations")
            return _fail(e)

        if limit is not None:
            conversations = conversations[:limit]
        return self._result(
            [c.to_dict() for c in conversations], errors, totalWorkspaces=len(self._workspaces)
        )

    def get_workspace_conversations(self, workspace_hash: str) -> dict[str, Any]:
        """Conversations of a single workspace identified by its hash."""
        try:
            workspace = next((w for w in self._scan() if w.hash == workspace_hash), None)
            if workspace is None:
                return _fail(f"Workspace not found: {workspace_hash}")
            conversations, errors = self._collect([workspace])
        except Exception as e:
            logger.exception("Failed to load workspace: hash=%s", workspace_hash)
            return _fail(e)

        return self._result([c.to_dict() for c in conversations], errors, totalWorkspaces=1)

    def search_conversations(self, query: str, limit: int = 20) -> dict[str, Any]:
        """Case-insensitive substring search over titles and message texts."""
        try:
            conversations, errors = self._all_conversations()
        except Exception as e:
            logger.exception("Failed to search conversations: query=%s", query)
            return _fail(e)

        needle = query.lower()
        matches = [
            c
            for c in conversations
            if needle in c.title.lower() or any(needle in m.text.lower() for m in c.messages)
        ][:limit]
        return self._result(
            [c.to_dict() for c in matches], errors, totalWorkspaces=len(self._workspaces)
        )

    def analyze_conversation(self, conversation_id: str) -> dict[str, Any]:
        """Message counts and code change statistics for one conversation."""
        try:
            conversations, _ = self._all_conversations()
            conversation = next((c for c in conversations if c.id == conversation_id), None)
            if conversation is None:
                return _fail("Conversation not found")
            analysis = analyze_conversation(conversation)
        except Exception as e:
            logger.exception("Failed to analyze conversation: id=%s", conversation_id)
            return _fail(e)

        return _ok({"conversation": conversation.to_dict(), "analysis": analysis})

    def export_conversations(
        self,
        fmt: str = "json",
        conversation_id: str | None = None,
        conversation_ids: list[str] | None = None,
    ) -> dict[str, Any]:
        """Export all, one or a set of conversations as json, csv or markdown."""
        try:
            conversations, errors = self._all_conversations()
            if conversation_id:
                conversations = [c for c in conversations if c.id == conversation_id]
            if conversation_ids:
                wanted = set(conversation_ids)
                conversations = [c for c in conversations if c.id in wanted]
            exported_at = self._clock()
            content = export_conversations(conversations, fmt, exported_at)
        except Exception as e:
            logger.exception("Failed to export conversations: format=%s", fmt)
            return _fail(e)

        return self._result(
            {
                "format": fmt,
                "content": content,
                "conversationCount": len(conversations),
                "exportedAt": to_iso(exported_at),
            },
            errors,
        )

    def analyze_code_statistics(self, days: int = 30, group_by: str = "day") -> dict[str, Any]:
        """Aggregate code statistics over conversations updated in the last N days."""
        try:
            conversations, errors = self._all_conversations()
            cutoff = self._clock() - timedelta(days=days)
            recent = [c for c in conversations if (parse_timestamp(c.updated_at) or _EPOCH) >= cutoff]
            analyses = [analyze_code_changes(c.messages) for c in recent]
            report = aggregate_statistics(recent, analyses, group_by)
        except Exception as e:
            logger.exception("Failed to analyze code statistics: days=%d group_by=%s", days, group_by)
            return _fail(e)

        return self._result(
            {
                "period": f"{days} days",
                "groupBy": group_by,
                "statistics": report.to_dict(),
                "generatedAt": to_iso(self._clock()),
            },
            errors,
        )

    def diagnose_storage(self, limit: int = 30) -> dict[str, Any]:
        """Largest storage keys per workspace, to help locate chat data."""
        try:
            workspaces = self._scan()
        except Exception as e:
            logger.exception("Failed to diagnose storage")
            return _fail(e)

        summary = []
        for workspace in workspaces:
            top_keys: list = []
            try:
                with self._database_factory(workspace) as db:
                    result = db.top_keys(limit)
                if result.success:
                    top_keys = result.data
            except Exception:
                logger.exception("Error reading workspace storage: hash=%s", workspace.hash)
            summary.append(
                {
                    "workspace": workspace.hash,
                    "projectPath": workspace.project_path,
                    "topKeys": top_keys,
                }
            )
        return _ok(summary)

    def inspect_storage(self, workspace_hash: str, term: str | None = None) -> dict[str, Any]:
        """Raw key-value contents of one workspace database.

        Args:
            workspace_hash: Workspace directory hash
            term: When given, only rows whose raw value contains it

        Returns:
            Result dict; data maps keys to decoded values, or lists
            {key, value} rows when searching
        """
        try:
            workspace = next((w for w in self._scan() if w.hash == workspace_hash), None)
            if workspace is None:
                return _fail(f"Workspace not found: {workspace_hash}")
            with self._database_factory(workspace) as db:
                result = db.search_in_data(term) if term else db.get_all_storage_data()
        except Exception as e:
            logger.exception("Failed to inspect storage: hash=%s", workspace_hash)
            return _fail(e)

        if not result.success:
            return _fail(result.error or "Storage query failed")
        return _ok(result.data, workspace=workspace.hash)


def open_history(config: Config, storage_path: Path | None = None) -> ChatHistory:
    """Build a ChatHistory, overriding the configured storage path if given.

    The caller's config is left unchanged.
    """
    if storage_path is not None:
        config = replace(config, workspace_storage_path=storage_path)
    return ChatHistory(config)
