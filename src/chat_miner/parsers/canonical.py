"""Parser for conversation blobs that are already structured.

The canonical shape is::

    {"conversations": [{"id", "title", "createdAt", "updatedAt",
                        "workspaceFolder", "messages": [...]}]}

Each message carries ``id``, ``type``, ``text``, ``createdAt``, ``bubbleId``
and ``contextFiles``. Any stored ``codeBlocks`` are discarded and re-derived
from ``text``.

Two looser shapes found in older Cursor releases are normalized through the
same message path: bare role/content message lists and the legacy chat panel
``tabs``/``bubbles`` layout.
"""

from typing import Any

from chat_miner.models import ContextFile, Conversation, Message
from chat_miner.parsers.base import Clock, IdFactory, generate_id, to_iso, utc_now
from chat_miner.parsers.blobs import BlobKind, classify_blob
from chat_miner.parsers.code_blocks import extract_code_blocks

DEFAULT_TITLE = "Untitled Conversation"
IMPORTED_TITLE = "Imported Conversation"


class ConversationParser:
    """Normalizes structured blobs into Conversation instances.

    Id generation and the clock used for missing timestamps are injected so
    that results are reproducible under test.
    """

    def __init__(self, id_factory: IdFactory = generate_id, clock: Clock = utc_now) -> None:
        self._id_factory = id_factory
        self._clock = clock

    def _now(self) -> str:
        return to_iso(self._clock())

    def _timestamp(self, value: Any) -> str:
        """Pass ISO strings through, format epoch milliseconds, default to now."""
        if isinstance(value, str) and value:
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value:
            return to_iso(value)
        return self._now()

    def parse_blob(self, data: Any) -> list[Conversation]:
        """Parse any recognized conversation-bearing blob.

        Event lists (generations, prompts) and unknown shapes yield no
        conversations here; synthesis from events is handled separately.
        """
        kind = classify_blob(data)
        if kind is BlobKind.CANONICAL:
            return self.parse_conversations(data)
        if kind is BlobKind.CHAT_TABS:
            return self.parse_chat_tabs(data)
        if kind is BlobKind.ROLE_MESSAGES:
            return self.parse_role_messages(data)
        return []

    def parse_conversations(self, data: Any) -> list[Conversation]:
        """Parse a canonical ``{"conversations": [...]}`` blob.

        Returns:
            Conversations in source order, or an empty list when the blob
            has no conversations list
        """
        if not isinstance(data, dict) or not isinstance(data.get("conversations"), list):
            return []

        conversations: list[Conversation] = []
        for conv in data["conversations"]:
            if not isinstance(conv, dict):
                continue

            messages = conv.get("messages")
            workspace_folder = conv.get("workspaceFolder")
            conversations.append(
                Conversation(
                    id=str(conv.get("id") or self._id_factory()),
                    title=str(conv.get("title") or DEFAULT_TITLE),
                    created_at=self._timestamp(conv.get("createdAt")),
                    updated_at=self._timestamp(conv.get("updatedAt")),
                    messages=self.parse_messages(messages if isinstance(messages, list) else []),
                    workspace_folder=workspace_folder if isinstance(workspace_folder, str) else None,
                )
            )
        return conversations

    def parse_messages(self, messages_data: list) -> list[Message]:
        """Normalize raw message dicts.

        Only a literal ``"user"`` type is kept as user; anything else,
        including a missing type, becomes ``"assistant"``.
        """
        messages: list[Message] = []
        for msg in messages_data:
            if not isinstance(msg, dict):
                continue

            text = msg.get("text")
            if not isinstance(text, str):
                text = ""
            bubble_id = msg.get("bubbleId")

            messages.append(
                Message(
                    id=str(msg.get("id") or self._id_factory()),
                    type="user" if msg.get("type") == "user" else "assistant",
                    text=text,
                    created_at=self._timestamp(msg.get("createdAt")),
                    bubble_id=str(bubble_id) if bubble_id else None,
                    context_files=parse_context_files(msg.get("contextFiles")),
                    code_blocks=extract_code_blocks(text),
                )
            )
        return messages

    def parse_role_messages(self, items: Any) -> list[Conversation]:
        """Parse a bare ``[{"role", "content"}]`` list into one conversation."""
        if not isinstance(items, list):
            return []

        raw_messages = []
        for idx, item in enumerate(i for i in items if isinstance(i, dict)):
            raw_messages.append(
                {
                    "id": item.get("id") or f"msg-{idx}",
                    "type": "user" if item.get("role") == "user" else "assistant",
                    "text": item.get("content") or item.get("text") or "",
                    "createdAt": self._timestamp(item.get("unixMs")),
                    "bubbleId": item.get("bubbleId"),
                    "contextFiles": item.get("contextFiles"),
                }
            )

        now = self._now()
        return [
            Conversation(
                id=f"conv-{self._id_factory()}",
                title=IMPORTED_TITLE,
                created_at=now,
                updated_at=now,
                messages=self.parse_messages(raw_messages),
            )
        ]

    def parse_chat_tabs(self, data: Any) -> list[Conversation]:
        """Parse the legacy chat panel layout, one conversation per tab.

        Tabs without bubbles are skipped. Bubbles carry no timestamps, so
        every message takes the tab's ``lastSendTime``.
        """
        if not isinstance(data, dict) or not isinstance(data.get("tabs"), list):
            return []

        conversations: list[Conversation] = []
        for tab in data["tabs"]:
            if not isinstance(tab, dict):
                continue
            bubbles = tab.get("bubbles")
            if not isinstance(bubbles, list) or not bubbles:
                continue

            ts = self._timestamp(tab.get("lastSendTime"))
            raw_messages = [
                {
                    "id": bubble.get("id"),
                    "type": bubble.get("type"),
                    "text": bubble.get("rawText") or bubble.get("text") or "",
                    "createdAt": ts,
                    "bubbleId": bubble.get("id"),
                    "contextFiles": bubble.get("contextFiles"),
                }
                for bubble in bubbles
                if isinstance(bubble, dict)
            ]
            conversations.append(
                Conversation(
                    id=str(tab.get("tabId") or self._id_factory()),
                    title=tab.get("chatTitle") or DEFAULT_TITLE,
                    created_at=ts,
                    updated_at=ts,
                    messages=self.parse_messages(raw_messages),
                )
            )
        return conversations


def parse_context_files(context_files: Any) -> list[ContextFile]:
    """Pass through attached file context, filling defaults."""
    if not isinstance(context_files, list):
        return []

    return [
        ContextFile(
            path=f.get("path") or "",
            content=f.get("content") or "",
            language=f.get("language") or "text",
        )
        for f in context_files
        if isinstance(f, dict)
    ]


def parse_conversations(
    data: Any,
    id_factory: IdFactory = generate_id,
    clock: Clock = utc_now,
) -> list[Conversation]:
    """Parse a canonical blob with a throwaway ConversationParser."""
    return ConversationParser(id_factory, clock).parse_conversations(data)
