"""Shape inspection for undocumented storage blobs.

Cursor has stored chat history under several keys and layouts over time.
A blob is resolved into one of the BlobKind tags by looking at its
top-level structure only:

- canonical: ``{"conversations": [...]}``
- chat_tabs: legacy chat panel data, ``{"tabs": [{"bubbles": [...]}]}``
- role_messages: ``[{"role": "user", "content": ...}, ...]``
- generations: ``aiService.generations``, ``[{"unixMs", "generationUUID",
  "textDescription"}, ...]``
- prompts: ``aiService.prompts``, ``[{"text", "commandType"}, ...]``
"""

from enum import Enum
from typing import Any

GENERATION_FIELDS = frozenset({"unixMs", "generationUUID", "textDescription"})
PROMPT_FIELDS = frozenset({"text", "commandType"})


class BlobKind(str, Enum):
    CANONICAL = "canonical"
    CHAT_TABS = "chat_tabs"
    ROLE_MESSAGES = "role_messages"
    GENERATIONS = "generations"
    PROMPTS = "prompts"
    UNKNOWN = "unknown"


def _dict_items(data: list) -> list[dict]:
    return [item for item in data if isinstance(item, dict)]


def classify_blob(data: Any) -> BlobKind:
    """Resolve a decoded JSON value into a BlobKind.

    Args:
        data: Decoded JSON value of unknown shape

    Returns:
        The matching BlobKind, UNKNOWN when no shape matches
    """
    if isinstance(data, dict):
        if isinstance(data.get("conversations"), list):
            return BlobKind.CANONICAL
        if isinstance(data.get("tabs"), list):
            return BlobKind.CHAT_TABS
        return BlobKind.UNKNOWN

    if not isinstance(data, list):
        return BlobKind.UNKNOWN

    items = _dict_items(data)
    if not items:
        return BlobKind.UNKNOWN

    if any("role" in item for item in items):
        return BlobKind.ROLE_MESSAGES
    if any(GENERATION_FIELDS & item.keys() for item in items):
        return BlobKind.GENERATIONS
    if any(PROMPT_FIELDS & item.keys() for item in items):
        return BlobKind.PROMPTS
    return BlobKind.UNKNOWN
