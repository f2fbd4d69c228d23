"""Export conversation lists as JSON, CSV or Markdown."""

import json
from collections.abc import Callable, Sequence
from datetime import datetime

from chat_miner.models import Conversation
from chat_miner.parsers.base import to_iso, utc_now

EXPORT_FORMATS = ("json", "csv", "markdown")
CSV_HEADERS = ["ID", "Title", "Created", "Updated", "Messages", "Workspace"]


def to_json(conversations: Sequence[Conversation]) -> str:
    return json.dumps([c.to_dict() for c in conversations], indent=2, ensure_ascii=False)


def to_csv(conversations: Sequence[Conversation]) -> str:
    """One row per conversation; titles are always quoted with quotes doubled."""
    rows = [CSV_HEADERS]
    for conv in conversations:
        title = conv.title.replace('"', '""')
        rows.append(
            [
                conv.id,
                f'"{title}"',
                conv.created_at,
                conv.updated_at,
                str(len(conv.messages)),
                conv.workspace_folder or "",
            ]
        )
    return "\n".join(",".join(row) for row in rows)


def to_markdown(conversations: Sequence[Conversation], exported_at: datetime | None = None) -> str:
    """Render one section per conversation and one subsection per message.

    Each message's code blocks are repeated after its text as fences tagged
    with their language.
    """
    exported = to_iso(exported_at or utc_now())
    parts = [
        "# Cursor Chat History Export\n\n",
        f"Exported: {exported}\n",
        f"Total Conversations: {len(conversations)}\n\n",
    ]

    for conv in conversations:
        parts.append(f"## {conv.title}\n\n")
        parts.append(f"- **ID**: {conv.id}\n")
        parts.append(f"- **Created**: {conv.created_at}\n")
        parts.append(f"- **Updated**: {conv.updated_at}\n")
        parts.append(f"- **Workspace**: {conv.workspace_folder or 'Unknown'}\n")
        parts.append(f"- **Messages**: {len(conv.messages)}\n\n")

        for idx, msg in enumerate(conv.messages, start=1):
            parts.append(f"### Message {idx} ({msg.type})\n\n")
            parts.append(f"{msg.text}\n\n")
            for block in msg.code_blocks:
                parts.append(f"```{block.language}\n{block.code}\n```\n\n")

        parts.append("---\n\n")

    return "".join(parts)


EXPORTERS: dict[str, Callable[[Sequence[Conversation]], str]] = {
    "json": to_json,
    "csv": to_csv,
    "markdown": to_markdown,
}


def export_conversations(
    conversations: Sequence[Conversation],
    fmt: str = "json",
    exported_at: datetime | None = None,
) -> str:
    """Serialize conversations in the requested format.

    ``exported_at`` stamps the Markdown header; other formats carry no time.

    Raises:
        ValueError: If the format is not supported
    """
    exporter = EXPORTERS.get(fmt)
    if exporter is None:
        raise ValueError(f"Unsupported format: {fmt}")
    if fmt == "markdown":
        return to_markdown(conversations, exported_at)
    return exporter(conversations)
