"""Turn-over-turn code change analysis.

Pairs each user message with the assistant message immediately after it and
compares their code blocks. Blocks are correlated by shared language or
filename, not by content, so the numbers are estimates. Nothing in the stored
chat distinguishes removed lines, so deletions are never counted.
"""

from collections.abc import Sequence
from typing import Any

from chat_miner.models import CodeAnalysis, CodeBlock, Conversation, FileChange, Message


def count_lines(code: str) -> int:
    """Number of newline-separated segments; an empty string is one line."""
    return len(code.split("\n"))


def display_filename(block: CodeBlock) -> str:
    return block.filename or f"unnamed.{block.language}"


def find_counterpart(block: CodeBlock, candidates: Sequence[CodeBlock]) -> CodeBlock | None:
    """First candidate sharing the block's language or filename.

    Two unnamed blocks share a filename (None), so any unnamed user block is a
    counterpart of an unnamed assistant block.
    """
    for candidate in candidates:
        if candidate.language == block.language or candidate.filename == block.filename:
            return candidate
    return None


def analyze_code_changes(messages: Sequence[Message]) -> CodeAnalysis:
    """Compute code change statistics for a conversation's messages.

    Only adjacent (user, assistant) pairs are considered. Each assistant
    code block yields one FileChange: ``modify`` when the user turn had a
    counterpart block, ``create`` otherwise.

    Args:
        messages: Messages in conversation order

    Returns:
        CodeAnalysis with cumulative totals; total_lines_deleted stays 0
    """
    analysis = CodeAnalysis()

    for user_msg, assistant_msg in zip(messages, messages[1:]):
        if user_msg.type != "user" or assistant_msg.type != "assistant":
            continue

        for block in assistant_msg.code_blocks:
            lines = count_lines(block.code)
            filename = display_filename(block)
            user_block = find_counterpart(block, user_msg.code_blocks)

            if user_block is not None:
                diff = lines - count_lines(user_block.code)
                if diff > 0:
                    analysis.total_lines_added += diff
                else:
                    analysis.total_lines_modified += abs(diff)

                analysis.file_changes.append(
                    FileChange(
                        file=filename,
                        type="modify",
                        additions=max(0, diff),
                        deletions=max(0, -diff),
                    )
                )
            else:
                analysis.total_lines_added += lines
                analysis.file_changes.append(
                    FileChange(
                        file=filename,
                        type="create",
                        additions=lines,
                        deletions=0,
                        content=block.code,
                    )
                )

    return analysis


def analyze_conversation(conversation: Conversation) -> dict[str, Any]:
    """Message counts plus code change statistics for one conversation."""
    messages = conversation.messages
    analysis = analyze_code_changes(messages)
    return {
        "messageCount": len(messages),
        "userMessages": sum(1 for m in messages if m.type == "user"),
        "assistantMessages": sum(1 for m in messages if m.type == "assistant"),
        "codeBlocks": conversation.code_block_count,
        **analysis.to_dict(),
    }
