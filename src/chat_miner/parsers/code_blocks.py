"""Fenced code block extraction from free text."""

import re

from chat_miner.models import CodeBlock

# Opener with optional language tag, then newline; body is non-greedy up to the closer
FENCE_PATTERN = re.compile(r"```([\w+#.-]+)?[ \t]*\n(.*?)```", re.DOTALL)

COMMENT_FILENAME_PATTERN = re.compile(r"/\*.*\*/")
COMMENT_MARKERS_PATTERN = re.compile(r"^/\*\s*|\s*\*/$")
KNOWN_EXTENSIONS = ("js", "ts", "py", "java", "cpp", "html", "css", "json")
BARE_FILENAME_PATTERN = re.compile(r".*\.(" + "|".join(KNOWN_EXTENSIONS) + r")")


def extract_filename(code: str) -> str | None:
    """Guess a filename from the first line of a code block.

    Recognizes a single-line block comment (``/* utils.ts */``) or a bare
    name ending in a known extension (``main.py``).

    Args:
        code: Trimmed code block body

    Returns:
        The filename, or None when the first line carries no signal
    """
    first_line = code.split("\n", 1)[0].strip()
    if not first_line:
        return None

    if COMMENT_FILENAME_PATTERN.fullmatch(first_line):
        return COMMENT_MARKERS_PATTERN.sub("", first_line) or None

    if BARE_FILENAME_PATTERN.fullmatch(first_line):
        return first_line

    return None


def extract_code_blocks(text: str) -> list[CodeBlock]:
    """Extract fenced code blocks in order of appearance.

    Unterminated fences produce no block.

    Args:
        text: Message text

    Returns:
        List of CodeBlock instances
    """
    if not text:
        return []

    blocks: list[CodeBlock] = []
    for match in FENCE_PATTERN.finditer(text):
        code = match.group(2).strip()
        blocks.append(
            CodeBlock(
                language=match.group(1) or "text",
                code=code,
                filename=extract_filename(code),
            )
        )
    return blocks
