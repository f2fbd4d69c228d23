"""Cross-conversation statistics."""

from collections.abc import Sequence
from datetime import date

from chat_miner.models import CodeAnalysis, Conversation, StatisticsReport

GROUP_BY_OPTIONS = ("day", "week", "month", "language", "workspace")
UNKNOWN_WORKSPACE = "Unknown"
UNKNOWN_EXTENSION = "unknown"


def file_extension(filename: str) -> str:
    """Substring after the final dot, or 'unknown'."""
    _, dot, ext = filename.rpartition(".")
    if not dot or not ext:
        return UNKNOWN_EXTENSION
    return ext


def period_key(day: str, group_by: str) -> str:
    """Map a YYYY-MM-DD day key to its ISO week or month bucket."""
    if group_by == "month":
        return day[:7]
    try:
        year, week, _ = date.fromisoformat(day).isocalendar()
    except ValueError:
        return day
    return f"{year}-W{week:02d}"


class StatisticsAggregator:
    """Accumulates statistics one conversation at a time.

    Buckets are created on first observation and only ever grow.
    """

    def __init__(self, group_by: str = "day") -> None:
        if group_by not in GROUP_BY_OPTIONS:
            raise ValueError(f"Unsupported group_by: {group_by}")
        self._report = StatisticsReport(group_by=group_by)
        if group_by in ("week", "month"):
            self._report.period_stats = {}

    def add(self, conversation: Conversation, analysis: CodeAnalysis) -> None:
        """Fold one conversation and its analysis into the totals."""
        report = self._report
        message_count = len(conversation.messages)

        report.total_conversations += 1
        report.total_messages += message_count
        report.total_code_blocks += conversation.code_block_count
        report.total_lines_added += analysis.total_lines_added
        report.total_lines_modified += analysis.total_lines_modified
        report.total_lines_deleted += analysis.total_lines_deleted

        workspace = conversation.workspace_folder or UNKNOWN_WORKSPACE
        ws = report.workspace_stats.setdefault(
            workspace,
            {"conversations": 0, "linesAdded": 0, "linesModified": 0, "linesDeleted": 0},
        )
        ws["conversations"] += 1
        ws["linesAdded"] += analysis.total_lines_added
        ws["linesModified"] += analysis.total_lines_modified
        ws["linesDeleted"] += analysis.total_lines_deleted

        for change in analysis.file_changes:
            lang = report.language_stats.setdefault(
                file_extension(change.file),
                {"files": 0, "linesAdded": 0, "linesModified": 0, "linesDeleted": 0},
            )
            lang["files"] += 1
            lang["linesAdded"] += change.additions
            lang["linesDeleted"] += change.deletions
        report.file_changes.extend(analysis.file_changes)

        day = conversation.updated_at.split("T")[0]
        buckets = [report.daily_stats]
        keys = [day]
        if report.period_stats is not None:
            buckets.append(report.period_stats)
            keys.append(period_key(day, report.group_by))

        for bucket_map, key in zip(buckets, keys):
            bucket = bucket_map.setdefault(
                key,
                {
                    "conversations": 0,
                    "messages": 0,
                    "linesAdded": 0,
                    "linesModified": 0,
                    "linesDeleted": 0,
                },
            )
            bucket["conversations"] += 1
            bucket["messages"] += message_count
            bucket["linesAdded"] += analysis.total_lines_added
            bucket["linesModified"] += analysis.total_lines_modified
            bucket["linesDeleted"] += analysis.total_lines_deleted

    def report(self) -> StatisticsReport:
        return self._report


def aggregate_statistics(
    conversations: Sequence[Conversation],
    analyses: Sequence[CodeAnalysis],
    group_by: str = "day",
) -> StatisticsReport:
    """Aggregate per-conversation analyses into a StatisticsReport.

    Args:
        conversations: Conversations, already filtered to the time window
        analyses: CodeAnalysis for each conversation, in the same order
        group_by: One of day, week, month, language, workspace

    Returns:
        The aggregated report

    Raises:
        ValueError: If the sequences differ in length or group_by is unknown
    """
    if len(conversations) != len(analyses):
        raise ValueError(
            f"Expected one analysis per conversation: conversations={len(conversations)} analyses={len(analyses)}"
        )

    aggregator = StatisticsAggregator(group_by)
    for conversation, analysis in zip(conversations, analyses):
        aggregator.add(conversation, analysis)
    return aggregator.report()
