"""CLI entry point for chat-miner.

Allows running the CLI as a module:
    python -m chat_miner.cli conversations --limit 10
"""

import json
import sys
from pathlib import Path
from typing import Any

import click

from chat_miner.analysis.statistics import GROUP_BY_OPTIONS
from chat_miner.config import load_config
from chat_miner.exporters import EXPORT_FORMATS
from chat_miner.history import ChatHistory, open_history
from chat_miner.logging import setup_logging


def emit(result: dict[str, Any]) -> None:
    """Print a service result as JSON, exiting non-zero on failure."""
    click.echo(json.dumps(result, indent=2, ensure_ascii=False))
    if not result.get("success"):
        sys.exit(1)


@click.group()
@click.option(
    "--workspace-path",
    type=click.Path(path_type=Path),
    help="Custom path to Cursor workspaceStorage directory",
)
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to config.yaml")
@click.pass_context
def cli(ctx: click.Context, workspace_path: Path | None, config_path: Path | None) -> None:
    """Recover chat history from Cursor workspace storage."""
    config = load_config(config_path)
    setup_logging("cli", config.log_dir, config.log_level)
    ctx.obj = {"config": config, "history": open_history(config, workspace_path)}


def _history(ctx: click.Context) -> ChatHistory:
    return ctx.obj["history"]


@cli.command()
@click.option("--recent-days", type=int, help="Only workspaces modified in the last N days")
@click.pass_context
def workspaces(ctx: click.Context, recent_days: int | None) -> None:
    """List Cursor workspaces."""
    emit(_history(ctx).list_workspaces(recent_days))


@cli.command()
@click.option("--limit", "-n", type=int, help="Maximum number of conversations")
@click.pass_context
def conversations(ctx: click.Context, limit: int | None) -> None:
    """List conversations from all workspaces."""
    if limit is None:
        limit = ctx.obj["config"].defaults.conversation_limit
    emit(_history(ctx).get_all_conversations(limit))


@cli.command()
@click.argument("workspace_hash")
@click.pass_context
def workspace(ctx: click.Context, workspace_hash: str) -> None:
    """List conversations from one workspace."""
    emit(_history(ctx).get_workspace_conversations(workspace_hash))


@cli.command()
@click.argument("query")
@click.option("--limit", "-n", type=int, help="Maximum number of results")
@click.pass_context
def search(ctx: click.Context, query: str, limit: int | None) -> None:
    """Search conversation titles and messages."""
    if limit is None:
        limit = ctx.obj["config"].defaults.search_limit
    emit(_history(ctx).search_conversations(query, limit))


@cli.command()
@click.argument("conversation_id")
@click.pass_context
def analyze(ctx: click.Context, conversation_id: str) -> None:
    """Analyze one conversation for code changes."""
    emit(_history(ctx).analyze_conversation(conversation_id))


@cli.command()
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), help="Export format")
@click.option("--id", "conversation_ids", multiple=True, help="Conversation id to export (repeatable)")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Write content to this file")
@click.pass_context
def export(ctx: click.Context, fmt: str | None, conversation_ids: tuple[str, ...], output: Path | None) -> None:
    """Export conversations as json, csv or markdown."""
    if fmt is None:
        fmt = ctx.obj["config"].defaults.export_format
    result = _history(ctx).export_conversations(fmt, conversation_ids=list(conversation_ids) or None)

    if output is not None and result.get("success"):
        output.write_text(result["data"]["content"], encoding="utf-8")
        click.echo(f"Exported {result['data']['conversationCount']} conversations to {output}")
        return
    emit(result)


@cli.command()
@click.option("--days", type=int, help="Analyze conversations from the last N days")
@click.option("--group-by", type=click.Choice(GROUP_BY_OPTIONS), help="Grouping for period statistics")
@click.pass_context
def stats(ctx: click.Context, days: int | None, group_by: str | None) -> None:
    """Code statistics across conversations."""
    defaults = ctx.obj["config"].defaults
    emit(
        _history(ctx).analyze_code_statistics(
            days if days is not None else defaults.statistics_days,
            group_by or defaults.statistics_group_by,
        )
    )


@cli.command()
@click.option("--limit", type=int, help="Max keys to return per workspace")
@click.pass_context
def diagnose(ctx: click.Context, limit: int | None) -> None:
    """Show the largest storage keys of each workspace."""
    if limit is None:
        limit = ctx.obj["config"].defaults.diagnose_limit
    emit(_history(ctx).diagnose_storage(limit))


@cli.command()
@click.argument("workspace_hash")
@click.option("--search", "term", help="Only keys whose raw value contains this text")
@click.pass_context
def inspect(ctx: click.Context, workspace_hash: str, term: str | None) -> None:
    """Dump the raw storage of one workspace."""
    emit(_history(ctx).inspect_storage(workspace_hash, term))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
