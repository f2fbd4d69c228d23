"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from chat_miner.cli.__main__ import cli
from chat_miner.storage.database import CHAT_DATA_KEY, GENERATIONS_KEY

WORKSPACE_HASH = "a" * 32

BLOB = {
    "conversations": [
        {
            "id": "c1",
            "title": "Add caching",
            "createdAt": "2026-10-18T09:00:00.000Z",
            "updatedAt": "2026-10-18T10:00:00.000Z",
            "messages": [
                {"id": "m1", "type": "user", "text": "cache the lookups", "createdAt": "2026-10-18T09:00:00.000Z"},
                {
                    "id": "m2",
                    "type": "assistant",
                    "text": "```py\ncache = {}\n```",
                    "createdAt": "2026-10-18T09:00:01.000Z",
                },
            ],
        },
        {
            "id": "c2",
            "title": "Docs pass",
            "createdAt": "2026-10-17T09:00:00.000Z",
            "updatedAt": "2026-10-17T10:00:00.000Z",
            "messages": [],
        },
    ]
}


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Config keeping logs inside tmp_path."""
    path = tmp_path / "config.yaml"
    path.write_text(f"log_dir: {tmp_path}/logs\nlog_level: WARNING\ndefaults:\n  conversation_limit: 1\n")
    return path


@pytest.fixture
def invoke(storage_root: Path, make_workspace, config_file: Path):
    """Run the CLI against a storage root holding one workspace."""
    make_workspace(WORKSPACE_HASH, {CHAT_DATA_KEY: BLOB}, folder="file:///home/dev/app")
    runner = CliRunner()

    def _invoke(*args: str):
        return runner.invoke(
            cli,
            ["--config", str(config_file), "--workspace-path", str(storage_root), *args],
        )

    return _invoke


class TestCli:
    """Tests for CLI commands."""

    def test_workspaces(self, invoke) -> None:
        result = invoke("workspaces")

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["totalWorkspaces"] == 1
        assert payload["data"][0]["projectPath"] == "/home/dev/app"

    def test_conversations_uses_configured_limit(self, invoke) -> None:
        result = invoke("conversations")

        assert result.exit_code == 0
        assert [c["id"] for c in json.loads(result.stdout)["data"]] == ["c1"]

    def test_conversations_limit_option(self, invoke) -> None:
        result = invoke("conversations", "--limit", "5")

        assert [c["id"] for c in json.loads(result.stdout)["data"]] == ["c1", "c2"]

    def test_workspace(self, invoke) -> None:
        result = invoke("workspace", WORKSPACE_HASH)

        assert result.exit_code == 0
        assert len(json.loads(result.stdout)["data"]) == 2

    def test_workspace_not_found_exits_nonzero(self, invoke) -> None:
        result = invoke("workspace", "f" * 32)

        assert result.exit_code == 1
        assert json.loads(result.stdout)["success"] is False

    def test_search(self, invoke) -> None:
        result = invoke("search", "CACHE")

        assert [c["id"] for c in json.loads(result.stdout)["data"]] == ["c1"]

    def test_analyze(self, invoke) -> None:
        result = invoke("analyze", "c1")

        analysis = json.loads(result.stdout)["data"]["analysis"]
        assert analysis["totalLinesAdded"] == 1
        assert analysis["fileChanges"][0]["type"] == "create"

    def test_export_to_file(self, invoke, tmp_path: Path) -> None:
        output = tmp_path / "out.csv"

        result = invoke("export", "--format", "csv", "--id", "c2", "-o", str(output))

        assert result.exit_code == 0
        assert "Exported 1 conversations" in result.stdout
        assert output.read_text().split("\n")[1].startswith('c2,"Docs pass"')

    def test_export_stdout(self, invoke) -> None:
        result = invoke("export")

        payload = json.loads(result.stdout)
        assert payload["data"]["format"] == "json"
        assert payload["data"]["conversationCount"] == 2

    def test_export_rejects_unknown_format(self, invoke) -> None:
        result = invoke("export", "--format", "xml")

        assert result.exit_code == 2

    def test_stats(self, invoke) -> None:
        result = invoke("stats", "--days", "100000", "--group-by", "week")

        payload = json.loads(result.stdout)
        assert payload["data"]["groupBy"] == "week"
        assert payload["data"]["statistics"]["totalConversations"] == 2

    def test_diagnose(self, invoke) -> None:
        result = invoke("diagnose", "--limit", "1")

        [entry] = json.loads(result.stdout)["data"]
        assert entry["workspace"] == WORKSPACE_HASH
        assert entry["topKeys"][0]["key"] == CHAT_DATA_KEY

    def test_generation_only_workspace(self, storage_root: Path, make_workspace, config_file: Path) -> None:
        hash_ = "b" * 32
        make_workspace(hash_, {GENERATIONS_KEY: [{"unixMs": 5000, "generationUUID": "g1", "textDescription": "go"}]})

        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "--workspace-path", str(storage_root), "workspace", hash_]
        )

        [conv] = json.loads(result.stdout)["data"]
        assert conv["id"] == f"gens-{hash_}"
        assert conv["messages"][0]["createdAt"] == "1970-01-01T00:00:05.000Z"

    def test_inspect(self, invoke) -> None:
        result = invoke("inspect", WORKSPACE_HASH)

        assert result.exit_code == 0
        assert json.loads(result.stdout)["data"][CHAT_DATA_KEY]["conversations"][0]["id"] == "c1"

    def test_inspect_search(self, invoke) -> None:
        result = invoke("inspect", WORKSPACE_HASH, "--search", "Docs pass")

        assert [row["key"] for row in json.loads(result.stdout)["data"]] == [CHAT_DATA_KEY]
