"""Tests for synthesizing conversations from generation events."""

import json
from collections.abc import Callable
from datetime import datetime

import pytest

from chat_miner.parsers import (
    GenerationSynthesizer,
    NearestTimestampPairing,
    PositionalPairing,
    synthesize_conversations,
)

WORKSPACE_HASH = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def synthesizer(
    sequential_ids: Callable[[], str], fixed_clock: Callable[[], datetime]
) -> GenerationSynthesizer:
    """Synthesizer with positional pairing and deterministic ids/clock."""
    return GenerationSynthesizer(PositionalPairing(), sequential_ids, fixed_clock)


@pytest.fixture
def generations() -> list[dict]:
    return [
        {"unixMs": 1000, "generationUUID": "g-1", "textDescription": "fix bug"},
        {"unixMs": 2000, "generationUUID": "g-2", "textDescription": "add feature"},
    ]


class TestSynthesizeEndToEnd:
    """Tests for the full generation/prompt synthesis."""

    def test_pairs_generations_with_prompts(
        self, synthesizer: GenerationSynthesizer, generations: list[dict]
    ) -> None:
        """Two generations and one prompt should give three ordered messages."""
        [conv] = synthesizer.synthesize(generations, [{"text": "Here's the fix"}], WORKSPACE_HASH)

        assert [(m.type, m.created_at) for m in conv.messages] == [
            ("user", "1970-01-01T00:00:01.000Z"),
            ("assistant", "1970-01-01T00:00:01.001Z"),
            ("user", "1970-01-01T00:00:02.000Z"),
        ]
        assert [m.text for m in conv.messages] == ["fix bug", "Here's the fix", "add feature"]
        assert conv.created_at == "1970-01-01T00:00:01.000Z"
        assert conv.updated_at == "1970-01-01T00:00:02.000Z"
        assert conv.title == "AI Generations (012345)"
        assert conv.id == f"gens-{WORKSPACE_HASH}"

    def test_message_ids(self, synthesizer: GenerationSynthesizer, generations: list[dict]) -> None:
        """User ids come from generationUUID; assistant ids are derived from it."""
        [conv] = synthesizer.synthesize(generations, [{"text": "reply"}], WORKSPACE_HASH)

        assert [m.id for m in conv.messages] == ["g-1", "assistant-g-1", "g-2"]

    def test_index_ids_without_uuid(self, synthesizer: GenerationSynthesizer) -> None:
        """Without generationUUID ids should fall back to the index."""
        gens = [{"unixMs": 5, "textDescription": "a"}]
        [conv] = synthesizer.synthesize(gens, [{"text": "b"}], WORKSPACE_HASH)

        assert [m.id for m in conv.messages] == ["gen-0", "assistant-0"]

    def test_min_max_timestamps_out_of_order(self, synthesizer: GenerationSynthesizer) -> None:
        """createdAt/updatedAt should be the min/max, not first/last."""
        gens = [
            {"unixMs": 3000, "textDescription": "c"},
            {"unixMs": 1000, "textDescription": "a"},
            {"unixMs": 2000, "textDescription": "b"},
        ]
        [conv] = synthesizer.synthesize(gens, None, WORKSPACE_HASH)

        assert conv.created_at == "1970-01-01T00:00:01.000Z"
        assert conv.updated_at == "1970-01-01T00:00:03.000Z"
        # Source order is preserved
        assert [m.text for m in conv.messages] == ["c", "a", "b"]


class TestSynthesizeEdgeCases:
    """Tests for degenerate inputs."""

    def test_no_generations(self, synthesizer: GenerationSynthesizer) -> None:
        """An empty event list should produce nothing."""
        assert synthesizer.synthesize([], [{"text": "x"}], WORKSPACE_HASH) == []

    def test_non_list_generations(self, synthesizer: GenerationSynthesizer) -> None:
        """A non-list event value should produce nothing."""
        assert synthesizer.synthesize({"unixMs": 1}, [], WORKSPACE_HASH) == []

    def test_missing_description_serializes_event(self, synthesizer: GenerationSynthesizer) -> None:
        """Without a description the event itself should become the text."""
        event = {"unixMs": 1000, "type": "apply"}
        [conv] = synthesizer.synthesize([event], [], WORKSPACE_HASH)

        assert json.loads(conv.messages[0].text) == event

    def test_missing_timestamp_uses_clock(self, synthesizer: GenerationSynthesizer) -> None:
        """Events without unixMs should be stamped with the current time."""
        [conv] = synthesizer.synthesize([{"textDescription": "x"}], [], WORKSPACE_HASH)

        assert conv.messages[0].created_at == "2026-10-19T12:00:00.000Z"
        assert conv.created_at == "2026-10-19T12:00:00.000Z"

    def test_assistant_without_timestamp_is_epoch_plus_one(self, synthesizer: GenerationSynthesizer) -> None:
        """A paired reply to an untimed event is stamped at 1 ms."""
        [conv] = synthesizer.synthesize([{"textDescription": "x"}], [{"text": "y"}], WORKSPACE_HASH)

        assert conv.messages[1].created_at == "1970-01-01T00:00:00.001Z"

    def test_prompt_without_text_is_not_paired(
        self, synthesizer: GenerationSynthesizer, generations: list[dict]
    ) -> None:
        """Prompts lacking string text should not produce assistant turns."""
        [conv] = synthesizer.synthesize(generations, [{"commandType": 4}, {"text": 7}], WORKSPACE_HASH)

        assert [m.type for m in conv.messages] == ["user", "user"]

    def test_empty_prompt_text_still_pairs(self, synthesizer: GenerationSynthesizer) -> None:
        """An empty string is still text and yields an empty assistant turn."""
        [conv] = synthesizer.synthesize([{"unixMs": 10, "textDescription": "a"}], [{"text": ""}], WORKSPACE_HASH)

        assert [m.type for m in conv.messages] == ["user", "assistant"]
        assert conv.messages[1].text == ""

    def test_more_prompts_than_generations(self, synthesizer: GenerationSynthesizer) -> None:
        """Surplus prompts should be dropped."""
        [conv] = synthesizer.synthesize(
            [{"unixMs": 10, "textDescription": "a"}],
            [{"text": "one"}, {"text": "two"}],
            WORKSPACE_HASH,
        )

        assert [m.text for m in conv.messages] == ["a", "one"]

    def test_code_blocks_extracted(self, synthesizer: GenerationSynthesizer) -> None:
        """Synthesized messages go through the normal message path."""
        [conv] = synthesizer.synthesize(
            [{"unixMs": 10, "textDescription": "a"}],
            [{"text": "```py\nx = 1\n```"}],
            WORKSPACE_HASH,
        )

        assert conv.messages[1].code_blocks[0].code == "x = 1"


class TestSynthesizeDeterminism:
    """Tests for idempotent synthesis."""

    def test_same_input_same_id(self, generations: list[dict]) -> None:
        """Repeated synthesis should give the same conversation id."""
        first = synthesize_conversations(generations, [], WORKSPACE_HASH)
        second = synthesize_conversations(generations, [], WORKSPACE_HASH)

        assert first[0].id == second[0].id == f"gens-{WORKSPACE_HASH}"
        assert [m.id for m in first[0].messages] == [m.id for m in second[0].messages]

    def test_does_not_mutate_inputs(self, synthesizer: GenerationSynthesizer, generations: list[dict]) -> None:
        """Event lists should be left untouched."""
        prompts = [{"text": "p"}]
        before = (json.dumps(generations), json.dumps(prompts))
        synthesizer.synthesize(generations, prompts, WORKSPACE_HASH)

        assert (json.dumps(generations), json.dumps(prompts)) == before


class TestSynthesizeWithNearestPairing:
    """Tests for the timestamp-nearest pairing strategy."""

    def test_pairs_by_timestamp(self, sequential_ids, fixed_clock) -> None:
        """Prompts should follow the generation closest in time."""
        synthesizer = GenerationSynthesizer(NearestTimestampPairing(), sequential_ids, fixed_clock)
        gens = [
            {"unixMs": 1000, "textDescription": "first"},
            {"unixMs": 5000, "textDescription": "second"},
        ]
        prompts = [{"text": "late reply", "unixMs": 5100}]
        [conv] = synthesizer.synthesize(gens, prompts, WORKSPACE_HASH)

        assert [m.text for m in conv.messages] == ["first", "second", "late reply"]
        assert conv.messages[2].created_at == "1970-01-01T00:00:05.001Z"
