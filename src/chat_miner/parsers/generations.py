"""Synthesize a conversation from Cursor's generation timeline.

When a workspace has no canonical chat data, ``aiService.generations`` still
records what the assistant was asked to do::

    [{"unixMs": 1700000000000, "generationUUID": "...",
      "type": "composer", "textDescription": "fix the login bug"}, ...]

and ``aiService.prompts`` records prompt texts (``[{"text": "...",
"commandType": 4}, ...]``). The two lists are not linked. Each generation
becomes a user turn; a prompt chosen by the pairing strategy becomes the
assistant turn that follows it, stamped one millisecond after the generation
so that each pair stays in order.
"""

import json
from typing import Any

from chat_miner.logging import get_logger
from chat_miner.models import Conversation
from chat_miner.parsers.base import Clock, IdFactory, generate_id, to_iso, utc_now
from chat_miner.parsers.canonical import ConversationParser
from chat_miner.parsers.pairing import PairingStrategy, PositionalPairing

logger = get_logger("generations")

# Offset of the paired assistant turn after its generation event (milliseconds)
ASSISTANT_OFFSET_MS = 1


def conversation_id_for(workspace_hash: str) -> str:
    """Stable conversation id for a workspace's synthesized conversation."""
    return f"gens-{workspace_hash}"


def title_for(workspace_hash: str) -> str:
    return f"AI Generations ({workspace_hash[:6]})"


class GenerationSynthesizer:
    """Builds one synthetic conversation per workspace from event lists."""

    def __init__(
        self,
        strategy: PairingStrategy | None = None,
        id_factory: IdFactory = generate_id,
        clock: Clock = utc_now,
    ) -> None:
        self._strategy = strategy or PositionalPairing()
        self._clock = clock
        self._parser = ConversationParser(id_factory, clock)

    @property
    def strategy(self) -> PairingStrategy:
        return self._strategy

    def _now_ms(self) -> int:
        return int(self._clock().timestamp() * 1000)

    def synthesize(
        self,
        generations: list,
        prompts: list | None,
        workspace_hash: str,
    ) -> list[Conversation]:
        """Synthesize a conversation from generation and prompt events.

        Args:
            generations: Generation events; nothing is produced when empty
            prompts: Prompt events, or None when the workspace has none
            workspace_hash: Workspace directory hash seeding id and title

        Returns:
            A single-element list with the synthesized conversation, or an
            empty list when there are no generation events
        """
        if not isinstance(generations, list) or not generations:
            return []
        if not isinstance(prompts, list):
            prompts = []

        now_ms = self._now_ms()
        paired = self._strategy.pair(generations, prompts)

        messages: list[dict[str, Any]] = []
        timestamps: list[int | float] = []
        for i, gen in enumerate(generations):
            event = gen if isinstance(gen, dict) else {}
            unix_ms = event.get("unixMs")
            if isinstance(unix_ms, bool) or not isinstance(unix_ms, (int, float)):
                unix_ms = None
            timestamps.append(unix_ms or now_ms)

            gen_uuid = event.get("generationUUID")
            messages.append(
                {
                    "id": gen_uuid or f"gen-{i}",
                    "type": "user",
                    "text": event.get("textDescription") or json.dumps(gen, separators=(",", ":")),
                    "createdAt": to_iso(unix_ms or now_ms),
                }
            )

            prompt = paired[i] if i < len(paired) else None
            if prompt is not None:
                messages.append(
                    {
                        "id": f"assistant-{gen_uuid or i}",
                        "type": "assistant",
                        "text": prompt["text"],
                        "createdAt": to_iso((unix_ms or 0) + ASSISTANT_OFFSET_MS),
                    }
                )

        logger.debug(
            "Synthesized conversation: workspace=%s generations=%d prompts=%d messages=%d strategy=%s",
            workspace_hash,
            len(generations),
            len(prompts),
            len(messages),
            self._strategy.name,
        )

        synthetic = {
            "conversations": [
                {
                    "id": conversation_id_for(workspace_hash),
                    "title": title_for(workspace_hash),
                    "createdAt": to_iso(min(timestamps)),
                    "updatedAt": to_iso(max(timestamps)),
                    "messages": messages,
                }
            ]
        }
        return self._parser.parse_conversations(synthetic)


def synthesize_conversations(
    generations: list,
    prompts: list | None,
    workspace_hash: str,
    strategy: PairingStrategy | None = None,
    id_factory: IdFactory = generate_id,
    clock: Clock = utc_now,
) -> list[Conversation]:
    """Synthesize with a throwaway GenerationSynthesizer."""
    return GenerationSynthesizer(strategy, id_factory, clock).synthesize(
        generations, prompts, workspace_hash
    )
