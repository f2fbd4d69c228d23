"""Strategies for pairing generation events with prompt events.

Cursor keeps ``aiService.generations`` and ``aiService.prompts`` as two
unlinked lists. A pairing strategy decides which prompt, if any, becomes the
assistant turn following each generation. Pairing is approximate either way.
"""

from abc import ABC, abstractmethod
from typing import Any

__all__ = [
    "NearestTimestampPairing",
    "PairingRegistry",
    "PairingStrategy",
    "PositionalPairing",
]


def _event_ms(event: Any) -> int | float | None:
    if not isinstance(event, dict):
        return None
    value = event.get("unixMs")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _has_text(prompt: Any) -> bool:
    return isinstance(prompt, dict) and isinstance(prompt.get("text"), str)


class PairingStrategy(ABC):
    """Base class for generation/prompt pairing strategies.

    Subclasses set the `name` class attribute and implement `pair()`.
    """

    name: str

    @abstractmethod
    def pair(self, generations: list, prompts: list) -> list[dict | None]:
        """Choose a prompt for every generation event.

        Args:
            generations: Generation events in source order
            prompts: Prompt events in source order

        Returns:
            A list aligned with `generations` holding the paired prompt
            (a dict with string ``text``) or None
        """


class PositionalPairing(PairingStrategy):
    """Pairs the prompt at index i with the generation at index i."""

    name = "positional"

    def pair(self, generations: list, prompts: list) -> list[dict | None]:
        paired: list[dict | None] = []
        for i in range(len(generations)):
            prompt = prompts[i] if i < len(prompts) else None
            paired.append(prompt if _has_text(prompt) else None)
        return paired


class NearestTimestampPairing(PairingStrategy):
    """Pairs each timestamped prompt with the generation closest in time.

    A generation keeps at most one prompt, the closest one. Prompts without
    ``unixMs`` are never paired. When no prompt carries a timestamp this
    degrades to positional pairing.
    """

    name = "nearest"

    def pair(self, generations: list, prompts: list) -> list[dict | None]:
        candidates: list[tuple[int, int | float]] = []
        for idx, prompt in enumerate(prompts):
            ms = _event_ms(prompt)
            if _has_text(prompt) and ms is not None:
                candidates.append((idx, ms))
        if not candidates or not generations:
            return PositionalPairing().pair(generations, prompts)

        gen_times = [_event_ms(gen) or 0 for gen in generations]

        # generation index -> (prompt index, distance)
        assigned: dict[int, tuple[int, int | float]] = {}
        for prompt_idx, ms in candidates:
            distances = [abs(ms - gen_ms) for gen_ms in gen_times]
            nearest = distances.index(min(distances))
            current = assigned.get(nearest)
            if current is None or distances[nearest] < current[1]:
                assigned[nearest] = (prompt_idx, distances[nearest])

        return [
            prompts[assigned[i][0]] if i in assigned else None
            for i in range(len(generations))
        ]


class PairingRegistry:
    """Registry of pairing strategies by name."""

    _strategies: dict[str, PairingStrategy] = {}

    @classmethod
    def register(cls, strategy: PairingStrategy) -> None:
        """Register a strategy."""
        cls._strategies[strategy.name] = strategy

    @classmethod
    def get(cls, name: str) -> PairingStrategy | None:
        """Get strategy by name."""
        return cls._strategies.get(name)

    @classmethod
    def all_names(cls) -> list[str]:
        """List all registered strategy names."""
        return list(cls._strategies.keys())
