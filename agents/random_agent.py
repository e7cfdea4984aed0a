"""Seeded agent that picks uniformly among the events the current state accepts."""

from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from automaton.interpreter import DispatchResult, RuleInterpreter

logger = logging.getLogger(__name__)


class RandomEventAgent:
    """Exploratory driver for a :class:`RuleInterpreter`.

    The same seed always yields the same event stream for the same rule
    definition, which makes random play usable in regression tests.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._seed_sequence = np.random.SeedSequence(seed)
        self._rng = np.random.Generator(np.random.PCG64(self._seed_sequence))

    def act(self, interpreter: RuleInterpreter) -> Optional[str]:
        """Return the next event type to send, or ``None`` when nothing is legal."""

        choices = interpreter.available_events()
        if not choices:
            return None
        return choices[int(self._rng.integers(len(choices)))]


def play_random_game(
    interpreter: RuleInterpreter,
    agent: RandomEventAgent,
    *,
    max_steps: int = 100,
) -> List[DispatchResult]:
    """Start ``interpreter`` and feed it up to ``max_steps`` agent events."""

    interpreter.start()
    results: List[DispatchResult] = []
    for _ in range(max_steps):
        event_type = agent.act(interpreter)
        if event_type is None:
            break
        result = interpreter.send(event_type)
        results.append(result)
        logger.debug("step=%d event=%s outcome=%s", len(results), event_type, result.outcome.value)
    return results


__all__ = ["RandomEventAgent", "play_random_game"]
