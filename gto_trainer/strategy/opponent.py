"""Pluggable opponent responses injected between hero decisions.

The state machine never invents villain actions; a HandSession asks its
OpponentStrategy for one whenever the villain is to act.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import numpy as np

from gto_trainer.core.game_state import ActionRecord, GameState, apply
from gto_trainer.errors import InvalidAction, MatchError
from gto_trainer.solver.data_structures import GTOAction, GTOSolution
from gto_trainer.solver.matcher import ScenarioMatcher
from gto_trainer.utils.constants import ActionType

logger = logging.getLogger("gto_trainer.strategy.opponent")


@runtime_checkable
class OpponentStrategy(Protocol):
    """Interface for anything that picks the villain's action.

    Usage:
        action = strategy.respond(state)
        state = apply(state, action)
    """

    def respond(self, state: GameState) -> ActionRecord | None: ...


class PassiveOpponent:
    """Checks when unopposed and calls when facing a bet."""

    def respond(self, state: GameState) -> ActionRecord | None:
        if state.is_terminal or state.current_player != state.villain.position:
            return None
        action = ActionType.CALL if state.to_call > 0 else ActionType.CHECK
        return state.record(action)


class SolutionSampledOpponent:
    """Samples the villain's action from the villain's own stored solution.

    Falls back to another strategy (passive by default) when the villain's
    spot has no solution or the sampled line cannot be played in the live
    state.
    """

    def __init__(
        self,
        matcher: ScenarioMatcher,
        rng: np.random.Generator | None = None,
        fallback: OpponentStrategy | None = None,
    ) -> None:
        self._matcher = matcher
        self._rng = rng or np.random.default_rng()
        self._fallback = fallback or PassiveOpponent()

    def sample(self, solution: GTOSolution) -> GTOAction:
        """Draw one action according to the mixed strategy frequencies."""
        freqs = np.array([a.frequency for a in solution.actions], dtype=float)
        total = freqs.sum()
        if total <= 0:
            return solution.actions[0]
        index = self._rng.choice(len(solution.actions), p=freqs / total)
        return solution.actions[int(index)]

    def respond(self, state: GameState) -> ActionRecord | None:
        if state.is_terminal or state.current_player != state.villain.position:
            return None

        try:
            solution = self._matcher.match(state, perspective=state.villain.position)
        except MatchError as e:
            logger.debug("Villain spot unmatched (%s); using fallback", e)
            return self._fallback.respond(state)

        choice = self.sample(solution)
        record = state.record(choice.action, choice.size)
        try:
            apply(state, record, self._matcher.config)
        except InvalidAction as e:
            logger.warning(
                "Sampled %s is not playable for %s (%s); using fallback",
                choice.label, solution.solution_id or solution.key, e.reason,
            )
            return self._fallback.respond(state)
        return record
