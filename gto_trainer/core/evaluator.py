"""Decision evaluation: how good was one chosen action?

Compares a committed action with the stored solution for the decision
point and produces an immutable Decision carrying the chosen line's
frequency and EV next to the best line's.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from gto_trainer.config import DEFAULT_CONFIG, EngineConfig
from gto_trainer.core.game_state import ActionRecord
from gto_trainer.errors import ActionNotOffered
from gto_trainer.solver.data_structures import GTOAction, GTOSolution, ScenarioKey
from gto_trainer.utils.constants import Street

logger = logging.getLogger("gto_trainer.evaluator")

# Absorbs float noise when comparing sizes at the tolerance boundary
_SIZE_EPSILON = 1e-9


class Verdict(StrEnum):
    GOOD = "good"
    MARGINAL = "marginal"
    BLUNDER = "blunder"


def classify(
    chosen_frequency: float,
    is_blunder: bool,
    marginal_frequency: float = DEFAULT_CONFIG.marginal_frequency,
) -> Verdict:
    """Grade one decision: a rarely played non-blunder is only marginal."""
    if is_blunder:
        return Verdict.BLUNDER
    if chosen_frequency > marginal_frequency:
        return Verdict.GOOD
    return Verdict.MARGINAL


@dataclass(frozen=True)
class Decision:
    """A chosen action scored against the solution it was evaluated with.

    Attributes:
        street: Street of the decision.
        chosen_action: The action the player took.
        chosen_frequency: How often the solution plays that line [0, 1].
        chosen_ev: EV of that line in big blinds.
        best_action: Highest-EV solution action.
        best_frequency: Frequency of the best action.
        best_ev: EV of the best action.
        is_blunder: Whether the EV gap exceeds the blunder threshold.
        verdict: Good, marginal or blunder grade of the decision.
        offered: False when the solution never takes the chosen action type.
        scenario_key: Key of the solution used.
    """

    street: Street
    chosen_action: ActionRecord
    chosen_frequency: float
    chosen_ev: float
    best_action: GTOAction
    best_frequency: float
    best_ev: float
    is_blunder: bool
    verdict: Verdict
    offered: bool = True
    scenario_key: ScenarioKey | None = None

    @property
    def ev_loss(self) -> float:
        """Non-negative EV gap between the best and chosen actions."""
        return max(0.0, self.best_ev - self.chosen_ev)

    @property
    def is_best(self) -> bool:
        return self.ev_loss == 0.0 and self.offered


def best_action(solution: GTOSolution) -> GTOAction:
    """Highest-EV action; among equal EVs the more frequent one wins."""
    best = solution.best_action
    if best is None:
        raise ValueError(f"Solution {solution.solution_id or solution.key} offers no actions")
    return best


def find_action(
    solution: GTOSolution,
    action: ActionRecord,
    size_tolerance: float = DEFAULT_CONFIG.size_tolerance,
) -> tuple[GTOAction, bool]:
    """Locate the solution action corresponding to a chosen action.

    For bet/raise the nearest stored sizing is returned together with
    whether it lies within ``size_tolerance`` (pot fraction) of the chosen
    size. Unsized actions always match exactly.

    Raises:
        ActionNotOffered: If the solution has no action of that type at all.
    """
    candidates = solution.actions_of_type(action.action)
    if not candidates:
        raise ActionNotOffered(action, solution.key)

    if action.size is None or not candidates[0].is_sized:
        return candidates[0], True

    nearest = min(
        candidates,
        key=lambda a: (abs(a.size - action.size), -a.frequency),
    )
    within = abs(nearest.size - action.size) <= size_tolerance + _SIZE_EPSILON
    return nearest, within


class DecisionEvaluator:
    """Scores chosen actions against stored solutions.

    Stateless apart from its policy constants; never mutates the game
    state or the repository.
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG) -> None:
        self._config = config

    @property
    def config(self) -> EngineConfig:
        return self._config

    def evaluate(self, solution: GTOSolution, action: ActionRecord) -> Decision:
        """Compare a chosen action with the solution's distribution."""
        best = best_action(solution)

        try:
            matched, within = find_action(solution, action, self._config.size_tolerance)
        except ActionNotOffered:
            # Explicit fallback: the line is never played, no EV analogue exists
            logger.debug(
                "%s not offered at %s; using frequency 0, ev %.2f",
                action, solution.key, self._config.not_offered_ev,
            )
            return self._decision(
                solution, action, best,
                frequency=0.0,
                ev=self._config.not_offered_ev,
                offered=False,
            )

        if within:
            frequency = matched.frequency
        else:
            # Off-tree sizing: never played at this size, EV from nearest sizing
            logger.debug(
                "%s sizing off-tree at %s; nearest is %s",
                action, solution.key, matched.label,
            )
            frequency = 0.0
        return self._decision(solution, action, best, frequency=frequency, ev=matched.ev)

    def _decision(
        self,
        solution: GTOSolution,
        action: ActionRecord,
        best: GTOAction,
        frequency: float,
        ev: float,
        offered: bool = True,
    ) -> Decision:
        is_blunder = (best.ev - ev) > self._config.blunder_threshold
        decision = Decision(
            street=action.street,
            chosen_action=action,
            chosen_frequency=frequency,
            chosen_ev=ev,
            best_action=best,
            best_frequency=best.frequency,
            best_ev=best.ev,
            is_blunder=is_blunder,
            verdict=classify(frequency, is_blunder, self._config.marginal_frequency),
            offered=offered,
            scenario_key=solution.key,
        )
        logger.debug(
            "%s: chose %s (freq=%.0f%%, ev=%.2f), best %s (ev=%.2f)%s",
            action.street.value,
            action.action.value,
            frequency * 100,
            ev,
            best.label,
            best.ev,
            " BLUNDER" if decision.is_blunder else "",
        )
        return decision
