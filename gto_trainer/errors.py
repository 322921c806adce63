"""Typed errors raised by the decision engine.

Every error is recoverable by the caller or isolated to a single hand or
lookup. Each carries the context (action, scenario key, record id) needed
to show the player a useful message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gto_trainer.solver.data_structures import GTOSolution, ScenarioKey
    from gto_trainer.core.game_state import ActionRecord


class EngineError(Exception):
    """Base class for all decision engine errors."""


class InvalidHand(EngineError, ValueError):
    """Raised when a hand cannot be set up (duplicate cards, bad seating)."""


class InvalidAction(EngineError):
    """Raised when an action is illegal for the current betting state.

    The state is never mutated; the caller must resubmit a legal action.
    """

    def __init__(self, action: ActionRecord, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(f"Invalid action {action}: {reason}")


class MatchError(EngineError):
    """Base class for scenario matching failures."""


class NoBucketAvailable(MatchError):
    """Raised when a stack depth is outside the tolerance of every bucket."""

    def __init__(self, stack_bb: float, buckets: tuple[float, ...], tolerance: float) -> None:
        self.stack_bb = stack_bb
        self.buckets = buckets
        self.tolerance = tolerance
        super().__init__(
            f"No stack bucket within {tolerance:g}bb of {stack_bb:g}bb "
            f"(buckets: {', '.join(f'{b:g}' for b in buckets)})"
        )


class SolutionNotFound(MatchError):
    """Raised when the repository holds no solution for a scenario key."""

    def __init__(self, key: ScenarioKey) -> None:
        self.key = key
        super().__init__(f"No stored solution for {key}")


class AmbiguousMatch(MatchError):
    """Raised when more than one stored solution satisfies a key.

    A well-formed dataset never produces this; it signals a data-integrity
    problem and no candidate is picked.
    """

    def __init__(self, key: ScenarioKey, candidates: tuple[GTOSolution, ...]) -> None:
        self.key = key
        self.candidates = candidates
        ids = ", ".join(c.solution_id or "?" for c in candidates)
        super().__init__(f"{len(candidates)} solutions match {key}: {ids}")


class ActionNotOffered(EngineError):
    """Raised when a solution has no action of the chosen type.

    The evaluator turns this into a zero-frequency decision rather than
    failing the evaluation.
    """

    def __init__(self, action: ActionRecord, key: ScenarioKey | None) -> None:
        self.action = action
        self.key = key
        super().__init__(f"{action.action} is not offered at {key}")


class DatasetError(EngineError):
    """Raised when solution records violate the dataset schema at load time."""

    def __init__(self, record_id: str | None, reason: str) -> None:
        self.record_id = record_id
        self.reason = reason
        where = f"record {record_id!r}" if record_id else "dataset"
        super().__init__(f"Invalid {where}: {reason}")
