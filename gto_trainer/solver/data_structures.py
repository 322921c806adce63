"""Core data structures for stored GTO solutions.

GTOAction: A single solver action with its size, frequency, and EV.
ScenarioKey: Hashable, normalized identifier of a decision point.
GTOSolution: Immutable mixed strategy stored for one scenario key.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from gto_trainer.utils.constants import SIZED_ACTIONS, ActionType, Position, Street


@dataclass(frozen=True)
class GTOAction:
    """A single action in a mixed strategy with its frequency and EV.

    Attributes:
        action: Action type (fold, check, call, bet, raise).
        frequency: How often the solver takes this action [0.0, 1.0].
        ev: Expected value of this action in big blinds.
        size: Bet/raise size as a fraction of the pot (None for unsized actions).
    """

    action: ActionType
    frequency: float
    ev: float = 0.0
    size: float | None = None

    @property
    def is_sized(self) -> bool:
        return self.action in SIZED_ACTIONS

    @property
    def label(self) -> str:
        """Short label like 'check' or 'bet 33%'."""
        if self.size is None:
            return self.action.value
        return f"{self.action.value} {self.size:.0%}"

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class ScenarioKey:
    """Hashable identifier for a decision point in the solution dataset.

    Used as dictionary key for stored solution lookups.
    """

    street: Street
    board_texture: str  # e.g. "rainbow:A-K-7", see board_bucketing.board_signature
    hero_position: Position
    villain_position: Position
    stack_bucket: str  # e.g. "100bb"
    action_pattern: str  # e.g. "srp:x", see board_bucketing.action_pattern

    @property
    def coarse(self) -> tuple[str, ...]:
        """Key with the board reduced to its suit pattern only."""
        suit_pattern = self.board_texture.split(":", 1)[0]
        return (
            self.street.value,
            suit_pattern,
            self.hero_position.value,
            self.villain_position.value,
            self.stack_bucket,
            self.action_pattern,
        )

    def __str__(self) -> str:
        return (
            f"{self.street.value} {self.board_texture} "
            f"{self.hero_position.value}v{self.villain_position.value} "
            f"{self.stack_bucket} {self.action_pattern}"
        )


@dataclass(frozen=True)
class GTOSolution:
    """Precomputed mixed strategy for one scenario.

    The frequencies sum to 1.0 (within floating-point tolerance) across
    all actions offered at the decision point. Solutions are write-once:
    the engine reads them but never modifies them.
    """

    key: ScenarioKey
    actions: tuple[GTOAction, ...]
    solution_id: str = ""
    description: str = ""
    hand_class: str | None = None
    range_metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", tuple(self.actions))
        object.__setattr__(
            self, "range_metadata", MappingProxyType(dict(self.range_metadata)),
        )

    @property
    def frequency_total(self) -> float:
        return math.fsum(a.frequency for a in self.actions)

    @property
    def best_action(self) -> GTOAction | None:
        """Highest-EV action; ties go to the more frequently played line."""
        if not self.actions:
            return None
        return max(self.actions, key=lambda a: (a.ev, a.frequency))

    def actions_of_type(self, action: ActionType) -> tuple[GTOAction, ...]:
        return tuple(a for a in self.actions if a.action == action)
