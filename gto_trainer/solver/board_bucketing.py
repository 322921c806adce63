"""Board, stack and action-history normalization for solution lookup.

The dataset stores one representative per texture class rather than one
solution per concrete board, so live boards are reduced to a
suit-agnostic signature before lookup. Stack depths snap to the solved
depths and the action log collapses into a short pattern, keeping the key
space finite.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from gto_trainer.errors import NoBucketAvailable
from gto_trainer.utils.card import Card
from gto_trainer.utils.constants import ACTION_CODES, ActionType, PotType, Street

if TYPE_CHECKING:
    from gto_trainer.core.game_state import ActionRecord

PREFLOP_SIGNATURE = "preflop"

# Suit multiplicity patterns with a conventional name
_PATTERN_NAMES: dict[tuple[int, ...], str] = {
    (3,): "monotone",
    (2, 1): "two_tone",
    (1, 1, 1): "rainbow",
}

_AGGRESSIVE = (ActionType.BET, ActionType.RAISE)

# Preflop aggressive action count -> pot type (3 or more is a 4-bet pot)
_POT_TYPES = (PotType.LIMPED, PotType.SINGLE_RAISED, PotType.THREE_BET, PotType.FOUR_BET)


def _suit_groups(cards: Iterable[Card]) -> list[tuple[int, ...]]:
    """Group rank values by suit and order the groups canonically.

    Groups are ranks sorted descending; groups are ordered by size
    (largest first) then by rank sequence (highest first). The result is
    identical for any two boards related by a suit permutation.
    """
    by_suit: dict[str, list[int]] = defaultdict(list)
    for card in cards:
        by_suit[card.suit].append(card.value)
    groups = [tuple(sorted(ranks, reverse=True)) for ranks in by_suit.values()]
    groups.sort(key=lambda g: (len(g), g), reverse=True)
    return groups


def _rank_char(value: int) -> str:
    return "23456789TJQKA"[value - 2]


def suit_pattern(cards: Sequence[Card]) -> str:
    """Name the suit multiplicity pattern of a board.

    Flops map to "monotone", "two_tone" or "rainbow". Turn and river
    boards (and anything else) use the multiplicity digits, e.g. "211".
    """
    if not cards:
        return PREFLOP_SIGNATURE
    multiplicity = tuple(len(g) for g in _suit_groups(cards))
    return _PATTERN_NAMES.get(multiplicity, "".join(str(n) for n in multiplicity))


def board_signature(cards: Sequence[Card]) -> str:
    """Suit-agnostic canonical signature of a board.

    >>> board_signature(parse_cards("Qh Jh 7h"))
    'monotone:QJ7'
    >>> board_signature(parse_cards("Ah Kd 7s"))
    'rainbow:A-K-7'
    >>> board_signature(parse_cards("Ah 7h Ks"))
    'two_tone:A7-K'
    """
    if not cards:
        return PREFLOP_SIGNATURE
    groups = _suit_groups(cards)
    ranks = "-".join("".join(_rank_char(v) for v in g) for g in groups)
    return f"{suit_pattern(cards)}:{ranks}"


def bucket_label(depth: float) -> str:
    return f"{depth:g}bb"


def nearest_stack_bucket(
    stack_bb: float,
    buckets: Sequence[float],
    tolerance: float = float("inf"),
) -> str:
    """Snap a stack depth to the nearest solved bucket.

    Ties go to the shallower bucket.

    >>> nearest_stack_bucket(97.5, (30, 50, 100))
    '100bb'
    >>> nearest_stack_bucket(40.0, (30, 50, 100))
    '30bb'

    Raises:
        NoBucketAvailable: If the nearest bucket is farther than tolerance.
    """
    ordered = sorted(buckets)
    if not ordered:
        raise NoBucketAvailable(stack_bb, (), tolerance)
    best = ordered[0]
    best_dist = abs(stack_bb - best)
    for depth in ordered[1:]:
        d = abs(stack_bb - depth)
        # Strict comparison keeps the shallower bucket on ties
        if d < best_dist:
            best = depth
            best_dist = d
    if best_dist > tolerance:
        raise NoBucketAvailable(stack_bb, tuple(ordered), tolerance)
    return bucket_label(best)


def pot_type(
    action_log: Sequence[ActionRecord],
    default: PotType = PotType.SINGLE_RAISED,
) -> PotType:
    """Classify the pot by preflop aggression.

    Hands that start postflop carry no preflop actions in their log; the
    declared default pot type is used for them.
    """
    preflop = [a for a in action_log if a.street == Street.PREFLOP]
    if not preflop:
        return default
    raises = sum(1 for a in preflop if a.action in _AGGRESSIVE)
    return _POT_TYPES[min(raises, len(_POT_TYPES) - 1)]


def action_pattern(
    action_log: Sequence[ActionRecord],
    street: Street,
    default_pot_type: PotType = PotType.SINGLE_RAISED,
) -> str:
    """Reduce an action log to "<pot type>:<current street events>".

    Earlier streets are summarized by the pot type only.

    >>> action_pattern([], Street.FLOP)
    'srp:-'
    """
    events = "".join(
        ACTION_CODES[a.action] for a in action_log if a.street == street
    )
    return f"{pot_type(action_log, default_pot_type).value}:{events or '-'}"
