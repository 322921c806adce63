"""Hand state and street-transition rules for a heads-up training hand.

GameState is immutable: ``apply`` validates an action and returns the
successor state, so a rejected action never leaves a partially updated
hand behind. It is the only legal transition.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from gto_trainer.config import DEFAULT_CONFIG, EngineConfig
from gto_trainer.errors import InvalidAction, InvalidHand
from gto_trainer.utils.card import Board, Card, Deck, parse_cards
from gto_trainer.utils.constants import (
    BOARD_SIZES,
    NEXT_STREET,
    SIZED_ACTIONS,
    ActionType,
    HandStatus,
    Position,
    PotType,
    Street,
)

_FULL_BOARD = BOARD_SIZES[Street.RIVER]

# Legal action types by whether the player to act faces a bet
_LEGAL_UNOPENED = (ActionType.CHECK, ActionType.BET)
_LEGAL_FACING_BET = (ActionType.FOLD, ActionType.CALL, ActionType.RAISE)


@dataclass(frozen=True)
class ActionRecord:
    """A single action by one player.

    Attributes:
        street: Street the action was taken on.
        action: Action type.
        position: Seat of the acting player.
        size: Pot fraction for bet/raise, None otherwise.
        amount: Chips (bb) committed, filled in when the action is applied.
    """

    street: Street
    action: ActionType
    position: Position
    size: float | None = None
    amount: float = 0.0

    def __str__(self) -> str:
        if self.size is None:
            return f"{self.position.value} {self.action.value}"
        return f"{self.position.value} {self.action.value} {self.size:.0%}"


@dataclass(frozen=True)
class PlayerState:
    """State of a single player in the hand."""

    position: Position
    stack: float
    is_hero: bool = False
    hole_cards: tuple[Card, ...] = ()


@dataclass(frozen=True)
class GameState:
    """Complete state of a heads-up training hand.

    ``runout`` holds the undealt board cards in the order they will be
    revealed. ``first_to_act`` is the seat that opens each new street.
    """

    street: Street
    pot: float
    players: tuple[PlayerState, ...]
    current_player: Position
    first_to_act: Position
    board: Board = field(default_factory=Board)
    action_log: tuple[ActionRecord, ...] = ()
    to_call: float = 0.0
    runout: tuple[Card, ...] = ()
    pot_type: PotType = PotType.SINGLE_RAISED
    status: HandStatus = HandStatus.ACTIVE

    def player(self, position: Position) -> PlayerState:
        for p in self.players:
            if p.position == position:
                return p
        raise KeyError(position)

    @property
    def hero(self) -> PlayerState:
        return next(p for p in self.players if p.is_hero)

    @property
    def villain(self) -> PlayerState:
        return next(p for p in self.players if not p.is_hero)

    @property
    def effective_stack(self) -> float:
        """Smaller of the two stacks, in big blinds."""
        return min(p.stack for p in self.players)

    @property
    def is_terminal(self) -> bool:
        return self.status != HandStatus.ACTIVE

    @property
    def hero_to_act(self) -> bool:
        return not self.is_terminal and self.current_player == self.hero.position

    @property
    def street_actions(self) -> tuple[ActionRecord, ...]:
        """Actions taken on the current street."""
        return tuple(a for a in self.action_log if a.street == self.street)

    def legal_actions(self) -> tuple[ActionType, ...]:
        if self.is_terminal:
            return ()
        return _LEGAL_FACING_BET if self.to_call > 0 else _LEGAL_UNOPENED

    def record(self, action: ActionType, size: float | None = None) -> ActionRecord:
        """Build an action record for the player to act on this street."""
        return ActionRecord(
            street=self.street, action=action, position=self.current_player, size=size,
        )


def new_hand(
    hero_position: Position,
    villain_position: Position,
    hero_cards: str | Iterable[str | Card] = (),
    *,
    street: Street = Street.PREFLOP,
    board: str | Iterable[str | Card] = (),
    pot: float = 1.5,
    hero_stack: float = 100.0,
    villain_stack: float = 100.0,
    first_to_act: Position | None = None,
    current_player: Position | None = None,
    to_call: float = 0.0,
    pot_type: PotType = PotType.SINGLE_RAISED,
    runout: str | Iterable[str | Card] | None = None,
    rng: random.Random | None = None,
) -> GameState:
    """Create the starting state of a hand.

    The villain opens each street unless ``first_to_act`` says otherwise.
    Undealt board cards come from ``runout`` when given, else from a
    shuffled deck with every known card removed.

    Raises:
        InvalidHand: On duplicate cards, a board that does not fit the
            street, identical seats or negative chip amounts.
    """
    if hero_position == villain_position:
        raise InvalidHand(f"Hero and villain cannot share seat {hero_position}")
    if pot < 0 or hero_stack < 0 or villain_stack < 0 or to_call < 0:
        raise InvalidHand("Pot, stacks and amount to call must be non-negative")

    hole = parse_cards(hero_cards)
    if hole and len(hole) != 2:
        raise InvalidHand(f"Hero needs 2 hole cards, got {len(hole)}")
    dealt = Board(parse_cards(board))
    if len(dealt) != BOARD_SIZES[street]:
        raise InvalidHand(
            f"{street.value} board needs {BOARD_SIZES[street]} cards, got {len(dealt)}"
        )

    known = hole + dealt.cards
    needed = _FULL_BOARD - len(dealt)
    if runout is None:
        deck = Deck(rng)
        if len(set(known)) != len(known):
            raise InvalidHand(f"Duplicate card in {' '.join(map(str, known))}")
        deck.remove(known)
        pending = tuple(deck.deal(needed))
    else:
        pending = parse_cards(runout)
        if len(pending) != needed:
            raise InvalidHand(f"Runout needs {needed} cards, got {len(pending)}")

    all_cards = known + pending
    if len(set(all_cards)) != len(all_cards):
        raise InvalidHand(f"Duplicate card in {' '.join(map(str, all_cards))}")

    opener = first_to_act or villain_position
    if opener not in (hero_position, villain_position):
        raise InvalidHand(f"{opener} is not seated in this hand")
    to_act = current_player or opener
    if to_act not in (hero_position, villain_position):
        raise InvalidHand(f"{to_act} is not seated in this hand")

    return GameState(
        street=street,
        pot=pot,
        players=(
            PlayerState(hero_position, hero_stack, is_hero=True, hole_cards=hole),
            PlayerState(villain_position, villain_stack),
        ),
        current_player=to_act,
        first_to_act=opener,
        board=dealt,
        to_call=to_call,
        runout=pending,
        pot_type=pot_type,
    )


def _validate(state: GameState, action: ActionRecord, config: EngineConfig) -> None:
    if state.is_terminal:
        raise InvalidAction(action, f"hand is already {state.status.value}")
    if action.position != state.current_player:
        raise InvalidAction(action, f"it is {state.current_player.value}'s turn")
    if action.street != state.street:
        raise InvalidAction(action, f"hand is on the {state.street.value}")

    if action.action in SIZED_ACTIONS:
        if action.size is None or action.size <= 0:
            raise InvalidAction(action, "bet and raise need a positive pot-fraction size")
        if action.size > config.max_overbet:
            raise InvalidAction(
                action, f"size exceeds the {config.max_overbet:g}x pot overbet cap",
            )
        if state.player(action.position).stack <= 0:
            raise InvalidAction(action, "player has no chips behind")
    elif action.size is not None:
        raise InvalidAction(action, f"{action.action.value} takes no size")

    if action.action not in state.legal_actions():
        if state.to_call > 0:
            raise InvalidAction(action, f"facing a bet of {state.to_call:g}bb")
        raise InvalidAction(action, "there is no bet to call")


def _amount(state: GameState, action: ActionRecord) -> float:
    """Chips the actor puts in, capped at the actor's stack."""
    match action.action:
        case ActionType.BET:
            wanted = action.size * state.pot
        case ActionType.RAISE:
            wanted = state.to_call + action.size * (state.pot + state.to_call)
        case ActionType.CALL:
            wanted = state.to_call
        case _:
            wanted = 0.0
    return min(wanted, state.player(action.position).stack)


def _deal_next_street(state: GameState) -> GameState:
    """Close the betting round and move to the next street."""
    if state.street == Street.RIVER:
        return replace(state, status=HandStatus.COMPLETE, to_call=0.0)

    street = NEXT_STREET[state.street]
    n = BOARD_SIZES[street] - BOARD_SIZES[state.street]
    return replace(
        state,
        street=street,
        board=state.board.extend(state.runout[:n]),
        runout=state.runout[n:],
        to_call=0.0,
        current_player=state.first_to_act,
    )


def apply(
    state: GameState,
    action: ActionRecord,
    config: EngineConfig = DEFAULT_CONFIG,
) -> GameState:
    """Apply an action and return the successor state.

    A non-fold hero action closes the betting round (heads-up
    simplification; villain replies come from an opponent strategy
    between hero decisions). A villain call also closes the round, while
    a villain check, bet or raise passes the action to the hero.

    Raises:
        InvalidAction: If the action is illegal; ``state`` is untouched.
    """
    _validate(state, action, config)

    amount = _amount(state, action)
    committed = replace(action, amount=amount)
    players = tuple(
        replace(p, stack=p.stack - amount) if p.position == action.position else p
        for p in state.players
    )
    after = replace(
        state,
        pot=state.pot + amount,
        players=players,
        action_log=state.action_log + (committed,),
    )

    if action.action == ActionType.FOLD:
        return replace(after, status=HandStatus.FOLDED)

    actor = state.player(action.position)
    if actor.is_hero or action.action == ActionType.CALL:
        return _deal_next_street(after)

    match action.action:
        case ActionType.BET:
            facing = amount
        case ActionType.RAISE:
            facing = amount - state.to_call
        case _:
            facing = 0.0
    return replace(after, to_call=facing, current_player=state.hero.position)


def apply_all(
    state: GameState,
    actions: Sequence[ActionRecord],
    config: EngineConfig = DEFAULT_CONFIG,
) -> GameState:
    """Apply a sequence of actions in order."""
    for action in actions:
        state = apply(state, action, config)
    return state
