"""Constants for the GTO trainer."""

from enum import StrEnum


class Suit(StrEnum):
    HEARTS = "h"
    DIAMONDS = "d"
    CLUBS = "c"
    SPADES = "s"


class Rank(StrEnum):
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "T"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"


RANK_VALUES: dict[Rank, int] = {
    Rank.TWO: 2,
    Rank.THREE: 3,
    Rank.FOUR: 4,
    Rank.FIVE: 5,
    Rank.SIX: 6,
    Rank.SEVEN: 7,
    Rank.EIGHT: 8,
    Rank.NINE: 9,
    Rank.TEN: 10,
    Rank.JACK: 11,
    Rank.QUEEN: 12,
    Rank.KING: 13,
    Rank.ACE: 14,
}


class Position(StrEnum):
    UTG = "UTG"
    HJ = "HJ"
    CO = "CO"
    BTN = "BTN"
    SB = "SB"
    BB = "BB"


class ActionType(StrEnum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    BET = "bet"
    RAISE = "raise"


# Actions that carry a pot-fraction size
SIZED_ACTIONS = frozenset({ActionType.BET, ActionType.RAISE})

# Single-letter codes used in canonical action-history patterns
ACTION_CODES: dict[ActionType, str] = {
    ActionType.FOLD: "f",
    ActionType.CHECK: "x",
    ActionType.CALL: "c",
    ActionType.BET: "b",
    ActionType.RAISE: "r",
}


class Street(StrEnum):
    PREFLOP = "preflop"
    FLOP = "flop"
    TURN = "turn"
    RIVER = "river"


# Board size once each street has been dealt
BOARD_SIZES: dict[Street, int] = {
    Street.PREFLOP: 0,
    Street.FLOP: 3,
    Street.TURN: 4,
    Street.RIVER: 5,
}

NEXT_STREET: dict[Street, Street] = {
    Street.PREFLOP: Street.FLOP,
    Street.FLOP: Street.TURN,
    Street.TURN: Street.RIVER,
}


class HandStatus(StrEnum):
    ACTIVE = "active"
    COMPLETE = "complete"  # River betting closed
    FOLDED = "folded"


class PotType(StrEnum):
    LIMPED = "limped"
    SINGLE_RAISED = "srp"
    THREE_BET = "3bet"
    FOUR_BET = "4bet"
