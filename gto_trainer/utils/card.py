"""Card, Board and Deck classes."""

from __future__ import annotations

import random
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from functools import total_ordering

from gto_trainer.errors import InvalidHand
from gto_trainer.utils.constants import RANK_VALUES, Rank, Suit

# Legal board lengths: preflop, flop, turn, river
_BOARD_LENGTHS = (0, 3, 4, 5)


@total_ordering
@dataclass(frozen=True)
class Card:
    """Represents a single playing card."""

    rank: Rank
    suit: Suit

    @classmethod
    def from_str(cls, s: str) -> Card:
        """Create a Card from a 2-character string like 'Ah' or 'Td'.

        Raises:
            ValueError: If the string is not exactly 2 characters or
                       contains invalid rank/suit characters.
        """
        if len(s) != 2:
            raise ValueError(f"Card string must be 2 characters, got '{s}'")
        try:
            rank = Rank(s[0].upper())
        except ValueError:
            raise ValueError(f"Invalid rank character: '{s[0]}'")
        try:
            suit = Suit(s[1].lower())
        except ValueError:
            raise ValueError(f"Invalid suit character: '{s[1]}'")
        return cls(rank=rank, suit=suit)

    @property
    def value(self) -> int:
        """Numeric value of the card's rank (2-14)."""
        return RANK_VALUES[self.rank]

    def __str__(self) -> str:
        return f"{self.rank.value}{self.suit.value}"

    def __repr__(self) -> str:
        return f"Card('{self}')"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return NotImplemented
        return self.value < other.value


def parse_cards(cards: str | Iterable[str | Card]) -> tuple[Card, ...]:
    """Parse "Ah Kd 7s", ["Ah", "Kd"] or Card objects into a tuple of cards."""
    if isinstance(cards, str):
        cards = cards.split()
    return tuple(c if isinstance(c, Card) else Card.from_str(c) for c in cards)


@dataclass(frozen=True)
class Board:
    """Community cards in deal order (0, 3, 4 or 5 cards)."""

    cards: tuple[Card, ...] = ()

    def __post_init__(self) -> None:
        if len(self.cards) not in _BOARD_LENGTHS:
            raise InvalidHand(f"Board must hold 0, 3, 4 or 5 cards, got {len(self.cards)}")
        if len(set(self.cards)) != len(self.cards):
            raise InvalidHand(f"Duplicate card on board: {self}")

    @classmethod
    def from_str(cls, s: str | Iterable[str | Card]) -> Board:
        return cls(parse_cards(s))

    def extend(self, cards: Iterable[Card]) -> Board:
        """Return a new board with cards appended (existing order kept)."""
        return Board(self.cards + tuple(cards))

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        return " ".join(str(c) for c in self.cards)


class Deck:
    """Standard 52-card deck with shuffle and deal operations."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self._cards: list[Card] = []
        self.reset()

    def reset(self) -> None:
        """Reset and shuffle the deck."""
        self._cards = [
            Card(rank=rank, suit=suit) for suit in Suit for rank in Rank
        ]
        self.shuffle()

    def shuffle(self) -> None:
        """Shuffle the remaining cards in the deck."""
        self._rng.shuffle(self._cards)

    def deal(self, n: int = 1) -> list[Card]:
        """Deal n cards from the top of the deck.

        Raises:
            ValueError: If not enough cards remain.
        """
        if n > len(self._cards):
            raise ValueError(
                f"Cannot deal {n} cards, only {len(self._cards)} remaining"
            )
        dealt = self._cards[:n]
        self._cards = self._cards[n:]
        return dealt

    @property
    def remaining(self) -> int:
        """Number of cards remaining in the deck."""
        return len(self._cards)

    def remove(self, cards: Iterable[Card]) -> None:
        """Remove specific cards from the deck (for setting up known boards).

        Raises:
            ValueError: If a card is not in the deck.
        """
        for card in cards:
            if card not in self._cards:
                raise ValueError(f"Card {card} not in deck")
            self._cards.remove(card)
