"""
Card shuffling, dealing and recycling utilities.
"""

import random
from collections import Counter
from typing import List, Optional, Tuple

from .constants import DECK_SIZE, RANKS, RANK_VALUES, SUITS
from .models import Card, GameState


def build_cards() -> List[Card]:
    """Build the 52 cards in suit-major order."""
    cards = []
    counter = 0
    for suit in SUITS:
        for rank in RANKS:
            cards.append(Card(
                id=f"card-{counter}-{rank}-{suit}",
                suit=suit,
                rank=rank,
                value=RANK_VALUES[rank],
            ))
            counter += 1
    return cards


def create_deck(rng: Optional[random.Random] = None) -> List[Card]:
    """Create a shuffled standard deck."""
    return shuffle_deck(build_cards(), rng)


def shuffle_deck(deck: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """
    Shuffle a copy of the given cards.

    Args:
        deck: Cards to shuffle; left untouched
        rng: Optional random source for deterministic shuffling

    Returns:
        Shuffled copy of the cards
    """
    deck_copy = list(deck)
    (rng or random).shuffle(deck_copy)
    return deck_copy


def choose_joker(deck: List[Card], rng: Optional[random.Random] = None) -> Optional[Card]:
    """Pick the round joker. Only its rank matters, so the card stays in the deck."""
    if not deck:
        return None
    return deck[(rng or random).randrange(len(deck))]


def deal_hands(deck: List[Card], player_count: int, hand_size: int) -> Tuple[List[List[Card]], List[Card]]:
    """
    Deal hand_size cards to every seat from the front of the deck.

    Returns:
        (hands in seat order, remaining deck)
    """
    needed = player_count * hand_size
    if needed > len(deck):
        raise ValueError(f"Cannot deal {needed} cards from a deck of {len(deck)}")

    hands = [deck[i * hand_size:(i + 1) * hand_size] for i in range(player_count)]
    return hands, deck[needed:]


def recycle_open_pile(
    open_deck: List[Card],
    rng: Optional[random.Random] = None
) -> Optional[Tuple[List[Card], List[Card]]]:
    """
    Turn the open pile into a new draw pile.

    The top card stays face up as the only open card; the rest are shuffled.

    Returns:
        (new draw pile, new open pile), or None if nothing can be recycled
    """
    if len(open_deck) <= 1:
        return None

    top_card = open_deck[-1]
    return shuffle_deck(open_deck[:-1], rng), [top_card]


def validate_deck_integrity(state: GameState) -> bool:
    """
    Validate that every card is accounted for exactly once.

    Args:
        state: Game state to validate

    Returns:
        True if deck integrity is valid
    """
    all_cards = list(state.deck) + list(state.open_deck) + list(state.pending_toss)
    if state.pending_discard is not None:
        all_cards.append(state.pending_discard)
    for player in state.players:
        all_cards.extend(player.hand)

    counts = Counter((card.suit, card.rank) for card in all_cards)
    expected = {(suit, rank) for suit in SUITS for rank in RANKS}
    return (
        len(all_cards) == DECK_SIZE and
        set(counts) == expected and
        all(count == 1 for count in counts.values())
    )
