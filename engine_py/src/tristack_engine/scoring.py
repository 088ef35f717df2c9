"""
Hand values and round scoring.

A round ends when one player calls SHOW. Every hand is then valued, with
cards of the joker's rank worth nothing. Non-callers score their hand value.
The caller takes the risk:

* lowest hand on their own: 0
* lowest hand shared with anyone: tie penalty (25)
* anything else: failed call penalty (50)
"""

from typing import Dict, Iterable, List, Optional

from .models import Card, Player
from .rules import RuleConfig, default_rules


def card_value(card: Optional[Card], joker: Optional[Card]) -> int:
    """Joker-adjusted value of a single card."""
    if card is None:
        return 0
    if joker is not None and card.rank == joker.rank:
        return 0
    return card.value or 0


def hand_value(hand: Optional[Iterable[Optional[Card]]], joker: Optional[Card]) -> int:
    """Sum of card values; missing hands and entries count as zero."""
    if not hand:
        return 0
    return sum(card_value(card, joker) for card in hand if card is not None)


def round_scores(
    players: List[Player],
    caller_index: int,
    joker: Optional[Card],
    rules: Optional[RuleConfig] = None
) -> Dict[int, int]:
    """
    Score a round ended by a call.

    Args:
        players: Players in seat order
        caller_index: Seat of the player who called
        joker: The round joker
        rules: Penalty configuration

    Returns:
        Mapping of player id to round score
    """
    if not players:
        return {}
    rules = rules or default_rules

    values = {p.id: hand_value(p.hand, joker) for p in players}

    if not 0 <= caller_index < len(players):
        return values

    caller = players[caller_index]
    lowest = min(values.values())
    tie_count = sum(1 for value in values.values() if value == lowest)

    scores = dict(values)
    if values[caller.id] == lowest and tie_count == 1:
        scores[caller.id] = 0
    elif values[caller.id] == lowest:
        scores[caller.id] = rules.tie_penalty
    else:
        scores[caller.id] = rules.failed_call_penalty
    return scores


def match_winners(players: List[Player]) -> List[Player]:
    """Players sharing the lowest total score. Ties are left to the caller."""
    if not players:
        return []
    best = min(p.total_score for p in players)
    return [p for p in players if p.total_score == best]
