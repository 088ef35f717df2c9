"""
Greedy bot implementation with basic heuristics.
"""

import logging
from typing import Dict, List, Optional

from .base import BaseBot, BotAction
from ..constants import SOURCE_DECK
from ..models import Card, GameState, Player
from ..rules import RuleConfig, default_rules
from ..scoring import card_value, hand_value

logger = logging.getLogger(__name__)


def decide(
    player: Optional[Player],
    joker: Optional[Card],
    has_tossed_this_turn: bool,
    rules: Optional[RuleConfig] = None
) -> BotAction:
    """
    Pick a turn-start action for a bot seat.

    Priority, first match wins:
    1. Toss the first non-joker pair in hand order (once per turn).
    2. Call SHOW when the hand is worth the call threshold or less.
    3. Discard the highest valued card; the earliest one wins ties.
    """
    rules = rules or default_rules
    if player is None or not player.hand:
        return BotAction.discard([])

    hand = [card for card in player.hand if card is not None]

    if not has_tossed_this_turn and len(hand) >= 2:
        rank_groups: Dict[str, List[Card]] = {}
        for card in hand:
            rank_groups.setdefault(card.rank, []).append(card)

        for rank, cards in rank_groups.items():
            if joker is not None and rank == joker.rank:
                continue
            if len(cards) >= 2:
                return BotAction.toss([cards[0].id, cards[1].id])

    if hand_value(hand, joker) <= rules.bot_call_threshold:
        return BotAction.call()

    highest_card = None
    highest_value = -1
    for card in hand:
        value = card_value(card, joker)
        if value > highest_value:
            highest_value = value
            highest_card = card

    return BotAction.discard([highest_card.id] if highest_card else [])


class GreedyBot(BaseBot):
    """
    Scripted opponent.

    Strategy:
    - Toss pairs whenever possible
    - Call SHOW on a low hand
    - Otherwise discard the heaviest card
    - Always draw from the deck, never from the open pile
    """

    def __init__(self, player_id: int, rules: Optional[RuleConfig] = None):
        super().__init__(player_id)
        self.rules = rules or default_rules

    def choose_action(self, state: GameState) -> Optional[BotAction]:
        """Choose the best action for the current state."""
        if not self.is_my_turn(state):
            return None

        if self.at_turn_start(state):
            action = decide(
                self.get_player(state), state.round_joker, state.tossed_this_turn, self.rules
            )
        else:
            action = BotAction.draw(SOURCE_DECK)

        logger.debug(f"Bot {self.player_id} chose {action}")
        return action
