"""
Base bot interface and utilities.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..constants import (
    ACTION_CALL, ACTION_DISCARD, ACTION_DRAW, ACTION_TOSS, PHASE_TURN_START, SOURCE_DECK,
    TURN_PHASES
)
from ..models import GameState, Player


class BotAction:
    """An action request. Humans and bots submit the same shape."""

    def __init__(self, action_type: str, card_ids: Optional[List[str]] = None, source: Optional[str] = None):
        self.type = action_type
        self.card_ids = list(card_ids or [])
        self.source = source

    @classmethod
    def call(cls) -> 'BotAction':
        """Create a call (SHOW) action."""
        return cls(ACTION_CALL)

    @classmethod
    def toss(cls, card_ids: List[str]) -> 'BotAction':
        """Create a toss action."""
        return cls(ACTION_TOSS, card_ids=card_ids)

    @classmethod
    def discard(cls, card_ids: List[str]) -> 'BotAction':
        """Create a discard action."""
        return cls(ACTION_DISCARD, card_ids=card_ids)

    @classmethod
    def draw(cls, source: str = SOURCE_DECK) -> 'BotAction':
        """Create a draw action."""
        return cls(ACTION_DRAW, source=source)

    def to_dict(self) -> dict:
        return {'type': self.type, 'card_ids': list(self.card_ids), 'source': self.source}

    def __eq__(self, other):
        if not isinstance(other, BotAction):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"BotAction({self.type}, card_ids={self.card_ids}, source={self.source})"


class BaseBot(ABC):
    """Abstract base class for bot players."""

    def __init__(self, player_id: int):
        self.player_id = player_id

    @abstractmethod
    def choose_action(self, state: GameState) -> Optional[BotAction]:
        """
        Choose an action based on the current game state.

        Args:
            state: Current game state

        Returns:
            BotAction to take, or None if no action needed
        """
        pass

    def get_player(self, state: GameState) -> Optional[Player]:
        return state.get_player(self.player_id)

    def is_my_turn(self, state: GameState) -> bool:
        """Check if it's this bot's turn."""
        player = state.current_player()
        return (
            player is not None and
            player.id == self.player_id and
            state.phase in TURN_PHASES
        )

    def at_turn_start(self, state: GameState) -> bool:
        return self.is_my_turn(state) and state.phase == PHASE_TURN_START
