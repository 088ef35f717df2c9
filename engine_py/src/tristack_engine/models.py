"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import List, Optional

from .constants import (
    DEFAULT_TOTAL_ROUNDS, PHASE_SETUP, STATUS_WAITING, WAITING_ACTION, format_card
)


@dataclass(frozen=True)
class Card:
    id: str
    suit: str
    rank: str
    value: int

    def label(self) -> str:
        return format_card(self.rank, self.suit)


@dataclass
class Player:
    id: int
    name: str
    is_bot: bool = False
    hand: List[Card] = field(default_factory=list)
    score: int = 0  # this round
    total_score: int = 0
    last_action: str = WAITING_ACTION
    was_caller: bool = False

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None


@dataclass
class GameState:
    mode: Optional[str] = None
    deck: List[Card] = field(default_factory=list)  # drawn from the front
    open_deck: List[Card] = field(default_factory=list)  # top is the last card
    players: List[Player] = field(default_factory=list)
    current_player_index: int = 0
    round_joker: Optional[Card] = None
    round_number: int = 1
    total_rounds: int = DEFAULT_TOTAL_ROUNDS
    phase: str = PHASE_SETUP
    pending_discard: Optional[Card] = None
    pending_toss: List[Card] = field(default_factory=list)
    tossed_this_turn: bool = False
    last_discarded_id: Optional[str] = None
    turn_log: List[str] = field(default_factory=list)
    is_transitioning: bool = False
    player_names: List[str] = field(default_factory=list)
    version: int = 0

    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def get_player(self, player_id: int) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def open_top(self) -> Optional[Card]:
        return self.open_deck[-1] if self.open_deck else None

    def card_count(self) -> int:
        """Cards in play, counting the ones pending for the open pile."""
        total = len(self.deck) + len(self.open_deck) + len(self.pending_toss)
        total += sum(len(p.hand) for p in self.players)
        if self.pending_discard is not None:
            total += 1
        return total

    def increment_version(self):
        self.version += 1

    def add_log(self, message: str):
        self.turn_log.append(message)


@dataclass
class RoomPlayer:
    id: int
    name: str


@dataclass
class RoomRecord:
    code: str
    host_id: str
    players: List[RoomPlayer] = field(default_factory=list)
    status: str = STATUS_WAITING
    game_state: Optional[dict] = None  # serialized GameState
    next_player_id: int = 0
