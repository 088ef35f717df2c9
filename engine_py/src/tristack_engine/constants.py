"""Game constants and utilities"""

from typing import Dict, List

SUITS: List[str] = ['Hearts', 'Diamonds', 'Clubs', 'Spades']
SUIT_SYMBOLS: Dict[str, str] = {
    'Hearts': '♥',
    'Diamonds': '♦',
    'Clubs': '♣',
    'Spades': '♠',
}

RANKS: List[str] = ['A', '2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K']
RANK_VALUES: Dict[str, int] = {
    'A': 1,
    '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9, '10': 10,
    'J': 10, 'Q': 10, 'K': 10,
}

DECK_SIZE = len(SUITS) * len(RANKS)

# Phases
PHASE_SETUP = 'SETUP'
PHASE_TURN_START = 'PLAYER_TURN_START'
PHASE_TOSSING_DRAW = 'PLAYER_TOSSING_DRAW'
PHASE_DRAW = 'PLAYER_DRAW'
PHASE_ROUND_END = 'ROUND_END'
PHASE_MATCH_END = 'MATCH_END'

DRAW_PHASES = (PHASE_TOSSING_DRAW, PHASE_DRAW)
TURN_PHASES = (PHASE_TURN_START, PHASE_TOSSING_DRAW, PHASE_DRAW)

# Game modes
MODE_SINGLE_PLAYER = 'SINGLE_PLAYER'
MODE_MULTIPLAYER = 'MULTIPLAYER'
MODE_ONLINE_HOST = 'ONLINE_HOST'
MODE_ONLINE_CLIENT = 'ONLINE_CLIENT'

ONLINE_MODES = (MODE_ONLINE_HOST, MODE_ONLINE_CLIENT)

# Draw sources
SOURCE_DECK = 'DECK'
SOURCE_OPEN = 'OPEN'
DRAW_SOURCES = (SOURCE_DECK, SOURCE_OPEN)

# Action types
ACTION_CALL = 'CALL'
ACTION_TOSS = 'TOSS'
ACTION_DISCARD = 'DISCARD'
ACTION_DRAW = 'DRAW'

# Room statuses
STATUS_WAITING = 'WAITING'
STATUS_PLAYING = 'PLAYING'
STATUS_FINISHED = 'FINISHED'

# Room codes skip 0/O and 1/I
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 4
MAX_ROOM_PLAYERS = 10

HOST_PLAYER_ID = 0
DEFAULT_TOTAL_ROUNDS = 5
HAND_SIZE = 3
DEFAULT_PLAYER_NAMES = ['Player', 'Bot 1', 'Bot 2', 'Bot 3']
BOT_NAMES = ['Bot 1', 'Bot 2', 'Bot 3']

WAITING_ACTION = 'Waiting...'


def format_card(rank: str, suit: str) -> str:
    """Render a card as e.g. 10♥."""
    return f"{rank}{SUIT_SYMBOLS.get(suit, suit)}"
