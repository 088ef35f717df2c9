# engine_py/src/tristack_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Action validation codes
ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
INVALID_SELECTION = "INVALID_SELECTION"
INVALID_TOSS = "INVALID_TOSS"
ALREADY_TOSSED = "ALREADY_TOSSED"
OWNERSHIP_MISMATCH = "OWNERSHIP_MISMATCH"
OWN_DISCARD = "OWN_DISCARD"
EMPTY_PILE = "EMPTY_PILE"
INVALID_PLAYER_COUNT = "INVALID_PLAYER_COUNT"
INVALID_ROUND = "INVALID_ROUND"
MATCH_OVER = "MATCH_OVER"
UNKNOWN_ACTION = "UNKNOWN_ACTION"

# Room layer codes
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
ROOM_FULL = "ROOM_FULL"
GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
NOT_HOST = "NOT_HOST"
NOT_YOUR_TURN = "NOT_YOUR_TURN"
INVALID_EVENT = "INVALID_EVENT"
INTERNAL_ERROR = "INTERNAL_ERROR"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
