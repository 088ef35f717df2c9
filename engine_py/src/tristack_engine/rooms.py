"""
In-memory room store.

Holds the shared room records that online players meet through: the lobby
roster, the room status and the latest game state snapshot. Subscribers are
called with a copy of the record after every change.
"""

import copy
import logging
import random
import threading
from typing import Callable, Dict, List, Optional

from .constants import (
    HOST_PLAYER_ID, MAX_ROOM_PLAYERS, ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, STATUS_WAITING
)
from .errors import GAME_IN_PROGRESS, ROOM_FULL, ROOM_NOT_FOUND, raise_error
from .models import RoomPlayer, RoomRecord

logger = logging.getLogger(__name__)

Subscriber = Callable[[RoomRecord], None]


def generate_room_code(rng: Optional[random.Random] = None) -> str:
    """Random room code without look-alike characters."""
    rng = rng or random
    return ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


class JoinResult:
    """Result of joining a room."""

    def __init__(
        self,
        success: bool,
        player_id: Optional[int] = None,
        players: Optional[List[RoomPlayer]] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        self.success = success
        self.player_id = player_id
        self.players = players or []
        self.error_code = error_code
        self.error_message = error_message


class InMemoryRoomStore:
    def __init__(self, max_players: int = MAX_ROOM_PLAYERS, rng: Optional[random.Random] = None):
        self.rooms: Dict[str, RoomRecord] = {}
        self.max_players = max_players
        self.rng = rng
        self._lock = threading.RLock()
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def _require(self, code: str) -> RoomRecord:
        room = self.rooms.get(code)
        if room is None:
            raise_error(ROOM_NOT_FOUND, f"Room {code} not found")
        return room

    def _publish(self, room: RoomRecord):
        for callback in list(self._subscribers.get(room.code, [])):
            callback(copy.deepcopy(room))

    def create_room(self, host_name: str, host_id: str) -> RoomRecord:
        with self._lock:
            code = generate_room_code(self.rng)
            while code in self.rooms:
                code = generate_room_code(self.rng)

            room = RoomRecord(
                code=code,
                host_id=host_id,
                players=[RoomPlayer(id=HOST_PLAYER_ID, name=host_name)],
                status=STATUS_WAITING,
                game_state=None,
                next_player_id=HOST_PLAYER_ID + 1,
            )
            self.rooms[code] = room
            logger.info(f"Room {code} created by {host_name}")
            return copy.deepcopy(room)

    def get_room(self, code: str) -> Optional[RoomRecord]:
        with self._lock:
            room = self.rooms.get(code)
            return copy.deepcopy(room) if room else None

    def join_room(self, code: str, player_name: str) -> JoinResult:
        """Add a player to a waiting room; ids come from the room's counter."""
        with self._lock:
            room = self.rooms.get(code)
            if room is None:
                return JoinResult(False, error_code=ROOM_NOT_FOUND, error_message="Room not found")
            if room.status != STATUS_WAITING:
                return JoinResult(False, error_code=GAME_IN_PROGRESS, error_message="Game already started")
            if len(room.players) >= self.max_players:
                return JoinResult(False, error_code=ROOM_FULL, error_message="Room full")

            player_id = room.next_player_id
            room.next_player_id += 1
            room.players.append(RoomPlayer(id=player_id, name=player_name))
            logger.info(f"{player_name} joined room {code} as player {player_id}")
            self._publish(room)
            return JoinResult(True, player_id=player_id, players=copy.deepcopy(room.players))

    def leave_room(self, code: str, player_id: int) -> bool:
        """Drop a player; an empty room is deleted."""
        with self._lock:
            room = self.rooms.get(code)
            if room is None:
                return False
            room.players = [p for p in room.players if p.id != player_id]
            if not room.players:
                del self.rooms[code]
                self._subscribers.pop(code, None)
                logger.info(f"Room {code} deleted")
                return True
            self._publish(room)
            return True

    def update_game_state(self, code: str, game_state: dict, status: str):
        with self._lock:
            room = self._require(code)
            room.game_state = game_state
            room.status = status
            self._publish(room)

    def reset_room_to_lobby(self, code: str):
        with self._lock:
            room = self._require(code)
            room.status = STATUS_WAITING
            room.game_state = None
            logger.info(f"Room {code} reset to lobby")
            self._publish(room)

    def subscribe(self, code: str, callback: Subscriber) -> Callable[[], None]:
        """Register for room updates; returns a function that unsubscribes."""
        with self._lock:
            self._subscribers.setdefault(code, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(code, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe
