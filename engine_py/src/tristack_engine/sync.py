"""
Replication between a MatchSession and a shared room record.

The session keeps the authoritative state. In online modes every local
change is pushed to the room as a full snapshot; pushes are fire-and-forget.
Room updates coming back replace the local state wholesale, the last writer
winning.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Optional

from .constants import (
    HOST_PLAYER_ID, MODE_ONLINE_CLIENT, MODE_ONLINE_HOST, ONLINE_MODES, PHASE_MATCH_END,
    STATUS_FINISHED, STATUS_PLAYING, STATUS_WAITING
)
from .engine import ORIGIN_LOCAL, MatchSession
from .models import GameState, RoomRecord
from .serialization import state_from_dict, state_to_dict

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    """What an inbound room update did."""
    APPLIED = "applied"
    RETURN_TO_LOBBY = "return_to_lobby"
    STALE = "stale"
    IGNORED = "ignored"


def status_for(state: GameState) -> str:
    return STATUS_FINISHED if state.phase == PHASE_MATCH_END else STATUS_PLAYING


class SyncBridge:
    def __init__(
        self,
        session: MatchSession,
        store,
        room_code: str,
        local_player_id: Optional[int] = None,
        reject_stale: bool = False
    ):
        self.session = session
        self.store = store
        self.room_code = room_code
        self.local_player_id = local_player_id
        self.reject_stale = reject_stale
        session.add_listener(self._on_change)

    def detach(self):
        self.session.remove_listener(self._on_change)

    def _on_change(self, state: GameState, origin: str):
        if origin == ORIGIN_LOCAL:
            self.push(state)

    def push(self, state: GameState) -> bool:
        """
        Overwrite the room's game state with a snapshot of `state`.

        Returns:
            True if a push was issued (not that it arrived)
        """
        if state.mode not in ONLINE_MODES:
            return False
        if not self.room_code:
            logger.error("Cannot sync state: No room code provided")
            return False

        snapshot = state_to_dict(state)
        status = status_for(state)
        try:
            outcome = self.store.update_game_state(self.room_code, snapshot, status)
        except Exception as e:
            logger.error(f"Failed to sync game state for room {self.room_code}: {e}")
            return True

        if inspect.isawaitable(outcome):
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.error(f"No event loop to sync room {self.room_code}; push dropped")
                if inspect.iscoroutine(outcome):
                    outcome.close()
                return True
            task = asyncio.ensure_future(outcome)
            task.add_done_callback(self._log_push_failure)
        return True

    def _log_push_failure(self, task: asyncio.Future):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Failed to sync game state for room {self.room_code}: {error}")

    def apply_room_update(self, record: RoomRecord) -> SyncOutcome:
        """Apply a room record received from the shared layer."""
        if record.status == STATUS_WAITING:
            logger.info(f"Room {record.code} went back to the lobby")
            return SyncOutcome.RETURN_TO_LOBBY

        if not record.game_state:
            return SyncOutcome.IGNORED

        incoming = state_from_dict(record.game_state)
        if self.reject_stale and incoming.version <= self.session.state.version:
            logger.info(
                f"Dropping stale snapshot v{incoming.version} "
                f"(local v{self.session.state.version})"
            )
            return SyncOutcome.STALE

        if self.local_player_id is not None:
            is_host = self.local_player_id == HOST_PLAYER_ID
            incoming.mode = MODE_ONLINE_HOST if is_host else MODE_ONLINE_CLIENT

        self.session.apply_snapshot(incoming)
        return SyncOutcome.APPLIED
