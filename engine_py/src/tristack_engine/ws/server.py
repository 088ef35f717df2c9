"""
FastAPI WebSocket server for Tri-Stack.

Online rooms live in the room store. The server hosts one MatchSession per
playing room, synced into the store by a SyncBridge; every store update is
broadcast to the room's connections, sanitized per viewer. Single player
matches run on the connection that started them, with bots driven by a
BotDriver.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Set, Tuple

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from ..bots.base import BotAction
from ..constants import (
    BOT_NAMES, HOST_PLAYER_ID, MODE_ONLINE_HOST, MODE_SINGLE_PLAYER, STATUS_WAITING
)
from ..engine import ActionResult, MatchSession
from ..errors import (
    ACTION_NOT_ALLOWED, GAME_IN_PROGRESS, NOT_HOST, NOT_YOUR_TURN, ROOM_NOT_FOUND, GameError
)
from ..models import GameState, Player, RoomRecord
from ..rooms import InMemoryRoomStore
from ..scheduler import BotDriver
from ..serialization import loads, room_to_dict, sanitize_state, state_from_dict
from ..sync import SyncBridge
from .events import (
    CallEvent, CreateRoomEvent, DiscardEvent, DrawEvent, ErrorCode, JoinRoomEvent, LeaveEvent,
    NextRoundEvent, RequestStateEvent, ResetEvent, StartEvent, StartSinglePlayerEvent, TossEvent,
    create_error_event, create_room_joined_event, create_room_update_event, create_state_event,
    error_code_for, parse_inbound_event
)

logger = logging.getLogger(__name__)

router = APIRouter()


class GameHub:
    """Connections, rooms and sessions served by this process."""

    def __init__(self, store: Optional[InMemoryRoomStore] = None):
        self.store = store or InMemoryRoomStore()
        self.sessions: Dict[str, MatchSession] = {}
        self.bridges: Dict[str, SyncBridge] = {}
        self.room_connections: Dict[str, Set[WebSocket]] = defaultdict(set)
        self.connection_rooms: Dict[WebSocket, str] = {}
        self.connection_seats: Dict[WebSocket, int] = {}
        self.solo: Dict[WebSocket, Tuple[MatchSession, BotDriver]] = {}
        self._unsubscribers: Dict[str, Callable[[], None]] = {}
        self._outbox: List[RoomRecord] = []

    # Connection bookkeeping

    def _attach(self, websocket: WebSocket, code: str, seat: int):
        self.room_connections[code].add(websocket)
        self.connection_rooms[websocket] = code
        self.connection_seats[websocket] = seat
        if code not in self._unsubscribers:
            self._unsubscribers[code] = self.store.subscribe(code, self._outbox.append)

    def _detach(self, websocket: WebSocket) -> Tuple[Optional[str], Optional[int]]:
        code = self.connection_rooms.pop(websocket, None)
        seat = self.connection_seats.pop(websocket, None)
        if code is not None:
            self.room_connections[code].discard(websocket)
            if not self.room_connections[code]:
                del self.room_connections[code]
        return code, seat

    def _forget_room(self, code: str):
        self._drop_session(code)
        unsubscribe = self._unsubscribers.pop(code, None)
        if unsubscribe:
            unsubscribe()

    def _drop_session(self, code: str):
        bridge = self.bridges.pop(code, None)
        if bridge:
            bridge.detach()
        self.sessions.pop(code, None)

    def _stop_solo(self, websocket: WebSocket):
        entry = self.solo.pop(websocket, None)
        if entry:
            entry[1].stop()

    # Sending

    async def send_error(self, websocket: WebSocket, code, message: str):
        event = create_error_event(error_code_for(code), message)
        await websocket.send_text(event.model_dump_json())

    async def send_result_error(self, websocket: WebSocket, result: ActionResult):
        await self.send_error(websocket, result.error_code, result.error_message)

    def room_view(self, record: RoomRecord, seat: Optional[int]) -> dict:
        data = room_to_dict(record)
        if record.game_state:
            data["game_state"] = sanitize_state(state_from_dict(record.game_state), seat)
        return data

    async def send_room(self, websocket: WebSocket, record: RoomRecord):
        seat = self.connection_seats.get(websocket)
        event = create_room_update_event(self.room_view(record, seat))
        await websocket.send_text(event.model_dump_json())

    async def send_solo_state(self, websocket: WebSocket, state: GameState):
        event = create_state_event(sanitize_state(state, HOST_PLAYER_ID))
        await websocket.send_text(event.model_dump_json())

    async def flush(self):
        """Broadcast room updates collected since the last flush."""
        while self._outbox:
            record = self._outbox.pop(0)
            for websocket in list(self.room_connections.get(record.code, ())):
                try:
                    await self.send_room(websocket, record)
                except Exception as e:
                    logger.error(f"Error broadcasting room {record.code}: {e}")
                    self._detach(websocket)

    # Event handlers

    async def handle_create_room(self, websocket: WebSocket, event: CreateRoomEvent):
        record = self.store.create_room(event.name, str(uuid.uuid4()))
        self._attach(websocket, record.code, HOST_PLAYER_ID)
        joined = create_room_joined_event(record.code, HOST_PLAYER_ID, True)
        await websocket.send_text(joined.model_dump_json())
        await self.send_room(websocket, record)

    async def handle_join_room(self, websocket: WebSocket, event: JoinRoomEvent):
        code = event.code.upper()
        # Subscribe before joining so the join itself is broadcast
        if code in self.store.rooms and code not in self._unsubscribers:
            self._unsubscribers[code] = self.store.subscribe(code, self._outbox.append)

        result = self.store.join_room(code, event.name)
        if not result.success:
            if not self.room_connections.get(code):
                unsubscribe = self._unsubscribers.pop(code, None)
                if unsubscribe:
                    unsubscribe()
            await self.send_error(websocket, result.error_code, result.error_message)
            return

        self._attach(websocket, code, result.player_id)
        joined = create_room_joined_event(code, result.player_id, False)
        await websocket.send_text(joined.model_dump_json())

    async def handle_start(self, websocket: WebSocket, event: StartEvent):
        code = self.connection_rooms.get(websocket)
        if code is None:
            await self.send_error(websocket, ACTION_NOT_ALLOWED, "Not in a room")
            return
        if self.connection_seats.get(websocket) != HOST_PLAYER_ID:
            await self.send_error(websocket, NOT_HOST, "Only the host can start the game")
            return

        record = self.store.get_room(code)
        if record is None:
            await self.send_error(websocket, ROOM_NOT_FOUND, "Room not found")
            return
        if record.status != STATUS_WAITING:
            await self.send_error(websocket, GAME_IN_PROGRESS, "Game already started")
            return

        players = [Player(id=p.id, name=p.name) for p in record.players]
        session = MatchSession()
        bridge = SyncBridge(session, self.store, code, local_player_id=HOST_PLAYER_ID)
        result = session.start_round(1, players, MODE_ONLINE_HOST, event.total_rounds)
        if not result.success:
            bridge.detach()
            await self.send_result_error(websocket, result)
            return

        self.sessions[code] = session
        self.bridges[code] = bridge
        logger.info(f"Match started in room {code} with {len(players)} players")

    async def handle_start_single_player(self, websocket: WebSocket, event: StartSinglePlayerEvent):
        if websocket in self.connection_rooms:
            await self.send_error(websocket, ACTION_NOT_ALLOWED, "Leave the room first")
            return
        self._stop_solo(websocket)

        session = MatchSession(GameState(player_names=[event.name] + BOT_NAMES))

        def push_state(state: GameState, origin: str):
            asyncio.get_running_loop().create_task(self.send_solo_state(websocket, state))

        session.add_listener(push_state)
        result = session.start_round(1, mode=MODE_SINGLE_PLAYER, total_rounds=event.total_rounds)
        if not result.success:
            await self.send_result_error(websocket, result)
            return

        driver = BotDriver(session)
        self.solo[websocket] = (session, driver)
        driver.start()

    def _session_for(self, websocket: WebSocket) -> Tuple[Optional[MatchSession], Optional[int]]:
        if websocket in self.solo:
            return self.solo[websocket][0], HOST_PLAYER_ID
        code = self.connection_rooms.get(websocket)
        if code is None:
            return None, None
        return self.sessions.get(code), self.connection_seats.get(websocket)

    async def handle_action(self, websocket: WebSocket, action: BotAction):
        session, seat = self._session_for(websocket)
        if session is None:
            await self.send_error(websocket, ACTION_NOT_ALLOWED, "No game in progress")
            return

        # The engine trusts its callers; seat checks happen here
        current = session.state.current_player()
        if current is None or current.id != seat:
            await self.send_error(websocket, NOT_YOUR_TURN, "Not your turn")
            return

        result = session.submit(action)
        if not result.success:
            await self.send_result_error(websocket, result)

    async def handle_next_round(self, websocket: WebSocket, event: NextRoundEvent):
        session, seat = self._session_for(websocket)
        if session is None:
            await self.send_error(websocket, ACTION_NOT_ALLOWED, "No game in progress")
            return
        if seat != HOST_PLAYER_ID:
            await self.send_error(websocket, NOT_HOST, "Only the host can deal the next round")
            return

        result = session.advance()
        if not result.success:
            await self.send_result_error(websocket, result)

    async def handle_reset(self, websocket: WebSocket, event: ResetEvent):
        if websocket in self.solo:
            self._stop_solo(websocket)
            return

        code = self.connection_rooms.get(websocket)
        if code is None:
            await self.send_error(websocket, ACTION_NOT_ALLOWED, "Not in a room")
            return
        if self.connection_seats.get(websocket) != HOST_PLAYER_ID:
            await self.send_error(websocket, NOT_HOST, "Only the host can reset the room")
            return

        self._drop_session(code)
        self.store.reset_room_to_lobby(code)

    async def handle_leave(self, websocket: WebSocket, event: LeaveEvent):
        self._stop_solo(websocket)
        code, seat = self._detach(websocket)
        if code is None:
            return
        self.store.leave_room(code, seat)
        if code not in self.store.rooms:
            self._forget_room(code)

    async def handle_request_state(self, websocket: WebSocket, event: RequestStateEvent):
        if websocket in self.solo:
            await self.send_solo_state(websocket, self.solo[websocket][0].state)
            return

        code = self.connection_rooms.get(websocket)
        record = self.store.get_room(code) if code else None
        if record is None:
            await self.send_error(websocket, ACTION_NOT_ALLOWED, "Not in a room")
            return
        await self.send_room(websocket, record)

    async def handle_event(self, websocket: WebSocket, event):
        """Handle an inbound event."""
        if isinstance(event, CreateRoomEvent):
            await self.handle_create_room(websocket, event)
        elif isinstance(event, JoinRoomEvent):
            await self.handle_join_room(websocket, event)
        elif isinstance(event, StartEvent):
            await self.handle_start(websocket, event)
        elif isinstance(event, StartSinglePlayerEvent):
            await self.handle_start_single_player(websocket, event)
        elif isinstance(event, CallEvent):
            await self.handle_action(websocket, BotAction.call())
        elif isinstance(event, TossEvent):
            await self.handle_action(websocket, BotAction.toss(event.card_ids))
        elif isinstance(event, DiscardEvent):
            await self.handle_action(websocket, BotAction.discard(event.card_ids))
        elif isinstance(event, DrawEvent):
            await self.handle_action(websocket, BotAction.draw(event.source))
        elif isinstance(event, NextRoundEvent):
            await self.handle_next_round(websocket, event)
        elif isinstance(event, ResetEvent):
            await self.handle_reset(websocket, event)
        elif isinstance(event, LeaveEvent):
            await self.handle_leave(websocket, event)
        elif isinstance(event, RequestStateEvent):
            await self.handle_request_state(websocket, event)
        else:
            raise ValueError(f"Unhandled event type: {type(event)}")

    async def disconnect(self, websocket: WebSocket):
        self._stop_solo(websocket)
        code, seat = self._detach(websocket)
        if code is None:
            return
        record = self.store.get_room(code)
        # Seats stay reserved while a match is running
        if record is not None and record.status == STATUS_WAITING:
            self.store.leave_room(code, seat)
            if code not in self.store.rooms:
                self._forget_room(code)
        await self.flush()

    async def handle_websocket(self, websocket: WebSocket):
        """Main receive loop for one connection."""
        await websocket.accept()
        logger.info("WebSocket connection accepted")

        try:
            while True:
                raw_data = await websocket.receive_text()

                try:
                    event = parse_inbound_event(loads(raw_data))
                    await self.handle_event(websocket, event)
                except GameError as e:
                    await self.send_error(websocket, e.code, e.message)
                except ValueError as e:
                    await self.send_error(websocket, ErrorCode.INVALID_EVENT, str(e))
                except Exception as e:
                    logger.exception(f"Error handling event: {e}")
                    await self.send_error(websocket, ErrorCode.INTERNAL_ERROR, "Internal server error")

                await self.flush()

        except WebSocketDisconnect:
            logger.info("WebSocket disconnected")
        finally:
            await self.disconnect(websocket)


hub = GameHub()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "rooms": len(hub.store.rooms),
        "sessions": len(hub.sessions) + len(hub.solo),
        "connections": sum(len(conns) for conns in hub.room_connections.values())
    }


@router.get("/rooms/{code}")
async def get_room(code: str):
    """Public lobby information for a room."""
    record = hub.store.get_room(code.upper())
    if record is None:
        raise HTTPException(status_code=404, detail="Room not found")
    data = room_to_dict(record)
    del data["game_state"]
    return data


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Main WebSocket endpoint."""
    await hub.handle_websocket(websocket)
