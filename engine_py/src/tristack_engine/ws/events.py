"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from ..constants import DRAW_SOURCES, ROOM_CODE_LENGTH


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    START = "start"
    START_SINGLE_PLAYER = "start_single_player"
    CALL = "call"
    TOSS = "toss"
    DISCARD = "discard"
    DRAW = "draw"
    NEXT_ROUND = "next_round"
    RESET = "reset"
    LEAVE = "leave"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    ROOM_JOINED = "room_joined"
    ROOM_UPDATE = "room_update"
    STATE = "state"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_FULL = "ROOM_FULL"
    GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
    NOT_HOST = "NOT_HOST"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
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
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_code_for(code: Optional[str]) -> ErrorCode:
    """Map an engine or store error code onto the wire enum."""
    try:
        return ErrorCode(code)
    except ValueError:
        return ErrorCode.INTERNAL_ERROR


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class CreateRoomEvent(BaseEvent):
    """Create a room and join it as host."""
    type: EventType = EventType.CREATE_ROOM
    name: str = Field(..., min_length=1, max_length=30)


class JoinRoomEvent(BaseEvent):
    """Join an existing room."""
    type: EventType = EventType.JOIN_ROOM
    code: str = Field(..., min_length=ROOM_CODE_LENGTH, max_length=ROOM_CODE_LENGTH)
    name: str = Field(..., min_length=1, max_length=30)


class StartEvent(BaseEvent):
    """Start the match in the current room (host only)."""
    type: EventType = EventType.START
    total_rounds: Optional[int] = Field(default=None, ge=1, le=50)


class StartSinglePlayerEvent(BaseEvent):
    """Start a match against bots on this connection."""
    type: EventType = EventType.START_SINGLE_PLAYER
    name: str = Field(default="Player", min_length=1, max_length=30)
    total_rounds: Optional[int] = Field(default=None, ge=1, le=50)


class CallEvent(BaseEvent):
    """Call SHOW."""
    type: EventType = EventType.CALL


class TossEvent(BaseEvent):
    """Toss a pair."""
    type: EventType = EventType.TOSS
    card_ids: List[str] = Field(..., max_length=4)


class DiscardEvent(BaseEvent):
    """Discard a single card."""
    type: EventType = EventType.DISCARD
    card_ids: List[str] = Field(..., max_length=4)


class DrawEvent(BaseEvent):
    """Draw from the deck or the open pile."""
    type: EventType = EventType.DRAW
    source: str = Field(..., pattern="^(" + "|".join(DRAW_SOURCES) + ")$")


class NextRoundEvent(BaseEvent):
    """Move on from a finished round."""
    type: EventType = EventType.NEXT_ROUND


class ResetEvent(BaseEvent):
    """Send the room back to the lobby (host only)."""
    type: EventType = EventType.RESET


class LeaveEvent(BaseEvent):
    """Leave the current room."""
    type: EventType = EventType.LEAVE


class RequestStateEvent(BaseEvent):
    """Request the current state."""
    type: EventType = EventType.REQUEST_STATE


# Union type for all inbound events
InboundEvent = Union[
    CreateRoomEvent,
    JoinRoomEvent,
    StartEvent,
    StartSinglePlayerEvent,
    CallEvent,
    TossEvent,
    DiscardEvent,
    DrawEvent,
    NextRoundEvent,
    ResetEvent,
    LeaveEvent,
    RequestStateEvent,
]


# Outbound event models
class RoomJoinedEvent(BaseModel):
    """Room join confirmation."""
    type: OutboundEventType = OutboundEventType.ROOM_JOINED
    code: str
    player_id: int
    host: bool
    timestamp: float


class RoomUpdateEvent(BaseModel):
    """Room record as seen by one player."""
    type: OutboundEventType = OutboundEventType.ROOM_UPDATE
    room: Dict[str, Any]
    timestamp: float


class StateEvent(BaseModel):
    """Game state of a single player match."""
    type: OutboundEventType = OutboundEventType.STATE
    state: Dict[str, Any]
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN_ROOM: JoinRoomEvent,
    EventType.START: StartEvent,
    EventType.START_SINGLE_PLAYER: StartSinglePlayerEvent,
    EventType.CALL: CallEvent,
    EventType.TOSS: TossEvent,
    EventType.DISCARD: DiscardEvent,
    EventType.DRAW: DrawEvent,
    EventType.NEXT_ROUND: NextRoundEvent,
    EventType.RESET: ResetEvent,
    EventType.LEAVE: LeaveEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
}


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_class = EVENT_MAP[event_type]
    try:
        return event_class(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_room_joined_event(code: str, player_id: int, host: bool) -> RoomJoinedEvent:
    """Create a room joined event."""
    return RoomJoinedEvent(code=code, player_id=player_id, host=host, timestamp=time.time())


def create_room_update_event(room: Dict[str, Any]) -> RoomUpdateEvent:
    """Create a room update event."""
    return RoomUpdateEvent(room=room, timestamp=time.time())


def create_state_event(state: Dict[str, Any]) -> StateEvent:
    """Create a single player state event."""
    return StateEvent(state=state, timestamp=time.time())
