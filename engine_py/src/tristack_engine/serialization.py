"""
State serialization and sanitization utilities.
"""

from typing import Any, Dict, List, Optional

import orjson

from .constants import DEFAULT_TOTAL_ROUNDS, PHASE_MATCH_END, PHASE_ROUND_END, PHASE_SETUP, WAITING_ACTION
from .models import Card, GameState, Player, RoomPlayer, RoomRecord


def card_to_dict(card: Optional[Card]) -> Optional[Dict[str, Any]]:
    if card is None:
        return None
    return {"id": card.id, "suit": card.suit, "rank": card.rank, "value": card.value}


def card_from_dict(data: Optional[Dict[str, Any]]) -> Optional[Card]:
    if not data:
        return None
    return Card(
        id=data.get("id", ""),
        suit=data.get("suit", ""),
        rank=data.get("rank", ""),
        value=data.get("value") or 0,
    )


def _cards_from_list(items: Optional[List[Any]]) -> List[Card]:
    cards = (card_from_dict(item) for item in (items or []))
    return [card for card in cards if card is not None]


def player_to_dict(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "is_bot": player.is_bot,
        "hand": [card_to_dict(c) for c in player.hand],
        "score": player.score,
        "total_score": player.total_score,
        "last_action": player.last_action,
        "was_caller": player.was_caller,
    }


def player_from_dict(data: Dict[str, Any]) -> Player:
    return Player(
        id=data.get("id", 0),
        name=data.get("name", ""),
        is_bot=bool(data.get("is_bot", False)),
        hand=_cards_from_list(data.get("hand")),
        score=data.get("score") or 0,
        total_score=data.get("total_score") or 0,
        last_action=data.get("last_action") or WAITING_ACTION,
        was_caller=bool(data.get("was_caller", False)),
    )


def state_to_dict(state: GameState) -> Dict[str, Any]:
    """Full snapshot of the state, hands included."""
    return {
        "mode": state.mode,
        "deck": [card_to_dict(c) for c in state.deck],
        "open_deck": [card_to_dict(c) for c in state.open_deck],
        "players": [player_to_dict(p) for p in state.players],
        "current_player_index": state.current_player_index,
        "round_joker": card_to_dict(state.round_joker),
        "round_number": state.round_number,
        "total_rounds": state.total_rounds,
        "phase": state.phase,
        "pending_discard": card_to_dict(state.pending_discard),
        "pending_toss": [card_to_dict(c) for c in state.pending_toss],
        "tossed_this_turn": state.tossed_this_turn,
        "last_discarded_id": state.last_discarded_id,
        "turn_log": list(state.turn_log),
        "is_transitioning": state.is_transitioning,
        "player_names": list(state.player_names),
        "version": state.version,
    }


def state_from_dict(data: Dict[str, Any]) -> GameState:
    """Rebuild a state from a snapshot; missing fields fall back to defaults."""
    return GameState(
        mode=data.get("mode"),
        deck=_cards_from_list(data.get("deck")),
        open_deck=_cards_from_list(data.get("open_deck")),
        players=[player_from_dict(p) for p in (data.get("players") or []) if p],
        current_player_index=data.get("current_player_index") or 0,
        round_joker=card_from_dict(data.get("round_joker")),
        round_number=data.get("round_number") or 1,
        total_rounds=data.get("total_rounds") or DEFAULT_TOTAL_ROUNDS,
        phase=data.get("phase") or PHASE_SETUP,
        pending_discard=card_from_dict(data.get("pending_discard")),
        pending_toss=_cards_from_list(data.get("pending_toss")),
        tossed_this_turn=bool(data.get("tossed_this_turn", False)),
        last_discarded_id=data.get("last_discarded_id"),
        turn_log=list(data.get("turn_log") or []),
        is_transitioning=bool(data.get("is_transitioning", False)),
        player_names=list(data.get("player_names") or []),
        version=data.get("version") or 0,
    )


def room_to_dict(record: RoomRecord) -> Dict[str, Any]:
    return {
        "code": record.code,
        "host_id": record.host_id,
        "players": [{"id": p.id, "name": p.name} for p in record.players],
        "status": record.status,
        "game_state": record.game_state,
    }


def room_from_dict(data: Dict[str, Any]) -> RoomRecord:
    return RoomRecord(
        code=data.get("code", ""),
        host_id=data.get("host_id", ""),
        players=[RoomPlayer(id=p.get("id", 0), name=p.get("name", "")) for p in (data.get("players") or [])],
        status=data.get("status", ""),
        game_state=data.get("game_state"),
    )


def dumps(data: Any) -> str:
    return orjson.dumps(data).decode()


def loads(raw) -> Any:
    return orjson.loads(raw)


def sanitize_state(state: GameState, viewer_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Sanitize game state for transmission to one client.

    Args:
        state: Game state to sanitize
        viewer_id: Player viewing the state (sees their own hand)

    Returns:
        Snapshot where the deck is a count and other hands are hidden until
        the round is revealed
    """
    revealed = state.phase in (PHASE_ROUND_END, PHASE_MATCH_END)
    sanitized = state_to_dict(state)
    del sanitized["deck"]
    sanitized["deck_count"] = len(state.deck)

    for player_data, player in zip(sanitized["players"], state.players):
        player_data["hand_count"] = len(player.hand)
        if not revealed and player.id != viewer_id:
            del player_data["hand"]

    return sanitized
