"""
Tests for snapshots and per-viewer sanitizing.
"""

import random

from tristack_engine.constants import MODE_ONLINE_HOST, PHASE_ROUND_END, PHASE_SETUP
from tristack_engine.engine import MatchSession
from tristack_engine.models import Player
from tristack_engine.serialization import (
    dumps, loads, room_from_dict, room_to_dict, sanitize_state, state_from_dict, state_to_dict
)
from tristack_engine.rooms import InMemoryRoomStore


def dealt_state():
    session = MatchSession(rng=random.Random(6))
    session.start_round(1, [Player(id=0, name="Alice"), Player(id=2, name="Bob")], MODE_ONLINE_HOST)
    return session.state


def test_snapshot_restores_state():
    state = dealt_state()
    restored = state_from_dict(loads(dumps(state_to_dict(state))))
    assert restored == state


def test_snapshot_keys_are_snake_case():
    data = state_to_dict(dealt_state())
    assert "current_player_index" in data
    assert "round_joker" in data
    assert "total_score" in data["players"][0]


def test_partial_snapshot_defaults():
    """Test missing fields fall back to defaults."""
    state = state_from_dict({"players": [{"id": 3, "name": "Cal"}], "version": 7})
    assert state.phase == PHASE_SETUP
    assert state.deck == []
    assert state.players[0].hand == []
    assert state.players[0].total_score == 0
    assert state.version == 7
    assert state.round_joker is None


def test_sanitize_hides_other_hands():
    state = dealt_state()
    view = sanitize_state(state, viewer_id=2)

    assert "deck" not in view
    assert view["deck_count"] == len(state.deck)
    alice, bob = view["players"]
    assert "hand" not in alice
    assert alice["hand_count"] == 3
    assert len(bob["hand"]) == 3


def test_sanitize_reveals_at_round_end():
    state = dealt_state()
    state.phase = PHASE_ROUND_END
    view = sanitize_state(state, viewer_id=2)
    assert all(len(p["hand"]) == 3 for p in view["players"])


def test_room_dict():
    store = InMemoryRoomStore()
    room = store.create_room("Alice", "h")
    data = room_to_dict(room)
    assert data["players"] == [{"id": 0, "name": "Alice"}]
    restored = room_from_dict(data)
    assert restored.code == room.code
    assert restored.status == room.status
