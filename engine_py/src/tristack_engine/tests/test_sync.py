"""
Tests for replication between a session and the room store.
"""

import asyncio
import logging
import random

from tristack_engine.constants import (
    MODE_ONLINE_CLIENT, MODE_ONLINE_HOST, MODE_SINGLE_PLAYER, PHASE_MATCH_END, PHASE_ROUND_END,
    STATUS_FINISHED, STATUS_PLAYING, STATUS_WAITING
)
from tristack_engine.engine import MatchSession
from tristack_engine.models import GameState, Player, RoomRecord
from tristack_engine.rooms import InMemoryRoomStore
from tristack_engine.serialization import state_to_dict
from tristack_engine.sync import SyncBridge, SyncOutcome, status_for


class RecordingStore:
    def __init__(self):
        self.updates = []

    def update_game_state(self, code, game_state, status):
        self.updates.append((code, game_state, status))


class BrokenStore:
    def update_game_state(self, code, game_state, status):
        raise ConnectionError("store offline")


class AsyncBrokenStore:
    async def update_game_state(self, code, game_state, status):
        raise ConnectionError("store offline")


def roster():
    return [Player(id=0, name="Alice"), Player(id=1, name="Bob")]


def online_session(store, local_player_id=0, reject_stale=False):
    session = MatchSession(rng=random.Random(8))
    bridge = SyncBridge(session, store, "ABCD", local_player_id=local_player_id, reject_stale=reject_stale)
    return session, bridge


def test_local_changes_pushed():
    """Test every local change overwrites the room snapshot."""
    store = RecordingStore()
    session, _ = online_session(store)
    session.start_round(1, roster(), MODE_ONLINE_HOST)
    session.call()

    assert len(store.updates) == 2
    code, snapshot, status = store.updates[-1]
    assert code == "ABCD"
    assert snapshot["phase"] == PHASE_ROUND_END
    assert snapshot["version"] == session.state.version
    assert status == STATUS_PLAYING


def test_offline_modes_not_pushed():
    store = RecordingStore()
    session, bridge = online_session(store)
    session.start_round(1, roster(), MODE_SINGLE_PLAYER)
    assert store.updates == []
    assert not bridge.push(session.state)


def test_push_into_room_store():
    store = InMemoryRoomStore()
    code = store.create_room("Alice", "h").code
    store.join_room(code, "Bob")

    session = MatchSession()
    SyncBridge(session, store, code, local_player_id=0)
    session.start_round(1, roster(), MODE_ONLINE_HOST)

    room = store.get_room(code)
    assert room.status == STATUS_PLAYING
    assert room.game_state["version"] == session.state.version
    assert len(room.game_state["players"][1]["hand"]) == 3


def test_push_failure_logged(caplog):
    session, bridge = online_session(BrokenStore())
    result = session.start_round(1, roster(), MODE_ONLINE_HOST)

    assert result.success
    assert "Failed to sync game state" in caplog.text


def test_async_push_failure_logged(caplog):
    session, bridge = online_session(AsyncBrokenStore())

    async def scenario():
        session.start_round(1, roster(), MODE_ONLINE_HOST)
        for _ in range(3):
            await asyncio.sleep(0)

    asyncio.run(scenario())
    assert "Failed to sync game state" in caplog.text


def test_async_push_without_loop_dropped(caplog):
    session, bridge = online_session(AsyncBrokenStore())
    with caplog.at_level(logging.ERROR):
        session.start_round(1, roster(), MODE_ONLINE_HOST)
    assert "push dropped" in caplog.text


def _record(state, status=STATUS_PLAYING):
    return RoomRecord(code="ABCD", host_id="h", status=status, game_state=state_to_dict(state))


def _remote_state(version):
    session = MatchSession(rng=random.Random(2))
    session.start_round(1, roster(), MODE_ONLINE_HOST)
    state = session.state
    state.version = version
    return state


def test_apply_remote_snapshot():
    """Test a remote snapshot replaces local state without being pushed back."""
    store = RecordingStore()
    session, bridge = online_session(store, local_player_id=1)
    seen = []
    session.add_listener(lambda state, origin: seen.append(origin))

    outcome = bridge.apply_room_update(_record(_remote_state(4)))

    assert outcome == SyncOutcome.APPLIED
    assert session.state.version == 4
    assert session.state.mode == MODE_ONLINE_CLIENT
    assert seen == ["remote"]
    assert store.updates == []


def test_host_keeps_host_mode():
    session, bridge = online_session(RecordingStore(), local_player_id=0)
    bridge.apply_room_update(_record(_remote_state(2)))
    assert session.state.mode == MODE_ONLINE_HOST


def test_lobby_and_empty_updates():
    session, bridge = online_session(RecordingStore())
    before = session.state

    waiting = RoomRecord(code="ABCD", host_id="h", status=STATUS_WAITING)
    assert bridge.apply_room_update(waiting) == SyncOutcome.RETURN_TO_LOBBY

    empty = RoomRecord(code="ABCD", host_id="h", status=STATUS_PLAYING)
    assert bridge.apply_room_update(empty) == SyncOutcome.IGNORED
    assert session.state is before


def test_stale_snapshots():
    """Test older snapshots apply by default and drop when checked."""
    session, bridge = online_session(RecordingStore(), reject_stale=True)
    session.start_round(1, roster(), MODE_ONLINE_HOST)
    session.call()
    local_version = session.state.version

    assert bridge.apply_room_update(_record(_remote_state(local_version))) == SyncOutcome.STALE
    assert session.state.version == local_version

    lenient, lenient_bridge = online_session(RecordingStore())
    lenient.start_round(1, roster(), MODE_ONLINE_HOST)
    lenient.call()
    outcome = lenient_bridge.apply_room_update(_record(_remote_state(0)))
    assert outcome == SyncOutcome.APPLIED
    assert lenient.state.version == 0


def test_detach_stops_pushes():
    store = RecordingStore()
    session, bridge = online_session(store)
    bridge.detach()
    session.start_round(1, roster(), MODE_ONLINE_HOST)
    assert store.updates == []


def test_status_for_phase():
    assert status_for(GameState(phase=PHASE_MATCH_END)) == STATUS_FINISHED
    assert status_for(GameState(phase=PHASE_ROUND_END)) == STATUS_PLAYING
