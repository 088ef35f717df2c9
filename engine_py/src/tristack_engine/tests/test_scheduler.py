"""
Tests for delayed bot commands.
"""

import asyncio
import random

from tristack_engine.bots.base import BotAction
from tristack_engine.constants import (
    DECK_SIZE, MODE_SINGLE_PLAYER, PHASE_ROUND_END, PHASE_TURN_START, RANK_VALUES
)
from tristack_engine.engine import MatchSession
from tristack_engine.models import Card, GameState, Player
from tristack_engine.scheduler import ActionQueue, BotDriver, QueuedAction, bot_should_act


def bot_session(seed):
    session = MatchSession(rng=random.Random(seed))
    bots = [Player(id=i, name=f"Bot {i}", is_bot=True) for i in range(4)]
    session.start_round(1, bots, MODE_SINGLE_PLAYER)
    return session


def human_session():
    session = MatchSession(GameState(player_names=["Ann"]), rng=random.Random(1))
    session.start_round(1, mode=MODE_SINGLE_PLAYER)
    return session


def test_queue_releases_by_delay():
    handled = []
    queue = ActionQueue(lambda command: handled.append(command.player_id))

    async def scenario():
        queue.schedule(QueuedAction(1, BotAction.call(), 0), delay=0.02)
        queue.schedule(QueuedAction(2, BotAction.call(), 0), delay=0)
        return await queue.drain()

    assert asyncio.run(scenario()) == 2
    assert handled == [2, 1]
    assert not queue.has_work()


def test_queue_cancel_all():
    handled = []
    queue = ActionQueue(lambda command: handled.append(command))

    async def scenario():
        queue.schedule(QueuedAction(1, BotAction.call(), 0), delay=10)
        queue.cancel_all()
        return await queue.drain()

    assert asyncio.run(scenario()) == 0
    assert handled == []


def test_bot_should_act():
    session = bot_session(3)
    assert bot_should_act(session.state)

    assert not bot_should_act(human_session().state)

    session.state.is_transitioning = True
    assert not bot_should_act(session.state)


def test_bots_play_out_round():
    """Test an all-bot table plays through to a call."""
    session = bot_session(5)
    driver = BotDriver(session, delay=0)

    final = asyncio.run(driver.play_out())

    assert final.phase == PHASE_ROUND_END
    assert final.card_count() == DECK_SIZE
    assert sum(p.was_caller for p in final.players) == 1


def test_driver_idle_on_human_turn():
    session = human_session()
    version = session.state.version
    driver = BotDriver(session, delay=0)

    final = asyncio.run(driver.play_out())
    assert final.version == version
    assert final.phase == PHASE_TURN_START


def test_bots_take_over_after_human_turn():
    session = human_session()
    driver = BotDriver(session, delay=0)
    human = session.state.players[0]

    async def scenario():
        session.discard(human.hand[0].id)
        session.draw("DECK")
        return await driver.play_out()

    final = asyncio.run(scenario())
    assert final.current_player_index == 0 or final.phase == PHASE_ROUND_END
    assert final.version > 3


def test_stale_command_dropped():
    """Test a command for a seat that is no longer current is skipped."""
    session = human_session()
    driver = BotDriver(session, delay=0)
    state = session.state

    command = QueuedAction(player_id=2, action=BotAction.call(), version=state.version)
    assert driver._execute(command) is None
    assert session.state is state


def test_stop_detaches_listener():
    session = human_session()
    driver = BotDriver(session, delay=0)
    driver.stop()
    assert driver.schedule_next() is None


def make_card(rank, suit):
    return Card(id=f"{rank}-{suit}", suit=suit, rank=rank, value=RANK_VALUES[rank])


def bot_turn_state(hand, joker, version):
    players = [
        Player(id=0, name="Ann", hand=[make_card('2', 'Hearts')]),
        Player(id=1, name="Bot 1", is_bot=True, hand=hand),
    ]
    return GameState(
        mode=MODE_SINGLE_PLAYER,
        players=players,
        current_player_index=1,
        round_joker=joker,
        phase=PHASE_TURN_START,
        version=version,
    )


def test_command_dropped_after_snapshot():
    """Test a bot acts on the hand it holds when its command fires."""
    old_hand = [make_card('K', 'Clubs'), make_card('Q', 'Diamonds'), make_card('9', 'Spades')]
    session = MatchSession(bot_turn_state(old_hand, make_card('A', 'Hearts'), 5))
    driver = BotDriver(session, delay=0)

    new_hand = [make_card('K', 'Clubs'), make_card('A', 'Diamonds'), make_card('2', 'Spades')]

    async def scenario():
        stale = driver.schedule_next()
        assert stale.action == BotAction.discard(['K-Clubs'])

        session.apply_snapshot(bot_turn_state(new_hand, make_card('K', 'Hearts'), 6))
        fresh = driver.schedule_next()
        assert fresh.action == BotAction.call()

        return await driver.queue.drain(max_commands=2)

    assert asyncio.run(scenario()) == 2
    final = session.state
    assert final.phase == PHASE_ROUND_END
    assert final.players[1].was_caller
    assert [c.id for c in final.players[1].hand] == [c.id for c in new_hand]
