"""
Delayed bot commands.

A bot's action is decided as soon as its turn comes up, then held back for a
short delay and placed on a queue. One consumer drains the queue and submits
each command through MatchSession.submit, the same path human actions take.
A command decided on an older state version is dropped; the change that
moved the version on has already scheduled a fresh decision.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

from .bots.base import BotAction
from .bots.greedy import GreedyBot
from .constants import TURN_PHASES
from .engine import ActionResult, MatchSession
from .models import GameState

logger = logging.getLogger(__name__)


@dataclass
class QueuedAction:
    player_id: int
    action: BotAction
    version: int  # state version the action was decided on


class ActionQueue:
    """Single-consumer queue of commands released after a delay."""

    def __init__(self, handler: Callable[[QueuedAction], Optional[ActionResult]]):
        self._handler = handler
        self._queue: Optional[asyncio.Queue] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    def schedule(self, command: QueuedAction, delay: float = 0.0) -> asyncio.Task:
        """Queue a command after `delay` seconds. Needs a running loop."""
        task = asyncio.get_running_loop().create_task(self._put_later(command, delay))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _put_later(self, command: QueuedAction, delay: float):
        if delay > 0:
            await asyncio.sleep(delay)
        await self.queue.put(command)

    def has_work(self) -> bool:
        return bool(self._pending) or not self.queue.empty()

    def _handle(self, command: QueuedAction):
        try:
            self._handler(command)
        finally:
            self.queue.task_done()

    async def run(self):
        """Consume commands forever."""
        while True:
            command = await self.queue.get()
            self._handle(command)

    async def drain(self, max_commands: Optional[int] = None) -> int:
        """Process commands until nothing is queued or pending."""
        handled = 0
        while self.has_work():
            if max_commands is not None and handled >= max_commands:
                break
            if self.queue.empty():
                await asyncio.wait(set(self._pending))
                continue
            self._handle(self.queue.get_nowait())
            handled += 1
        return handled

    def cancel_all(self):
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        while self._queue is not None and not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()


def bot_should_act(state: GameState) -> bool:
    player = state.current_player()
    return (
        player is not None and
        player.is_bot and
        state.phase in TURN_PHASES and
        not state.is_transitioning
    )


class BotDriver:
    """Plays the bot seats of a session."""

    def __init__(self, session: MatchSession, delay: Optional[float] = None):
        self.session = session
        self.delay = session.rules.bot_delay if delay is None else delay
        self.queue = ActionQueue(self._execute)
        self._active = False
        self._consumer: Optional[asyncio.Task] = None
        session.add_listener(self._on_change)

    def _on_change(self, state: GameState, origin: str):
        if self._active:
            self.schedule_next(state)

    def schedule_next(self, state: Optional[GameState] = None) -> Optional[QueuedAction]:
        state = state or self.session.state
        if not bot_should_act(state):
            return None

        player = state.current_player()
        action = GreedyBot(player.id, self.session.rules).choose_action(state)
        if action is None:
            return None

        command = QueuedAction(player_id=player.id, action=action, version=state.version)
        logger.info(f"Scheduling {action.type} for bot {player.name}")
        self.queue.schedule(command, self.delay)
        return command

    def _execute(self, command: QueuedAction) -> Optional[ActionResult]:
        current = self.session.state.current_player()
        if current is None or current.id != command.player_id:
            logger.info(f"Dropping stale command for bot {command.player_id}")
            return None
        if command.version != self.session.state.version:
            logger.info(
                f"Dropping command for bot {command.player_id} decided on "
                f"v{command.version} (now v{self.session.state.version})"
            )
            return None

        result = self.session.submit(command.action)
        if not result.success:
            logger.warning(
                f"Bot {command.player_id} action {command.action.type} rejected: "
                f"{result.error_message}"
            )
        return result

    def start(self) -> asyncio.Task:
        """Start consuming in the background of the running loop."""
        self._active = True
        self._consumer = asyncio.get_running_loop().create_task(self.queue.run())
        self.schedule_next()
        return self._consumer

    def stop(self):
        self._active = False
        self.queue.cancel_all()
        if self._consumer is not None:
            self._consumer.cancel()
            self._consumer = None
        self.session.remove_listener(self._on_change)

    async def play_out(self, max_actions: int = 1000) -> GameState:
        """Run bot turns until a human has to act or the round is over."""
        self._active = True
        try:
            self.schedule_next()
            await self.queue.drain(max_commands=max_actions)
        finally:
            self._active = False
        return self.session.state
