"""
Turn state machine for Tri-Stack.

Every action takes the current GameState and returns an ActionResult. A
successful result carries a new state (a deep copy with the change applied
and the version bumped); a rejected one carries the untouched input.
MatchSession owns the single live state of a match and funnels all
mutation through these functions.
"""

import copy
import logging
import random
import threading
from typing import Callable, List, Optional

from .bots.base import BotAction
from .constants import (
    ACTION_CALL, ACTION_DISCARD, ACTION_DRAW, ACTION_TOSS, BOT_NAMES, DEFAULT_PLAYER_NAMES,
    DEFAULT_TOTAL_ROUNDS, MODE_MULTIPLAYER, MODE_SINGLE_PLAYER, PHASE_DRAW, PHASE_MATCH_END,
    PHASE_ROUND_END, PHASE_TOSSING_DRAW, PHASE_TURN_START, SOURCE_OPEN
)
from .errors import (
    ACTION_NOT_ALLOWED, INVALID_PLAYER_COUNT, INVALID_ROUND, MATCH_OVER, UNKNOWN_ACTION
)
from .models import GameState, Player
from .rules import RuleConfig, default_rules
from .scoring import match_winners, round_scores
from .shuffle import choose_joker, create_deck, deal_hands, recycle_open_pile
from .validate import validate_call, validate_discard, validate_draw, validate_toss

logger = logging.getLogger(__name__)

ORIGIN_LOCAL = 'local'
ORIGIN_REMOTE = 'remote'


class ActionResult:
    """Outcome of an engine action."""

    def __init__(
        self,
        success: bool,
        state: GameState,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        self.success = success
        self.state = state
        self.error_code = error_code
        self.error_message = error_message

    @classmethod
    def ok(cls, state: GameState) -> 'ActionResult':
        return cls(True, state)

    @classmethod
    def error(cls, state: GameState, error_code: str, error_message: str) -> 'ActionResult':
        return cls(False, state, error_code, error_message)


def _rejected(state: GameState, error_code: str, error_message: str) -> ActionResult:
    logger.info(f"Rejected action [{error_code}] {error_message}")
    return ActionResult.error(state, error_code, error_message)


# ---------------------------------------------------------------- rounds


def _players_for_round(
    state: GameState,
    mode: Optional[str],
    existing_players: Optional[List[Player]],
    rules: RuleConfig
) -> List[Player]:
    if existing_players:
        return [
            Player(
                id=p.id,
                name=p.name,
                is_bot=p.is_bot,
                total_score=p.total_score or 0,
            )
            for p in existing_players
        ]

    if mode == MODE_SINGLE_PLAYER:
        names = list(state.player_names) or list(DEFAULT_PLAYER_NAMES)
        players = [Player(id=0, name=names[0], is_bot=False)]
        for seat in range(1, rules.single_player_bots + 1):
            if seat < len(names):
                name = names[seat]
            elif seat <= len(BOT_NAMES):
                name = BOT_NAMES[seat - 1]
            else:
                name = f"Bot {seat}"
            players.append(Player(id=seat, name=name, is_bot=True))
        return players

    if mode == MODE_MULTIPLAYER:
        return [Player(id=i, name=name) for i, name in enumerate(state.player_names)]

    return []


def start_round(
    state: Optional[GameState],
    round_number: int,
    existing_players: Optional[List[Player]] = None,
    mode: Optional[str] = None,
    total_rounds: Optional[int] = None,
    rng: Optional[random.Random] = None,
    rules: Optional[RuleConfig] = None
) -> ActionResult:
    """
    Deal a new round.

    Args:
        state: Current state (used for mode, names and round count defaults)
        round_number: Number of the round being started
        existing_players: Roster carried over from a lobby or a previous round
        mode: Game mode; defaults to the state's mode
        total_rounds: Rounds in the match; defaults to the state's setting
        rng: Optional random source
        rules: Rule configuration

    Returns:
        ActionResult with the freshly dealt state
    """
    state = state or GameState()
    rules = rules or default_rules

    if round_number < 1:
        return _rejected(state, INVALID_ROUND, f"Invalid round number: {round_number}")

    mode = mode or state.mode
    players = _players_for_round(state, mode, existing_players, rules)
    if not rules.validate_player_count(len(players)):
        return _rejected(
            state,
            INVALID_PLAYER_COUNT,
            f"Need between {rules.min_players} and {rules.max_players} players, got {len(players)}"
        )

    deck = create_deck(rng)
    joker = choose_joker(deck, rng)
    hands, deck = deal_hands(deck, len(players), rules.hand_size)
    for player, hand in zip(players, hands):
        player.hand = hand

    # The caller of the previous round opens this one
    starting_index = 0
    start_log = f"Round {round_number} started! Joker is {joker.rank}"
    if existing_players:
        for seat, previous in enumerate(existing_players):
            if previous.was_caller:
                starting_index = seat
                start_log = (
                    f"Round {round_number} started! {previous.name} called SHOW "
                    f"last round and will start this round."
                )
                break

    new_state = GameState(
        mode=mode,
        deck=deck,
        open_deck=[],
        players=players,
        current_player_index=starting_index,
        round_joker=joker,
        round_number=round_number,
        total_rounds=total_rounds or state.total_rounds or DEFAULT_TOTAL_ROUNDS,
        phase=PHASE_TURN_START,
        turn_log=[start_log],
        is_transitioning=mode == MODE_MULTIPLAYER,
        player_names=list(state.player_names),
        version=state.version + 1,
    )
    logger.info(start_log)
    return ActionResult.ok(new_state)


def advance_round(
    state: GameState,
    rng: Optional[random.Random] = None,
    rules: Optional[RuleConfig] = None
) -> ActionResult:
    """Start the next round after a call, or end the match after the last one."""
    if state.phase == PHASE_MATCH_END:
        return _rejected(state, MATCH_OVER, "The match is over")
    if state.phase != PHASE_ROUND_END:
        return _rejected(state, ACTION_NOT_ALLOWED, "The round is still being played")

    if state.round_number < state.total_rounds:
        return start_round(
            state,
            state.round_number + 1,
            existing_players=state.players,
            mode=state.mode,
            total_rounds=state.total_rounds,
            rng=rng,
            rules=rules,
        )

    new_state = copy.deepcopy(state)
    new_state.phase = PHASE_MATCH_END
    new_state.is_transitioning = False
    winners = match_winners(new_state.players)
    new_state.add_log(
        f"Match over! Lowest total: {', '.join(p.name for p in winners)}"
    )
    new_state.increment_version()
    return ActionResult.ok(new_state)


def reset_match() -> GameState:
    """Throw the match away."""
    return GameState()


# ---------------------------------------------------------------- turns


def _resolve_call(state: GameState, rules: RuleConfig):
    """Score the round with the current player as caller. Mutates state."""
    caller_index = state.current_player_index
    caller = state.players[caller_index]
    scores = round_scores(state.players, caller_index, state.round_joker, rules)

    for seat, player in enumerate(state.players):
        player.score = scores.get(player.id, 0)
        player.total_score = (player.total_score or 0) + player.score
        player.was_caller = seat == caller_index
        player.last_action = 'CALLED SHOW!' if seat == caller_index else 'Revealed'

    state.phase = PHASE_ROUND_END
    state.is_transitioning = False
    state.tossed_this_turn = False
    state.last_discarded_id = None
    state.add_log(f"{caller.name} called SHOW! Round Ended.")


def _flush_pending(state: GameState):
    """Put held toss cards, then a held discard, on the open pile."""
    if state.pending_toss:
        state.open_deck.extend(state.pending_toss)
    if state.pending_discard is not None:
        state.open_deck.append(state.pending_discard)
    state.pending_toss = []
    state.pending_discard = None


def call(state: GameState, rules: Optional[RuleConfig] = None) -> ActionResult:
    """End the round by calling SHOW."""
    validation = validate_call(state)
    if not validation.valid:
        return _rejected(state, validation.error_code, validation.error_message)

    new_state = copy.deepcopy(state)
    _resolve_call(new_state, rules or default_rules)
    new_state.increment_version()
    return ActionResult.ok(new_state)


def toss(state: GameState, card_ids: List[str]) -> ActionResult:
    """Throw away a same-rank pair; the player must then draw."""
    validation = validate_toss(state, list(card_ids))
    if not validation.valid:
        return _rejected(state, validation.error_code, validation.error_message)

    new_state = copy.deepcopy(state)
    player = new_state.current_player()
    tossed_ids = {card.id for card in validation.cards}
    tossed = [card for card in player.hand if card.id in tossed_ids]
    player.hand = [card for card in player.hand if card.id not in tossed_ids]
    rank = tossed[0].rank

    player.last_action = f"Tossed {rank}s"
    new_state.pending_toss = tossed
    new_state.tossed_this_turn = True
    new_state.phase = PHASE_TOSSING_DRAW
    new_state.add_log(f"{player.name} tossed a pair of {rank}s")
    new_state.increment_version()
    return ActionResult.ok(new_state)


def discard(state: GameState, card_ids: List[str]) -> ActionResult:
    """Put one card aside for the open pile; the player must then draw."""
    validation = validate_discard(state, list(card_ids))
    if not validation.valid:
        return _rejected(state, validation.error_code, validation.error_message)

    new_state = copy.deepcopy(state)
    player = new_state.current_player()
    card = player.find_card(validation.cards[0].id)
    player.hand = [c for c in player.hand if c.id != card.id]

    player.last_action = f"Discarded {card.label()}"
    new_state.pending_discard = card
    new_state.last_discarded_id = card.id
    new_state.phase = PHASE_DRAW
    new_state.add_log(f"{player.name} discarded {card.label()}")
    new_state.increment_version()
    return ActionResult.ok(new_state)


def draw(
    state: GameState,
    source: str,
    rng: Optional[random.Random] = None,
    rules: Optional[RuleConfig] = None
) -> ActionResult:
    """
    Draw from the deck or the open pile, closing the turn.

    An empty deck is refilled from the open pile. When there is nothing to
    refill it with, the current player is made to call and the round ends.
    """
    validation = validate_draw(state, source)
    if not validation.valid:
        return _rejected(state, validation.error_code, validation.error_message)

    new_state = copy.deepcopy(state)
    player = new_state.current_player()

    if source == SOURCE_OPEN:
        drawn = new_state.open_deck.pop()
        action_log = f"{player.name} drew from the Open Pile"
    else:
        if not new_state.deck:
            recycled = recycle_open_pile(new_state.open_deck, rng)
            if recycled is None:
                logger.info("No cards left in deck or open pile, forcing a call")
                _flush_pending(new_state)
                new_state.add_log("No cards left in Deck or Open Pile! Ending round.")
                _resolve_call(new_state, rules or default_rules)
                new_state.increment_version()
                return ActionResult.ok(new_state)

            new_state.deck, new_state.open_deck = recycled
            new_state.add_log("Deck empty! Open pile shuffled into a new deck.")
        drawn = new_state.deck.pop(0)
        action_log = f"{player.name} drew from the Deck"

    player.hand.append(drawn)
    _flush_pending(new_state)

    player.last_action = 'Ended Turn'
    new_state.current_player_index = (new_state.current_player_index + 1) % len(new_state.players)
    new_state.phase = PHASE_TURN_START
    new_state.tossed_this_turn = False
    new_state.last_discarded_id = None
    new_state.is_transitioning = new_state.mode == MODE_MULTIPLAYER
    new_state.add_log(action_log)
    new_state.increment_version()
    return ActionResult.ok(new_state)


def acknowledge_transition(state: GameState) -> ActionResult:
    """Clear the device hand-off flag once the next player has the screen."""
    if not state.is_transitioning:
        return ActionResult.ok(state)
    new_state = copy.deepcopy(state)
    new_state.is_transitioning = False
    new_state.increment_version()
    return ActionResult.ok(new_state)


def apply_action(
    state: GameState,
    action: Optional[BotAction],
    rng: Optional[random.Random] = None,
    rules: Optional[RuleConfig] = None
) -> ActionResult:
    """Dispatch an action request to its handler."""
    if action is None:
        return _rejected(state, UNKNOWN_ACTION, "No action given")
    if action.type == ACTION_CALL:
        return call(state, rules)
    if action.type == ACTION_TOSS:
        return toss(state, action.card_ids)
    if action.type == ACTION_DISCARD:
        return discard(state, action.card_ids)
    if action.type == ACTION_DRAW:
        return draw(state, action.source, rng, rules)
    return _rejected(state, UNKNOWN_ACTION, f"Unknown action: {action.type}")


# ---------------------------------------------------------------- session


Listener = Callable[[GameState, str], None]


class MatchSession:
    """
    Owner of the live GameState for one match.

    UI code, bots and the sync bridge read `state`; only the methods below
    replace it, one at a time under the session lock. Listeners are told
    about every committed change together with its origin ('local' for
    actions taken here, 'remote' for applied snapshots).
    """

    def __init__(
        self,
        state: Optional[GameState] = None,
        rules: Optional[RuleConfig] = None,
        rng: Optional[random.Random] = None
    ):
        self._state = state or GameState()
        self.rules = rules or default_rules
        self.rng = rng
        self.selected_card_ids: List[str] = []
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> GameState:
        return self._state

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, origin: str):
        for listener in list(self._listeners):
            listener(self._state, origin)

    def _commit(self, result: ActionResult, origin: str = ORIGIN_LOCAL) -> ActionResult:
        if result.success and result.state is not self._state:
            self._state = result.state
            self.selected_card_ids = []
            self._notify(origin)
        return result

    def _run(self, action: Callable[..., ActionResult], *args, **kwargs) -> ActionResult:
        with self._lock:
            return self._commit(action(self._state, *args, **kwargs))

    # Match lifecycle

    def start_round(
        self,
        round_number: int,
        existing_players: Optional[List[Player]] = None,
        mode: Optional[str] = None,
        total_rounds: Optional[int] = None
    ) -> ActionResult:
        return self._run(
            start_round, round_number, existing_players, mode, total_rounds,
            rng=self.rng, rules=self.rules
        )

    def advance(self) -> ActionResult:
        return self._run(advance_round, rng=self.rng, rules=self.rules)

    def reset_match(self) -> GameState:
        with self._lock:
            self._state = reset_match()
            self.selected_card_ids = []
            self._notify(ORIGIN_LOCAL)
            return self._state

    def acknowledge_transition(self) -> ActionResult:
        return self._run(acknowledge_transition)

    # Turn actions

    def call(self) -> ActionResult:
        return self._run(call, rules=self.rules)

    def toss(self, card_a: Optional[str] = None, card_b: Optional[str] = None) -> ActionResult:
        """Toss the given pair, or the current selection when none is given."""
        if card_a is None and card_b is None:
            card_ids = list(self.selected_card_ids)
        else:
            card_ids = [card_id for card_id in (card_a, card_b) if card_id is not None]
        return self._run(toss, card_ids)

    def discard(self, card_id: Optional[str] = None) -> ActionResult:
        """Discard the given card, or the current selection when none is given."""
        card_ids = [card_id] if card_id is not None else list(self.selected_card_ids)
        return self._run(discard, card_ids)

    def draw(self, source: str) -> ActionResult:
        return self._run(draw, source, rng=self.rng, rules=self.rules)

    def submit(self, action: Optional[BotAction]) -> ActionResult:
        """Single entry point for bot and human action requests."""
        return self._run(apply_action, action, rng=self.rng, rules=self.rules)

    # Replication

    def apply_snapshot(self, state: GameState):
        """Replace the live state wholesale with one received from elsewhere."""
        with self._lock:
            self._state = state
            self.selected_card_ids = []
            self._notify(ORIGIN_REMOTE)

    # Selection bookkeeping

    def select_card(self, card_id: str) -> bool:
        """Add a card to the selection, keeping at most the two latest picks."""
        with self._lock:
            if self._state.phase != PHASE_TURN_START:
                return False
            if card_id in self.selected_card_ids:
                return True
            if len(self.selected_card_ids) >= 2:
                self.selected_card_ids = self.selected_card_ids[1:]
            self.selected_card_ids.append(card_id)
            return True

    def deselect_card(self, card_id: str) -> bool:
        with self._lock:
            if card_id not in self.selected_card_ids:
                return False
            self.selected_card_ids.remove(card_id)
            return True

    def toggle_card(self, card_id: str) -> bool:
        if card_id in self.selected_card_ids:
            return self.deselect_card(card_id)
        return self.select_card(card_id)

    def clear_selection(self):
        with self._lock:
            self.selected_card_ids = []
