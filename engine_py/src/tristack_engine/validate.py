"""
Legality checks for turn actions.
"""

from typing import List, Optional

from .constants import (
    DRAW_PHASES, DRAW_SOURCES, PHASE_DRAW, PHASE_MATCH_END, PHASE_TURN_START, SOURCE_OPEN
)
from .errors import (
    ACTION_NOT_ALLOWED, ALREADY_TOSSED, EMPTY_PILE, INVALID_SELECTION, INVALID_TOSS,
    MATCH_OVER, OWN_DISCARD, OWNERSHIP_MISMATCH
)
from .models import Card, GameState


class ValidationResult:
    """Result of action validation."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        cards: Optional[List[Card]] = None
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message
        self.cards = cards or []

    @classmethod
    def success(cls, cards: Optional[List[Card]] = None) -> 'ValidationResult':
        """Create a successful validation result."""
        return cls(valid=True, cards=cards)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ValidationResult':
        """Create an error validation result."""
        return cls(valid=False, error_code=error_code, error_message=error_message)


def _check_phase(state: GameState, allowed) -> Optional[ValidationResult]:
    if state.phase == PHASE_MATCH_END:
        return ValidationResult.error(MATCH_OVER, "The match is over")
    if state.phase not in allowed:
        return ValidationResult.error(
            ACTION_NOT_ALLOWED,
            f"Action not allowed in phase {state.phase}"
        )
    if state.current_player() is None:
        return ValidationResult.error(ACTION_NOT_ALLOWED, "No player is seated for this turn")
    return None


def _owned_cards(state: GameState, card_ids: List[str]):
    player = state.current_player()
    cards = [player.find_card(card_id) for card_id in card_ids]
    if any(card is None for card in cards):
        return None
    return cards


def validate_call(state: GameState) -> ValidationResult:
    """A call is legal at the start of any turn."""
    problem = _check_phase(state, (PHASE_TURN_START,))
    return problem or ValidationResult.success()


def validate_toss(state: GameState, card_ids: List[str]) -> ValidationResult:
    """
    Validate a toss of a same-rank pair.

    Args:
        state: Current game state
        card_ids: Selected card ids

    Returns:
        ValidationResult holding the two cards on success
    """
    problem = _check_phase(state, (PHASE_TURN_START,))
    if problem:
        return problem

    if state.tossed_this_turn:
        return ValidationResult.error(ALREADY_TOSSED, "Already tossed this turn")

    if len(card_ids) != 2 or card_ids[0] == card_ids[1]:
        return ValidationResult.error(INVALID_SELECTION, "Select exactly two cards to toss")

    cards = _owned_cards(state, card_ids)
    if cards is None:
        return ValidationResult.error(OWNERSHIP_MISMATCH, "You can only toss cards from your hand")

    if cards[0].rank != cards[1].rank:
        return ValidationResult.error(INVALID_TOSS, "Must toss a pair of the same rank!")

    joker = state.round_joker
    if joker is not None and cards[0].rank == joker.rank:
        return ValidationResult.error(INVALID_TOSS, "Jokers cannot be tossed")

    return ValidationResult.success(cards)


def validate_discard(state: GameState, card_ids: List[str]) -> ValidationResult:
    """Validate a single-card discard."""
    problem = _check_phase(state, (PHASE_TURN_START,))
    if problem:
        return problem

    if len(card_ids) != 1:
        return ValidationResult.error(INVALID_SELECTION, "Select exactly one card to discard")

    cards = _owned_cards(state, card_ids)
    if cards is None:
        return ValidationResult.error(OWNERSHIP_MISMATCH, "You can only discard cards from your hand")

    return ValidationResult.success(cards)


def validate_draw(state: GameState, source: str) -> ValidationResult:
    """
    Validate a draw. An empty draw pile is not an error here; the engine
    recycles the open pile or ends the round.
    """
    problem = _check_phase(state, DRAW_PHASES)
    if problem:
        return problem

    if source not in DRAW_SOURCES:
        return ValidationResult.error(ACTION_NOT_ALLOWED, f"Unknown draw source: {source}")

    if source == SOURCE_OPEN:
        top_card = state.open_top()
        if top_card is None:
            return ValidationResult.error(EMPTY_PILE, "The open pile is empty")
        if state.phase == PHASE_DRAW and top_card.id == state.last_discarded_id:
            return ValidationResult.error(OWN_DISCARD, "Cannot pick up the card you just discarded!")

    return ValidationResult.success()
