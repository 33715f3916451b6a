"""
Turn phases and player actions.

A turn runs START -> CONTROL -> COMPILE -> ACTION -> HAND_LIMIT -> END.
continue_game() drives the machine forward until someone owes input:
- a decision is open (state.action_required)
- the turn player has not taken their action yet
- the game is over

Queued work always runs before the phase advances. A queued decision
that lost all of its valid choices while it waited is dropped, and its
follow-up runs as "not executed".
"""

from __future__ import annotations
import logging
from typing import Callable

from ..config import HAND_LIMIT, RECOMPILE_DRAW
from ..spec_schema.effect_dsl import EffectTrigger
from .board import delete_card
from .chain import install_decision, pop_queued
from .choices import action_phase_actions, has_valid_choices
from .executors import complete_follow_up, execute_effect
from .executors.base import refresh_values
from .executors.draw import perform_draw, refresh_hand
from .executors.play import play_from_hand
from .lane_values import calculate_compilable_lanes
from .log import clear_log_context, log, set_log_phase
from .passive_rules import skip_check_cache
from .pending import (
    ControlResume,
    Discard,
    PendingAction,
    PromptUseControlMechanic,
    QueuedEffect,
    SelectLaneForCompile,
)
from .state import GamePhase, GameState, InvariantViolation, Player
from .triggers import process_phase_effects, process_reactive_effects

logger = logging.getLogger(__name__)

MAX_STEPS = 10_000

StepResult = tuple[GameState, bool]  # (state, waiting for the turn player)


# =============================================================================
# Driver
# =============================================================================

def continue_game(state: GameState) -> GameState:
    """Advance until a decision, the turn player's action, or the end of the game."""
    for _ in range(MAX_STEPS):
        if state.winner is not None or state.action_required is not None:
            return state
        if state.queued_actions:
            state = process_queue_item(state)
            continue
        state, waiting = PHASE_STEPS[state.phase](state)
        if waiting:
            return state
    raise InvariantViolation(f"Turn {state.turn_number} did not settle after {MAX_STEPS} steps")


def process_queue_item(state: GameState) -> GameState:
    """Run or install the front of the queue."""
    item, state = pop_queued(state)
    if isinstance(item, QueuedEffect):
        return execute_effect(state, item.source_card_id, item.lane_index, item.effect, item.context).new_state
    if isinstance(item, PendingAction):
        if has_valid_choices(state, item):
            return install_decision(state, item)
        logger.debug("Queued %s dropped: no valid choices left", item.type)
        return complete_follow_up(state, item.follow_up, executed=False)
    raise InvariantViolation(f"Unknown queued item: {item!r}")


# =============================================================================
# Phase steps
# =============================================================================

def _start_step(state: GameState) -> StepResult:
    state, finished = process_phase_effects(state, EffectTrigger.START)
    if finished:
        state = state._copy_with(phase=GamePhase.CONTROL)
    return state, False


def _control_step(state: GameState) -> StepResult:
    state = state._copy_with(phase=GamePhase.COMPILE)
    if not state.use_control_mechanic:
        return state, False
    side = state.turn
    own = state.get(side).lane_values
    other = state.get(side.other).lane_values
    winning = sum(1 for mine, theirs in zip(own, other) if mine > theirs)
    if winning >= 2 and state.control_card_holder is not side:
        state = state._copy_with(control_card_holder=side)
        state = log(state, side, f"{side.display_name} gains the Control Component.")
    return state, False


def _compile_step(state: GameState) -> StepResult:
    return open_compile(state, state.turn), False


def _action_step(state: GameState) -> StepResult:
    if state.action_taken:
        return state._copy_with(phase=GamePhase.HAND_LIMIT), False
    if not action_phase_actions(state):
        side = state.turn
        state = log(state, side, f"{side.display_name} has no legal action.")
        return state._copy_with(action_taken=True, phase=GamePhase.HAND_LIMIT), False
    return state, True


def _hand_limit_step(state: GameState) -> StepResult:
    side = state.turn
    state = clear_log_context(state)._copy_with(phase=GamePhase.END)
    if skip_check_cache(state, side):
        return log(state, side, f"{side.display_name} skips the hand limit check."), False
    hand_size = len(state.get(side).hand)
    if hand_size > HAND_LIMIT:
        pending = Discard(actor=side, count=hand_size - HAND_LIMIT, previous_hand_size=hand_size)
        state = install_decision(state, pending)
    return state, False


def _end_step(state: GameState) -> StepResult:
    state, finished = process_phase_effects(state, EffectTrigger.END)
    if finished:
        state = end_turn(state)
    return state, False


PHASE_STEPS: dict[GamePhase, Callable[[GameState], StepResult]] = {
    GamePhase.START: _start_step,
    GamePhase.CONTROL: _control_step,
    GamePhase.COMPILE: _compile_step,
    GamePhase.ACTION: _action_step,
    GamePhase.HAND_LIMIT: _hand_limit_step,
    GamePhase.END: _end_step,
}


def end_turn(state: GameState) -> GameState:
    """Hand the turn to the other side and reset per-turn bookkeeping."""
    side = state.turn
    state = state.update_player(side, cannot_compile=False)
    state = clear_log_context(state)
    return state._copy_with(
        turn=side.other,
        phase=GamePhase.START,
        turn_number=state.turn_number + 1,
        action_taken=False,
        compilable_lanes=(),
        phase_snapshot=None,
        processed_start_effect_ids=frozenset(),
        processed_end_effect_ids=frozenset(),
        processed_uncover_event_ids=frozenset(),
        discard_context=None,
        last_target_card_id=None,
        last_target_card_value=None,
        revealed_deck_top_id=None,
        effect_skipped_no_targets=False,
    )


# =============================================================================
# Compile
# =============================================================================

def open_compile(state: GameState, side: Player, offer_control: bool = True) -> GameState:
    """Ask side which lane to compile, or move on to the action phase."""
    lanes = calculate_compilable_lanes(state, side)
    state = state._copy_with(compilable_lanes=tuple(lanes))
    if not lanes:
        return state._copy_with(phase=GamePhase.ACTION)
    if offer_control and state.use_control_mechanic and state.control_card_holder is side:
        prompt = PromptUseControlMechanic(actor=side, resume=ControlResume(action="compile"))
        return install_decision(state, prompt)
    return install_decision(state, SelectLaneForCompile(actor=side, valid_lanes=tuple(lanes)))


def compile_lane(state: GameState, side: Player, lane_index: int) -> GameState:
    """
    Compile one of side's lanes.

    Both stacks in the lane go to their owners' trash. Compiling an already
    compiled protocol draws from the opponent's deck instead. Compiling
    counts as the turn's action.
    """
    protocol = state.get(side).protocols[lane_index]
    state = set_log_phase(clear_log_context(state), "compile")
    state = log(state, side, f"{side.display_name} compiles Protocol {protocol}!")

    deleted = 0
    for owner in (side, side.other):
        for card in state.get(owner).lanes[lane_index]:
            state, info = delete_card(state, card.id, side, count_stat=False)
            deleted += info is not None
    state = state.with_hint("compile", owner=side, lane_index=lane_index)
    state = state._copy_with(action_taken=True, phase=GamePhase.HAND_LIMIT, compilable_lanes=())

    compiled = state.get(side).compiled
    if compiled[lane_index]:
        state, _ = perform_draw(state, side, RECOMPILE_DRAW, deck_owner=side.other)
    else:
        flags = list(compiled)
        flags[lane_index] = True
        state = state.update_player(side, compiled=tuple(flags))
    state = refresh_values(state)

    if all(state.get(side).compiled):
        state = log(state, side, f"{side.display_name} wins the game!")
        return state._copy_with(winner=side)

    if deleted:
        state = process_reactive_effects(state, EffectTrigger.AFTER_DELETE, side)
    state = process_reactive_effects(state, EffectTrigger.AFTER_COMPILE, side)
    return process_reactive_effects(state, EffectTrigger.AFTER_OPPONENT_COMPILE, side)


# =============================================================================
# Player actions
# =============================================================================

def _begin_action(state: GameState) -> GameState:
    return clear_log_context(state)._copy_with(action_taken=True)


def play_card_action(state: GameState, side: Player, card_id: str, lane_index: int, face_up: bool) -> GameState:
    """Play a hand card as the turn's action (legality already checked)."""
    state = play_from_hand(_begin_action(state), side, card_id, lane_index, face_up)
    return continue_game(refresh_values(state))


def _refresh(state: GameState, side: Player) -> GameState:
    state, _ = refresh_hand(state, side)
    return state.with_player(side, state.get(side).with_stats(hands_refreshed=1))


def refresh_action(state: GameState, side: Player) -> GameState:
    """Refresh as the turn's action; the control component may be used first."""
    state = _begin_action(state)
    if state.use_control_mechanic and state.control_card_holder is side:
        prompt = PromptUseControlMechanic(actor=side, resume=ControlResume(action="refresh"))
        return install_decision(state, prompt)
    return continue_game(_refresh(state, side))


def resume_after_control(state: GameState, side: Player, resume: ControlResume) -> GameState:
    """Carry on with the compile or refresh that the control prompt interrupted."""
    if resume.action == "compile":
        return open_compile(state, side, offer_control=False)
    if resume.action == "refresh":
        return _refresh(state, side)
    raise InvariantViolation(f"Unknown control resume action: {resume.action}")
