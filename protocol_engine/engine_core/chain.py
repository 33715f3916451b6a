"""
Effect chain - conditional follow-ups, continuation queue and counts.

Only one decision is active at a time (GameState.action_required). Work
that must happen after it lives in GameState.queued_actions, front first.

Continuations are inserted with a queue mark: the queue length taken
before a step began. Anything that step's nested triggers queued sits in
front of the mark; the step's own continuation goes right after those,
ahead of older entries. This keeps nested chains resolving before the
outer chain resumes.
"""

from __future__ import annotations
import logging
from typing import Any

from ..spec_schema.effect_dsl import ConditionalType, EffectDefinition
from .context import EffectContext
from .lane_values import effective_value
from .pending import PendingAction, QueuedEffect, QueuedItem
from .state import GameState
from .targeting import find_card_on_board

logger = logging.getLogger(__name__)


# =============================================================================
# Conditionals
# =============================================================================

def process_conditional(effect: EffectDefinition, was_executed: bool) -> EffectDefinition | None:
    """Return the follow-up that should fire, if any."""
    if effect.conditional is None:
        return None
    if effect.conditional.type is ConditionalType.THEN:
        return effect.conditional.then_effect
    if effect.conditional.type is ConditionalType.IF_EXECUTED and was_executed:
        return effect.conditional.then_effect
    return None


def flatten_effect_chain(effect: EffectDefinition) -> list[EffectDefinition]:
    """Walk nested follow-ups into one ordered list."""
    chain = []
    current: EffectDefinition | None = effect
    while current is not None:
        chain.append(current)
        current = current.conditional.then_effect if current.conditional else None
    return chain


# =============================================================================
# Queue
# =============================================================================

def queue_mark(state: GameState) -> int:
    """Remember the queue length before a step runs."""
    return len(state.queued_actions)


def push_continuation(state: GameState, items: tuple[QueuedItem, ...] | list[QueuedItem], mark: int | None = None) -> GameState:
    """Queue items after everything queued since `mark` (default: at the front)."""
    if not items:
        return state
    queue = state.queued_actions
    split = 0 if mark is None else max(0, len(queue) - mark)
    return state._copy_with(queued_actions=queue[:split] + tuple(items) + queue[split:])


def install_decision(state: GameState, pending: PendingAction, mark: int | None = None) -> GameState:
    """Make pending the active decision, or queue it if one is already active."""
    if state.action_required is None:
        return note_interrupt(state._copy_with(action_required=pending))
    logger.debug("Decision %s queued behind %s", pending.type, state.action_required.type)
    return push_continuation(state, (pending,), mark)


def note_interrupt(state: GameState) -> GameState:
    """Record the turn being interrupted when the other side owes a decision."""
    pending = state.action_required
    if pending is None or pending.actor is state.turn or state.interrupted_turn is not None:
        return state
    return state._copy_with(interrupted_turn=state.turn, interrupted_phase=state.phase)


def clear_interrupt(state: GameState) -> GameState:
    """
    Drop the interrupt marker once the other side no longer owes a decision.

    The turn and phase never move while a response is pending, so control
    is back with the interrupted turn as soon as the marker is gone.
    """
    if state.interrupted_turn is None:
        return state
    pending = state.action_required
    if pending is not None and pending.actor is not state.interrupted_turn:
        return state
    if state.phase is not state.interrupted_phase:
        logger.debug("Phase moved from %s to %s during an interrupt", state.interrupted_phase, state.phase)
    return state._copy_with(interrupted_turn=None, interrupted_phase=None)


def queue_pending_effects(
    state: GameState,
    effects: list[EffectDefinition] | tuple[EffectDefinition, ...],
    source_card_id: str,
    lane_index: int,
    context: EffectContext,
    mark: int | None = None,
) -> GameState:
    """Queue not-yet-started effects of a box, to run under `context`."""
    items = tuple(
        QueuedEffect(effect=effect, context=context, source_card_id=source_card_id, lane_index=lane_index)
        for effect in effects
    )
    return push_continuation(state, items, mark)


def get_pending_effects(state: GameState) -> list[QueuedEffect]:
    """Effects waiting in the queue, front first."""
    return [item for item in state.queued_actions if isinstance(item, QueuedEffect)]


def pop_queued(state: GameState) -> tuple[QueuedItem | None, GameState]:
    if not state.queued_actions:
        return None, state
    return state.queued_actions[0], state._copy_with(queued_actions=state.queued_actions[1:])


def was_chain_interrupted(before: GameState, after: GameState) -> bool:
    """True when a step left a new decision or new queued work behind."""
    if after.action_required is not None and after.action_required is not before.action_required:
        return True
    return len(after.queued_actions) > len(before.queued_actions)


# =============================================================================
# Previous-target reference
# =============================================================================

def store_target_card_id(state: GameState, card_id: str | None) -> GameState:
    """Remember the card an effect chose, with its current effective value."""
    value = None
    info = find_card_on_board(state, card_id)
    if info is not None:
        value = effective_value(state, info.card, info.owner, info.lane_index)
    return state._copy_with(last_target_card_id=card_id, last_target_card_value=value)


# =============================================================================
# Counts
# =============================================================================

def count_face_down(state: GameState, lane_index: int | None = None) -> int:
    total = 0
    for side in (state.player, state.opponent):
        for index, lane in enumerate(side.lanes):
            if lane_index is not None and index != lane_index:
                continue
            total += sum(1 for card in lane if not card.is_face_up)
    return total


def resolve_count(raw: Any, state: GameState, context: EffectContext, offset: int = 0) -> int:
    """
    Turn a count parameter into a number.

    Accepts an int, a count type name, or {"type": ..., "offset": n}.
    Types: fixed, equal_to_card_value, equal_to_discarded, hand_size,
    previous_hand_size, count_face_down. "all" is returned as -1.
    """
    lane_index = None
    if isinstance(raw, dict):
        offset += int(raw.get("offset", 0))
        lane_index = raw.get("lane_index")
        if "fixed" in raw:
            return max(0, int(raw["fixed"]) + offset)
        raw = raw.get("type", "fixed")

    if raw is None:
        return max(0, 1 + offset)
    if isinstance(raw, int):
        return max(0, raw + offset)
    if raw in ("all", "all_in_lane", "entire_deck"):
        return -1
    if raw == "equal_to_card_value":
        if context.referenced_card_value is not None:
            value = context.referenced_card_value
        elif state.last_target_card_value is not None:
            value = state.last_target_card_value
        else:
            value = 0
        return max(0, value + offset)
    if raw == "equal_to_discarded":
        return max(0, (context.discarded_count or 0) + offset)
    if raw == "hand_size":
        return max(0, len(state.get(context.actor).hand) + offset)
    if raw == "previous_hand_size":
        return max(0, (context.previous_hand_size or 0) + offset)
    if raw == "count_face_down":
        return max(0, count_face_down(state, lane_index) + offset)
    logger.warning("Unknown count type %r, using 1", raw)
    return max(0, 1 + offset)
