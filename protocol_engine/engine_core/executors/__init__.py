"""
Effect executors and the dispatcher that runs them.

execute_effect is the single entry point for running one effect:
1. The source card must still be active (on the board, face-up, and
   uncovered for middle/bottom effects)
2. Middle effects in a lane with an ignore-middle rule are skipped
3. "You may" effects become a yes/no prompt first
4. The handler runs; a decision it asks for is installed with the
   effect's conditional follow-up attached
5. Otherwise the follow-up runs now, or queues behind a decision that
   nested triggers opened
"""

from __future__ import annotations
import logging
from typing import Callable

from ...spec_schema.effect_dsl import ConditionalType, EffectAction, EffectDefinition, EffectPosition
from ..chain import install_decision, process_conditional, push_continuation, queue_mark, queue_pending_effects
from ..context import EffectContext
from ..passive_rules import should_ignore_middle_command
from ..pending import FollowUp, PromptOptionalEffect, QueuedEffect
from ..state import GameState, PlayedCard
from ..targeting import TargetInfo, find_card_on_board
from .base import EffectResult, refresh_values
from .delete import execute_delete
from .discard import execute_discard
from .draw import execute_draw, execute_mutual_draw, execute_refresh
from .flip import execute_flip
from .misc import execute_block_compile, execute_choice, execute_shuffle_deck, execute_shuffle_trash, execute_take
from .play import execute_play
from .protocols import execute_rearrange, execute_swap
from .return_card import execute_return
from .reveal import execute_give, execute_reveal
from .shift import execute_shift

logger = logging.getLogger(__name__)

Handler = Callable[[PlayedCard, int, GameState, EffectContext, EffectDefinition], EffectResult]

HANDLERS: dict[EffectAction, Handler] = {
    EffectAction.DELETE: execute_delete,
    EffectAction.DISCARD: execute_discard,
    EffectAction.RETURN: execute_return,
    EffectAction.SHIFT: execute_shift,
    EffectAction.FLIP: execute_flip,
    EffectAction.DRAW: execute_draw,
    EffectAction.REFRESH: execute_refresh,
    EffectAction.MUTUAL_DRAW: execute_mutual_draw,
    EffectAction.PLAY: execute_play,
    EffectAction.TAKE: execute_take,
    EffectAction.REVEAL: execute_reveal,
    EffectAction.GIVE: execute_give,
    EffectAction.REARRANGE_PROTOCOLS: execute_rearrange,
    EffectAction.SWAP_PROTOCOLS: execute_swap,
    EffectAction.CHOICE: execute_choice,
    EffectAction.BLOCK_COMPILE: execute_block_compile,
    EffectAction.SHUFFLE_TRASH: execute_shuffle_trash,
    EffectAction.SHUFFLE_DECK: execute_shuffle_deck,
}


def source_is_active(info: TargetInfo | None, effect: EffectDefinition) -> bool:
    """A card's effect only runs while the card itself is active."""
    if info is None or not info.card.is_face_up:
        return False
    if effect.position is EffectPosition.TOP:
        return True
    return info.is_uncovered


def chain_context(state: GameState, context: EffectContext) -> EffectContext:
    """Carry discard counts and the last chosen card's value into a follow-up."""
    if state.discard_context is not None:
        context = context.with_discard(state.discard_context.discarded_count, state.discard_context.previous_hand_size)
    if state.last_target_card_value is not None:
        context = context.with_referenced_value(state.last_target_card_value)
    return context


def run_or_queue(
    state: GameState,
    source_card_id: str,
    lane_index: int,
    effect: EffectDefinition,
    context: EffectContext,
    mark: int | None = None,
) -> GameState:
    """Run an effect now, or queue it if a decision is open."""
    if state.action_required is None:
        return execute_effect(state, source_card_id, lane_index, effect, context).new_state
    item = QueuedEffect(effect=effect, context=context, source_card_id=source_card_id, lane_index=lane_index)
    return push_continuation(state, (item,), mark)


def complete_follow_up(state: GameState, follow_up: FollowUp | None, executed: bool, mark: int | None = None) -> GameState:
    """Fire a resolved decision's follow-up if its conditional allows."""
    if follow_up is None:
        return state
    if follow_up.conditional_type is ConditionalType.IF_EXECUTED and not executed:
        logger.debug("Follow-up %s dropped: parent effect did not execute", follow_up.effect.id)
        return state
    context = chain_context(state, follow_up.context)
    return run_or_queue(state, follow_up.source_card_id, follow_up.lane_index, follow_up.effect, context, mark)


def execute_effect(
    state: GameState,
    source_card_id: str,
    lane_index: int,
    effect: EffectDefinition,
    context: EffectContext,
    check_source: bool = True,
    prompt_optional: bool = True,
) -> EffectResult:
    """Run one effect of a board card. Never raises for game-rule reasons."""
    info = find_card_on_board(state, source_card_id)
    if info is None or (check_source and not source_is_active(info, effect)):
        logger.debug("Effect %s skipped: source %s is not active", effect.id, source_card_id)
        return EffectResult.skipped(state)
    lane_index = info.lane_index

    if effect.position is EffectPosition.MIDDLE and should_ignore_middle_command(state, lane_index):
        return EffectResult.skipped(state, context.card_owner, "Middle commands are ignored in this line.")

    mark = queue_mark(state)
    if effect.is_optional and prompt_optional:
        pending = PromptOptionalEffect(
            actor=context.card_owner,
            source_card_id=source_card_id,
            optional=True,
            effect=effect,
            lane_index=lane_index,
            context=context,
        )
        return EffectResult.waiting(install_decision(state, pending, mark), pending)

    handler = HANDLERS.get(effect.action)
    if handler is None:
        logger.warning("No executor for %s (effect %s on %s)", effect.action.value, effect.id, info.card.name)
        return EffectResult.skipped(state)

    state = state._copy_with(effect_skipped_no_targets=False)
    result = handler(info.card, lane_index, state, context, effect)
    state = refresh_values(result.new_state)

    if result.pending is not None:
        pending = result.pending
        if pending.origin is None:
            pending = pending.with_origin(context)
        if effect.conditional is not None:
            pending = pending.with_follow_up(FollowUp(
                effect=effect.conditional.then_effect,
                conditional_type=effect.conditional.type,
                context=context,
                source_card_id=source_card_id,
                lane_index=lane_index,
            ))
        return EffectResult.waiting(install_decision(state, pending, mark), pending)

    follow_up = process_conditional(effect, result.executed)
    if follow_up is not None:
        state = run_or_queue(state, source_card_id, lane_index, follow_up, chain_context(state, context), mark)
    return EffectResult(new_state=state, executed=result.executed)


def execute_effect_list(
    state: GameState,
    source_card_id: str,
    lane_index: int,
    effects: list[EffectDefinition] | tuple[EffectDefinition, ...],
    context: EffectContext,
    check_source: bool = True,
) -> EffectResult:
    """
    Run a box's effects in order.

    When one of them opens a decision, the rest are queued behind it (and
    behind anything the decision's own chain queued).
    """
    mark = queue_mark(state)
    executed = False
    for index, effect in enumerate(effects):
        if state.action_required is not None:
            state = queue_pending_effects(state, effects[index:], source_card_id, lane_index, context, mark)
            break
        result = execute_effect(state, source_card_id, lane_index, effect, context, check_source)
        state = result.new_state
        executed = executed or result.executed
    return EffectResult(new_state=state, executed=executed, pending=state.action_required)


__all__ = [
    "EffectResult",
    "HANDLERS",
    "chain_context",
    "complete_follow_up",
    "execute_effect",
    "execute_effect_list",
    "run_or_queue",
    "source_is_active",
]
