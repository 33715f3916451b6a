"""
Flip executor.

Supported params:
- count: int or "all", target_filter, scope (including each_lane)
- exclude_self (default True)
- flip_self: flip the source card
- use_card_from_previous_effect
- advanced_conditional

Flipping a card face-up while it is uncovered triggers its middle effects.
A face-up card's own "when this card would be flipped" effects run
before the flip.
"""

from __future__ import annotations
import logging

from ...spec_schema.effect_dsl import EffectDefinition, EffectTrigger
from ..board import flip_on_board, owner_label
from ..chain import resolve_count, store_target_card_id
from ..context import EffectContext, TriggerType
from ..log import log
from ..passive_rules import can_flip_card
from ..pending import SelectCardToFlip
from ..state import GameState, PlayedCard, Player
from ..targeting import Scope, TargetInfo, find_card_on_board, find_targets, lanes_with_targets, target_ids
from .base import (
    EffectResult,
    auto_pick,
    check_advanced_conditional,
    filter_from,
    refresh_values,
    scope_name,
    should_auto_resolve,
)

logger = logging.getLogger(__name__)


def flippable(state: GameState, targets: list[TargetInfo]) -> list[TargetInfo]:
    """Drop targets that a passive rule keeps from flipping."""
    return [
        target for target in targets
        if can_flip_card(state, target.card_id, target.lane_index, target.card.is_face_up).allowed
    ]


def perform_flip(
    state: GameState,
    card_id: str,
    actor: Player,
    context: EffectContext,
) -> tuple[GameState, TargetInfo | None]:
    """Flip one board card and run everything that follows from it."""
    info = find_card_on_board(state, card_id)
    if info is None:
        return state, None
    check = can_flip_card(state, card_id, info.lane_index, info.card.is_face_up)
    if not check.allowed:
        return log(state, actor, check.reason), None

    from .. import triggers
    if info.card.is_face_up:
        state = triggers.execute_on_flip_self(state, card_id)
        info = find_card_on_board(state, card_id)
        if info is None:
            logger.debug("%s left the board before it could be flipped", card_id)
            return state, None

    state, info = flip_on_board(state, card_id)
    state = state.with_player(actor, state.get(actor).with_stats(cards_flipped=1))
    direction = "face-up" if info.card.is_face_up else "face-down"
    state = log(state, actor, f"{actor.display_name} flips {owner_label(info.owner)} {info.card.name} {direction}.")
    state = store_target_card_id(refresh_values(state), card_id)

    if info.card.is_face_up and info.is_uncovered:
        state = triggers.execute_on_play(state, card_id, info.owner, TriggerType.FLIP)
    state = triggers.process_reactive_effects(state, EffectTrigger.AFTER_FLIP, actor, info.lane_index)
    return state, info


def execute_flip(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    actor = context.card_owner

    if not check_advanced_conditional(state, card, lane_index, context, effect.param("advanced_conditional")):
        return EffectResult.skipped(state)

    if effect.param("flip_self"):
        if find_card_on_board(state, card.id) is None:
            return EffectResult.skipped(state)
        state, flipped = perform_flip(state, card.id, actor, context)
        return EffectResult.done(state, executed=flipped is not None)

    if effect.use_card_from_previous_effect or effect.param("use_card_from_previous_effect"):
        target = find_card_on_board(state, state.last_target_card_id)
        if target is None:
            return EffectResult.skipped(state, actor, "Target card from previous effect no longer exists. Flip skipped.")
        state, flipped = perform_flip(state, target.card_id, actor, context)
        return EffectResult.done(state, executed=flipped is not None)

    scope = scope_name(effect)
    target_filter = filter_from(effect)
    exclude_self = effect.param("exclude_self", True)
    targets = flippable(state, find_targets(
        state,
        target_filter,
        context.card_owner,
        scope=Scope.ANYWHERE if scope == Scope.EACH_LANE else scope,
        source_card_id=card.id,
        source_lane_index=lane_index,
        exclude_self=exclude_self,
    ))
    if not targets:
        return EffectResult.skipped(state, actor, "No valid cards to flip. Effect skipped.")

    count = resolve_count(effect.param("count", 1), state, context)
    if count < 0:
        for card_id in target_ids(targets):
            state, _ = perform_flip(state, card_id, actor, context)
        return EffectResult.done(state)
    if count == 0:
        return EffectResult.skipped(state)

    disallowed = (card.id,) if exclude_self else ()
    if scope == Scope.EACH_LANE:
        lanes = lanes_with_targets(targets)
        return EffectResult.waiting(state, SelectCardToFlip(
            actor=actor,
            source_card_id=card.id,
            count=count,
            card_owner=context.card_owner,
            target_filter=target_filter,
            scope=Scope.THIS_LANE,
            source_lane_index=lanes[0],
            disallowed_ids=disallowed,
            current_lane_index=lanes[0],
            remaining_lanes=tuple(lanes[1:]),
            per_lane=count,
        ))

    count = min(count, len(targets))
    if should_auto_resolve(state, actor, target_filter):
        remaining = list(targets)
        for _ in range(count):
            pick = auto_pick(state, remaining, actor)
            remaining.remove(pick)
            state, _ = perform_flip(state, pick.card_id, actor, context)
        return EffectResult.done(state)

    return EffectResult.waiting(state, SelectCardToFlip(
        actor=actor,
        source_card_id=card.id,
        count=count,
        card_owner=context.card_owner,
        target_filter=target_filter,
        scope=scope,
        source_lane_index=lane_index,
        allowed_ids=target_ids(targets) if target_filter.calculation else None,
        disallowed_ids=disallowed,
        optional=bool(effect.param("up_to")),
    ))
