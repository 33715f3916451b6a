"""
Delete executor.

Supported params:
- count: int, "all" or a dynamic count
- target_filter, scope (this_lane, other_lanes, each_lane, each_other_line)
- exclude_self (default True), protocol_matching (must_match, must_not_match)
- select_lane: pick a lane, then delete every match in it
- delete_self: delete the source card itself
- up_to: the actor may stop early
- auto_execute: no choice, cards are picked by board order
- actor_chooses: effect_owner (default) or opponent
- advanced_conditional, lane_condition {"type": "opponent_higher_value"}
"""

from __future__ import annotations
import logging

from ...spec_schema.effect_dsl import EffectDefinition, EffectTrigger
from ..board import card_label, delete_card, owner_label
from ..chain import resolve_count, store_target_card_id
from ..context import EffectContext
from ..lane_values import lanes_where_opponent_is_higher
from ..log import log
from ..pending import SelectCardFromOtherLanesToDelete, SelectCardsToDelete, SelectLaneForDelete
from ..state import GameState, PlayedCard, Player
from ..targeting import Scope, TargetInfo, find_card_on_board, find_targets, lanes_with_targets, scope_lanes, target_ids
from .base import (
    EffectResult,
    after_removal,
    auto_pick,
    check_advanced_conditional,
    filter_from,
    lane_card_count,
    scope_min_cards,
    scope_name,
    should_auto_resolve,
)

logger = logging.getLogger(__name__)


def perform_delete(
    state: GameState,
    card_id: str,
    actor: Player,
    context: EffectContext,
) -> tuple[GameState, TargetInfo | None]:
    """
    Delete one board card and run everything that follows from it.

    Logs the deletion, fires uncover for the exposed card and dispatches
    after_delete reactions.
    """
    info = find_card_on_board(state, card_id)
    if info is None:
        logger.debug("Delete target %s is no longer on the board", card_id)
        return state, None

    state = store_target_card_id(state, card_id)
    state = log(state, actor, f"{actor.display_name} deletes {owner_label(info.owner)} {card_label(info.card)}.")
    state, info = delete_card(state, card_id, actor)
    state = after_removal(state, info, context)

    from .. import triggers
    state = triggers.process_reactive_effects(state, EffectTrigger.AFTER_DELETE, actor, info.lane_index)
    return state, info


def delete_many(state: GameState, card_ids: list[str], actor: Player, context: EffectContext) -> GameState:
    """Delete several cards one after another (skipping ones already gone)."""
    for card_id in card_ids:
        state, _ = perform_delete(state, card_id, actor, context)
    return state


def execute_delete(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    actor = context.opponent if effect.param("actor_chooses") == "opponent" else context.card_owner

    if not check_advanced_conditional(state, card, lane_index, context, effect.param("advanced_conditional")):
        return EffectResult.skipped(state)

    if effect.use_card_from_previous_effect or effect.param("use_card_from_previous_effect"):
        target = find_card_on_board(state, state.last_target_card_id)
        if target is None:
            return EffectResult.skipped(state, actor, "Target card from previous effect no longer exists. Delete skipped.")
        state, _ = perform_delete(state, target.card_id, actor, context)
        return EffectResult.done(state)

    if effect.param("delete_self"):
        if find_card_on_board(state, card.id) is None:
            return EffectResult.skipped(state)
        state, _ = perform_delete(state, card.id, actor, context)
        return EffectResult.done(state)

    scope = scope_name(effect)
    lane_indices = None
    min_cards = scope_min_cards(effect)
    if min_cards is not None:
        lane_indices = tuple(
            index for index in scope_lanes(scope, lane_index)
            if lane_card_count(state, index) >= min_cards
        )
        if not lane_indices:
            return EffectResult.skipped(state, actor, f"No line has {min_cards} or more cards. Effect skipped.")

    if (effect.param("lane_condition") or {}).get("type") == "opponent_higher_value":
        higher = lanes_where_opponent_is_higher(state, context.card_owner)
        lane_indices = tuple(index for index in (lane_indices or higher) if index in higher)
        if not lane_indices:
            return EffectResult.skipped(state, actor, "No line where the opponent has a higher value. Effect skipped.")

    target_filter = filter_from(effect)
    exclude_self = effect.param("exclude_self", True)
    protocol_matching = effect.param("protocol_matching")
    targets = find_targets(
        state,
        target_filter,
        context.card_owner,
        scope=Scope.ANYWHERE if scope in (Scope.EACH_LANE, Scope.EACH_OTHER_LINE) else scope,
        source_card_id=card.id,
        source_lane_index=lane_index,
        exclude_self=exclude_self,
        lane_indices=lane_indices,
        protocol_matching=protocol_matching,
    )
    if scope == Scope.EACH_OTHER_LINE:
        targets = [target for target in targets if target.lane_index != lane_index]
    if not targets:
        return EffectResult.skipped(state, actor, "No valid cards to delete. Effect skipped.")

    count = resolve_count(effect.param("count", 1), state, context)
    delete_all = count < 0
    disallowed = (card.id,) if exclude_self else ()

    if effect.param("select_lane"):
        return EffectResult.waiting(state, SelectLaneForDelete(
            actor=actor,
            source_card_id=card.id,
            valid_lanes=tuple(lanes_with_targets(targets)),
            card_owner=context.card_owner,
            target_filter=target_filter,
            delete_all=delete_all,
            count=max(count, 1),
            disallowed_ids=disallowed,
        ))

    if scope == Scope.EACH_OTHER_LINE:
        lanes = lanes_with_targets(targets)
        return EffectResult.waiting(state, SelectCardFromOtherLanesToDelete(
            actor=actor,
            source_card_id=card.id,
            count=len(lanes),
            card_owner=context.card_owner,
            target_filter=target_filter,
            source_lane_index=lane_index,
            disallowed_ids=disallowed,
        ))

    if delete_all:
        state = delete_many(state, list(target_ids(targets)), actor, context)
        return EffectResult.done(state)

    if count == 0:
        return EffectResult.skipped(state)

    if scope == Scope.EACH_LANE:
        lanes = lanes_with_targets(targets)
        return EffectResult.waiting(state, SelectCardsToDelete(
            actor=actor,
            source_card_id=card.id,
            count=count,
            card_owner=context.card_owner,
            target_filter=target_filter,
            scope=Scope.THIS_LANE,
            source_lane_index=lanes[0],
            disallowed_ids=disallowed,
            protocol_matching=protocol_matching,
            up_to=bool(effect.param("up_to")),
            current_lane_index=lanes[0],
            remaining_lanes=tuple(lanes[1:]),
            per_lane=count,
        ))

    count = min(count, len(targets))
    if effect.param("auto_execute") or should_auto_resolve(state, actor, target_filter):
        picks = []
        remaining = list(targets)
        for _ in range(count):
            pick = auto_pick(state, remaining, actor)
            picks.append(pick.card_id)
            remaining.remove(pick)
        state = delete_many(state, picks, actor, context)
        return EffectResult.done(state)

    return EffectResult.waiting(state, SelectCardsToDelete(
        actor=actor,
        source_card_id=card.id,
        count=count,
        card_owner=context.card_owner,
        target_filter=target_filter,
        scope=scope,
        source_lane_index=lane_index,
        lane_indices=lane_indices,
        allowed_ids=target_ids(targets) if target_filter.calculation else None,
        disallowed_ids=disallowed,
        protocol_matching=protocol_matching,
        up_to=bool(effect.param("up_to")),
    ))
