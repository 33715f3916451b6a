"""
Return executor - send board cards back to a hand.

Supported params:
- count, target_filter, scope, exclude_self (default False)
- destination: owner_hand (default) or actor_hand
- select_lane: pick a lane, every match in it returns
- use_card_from_previous_effect
"""

from __future__ import annotations

from ...spec_schema.effect_dsl import EffectDefinition
from ..board import card_label, owner_label, return_to_hand
from ..chain import resolve_count, store_target_card_id
from ..context import EffectContext
from ..log import log
from ..pending import SelectCardToReturn, SelectLaneForReturn
from ..state import GameState, PlayedCard, Player
from ..targeting import TargetInfo, find_card_on_board, find_targets, lanes_with_targets, scope_lanes, target_ids
from .base import EffectResult, after_removal, auto_pick, filter_from, scope_name, should_auto_resolve


def perform_return(
    state: GameState,
    card_id: str,
    actor: Player,
    destination: str,
    context: EffectContext,
) -> tuple[GameState, TargetInfo | None]:
    """Return one board card to a hand; fires uncover for the exposed card."""
    info = find_card_on_board(state, card_id)
    if info is None:
        return state, None
    hand_owner = actor if destination == "actor_hand" else info.owner
    state = store_target_card_id(state, card_id)
    state, info = return_to_hand(state, card_id, hand_owner)
    where = "their" if hand_owner is actor else f"{hand_owner.display_name}'s"
    state = log(
        state,
        actor,
        f"{actor.display_name} returns {owner_label(info.owner)} {card_label(info.card)} to {where} hand.",
    )
    return after_removal(state, info, context), info


def execute_return(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    actor = context.card_owner
    destination = effect.param("destination", "owner_hand")

    if effect.use_card_from_previous_effect or effect.param("use_card_from_previous_effect"):
        target = find_card_on_board(state, state.last_target_card_id)
        if target is None:
            return EffectResult.skipped(state, actor, "Target card from previous effect no longer exists. Return skipped.")
        state, _ = perform_return(state, target.card_id, actor, destination, context)
        return EffectResult.done(state)

    target_filter = filter_from(effect)
    exclude_self = effect.param("exclude_self", False)
    targets = find_targets(
        state,
        target_filter,
        context.card_owner,
        scope=scope_name(effect),
        source_card_id=card.id,
        source_lane_index=lane_index,
        exclude_self=exclude_self,
    )
    if not targets:
        return EffectResult.skipped(state, actor, "No valid cards to return. Effect skipped.")

    if effect.param("select_lane"):
        return EffectResult.waiting(state, SelectLaneForReturn(
            actor=actor,
            source_card_id=card.id,
            valid_lanes=tuple(lanes_with_targets(targets)),
            card_owner=context.card_owner,
            target_filter=target_filter,
            destination=destination,
        ))

    count = resolve_count(effect.param("count", 1), state, context)
    if count < 0:
        for card_id in target_ids(targets):
            state, _ = perform_return(state, card_id, actor, destination, context)
        return EffectResult.done(state)
    if count == 0:
        return EffectResult.skipped(state)

    count = min(count, len(targets))
    if should_auto_resolve(state, actor, target_filter):
        remaining = list(targets)
        for _ in range(count):
            pick = auto_pick(state, remaining, actor)
            remaining.remove(pick)
            state, _ = perform_return(state, pick.card_id, actor, destination, context)
        return EffectResult.done(state)

    return EffectResult.waiting(state, SelectCardToReturn(
        actor=actor,
        source_card_id=card.id,
        count=count,
        card_owner=context.card_owner,
        target_filter=target_filter,
        destination=destination,
        lane_indices=tuple(scope_lanes(scope_name(effect), lane_index)),
        disallowed_ids=(card.id,) if exclude_self else (),
    ))
