"""
Shift executor - move a card to another lane on the same side.

Supported params:
- target_filter, scope, exclude_self (default False)
- shift_self: shift the source card
- use_card_from_previous_effect
- destination_restriction: {"type": to_another_line | to_this_lane |
  non_matching_protocol, "lane_index": "current" | int}
"""

from __future__ import annotations

from ...config import LANE_COUNT
from ...spec_schema.effect_dsl import EffectDefinition, EffectTrigger
from ..board import card_label, move_card, owner_label
from ..chain import store_target_card_id
from ..context import EffectContext
from ..log import log
from ..passive_rules import can_shift_card
from ..pending import SelectCardToShift, SelectLaneForShift
from ..state import GameState, PlayedCard, Player
from ..targeting import TargetInfo, find_card_on_board, find_targets
from .base import EffectResult, after_removal, filter_from, scope_name


def _restriction(effect: EffectDefinition, lane_index: int) -> tuple[str | None, int | None]:
    raw = effect.param("destination_restriction")
    if not raw:
        return None, None
    if isinstance(raw, str):
        return raw, lane_index
    restriction_lane = raw.get("lane_index", "current")
    return raw.get("type"), lane_index if restriction_lane == "current" else restriction_lane


def valid_destinations(
    state: GameState,
    info: TargetInfo,
    restriction: str | None = None,
    restriction_lane_index: int | None = None,
) -> list[int]:
    """Lanes a board card may shift to."""
    lanes = []
    for to_lane in range(LANE_COUNT):
        if to_lane == info.lane_index:
            continue
        if not can_shift_card(state, info.lane_index, to_lane, info.owner).allowed:
            continue
        if restriction == "to_this_lane" and to_lane != restriction_lane_index:
            continue
        if restriction == "non_matching_protocol":
            protocols = {state.player.protocols[to_lane], state.opponent.protocols[to_lane]}
            if info.card.protocol in protocols:
                continue
        lanes.append(to_lane)
    return lanes


def perform_shift(
    state: GameState,
    card_id: str,
    to_lane: int,
    actor: Player,
    context: EffectContext,
) -> tuple[GameState, TargetInfo | None]:
    """
    Move a card, covering the destination's top card first.

    The covered card's on-cover effects run before the move; the origin
    lane fires uncover if the shifted card was on top.
    """
    info = find_card_on_board(state, card_id)
    if info is None:
        return state, None

    from .. import triggers
    state = triggers.execute_on_cover(state, info.owner, to_lane)
    info = find_card_on_board(state, card_id)
    if info is None:
        return state, None

    from_lane = info.lane_index
    state, info = move_card(state, card_id, to_lane)
    state = state.with_player(actor, state.get(actor).with_stats(cards_shifted=1))
    from_protocol = state.get(info.owner).protocols[from_lane]
    to_protocol = state.get(info.owner).protocols[to_lane]
    state = log(
        state,
        actor,
        f"{actor.display_name} shifts {owner_label(info.owner)} {card_label(info.card)} "
        f"from Protocol {from_protocol} to Protocol {to_protocol}.",
    )
    state = store_target_card_id(state, card_id)
    state = after_removal(state, info, context)
    state = triggers.process_reactive_effects(state, EffectTrigger.AFTER_SHIFT, actor, to_lane)
    return state, info


def execute_shift(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    actor = context.card_owner
    restriction, restriction_lane = _restriction(effect, lane_index)

    chosen: TargetInfo | None = None
    if effect.param("shift_self"):
        chosen = find_card_on_board(state, card.id)
        if chosen is None:
            return EffectResult.skipped(state)
    elif effect.use_card_from_previous_effect or effect.param("use_card_from_previous_effect"):
        chosen = find_card_on_board(state, state.last_target_card_id)
        if chosen is None:
            return EffectResult.skipped(state, actor, "Target card from previous effect no longer exists. Shift skipped.")

    if chosen is not None:
        lanes = valid_destinations(state, chosen, restriction, restriction_lane)
        if not lanes:
            return EffectResult.skipped(state, actor, f"{card_label(chosen.card)} cannot be shifted. Effect skipped.")
        return EffectResult.waiting(state, SelectLaneForShift(
            actor=actor,
            source_card_id=card.id,
            card_to_shift_id=chosen.card_id,
            card_owner=chosen.owner,
            original_lane_index=chosen.lane_index,
            valid_lanes=tuple(lanes),
        ))

    target_filter = filter_from(effect)
    exclude_self = effect.param("exclude_self", False)
    targets = [
        target for target in find_targets(
            state,
            target_filter,
            context.card_owner,
            scope=scope_name(effect),
            source_card_id=card.id,
            source_lane_index=lane_index,
            exclude_self=exclude_self,
        )
        if valid_destinations(state, target, restriction, restriction_lane)
    ]
    if not targets:
        return EffectResult.skipped(state, actor, "No valid cards to shift. Effect skipped.")

    return EffectResult.waiting(state, SelectCardToShift(
        actor=actor,
        source_card_id=card.id,
        card_owner=context.card_owner,
        target_filter=target_filter,
        scope=scope_name(effect),
        source_lane_index=lane_index,
        disallowed_ids=(card.id,) if exclude_self else (),
        destination_restriction=restriction,
        restriction_lane_index=restriction_lane,
    ))
