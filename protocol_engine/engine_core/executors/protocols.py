"""
Protocol rearrange and swap executors.

Compiled status belongs to a protocol, so it moves with it.

params:
- target: own (default) or opponent
- restriction: {"disallowed_protocol": name, "lane_index": int | "current"}
"""

from __future__ import annotations

from ...spec_schema.effect_dsl import EffectDefinition
from ..context import EffectContext
from ..log import log
from ..passive_rules import can_rearrange_protocols
from ..pending import PromptRearrangeProtocols, PromptSwapProtocols
from ..state import GameState, PlayedCard, Player
from .base import EffectResult


class ProtocolOrderError(ValueError):
    """A submitted protocol order is not a legal rearrangement."""


def validate_protocol_order(
    current: tuple[str, ...],
    new_order: list[str] | tuple[str, ...],
    disallowed_protocol: str | None = None,
    disallowed_lane_index: int | None = None,
) -> None:
    """Raise ProtocolOrderError unless new_order is a permutation that honours the restriction."""
    if sorted(new_order) != sorted(current):
        raise ProtocolOrderError(f"{list(new_order)} is not a rearrangement of {list(current)}")
    if (
        disallowed_protocol is not None
        and disallowed_lane_index is not None
        and new_order[disallowed_lane_index] == disallowed_protocol
    ):
        raise ProtocolOrderError(f"{disallowed_protocol} cannot be placed in line {disallowed_lane_index}")


def apply_protocol_order(state: GameState, actor: Player, target: Player, new_order: list[str] | tuple[str, ...]) -> GameState:
    """Reorder target's protocols, carrying compiled flags along."""
    player_state = state.get(target)
    compiled = dict(zip(player_state.protocols, player_state.compiled))
    state = state.update_player(
        target,
        protocols=tuple(new_order),
        compiled=tuple(compiled[protocol] for protocol in new_order),
    )
    whose = "their" if target is actor else f"{target.display_name}'s"
    return log(state, actor, f"{actor.display_name} rearranges {whose} protocols: {', '.join(new_order)}.")


def swapped_order(protocols: tuple[str, ...], first: int, second: int) -> list[str]:
    order = list(protocols)
    order[first], order[second] = order[second], order[first]
    return order


def _target_side(effect: EffectDefinition, context: EffectContext) -> Player:
    return context.opponent if effect.param("target") == "opponent" else context.card_owner


def _restriction(effect: EffectDefinition, lane_index: int) -> tuple[str | None, int | None]:
    raw = effect.param("restriction") or {}
    lane = raw.get("lane_index")
    if lane == "current":
        lane = lane_index
    return raw.get("disallowed_protocol"), lane


def execute_rearrange(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    check = can_rearrange_protocols(state)
    if not check.allowed:
        return EffectResult.skipped(state, context.card_owner, check.reason)
    disallowed_protocol, disallowed_lane = _restriction(effect, lane_index)
    return EffectResult.waiting(state, PromptRearrangeProtocols(
        actor=context.card_owner,
        source_card_id=card.id,
        target=_target_side(effect, context),
        disallowed_protocol=disallowed_protocol,
        disallowed_lane_index=disallowed_lane,
    ))


def execute_swap(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    check = can_rearrange_protocols(state)
    if not check.allowed:
        return EffectResult.skipped(state, context.card_owner, check.reason)
    disallowed_protocol, disallowed_lane = _restriction(effect, lane_index)
    return EffectResult.waiting(state, PromptSwapProtocols(
        actor=context.card_owner,
        source_card_id=card.id,
        target=_target_side(effect, context),
        disallowed_protocol=disallowed_protocol,
        disallowed_lane_index=disallowed_lane,
    ))
