"""
Shared pieces for effect executors.

Every executor has the same shape:

    handler(card, lane_index, state, context, effect) -> EffectResult

It either applies its effect synchronously, or returns a pending action
describing the decision it needs. Executors never install the pending
action themselves; the dispatcher does, so conditional follow-ups can be
attached in one place.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Any

from ...spec_schema.effect_dsl import EffectDefinition
from ..context import EffectContext, TriggerType
from ..lane_values import recalculate_all_lane_values
from ..log import log
from ..pending import PendingAction
from ..state import GameState, PlayedCard, Player
from ..targeting import TargetFilter, TargetInfo, pick_by_board_order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectResult:
    """Outcome of one executor call."""
    new_state: GameState
    executed: bool = True
    pending: PendingAction | None = None

    @classmethod
    def done(cls, state: GameState, executed: bool = True) -> EffectResult:
        return cls(new_state=state, executed=executed)

    @classmethod
    def waiting(cls, state: GameState, pending: PendingAction) -> EffectResult:
        """The effect needs a decision before it can finish."""
        return cls(new_state=state, executed=True, pending=pending)

    @classmethod
    def skipped(cls, state: GameState, actor: Player | None = None, message: str | None = None) -> EffectResult:
        """Nothing to do: log why and mark the chain as having no targets."""
        if message and actor is not None:
            state = log(state, actor, message)
        return cls(new_state=state._copy_with(effect_skipped_no_targets=True), executed=False)


def resolve_actor(param: str | None, context: EffectContext) -> Player:
    """Map an effect's "actor" param (self/opponent) to a side."""
    if param == "opponent":
        return context.opponent
    if param == "current_turn":
        return context.current_turn
    return context.card_owner


def filter_from(effect: EffectDefinition) -> TargetFilter:
    return TargetFilter.from_params(effect.param("target_filter"))


def scope_name(effect: EffectDefinition) -> str:
    """Scope may be a plain name or {"type": name, ...}."""
    scope = effect.param("scope")
    if isinstance(scope, dict):
        return scope.get("type", "anywhere")
    return scope or "anywhere"


def scope_min_cards(effect: EffectDefinition) -> int | None:
    scope = effect.param("scope")
    if isinstance(scope, dict):
        return scope.get("min_cards_in_lane")
    return None


def lane_card_count(state: GameState, lane_index: int) -> int:
    return len(state.player.lanes[lane_index]) + len(state.opponent.lanes[lane_index])


def check_advanced_conditional(
    state: GameState,
    card: PlayedCard,
    lane_index: int,
    context: EffectContext,
    condition: dict[str, Any] | None,
) -> bool:
    """
    Gate an effect on a board condition.

    Supported types: empty_hand, opponent_higher_value_in_lane,
    this_card_is_covered, hand_size_greater_than.
    """
    if not condition:
        return True
    kind = condition.get("type")
    owner_state = state.get(context.card_owner)
    if kind == "empty_hand":
        return not owner_state.hand
    if kind == "opponent_higher_value_in_lane":
        opponent_state = state.get(context.opponent)
        return opponent_state.lane_values[lane_index] > owner_state.lane_values[lane_index]
    if kind == "this_card_is_covered":
        lane = owner_state.lanes[lane_index]
        return bool(lane) and lane[-1].id != card.id
    if kind == "hand_size_greater_than":
        return len(owner_state.hand) > int(condition.get("value", 0))
    logger.warning("Unknown advanced conditional %r on %s", kind, card.name)
    return True


def auto_pick(state: GameState, targets: list[TargetInfo], actor: Player) -> TargetInfo | None:
    """
    Pick a target without asking.

    Used when there is exactly one legal outcome, or when an automated side
    faces tied targets (board order breaks the tie).
    """
    if not targets:
        return None
    if len(targets) == 1:
        return targets[0]
    return pick_by_board_order(state, targets, actor)


def should_auto_resolve(state: GameState, actor: Player, target_filter: TargetFilter) -> bool:
    """Automated sides resolve highest/lowest ties on their own; humans are always asked."""
    return state.is_automated(actor) and target_filter.calculation is not None


def refresh_values(state: GameState) -> GameState:
    return recalculate_all_lane_values(state)


def after_removal(state: GameState, info: TargetInfo | None, context: EffectContext) -> GameState:
    """
    Recompute values and fire uncover for whatever a removal exposed.

    While a card is being covered its own removal does not uncover
    anything: the incoming card lands on the stack right after.
    """
    state = refresh_values(state)
    if info is None or not info.is_uncovered or context.trigger_type is TriggerType.COVER:
        return state
    from .. import triggers
    number, state = state.next_removal_event()
    return triggers.handle_uncover(state, info.owner, info.lane_index, f"{info.card_id}#{number}")
