"""
Lane Value Calculator - derives every lane total from the board.

Lane values on PlayerState are only a cache. They are rebuilt from:
- Face-up cards: their printed value
- Face-down cards: 2, unless a set_to_fixed modifier overrides it, or a
  face-up card with the `face_down_boost` keyword in the same stack adds 2
- Passive modifiers: add_per_condition / add_to_total on own or opponent totals

Totals are clamped to zero. Call recalculate_all_lane_values after every
board mutation, before any compile check or value-based targeting.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from ..config import COMPILE_THRESHOLD, FACE_DOWN_VALUE, LANE_COUNT
from ..spec_schema.effect_dsl import EffectAction, EffectTrigger
from .state import GameState, PlayedCard, Player

logger = logging.getLogger(__name__)

FACE_DOWN_BOOST_KEYWORD = "face_down_boost"
FACE_DOWN_BOOST = 2


@dataclass(frozen=True)
class ActiveModifier:
    """A value modifier printed on a face-up card currently on the board."""
    type: str  # set_to_fixed, add_per_condition, add_to_total
    value: int
    target: str  # own_cards, opponent_cards, all_cards, own_total, opponent_total
    scope: str  # this_lane, global
    owner: Player
    lane_index: int
    source_card_id: str
    condition: str | None = None
    face_state: str | None = None

    def applies_to_lane(self, lane_index: int) -> bool:
        return self.scope == "global" or self.lane_index == lane_index


def active_value_modifiers(state: GameState) -> list[ActiveModifier]:
    """Scan the board for value modifiers on face-up cards."""
    modifiers = []
    for side in Player:
        for lane_index, _, card in state.get(side).board_cards():
            if not card.is_face_up:
                continue
            for effect in card.card.all_effects():
                if effect.action is not EffectAction.VALUE_MODIFIER or effect.trigger is not EffectTrigger.PASSIVE:
                    continue
                raw = effect.param("modifier") or {}
                if "type" not in raw or "value" not in raw:
                    logger.warning("Malformed value modifier %s on %s", effect.id, card.name)
                    continue
                modifiers.append(ActiveModifier(
                    type=raw["type"],
                    value=int(raw["value"]),
                    target=raw.get("target", "own_total"),
                    scope=raw.get("scope", "this_lane"),
                    owner=side,
                    lane_index=lane_index,
                    source_card_id=card.id,
                    condition=raw.get("condition"),
                    face_state=(raw.get("filter") or {}).get("face_state"),
                ))
    return modifiers


def face_down_value(
    state: GameState,
    owner: Player,
    lane_index: int,
    modifiers: list[ActiveModifier] | None = None,
) -> int:
    """Effective value of a face-down card in one of owner's lanes."""
    if modifiers is None:
        modifiers = active_value_modifiers(state)

    for modifier in modifiers:
        if modifier.type != "set_to_fixed" or not modifier.applies_to_lane(lane_index):
            continue
        if modifier.target == "own_cards" and modifier.owner is not owner:
            continue
        if modifier.target == "opponent_cards" and modifier.owner is owner:
            continue
        if modifier.face_state in (None, "any", "face_down"):
            return modifier.value

    lane = state.get(owner).lanes[lane_index]
    if any(card.is_face_up and FACE_DOWN_BOOST_KEYWORD in card.card.keywords for card in lane):
        return FACE_DOWN_VALUE + FACE_DOWN_BOOST
    return FACE_DOWN_VALUE


def effective_value(
    state: GameState,
    card: PlayedCard,
    owner: Player,
    lane_index: int,
    modifiers: list[ActiveModifier] | None = None,
) -> int:
    """Value a board card contributes (and is compared by)."""
    if card.is_face_up:
        return card.value
    return face_down_value(state, owner, lane_index, modifiers)


def base_lane_value(
    state: GameState,
    owner: Player,
    lane_index: int,
    modifiers: list[ActiveModifier] | None = None,
) -> int:
    """Sum of effective card values in one stack."""
    if modifiers is None:
        modifiers = active_value_modifiers(state)
    total = sum(
        effective_value(state, card, owner, lane_index, modifiers)
        for card in state.get(owner).lanes[lane_index]
    )
    return max(0, total)


def _condition_count(state: GameState, modifier: ActiveModifier, lane_index: int) -> int:
    both = state.player.lanes[lane_index] + state.opponent.lanes[lane_index]
    if modifier.condition == "per_face_down_card":
        return sum(1 for card in both if not card.is_face_up)
    if modifier.condition == "per_face_up_card":
        return sum(1 for card in both if card.is_face_up)
    if modifier.condition == "per_card":
        return len(both)
    if modifier.condition == "per_card_in_hand":
        return len(state.get(modifier.owner).hand)
    logger.warning("Unknown modifier condition %s", modifier.condition)
    return 0


def calculate_lane_values(state: GameState) -> dict[Player, list[int]]:
    """Compute (without storing) every side's lane totals."""
    modifiers = active_value_modifiers(state)
    values = {
        side: [base_lane_value(state, side, lane_index, modifiers) for lane_index in range(LANE_COUNT)]
        for side in Player
    }

    for modifier in modifiers:
        if modifier.type == "add_per_condition":
            if not modifier.condition:
                continue
        elif modifier.type != "add_to_total":
            continue  # set_to_fixed is applied per card

        if modifier.target == "own_total":
            affected = modifier.owner
        elif modifier.target == "opponent_total":
            affected = modifier.owner.other
        else:
            continue

        lanes = range(LANE_COUNT) if modifier.scope == "global" else [modifier.lane_index]
        for lane_index in lanes:
            if modifier.type == "add_per_condition":
                values[affected][lane_index] += modifier.value * _condition_count(state, modifier, lane_index)
            else:
                values[affected][lane_index] += modifier.value

    return {side: [max(0, value) for value in lane_values] for side, lane_values in values.items()}


def recalculate_all_lane_values(state: GameState) -> GameState:
    """Rebuild the cached lane values of both sides."""
    values = calculate_lane_values(state)
    new_state = state
    for side in Player:
        lane_values = tuple(values[side])
        if new_state.get(side).lane_values != lane_values:
            new_state = new_state.update_player(side, lane_values=lane_values)
    return new_state


def calculate_compilable_lanes(state: GameState, side: Player) -> list[int]:
    """Lanes side may compile: total >= 10 and above the opponent's total."""
    own = state.get(side)
    if own.cannot_compile:
        return []
    other = state.get(side.other)
    return [
        lane_index for lane_index in range(LANE_COUNT)
        if own.lane_values[lane_index] >= COMPILE_THRESHOLD
        and own.lane_values[lane_index] > other.lane_values[lane_index]
    ]


def lanes_where_opponent_is_higher(state: GameState, owner: Player) -> list[int]:
    own = state.get(owner).lane_values
    other = state.get(owner.other).lane_values
    return [lane_index for lane_index in range(LANE_COUNT) if other[lane_index] > own[lane_index]]
