"""
Targeting - pure queries for legal board targets.

Filters are relative to the card owner (the "you" of the card text), never
to the acting player. Position defaults to "uncovered": unless an effect
says otherwise, only the top card of a stack can be targeted.

Value filters and highest/lowest calculations compare effective values, so
a face-down card counts as whatever the lane value calculator says it is
worth. Ties are never broken here; every tied card is returned.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from ..config import LANE_COUNT
from .lane_values import ActiveModifier, active_value_modifiers, effective_value
from .state import GameState, PlayedCard, Player


class Scope:
    """Which lanes an effect may reach, relative to its source lane."""
    ANYWHERE = "anywhere"
    THIS_LANE = "this_lane"
    OTHER_LANES = "other_lanes"
    EACH_LANE = "each_lane"
    EACH_OTHER_LINE = "each_other_line"

    ALL = (ANYWHERE, THIS_LANE, OTHER_LANES, EACH_LANE, EACH_OTHER_LINE)


@dataclass(frozen=True)
class TargetFilter:
    """Constraints a target card must satisfy."""
    owner: str = "any"  # own, opponent, any
    position: str = "uncovered"  # uncovered, covered, any, covered_by_context
    face_state: str = "any"  # face_up, face_down, any
    value_range: tuple[int, int] | None = None
    value_equals: int | None = None
    calculation: str | None = None  # highest_value, lowest_value

    @classmethod
    def from_params(cls, data: dict[str, Any] | None) -> TargetFilter:
        """Parse the target_filter mapping of an effect's params."""
        if not data:
            return cls()
        value_range = data.get("value_range")
        if isinstance(value_range, dict):
            value_range = (value_range["min"], value_range["max"])
        elif value_range is not None:
            value_range = (value_range[0], value_range[1])
        return cls(
            owner=data.get("owner") or "any",
            position=data.get("position") or "uncovered",
            face_state=data.get("face_state") or "any",
            value_range=value_range,
            value_equals=data.get("value_equals"),
            calculation=data.get("calculation"),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"owner": self.owner, "position": self.position, "face_state": self.face_state}
        if self.value_range is not None:
            data["value_range"] = list(self.value_range)
        if self.value_equals is not None:
            data["value_equals"] = self.value_equals
        if self.calculation:
            data["calculation"] = self.calculation
        return data


@dataclass(frozen=True)
class TargetInfo:
    """A board card with its location."""
    card: PlayedCard
    owner: Player
    lane_index: int
    stack_index: int
    is_uncovered: bool

    @property
    def card_id(self) -> str:
        return self.card.id


def scope_lanes(scope: str | None, source_lane_index: int | None) -> list[int]:
    """Lane indices a scope reaches."""
    if scope == Scope.THIS_LANE and source_lane_index is not None:
        return [source_lane_index]
    if scope in (Scope.OTHER_LANES, Scope.EACH_OTHER_LINE) and source_lane_index is not None:
        return [lane_index for lane_index in range(LANE_COUNT) if lane_index != source_lane_index]
    return list(range(LANE_COUNT))


def find_card_on_board(state: GameState, card_id: str | None) -> TargetInfo | None:
    """Locate a card instance on either side of the board."""
    if not card_id:
        return None
    for side in Player:
        for lane_index, lane in enumerate(state.get(side).lanes):
            for stack_index, card in enumerate(lane):
                if card.id == card_id:
                    return TargetInfo(
                        card=card,
                        owner=side,
                        lane_index=lane_index,
                        stack_index=stack_index,
                        is_uncovered=stack_index == len(lane) - 1,
                    )
    return None


def is_uncovered(state: GameState, card_id: str | None) -> bool:
    info = find_card_on_board(state, card_id)
    return info is not None and info.is_uncovered


def _matches_position(target: TargetInfo, position: str, card_owner: Player, on_cover: bool) -> bool:
    if position == "uncovered":
        return target.is_uncovered
    if position == "covered":
        return not target.is_uncovered
    if position == "covered_by_context":
        # While a card is about to be covered, the owner's whole stack counts as covered
        if on_cover and target.owner is card_owner:
            return True
        return not target.is_uncovered
    return True


def matches_filter(
    state: GameState,
    target: TargetInfo,
    target_filter: TargetFilter,
    card_owner: Player,
    modifiers: list[ActiveModifier] | None = None,
    on_cover: bool = False,
) -> bool:
    """Check every per-card constraint of a filter (not the calculation)."""
    if target_filter.owner == "own" and target.owner is not card_owner:
        return False
    if target_filter.owner == "opponent" and target.owner is card_owner:
        return False
    if not _matches_position(target, target_filter.position, card_owner, on_cover):
        return False
    if target_filter.face_state == "face_up" and not target.card.is_face_up:
        return False
    if target_filter.face_state == "face_down" and target.card.is_face_up:
        return False

    if target_filter.value_range is not None or target_filter.value_equals is not None:
        value = effective_value(state, target.card, target.owner, target.lane_index, modifiers)
        if target_filter.value_range is not None:
            low, high = target_filter.value_range
            if value < low or value > high:
                return False
        if target_filter.value_equals is not None and value != target_filter.value_equals:
            return False
    return True


def _protocol_matches(state: GameState, target: TargetInfo, rule: str | None) -> bool:
    if not rule:
        return True
    lane_protocols = {
        state.player.protocols[target.lane_index],
        state.opponent.protocols[target.lane_index],
    }
    has_match = target.card.protocol in lane_protocols
    if rule == "must_match":
        return has_match
    if rule == "must_not_match":
        return not has_match
    return True


def apply_calculation(
    state: GameState,
    targets: list[TargetInfo],
    calculation: str | None,
    modifiers: list[ActiveModifier] | None = None,
) -> list[TargetInfo]:
    """Keep only the highest- or lowest-valued targets, ties included."""
    if calculation not in ("highest_value", "lowest_value") or not targets:
        return targets
    if modifiers is None:
        modifiers = active_value_modifiers(state)
    values = [effective_value(state, t.card, t.owner, t.lane_index, modifiers) for t in targets]
    best = max(values) if calculation == "highest_value" else min(values)
    return [target for target, value in zip(targets, values) if value == best]


def find_targets(
    state: GameState,
    target_filter: TargetFilter,
    card_owner: Player,
    scope: str | None = Scope.ANYWHERE,
    source_card_id: str | None = None,
    source_lane_index: int | None = None,
    exclude_self: bool = False,
    lane_indices: list[int] | tuple[int, ...] | None = None,
    disallowed_ids: tuple[str, ...] | list[str] = (),
    protocol_matching: str | None = None,
    on_cover: bool = False,
) -> list[TargetInfo]:
    """
    All legal targets, in board order.

    Board order is: player side then opponent side, lane ascending, stack
    bottom to top. `lane_indices` further narrows the scope's lanes.
    """
    lanes = scope_lanes(scope, source_lane_index)
    if lane_indices is not None:
        lanes = [lane_index for lane_index in lanes if lane_index in lane_indices]

    modifiers = active_value_modifiers(state)
    targets = []
    for side in Player:
        for lane_index in lanes:
            lane = state.get(side).lanes[lane_index]
            for stack_index, card in enumerate(lane):
                if exclude_self and card.id == source_card_id:
                    continue
                if card.id in disallowed_ids:
                    continue
                target = TargetInfo(
                    card=card,
                    owner=side,
                    lane_index=lane_index,
                    stack_index=stack_index,
                    is_uncovered=stack_index == len(lane) - 1,
                )
                if not matches_filter(state, target, target_filter, card_owner, modifiers, on_cover):
                    continue
                if not _protocol_matches(state, target, protocol_matching):
                    continue
                targets.append(target)

    return apply_calculation(state, targets, target_filter.calculation, modifiers)


def target_ids(targets: list[TargetInfo]) -> tuple[str, ...]:
    return tuple(target.card.id for target in targets)


def lanes_with_targets(targets: list[TargetInfo]) -> list[int]:
    return sorted({target.lane_index for target in targets})


def board_order_key(target: TargetInfo, actor: Player, state: GameState) -> tuple[int, int, int]:
    """Tie-break order for automated choices: lane, then from the top, own side first."""
    lane_length = len(state.get(target.owner).lanes[target.lane_index])
    from_top = lane_length - 1 - target.stack_index
    return (target.lane_index, from_top, 0 if target.owner is actor else 1)


def pick_by_board_order(state: GameState, targets: list[TargetInfo], actor: Player) -> TargetInfo:
    """Deterministic pick among tied targets."""
    return min(targets, key=lambda target: board_order_key(target, actor, state))
