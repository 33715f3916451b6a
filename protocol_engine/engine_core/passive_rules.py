"""
Passive rules - pure queries over the board.

A passive rule is printed on a card and active while that card is face-up
on the board, covered or not. Nothing is cached: each check rescans the
board, so a rule disappears the moment its card is flipped or removed.

Rule fields:
- type: what is restricted (block_all_play, block_flips, ...)
- target: who is affected, relative to the rule card's owner (self, opponent, all)
- scope: this_lane (the rule card's lane) or global
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from ..spec_schema.effect_dsl import EffectAction, EffectTrigger
from .state import GameState, Player


class RuleType:
    BLOCK_ALL_PLAY = "block_all_play"
    BLOCK_FACE_DOWN_PLAY = "block_face_down_play"
    BLOCK_FACE_UP_PLAY = "block_face_up_play"
    REQUIRE_FACE_DOWN_PLAY = "require_face_down_play"
    REQUIRE_NON_MATCHING_PROTOCOL = "require_non_matching_protocol"
    ALLOW_ANY_PROTOCOL_PLAY = "allow_any_protocol_play"
    BLOCK_FLIPS = "block_flips"
    BLOCK_FLIP_THIS_CARD = "block_flip_this_card"
    BLOCK_PROTOCOL_REARRANGE = "block_protocol_rearrange"
    BLOCK_SHIFTS_FROM_LANE = "block_shifts_from_lane"
    BLOCK_SHIFTS_TO_LANE = "block_shifts_to_lane"
    BLOCK_SHIFTS_FROM_AND_TO_LANE = "block_shifts_from_and_to_lane"
    IGNORE_MIDDLE_COMMANDS = "ignore_middle_commands"
    SKIP_CHECK_CACHE_PHASE = "skip_check_cache_phase"

    ALL = frozenset({
        BLOCK_ALL_PLAY, BLOCK_FACE_DOWN_PLAY, BLOCK_FACE_UP_PLAY, REQUIRE_FACE_DOWN_PLAY,
        REQUIRE_NON_MATCHING_PROTOCOL, ALLOW_ANY_PROTOCOL_PLAY, BLOCK_FLIPS, BLOCK_FLIP_THIS_CARD,
        BLOCK_PROTOCOL_REARRANGE, BLOCK_SHIFTS_FROM_LANE, BLOCK_SHIFTS_TO_LANE,
        BLOCK_SHIFTS_FROM_AND_TO_LANE, IGNORE_MIDDLE_COMMANDS, SKIP_CHECK_CACHE_PHASE,
    })


@dataclass(frozen=True)
class ActiveRule:
    """A passive rule on a face-up board card."""
    type: str
    target: str
    scope: str
    owner: Player
    lane_index: int
    source_card_id: str
    params: dict[str, Any] = field(default_factory=dict, hash=False)

    def applies_to_lane(self, lane_index: int) -> bool:
        return self.scope == "global" or self.lane_index == lane_index

    def applies_to_player(self, side: Player) -> bool:
        if self.target == "all":
            return True
        if self.target == "self":
            return self.owner is side
        if self.target == "opponent":
            return self.owner is side.other
        return False


@dataclass(frozen=True)
class RuleCheck:
    allowed: bool
    reason: str | None = None


ALLOWED = RuleCheck(allowed=True)


def get_active_passive_rules(state: GameState) -> list[ActiveRule]:
    """Every passive rule currently in force."""
    rules = []
    for side in Player:
        for lane_index, _, card in state.get(side).board_cards():
            if not card.is_face_up:
                continue
            for effect in card.card.all_effects():
                if effect.action is not EffectAction.PASSIVE_RULE or effect.trigger is not EffectTrigger.PASSIVE:
                    continue
                rule = dict(effect.param("rule") or {})
                rules.append(ActiveRule(
                    type=rule.pop("type", ""),
                    target=rule.pop("target", "opponent"),
                    scope=rule.pop("scope", "this_lane"),
                    owner=side,
                    lane_index=lane_index,
                    source_card_id=card.id,
                    params=rule,
                ))
    return rules


def can_play_card(
    state: GameState,
    side: Player,
    lane_index: int,
    face_up: bool,
    card_protocol: str,
    check_protocol: bool = True,
) -> RuleCheck:
    """
    Check whether side may play a card into a lane.

    Face-up plays need the card's protocol to match either protocol of
    that line (unless an allow-any rule applies); a non-matching rule
    inverts this. Face-down plays are legal anywhere unless blocked.
    """
    rules = [
        rule for rule in get_active_passive_rules(state)
        if rule.applies_to_lane(lane_index) and rule.applies_to_player(side)
    ]

    for rule in rules:
        if rule.type == RuleType.BLOCK_ALL_PLAY:
            return RuleCheck(False, "Cannot play cards in this lane.")
        if rule.type == RuleType.BLOCK_FACE_DOWN_PLAY and not face_up:
            return RuleCheck(False, "Cannot play cards face-down in this lane.")
        if rule.type in (RuleType.BLOCK_FACE_UP_PLAY, RuleType.REQUIRE_FACE_DOWN_PLAY) and face_up:
            return RuleCheck(False, "Can only play cards face-down.")

    if not face_up or not check_protocol:
        return ALLOWED

    protocols = {state.player.protocols[lane_index], state.opponent.protocols[lane_index]}
    matches = card_protocol in protocols
    if any(rule.type == RuleType.REQUIRE_NON_MATCHING_PROTOCOL for rule in rules):
        if matches:
            return RuleCheck(False, "Can only play cards without matching protocols.")
        return ALLOWED
    if matches or any(rule.type == RuleType.ALLOW_ANY_PROTOCOL_PLAY for rule in rules):
        return ALLOWED
    return RuleCheck(False, f"{card_protocol} does not match a protocol in this line.")


def can_flip_card(state: GameState, card_id: str, lane_index: int, is_face_up: bool) -> RuleCheck:
    """Check whether a board card may be flipped."""
    for rule in get_active_passive_rules(state):
        if rule.type == RuleType.BLOCK_FLIP_THIS_CARD and rule.source_card_id == card_id:
            return RuleCheck(False, "This card cannot be flipped.")
        if rule.type == RuleType.BLOCK_FLIPS and not is_face_up and rule.applies_to_lane(lane_index):
            return RuleCheck(False, "Cards cannot be flipped face-up.")
    return ALLOWED


def can_shift_card(state: GameState, from_lane: int, to_lane: int, card_owner: Player | None = None) -> RuleCheck:
    """
    Check whether a card may move between two lanes.

    With card_owner given, only rules whose target covers that side apply.
    """
    for rule in get_active_passive_rules(state):
        if card_owner is not None and not rule.applies_to_player(card_owner):
            continue
        if rule.type in (RuleType.BLOCK_SHIFTS_FROM_LANE, RuleType.BLOCK_SHIFTS_FROM_AND_TO_LANE):
            if rule.lane_index == from_lane:
                return RuleCheck(False, "Cards cannot shift from this lane.")
        if rule.type in (RuleType.BLOCK_SHIFTS_TO_LANE, RuleType.BLOCK_SHIFTS_FROM_AND_TO_LANE):
            if rule.lane_index == to_lane:
                return RuleCheck(False, "Cards cannot shift to this lane.")
    return ALLOWED


def can_rearrange_protocols(state: GameState) -> RuleCheck:
    for rule in get_active_passive_rules(state):
        if rule.type == RuleType.BLOCK_PROTOCOL_REARRANGE:
            return RuleCheck(False, "Protocols cannot be rearranged.")
    return ALLOWED


def should_ignore_middle_command(state: GameState, lane_index: int) -> bool:
    """Middle-box effects of cards in this lane are ignored."""
    return any(
        rule.type == RuleType.IGNORE_MIDDLE_COMMANDS and rule.applies_to_lane(lane_index)
        for rule in get_active_passive_rules(state)
    )


def skip_check_cache(state: GameState, side: Player) -> bool:
    """Side skips the hand limit check."""
    return any(
        rule.type == RuleType.SKIP_CHECK_CACHE_PHASE and rule.applies_to_player(side)
        for rule in get_active_passive_rules(state)
    )
