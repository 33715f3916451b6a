"""
Tests for passive rules.

Tests:
- Protocol matching for face-up plays
- Play restrictions (face-down blocks, any-line, non-matching)
- Flip and shift restrictions
- Ignored middle commands and the hand limit skip
- Rules vanish when their card is face-down
"""

from ..engine_core.choices import valid_card_targets
from ..engine_core.passive_rules import (
    RuleType,
    can_flip_card,
    can_play_card,
    can_shift_card,
    get_active_passive_rules,
    should_ignore_middle_command,
    skip_check_cache,
)
from ..engine_core.state import Player
from ..spec_schema.effect_dsl import passive_rule, shift_effect
from .conftest import blank, make_state, played, run_effect


def _rule_card(rule_type: str, target: str = "opponent", scope: str = "this_lane"):
    return blank("Hate", 0, top_effects=[passive_rule("rule", rule_type, target=target, scope=scope)])


class TestProtocolMatching:
    """Tests for face-up play legality."""

    def test_own_protocol_matches(self, empty_state):
        assert can_play_card(empty_state, Player.PLAYER, 0, True, "Fire").allowed

    def test_opponent_protocol_in_line_matches(self, empty_state):
        """Lane 0 is Fire for the player and Hate for the opponent."""
        assert can_play_card(empty_state, Player.PLAYER, 0, True, "Hate").allowed

    def test_other_protocol_is_rejected(self, empty_state):
        check = can_play_card(empty_state, Player.PLAYER, 0, True, "Metal")
        assert not check.allowed
        assert check.reason == "Metal does not match a protocol in this line."

    def test_face_down_plays_go_anywhere(self, empty_state):
        assert can_play_card(empty_state, Player.PLAYER, 0, False, "Metal").allowed

    def test_protocol_check_can_be_turned_off(self, empty_state):
        assert can_play_card(empty_state, Player.PLAYER, 0, True, "Metal", check_protocol=False).allowed


class TestPlayRules:
    """Tests for rules that restrict plays."""

    def test_metal_two_blocks_face_down_in_its_line(self, catalog):
        state = make_state(opponent_lanes=[[], [played("m2", catalog.get("Metal", 2))], []])
        assert not can_play_card(state, Player.PLAYER, 1, False, "Fire").allowed
        assert can_play_card(state, Player.PLAYER, 0, False, "Fire").allowed

    def test_metal_two_does_not_bind_its_owner(self, catalog):
        state = make_state(opponent_lanes=[[], [played("m2", catalog.get("Metal", 2))], []])
        assert can_play_card(state, Player.OPPONENT, 1, False, "Fire").allowed

    def test_spirit_one_allows_any_line(self, catalog):
        state = make_state(player_lanes=[[played("s1", catalog.get("Spirit", 1))], [], []])
        assert can_play_card(state, Player.PLAYER, 2, True, "Metal").allowed
        assert not can_play_card(state, Player.OPPONENT, 2, True, "Fire").allowed

    def test_require_non_matching(self):
        state = make_state(opponent_lanes=[[played("r", _rule_card(RuleType.REQUIRE_NON_MATCHING_PROTOCOL))], [], []])
        assert not can_play_card(state, Player.PLAYER, 0, True, "Fire").allowed
        assert can_play_card(state, Player.PLAYER, 0, True, "Metal").allowed

    def test_block_all_play(self):
        state = make_state(opponent_lanes=[[played("r", _rule_card(RuleType.BLOCK_ALL_PLAY))], [], []])
        check = can_play_card(state, Player.PLAYER, 0, False, "Fire")
        assert not check.allowed
        assert check.reason == "Cannot play cards in this lane."

    def test_face_down_rule_card_is_inactive(self, catalog):
        state = make_state(opponent_lanes=[[], [played("m2", catalog.get("Metal", 2), face_up=False)], []])
        assert get_active_passive_rules(state) == []
        assert can_play_card(state, Player.PLAYER, 1, False, "Fire").allowed

    def test_covered_rule_card_stays_active(self, catalog):
        state = make_state(opponent_lanes=[[], [played("m2", catalog.get("Metal", 2)), played("top")], []])
        assert not can_play_card(state, Player.PLAYER, 1, False, "Fire").allowed


class TestFlipRules:
    """Tests for flip restrictions."""

    def test_block_flips_stops_face_up_flips_in_its_line(self):
        state = make_state(
            player_lanes=[[played("fd", face_up=False), played("r", _rule_card(RuleType.BLOCK_FLIPS))], [], []],
        )
        assert not can_flip_card(state, "fd", 0, is_face_up=False).allowed
        assert can_flip_card(state, "r", 0, is_face_up=True).allowed
        assert can_flip_card(state, "other", 1, is_face_up=False).allowed

    def test_block_flip_this_card(self):
        state = make_state(player_lanes=[[played("r", _rule_card(RuleType.BLOCK_FLIP_THIS_CARD))], [], []])
        assert not can_flip_card(state, "r", 0, is_face_up=True).allowed


class TestShiftRules:
    """Tests for shift restrictions."""

    def test_block_shifts_from_lane(self):
        state = make_state(opponent_lanes=[[played("r", _rule_card(RuleType.BLOCK_SHIFTS_FROM_LANE))], [], []])
        assert not can_shift_card(state, 0, 1).allowed
        assert can_shift_card(state, 1, 0).allowed

    def test_block_shifts_to_lane(self):
        state = make_state(opponent_lanes=[[played("r", _rule_card(RuleType.BLOCK_SHIFTS_TO_LANE))], [], []])
        assert not can_shift_card(state, 1, 0).allowed
        assert can_shift_card(state, 0, 1).allowed

    def test_shift_block_respects_rule_target(self):
        state = make_state(opponent_lanes=[[played("r", _rule_card(RuleType.BLOCK_SHIFTS_FROM_LANE))], [], []])
        assert not can_shift_card(state, 0, 1, Player.PLAYER).allowed
        assert can_shift_card(state, 0, 1, Player.OPPONENT).allowed

    def test_rule_for_everyone_blocks_both_sides(self):
        state = make_state(opponent_lanes=[[played("r", _rule_card(RuleType.BLOCK_SHIFTS_FROM_LANE, target="all"))], [], []])
        assert not can_shift_card(state, 0, 1, Player.PLAYER).allowed
        assert not can_shift_card(state, 0, 1, Player.OPPONENT).allowed

    def test_own_cards_stay_shiftable_under_opponent_block(self):
        blocker = _rule_card(RuleType.BLOCK_SHIFTS_FROM_LANE)
        state = make_state(
            player_lanes=[[played("p", blank("Fire", 4))], [], [played("src", blank("Fire", 2))]],
            opponent_lanes=[[played("r", blocker), played("o", blank("Metal", 2))], [], []],
        )
        result = run_effect(state, "src", shift_effect("s", owner="any"))
        shiftable = {target.card_id for target in valid_card_targets(result.new_state, result.pending)}
        assert "o" in shiftable
        assert "p" not in shiftable


class TestOtherRules:
    """Tests for ignore-middle and skip-check-cache."""

    def test_ignore_middle_commands(self):
        state = make_state(opponent_lanes=[[], [], [played("r", _rule_card(RuleType.IGNORE_MIDDLE_COMMANDS))]])
        assert should_ignore_middle_command(state, 2)
        assert not should_ignore_middle_command(state, 0)

    def test_spirit_zero_skips_own_hand_limit(self, catalog):
        state = make_state(player_lanes=[[played("s0", catalog.get("Spirit", 0))], [], []])
        assert skip_check_cache(state, Player.PLAYER)
        assert not skip_check_cache(state, Player.OPPONENT)
