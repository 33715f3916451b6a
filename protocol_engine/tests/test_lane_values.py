"""
Tests for the lane value calculator.

Tests:
- Face-up and face-down card values
- Set-to-fixed, per-condition and flat modifiers
- The face_down_boost keyword
- Compilable lanes
"""

from ..engine_core.lane_values import (
    calculate_compilable_lanes,
    calculate_lane_values,
    effective_value,
    recalculate_all_lane_values,
)
from ..engine_core.state import Player
from ..spec_schema.effect_dsl import value_modifier
from .conftest import blank, make_state, played


class TestBaseValues:
    """Tests for plain stacks."""

    def test_face_up_cards_count_printed_value(self):
        """A face-up stack sums the printed values."""
        state = make_state(player_lanes=[[played("a", blank(value=3)), played("b", blank(value=4))], [], []])
        assert state.player.lane_values == (7, 0, 0)

    def test_face_down_card_is_worth_two(self):
        """A face-down card counts 2 whatever its printed value."""
        state = make_state(player_lanes=[[played("a", blank(value=5), face_up=False)], [], []])
        assert state.player.lane_values[0] == 2
        assert effective_value(state, state.player.lanes[0][0], Player.PLAYER, 0) == 2

    def test_sides_are_independent(self):
        state = make_state(
            player_lanes=[[played("a", blank(value=3))], [], []],
            opponent_lanes=[[], [played("b", blank(value=5))], []],
        )
        assert state.player.lane_values == (3, 0, 0)
        assert state.opponent.lane_values == (0, 5, 0)


class TestModifiers:
    """Tests for passive value modifiers."""

    def test_darkness_two_sets_face_down_cards_to_four(self, catalog):
        """Face-down cards in the Darkness-2 stack are worth 4."""
        darkness2 = catalog.get("Darkness", 2)
        state = make_state(player_lanes=[[played("fd", face_up=False), played("d2", darkness2)], [], []])
        assert state.player.lane_values[0] == 6

    def test_modifier_applies_while_covered(self, catalog):
        """Top-box modifiers stay active when their card is covered."""
        darkness2 = catalog.get("Darkness", 2)
        state = make_state(player_lanes=[[
            played("fd", face_up=False),
            played("d2", darkness2),
            played("top", blank(value=1)),
        ], [], []])
        assert state.player.lane_values[0] == 7

    def test_face_down_modifier_card_is_inactive(self, catalog):
        darkness2 = catalog.get("Darkness", 2)
        state = make_state(player_lanes=[[played("fd", face_up=False), played("d2", darkness2, face_up=False)], [], []])
        assert state.player.lane_values[0] == 4

    def test_set_to_fixed_only_touches_its_lane(self, catalog):
        darkness2 = catalog.get("Darkness", 2)
        state = make_state(player_lanes=[[played("d2", darkness2)], [played("fd", face_up=False)], []])
        assert state.player.lane_values == (2, 2, 0)

    def test_metal_zero_reduces_opponent_total(self, catalog):
        """Metal-0 takes 2 off the other side's total in its line."""
        metal0 = catalog.get("Metal", 0)
        state = make_state(
            player_lanes=[[played("p", blank(value=3))], [], []],
            opponent_lanes=[[played("m0", metal0)], [], []],
        )
        assert state.player.lane_values[0] == 1
        assert state.opponent.lane_values[0] == 0

    def test_totals_are_clamped_to_zero(self, catalog):
        metal0 = catalog.get("Metal", 0)
        state = make_state(
            player_lanes=[[played("p", blank(value=1))], [], []],
            opponent_lanes=[[played("m0", metal0)], [], []],
        )
        assert state.player.lane_values[0] == 0

    def test_add_per_condition_counts_both_sides(self):
        """A per-face-down modifier counts face-down cards on both sides of the line."""
        counter = blank(value=0, top_effects=[
            value_modifier("per_fd", "add_per_condition", 1, condition="per_face_down_card"),
        ])
        state = make_state(
            player_lanes=[[played("fd1", face_up=False), played("counter", counter)], [], []],
            opponent_lanes=[[played("fd2", face_up=False)], [], []],
        )
        assert state.player.lane_values[0] == 4
        assert state.opponent.lane_values[0] == 2

    def test_global_flat_bonus(self):
        bonus = blank(value=0, top_effects=[value_modifier("plus", "add_to_total", 1, scope="global")])
        state = make_state(player_lanes=[[played("b", bonus)], [], []])
        assert state.player.lane_values == (1, 1, 1)


class TestFaceDownBoost:
    """Tests for the face_down_boost keyword."""

    def test_boost_adds_two_to_face_down_cards_in_stack(self):
        booster = blank(value=1, keywords=["face_down_boost"])
        state = make_state(player_lanes=[[played("fd", face_up=False), played("boost", booster)], [], []])
        assert state.player.lane_values[0] == 5

    def test_boost_needs_face_up_card(self):
        booster = blank(value=1, keywords=["face_down_boost"])
        state = make_state(player_lanes=[[played("fd", face_up=False), played("boost", booster, face_up=False)], [], []])
        assert state.player.lane_values[0] == 4


class TestRecalculation:
    """Tests for the value cache."""

    def test_unchanged_values_keep_the_same_state(self):
        state = make_state(player_lanes=[[played("a", blank(value=3))], [], []])
        assert recalculate_all_lane_values(state) is state

    def test_stale_cache_is_rebuilt(self):
        state = make_state(player_lanes=[[played("a", blank(value=3))], [], []])
        stale = state.update_player(Player.PLAYER, lane_values=(0, 0, 0))
        assert recalculate_all_lane_values(stale).player.lane_values == (3, 0, 0)

    def test_calculate_does_not_store(self):
        state = make_state(player_lanes=[[played("a", blank(value=3))], [], []])
        stale = state.update_player(Player.PLAYER, lane_values=(0, 0, 0))
        assert calculate_lane_values(stale)[Player.PLAYER] == [3, 0, 0]
        assert stale.player.lane_values == (0, 0, 0)


class TestCompilableLanes:
    """Tests for compile eligibility."""

    def _lane_of(self, total: int, prefix: str):
        cards = []
        while total > 0:
            value = min(5, total)
            cards.append(played(f"{prefix}{len(cards)}", blank(value=value)))
            total -= value
        return cards

    def test_ten_and_ahead_is_compilable(self):
        state = make_state(
            player_lanes=[self._lane_of(10, "p"), [], []],
            opponent_lanes=[self._lane_of(3, "o"), [], []],
        )
        assert calculate_compilable_lanes(state, Player.PLAYER) == [0]
        assert calculate_compilable_lanes(state, Player.OPPONENT) == []

    def test_tie_is_not_compilable(self):
        state = make_state(
            player_lanes=[self._lane_of(10, "p"), [], []],
            opponent_lanes=[self._lane_of(10, "o"), [], []],
        )
        assert calculate_compilable_lanes(state, Player.PLAYER) == []

    def test_below_ten_is_not_compilable(self):
        state = make_state(player_lanes=[self._lane_of(9, "p"), [], []])
        assert calculate_compilable_lanes(state, Player.PLAYER) == []

    def test_blocked_side_cannot_compile(self):
        state = make_state(player_lanes=[self._lane_of(12, "p"), [], []])
        state = state.update_player(Player.PLAYER, cannot_compile=True)
        assert calculate_compilable_lanes(state, Player.PLAYER) == []
