"""
Tests for board targeting.

Tests:
- Owner, position and face filters relative to the card owner
- Value filters on effective values
- Highest/lowest calculations keep ties
- Scopes and self exclusion
- Board order tie-breaking for automated picks
"""

from ..engine_core.state import Player
from ..engine_core.targeting import (
    Scope,
    TargetFilter,
    find_card_on_board,
    find_targets,
    pick_by_board_order,
    target_ids,
)
from .conftest import blank, make_state, played


def _board():
    """Player: lane 0 [p_low, p_top], lane 1 [p_mid]. Opponent: lane 0 [o_top], lane 2 [o_fd]."""
    return make_state(
        player_lanes=[
            [played("p_low", blank(value=1)), played("p_top", blank(value=4))],
            [played("p_mid", blank(value=3))],
            [],
        ],
        opponent_lanes=[
            [played("o_top", blank(value=4))],
            [],
            [played("o_fd", blank(value=5), face_up=False)],
        ],
    )


class TestFilters:
    """Tests for per-card constraints."""

    def test_default_targets_uncovered_cards_in_board_order(self):
        """Player side first, then lanes ascending."""
        targets = find_targets(_board(), TargetFilter(), Player.PLAYER)
        assert target_ids(targets) == ("p_top", "p_mid", "o_top", "o_fd")

    def test_owner_is_relative_to_card_owner(self):
        state = _board()
        own_for_opponent = find_targets(state, TargetFilter(owner="own"), Player.OPPONENT)
        assert target_ids(own_for_opponent) == ("o_top", "o_fd")
        opponent_for_player = find_targets(state, TargetFilter(owner="opponent"), Player.PLAYER)
        assert target_ids(opponent_for_player) == ("o_top", "o_fd")

    def test_covered_position(self):
        targets = find_targets(_board(), TargetFilter(position="covered"), Player.PLAYER)
        assert target_ids(targets) == ("p_low",)

    def test_any_position(self):
        targets = find_targets(_board(), TargetFilter(owner="own", position="any"), Player.PLAYER)
        assert target_ids(targets) == ("p_low", "p_top", "p_mid")

    def test_face_state(self):
        targets = find_targets(_board(), TargetFilter(face_state="face_down"), Player.PLAYER)
        assert target_ids(targets) == ("o_fd",)

    def test_value_filter_uses_effective_value(self):
        """A face-down 5 is worth 2, so it matches value 2."""
        targets = find_targets(_board(), TargetFilter(value_equals=2), Player.PLAYER)
        assert target_ids(targets) == ("o_fd",)

    def test_value_filter_sees_set_to_fixed(self, catalog):
        """Under Darkness-2 a face-down card is worth 4 and no longer matches 1-2."""
        state = make_state(
            player_lanes=[[played("fd", face_up=False), played("d2", catalog.get("Darkness", 2))], [], []],
            opponent_lanes=[[], [played("o_fd", face_up=False)], []],
        )
        targets = find_targets(state, TargetFilter(position="any", value_range=(1, 2)), Player.PLAYER)
        assert target_ids(targets) == ("d2", "o_fd")

    def test_value_range_accepts_mapping(self):
        parsed = TargetFilter.from_params({"owner": "own", "value_range": {"min": 0, "max": 1}})
        assert parsed.value_range == (0, 1)
        assert parsed.position == "uncovered"

    def test_empty_params_give_default_filter(self):
        assert TargetFilter.from_params(None) == TargetFilter()


class TestCalculations:
    """Tests for highest/lowest value selection."""

    def test_highest_keeps_ties(self):
        targets = find_targets(_board(), TargetFilter(calculation="highest_value"), Player.PLAYER)
        assert target_ids(targets) == ("p_top", "o_top")

    def test_lowest_uses_effective_value(self):
        targets = find_targets(_board(), TargetFilter(calculation="lowest_value"), Player.PLAYER)
        assert target_ids(targets) == ("o_fd",)

    def test_calculation_runs_after_filters(self):
        targets = find_targets(_board(), TargetFilter(owner="own", calculation="highest_value"), Player.PLAYER)
        assert target_ids(targets) == ("p_top",)


class TestScopes:
    """Tests for lane scopes and exclusions."""

    def test_this_lane(self):
        targets = find_targets(_board(), TargetFilter(), Player.PLAYER, scope=Scope.THIS_LANE, source_lane_index=0)
        assert target_ids(targets) == ("p_top", "o_top")

    def test_other_lanes(self):
        targets = find_targets(_board(), TargetFilter(), Player.PLAYER, scope=Scope.OTHER_LANES, source_lane_index=0)
        assert target_ids(targets) == ("p_mid", "o_fd")

    def test_exclude_self(self):
        targets = find_targets(
            _board(), TargetFilter(), Player.PLAYER, source_card_id="p_top", exclude_self=True,
        )
        assert "p_top" not in target_ids(targets)

    def test_disallowed_ids(self):
        targets = find_targets(_board(), TargetFilter(), Player.PLAYER, disallowed_ids=("o_top",))
        assert target_ids(targets) == ("p_top", "p_mid", "o_fd")

    def test_protocol_matching(self):
        """Lane 0 holds Fire and Hate; a Metal card there does not match."""
        state = make_state(opponent_lanes=[[played("m", blank("Metal", 2))], [], [played("f", blank("Fire", 2))]])
        must_match = find_targets(state, TargetFilter(), Player.PLAYER, protocol_matching="must_match")
        assert target_ids(must_match) == ()
        must_not = find_targets(state, TargetFilter(), Player.PLAYER, protocol_matching="must_not_match")
        assert target_ids(must_not) == ("m", "f")


class TestBoardOrder:
    """Tests for the automated tie-break."""

    def test_lowest_lane_first(self):
        state = _board()
        targets = [find_card_on_board(state, "p_mid"), find_card_on_board(state, "o_top")]
        assert pick_by_board_order(state, targets, Player.PLAYER).card_id == "o_top"

    def test_top_of_stack_before_covered(self):
        state = _board()
        targets = [find_card_on_board(state, "p_low"), find_card_on_board(state, "p_top")]
        assert pick_by_board_order(state, targets, Player.PLAYER).card_id == "p_top"

    def test_own_side_first_in_same_lane(self):
        state = _board()
        targets = [find_card_on_board(state, "p_top"), find_card_on_board(state, "o_top")]
        assert pick_by_board_order(state, targets, Player.OPPONENT).card_id == "o_top"
        assert pick_by_board_order(state, targets, Player.PLAYER).card_id == "p_top"


class TestFindCard:
    """Tests for card lookup."""

    def test_locates_card(self):
        info = find_card_on_board(_board(), "p_low")
        assert info.owner is Player.PLAYER
        assert info.lane_index == 0
        assert info.stack_index == 0
        assert not info.is_uncovered

    def test_missing_card(self):
        assert find_card_on_board(_board(), "nope") is None
        assert find_card_on_board(_board(), None) is None
