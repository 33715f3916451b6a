"""
End-to-end card scenarios, played through the reducer.

Tests:
- Fire-1: discard, and only if you did, delete
- Fire-4: draw the amount discarded plus 1
- Hate-2: highest-value picks are forced
- Hate-4: the on-cover delete lands before the new card
- Death-0: one deletion per other line
- Death-2 with Darkness-2: set values decide what gets deleted
"""

from ..engine_core.action import Action, ErrorCode
from ..engine_core.pending import (
    Discard,
    SelectCardFromOtherLanesToDelete,
    SelectCardsToDelete,
    SelectLaneForDelete,
)
from ..engine_core.state import Player
from .conftest import apply_ok, blank, hand_ids, lane_ids, make_state, messages, played


def _deck(size: int):
    return [blank() for _ in range(size)]


class TestFire:
    """Tests for Fire cards."""

    def test_fire_one_discards_then_deletes(self, catalog):
        state = make_state(
            player_hand=[played("f1", catalog.get("Fire", 1)), played("x"), played("y")],
            opponent_lanes=[[], [played("o1", blank("Metal", 3))], []],
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "f1", 0))
        assert isinstance(state.action_required, Discard)

        state = apply_ok(state, Action.choose_cards(Player.PLAYER, ["x"]))
        assert isinstance(state.action_required, SelectCardsToDelete)

        state = apply_ok(state, Action.choose_card(Player.PLAYER, "o1"))
        assert lane_ids(state, Player.OPPONENT, 1) == []
        assert hand_ids(state, Player.PLAYER) == ["y"]
        assert "Player deletes Opponent's Metal-3." in messages(state)
        assert state.turn is Player.OPPONENT

    def test_fire_one_with_empty_hand_deletes_nothing(self, catalog):
        state = make_state(
            player_hand=[played("f1", catalog.get("Fire", 1))],
            opponent_lanes=[[], [played("o1", blank("Metal", 3))], []],
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "f1", 0))
        assert "Player has no cards to discard." in messages(state)
        assert lane_ids(state, Player.OPPONENT, 1) == ["o1"]
        assert state.turn is Player.OPPONENT

    def test_fire_four_draws_discarded_plus_one(self, catalog):
        state = make_state(
            player_hand=[played("f4", catalog.get("Fire", 4)), played("a"), played("b"), played("c")],
            player_deck=_deck(5),
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "f4", 0))
        pending = state.action_required
        assert isinstance(pending, Discard)
        assert pending.variable_count

        state = apply_ok(state, Action.choose_cards(Player.PLAYER, ["a", "b"]))
        assert len(state.player.hand) == 4
        assert "c" in hand_ids(state, Player.PLAYER)
        assert "Player draws 3 cards." in messages(state)


class TestHate:
    """Tests for Hate cards."""

    def test_hate_two_must_take_the_highest(self, catalog, reducer):
        state = make_state(
            player_lanes=[[], [played("p", blank("Water", 4))], []],
            opponent_lanes=[[], [], [played("o", blank("Speed", 3))]],
            player_hand=[played("h2", catalog.get("Hate", 2))],
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "h2", 0))
        assert isinstance(state.action_required, SelectCardsToDelete)

        wrong = reducer.apply(state, Action.choose_card(Player.PLAYER, "h2"))
        assert wrong.error_code == ErrorCode.INVALID_DECISION

        state = apply_ok(state, Action.choose_card(Player.PLAYER, "p"))
        assert isinstance(state.action_required, SelectCardsToDelete)
        state = apply_ok(state, Action.choose_card(Player.PLAYER, "o"))

        assert lane_ids(state, Player.PLAYER, 0) == ["h2"]
        assert lane_ids(state, Player.PLAYER, 1) == []
        assert lane_ids(state, Player.OPPONENT, 2) == []

    def test_hate_four_deletes_before_being_covered(self, catalog):
        state = make_state(
            player_lanes=[[played("x", blank(value=1)), played("y", blank(value=3)), played("h4", catalog.get("Hate", 4))], [], []],
            player_hand=[played("z")],
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "z", 0, face_up=False))
        assert lane_ids(state, Player.PLAYER, 0) == ["y", "h4", "z"]
        assert "Player deletes Player's Fire-1." in messages(state)


class TestDeath:
    """Tests for Death cards."""

    def test_death_zero_deletes_in_each_other_line(self, catalog):
        state = make_state(
            opponent_lanes=[[played("a", blank("Hate", 1))], [played("b", blank("Metal", 2))], [played("c", blank("Speed", 3))]],
            player_hand=[played("d0", catalog.get("Death", 0))],
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "d0", 2))
        pending = state.action_required
        assert isinstance(pending, SelectCardFromOtherLanesToDelete)
        assert pending.count == 2

        state = apply_ok(state, Action.choose_card(Player.PLAYER, "a"))
        state = apply_ok(state, Action.choose_card(Player.PLAYER, "b"))
        assert lane_ids(state, Player.OPPONENT, 0) == []
        assert lane_ids(state, Player.OPPONENT, 1) == []
        assert lane_ids(state, Player.OPPONENT, 2) == ["c"]
        assert state.turn is Player.OPPONENT

    def test_death_zero_with_one_other_line(self, catalog):
        state = make_state(
            opponent_lanes=[[played("a", blank("Hate", 1))], [], []],
            player_hand=[played("d0", catalog.get("Death", 0))],
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "d0", 2))
        assert state.action_required.count == 1
        state = apply_ok(state, Action.choose_card(Player.PLAYER, "a"))
        assert lane_ids(state, Player.OPPONENT, 0) == []

    def test_death_two_respects_darkness_two(self, catalog):
        """Darkness-2 makes the face-down card worth 4, so it survives."""
        state = make_state(
            player_lanes=[[played("fd", face_up=False), played("d2", catalog.get("Darkness", 2))], [], []],
            opponent_lanes=[[played("o1", blank("Hate", 1))], [], []],
            player_hand=[played("death2", catalog.get("Death", 2))],
        )
        state = apply_ok(state, Action.play(Player.PLAYER, "death2", 2))
        pending = state.action_required
        assert isinstance(pending, SelectLaneForDelete)
        assert pending.valid_lanes == (0,)

        state = apply_ok(state, Action.choose_lane(Player.PLAYER, 0))
        assert lane_ids(state, Player.PLAYER, 0) == ["fd"]
        assert lane_ids(state, Player.OPPONENT, 0) == []
        assert lane_ids(state, Player.PLAYER, 2) == ["death2"]
