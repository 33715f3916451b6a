"""
Tests for the reducer.

Tests:
- Validation error codes for every rejected input
- Rejected inputs never produce a state
- Successful plays and refreshes run the turn forward
- Handler failures are reported, invariant violations are not hidden
"""

import pytest

from ..engine_core.action import Action, ErrorCode
from ..engine_core.pending import Discard
from ..engine_core.reducer import Reducer, apply_action
from ..engine_core.resolver import DecisionResolver
from ..engine_core.state import GamePhase, InvariantViolation, Player
from .conftest import blank, hand_ids, lane_ids, make_state, played


def _hand_state(**kwargs):
    """Player holds a Fire-1 (h1) and a Metal-1 (h2)."""
    kwargs.setdefault("player_hand", [played("h1"), played("h2", blank("Metal", 1))])
    return make_state(**kwargs)


def _discarding(state):
    return state._copy_with(action_required=Discard(actor=Player.PLAYER, count=1))


class _BrokenResolver(DecisionResolver):
    def __init__(self, error: Exception):
        self.error = error

    def resolve(self, state, action):
        raise self.error


class TestValidation:
    """Tests for rejected inputs."""

    def test_game_over(self, reducer):
        state = _hand_state(winner=Player.OPPONENT)
        result = reducer.apply(state, Action.play(Player.PLAYER, "h1", 0))
        assert not result.success
        assert result.error_code == ErrorCode.GAME_OVER

    def test_choose_without_pending(self, reducer):
        result = reducer.apply(_hand_state(), Action.choose_card(Player.PLAYER, "h1"))
        assert result.error_code == ErrorCode.NO_PENDING_ACTION

    def test_skip_without_pending(self, reducer):
        result = reducer.apply(_hand_state(), Action.skip(Player.PLAYER))
        assert result.error_code == ErrorCode.NO_PENDING_ACTION

    def test_decision_from_wrong_side(self, reducer):
        state = _discarding(_hand_state())
        result = reducer.apply(state, Action.choose_cards(Player.OPPONENT, ["h1"]))
        assert result.error_code == ErrorCode.WRONG_ACTOR

    def test_compile_without_compile_prompt(self, reducer):
        result = reducer.apply(_hand_state(), Action.compile(Player.PLAYER, 0))
        assert result.error_code == ErrorCode.NO_PENDING_ACTION

    def test_play_while_decision_is_open(self, reducer):
        state = _discarding(_hand_state())
        result = reducer.apply(state, Action.play(Player.PLAYER, "h1", 0))
        assert result.error_code == ErrorCode.INVALID_DECISION

    def test_play_on_opponents_turn(self, reducer):
        result = reducer.apply(_hand_state(turn=Player.OPPONENT), Action.play(Player.PLAYER, "h1", 0))
        assert result.error_code == ErrorCode.WRONG_ACTOR

    def test_play_outside_action_phase(self, reducer):
        result = reducer.apply(_hand_state(phase=GamePhase.START), Action.play(Player.PLAYER, "h1", 0))
        assert result.error_code == ErrorCode.ILLEGAL_PLAY

    def test_second_action_in_a_turn(self, reducer):
        result = reducer.apply(_hand_state(action_taken=True), Action.play(Player.PLAYER, "h1", 0))
        assert result.error_code == ErrorCode.ILLEGAL_PLAY

    def test_card_not_in_hand(self, reducer):
        result = reducer.apply(_hand_state(), Action.play(Player.PLAYER, "nope", 0))
        assert result.error_code == ErrorCode.ILLEGAL_PLAY

    def test_lane_out_of_range(self, reducer):
        result = reducer.apply(_hand_state(), Action.play(Player.PLAYER, "h1", 3, face_up=False))
        assert result.error_code == ErrorCode.ILLEGAL_PLAY

    def test_face_up_play_must_match_protocol(self, reducer):
        result = reducer.apply(_hand_state(), Action.play(Player.PLAYER, "h2", 0))
        assert result.error_code == ErrorCode.ILLEGAL_PLAY
        assert result.error == "Metal does not match a protocol in this line."

    def test_refresh_with_full_hand(self, reducer):
        state = make_state(player_hand=[played(f"h{i}") for i in range(5)])
        result = reducer.apply(state, Action.refresh(Player.PLAYER))
        assert result.error_code == ErrorCode.ILLEGAL_PLAY

    def test_bad_answer_leaves_state_untouched(self, reducer):
        state = _discarding(_hand_state())
        result = reducer.apply(state, Action.choose_cards(Player.PLAYER, ["h1", "h2"]))
        assert result.error_code == ErrorCode.INVALID_DECISION
        assert result.new_state is None
        assert hand_ids(state, Player.PLAYER) == ["h1", "h2"]


class TestSuccess:
    """Tests for accepted inputs."""

    def test_face_down_play_passes_the_turn(self, reducer):
        state = _hand_state()
        result = reducer.apply(state, Action.play(Player.PLAYER, "h2", 1, face_up=False))
        assert result.success
        new_state = result.new_state
        assert lane_ids(new_state, Player.PLAYER, 1) == ["h2"]
        assert not new_state.player.lanes[1][0].is_face_up
        assert new_state.turn is Player.OPPONENT
        assert new_state.turn_number == 2
        assert "Player plays a face-down card into Protocol Water." in result.state_changes

    def test_face_up_play_into_matching_line(self, reducer):
        result = reducer.apply(_hand_state(), Action.play(Player.PLAYER, "h1", 0))
        assert result.success
        card = result.new_state.player.lanes[0][0]
        assert card.id == "h1"
        assert card.is_face_up
        assert result.new_state.player.lane_values[0] == 1

    def test_state_changes_only_list_new_lines(self, reducer):
        state = _hand_state()
        first = reducer.apply(state, Action.play(Player.PLAYER, "h1", 0)).new_state
        changes = reducer.apply(first, Action.refresh(Player.OPPONENT)).state_changes
        assert "Opponent refreshes their hand." in changes
        assert not any("Fire-1" in line for line in changes)

    def test_refresh_draws_to_five(self, reducer):
        state = _hand_state(player_deck=[blank() for _ in range(6)])
        result = reducer.apply(state, Action.refresh(Player.PLAYER))
        assert result.success
        assert len(result.new_state.player.hand) == 5
        assert len(result.new_state.player.deck) == 3
        assert result.new_state.player.stats.hands_refreshed == 1
        assert "Player refreshes their hand." in result.state_changes

    def test_answer_then_turn_continues(self, reducer):
        state = _discarding(_hand_state())
        result = reducer.apply(state, Action.choose_cards(Player.PLAYER, ["h2"]))
        assert result.success
        assert hand_ids(result.new_state, Player.PLAYER) == ["h1"]
        assert result.requires_turn_end

    def test_apply_action_helper(self):
        result = apply_action(_hand_state(), Action.play(Player.PLAYER, "h1", 0))
        assert result.success

    def test_published_state_is_not_mutated(self, reducer):
        state = _hand_state()
        reducer.apply(state, Action.play(Player.PLAYER, "h1", 0))
        assert hand_ids(state, Player.PLAYER) == ["h1", "h2"]
        assert state.turn is Player.PLAYER


class TestHandlerFailures:
    """Tests for errors raised inside handlers."""

    def test_unexpected_error_is_reported(self):
        reducer = Reducer(resolver=_BrokenResolver(RuntimeError("boom")))
        result = reducer.apply(_discarding(_hand_state()), Action.choose_cards(Player.PLAYER, ["h1"]))
        assert result.error_code == ErrorCode.HANDLER_ERROR
        assert result.error == "boom"

    def test_invariant_violation_propagates(self):
        reducer = Reducer(resolver=_BrokenResolver(InvariantViolation("duplicate ids")))
        with pytest.raises(InvariantViolation):
            reducer.apply(_discarding(_hand_state()), Action.choose_cards(Player.PLAYER, ["h1"]))
