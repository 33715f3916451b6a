"""
Tests for turn phases.

Tests:
- Compile: stacks to trash, re-compile draw, winning
- Turn hand-over resets only the ending side
- Hand limit discards and the Spirit-0 skip
- Refresh reactions and turns with no legal action
- The control component
"""

from ..engine_core.action import Action, ErrorCode
from ..engine_core.pending import Discard, PromptRearrangeProtocols, PromptUseControlMechanic, SelectLaneForCompile
from ..engine_core.phases import continue_game, end_turn
from ..engine_core.state import GamePhase, Player
from ..spec_schema.effect_dsl import passive_rule
from .conftest import apply_ok, blank, hand_ids, lane_ids, make_state, messages, played


def _deck(size: int):
    return [blank() for _ in range(size)]


def _compilable(**kwargs):
    """Player lane 0 is worth 10 against the opponent's 3."""
    kwargs.setdefault("phase", GamePhase.START)
    return make_state(
        player_lanes=[[played("a", blank(value=5)), played("b", blank(value=5))], [], []],
        opponent_lanes=[[played("o", blank("Hate", 3))], [], []],
        **kwargs,
    )


class TestCompile:
    """Tests for compiling a lane."""

    def test_compile_prompt_opens_at_start_of_turn(self):
        state = continue_game(_compilable())
        assert isinstance(state.action_required, SelectLaneForCompile)
        assert state.action_required.valid_lanes == (0,)

    def test_compile_clears_the_line(self):
        state = continue_game(_compilable())
        state = apply_ok(state, Action.compile(Player.PLAYER, 0))
        assert state.player.compiled == (True, False, False)
        assert lane_ids(state, Player.PLAYER, 0) == []
        assert lane_ids(state, Player.OPPONENT, 0) == []
        assert len(state.player.discard) == 2
        assert len(state.opponent.discard) == 1
        assert state.player.stats.cards_deleted == 0
        assert "Player compiles Protocol Fire!" in messages(state)
        assert state.turn is Player.OPPONENT

    def test_compile_is_the_turns_action(self):
        state = continue_game(_compilable(player_hand=[played("h1")]))
        state = apply_ok(state, Action.compile(Player.PLAYER, 0))
        assert hand_ids(state, Player.PLAYER) == ["h1"]
        assert state.turn is Player.OPPONENT

    def test_recompile_draws_from_opponent_deck(self):
        state = _compilable(opponent_deck=[blank("Hate", 0)])
        state = state.update_player(Player.PLAYER, compiled=(True, False, False))
        state = apply_ok(continue_game(state), Action.compile(Player.PLAYER, 0))
        assert state.player.compiled == (True, False, False)
        assert [card.name for card in state.player.hand] == ["Hate-0"]
        assert state.opponent.deck == ()
        assert "Player draws 1 card from Opponent's deck." in messages(state)

    def test_compile_counts_as_deleting_for_reactions(self, catalog):
        state = _compilable(player_deck=_deck(3))
        state = state.update_player(Player.PLAYER, lanes=(
            state.player.lanes[0],
            (played("h3", catalog.get("Hate", 3)),),
            (),
        ))
        state = apply_ok(continue_game(state), Action.compile(Player.PLAYER, 0))
        assert len(state.player.hand) == 1
        assert lane_ids(state, Player.PLAYER, 1) == ["h3"]

    def test_third_compile_wins(self, reducer):
        state = _compilable().update_player(Player.PLAYER, compiled=(False, True, True))
        state = apply_ok(continue_game(state), Action.compile(Player.PLAYER, 0))
        assert state.winner is Player.PLAYER
        assert "Player wins the game!" in messages(state)
        assert reducer.apply(state, Action.refresh(Player.OPPONENT)).error_code == ErrorCode.GAME_OVER

    def test_compile_outside_prompt_lanes_is_rejected(self, reducer):
        state = continue_game(_compilable())
        result = reducer.apply(state, Action.compile(Player.PLAYER, 1))
        assert result.error_code == ErrorCode.INVALID_DECISION

    def test_cannot_compile_skips_the_prompt(self):
        state = _compilable(player_hand=[played("h1")]).update_player(Player.PLAYER, cannot_compile=True)
        state = continue_game(state)
        assert state.action_required is None
        assert state.phase is GamePhase.ACTION

    def test_tie_does_not_compile(self):
        state = make_state(
            player_lanes=[[played("a", blank(value=5)), played("b", blank(value=5))], [], []],
            opponent_lanes=[[played("o1", blank("Hate", 5)), played("o2", blank("Hate", 5))], [], []],
            player_hand=[played("h1")],
            phase=GamePhase.START,
        )
        state = continue_game(state)
        assert state.action_required is None


class TestEndTurn:
    """Tests for handing the turn over."""

    def test_only_ending_side_is_reset(self):
        state = make_state(phase=GamePhase.END)
        state = state.update_player(Player.PLAYER, cannot_compile=True)
        state = state.update_player(Player.OPPONENT, cannot_compile=True)
        state = end_turn(state._copy_with(action_taken=True, processed_start_effect_ids=frozenset({"x"})))
        assert not state.player.cannot_compile
        assert state.opponent.cannot_compile
        assert state.turn is Player.OPPONENT
        assert state.phase is GamePhase.START
        assert state.turn_number == 2
        assert not state.action_taken
        assert state.processed_start_effect_ids == frozenset()


class TestHandLimit:
    """Tests for the hand limit check."""

    def test_discard_down_to_five(self):
        state = make_state(player_hand=[played(f"h{i}") for i in range(7)], phase=GamePhase.HAND_LIMIT)
        state = continue_game(state)
        pending = state.action_required
        assert isinstance(pending, Discard)
        assert pending.count == 2
        assert pending.previous_hand_size == 7

        state = apply_ok(state, Action.choose_cards(Player.PLAYER, ["h0", "h1"]))
        assert len(state.player.hand) == 5
        assert state.turn is Player.OPPONENT

    def test_spirit_zero_skips_the_check(self, catalog):
        state = make_state(
            player_lanes=[[played("s0", catalog.get("Spirit", 0))], [], []],
            player_hand=[played(f"h{i}") for i in range(7)],
            phase=GamePhase.HAND_LIMIT,
        )
        state = continue_game(state)
        assert state.action_required is None
        assert len(state.player.hand) == 7
        assert "Player skips the hand limit check." in messages(state)
        assert state.turn is Player.OPPONENT


class TestActionPhase:
    """Tests for the action phase."""

    def test_speed_one_reacts_to_refresh(self, catalog):
        state = make_state(
            player_lanes=[[], [], [played("s1", catalog.get("Speed", 1))]],
            player_hand=[played(f"h{i}") for i in range(3)],
            player_deck=_deck(6),
        )
        state = apply_ok(state, Action.refresh(Player.PLAYER))
        log = messages(state)
        assert "Player refreshes their hand." in log
        assert "Player draws 2 cards." in log
        assert "Player draws 1 card." in log
        assert len(state.player.hand) == 6
        assert isinstance(state.action_required, Discard)
        assert state.action_required.count == 1

    def test_no_legal_action_ends_the_turn(self):
        blocker = blank("Hate", 0, top_effects=[passive_rule("block", "block_all_play", scope="global")])
        state = make_state(
            opponent_lanes=[[played("r", blocker)], [], []],
            player_hand=[played(f"h{i}") for i in range(5)],
        )
        state = continue_game(state)
        assert "Player has no legal action." in messages(state)
        assert len(state.player.hand) == 5
        assert state.turn is Player.OPPONENT


class TestControl:
    """Tests for the control component."""

    def test_winning_two_lines_gains_control(self):
        state = make_state(
            player_lanes=[[played("a", blank(value=3))], [played("b", blank("Water", 4))], []],
            player_hand=[played("h1")],
            use_control_mechanic=True,
            phase=GamePhase.START,
        )
        state = continue_game(state)
        assert state.control_card_holder is Player.PLAYER
        assert "Player gains the Control Component." in messages(state)

    def test_control_is_off_without_the_mechanic(self):
        state = make_state(
            player_lanes=[[played("a", blank(value=3))], [played("b", blank("Water", 4))], []],
            player_hand=[played("h1")],
            phase=GamePhase.START,
        )
        assert continue_game(state).control_card_holder is None

    def test_declining_control_goes_to_compile(self):
        state = continue_game(_compilable(use_control_mechanic=True, control_card_holder=Player.PLAYER))
        assert isinstance(state.action_required, PromptUseControlMechanic)

        state = apply_ok(state, Action.answer(Player.PLAYER, False))
        assert isinstance(state.action_required, SelectLaneForCompile)
        assert state.control_card_holder is Player.PLAYER

    def test_using_control_rearranges_opponent_first(self):
        state = continue_game(_compilable(use_control_mechanic=True, control_card_holder=Player.PLAYER))
        state = apply_ok(state, Action.answer(Player.PLAYER, True))
        assert isinstance(state.action_required, PromptRearrangeProtocols)
        assert state.action_required.target is Player.OPPONENT
        assert state.control_card_holder is None
        assert "Player uses the Control Component." in messages(state)

        state = apply_ok(state, Action.rearrange(Player.PLAYER, ["Speed", "Metal", "Hate"]))
        assert state.opponent.protocols == ("Speed", "Metal", "Hate")
        assert isinstance(state.action_required, SelectLaneForCompile)

    def test_control_offered_before_refresh(self):
        state = make_state(
            player_hand=[played("h1"), played("h2")],
            player_deck=_deck(5),
            use_control_mechanic=True,
            control_card_holder=Player.PLAYER,
        )
        state = apply_ok(state, Action.refresh(Player.PLAYER))
        assert isinstance(state.action_required, PromptUseControlMechanic)

        state = apply_ok(state, Action.answer(Player.PLAYER, False))
        assert len(state.player.hand) == 5
        assert state.player.stats.hands_refreshed == 1
        assert state.turn is Player.OPPONENT
