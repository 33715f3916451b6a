"""
Tests for the engine service and its pydantic schemas.

Tests:
- Match lifecycle (create, submit, end)
- Structured errors for unknown matches and bad requests
- Hidden information in state views
- Pending decision views
"""

import pytest
from pydantic import ValidationError

from ..api.schemas import (
    ApiErrorCode,
    CreateMatchRequest,
    DecisionRequest,
    ErrorResponse,
    MatchStatus,
    Side,
    pending_view,
    side_view,
)
from ..api.service import EngineService
from ..engine_core.action import Action, ErrorCode
from ..engine_core.choices import legal_decisions
from ..engine_core.pending import Discard
from ..engine_core.state import Player
from .conftest import make_state, played

PLAYER = ["Fire", "Water", "Death"]
OPPONENT = ["Hate", "Metal", "Speed"]


@pytest.fixture
def service():
    return EngineService()


def _create(service, **kwargs):
    return service.create_match(CreateMatchRequest(player_protocols=PLAYER, opponent_protocols=OPPONENT, **kwargs))


class TestMatchLifecycle:
    """Tests for creating and playing matches."""

    def test_create_match(self, service):
        view = _create(service)
        assert view.viewer is Side.PLAYER
        assert view.status is MatchStatus.YOUR_MOVE
        assert view.phase == "action"
        assert view.legal_actions
        assert len(view.player.hand) == 5
        assert service.list_matches() == [view.match_id]

    def test_submit_runs_the_bot(self, service):
        view = _create(service)
        face_down = next(
            request for request in view.legal_actions
            if request.action_type == "play_card" and not request.face_up
        )
        response = service.submit(view.match_id, face_down)
        assert response.success
        assert response.state_changes
        assert response.bot_actions
        assert response.state.status in (MatchStatus.YOUR_MOVE, MatchStatus.GAME_OVER)

    def test_bot_moves_first_when_it_starts(self, service):
        view = _create(service, starting_player=Side.OPPONENT)
        assert view.status is MatchStatus.YOUR_MOVE
        assert view.turn_number >= 2 or view.pending is not None

    def test_rejected_submit_keeps_the_match(self, service):
        view = _create(service)
        response = service.submit(view.match_id, DecisionRequest(player=Side.PLAYER, action_type="refresh"))
        assert not response.success
        assert response.error_code == ErrorCode.ILLEGAL_PLAY
        assert response.state.turn_number == view.turn_number
        assert len(response.state.log) == len(view.log)

    def test_end_match(self, service):
        view = _create(service)
        assert service.end_match(view.match_id)
        assert not service.end_match(view.match_id)
        assert service.list_matches() == []

    def test_first_legal_bots(self, service):
        view = _create(service, bot_policy="first")
        assert view.status is MatchStatus.YOUR_MOVE


class TestErrors:
    """Tests for structured errors."""

    def test_unknown_match_state(self, service):
        response = service.get_state("missing")
        assert isinstance(response, ErrorResponse)
        assert response.error_code == ApiErrorCode.MATCH_NOT_FOUND.value

    def test_unknown_match_submit(self, service):
        response = service.submit("missing", DecisionRequest(player=Side.PLAYER, action_type="refresh"))
        assert not response.success
        assert response.error_code == ApiErrorCode.MATCH_NOT_FOUND.value

    def test_unknown_action_type(self, service):
        view = _create(service)
        response = service.submit(view.match_id, DecisionRequest(player=Side.PLAYER, action_type="dance"))
        assert response.error_code == ApiErrorCode.VALIDATION_ERROR.value

    def test_unknown_policy(self, service):
        with pytest.raises(ValueError, match="Unknown bot policy"):
            _create(service, bot_policy="clever")

    def test_unknown_protocol(self, service):
        with pytest.raises(ValueError, match="Unknown protocol"):
            service.create_match(CreateMatchRequest(player_protocols=["Fire", "Water", "Light"], opponent_protocols=OPPONENT))

    def test_request_needs_three_protocols(self):
        with pytest.raises(ValidationError):
            CreateMatchRequest(player_protocols=["Fire"], opponent_protocols=OPPONENT)


class TestViews:
    """Tests for what each side may see."""

    def _board(self):
        return make_state(
            player_lanes=[[played("fd", face_up=False)], [played("up")], []],
            player_hand=[played("h1")],
        )

    def test_owner_sees_face_down_card(self):
        view = side_view(self._board().player, Player.PLAYER, Player.PLAYER)
        card = view.lanes[0].cards[0]
        assert card.protocol == "Fire"
        assert not card.is_face_up
        assert view.lanes[0].value == 2

    def test_opponent_sees_only_a_face_down_card(self):
        view = side_view(self._board().player, Player.PLAYER, Player.OPPONENT)
        hidden = view.lanes[0].cards[0]
        assert hidden.protocol is None
        assert hidden.value is None
        assert hidden.card_id == "fd"
        assert view.lanes[1].cards[0].protocol == "Fire"

    def test_revealed_card_is_visible(self):
        state = make_state(player_lanes=[[played("fd", face_up=False).revealed()], [], []])
        view = side_view(state.player, Player.PLAYER, Player.OPPONENT)
        assert view.lanes[0].cards[0].protocol == "Fire"

    def test_other_hand_is_a_count(self):
        view = side_view(self._board().player, Player.PLAYER, Player.OPPONENT)
        assert view.hand == []
        assert view.hand_count == 1

    def test_opponent_view_of_a_match(self, service):
        view = _create(service)
        other = service.get_state(view.match_id, viewer=Side.OPPONENT)
        assert other.viewer is Side.OPPONENT
        assert other.player.hand == []
        assert len(other.opponent.hand) == other.opponent.hand_count
        assert other.legal_actions == []

    def test_list_protocols(self, service):
        protocols = service.list_protocols()
        assert len(protocols) == 8
        assert all(len(info.cards) == 6 for info in protocols)
        assert protocols[0].name == "Fire"


class TestPendingView:
    """Tests for decision views."""

    def test_discard_view(self):
        state = make_state(player_hand=[played("h1"), played("h2")])
        pending = Discard(actor=Player.PLAYER, count=1)
        state = state._copy_with(action_required=pending)
        view = pending_view(pending, legal_decisions(state))
        assert view.type == "discard"
        assert view.actor is Side.PLAYER
        assert view.details["count"] == 1
        assert {tuple(request.card_ids) for request in view.legal_decisions} == {("h1",), ("h2",)}

    def test_request_converts_to_action(self):
        action = Action.play(Player.PLAYER, "c1", 2, face_up=False)
        request = DecisionRequest.from_action(action)
        assert request.action_type == "play_card"
        assert request.to_action() == action
