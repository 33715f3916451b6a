"""
Engine Service - Business logic layer between clients and the engine.

The service:
1. Translates boundary requests to engine actions
2. Keeps matches in memory
3. Runs the bots of automated sides after every accepted input
4. Formats views for a chosen viewer

This layer is framework-agnostic: any transport can call it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import time
import uuid

from ..bots import POLICIES, BotPolicy, RandomPolicy
from ..engine_core.choices import legal_actions, legal_decisions, side_to_move
from ..engine_core.reducer import Reducer
from ..engine_core.setup import create_initial_state
from ..engine_core.state import GameState, Player
from ..protocols import create_default_catalog
from ..session import GameLoop
from ..spec_schema.card_catalog import CardCatalog
from .schemas import (
    ActionResponse,
    ApiErrorCode,
    CardView,
    CreateMatchRequest,
    DecisionRequest,
    ErrorResponse,
    GameStateView,
    MatchStatus,
    ProtocolInfo,
    Side,
    log_entry_view,
    pending_view,
    side_view,
)

logger = logging.getLogger(__name__)


@dataclass
class Match:
    """
    An in-memory match.

    Contains the canonical state and a bot per automated side.
    State is NOT persisted.
    """
    match_id: str
    state: GameState
    policies: dict[Player, BotPolicy] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)


@dataclass
class EngineService:
    """
    Main service for engine clients.

    Usage:
        service = EngineService()
        view = service.create_match(CreateMatchRequest(...))
        response = service.submit(view.match_id, DecisionRequest(...))
    """
    catalog: CardCatalog = field(default_factory=create_default_catalog)
    reducer: Reducer = field(default_factory=Reducer)
    max_bot_steps: int = 2000

    _matches: dict[str, Match] = field(default_factory=dict)

    def create_match(self, request: CreateMatchRequest) -> GameStateView:
        """
        Create a match and let the bots move until a human is up.

        Raises ValueError for unknown protocols or bot policies.
        """
        policy_type = POLICIES.get(request.bot_policy)
        if policy_type is None:
            raise ValueError(f"Unknown bot policy: {request.bot_policy}")

        automated = {side.to_player() for side in request.automated}
        state = create_initial_state(
            request.player_protocols,
            request.opponent_protocols,
            use_control_mechanic=request.use_control_mechanic,
            starting_player=request.starting_player.to_player(),
            catalog=self.catalog,
            seed=request.seed,
            automated=automated,
        )
        policies: dict[Player, BotPolicy] = {}
        for index, side in enumerate(sorted(automated, key=lambda player: player.value)):
            if policy_type is RandomPolicy:
                policies[side] = RandomPolicy(seed=request.seed + index)
            else:
                policies[side] = policy_type()

        match = Match(match_id=str(uuid.uuid4()), state=state, policies=policies)
        self._matches[match.match_id] = match
        logger.info("Match %s created", match.match_id)

        self._run_bots(match)
        human = next((side for side in Player if side not in automated), Player.PLAYER)
        return self.build_view(match, human)

    def get_state(self, match_id: str, viewer: Side = Side.PLAYER) -> GameStateView | ErrorResponse:
        match = self._matches.get(match_id)
        if match is None:
            return self._not_found(match_id)
        return self.build_view(match, viewer.to_player())

    def submit(self, match_id: str, request: DecisionRequest) -> ActionResponse:
        """
        Apply a client's input, then run the bots.

        Rejected inputs leave the match unchanged.
        """
        match = self._matches.get(match_id)
        if match is None:
            error = self._not_found(match_id)
            return ActionResponse(success=False, error=error.error, error_code=error.error_code)

        try:
            action = request.to_action()
        except ValueError as e:
            return ActionResponse(
                success=False,
                error=str(e),
                error_code=ApiErrorCode.VALIDATION_ERROR.value,
            )

        result = self.reducer.apply(match.state, action)
        viewer = request.player.to_player()
        if not result.success:
            return ActionResponse(
                success=False,
                error=result.error,
                error_code=result.error_code,
                state=self.build_view(match, viewer),
            )

        match.state = result.new_state
        bot_actions = self._run_bots(match)
        return ActionResponse(
            success=True,
            state_changes=result.state_changes,
            bot_actions=bot_actions,
            state=self.build_view(match, viewer),
        )

    def end_match(self, match_id: str) -> bool:
        """Forget a match. Returns False if it did not exist."""
        return self._matches.pop(match_id, None) is not None

    def list_matches(self) -> list[str]:
        return list(self._matches)

    def list_protocols(self) -> list[ProtocolInfo]:
        return [
            ProtocolInfo(
                name=protocol,
                cards=[
                    CardView(
                        card_id=card.name,
                        protocol=card.protocol,
                        value=card.value,
                        top=card.top,
                        middle=card.middle,
                        bottom=card.bottom,
                    )
                    for card in self.catalog.cards_for(protocol)
                ],
            )
            for protocol in self.catalog.protocols()
        ]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _run_bots(self, match: Match) -> list[str]:
        if not match.policies:
            return []
        loop = GameLoop(match.state, match.policies, reducer=self.reducer, max_steps=self.max_bot_steps)
        result = loop.run()
        match.state = result.state
        for error in result.errors:
            logger.error("Match %s: %s", match.match_id, error)
        return result.bot_actions

    def _not_found(self, match_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Match {match_id} not found",
            error_code=ApiErrorCode.MATCH_NOT_FOUND.value,
        )

    def build_view(self, match: Match, viewer: Player) -> GameStateView:
        """Build the state view one side is allowed to see."""
        state = match.state
        if state.winner is not None:
            status = MatchStatus.GAME_OVER
        elif side_to_move(state) is viewer:
            status = MatchStatus.YOUR_MOVE
        else:
            status = MatchStatus.WAITING

        pending = None
        if state.action_required is not None:
            legal = legal_decisions(state) if state.action_required.actor is viewer else []
            pending = pending_view(state.action_required, legal)
        actions = legal_actions(state) if state.action_required is None and state.turn is viewer else []

        return GameStateView(
            match_id=match.match_id,
            viewer=Side(viewer.value),
            status=status,
            turn=Side(state.turn.value),
            phase=state.phase.value,
            turn_number=state.turn_number,
            winner=Side(state.winner.value) if state.winner is not None else None,
            use_control_mechanic=state.use_control_mechanic,
            control_card_holder=(
                Side(state.control_card_holder.value) if state.control_card_holder is not None else None
            ),
            player=side_view(state.player, Player.PLAYER, viewer),
            opponent=side_view(state.opponent, Player.OPPONENT, viewer),
            pending=pending,
            legal_actions=[DecisionRequest.from_action(action) for action in actions],
            log=[log_entry_view(entry) for entry in state.log],
        )
