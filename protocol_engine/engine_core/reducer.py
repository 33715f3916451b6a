"""
Reducer - Applies actions to game state.

The reducer is the single entry point for state changes.
All transitions go through apply_action().

Design principles:
- Pure function: (state, action) -> new_state
- Validates before applying
- Returns ActionResult with success/failure; game-rule problems never
  raise out of here
- Delegates decision answers to the DecisionResolver and phase
  progression to continue_game()
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging

from ..config import HAND_SIZE
from .action import Action, ActionResult, ActionType, ErrorCode
from .log import entries_since
from .passive_rules import can_play_card
from .pending import SelectLaneForCompile
from .phases import continue_game, play_card_action, refresh_action
from .resolver import DecisionResolver, InvalidDecision
from .state import GamePhase, GameState, InvariantViolation

logger = logging.getLogger(__name__)


@dataclass
class Reducer:
    """
    Reducer applies actions to game state.

    Stateless - all state is in GameState.
    """
    resolver: DecisionResolver = field(default_factory=DecisionResolver)

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an action to the game state.

        Returns ActionResult with new state or error.
        """
        validation_error = self._validate_action(state, action)
        if validation_error:
            message, code = validation_error
            return ActionResult.failure(message, error_code=code)

        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                f"No handler for action type: {action.action_type}",
                error_code=ErrorCode.NO_HANDLER,
            )

        try:
            new_state = handler(state._copy_with(animation_hints=()), action)
        except InvalidDecision as e:
            return ActionResult.failure(str(e), error_code=ErrorCode.INVALID_DECISION)
        except InvariantViolation:
            raise
        except Exception as e:
            logger.exception("Handler for %s failed", action.action_type.value)
            return ActionResult.failure(str(e), error_code=ErrorCode.HANDLER_ERROR)

        return ActionResult.success_with_state(new_state, changes=entries_since(state, new_state))

    def _validate_action(self, state: GameState, action: Action) -> tuple[str, str] | None:
        """
        Validate that an action is legal in the current state.

        Returns (message, error code) if invalid, None if valid.
        """
        if state.winner is not None:
            return "Game is over - no actions allowed", ErrorCode.GAME_OVER

        pending = state.action_required
        if action.action_type in (ActionType.CHOOSE, ActionType.SKIP):
            if pending is None:
                return "No decision is pending", ErrorCode.NO_PENDING_ACTION
            if action.player is not pending.actor:
                return f"Not {action.player.value}'s decision", ErrorCode.WRONG_ACTOR
            return None

        if action.action_type is ActionType.COMPILE:
            if not isinstance(pending, SelectLaneForCompile):
                return "No compile is pending", ErrorCode.NO_PENDING_ACTION
            if action.player is not pending.actor:
                return f"Not {action.player.value}'s compile", ErrorCode.WRONG_ACTOR
            return None

        # Action phase: play or refresh
        if pending is not None:
            return f"A {pending.type} decision must be answered first", ErrorCode.INVALID_DECISION
        if action.player is not state.turn:
            return f"Not {action.player.value}'s turn", ErrorCode.WRONG_ACTOR
        if state.phase is not GamePhase.ACTION or state.action_taken:
            return "Not in the action phase", ErrorCode.ILLEGAL_PLAY

        if action.action_type is ActionType.PLAY_CARD:
            payload = action.payload
            card = state.get(action.player).find_in_hand(payload.card_id)
            if card is None:
                return f"{payload.card_id} is not in hand", ErrorCode.ILLEGAL_PLAY
            if payload.lane_index not in (0, 1, 2):
                return f"Lane {payload.lane_index} does not exist", ErrorCode.ILLEGAL_PLAY
            check = can_play_card(state, action.player, payload.lane_index, payload.face_up, card.protocol)
            if not check.allowed:
                return check.reason, ErrorCode.ILLEGAL_PLAY

        if action.action_type is ActionType.REFRESH and len(state.get(action.player).hand) >= HAND_SIZE:
            return "Hand is already full", ErrorCode.ILLEGAL_PLAY

        return None

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.PLAY_CARD: self._handle_play,
            ActionType.REFRESH: self._handle_refresh,
            ActionType.COMPILE: self._handle_decision,
            ActionType.CHOOSE: self._handle_decision,
            ActionType.SKIP: self._handle_decision,
        }
        return handlers.get(action_type)

    def _handle_play(self, state: GameState, action: Action) -> GameState:
        """Handle playing a card from hand."""
        payload = action.payload
        return play_card_action(state, action.player, payload.card_id, payload.lane_index, payload.face_up)

    def _handle_refresh(self, state: GameState, action: Action) -> GameState:
        """Handle the refresh action."""
        return continue_game(refresh_action(state, action.player))

    def _handle_decision(self, state: GameState, action: Action) -> GameState:
        """Handle an answer to the open decision, then run the game forward."""
        return continue_game(self.resolver.resolve(state, action))


def apply_action(state: GameState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer()
    return reducer.apply(state, action)
