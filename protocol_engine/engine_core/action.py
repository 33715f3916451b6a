"""
Action System - Actions, payloads, and results.

Actions represent:
1. Player actions (play a card, refresh, compile)
2. Decisions answering the pending action (choose, skip)

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .state import Player


class ActionType(Enum):
    """Types of actions in the system."""
    # Action phase
    PLAY_CARD = "play_card"
    REFRESH = "refresh"
    COMPILE = "compile"

    # Responses to the pending action
    CHOOSE = "choose"
    SKIP = "skip"  # Decline an optional decision


class ErrorCode:
    """Error codes carried by failed ActionResults."""
    INVALID_DECISION = "INVALID_DECISION"
    NO_PENDING_ACTION = "NO_PENDING_ACTION"
    WRONG_ACTOR = "WRONG_ACTOR"
    ILLEGAL_PLAY = "ILLEGAL_PLAY"
    GAME_OVER = "GAME_OVER"
    NO_HANDLER = "NO_HANDLER"
    HANDLER_ERROR = "HANDLER_ERROR"


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Different pending action types read different fields:
    - card selection: card_id (or card_ids for a batch discard)
    - lane selection: lane_index
    - optional prompts: accept
    - rearrange: protocol_order; swap: lane_indices
    - custom choice and trash picks: option_index
    """
    player: Player | None = None
    card_id: str | None = None
    card_ids: list[str] | None = None
    lane_index: int | None = None
    lane_indices: list[int] | None = None
    face_up: bool = True
    accept: bool | None = None
    protocol_order: list[str] | None = None
    option_index: int | None = None

    # Generic params
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class Action:
    """
    A complete action to be applied to the game state.

    Actions are:
    - Validated before application
    - Applied atomically by the reducer
    """
    action_type: ActionType
    payload: ActionPayload
    action_id: str | None = None

    @property
    def player(self) -> Player | None:
        return self.payload.player

    @classmethod
    def play(cls, player: Player, card_id: str, lane_index: int, face_up: bool = True) -> Action:
        """Factory for playing a card from hand."""
        return cls(
            action_type=ActionType.PLAY_CARD,
            payload=ActionPayload(player=player, card_id=card_id, lane_index=lane_index, face_up=face_up),
        )

    @classmethod
    def refresh(cls, player: Player) -> Action:
        """Factory for the refresh action."""
        return cls(action_type=ActionType.REFRESH, payload=ActionPayload(player=player))

    @classmethod
    def compile(cls, player: Player, lane_index: int) -> Action:
        """Factory for choosing which lane to compile."""
        return cls(
            action_type=ActionType.COMPILE,
            payload=ActionPayload(player=player, lane_index=lane_index),
        )

    @classmethod
    def choose_card(cls, player: Player, card_id: str) -> Action:
        """Factory for picking one card."""
        return cls(action_type=ActionType.CHOOSE, payload=ActionPayload(player=player, card_id=card_id))

    @classmethod
    def choose_cards(cls, player: Player, card_ids: list[str]) -> Action:
        """Factory for picking several cards at once (discard)."""
        return cls(action_type=ActionType.CHOOSE, payload=ActionPayload(player=player, card_ids=list(card_ids)))

    @classmethod
    def choose_lane(cls, player: Player, lane_index: int) -> Action:
        """Factory for picking a lane."""
        return cls(action_type=ActionType.CHOOSE, payload=ActionPayload(player=player, lane_index=lane_index))

    @classmethod
    def play_from_hand(cls, player: Player, card_id: str, lane_index: int, face_up: bool = False) -> Action:
        """Factory for an effect-driven play (card and lane in one decision)."""
        return cls(
            action_type=ActionType.CHOOSE,
            payload=ActionPayload(player=player, card_id=card_id, lane_index=lane_index, face_up=face_up),
        )

    @classmethod
    def answer(cls, player: Player, accept: bool) -> Action:
        """Factory for a yes/no prompt."""
        return cls(action_type=ActionType.CHOOSE, payload=ActionPayload(player=player, accept=accept))

    @classmethod
    def rearrange(cls, player: Player, protocol_order: list[str]) -> Action:
        """Factory for a protocol rearrangement."""
        return cls(
            action_type=ActionType.CHOOSE,
            payload=ActionPayload(player=player, protocol_order=list(protocol_order)),
        )

    @classmethod
    def swap(cls, player: Player, first_lane: int, second_lane: int) -> Action:
        """Factory for a protocol swap."""
        return cls(
            action_type=ActionType.CHOOSE,
            payload=ActionPayload(player=player, lane_indices=[first_lane, second_lane]),
        )

    @classmethod
    def choose_option(cls, player: Player, option_index: int) -> Action:
        """Factory for picking an option by index."""
        return cls(
            action_type=ActionType.CHOOSE,
            payload=ActionPayload(player=player, option_index=option_index),
        )

    @classmethod
    def skip(cls, player: Player) -> Action:
        """Factory for declining an optional decision."""
        return cls(action_type=ActionType.SKIP, payload=ActionPayload(player=player))


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - Errors (if failed)
    - Log lines produced by the action
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: str | None = None

    # For UI/presentation
    state_changes: list[str] = field(default_factory=list)

    # True when nothing is pending and nothing is queued
    requires_turn_end: bool = False

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        return cls(
            success=True,
            new_state=state,
            state_changes=changes or [],
            requires_turn_end=state.action_required is None and not state.queued_actions,
        )
