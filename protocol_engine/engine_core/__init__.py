"""
Engine Core - Deterministic game state management and effect resolution.

The engine is the runtime that:
1. Builds the initial GameState from a card catalog
2. Generates legal actions and decisions
3. Applies actions via the reducer
4. Resolves effects step-by-step through pending decisions
5. Drives the turn phases
"""

from .state import (
    Card,
    GamePhase,
    GameState,
    InvariantViolation,
    LogEntry,
    PlayedCard,
    Player,
    PlayerState,
)
from .action import Action, ActionPayload, ActionResult, ActionType, ErrorCode
from .reducer import Reducer, apply_action
from .resolver import DecisionResolver, InvalidDecision, resolve_decision
from .phases import continue_game
from .choices import legal_actions, legal_decisions, side_to_move
from .setup import create_initial_state

__all__ = [
    "Card",
    "GamePhase",
    "GameState",
    "InvariantViolation",
    "LogEntry",
    "PlayedCard",
    "Player",
    "PlayerState",
    "Action",
    "ActionPayload",
    "ActionResult",
    "ActionType",
    "ErrorCode",
    "Reducer",
    "apply_action",
    "DecisionResolver",
    "InvalidDecision",
    "resolve_decision",
    "continue_game",
    "legal_actions",
    "legal_decisions",
    "side_to_move",
    "create_initial_state",
]
