"""
API module - Boundary contract for UI and AI clients.

Provides:
- Pydantic schemas for state views, pending actions, log entries and
  decision requests
- EngineService: in-memory matches driven through the reducer
"""

from .schemas import (
    ActionResponse,
    ApiErrorCode,
    CardView,
    CreateMatchRequest,
    DecisionRequest,
    ErrorResponse,
    GameStateView,
    LaneView,
    LogEntryView,
    MatchStatus,
    PendingView,
    ProtocolInfo,
    Side,
    SideView,
)
from .service import EngineService, Match

__all__ = [
    "ActionResponse",
    "ApiErrorCode",
    "CardView",
    "CreateMatchRequest",
    "DecisionRequest",
    "ErrorResponse",
    "GameStateView",
    "LaneView",
    "LogEntryView",
    "MatchStatus",
    "PendingView",
    "ProtocolInfo",
    "Side",
    "SideView",
    "EngineService",
    "Match",
]
