"""
Pydantic Schemas for the engine boundary.

These models define the contract between a UI/AI client and the engine:
state views (what a side may see), pending-action views (what the engine
is waiting on), log entries, and decision requests (what a client submits).

Hidden information:
- A viewer sees their own hand; the other hand only as a count
- Face-down board cards show protocol and value only to their owner,
  unless revealed

Error Codes (in addition to the engine's ActionResult codes):
- MATCH_NOT_FOUND: Match does not exist
- VALIDATION_ERROR: Request could not be turned into an engine action
"""

from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..engine_core.action import Action, ActionPayload, ActionType
from ..engine_core.pending import CustomChoice, PendingAction, PromptOptionalEffect
from ..engine_core.state import LogEntry, PlayedCard, Player, PlayerState


# =============================================================================
# Enums
# =============================================================================

class Side(str, Enum):
    """The two sides, as seen on the wire."""
    PLAYER = "player"
    OPPONENT = "opponent"

    def to_player(self) -> Player:
        return Player(self.value)


class MatchStatus(str, Enum):
    """Where a match stands from a client's point of view."""
    YOUR_MOVE = "your_move"
    WAITING = "waiting"
    GAME_OVER = "game_over"


class ApiErrorCode(str, Enum):
    """Structured error codes added by the service layer."""
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"


# =============================================================================
# State views
# =============================================================================

class CardView(BaseModel):
    """A card instance; protocol and value are None when hidden from the viewer."""
    card_id: str
    protocol: Optional[str] = None
    value: Optional[int] = None
    is_face_up: bool = True
    is_revealed: bool = False
    top: Optional[str] = None
    middle: Optional[str] = None
    bottom: Optional[str] = None


class LaneView(BaseModel):
    """One side of a line."""
    protocol: str
    compiled: bool = False
    value: int = 0
    cards: list[CardView] = Field(default_factory=list, description="Bottom to top; the last card is uncovered")


class SideView(BaseModel):
    """Everything one side has, filtered for the viewer."""
    side: Side
    lanes: list[LaneView] = Field(default_factory=list)
    hand: list[CardView] = Field(default_factory=list)
    hand_count: int = 0
    deck_count: int = 0
    trash_count: int = 0
    cannot_compile: bool = False
    stats: dict[str, int] = Field(default_factory=dict)


class LogEntryView(BaseModel):
    """One game log line."""
    player: Side
    message: str
    indent_level: int = 0
    source_card: Optional[str] = None
    phase: Optional[str] = None


class DecisionRequest(BaseModel):
    """
    An input submitted by a client.

    Field use depends on action_type and the pending action:
    - play_card: card_id, lane_index, face_up
    - compile: lane_index
    - choose: card_id / card_ids / lane_index / accept / protocol_order /
      lane_indices / option_index
    - refresh, skip: no fields
    """
    player: Side
    action_type: str = Field(description="play_card, refresh, compile, choose, skip")
    card_id: Optional[str] = None
    card_ids: Optional[list[str]] = None
    lane_index: Optional[int] = None
    lane_indices: Optional[list[int]] = None
    face_up: bool = True
    accept: Optional[bool] = None
    protocol_order: Optional[list[str]] = None
    option_index: Optional[int] = None

    def to_action(self) -> Action:
        """Convert to an engine Action; raises ValueError for an unknown action_type."""
        payload = ActionPayload(
            player=self.player.to_player(),
            card_id=self.card_id,
            card_ids=list(self.card_ids) if self.card_ids is not None else None,
            lane_index=self.lane_index,
            lane_indices=list(self.lane_indices) if self.lane_indices is not None else None,
            face_up=self.face_up,
            accept=self.accept,
            protocol_order=list(self.protocol_order) if self.protocol_order is not None else None,
            option_index=self.option_index,
        )
        return Action(action_type=ActionType(self.action_type), payload=payload)

    @classmethod
    def from_action(cls, action: Action) -> "DecisionRequest":
        payload = action.payload
        return cls(
            player=Side(payload.player.value),
            action_type=action.action_type.value,
            card_id=payload.card_id,
            card_ids=payload.card_ids,
            lane_index=payload.lane_index,
            lane_indices=payload.lane_indices,
            face_up=payload.face_up,
            accept=payload.accept,
            protocol_order=payload.protocol_order,
            option_index=payload.option_index,
        )


class PendingView(BaseModel):
    """The decision the engine is waiting on."""
    type: str
    actor: Side
    source_card_id: Optional[str] = None
    optional: bool = False
    details: dict[str, Any] = Field(default_factory=dict, description="Variant-specific filter metadata")
    legal_decisions: list[DecisionRequest] = Field(default_factory=list)


class GameStateView(BaseModel):
    """A match as one side may see it."""
    match_id: str
    viewer: Side
    status: MatchStatus
    turn: Side
    phase: str
    turn_number: int
    winner: Optional[Side] = None
    use_control_mechanic: bool = False
    control_card_holder: Optional[Side] = None
    player: SideView
    opponent: SideView
    pending: Optional[PendingView] = None
    legal_actions: list[DecisionRequest] = Field(default_factory=list)
    log: list[LogEntryView] = Field(default_factory=list)


# =============================================================================
# Requests / responses
# =============================================================================

class CreateMatchRequest(BaseModel):
    """Start a new match."""
    player_protocols: list[str] = Field(min_length=3, max_length=3)
    opponent_protocols: list[str] = Field(min_length=3, max_length=3)
    use_control_mechanic: bool = False
    starting_player: Side = Side.PLAYER
    seed: int = 0
    automated: list[Side] = Field(default_factory=lambda: [Side.OPPONENT])
    bot_policy: str = Field("random", description="random or first")


class ActionResponse(BaseModel):
    """Result of submitting a decision."""
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None
    state_changes: list[str] = Field(default_factory=list)
    bot_actions: list[str] = Field(default_factory=list)
    state: Optional[GameStateView] = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Machine-readable error code")


class ProtocolInfo(BaseModel):
    """A catalog protocol with its card texts."""
    name: str
    cards: list[CardView] = Field(default_factory=list)


# =============================================================================
# Builders
# =============================================================================

def _plain(value: Any) -> Any:
    """Flatten engine values into JSON-friendly data."""
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (tuple, list, frozenset, set)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


_COMMON_FIELDS = {"actor", "source_card_id", "optional", "follow_up", "origin", "context", "effect", "options"}


def card_view(card: PlayedCard, visible: bool) -> CardView:
    if not visible:
        return CardView(card_id=card.id, is_face_up=card.is_face_up, is_revealed=card.is_revealed)
    return CardView(
        card_id=card.id,
        protocol=card.protocol,
        value=card.value,
        is_face_up=card.is_face_up,
        is_revealed=card.is_revealed,
        top=card.card.top,
        middle=card.card.middle,
        bottom=card.card.bottom,
    )


def side_view(player_state: PlayerState, side: Player, viewer: Player) -> SideView:
    own = side is viewer
    lanes = [
        LaneView(
            protocol=protocol,
            compiled=player_state.compiled[lane_index],
            value=player_state.lane_values[lane_index],
            cards=[
                card_view(card, own or card.is_face_up or card.is_revealed)
                for card in player_state.lanes[lane_index]
            ],
        )
        for lane_index, protocol in enumerate(player_state.protocols)
    ]
    return SideView(
        side=Side(side.value),
        lanes=lanes,
        hand=[card_view(card, True) for card in player_state.hand] if own else [],
        hand_count=len(player_state.hand),
        deck_count=len(player_state.deck),
        trash_count=len(player_state.discard),
        cannot_compile=player_state.cannot_compile,
        stats=_plain(player_state.stats),
    )


def log_entry_view(entry: LogEntry) -> LogEntryView:
    return LogEntryView(
        player=Side(entry.player.value),
        message=entry.message,
        indent_level=entry.indent_level,
        source_card=entry.source_card,
        phase=entry.phase,
    )


def pending_view(pending: PendingAction, legal: list[Action]) -> PendingView:
    details = {
        f.name: _plain(getattr(pending, f.name))
        for f in fields(pending)
        if f.name not in _COMMON_FIELDS
    }
    if isinstance(pending, PromptOptionalEffect):
        details["effect"] = {"id": pending.effect.id, "action": pending.effect.action.value}
    if isinstance(pending, CustomChoice):
        details["options"] = [{"id": option.id, "action": option.action.value} for option in pending.options]
    return PendingView(
        type=pending.type,
        actor=Side(pending.actor.value),
        source_card_id=pending.source_card_id,
        optional=pending.optional,
        details=details,
        legal_decisions=[DecisionRequest.from_action(action) for action in legal],
    )
