"""
Pending actions - the single outstanding decision the engine waits on.

Each decision kind is its own frozen dataclass carrying only the fields
it needs (a tagged variant); `type` is the wire tag the UI/AI switches on.
Every variant stores enough filter metadata for the resolver to
re-validate a submitted choice.

Resumption context lives here too: a pending action may carry the
conditional follow-up that must run once it is resolved, and queued
items wait in GameState.queued_actions until the current one is done.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, ClassVar, Union

from .state import Player, PhaseEffectRef

if TYPE_CHECKING:
    from ..spec_schema.effect_dsl import ConditionalType, EffectDefinition
    from .context import EffectContext
    from .targeting import TargetFilter


@dataclass(frozen=True)
class FollowUp:
    """A conditional follow-up waiting for its parent decision."""
    effect: EffectDefinition
    conditional_type: ConditionalType
    context: EffectContext
    source_card_id: str
    lane_index: int


@dataclass(frozen=True)
class QueuedEffect:
    """An effect queued to run once the current decision is resolved."""
    effect: EffectDefinition
    context: EffectContext
    source_card_id: str
    lane_index: int
    type: ClassVar[str] = "execute_queued_effect"


@dataclass(frozen=True)
class ControlResume:
    """What to do after the control component has been used (or declined)."""
    action: str  # compile, refresh
    lane_index: int | None = None


@dataclass(frozen=True, kw_only=True)
class PendingAction:
    """Base for all decisions."""
    actor: Player
    source_card_id: str | None = None
    optional: bool = False
    follow_up: FollowUp | None = None
    origin: EffectContext | None = None  # Context of the effect that opened the decision
    type: ClassVar[str] = "pending"

    def with_follow_up(self, follow_up: FollowUp | None) -> PendingAction:
        return replace(self, follow_up=follow_up)

    def with_origin(self, origin: EffectContext) -> PendingAction:
        return replace(self, origin=origin)


# =============================================================================
# Board card selection
# =============================================================================

@dataclass(frozen=True, kw_only=True)
class SelectCardsToDelete(PendingAction):
    """Pick one card to delete; `count` is how many deletions remain."""
    count: int
    card_owner: Player
    target_filter: TargetFilter
    scope: str = "anywhere"
    source_lane_index: int | None = None
    lane_indices: tuple[int, ...] | None = None
    allowed_ids: tuple[str, ...] | None = None
    disallowed_ids: tuple[str, ...] = ()
    protocol_matching: str | None = None
    up_to: bool = False
    current_lane_index: int | None = None
    remaining_lanes: tuple[int, ...] = ()
    per_lane: int = 1  # Picks owed in each of remaining_lanes
    type: ClassVar[str] = "select_cards_to_delete"


@dataclass(frozen=True, kw_only=True)
class SelectCardFromOtherLanesToDelete(PendingAction):
    """Pick one card in each other lane that has cards, one lane per decision."""
    count: int
    card_owner: Player
    target_filter: TargetFilter
    source_lane_index: int
    lanes_selected: tuple[int, ...] = ()
    disallowed_ids: tuple[str, ...] = ()
    type: ClassVar[str] = "select_card_from_other_lanes_to_delete"


@dataclass(frozen=True, kw_only=True)
class SelectLaneForDelete(PendingAction):
    """Pick a lane; then every matching card (or `count` of them) in it is deleted."""
    valid_lanes: tuple[int, ...]
    card_owner: Player
    target_filter: TargetFilter
    delete_all: bool = True
    count: int = 1  # Deletions in the chosen lane when not delete_all
    disallowed_ids: tuple[str, ...] = ()
    type: ClassVar[str] = "select_lane_for_delete"


@dataclass(frozen=True, kw_only=True)
class SelectCardToFlip(PendingAction):
    """Pick one card to flip; `count` is how many flips remain."""
    count: int
    card_owner: Player
    target_filter: TargetFilter
    scope: str = "anywhere"
    source_lane_index: int | None = None
    lane_indices: tuple[int, ...] | None = None
    allowed_ids: tuple[str, ...] | None = None
    disallowed_ids: tuple[str, ...] = ()
    face_up_only: bool = False  # Face-down cards may not be turned face-up
    current_lane_index: int | None = None
    remaining_lanes: tuple[int, ...] = ()
    per_lane: int = 1
    type: ClassVar[str] = "select_card_to_flip"


@dataclass(frozen=True, kw_only=True)
class SelectCardToShift(PendingAction):
    """Pick a card to shift; the destination lane is asked for next."""
    card_owner: Player
    target_filter: TargetFilter
    scope: str = "anywhere"
    source_lane_index: int | None = None
    disallowed_ids: tuple[str, ...] = ()
    destination_restriction: str | None = None
    restriction_lane_index: int | None = None
    type: ClassVar[str] = "select_card_to_shift"


@dataclass(frozen=True, kw_only=True)
class SelectLaneForShift(PendingAction):
    """Pick the destination lane for a chosen card."""
    card_to_shift_id: str
    card_owner: Player  # Whose side the card is on
    original_lane_index: int
    valid_lanes: tuple[int, ...]
    type: ClassVar[str] = "select_lane_for_shift"


@dataclass(frozen=True, kw_only=True)
class SelectCardToReturn(PendingAction):
    """Pick one card to return to a hand; `count` is how many returns remain."""
    count: int
    card_owner: Player
    target_filter: TargetFilter
    destination: str = "owner_hand"  # owner_hand, actor_hand
    lane_indices: tuple[int, ...] | None = None
    disallowed_ids: tuple[str, ...] = ()
    type: ClassVar[str] = "select_card_to_return"


@dataclass(frozen=True, kw_only=True)
class SelectLaneForReturn(PendingAction):
    """Pick a lane; every matching card in it returns to a hand."""
    valid_lanes: tuple[int, ...]
    card_owner: Player
    target_filter: TargetFilter
    destination: str = "owner_hand"
    type: ClassVar[str] = "select_lane_for_return"


@dataclass(frozen=True, kw_only=True)
class SelectBoardCardToReveal(PendingAction):
    """Pick a board card to reveal, optionally flipping or shifting it afterwards."""
    card_owner: Player
    target_filter: TargetFilter
    follow_up_action: str | None = None  # flip, shift
    disallowed_ids: tuple[str, ...] = ()
    type: ClassVar[str] = "select_board_card_to_reveal_custom"


# =============================================================================
# Hand / deck / trash selection
# =============================================================================

@dataclass(frozen=True, kw_only=True)
class Discard(PendingAction):
    """Discard cards from the actor's hand."""
    count: int
    up_to: bool = False
    variable_count: bool = False  # "Discard 1 or more cards"
    previous_hand_size: int = 0
    type: ClassVar[str] = "discard"


@dataclass(frozen=True, kw_only=True)
class SelectCardFromHandToReveal(PendingAction):
    count: int = 1
    type: ClassVar[str] = "select_card_from_hand_to_reveal"


@dataclass(frozen=True, kw_only=True)
class SelectCardFromHandToGive(PendingAction):
    count: int = 1
    type: ClassVar[str] = "select_card_from_hand_to_give"


@dataclass(frozen=True, kw_only=True)
class SelectCardFromTrashToReveal(PendingAction):
    """Pick a trash card by index."""
    count: int = 1
    to_hand: bool = False
    type: ClassVar[str] = "select_card_from_trash_to_reveal"


@dataclass(frozen=True, kw_only=True)
class PromptDiscardRevealedCard(PendingAction):
    """Optionally discard the revealed top card of the actor's deck."""
    revealed_card_id: str
    type: ClassVar[str] = "prompt_discard_revealed_deck_top"


@dataclass(frozen=True, kw_only=True)
class SelectCardFromOpponentHandToTake(PendingAction):
    count: int = 1
    type: ClassVar[str] = "select_card_from_opponent_hand_to_take"


@dataclass(frozen=True, kw_only=True)
class SelectCardFromHandToPlay(PendingAction):
    """Pick a hand card to play as part of an effect."""
    face_down: bool | None = None  # None: the actor picks the orientation
    valid_lanes: tuple[int, ...] = (0, 1, 2)
    type: ClassVar[str] = "select_card_from_hand_to_play"


@dataclass(frozen=True, kw_only=True)
class SelectLaneForPlay(PendingAction):
    card_in_hand_id: str | None = None  # None: the top card of the actor's deck
    face_down: bool | None = None
    valid_lanes: tuple[int, ...] = (0, 1, 2)
    type: ClassVar[str] = "select_lane_for_play"


# =============================================================================
# Prompts
# =============================================================================

@dataclass(frozen=True, kw_only=True)
class PromptOptionalEffect(PendingAction):
    """Yes/no for a "you may" effect."""
    effect: EffectDefinition
    lane_index: int
    context: EffectContext
    type: ClassVar[str] = "prompt_optional_effect"


@dataclass(frozen=True, kw_only=True)
class CustomChoice(PendingAction):
    """Choose one of two effects."""
    options: tuple[EffectDefinition, ...]
    lane_index: int
    context: EffectContext
    type: ClassVar[str] = "custom_choice"


@dataclass(frozen=True, kw_only=True)
class PromptRearrangeProtocols(PendingAction):
    """Submit a new ordering of the target's three protocols."""
    target: Player
    disallowed_protocol: str | None = None
    disallowed_lane_index: int | None = None
    resume: ControlResume | None = None
    type: ClassVar[str] = "prompt_rearrange_protocols"


@dataclass(frozen=True, kw_only=True)
class PromptSwapProtocols(PendingAction):
    """Pick two of the target's lanes whose protocols trade places."""
    target: Player
    disallowed_protocol: str | None = None
    disallowed_lane_index: int | None = None
    type: ClassVar[str] = "prompt_swap_protocols"


@dataclass(frozen=True, kw_only=True)
class SelectPhaseEffect(PendingAction):
    """Pick which start/end effect fires next."""
    phase: str
    candidates: tuple[PhaseEffectRef, ...]
    type: ClassVar[str] = "select_phase_effect"


@dataclass(frozen=True, kw_only=True)
class PromptUseControlMechanic(PendingAction):
    """Use the control component to rearrange protocols, or skip."""
    resume: ControlResume
    type: ClassVar[str] = "prompt_use_control_mechanic"


@dataclass(frozen=True, kw_only=True)
class SelectLaneForCompile(PendingAction):
    valid_lanes: tuple[int, ...]
    type: ClassVar[str] = "select_lane_for_compile"


QueuedItem = Union[PendingAction, QueuedEffect]


PENDING_TYPES: dict[str, type[PendingAction]] = {
    cls.type: cls
    for cls in (
        SelectCardsToDelete,
        SelectCardFromOtherLanesToDelete,
        SelectLaneForDelete,
        SelectCardToFlip,
        SelectCardToShift,
        SelectLaneForShift,
        SelectCardToReturn,
        SelectLaneForReturn,
        SelectBoardCardToReveal,
        Discard,
        SelectCardFromHandToReveal,
        SelectCardFromHandToGive,
        SelectCardFromTrashToReveal,
        PromptDiscardRevealedCard,
        SelectCardFromOpponentHandToTake,
        SelectCardFromHandToPlay,
        SelectLaneForPlay,
        PromptOptionalEffect,
        CustomChoice,
        PromptRearrangeProtocols,
        PromptSwapProtocols,
        SelectPhaseEffect,
        PromptUseControlMechanic,
        SelectLaneForCompile,
    )
}
