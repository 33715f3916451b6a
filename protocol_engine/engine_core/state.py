"""
Game State - Immutable snapshot of a whole match.

Design principles:
- Immutable: every dataclass is frozen, collections are tuples,
  all updates go through explicit with_* methods that return new objects
- Self-contained: card templates carry their effect definitions, so a
  snapshot can be resumed without any outside registry
- Replayable: randomness and card ids are derived from counters stored
  in the state itself
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
import random
from typing import TYPE_CHECKING, Any

from ..config import LANE_COUNT

if TYPE_CHECKING:
    from ..spec_schema.effect_dsl import EffectDefinition
    from .pending import PendingAction, QueuedItem


class InvariantViolation(Exception):
    """A programming defect: the engine reached a state that must be impossible."""


class Player(Enum):
    """The two sides of a match."""
    PLAYER = "player"
    OPPONENT = "opponent"

    @property
    def other(self) -> Player:
        return Player.OPPONENT if self is Player.PLAYER else Player.PLAYER

    @property
    def display_name(self) -> str:
        return "Player" if self is Player.PLAYER else "Opponent"


class GamePhase(Enum):
    """Phases of a turn, in order."""
    START = "start"
    CONTROL = "control"
    COMPILE = "compile"
    ACTION = "action"
    HAND_LIMIT = "hand_limit"
    END = "end"


@dataclass(frozen=True)
class Card:
    """
    A card template: protocol, value and rule text.

    Templates live in decks and trash piles. They have no identity; an
    instance id is only assigned when the card enters play (PlayedCard).
    """
    protocol: str
    value: int
    top: str = ""
    middle: str = ""
    bottom: str = ""
    keywords: frozenset[str] = frozenset()

    # Declarative effects per box
    top_effects: tuple[EffectDefinition, ...] = ()
    middle_effects: tuple[EffectDefinition, ...] = ()
    bottom_effects: tuple[EffectDefinition, ...] = ()

    @property
    def name(self) -> str:
        return f"{self.protocol}-{self.value}"

    def all_effects(self) -> tuple[EffectDefinition, ...]:
        return self.top_effects + self.middle_effects + self.bottom_effects


@dataclass(frozen=True)
class PlayedCard:
    """
    A card instance in a hand or on the board.

    Wraps a Card template with an identity and a face orientation.
    """
    id: str
    card: Card
    is_face_up: bool = True
    is_revealed: bool = False  # Visible to both players while face-down

    @property
    def protocol(self) -> str:
        return self.card.protocol

    @property
    def value(self) -> int:
        return self.card.value

    @property
    def name(self) -> str:
        return self.card.name

    @property
    def top_effects(self) -> tuple[EffectDefinition, ...]:
        return self.card.top_effects

    @property
    def middle_effects(self) -> tuple[EffectDefinition, ...]:
        return self.card.middle_effects

    @property
    def bottom_effects(self) -> tuple[EffectDefinition, ...]:
        return self.card.bottom_effects

    def flipped(self) -> PlayedCard:
        """Return the card with its face orientation toggled."""
        return replace(self, is_face_up=not self.is_face_up)

    def with_face(self, is_face_up: bool) -> PlayedCard:
        return replace(self, is_face_up=is_face_up)

    def revealed(self) -> PlayedCard:
        return replace(self, is_revealed=True)

    def to_template(self) -> Card:
        """Strip the identity (discarded, deleted or returned cards)."""
        return self.card


@dataclass(frozen=True)
class PlayerStats:
    """Play statistics for one side."""
    cards_played: int = 0
    cards_discarded: int = 0
    cards_deleted: int = 0
    cards_flipped: int = 0
    cards_shifted: int = 0
    cards_drawn: int = 0
    hands_refreshed: int = 0

    def bump(self, **deltas: int) -> PlayerStats:
        """Return stats with the given counters increased."""
        return replace(self, **{key: getattr(self, key) + delta for key, delta in deltas.items()})


def _empty_lanes() -> tuple[tuple[PlayedCard, ...], ...]:
    return tuple(() for _ in range(LANE_COUNT))


@dataclass(frozen=True)
class PlayerState:
    """
    State for one side.

    Lanes are stacks ordered bottom-to-top: the last element of a lane is
    the uncovered card, every other card is covered.
    """
    protocols: tuple[str, ...]
    deck: tuple[Card, ...] = ()  # Front is the draw point
    hand: tuple[PlayedCard, ...] = ()
    lanes: tuple[tuple[PlayedCard, ...], ...] = field(default_factory=_empty_lanes)
    discard: tuple[Card, ...] = ()  # Trash; also where deleted cards go
    compiled: tuple[bool, ...] = (False, False, False)
    lane_values: tuple[int, ...] = (0, 0, 0)  # Cache, rebuilt by the lane value calculator
    cannot_compile: bool = False
    stats: PlayerStats = field(default_factory=PlayerStats)

    def uncovered(self, lane_index: int) -> PlayedCard | None:
        """Get the uncovered (top) card of a lane."""
        lane = self.lanes[lane_index]
        return lane[-1] if lane else None

    def board_cards(self) -> list[tuple[int, int, PlayedCard]]:
        """All cards on this side as (lane_index, stack_index, card)."""
        return [
            (lane_index, stack_index, card)
            for lane_index, lane in enumerate(self.lanes)
            for stack_index, card in enumerate(lane)
        ]

    def find_in_hand(self, card_id: str) -> PlayedCard | None:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None

    def with_lane(self, lane_index: int, cards: tuple[PlayedCard, ...]) -> PlayerState:
        """Return new player state with one lane replaced."""
        lanes = list(self.lanes)
        lanes[lane_index] = tuple(cards)
        return replace(self, lanes=tuple(lanes))

    def with_hand(self, hand: tuple[PlayedCard, ...]) -> PlayerState:
        return replace(self, hand=tuple(hand))

    def with_stats(self, **deltas: int) -> PlayerState:
        return replace(self, stats=self.stats.bump(**deltas))

    def _copy_with(self, **kwargs: Any) -> PlayerState:
        return replace(self, **kwargs)


@dataclass(frozen=True)
class LogEntry:
    """One line of the game log."""
    player: Player
    message: str
    indent_level: int = 0
    source_card: str | None = None
    phase: str | None = None  # start, middle, end, uncover, compile


@dataclass(frozen=True)
class PhaseEffectRef:
    """A start/end effect captured when the phase began."""
    card_id: str
    owner: Player
    lane_index: int
    box: str  # top, middle, bottom
    effect_ids: tuple[str, ...]

    @property
    def key(self) -> str:
        return f"{self.card_id}:{self.box}"


@dataclass(frozen=True)
class AnimationHint:
    """What the presentation layer may animate (delete, flip, shift, draw, ...)."""
    kind: str
    card_id: str | None = None
    owner: Player | None = None
    lane_index: int | None = None


@dataclass(frozen=True)
class DiscardContext:
    """What the last discard did, for follow-ups like "draw the same amount"."""
    actor: Player
    discarded_count: int
    previous_hand_size: int
    source_card_id: str | None = None


@dataclass(frozen=True)
class GameState:
    """
    Complete match state at a point in time.

    This is the canonical state that every engine function operates on.
    No function mutates a published snapshot.
    """
    player: PlayerState
    opponent: PlayerState

    turn: Player = Player.PLAYER
    phase: GamePhase = GamePhase.START
    turn_number: int = 1
    use_control_mechanic: bool = False
    control_card_holder: Player | None = None
    winner: Player | None = None
    automated: frozenset[Player] = frozenset()  # Sides driven by an AI

    # Log
    log: tuple[LogEntry, ...] = ()
    log_indent: int = 0
    log_source: str | None = None
    log_phase: str | None = None

    # Decisions
    action_required: PendingAction | None = None
    queued_actions: tuple[QueuedItem, ...] = ()
    interrupted_turn: Player | None = None
    interrupted_phase: GamePhase | None = None
    compilable_lanes: tuple[int, ...] = ()
    action_taken: bool = False  # The turn player has played, refreshed or compiled

    # Presentation hints produced by the last transition
    animation_hints: tuple[AnimationHint, ...] = ()

    # Cross-effect references
    last_target_card_id: str | None = None
    last_target_card_value: int | None = None
    discard_context: DiscardContext | None = None
    effect_skipped_no_targets: bool = False
    revealed_deck_top_id: str | None = None

    # Double-fire guards
    phase_snapshot: tuple[PhaseEffectRef, ...] | None = None
    processed_start_effect_ids: frozenset[str] = frozenset()
    processed_end_effect_ids: frozenset[str] = frozenset()
    processed_uncover_event_ids: frozenset[str] = frozenset()
    removal_counter: int = 0  # Numbers board removals for uncover events
    reactive_in_progress: frozenset[str] = frozenset()

    # Determinism
    random_seed: int = 0
    random_counter: int = 0
    next_card_number: int = 1

    def get(self, side: Player) -> PlayerState:
        """Get a side's state."""
        return self.player if side is Player.PLAYER else self.opponent

    def with_player(self, side: Player, player_state: PlayerState) -> GameState:
        """Return new state with one side replaced."""
        if side is Player.PLAYER:
            return self._copy_with(player=player_state)
        return self._copy_with(opponent=player_state)

    def update_player(self, side: Player, **kwargs: Any) -> GameState:
        """Return new state with some fields of one side replaced."""
        return self.with_player(side, replace(self.get(side), **kwargs))

    def is_automated(self, side: Player) -> bool:
        return side in self.automated

    def with_hint(self, kind: str, card_id: str | None = None, owner: Player | None = None,
                  lane_index: int | None = None) -> GameState:
        hint = AnimationHint(kind=kind, card_id=card_id, owner=owner, lane_index=lane_index)
        return self._copy_with(animation_hints=self.animation_hints + (hint,))

    def _copy_with(self, **kwargs: Any) -> GameState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)

    # -------------------------------------------------------------------------
    # Determinism helpers
    # -------------------------------------------------------------------------

    def next_random(self) -> tuple[random.Random, GameState]:
        """
        Get a random source for one operation.

        The source is seeded from (random_seed, random_counter) and the
        counter advances, so replaying a snapshot repeats every draw.
        """
        rng = random.Random(f"{self.random_seed}:{self.random_counter}")
        return rng, self._copy_with(random_counter=self.random_counter + 1)

    def next_removal_event(self) -> tuple[int, GameState]:
        """Number one board removal. Every removal is a distinct event."""
        return self.removal_counter, self._copy_with(removal_counter=self.removal_counter + 1)

    def allocate_ids(self, count: int) -> tuple[list[str], GameState]:
        """Reserve fresh card instance ids."""
        start = self.next_card_number
        ids = [f"c{number}" for number in range(start, start + count)]
        return ids, self._copy_with(next_card_number=start + count)

    def instantiate(self, cards: list[Card] | tuple[Card, ...], face_up: bool = True) -> tuple[list[PlayedCard], GameState]:
        """Give templates fresh identities."""
        ids, new_state = self.allocate_ids(len(cards))
        played = [PlayedCard(id=card_id, card=card, is_face_up=face_up) for card_id, card in zip(ids, cards)]
        return played, new_state

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def all_card_ids(self) -> list[str]:
        """Every instance id currently in a hand or on the board."""
        ids = []
        for side in Player:
            player_state = self.get(side)
            ids.extend(card.id for card in player_state.hand)
            ids.extend(card.id for _, _, card in player_state.board_cards())
        return ids

    def check_unique_ids(self) -> None:
        """Raise InvariantViolation if two live instances share an id."""
        ids = self.all_card_ids()
        if len(ids) != len(set(ids)):
            duplicates = sorted({card_id for card_id in ids if ids.count(card_id) > 1})
            raise InvariantViolation(f"Duplicate card ids: {duplicates}")
