"""
Pytest fixtures and board builders for Protocol Engine tests.

Boards are built by hand from PlayedCard stacks so each test controls
exactly which cards are covered, face-down or active. Hand-placed cards
use short readable ids; ids the engine allocates start at c100.
"""

import pytest

from ..engine_core.action import Action
from ..engine_core.context import EffectContext, TriggerType
from ..engine_core.executors import execute_effect
from ..engine_core.executors.base import refresh_values
from ..engine_core.reducer import Reducer
from ..engine_core.state import Card, GamePhase, GameState, PlayedCard, Player, PlayerState
from ..engine_core.targeting import find_card_on_board
from ..protocols import create_default_catalog
from ..spec_schema.card_catalog import define_card

PLAYER_PROTOCOLS = ("Fire", "Water", "Death")
OPPONENT_PROTOCOLS = ("Hate", "Metal", "Speed")


def blank(protocol: str = "Fire", value: int = 1, **kwargs) -> Card:
    """A card template with no effects unless some are passed in."""
    return define_card(protocol, value, **kwargs)


def played(card_id: str, template: Card | None = None, face_up: bool = True) -> PlayedCard:
    return PlayedCard(id=card_id, card=template or blank(), is_face_up=face_up)


def _lanes(lanes) -> tuple:
    if lanes is None:
        return ((), (), ())
    return tuple(tuple(lane) for lane in lanes)


def make_state(
    player_lanes=None,
    opponent_lanes=None,
    player_hand=(),
    opponent_hand=(),
    player_deck=(),
    opponent_deck=(),
    player_protocols=PLAYER_PROTOCOLS,
    opponent_protocols=OPPONENT_PROTOCOLS,
    **kwargs,
) -> GameState:
    """
    Build a state in the player's action phase.

    Any GameState field can be overridden through kwargs (phase, turn,
    automated, use_control_mechanic, ...). Lane values are calculated.
    """
    kwargs.setdefault("phase", GamePhase.ACTION)
    kwargs.setdefault("next_card_number", 100)
    state = GameState(
        player=PlayerState(
            protocols=tuple(player_protocols),
            deck=tuple(player_deck),
            hand=tuple(player_hand),
            lanes=_lanes(player_lanes),
        ),
        opponent=PlayerState(
            protocols=tuple(opponent_protocols),
            deck=tuple(opponent_deck),
            hand=tuple(opponent_hand),
            lanes=_lanes(opponent_lanes),
        ),
        **kwargs,
    )
    return refresh_values(state)


def run_effect(state: GameState, source_card_id: str, effect, owner: Player = Player.PLAYER):
    """Run one effect as if the source card's owner triggered it by playing it."""
    info = find_card_on_board(state, source_card_id)
    context = EffectContext.for_owner(owner, state.turn, TriggerType.PLAY, source_card_id)
    return execute_effect(state, source_card_id, info.lane_index, effect, context)


def apply_ok(state: GameState, action: Action) -> GameState:
    """Apply an action that must succeed."""
    result = Reducer().apply(state, action)
    assert result.success, f"{result.error_code}: {result.error}"
    return result.new_state


def lane_ids(state: GameState, side: Player, lane_index: int) -> list[str]:
    return [card.id for card in state.get(side).lanes[lane_index]]


def hand_ids(state: GameState, side: Player) -> list[str]:
    return [card.id for card in state.get(side).hand]


def messages(state: GameState) -> list[str]:
    return [entry.message for entry in state.log]


@pytest.fixture
def catalog():
    """The built-in card catalog."""
    return create_default_catalog()


@pytest.fixture
def empty_state() -> GameState:
    """Empty board, empty hands, the player's action phase."""
    return make_state()


@pytest.fixture
def reducer() -> Reducer:
    return Reducer()
