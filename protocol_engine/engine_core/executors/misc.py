"""Take, choice, block-compile and shuffle executors."""

from __future__ import annotations
import logging

from ...spec_schema.effect_dsl import EffectDefinition, effect_from_dict
from ..board import shuffle_deck, shuffle_trash_into_deck, take_from_hand
from ..context import EffectContext
from ..log import log
from ..pending import CustomChoice, SelectCardFromOpponentHandToTake
from ..state import GameState, PlayedCard, Player
from .base import EffectResult

logger = logging.getLogger(__name__)


def perform_take(state: GameState, taker: Player, card_id: str) -> GameState:
    """Move a card from the taker's opponent's hand into the taker's hand."""
    state, card = take_from_hand(state, taker.other, card_id, taker)
    if card is None:
        return state
    return log(state, taker, f"{taker.display_name} takes {card.name} from {taker.other.display_name}'s hand.")


def execute_take(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    taker = context.card_owner
    hand = state.get(context.opponent).hand
    if not hand:
        return EffectResult.skipped(state, taker, f"{context.opponent.display_name} has no cards to take.")
    if effect.param("random"):
        rng, state = state.next_random()
        return EffectResult.done(perform_take(state, taker, rng.choice(hand).id))
    return EffectResult.waiting(state, SelectCardFromOpponentHandToTake(
        actor=taker,
        source_card_id=card.id,
        count=min(int(effect.param("count", 1)), len(hand)),
    ))


def _as_effect(option: EffectDefinition | dict) -> EffectDefinition:
    return option if isinstance(option, EffectDefinition) else effect_from_dict(option)


def execute_choice(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    """Either/or: the actor picks one of two effects."""
    options = tuple(_as_effect(option) for option in effect.param("options") or ())
    if len(options) != 2:
        logger.warning("Choice effect %s on %s needs exactly two options", effect.id, card.name)
        return EffectResult.skipped(state)
    return EffectResult.waiting(state, CustomChoice(
        actor=context.card_owner,
        source_card_id=card.id,
        options=options,
        lane_index=lane_index,
        context=context,
    ))


def execute_block_compile(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    side = context.card_owner if effect.param("target") == "self" else context.opponent
    state = state.update_player(side, cannot_compile=True)
    return EffectResult.done(log(state, context.card_owner, f"{side.display_name} cannot compile next turn."))


def execute_shuffle_trash(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    side = context.card_owner
    if not state.get(side).discard:
        return EffectResult.skipped(state, side, f"{side.display_name}'s trash is empty.")
    state = shuffle_trash_into_deck(state, side)
    return EffectResult.done(log(state, side, f"{side.display_name} shuffles their trash into their deck."))


def execute_shuffle_deck(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    side = context.card_owner
    state = shuffle_deck(state, side)
    return EffectResult.done(log(state, side, f"{side.display_name} shuffles their deck."))
