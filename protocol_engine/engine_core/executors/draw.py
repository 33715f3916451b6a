"""
Draw, refresh and mutual draw executors.

draw params:
- count (int or dynamic), target: self | opponent | both
- source: own_deck (default) | opponent_deck
- count_offset: added to a dynamic count
"""

from __future__ import annotations

from ...config import HAND_SIZE
from ...spec_schema.effect_dsl import EffectDefinition, EffectTrigger
from ..board import draw_cards
from ..chain import resolve_count
from ..context import EffectContext
from ..log import log
from ..state import GameState, PlayedCard, Player
from .base import EffectResult


def _plural(count: int) -> str:
    return "card" if count == 1 else "cards"


def perform_draw(
    state: GameState,
    side: Player,
    count: int,
    deck_owner: Player | None = None,
) -> tuple[GameState, int]:
    """Draw cards, log the draw and fire draw reactions."""
    state, drawn = draw_cards(state, side, count, deck_owner)
    if not drawn:
        return log(state, side, f"{side.display_name} has no cards left to draw."), 0

    if deck_owner is not None and deck_owner is not side:
        state = log(
            state,
            side,
            f"{side.display_name} draws {len(drawn)} {_plural(len(drawn))} from {deck_owner.display_name}'s deck.",
        )
    else:
        state = log(state, side, f"{side.display_name} draws {len(drawn)} {_plural(len(drawn))}.")

    from .. import triggers
    state = triggers.process_reactive_effects(state, EffectTrigger.AFTER_DRAW, side)
    state = triggers.process_reactive_effects(state, EffectTrigger.AFTER_OPPONENT_DRAW, side)
    return state, len(drawn)


def refresh_hand(state: GameState, side: Player) -> tuple[GameState, int]:
    """Draw until side holds HAND_SIZE cards."""
    missing = HAND_SIZE - len(state.get(side).hand)
    if missing <= 0:
        return log(state, side, f"{side.display_name}'s hand is already full."), 0
    state = log(state, side, f"{side.display_name} refreshes their hand.")
    state, drawn = perform_draw(state, side, missing)
    if drawn:
        from .. import triggers
        state = triggers.process_reactive_effects(state, EffectTrigger.AFTER_REFRESH, side)
    return state, drawn


def execute_draw(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    count = resolve_count(effect.param("count", 1), state, context, int(effect.param("count_offset", 0)))
    if count < 0:
        count = len(state.get(context.card_owner).deck)
    if count == 0:
        return EffectResult.skipped(state, context.card_owner, "Nothing to draw. Effect skipped.")

    target = effect.param("target", "self")
    if target == "both":
        sides = [context.card_owner, context.opponent]
    elif target == "opponent":
        sides = [context.opponent]
    else:
        sides = [context.card_owner]

    deck_owner = context.opponent if effect.param("source") == "opponent_deck" else None
    total = 0
    for side in sides:
        state, drawn = perform_draw(state, side, count, deck_owner)
        total += drawn
    return EffectResult.done(state, executed=total > 0)


def execute_refresh(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    side = context.opponent if effect.param("target") == "opponent" else context.card_owner
    state, drawn = refresh_hand(state, side)
    return EffectResult.done(state, executed=drawn > 0)


def execute_mutual_draw(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    """Both players draw from each other's deck."""
    count = resolve_count(effect.param("count", 1), state, context)
    owner, opponent = context.card_owner, context.opponent
    state, first = perform_draw(state, owner, count, deck_owner=opponent)
    state, second = perform_draw(state, opponent, count, deck_owner=owner)
    return EffectResult.done(state, executed=(first + second) > 0)
