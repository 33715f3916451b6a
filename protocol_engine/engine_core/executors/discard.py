"""
Discard executor.

Supported params:
- count: int, "all" or a dynamic count
- actor: self (default) or opponent
- up_to, variable_count ("discard 1 or more")
- random: cards are picked at random, no decision
- source: hand (default) or deck ("discard the top N cards of your deck")
"""

from __future__ import annotations

from ...spec_schema.effect_dsl import EffectDefinition, EffectTrigger
from ..board import discard_from_hand
from ..chain import resolve_count
from ..context import EffectContext
from ..log import log
from ..pending import Discard
from ..state import DiscardContext, GameState, PlayedCard, Player
from .base import EffectResult, resolve_actor


def perform_discard(
    state: GameState,
    actor: Player,
    card_ids: list[str],
    source_card_id: str | None = None,
) -> GameState:
    """Discard hand cards, record the discard context and fire reactions."""
    previous_hand_size = len(state.get(actor).hand)
    state, discarded = discard_from_hand(state, actor, card_ids)
    if not discarded:
        return state

    names = ", ".join(card.name for card in discarded)
    state = log(state, actor, f"{actor.display_name} discards {names}.")
    state = state._copy_with(discard_context=DiscardContext(
        actor=actor,
        discarded_count=len(discarded),
        previous_hand_size=previous_hand_size,
        source_card_id=source_card_id,
    ))

    from .. import triggers
    state = triggers.process_reactive_effects(state, EffectTrigger.AFTER_DISCARD, actor)
    return triggers.process_reactive_effects(state, EffectTrigger.AFTER_OPPONENT_DISCARD, actor)


def discard_from_deck(state: GameState, side: Player, count: int) -> tuple[GameState, int]:
    """Move the top `count` deck cards (-1: all) straight to the trash."""
    player_state = state.get(side)
    deck = player_state.deck
    taken = deck if count < 0 else deck[:count]
    state = state.update_player(side, deck=deck[len(taken):], discard=player_state.discard + taken)
    if taken:
        state = log(state, side, f"{side.display_name} discards the top {len(taken)} cards of their deck.")
    return state, len(taken)


def execute_discard(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    actor = resolve_actor(effect.param("actor"), context)
    count = resolve_count(effect.param("count", 1), state, context)

    if effect.param("source") == "deck":
        state, moved = discard_from_deck(state, actor, count)
        if not moved:
            return EffectResult.skipped(state, actor, f"{actor.display_name} has no cards in their deck to discard.")
        return EffectResult.done(state)

    hand = state.get(actor).hand
    if not hand:
        return EffectResult.skipped(state, actor, f"{actor.display_name} has no cards to discard.")
    if count < 0:
        count = len(hand)
    if count == 0:
        return EffectResult.skipped(state)

    if effect.param("random"):
        rng, state = state.next_random()
        picks = rng.sample([c.id for c in hand], min(count, len(hand)))
        return EffectResult.done(perform_discard(state, actor, picks, card.id))

    up_to = bool(effect.param("up_to"))
    variable = bool(effect.param("variable_count"))
    if count >= len(hand) and not up_to and not variable:
        if count > len(hand):
            state = log(state, actor, f"{actor.display_name} can only discard {len(hand)} of {count} cards.")
        return EffectResult.done(perform_discard(state, actor, [c.id for c in hand], card.id))

    return EffectResult.waiting(state, Discard(
        actor=actor,
        source_card_id=card.id,
        count=min(count, len(hand)),
        up_to=up_to,
        variable_count=variable,
        previous_hand_size=len(hand),
    ))
