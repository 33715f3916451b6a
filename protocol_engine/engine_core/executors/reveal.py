"""
Reveal and give executors.

reveal params:
- source: own_hand, opponent_hand, own_deck, deck_top, trash, board
- count
- discard_option: after a deck_top reveal, the owner may discard it
- to_hand: a card revealed from the trash goes to the owner's hand
- follow_up_action: flip or shift, for board reveals

give params:
- count: hand cards handed to the opponent
"""

from __future__ import annotations

from ...spec_schema.effect_dsl import EffectDefinition
from ..chain import resolve_count
from ..context import EffectContext
from ..log import log
from ..pending import (
    PromptDiscardRevealedCard,
    SelectBoardCardToReveal,
    SelectCardFromHandToGive,
    SelectCardFromHandToReveal,
    SelectCardFromTrashToReveal,
)
from ..state import GameState, PlayedCard, Player
from ..targeting import find_targets
from .base import EffectResult, filter_from


def reveal_hand_card(state: GameState, side: Player, card_id: str) -> GameState:
    """Mark a hand card as revealed to both players."""
    player_state = state.get(side)
    hand = tuple(c.revealed() if c.id == card_id else c for c in player_state.hand)
    revealed = player_state.find_in_hand(card_id)
    state = state.with_player(side, player_state.with_hand(hand))
    if revealed is not None:
        state = log(state, side, f"{side.display_name} reveals {revealed.name}.")
    return state._copy_with(last_target_card_id=card_id, last_target_card_value=revealed.value if revealed else None)


def _reveal_deck_top(state: GameState, side: Player) -> tuple[GameState, str | None]:
    deck = state.get(side).deck
    if not deck:
        return state, None
    (reveal_id,), state = state.allocate_ids(1)
    top = deck[0]
    state = log(state, side, f"{side.display_name} reveals the top card of their deck: {top.name}.")
    return state._copy_with(
        revealed_deck_top_id=reveal_id,
        last_target_card_id=reveal_id,
        last_target_card_value=top.value,
    ), reveal_id


def execute_reveal(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    owner = context.card_owner
    source = effect.param("source", "own_hand")
    count = resolve_count(effect.param("count", 1), state, context)

    if source == "own_hand":
        hand = state.get(owner).hand
        if not hand:
            return EffectResult.skipped(state, owner, "No cards in hand to reveal. Effect skipped.")
        if count < 0 or count >= len(hand):
            for hand_card in hand:
                state = reveal_hand_card(state, owner, hand_card.id)
            return EffectResult.done(state)
        return EffectResult.waiting(state, SelectCardFromHandToReveal(actor=owner, source_card_id=card.id, count=count))

    if source == "opponent_hand":
        opponent = context.opponent
        hand = state.get(opponent).hand
        if not hand:
            return EffectResult.skipped(state, owner, f"{opponent.display_name} has no cards in hand to reveal.")
        names = ", ".join(c.name for c in hand)
        state = state.update_player(opponent, hand=tuple(c.revealed() for c in hand))
        return EffectResult.done(log(state, opponent, f"{opponent.display_name} reveals their hand: {names}."))

    if source == "own_deck":
        deck = state.get(owner).deck
        if not deck:
            return EffectResult.skipped(state, owner, "No cards in deck to reveal.")
        names = ", ".join(template.name for template in deck)
        return EffectResult.done(log(state, owner, f"{owner.display_name} reveals their deck: {names}."))

    if source == "deck_top":
        state, reveal_id = _reveal_deck_top(state, owner)
        if reveal_id is None:
            return EffectResult.skipped(state, owner, "No cards in deck to reveal.")
        if effect.param("discard_option"):
            return EffectResult.waiting(state, PromptDiscardRevealedCard(
                actor=owner,
                source_card_id=card.id,
                optional=True,
                revealed_card_id=reveal_id,
            ))
        return EffectResult.done(state)

    if source == "trash":
        if not state.get(owner).discard:
            return EffectResult.skipped(state, owner, "No cards in trash to reveal.")
        return EffectResult.waiting(state, SelectCardFromTrashToReveal(
            actor=owner,
            source_card_id=card.id,
            count=1,
            to_hand=bool(effect.param("to_hand")),
        ))

    if source == "board":
        target_filter = filter_from(effect)
        disallowed = (card.id,) if effect.param("exclude_self", True) else ()
        targets = find_targets(state, target_filter, owner, disallowed_ids=disallowed)
        if not targets:
            return EffectResult.skipped(state, owner, "No valid cards to reveal. Effect skipped.")
        return EffectResult.waiting(state, SelectBoardCardToReveal(
            actor=owner,
            source_card_id=card.id,
            card_owner=owner,
            target_filter=target_filter,
            follow_up_action=effect.param("follow_up_action"),
            disallowed_ids=disallowed,
        ))

    return EffectResult.skipped(state, owner, f"Unknown reveal source {source}. Effect skipped.")


def execute_give(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    owner = context.card_owner
    hand = state.get(owner).hand
    if not hand:
        return EffectResult.skipped(state, owner, "No cards in hand to give. Effect skipped.")
    count = resolve_count(effect.param("count", 1), state, context)
    if count == 0:
        return EffectResult.skipped(state)
    if count < 0:
        count = len(hand)
    return EffectResult.waiting(state, SelectCardFromHandToGive(
        actor=owner,
        source_card_id=card.id,
        count=min(count, len(hand)),
    ))
