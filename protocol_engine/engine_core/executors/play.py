"""
Play executor and the shared "a card lands on a stack" sequence.

Landing a card:
1. The card about to be covered runs its on-cover effects
2. The new card is placed on top
3. A face-up card runs its middle (on-play) effects; if step 1 left a
   decision open they are queued behind it instead
4. after_play reactions fire

play params:
- source: hand (default) or deck
- face_down: True, False, or None (the actor picks)
- destination: any, this_lane, other_lanes, each_other_line, each_lane
- actor: self (default) or opponent
"""

from __future__ import annotations

from ...config import LANE_COUNT
from ...spec_schema.effect_dsl import EffectDefinition, EffectTrigger
from ..board import place_on_board, shuffle_trash_into_deck
from ..chain import queue_mark, was_chain_interrupted
from ..context import EffectContext
from ..log import log
from ..passive_rules import can_play_card
from ..pending import SelectCardFromHandToPlay, SelectLaneForPlay
from ..state import GameState, PlayedCard, Player
from ..targeting import Scope
from .base import EffectResult, refresh_values, resolve_actor


def place_and_trigger(state: GameState, side: Player, lane_index: int, card: PlayedCard) -> GameState:
    """Put card on top of side's stack and run the cover/play triggers."""
    from .. import triggers

    mark = queue_mark(state)
    before = state
    if state.get(side).uncovered(lane_index) is not None:
        state = triggers.execute_on_cover(state, side, lane_index)
    cover_interrupted = was_chain_interrupted(before, state)

    state = place_on_board(state, side, lane_index, card)
    state = state.with_player(side, state.get(side).with_stats(cards_played=1))
    state = state.with_hint("play", card_id=card.id, owner=side, lane_index=lane_index)
    state = refresh_values(state)

    if card.is_face_up:
        if cover_interrupted:
            state = triggers.queue_on_play(state, card.id, side, mark)
        else:
            state = triggers.execute_on_play(state, card.id, side)
    return triggers.process_reactive_effects(state, EffectTrigger.AFTER_PLAY, side, lane_index)


def take_from_hand_to_play(state: GameState, side: Player, card_id: str, face_up: bool) -> tuple[GameState, PlayedCard | None]:
    player_state = state.get(side)
    card = player_state.find_in_hand(card_id)
    if card is None:
        return state, None
    state = state.with_player(side, player_state.with_hand(tuple(c for c in player_state.hand if c.id != card_id)))
    return state, card.with_face(face_up)


def play_from_hand(state: GameState, side: Player, card_id: str, lane_index: int, face_up: bool) -> GameState:
    """Play a hand card (rules already checked by the caller)."""
    state, card = take_from_hand_to_play(state, side, card_id, face_up)
    if card is None:
        return state
    protocol = state.get(side).protocols[lane_index]
    label = card.name if face_up else "a face-down card"
    state = log(state, side, f"{side.display_name} plays {label} into Protocol {protocol}.")
    return place_and_trigger(state, side, lane_index, card)


def play_from_deck(state: GameState, side: Player, lane_index: int, face_up: bool = False) -> tuple[GameState, bool]:
    """Play the top card of side's deck, reshuffling the trash if needed."""
    check = can_play_card(state, side, lane_index, face_up, "", check_protocol=False)
    if not check.allowed:
        return log(state, side, check.reason), False
    if not state.get(side).deck and state.get(side).discard:
        state = shuffle_trash_into_deck(state, side)
        state = log(state, side, f"{side.display_name} shuffles their trash into their deck.")
    deck = state.get(side).deck
    if not deck:
        return log(state, side, f"{side.display_name} has no cards left to play."), False

    state = state.update_player(side, deck=deck[1:])
    (card,), state = state.instantiate([deck[0]], face_up=face_up)
    protocol = state.get(side).protocols[lane_index]
    label = card.name if face_up else "a face-down card"
    state = log(state, side, f"{side.display_name} plays {label} from their deck into Protocol {protocol}.")
    return place_and_trigger(state, side, lane_index, card), True


def destination_lanes(destination: str, lane_index: int) -> list[int]:
    if destination == Scope.THIS_LANE:
        return [lane_index]
    if destination in (Scope.OTHER_LANES, Scope.EACH_OTHER_LINE):
        return [lane for lane in range(LANE_COUNT) if lane != lane_index]
    return list(range(LANE_COUNT))


def execute_play(
    card: PlayedCard,
    lane_index: int,
    state: GameState,
    context: EffectContext,
    effect: EffectDefinition,
) -> EffectResult:
    actor = resolve_actor(effect.param("actor"), context)
    source = effect.param("source", "hand")
    face_down = effect.param("face_down")
    destination = effect.param("destination", "any")
    lanes = destination_lanes(destination, lane_index)

    if source == "deck":
        face_up = face_down is False
        if destination in (Scope.EACH_OTHER_LINE, Scope.EACH_LANE, Scope.THIS_LANE):
            played_any = False
            for lane in lanes:
                state, played = play_from_deck(state, actor, lane, face_up)
                played_any = played_any or played
            return EffectResult.done(state, executed=played_any)
        valid = [lane for lane in lanes if can_play_card(state, actor, lane, face_up, "", check_protocol=False).allowed]
        if not valid:
            return EffectResult.skipped(state, actor, "No line to play into. Effect skipped.")
        return EffectResult.waiting(state, SelectLaneForPlay(
            actor=actor,
            source_card_id=card.id,
            card_in_hand_id=None,
            face_down=not face_up,
            valid_lanes=tuple(valid),
        ))

    if not state.get(actor).hand:
        return EffectResult.skipped(state, actor, "No cards in hand to play. Effect skipped.")
    return EffectResult.waiting(state, SelectCardFromHandToPlay(
        actor=actor,
        source_card_id=card.id,
        face_down=face_down,
        valid_lanes=tuple(lanes),
    ))
