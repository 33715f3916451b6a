"""
Trigger Dispatcher - decides which card effects fire for an event.

Events and what they fire:
- play / flip face-up: the card's middle (on_play) effects
- uncover: the newly exposed face-up card's middle effects, once per event
- cover: the covered face-up card's on_cover bottom effects, before the
  new card lands
- start / end: the turn player's start/end effects, from a snapshot taken
  when the phase began; each fires at most once per turn
- reactive (after_delete, after_draw, ...): every matching face-up effect,
  current-turn player first, then lane, then top < middle < bottom

Box activity:
- top: active while the card is face-up, even when covered
- middle/bottom: face-up and uncovered
"""

from __future__ import annotations
import logging

from ..spec_schema.effect_dsl import EffectDefinition, EffectTrigger
from .chain import push_continuation, queue_mark, queue_pending_effects
from .context import EffectContext, TriggerType
from .executors import execute_effect, execute_effect_list
from .log import log, set_log_phase, set_log_source
from .pending import QueuedEffect, SelectPhaseEffect
from .state import GameState, PhaseEffectRef, PlayedCard, Player
from .targeting import find_card_on_board

logger = logging.getLogger(__name__)

OPPONENT_TRIGGERS = frozenset({
    EffectTrigger.AFTER_OPPONENT_DISCARD,
    EffectTrigger.AFTER_OPPONENT_DRAW,
    EffectTrigger.AFTER_OPPONENT_COMPILE,
})


def _boxes(card: PlayedCard) -> tuple[tuple[str, tuple[EffectDefinition, ...]], ...]:
    return (("top", card.top_effects), ("middle", card.middle_effects), ("bottom", card.bottom_effects))


def _box_active(card: PlayedCard, box: str, is_uncovered: bool) -> bool:
    if not card.is_face_up:
        return False
    return box == "top" or is_uncovered


def _run_scoped(
    state: GameState,
    source_name: str,
    phase: str | None,
    card_id: str,
    lane_index: int,
    effects: list[EffectDefinition],
    context: EffectContext,
) -> GameState:
    """Run effects with the log grouped under their root trigger."""
    saved = (state.log_indent, state.log_source, state.log_phase)
    state = set_log_phase(set_log_source(state, source_name), phase)
    state = state._copy_with(log_indent=saved[0] + 1)
    state = execute_effect_list(state, card_id, lane_index, effects, context).new_state
    return state._copy_with(log_indent=saved[0], log_source=saved[1], log_phase=saved[2])


# =============================================================================
# Play / flip / uncover / cover
# =============================================================================

def _on_play_effects(card: PlayedCard) -> list[EffectDefinition]:
    return [effect for effect in card.middle_effects if effect.trigger is EffectTrigger.ON_PLAY]


def execute_on_play(
    state: GameState,
    card_id: str,
    owner: Player,
    trigger_type: TriggerType = TriggerType.PLAY,
) -> GameState:
    """Fire a face-up, uncovered card's middle effects."""
    info = find_card_on_board(state, card_id)
    if info is None or not info.card.is_face_up or not info.is_uncovered:
        return state
    effects = _on_play_effects(info.card)
    if not effects:
        return state
    context = EffectContext.for_owner(owner, state.turn, trigger_type, card_id)
    return _run_scoped(state, info.card.name, "middle", card_id, info.lane_index, effects, context)


def queue_on_play(state: GameState, card_id: str, owner: Player, mark: int | None = None) -> GameState:
    """Queue a card's middle effects behind an open decision."""
    info = find_card_on_board(state, card_id)
    if info is None:
        return state
    effects = _on_play_effects(info.card)
    context = EffectContext.for_owner(owner, state.turn, TriggerType.PLAY, card_id)
    return queue_pending_effects(state, effects, card_id, info.lane_index, context, mark)


def execute_on_cover(state: GameState, owner: Player, lane_index: int) -> GameState:
    """Fire the on-cover effects of the card about to be covered in owner's lane."""
    top = state.get(owner).uncovered(lane_index)
    if top is None or not top.is_face_up:
        return state
    effects = [
        effect for effect in top.bottom_effects
        if effect.trigger in (EffectTrigger.ON_COVER, EffectTrigger.ON_COVER_OR_FLIP)
    ]
    if not effects:
        return state
    context = EffectContext.for_owner(owner, state.turn, TriggerType.COVER, top.id)
    return _run_scoped(state, top.name, "middle", top.id, lane_index, effects, context)


def execute_on_flip_self(state: GameState, card_id: str) -> GameState:
    """Fire a face-up card's "when this card would be flipped" effects."""
    info = find_card_on_board(state, card_id)
    if info is None:
        return state
    effects = [
        effect
        for box, box_effects in _boxes(info.card)
        if _box_active(info.card, box, info.is_uncovered)
        for effect in box_effects
        if effect.trigger in (EffectTrigger.ON_FLIP, EffectTrigger.ON_COVER_OR_FLIP)
    ]
    if not effects:
        return state
    context = EffectContext.for_owner(info.owner, state.turn, TriggerType.FLIP, card_id)
    return _run_scoped(state, info.card.name, "middle", card_id, info.lane_index, effects, context)


def handle_uncover(state: GameState, owner: Player, lane_index: int, removal_event: str) -> GameState:
    """
    Fire the exposed card's middle effects after its cover left the stack.

    removal_event names one removal; see GameState.next_removal_event.
    One removal never fires the same uncover twice, while moving the
    same card off the stack again later is a new event.
    """
    lane = state.get(owner).lanes[lane_index]
    if not lane:
        return state
    exposed = lane[-1]
    if not exposed.is_face_up:
        return state

    event_id = f"{exposed.id}@{lane_index}:{removal_event}"
    if event_id in state.processed_uncover_event_ids:
        logger.debug("Uncover event %s already processed", event_id)
        return state
    state = state._copy_with(processed_uncover_event_ids=state.processed_uncover_event_ids | {event_id})

    effects = _on_play_effects(exposed)
    if not effects:
        return state
    state = log(state, owner, f"{exposed.name} is uncovered and its effects are triggered.")
    context = EffectContext.for_owner(owner, state.turn, TriggerType.UNCOVER, exposed.id)
    return _run_scoped(state, exposed.name, "uncover", exposed.id, lane_index, effects, context)


# =============================================================================
# Start / end effects
# =============================================================================

def _processed_field(trigger: EffectTrigger) -> str:
    return "processed_start_effect_ids" if trigger is EffectTrigger.START else "processed_end_effect_ids"


def collect_phase_effects(state: GameState, trigger: EffectTrigger) -> tuple[PhaseEffectRef, ...]:
    """Start/end effects of the turn player that are active right now, in board order."""
    side = state.turn
    refs = []
    for lane_index, lane in enumerate(state.get(side).lanes):
        for stack_index, card in enumerate(lane):
            is_uncovered = stack_index == len(lane) - 1
            for box, effects in _boxes(card):
                if not _box_active(card, box, is_uncovered):
                    continue
                matching = tuple(effect.id for effect in effects if effect.trigger is trigger)
                if matching:
                    refs.append(PhaseEffectRef(
                        card_id=card.id,
                        owner=side,
                        lane_index=lane_index,
                        box=box,
                        effect_ids=matching,
                    ))
    return tuple(refs)


def _still_active(state: GameState, ref: PhaseEffectRef) -> bool:
    info = find_card_on_board(state, ref.card_id)
    return info is not None and info.owner is ref.owner and _box_active(info.card, ref.box, info.is_uncovered)


def pending_phase_effects(state: GameState, trigger: EffectTrigger) -> list[PhaseEffectRef]:
    """Snapshot entries not yet fired whose card is still active."""
    processed = getattr(state, _processed_field(trigger))
    return [
        ref for ref in state.phase_snapshot or ()
        if ref.key not in processed and _still_active(state, ref)
    ]


def run_phase_effect(state: GameState, ref: PhaseEffectRef, trigger: EffectTrigger) -> GameState:
    """Fire one start/end effect; it is marked processed before it runs."""
    field_name = _processed_field(trigger)
    state = state._copy_with(**{field_name: getattr(state, field_name) | {ref.key}})
    info = find_card_on_board(state, ref.card_id)
    if info is None:
        return state

    effects = [
        effect for _, box_effects in _boxes(info.card) for effect in box_effects
        if effect.id in ref.effect_ids and effect.trigger is trigger
    ]
    label = "Start" if trigger is EffectTrigger.START else "End"
    phase = "start" if trigger is EffectTrigger.START else "end"
    state = set_log_phase(set_log_source(state, info.card.name), phase)
    state = log(state, ref.owner, f"{label} Effect: {info.card.name} triggers.")
    trigger_type = TriggerType.START if trigger is EffectTrigger.START else TriggerType.END
    context = EffectContext.for_owner(ref.owner, state.turn, trigger_type, ref.card_id)
    return _run_scoped(state, info.card.name, phase, ref.card_id, info.lane_index, effects, context)


def process_phase_effects(state: GameState, trigger: EffectTrigger) -> tuple[GameState, bool]:
    """
    Fire the turn player's start or end effects.

    Returns (state, finished). Not finished means a decision is open; call
    again once it is resolved and the snapshot picks up where it stopped.
    """
    if state.phase_snapshot is None:
        state = state._copy_with(phase_snapshot=collect_phase_effects(state, trigger))

    while True:
        candidates = pending_phase_effects(state, trigger)
        if not candidates:
            return state._copy_with(phase_snapshot=None), True

        if len(candidates) > 1 and not state.is_automated(state.turn):
            pending = SelectPhaseEffect(
                actor=state.turn,
                phase=trigger.value,
                candidates=tuple(candidates),
            )
            return state._copy_with(action_required=pending), False

        state = run_phase_effect(state, candidates[0], trigger)
        if state.action_required is not None or state.queued_actions:
            return state, False


# =============================================================================
# Reactive effects
# =============================================================================

def _actor_matches(effect: EffectDefinition, owner: Player, event_actor: Player) -> bool:
    if effect.trigger in OPPONENT_TRIGGERS:
        return event_actor is owner.other
    relation = effect.reactive_trigger_actor
    if relation == "any":
        return True
    if relation == "opponent":
        return event_actor is owner.other
    return event_actor is owner


def collect_reactive_effects(
    state: GameState,
    trigger: EffectTrigger,
    event_actor: Player,
    lane_index: int | None = None,
) -> list[tuple[str, Player, int, EffectDefinition]]:
    """Matching reactive effects as (card_id, owner, lane_index, effect), in firing order."""
    found = []
    for side in (state.turn, state.turn.other):
        for card_lane, lane in enumerate(state.get(side).lanes):
            for stack_index, card in enumerate(lane):
                is_uncovered = stack_index == len(lane) - 1
                for box, effects in _boxes(card):
                    if not _box_active(card, box, is_uncovered):
                        continue
                    for effect in effects:
                        if effect.trigger is not trigger:
                            continue
                        if not _actor_matches(effect, side, event_actor):
                            continue
                        if effect.only_during_opponent_turn and state.turn is side:
                            continue
                        if effect.reactive_scope == "this_lane" and lane_index != card_lane:
                            continue
                        found.append((card.id, side, card_lane, effect))
    return found


def process_reactive_effects(
    state: GameState,
    trigger: EffectTrigger,
    event_actor: Player,
    lane_index: int | None = None,
) -> GameState:
    """
    Fire reactive effects for an event.

    An effect already running for this trigger is not re-entered. When one
    opens a decision, the rest queue behind it.
    """
    items = collect_reactive_effects(state, trigger, event_actor, lane_index)
    if not items:
        return state

    mark = queue_mark(state)
    for index, (card_id, owner, card_lane, effect) in enumerate(items):
        if state.action_required is not None:
            rest = tuple(
                QueuedEffect(
                    effect=queued,
                    context=EffectContext.for_owner(queued_owner, state.turn, TriggerType.REACTIVE, queued_id),
                    source_card_id=queued_id,
                    lane_index=queued_lane,
                )
                for queued_id, queued_owner, queued_lane, queued in items[index:]
            )
            return push_continuation(state, rest, mark)

        key = f"{card_id}:{effect.id}"
        if key in state.reactive_in_progress:
            logger.debug("Reactive effect %s already in progress", key)
            continue
        state = state._copy_with(reactive_in_progress=state.reactive_in_progress | {key})
        context = EffectContext.for_owner(owner, state.turn, TriggerType.REACTIVE, card_id)
        state = execute_effect(state, card_id, card_lane, effect, context).new_state
        state = state._copy_with(reactive_in_progress=state.reactive_in_progress - {key})
    return state
