"""
Decision Resolver - applies a submitted answer to the open decision.

Every answer goes through the same steps:
1. The answer is checked against the decision's valid choices; a bad
   answer raises InvalidDecision and leaves the state untouched
2. The decision is cleared and the queue mark is taken
3. The choice is applied; multi-pick decisions install their next pick
   behind whatever the pick itself triggered
4. When the decision is finished, its conditional follow-up runs (or is
   queued behind a decision the pick opened)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
import logging
from typing import Callable

from ..spec_schema.effect_dsl import EffectTrigger
from . import phases
from .action import Action, ActionType
from .board import reveal_on_board, take_from_hand
from .chain import clear_interrupt, install_decision, process_conditional, queue_mark, store_target_card_id
from .choices import has_valid_choices, hand_plays, valid_card_targets, valid_lanes
from .context import EffectContext, TriggerType
from .executors import chain_context, complete_follow_up, execute_effect, run_or_queue
from .executors.base import refresh_values
from .executors.delete import delete_many, perform_delete
from .executors.discard import perform_discard
from .executors.flip import perform_flip
from .executors.misc import perform_take
from .executors.play import play_from_deck, play_from_hand
from .executors.protocols import ProtocolOrderError, apply_protocol_order, swapped_order, validate_protocol_order
from .executors.return_card import perform_return
from .executors.reveal import reveal_hand_card
from .executors.shift import perform_shift, valid_destinations
from .log import log
from .passive_rules import can_rearrange_protocols
from .pending import (
    CustomChoice,
    Discard,
    PendingAction,
    PromptDiscardRevealedCard,
    PromptOptionalEffect,
    PromptRearrangeProtocols,
    PromptSwapProtocols,
    PromptUseControlMechanic,
    SelectBoardCardToReveal,
    SelectCardFromHandToGive,
    SelectCardFromHandToPlay,
    SelectCardFromHandToReveal,
    SelectCardFromOpponentHandToTake,
    SelectCardFromOtherLanesToDelete,
    SelectCardFromTrashToReveal,
    SelectCardsToDelete,
    SelectCardToFlip,
    SelectCardToReturn,
    SelectCardToShift,
    SelectLaneForCompile,
    SelectLaneForDelete,
    SelectLaneForPlay,
    SelectLaneForReturn,
    SelectLaneForShift,
    SelectPhaseEffect,
)
from .state import GameState
from .targeting import find_card_on_board, find_targets, pick_by_board_order
from .triggers import run_phase_effect

logger = logging.getLogger(__name__)

PROMPTS = (PromptOptionalEffect, PromptDiscardRevealedCard, PromptUseControlMechanic)


class InvalidDecision(ValueError):
    """A submitted answer does not fit the open decision."""


@dataclass(frozen=True)
class Resolution:
    """Outcome of one handler."""
    state: GameState
    executed: bool = True
    continued: bool = False  # The decision carries on as a new pending action


def _context_for(state: GameState, pending: PendingAction) -> EffectContext:
    """The context a decision's own actions run under."""
    if pending.follow_up is not None:
        return pending.follow_up.context.with_actor(pending.actor)
    if pending.origin is not None:
        return pending.origin.with_actor(pending.actor)
    owner = pending.actor
    info = find_card_on_board(state, pending.source_card_id)
    if info is not None:
        owner = info.owner
    context = EffectContext.for_owner(owner, state.turn, TriggerType.PLAY, pending.source_card_id)
    return context.with_actor(pending.actor)


def _next_pick(state: GameState, pending: PendingAction) -> PendingAction | None:
    """The next pick of a multi-pick decision, or None when it is finished."""
    if pending.count > 1:
        candidate = replace(pending, count=pending.count - 1)
        if has_valid_choices(state, candidate):
            return candidate
    remaining = getattr(pending, "remaining_lanes", ())
    for position, lane in enumerate(remaining):
        candidate = replace(
            pending,
            count=pending.per_lane,
            current_lane_index=lane,
            source_lane_index=lane,
            remaining_lanes=remaining[position + 1:],
        )
        if has_valid_choices(state, candidate):
            return candidate
    return None


def _next_or_done(state: GameState, pending: PendingAction, mark: int) -> Resolution:
    following = _next_pick(state, pending)
    if following is None:
        return Resolution(state)
    return Resolution(install_decision(state, following, mark), continued=True)


@dataclass
class DecisionResolver:
    """
    Applies answers to pending actions.

    Stateless - all state is in GameState. One handler per decision kind.
    """

    def resolve(self, state: GameState, action: Action) -> GameState:
        """Apply an answer to state.action_required and return the new state."""
        pending = state.action_required
        if pending is None:
            raise InvalidDecision("No decision is pending")
        if action.player is not None and action.player is not pending.actor:
            raise InvalidDecision(f"{pending.type} is owed by {pending.actor.value}")

        state = state._copy_with(action_required=None)
        mark = queue_mark(state)

        if action.action_type is ActionType.SKIP:
            resolution = self._skip(state, pending, mark)
        else:
            handler = self._get_handler(pending)
            if handler is None:
                raise InvalidDecision(f"No handler for decision {pending.type}")
            resolution = handler(state, pending, action, mark)

        state = resolution.state
        if not resolution.continued:
            state = complete_follow_up(state, pending.follow_up, resolution.executed, mark)
        return refresh_values(clear_interrupt(state))

    def _get_handler(self, pending: PendingAction) -> Callable | None:
        handlers = {
            SelectCardsToDelete: self._resolve_delete,
            SelectCardFromOtherLanesToDelete: self._resolve_other_lanes_delete,
            SelectLaneForDelete: self._resolve_lane_delete,
            SelectCardToFlip: self._resolve_flip,
            SelectCardToShift: self._resolve_shift_card,
            SelectLaneForShift: self._resolve_shift_lane,
            SelectCardToReturn: self._resolve_return,
            SelectLaneForReturn: self._resolve_lane_return,
            SelectBoardCardToReveal: self._resolve_board_reveal,
            Discard: self._resolve_discard,
            SelectCardFromHandToReveal: self._resolve_hand_reveal,
            SelectCardFromHandToGive: self._resolve_give,
            SelectCardFromTrashToReveal: self._resolve_trash_reveal,
            PromptDiscardRevealedCard: self._resolve_discard_revealed,
            SelectCardFromOpponentHandToTake: self._resolve_take,
            SelectCardFromHandToPlay: self._resolve_hand_play,
            SelectLaneForPlay: self._resolve_lane_play,
            PromptOptionalEffect: self._resolve_optional,
            CustomChoice: self._resolve_custom_choice,
            PromptRearrangeProtocols: self._resolve_rearrange,
            PromptSwapProtocols: self._resolve_swap,
            SelectPhaseEffect: self._resolve_phase_effect,
            PromptUseControlMechanic: self._resolve_control,
            SelectLaneForCompile: self._resolve_compile,
        }
        return handlers.get(type(pending))

    # -------------------------------------------------------------------------
    # Answer checks
    # -------------------------------------------------------------------------

    def _board_pick(self, state: GameState, pending: PendingAction, action: Action) -> str:
        card_id = action.payload.card_id
        if card_id not in {target.card_id for target in valid_card_targets(state, pending)}:
            raise InvalidDecision(f"{card_id} is not a valid target for {pending.type}")
        return card_id

    def _lane_pick(self, state: GameState, pending: PendingAction, action: Action) -> int:
        lane_index = action.payload.lane_index
        if lane_index not in valid_lanes(state, pending):
            raise InvalidDecision(f"Lane {lane_index} is not valid for {pending.type}")
        return lane_index

    def _hand_pick(self, state: GameState, pending: PendingAction, action: Action, side=None) -> str:
        side = side or pending.actor
        card_id = action.payload.card_id
        if state.get(side).find_in_hand(card_id) is None:
            raise InvalidDecision(f"{card_id} is not in {side.value}'s hand")
        return card_id

    def _option_pick(self, pending: PendingAction, action: Action, option_count: int) -> int:
        index = action.payload.option_index
        if index is None or not 0 <= index < option_count:
            raise InvalidDecision(f"Option {index} is out of range for {pending.type}")
        return index

    # -------------------------------------------------------------------------
    # Skip
    # -------------------------------------------------------------------------

    def _skip(self, state: GameState, pending: PendingAction, mark: int) -> Resolution:
        if isinstance(pending, PROMPTS):
            declined = Action.answer(pending.actor, False)
            return self._get_handler(pending)(state, pending, declined, mark)
        if not (pending.optional or getattr(pending, "up_to", False)):
            raise InvalidDecision(f"{pending.type} cannot be skipped")
        state = log(state, pending.actor, f"{pending.actor.display_name} skips the rest of the effect.")
        return Resolution(state, executed=False)

    # -------------------------------------------------------------------------
    # Board selections
    # -------------------------------------------------------------------------

    def _resolve_delete(self, state: GameState, pending: SelectCardsToDelete, action: Action, mark: int) -> Resolution:
        card_id = self._board_pick(state, pending, action)
        state, _ = perform_delete(state, card_id, pending.actor, _context_for(state, pending))
        return _next_or_done(state, pending, mark)

    def _resolve_other_lanes_delete(
        self,
        state: GameState,
        pending: SelectCardFromOtherLanesToDelete,
        action: Action,
        mark: int,
    ) -> Resolution:
        card_id = self._board_pick(state, pending, action)
        lane_index = find_card_on_board(state, card_id).lane_index
        state, _ = perform_delete(state, card_id, pending.actor, _context_for(state, pending))
        return _next_or_done(state, replace(pending, lanes_selected=pending.lanes_selected + (lane_index,)), mark)

    def _resolve_lane_delete(self, state: GameState, pending: SelectLaneForDelete, action: Action, mark: int) -> Resolution:
        lane_index = self._lane_pick(state, pending, action)
        targets = [
            target for target in find_targets(
                state, pending.target_filter, pending.card_owner, disallowed_ids=pending.disallowed_ids,
            )
            if target.lane_index == lane_index
        ]
        context = _context_for(state, pending)
        if pending.delete_all:
            return Resolution(delete_many(state, [target.card_id for target in targets], pending.actor, context))

        count = min(pending.count, len(targets))
        if state.is_automated(pending.actor):
            picks = []
            for _ in range(count):
                pick = pick_by_board_order(state, targets, pending.actor)
                picks.append(pick.card_id)
                targets = [target for target in targets if target.card_id != pick.card_id]
            return Resolution(delete_many(state, picks, pending.actor, context))

        select = SelectCardsToDelete(
            actor=pending.actor,
            source_card_id=pending.source_card_id,
            follow_up=pending.follow_up,
            origin=pending.origin,
            count=count,
            card_owner=pending.card_owner,
            target_filter=pending.target_filter,
            lane_indices=(lane_index,),
            disallowed_ids=pending.disallowed_ids,
        )
        return Resolution(install_decision(state, select, mark), continued=True)

    def _resolve_flip(self, state: GameState, pending: SelectCardToFlip, action: Action, mark: int) -> Resolution:
        card_id = self._board_pick(state, pending, action)
        state, flipped = perform_flip(state, card_id, pending.actor, _context_for(state, pending))
        if flipped is None:
            return Resolution(state, executed=False)
        return _next_or_done(state, pending, mark)

    def _resolve_shift_card(self, state: GameState, pending: SelectCardToShift, action: Action, mark: int) -> Resolution:
        card_id = self._board_pick(state, pending, action)
        info = find_card_on_board(state, card_id)
        destinations = valid_destinations(state, info, pending.destination_restriction, pending.restriction_lane_index)
        lane_pending = SelectLaneForShift(
            actor=pending.actor,
            source_card_id=pending.source_card_id,
            follow_up=pending.follow_up,
            origin=pending.origin,
            card_to_shift_id=card_id,
            card_owner=info.owner,
            original_lane_index=info.lane_index,
            valid_lanes=tuple(destinations),
        )
        return Resolution(install_decision(state, lane_pending, mark), continued=True)

    def _resolve_shift_lane(self, state: GameState, pending: SelectLaneForShift, action: Action, mark: int) -> Resolution:
        lane_index = self._lane_pick(state, pending, action)
        state, shifted = perform_shift(state, pending.card_to_shift_id, lane_index, pending.actor, _context_for(state, pending))
        return Resolution(state, executed=shifted is not None)

    def _resolve_return(self, state: GameState, pending: SelectCardToReturn, action: Action, mark: int) -> Resolution:
        card_id = self._board_pick(state, pending, action)
        state, _ = perform_return(state, card_id, pending.actor, pending.destination, _context_for(state, pending))
        return _next_or_done(state, pending, mark)

    def _resolve_lane_return(self, state: GameState, pending: SelectLaneForReturn, action: Action, mark: int) -> Resolution:
        lane_index = self._lane_pick(state, pending, action)
        context = _context_for(state, pending)
        targets = find_targets(state, pending.target_filter, pending.card_owner)
        for target in [target for target in targets if target.lane_index == lane_index]:
            state, _ = perform_return(state, target.card_id, pending.actor, pending.destination, context)
        return Resolution(state)

    def _resolve_board_reveal(
        self,
        state: GameState,
        pending: SelectBoardCardToReveal,
        action: Action,
        mark: int,
    ) -> Resolution:
        card_id = self._board_pick(state, pending, action)
        state, info = reveal_on_board(state, card_id)
        actor = pending.actor
        whose = "their" if info.owner is actor else f"{info.owner.display_name}'s"
        state = log(state, actor, f"{actor.display_name} reveals {whose} {info.card.name}.")
        state = store_target_card_id(state, card_id)

        if pending.follow_up_action == "flip":
            state, _ = perform_flip(state, card_id, actor, _context_for(state, pending))
        elif pending.follow_up_action == "shift":
            destinations = valid_destinations(state, info)
            if destinations:
                lane_pending = SelectLaneForShift(
                    actor=actor,
                    source_card_id=pending.source_card_id,
                    follow_up=pending.follow_up,
                    origin=pending.origin,
                    card_to_shift_id=card_id,
                    card_owner=info.owner,
                    original_lane_index=info.lane_index,
                    valid_lanes=tuple(destinations),
                )
                return Resolution(install_decision(state, lane_pending, mark), continued=True)
        return Resolution(state)

    # -------------------------------------------------------------------------
    # Hand / deck / trash
    # -------------------------------------------------------------------------

    def _resolve_discard(self, state: GameState, pending: Discard, action: Action, mark: int) -> Resolution:
        card_ids = action.payload.card_ids
        if card_ids is None and action.payload.card_id is not None:
            card_ids = [action.payload.card_id]
        card_ids = list(card_ids or [])
        hand_ids = {card.id for card in state.get(pending.actor).hand}

        if len(set(card_ids)) != len(card_ids) or not set(card_ids) <= hand_ids:
            raise InvalidDecision("Discard must name distinct cards from the actor's hand")
        required = min(pending.count, len(hand_ids))
        if pending.variable_count:
            valid_size = len(card_ids) >= max(1, required)
        elif pending.up_to:
            valid_size = 1 <= len(card_ids) <= required
        else:
            valid_size = len(card_ids) == required
        if not valid_size:
            raise InvalidDecision(f"Discard needs {required} card(s), got {len(card_ids)}")

        return Resolution(perform_discard(state, pending.actor, card_ids, pending.source_card_id))

    def _resolve_hand_reveal(
        self,
        state: GameState,
        pending: SelectCardFromHandToReveal,
        action: Action,
        mark: int,
    ) -> Resolution:
        card_id = self._hand_pick(state, pending, action)
        state = reveal_hand_card(state, pending.actor, card_id)
        return _next_or_done(state, pending, mark)

    def _resolve_give(self, state: GameState, pending: SelectCardFromHandToGive, action: Action, mark: int) -> Resolution:
        card_id = self._hand_pick(state, pending, action)
        giver = pending.actor
        state, card = take_from_hand(state, giver, card_id, giver.other)
        state = log(state, giver, f"{giver.display_name} gives {card.name} to {giver.other.display_name}.")
        return _next_or_done(state, pending, mark)

    def _resolve_take(
        self,
        state: GameState,
        pending: SelectCardFromOpponentHandToTake,
        action: Action,
        mark: int,
    ) -> Resolution:
        card_id = self._hand_pick(state, pending, action, side=pending.actor.other)
        state = perform_take(state, pending.actor, card_id)
        return _next_or_done(state, pending, mark)

    def _resolve_trash_reveal(
        self,
        state: GameState,
        pending: SelectCardFromTrashToReveal,
        action: Action,
        mark: int,
    ) -> Resolution:
        actor = pending.actor
        trash = state.get(actor).discard
        index = self._option_pick(pending, action, len(trash))
        template = trash[index]
        state = log(state, actor, f"{actor.display_name} reveals {template.name} from their trash.")
        state = state._copy_with(last_target_card_value=template.value)
        if pending.to_hand:
            (card,), state = state.instantiate([template])
            player_state = state.get(actor)
            state = state.update_player(
                actor,
                discard=player_state.discard[:index] + player_state.discard[index + 1:],
                hand=player_state.hand + (card,),
            )
            state = log(state, actor, f"{actor.display_name} puts {template.name} into their hand.")
        return _next_or_done(state, pending, mark)

    def _resolve_discard_revealed(
        self,
        state: GameState,
        pending: PromptDiscardRevealedCard,
        action: Action,
        mark: int,
    ) -> Resolution:
        actor = pending.actor
        state = state._copy_with(revealed_deck_top_id=None)
        deck = state.get(actor).deck
        if not action.payload.accept or not deck:
            return Resolution(state, executed=False)
        state = state.update_player(actor, deck=deck[1:], discard=state.get(actor).discard + (deck[0],))
        return Resolution(log(state, actor, f"{actor.display_name} discards the revealed {deck[0].name}."))

    def _resolve_hand_play(self, state: GameState, pending: SelectCardFromHandToPlay, action: Action, mark: int) -> Resolution:
        payload = action.payload
        choice = (payload.card_id, payload.lane_index, payload.face_up)
        if choice not in hand_plays(state, pending):
            raise InvalidDecision(f"Cannot play {payload.card_id} into lane {payload.lane_index}")
        return Resolution(play_from_hand(state, pending.actor, payload.card_id, payload.lane_index, payload.face_up))

    def _resolve_lane_play(self, state: GameState, pending: SelectLaneForPlay, action: Action, mark: int) -> Resolution:
        lane_index = self._lane_pick(state, pending, action)
        face_up = action.payload.face_up if pending.face_down is None else not pending.face_down
        if pending.card_in_hand_id is None:
            state, played = play_from_deck(state, pending.actor, lane_index, face_up)
            return Resolution(state, executed=played)
        return Resolution(play_from_hand(state, pending.actor, pending.card_in_hand_id, lane_index, face_up))

    # -------------------------------------------------------------------------
    # Prompts and choices
    # -------------------------------------------------------------------------

    def _resolve_optional(self, state: GameState, pending: PromptOptionalEffect, action: Action, mark: int) -> Resolution:
        if action.payload.accept is None:
            raise InvalidDecision("Optional effect prompt needs a yes/no answer")
        if action.payload.accept:
            result = execute_effect(
                state,
                pending.source_card_id,
                pending.lane_index,
                pending.effect,
                pending.context,
                prompt_optional=False,
            )
            return Resolution(result.new_state, executed=result.executed)

        actor = pending.actor
        state = log(state, actor, f"{actor.display_name} skips the optional effect.")
        follow_up = process_conditional(pending.effect, False)
        if follow_up is not None:
            context = chain_context(state, pending.context)
            state = run_or_queue(state, pending.source_card_id, pending.lane_index, follow_up, context, mark)
        return Resolution(state, executed=False)

    def _resolve_custom_choice(self, state: GameState, pending: CustomChoice, action: Action, mark: int) -> Resolution:
        index = self._option_pick(pending, action, len(pending.options))
        result = execute_effect(state, pending.source_card_id, pending.lane_index, pending.options[index], pending.context)
        return Resolution(result.new_state, executed=result.executed)

    def _resolve_rearrange(
        self,
        state: GameState,
        pending: PromptRearrangeProtocols,
        action: Action,
        mark: int,
    ) -> Resolution:
        new_order = action.payload.protocol_order or []
        current = state.get(pending.target).protocols
        try:
            validate_protocol_order(current, new_order, pending.disallowed_protocol, pending.disallowed_lane_index)
        except ProtocolOrderError as e:
            raise InvalidDecision(str(e)) from e
        state = refresh_values(apply_protocol_order(state, pending.actor, pending.target, new_order))
        if pending.resume is not None:
            state = phases.resume_after_control(state, pending.actor, pending.resume)
        return Resolution(state)

    def _resolve_swap(self, state: GameState, pending: PromptSwapProtocols, action: Action, mark: int) -> Resolution:
        lanes = action.payload.lane_indices or []
        if len(lanes) != 2 or lanes[0] == lanes[1] or not all(0 <= lane < 3 for lane in lanes):
            raise InvalidDecision("Swap needs two different lanes")
        current = state.get(pending.target).protocols
        new_order = swapped_order(current, lanes[0], lanes[1])
        try:
            validate_protocol_order(current, new_order, pending.disallowed_protocol, pending.disallowed_lane_index)
        except ProtocolOrderError as e:
            raise InvalidDecision(str(e)) from e
        return Resolution(refresh_values(apply_protocol_order(state, pending.actor, pending.target, new_order)))

    def _resolve_phase_effect(self, state: GameState, pending: SelectPhaseEffect, action: Action, mark: int) -> Resolution:
        index = self._option_pick(pending, action, len(pending.candidates))
        trigger = EffectTrigger(pending.phase)
        return Resolution(run_phase_effect(state, pending.candidates[index], trigger))

    def _resolve_control(self, state: GameState, pending: PromptUseControlMechanic, action: Action, mark: int) -> Resolution:
        if action.payload.accept is None:
            raise InvalidDecision("Control prompt needs a yes/no answer")
        actor = pending.actor
        if not action.payload.accept:
            return Resolution(phases.resume_after_control(state, actor, pending.resume), executed=False)

        check = can_rearrange_protocols(state)
        if not check.allowed:
            state = log(state, actor, check.reason)
            return Resolution(phases.resume_after_control(state, actor, pending.resume), executed=False)

        target = actor if action.payload.params.get("target") == "self" else actor.other
        state = state._copy_with(control_card_holder=None)
        state = log(state, actor, f"{actor.display_name} uses the Control Component.")
        rearrange = PromptRearrangeProtocols(actor=actor, target=target, resume=pending.resume)
        return Resolution(install_decision(state, rearrange, mark), continued=True)

    def _resolve_compile(self, state: GameState, pending: SelectLaneForCompile, action: Action, mark: int) -> Resolution:
        lane_index = self._lane_pick(state, pending, action)
        return Resolution(phases.compile_lane(state, pending.actor, lane_index))


def resolve_decision(state: GameState, action: Action) -> GameState:
    """Convenience function to answer the open decision."""
    return DecisionResolver().resolve(state, action)
