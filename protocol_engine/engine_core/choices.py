"""
Valid choices for the open decision, and the legal actions of a state.

The resolver re-validates every submitted choice against these queries,
a dequeued decision is dropped when it has none left, and bot policies
pick from legal_actions().
"""

from __future__ import annotations
from itertools import combinations, permutations

from ..config import HAND_SIZE, LANE_COUNT
from .action import Action, ActionType
from .executors.flip import flippable
from .executors.protocols import ProtocolOrderError, swapped_order, validate_protocol_order
from .executors.shift import valid_destinations
from .lane_values import calculate_compilable_lanes
from .passive_rules import can_play_card
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
from .state import GamePhase, GameState, Player
from .targeting import Scope, TargetInfo, find_card_on_board, find_targets, lanes_with_targets


# =============================================================================
# Board targets
# =============================================================================

def _narrow_to_allowed(targets: list[TargetInfo], allowed_ids: tuple[str, ...] | None) -> list[TargetInfo]:
    """Keep the originally tied cards, unless none of them is left."""
    if allowed_ids is None:
        return targets
    narrowed = [target for target in targets if target.card_id in allowed_ids]
    return narrowed or targets


def _selection_targets(state: GameState, pending: SelectCardsToDelete | SelectCardToFlip) -> list[TargetInfo]:
    lane_indices = pending.lane_indices
    if pending.current_lane_index is not None:
        lane_indices = (pending.current_lane_index,)
    targets = find_targets(
        state,
        pending.target_filter,
        pending.card_owner,
        scope=pending.scope,
        source_card_id=pending.source_card_id,
        source_lane_index=pending.source_lane_index,
        lane_indices=lane_indices,
        disallowed_ids=pending.disallowed_ids,
        protocol_matching=getattr(pending, "protocol_matching", None),
    )
    return _narrow_to_allowed(targets, pending.allowed_ids)


def valid_card_targets(state: GameState, pending: PendingAction) -> list[TargetInfo]:
    """Board cards the open decision may pick (empty for non-board decisions)."""
    if isinstance(pending, SelectCardsToDelete):
        return _selection_targets(state, pending)
    if isinstance(pending, SelectCardToFlip):
        return flippable(state, _selection_targets(state, pending))
    if isinstance(pending, SelectCardFromOtherLanesToDelete):
        return [
            target for target in find_targets(
                state,
                pending.target_filter,
                pending.card_owner,
                scope=Scope.OTHER_LANES,
                source_lane_index=pending.source_lane_index,
                disallowed_ids=pending.disallowed_ids,
            )
            if target.lane_index not in pending.lanes_selected
        ]
    if isinstance(pending, SelectCardToShift):
        return [
            target for target in find_targets(
                state,
                pending.target_filter,
                pending.card_owner,
                scope=pending.scope,
                source_card_id=pending.source_card_id,
                source_lane_index=pending.source_lane_index,
                disallowed_ids=pending.disallowed_ids,
            )
            if valid_destinations(state, target, pending.destination_restriction, pending.restriction_lane_index)
        ]
    if isinstance(pending, SelectCardToReturn):
        return find_targets(
            state,
            pending.target_filter,
            pending.card_owner,
            lane_indices=pending.lane_indices,
            disallowed_ids=pending.disallowed_ids,
        )
    if isinstance(pending, SelectBoardCardToReveal):
        return find_targets(state, pending.target_filter, pending.card_owner, disallowed_ids=pending.disallowed_ids)
    return []


def valid_lanes(state: GameState, pending: PendingAction) -> list[int]:
    """Lanes the open decision may pick (empty for non-lane decisions)."""
    if isinstance(pending, SelectLaneForDelete):
        targets = find_targets(state, pending.target_filter, pending.card_owner, disallowed_ids=pending.disallowed_ids)
        return [lane for lane in lanes_with_targets(targets) if lane in pending.valid_lanes]
    if isinstance(pending, SelectLaneForReturn):
        targets = find_targets(state, pending.target_filter, pending.card_owner)
        return [lane for lane in lanes_with_targets(targets) if lane in pending.valid_lanes]
    if isinstance(pending, SelectLaneForShift):
        info = find_card_on_board(state, pending.card_to_shift_id)
        if info is None:
            return []
        return [lane for lane in pending.valid_lanes if lane in valid_destinations(state, info)]
    if isinstance(pending, SelectLaneForPlay):
        face_up = pending.face_down is False
        protocol = ""
        if pending.card_in_hand_id is not None:
            card = state.get(pending.actor).find_in_hand(pending.card_in_hand_id)
            if card is None:
                return []
            protocol = card.protocol
        return [
            lane for lane in pending.valid_lanes
            if can_play_card(state, pending.actor, lane, face_up, protocol, check_protocol=bool(protocol)).allowed
        ]
    if isinstance(pending, SelectLaneForCompile):
        compilable = calculate_compilable_lanes(state, pending.actor)
        return [lane for lane in pending.valid_lanes if lane in compilable]
    return []


def face_options(face_down: bool | None) -> list[bool]:
    """Face-up values allowed by a play decision."""
    if face_down is None:
        return [True, False]
    return [not face_down]


def hand_plays(state: GameState, pending: SelectCardFromHandToPlay) -> list[tuple[str, int, bool]]:
    """Legal (card_id, lane_index, face_up) combinations for an effect-driven play."""
    plays = []
    for card in state.get(pending.actor).hand:
        for lane in pending.valid_lanes:
            for face_up in face_options(pending.face_down):
                if can_play_card(state, pending.actor, lane, face_up, card.protocol).allowed:
                    plays.append((card.id, lane, face_up))
    return plays


def has_valid_choices(state: GameState, pending: PendingAction) -> bool:
    """False when a (dequeued) decision can no longer be answered."""
    if isinstance(pending, (
        SelectCardsToDelete, SelectCardToFlip, SelectCardFromOtherLanesToDelete,
        SelectCardToShift, SelectCardToReturn, SelectBoardCardToReveal,
    )):
        return bool(valid_card_targets(state, pending))
    if isinstance(pending, (
        SelectLaneForDelete, SelectLaneForReturn, SelectLaneForShift, SelectLaneForPlay, SelectLaneForCompile,
    )):
        return bool(valid_lanes(state, pending))
    if isinstance(pending, (Discard, SelectCardFromHandToReveal, SelectCardFromHandToGive)):
        return bool(state.get(pending.actor).hand)
    if isinstance(pending, SelectCardFromOpponentHandToTake):
        return bool(state.get(pending.actor.other).hand)
    if isinstance(pending, SelectCardFromTrashToReveal):
        return bool(state.get(pending.actor).discard)
    if isinstance(pending, SelectCardFromHandToPlay):
        return bool(hand_plays(state, pending))
    if isinstance(pending, PromptOptionalEffect):
        return find_card_on_board(state, pending.source_card_id) is not None
    if isinstance(pending, SelectPhaseEffect):
        return any(find_card_on_board(state, ref.card_id) is not None for ref in pending.candidates)
    return True


def legal_protocol_orders(state: GameState, pending: PromptRearrangeProtocols) -> list[list[str]]:
    current = state.get(pending.target).protocols
    orders = []
    for order in permutations(current):
        try:
            validate_protocol_order(current, order, pending.disallowed_protocol, pending.disallowed_lane_index)
        except ProtocolOrderError:
            continue
        orders.append(list(order))
    return orders


def legal_swaps(state: GameState, pending: PromptSwapProtocols) -> list[tuple[int, int]]:
    current = state.get(pending.target).protocols
    swaps = []
    for first, second in combinations(range(LANE_COUNT), 2):
        try:
            validate_protocol_order(
                current,
                swapped_order(current, first, second),
                pending.disallowed_protocol,
                pending.disallowed_lane_index,
            )
        except ProtocolOrderError:
            continue
        swaps.append((first, second))
    return swaps


# =============================================================================
# Enumeration
# =============================================================================

def _discard_actions(state: GameState, pending: Discard) -> list[Action]:
    hand_ids = [card.id for card in state.get(pending.actor).hand]
    if pending.variable_count:
        sizes = range(max(1, pending.count), len(hand_ids) + 1)
    elif pending.up_to:
        sizes = range(1, min(pending.count, len(hand_ids)) + 1)
    else:
        sizes = [min(pending.count, len(hand_ids))]
    actions = [
        Action.choose_cards(pending.actor, list(picked))
        for size in sizes
        for picked in combinations(hand_ids, size)
    ]
    if pending.up_to:
        actions.append(Action.skip(pending.actor))
    return actions


def decision_actions(state: GameState) -> list[Action]:
    """Every legal answer to the open decision."""
    pending = state.action_required
    if pending is None:
        return []
    actor = pending.actor
    actions: list[Action] = []

    targets = valid_card_targets(state, pending)
    if targets:
        actions = [Action.choose_card(actor, target.card_id) for target in targets]
    elif isinstance(pending, SelectLaneForCompile):
        actions = [Action.compile(actor, lane) for lane in valid_lanes(state, pending)]
    elif isinstance(pending, (SelectLaneForDelete, SelectLaneForReturn, SelectLaneForShift, SelectLaneForPlay)):
        actions = [Action.choose_lane(actor, lane) for lane in valid_lanes(state, pending)]
    elif isinstance(pending, Discard):
        actions = _discard_actions(state, pending)
    elif isinstance(pending, (SelectCardFromHandToReveal, SelectCardFromHandToGive)):
        actions = [Action.choose_card(actor, card.id) for card in state.get(actor).hand]
    elif isinstance(pending, SelectCardFromOpponentHandToTake):
        actions = [Action.choose_card(actor, card.id) for card in state.get(actor.other).hand]
    elif isinstance(pending, SelectCardFromTrashToReveal):
        actions = [Action.choose_option(actor, index) for index in range(len(state.get(actor).discard))]
    elif isinstance(pending, SelectCardFromHandToPlay):
        actions = [
            Action.play_from_hand(actor, card_id, lane, face_up)
            for card_id, lane, face_up in hand_plays(state, pending)
        ]
    elif isinstance(pending, (PromptOptionalEffect, PromptDiscardRevealedCard, PromptUseControlMechanic)):
        actions = [Action.answer(actor, True), Action.answer(actor, False)]
    elif isinstance(pending, CustomChoice):
        actions = [Action.choose_option(actor, index) for index in range(len(pending.options))]
    elif isinstance(pending, PromptRearrangeProtocols):
        actions = [Action.rearrange(actor, order) for order in legal_protocol_orders(state, pending)]
    elif isinstance(pending, PromptSwapProtocols):
        actions = [Action.swap(actor, first, second) for first, second in legal_swaps(state, pending)]
    elif isinstance(pending, SelectPhaseEffect):
        actions = [Action.choose_option(actor, index) for index in range(len(pending.candidates))]

    up_to = getattr(pending, "up_to", False)
    if (pending.optional or up_to) and not any(a.action_type is ActionType.SKIP for a in actions):
        actions.append(Action.skip(actor))
    return actions


def action_phase_actions(state: GameState) -> list[Action]:
    """Plays, refresh and compile available to the turn player."""
    side = state.turn
    actions = []
    for card in state.get(side).hand:
        for lane in range(LANE_COUNT):
            for face_up in (True, False):
                if can_play_card(state, side, lane, face_up, card.protocol).allowed:
                    actions.append(Action.play(side, card.id, lane, face_up))
    if len(state.get(side).hand) < HAND_SIZE:
        actions.append(Action.refresh(side))
    return actions


def legal_actions(state: GameState) -> list[Action]:
    """Everything the side to move may submit right now."""
    if state.winner is not None:
        return []
    if state.action_required is not None:
        return decision_actions(state)
    if state.phase is GamePhase.ACTION and not state.action_taken:
        return action_phase_actions(state)
    return []


def side_to_move(state: GameState) -> Player | None:
    """Who owes the next input, if anyone."""
    if state.winner is not None:
        return None
    if state.action_required is not None:
        return state.action_required.actor
    if state.phase is GamePhase.ACTION and not state.action_taken:
        return state.turn
    return None


legal_decisions = decision_actions
