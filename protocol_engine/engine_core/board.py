"""
Board primitives - the only functions that move cards between zones.

They apply one mutation, keep ids unique and update statistics. They do
not log the effect that caused the move and never fire triggers; callers
decide about uncover/cover/reactive dispatch.
"""

from __future__ import annotations

from .log import log
from .state import Card, GameState, PlayedCard, Player
from .targeting import TargetInfo, find_card_on_board


def card_label(card: PlayedCard) -> str:
    """How a board card appears in the game log."""
    return card.name if card.is_face_up else "a face-down card"


def owner_label(side: Player) -> str:
    return "Player's" if side is Player.PLAYER else "Opponent's"


def draw_cards(
    state: GameState,
    side: Player,
    count: int,
    deck_owner: Player | None = None,
) -> tuple[GameState, list[PlayedCard]]:
    """
    Draw up to `count` cards into side's hand.

    Cards come from deck_owner's deck (default: side's own). When that
    deck runs out, its trash is shuffled into a new deck. The count is
    clamped to what is available.
    """
    deck_owner = deck_owner or side
    deck = list(state.get(deck_owner).deck)
    trash = list(state.get(deck_owner).discard)
    templates: list[Card] = []
    for _ in range(max(0, count)):
        if not deck:
            if not trash:
                break
            rng, state = state.next_random()
            deck, trash = trash, []
            rng.shuffle(deck)
            state = log(state, deck_owner, f"{deck_owner.display_name} shuffles their trash into their deck.")
        templates.append(deck.pop(0))

    drawn, state = state.instantiate(templates, face_up=True)
    state = state.update_player(deck_owner, deck=tuple(deck), discard=tuple(trash))
    player_state = state.get(side)
    player_state = player_state.with_hand(player_state.hand + tuple(drawn))
    if drawn:
        player_state = player_state.with_stats(cards_drawn=len(drawn))
        state = state.with_hint("draw", owner=side)
    return state.with_player(side, player_state), drawn


def remove_from_board(state: GameState, card_id: str) -> tuple[GameState, TargetInfo | None]:
    """Take a card out of its stack (no zone destination)."""
    info = find_card_on_board(state, card_id)
    if info is None:
        return state, None
    lane = state.get(info.owner).lanes[info.lane_index]
    remaining = lane[:info.stack_index] + lane[info.stack_index + 1:]
    player_state = state.get(info.owner).with_lane(info.lane_index, remaining)
    return state.with_player(info.owner, player_state), info


def place_on_board(state: GameState, side: Player, lane_index: int, card: PlayedCard) -> GameState:
    """Put a card on top of one of side's stacks."""
    player_state = state.get(side)
    lane = player_state.lanes[lane_index]
    return state.with_player(side, player_state.with_lane(lane_index, lane + (card,)))


def delete_card(state: GameState, card_id: str, deleter: Player, count_stat: bool = True) -> tuple[GameState, TargetInfo | None]:
    """Move a board card to its owner's trash."""
    state, info = remove_from_board(state, card_id)
    if info is None:
        return state, None
    owner_state = state.get(info.owner)
    state = state.with_player(info.owner, owner_state._copy_with(discard=owner_state.discard + (info.card.to_template(),)))
    if count_stat:
        state = state.with_player(deleter, state.get(deleter).with_stats(cards_deleted=1))
    return state.with_hint("delete", card_id=card_id, owner=info.owner, lane_index=info.lane_index), info


def return_to_hand(state: GameState, card_id: str, destination: Player) -> tuple[GameState, TargetInfo | None]:
    """Send a board card to a hand; it re-enters with a fresh identity."""
    state, info = remove_from_board(state, card_id)
    if info is None:
        return state, None
    (returned,), state = state.instantiate([info.card.to_template()], face_up=True)
    hand_owner = state.get(destination)
    state = state.with_player(destination, hand_owner.with_hand(hand_owner.hand + (returned,)))
    return state.with_hint("return", card_id=card_id, owner=info.owner, lane_index=info.lane_index), info


def discard_from_hand(state: GameState, side: Player, card_ids: list[str]) -> tuple[GameState, list[PlayedCard]]:
    """Move hand cards to side's trash (unknown ids are ignored)."""
    player_state = state.get(side)
    wanted = set(card_ids)
    discarded = [card for card in player_state.hand if card.id in wanted]
    if not discarded:
        return state, []
    kept = tuple(card for card in player_state.hand if card.id not in wanted)
    player_state = player_state._copy_with(
        hand=kept,
        discard=player_state.discard + tuple(card.to_template() for card in discarded),
    ).with_stats(cards_discarded=len(discarded))
    return state.with_player(side, player_state).with_hint("discard", owner=side), discarded


def flip_on_board(state: GameState, card_id: str) -> tuple[GameState, TargetInfo | None]:
    """Toggle a board card's face; returns its location after the flip."""
    info = find_card_on_board(state, card_id)
    if info is None:
        return state, None
    lane = list(state.get(info.owner).lanes[info.lane_index])
    flipped = lane[info.stack_index].flipped()
    lane[info.stack_index] = flipped
    player_state = state.get(info.owner).with_lane(info.lane_index, tuple(lane))
    new_info = TargetInfo(
        card=flipped,
        owner=info.owner,
        lane_index=info.lane_index,
        stack_index=info.stack_index,
        is_uncovered=info.is_uncovered,
    )
    state = state.with_player(info.owner, player_state)
    return state.with_hint("flip", card_id=card_id, owner=info.owner, lane_index=info.lane_index), new_info


def move_card(state: GameState, card_id: str, to_lane: int) -> tuple[GameState, TargetInfo | None]:
    """Shift a card to the top of another stack on the same side."""
    state, info = remove_from_board(state, card_id)
    if info is None:
        return state, None
    state = place_on_board(state, info.owner, to_lane, info.card)
    return state.with_hint("shift", card_id=card_id, owner=info.owner, lane_index=to_lane), info


def take_from_hand(state: GameState, giver: Player, card_id: str, receiver: Player) -> tuple[GameState, PlayedCard | None]:
    """Move a hand card from one hand to the other, keeping its identity."""
    card = state.get(giver).find_in_hand(card_id)
    if card is None:
        return state, None
    giver_state = state.get(giver)
    state = state.with_player(giver, giver_state.with_hand(tuple(c for c in giver_state.hand if c.id != card_id)))
    receiver_state = state.get(receiver)
    state = state.with_player(receiver, receiver_state.with_hand(receiver_state.hand + (card,)))
    return state, card


def shuffle_trash_into_deck(state: GameState, side: Player) -> GameState:
    rng, state = state.next_random()
    player_state = state.get(side)
    deck = list(player_state.deck) + list(player_state.discard)
    rng.shuffle(deck)
    return state.with_player(side, player_state._copy_with(deck=tuple(deck), discard=()))


def shuffle_deck(state: GameState, side: Player) -> GameState:
    rng, state = state.next_random()
    deck = list(state.get(side).deck)
    rng.shuffle(deck)
    return state.update_player(side, deck=tuple(deck))


def reveal_on_board(state: GameState, card_id: str) -> tuple[GameState, TargetInfo | None]:
    """Mark a board card as revealed; a face-down card stays face-down."""
    info = find_card_on_board(state, card_id)
    if info is None:
        return state, None
    lane = list(state.get(info.owner).lanes[info.lane_index])
    lane[info.stack_index] = lane[info.stack_index].revealed()
    state = state.with_player(info.owner, state.get(info.owner).with_lane(info.lane_index, tuple(lane)))
    return state.with_hint("reveal", card_id=card_id, owner=info.owner, lane_index=info.lane_index), info
