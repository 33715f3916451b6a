"""
Match Setup - Creates the initial game state.

This module handles:
- Building each side's deck from its three protocols
- Shuffling through the state's seeded random source
- Dealing the opening hands
- Seeding the game log

Setup is deterministic: the same protocols, starting player and seed
always produce the same state.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Iterable

from ..config import HAND_SIZE, LANE_COUNT
from .executors.base import refresh_values
from .log import log
from .phases import continue_game
from .state import GameState, Player, PlayerState

if TYPE_CHECKING:
    from ..spec_schema.card_catalog import CardCatalog


def _check_protocols(protocols: list[str], catalog: CardCatalog, side: Player) -> None:
    if len(protocols) != LANE_COUNT:
        raise ValueError(f"{side.display_name} needs {LANE_COUNT} protocols, got {len(protocols)}")
    if len(set(protocols)) != len(protocols):
        raise ValueError(f"{side.display_name} protocols must be distinct: {protocols}")
    for protocol in protocols:
        if protocol not in catalog:
            raise ValueError(f"Unknown protocol: {protocol}")


def _deal(state: GameState, side: Player, catalog: CardCatalog) -> GameState:
    """Shuffle side's deck and move the opening hand into play."""
    player_state = state.get(side)
    deck = catalog.deck_for(player_state.protocols)
    rng, state = state.next_random()
    rng.shuffle(deck)
    hand, state = state.instantiate(deck[:HAND_SIZE])
    return state.update_player(side, deck=tuple(deck[HAND_SIZE:]), hand=tuple(hand))


def create_initial_state(
    player_protocols: Iterable[str],
    opponent_protocols: Iterable[str],
    use_control_mechanic: bool = False,
    starting_player: Player = Player.PLAYER,
    catalog: CardCatalog | None = None,
    seed: int = 0,
    automated: Iterable[Player] = frozenset(),
) -> GameState:
    """
    Set up a new match.

    Args:
        player_protocols: The player's three protocols, in lane order
        opponent_protocols: The opponent's three protocols, in lane order
        use_control_mechanic: Enable the control component
        starting_player: Who takes the first turn
        catalog: Card source (the built-in catalog if not provided)
        seed: Seed for every shuffle and random pick of the match
        automated: Sides driven by an AI

    Returns:
        A state waiting for the starting player's first action

    Raises:
        ValueError: if a side does not have three distinct known protocols
    """
    if catalog is None:
        from ..protocols import create_default_catalog
        catalog = create_default_catalog()

    player_protocols = list(player_protocols)
    opponent_protocols = list(opponent_protocols)
    _check_protocols(player_protocols, catalog, Player.PLAYER)
    _check_protocols(opponent_protocols, catalog, Player.OPPONENT)

    state = GameState(
        player=PlayerState(protocols=tuple(player_protocols)),
        opponent=PlayerState(protocols=tuple(opponent_protocols)),
        turn=starting_player,
        use_control_mechanic=use_control_mechanic,
        automated=frozenset(automated),
        random_seed=seed,
    )
    for side in Player:
        state = _deal(state, side, catalog)

    state = log(state, Player.PLAYER, "Game Started.")
    state = log(state, Player.PLAYER, f"Player protocols: {', '.join(player_protocols)}.")
    state = log(state, Player.OPPONENT, f"Opponent protocols: {', '.join(opponent_protocols)}.")
    state = log(state, starting_player, f"{starting_player.display_name} goes first.")

    return continue_game(refresh_values(state))
