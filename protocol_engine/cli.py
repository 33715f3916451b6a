"""
Protocol Engine CLI - Command-line interface for the engine.

Usage:
    protocol-engine simulate [--seed N]      Run a bot vs bot match
    protocol-engine catalog [--verbose]      List the built-in protocols
    protocol-engine validate [catalog.json]  Validate a card catalog

Environment defaults come from EngineConfig.from_env().
"""

import argparse
import json
import logging
import random
import sys

from .config import LANE_COUNT, EngineConfig


def main(argv=None):
    """Main CLI entry point."""
    config = EngineConfig.from_env()

    parser = argparse.ArgumentParser(
        description="Protocol Engine - two-player protocol card game rules engine",
        prog="protocol-engine",
    )
    parser.add_argument("--log-level", default=config.log_level, help="Diagnostic log level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Run a bot vs bot match")
    simulate_parser.add_argument("--seed", type=int, default=config.random_seed, help="Match seed")
    simulate_parser.add_argument("--player", help="Comma-separated player protocols")
    simulate_parser.add_argument("--opponent", help="Comma-separated opponent protocols")
    simulate_parser.add_argument("--policy", choices=["random", "first"], default="random")
    simulate_parser.add_argument("--control", action="store_true", default=config.use_control_mechanic,
                                 help="Use the control mechanic")
    simulate_parser.add_argument("--starting-player", choices=["player", "opponent"],
                                 default=config.starting_player)
    simulate_parser.add_argument("--max-steps", type=int, default=5000)
    simulate_parser.add_argument("--show-log", action="store_true", help="Print the game log")

    # Catalog command
    catalog_parser = subparsers.add_parser("catalog", help="List the built-in protocols")
    catalog_parser.add_argument("--verbose", "-v", action="store_true", help="Show card texts")
    catalog_parser.add_argument("--json", action="store_true", help="Dump the catalog as JSON")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a card catalog")
    validate_parser.add_argument("catalog_file", nargs="?", help="JSON catalog (built-in if omitted)")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "simulate":
        return cmd_simulate(args)
    elif args.command == "catalog":
        return cmd_catalog(args)
    elif args.command == "validate":
        return cmd_validate(args)
    parser.print_help()
    return 1


def _protocol_list(raw):
    return [name.strip() for name in raw.split(",") if name.strip()]


def cmd_simulate(args):
    """Run a bot vs bot match."""
    from .bots import FirstLegalPolicy, RandomPolicy
    from .engine_core import Player, create_initial_state
    from .protocols import create_default_catalog
    from .session import GameLoop, LoopState

    catalog = create_default_catalog()
    rng = random.Random(args.seed)
    picked = rng.sample(catalog.protocols(), LANE_COUNT * 2)
    player_protocols = _protocol_list(args.player) if args.player else picked[:LANE_COUNT]
    opponent_protocols = _protocol_list(args.opponent) if args.opponent else picked[LANE_COUNT:]

    try:
        state = create_initial_state(
            player_protocols,
            opponent_protocols,
            use_control_mechanic=args.control,
            starting_player=Player(args.starting_player),
            catalog=catalog,
            seed=args.seed,
            automated={Player.PLAYER, Player.OPPONENT},
        )
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.policy == "random":
        policies = {Player.PLAYER: RandomPolicy(seed=args.seed), Player.OPPONENT: RandomPolicy(seed=args.seed + 1)}
    else:
        policies = {Player.PLAYER: FirstLegalPolicy(), Player.OPPONENT: FirstLegalPolicy()}

    result = GameLoop(state, policies, max_steps=args.max_steps).run()
    final = result.state

    if args.show_log:
        for entry in final.log:
            print(f"{'  ' * entry.indent_level}[{entry.player.value}] {entry.message}")
        print()

    print(f"Player:   {', '.join(player_protocols)}")
    print(f"Opponent: {', '.join(opponent_protocols)}")
    print(f"Steps: {result.steps}  Turns: {final.turn_number}")
    for side in Player:
        player_state = final.get(side)
        lanes = "  ".join(
            f"{protocol}{'*' if compiled else ''}={value}"
            for protocol, compiled, value in zip(player_state.protocols, player_state.compiled, player_state.lane_values)
        )
        print(f"{side.display_name:<9} {lanes}")

    if result.loop_state is LoopState.GAME_OVER:
        print(f"Winner: {result.winner.display_name}")
        return 0
    if result.loop_state is LoopState.STEP_LIMIT:
        print(f"No winner after {result.steps} steps")
        return 0

    print("\nErrors:")
    for e in result.errors:
        print(f"  - {e}")
    return 1


def cmd_catalog(args):
    """List the built-in protocols."""
    from .protocols import create_default_catalog

    catalog = create_default_catalog()
    if args.json:
        print(json.dumps(catalog.to_dicts(), indent=2))
        return 0

    for protocol in catalog.protocols():
        cards = catalog.cards_for(protocol)
        print(f"{protocol} ({len(cards)} cards)")
        if not args.verbose:
            continue
        for card in cards:
            print(f"  {card.value}")
            for box in (card.top, card.middle, card.bottom):
                if box:
                    print(f"    {box}")
    return 0


def cmd_validate(args):
    """Validate a card catalog."""
    from .spec_schema import CardCatalog, validate_catalog

    if args.catalog_file:
        try:
            with open(args.catalog_file, "r", encoding="utf-8") as f:
                catalog = CardCatalog.from_dicts(json.load(f))
        except FileNotFoundError:
            print(f"Error: File not found: {args.catalog_file}")
            return 1
        except (KeyError, ValueError) as e:
            print(f"Error: Could not load catalog: {e}")
            return 1
    else:
        from .protocols import create_default_catalog
        catalog = create_default_catalog()

    result = validate_catalog(catalog)
    print(f"Cards: {len(catalog)}  Protocols: {len(catalog.protocols())}")

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("\nErrors:")
        for e in result.errors:
            print(f"  - {e}")
        return 1

    print("Catalog is valid")
    return 0


if __name__ == "__main__":
    sys.exit(main())
