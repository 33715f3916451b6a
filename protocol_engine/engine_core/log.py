"""
Game log helpers.

The game log is part of GameState: an append-only tuple of LogEntry.
Nested chained effects are grouped under their root trigger through the
indent level; the source card and phase tags annotate which trigger
produced an entry.
"""

from __future__ import annotations

from .state import GameState, LogEntry, Player


def log(state: GameState, player: Player, message: str) -> GameState:
    """Append a log entry using the current indent/source/phase context."""
    entry = LogEntry(
        player=player,
        message=message,
        indent_level=state.log_indent,
        source_card=state.log_source,
        phase=state.log_phase,
    )
    return state._copy_with(log=state.log + (entry,))


def set_log_source(state: GameState, source_card: str | None) -> GameState:
    return state._copy_with(log_source=source_card)


def set_log_phase(state: GameState, phase: str | None) -> GameState:
    return state._copy_with(log_phase=phase)


def clear_log_context(state: GameState) -> GameState:
    """Reset indent/source/phase before logging a non-effect action."""
    return state._copy_with(log_indent=0, log_source=None, log_phase=None)


def entries_since(before: GameState, after: GameState) -> list[str]:
    """Messages appended between two snapshots of the same match."""
    return [entry.message for entry in after.log[len(before.log):]]
