"""
Protocol Engine - Effect resolution engine for a two-player protocol card game.

Cards carry data-driven rule text that triggers cascading, interruptible
effects. The engine provides:
- Immutable match state
- Target filtering over the board
- Effect executors (delete, discard, return, reveal/give, flip, shift, draw, rearrange)
- Conditional effect chains and queued decisions
- Trigger dispatch with double-fire guards
- Decision resolution and phase advancement
- Lane value calculation
"""

__version__ = "0.1.0"
