"""
Session module - Match driving.

Provides:
- GameLoop: Runs bots against the engine until a human must act
- LoopResult / LoopState: What the loop did and why it stopped
"""

from .game_loop import DEFAULT_MAX_STEPS, GameLoop, LoopResult, LoopState

__all__ = [
    "DEFAULT_MAX_STEPS",
    "GameLoop",
    "LoopResult",
    "LoopState",
]
