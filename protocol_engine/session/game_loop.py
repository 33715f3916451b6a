"""
Game Loop - Drives a match with bots.

The loop:
1. Ask the engine who owes input (turn player or decision actor)
2. If that side has a policy, let it decide
3. Apply the decision through the reducer
4. Repeat until a winner, a human's move, or the step limit

The engine itself never waits: every call returns the next settled state.
The loop is just the caller that keeps feeding it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import TYPE_CHECKING

from ..engine_core.choices import side_to_move
from ..engine_core.reducer import Reducer
from ..engine_core.state import GameState, Player

if TYPE_CHECKING:
    from ..bots import BotPolicy
    from ..engine_core.action import Action, ActionResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 5000


class LoopState(Enum):
    """State of the game loop."""
    RUNNING = "running"
    WAITING_HUMAN = "waiting_human"
    GAME_OVER = "game_over"
    STEP_LIMIT = "step_limit"
    ERROR = "error"


@dataclass
class LoopResult:
    """
    Result of running the loop.

    Contains the final state, what the bots did and why the loop stopped.
    """
    loop_state: LoopState
    state: GameState
    steps: int = 0

    # One line per applied action, "Player: play_card"
    bot_actions: list[str] = field(default_factory=list)

    errors: list[str] = field(default_factory=list)

    # Game over info
    winner: Player | None = None


class GameLoop:
    """
    The match driver.

    Usage:
        loop = GameLoop(state, {Player.OPPONENT: RandomPolicy(seed=1)})
        result = loop.run()

        if result.loop_state is LoopState.WAITING_HUMAN:
            # Show loop.state to the human, then
            loop.submit(human_action)
            result = loop.run()
    """

    def __init__(
        self,
        state: GameState,
        policies: dict[Player, BotPolicy],
        reducer: Reducer | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.state = state
        self.policies = dict(policies)
        self.reducer = reducer or Reducer()
        self.max_steps = max_steps
        self.steps = 0

    def submit(self, action: Action) -> ActionResult:
        """Apply an externally chosen action; the state only advances on success."""
        result = self.reducer.apply(self.state, action)
        if result.success:
            self.state = result.new_state
            self.steps += 1
        return result

    def step(self) -> tuple[LoopState, str | None]:
        """
        Let the bot that owes input make one move.

        Returns the loop state after the move and a description of it.
        """
        if self.state.winner is not None:
            return LoopState.GAME_OVER, None

        side = side_to_move(self.state)
        if side is None:
            return LoopState.ERROR, "Engine is not waiting on anyone"

        policy = self.policies.get(side)
        if policy is None:
            return LoopState.WAITING_HUMAN, None

        try:
            decision = policy.decide(self.state)
        except ValueError as e:
            return LoopState.ERROR, f"{side.display_name}: {e}"
        result = self.submit(decision.action)
        if not result.success:
            # Policies pick from the legal list, so this is an engine defect
            logger.error("%s submitted a rejected action: %s", policy.get_name(), result.error)
            return LoopState.ERROR, f"{side.display_name}: {result.error} ({result.error_code})"

        description = f"{side.display_name}: {decision.action.action_type.value}"
        logger.debug("Step %d %s", self.steps, description)
        if self.state.winner is not None:
            return LoopState.GAME_OVER, description
        return LoopState.RUNNING, description

    def run(self) -> LoopResult:
        """Run bot moves until the game ends, a human must act, or the step limit."""
        bot_actions: list[str] = []
        errors: list[str] = []
        loop_state = LoopState.RUNNING

        while loop_state is LoopState.RUNNING:
            if self.steps >= self.max_steps:
                loop_state = LoopState.STEP_LIMIT
                break
            loop_state, description = self.step()
            if loop_state is LoopState.ERROR:
                errors.append(description or "Unknown error")
            elif description:
                bot_actions.append(description)

        return LoopResult(
            loop_state=loop_state,
            state=self.state,
            steps=self.steps,
            bot_actions=bot_actions,
            errors=errors,
            winner=self.state.winner,
        )
