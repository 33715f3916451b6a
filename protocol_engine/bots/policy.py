"""
Bot Policy - Interface for bot decision-making.

A BotPolicy takes a game state and returns a decision.
Decisions cover both kinds of input the engine asks for:
- The turn player's action (play a card or refresh)
- Answers to the open pending decision (targets, lanes, prompts,
  compile choices)

Policies only ever pick from the engine's own enumeration of legal
moves, so a bot cannot submit something the reducer would reject.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import random
from typing import TYPE_CHECKING, Any

from ..engine_core.choices import legal_actions, legal_decisions

if TYPE_CHECKING:
    from ..engine_core.action import Action
    from ..engine_core.state import GameState


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    Contains:
    - The action to submit
    - Explanation (for UI/debugging)
    - Confidence in the decision
    """
    action: Action
    explanation: str = ""
    confidence: float = 1.0

    # Evaluation details (for debugging)
    evaluated_actions: int = 0
    evaluation_details: dict[str, Any] = field(default_factory=dict)


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    A policy defines how a bot selects actions.
    Implementations can range from simple baselines
    to search algorithms.
    """

    @abstractmethod
    def select_action(self, state: GameState, legal: list[Action]) -> BotDecision:
        """
        Select the turn's action.

        Args:
            state: Current game state (action phase, nothing pending)
            legal: Plays and refresh available to the turn player

        Returns:
            BotDecision with the selected action
        """

    @abstractmethod
    def select_decision(self, state: GameState, legal: list[Action]) -> BotDecision:
        """
        Answer the open pending decision.

        Args:
            state: Current game state with action_required set
            legal: Every legal answer, including skip where allowed

        Returns:
            BotDecision with the selected answer
        """

    def decide(self, state: GameState) -> BotDecision:
        """Pick the next input for whichever kind the engine is waiting on."""
        if state.action_required is not None:
            legal = legal_decisions(state)
            if not legal:
                raise ValueError(f"No legal answer to {state.action_required.type}")
            return self.select_decision(state, legal)
        legal = legal_actions(state)
        if not legal:
            raise ValueError("No legal actions available")
        return self.select_action(state, legal)

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Random policy - selects uniformly among legal moves.

    Used for:
    - Testing
    - Baseline comparison
    - Soak runs that explore many game states
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def _pick(self, legal: list[Action]) -> BotDecision:
        return BotDecision(
            action=self.rng.choice(legal),
            explanation="Selected randomly",
            confidence=1.0 / len(legal),
            evaluated_actions=len(legal),
        )

    def select_action(self, state: GameState, legal: list[Action]) -> BotDecision:
        return self._pick(legal)

    def select_decision(self, state: GameState, legal: list[Action]) -> BotDecision:
        return self._pick(legal)


class FirstLegalPolicy(BotPolicy):
    """
    First-legal policy - always selects the first legal move.

    Used for:
    - Deterministic testing
    - Baseline comparison
    """

    def select_action(self, state: GameState, legal: list[Action]) -> BotDecision:
        return BotDecision(
            action=legal[0],
            explanation="Selected first legal action",
            evaluated_actions=1,
        )

    def select_decision(self, state: GameState, legal: list[Action]) -> BotDecision:
        return BotDecision(
            action=legal[0],
            explanation="Selected first legal answer",
            evaluated_actions=1,
        )
