"""
Bots module - AI players.

Provides:
- BotPolicy: Interface for bot decision-making
- RandomPolicy: Seeded uniform choice among legal moves
- FirstLegalPolicy: Deterministic baseline
"""

from .policy import BotDecision, BotPolicy, FirstLegalPolicy, RandomPolicy

POLICIES = {
    "random": RandomPolicy,
    "first": FirstLegalPolicy,
}

__all__ = [
    "BotDecision",
    "BotPolicy",
    "FirstLegalPolicy",
    "RandomPolicy",
    "POLICIES",
]
