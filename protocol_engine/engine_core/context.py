"""
Effect context - who is doing what, passed by value to every executor.

`card_owner` is the implicit "you" of the card text. `actor` is whoever
performs the current action. They differ when a card says "your opponent
discards 1 card".
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum

from .state import Player


class TriggerType(Enum):
    """What caused an effect to run."""
    PLAY = "play"
    FLIP = "flip"
    UNCOVER = "uncover"
    COVER = "cover"
    START = "start"
    END = "end"
    MIDDLE = "middle"
    REACTIVE = "reactive"


@dataclass(frozen=True)
class EffectContext:
    """Context for executing one effect."""
    card_owner: Player
    actor: Player
    current_turn: Player
    trigger_type: TriggerType = TriggerType.PLAY
    source_card_id: str | None = None

    # Values carried along a chain
    discarded_count: int | None = None
    previous_hand_size: int | None = None
    referenced_card_value: int | None = None

    @property
    def opponent(self) -> Player:
        """The card owner's opponent."""
        return self.card_owner.other

    @classmethod
    def for_owner(
        cls,
        owner: Player,
        current_turn: Player,
        trigger_type: TriggerType,
        source_card_id: str | None = None,
    ) -> EffectContext:
        """Context where the owner performs their own card's effect."""
        return cls(
            card_owner=owner,
            actor=owner,
            current_turn=current_turn,
            trigger_type=trigger_type,
            source_card_id=source_card_id,
        )

    def with_actor(self, actor: Player) -> EffectContext:
        return replace(self, actor=actor)

    def with_discard(self, discarded_count: int, previous_hand_size: int) -> EffectContext:
        return replace(self, discarded_count=discarded_count, previous_hand_size=previous_hand_size)

    def with_referenced_value(self, value: int | None) -> EffectContext:
        return replace(self, referenced_card_value=value)
