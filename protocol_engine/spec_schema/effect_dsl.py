"""
Effect DSL - Declarative card effects.

Each rule-text box of a card (top, middle, bottom) holds a list of
EffectDefinitions. An effect is:
- Parameterised: `action` picks the executor, `params` configures it
- Triggered: `trigger` says when the dispatcher fires it
- Chainable: `conditional` links a follow-up that fires always ("then")
  or only when this effect executed ("if_executed")

Key design decisions:
- Params stay a plain mapping so catalogs can be loaded from JSON-like data
- Target filters are nested under "target_filter" and parsed lazily
- Factory functions keep hand-written catalogs short
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class EffectAction(Enum):
    """What an effect does."""
    # Card movement
    DELETE = "delete"
    DISCARD = "discard"
    RETURN = "return"
    SHIFT = "shift"
    FLIP = "flip"
    DRAW = "draw"
    REFRESH = "refresh"
    MUTUAL_DRAW = "mutual_draw"
    PLAY = "play"
    TAKE = "take"

    # Information
    REVEAL = "reveal"
    GIVE = "give"

    # Protocols
    REARRANGE_PROTOCOLS = "rearrange_protocols"
    SWAP_PROTOCOLS = "swap_protocols"

    # Control flow
    CHOICE = "choice"

    # Passive (never executed directly)
    PASSIVE_RULE = "passive_rule"
    VALUE_MODIFIER = "value_modifier"

    # Misc
    BLOCK_COMPILE = "block_compile"
    SHUFFLE_TRASH = "shuffle_trash"
    SHUFFLE_DECK = "shuffle_deck"


class EffectPosition(Enum):
    """Which rule-text box an effect is printed in."""
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class EffectTrigger(Enum):
    """When an effect fires."""
    ON_PLAY = "on_play"  # Middle box: played face-up, flipped face-up or uncovered
    START = "start"
    END = "end"
    ON_COVER = "on_cover"
    PASSIVE = "passive"

    # Reactive
    AFTER_DELETE = "after_delete"
    AFTER_DISCARD = "after_discard"
    AFTER_OPPONENT_DISCARD = "after_opponent_discard"
    AFTER_DRAW = "after_draw"
    AFTER_OPPONENT_DRAW = "after_opponent_draw"
    AFTER_FLIP = "after_flip"
    AFTER_SHIFT = "after_shift"
    AFTER_PLAY = "after_play"
    AFTER_REFRESH = "after_refresh"
    AFTER_COMPILE = "after_compile"
    AFTER_OPPONENT_COMPILE = "after_opponent_compile"
    ON_FLIP = "on_flip"
    ON_COVER_OR_FLIP = "on_cover_or_flip"


REACTIVE_TRIGGERS = frozenset({
    EffectTrigger.AFTER_DELETE,
    EffectTrigger.AFTER_DISCARD,
    EffectTrigger.AFTER_OPPONENT_DISCARD,
    EffectTrigger.AFTER_DRAW,
    EffectTrigger.AFTER_OPPONENT_DRAW,
    EffectTrigger.AFTER_FLIP,
    EffectTrigger.AFTER_SHIFT,
    EffectTrigger.AFTER_PLAY,
    EffectTrigger.AFTER_REFRESH,
    EffectTrigger.AFTER_COMPILE,
    EffectTrigger.AFTER_OPPONENT_COMPILE,
})


class ConditionalType(Enum):
    """How a follow-up effect is gated."""
    IF_EXECUTED = "if_executed"
    THEN = "then"

    @classmethod
    def parse(cls, raw: str) -> ConditionalType:
        if raw == "if_you_do":
            return cls.IF_EXECUTED
        return cls(raw)


@dataclass(frozen=True)
class Conditional:
    """A follow-up effect and the gate that controls it."""
    type: ConditionalType
    then_effect: EffectDefinition


@dataclass(frozen=True)
class EffectDefinition:
    """
    One effect on a card.

    Examples:
    - delete_effect("d1", owner="opponent")  "Delete 1 of your opponent's cards."
    - if_executed(discard_effect("x1"), delete_effect("x2"))  "Discard 1. If you do, delete 1."
    """
    id: str
    action: EffectAction
    params: dict[str, Any] = field(default_factory=dict, hash=False)
    position: EffectPosition = EffectPosition.MIDDLE
    trigger: EffectTrigger = EffectTrigger.ON_PLAY
    conditional: Conditional | None = None

    # Operate on the card chosen by the previous effect of the chain
    use_card_from_previous_effect: bool = False

    # Reactive trigger filters
    reactive_trigger_actor: str = "self"  # self, opponent, any
    reactive_scope: str = "global"  # global, this_lane
    only_during_opponent_turn: bool = False

    def param(self, key: str, default: Any = None) -> Any:
        """Get a parameter value."""
        return self.params.get(key, default)

    @property
    def is_optional(self) -> bool:
        return bool(self.params.get("optional", False))

    def with_conditional(self, kind: ConditionalType, follow_up: EffectDefinition) -> EffectDefinition:
        """Return a copy chained to a follow-up effect."""
        return replace(self, conditional=Conditional(type=kind, then_effect=follow_up))

    def with_params(self, **params: Any) -> EffectDefinition:
        """Return a copy with some params replaced."""
        return replace(self, params={**self.params, **params})


# =============================================================================
# Parsing
# =============================================================================

def effect_from_dict(data: dict[str, Any]) -> EffectDefinition:
    """
    Build an EffectDefinition from a JSON-like mapping.

    The mapping uses the same keys as the dataclass; `params` must contain
    an `action` key. Raises KeyError/ValueError on malformed input.
    """
    params = dict(data["params"])
    action = EffectAction(params.pop("action"))
    if "options" in params:
        params["options"] = [
            effect_from_dict(option) if isinstance(option, dict) else option
            for option in params["options"]
        ]

    conditional = None
    raw_conditional = data.get("conditional")
    if raw_conditional:
        conditional = Conditional(
            type=ConditionalType.parse(raw_conditional["type"]),
            then_effect=effect_from_dict(raw_conditional["then_effect"]),
        )

    return EffectDefinition(
        id=data["id"],
        action=action,
        params=params,
        position=EffectPosition(data.get("position", "middle")),
        trigger=EffectTrigger(data.get("trigger", "on_play")),
        conditional=conditional,
        use_card_from_previous_effect=data.get("use_card_from_previous_effect", False),
        reactive_trigger_actor=data.get("reactive_trigger_actor", "self"),
        reactive_scope=data.get("reactive_scope", "global"),
        only_during_opponent_turn=data.get("only_during_opponent_turn", False),
    )


def effect_to_dict(effect: EffectDefinition) -> dict[str, Any]:
    """Inverse of effect_from_dict."""
    params = dict(effect.params)
    if "options" in params:
        params["options"] = [
            effect_to_dict(option) if isinstance(option, EffectDefinition) else option
            for option in params["options"]
        ]
    data: dict[str, Any] = {
        "id": effect.id,
        "params": {"action": effect.action.value, **params},
        "position": effect.position.value,
        "trigger": effect.trigger.value,
    }
    if effect.conditional:
        data["conditional"] = {
            "type": effect.conditional.type.value,
            "then_effect": effect_to_dict(effect.conditional.then_effect),
        }
    if effect.use_card_from_previous_effect:
        data["use_card_from_previous_effect"] = True
    if effect.reactive_trigger_actor != "self":
        data["reactive_trigger_actor"] = effect.reactive_trigger_actor
    if effect.reactive_scope != "global":
        data["reactive_scope"] = effect.reactive_scope
    if effect.only_during_opponent_turn:
        data["only_during_opponent_turn"] = True
    return data


# =============================================================================
# Factory functions for common effects
# =============================================================================

def target_filter(
    owner: str = "any",
    position: str = "uncovered",
    face_state: str = "any",
    value_range: tuple[int, int] | None = None,
    value_equals: int | None = None,
    calculation: str | None = None,
) -> dict[str, Any]:
    """Build a target_filter params mapping."""
    data: dict[str, Any] = {"owner": owner, "position": position, "face_state": face_state}
    if value_range is not None:
        data["value_range"] = value_range
    if value_equals is not None:
        data["value_equals"] = value_equals
    if calculation is not None:
        data["calculation"] = calculation
    return data


def delete_effect(
    effect_id: str,
    count: int | str = 1,
    owner: str = "any",
    position: str = "uncovered",
    face_state: str = "any",
    exclude_self: bool = True,
    **params: Any,
) -> EffectDefinition:
    """Delete N cards matching a filter."""
    filter_params = params.pop("target_filter", None) or target_filter(owner, position, face_state)
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.DELETE,
        params={"count": count, "target_filter": filter_params, "exclude_self": exclude_self, **params},
    )


def discard_effect(effect_id: str, count: int | str = 1, actor: str = "self", **params: Any) -> EffectDefinition:
    """The actor discards N cards from hand."""
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.DISCARD,
        params={"count": count, "actor": actor, **params},
    )


def draw_effect(effect_id: str, count: int = 1, target: str = "self", **params: Any) -> EffectDefinition:
    """Draw N cards."""
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.DRAW,
        params={"count": count, "target": target, **params},
    )


def refresh_effect(effect_id: str, **params: Any) -> EffectDefinition:
    """Draw until the hand holds the refresh target."""
    return EffectDefinition(id=effect_id, action=EffectAction.REFRESH, params=dict(params))


def flip_effect(
    effect_id: str,
    count: int = 1,
    owner: str = "any",
    position: str = "uncovered",
    face_state: str = "any",
    exclude_self: bool = True,
    **params: Any,
) -> EffectDefinition:
    """Flip N cards matching a filter."""
    filter_params = params.pop("target_filter", None) or target_filter(owner, position, face_state)
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.FLIP,
        params={"count": count, "target_filter": filter_params, "exclude_self": exclude_self, **params},
    )


def shift_effect(
    effect_id: str,
    owner: str = "any",
    position: str = "uncovered",
    face_state: str = "any",
    exclude_self: bool = False,
    **params: Any,
) -> EffectDefinition:
    """Shift one card matching a filter to another lane."""
    filter_params = params.pop("target_filter", None) or target_filter(owner, position, face_state)
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.SHIFT,
        params={"target_filter": filter_params, "exclude_self": exclude_self, **params},
    )


def return_effect(
    effect_id: str,
    count: int | str = 1,
    owner: str = "any",
    position: str = "uncovered",
    face_state: str = "any",
    **params: Any,
) -> EffectDefinition:
    """Return N cards from the board to a hand."""
    filter_params = params.pop("target_filter", None) or target_filter(owner, position, face_state)
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.RETURN,
        params={"count": count, "target_filter": filter_params, **params},
    )


def reveal_effect(effect_id: str, source: str = "own_hand", count: int = 1, **params: Any) -> EffectDefinition:
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.REVEAL,
        params={"source": source, "count": count, **params},
    )


def give_effect(effect_id: str, count: int = 1, **params: Any) -> EffectDefinition:
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.GIVE,
        params={"source": "own_hand", "count": count, **params},
    )


def rearrange_effect(effect_id: str, target: str = "own", **params: Any) -> EffectDefinition:
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.REARRANGE_PROTOCOLS,
        params={"target": target, **params},
    )


def swap_effect(effect_id: str, target: str = "own", **params: Any) -> EffectDefinition:
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.SWAP_PROTOCOLS,
        params={"target": target, **params},
    )


def choice_effect(effect_id: str, first: EffectDefinition, second: EffectDefinition) -> EffectDefinition:
    """"Either X or Y": the owner picks one of two effects."""
    return EffectDefinition(id=effect_id, action=EffectAction.CHOICE, params={"options": [first, second]})


def block_compile_effect(effect_id: str, target: str = "opponent") -> EffectDefinition:
    return EffectDefinition(id=effect_id, action=EffectAction.BLOCK_COMPILE, params={"target": target})


def play_effect(effect_id: str, source: str = "deck", face_down: bool = True, **params: Any) -> EffectDefinition:
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.PLAY,
        params={"source": source, "face_down": face_down, "count": params.pop("count", 1), **params},
    )


def passive_rule(
    effect_id: str,
    rule_type: str,
    target: str = "opponent",
    scope: str = "this_lane",
    **rule: Any,
) -> EffectDefinition:
    """A top-box rule that is active while the card is face-up."""
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.PASSIVE_RULE,
        params={"rule": {"type": rule_type, "target": target, "scope": scope, **rule}},
        position=EffectPosition.TOP,
        trigger=EffectTrigger.PASSIVE,
    )


def value_modifier(
    effect_id: str,
    modifier_type: str,
    value: int,
    target: str = "own_total",
    scope: str = "this_lane",
    condition: str | None = None,
    face_state: str | None = None,
) -> EffectDefinition:
    """A top-box modifier applied by the lane value calculator."""
    modifier: dict[str, Any] = {"type": modifier_type, "value": value, "target": target, "scope": scope}
    if condition:
        modifier["condition"] = condition
    if face_state:
        modifier["filter"] = {"face_state": face_state}
    return EffectDefinition(
        id=effect_id,
        action=EffectAction.VALUE_MODIFIER,
        params={"modifier": modifier},
        position=EffectPosition.TOP,
        trigger=EffectTrigger.PASSIVE,
    )


def if_executed(first: EffectDefinition, follow_up: EffectDefinition) -> EffectDefinition:
    """Chain a follow-up that fires only if the first effect executed."""
    return first.with_conditional(ConditionalType.IF_EXECUTED, follow_up)


def then(first: EffectDefinition, follow_up: EffectDefinition) -> EffectDefinition:
    """Chain a follow-up that always fires."""
    return first.with_conditional(ConditionalType.THEN, follow_up)


def as_trigger(
    effect: EffectDefinition,
    trigger: EffectTrigger,
    position: EffectPosition,
    **kwargs: Any,
) -> EffectDefinition:
    """Return a copy placed in a different box with a different trigger."""
    return replace(effect, trigger=trigger, position=position, **kwargs)
