"""
Catalog Validation - checks card and effect definitions before play.

Validates that:
1. Every protocol has cards and values are unique within it
2. Effect ids are unique on a card (they key the double-fire guards)
3. Effects are well-formed for their action (choice options, passive rule
   and value modifier payloads, target filters, scopes)
4. Triggers sit in a box that can fire them
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .card_catalog import CardCatalog
from .effect_dsl import REACTIVE_TRIGGERS, EffectAction, EffectDefinition, EffectPosition, EffectTrigger

# Engine modules import effect_dsl, so engine lookups are deferred to call time
if TYPE_CHECKING:
    from ..engine_core.state import Card


class SpecValidationError(Exception):
    """Raised when catalog validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Catalog validation failed with {len(errors)} error(s)")


@dataclass
class ValidationResult:
    """Result of validation, with errors and warnings."""
    valid: bool
    errors: list[str]
    warnings: list[str]


MODIFIER_TYPES = {"set_to_fixed", "add_per_condition", "add_to_total"}
MODIFIER_TARGETS = {"own_cards", "opponent_cards", "all_cards", "own_total", "opponent_total"}
MODIFIER_CONDITIONS = {"per_face_down_card", "per_face_up_card", "per_card", "per_card_in_hand"}
FILTER_OWNERS = {"own", "opponent", "any"}
FILTER_POSITIONS = {"uncovered", "covered", "any", "covered_by_context"}
FILTER_FACES = {"face_up", "face_down", "any"}
CALCULATIONS = {None, "highest_value", "lowest_value"}


def validate_catalog(catalog: CardCatalog, raise_on_error: bool = False) -> ValidationResult:
    """
    Validate every card of a catalog.

    Returns ValidationResult with errors and warnings.
    Raises SpecValidationError if raise_on_error=True and errors exist.
    """
    errors: list[str] = []
    warnings: list[str] = []

    protocols = catalog.protocols()
    if not protocols:
        errors.append("Catalog has no cards")
    for protocol in protocols:
        cards = catalog.cards_for(protocol)
        if len(cards) < 3:
            warnings.append(f"Protocol {protocol} has only {len(cards)} card(s)")

    for card in catalog:
        errors.extend(_validate_card(card))

    result = ValidationResult(valid=not errors, errors=errors, warnings=warnings)
    if raise_on_error and errors:
        raise SpecValidationError(errors)
    return result


def _validate_card(card: Card) -> list[str]:
    """Validate a single card."""
    errors = []
    if not card.protocol:
        errors.append("Card has empty protocol")
    if card.value < 0:
        errors.append(f"{card.name}: value must be >= 0")

    seen: set[str] = set()
    for effect in card.all_effects():
        if effect.id in seen:
            errors.append(f"{card.name}: duplicate effect id '{effect.id}'")
        seen.add(effect.id)
        result = validate_effect(effect)
        errors.extend(f"{card.name}: {error}" for error in result.errors)
    return errors


def validate_effect(effect: EffectDefinition) -> ValidationResult:
    """Validate one effect definition and its follow-up chain."""
    errors: list[str] = []
    warnings: list[str] = []

    if not effect.id:
        errors.append("Effect has empty id")

    if effect.trigger is EffectTrigger.PASSIVE and effect.position is not EffectPosition.TOP:
        warnings.append(f"Passive effect '{effect.id}' is not in the top box")
    if effect.trigger in (EffectTrigger.ON_COVER, EffectTrigger.ON_COVER_OR_FLIP) and effect.position is not EffectPosition.BOTTOM:
        errors.append(f"On-cover effect '{effect.id}' must be in the bottom box")
    if effect.trigger is EffectTrigger.ON_PLAY and effect.position is not EffectPosition.MIDDLE:
        errors.append(f"On-play effect '{effect.id}' must be in the middle box")
    if effect.trigger in REACTIVE_TRIGGERS and effect.reactive_trigger_actor not in ("self", "opponent", "any"):
        errors.append(f"Effect '{effect.id}' has unknown reactive_trigger_actor '{effect.reactive_trigger_actor}'")

    errors.extend(_validate_params(effect))

    if effect.conditional is not None:
        nested = validate_effect(effect.conditional.then_effect)
        errors.extend(nested.errors)
        warnings.extend(nested.warnings)

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def _validate_params(effect: EffectDefinition) -> list[str]:
    from ..engine_core.passive_rules import RuleType
    from ..engine_core.targeting import Scope

    errors = []
    action = effect.action

    if action is EffectAction.CHOICE:
        options = effect.param("options") or []
        if len(options) != 2:
            errors.append(f"Choice '{effect.id}' needs exactly two options, got {len(options)}")
        for option in options:
            if isinstance(option, EffectDefinition):
                errors.extend(validate_effect(option).errors)

    elif action is EffectAction.PASSIVE_RULE:
        rule = effect.param("rule") or {}
        if rule.get("type") not in RuleType.ALL:
            errors.append(f"Passive rule '{effect.id}' has unknown type '{rule.get('type')}'")
        if rule.get("target", "opponent") not in ("self", "opponent", "all"):
            errors.append(f"Passive rule '{effect.id}' has unknown target '{rule.get('target')}'")

    elif action is EffectAction.VALUE_MODIFIER:
        errors.extend(_validate_modifier(effect.id, effect.param("modifier") or {}))

    filter_params = effect.param("target_filter")
    if filter_params:
        errors.extend(_validate_filter(effect.id, filter_params))

    scope = effect.param("scope")
    scope_type = scope.get("type") if isinstance(scope, dict) else scope
    if scope_type is not None and scope_type not in Scope.ALL:
        errors.append(f"Effect '{effect.id}' has unknown scope '{scope_type}'")

    return errors


def _validate_modifier(effect_id: str, modifier: dict[str, Any]) -> list[str]:
    errors = []
    if modifier.get("type") not in MODIFIER_TYPES:
        errors.append(f"Value modifier '{effect_id}' has unknown type '{modifier.get('type')}'")
    if not isinstance(modifier.get("value"), int):
        errors.append(f"Value modifier '{effect_id}' needs an integer value")
    if modifier.get("target", "own_total") not in MODIFIER_TARGETS:
        errors.append(f"Value modifier '{effect_id}' has unknown target '{modifier.get('target')}'")
    if modifier.get("type") == "add_per_condition" and modifier.get("condition") not in MODIFIER_CONDITIONS:
        errors.append(f"Value modifier '{effect_id}' has unknown condition '{modifier.get('condition')}'")
    return errors


def _validate_filter(effect_id: str, data: dict[str, Any]) -> list[str]:
    errors = []
    if data.get("owner", "any") not in FILTER_OWNERS:
        errors.append(f"Effect '{effect_id}': unknown filter owner '{data.get('owner')}'")
    if data.get("position", "uncovered") not in FILTER_POSITIONS:
        errors.append(f"Effect '{effect_id}': unknown filter position '{data.get('position')}'")
    if data.get("face_state", "any") not in FILTER_FACES:
        errors.append(f"Effect '{effect_id}': unknown filter face_state '{data.get('face_state')}'")
    if data.get("calculation") not in CALCULATIONS:
        errors.append(f"Effect '{effect_id}': unknown calculation '{data.get('calculation')}'")
    return errors
