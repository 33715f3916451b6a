"""Card schema - effect DSL, card catalog and catalog validation."""

from .effect_dsl import (
    ConditionalType,
    EffectAction,
    EffectDefinition,
    EffectPosition,
    EffectTrigger,
    effect_from_dict,
    effect_to_dict,
)
from .card_catalog import CardCatalog, card_from_dict, card_to_dict, define_card
from .validation import SpecValidationError, ValidationResult, validate_catalog, validate_effect

__all__ = [
    "ConditionalType",
    "EffectAction",
    "EffectDefinition",
    "EffectPosition",
    "EffectTrigger",
    "effect_from_dict",
    "effect_to_dict",
    "CardCatalog",
    "card_from_dict",
    "card_to_dict",
    "define_card",
    "SpecValidationError",
    "ValidationResult",
    "validate_catalog",
    "validate_effect",
]
