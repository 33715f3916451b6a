"""
Tests for the card catalog and catalog validation.

Tests:
- The built-in catalog's shape
- Deck building and lookups
- Loading catalogs from JSON-like data
- Validation errors and warnings
"""

import json

import pytest

from ..protocols import DEFAULT_PROTOCOLS, create_default_catalog
from ..spec_schema import (
    CardCatalog,
    ConditionalType,
    EffectAction,
    EffectDefinition,
    SpecValidationError,
    card_from_dict,
    define_card,
    effect_from_dict,
    validate_catalog,
    validate_effect,
)
from ..spec_schema.effect_dsl import (
    EffectPosition,
    EffectTrigger,
    as_trigger,
    choice_effect,
    delete_effect,
    draw_effect,
    passive_rule,
)


class TestBuiltInCatalog:
    """Tests for the shipped protocols."""

    def test_shape(self, catalog):
        assert len(catalog) == 48
        assert catalog.protocols() == [
            "Fire", "Darkness", "Water", "Death", "Hate", "Spirit", "Metal", "Speed",
        ]
        assert list(DEFAULT_PROTOCOLS) == catalog.protocols()

    def test_cards_are_sorted_by_value(self, catalog):
        assert [card.value for card in catalog.cards_for("Metal")] == [0, 1, 2, 3, 4, 5]

    def test_every_card_has_rule_text(self, catalog):
        for card in catalog:
            assert card.top or card.middle or card.bottom, card.name

    def test_is_valid(self, catalog):
        result = validate_catalog(catalog)
        assert result.valid
        assert result.errors == []

    def test_default_catalog_is_fresh(self):
        first = create_default_catalog()
        first.cards.clear()
        assert len(create_default_catalog()) == 48


class TestLookups:
    """Tests for deck building and lookups."""

    def test_deck_for_three_protocols(self, catalog):
        deck = catalog.deck_for(["Fire", "Hate", "Speed"])
        assert len(deck) == 18
        assert {card.protocol for card in deck} == {"Fire", "Hate", "Speed"}

    def test_unknown_protocol_deck(self, catalog):
        with pytest.raises(KeyError):
            catalog.deck_for(["Fire", "Light"])

    def test_get(self, catalog):
        assert catalog.get("Hate", 2).name == "Hate-2"
        assert catalog.get("Hate", 9) is None
        assert "Hate" in catalog
        assert "Light" not in catalog

    def test_duplicate_card(self):
        catalog = CardCatalog().add_all([define_card("Fire", 1)])
        with pytest.raises(ValueError, match="Duplicate card Fire-1"):
            catalog.add(define_card("Fire", 1))


class TestLoading:
    """Tests for catalogs built from mappings."""

    def test_json_round_trip_keeps_rules(self, catalog):
        dumped = json.dumps(catalog.to_dicts())
        loaded = CardCatalog.from_dicts(json.loads(dumped))
        assert len(loaded) == 48
        assert json.dumps(loaded.to_dicts()) == dumped
        assert validate_catalog(loaded).valid

    def test_choice_options_load_as_effects(self, catalog):
        loaded = CardCatalog.from_dicts(json.loads(json.dumps(catalog.to_dicts())))
        choice = loaded.get("Spirit", 1).bottom_effects[0]
        assert choice.action is EffectAction.CHOICE
        assert all(isinstance(option, EffectDefinition) for option in choice.param("options"))

    def test_card_from_minimal_dict(self):
        card = card_from_dict({
            "protocol": "Fire",
            "value": "3",
            "middle": "Draw 1 card.",
            "effects": {"middle": [{"id": "d", "params": {"action": "draw", "count": 1}}]},
        })
        assert card.value == 3
        effect = card.middle_effects[0]
        assert effect.action is EffectAction.DRAW
        assert effect.position is EffectPosition.MIDDLE
        assert effect.trigger is EffectTrigger.ON_PLAY

    def test_if_you_do_is_if_executed(self):
        effect = effect_from_dict({
            "id": "x",
            "params": {"action": "discard", "count": 1},
            "conditional": {"type": "if_you_do", "then_effect": {"id": "y", "params": {"action": "draw"}}},
        })
        assert effect.conditional.type is ConditionalType.IF_EXECUTED
        assert effect.conditional.then_effect.id == "y"

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            effect_from_dict({"id": "x", "params": {"action": "teleport"}})

    def test_missing_params(self):
        with pytest.raises(KeyError):
            effect_from_dict({"id": "x"})


class TestValidation:
    """Tests for validation errors and warnings."""

    def _catalog(self, *effects, **boxes):
        cards = [define_card("Test", value) for value in range(2)]
        cards.append(define_card("Test", 2, middle_effects=effects, **boxes))
        return CardCatalog().add_all(cards)

    def test_empty_catalog(self):
        result = validate_catalog(CardCatalog())
        assert not result.valid
        assert result.errors == ["Catalog has no cards"]

    def test_small_protocol_warns(self):
        result = validate_catalog(CardCatalog().add_all([define_card("Tiny", 0)]))
        assert result.valid
        assert result.warnings == ["Protocol Tiny has only 1 card(s)"]

    def test_duplicate_effect_id(self):
        result = validate_catalog(self._catalog(draw_effect("same"), delete_effect("same")))
        assert "Test-2: duplicate effect id 'same'" in result.errors

    def test_choice_needs_two_options(self):
        broken = EffectDefinition(id="c", action=EffectAction.CHOICE, params={"options": [draw_effect("a")]})
        result = validate_effect(broken)
        assert result.errors == ["Choice 'c' needs exactly two options, got 1"]

    def test_choice_options_are_checked(self):
        choice = choice_effect("c", draw_effect("a"), delete_effect("b", scope="sideways"))
        assert validate_effect(choice).errors == ["Effect 'b' has unknown scope 'sideways'"]

    def test_unknown_passive_rule(self):
        result = validate_effect(passive_rule("r", "block_everything"))
        assert result.errors == ["Passive rule 'r' has unknown type 'block_everything'"]

    def test_on_cover_must_be_in_bottom_box(self):
        effect = as_trigger(draw_effect("d"), EffectTrigger.ON_COVER, EffectPosition.MIDDLE)
        assert validate_effect(effect).errors == ["On-cover effect 'd' must be in the bottom box"]

    def test_bad_filter_owner(self):
        effect = delete_effect("d", owner="everyone")
        assert validate_effect(effect).errors == ["Effect 'd': unknown filter owner 'everyone'"]

    def test_follow_up_is_checked(self):
        effect = draw_effect("d").with_conditional(ConditionalType.THEN, delete_effect("e", scope="sideways"))
        assert not validate_effect(effect).valid

    def test_raise_on_error(self):
        catalog = self._catalog(draw_effect("same"), draw_effect("same"))
        with pytest.raises(SpecValidationError) as excinfo:
            validate_catalog(catalog, raise_on_error=True)
        assert excinfo.value.errors == ["Test-2: duplicate effect id 'same'"]
