"""
Card Catalog - protocol/value -> card template.

A catalog is the static rule data of a match: every protocol's cards with
their rule text, keywords and declarative effects per box. Decks are built
from it at setup; nothing in the engine looks cards up afterwards, since
templates carry their own effects.

Catalogs can be written in Python (see protocol_engine.protocols) or
loaded from JSON-like mappings with CardCatalog.from_dicts().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..engine_core.state import Card
from .effect_dsl import EffectDefinition, effect_from_dict, effect_to_dict

BOXES = ("top", "middle", "bottom")


def define_card(
    protocol: str,
    value: int,
    top: str = "",
    middle: str = "",
    bottom: str = "",
    top_effects: Iterable[EffectDefinition] = (),
    middle_effects: Iterable[EffectDefinition] = (),
    bottom_effects: Iterable[EffectDefinition] = (),
    keywords: Iterable[str] = (),
) -> Card:
    """Convenience constructor for catalog entries."""
    return Card(
        protocol=protocol,
        value=value,
        top=top,
        middle=middle,
        bottom=bottom,
        keywords=frozenset(keywords),
        top_effects=tuple(top_effects),
        middle_effects=tuple(middle_effects),
        bottom_effects=tuple(bottom_effects),
    )


def card_from_dict(data: dict[str, Any]) -> Card:
    """Build a Card from a mapping with protocol, value, text and effects per box."""
    effects = data.get("effects", {})
    return define_card(
        protocol=data["protocol"],
        value=int(data["value"]),
        top=data.get("top", ""),
        middle=data.get("middle", ""),
        bottom=data.get("bottom", ""),
        top_effects=[effect_from_dict(raw) for raw in effects.get("top", [])],
        middle_effects=[effect_from_dict(raw) for raw in effects.get("middle", [])],
        bottom_effects=[effect_from_dict(raw) for raw in effects.get("bottom", [])],
        keywords=data.get("keywords", ()),
    )


def card_to_dict(card: Card) -> dict[str, Any]:
    return {
        "protocol": card.protocol,
        "value": card.value,
        "top": card.top,
        "middle": card.middle,
        "bottom": card.bottom,
        "keywords": sorted(card.keywords),
        "effects": {
            "top": [effect_to_dict(effect) for effect in card.top_effects],
            "middle": [effect_to_dict(effect) for effect in card.middle_effects],
            "bottom": [effect_to_dict(effect) for effect in card.bottom_effects],
        },
    }


@dataclass
class CardCatalog:
    """
    All card templates known to a match, keyed by (protocol, value).

    Protocol names are kept in insertion order.
    """
    cards: dict[tuple[str, int], Card] = field(default_factory=dict)

    def add(self, card: Card) -> None:
        key = (card.protocol, card.value)
        if key in self.cards:
            raise ValueError(f"Duplicate card {card.name}")
        self.cards[key] = card

    def add_all(self, cards: Iterable[Card]) -> CardCatalog:
        for card in cards:
            self.add(card)
        return self

    def get(self, protocol: str, value: int) -> Card | None:
        """Get a card template by protocol and value."""
        return self.cards.get((protocol, value))

    def protocols(self) -> list[str]:
        seen: dict[str, None] = {}
        for protocol, _ in self.cards:
            seen.setdefault(protocol, None)
        return list(seen)

    def cards_for(self, protocol: str) -> list[Card]:
        """A protocol's cards, by ascending value."""
        return sorted(
            (card for (card_protocol, _), card in self.cards.items() if card_protocol == protocol),
            key=lambda card: card.value,
        )

    def deck_for(self, protocols: Iterable[str]) -> list[Card]:
        """The unshuffled deck for a set of protocols."""
        deck = []
        for protocol in protocols:
            cards = self.cards_for(protocol)
            if not cards:
                raise KeyError(f"Unknown protocol: {protocol}")
            deck.extend(cards)
        return deck

    def __contains__(self, protocol: object) -> bool:
        return protocol in self.protocols()

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self):
        return iter(self.cards.values())

    @classmethod
    def from_dicts(cls, entries: Iterable[dict[str, Any]]) -> CardCatalog:
        return cls().add_all(card_from_dict(entry) for entry in entries)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [card_to_dict(card) for card in self.cards.values()]
