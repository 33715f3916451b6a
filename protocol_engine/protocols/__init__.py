"""Built-in protocol catalog."""

from __future__ import annotations

from ..spec_schema.card_catalog import CardCatalog
from .cards import ALL_PROTOCOL_CARDS


def create_default_catalog() -> CardCatalog:
    """A fresh catalog with every built-in protocol."""
    catalog = CardCatalog()
    for cards in ALL_PROTOCOL_CARDS.values():
        catalog.add_all(cards)
    return catalog


DEFAULT_PROTOCOLS = tuple(ALL_PROTOCOL_CARDS)

__all__ = ["ALL_PROTOCOL_CARDS", "DEFAULT_PROTOCOLS", "create_default_catalog"]
