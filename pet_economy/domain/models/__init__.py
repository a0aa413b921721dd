"""
Domain models package for the pet economy.

Immutable models for templates, owned units and balances, plus the
validation helpers they share.
"""

from .base import (
    DomainValidationError,
    parse_timestamp,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)
from .pet import (
    MAX_TIER,
    MIN_TIER,
    CollectionStats,
    EvolutionProgress,
    OwnedUnit,
    PetTemplate,
    Rarity,
    RarityCollectionStats,
    Wallet,
)

__all__ = [
    "DomainValidationError",
    "parse_timestamp",
    "validate_positive",
    "validate_non_negative",
    "validate_range",
    "validate_not_empty",
    "MIN_TIER",
    "MAX_TIER",
    "Rarity",
    "PetTemplate",
    "OwnedUnit",
    "Wallet",
    "EvolutionProgress",
    "RarityCollectionStats",
    "CollectionStats",
]
