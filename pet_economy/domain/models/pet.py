"""
Pet domain models for the collectible economy.

Purpose
-------
Immutable domain models for creature templates, per-student owned units,
the student wallet, and the derived progress/collection views.

Responsibilities
----------------
- Enforce record-level invariants (count >= 1, tier in 1..3, food_fed >= 0,
  non-negative balances, positive draw weights)
- Define the rarity total order and its successor
- Convert from and to the plain dicts used by YAML files and ledger payloads

Non-Responsibilities
--------------------
- Mutation (only ledger receipts replace these records)
- Probability and fusion rules (handled by the engines)

Design Notes
------------
All models are frozen dataclasses. A changed unit is a new `OwnedUnit`
instance taken from a ledger receipt, never an in-place update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from pet_economy.domain.models.base import (
    DomainValidationError,
    parse_timestamp,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)


# ============================================================================
# CONSTANTS
# ============================================================================

MIN_TIER = 1
MAX_TIER = 3
MIN_UNIT_COUNT = 1


# ============================================================================
# RARITY
# ============================================================================


@total_ordering
class Rarity(Enum):
    """
    Creature rarity, ordered common < rare < epic < legendary.

    Example
    -------
    >>> Rarity.COMMON.next()
    <Rarity.RARE: 'rare'>
    >>> Rarity.LEGENDARY.next() is None
    True
    """

    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def rank(self) -> int:
        return list(Rarity).index(self)

    def next(self) -> Optional["Rarity"]:
        members = list(Rarity)
        if self.rank + 1 >= len(members):
            return None
        return members[self.rank + 1]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def from_string(cls, value: Any) -> "Rarity":
        if isinstance(value, Rarity):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise DomainValidationError(
                f"Unknown rarity {value!r}", field="rarity"
            ) from exc


# ============================================================================
# TEMPLATES
# ============================================================================


@dataclass(frozen=True)
class PetTemplate:
    """
    Immutable catalog entry describing one creature.

    Attributes
    ----------
    id : str
        Stable template identifier
    name : str
        Display name
    rarity : Rarity
        Rarity class
    draw_weight : float
        Relative draw weight (probability only, never displayed)
    image_tier1 : str
        Tier-1 artwork reference (required)
    image_tier2, image_tier3 : Optional[str]
        Evolved artwork; missing tiers fall back to tier 1
    updated_at : Optional[datetime]
        Last template change, used for artwork cache-busting
    """

    id: str
    name: str
    rarity: Rarity
    draw_weight: float
    image_tier1: str
    image_tier2: Optional[str] = None
    image_tier3: Optional[str] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.name, "name")
        if not isinstance(self.rarity, Rarity):
            raise DomainValidationError("rarity must be a Rarity", field="rarity")
        validate_positive(self.draw_weight, "draw_weight")
        validate_not_empty(self.image_tier1, "image_tier1")

    def artwork_for_tier(self, tier: int) -> str:
        """Artwork reference for a tier, falling back to the tier-1 image."""
        validate_range(tier, MIN_TIER, MAX_TIER, "tier")
        if tier == 3 and self.image_tier3:
            return self.image_tier3
        if tier == 2 and self.image_tier2:
            return self.image_tier2
        return self.image_tier1

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PetTemplate":
        try:
            return cls(
                id=str(data["id"]),
                name=str(data["name"]),
                rarity=Rarity.from_string(data["rarity"]),
                draw_weight=float(data["draw_weight"]),
                image_tier1=str(data["image_tier1"]),
                image_tier2=data.get("image_tier2") or None,
                image_tier3=data.get("image_tier3") or None,
                updated_at=parse_timestamp(data.get("updated_at"), "updated_at"),
            )
        except KeyError as exc:
            raise DomainValidationError(
                f"Pet template is missing field {exc.args[0]!r}", field=exc.args[0]
            ) from exc
        except (TypeError, ValueError) as exc:
            raise DomainValidationError(f"Malformed pet template: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rarity": self.rarity.value,
            "draw_weight": self.draw_weight,
            "image_tier1": self.image_tier1,
            "image_tier2": self.image_tier2,
            "image_tier3": self.image_tier3,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# ============================================================================
# OWNED UNITS
# ============================================================================


@dataclass(frozen=True)
class OwnedUnit:
    """
    A student's stack of one creature template.

    One record per (owner_id, pet_template_id); duplicates raise `count`.
    Exactly one copy is the anchor, so only `count - 1` copies are surplus.
    """

    id: str
    owner_id: str
    pet_template_id: str
    count: int = 1
    tier: int = MIN_TIER
    food_fed: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.owner_id, "owner_id")
        validate_not_empty(self.pet_template_id, "pet_template_id")
        if self.count < MIN_UNIT_COUNT:
            raise DomainValidationError(
                f"count must be at least {MIN_UNIT_COUNT}, got {self.count}",
                field="count",
            )
        validate_range(self.tier, MIN_TIER, MAX_TIER, "tier")
        validate_non_negative(self.food_fed, "food_fed")

    @property
    def surplus(self) -> int:
        return self.count - 1

    @property
    def is_max_tier(self) -> bool:
        return self.tier >= MAX_TIER

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OwnedUnit":
        try:
            return cls(
                id=str(data["id"]),
                owner_id=str(data["owner_id"]),
                pet_template_id=str(data["pet_template_id"]),
                count=int(data.get("count", 1)),
                tier=int(data.get("tier", MIN_TIER)),
                food_fed=int(data.get("food_fed", 0)),
                created_at=parse_timestamp(data.get("created_at"), "created_at"),
                updated_at=parse_timestamp(data.get("updated_at"), "updated_at"),
            )
        except KeyError as exc:
            raise DomainValidationError(
                f"Owned unit is missing field {exc.args[0]!r}", field=exc.args[0]
            ) from exc
        except (TypeError, ValueError) as exc:
            raise DomainValidationError(f"Malformed owned unit: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "pet_template_id": self.pet_template_id,
            "count": self.count,
            "tier": self.tier,
            "food_fed": self.food_fed,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# ============================================================================
# WALLET
# ============================================================================


@dataclass(frozen=True)
class Wallet:
    """Student balances. Mutated only through ledger operations."""

    coins: int = 0
    food: int = 0

    def __post_init__(self) -> None:
        validate_non_negative(self.coins, "coins")
        validate_non_negative(self.food, "food")

    def with_coins(self, coins: int) -> "Wallet":
        return Wallet(coins=coins, food=self.food)

    def with_food(self, food: int) -> "Wallet":
        return Wallet(coins=self.coins, food=food)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Wallet":
        try:
            return cls(coins=int(data.get("coins", 0)), food=int(data.get("food", 0)))
        except (TypeError, ValueError) as exc:
            raise DomainValidationError(f"Malformed wallet: {exc}") from exc

    def to_dict(self) -> Dict[str, int]:
        return {"coins": self.coins, "food": self.food}


# ============================================================================
# DERIVED VIEWS
# ============================================================================


@dataclass(frozen=True)
class EvolutionProgress:
    """How far a unit is from its next tier."""

    current_tier: int
    food_fed: int
    required_food: int
    can_evolve: bool
    is_max_tier: bool

    @classmethod
    def for_unit(cls, unit: OwnedUnit, required_food: int) -> "EvolutionProgress":
        if unit.is_max_tier:
            return cls(
                current_tier=unit.tier,
                food_fed=unit.food_fed,
                required_food=0,
                can_evolve=False,
                is_max_tier=True,
            )
        return cls(
            current_tier=unit.tier,
            food_fed=unit.food_fed,
            required_food=required_food,
            can_evolve=unit.food_fed >= required_food,
            is_max_tier=False,
        )

    @property
    def remaining_food(self) -> int:
        return max(0, self.required_food - self.food_fed)


@dataclass(frozen=True)
class RarityCollectionStats:
    rarity: Rarity
    total: int
    owned: int


@dataclass(frozen=True)
class CollectionStats:
    """Per-rarity count of catalog templates and how many the student owns."""

    by_rarity: Tuple[RarityCollectionStats, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return sum(entry.total for entry in self.by_rarity)

    @property
    def owned(self) -> int:
        return sum(entry.owned for entry in self.by_rarity)

    def for_rarity(self, rarity: Rarity) -> RarityCollectionStats:
        for entry in self.by_rarity:
            if entry.rarity is rarity:
                return entry
        return RarityCollectionStats(rarity=rarity, total=0, owned=0)

    @classmethod
    def build(
        cls, templates: Iterable[PetTemplate], owned_template_ids: Iterable[str]
    ) -> "CollectionStats":
        owned_ids = set(owned_template_ids)
        totals: Dict[Rarity, int] = {rarity: 0 for rarity in Rarity}
        owned: Dict[Rarity, int] = {rarity: 0 for rarity in Rarity}
        for template in templates:
            totals[template.rarity] += 1
            if template.id in owned_ids:
                owned[template.rarity] += 1
        return cls(
            by_rarity=tuple(
                RarityCollectionStats(rarity=r, total=totals[r], owned=owned[r])
                for r in Rarity
            )
        )
