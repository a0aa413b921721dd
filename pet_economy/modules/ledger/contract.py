"""
Ledger Service contract.

Purpose
-------
The Ledger Service owns balances and inventory and applies every mutation
atomically. This module defines what the engines may ask of it and what
they get back. Implementations: `HttpLedgerClient` in production, an
in-memory fake in the test suite.

Errors
------
- `TransactionRejectedError`: the service refused the request (business
  rule, e.g. balance changed underneath us). Nothing changed.
- `LedgerUnavailableError`: transport or backend failure. The caller must
  assume nothing changed.

Receipts
--------
Every mutating call returns a receipt carrying the authoritative values the
client mirror replaces its own with.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pet_economy.domain.models.base import DomainValidationError, validate_non_negative
from pet_economy.domain.models.pet import OwnedUnit, PetTemplate, Wallet


def _units(rows: Any) -> Tuple[OwnedUnit, ...]:
    if not isinstance(rows, list):
        raise DomainValidationError("units must be a list", field="units")
    return tuple(OwnedUnit.from_dict(row) for row in rows)


def _int_field(data: Mapping[str, Any], key: str) -> int:
    try:
        value = data[key]
    except KeyError as exc:
        raise DomainValidationError(f"missing field {key!r}", field=key) from exc
    if isinstance(value, bool) or not isinstance(value, int):
        raise DomainValidationError(f"{key} must be an integer", field=key)
    return value


# ============================================================================
# REQUESTS
# ============================================================================


@dataclass(frozen=True)
class FusionOutcome:
    """
    The fusion decision the client asks the ledger to apply.

    On success the ledger creates or increments `output_template_id` and
    destroys all inputs. On failure `returned_unit_id` keeps its copy and the
    other inputs are destroyed.
    """

    success: bool
    output_template_id: Optional[str] = None
    returned_unit_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success and (not self.output_template_id or self.returned_unit_id):
            raise DomainValidationError(
                "successful fusion needs an output template and no returned unit"
            )
        if not self.success and (not self.returned_unit_id or self.output_template_id):
            raise DomainValidationError(
                "failed fusion needs a returned unit and no output template"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "output_template_id": self.output_template_id,
            "returned_unit_id": self.returned_unit_id,
        }


# ============================================================================
# RECEIPTS
# ============================================================================


@dataclass(frozen=True)
class DrawReceipt:
    coins: int
    units: Tuple[OwnedUnit, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        validate_non_negative(self.coins, "coins")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DrawReceipt":
        return cls(coins=_int_field(data, "coins"), units=_units(data.get("units", [])))


@dataclass(frozen=True)
class FusionReceipt:
    units: Tuple[OwnedUnit, ...] = field(default_factory=tuple)
    removed_unit_ids: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FusionReceipt":
        removed = data.get("removed_unit_ids", [])
        if not isinstance(removed, list):
            raise DomainValidationError(
                "removed_unit_ids must be a list", field="removed_unit_ids"
            )
        return cls(
            units=_units(data.get("units", [])),
            removed_unit_ids=tuple(str(unit_id) for unit_id in removed),
        )


@dataclass(frozen=True)
class FeedReceipt:
    food: int
    unit: OwnedUnit

    def __post_init__(self) -> None:
        validate_non_negative(self.food, "food")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeedReceipt":
        if not isinstance(data.get("unit"), Mapping):
            raise DomainValidationError("missing field 'unit'", field="unit")
        return cls(food=_int_field(data, "food"), unit=OwnedUnit.from_dict(data["unit"]))


@dataclass(frozen=True)
class EvolveReceipt:
    unit: OwnedUnit

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EvolveReceipt":
        if not isinstance(data.get("unit"), Mapping):
            raise DomainValidationError("missing field 'unit'", field="unit")
        return cls(unit=OwnedUnit.from_dict(data["unit"]))


@dataclass(frozen=True)
class ExchangeReceipt:
    coins: int
    food: int

    def __post_init__(self) -> None:
        validate_non_negative(self.coins, "coins")
        validate_non_negative(self.food, "food")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExchangeReceipt":
        return cls(coins=_int_field(data, "coins"), food=_int_field(data, "food"))


# ============================================================================
# CONTRACT
# ============================================================================


class LedgerService(ABC):
    """
    Atomic operations of the remote Ledger Service.

    Each mutating method either applies completely and returns a receipt,
    or raises and applies nothing.
    """

    @abstractmethod
    async def debit_and_draw(
        self, owner_id: str, cost: int, template_ids: Sequence[str]
    ) -> DrawReceipt:
        """Debit `cost` coins and grant one copy per drawn template id."""

    @abstractmethod
    async def fuse(
        self,
        owner_id: str,
        consumed_unit_ids: Sequence[str],
        outcome: FusionOutcome,
    ) -> FusionReceipt:
        """Consume the referenced surplus copies and apply the outcome."""

    @abstractmethod
    async def feed(self, owner_id: str, unit_id: str, amount: int) -> FeedReceipt:
        """Debit `amount` food and add it to the unit's `food_fed`."""

    @abstractmethod
    async def evolve(self, owner_id: str, unit_id: str) -> EvolveReceipt:
        """Raise the unit's tier by one and reset `food_fed`."""

    @abstractmethod
    async def exchange(self, owner_id: str, amount: int, cost: int) -> ExchangeReceipt:
        """Debit `cost` coins and credit `amount` food."""

    @abstractmethod
    async def get_wallet(self, owner_id: str) -> Wallet:
        """Current balances."""

    @abstractmethod
    async def list_units(self, owner_id: str) -> List[OwnedUnit]:
        """All owned units of the student."""

    @abstractmethod
    async def list_templates(self) -> List[PetTemplate]:
        """The creature catalog."""

    async def aclose(self) -> None:
        """Release transport resources, if any."""
