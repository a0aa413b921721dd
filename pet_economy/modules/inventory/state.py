"""
Client-local mirror of one student's wallet and owned units.

Purpose
-------
Engines check preconditions against this mirror before calling the Ledger
Service. The mirror changes only when a ledger receipt or snapshot arrives;
engines never speculatively mutate it, so a failed call leaves it exactly as
it was.

Responsibilities
----------------
- Hold wallet and units, indexed by unit id and by template id
- Apply receipts (`apply_wallet`, `apply_units`, `remove_units`)
- Full `refresh()` from the ledger snapshot calls
- Ownership and surplus lookups used by the engines
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Tuple

from pet_economy.core.logging.logger import get_logger
from pet_economy.domain.models.pet import OwnedUnit, Rarity, Wallet
from pet_economy.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from pet_economy.modules.catalog.service import CatalogService
    from pet_economy.modules.ledger.contract import LedgerService

logger = get_logger(__name__)


class EconomyState:
    """
    Wallet and inventory of a single student.

    Example
    -------
    >>> state = EconomyState("student-1")
    >>> await state.refresh(ledger)
    >>> state.wallet.coins
    1000
    """

    def __init__(
        self,
        owner_id: str,
        wallet: Optional[Wallet] = None,
        units: Iterable[OwnedUnit] = (),
    ) -> None:
        self.owner_id = owner_id
        self._wallet = wallet or Wallet()
        self._units: Dict[str, OwnedUnit] = {}
        self._by_template: Dict[str, str] = {}
        self.apply_units(units)

    # =========================================================================
    # RECEIPT APPLICATION
    # =========================================================================

    def apply_wallet(
        self, coins: Optional[int] = None, food: Optional[int] = None
    ) -> Wallet:
        """Replace whichever balances a receipt reported."""
        wallet = self._wallet
        if coins is not None:
            wallet = wallet.with_coins(coins)
        if food is not None:
            wallet = wallet.with_food(food)
        self._wallet = wallet
        return wallet

    def apply_units(self, units: Iterable[OwnedUnit]) -> None:
        for unit in units:
            if unit.owner_id != self.owner_id:
                raise ValueError(
                    f"Unit {unit.id} belongs to {unit.owner_id}, not {self.owner_id}"
                )
            stale_id = self._by_template.get(unit.pet_template_id)
            if stale_id is not None and stale_id != unit.id:
                # One record per template: the ledger replaced the record
                self._units.pop(stale_id, None)
            self._units[unit.id] = unit
            self._by_template[unit.pet_template_id] = unit.id

    def remove_units(self, unit_ids: Iterable[str]) -> None:
        for unit_id in unit_ids:
            unit = self._units.pop(unit_id, None)
            if unit is not None and self._by_template.get(unit.pet_template_id) == unit_id:
                del self._by_template[unit.pet_template_id]

    async def refresh(self, ledger: LedgerService) -> None:
        """Replace the whole mirror with a fresh ledger snapshot."""
        wallet = await ledger.get_wallet(self.owner_id)
        units = await ledger.list_units(self.owner_id)

        self._wallet = wallet
        self._units.clear()
        self._by_template.clear()
        self.apply_units(units)

        logger.debug(
            "Economy state refreshed",
            extra={"coins": wallet.coins, "food": wallet.food, "unit_count": len(units)},
        )

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @property
    def wallet(self) -> Wallet:
        return self._wallet

    @property
    def units(self) -> Tuple[OwnedUnit, ...]:
        return tuple(self._units.values())

    def get_unit(self, unit_id: str) -> OwnedUnit:
        try:
            return self._units[unit_id]
        except KeyError:
            raise NotFoundError("OwnedUnit", unit_id) from None

    def find_unit(self, unit_id: str) -> Optional[OwnedUnit]:
        return self._units.get(unit_id)

    def unit_for_template(self, template_id: str) -> Optional[OwnedUnit]:
        unit_id = self._by_template.get(template_id)
        return self._units.get(unit_id) if unit_id is not None else None

    def owns_template(self, template_id: str) -> bool:
        return template_id in self._by_template

    def owned_template_ids(self) -> List[str]:
        return list(self._by_template.keys())

    def units_of_rarity(
        self, rarity: Rarity, catalog: CatalogService
    ) -> List[OwnedUnit]:
        """Owned units of `rarity`, in catalog order."""
        units = []
        for template in catalog.by_rarity(rarity):
            unit = self.unit_for_template(template.id)
            if unit is not None:
                units.append(unit)
        return units

    def surplus_by_rarity(self, rarity: Rarity, catalog: CatalogService) -> int:
        """Total fusable copies (count - 1 per unit) of a rarity."""
        return sum(unit.surplus for unit in self.units_of_rarity(rarity, catalog))
