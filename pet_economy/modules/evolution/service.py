"""
Evolution Engine: feed food to a unit, then evolve it one tier.

Tier rules
----------
- Tiers run 1..3; tier 3 is final and refuses both feeding and evolving.
- Evolving out of tier t needs `required_food(t)` food fed (10 and 25 by
  default). Excess food is forfeited: `food_fed` resets to 0.
- Feeding never changes the tier.

Artwork for a unit resolves the template's image for the unit's tier
through `ArtworkUrlBuilder`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from pet_economy.domain.models.pet import EvolutionProgress, OwnedUnit
from pet_economy.modules.evolution.artwork import ArtworkUrlBuilder
from pet_economy.modules.shared.base_service import BaseService
from pet_economy.modules.shared.constants import (
    ARTWORK_VARIANT_FULL,
    KIND_EVOLVE,
    KIND_FEED,
)
from pet_economy.modules.shared.exceptions import (
    AlreadyMaxTierError,
    InsufficientFoodFedError,
    InsufficientFundsError,
)
from pet_economy.modules.shared.result import OperationResult

if TYPE_CHECKING:
    from logging import Logger

    from pet_economy.core.config.manager import ConfigManager
    from pet_economy.core.event.bus import EventBus
    from pet_economy.modules.catalog.service import CatalogService
    from pet_economy.modules.inventory.state import EconomyState
    from pet_economy.modules.ledger.contract import LedgerService
    from pet_economy.modules.shared.single_flight import SingleFlightGuard


@dataclass(frozen=True)
class FeedResult:
    food: int
    unit: OwnedUnit
    progress: EvolutionProgress


@dataclass(frozen=True)
class EvolveResult:
    previous_tier: int
    new_tier: int
    unit: OwnedUnit


class EvolutionService(BaseService):
    """
    Feeding, evolution and per-tier artwork.

    Usage:
        >>> await evolution.feed(unit_id, 10)
        >>> evolution.progress(unit_id).can_evolve
        True
        >>> await evolution.evolve(unit_id)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        guard: SingleFlightGuard,
        catalog: CatalogService,
        ledger: LedgerService,
        state: EconomyState,
        artwork: Optional[ArtworkUrlBuilder] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, guard)
        self._catalog = catalog
        self._ledger = ledger
        self._state = state
        self._artwork = artwork or ArtworkUrlBuilder()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def required_food(self, tier: int) -> int:
        return self.economy.required_food_for(tier)

    def progress(self, unit_id: str) -> EvolutionProgress:
        """
        Raises:
            NotFoundError: If the student does not own `unit_id`
        """
        unit = self._state.get_unit(unit_id)
        return EvolutionProgress.for_unit(unit, self.required_food(unit.tier))

    def artwork_url(self, unit_id: str, variant: str = ARTWORK_VARIANT_FULL) -> str:
        """
        Public URL of the unit's artwork at its current tier.

        Raises:
            NotFoundError: If the unit or its template is unknown
            ValidationError: If `variant` is not full/optimized/thumbnail
        """
        unit = self._state.get_unit(unit_id)
        template = self._catalog.by_id(unit.pet_template_id)
        return self._artwork.build(
            template.artwork_for_tier(unit.tier), variant, template.updated_at
        )

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def feed(self, unit_id: str, amount: int) -> OperationResult[FeedResult]:
        return await self._run(
            KIND_FEED,
            "feed",
            self._feed,
            unit_id,
            amount,
            owner_id=self._state.owner_id,
            unit_id=unit_id,
            amount=amount,
        )

    async def evolve(self, unit_id: str) -> OperationResult[EvolveResult]:
        return await self._run(
            KIND_EVOLVE,
            "evolve",
            self._evolve,
            unit_id,
            owner_id=self._state.owner_id,
            unit_id=unit_id,
        )

    async def _feed(self, unit_id: str, amount: int) -> FeedResult:
        self.validate_positive_int(amount, "amount")
        unit = self._state.get_unit(unit_id)

        if unit.is_max_tier:
            raise AlreadyMaxTierError(unit_id, unit.tier)

        food = self._state.wallet.food
        if amount > food:
            raise InsufficientFundsError("food", amount, food)

        receipt = await self._ledger.feed(self._state.owner_id, unit_id, amount)

        self._state.apply_wallet(food=receipt.food)
        self._state.apply_units([receipt.unit])

        progress = EvolutionProgress.for_unit(
            receipt.unit, self.required_food(receipt.unit.tier)
        )

        self.log_operation(
            "feed",
            unit_id=unit_id,
            amount=amount,
            food_fed=receipt.unit.food_fed,
            food=receipt.food,
        )
        await self.emit_event(
            "pet.fed",
            {
                "owner_id": self._state.owner_id,
                "unit_id": unit_id,
                "amount": amount,
                "food_fed": receipt.unit.food_fed,
                "can_evolve": progress.can_evolve,
            },
        )
        return FeedResult(food=receipt.food, unit=receipt.unit, progress=progress)

    async def _evolve(self, unit_id: str) -> EvolveResult:
        unit = self._state.get_unit(unit_id)

        if unit.is_max_tier:
            raise AlreadyMaxTierError(unit_id, unit.tier)

        required = self.required_food(unit.tier)
        if unit.food_fed < required:
            raise InsufficientFoodFedError(unit_id, unit.food_fed, required)

        receipt = await self._ledger.evolve(self._state.owner_id, unit_id)
        self._state.apply_units([receipt.unit])

        result = EvolveResult(
            previous_tier=unit.tier, new_tier=receipt.unit.tier, unit=receipt.unit
        )

        self.log_operation(
            "evolve",
            unit_id=unit_id,
            previous_tier=result.previous_tier,
            new_tier=result.new_tier,
        )
        await self.emit_event(
            "pet.evolved",
            {
                "owner_id": self._state.owner_id,
                "unit_id": unit_id,
                "template_id": receipt.unit.pet_template_id,
                "previous_tier": result.previous_tier,
                "new_tier": result.new_tier,
            },
        )
        return result
