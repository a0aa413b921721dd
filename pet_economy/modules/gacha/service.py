"""
Gacha Engine: coins in, weighted-random pets out.

Purpose
-------
Turn a coin debit into 1 or 10 independent weighted draws over the whole
catalog, settled as one atomic `debit_and_draw` ledger call.

Responsibilities
----------------
- Validate the pull size and the coin balance before any ledger call
- Draw with replacement, P(template) = weight / total weight
- Flag each draw as new when the student owned no copy before the call
- Apply the receipt and emit `gacha.pulled`

Non-Responsibilities
--------------------
- Pity counters, banners, rate-up events (not part of this economy)
- Persisting the draw (the ledger does)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Tuple

from pet_economy.domain.models.pet import OwnedUnit, PetTemplate, Rarity
from pet_economy.modules.shared.base_service import BaseService
from pet_economy.modules.shared.constants import ALLOWED_PULL_COUNTS, KIND_PULL
from pet_economy.modules.shared.exceptions import InsufficientFundsError, ValidationError
from pet_economy.modules.shared.random_source import RandomSource, weighted_choice
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
class DrawnPet:
    template_id: str
    rarity: Rarity
    is_new: bool


@dataclass(frozen=True)
class PullResult:
    """Draws in draw order plus the balances the ledger confirmed."""

    draws: Tuple[DrawnPet, ...]
    cost: int
    coins: int
    units: Tuple[OwnedUnit, ...] = field(default_factory=tuple)

    @property
    def template_ids(self) -> List[str]:
        return [draw.template_id for draw in self.draws]

    @property
    def new_count(self) -> int:
        return sum(1 for draw in self.draws if draw.is_new)


class GachaService(BaseService):
    """
    Weighted-random pulls against the catalog.

    Usage:
        >>> result = await gacha.pull(10)
        >>> if result.ok:
        ...     print(result.value.template_ids)
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
        rng: RandomSource,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, guard)
        self._catalog = catalog
        self._ledger = ledger
        self._state = state
        self._rng = rng

    def pull_cost(self, count: int) -> int:
        self._validate_count(count)
        return self.economy.pull_cost(count)

    def draw_one(self) -> PetTemplate:
        """One weighted selection over the whole catalog. No side effects."""
        return weighted_choice(
            self._rng, self._catalog.all(), lambda template: template.draw_weight
        )

    def draw(self, count: int) -> List[PetTemplate]:
        """`count` independent draws with replacement. No side effects."""
        return [self.draw_one() for _ in range(count)]

    async def pull(self, count: int) -> OperationResult[PullResult]:
        return await self._run(
            KIND_PULL, "pull", self._pull, count, owner_id=self._state.owner_id, count=count
        )

    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_count(count: int) -> None:
        if isinstance(count, bool) or count not in ALLOWED_PULL_COUNTS:
            raise ValidationError(
                "count",
                f"pull count must be one of {sorted(ALLOWED_PULL_COUNTS)}, got {count!r}",
            )

    async def _pull(self, count: int) -> PullResult:
        self._validate_count(count)
        cost = self.economy.pull_cost(count)

        coins = self._state.wallet.coins
        if coins < cost:
            raise InsufficientFundsError("coins", cost, coins)

        drawn = self.draw(count)
        owned_before = set(self._state.owned_template_ids())

        receipt = await self._ledger.debit_and_draw(
            self._state.owner_id, cost, [template.id for template in drawn]
        )

        self._state.apply_wallet(coins=receipt.coins)
        self._state.apply_units(receipt.units)

        result = PullResult(
            draws=tuple(
                DrawnPet(
                    template_id=template.id,
                    rarity=template.rarity,
                    is_new=template.id not in owned_before,
                )
                for template in drawn
            ),
            cost=cost,
            coins=receipt.coins,
            units=receipt.units,
        )

        self.log_operation(
            "pull",
            count=count,
            cost=cost,
            coins=receipt.coins,
            template_ids=result.template_ids,
        )
        await self.emit_event(
            "gacha.pulled",
            {
                "owner_id": self._state.owner_id,
                "count": count,
                "cost": cost,
                "template_ids": result.template_ids,
                "new_template_ids": sorted(
                    {d.template_id for d in result.draws if d.is_new}
                ),
                "coins": receipt.coins,
            },
        )
        return result
