"""
Immutable snapshot of the economy balance tables.

`EconomyConfig` is built once by `ConfigManager` from the validated YAML and
handed to every engine, so a session never sees a half-updated table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from pet_economy.domain.models.pet import Rarity
from pet_economy.modules.shared.constants import (
    MULTI_PULL_COUNT,
    OUTPUT_SELECTION_WEIGHTED,
    SINGLE_PULL_COUNT,
)


@dataclass(frozen=True)
class EconomyConfig:
    """
    Validated balance tables for one session.

    Attributes
    ----------
    rarity_order : Tuple[Rarity, ...]
        Rarities from lowest to highest
    success_rates : Mapping[Rarity, float]
        Fusion success probability per input rarity (top rarity absent)
    output_selection : str
        "weighted" or "uniform" choice of the fusion output template
    single_pull_cost, multi_pull_cost : int
        Coin cost of 1 and 10 draws
    required_food : Mapping[int, int]
        Food needed to evolve out of each tier
    coins_per_food : int
        Exchange rate
    """

    rarity_order: Tuple[Rarity, ...] = tuple(Rarity)
    success_rates: Mapping[Rarity, float] = field(
        default_factory=lambda: MappingProxyType(
            {Rarity.COMMON: 0.50, Rarity.RARE: 0.35, Rarity.EPIC: 0.25}
        )
    )
    output_selection: str = OUTPUT_SELECTION_WEIGHTED
    single_pull_cost: int = 100
    multi_pull_cost: int = 900
    required_food: Mapping[int, int] = field(
        default_factory=lambda: MappingProxyType({1: 10, 2: 25})
    )
    coins_per_food: int = 50

    def next_rarity(self, rarity: Rarity) -> Optional[Rarity]:
        index = self.rarity_order.index(rarity)
        if index + 1 >= len(self.rarity_order):
            return None
        return self.rarity_order[index + 1]

    def rarity_rank(self, rarity: Rarity) -> int:
        return self.rarity_order.index(rarity)

    def success_rate(self, rarity: Rarity) -> float:
        return self.success_rates.get(rarity, 0.0)

    def pull_cost(self, count: int) -> int:
        if count == SINGLE_PULL_COUNT:
            return self.single_pull_cost
        if count == MULTI_PULL_COUNT:
            return self.multi_pull_cost
        raise ValueError(f"No price for a {count}-draw pull")

    def required_food_for(self, tier: int) -> int:
        """Food needed to leave `tier`; 0 when the tier cannot evolve."""
        return self.required_food.get(tier, 0)

    def food_cost(self, amount: int) -> int:
        return amount * self.coins_per_food
