"""
Exchange: buy food with coins at the configured rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pet_economy.modules.shared.base_service import BaseService
from pet_economy.modules.shared.constants import KIND_EXCHANGE
from pet_economy.modules.shared.exceptions import InsufficientFundsError
from pet_economy.modules.shared.result import OperationResult

if TYPE_CHECKING:
    from logging import Logger

    from pet_economy.core.config.manager import ConfigManager
    from pet_economy.core.event.bus import EventBus
    from pet_economy.modules.inventory.state import EconomyState
    from pet_economy.modules.ledger.contract import LedgerService
    from pet_economy.modules.shared.single_flight import SingleFlightGuard


@dataclass(frozen=True)
class ExchangeResult:
    food_bought: int
    coins_spent: int
    coins: int
    food: int


class ExchangeService(BaseService):
    """Coins-for-food exchange at `exchange.coins_per_food`."""

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        guard: SingleFlightGuard,
        ledger: LedgerService,
        state: EconomyState,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, guard)
        self._ledger = ledger
        self._state = state

    def quote(self, amount: int) -> int:
        """Coin cost of `amount` food."""
        self.validate_positive_int(amount, "amount")
        return self.economy.food_cost(amount)

    def max_affordable(self) -> int:
        return self._state.wallet.coins // self.economy.coins_per_food

    async def buy_food(self, amount: int) -> OperationResult[ExchangeResult]:
        return await self._run(
            KIND_EXCHANGE,
            "buy_food",
            self._buy_food,
            amount,
            owner_id=self._state.owner_id,
            amount=amount,
        )

    async def _buy_food(self, amount: int) -> ExchangeResult:
        cost = self.quote(amount)

        coins = self._state.wallet.coins
        if coins < cost:
            raise InsufficientFundsError("coins", cost, coins)

        receipt = await self._ledger.exchange(self._state.owner_id, amount, cost)
        self._state.apply_wallet(coins=receipt.coins, food=receipt.food)

        result = ExchangeResult(
            food_bought=amount, coins_spent=cost, coins=receipt.coins, food=receipt.food
        )

        self.log_operation(
            "buy_food", amount=amount, cost=cost, coins=receipt.coins, food=receipt.food
        )
        await self.emit_event(
            "exchange.food_purchased",
            {
                "owner_id": self._state.owner_id,
                "food_bought": amount,
                "coins_spent": cost,
                "coins": receipt.coins,
                "food": receipt.food,
            },
        )
        return result
