"""Exchange: coins for food."""

from pet_economy.modules.exchange.service import ExchangeResult, ExchangeService

__all__ = ["ExchangeService", "ExchangeResult"]
