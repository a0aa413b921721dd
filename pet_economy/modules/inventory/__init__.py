"""Client-local mirror of a student's wallet and owned units."""

from pet_economy.modules.inventory.state import EconomyState

__all__ = ["EconomyState"]
