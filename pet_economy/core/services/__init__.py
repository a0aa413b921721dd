"""Session wiring."""

from pet_economy.core.services.container import ServiceContainer

__all__ = ["ServiceContainer"]
