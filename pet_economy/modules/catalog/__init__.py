"""Read-only creature template catalog."""

from pet_economy.modules.catalog.service import CatalogService

__all__ = ["CatalogService"]
