"""
Catalog: the read-only registry of creature templates.

Purpose
-------
Loaded once per session from a YAML catalog file or from the Ledger
Service, then never mutated. Engines use it for draw weights, rarity pools
and artwork references.

Responsibilities
----------------
- Reject invalid catalogs at load (empty, duplicate ids, bad weights)
- Lookups by id and by rarity, in catalog order (rarity, then name)
- Expected rarity hit rates for one gacha draw
- Collection completion stats for a student

Non-Responsibilities
--------------------
- Draw mechanics (handled by GachaService)
- Ownership (handled by EconomyState)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import yaml

from pet_economy.core.exceptions import ConfigurationError
from pet_economy.core.logging.logger import get_logger
from pet_economy.domain.models.base import DomainValidationError
from pet_economy.domain.models.pet import CollectionStats, PetTemplate, Rarity
from pet_economy.modules.shared.exceptions import NotFoundError

if TYPE_CHECKING:
    from pet_economy.modules.ledger.contract import LedgerService

logger = get_logger(__name__)


class CatalogService:
    """
    Immutable template registry.

    Build with `from_yaml`, `from_ledger` or directly from templates.

    Example
    -------
    >>> catalog = CatalogService.from_yaml(Config.CATALOG_PATH)
    >>> catalog.rarity_hit_rate(Rarity.LEGENDARY)
    0.01
    """

    def __init__(
        self,
        templates: Iterable[PetTemplate],
        rarity_order: Optional[Sequence[Rarity]] = None,
    ) -> None:
        self._rarity_order: Tuple[Rarity, ...] = tuple(rarity_order or Rarity)
        templates = list(templates)

        if not templates:
            raise ConfigurationError("catalog", "catalog has no templates")

        by_id: Dict[str, PetTemplate] = {}
        for template in templates:
            if template.id in by_id:
                raise ConfigurationError(
                    "catalog", f"duplicate template id {template.id!r}"
                )
            by_id[template.id] = template

        self._templates: Tuple[PetTemplate, ...] = tuple(
            sorted(
                templates,
                key=lambda t: (self._rarity_order.index(t.rarity), t.name, t.id),
            )
        )
        self._by_id = by_id
        self._by_rarity: Dict[Rarity, Tuple[PetTemplate, ...]] = {
            rarity: tuple(t for t in self._templates if t.rarity is rarity)
            for rarity in self._rarity_order
        }
        self._total_weight = sum(t.draw_weight for t in self._templates)

    # =========================================================================
    # LOADING
    # =========================================================================

    @staticmethod
    def _parse_templates(rows: Iterable[Any], source: str) -> List[PetTemplate]:
        templates = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                raise ConfigurationError(
                    f"{source}[{index}]", "template entry must be a mapping"
                )
            try:
                templates.append(PetTemplate.from_dict(row))
            except DomainValidationError as exc:
                raise ConfigurationError(f"{source}[{index}]", str(exc)) from exc
        return templates

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path],
        rarity_order: Optional[Sequence[Rarity]] = None,
    ) -> "CatalogService":
        """
        Load a catalog file shaped as `{"templates": [ {...}, ... ]}`.

        Raises:
            ConfigurationError: If the file is missing, malformed or invalid
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(str(path), "catalog file not found")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc

        rows = data.get("templates") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise ConfigurationError(str(path), "expected a 'templates' list")

        catalog = cls(cls._parse_templates(rows, "templates"), rarity_order)
        logger.info(
            "Catalog loaded from file",
            extra={"path": str(path), "template_count": len(catalog)},
        )
        return catalog

    @classmethod
    async def from_ledger(
        cls,
        ledger: LedgerService,
        rarity_order: Optional[Sequence[Rarity]] = None,
    ) -> "CatalogService":
        """Load the catalog served by the Ledger Service."""
        templates = await ledger.list_templates()
        catalog = cls(templates, rarity_order)
        logger.info(
            "Catalog loaded from ledger",
            extra={"template_count": len(catalog)},
        )
        return catalog

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._by_id

    @property
    def rarity_order(self) -> Tuple[Rarity, ...]:
        return self._rarity_order

    def by_id(self, template_id: str) -> PetTemplate:
        try:
            return self._by_id[template_id]
        except KeyError:
            raise NotFoundError("PetTemplate", template_id) from None

    def all(self) -> Tuple[PetTemplate, ...]:
        return self._templates

    def by_rarity(self, rarity: Rarity) -> Tuple[PetTemplate, ...]:
        return self._by_rarity.get(rarity, ())

    def rarity_rank(self, rarity: Rarity) -> int:
        return self._rarity_order.index(rarity)

    # =========================================================================
    # PROBABILITIES
    # =========================================================================

    def total_weight(self) -> float:
        return self._total_weight

    def rarity_weight(self, rarity: Rarity) -> float:
        return sum(t.draw_weight for t in self.by_rarity(rarity))

    def rarity_hit_rate(self, rarity: Rarity) -> float:
        """Probability that one gacha draw lands on `rarity`."""
        return self.rarity_weight(rarity) / self._total_weight

    def draw_probability(self, template_id: str) -> float:
        return self.by_id(template_id).draw_weight / self._total_weight

    # =========================================================================
    # COLLECTION
    # =========================================================================

    def collection_stats(self, owned_template_ids: Iterable[str]) -> CollectionStats:
        return CollectionStats.build(self._templates, owned_template_ids)
