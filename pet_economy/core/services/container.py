"""
Service Container
=================

Purpose
-------
Wires one student's economy session: configuration, event bus, Ledger
Service client, catalog, client-local state, single-flight guard, random
source and the four engines.

Responsibilities
----------------
- Build every engine with the shared collaborators
- Load the catalog (YAML file or Ledger Service) and the first state snapshot
- Own the ledger client's lifecycle when it created the client
- Minimal observability (init timing + health snapshot)

Non-Responsibilities
--------------------
- Business rules (engines)
- Transport details (HttpLedgerClient)

Architecture Notes
------------------
- Engines share one `SingleFlightGuard` and one `EconomyState`, so a pull
  and a fusion see the same wallet and never run twice concurrently per kind.
- All engines follow the constructor pattern
  (config_manager, event_bus, logger, guard, ...collaborators).
"""

from __future__ import annotations

import time
from dataclasses import asdict
from typing import TYPE_CHECKING, Any, Dict, Optional

from pet_economy.core.config.config import Config
from pet_economy.core.config.manager import ConfigManager
from pet_economy.core.event.bus import EventBus
from pet_economy.core.logging.logger import get_logger, get_logging_health
from pet_economy.modules.catalog.service import CatalogService
from pet_economy.modules.evolution.artwork import ArtworkUrlBuilder
from pet_economy.modules.evolution.service import EvolutionService
from pet_economy.modules.exchange.service import ExchangeService
from pet_economy.modules.fusion.service import FusionService
from pet_economy.modules.gacha.service import GachaService
from pet_economy.modules.inventory.state import EconomyState
from pet_economy.modules.ledger.http_client import HttpLedgerClient
from pet_economy.modules.shared.random_source import RandomSource, SystemRandomSource
from pet_economy.modules.shared.single_flight import SingleFlightGuard

if TYPE_CHECKING:
    from logging import Logger

    from pet_economy.modules.ledger.contract import LedgerService

CATALOG_SOURCE_FILE = "file"
CATALOG_SOURCE_LEDGER = "ledger"

_NOT_INITIALIZED = "ServiceContainer not initialized. Call initialize() first."


class ServiceContainer:
    """
    One student's economy session.

    Usage:
        async with await ServiceContainer.create("student-1") as session:
            result = await session.gacha.pull(1)
    """

    def __init__(
        self,
        owner_id: str,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        ledger: LedgerService,
        *,
        catalog: Optional[CatalogService] = None,
        catalog_source: str = CATALOG_SOURCE_FILE,
        rng: Optional[RandomSource] = None,
        artwork: Optional[ArtworkUrlBuilder] = None,
        owns_ledger: bool = False,
    ) -> None:
        if catalog_source not in (CATALOG_SOURCE_FILE, CATALOG_SOURCE_LEDGER):
            raise ValueError(f"Unknown catalog source {catalog_source!r}")

        self.owner_id = owner_id
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger
        self._ledger = ledger
        self._owns_ledger = owns_ledger
        self._catalog_source = catalog_source
        self._rng: RandomSource = rng or SystemRandomSource()
        self._artwork = artwork

        self._catalog: Optional[CatalogService] = catalog
        self._state: Optional[EconomyState] = None
        self._guard = SingleFlightGuard()

        self._gacha: Optional[GachaService] = None
        self._fusion: Optional[FusionService] = None
        self._evolution: Optional[EvolutionService] = None
        self._exchange: Optional[ExchangeService] = None

        self._initialized = False
        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    @classmethod
    async def create(
        cls,
        owner_id: str,
        *,
        ledger: Optional[LedgerService] = None,
        config_manager: Optional[ConfigManager] = None,
        event_bus: Optional[EventBus] = None,
        **options: Any,
    ) -> "ServiceContainer":
        """Build and initialize a session from environment configuration."""
        container = cls(
            owner_id,
            config_manager or ConfigManager.load(),
            event_bus or EventBus(),
            get_logger(f"{__name__}.ServiceContainer"),
            ledger or HttpLedgerClient(),
            owns_ledger=ledger is None,
            **options,
        )
        try:
            await container.initialize()
        except BaseException:
            await container.shutdown()
            raise
        return container

    async def __aenter__(self) -> "ServiceContainer":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info(
            "Economy session starting",
            extra={"owner_id": self.owner_id, "catalog_source": self._catalog_source},
        )

        try:
            if self._catalog is None:
                self._catalog = await self._load_catalog()

            self._state = EconomyState(self.owner_id)
            await self._state.refresh(self._ledger)

            shared = {"catalog": self._catalog, "ledger": self._ledger, "state": self._state}
            self._gacha = self._create_service("gacha", GachaService, rng=self._rng, **shared)
            self._fusion = self._create_service("fusion", FusionService, rng=self._rng, **shared)
            self._evolution = self._create_service(
                "evolution", EvolutionService, artwork=self._artwork, **shared
            )
            self._exchange = self._create_service(
                "exchange", ExchangeService, ledger=self._ledger, state=self._state
            )
        except Exception as e:
            self._logger.critical(
                "Economy session initialization failed",
                exc_info=True,
                extra={"owner_id": self.owner_id, "error": str(e)},
            )
            raise

        self._init_end = time.perf_counter()
        self._initialized = True
        self._logger.info(
            "Economy session ready",
            extra={
                "owner_id": self.owner_id,
                "total_time_seconds": round(self._init_end - self._init_start, 3),
                "template_count": len(self._catalog),
                "unit_count": len(self._state.units),
            },
        )

    async def _load_catalog(self) -> CatalogService:
        rarity_order = self._config_manager.economy.rarity_order
        if self._catalog_source == CATALOG_SOURCE_LEDGER:
            return await CatalogService.from_ledger(self._ledger, rarity_order)
        return CatalogService.from_yaml(Config.CATALOG_PATH, rarity_order)

    def _create_service(self, name: str, cls: type, **dependencies: Any) -> Any:
        start = time.perf_counter()
        try:
            instance = cls(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
                guard=self._guard,
                **dependencies,
            )
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    async def refresh(self) -> EconomyState:
        """Re-sync wallet and inventory from the ledger."""
        await self.state.refresh(self._ledger)
        return self.state

    async def shutdown(self) -> None:
        if self._owns_ledger:
            await self._ledger.aclose()
        if not self._initialized:
            return
        self._initialized = False
        self._logger.info("Economy session closed", extra={"owner_id": self.owner_id})

    def health_check(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "owner_id": self.owner_id,
            "service_count": len(self._service_init_times),
            "in_flight": sorted(self._guard.in_flight),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
            "config": self._config_manager.health_snapshot(),
            "environment": Config.get_config_summary(),
            "logging": asdict(get_logging_health()),
            "events": self._event_bus.get_metrics_summary(),
        }

    # ========================================================================
    # Accessors
    # ========================================================================

    def _require(self, value: Any) -> Any:
        if not self._initialized or value is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return value

    @property
    def config_manager(self) -> ConfigManager:
        return self._config_manager

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def catalog(self) -> CatalogService:
        return self._require(self._catalog)

    @property
    def state(self) -> EconomyState:
        return self._require(self._state)

    @property
    def gacha(self) -> GachaService:
        return self._require(self._gacha)

    @property
    def fusion(self) -> FusionService:
        return self._require(self._fusion)

    @property
    def evolution(self) -> EvolutionService:
        return self._require(self._evolution)

    @property
    def exchange(self) -> ExchangeService:
        return self._require(self._exchange)
