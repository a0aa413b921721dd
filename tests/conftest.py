"""
Pytest Configuration and Fixtures for the Pet Economy Tests
===========================================================

Purpose
-------
Shared fixtures for the unit suite: a small deterministic catalog, the
bundled economy configuration, an in-memory ledger, the client-local state
and an event recorder.

Fixture Catalog
---------------
Weights are chosen so the cumulative ranges of one draw are easy to force
with a scripted random value (total weight 100, catalog order):

    ant  common     30   [0.00, 0.30)
    bee  common     30   [0.30, 0.60)
    cat  rare       20   [0.60, 0.80)
    dog  rare       10   [0.80, 0.90)
    eel  epic        9   [0.90, 0.99)
    fox  legendary   1   [0.99, 1.00)

Testing Strategy
----------------
- Unit tests only: no network, no files outside the bundled data
- Engines run against `InMemoryLedger` with a `ScriptedRandomSource`
- AAA pattern (Arrange, Act, Assert)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

import pytest

from pet_economy.core.config.manager import ConfigManager
from pet_economy.core.event.bus import EventBus
from pet_economy.core.logging.logger import get_logger
from pet_economy.domain.models.pet import PetTemplate, Rarity
from pet_economy.modules.catalog.service import CatalogService
from pet_economy.modules.inventory.state import EconomyState
from pet_economy.modules.shared.single_flight import SingleFlightGuard
from tests.fakes import InMemoryLedger

OWNER_ID = "student-1"
TEMPLATE_UPDATED_AT = datetime(2024, 9, 1, 12, 0, tzinfo=timezone.utc)


def make_template(
    template_id: str,
    rarity: Rarity,
    weight: float,
    **extra: Any,
) -> PetTemplate:
    return PetTemplate(
        id=template_id,
        name=template_id.capitalize(),
        rarity=rarity,
        draw_weight=weight,
        image_tier1=extra.pop("image_tier1", f"{rarity.value}/{template_id}-1.png"),
        **extra,
    )


# ============================================================================
# DOMAIN FIXTURES
# ============================================================================


@pytest.fixture
def templates() -> List[PetTemplate]:
    return [
        make_template(
            "ant",
            Rarity.COMMON,
            30,
            image_tier2="common/ant-2.png",
            updated_at=TEMPLATE_UPDATED_AT,
        ),
        make_template("bee", Rarity.COMMON, 30),
        make_template("cat", Rarity.RARE, 20),
        make_template("dog", Rarity.RARE, 10),
        make_template("eel", Rarity.EPIC, 9),
        make_template("fox", Rarity.LEGENDARY, 1),
    ]


@pytest.fixture
def catalog(templates) -> CatalogService:
    return CatalogService(templates)


@pytest.fixture
def config_manager() -> ConfigManager:
    """Bundled defaults: 100/900 pulls, 0.50/0.35/0.25, 10/25 food, 50 coins."""
    return ConfigManager.load()


# ============================================================================
# INFRASTRUCTURE FIXTURES
# ============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_events(event_bus) -> List[Tuple[str, Dict[str, Any]]]:
    """Every event published on `event_bus`, as (name, payload)."""
    events: List[Tuple[str, Dict[str, Any]]] = []

    def recorder(name: str):
        def record(data: Dict[str, Any]) -> None:
            events.append((name, data))

        return record

    for name in (
        "gacha.pulled",
        "fusion.completed",
        "fusion.quick_combine_completed",
        "pet.fed",
        "pet.evolved",
        "exchange.food_purchased",
    ):
        event_bus.subscribe(name, recorder(name))
    return events


@pytest.fixture
def guard() -> SingleFlightGuard:
    return SingleFlightGuard()


@pytest.fixture
def ledger(templates) -> InMemoryLedger:
    return InMemoryLedger(owner_id=OWNER_ID, templates=templates)


@pytest.fixture
def state() -> EconomyState:
    return EconomyState(OWNER_ID)


@pytest.fixture
def engine_kwargs(config_manager, event_bus, guard, catalog, ledger, state) -> Dict[str, Any]:
    """Constructor arguments shared by every engine."""
    return {
        "config_manager": config_manager,
        "event_bus": event_bus,
        "logger": get_logger("tests.engine"),
        "guard": guard,
        "catalog": catalog,
        "ledger": ledger,
        "state": state,
    }
