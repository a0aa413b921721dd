"""
Unit tests for ServiceContainer session wiring.
"""

import logging

import httpx
import pytest

from pet_economy.core.config.config import Config
from pet_economy.core.event.bus import EventBus
from pet_economy.core.exceptions import LedgerUnavailableError
from pet_economy.core.services.container import CATALOG_SOURCE_LEDGER, ServiceContainer
from pet_economy.domain.models.pet import Rarity, Wallet
from pet_economy.modules.ledger.http_client import HttpLedgerClient
from pet_economy.modules.shared.random_source import SeededRandomSource
from tests.conftest import OWNER_ID


@pytest.mark.unit
class TestSessionLifecycle:

    async def test_create_with_ledger_catalog(self, ledger, config_manager):
        # Arrange
        ledger.wallets[OWNER_ID] = Wallet(coins=250, food=4)
        ledger.add_unit("ant", count=2)

        # Act
        session = await ServiceContainer.create(
            OWNER_ID,
            ledger=ledger,
            config_manager=config_manager,
            catalog_source=CATALOG_SOURCE_LEDGER,
            rng=SeededRandomSource(3),
        )

        # Assert
        assert len(session.catalog) == 6
        assert session.state.wallet == Wallet(coins=250, food=4)
        assert session.state.unit_for_template("ant").count == 2
        assert session.health_check()["initialized"] is True
        assert session.health_check()["service_count"] == 4

    async def test_engines_share_state_and_guard(self, ledger, catalog, config_manager):
        ledger.wallets[OWNER_ID] = Wallet(coins=1000)

        async with await ServiceContainer.create(
            OWNER_ID,
            ledger=ledger,
            config_manager=config_manager,
            catalog=catalog,
            rng=SeededRandomSource(3),
        ) as session:
            bought = await session.exchange.buy_food(2)
            pulled = await session.gacha.pull(1)

            assert bought.ok and pulled.ok
            assert session.state.wallet.coins == 800
            assert session.state.wallet.food == 2
            assert session.fusion.success_rate(Rarity.COMMON) == 0.50

        assert ledger.call_count("list_templates") == 0
        assert session.health_check()["initialized"] is False

    async def test_bundled_catalog_by_default(self, ledger, config_manager):
        session = await ServiceContainer.create(
            OWNER_ID, ledger=ledger, config_manager=config_manager
        )

        assert len(session.catalog) == 13
        assert ledger.call_count("list_templates") == 0

    async def test_refresh_picks_up_ledger_changes(self, ledger, catalog, config_manager):
        session = await ServiceContainer.create(
            OWNER_ID, ledger=ledger, config_manager=config_manager, catalog=catalog
        )
        ledger.wallets[OWNER_ID] = Wallet(coins=42)

        state = await session.refresh()

        assert state.wallet.coins == 42


@pytest.mark.unit
class TestContainerGuards:

    def make(self, ledger, config_manager, event_bus, **options):
        return ServiceContainer(
            OWNER_ID,
            config_manager,
            event_bus,
            logging.getLogger("tests.container"),
            ledger,
            **options,
        )

    @pytest.mark.parametrize(
        "accessor", ["catalog", "state", "gacha", "fusion", "evolution", "exchange"]
    )
    def test_accessors_require_initialize(self, ledger, config_manager, event_bus, accessor):
        container = self.make(ledger, config_manager, event_bus)

        with pytest.raises(RuntimeError, match="not initialized"):
            getattr(container, accessor)

    def test_unknown_catalog_source(self, ledger, config_manager, event_bus):
        with pytest.raises(ValueError):
            self.make(ledger, config_manager, event_bus, catalog_source="database")

    async def test_shutdown_closes_owned_ledger(self, ledger, catalog, config_manager, event_bus):
        container = self.make(
            ledger, config_manager, event_bus, catalog=catalog, owns_ledger=True
        )
        await container.initialize()

        await container.shutdown()

        assert ledger.closed is True

    async def test_shutdown_leaves_borrowed_ledger_open(self, ledger, catalog, config_manager, event_bus):
        container = self.make(ledger, config_manager, event_bus, catalog=catalog)
        await container.initialize()

        await container.shutdown()

        assert ledger.closed is False

    async def test_failed_initialize_propagates(self, ledger, catalog, config_manager, event_bus):
        ledger.outage_next("get_wallet")
        container = self.make(ledger, config_manager, event_bus, catalog=catalog)

        with pytest.raises(LedgerUnavailableError):
            await container.initialize()

        assert container.health_check()["initialized"] is False

    async def test_catalog_path_comes_from_config(self, ledger, config_manager, tmp_path, mocker):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "templates:\n"
            "  - {id: owl, name: Owl, rarity: common, draw_weight: 5, image_tier1: owl.png}\n"
            "  - {id: yak, name: Yak, rarity: rare, draw_weight: 1, image_tier1: yak.png}\n"
        )
        mocker.patch.object(Config, "CATALOG_PATH", path)
        container = ServiceContainer(
            OWNER_ID,
            config_manager,
            EventBus(),
            logging.getLogger("tests.container"),
            ledger,
        )

        await container.initialize()

        assert [t.id for t in container.catalog.all()] == ["owl", "yak"]

    async def test_health_check_reports_subsystems(self, ledger, catalog, config_manager, event_bus):
        container = self.make(ledger, config_manager, event_bus, catalog=catalog)
        await container.initialize()

        health = container.health_check()

        assert health["in_flight"] == []
        assert health["config"]["output_selection"] == "weighted"
        assert "ledger_api_key_set" in health["environment"]
        assert health["logging"]["initialized"] is True
        assert health["events"]["total_listeners"] == 0

    async def test_create_closes_owned_ledger_when_initialize_fails(
        self, catalog, config_manager, mocker
    ):
        made = []

        def build_client():
            client = HttpLedgerClient(
                base_url="https://ledger.test",
                api_key="secret",
                transport=httpx.MockTransport(lambda request: httpx.Response(503)),
            )
            made.append(client)
            return client

        mocker.patch(
            "pet_economy.core.services.container.HttpLedgerClient", side_effect=build_client
        )

        with pytest.raises(LedgerUnavailableError):
            await ServiceContainer.create(
                OWNER_ID, config_manager=config_manager, catalog=catalog
            )

        assert len(made) == 1
        assert made[0]._client.is_closed
