"""
Unit tests for EvolutionService.

Tests feeding, evolution thresholds, tier monotonicity and per-tier artwork.
"""

import pytest

from pet_economy.core.config.manager import ConfigManager
from pet_economy.domain.models.pet import Wallet
from pet_economy.modules.evolution.artwork import ArtworkUrlBuilder, cache_buster
from pet_economy.modules.evolution.service import EvolutionService
from pet_economy.modules.shared.exceptions import (
    AlreadyMaxTierError,
    InsufficientFoodFedError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from tests.conftest import OWNER_ID, TEMPLATE_UPDATED_AT

CDN = "https://cdn.test/storage/v1"


async def make_evolution(engine_kwargs, ledger, state, *, food=0):
    ledger.wallets[OWNER_ID] = Wallet(coins=0, food=food)
    await state.refresh(ledger)
    return EvolutionService(
        artwork=ArtworkUrlBuilder(base_url=CDN, bucket="pet-images"), **engine_kwargs
    )


@pytest.mark.unit
class TestFeedAndEvolve:
    """Feeding accumulates food; evolving spends the threshold."""

    async def test_threshold_walkthrough(self, engine_kwargs, ledger, state, recorded_events):
        # Arrange: tier 1 needs 20 food in this economy
        engine_kwargs["config_manager"] = ConfigManager.load(
            overrides={"evolution": {"required_food": {1: 20}}}
        )
        ledger.required_food = {1: 20, 2: 25}
        unit = ledger.add_unit("ant")
        evolution = await make_evolution(engine_kwargs, ledger, state, food=20)

        # Act / Assert: 15 of 20 is not enough
        fed = (await evolution.feed(unit.id, 15)).unwrap()
        assert fed.food == 5
        assert fed.unit.food_fed == 15
        assert fed.progress.can_evolve is False
        assert fed.progress.remaining_food == 5

        refused = await evolution.evolve(unit.id)
        assert isinstance(refused.error, InsufficientFoodFedError)
        assert refused.error.details["remaining"] == 5
        assert ledger.call_count("evolve") == 0

        # Act / Assert: topping up unlocks tier 2
        fed = (await evolution.feed(unit.id, 5)).unwrap()
        assert fed.progress.can_evolve is True

        evolved = (await evolution.evolve(unit.id)).unwrap()
        assert evolved.previous_tier == 1
        assert evolved.new_tier == 2
        assert evolved.unit.food_fed == 0
        assert state.get_unit(unit.id).tier == 2
        assert state.wallet.food == 0
        assert [name for name, _ in recorded_events] == [
            "pet.fed", "pet.fed", "pet.evolved",
        ]

    async def test_excess_food_is_forfeited(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("ant")
        evolution = await make_evolution(engine_kwargs, ledger, state, food=30)

        await evolution.feed(unit.id, 30)
        evolved = (await evolution.evolve(unit.id)).unwrap()

        assert evolved.unit.food_fed == 0
        assert evolution.progress(unit.id).remaining_food == 25

    async def test_feeding_never_changes_tier(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("ant", tier=2)
        evolution = await make_evolution(engine_kwargs, ledger, state, food=100)

        for _ in range(4):
            fed = (await evolution.feed(unit.id, 25)).unwrap()
            assert fed.unit.tier == 2

    async def test_tier_three_is_final(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("ant", tier=2, food_fed=25)
        evolution = await make_evolution(engine_kwargs, ledger, state, food=10)

        evolved = (await evolution.evolve(unit.id)).unwrap()
        again = await evolution.evolve(unit.id)
        fed = await evolution.feed(unit.id, 1)

        assert evolved.new_tier == 3
        assert isinstance(again.error, AlreadyMaxTierError)
        assert isinstance(fed.error, AlreadyMaxTierError)
        assert state.wallet.food == 10
        progress = evolution.progress(unit.id)
        assert progress.is_max_tier is True
        assert progress.required_food == 0
        assert progress.can_evolve is False


@pytest.mark.unit
class TestFeedPreconditions:

    @pytest.mark.parametrize("amount", [0, -3, True, 1.5])
    async def test_amount_must_be_positive_int(self, engine_kwargs, ledger, state, amount):
        unit = ledger.add_unit("ant")
        evolution = await make_evolution(engine_kwargs, ledger, state, food=10)

        result = await evolution.feed(unit.id, amount)

        assert isinstance(result.error, ValidationError)
        assert ledger.call_count("feed") == 0

    async def test_unknown_unit(self, engine_kwargs, ledger, state):
        evolution = await make_evolution(engine_kwargs, ledger, state, food=10)

        result = await evolution.feed("missing", 1)

        assert isinstance(result.error, NotFoundError)

    async def test_not_enough_food(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("ant")
        evolution = await make_evolution(engine_kwargs, ledger, state, food=4)

        result = await evolution.feed(unit.id, 5)

        assert isinstance(result.error, InsufficientFundsError)
        assert result.error.error_code == "INSUFFICIENT_FOOD"
        assert ledger.call_count("feed") == 0

    async def test_rejected_feed_keeps_mirror(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("ant")
        evolution = await make_evolution(engine_kwargs, ledger, state, food=10)
        ledger.reject_next("feed", "Not enough food")

        result = await evolution.feed(unit.id, 5)

        assert not result.ok
        assert state.wallet.food == 10
        assert state.get_unit(unit.id).food_fed == 0


@pytest.mark.unit
class TestUnitArtwork:
    """Artwork follows the unit's tier with tier-1 fallback."""

    async def test_tier_one_full_size(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("ant")
        evolution = await make_evolution(engine_kwargs, ledger, state)
        version = cache_buster(TEMPLATE_UPDATED_AT)

        url = evolution.artwork_url(unit.id)

        assert url == f"{CDN}/object/public/pet-images/common/ant-1.png?v={version}"

    async def test_evolved_thumbnail(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("ant", tier=2)
        evolution = await make_evolution(engine_kwargs, ledger, state)
        version = cache_buster(TEMPLATE_UPDATED_AT)

        url = evolution.artwork_url(unit.id, "thumbnail")

        assert url == (
            f"{CDN}/render/image/public/pet-images/common/ant-2.png"
            f"?width=128&quality=75&resize=contain&v={version}"
        )

    async def test_missing_tier_art_falls_back(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("bee", tier=3)
        evolution = await make_evolution(engine_kwargs, ledger, state)

        url = evolution.artwork_url(unit.id, "optimized")

        assert url == (
            f"{CDN}/render/image/public/pet-images/common/bee-1.png"
            "?width=400&quality=80&resize=contain"
        )

    async def test_unknown_variant(self, engine_kwargs, ledger, state):
        unit = ledger.add_unit("bee")
        evolution = await make_evolution(engine_kwargs, ledger, state)

        with pytest.raises(ValidationError):
            evolution.artwork_url(unit.id, "poster")
