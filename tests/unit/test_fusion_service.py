"""
Unit tests for FusionService.

Tests validation order, success and failure outcomes, anchor protection,
copy conservation, success-rate calibration and Quick Combine batching.
"""

import pytest

from pet_economy.core.config.manager import ConfigManager
from pet_economy.core.exceptions import LedgerUnavailableError
from pet_economy.domain.models.pet import Rarity
from pet_economy.modules.catalog.service import CatalogService
from pet_economy.modules.fusion.service import FusionService
from pet_economy.modules.shared.exceptions import (
    InsufficientSurplusError,
    InvalidSelectionCountError,
    MixedRarityError,
    NoHigherRarityError,
    NotFoundError,
    OperationInProgressError,
    TransactionRejectedError,
    ValidationError,
)
from pet_economy.modules.shared.random_source import SeededRandomSource
from tests.fakes import ScriptedRandomSource


async def make_fusion(engine_kwargs, state, ledger, rng):
    await state.refresh(ledger)
    return FusionService(rng=rng, **engine_kwargs)


# ============================================================================
# SINGLE FUSION
# ============================================================================


@pytest.mark.unit
class TestFusionOutcomes:
    """Forced success and failure through the scripted random source."""

    async def test_success_consumes_four_and_creates_output(
        self, engine_kwargs, state, ledger, recorded_events
    ):
        # Arrange: roll 0.10 < 0.50; output 0.50 of rare weight 30 -> cat
        ant = ledger.add_unit("ant", count=5)
        rng = ScriptedRandomSource(randoms=[0.10, 0.50])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)
        before = ledger.total_copies()

        # Act
        result = await fusion.fuse([ant.id] * 4)

        # Assert
        fused = result.unwrap()
        assert fused.upgraded is True
        assert fused.is_new is True
        assert fused.result_template_id == "cat"
        assert fused.result_rarity is Rarity.RARE
        assert fused.returned_unit_id is None
        assert state.get_unit(ant.id).count == 1
        assert state.unit_for_template("cat").count == 1
        assert before - ledger.total_copies() == 3
        assert rng.exhausted
        assert recorded_events[-1][0] == "fusion.completed"
        assert recorded_events[-1][1]["upgraded"] is True

    async def test_failure_returns_one_reference(self, engine_kwargs, state, ledger):
        # Arrange: roll 0.90 >= 0.50; returned reference index 2 (a bee)
        ant = ledger.add_unit("ant", count=3)
        bee = ledger.add_unit("bee", count=3)
        rng = ScriptedRandomSource(randoms=[0.90], ranges=[2])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)
        before = ledger.total_copies()

        # Act
        fused = (await fusion.fuse([ant.id, ant.id, bee.id, bee.id])).unwrap()

        # Assert
        assert fused.upgraded is False
        assert fused.is_new is False
        assert fused.returned_unit_id == bee.id
        assert fused.result_template_id == "bee"
        assert fused.result_rarity is Rarity.COMMON
        assert state.get_unit(ant.id).count == 1
        assert state.get_unit(bee.id).count == 2
        assert state.unit_for_template("cat") is None
        assert state.unit_for_template("dog") is None
        assert before - ledger.total_copies() == 3

    async def test_success_into_owned_template_is_not_new(self, engine_kwargs, state, ledger):
        ant = ledger.add_unit("ant", count=5)
        ledger.add_unit("cat")
        rng = ScriptedRandomSource(randoms=[0.0, 0.0])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)

        fused = (await fusion.fuse([ant.id] * 4)).unwrap()

        assert fused.result_template_id == "cat"
        assert fused.is_new is False
        assert state.unit_for_template("cat").count == 2

    async def test_roll_equal_to_rate_fails(self, engine_kwargs, state, ledger):
        ant = ledger.add_unit("ant", count=5)
        rng = ScriptedRandomSource(randoms=[0.50], ranges=[0])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)

        fused = (await fusion.fuse([ant.id] * 4)).unwrap()

        assert fused.upgraded is False

    async def test_uniform_output_selection(self, engine_kwargs, state, ledger):
        # Arrange: uniform picks by index, 1 -> dog despite its lower weight
        engine_kwargs["config_manager"] = ConfigManager.load(
            overrides={"fusion": {"output_selection": "uniform"}}
        )
        ant = ledger.add_unit("ant", count=5)
        rng = ScriptedRandomSource(randoms=[0.10], ranges=[1])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)

        fused = (await fusion.fuse([ant.id] * 4)).unwrap()

        assert fused.result_template_id == "dog"

    async def test_ledger_rejection_leaves_state_unchanged(self, engine_kwargs, state, ledger):
        ant = ledger.add_unit("ant", count=5)
        ledger.reject_next("fuse", "Not enough duplicates")
        rng = ScriptedRandomSource(randoms=[0.10, 0.10])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)

        result = await fusion.fuse([ant.id] * 4)

        assert isinstance(result.error, TransactionRejectedError)
        assert state.get_unit(ant.id).count == 5
        assert state.unit_for_template("cat") is None


@pytest.mark.unit
class TestFusionValidation:
    """Local checks run in a fixed order and never call the ledger."""

    async def test_wrong_count_checked_before_ownership(self, engine_kwargs, state, ledger):
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.fuse(["nope", "nope", "nope"])

        assert isinstance(result.error, InvalidSelectionCountError)
        assert result.error.details == {"expected": 4, "actual": 3}

    async def test_unknown_unit(self, engine_kwargs, state, ledger):
        ant = ledger.add_unit("ant", count=5)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.fuse([ant.id, ant.id, ant.id, "missing"])

        assert isinstance(result.error, NotFoundError)

    async def test_mixed_rarity_checked_before_surplus(self, engine_kwargs, state, ledger):
        # Arrange: cat has no surplus at all, but rarity is checked first
        ant = ledger.add_unit("ant", count=5)
        cat = ledger.add_unit("cat", count=1)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.fuse([ant.id, ant.id, ant.id, cat.id])

        assert isinstance(result.error, MixedRarityError)
        assert result.error.rarities == ["common", "rare"]

    async def test_legendary_cannot_fuse(self, engine_kwargs, state, ledger):
        fox = ledger.add_unit("fox", count=5)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.fuse([fox.id] * 4)

        assert isinstance(result.error, NoHigherRarityError)

    async def test_empty_next_rarity_cannot_fuse(self, engine_kwargs, state, ledger, templates):
        # Arrange: catalog without epics
        engine_kwargs["catalog"] = CatalogService(
            [t for t in templates if t.rarity is not Rarity.EPIC]
        )
        cat = ledger.add_unit("cat", count=5)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.fuse([cat.id] * 4)

        assert isinstance(result.error, NoHigherRarityError)
        assert result.error.rarity == "rare"

    async def test_anchor_copy_is_protected(self, engine_kwargs, state, ledger):
        # Arrange: count 3 means only 2 fusable copies
        ant = ledger.add_unit("ant", count=3)
        bee = ledger.add_unit("bee", count=5)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.fuse([ant.id, ant.id, ant.id, bee.id])

        assert isinstance(result.error, InsufficientSurplusError)
        assert result.error.details == {"unit_id": ant.id, "requested": 3, "surplus": 2}
        assert ledger.call_count("fuse") == 0

    async def test_single_copy_unit_cannot_be_referenced(self, engine_kwargs, state, ledger):
        ant = ledger.add_unit("ant", count=1)
        bee = ledger.add_unit("bee", count=5)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.fuse([bee.id, bee.id, bee.id, ant.id])

        assert isinstance(result.error, InsufficientSurplusError)
        assert state.get_unit(ant.id).count == 1


@pytest.mark.unit
class TestFusionCalibration:
    """Seeded rolls converge on the configured success rates."""

    @pytest.mark.parametrize(
        "template_id, expected_rate",
        [("ant", 0.50), ("cat", 0.35), ("eel", 0.25)],
    )
    async def test_success_rate(self, engine_kwargs, state, ledger, template_id, expected_rate):
        # Arrange
        trials = 10_000
        unit = ledger.add_unit(template_id, count=4 * trials + 1)
        fusion = await make_fusion(engine_kwargs, state, ledger, SeededRandomSource(7))

        # Act
        successes = 0
        for _ in range(trials):
            successes += (await fusion.fuse([unit.id] * 4)).unwrap().upgraded

        # Assert
        assert abs(successes / trials - expected_rate) <= 0.02

    def test_success_rate_lookup(self, engine_kwargs):
        fusion = FusionService(rng=SeededRandomSource(1), **engine_kwargs)

        assert fusion.success_rate(Rarity.COMMON) == 0.50
        assert fusion.success_rate(Rarity.LEGENDARY) == 0.0


# ============================================================================
# QUICK COMBINE
# ============================================================================


@pytest.mark.unit
class TestQuickCombine:
    """Batch planning and sequential execution."""

    async def test_nine_surplus_make_two_groups(self, engine_kwargs, state, ledger, recorded_events):
        # Arrange: ant surplus 5 + bee surplus 4 = 9 references
        ant = ledger.add_unit("ant", count=6)
        bee = ledger.add_unit("bee", count=5)
        # group 1 succeeds into cat; group 2 fails and returns reference 0 (ant)
        rng = ScriptedRandomSource(randoms=[0.10, 0.10, 0.90], ranges=[0])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)

        # Act
        report = (await fusion.quick_combine(Rarity.COMMON)).unwrap()

        # Assert
        assert report.groups_planned == 2
        assert len(report.results) == 2
        assert report.failures == ()
        assert report.leftover == 1
        assert report.upgraded_count == 1
        assert report.new_template_ids == ["cat"]
        assert ledger.call_count("fuse") == 2
        assert ledger.calls[-2][1]["consumed_unit_ids"] == [ant.id] * 4
        assert ledger.calls[-1][1]["consumed_unit_ids"] == [ant.id, bee.id, bee.id, bee.id]
        assert state.get_unit(ant.id).count == 2
        assert state.get_unit(bee.id).count == 2
        assert recorded_events[-1][0] == "fusion.quick_combine_completed"
        assert recorded_events[-1][1]["leftover"] == 1

    @pytest.mark.parametrize(
        "ant_surplus, bee_surplus",
        [(0, 0), (1, 2), (2, 2), (4, 4), (6, 7)],
        ids=["k0", "k3", "k4", "k8", "k13"],
    )
    async def test_group_count_and_leftover_follow_total_surplus(
        self, engine_kwargs, state, ledger, ant_surplus, bee_surplus
    ):
        ant = ledger.add_unit("ant", count=ant_surplus + 1)
        bee = ledger.add_unit("bee", count=bee_surplus + 1)
        fusion = await make_fusion(engine_kwargs, state, ledger, SeededRandomSource(11))
        total = ant_surplus + bee_surplus

        report = (await fusion.quick_combine(Rarity.COMMON)).unwrap()

        assert report.groups_planned == total // 4
        assert len(report.results) == total // 4
        assert report.failures == ()
        assert report.leftover == total % 4
        assert ledger.call_count("fuse") == total // 4
        consumed = [
            unit_id
            for name, payload in ledger.calls
            if name == "fuse"
            for unit_id in payload["consumed_unit_ids"]
        ]
        assert consumed.count(ant.id) <= ant_surplus
        assert consumed.count(bee.id) <= bee_surplus
        assert state.get_unit(ant.id).count >= 1
        assert state.get_unit(bee.id).count >= 1

    def test_plan_drains_units_in_catalog_order(self, engine_kwargs, ledger, state):
        bee = ledger.add_unit("bee", count=3)
        ant = ledger.add_unit("ant", count=4)
        state.apply_units(ledger.units_of())
        fusion = FusionService(rng=ScriptedRandomSource(), **engine_kwargs)

        groups, leftover = fusion.plan_quick_combine("common")

        assert groups == [[ant.id, ant.id, ant.id, bee.id]]
        assert leftover == 1

    async def test_group_failure_does_not_abort_batch(self, engine_kwargs, state, ledger):
        ant = ledger.add_unit("ant", count=9)
        ledger.reject_next("fuse", "Not enough duplicates")
        rng = ScriptedRandomSource(randoms=[0.10, 0.10, 0.10, 0.10])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)

        report = (await fusion.quick_combine(Rarity.COMMON)).unwrap()

        assert report.groups_planned == 2
        assert len(report.failures) == 1
        assert isinstance(report.failures[0].error, TransactionRejectedError)
        assert report.failures[0].unit_ids == (ant.id,) * 4
        assert len(report.results) == 1
        assert state.get_unit(ant.id).count == 5

    async def test_outage_recorded_per_group(self, engine_kwargs, state, ledger):
        ledger.add_unit("ant", count=5)
        ledger.outage_next("fuse")
        rng = ScriptedRandomSource(randoms=[0.10, 0.10])
        fusion = await make_fusion(engine_kwargs, state, ledger, rng)

        report = (await fusion.quick_combine(Rarity.COMMON)).unwrap()

        assert isinstance(report.failures[0].error, LedgerUnavailableError)
        assert report.results == ()

    async def test_nothing_to_combine(self, engine_kwargs, state, ledger):
        ledger.add_unit("ant", count=3)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        report = (await fusion.quick_combine(Rarity.COMMON)).unwrap()

        assert report.groups_planned == 0
        assert report.leftover == 2
        assert ledger.call_count("fuse") == 0

    async def test_legendary_rejected(self, engine_kwargs, state, ledger):
        ledger.add_unit("fox", count=9)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.quick_combine(Rarity.LEGENDARY)

        assert isinstance(result.error, NoHigherRarityError)
        assert ledger.call_count("fuse") == 0

    async def test_unknown_rarity_name(self, engine_kwargs, state, ledger):
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        result = await fusion.quick_combine("mythic")

        assert isinstance(result.error, ValidationError)

    async def test_holds_fuse_guard(self, engine_kwargs, state, ledger, guard):
        ledger.add_unit("ant", count=5)
        fusion = await make_fusion(engine_kwargs, state, ledger, ScriptedRandomSource())

        async with guard.hold("fuse"):
            result = await fusion.quick_combine(Rarity.COMMON)

        assert isinstance(result.error, OperationInProgressError)
        assert ledger.call_count("fuse") == 0
