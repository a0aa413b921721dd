"""
Fusion Engine: four surplus copies in, one roll, one atomic ledger call.

Purpose
-------
Combine exactly four surplus copies of one rarity into a chance at a pet of
the next rarity. Quick Combine batches every available group of four.

Responsibilities
----------------
- Local validation in a fixed order (count, ownership, rarity, ceiling,
  surplus) before any ledger call
- Success roll against the per-rarity rate table
- Output template choice (weighted like the gacha, or uniform)
- On failure, return one input reference chosen uniformly
- Apply receipts and emit `fusion.completed` /
  `fusion.quick_combine_completed`

Non-Responsibilities
--------------------
- Removing anchor copies: every owned template keeps at least one copy
- Persistence (the ledger applies the outcome)

Rules
-----
- A reference is an owned-unit id; the same id may appear several times,
  up to the unit's surplus (count - 1).
- Quick Combine runs its groups one after another under the `fuse` guard
  and records per-group failures instead of aborting.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple, Union

from pet_economy.core.exceptions import EconomyInfrastructureException
from pet_economy.domain.models.base import DomainValidationError
from pet_economy.domain.models.pet import OwnedUnit, PetTemplate, Rarity
from pet_economy.modules.ledger.contract import FusionOutcome
from pet_economy.modules.shared.base_service import BaseService
from pet_economy.modules.shared.constants import (
    FUSION_INPUT_COUNT,
    KIND_FUSE,
    OUTPUT_SELECTION_UNIFORM,
)
from pet_economy.modules.shared.exceptions import (
    EconomyDomainException,
    InsufficientSurplusError,
    InvalidSelectionCountError,
    MixedRarityError,
    NoHigherRarityError,
    ValidationError,
)
from pet_economy.modules.shared.random_source import (
    RandomSource,
    uniform_choice,
    weighted_choice,
)
from pet_economy.modules.shared.result import OperationResult

if TYPE_CHECKING:
    from logging import Logger

    from pet_economy.core.config.manager import ConfigManager
    from pet_economy.core.event.bus import EventBus
    from pet_economy.modules.catalog.service import CatalogService
    from pet_economy.modules.inventory.state import EconomyState
    from pet_economy.modules.ledger.contract import LedgerService
    from pet_economy.modules.shared.single_flight import SingleFlightGuard

FusionError = Union[EconomyDomainException, EconomyInfrastructureException]


@dataclass(frozen=True)
class FusionResult:
    upgraded: bool
    is_new: bool
    result_template_id: str
    result_rarity: Rarity
    consumed_unit_ids: Tuple[str, ...]
    units: Tuple[OwnedUnit, ...] = field(default_factory=tuple)
    removed_unit_ids: Tuple[str, ...] = field(default_factory=tuple)
    returned_unit_id: Optional[str] = None


@dataclass(frozen=True)
class GroupFailure:
    unit_ids: Tuple[str, ...]
    error: FusionError


@dataclass(frozen=True)
class QuickCombineReport:
    """
    Outcome of one Quick Combine batch.

    `results` and `failures` together cover every planned group; `leftover`
    is the number of surplus references that did not fill a group.
    """

    rarity: Rarity
    groups_planned: int
    results: Tuple[FusionResult, ...] = field(default_factory=tuple)
    failures: Tuple[GroupFailure, ...] = field(default_factory=tuple)
    leftover: int = 0

    @property
    def upgraded_count(self) -> int:
        return sum(1 for result in self.results if result.upgraded)

    @property
    def new_template_ids(self) -> List[str]:
        return [r.result_template_id for r in self.results if r.is_new]


@dataclass(frozen=True)
class _ValidatedSelection:
    rarity: Rarity
    target_rarity: Rarity
    candidates: Tuple[PetTemplate, ...]


class FusionService(BaseService):
    """
    Four-into-one fusion and the Quick Combine batch.

    Usage:
        >>> result = await fusion.fuse(["u1", "u1", "u2", "u3"])
        >>> report = await fusion.quick_combine(Rarity.COMMON)
        >>> report.value.groups_planned
        2
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        guard: SingleFlightGuard,
        catalog: CatalogService,
        ledger: LedgerService,
        state: EconomyState,
        rng: RandomSource,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, guard)
        self._catalog = catalog
        self._ledger = ledger
        self._state = state
        self._rng = rng

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def fuse(self, unit_ids: Sequence[str]) -> OperationResult[FusionResult]:
        return await self._run(
            KIND_FUSE,
            "fuse",
            self._execute_fusion,
            list(unit_ids),
            owner_id=self._state.owner_id,
            unit_ids=list(unit_ids),
        )

    async def quick_combine(
        self, rarity: Union[Rarity, str]
    ) -> OperationResult[QuickCombineReport]:
        return await self._run(
            KIND_FUSE,
            "quick_combine",
            self._quick_combine,
            rarity,
            owner_id=self._state.owner_id,
            rarity=str(getattr(rarity, "value", rarity)),
        )

    def success_rate(self, rarity: Rarity) -> float:
        return self.economy.success_rate(rarity)

    def plan_quick_combine(
        self, rarity: Union[Rarity, str]
    ) -> Tuple[List[List[str]], int]:
        """
        Group the student's surplus references of `rarity` into fours.

        Units are taken in catalog order and each unit's surplus is drained
        before moving to the next.

        Returns:
            (groups, leftover) where leftover < 4 references stay untouched
        """
        rarity = self._coerce_rarity(rarity)
        references: List[str] = []
        for unit in self._state.units_of_rarity(rarity, self._catalog):
            references.extend([unit.id] * unit.surplus)

        usable = len(references) - len(references) % FUSION_INPUT_COUNT
        groups = [
            references[i : i + FUSION_INPUT_COUNT]
            for i in range(0, usable, FUSION_INPUT_COUNT)
        ]
        return groups, len(references) - usable

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @staticmethod
    def _coerce_rarity(rarity: Union[Rarity, str]) -> Rarity:
        if isinstance(rarity, Rarity):
            return rarity
        try:
            return Rarity.from_string(rarity)
        except DomainValidationError as exc:
            raise ValidationError("rarity", str(exc)) from exc

    def _target_rarity(self, rarity: Rarity) -> Tuple[Rarity, Tuple[PetTemplate, ...]]:
        target = self.economy.next_rarity(rarity)
        candidates = self._catalog.by_rarity(target) if target is not None else ()
        if target is None or not candidates:
            raise NoHigherRarityError(rarity.value)
        return target, candidates

    def _validate_selection(self, unit_ids: List[str]) -> _ValidatedSelection:
        if len(unit_ids) != FUSION_INPUT_COUNT:
            raise InvalidSelectionCountError(FUSION_INPUT_COUNT, len(unit_ids))

        units = {unit_id: self._state.get_unit(unit_id) for unit_id in unit_ids}

        rarities = {
            self._catalog.by_id(unit.pet_template_id).rarity for unit in units.values()
        }
        if len(rarities) > 1:
            raise MixedRarityError(
                [r.value for r in sorted(rarities, key=self.economy.rarity_rank)]
            )
        rarity = rarities.pop()

        target, candidates = self._target_rarity(rarity)

        for unit_id, requested in Counter(unit_ids).items():
            surplus = units[unit_id].surplus
            if requested > surplus:
                raise InsufficientSurplusError(unit_id, requested, surplus)

        return _ValidatedSelection(rarity, target, candidates)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def _choose_output(self, candidates: Tuple[PetTemplate, ...]) -> PetTemplate:
        if self.economy.output_selection == OUTPUT_SELECTION_UNIFORM:
            return uniform_choice(self._rng, candidates)
        return weighted_choice(
            self._rng, candidates, lambda template: template.draw_weight
        )

    async def _execute_fusion(self, unit_ids: List[str]) -> FusionResult:
        selection = self._validate_selection(unit_ids)
        owner_id = self._state.owner_id

        roll = self._rng.random()
        success = roll < self.economy.success_rate(selection.rarity)

        if success:
            output = self._choose_output(selection.candidates)
            outcome = FusionOutcome(success=True, output_template_id=output.id)
            is_new = not self._state.owns_template(output.id)
            result_template_id = output.id
            result_rarity = selection.target_rarity
        else:
            returned_unit_id = uniform_choice(self._rng, unit_ids)
            outcome = FusionOutcome(success=False, returned_unit_id=returned_unit_id)
            is_new = False
            result_template_id = self._state.get_unit(returned_unit_id).pet_template_id
            result_rarity = selection.rarity

        receipt = await self._ledger.fuse(owner_id, unit_ids, outcome)

        self._state.remove_units(receipt.removed_unit_ids)
        self._state.apply_units(receipt.units)

        result = FusionResult(
            upgraded=success,
            is_new=is_new,
            result_template_id=result_template_id,
            result_rarity=result_rarity,
            consumed_unit_ids=tuple(unit_ids),
            units=receipt.units,
            removed_unit_ids=receipt.removed_unit_ids,
            returned_unit_id=outcome.returned_unit_id,
        )

        self.log_operation(
            "fuse",
            input_rarity=selection.rarity.value,
            upgraded=success,
            roll=round(roll, 4),
            result_template_id=result_template_id,
        )
        await self.emit_event(
            "fusion.completed",
            {
                "owner_id": owner_id,
                "input_rarity": selection.rarity.value,
                "upgraded": success,
                "is_new": is_new,
                "result_template_id": result_template_id,
                "result_rarity": result_rarity.value,
                "consumed_unit_ids": list(unit_ids),
            },
        )
        return result

    async def _quick_combine(self, rarity: Union[Rarity, str]) -> QuickCombineReport:
        rarity = self._coerce_rarity(rarity)
        self._target_rarity(rarity)

        groups, leftover = self.plan_quick_combine(rarity)
        results: List[FusionResult] = []
        failures: List[GroupFailure] = []

        for group in groups:
            try:
                results.append(await self._execute_fusion(group))
            except (EconomyDomainException, EconomyInfrastructureException) as exc:
                self.log_error("quick_combine", exc, unit_ids=group)
                failures.append(GroupFailure(tuple(group), exc))

        report = QuickCombineReport(
            rarity=rarity,
            groups_planned=len(groups),
            results=tuple(results),
            failures=tuple(failures),
            leftover=leftover,
        )

        self.log_operation(
            "quick_combine",
            rarity=rarity.value,
            groups_planned=report.groups_planned,
            completed=len(report.results),
            failed=len(report.failures),
            leftover=leftover,
        )
        await self.emit_event(
            "fusion.quick_combine_completed",
            {
                "owner_id": self._state.owner_id,
                "rarity": rarity.value,
                "groups_planned": report.groups_planned,
                "completed": len(report.results),
                "failed": len(report.failures),
                "upgraded": report.upgraded_count,
                "leftover": leftover,
            },
        )
        return report
