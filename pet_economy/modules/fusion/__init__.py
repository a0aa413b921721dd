"""Fusion Engine: four-into-one combines and Quick Combine."""

from pet_economy.modules.fusion.service import (
    FusionResult,
    FusionService,
    GroupFailure,
    QuickCombineReport,
)

__all__ = ["FusionService", "FusionResult", "QuickCombineReport", "GroupFailure"]
