"""
Pet Economy Domain Constants

Purpose
-------
Fixed rules of the economy that are not balance knobs. Tunable values
(costs, success rates, thresholds, exchange rate) live in
`pet_economy/data/economy.yaml` and are read through ConfigManager.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- Grouped by engine
"""

from __future__ import annotations

from typing import Final, FrozenSet

from pet_economy.domain.models.pet import MAX_TIER, MIN_TIER

# ============================================================================
# GACHA
# ============================================================================

SINGLE_PULL_COUNT: Final[int] = 1
MULTI_PULL_COUNT: Final[int] = 10
ALLOWED_PULL_COUNTS: Final[FrozenSet[int]] = frozenset(
    {SINGLE_PULL_COUNT, MULTI_PULL_COUNT}
)

# ============================================================================
# FUSION
# ============================================================================

FUSION_INPUT_COUNT: Final[int] = 4  # Always exactly 4 surplus copies
OUTPUT_SELECTION_WEIGHTED: Final[str] = "weighted"
OUTPUT_SELECTION_UNIFORM: Final[str] = "uniform"
OUTPUT_SELECTION_POLICIES: Final[FrozenSet[str]] = frozenset(
    {OUTPUT_SELECTION_WEIGHTED, OUTPUT_SELECTION_UNIFORM}
)

# ============================================================================
# EVOLUTION
# ============================================================================

EVOLVABLE_TIERS: Final[tuple] = tuple(range(MIN_TIER, MAX_TIER))  # (1, 2)

# ============================================================================
# ARTWORK
# ============================================================================

ARTWORK_VARIANT_FULL: Final[str] = "full"
ARTWORK_VARIANT_OPTIMIZED: Final[str] = "optimized"
ARTWORK_VARIANT_THUMBNAIL: Final[str] = "thumbnail"

# (width, quality) per variant; `full` is served untransformed
ARTWORK_TRANSFORMS: Final[dict] = {
    ARTWORK_VARIANT_OPTIMIZED: (400, 80),
    ARTWORK_VARIANT_THUMBNAIL: (128, 75),
}

# ============================================================================
# SINGLE-FLIGHT OPERATION KINDS
# ============================================================================

KIND_PULL: Final[str] = "pull"
KIND_FUSE: Final[str] = "fuse"
KIND_FEED: Final[str] = "feed"
KIND_EVOLVE: Final[str] = "evolve"
KIND_EXCHANGE: Final[str] = "exchange"

__all__ = [
    "MIN_TIER",
    "MAX_TIER",
    "SINGLE_PULL_COUNT",
    "MULTI_PULL_COUNT",
    "ALLOWED_PULL_COUNTS",
    "FUSION_INPUT_COUNT",
    "OUTPUT_SELECTION_WEIGHTED",
    "OUTPUT_SELECTION_UNIFORM",
    "OUTPUT_SELECTION_POLICIES",
    "EVOLVABLE_TIERS",
    "ARTWORK_VARIANT_FULL",
    "ARTWORK_VARIANT_OPTIMIZED",
    "ARTWORK_VARIANT_THUMBNAIL",
    "ARTWORK_TRANSFORMS",
    "KIND_PULL",
    "KIND_FUSE",
    "KIND_FEED",
    "KIND_EVOLVE",
    "KIND_EXCHANGE",
]
