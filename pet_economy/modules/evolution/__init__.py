"""Evolution Engine: feeding, tier-ups and per-tier artwork."""

from pet_economy.modules.evolution.artwork import ArtworkUrlBuilder, cache_buster
from pet_economy.modules.evolution.service import (
    EvolutionService,
    EvolveResult,
    FeedResult,
)

__all__ = [
    "EvolutionService",
    "FeedResult",
    "EvolveResult",
    "ArtworkUrlBuilder",
    "cache_buster",
]
