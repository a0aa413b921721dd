"""Gacha Engine: weighted-random pulls."""

from pet_economy.modules.gacha.service import DrawnPet, GachaService, PullResult

__all__ = ["GachaService", "PullResult", "DrawnPet"]
