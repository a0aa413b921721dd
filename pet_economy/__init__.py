"""
Collectible pet economy engine.

Weighted gacha pulls, duplicate-tracked inventory, probabilistic fusion,
feed-to-evolve progression and a coin to food exchange, all settled through
an external Ledger Service.
"""

__version__ = "0.1.0"
