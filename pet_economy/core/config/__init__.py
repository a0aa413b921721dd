"""
Configuration subsystem for the pet economy engine.

- config.Config: static settings from environment variables (.env supported)
- manager.ConfigManager: validated economy tables loaded from YAML
- economy.EconomyConfig: frozen snapshot of the tables handed to engines

Only the static settings are re-exported here; the logging subsystem reads
them at import time, so this package must not pull in modules that log.
"""

from pet_economy.core.config.config import Config, Environment

__all__ = [
    "Config",
    "Environment",
]
