"""
Economy configuration management backed by YAML.

Purpose
-------
Load the economy balance tables once per session: the bundled defaults in
`pet_economy/data/economy.yaml`, deep-merged with an optional override file
and optional in-memory overrides, validated, then frozen.

Responsibilities
----------------
- Hierarchical config access with dot notation (e.g. "gacha.single_pull_cost")
- Deep-merge of override sources on top of bundled defaults
- Validation via `pet_economy.core.config.validator`
- Expose the frozen `EconomyConfig` snapshot used by engines

Non-Responsibilities
--------------------
- Environment settings (handled by Config)
- Live reloads: a ConfigManager is immutable after load

Usage
-----
>>> manager = ConfigManager.load()
>>> manager.get("gacha.single_pull_cost")
100
>>> manager.economy.success_rate(Rarity.COMMON)
0.5
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Union

import yaml

from pet_economy.core.config.config import Config
from pet_economy.core.config.economy import EconomyConfig
from pet_economy.core.config.validator import build_economy_config
from pet_economy.core.exceptions import ConfigurationError
from pet_economy.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConfigManager:
    """
    Immutable, validated view over the merged economy YAML.

    Build instances with `ConfigManager.load()`; the constructor expects an
    already-merged tree.
    """

    DEFAULTS_FILENAME = "economy.yaml"

    def __init__(self, data: Mapping[str, Any], sources: Optional[List[str]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(dict(data))
        self._sources: List[str] = list(sources or [])
        self._economy: EconomyConfig = build_economy_config(self._data)

    # =========================================================================
    # LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, Mapping) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ConfigurationError(str(path), "configuration file not found")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                str(path), f"root must be a mapping, got {type(data).__name__}"
            )
        return data

    @classmethod
    def load(
        cls,
        override_path: Union[str, Path, None] = None,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "ConfigManager":
        """
        Load bundled defaults, merge overrides, validate and freeze.

        Parameters
        ----------
        override_path:
            YAML file merged over the defaults. Falls back to
            `Config.ECONOMY_CONFIG_PATH` when not given.
        overrides:
            In-memory tree merged last (handy in tests).

        Raises
        ------
        ConfigurationError
            If a file is missing or malformed, or the merged tree is invalid.
        """
        defaults_path = Config.DATA_DIR / cls.DEFAULTS_FILENAME
        merged = cls._read_yaml(defaults_path)
        sources = [str(defaults_path)]

        path = override_path if override_path is not None else Config.ECONOMY_CONFIG_PATH
        if path is not None:
            path = Path(path)
            cls._deep_merge_dict(merged, cls._read_yaml(path))
            sources.append(str(path))

        if overrides:
            cls._deep_merge_dict(merged, overrides)
            sources.append("<overrides>")

        try:
            manager = cls(merged, sources)
        except ConfigurationError as exc:
            logger.error(
                "Economy configuration rejected",
                extra={
                    "sources": sources,
                    "config_key": exc.config_key,
                    "reason": exc.details["message"],
                },
            )
            raise

        logger.info(
            "Economy configuration loaded",
            extra={
                "sources": sources,
                "output_selection": manager.economy.output_selection,
            },
        )
        return manager

    # =========================================================================
    # ACCESS
    # =========================================================================

    @property
    def economy(self) -> EconomyConfig:
        return self._economy

    @property
    def sources(self) -> List[str]:
        return list(self._sources)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Returns a copy for container values so callers cannot mutate the
        loaded tree.

        Examples
        --------
        >>> manager.get("exchange.coins_per_food")
        50
        >>> manager.get("missing.key", 7)
        7
        """
        value: Any = self._data
        for part in key.split("."):
            if not isinstance(value, dict):
                return default
            found = value.get(part, _MISSING)
            if found is _MISSING and part.isdigit():
                # YAML parses bare numeric keys (tiers) as ints
                found = value.get(int(part), _MISSING)
            if found is _MISSING:
                return default
            value = found
        if value is None:
            return default
        return copy.deepcopy(value)

    def get_all_keys(self) -> List[str]:
        """Return all top-level configuration keys."""
        return list(self._data.keys())

    def health_snapshot(self) -> Dict[str, Any]:
        return {
            "sources": self.sources,
            "top_level_keys": self.get_all_keys(),
            "output_selection": self._economy.output_selection,
        }
