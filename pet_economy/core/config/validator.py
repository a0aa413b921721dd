"""
Configuration validation for the economy balance tables.

Purpose
-------
Reject an inconsistent economy configuration at load time, before any
engine runs. Two layers run in order:

1. Structural: recursive `ConfigSchema` type checks per top-level key.
2. Semantic: cross-field rules the types cannot express.

Key Validation Rules
--------------------
- `rarity_order` lists every rarity exactly once.
- Fusion success rates exist for every rarity below the top, lie in (0, 1]
  and strictly decrease along `rarity_order`.
- `fusion.output_selection` is "weighted" or "uniform".
- Pull costs are positive and ten draws cost less than ten single pulls.
- Every evolvable tier has a positive food threshold.
- The exchange rate is a positive integer.

Errors
------
All failures raise `ConfigurationError` with the dot-notation key at fault.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Union

from pet_economy.core.config.economy import EconomyConfig
from pet_economy.core.exceptions import ConfigurationError
from pet_economy.domain.models.base import DomainValidationError
from pet_economy.domain.models.pet import Rarity
from pet_economy.modules.shared.constants import (
    EVOLVABLE_TIERS,
    MULTI_PULL_COUNT,
    OUTPUT_SELECTION_POLICIES,
)


SchemaField = Union[type, "ConfigSchema"]


@dataclass
class ConfigSchema:
    """
    Recursive schema for nested configuration validation.

    Examples
    --------
    >>> schema = ConfigSchema(fields={"count": int, "rate": float})
    >>> schema.validate({"count": 10, "rate": 0.5})
    {'count': 10, 'rate': 0.5}
    """

    fields: Mapping[str, SchemaField]
    allow_extra: bool = True

    def validate(self, value: Any, path: str = "") -> Any:
        if not isinstance(value, Mapping):
            raise ConfigurationError(
                path or "<root>", f"must be a mapping; got {type(value).__name__}"
            )

        for key, expected in self.fields.items():
            full_path = f"{path}.{key}" if path else key

            # Missing fields are allowed (sparse configs)
            if key not in value:
                continue

            raw = value[key]

            if isinstance(expected, ConfigSchema):
                expected.validate(raw, path=full_path)
                continue

            if expected is float and isinstance(raw, int) and not isinstance(raw, bool):
                continue

            if isinstance(raw, bool) and expected is not bool:
                raise ConfigurationError(
                    full_path, f"must be {expected.__name__}; got bool"
                )

            if not isinstance(raw, expected):
                raise ConfigurationError(
                    full_path, f"must be {expected.__name__}; got {type(raw).__name__}"
                )

        if not self.allow_extra:
            unknown_keys = set(value.keys()) - set(self.fields.keys())
            if unknown_keys:
                unknown_list = ", ".join(sorted(str(k) for k in unknown_keys))
                raise ConfigurationError(
                    path or "<root>", f"unexpected keys: {unknown_list}"
                )

        return value


# ============================================================================
# Schema Registry
# ============================================================================

_SCHEMAS: Dict[str, SchemaField] = {
    "rarity_order": list,
    "gacha": ConfigSchema(
        fields={
            "single_pull_cost": int,
            "multi_pull_cost": int,
        },
    ),
    "fusion": ConfigSchema(
        fields={
            "output_selection": str,
            "success_rates": dict,
        },
    ),
    "evolution": ConfigSchema(
        fields={
            "required_food": dict,
        },
    ),
    "exchange": ConfigSchema(
        fields={
            "coins_per_food": int,
        },
    ),
}


def validate_structure(data: Mapping[str, Any]) -> None:
    """Run the structural schema checks for every known top-level key."""
    ConfigSchema(fields=_SCHEMAS).validate(data)


# ============================================================================
# Semantic validation
# ============================================================================


def _parse_rarity_order(raw: Any) -> tuple:
    try:
        order = tuple(Rarity.from_string(item) for item in raw)
    except (DomainValidationError, TypeError) as exc:
        raise ConfigurationError("rarity_order", str(exc)) from exc

    if sorted(order) != sorted(Rarity) or len(set(order)) != len(order):
        raise ConfigurationError(
            "rarity_order",
            f"must list each of {[r.value for r in Rarity]} exactly once",
        )
    return order


def _parse_success_rates(raw: Mapping[str, Any], order: tuple) -> Dict[Rarity, float]:
    rates: Dict[Rarity, float] = {}
    fusable = order[:-1]

    for key, value in raw.items():
        try:
            rarity = Rarity.from_string(key)
        except DomainValidationError as exc:
            raise ConfigurationError("fusion.success_rates", str(exc)) from exc
        if rarity is order[-1]:
            raise ConfigurationError(
                f"fusion.success_rates.{rarity.value}",
                "the top rarity cannot be fused",
            )
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(
                f"fusion.success_rates.{rarity.value}", "must be a number"
            )
        if not 0.0 < float(value) <= 1.0:
            raise ConfigurationError(
                f"fusion.success_rates.{rarity.value}",
                f"must be in (0, 1], got {value}",
            )
        rates[rarity] = float(value)

    missing = [r.value for r in fusable if r not in rates]
    if missing:
        raise ConfigurationError(
            "fusion.success_rates", f"missing rates for {', '.join(missing)}"
        )

    for lower, higher in zip(fusable, fusable[1:]):
        if not rates[lower] > rates[higher]:
            raise ConfigurationError(
                "fusion.success_rates",
                f"must strictly decrease with rarity: {lower.value}={rates[lower]} "
                f"is not above {higher.value}={rates[higher]}",
            )
    return rates


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(key, f"must be a positive integer, got {value!r}")
    return value


def _parse_required_food(raw: Mapping[Any, Any]) -> Dict[int, int]:
    thresholds: Dict[int, int] = {}
    for key, value in raw.items():
        try:
            tier = int(key)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                "evolution.required_food", f"tier key {key!r} is not an integer"
            ) from exc
        if tier not in EVOLVABLE_TIERS:
            raise ConfigurationError(
                f"evolution.required_food.{key}",
                f"only tiers {list(EVOLVABLE_TIERS)} can evolve",
            )
        thresholds[tier] = _positive_int(value, f"evolution.required_food.{key}")

    missing = [tier for tier in EVOLVABLE_TIERS if tier not in thresholds]
    if missing:
        raise ConfigurationError(
            "evolution.required_food", f"missing thresholds for tiers {missing}"
        )
    return thresholds


def build_economy_config(data: Mapping[str, Any]) -> EconomyConfig:
    """
    Validate a merged configuration tree and freeze it into `EconomyConfig`.

    Raises
    ------
    ConfigurationError
        On the first rule the tree violates.
    """
    validate_structure(data)

    order = _parse_rarity_order(data.get("rarity_order", [r.value for r in Rarity]))

    gacha = data.get("gacha", {})
    single_cost = _positive_int(gacha.get("single_pull_cost"), "gacha.single_pull_cost")
    multi_cost = _positive_int(gacha.get("multi_pull_cost"), "gacha.multi_pull_cost")
    if multi_cost >= single_cost * MULTI_PULL_COUNT:
        raise ConfigurationError(
            "gacha.multi_pull_cost",
            f"{MULTI_PULL_COUNT} draws must cost less than "
            f"{MULTI_PULL_COUNT} single pulls ({single_cost * MULTI_PULL_COUNT})",
        )

    fusion = data.get("fusion", {})
    policy = fusion.get("output_selection")
    if policy not in OUTPUT_SELECTION_POLICIES:
        raise ConfigurationError(
            "fusion.output_selection",
            f"must be one of {sorted(OUTPUT_SELECTION_POLICIES)}, got {policy!r}",
        )
    rates = _parse_success_rates(fusion.get("success_rates") or {}, order)

    thresholds = _parse_required_food(
        data.get("evolution", {}).get("required_food") or {}
    )

    coins_per_food = _positive_int(
        data.get("exchange", {}).get("coins_per_food"), "exchange.coins_per_food"
    )

    return EconomyConfig(
        rarity_order=order,
        success_rates=MappingProxyType(rates),
        output_selection=policy,
        single_pull_cost=single_cost,
        multi_pull_cost=multi_cost,
        required_food=MappingProxyType(thresholds),
        coins_per_food=coins_per_food,
    )


__all__ = [
    "ConfigSchema",
    "SchemaField",
    "validate_structure",
    "build_economy_config",
]
