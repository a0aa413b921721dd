"""
Base domain model helpers for the pet economy.

Purpose
-------
Provide the validation framework shared by the immutable domain models
(templates, owned units, wallet). Models are frozen dataclasses that check
their invariants in `__post_init__` and raise `DomainValidationError`.

Non-Responsibilities
--------------------
- Persistence (owned by the Ledger Service)
- Service orchestration (handled by the engines)

Usage Example
-------------
>>> @dataclass(frozen=True)
... class Wallet:
...     coins: int
...
...     def __post_init__(self) -> None:
...         validate_non_negative(self.coins, "coins")
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


class DomainValidationError(Exception):
    """
    Exception raised when domain model validation fails.

    Parameters
    ----------
    message : str
        Human-readable error message
    field : Optional[str]
        Field name that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def validate_positive(value: float, field_name: str) -> None:
    """
    Validate that a value is positive.

    Raises
    ------
    DomainValidationError
        If value is not positive
    """
    if value <= 0:
        raise DomainValidationError(
            f"{field_name} must be positive, got {value}",
            field=field_name,
        )


def validate_non_negative(value: int, field_name: str) -> None:
    """
    Validate that a value is non-negative.

    Raises
    ------
    DomainValidationError
        If value is negative
    """
    if value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}",
            field=field_name,
        )


def validate_range(value: int, min_val: int, max_val: int, field_name: str) -> None:
    """
    Validate that a value is within a range (inclusive on both ends).

    Raises
    ------
    DomainValidationError
        If value is outside the range
    """
    if not (min_val <= value <= max_val):
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}",
            field=field_name,
        )


def validate_not_empty(value: str, field_name: str) -> None:
    """
    Validate that a string is not empty.

    Raises
    ------
    DomainValidationError
        If value is empty or whitespace-only
    """
    if not value or not str(value).strip():
        raise DomainValidationError(
            f"{field_name} cannot be empty",
            field=field_name,
        )


def parse_timestamp(value: Any, field_name: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp coming from YAML or a ledger payload.

    Naive timestamps are assumed to be UTC. `None` passes through.
    """
    if value is None or isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise DomainValidationError(
                f"{field_name} is not a valid ISO-8601 timestamp: {value!r}",
                field=field_name,
            ) from exc
    else:
        raise DomainValidationError(
            f"{field_name} must be a timestamp string, got {type(value).__name__}",
            field=field_name,
        )

    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
