"""
Operation result envelope returned by every engine operation.

An `OperationResult` holds either a success payload or an error, never
both. Callers branch on `ok` instead of catching exceptions; `unwrap()`
re-raises the captured error for callers that prefer exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar, Union

from pet_economy.core.exceptions import EconomyInfrastructureException
from pet_economy.modules.shared.exceptions import EconomyDomainException

T = TypeVar("T")

EconomyError = Union[EconomyDomainException, EconomyInfrastructureException]


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[EconomyError] = None

    def __post_init__(self) -> None:
        if (self.value is None) == (self.error is None):
            raise ValueError("OperationResult holds exactly one of value or error")

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: EconomyError) -> "OperationResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"ok": False, "error": self.error.to_dict()}
        return {"ok": True}
