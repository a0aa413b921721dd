"""
Domain exceptions for the pet economy engine.

Purpose
-------
Define the structured, domain-specific exception hierarchy for economy
rules. Engines raise these for precondition failures before any ledger call,
and for business rejections reported by the Ledger Service. Callers receive
them inside an `OperationResult` and translate them into user-facing text
through `EXCEPTION_TEMPLATES`.

Design Notes
------------
- All domain exceptions inherit from `EconomyDomainException`.
- Each exception carries `message`, `details`, `severity`, `is_retryable`
  and `error_code`, mirroring the infrastructure hierarchy in
  `pet_economy.core.exceptions`.
- Precondition failures are INFO: they are expected player-facing outcomes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pet_economy.core.exceptions import ErrorSeverity


class EconomyDomainException(Exception):
    """
    Base exception for all economy domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise EconomyDomainException(
        ...     "Fusion failed",
        ...     {"reason": "mixed rarities"}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class InsufficientFundsError(EconomyDomainException):
    """
    Raised when the wallet cannot cover an action.

    Args:
        resource: "coins" or "food"
        required: Amount required for the action
        current: Amount the student currently has
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource: str, required: int, current: int) -> None:
        self.resource = resource
        self.required = required
        self.current = current
        super().__init__(
            f"Insufficient {resource}: need {required:,}, have {current:,}",
            details={
                "resource": resource,
                "required": required,
                "current": current,
                "deficit": required - current,
            },
            error_code=f"INSUFFICIENT_{resource.upper()}",
        )


class NotFoundError(EconomyDomainException):
    """
    Raised when a template or owned unit cannot be found.

    Args:
        resource_type: Type of resource (e.g., "PetTemplate", "OwnedUnit")
        identifier: Optional identifier for the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={
                "resource_type": resource_type,
                "identifier": identifier,
            },
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(EconomyDomainException):
    """
    Raised when caller input fails validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={
                "field": field,
                "validation_message": message,
            },
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidSelectionCountError(EconomyDomainException):
    """Raised when a fusion selection does not hold exactly the required count."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Fusion needs exactly {expected} pets, got {actual}",
            details={"expected": expected, "actual": actual},
            error_code="INVALID_SELECTION_COUNT",
        )


class MixedRarityError(EconomyDomainException):
    """Raised when a fusion selection spans more than one rarity."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, rarities: List[str]) -> None:
        self.rarities = rarities
        super().__init__(
            f"All pets in a fusion must share one rarity, got {', '.join(rarities)}",
            details={"rarities": rarities},
            error_code="MIXED_RARITY",
        )


class NoHigherRarityError(EconomyDomainException):
    """Raised when a rarity has nothing above it to fuse into."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, rarity: str) -> None:
        self.rarity = rarity
        super().__init__(
            f"No higher rarity to fuse {rarity} pets into",
            details={"rarity": rarity},
            error_code="NO_HIGHER_RARITY",
        )


class InsufficientSurplusError(EconomyDomainException):
    """
    Raised when a selection would consume a unit's anchor copy.

    Args:
        unit_id: Owned unit referenced too many times
        requested: Number of times it was referenced
        surplus: Copies available beyond the anchor
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, unit_id: str, requested: int, surplus: int) -> None:
        self.unit_id = unit_id
        self.requested = requested
        self.surplus = surplus
        super().__init__(
            f"Unit {unit_id} has {surplus} spare copies, {requested} requested",
            details={"unit_id": unit_id, "requested": requested, "surplus": surplus},
            error_code="INSUFFICIENT_SURPLUS",
        )


class AlreadyMaxTierError(EconomyDomainException):
    """Raised when feeding or evolving a unit that is already at the top tier."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, unit_id: str, tier: int) -> None:
        self.unit_id = unit_id
        self.tier = tier
        super().__init__(
            f"Unit {unit_id} is already at max tier {tier}",
            details={"unit_id": unit_id, "tier": tier},
            error_code="ALREADY_MAX_TIER",
        )


class InsufficientFoodFedError(EconomyDomainException):
    """Raised when a unit has not been fed enough to evolve."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = False

    def __init__(self, unit_id: str, food_fed: int, required: int) -> None:
        self.unit_id = unit_id
        self.food_fed = food_fed
        self.required = required
        super().__init__(
            f"Unit {unit_id} needs {required} food to evolve, has {food_fed}",
            details={
                "unit_id": unit_id,
                "food_fed": food_fed,
                "required": required,
                "remaining": required - food_fed,
            },
            error_code="INSUFFICIENT_FOOD_FED",
        )


class OperationInProgressError(EconomyDomainException):
    """Raised when a request of the same kind is already pending."""

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(
            f"A {kind} request is already in progress",
            details={"kind": kind},
            error_code="OPERATION_IN_PROGRESS",
        )


class TransactionRejectedError(EconomyDomainException):
    """
    Raised when the Ledger Service refuses a transaction.

    The server's reason is surfaced verbatim. No state changed.

    Args:
        operation: Ledger operation that was rejected
        reason: Message returned by the service
        status_code: HTTP status, when the rejection came over HTTP
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = False

    def __init__(
        self, operation: str, reason: str, status_code: Optional[int] = None
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.status_code = status_code
        super().__init__(
            reason,
            details={
                "operation": operation,
                "reason": reason,
                "status_code": status_code,
            },
            error_code="TRANSACTION_REJECTED",
        )
