"""
Domain exceptions package for the pet economy.

Exports
-------
- All domain exception classes (defined in modules.shared.exceptions)
- EXCEPTION_TEMPLATES: Registry mapping exception types to user-facing templates
"""

from pet_economy.core.exceptions import ErrorSeverity
from pet_economy.modules.shared.exceptions import (
    AlreadyMaxTierError,
    EconomyDomainException,
    InsufficientFoodFedError,
    InsufficientFundsError,
    InsufficientSurplusError,
    InvalidSelectionCountError,
    MixedRarityError,
    NoHigherRarityError,
    NotFoundError,
    OperationInProgressError,
    TransactionRejectedError,
    ValidationError,
)

from .registry import EXCEPTION_TEMPLATES, format_exception, get_exception_template

__all__ = [
    # Exception classes
    "EconomyDomainException",
    "InsufficientFundsError",
    "NotFoundError",
    "ValidationError",
    "InvalidSelectionCountError",
    "MixedRarityError",
    "NoHigherRarityError",
    "InsufficientSurplusError",
    "AlreadyMaxTierError",
    "InsufficientFoodFedError",
    "OperationInProgressError",
    "TransactionRejectedError",
    "ErrorSeverity",
    # Registry
    "EXCEPTION_TEMPLATES",
    "format_exception",
    "get_exception_template",
]
