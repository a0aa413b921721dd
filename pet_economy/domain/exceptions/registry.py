"""
Exception message template registry for the pet economy.

Purpose
-------
Single source of truth for exception-to-message mappings. Presentation
layers (the app UI) turn an `OperationResult` error into a title, a
description and optional help text without hardcoding messages.

Design Notes
------------
Each template contains:
- title: Short, clear error title
- template: Message template with {placeholder} interpolation from `details`
- help_text: Optional guidance for the student
- severity: ErrorSeverity level for visual styling
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pet_economy.core.exceptions import (
    ConfigurationError,
    EconomyInfrastructureException,
    ErrorSeverity,
    LedgerUnavailableError,
)
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


class ExceptionTemplate:
    """Template for formatting exception messages."""

    def __init__(
        self,
        title: str,
        template: str,
        help_text: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ):
        self.title = title
        self.template = template
        self.help_text = help_text
        self.severity = severity

    def format(self, exception: Exception) -> Dict[str, Any]:
        """
        Format exception using template.

        Returns:
            Dict with 'title', 'description', 'help_text', 'severity'
        """
        details: Dict[str, Any] = {}
        if isinstance(exception, (EconomyDomainException, EconomyInfrastructureException)):
            details = exception.details.copy()

        try:
            description = self.template.format(**details)
            title = self.title.format(**details)
        except (KeyError, IndexError, ValueError):
            description = getattr(exception, "message", str(exception))
            title = self.title

        return {
            "title": title,
            "description": description,
            "help_text": self.help_text,
            "severity": self.severity,
        }


# ============================================================================
# EXCEPTION TEMPLATE REGISTRY
# ============================================================================

EXCEPTION_TEMPLATES: Dict[type, ExceptionTemplate] = {
    # Domain Exceptions
    InsufficientFundsError: ExceptionTemplate(
        title="Not Enough {resource}",
        template="You need **{required:,} {resource}**, but you only have **{current:,}**.",
        help_text="Keep practicing to earn more!",
        severity=ErrorSeverity.INFO,
    ),
    NotFoundError: ExceptionTemplate(
        title="Not Found",
        template="{resource_type} not found.",
        help_text=None,
        severity=ErrorSeverity.INFO,
    ),
    ValidationError: ExceptionTemplate(
        title="Invalid Input",
        template="**{field}**: {validation_message}",
        help_text="Please check your input and try again.",
        severity=ErrorSeverity.INFO,
    ),
    InvalidSelectionCountError: ExceptionTemplate(
        title="Pick {expected} Pets",
        template="Combining needs exactly **{expected}** pets; you picked **{actual}**.",
        help_text=None,
        severity=ErrorSeverity.INFO,
    ),
    MixedRarityError: ExceptionTemplate(
        title="Rarities Don't Match",
        template="All pets you combine must be the same rarity.",
        help_text="Try Quick Combine to group matching pets automatically.",
        severity=ErrorSeverity.INFO,
    ),
    NoHigherRarityError: ExceptionTemplate(
        title="Already Top Rarity",
        template="**{rarity}** pets can't be combined into anything rarer.",
        help_text=None,
        severity=ErrorSeverity.INFO,
    ),
    InsufficientSurplusError: ExceptionTemplate(
        title="Not Enough Duplicates",
        template="You only have **{surplus}** spare copies of that pet.",
        help_text="You always keep one copy of every pet you own.",
        severity=ErrorSeverity.INFO,
    ),
    AlreadyMaxTierError: ExceptionTemplate(
        title="Fully Evolved",
        template="This pet is already at its final form.",
        help_text=None,
        severity=ErrorSeverity.INFO,
    ),
    InsufficientFoodFedError: ExceptionTemplate(
        title="Still Hungry",
        template="Feed **{remaining}** more food to evolve this pet.",
        help_text="Buy food in the exchange.",
        severity=ErrorSeverity.INFO,
    ),
    OperationInProgressError: ExceptionTemplate(
        title="Please Wait",
        template="Your previous {kind} is still being processed.",
        help_text=None,
        severity=ErrorSeverity.DEBUG,
    ),
    TransactionRejectedError: ExceptionTemplate(
        title="Transaction Declined",
        template="{reason}",
        help_text="Your balance and pets were not changed.",
        severity=ErrorSeverity.WARNING,
    ),
    # Infrastructure Exceptions
    ConfigurationError: ExceptionTemplate(
        title="Configuration Error",
        template="A system configuration error occurred. Please contact support.",
        help_text="Error code: CONFIG_ERROR",
        severity=ErrorSeverity.CRITICAL,
    ),
    LedgerUnavailableError: ExceptionTemplate(
        title="Connection Problem",
        template="We couldn't reach the server. Please try again in a moment.",
        help_text="Your balance and pets were not changed.",
        severity=ErrorSeverity.ERROR,
    ),
}


def get_exception_template(exception: Exception) -> Optional[ExceptionTemplate]:
    """Get the template registered for an exception type, if any."""
    return EXCEPTION_TEMPLATES.get(type(exception))


def format_exception(exception: Exception) -> Dict[str, Any]:
    """
    Format any exception for display.

    Unregistered exceptions get a generic message so internals never leak
    into the UI.
    """
    template = get_exception_template(exception)
    if template is None:
        return {
            "title": "Something Went Wrong",
            "description": "An unexpected error occurred. Please try again.",
            "help_text": None,
            "severity": ErrorSeverity.ERROR,
        }
    return template.format(exception)
