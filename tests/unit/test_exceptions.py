"""
Unit tests for the exception hierarchy and the message template registry.
"""

import pytest

from pet_economy.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    LedgerUnavailableError,
    get_error_severity,
    is_transient_error,
    should_alert,
)
from pet_economy.domain.exceptions import EXCEPTION_TEMPLATES, format_exception
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


@pytest.mark.unit
class TestStructuredExceptions:

    def test_to_dict_shape(self):
        error = InsufficientFundsError("coins", 900, 250)

        data = error.to_dict()

        assert data["error_code"] == "INSUFFICIENT_COINS"
        assert data["details"]["deficit"] == 650
        assert data["is_retryable"] is False
        assert data["severity"] == "info"

    def test_rejection_message_is_server_reason(self):
        error = TransactionRejectedError("fuse", "Not enough duplicates", 409)

        assert error.message == "Not enough duplicates"
        assert error.details["status_code"] == 409

    def test_ledger_outage_is_transient_and_alerts(self):
        error = LedgerUnavailableError("feed", original_error=TimeoutError("read timeout"))

        assert is_transient_error(error)
        assert should_alert(error)
        assert error.details["error_type"] == "TimeoutError"

    def test_configuration_error_is_critical(self):
        error = ConfigurationError("fusion.success_rates", "must decrease")

        assert get_error_severity(error) is ErrorSeverity.CRITICAL
        assert not is_transient_error(error)

    def test_domain_errors_do_not_alert(self):
        assert not should_alert(NotFoundError("OwnedUnit", "u1"))
        assert not is_transient_error(OperationInProgressError("pull"))

    def test_plain_exception_defaults_to_error(self):
        assert get_error_severity(RuntimeError("boom")) is ErrorSeverity.ERROR


@pytest.mark.unit
class TestExceptionRegistry:

    @pytest.mark.parametrize(
        "error",
        [
            InsufficientFundsError("food", 5, 2),
            NotFoundError("PetTemplate", "ghost"),
            ValidationError("amount", "must be positive"),
            InvalidSelectionCountError(4, 2),
            MixedRarityError(["common", "rare"]),
            NoHigherRarityError("legendary"),
            InsufficientSurplusError("u1", 3, 1),
            AlreadyMaxTierError("u1", 3),
            InsufficientFoodFedError("u1", 4, 10),
            OperationInProgressError("fuse"),
            TransactionRejectedError("exchange", "Balance changed"),
            ConfigurationError("catalog", "empty"),
            LedgerUnavailableError("fuse", status_code=503),
        ],
    )
    def test_every_exception_is_registered(self, error):
        assert type(error) in EXCEPTION_TEMPLATES
        formatted = format_exception(error)
        assert "{" not in formatted["title"]
        assert "{" not in formatted["description"]

    def test_title_and_description_interpolated(self):
        formatted = format_exception(InsufficientFundsError("coins", 1200, 300))

        assert formatted["title"] == "Not Enough coins"
        assert formatted["description"] == (
            "You need **1,200 coins**, but you only have **300**."
        )
        assert formatted["severity"] is ErrorSeverity.INFO

    def test_food_fed_remaining(self):
        formatted = format_exception(InsufficientFoodFedError("u1", 4, 10))

        assert formatted["description"] == "Feed **6** more food to evolve this pet."

    def test_unregistered_exception_is_generic(self):
        formatted = format_exception(KeyError("secret internals"))

        assert formatted["title"] == "Something Went Wrong"
        assert "secret" not in formatted["description"]

    def test_base_class_is_not_registered(self):
        assert EconomyDomainException not in EXCEPTION_TEMPLATES
