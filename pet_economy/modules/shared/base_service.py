"""
Base Service Foundation

Purpose
-------
Provides the foundational class for the economy engines. Engines implement
pure business logic: they check preconditions against the local state,
decide the intended change, forward it to the Ledger Service in one call,
apply the receipt and emit a domain event.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Event emission helpers
- Input validation helpers raising domain `ValidationError`
- `_run`: the single wrapper that turns an engine coroutine into an
  `OperationResult` under a single-flight guard and a LogContext

What this class does NOT do:
- Talk HTTP (that's the ledger client's job)
- Mutate the wallet or inventory directly (only receipts do)

Usage
-----
    class ExchangeService(BaseService):
        async def buy_food(self, amount: int) -> OperationResult[ExchangeResult]:
            return await self._run(KIND_EXCHANGE, "buy_food", self._buy_food, amount)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, TypeVar

from pet_economy.core.exceptions import (
    ConfigurationError,
    EconomyInfrastructureException,
    get_error_severity,
)
from pet_economy.core.logging.logger import LogContext
from pet_economy.modules.shared.exceptions import EconomyDomainException, ValidationError
from pet_economy.modules.shared.result import OperationResult

if TYPE_CHECKING:
    from logging import Logger

    from pet_economy.core.config.economy import EconomyConfig
    from pet_economy.core.config.manager import ConfigManager
    from pet_economy.core.event.bus import EventBus
    from pet_economy.modules.shared.single_flight import SingleFlightGuard

T = TypeVar("T")

_SEVERITY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
}


class BaseService:
    """
    Base class for all economy engines.

    Args:
        config_manager: Economy configuration manager
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
        guard: Shared single-flight guard for the session
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        guard: SingleFlightGuard,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self._guard = guard
        self.log = logger

    @property
    def economy(self) -> EconomyConfig:
        return self._config.economy

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit a domain event for cross-module communication."""
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """
        Log a service error with full context.

        Expected player-facing failures log below ERROR so alerting only
        sees transport and configuration problems.
        """
        severity = get_error_severity(error).value
        level = _SEVERITY_LEVELS.get(severity, logging.ERROR)
        self.log.log(
            level,
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "severity": severity,
                **context,
            },
        )

    def validate_positive_int(self, value: Any, name: str) -> None:
        """
        Validate that a value is a positive integer.

        Raises:
            ValidationError: If value is not a positive integer
        """
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(
                name, f"{name} must be a positive integer, got {value!r}"
            )

    async def _run(
        self,
        kind: str,
        operation: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        owner_id: Optional[str] = None,
        **log_context: Any,
    ) -> OperationResult[T]:
        """
        Execute one engine operation end to end.

        Holds the single-flight guard for `kind`, scopes a LogContext, and
        captures domain and transport failures into the returned result.
        Programming errors propagate.
        """
        async with LogContext(
            owner_id=owner_id, component=type(self).__name__, operation=operation
        ):
            try:
                async with self._guard.hold(kind):
                    value = await func(*args)
            except (EconomyDomainException, EconomyInfrastructureException) as exc:
                self.log_error(operation, exc, **log_context)
                return OperationResult.failure(exc)
        return OperationResult.success(value)
