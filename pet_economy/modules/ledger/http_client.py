"""
HTTP client for the Ledger Service.

Every operation is `POST {base_url}/rpc/{operation}` with a JSON body and a
bearer API key. Status mapping:

- 2xx: JSON receipt
- other 4xx: `TransactionRejectedError`, reason from the `error` or `message` field
- 408, 429, 5xx, timeouts, connection errors, malformed bodies: `LedgerUnavailableError`
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

import httpx

from pet_economy.core.config.config import Config
from pet_economy.core.exceptions import LedgerUnavailableError
from pet_economy.core.logging.logger import get_logger
from pet_economy.domain.models.base import DomainValidationError
from pet_economy.domain.models.pet import OwnedUnit, PetTemplate, Wallet
from pet_economy.modules.ledger.contract import (
    DrawReceipt,
    EvolveReceipt,
    ExchangeReceipt,
    FeedReceipt,
    FusionOutcome,
    FusionReceipt,
    LedgerService,
)
from pet_economy.modules.shared.exceptions import TransactionRejectedError

logger = get_logger(__name__)

R = TypeVar("R")

# Client-range statuses that mean "try again later", not "refused"
_RETRYABLE_STATUSES = frozenset({408, 429})


class HttpLedgerClient(LedgerService):
    """
    Ledger Service over HTTP (httpx).

    Args:
        base_url: Service root; defaults to Config.LEDGER_BASE_URL
        api_key: Bearer token; defaults to Config.LEDGER_API_KEY
        timeout: Request timeout in seconds
        transport: Optional httpx transport (e.g. MockTransport in tests)

    Example:
        >>> async with HttpLedgerClient() as ledger:
        ...     wallet = await ledger.get_wallet("student-1")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or Config.LEDGER_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else Config.LEDGER_TIMEOUT_SECONDS
        api_key = api_key if api_key is not None else Config.LEDGER_API_KEY

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpLedgerClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    @staticmethod
    def _rejection_reason(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("error", "message"):
                if body.get(key):
                    return str(body[key])
        return response.text or f"HTTP {response.status_code}"

    async def _call(
        self,
        operation: str,
        payload: Mapping[str, Any],
        parse: Callable[[Any], R],
    ) -> R:
        try:
            response = await self._client.post(f"/rpc/{operation}", json=dict(payload))
        except httpx.HTTPError as exc:
            logger.warning(
                "Ledger request failed",
                extra={"ledger_operation": operation, "error_type": type(exc).__name__},
            )
            raise LedgerUnavailableError(operation, original_error=exc) from exc

        if response.status_code >= 500 or response.status_code in _RETRYABLE_STATUSES:
            raise LedgerUnavailableError(operation, status_code=response.status_code)

        if response.status_code >= 400:
            reason = self._rejection_reason(response)
            logger.info(
                "Ledger rejected transaction",
                extra={
                    "ledger_operation": operation,
                    "status_code": response.status_code,
                    "reason": reason,
                },
            )
            raise TransactionRejectedError(operation, reason, response.status_code)

        try:
            return parse(response.json())
        except (KeyError, ValueError, TypeError, AttributeError, DomainValidationError) as exc:
            # json.JSONDecodeError is a ValueError
            raise LedgerUnavailableError(operation, original_error=exc) from exc

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def debit_and_draw(
        self, owner_id: str, cost: int, template_ids: Sequence[str]
    ) -> DrawReceipt:
        return await self._call(
            "debit_and_draw",
            {"owner_id": owner_id, "cost": cost, "template_ids": list(template_ids)},
            DrawReceipt.from_dict,
        )

    async def fuse(
        self,
        owner_id: str,
        consumed_unit_ids: Sequence[str],
        outcome: FusionOutcome,
    ) -> FusionReceipt:
        return await self._call(
            "fuse",
            {
                "owner_id": owner_id,
                "consumed_unit_ids": list(consumed_unit_ids),
                "outcome": outcome.to_dict(),
            },
            FusionReceipt.from_dict,
        )

    async def feed(self, owner_id: str, unit_id: str, amount: int) -> FeedReceipt:
        return await self._call(
            "feed",
            {"owner_id": owner_id, "unit_id": unit_id, "amount": amount},
            FeedReceipt.from_dict,
        )

    async def evolve(self, owner_id: str, unit_id: str) -> EvolveReceipt:
        return await self._call(
            "evolve",
            {"owner_id": owner_id, "unit_id": unit_id},
            EvolveReceipt.from_dict,
        )

    async def exchange(self, owner_id: str, amount: int, cost: int) -> ExchangeReceipt:
        return await self._call(
            "exchange",
            {"owner_id": owner_id, "amount": amount, "cost": cost},
            ExchangeReceipt.from_dict,
        )

    async def get_wallet(self, owner_id: str) -> Wallet:
        return await self._call("get_wallet", {"owner_id": owner_id}, Wallet.from_dict)

    async def list_units(self, owner_id: str) -> List[OwnedUnit]:
        def parse(body: Dict[str, Any]) -> List[OwnedUnit]:
            return [OwnedUnit.from_dict(row) for row in body["units"]]

        return await self._call("list_units", {"owner_id": owner_id}, parse)

    async def list_templates(self) -> List[PetTemplate]:
        def parse(body: Dict[str, Any]) -> List[PetTemplate]:
            return [PetTemplate.from_dict(row) for row in body["templates"]]

        return await self._call("list_templates", {}, parse)
