"""Ledger Service contract, receipts and HTTP client."""

from pet_economy.modules.ledger.contract import (
    DrawReceipt,
    EvolveReceipt,
    ExchangeReceipt,
    FeedReceipt,
    FusionOutcome,
    FusionReceipt,
    LedgerService,
)
from pet_economy.modules.ledger.http_client import HttpLedgerClient

__all__ = [
    "LedgerService",
    "HttpLedgerClient",
    "FusionOutcome",
    "DrawReceipt",
    "FusionReceipt",
    "FeedReceipt",
    "EvolveReceipt",
    "ExchangeReceipt",
]
