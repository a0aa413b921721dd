"""
Single-flight guard: at most one pending request per operation kind.

A second request of a kind that is already in flight is rejected locally
with `OperationInProgressError` and never reaches the Ledger Service.
Kinds are independent: a pending pull does not block a feed.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, FrozenSet, Set

from pet_economy.modules.shared.exceptions import OperationInProgressError


class SingleFlightGuard:
    def __init__(self) -> None:
        self._in_flight: Set[str] = set()

    def is_held(self, kind: str) -> bool:
        return kind in self._in_flight

    @property
    def in_flight(self) -> FrozenSet[str]:
        return frozenset(self._in_flight)

    @asynccontextmanager
    async def hold(self, kind: str) -> AsyncIterator[None]:
        # Check-and-set happens without an await, so it is atomic on one loop
        if kind in self._in_flight:
            raise OperationInProgressError(kind)
        self._in_flight.add(kind)
        try:
            yield
        finally:
            self._in_flight.discard(kind)
