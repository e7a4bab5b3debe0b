"""Bounded exponential backoff for idempotent store operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from peopledb.exceptions import StoreUnavailableError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Retry ``TransientStoreError`` with delays of ``base_delay * 2**attempt``.

    Only use for idempotent operations (get, full put, delete, query).
    """

    def __init__(self, max_retries: int = 3, base_delay: float = 0.05) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.max_retries = max_retries
        self.base_delay = base_delay

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2**attempt)

    async def run(self, operation: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Await ``fn()``, retrying transient failures.

        Raises:
            StoreUnavailableError: If every attempt failed transiently
        """
        last_error: TransientStoreError | None = None
        for attempt in range(self.max_retries):
            try:
                return await fn()
            except TransientStoreError as e:
                last_error = e
                if attempt + 1 < self.max_retries:
                    wait = self.delay(attempt)
                    logger.warning(
                        f"{operation} failed (attempt {attempt + 1}/{self.max_retries}), "
                        f"retrying in {wait:.3f}s: {e.message}"
                    )
                    await asyncio.sleep(wait)

        logger.error(f"{operation} failed after {self.max_retries} attempts")
        raise StoreUnavailableError(operation, self.max_retries, last_error) from last_error
