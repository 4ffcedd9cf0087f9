"""Retry wrapper around an ``IPriceSeriesProvider``.

Each attempt runs under ``asyncio.wait_for`` with the configured timeout.
Transient failures and timeouts are retried with exponential backoff plus
jitter, capped at ``max_backoff_seconds``.  ``PriceDataNotFoundError`` is
raised immediately.  Exhausting the attempts raises
``TransientProviderError``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, Sequence

from trade_analytics.core.config import ProviderRetryConfig
from trade_analytics.core.errors import (
    PriceDataNotFoundError,
    TransientProviderError,
)
from trade_analytics.core.interfaces import IPriceSeriesProvider
from trade_analytics.core.models import PriceBar
from trade_analytics.observability import metrics

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RetryingPriceSeriesProvider:
    """``IPriceSeriesProvider`` that retries transient failures of another.

    Parameters
    ----------
    inner:
        The provider doing the actual fetch.
    config:
        Attempts, backoff and per-attempt timeout.
    sleep:
        Awaitable used between attempts.  Tests inject a no-op.
    rng:
        Source of jitter.
    """

    def __init__(
        self,
        inner: IPriceSeriesProvider,
        config: ProviderRetryConfig | None = None,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._inner = inner
        self._config = config or ProviderRetryConfig()
        self._config.validate_values()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def backoff_delay(self, attempt: int) -> float:
        """Exponential backoff with jitter, capped."""
        base = self._config.base_backoff_seconds * (2 ** (attempt - 1))
        delay = base + self._rng.uniform(0, base * 0.5)
        return min(delay, self._config.max_backoff_seconds)

    async def fetch_bars(
        self,
        symbol: str,
        start: datetime,
        end: datetime,
        interval: str,
        continuous: bool = False,
    ) -> Sequence[PriceBar | Mapping[str, Any]]:
        max_attempts = self._config.max_attempts
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                return await asyncio.wait_for(
                    self._inner.fetch_bars(symbol, start, end, interval, continuous),
                    timeout=self._config.timeout_seconds,
                )
            except PriceDataNotFoundError:
                raise
            except asyncio.TimeoutError as exc:
                last_error = exc
                reason = f"timed out after {self._config.timeout_seconds}s"
            except TransientProviderError as exc:
                last_error = exc
                reason = str(exc)

            if attempt == max_attempts:
                break
            wait = self.backoff_delay(attempt)
            metrics.record_provider_retry(symbol)
            logger.warning(
                "Price fetch for %s failed (attempt %d/%d), retrying in %.1fs: %s",
                symbol, attempt, max_attempts, wait, reason,
            )
            await self._sleep(wait)

        raise TransientProviderError(
            f"Max attempts ({max_attempts}) exhausted fetching {symbol}: {last_error}",
            attempts=max_attempts,
        ) from last_error
