"""Abstract rate source with a FastForex implementation.

Wraps the provider's HTTP API behind an ABC so the fetcher can be tested
with deterministic fake rates.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import requests

from fxsignals.core.constants import FASTFOREX_BASE_URL
from fxsignals.core.exceptions import DataSourceError, RateLimitError
from fxsignals.core.retry import RateLimiter, retry

logger = logging.getLogger(__name__)


class RateClient(ABC):
    """Abstract source of spot exchange rates."""

    @abstractmethod
    def fetch_multi(self, base: str, targets: list[str]) -> dict[str, float]:
        """Return ``{target: rate}`` for one base currency.

        Targets the provider does not quote are simply absent from the
        result.

        Raises
        ------
        DataSourceError
            On network failure or an unusable response.
        """


# ---------------------------------------------------------------------------
# FastForex implementation
# ---------------------------------------------------------------------------


class FastForexClient(RateClient):
    """``GET /fetch-multi`` against api.fastforex.io with bounded retries.

    Parameters
    ----------
    api_key:
        FastForex API key.
    base_url:
        Override for tests or a proxy.
    timeout:
        Per-request timeout in seconds.
    calls_per_second:
        Request pacing across all base currencies.
    session:
        Optional pre-configured :class:`requests.Session`.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = FASTFOREX_BASE_URL,
        timeout: float = 10.0,
        calls_per_second: float = 2.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("FastForex api_key must not be empty")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._rate_limiter = RateLimiter(calls_per_second)
        self._session = session or requests.Session()

    @retry(max_retries=3, base_delay=2.0, max_delay=30.0)
    def fetch_multi(self, base: str, targets: list[str]) -> dict[str, float]:
        if not targets:
            return {}
        self._rate_limiter.acquire()
        params = {
            "from": base.upper(),
            "to": ",".join(t.upper() for t in targets),
            "api_key": self._api_key,
        }
        try:
            resp = self._session.get(
                f"{self._base_url}/fetch-multi", params=params, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise DataSourceError(f"FastForex request for {base} failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitError(f"FastForex rate limit hit for {base}")
        if resp.status_code != 200:
            raise DataSourceError(f"FastForex returned HTTP {resp.status_code} for {base}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise DataSourceError(f"FastForex returned invalid JSON for {base}") from exc

        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, dict):
            raise DataSourceError(f"FastForex response for {base} has no results")

        rates: dict[str, float] = {}
        for target, value in results.items():
            try:
                rate = float(value)
            except (TypeError, ValueError):
                logger.debug("Ignoring non-numeric rate %s/%s: %r", base, target, value)
                continue
            if rate > 0:
                rates[str(target).upper()] = rate
        return rates
