"""Shared synchronous HTTP client with retry and exponential backoff.

Retries on:
- 5xx server errors
- 429 rate limit responses
- Network / timeout errors

A 404 is returned to the caller as ``None``. Anything else that is not a
success, or a retryable failure once retries run out, raises
``UpstreamUnavailable``.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable

import httpx

from ..core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class ServiceClient:
    """Thin wrapper over :class:`httpx.Client` for one sibling service.

    Parameters
    ----------
    service:
        Name used in logs and in ``UpstreamUnavailable``.
    base_url:
        Root URL of the service.
    max_retries:
        Additional attempts after the first one.
    transport:
        Optional httpx transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        service: str,
        base_url: str,
        *,
        timeout: float = 10.0,
        max_retries: int = 2,
        backoff: float = 0.5,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.service = service
        self._max_retries = max_retries
        self._backoff = backoff
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def get_json(
        self,
        path: str,
        *,
        token: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any | None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                resp = self._client.get(path, params=params, headers=headers)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt == attempts:
                    raise UpstreamUnavailable(self.service, f"GET {path}: {exc}") from exc
                self._wait(attempt, f"network error: {exc}")
                continue

            if resp.status_code == 404:
                logger.info("%s returned 404 for %s", self.service, path)
                return None

            if resp.status_code == 429 or resp.status_code >= 500:
                if attempt == attempts:
                    raise UpstreamUnavailable(
                        self.service, f"GET {path}: HTTP {resp.status_code}",
                    )
                self._wait(attempt, f"HTTP {resp.status_code}")
                continue

            if resp.is_success:
                try:
                    return resp.json()
                except ValueError as exc:
                    raise UpstreamUnavailable(
                        self.service, f"GET {path}: invalid JSON body",
                    ) from exc

            raise UpstreamUnavailable(
                self.service, f"GET {path}: HTTP {resp.status_code} {resp.text[:200]}",
            )

        raise UpstreamUnavailable(self.service, f"GET {path}: retries exhausted")

    def _wait(self, attempt: int, reason: str) -> None:
        base = self._backoff * (2 ** (attempt - 1))
        delay = base + random.uniform(0, base * 0.5)
        logger.warning(
            "%s %s (attempt %d/%d), retrying in %.2fs",
            self.service, reason, attempt, self._max_retries + 1, delay,
        )
        self._sleep(delay)
