"""pinchain.core.client

HTTP client for remote checkpoint feeds, with:
- URL policy (no internal targets)
- retries (exponential backoff)
- simple circuit breaker, one per URL
- body size and item count caps

Loading runs once, synchronously, at startup. So does this client.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from pinchain.security.ssrf import check_feed_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientConfig:
    max_retries: int = 2
    timeout_s: float = 10.0
    backoff_cap_s: float = 8.0
    circuit_breaker_threshold: int = 5
    circuit_breaker_cooldown_s: float = 30.0
    allow_private: bool = False


class CircuitBreaker:
    def __init__(self, threshold: int, cooldown_s: float) -> None:
        self.threshold = threshold
        self.cooldown_s = cooldown_s
        self.failures = 0
        self.opened_at: float | None = None

    def allow(self) -> bool:
        if self.opened_at is None:
            return True
        if (time.monotonic() - self.opened_at) >= self.cooldown_s:
            self.failures = 0
            self.opened_at = None
            return True
        return False

    def on_success(self) -> None:
        self.failures = 0
        self.opened_at = None

    def on_failure(self) -> None:
        self.failures += 1
        if self.failures >= self.threshold:
            self.opened_at = time.monotonic()


class FeedClient:
    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep=time.sleep,
    ) -> None:
        self.config = config or ClientConfig()
        self._breakers: dict[str, CircuitBreaker] = {}
        self._client = httpx.Client(timeout=self.config.timeout_s, transport=transport)
        self._sleep = sleep

    def __enter__(self) -> FeedClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def breaker_for(self, url: str) -> CircuitBreaker:
        """One breaker per feed URL; a dead mirror never blocks a live one."""

        breaker = self._breakers.get(url)
        if breaker is None:
            breaker = self._breakers[url] = CircuitBreaker(
                threshold=self.config.circuit_breaker_threshold,
                cooldown_s=self.config.circuit_breaker_cooldown_s,
            )
        return breaker

    def get(self, url: str, **kwargs: Any) -> httpx.Response:
        check = check_feed_url(url, allow_private=self.config.allow_private)
        if not check.allowed:
            raise httpx.UnsupportedProtocol(f"blocked_url ({check.reason})")

        breaker = self.breaker_for(url)
        if not breaker.allow():
            raise httpx.TransportError("circuit breaker open")

        last_exc: Exception | None = None
        for attempt in range(self.config.max_retries + 1):
            try:
                resp = self._client.get(url, **kwargs)
                resp.raise_for_status()
                breaker.on_success()
                return resp
            except (httpx.TimeoutException, httpx.NetworkError, httpx.HTTPStatusError, httpx.TransportError) as e:
                last_exc = e
                breaker.on_failure()
                logger.debug("feed fetch attempt %d failed for %s: %s", attempt + 1, url, e)
                if attempt >= self.config.max_retries:
                    break
                self._sleep(min(2**attempt, self.config.backoff_cap_s))

        assert last_exc is not None
        raise last_exc

    def get_json(
        self,
        url: str,
        *,
        expected: type | tuple[type, ...] | None = None,
        max_bytes: int = 256 * 1024,
        max_items: int = 10_000,
        **kwargs: Any,
    ) -> Any:
        """GET and parse JSON with safety caps.

        - max_bytes: hard cap on response body
        - max_items: hard cap on list length
        """

        resp = self.get(url, **kwargs)
        size = len(resp.content)
        if size > int(max_bytes):
            raise httpx.TransportError(f"response_too_large:{size}")
        try:
            data: Any = resp.json()
        except ValueError as e:
            raise httpx.TransportError("response_not_json") from e
        if expected is not None and not isinstance(data, expected):
            raise httpx.TransportError("response_schema_mismatch")
        if isinstance(data, list) and len(data) > int(max_items):
            raise httpx.TransportError(f"response_too_many_items:{len(data)}")
        return data
