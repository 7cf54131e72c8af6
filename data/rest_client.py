"""SXBetRestClient — async REST transport for signed SX Bet payloads.

Carries what the signing coordinator produces; it never signs anything.

- ``POST /orders/new``          — signed maker orders
- ``POST /orders/fill``         — signed taker fills
- ``POST /orders/cancel/v2``    — signed cancellations
- ``GET  /orders``              — active orders (fill targets)
- Rate limiting with token bucket
- Retry with exponential backoff on transient failures
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Iterable, Optional

import httpx
import structlog
from pydantic import ValidationError

from config.settings import Settings
from core.errors import InvalidStateError
from execution.signing_coordinator import SignedOrder
from models.cancel import CancelRequest
from models.fill import FillRequest
from models.order import OrderRecord

logger = structlog.get_logger("data.rest_client")

_DEFAULT_BASE_URL = "https://api.sx.bet"
_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class SXBetAPIError(Exception):
    """Raised when the API rejects a request or answers with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class _RateLimiter:
    """Simple token-bucket rate limiter.

    Parameters
    ----------
    rate:
        Max requests per second.
    burst:
        Maximum burst size (tokens in bucket).
    """

    def __init__(self, rate: float = 5.0, burst: int = 10) -> None:
        self._rate = rate
        self._burst = burst
        self._tokens = float(burst)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until a token is available."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_refill
            self._tokens = min(self._burst, self._tokens + elapsed * self._rate)
            self._last_refill = now

            if self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self._rate
                await asyncio.sleep(wait)
                self._tokens = 0.0
            else:
                self._tokens -= 1.0


class SXBetRestClient:
    """Async REST client for the SX Bet exchange API.

    Parameters
    ----------
    base_url:
        API base URL.
    chain_version:
        ``chainVersion`` query value (``"SXR"`` for SX Rollup).
    api_key:
        Optional ``X-Api-Key`` header value.
    timeout:
        Per-request timeout in seconds.
    rate_limit_rps:
        Max requests per second.
    max_retries:
        Retries after the first attempt on transient errors.
    backoff_base:
        First retry delay in seconds; doubles on every retry.
    transport:
        Optional ``httpx`` transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = _DEFAULT_BASE_URL,
        chain_version: str = "SXR",
        api_key: str = "",
        timeout: float = 10.0,
        rate_limit_rps: float = 5.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        backoff_max: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._chain_version = chain_version
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._transport = transport
        self._rate_limiter = _RateLimiter(
            rate=rate_limit_rps, burst=max(1, int(rate_limit_rps * 2))
        )
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, cfg: Settings) -> SXBetRestClient:
        return cls(
            base_url=cfg.SX_API_BASE_URL,
            chain_version=cfg.CHAIN_VERSION,
            api_key=cfg.SX_API_KEY,
            timeout=cfg.HTTP_TIMEOUT_SECONDS,
            rate_limit_rps=cfg.HTTP_RATE_LIMIT_RPS,
            max_retries=cfg.HTTP_MAX_RETRIES,
        )

    # ── Lifecycle ────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the underlying HTTP client.  Idempotent."""
        if self._client is not None:
            return
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-Api-Key"] = self._api_key
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )
        logger.info("rest_client.connected", base_url=self._base_url)

    async def disconnect(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("rest_client.disconnected")

    async def __aenter__(self) -> SXBetRestClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()

    # ── Public API: Orders ───────────────────────────────────────

    async def post_orders(self, orders: Iterable[SignedOrder | OrderRecord]) -> Any:
        """Submit signed maker orders; returns the API ``data`` field."""
        records = [o.order if isinstance(o, SignedOrder) else o for o in orders]
        if not records:
            raise ValueError("post_orders requires at least one order")
        body = {"orders": [record.to_api_dict() for record in records]}
        data = await self._request("POST", "/orders/new", json=body)
        logger.info("rest_client.orders_posted", count=len(records))
        return data

    async def fill_orders(self, fill: FillRequest) -> Any:
        """Submit a signed fill; returns the API ``data`` field (``fillHash``)."""
        data = await self._request("POST", "/orders/fill", json=fill.to_api_dict())
        logger.info(
            "rest_client.fill_submitted",
            order_hashes=fill.order_hashes,
            fill_hash=data.get("fillHash") if isinstance(data, dict) else None,
        )
        return data

    async def cancel_orders(self, cancel: CancelRequest) -> Any:
        """Submit a signed cancellation; returns the API ``data`` field."""
        data = await self._request(
            "POST",
            "/orders/cancel/v2",
            json=cancel.to_api_dict(),
            params={"chainVersion": self._chain_version},
        )
        logger.info(
            "rest_client.orders_cancelled",
            requested=len(cancel.order_hashes),
            cancelled=data.get("cancelledCount") if isinstance(data, dict) else None,
        )
        return data

    async def get_active_orders(
        self,
        maker: Optional[str] = None,
        market_hashes: Optional[list[str]] = None,
    ) -> list[OrderRecord]:
        """Fetch active orders as validated ``OrderRecord`` instances.

        Orders that fail validation are skipped and logged.
        """
        params: dict[str, str] = {"chainVersion": self._chain_version}
        if maker:
            params["maker"] = maker
        if market_hashes:
            params["marketHashes"] = ",".join(market_hashes)

        raw = await self._request("GET", "/orders", params=params)
        records: list[OrderRecord] = []
        for item in raw or []:
            try:
                records.append(OrderRecord.from_api(item))
            except (ValidationError, InvalidStateError) as exc:
                logger.warning(
                    "rest_client.order_skipped",
                    order_hash=item.get("orderHash") if isinstance(item, dict) else None,
                    error=str(exc).splitlines()[0],
                )
        logger.debug("rest_client.active_orders", count=len(records))
        return records

    # ── Internal: request with retry ─────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict[str, str]] = None,
    ) -> Any:
        """Send a request and unwrap ``{"status": "success", "data": ...}``.

        Retries on connection errors, timeouts, 429 and 5xx with exponential
        backoff.
        """
        if self._client is None:
            raise RuntimeError("Call connect() before using the client")

        attempt = 0
        while True:
            await self._rate_limiter.acquire()
            try:
                response = await self._client.request(method, path, json=json, params=params)
            except httpx.TransportError as exc:
                if attempt >= self._max_retries:
                    raise SXBetAPIError(f"{method} {path} failed: {exc}") from exc
                await self._backoff(method, path, attempt, str(exc))
                attempt += 1
                continue

            if response.status_code in _RETRYABLE_STATUS and attempt < self._max_retries:
                await self._backoff(method, path, attempt, f"HTTP {response.status_code}")
                attempt += 1
                continue

            return self._unwrap(method, path, response)

    async def _backoff(self, method: str, path: str, attempt: int, error: str) -> None:
        delay = min(self._backoff_base * 2**attempt, self._backoff_max)
        logger.warning(
            "rest_client.retrying",
            method=method,
            path=path,
            attempt=attempt + 1,
            delay=delay,
            error=error[:200],
        )
        await asyncio.sleep(delay)

    @staticmethod
    def _unwrap(method: str, path: str, response: httpx.Response) -> Any:
        try:
            body = response.json()
        except ValueError:
            body = response.text

        if response.is_error or not isinstance(body, dict) or body.get("status") != "success":
            raise SXBetAPIError(
                f"{method} {path} rejected (HTTP {response.status_code})",
                status_code=response.status_code,
                body=body,
            )
        return body.get("data")
