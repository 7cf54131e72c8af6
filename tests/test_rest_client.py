"""Tests for data/rest_client.py, with HTTP served by httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from data.rest_client import SXBetAPIError, SXBetRestClient
from execution.signing_coordinator import SignedOrder
from models.cancel import CancelRequest
from models.fill import FillRequest
from models.order import OrderRecord

MAKER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
MARKET_HASH = "0x" + "ab" * 32


# ── Fake API ─────────────────────────────────────────────────────────


class FakeAPI:
    """Queue of canned responses; records every request it serves."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _ok(data) -> httpx.Response:
    return httpx.Response(200, json={"status": "success", "data": data})


def _client(api: FakeAPI, **kwargs) -> SXBetRestClient:
    defaults = dict(
        base_url="https://api.test",
        api_key="key-123",
        rate_limit_rps=1000.0,
        max_retries=2,
        backoff_base=0.0,
        transport=httpx.MockTransport(api),
    )
    defaults.update(kwargs)
    return SXBetRestClient(**defaults)


def _signed_order(salt: int = 1) -> OrderRecord:
    return OrderRecord(
        market_hash=MARKET_HASH,
        maker=MAKER,
        base_token="0x" + "11" * 20,
        executor="0x" + "22" * 20,
        total_bet_size=1_000_000,
        percentage_odds=5 * 10**19,
        api_expiry=1_700_003_600,
        salt=salt,
        is_maker_betting_outcome_one=True,
        signature="0x" + "aa" * 65,
        order_hash="0x" + "cd" * 32,
    )


def _api_order(**overrides) -> dict:
    payload = {
        "orderHash": "0x" + "cd" * 32,
        "marketHash": MARKET_HASH,
        "maker": MAKER,
        "totalBetSize": "1000000",
        "percentageOdds": "50000000000000000000",
        "fillAmount": "0",
        "expiry": 2209006800,
        "apiExpiry": 1700003600,
        "baseToken": "0x" + "11" * 20,
        "executor": "0x" + "22" * 20,
        "salt": "42",
        "isMakerBettingOutcomeOne": True,
        "signature": "0x" + "aa" * 65,
    }
    payload.update(overrides)
    return payload


# ── Endpoints ────────────────────────────────────────────────────────


class TestEndpoints:

    @pytest.mark.asyncio
    async def test_post_orders(self) -> None:
        api = FakeAPI(_ok({"orders": ["0x" + "cd" * 32]}))
        order = _signed_order()
        signed = SignedOrder(order=order, order_hash=order.order_hash, signature=order.signature)
        async with _client(api) as client:
            data = await client.post_orders([signed])

        assert data == {"orders": ["0x" + "cd" * 32]}
        request = api.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/orders/new"
        assert request.headers["X-Api-Key"] == "key-123"
        body = json.loads(request.content)
        assert body["orders"][0]["totalBetSize"] == "1000000"
        assert body["orders"][0]["salt"] == "1"
        assert body["orders"][0]["apiExpiry"] == 1_700_003_600

    @pytest.mark.asyncio
    async def test_post_orders_requires_orders(self) -> None:
        async with _client(FakeAPI()) as client:
            with pytest.raises(ValueError):
                await client.post_orders([])

    @pytest.mark.asyncio
    async def test_fill_orders(self) -> None:
        api = FakeAPI(_ok({"fillHash": "0xfeed"}))
        fill = FillRequest(
            order_hashes=["0x" + "cd" * 32],
            taker_amounts=[2**80],
            fill_salt=2**255,
            taker=MAKER,
            signature="0xsig",
        )
        async with _client(api) as client:
            data = await client.fill_orders(fill)

        assert data == {"fillHash": "0xfeed"}
        body = json.loads(api.requests[0].content)
        assert api.requests[0].url.path == "/orders/fill"
        assert body["takerAmounts"] == [str(2**80)]
        assert body["fillSalt"] == str(2**255)
        assert body["takerSig"] == "0xsig"
        assert body["returning"] == "N/A"

    @pytest.mark.asyncio
    async def test_cancel_orders(self) -> None:
        api = FakeAPI(_ok({"cancelledCount": 1}))
        cancel = CancelRequest(
            order_hashes=["0x" + "cd" * 32],
            salt="0x" + "07" * 32,
            timestamp=1_700_000_000,
            maker=MAKER,
            signature="0xsig",
        )
        async with _client(api) as client:
            data = await client.cancel_orders(cancel)

        assert data == {"cancelledCount": 1}
        request = api.requests[0]
        assert request.url.path == "/orders/cancel/v2"
        assert request.url.params["chainVersion"] == "SXR"
        assert json.loads(request.content)["timestamp"] == 1_700_000_000

    @pytest.mark.asyncio
    async def test_get_active_orders(self) -> None:
        api = FakeAPI(_ok([_api_order(), _api_order(salt="43", fillAmount="500000")]))
        async with _client(api) as client:
            orders = await client.get_active_orders(maker=MAKER, market_hashes=[MARKET_HASH])

        assert [o.salt for o in orders] == [42, 43]
        assert orders[1].fill_amount == 500_000
        assert orders[0].order_hash == "0x" + "cd" * 32
        params = api.requests[0].url.params
        assert params["maker"] == MAKER
        assert params["marketHashes"] == MARKET_HASH
        assert params["chainVersion"] == "SXR"

    @pytest.mark.asyncio
    async def test_get_active_orders_skips_invalid(self) -> None:
        overfilled = _api_order(fillAmount="2000000")
        api = FakeAPI(_ok([overfilled, _api_order(), {"orderHash": "0xbad"}]))
        async with _client(api) as client:
            orders = await client.get_active_orders()
        assert len(orders) == 1


# ── Errors & retries ─────────────────────────────────────────────────


class TestErrorsAndRetries:

    @pytest.mark.asyncio
    async def test_not_connected(self) -> None:
        client = _client(FakeAPI())
        with pytest.raises(RuntimeError, match="connect"):
            await client.get_active_orders()

    @pytest.mark.asyncio
    async def test_failure_status_raises(self) -> None:
        api = FakeAPI(httpx.Response(200, json={"status": "failure", "message": "BAD_SIGNATURE"}))
        async with _client(api) as client:
            with pytest.raises(SXBetAPIError) as excinfo:
                await client.get_active_orders()
        assert excinfo.value.status_code == 200
        assert excinfo.value.body["message"] == "BAD_SIGNATURE"

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        api = FakeAPI(httpx.Response(400, json={"status": "failure"}))
        async with _client(api) as client:
            with pytest.raises(SXBetAPIError) as excinfo:
                await client.get_active_orders()
        assert excinfo.value.status_code == 400
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_retries_server_error_then_succeeds(self) -> None:
        api = FakeAPI(
            httpx.Response(503, text="unavailable"),
            httpx.Response(429, text="slow down"),
            _ok([]),
        )
        async with _client(api) as client:
            assert await client.get_active_orders() == []
        assert len(api.requests) == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self) -> None:
        api = FakeAPI(*(httpx.Response(502, text="bad gateway") for _ in range(3)))
        async with _client(api) as client:
            with pytest.raises(SXBetAPIError) as excinfo:
                await client.get_active_orders()
        assert excinfo.value.status_code == 502
        assert len(api.requests) == 3

    @pytest.mark.asyncio
    async def test_transport_error_retried(self) -> None:
        api = FakeAPI(httpx.ConnectError("refused"), _ok([]))
        async with _client(api) as client:
            assert await client.get_active_orders() == []
        assert len(api.requests) == 2

    @pytest.mark.asyncio
    async def test_transport_error_exhausted(self) -> None:
        api = FakeAPI(*(httpx.ConnectTimeout("timeout") for _ in range(3)))
        async with _client(api) as client:
            with pytest.raises(SXBetAPIError) as excinfo:
                await client.get_active_orders()
        assert isinstance(excinfo.value.__cause__, httpx.ConnectTimeout)

    @pytest.mark.asyncio
    async def test_disconnect_idempotent(self) -> None:
        client = _client(FakeAPI())
        await client.connect()
        await client.disconnect()
        await client.disconnect()
        assert client._client is None
