from __future__ import annotations

import httpx
import pytest

from pinchain.checkpoints.sources import HttpFeed
from pinchain.core.client import CircuitBreaker, ClientConfig, FeedClient
from pinchain.core.config import FeedConfig
from pinchain.core.exceptions import UnparseableSourceError
from pinchain.core.types import Network
from tests.unit._checkpoint_data import H_A, H_B

FEED_URL = "https://feed.example.net/checkpoints"


def _client(handler, **overrides) -> FeedClient:
    cfg = ClientConfig(allow_private=True, **overrides)
    return FeedClient(cfg, transport=httpx.MockTransport(handler), sleep=lambda s: None)


def test_get_json_returns_list() -> None:
    client = _client(lambda req: httpx.Response(200, json=[f"1:{H_A}"]))
    assert client.get_json(FEED_URL, expected=list) == [f"1:{H_A}"]


def test_get_json_blocks_too_large() -> None:
    client = _client(lambda req: httpx.Response(200, content=b"x" * 2048))
    with pytest.raises(httpx.TransportError):
        client.get_json(FEED_URL, max_bytes=1024)


def test_get_json_schema_mismatch() -> None:
    client = _client(lambda req: httpx.Response(200, json={"ok": True}))
    with pytest.raises(httpx.TransportError):
        client.get_json(FEED_URL, expected=list)


def test_get_json_max_items() -> None:
    client = _client(lambda req: httpx.Response(200, json=[str(i) for i in range(10)]))
    with pytest.raises(httpx.TransportError):
        client.get_json(FEED_URL, expected=list, max_items=5)


def test_get_json_not_json() -> None:
    client = _client(lambda req: httpx.Response(200, content=b"<html>"))
    with pytest.raises(httpx.TransportError):
        client.get_json(FEED_URL)


def test_retries_then_succeeds() -> None:
    calls = {"n": 0}

    def handler(req: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=[])

    client = _client(handler, max_retries=2)
    assert client.get_json(FEED_URL) == []
    assert calls["n"] == 3


def test_gives_up_after_max_retries() -> None:
    calls = {"n": 0}

    def handler(req: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(500)

    client = _client(handler, max_retries=1)
    with pytest.raises(httpx.HTTPStatusError):
        client.get(FEED_URL)
    assert calls["n"] == 2


def test_blocked_url_is_never_requested() -> None:
    def handler(req: httpx.Request) -> httpx.Response:
        raise AssertionError("should not be called")

    client = FeedClient(ClientConfig(), transport=httpx.MockTransport(handler))
    with pytest.raises(httpx.UnsupportedProtocol):
        client.get("http://127.0.0.1/checkpoints")


def test_circuit_breaker_opens_after_threshold() -> None:
    b = CircuitBreaker(threshold=2, cooldown_s=60.0)
    assert b.allow()
    b.on_failure()
    assert b.allow()
    b.on_failure()
    assert not b.allow()
    b.on_success()
    assert b.allow()


def _feed(handler, urls: list[str]) -> HttpFeed:
    cfg = FeedConfig(enabled=True, urls={Network.MAINNET: urls}, allow_private=True, max_retries=0)
    return HttpFeed(cfg, client=_client(handler, max_retries=0))


def test_http_feed_pools_records_and_tolerates_one_dead_url() -> None:
    def handler(req: httpx.Request) -> httpx.Response:
        if req.url.host == "a.example.net":
            return httpx.Response(200, json=[f"1:{H_A}", 42])
        if req.url.host == "b.example.net":
            return httpx.Response(200, json=[f"2:{H_B}"])
        return httpx.Response(500)

    feed = _feed(handler, ["https://a.example.net/", "https://b.example.net/", "https://c.example.net/"])
    assert feed.fetch_records(Network.MAINNET) == [f"1:{H_A}", f"2:{H_B}"]


def test_http_feed_all_dead_is_source_failure() -> None:
    feed = _feed(lambda req: httpx.Response(502), ["https://a.example.net/"])
    with pytest.raises(UnparseableSourceError):
        feed.fetch_records(Network.MAINNET)


def test_http_feed_without_urls_is_empty() -> None:
    feed = _feed(lambda req: httpx.Response(500), [])
    assert feed.fetch_records(Network.TESTNET) == []


def test_http_feed_close_closes_its_client() -> None:
    feed = _feed(lambda req: httpx.Response(200, json=[]), [FEED_URL])
    assert not feed._client.closed
    feed.close()
    assert feed._client.closed


def test_breakers_are_per_url() -> None:
    client = _client(lambda req: httpx.Response(503), max_retries=0, circuit_breaker_threshold=1)
    with pytest.raises(httpx.HTTPStatusError):
        client.get("https://dead.example.net/")
    with pytest.raises(httpx.TransportError, match="circuit breaker open"):
        client.get("https://dead.example.net/")
    assert client.breaker_for("https://dead.example.net/") is client.breaker_for("https://dead.example.net/")
    assert client.breaker_for("https://live.example.net/").allow()


def test_http_feed_reaches_live_url_after_two_dead_ones() -> None:
    record = f"20000:{H_B}"

    def handler(req: httpx.Request) -> httpx.Response:
        if req.url.host == "good.example.net":
            return httpx.Response(200, json=[record])
        return httpx.Response(503)

    urls = ["https://dead1.example.net/", "https://dead2.example.net/", "https://good.example.net/"]
    cfg = FeedConfig(enabled=True, urls={Network.MAINNET: urls}, allow_private=True)
    # default retries and threshold: the two dead urls fail six times between them
    with _client(handler) as client:
        feed = HttpFeed(cfg, client=client)
        assert feed.fetch_records(Network.MAINNET) == [record]
