"""
HTTP 路由测试（TestClient，上游通过 httpx.MockTransport 模拟，无真实网络）
"""

import os
from unittest.mock import patch

import httpx
import pytest
from conftest import FakeClock, RecordingSleep, Upstream, coingecko_chart, coingecko_price, unix, yahoo_payload
from fastapi.testclient import TestClient

from market_proxy.assets import AssetRegistry
from market_proxy.layers.cache import ResponseCache
from market_proxy.layers.proxy import ProxyLayer
from market_proxy.services.market_service import MarketDataService


@pytest.fixture
def upstream_mock() -> Upstream:
    up = Upstream()
    closes = [float(i) for i in range(1, 31)]
    up.json("/v8/finance/chart/AAPL", yahoo_payload([unix(2024, 1, d) for d in range(1, 31)], closes))
    up.add("/v8/finance/chart/TSLA", lambda req: httpx.Response(404, text="No data found"))
    up.json("/v8/finance/chart/SPY", {"chart": {"result": [], "error": None}})
    up.json("/api/v3/coins/bitcoin/market_chart", coingecko_chart([(unix(2024, 1, 1) * 1000, 10.0)]))
    up.json("/api/v3/simple/price", coingecko_price())
    return up


@pytest.fixture
def client(upstream_mock):
    sleep = RecordingSleep()
    proxy = ProxyLayer(ResponseCache(clock=FakeClock()), upstream_mock.client(sleep=sleep))
    service = MarketDataService(proxy, registry=AssetRegistry(), sleep=sleep)
    with patch("market_proxy.main.create_market_service", return_value=service):
        from market_proxy.main import app
        with TestClient(app) as c:
            yield c


class TestHealthRoutes:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["data"]["status"] == "ok"
        assert body["data"]["cache"]["capacity"] == 500

    def test_healthz(self, client):
        assert client.get("/healthz").json()["status"] == "ok"

    def test_readyz(self, client):
        assert client.get("/readyz").json()["ready"] is True

    def test_root(self, client):
        body = client.get("/").json()
        assert "version" in body and "docs" in body


class TestMarketRoutes:
    def test_assets(self, client):
        data = client.get("/api/assets").json()["data"]
        ids = {a["id"] for a in data["assets"]}
        assert {"btc", "eth", "aapl", "gold", "spy"} <= ids

    def test_market_equities(self, client):
        r = client.get("/api/market/aapl", params={"range": "1M"})
        assert r.status_code == 200
        data = r.json()["data"]
        assert len(data["series"]["history"]) == 30
        assert data["series"]["volume"][1]["color_tag"] == "up"
        assert data["quote"]["previous_close"] == 100.0

    def test_market_crypto(self, client):
        data = client.get("/api/market/btc").json()["data"]
        assert data["quote"]["previous_close"] == 80.0
        assert data["series"]["ohlc"][0]["open"] == 10.0

    def test_unknown_asset(self, client):
        assert client.get("/api/market/doge").status_code == 404

    def test_invalid_range(self, client):
        assert client.get("/api/market/aapl", params={"range": "10Y"}).status_code == 422

    def test_upstream_status_relayed(self, client):
        r = client.get("/api/market/tsla")
        assert r.status_code == 404
        body = r.json()
        assert body["success"] is False and body["message"] == "UpstreamError"

    def test_data_error_is_502(self, client):
        r = client.get("/api/market/spy")
        assert r.status_code == 502
        assert r.json()["message"] == "DataError"


class TestTechnicalRoutes:
    def test_indicators(self, client):
        r = client.get("/api/technical/aapl", params={"indicators": "sma,ema", "period": 5})
        assert r.status_code == 200
        data = r.json()["data"]
        assert set(data["indicators"]) == {"sma", "ema"}
        assert len(data["indicators"]["sma"]) == 26
        assert data["latest"]["sma"] == pytest.approx(28.0)

    def test_unknown_indicator(self, client):
        assert client.get("/api/technical/aapl", params={"indicators": "rsi"}).status_code == 400

    def test_short_history_gives_empty(self, client):
        data = client.get("/api/technical/btc", params={"period": 20}).json()["data"]
        assert data["indicators"]["sma"] == []
        assert data["indicators"]["boll"] == {"upper": [], "middle": [], "lower": []}


class TestProxyRoutes:
    def test_passthrough_and_cache(self, client, upstream_mock):
        r1 = client.get("/api/coingecko/api/v3/simple/price", params={"ids": "bitcoin", "vs_currencies": "usd"})
        r2 = client.get("/api/coingecko/api/v3/simple/price", params={"vs_currencies": "usd", "ids": "bitcoin"})
        assert r1.status_code == 200 and r1.json()["bitcoin"]["usd"] == 100.0
        assert (r1.headers["X-Cache"], r2.headers["X-Cache"]) == ("MISS", "HIT")
        assert upstream_mock.calls("/api/v3/simple/price") == 1

    def test_upstream_error_passthrough(self, client):
        r = client.get("/api/yahoo/v8/finance/chart/TSLA")
        assert r.status_code == 404
        assert "No data found" in r.text


class TestCacheRoutes:
    def test_stats_and_clear(self, client):
        client.get("/api/market/aapl")
        assert client.get("/api/cache/stats").json()["data"]["entries"] == 1
        cleared = client.post("/api/cache/clear").json()
        assert cleared["data"]["removed"] == 1
        assert client.get("/api/cache/stats").json()["data"]["entries"] == 0


class TestConfig:
    def test_defaults(self):
        from market_proxy.config import MarketProxySettings
        s = MarketProxySettings()
        assert s.CACHE_MAX_ENTRIES == 500
        assert (s.COINGECKO_CACHE_TTL, s.YAHOO_CACHE_TTL) == (30, 60)
        assert s.COINGECKO_STAGGER_SECONDS == 1.5
        assert s.COINGECKO_MAX_DAYS == 365
        assert s.RATE_LIMIT_DEFAULT_RETRY_AFTER == 60

    def test_env_override(self):
        from market_proxy.config import MarketProxySettings
        with patch.dict(os.environ, {"CACHE_MAX_ENTRIES": "10", "coingecko_cache_ttl": "5"}, clear=False):
            s = MarketProxySettings()
        assert s.CACHE_MAX_ENTRIES == 10 and s.COINGECKO_CACHE_TTL == 5
