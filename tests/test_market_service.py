"""
编排层测试：数据源选择、网络故障重试策略、错误透传、技术指标服务
"""

import asyncio

import httpx
import pytest
from conftest import coingecko_chart, coingecko_price, unix, yahoo_payload

from market_proxy.assets import Asset, AssetCategory, AssetRegistry, TimeRange
from market_proxy.errors import DataError, NoSourceError, UpstreamError
from market_proxy.services.market_service import MarketDataService, create_market_service, retry_delay
from market_proxy.services.technical_service import TechnicalService


def _service(proxy, sleep):
    return MarketDataService(proxy, registry=AssetRegistry(), sleep=sleep)


class TestAssetRegistry:
    def test_defaults_have_sources(self):
        registry = AssetRegistry()
        registry.validate()
        assert registry.get("BTC").coingecko_id == "bitcoin"
        assert registry.get("gold").yahoo_symbol == "GC=F"
        assert registry.get("doge") is None

    def test_validate_rejects_sourceless_asset(self):
        registry = AssetRegistry([Asset(id="x", symbol="X", name="X", category=AssetCategory.STOCK)])
        with pytest.raises(NoSourceError):
            registry.validate()


class TestMarketDataService:
    def test_resolve(self, proxy, recording_sleep):
        service = _service(proxy, recording_sleep)
        adapter, identifier, retries = service.resolve(service.registry.get("eth"))
        assert adapter is service.coingecko and identifier == "ethereum" and retries == 1
        adapter, identifier, retries = service.resolve(service.registry.get("spy"))
        assert adapter is service.yahoo and identifier == "SPY" and retries == 2

    def test_no_source(self, proxy, recording_sleep):
        service = _service(proxy, recording_sleep)
        asset = Asset(id="x", symbol="X", name="X", category=AssetCategory.STOCK)
        with pytest.raises(NoSourceError):
            asyncio.run(service.get_market_data(asset, TimeRange.M1))

    def test_equities(self, proxy, upstream, recording_sleep):
        upstream.json("/v8/finance/chart/AAPL", yahoo_payload([unix(2024, 1, 1), unix(2024, 1, 2)], [1.0, 2.0]))
        service = _service(proxy, recording_sleep)
        data = asyncio.run(service.get_market_data(service.registry.get("aapl"), "1M"))
        assert data.asset_id == "aapl" and data.time_range == "1M"
        assert data.series.time_keys == ("2024-01-01", "2024-01-02")
        assert data.quote.price == 110.0

    def test_crypto(self, proxy, upstream, recording_sleep):
        upstream.json("/api/v3/coins/bitcoin/market_chart", coingecko_chart([(unix(2024, 1, 1) * 1000, 5.0)]))
        upstream.json("/api/v3/simple/price", coingecko_price())
        service = _service(proxy, recording_sleep)
        data = asyncio.run(service.get_market_data(service.registry.get("btc"), TimeRange.M1))
        assert data.quote.previous_close == 80.0
        assert len(data.series) == 1

    def test_transport_errors_retried_with_backoff(self, proxy, upstream, recording_sleep):
        def fail(request):
            raise httpx.ConnectError("down", request=request)

        upstream.add(
            "/v8/finance/chart/AAPL",
            fail,
            fail,
            lambda req: httpx.Response(200, json=yahoo_payload([unix(2024, 1, 1)], [1.0])),
        )
        service = _service(proxy, recording_sleep)
        data = asyncio.run(service.get_market_data(service.registry.get("aapl"), TimeRange.M1))
        assert len(data.series) == 1
        assert recording_sleep.calls == [1.0, 2.0]

    def test_transport_retries_exhausted(self, proxy, upstream, recording_sleep):
        def fail(request):
            raise httpx.ConnectTimeout("slow", request=request)

        upstream.add("/api/v3/coins/bitcoin/market_chart", fail)
        service = _service(proxy, recording_sleep)
        with pytest.raises(httpx.TransportError):
            asyncio.run(service.get_market_data(service.registry.get("btc"), TimeRange.M1))
        # 加密货币只重试一次
        assert upstream.calls("/api/v3/coins/bitcoin/market_chart") == 2
        assert recording_sleep.calls == [1.0]

    def test_upstream_error_not_retried(self, proxy, upstream, recording_sleep):
        upstream.add("/v8/finance/chart/AAPL", lambda req: httpx.Response(503, text="busy"))
        service = _service(proxy, recording_sleep)
        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(service.get_market_data(service.registry.get("aapl"), TimeRange.M1))
        assert exc_info.value.status == 503
        assert upstream.calls("/v8/finance/chart/AAPL") == 1
        assert proxy.cache.size() == 0

    def test_data_error_propagates(self, proxy, upstream, recording_sleep):
        upstream.json("/v8/finance/chart/AAPL", {"chart": {"result": [], "error": None}})
        service = _service(proxy, recording_sleep)
        with pytest.raises(DataError):
            asyncio.run(service.get_market_data(service.registry.get("aapl"), TimeRange.M1))

    def test_retry_delay_capped(self):
        assert [retry_delay(a) for a in range(7)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    def test_create_market_service_owns_cache(self):
        service = create_market_service()
        assert service.cache is service.proxy.cache
        assert service.cache.max_entries == 500
        asyncio.run(service.proxy.client.aclose())


class TestTechnicalService:
    def test_indicators(self, proxy, upstream, recording_sleep):
        ts = [unix(2024, 1, d) for d in range(1, 6)]
        upstream.json("/v8/finance/chart/AAPL", yahoo_payload(ts, [1.0, 2.0, 3.0, 4.0, 5.0]))
        service = TechnicalService(_service(proxy, recording_sleep))
        asset = service._market.registry.get("aapl")
        result = asyncio.run(service.get_indicators(asset, TimeRange.M1, ["sma", "boll"], period=3))
        assert [p["value"] for p in result["indicators"]["sma"]] == [2.0, 3.0, 4.0]
        assert [p["time"] for p in result["indicators"]["sma"]] == ["2024-01-03", "2024-01-04", "2024-01-05"]
        assert set(result["indicators"]["boll"]) == {"upper", "middle", "lower"}
        assert result["latest"]["sma"] == 4.0
        assert result["points"] == 5
