"""
CoinGecko 适配器（免费接口，无需 API Key）

每次拉取需要两次上游调用：
  1. /api/v3/coins/{id}/market_chart   → {prices: [[ts_ms, v]], total_volumes: [[ts_ms, v]]}
  2. /api/v3/simple/price              → {id: {usd, usd_24h_change, usd_24h_vol, usd_market_cap}}
两次调用之间固定错峰，避免在同一配额窗口内触发限流。
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from market_proxy.adapters.base import AdapterResult, MarketDataAdapter
from market_proxy.assets import COINGECKO_DAYS, TimeRange, is_intraday
from market_proxy.config import settings
from market_proxy.errors import DataError
from market_proxy.layers.acquisition import Sleep
from market_proxy.layers.processing import ProcessingLayer, RawSample
from market_proxy.layers.proxy import COINGECKO, ProxyLayer
from market_proxy.models.series import Quote

logger = logging.getLogger(__name__)


class CoinGeckoAdapter(MarketDataAdapter):
    """加密货币行情：只有标量价格，OHLC 退化为单值 bar"""

    provider = COINGECKO

    def __init__(
        self,
        proxy: ProxyLayer,
        processor: Optional[ProcessingLayer] = None,
        sleep: Sleep = asyncio.sleep,
        stagger_seconds: Optional[float] = None,
    ):
        super().__init__(proxy, processor)
        self._sleep = sleep
        self.stagger_seconds = (
            stagger_seconds if stagger_seconds is not None else settings.COINGECKO_STAGGER_SECONDS
        )

    def days_for(self, time_range: TimeRange) -> int:
        """回溯天数，超过免费版上限时截断而不是报错"""
        days = COINGECKO_DAYS[TimeRange(time_range)]
        if days > settings.COINGECKO_MAX_DAYS:
            logger.debug(f"CoinGecko 回溯 {days} 天超过上限，截断为 {settings.COINGECKO_MAX_DAYS} 天")
            return settings.COINGECKO_MAX_DAYS
        return days

    async def fetch(self, coin_id: str, time_range: TimeRange) -> AdapterResult:
        time_range = TimeRange(time_range)
        chart = await self.proxy.fetch_json(
            COINGECKO,
            f"/api/v3/coins/{coin_id}/market_chart",
            {"vs_currency": "usd", "days": str(self.days_for(time_range))},
        )
        # 图表数据来自缓存时没有消耗上游配额，无需错峰
        if not chart.cached:
            await self._sleep(self.stagger_seconds)
        price = await self.proxy.fetch_json(
            COINGECKO,
            "/api/v3/simple/price",
            {
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_24hr_vol": "true",
                "include_market_cap": "true",
            },
        )
        return self.parse(chart.payload, price.payload, coin_id, time_range)

    # ── 解析 ──────────────────────────────────────────────

    def _pairs(self, rows: Any) -> List[Tuple[int, Any]]:
        # 毫秒时间戳向下取整到秒
        return [
            (int(row[0]) // 1000, row[1])
            for row in rows or []
            if isinstance(row, (list, tuple)) and len(row) >= 2 and row[0] is not None
        ]

    def parse(
        self,
        chart_payload: Any,
        price_payload: Any,
        coin_id: str,
        time_range: TimeRange,
    ) -> AdapterResult:
        if not isinstance(chart_payload, dict) or not isinstance(chart_payload.get("prices"), list):
            raise DataError(f"CoinGecko 图表响应缺少 prices: {coin_id}", provider=COINGECKO)

        samples = [
            RawSample(timestamp=ts, close=float(value))
            for ts, value in self._pairs(chart_payload["prices"])
            if value is not None
        ]
        series = self.processor.build_series(
            samples,
            intraday=is_intraday(time_range),
            volumes=self._pairs(chart_payload.get("total_volumes")),
        )

        coin = price_payload.get(coin_id) if isinstance(price_payload, dict) else None
        if not isinstance(coin, dict) or coin.get("usd") is None:
            raise DataError(f"CoinGecko 价格响应缺少 {coin_id}", provider=COINGECKO)

        return AdapterResult(series=series, quote=self.build_quote(coin))

    def build_quote(self, coin: Dict[str, Any]) -> Quote:
        """
        免费接口不提供昨收与真实 24h 高低：
          previous_close = price / (1 + pct / 100)
          high / low     = price × (1 ± |pct| / 100)（近似值）
        """
        price = float(coin["usd"])
        pct = float(coin.get("usd_24h_change") or 0.0)
        denominator = 1 + pct / 100
        previous_close = price / denominator if denominator else 0.0
        # 昨收为 0 时涨跌幅记 0，与 Quote.from_previous_close 一致
        change_percent = pct if previous_close else 0.0
        market_cap = coin.get("usd_market_cap")
        return Quote(
            price=price,
            change=price - previous_close,
            change_percent=change_percent,
            high_24h=price * (1 + abs(pct) / 100),
            low_24h=price * (1 - abs(pct) / 100),
            volume=float(coin.get("usd_24h_vol") or 0.0),
            previous_close=previous_close,
            market_cap=None if market_cap is None else float(market_cap),
        )
