"""
Yahoo Finance 适配器
GET /v8/finance/chart/{symbol}?range=..&interval=..&includePrePost=false

响应结构：chart.result[0] = {timestamp[], indicators.quote[0].{open,high,low,close,volume}[], meta}
非交易时段的 bar 以 close = null 标记，整条跳过。
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote as url_quote

from market_proxy.adapters.base import AdapterResult, MarketDataAdapter, value_at
from market_proxy.assets import YAHOO_RANGES, TimeRange, is_intraday
from market_proxy.errors import DataError
from market_proxy.layers.processing import RawSample
from market_proxy.layers.proxy import YAHOO
from market_proxy.models.series import Quote, Series

logger = logging.getLogger(__name__)


def _float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


class YahooFinanceAdapter(MarketDataAdapter):
    """股票 / 商品 / 指数行情"""

    provider = YAHOO

    def chart_request(self, symbol: str, time_range: TimeRange) -> Tuple[str, Dict[str, str]]:
        config = YAHOO_RANGES[TimeRange(time_range)]
        path = f"/v8/finance/chart/{url_quote(symbol, safe='')}"
        params = {
            "range": config.range,
            "interval": config.interval,
            "includePrePost": "false",
        }
        return path, params

    async def fetch(self, symbol: str, time_range: TimeRange) -> AdapterResult:
        time_range = TimeRange(time_range)
        path, params = self.chart_request(symbol, time_range)
        result = await self.proxy.fetch_json(YAHOO, path, params)
        return self.parse(result.payload, symbol, time_range)

    # ── 解析 ──────────────────────────────────────────────

    def _chart_result(self, payload: Any, symbol: str) -> Dict[str, Any]:
        chart = payload.get("chart") if isinstance(payload, dict) else None
        if not isinstance(chart, dict):
            raise DataError(f"Yahoo 响应缺少 chart 字段: {symbol}", provider=YAHOO)
        if chart.get("error"):
            raise DataError(f"Yahoo 返回错误 {symbol}: {chart['error']}", provider=YAHOO)
        results = chart.get("result")
        if not results or not isinstance(results[0], dict):
            raise DataError(f"Yahoo 结果集为空: {symbol}", provider=YAHOO)
        return results[0]

    def parse(self, payload: Any, symbol: str, time_range: TimeRange) -> AdapterResult:
        result = self._chart_result(payload, symbol)
        timestamps = result.get("timestamp") or []
        quotes = (result.get("indicators") or {}).get("quote") or [{}]
        q = quotes[0] or {}

        samples: List[RawSample] = []
        for i, ts in enumerate(timestamps):
            close = value_at(q.get("close"), i)
            if close is None:
                continue
            samples.append(RawSample(
                timestamp=int(ts),
                close=float(close),
                open=_float(value_at(q.get("open"), i)),
                high=_float(value_at(q.get("high"), i)),
                low=_float(value_at(q.get("low"), i)),
                volume=_float(value_at(q.get("volume"), i)),
            ))

        series = self.processor.build_series(samples, intraday=is_intraday(time_range))
        quote = self.build_quote(result.get("meta") or {}, q.get("volume") or [], series, symbol)
        logger.debug(f"Yahoo {symbol} {time_range.value}: 原始 {len(timestamps)} 条 → {len(series)} 条")
        return AdapterResult(series=series, quote=quote)

    def build_quote(
        self,
        meta: Dict[str, Any],
        bar_volumes: List[Any],
        series: Series,
        symbol: str = "",
    ) -> Quote:
        price = meta.get("regularMarketPrice")
        if price is None:
            if not series.history:
                raise DataError(f"Yahoo 响应缺少当前价格: {symbol}", provider=YAHOO)
            price = series.history[-1].value
        price = float(price)

        previous_close = float(meta.get("previousClose") or meta.get("chartPreviousClose") or 0.0)
        high = float(meta.get("regularMarketDayHigh") or price)
        low = float(meta.get("regularMarketDayLow") or price)

        volume = meta.get("regularMarketVolume")
        if volume is None:
            volume = sum(v for v in bar_volumes if v is not None)

        return Quote.from_previous_close(
            price=price,
            previous_close=previous_close,
            high_24h=high,
            low_24h=low,
            volume=float(volume),
        )
