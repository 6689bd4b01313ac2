"""
行情数据服务（编排层）
根据资产配置的数据源标识选择适配器，经代理层（带缓存）拉取并标准化，
对网络层故障执行有界指数退避重试。
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

import httpx

from market_proxy.adapters import AdapterResult, CoinGeckoAdapter, MarketDataAdapter, YahooFinanceAdapter
from market_proxy.assets import Asset, AssetRegistry, TimeRange
from market_proxy.config import settings
from market_proxy.errors import NoSourceError
from market_proxy.layers.acquisition import Sleep, UpstreamClient
from market_proxy.layers.cache import ResponseCache
from market_proxy.layers.proxy import ProxyLayer
from market_proxy.models.series import MarketData

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_delay(attempt: int) -> float:
    """第 attempt 次重试前的等待：min(base × 2^attempt, max)"""
    return min(settings.RETRY_BASE_DELAY * 2 ** attempt, settings.RETRY_MAX_DELAY)


class MarketDataService:
    """行情数据业务服务"""

    def __init__(
        self,
        proxy: ProxyLayer,
        registry: Optional[AssetRegistry] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.proxy = proxy
        self.registry = registry or AssetRegistry()
        self._sleep = sleep
        self.yahoo = YahooFinanceAdapter(proxy)
        self.coingecko = CoinGeckoAdapter(proxy, sleep=sleep)

    @property
    def cache(self) -> ResponseCache:
        return self.proxy.cache

    # ── 数据源选择 ────────────────────────────────────────

    def resolve(self, asset: Asset) -> Tuple[MarketDataAdapter, str, int]:
        """返回 (适配器, 上游标识, 最大重试次数)；CoinGecko 优先"""
        if asset.coingecko_id:
            return self.coingecko, asset.coingecko_id, settings.COINGECKO_MAX_RETRIES
        if asset.yahoo_symbol:
            return self.yahoo, asset.yahoo_symbol, settings.YAHOO_MAX_RETRIES
        raise NoSourceError(asset.id)

    # ── 拉取 ──────────────────────────────────────────────

    async def get_market_data(self, asset: Asset, time_range: TimeRange = TimeRange.M1) -> MarketData:
        """
        获取资产的标准化序列与报价

        Args:
            asset: 资产配置
            time_range: 时间范围 1D / 5D / 1M / 3M / 6M / 1Y / 5Y

        Raises:
            NoSourceError: 资产未配置数据源
            UpstreamError: 上游返回非 2xx（不重试，429 的单次退避在获取层完成）
            DataError: 上游响应结构缺失
            httpx.TransportError: 网络故障且重试耗尽
        """
        time_range = TimeRange(time_range)
        adapter, identifier, max_retries = self.resolve(asset)
        result: AdapterResult = await self._with_retries(
            lambda: adapter.fetch(identifier, time_range),
            max_retries,
            f"{adapter.provider}:{identifier}",
        )
        return MarketData(
            asset_id=asset.id,
            time_range=time_range.value,
            series=result.series,
            quote=result.quote,
        )

    async def _with_retries(
        self,
        call: Callable[[], Awaitable[T]],
        max_retries: int,
        label: str,
    ) -> T:
        attempt = 0
        while True:
            try:
                return await call()
            except httpx.TransportError as exc:
                if attempt >= max_retries:
                    logger.error(f"{label} 拉取失败，已重试 {attempt} 次: {exc}")
                    raise
                delay = retry_delay(attempt)
                logger.warning(f"{label} 网络异常，{delay:g}s 后第 {attempt + 1} 次重试: {exc}")
                await self._sleep(delay)
                attempt += 1


def create_market_service(
    cache: Optional[ResponseCache] = None,
    client: Optional[UpstreamClient] = None,
    registry: Optional[AssetRegistry] = None,
) -> MarketDataService:
    """按配置组装缓存 → 代理层 → 行情服务，缓存实例由服务持有"""
    if cache is None:
        cache = ResponseCache()
    proxy = ProxyLayer(cache, client or UpstreamClient())
    return MarketDataService(proxy, registry=registry)
