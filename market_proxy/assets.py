"""
资产注册表与时间范围配置
每个资产通过 yahoo_symbol 或 coingecko_id 指定数据源，二者均缺失视为配置缺陷
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict

from market_proxy.errors import NoSourceError

logger = logging.getLogger(__name__)


class AssetCategory(str, Enum):
    STOCK = "stock"
    CRYPTO = "crypto"
    COMMODITY = "commodity"
    INDEX = "index"


class TimeRange(str, Enum):
    D1 = "1D"
    D5 = "5D"
    M1 = "1M"
    M3 = "3M"
    M6 = "6M"
    Y1 = "1Y"
    Y5 = "5Y"


class YahooRange(NamedTuple):
    range: str
    interval: str


# ── 时间范围映射 ──────────────────────────────────────────
YAHOO_RANGES: Dict[TimeRange, YahooRange] = {
    TimeRange.D1: YahooRange("1d", "5m"),
    TimeRange.D5: YahooRange("5d", "15m"),
    TimeRange.M1: YahooRange("1mo", "1d"),
    TimeRange.M3: YahooRange("3mo", "1d"),
    TimeRange.M6: YahooRange("6mo", "1d"),
    TimeRange.Y1: YahooRange("1y", "1wk"),
    TimeRange.Y5: YahooRange("5y", "1mo"),
}

COINGECKO_DAYS: Dict[TimeRange, int] = {
    TimeRange.D1: 1,
    TimeRange.D5: 5,
    TimeRange.M1: 30,
    TimeRange.M3: 90,
    TimeRange.M6: 180,
    TimeRange.Y1: 365,
    TimeRange.Y5: 1825,
}

# 最短的两个范围保留日内精度，不按日期合并
INTRADAY_RANGES = frozenset({TimeRange.D1, TimeRange.D5})


def is_intraday(time_range: TimeRange) -> bool:
    return TimeRange(time_range) in INTRADAY_RANGES


class Asset(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str
    category: AssetCategory
    yahoo_symbol: Optional[str] = None
    coingecko_id: Optional[str] = None

    @property
    def has_source(self) -> bool:
        return bool(self.yahoo_symbol or self.coingecko_id)


DEFAULT_ASSETS: List[Asset] = [
    # 股票
    Asset(id="googl", symbol="GOOGL", name="Alphabet", category=AssetCategory.STOCK, yahoo_symbol="GOOGL"),
    Asset(id="nvda", symbol="NVDA", name="Nvidia", category=AssetCategory.STOCK, yahoo_symbol="NVDA"),
    Asset(id="tsla", symbol="TSLA", name="Tesla", category=AssetCategory.STOCK, yahoo_symbol="TSLA"),
    Asset(id="aapl", symbol="AAPL", name="Apple", category=AssetCategory.STOCK, yahoo_symbol="AAPL"),
    # 加密货币
    Asset(id="btc", symbol="BTC", name="Bitcoin", category=AssetCategory.CRYPTO, coingecko_id="bitcoin"),
    Asset(id="eth", symbol="ETH", name="Ethereum", category=AssetCategory.CRYPTO, coingecko_id="ethereum"),
    # 商品
    Asset(id="gold", symbol="XAU", name="Gold", category=AssetCategory.COMMODITY, yahoo_symbol="GC=F"),
    Asset(id="silver", symbol="XAG", name="Silver", category=AssetCategory.COMMODITY, yahoo_symbol="SI=F"),
    # 指数
    Asset(id="spy", symbol="SPY", name="S&P 500", category=AssetCategory.INDEX, yahoo_symbol="SPY"),
]


class AssetRegistry:
    """按 id 索引的资产表"""

    def __init__(self, assets: Optional[Iterable[Asset]] = None):
        self._assets: Dict[str, Asset] = {
            a.id.lower(): a for a in (DEFAULT_ASSETS if assets is None else assets)
        }

    def get(self, asset_id: str) -> Optional[Asset]:
        return self._assets.get(asset_id.lower())

    def all(self) -> List[Asset]:
        return list(self._assets.values())

    def validate(self) -> None:
        """启动时校验：任何缺少数据源的资产都直接报错，不留到请求路径"""
        for asset in self._assets.values():
            if not asset.has_source:
                raise NoSourceError(asset.id)
        logger.info(f"资产注册表校验通过，共 {len(self._assets)} 个资产")
