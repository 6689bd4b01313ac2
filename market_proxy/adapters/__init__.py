"""
上游数据适配器
  YahooFinanceAdapter : 股票 / 商品 / 指数（Yahoo Finance chart 接口）
  CoinGeckoAdapter    : 加密货币（CoinGecko 免费接口）
"""

from market_proxy.adapters.base import AdapterResult, MarketDataAdapter
from market_proxy.adapters.coingecko import CoinGeckoAdapter
from market_proxy.adapters.yahoo import YahooFinanceAdapter

__all__ = [
    "AdapterResult",
    "MarketDataAdapter",
    "CoinGeckoAdapter",
    "YahooFinanceAdapter",
]
