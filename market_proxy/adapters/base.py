from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional, Sequence

from market_proxy.assets import TimeRange
from market_proxy.layers.processing import ProcessingLayer, get_processing_layer
from market_proxy.layers.proxy import ProxyLayer
from market_proxy.models.series import Quote, Series


class AdapterResult(NamedTuple):
    series: Series
    quote: Quote


def value_at(values: Optional[Sequence[Any]], index: int) -> Any:
    """平行数组按下标取值，数组缺失或长度不足时返回 None"""
    if not values or index >= len(values):
        return None
    return values[index]


class MarketDataAdapter(ABC):
    """
    上游适配器契约

    每个适配器负责：
    - 把标准时间范围映射为上游查询参数
    - 经 ProxyLayer（带缓存）请求上游
    - 把上游 JSON 转换为标准 Series + Quote
    """

    provider: str = ""

    def __init__(self, proxy: ProxyLayer, processor: Optional[ProcessingLayer] = None):
        self.proxy = proxy
        self.processor = processor or get_processing_layer()

    @abstractmethod
    async def fetch(self, identifier: str, time_range: TimeRange) -> AdapterResult:
        raise NotImplementedError
