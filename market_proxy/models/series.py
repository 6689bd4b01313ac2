"""
标准化行情数据模型

所有模型均为只读（frozen），序列字段使用 tuple，返回给调用方后不可修改。
同一 Series 内 history / ohlc / volume 三个数组在相同下标上拥有相同的时间键。
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class VolumeTag(str, Enum):
    UP = "up"
    DOWN = "down"


class PricePoint(BaseModel):
    """单个时间桶的收盘价；time 为 YYYY-MM-DD 或 Unix 秒字符串"""
    model_config = ConfigDict(frozen=True)

    time: str
    value: float


class OHLCBar(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    open: float
    high: float
    low: float
    close: float


class VolumeBar(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    value: float = Field(ge=0)
    color_tag: VolumeTag


class Series(BaseModel):
    model_config = ConfigDict(frozen=True)

    history: Tuple[PricePoint, ...] = ()
    ohlc: Tuple[OHLCBar, ...] = ()
    volume: Tuple[VolumeBar, ...] = ()

    def __len__(self) -> int:
        return len(self.history)

    @property
    def time_keys(self) -> Tuple[str, ...]:
        return tuple(p.time for p in self.history)


class Quote(BaseModel):
    """实时报价快照"""
    model_config = ConfigDict(frozen=True)

    price: float
    change: float
    change_percent: float
    high_24h: float
    low_24h: float
    volume: float
    previous_close: float
    market_cap: Optional[float] = None

    @classmethod
    def from_previous_close(
        cls,
        price: float,
        previous_close: float,
        high_24h: float,
        low_24h: float,
        volume: float,
        market_cap: Optional[float] = None,
    ) -> "Quote":
        """按 change = price - previous_close 推导涨跌额与涨跌幅（昨收为 0 时涨跌幅取 0）"""
        change = price - previous_close
        change_percent = change / previous_close * 100 if previous_close else 0.0
        return cls(
            price=price,
            change=change,
            change_percent=change_percent,
            high_24h=high_24h,
            low_24h=low_24h,
            volume=volume,
            previous_close=previous_close,
            market_cap=market_cap,
        )


class MarketData(BaseModel):
    """一次拉取的完整结果：标准化序列 + 报价"""
    model_config = ConfigDict(frozen=True)

    asset_id: str
    time_range: str
    series: Series
    quote: Quote


# ── 技术指标 ──────────────────────────────────────────────

class IndicatorPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str
    value: float


class BollingerBands(BaseModel):
    model_config = ConfigDict(frozen=True)

    upper: Tuple[IndicatorPoint, ...] = ()
    middle: Tuple[IndicatorPoint, ...] = ()
    lower: Tuple[IndicatorPoint, ...] = ()
