"""
Layer 4 – 数据处理层
把上游原始 (timestamp, value[, volume]) 序列转换为标准化 Series：
时间键归一、按日去重、OHLC / 成交量补全、成交量涨跌着色。
"""

import logging
from typing import Dict, Iterable, NamedTuple, Optional, Tuple

import pandas as pd

from market_proxy.models.series import OHLCBar, PricePoint, Series, VolumeBar, VolumeTag

logger = logging.getLogger(__name__)


class RawSample(NamedTuple):
    """一条上游原始采样，timestamp 为 Unix 秒；只有标量价格时 open/high/low 留空"""
    timestamp: int
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None


_COLUMNS = list(RawSample._fields)
_PRICE_COLS = ["open", "high", "low", "close"]


class ProcessingLayer:
    """数据处理层：时间序列标准化"""

    def time_keys(self, timestamps: pd.Series, intraday: bool) -> pd.Series:
        """
        日内范围：Unix 秒字符串，保留全部采样精度
        日线及以上：UTC 日期 YYYY-MM-DD
        """
        seconds = timestamps.astype("int64")
        if intraday:
            return seconds.astype(str)
        return pd.to_datetime(seconds, unit="s", utc=True).dt.strftime("%Y-%m-%d")

    def volume_lookup(
        self, volumes: Iterable[Tuple[int, float]], intraday: bool
    ) -> Dict[str, float]:
        """独立成交量序列按同样的时间键规则建索引，同键后写覆盖先写"""
        vdf = pd.DataFrame(list(volumes), columns=["timestamp", "volume"])
        if vdf.empty:
            return {}
        keys = self.time_keys(vdf["timestamp"], intraday)
        return dict(zip(keys, vdf["volume"]))

    def build_series(
        self,
        samples: Iterable[RawSample],
        intraday: bool,
        volumes: Optional[Iterable[Tuple[int, float]]] = None,
    ) -> Series:
        """
        构建标准化序列

        Args:
            samples: 上游顺序的原始采样（假定已按时间升序，本层不排序）
            intraday: 是否日内范围；日内不去重，日线按日期合并
            volumes: 可选的独立成交量序列 [(timestamp, volume)]，
                     提供时覆盖 samples 自带的 volume，未匹配到的记 0

        日线合并规则：同一日期的多条采样，原始顺序中靠后的一条生效；
        该日期在输出中的位置取其首次出现的位置（与有序字典写入语义一致）。
        """
        df = pd.DataFrame(list(samples), columns=_COLUMNS)
        if df.empty:
            return Series()

        df["time"] = self.time_keys(df["timestamp"], intraday)

        # 只有标量价格时退化为 open = high = low = close
        for col in ("open", "high", "low"):
            df[col] = df[col].fillna(df["close"])

        if volumes is not None:
            df["volume"] = df["time"].map(self.volume_lookup(volumes, intraday))
        df["volume"] = df["volume"].fillna(0.0)
        df[_PRICE_COLS + ["volume"]] = df[_PRICE_COLS + ["volume"]].astype(float)

        if not intraday:
            before = len(df)
            df = df.groupby("time", sort=False, as_index=False).last()
            if len(df) < before:
                logger.debug(f"按日期合并采样: {before} → {len(df)}")

        return self.to_series(df)

    def to_series(self, df: pd.DataFrame) -> Series:
        """DataFrame（time/open/high/low/close/volume）转换为只读 Series"""
        prev_close = df["close"].shift(1)
        # 与前一根收盘价比较；首根没有前值，NaN 比较为 False，记为 DOWN
        rising = (df["close"] >= prev_close).tolist()
        volume = df["volume"].clip(lower=0.0)

        history = []
        ohlc = []
        bars = []
        for row, up, vol in zip(df.itertuples(index=False), rising, volume):
            history.append(PricePoint(time=row.time, value=row.close))
            ohlc.append(OHLCBar(time=row.time, open=row.open, high=row.high, low=row.low, close=row.close))
            bars.append(VolumeBar(
                time=row.time,
                value=vol,
                color_tag=VolumeTag.UP if up else VolumeTag.DOWN,
            ))
        return Series(history=tuple(history), ohlc=tuple(ohlc), volume=tuple(bars))


# ── 模块级别单例 ──────────────────────────────────────────
_processor: Optional[ProcessingLayer] = None


def get_processing_layer() -> ProcessingLayer:
    global _processor
    if _processor is None:
        _processor = ProcessingLayer()
    return _processor
