"""
Layer 5 – 技术分析层
在标准化收盘价序列上计算 SMA、EMA、布林带。
所有方法均为纯函数：相同输入得到相同输出，不保留任何跨调用状态。
输出点的时间键取窗口末端（第一个输出点对应 history[period-1]）。
"""

import logging
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

import pandas as pd

from market_proxy.models.series import BollingerBands, IndicatorPoint, PricePoint

logger = logging.getLogger(__name__)

SUPPORTED_INDICATORS = ("sma", "ema", "boll")


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period 必须 >= 1，当前为 {period}")


def _values(history: Sequence[PricePoint]) -> pd.Series:
    return pd.Series([p.value for p in history], dtype=float)


def _points(history: Sequence[PricePoint], values: Iterable[float], start: int) -> Tuple[IndicatorPoint, ...]:
    return tuple(
        IndicatorPoint(time=p.time, value=v)
        for p, v in zip(history[start:], values)
    )


class AnalysisLayer:
    """技术分析层"""

    # ── 均线 ──────────────────────────────────────────────

    def sma(self, history: Sequence[PricePoint], period: int) -> Tuple[IndicatorPoint, ...]:
        """简单移动平均，输出长度 max(0, len(history) - period + 1)"""
        _check_period(period)
        if len(history) < period:
            return ()
        means = _values(history).rolling(window=period).mean()
        return _points(history, means.iloc[period - 1:], period - 1)

    def ema(self, history: Sequence[PricePoint], period: int) -> Tuple[IndicatorPoint, ...]:
        """
        指数移动平均

        种子值为前 period 个点的 SMA（位于 history[period-1]），
        之后 ema_i = value_i * k + ema_{i-1} * (1 - k)，k = 2 / (period + 1)
        """
        _check_period(period)
        if len(history) < period:
            return ()
        values = _values(history)
        seed = values.rolling(window=period).mean().iloc[period - 1]
        tail = values.iloc[period - 1:].copy()
        tail.iloc[0] = seed
        smoothed = tail.ewm(alpha=2 / (period + 1), adjust=False).mean()
        return _points(history, smoothed, period - 1)

    # ── 布林带 ────────────────────────────────────────────

    def bollinger_bands(
        self,
        history: Sequence[PricePoint],
        period: int = 20,
        multiplier: float = 2.0,
    ) -> BollingerBands:
        """布林带：中轨为窗口均值，上下轨为均值 ± multiplier × 总体标准差（分母 period）"""
        _check_period(period)
        if len(history) < period:
            return BollingerBands()
        values = _values(history)
        rolling = values.rolling(window=period)
        mean = rolling.mean().iloc[period - 1:]
        std = rolling.std(ddof=0).iloc[period - 1:]
        return BollingerBands(
            upper=_points(history, mean + multiplier * std, period - 1),
            middle=_points(history, mean, period - 1),
            lower=_points(history, mean - multiplier * std, period - 1),
        )

    # ── 组合计算 ──────────────────────────────────────────

    def compute(
        self,
        history: Sequence[PricePoint],
        indicators: Optional[Iterable[str]] = None,
        period: int = 20,
        multiplier: float = 2.0,
    ) -> Dict[str, Any]:
        """按名称计算一组指标，None 表示全部"""
        selected = set(indicators) if indicators else set(SUPPORTED_INDICATORS)
        unknown = selected - set(SUPPORTED_INDICATORS)
        if unknown:
            raise ValueError(f"不支持的指标: {sorted(unknown)}")

        result: Dict[str, Any] = {}
        if "sma" in selected:
            result["sma"] = self.sma(history, period)
        if "ema" in selected:
            result["ema"] = self.ema(history, period)
        if "boll" in selected:
            result["boll"] = self.bollinger_bands(history, period, multiplier)
        return result

    def to_indicator_summary(self, computed: Dict[str, Any]) -> Dict[str, Optional[float]]:
        """返回各指标最新一个点的数值摘要"""
        summary: Dict[str, Optional[float]] = {}
        for name, value in computed.items():
            if isinstance(value, BollingerBands):
                for band in ("upper", "middle", "lower"):
                    points = getattr(value, band)
                    summary[f"boll_{band}"] = points[-1].value if points else None
            else:
                summary[name] = value[-1].value if value else None
        return summary


# ── 模块级别单例 ──────────────────────────────────────────
_analysis: Optional[AnalysisLayer] = None


def get_analysis_layer() -> AnalysisLayer:
    global _analysis
    if _analysis is None:
        _analysis = AnalysisLayer()
    return _analysis
