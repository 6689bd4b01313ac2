"""
技术分析服务
整合行情服务 + 分析层，提供技术指标计算的高级接口
"""

import logging
from typing import Any, Dict, List, Optional

from market_proxy.assets import Asset, TimeRange
from market_proxy.layers.analysis import AnalysisLayer, get_analysis_layer
from market_proxy.services.market_service import MarketDataService

logger = logging.getLogger(__name__)


class TechnicalService:
    """技术分析服务"""

    def __init__(self, market: MarketDataService, analysis: Optional[AnalysisLayer] = None):
        self._market = market
        self._analysis = analysis or get_analysis_layer()

    async def get_indicators(
        self,
        asset: Asset,
        time_range: TimeRange = TimeRange.M1,
        indicators: Optional[List[str]] = None,
        period: int = 20,
        multiplier: float = 2.0,
    ) -> Dict[str, Any]:
        """
        获取指定资产的技术指标

        Args:
            asset: 资产配置
            time_range: 时间范围
            indicators: 指定计算的指标列表，None 表示全部
                        可选: sma, ema, boll
            period: 窗口长度
            multiplier: 布林带标准差倍数

        Returns:
            {
                "asset_id": "...",
                "latest": { "sma": ..., "boll_upper": ..., ... },
                "indicators": { "sma": [{ "time": "...", "value": ... }], ... }
            }
        """
        data = await self._market.get_market_data(asset, time_range)
        history = data.series.history

        computed = self._analysis.compute(history, indicators, period=period, multiplier=multiplier)
        if len(history) < period:
            logger.info(f"{asset.id} 仅有 {len(history)} 个数据点，不足窗口 {period}，指标为空")

        serialized: Dict[str, Any] = {}
        for name, value in computed.items():
            if isinstance(value, tuple):
                serialized[name] = [p.model_dump() for p in value]
            else:
                serialized[name] = value.model_dump()

        return {
            "asset_id": asset.id,
            "time_range": data.time_range,
            "period": period,
            "multiplier": multiplier,
            "points": len(history),
            "latest": self._analysis.to_indicator_summary(computed),
            "indicators": serialized,
        }
