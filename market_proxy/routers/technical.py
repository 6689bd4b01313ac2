"""
技术分析路由
GET /api/technical/{asset_id}  - 获取技术指标
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from market_proxy.assets import TimeRange
from market_proxy.layers.analysis import SUPPORTED_INDICATORS
from market_proxy.models.response import ApiResponse
from market_proxy.routers.deps import get_market_service, get_technical_service, resolve_asset
from market_proxy.services.market_service import MarketDataService
from market_proxy.services.technical_service import TechnicalService

router = APIRouter(prefix="/api/technical", tags=["技术分析"])


@router.get("/{asset_id}", response_model=ApiResponse)
async def get_technical_indicators(
    asset_id: str,
    time_range: TimeRange = Query(default=TimeRange.M1, alias="range"),
    indicators: Optional[str] = Query(
        default=None,
        description=f"逗号分隔的指标列表，支持: {', '.join(SUPPORTED_INDICATORS)}，不填则计算全部",
    ),
    period: int = Query(default=20, ge=1, le=500),
    multiplier: float = Query(default=2.0, gt=0),
    market: MarketDataService = Depends(get_market_service),
    svc: TechnicalService = Depends(get_technical_service),
):
    """
    获取资产技术分析指标

    - `indicators` 示例: `sma,boll`
    """
    indicator_list: Optional[List[str]] = None
    if indicators:
        indicator_list = [i.strip().lower() for i in indicators.split(",") if i.strip()]
        unknown = [i for i in indicator_list if i not in SUPPORTED_INDICATORS]
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"不支持的指标: {unknown}，支持的指标: {list(SUPPORTED_INDICATORS)}",
            )

    asset = resolve_asset(asset_id, market)
    result = await svc.get_indicators(
        asset,
        time_range,
        indicators=indicator_list,
        period=period,
        multiplier=multiplier,
    )
    return ApiResponse.ok(data=result)
