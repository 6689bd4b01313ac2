"""
行情数据路由
GET /api/assets                     - 资产列表
GET /api/market/{asset_id}?range=   - 标准化序列 + 报价
"""

from fastapi import APIRouter, Depends, Query

from market_proxy.assets import TimeRange
from market_proxy.models.response import ApiResponse
from market_proxy.routers.deps import get_market_service, resolve_asset
from market_proxy.services.market_service import MarketDataService

router = APIRouter(prefix="/api", tags=["行情数据"])


@router.get("/assets", response_model=ApiResponse)
async def list_assets(service: MarketDataService = Depends(get_market_service)):
    """获取已配置的资产列表"""
    assets = [a.model_dump() for a in service.registry.all()]
    return ApiResponse.ok(data={"assets": assets, "count": len(assets)})


@router.get("/market/{asset_id}", response_model=ApiResponse)
async def get_market_data(
    asset_id: str,
    time_range: TimeRange = Query(default=TimeRange.M1, alias="range", description="1D / 5D / 1M / 3M / 6M / 1Y / 5Y"),
    service: MarketDataService = Depends(get_market_service),
):
    """
    获取资产行情

    上游错误由全局异常处理器转换：UpstreamError 透传状态码，DataError 返回 502
    """
    asset = resolve_asset(asset_id, service)
    data = await service.get_market_data(asset, time_range)
    return ApiResponse.ok(data=data.model_dump())
