"""
缓存管理路由
GET  /api/cache/stats     - 缓存统计
POST /api/cache/clear     - 清空缓存
"""

from fastapi import APIRouter, Depends

from market_proxy.models.response import ApiResponse
from market_proxy.routers.deps import get_market_service
from market_proxy.services.market_service import MarketDataService

router = APIRouter(prefix="/api/cache", tags=["缓存管理"])


@router.get("/stats", response_model=ApiResponse)
async def cache_stats(service: MarketDataService = Depends(get_market_service)):
    """获取缓存统计信息（条目数 / 容量）"""
    return ApiResponse.ok(data=service.cache.stats())


@router.post("/clear", response_model=ApiResponse)
async def clear_cache(service: MarketDataService = Depends(get_market_service)):
    """清空全部缓存条目"""
    removed = service.cache.size()
    service.cache.clear()
    return ApiResponse.ok(data={"removed": removed}, message="缓存已清空")
