"""健康检查路由"""

import time

from fastapi import APIRouter, Depends

from market_proxy import __version__
from market_proxy.routers.deps import get_market_service
from market_proxy.services.market_service import MarketDataService

router = APIRouter(tags=["健康检查"])


@router.get("/health")
async def health(service: MarketDataService = Depends(get_market_service)):
    """服务健康检查"""
    return {
        "success": True,
        "data": {
            "status": "ok",
            "version": __version__,
            "timestamp": int(time.time()),
            "service": "Market Proxy",
            "cache": service.cache.stats(),
        },
        "message": "服务运行正常",
    }


@router.get("/healthz")
async def healthz():
    """Kubernetes liveness probe"""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz():
    """Kubernetes readiness probe"""
    return {"ready": True}
