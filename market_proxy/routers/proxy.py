"""
上游透传代理路由（带缓存）
GET /api/yahoo/{path}       → https://query1.finance.yahoo.com/{path}
GET /api/coingecko/{path}   → https://api.coingecko.com/{path}

返回上游原始 JSON；上游非 2xx 时透传状态码与响应片段，网络故障返回 502。
"""

import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from market_proxy.errors import UpstreamError
from market_proxy.layers.proxy import COINGECKO, YAHOO
from market_proxy.routers.deps import get_market_service
from market_proxy.services.market_service import MarketDataService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["上游代理"])


async def _relay(provider: str, path: str, request: Request, service: MarketDataService):
    upstream_path = "/" + path.lstrip("/")
    params = dict(request.query_params)
    try:
        result = await service.proxy.fetch_json(provider, upstream_path, params)
    except UpstreamError as exc:
        return PlainTextResponse(exc.detail, status_code=exc.status)
    except httpx.TransportError as exc:
        logger.error(f"[{provider}] 上游请求失败: {exc}")
        return PlainTextResponse("Upstream error", status_code=502)
    return JSONResponse(result.payload, headers={"X-Cache": "HIT" if result.cached else "MISS"})


@router.get("/yahoo/{path:path}")
async def proxy_yahoo(path: str, request: Request, service: MarketDataService = Depends(get_market_service)):
    return await _relay(YAHOO, path, request, service)


@router.get("/coingecko/{path:path}")
async def proxy_coingecko(path: str, request: Request, service: MarketDataService = Depends(get_market_service)):
    return await _relay(COINGECKO, path, request, service)
