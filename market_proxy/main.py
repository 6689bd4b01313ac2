"""
Market Proxy 行情代理服务
独立 FastAPI 应用程序入口

启动方式:
    uvicorn market_proxy.main:app --host 0.0.0.0 --port 8001
    python -m market_proxy.main
"""

import logging
import time
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from market_proxy import __version__
from market_proxy.config import settings
from market_proxy.errors import DataError, MarketDataError, UpstreamError
from market_proxy.models.response import ApiResponse
from market_proxy.routers import cache, health, market, proxy, technical
from market_proxy.services.market_service import create_market_service
from market_proxy.services.technical_service import TechnicalService

# ── 日志配置 ──────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ── 生命周期管理 ──────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用启动/关闭生命周期钩子：显式构造缓存与服务，关闭时释放 HTTP 连接"""
    logger.info("=" * 60)
    logger.info(f"🚀 Market Proxy v{__version__} 启动中")
    logger.info(f"   Yahoo     : {settings.YAHOO_BASE_URL}（TTL {settings.YAHOO_CACHE_TTL}s）")
    logger.info(f"   CoinGecko : {settings.COINGECKO_BASE_URL}（TTL {settings.COINGECKO_CACHE_TTL}s）")
    logger.info(f"   Cache     : 内存，容量 {settings.CACHE_MAX_ENTRIES} 条")
    logger.info("=" * 60)

    service = create_market_service()
    service.registry.validate()
    app.state.market_service = service
    app.state.technical_service = TechnicalService(service)

    yield

    logger.info("🔄 行情代理服务正在关闭...")
    await service.proxy.client.aclose()
    service.cache.clear()
    logger.info("✅ 行情代理服务已关闭")


# ── 应用实例 ──────────────────────────────────────────────
app = FastAPI(
    title="Market Proxy 行情代理服务",
    description=(
        "行情看板后端，提供以下功能：\n"
        "- 📊 股票 / 商品 / 指数行情（Yahoo Finance）\n"
        "- 🪙 加密货币行情（CoinGecko，429 单次退避重试）\n"
        "- 🗄️ 进程内缓存（TTL + FIFO 淘汰，屏蔽上游限流）\n"
        "- 📈 技术指标（SMA / EMA / BOLL）\n\n"
        "**分层架构**\n"
        "```\n"
        "Acquisition Layer  ← 上游 HTTP 请求\n"
        "Cache Layer        ← 内存缓存\n"
        "Proxy Layer        ← 缓存优先转发\n"
        "Processing Layer   ← 时间序列标准化\n"
        "Analysis Layer     ← 技术指标计算\n"
        "```"
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS 中间件 ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── 请求计时中间件 ─────────────────────────────────────────
@app.middleware("http")
async def add_process_time(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{(time.time() - start) * 1000:.1f}ms"
    return response


# ── 异常处理 ──────────────────────────────────────────────
def _error_status(exc: MarketDataError) -> int:
    if isinstance(exc, UpstreamError):
        return exc.status
    if isinstance(exc, DataError):
        return 502
    return 500


@app.exception_handler(MarketDataError)
async def market_data_exception_handler(request: Request, exc: MarketDataError):
    status_code = _error_status(exc)
    logger.warning(f"{request.url.path} 行情获取失败（{status_code}）: {exc}")
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse.from_error(exc).model_dump(),
    )


@app.exception_handler(httpx.TransportError)
async def transport_exception_handler(request: Request, exc: httpx.TransportError):
    logger.error(f"{request.url.path} 上游网络故障: {exc}")
    return JSONResponse(
        status_code=502,
        content=ApiResponse.fail(error=str(exc) or type(exc).__name__, message="Upstream error").model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"未处理的异常: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "内部服务错误", "message": str(exc)},
    )


# ── 注册路由 ──────────────────────────────────────────────
app.include_router(health.router)
app.include_router(market.router)
app.include_router(technical.router)
app.include_router(proxy.router)
app.include_router(cache.router)


# ── 根路由 ───────────────────────────────────────────────
@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "Market Proxy",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# ── 直接运行入口 ──────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "market_proxy.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
