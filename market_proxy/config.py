"""
行情代理服务配置模块
支持从环境变量 / .env 读取配置，各上游数据提供商的缓存与限流策略集中在此
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MarketProxySettings(BaseSettings):
    """行情代理服务配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 基础配置 ──────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8001)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"]
    )

    # ── 缓存配置 ──────────────────────────────────────────
    CACHE_MAX_ENTRIES: int = Field(default=500)      # 缓存容量上限（条）
    YAHOO_CACHE_TTL: int = Field(default=60)         # 股票 / 商品 / 指数 TTL（秒）
    COINGECKO_CACHE_TTL: int = Field(default=30)     # 加密货币 TTL，价格变化更快

    # ── 上游数据源 ─────────────────────────────────────────
    YAHOO_BASE_URL: str = Field(default="https://query1.finance.yahoo.com")
    YAHOO_USER_AGENT: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        )
    )
    COINGECKO_BASE_URL: str = Field(default="https://api.coingecko.com")
    COINGECKO_MAX_DAYS: int = Field(default=365)            # 免费版最长回溯天数
    COINGECKO_STAGGER_SECONDS: float = Field(default=1.5)   # 两次调用之间的错峰间隔
    HTTP_TIMEOUT_SECONDS: float = Field(default=15.0)

    # ── 重试 / 限流 ───────────────────────────────────────
    RATE_LIMIT_DEFAULT_RETRY_AFTER: float = Field(default=60.0)  # 429 无 Retry-After 时的等待秒数
    RETRY_BASE_DELAY: float = Field(default=1.0)
    RETRY_MAX_DELAY: float = Field(default=30.0)
    YAHOO_MAX_RETRIES: int = Field(default=2)
    COINGECKO_MAX_RETRIES: int = Field(default=1)

    # ── 日志配置 ──────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")


@lru_cache
def get_settings() -> MarketProxySettings:
    """获取全局配置（单例）"""
    return MarketProxySettings()


settings = get_settings()
