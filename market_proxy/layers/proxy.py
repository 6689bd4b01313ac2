"""
Layer 3 – 代理层
按 (provider, path, 排序后的查询参数) 查缓存，未命中时请求上游并按数据源 TTL 写入缓存。
上游失败不写缓存（不做负缓存），异常原样抛给调用方。
"""

import logging
from typing import Any, Dict, Mapping, NamedTuple, Optional

from market_proxy.config import settings
from market_proxy.layers.acquisition import UpstreamClient
from market_proxy.layers.cache import ResponseCache, make_cache_key

logger = logging.getLogger(__name__)

YAHOO = "yahoo"
COINGECKO = "coingecko"

# 缓存未命中标记，区分上游返回的 JSON null
_MISSING = object()


class ProviderPolicy(NamedTuple):
    name: str
    base_url: str
    cache_ttl: float
    retry_on_rate_limit: bool = False
    headers: Mapping[str, str] = {}


def default_providers() -> Dict[str, ProviderPolicy]:
    return {
        YAHOO: ProviderPolicy(
            name=YAHOO,
            base_url=settings.YAHOO_BASE_URL.rstrip("/"),
            cache_ttl=settings.YAHOO_CACHE_TTL,
            headers={"User-Agent": settings.YAHOO_USER_AGENT},
        ),
        COINGECKO: ProviderPolicy(
            name=COINGECKO,
            base_url=settings.COINGECKO_BASE_URL.rstrip("/"),
            cache_ttl=settings.COINGECKO_CACHE_TTL,
            retry_on_rate_limit=True,
        ),
    }


class ProxyResult(NamedTuple):
    payload: Any
    cached: bool


class ProxyLayer:
    """缓存优先的上游代理，持有显式构造的 ResponseCache"""

    def __init__(
        self,
        cache: ResponseCache,
        client: UpstreamClient,
        providers: Optional[Mapping[str, ProviderPolicy]] = None,
    ):
        self.cache = cache
        self.client = client
        self.providers = dict(providers) if providers is not None else default_providers()

    def policy(self, provider: str) -> ProviderPolicy:
        try:
            return self.providers[provider]
        except KeyError:
            raise ValueError(f"未知的数据提供商: {provider}") from None

    async def fetch_json(
        self,
        provider: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ProxyResult:
        policy = self.policy(provider)
        key = make_cache_key(provider, path, params)

        cached = self.cache.get(key, _MISSING)
        if cached is not _MISSING:
            logger.debug(f"缓存命中: {key}")
            return ProxyResult(cached, True)

        logger.debug(f"缓存未命中，请求上游: {key}")
        payload = await self.client.get_json(
            f"{policy.base_url}{path}",
            params=dict(params or {}),
            headers=policy.headers,
            provider=provider,
            retry_on_rate_limit=policy.retry_on_rate_limit,
        )
        self.cache.set(key, payload, policy.cache_ttl)
        return ProxyResult(payload, False)
