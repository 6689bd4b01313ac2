"""
Layer 1 – 数据获取层
通过 httpx 异步请求上游行情接口。限流（HTTP 429）按“退避一次、重试一次”处理，
以显式状态机实现：

  IDLE → REQUESTING → DONE | FAILED
                    ↘ BACKOFF → RETRYING → DONE | FAILED
"""

import asyncio
import logging
import math
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

import httpx

from market_proxy.config import settings
from market_proxy.errors import DataError, UpstreamError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class RequestState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    BACKOFF = "backoff"
    RETRYING = "retrying"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: Dict[RequestState, frozenset] = {
    RequestState.IDLE: frozenset({RequestState.REQUESTING}),
    RequestState.REQUESTING: frozenset({RequestState.BACKOFF, RequestState.DONE, RequestState.FAILED}),
    RequestState.BACKOFF: frozenset({RequestState.RETRYING, RequestState.FAILED}),
    RequestState.RETRYING: frozenset({RequestState.DONE, RequestState.FAILED}),
    RequestState.DONE: frozenset(),
    RequestState.FAILED: frozenset(),
}


def parse_retry_after(response: httpx.Response, default: float) -> float:
    """读取 Retry-After（秒）；缺失、非数字（如 HTTP 日期格式）或非有限值时使用默认值"""
    raw = response.headers.get("Retry-After")
    if raw is None:
        return default
    try:
        seconds = float(raw.strip())
    except ValueError:
        return default
    if not math.isfinite(seconds):
        return default
    return max(0.0, seconds)


class RateLimitedRequest:
    """
    单次上游请求（一次性对象）

    retry_on_rate_limit=True 时，首个 429 响应会按 Retry-After 挂起后重试恰好一次；
    重试仍为 429 则以 UpstreamError(429) 结束，不再继续重试。
    """

    def __init__(
        self,
        send: Callable[[], Awaitable[httpx.Response]],
        provider: str = "",
        retry_on_rate_limit: bool = False,
        default_retry_after: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._send = send
        self.provider = provider
        self.retry_on_rate_limit = retry_on_rate_limit
        self.default_retry_after = (
            default_retry_after
            if default_retry_after is not None
            else settings.RATE_LIMIT_DEFAULT_RETRY_AFTER
        )
        self._sleep = sleep
        self.state = RequestState.IDLE
        self.transitions: List[RequestState] = [RequestState.IDLE]
        self.attempts = 0
        self.backoff_seconds: Optional[float] = None

    def _transition(self, new_state: RequestState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"非法状态转换: {self.state.value} → {new_state.value}")
        self.state = new_state
        self.transitions.append(new_state)

    async def _attempt(self) -> httpx.Response:
        self.attempts += 1
        try:
            return await self._send()
        except httpx.TransportError:
            self._transition(RequestState.FAILED)
            raise

    def _finish(self, response: httpx.Response) -> httpx.Response:
        if response.is_success:
            self._transition(RequestState.DONE)
            return response
        self._transition(RequestState.FAILED)
        detail = response.text[:200]
        logger.error(f"[{self.provider}] HTTP {response.status_code}: {detail}")
        raise UpstreamError(response.status_code, provider=self.provider, detail=detail)

    async def run(self) -> httpx.Response:
        self._transition(RequestState.REQUESTING)
        response = await self._attempt()

        if response.status_code == 429 and self.retry_on_rate_limit:
            delay = parse_retry_after(response, self.default_retry_after)
            self._transition(RequestState.BACKOFF)
            self.backoff_seconds = delay
            logger.warning(f"[{self.provider}] 触发限流 429，{delay:g}s 后重试一次")
            await self._sleep(delay)
            self._transition(RequestState.RETRYING)
            response = await self._attempt()

        return self._finish(response)


class UpstreamClient:
    """上游 HTTP 客户端，封装 httpx.AsyncClient"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
        self._sleep = sleep

    async def get_json(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        provider: str = "",
        retry_on_rate_limit: bool = False,
    ) -> Any:
        """GET 请求并解析 JSON；非 2xx 抛出 UpstreamError，响应体不是 JSON 抛出 DataError"""
        request = RateLimitedRequest(
            lambda: self._client.get(url, params=params, headers=headers),
            provider=provider,
            retry_on_rate_limit=retry_on_rate_limit,
            sleep=self._sleep,
        )
        response = await request.run()
        try:
            return response.json()
        except ValueError as exc:
            raise DataError(f"{provider} 返回的响应不是合法 JSON: {exc}", provider=provider) from exc

    async def aclose(self) -> None:
        await self._client.aclose()
