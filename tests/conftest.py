"""
测试公共夹具

  - FakeClock      : 可手动推进的时钟，用于缓存 TTL
  - RecordingSleep : 记录挂起时长、不真正等待的 sleep
  - Upstream       : 基于 httpx.MockTransport 的上游模拟，按路径返回预设响应序列
"""

import os
import sys
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import httpx
import pytest

# 确保仓库根目录在 sys.path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from market_proxy.layers.acquisition import UpstreamClient  # noqa: E402
from market_proxy.layers.cache import ResponseCache  # noqa: E402
from market_proxy.layers.proxy import ProxyLayer  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


Responder = Callable[[httpx.Request], httpx.Response]


class Upstream:
    """
    按 URL 路径注册响应队列；队列只剩一个时重复返回该响应。
    所有收到的请求记录在 requests 中。
    """

    def __init__(self):
        self.routes: Dict[str, List[Responder]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, path: str, *responders) -> None:
        self.routes.setdefault(path, []).extend(
            r if callable(r) else (lambda req, resp=r: resp) for r in responders
        )

    def json(self, path: str, payload, status: int = 200, headers: Optional[dict] = None) -> None:
        self.add(path, lambda req: httpx.Response(status, json=payload, headers=headers))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, text=f"no route for {request.url.path}")
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        return responder(request)

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def client(self, sleep=None) -> UpstreamClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return UpstreamClient(http, sleep=sleep) if sleep else UpstreamClient(http)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def proxy(upstream, recording_sleep, clock) -> ProxyLayer:
    return ProxyLayer(ResponseCache(max_entries=50, clock=clock), upstream.client(sleep=recording_sleep))


# ── 上游响应样例 ──────────────────────────────────────────

def unix(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def yahoo_payload(
    timestamps,
    closes,
    opens=None,
    highs=None,
    lows=None,
    volumes=None,
    meta: Optional[dict] = None,
) -> dict:
    n = len(timestamps)
    base_meta = {
        "regularMarketPrice": 110.0,
        "previousClose": 100.0,
        "chartPreviousClose": 95.0,
        "regularMarketDayHigh": 112.0,
        "regularMarketDayLow": 99.0,
        "regularMarketVolume": 5000,
    }
    if meta is not None:
        base_meta = meta
    return {
        "chart": {
            "result": [{
                "meta": base_meta,
                "timestamp": list(timestamps),
                "indicators": {"quote": [{
                    "open": opens if opens is not None else list(closes),
                    "high": highs if highs is not None else list(closes),
                    "low": lows if lows is not None else list(closes),
                    "close": list(closes),
                    "volume": volumes if volumes is not None else [100] * n,
                }]},
            }],
            "error": None,
        }
    }


def coingecko_chart(prices, volumes=None) -> dict:
    return {
        "prices": [list(p) for p in prices],
        "total_volumes": [list(v) for v in (volumes or [])],
    }


def coingecko_price(coin_id: str = "bitcoin", usd: float = 100.0, change: float = 25.0,
                    vol: float = 1e9, cap: float = 2e12) -> dict:
    return {
        coin_id: {
            "usd": usd,
            "usd_24h_change": change,
            "usd_24h_vol": vol,
            "usd_market_cap": cap,
        }
    }
