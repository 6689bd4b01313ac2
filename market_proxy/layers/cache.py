"""
Layer 2 – 缓存层
进程内响应缓存：单条 TTL + 容量上限，满时按插入顺序淘汰最早条目（FIFO，非 LRU）
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional
from urllib.parse import urlencode

from market_proxy.config import settings

logger = logging.getLogger(__name__)


def make_cache_key(provider: str, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    生成规范化缓存键：{provider}:{path}?{排序后的查询串}

    查询参数按名称排序，调用方传参顺序不同也会命中同一条缓存。
    """
    qs = urlencode(sorted((str(k), str(v)) for k, v in (params or {}).items()))
    return f"{provider}:{path}?{qs}"


class _CacheEntry(NamedTuple):
    payload: Any
    expires_at: float


class ResponseCache:
    """
    内存缓存，payload 对缓存不透明，由调用方自行还原类型。

    - get 时惰性过期：now > expires_at 即删除并返回 default（默认 None），不做后台清扫
    - set 时只要已满就先淘汰插入最早的一条，覆盖已有键也不例外
    - 覆盖已有键（未被淘汰时）不改变其插入位置
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries if max_entries is not None else settings.CACHE_MAX_ENTRIES
        if self.max_entries < 1:
            raise ValueError("max_entries 必须 >= 1")
        self._clock = clock
        self._store: Dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        """未命中或已过期时返回 default"""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return default
            if self._clock() > entry.expires_at:
                del self._store[key]
                logger.debug(f"缓存过期: {key}")
                return default
            return entry.payload

    def set(self, key: str, payload: Any, ttl_seconds: float) -> None:
        with self._lock:
            if len(self._store) >= self.max_entries:
                oldest = next(iter(self._store))
                del self._store[oldest]
                logger.debug(f"缓存已满，淘汰最早条目: {oldest}")
            self._store[key] = _CacheEntry(payload, self._clock() + ttl_seconds)

    def size(self) -> int:
        return len(self._store)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        # 只看物理存在，不触发过期检查
        return key in self._store

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def stats(self) -> dict:
        """返回缓存统计信息（含尚未被读取清理的过期条目）"""
        return {"entries": self.size(), "capacity": self.max_entries, "backend": "memory"}
