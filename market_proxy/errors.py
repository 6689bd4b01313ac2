"""
行情数据异常体系

  UpstreamError  : 上游返回非 2xx 状态码（保留原始状态码）
  DataError      : HTTP 成功但响应结构缺失（如结果集为空）
  NoSourceError  : 资产未配置任何可识别的数据源标识（配置缺陷）
"""

from typing import Optional


class MarketDataError(Exception):
    """行情数据异常基类"""


class UpstreamError(MarketDataError):
    """上游数据提供商返回了非成功状态码"""

    def __init__(self, status: int, provider: str = "", detail: str = ""):
        self.status = status
        self.provider = provider
        self.detail = detail
        message = f"{provider or 'upstream'} 返回 HTTP {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DataError(MarketDataError):
    """上游响应缺少预期的结果结构"""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class NoSourceError(MarketDataError):
    """资产没有配置任何数据源"""

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"资产 {asset_id} 未配置数据源（yahoo_symbol / coingecko_id）")
