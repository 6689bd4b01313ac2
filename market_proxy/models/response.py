"""统一 API 响应模型"""

from typing import Any, Optional
from pydantic import BaseModel

from market_proxy.errors import MarketDataError


class ApiResponse(BaseModel):
    """标准 API 响应封装"""
    success: bool = True
    data: Optional[Any] = None
    message: str = ""
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None, message: str = "success") -> "ApiResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, message: str = "failed") -> "ApiResponse":
        return cls(success=False, error=error, message=message)

    @classmethod
    def from_error(cls, exc: MarketDataError) -> "ApiResponse":
        """行情异常转换为失败响应，message 使用异常类型名便于前端区分"""
        return cls(success=False, error=str(exc), message=type(exc).__name__)
