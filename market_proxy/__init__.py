"""
Market Proxy 行情代理服务
为行情看板提供统一的数据接口，屏蔽上游限流

架构分层：
  数据获取层 (Acquisition)  → 请求上游行情接口（Yahoo Finance / CoinGecko）
  缓存层     (Cache)        → 进程内 TTL + 容量上限缓存
  代理层     (Proxy)        → 缓存命中判断与上游转发
  处理层     (Processing)   → 时间键归一、去重、OHLC / 成交量合成
  分析层     (Analysis)     → 技术指标计算（SMA / EMA / BOLL）
"""

__version__ = "1.0.0"
