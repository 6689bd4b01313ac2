"""
数据流分层架构
  Layer 1 – Acquisition  : 上游 HTTP 请求（含 429 退避重试）
  Layer 2 – Cache        : 进程内缓存（TTL + FIFO 淘汰）
  Layer 3 – Proxy        : 缓存优先的上游代理
  Layer 4 – Processing   : 标准化时间序列构建
  Layer 5 – Analysis     : 技术指标计算
"""
