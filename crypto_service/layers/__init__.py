"""
数据流分层架构
  Layer 1 – Acquisition  : 上游网关（注入 Key、转发、统一错误）
  Layer 2 – Processing   : OHLCV 标准化与排序
  Layer 3 – Analysis     : 技术指标计算
"""
