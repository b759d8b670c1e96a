"""
Crypto Dashboard 行情聚合服务
网关 + 看板核心：代理第三方行情 / 新闻 / AI 接口，客户端计算技术指标

架构分层：
  数据获取层 (Acquisition)  → 注入 API Key，转发到 CoinMarketCap / CoinAPI / Coinalyze /
                              Twelve Data / Gemini / Tavily
  处理层     (Processing)   → OHLCV 标准化、排序、图表序列
  分析层     (Analysis)     → RSI / MACD / SMA 指标计算（仅客户端调用）
  服务层     (Services)     → 资产目录 + 选择控制器（刷新周期编排）
"""

__version__ = "1.0.0"
