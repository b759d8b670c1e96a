"""行情领域模型"""

from datetime import datetime
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Asset(BaseModel):
    """资产目录中的一条记录（一次拉取后不可变）"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Union[int, str]
    name: str
    symbol: str
    logo: str = ""
    current_price: float = Field(default=0.0, alias="currentPrice")
    volume_24h: float = Field(default=0.0, alias="volume24h")
    percent_change_1h: float = Field(default=0.0, alias="percentChange1h")
    percent_change_24h: float = Field(default=0.0, alias="percentChange24h")
    percent_change_7d: float = Field(default=0.0, alias="percentChange7d")
    market_cap: float = Field(default=0.0, alias="marketCap")
    cmc_rank: Optional[int] = Field(default=None, alias="cmcRank")

    @field_validator(
        "current_price", "volume_24h", "percent_change_1h",
        "percent_change_24h", "percent_change_7d", "market_cap",
        mode="before",
    )
    @classmethod
    def _zero_if_missing(cls, v):
        return 0.0 if v in (None, "") else v

    @field_validator("cmc_rank", mode="before")
    @classmethod
    def _rank_or_unranked(cls, v):
        # 上游可能给出 "N/A" 之类的占位值
        try:
            rank = int(v)
        except (TypeError, ValueError):
            return None
        return rank if rank > 0 else None


class PricePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[float] = None


class NewsItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    url: str = ""


class ChartSeries(BaseModel):
    """价格走势图数据：日期标签 + 收盘价"""

    model_config = ConfigDict(frozen=True)

    label: str
    labels: Tuple[str, ...] = ()
    prices: Tuple[float, ...] = ()


class IndicatorSnapshot(BaseModel):
    """
    单次刷新的技术指标快照

    None 表示"不可用"（数据不足或无法计算），展示时渲染为 N/A
    """

    model_config = ConfigDict(frozen=True)

    rsi: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None
    volume: Optional[float] = None

    @classmethod
    def unavailable(cls) -> "IndicatorSnapshot":
        return cls()

    def display(self, field: str) -> str:
        value = getattr(self, field)
        return "N/A" if value is None else f"{value}"


class AnalyzeRequest(BaseModel):
    """POST /api/ai/analyze-crypto 请求体；指标字段可能是数字或 "N/A" """

    model_config = ConfigDict(populate_by_name=True)

    symbol: str
    current_price: Optional[Union[int, float, str]] = Field(default=None, alias="currentPrice")
    percent_change_24h: Optional[Union[int, float, str]] = Field(default=None, alias="percentChange24h")
    market_cap: Optional[Union[int, float, str]] = Field(default=None, alias="marketCap")
    rsi: Optional[Union[int, float, str]] = None
    macd: Optional[Union[int, float, str]] = None
    sma50: Optional[Union[int, float, str]] = None
    sma200: Optional[Union[int, float, str]] = None
    volume: Optional[Union[int, float, str]] = None
    news: List[NewsItem] = Field(default_factory=list)
