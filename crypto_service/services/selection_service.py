"""
选择控制器
持有"当前选中资产"并编排刷新周期：

  1. 拉取价格历史（默认 Twelve Data，日线，200 根）
  2. 升序排序 → 图表序列 → 指标引擎
  3. 请求 AI 点评（带上目前已知的新闻，可能是上一周期的）
  4. 请求新闻（与第 3 步并发，互不影响）

每一步独立失败，错误写入 RefreshState 对应字段，不会中断其它步骤。

RefreshState 是不可变快照，每次写入整体替换。每个周期分配递增的 cycle 令牌，
写入前比对当前令牌：被新选择取代的周期，其结果直接丢弃，
保证 A 的指标不会和 B 的新闻混在同一个状态里。
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel, ConfigDict

from crypto_service.config import ServiceSettings, settings
from crypto_service.errors import ConfigurationError, ValidationError
from crypto_service.layers.acquisition import NO_ANALYSIS_TEXT
from crypto_service.layers.analysis import get_analysis_layer
from crypto_service.layers.processing import HistoryPayloadError, get_processing_layer
from crypto_service.models.market import Asset, ChartSeries, IndicatorSnapshot, NewsItem
from crypto_service.services.catalog_service import AssetCatalog

logger = logging.getLogger(__name__)

ANALYSIS_LOADING_TEXT = "AI analysis loading..."


class RefreshStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class RefreshState(BaseModel):
    """单个资产的刷新结果快照（只读）"""

    model_config = ConfigDict(frozen=True)

    symbol: Optional[str] = None
    cycle: int = 0
    status: RefreshStatus = RefreshStatus.IDLE
    chart: Optional[ChartSeries] = None
    indicators: IndicatorSnapshot = IndicatorSnapshot()
    analysis: str = ""
    news: Tuple[NewsItem, ...] = ()
    chart_loading: bool = False
    analysis_loading: bool = False
    news_loading: bool = False
    chart_error: Optional[str] = None
    analysis_error: Optional[str] = None
    news_error: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self.chart_loading or self.analysis_loading or self.news_loading

    @property
    def has_errors(self) -> bool:
        return any((self.chart_error, self.analysis_error, self.news_error))


Listener = Callable[[RefreshState], None]


class SelectionController:
    """选择控制器：唯一有权写 RefreshState 的组件"""

    def __init__(
        self,
        client,
        catalog: AssetCatalog,
        config: Optional[ServiceSettings] = None,
    ):
        self._client = client
        self._catalog = catalog
        self._settings = config or settings
        self._proc = get_processing_layer()
        self._analysis = get_analysis_layer()
        self._state = RefreshState()
        self._cycle = 0
        self._known_news: Tuple[NewsItem, ...] = ()
        self._listeners: List[Listener] = []

    # ── 状态读取 / 订阅 ───────────────────────────────────

    @property
    def state(self) -> RefreshState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """注册状态监听；返回取消订阅函数"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _swap(self, new_state: RefreshState) -> None:
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                logger.exception("状态监听回调异常")

    def _commit(self, token: int, **updates: Any) -> bool:
        """令牌匹配才整体替换状态，否则丢弃"""
        if token != self._cycle:
            logger.debug(f"丢弃过期结果: cycle={token}，当前 cycle={self._cycle}")
            return False
        self._swap(self._state.model_copy(update=updates))
        return True

    # ── 触发 ──────────────────────────────────────────────

    async def on_catalog_loaded(self) -> Optional[RefreshState]:
        """目录非空时自动选中排名第一的资产"""
        first = self._catalog.first()
        if first is None:
            return None
        return await self.select(first.symbol)

    async def select(self, symbol: str) -> RefreshState:
        """
        切换选中资产并执行一次完整刷新周期

        返回的是周期结束时控制器的当前状态：若本周期已被更新的选择取代，
        返回值属于新的选择（symbol / cycle 与本次调用不同）。
        """
        asset = self._catalog.find(symbol)
        if asset is None:
            raise ValidationError(f"Unknown symbol: {symbol}")

        self._cycle += 1
        token = self._cycle
        logger.info(f"开始刷新 {asset.symbol}（cycle={token}）")
        self._swap(RefreshState(
            symbol=asset.symbol,
            cycle=token,
            status=RefreshStatus.LOADING,
            analysis=ANALYSIS_LOADING_TEXT,
            chart_loading=True,
            analysis_loading=True,
            news_loading=True,
        ))
        await self._run_cycle(token, asset)
        return self._state

    # ── 刷新周期 ──────────────────────────────────────────

    async def _run_cycle(self, token: int, asset: Asset) -> None:
        indicators = await self._refresh_chart(token, asset)
        if token != self._cycle:
            logger.debug(f"{asset.symbol} 已被新的选择取代（cycle={token}），跳过后续步骤")
            return
        await asyncio.gather(
            self._refresh_analysis(token, asset, indicators),
            self._refresh_news(token, asset.symbol),
        )
        status = RefreshStatus.FAILED if self._state.has_errors else RefreshStatus.READY
        if self._commit(token, status=status):
            logger.info(f"{asset.symbol} 刷新完成: {status.value}")

    async def _refresh_chart(self, token: int, asset: Asset) -> IndicatorSnapshot:
        symbol = asset.symbol
        try:
            df = await self._fetch_history(symbol)
            if df.empty:
                raise HistoryPayloadError(f"No OHLCV data found for {symbol}.")
            chart = self._proc.to_chart_series(df, symbol, self._settings.QUOTE_CURRENCY)
            indicators = self._analysis.snapshot(
                self._proc.close_series(df), volume=asset.volume_24h
            )
        except Exception as exc:
            logger.warning(f"{symbol} 价格历史 / 指标失败: {exc}")
            self._commit(
                token,
                chart=None,
                indicators=IndicatorSnapshot.unavailable(),
                chart_loading=False,
                chart_error=str(exc),
            )
            return IndicatorSnapshot.unavailable()

        self._commit(token, chart=chart, indicators=indicators, chart_loading=False)
        return indicators

    async def _fetch_history(self, symbol: str) -> pd.DataFrame:
        source = self._settings.HISTORY_SOURCE.lower()
        size = self._settings.HISTORY_OUTPUT_SIZE

        if source == "twelvedata":
            payload = await self._client.twelvedata_history(
                symbol, self._settings.HISTORY_INTERVAL, size
            )
            return self._proc.from_twelvedata(payload)

        # CoinAPI / Coinalyze 按时间窗口取数，窗口长度按日线折算
        end = datetime.now(tz=timezone.utc).replace(microsecond=0)
        start = end - timedelta(days=size)
        if source == "coinapi":
            payload = await self._client.coinapi_history(
                self._settings.COINAPI_SYMBOL_TEMPLATE.format(symbol=symbol),
                start.strftime("%Y-%m-%dT%H:%M:%S"),
                end.strftime("%Y-%m-%dT%H:%M:%S"),
            )
            return self._proc.from_coinapi(payload)
        if source == "coinalyze":
            payload = await self._client.coinalyze_history(
                self._settings.COINALYZE_SYMBOL_TEMPLATE.format(symbol=symbol),
                self._settings.COINALYZE_INTERVAL,
                int(start.timestamp()),
                int(end.timestamp()),
            )
            return self._proc.from_coinalyze(payload)
        raise ConfigurationError(f"Unknown history source: {self._settings.HISTORY_SOURCE}")

    def _analysis_payload(self, asset: Asset, indicators: IndicatorSnapshot) -> Dict[str, Any]:
        def value(v: Optional[float]) -> Any:
            return "N/A" if v is None else v

        return {
            "symbol": asset.symbol,
            "currentPrice": asset.current_price,
            "percentChange24h": asset.percent_change_24h,
            "marketCap": asset.market_cap,
            "rsi": value(indicators.rsi),
            "macd": value(indicators.macd),
            "sma50": value(indicators.sma50),
            "sma200": value(indicators.sma200),
            "volume": asset.volume_24h,
            "news": [item.model_dump() for item in self._known_news],
        }

    async def _refresh_analysis(
        self, token: int, asset: Asset, indicators: IndicatorSnapshot
    ) -> None:
        try:
            text = await self._client.analyze(self._analysis_payload(asset, indicators))
        except Exception as exc:
            logger.warning(f"{asset.symbol} AI 点评失败: {exc}")
            self._commit(
                token,
                analysis=f"AI analysis error: {exc}",
                analysis_error=str(exc),
                analysis_loading=False,
            )
            return
        self._commit(token, analysis=text or NO_ANALYSIS_TEXT, analysis_loading=False)

    async def _refresh_news(self, token: int, symbol: str) -> None:
        try:
            items = tuple(await self._client.news(symbol))
        except Exception as exc:
            logger.warning(f"{symbol} 新闻获取失败: {exc}")
            self._commit(token, news=(), news_error=f"News error: {exc}", news_loading=False)
            return
        if self._commit(token, news=items, news_loading=False):
            self._known_news = items
