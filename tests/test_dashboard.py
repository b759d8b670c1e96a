"""
看板核心单元测试

覆盖范围：
  - 指标引擎（RSI / MACD / SMA，数据不足与走平边界、舍入幂等）
  - 数据处理层（三家 OHLCV 格式、排序）
  - 资产目录（排名排序、加载失败）
  - 选择控制器（刷新周期、分步失败隔离、过期周期丢弃）
  - 网关客户端（错误还原）
  - 文本视图
"""

import asyncio
import json
import os
import random
import sys
from datetime import date, timedelta

import httpx
import pandas as pd
import pytest
from pydantic import ValidationError as PydanticValidationError

# 确保项目根目录在 sys.path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from crypto_service.client import GatewayClient  # noqa: E402
from crypto_service.config import ServiceSettings  # noqa: E402
from crypto_service.dashboard import render  # noqa: E402
from crypto_service.errors import (  # noqa: E402
    TransportError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from crypto_service.layers.analysis import AnalysisLayer  # noqa: E402
from crypto_service.layers.processing import HistoryPayloadError, ProcessingLayer  # noqa: E402
from crypto_service.models.market import Asset, IndicatorSnapshot, NewsItem  # noqa: E402
from crypto_service.services.catalog_service import AssetCatalog, sort_by_rank  # noqa: E402
from crypto_service.services.selection_service import (  # noqa: E402
    ANALYSIS_LOADING_TEXT,
    RefreshState,
    RefreshStatus,
    SelectionController,
)


# ─────────────────────────────────────────────────────────
# 辅助函数
# ─────────────────────────────────────────────────────────

def _random_closes(n: int, seed: int = 7) -> list:
    rng = random.Random(seed)
    close = 100.0
    closes = []
    for _ in range(n):
        close = round(close * (1 + rng.uniform(-0.03, 0.03)), 4)
        closes.append(close)
    return closes


def _wilder_rsi(closes: list, period: int = 14) -> float:
    gains = [max(b - a, 0.0) for a, b in zip(closes, closes[1:])]
    losses = [max(a - b, 0.0) for a, b in zip(closes, closes[1:])]
    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    for g, l in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + g) / period
        avg_loss = (avg_loss * (period - 1) + l) / period
    return 100 - 100 / (1 + avg_gain / avg_loss)


def _td_payload(closes: list, start: date = date(2024, 1, 1)) -> dict:
    """Twelve Data 风格响应：最新的在前"""
    values = [
        {
            "datetime": (start + timedelta(days=i)).isoformat(),
            "open": str(c), "high": str(c), "low": str(c), "close": str(c),
            "volume": "1000",
        }
        for i, c in enumerate(closes)
    ]
    return {"meta": {"interval": "1day"}, "values": values[::-1], "status": "ok"}


def _asset(symbol: str, rank, volume: float = 5e9) -> Asset:
    return Asset(
        id=symbol, name=symbol.title(), symbol=symbol, currentPrice=10.0,
        volume24h=volume, percentChange24h=1.5, marketCap=1e9, cmcRank=rank,
    )


class FakeClient:
    """替代 GatewayClient：按资产返回预置结果；gates 以 (步骤, symbol) 为键，控制该调用何时返回"""

    def __init__(self, assets=(), history=None, news=None, analysis=None):
        self.assets = list(assets)
        self.history = history or {}
        self.news_results = news or {}
        self.analysis = analysis or {}
        self.gates = {}
        self.history_calls = []
        self.analyze_calls = []
        self.news_calls = []

    async def listings(self):
        if isinstance(self.assets, Exception):
            raise self.assets
        return self.assets

    async def _wait(self, step, symbol):
        gate = self.gates.get((step, symbol))
        if gate is not None:
            await gate.wait()

    async def _history(self, symbol):
        await self._wait("history", symbol)
        result = self.history[symbol]
        if isinstance(result, Exception):
            raise result
        return result

    async def twelvedata_history(self, symbol, interval, outputsize):
        self.history_calls.append(("twelvedata", symbol, interval, outputsize))
        return await self._history(symbol)

    async def coinalyze_history(self, symbol, interval, from_, to):
        self.history_calls.append(("coinalyze", symbol, interval, to - from_))
        return await self._history(symbol)

    async def analyze(self, payload):
        self.analyze_calls.append(payload)
        await self._wait("analyze", payload["symbol"])
        result = self.analysis.get(payload["symbol"], f"{payload['symbol']} looks steady.")
        if isinstance(result, Exception):
            raise result
        return result

    async def news(self, symbol):
        self.news_calls.append(symbol)
        await self._wait("news", symbol)
        result = self.news_results.get(symbol, [NewsItem(title=f"{symbol} headline", url=f"https://n/{symbol}")])
        if isinstance(result, Exception):
            raise result
        return result


def _controller(client, **overrides) -> SelectionController:
    catalog = AssetCatalog(client)
    asyncio.run(catalog.load())
    return SelectionController(client, catalog, config=ServiceSettings(**overrides))


# ─────────────────────────────────────────────────────────
# 1. 指标引擎
# ─────────────────────────────────────────────────────────

class TestIndicatorEngine:
    def setup_method(self):
        self.engine = AnalysisLayer()

    @pytest.mark.parametrize("n", [0, 1, 2, 10, 14])
    def test_rsi_needs_fifteen_points(self, n):
        assert self.engine.snapshot(_random_closes(n)).rsi is None

    def test_rsi_first_value_at_fifteen_points(self):
        assert self.engine.snapshot(_random_closes(15)).rsi is not None

    def test_rsi_flat_series_unavailable(self):
        snap = self.engine.snapshot([42.0] * 30)
        assert snap.rsi is None

    def test_rsi_only_gains_is_100(self):
        assert self.engine.snapshot([float(i) for i in range(1, 40)]).rsi == 100.0

    def test_rsi_matches_wilder_reference(self):
        closes = _random_closes(120)
        assert self.engine.snapshot(closes).rsi == pytest.approx(_wilder_rsi(closes), abs=0.01)

    def test_rsi_bounded(self):
        valid = self.engine.rsi(_random_closes(200, seed=3)).dropna()
        assert (valid >= 0).all() and (valid <= 100).all()

    def test_macd_availability_per_sub_value(self):
        short = self.engine.snapshot(_random_closes(25))
        assert short.macd is None and short.macd_signal is None

        line_only = self.engine.snapshot(_random_closes(34))
        assert line_only.macd is not None
        assert line_only.macd_signal is None and line_only.macd_histogram is None

        full = self.engine.snapshot(_random_closes(35))
        assert full.macd_signal is not None and full.macd_histogram is not None

    def test_macd_histogram_is_line_minus_signal(self):
        df = self.engine.macd(_random_closes(100))
        last = df.iloc[-1]
        assert last["histogram"] == pytest.approx(last["macd"] - last["signal"])

    @pytest.mark.parametrize("n,step", [(250, 1.0), (300, 0.25), (400, 7.5)])
    def test_macd_histogram_non_negative_on_uptrend(self, n, step):
        closes = [100.0 + step * i for i in range(n)]
        snap = self.engine.snapshot(closes)
        assert snap.macd_histogram >= 0
        assert snap.macd == pytest.approx(step * (26 - 12) / 2, abs=1e-3)

    @pytest.mark.parametrize("v", [1.0, 123.45, 0.0123])
    def test_sma_of_identical_values(self, v):
        assert self.engine.snapshot([v] * 50).sma50 == v
        assert self.engine.snapshot([v] * 200).sma200 == v

    def test_sma_needs_full_window(self):
        snap = self.engine.snapshot(_random_closes(199))
        assert snap.sma50 is not None
        assert snap.sma200 is None

    def test_sma_uses_trailing_window(self):
        closes = [1.0] * 150 + [3.0] * 50
        snap = self.engine.snapshot(closes)
        assert snap.sma50 == 3.0
        assert snap.sma200 == 1.5

    def test_empty_series_safe(self):
        snap = self.engine.snapshot([])
        assert snap == IndicatorSnapshot.unavailable()

    def test_rounding(self):
        snap = self.engine.snapshot(_random_closes(220))
        assert snap.rsi == round(snap.rsi, 2)
        for field in ("macd", "macd_signal", "macd_histogram", "sma50", "sma200"):
            value = getattr(snap, field)
            assert value == round(value, 4)

    def test_recompute_and_reround_is_idempotent(self):
        closes = _random_closes(210, seed=11)
        first = self.engine.snapshot(closes, volume=1.5e9)
        restored = IndicatorSnapshot.model_validate_json(first.model_dump_json())
        rerounded = IndicatorSnapshot(
            rsi=round(restored.rsi, 2),
            macd=round(restored.macd, 4),
            macd_signal=round(restored.macd_signal, 4),
            macd_histogram=round(restored.macd_histogram, 4),
            sma50=round(restored.sma50, 4),
            sma200=round(restored.sma200, 4),
            volume=restored.volume,
        )
        assert rerounded == first
        assert self.engine.snapshot(closes, volume=1.5e9) == first

    def test_accepts_pandas_series(self):
        closes = _random_closes(60)
        assert self.engine.snapshot(pd.Series(closes)) == self.engine.snapshot(closes)


# ─────────────────────────────────────────────────────────
# 2. 数据处理层
# ─────────────────────────────────────────────────────────

class TestProcessingLayer:
    def setup_method(self):
        self.proc = ProcessingLayer()

    def test_twelvedata_sorted_ascending(self):
        df = self.proc.from_twelvedata(_td_payload([1.0, 2.0, 3.0]))
        assert df["close"].tolist() == [1.0, 2.0, 3.0]
        assert df["date"].is_monotonic_increasing

    def test_duplicate_timestamps_kept_in_upstream_order(self):
        payload = {"values": [
            {"datetime": "2024-01-02", "close": "5"},
            {"datetime": "2024-01-01", "close": "1"},
            {"datetime": "2024-01-02", "close": "6"},
        ]}
        df = self.proc.from_twelvedata(payload)
        assert df["close"].tolist() == [1.0, 5.0, 6.0]

    def test_twelvedata_error_payload(self):
        with pytest.raises(HistoryPayloadError, match="symbol not found"):
            self.proc.from_twelvedata({"status": "error", "code": 404, "message": "symbol not found"})

    def test_missing_values_is_empty(self):
        assert self.proc.from_twelvedata({"meta": {}}).empty

    def test_coinapi(self):
        payload = [
            {"time_period_start": "2024-01-02T00:00:00Z", "price_open": 2, "price_high": 3,
             "price_low": 1, "price_close": 2.5, "volume_traded": 10},
            {"time_period_start": "2024-01-01T00:00:00Z", "price_open": 1, "price_high": 2,
             "price_low": 1, "price_close": 1.5, "volume_traded": 8},
        ]
        df = self.proc.from_coinapi(payload)
        assert df["close"].tolist() == [1.5, 2.5]

    def test_coinalyze(self):
        payload = [{"symbol": "BTCUSDT_PERP.A", "history": [
            {"t": 1704153600, "o": 2, "h": 3, "l": 1, "c": 2.5, "v": 10},
            {"t": 1704067200, "o": 1, "h": 2, "l": 1, "c": 1.5, "v": 8},
        ]}]
        points = self.proc.to_price_points(self.proc.from_coinalyze(payload))
        assert [p.close for p in points] == [1.5, 2.5]
        assert points[0].timestamp.year == 2024

    def test_chart_series(self):
        df = self.proc.from_twelvedata(_td_payload([1.0, 2.0], start=date(2024, 3, 1)))
        chart = self.proc.to_chart_series(df, "ETH")
        assert chart.label == "ETH Price (USD)"
        assert chart.labels == ("2024-03-01", "2024-03-02")
        assert chart.prices == (1.0, 2.0)


# ─────────────────────────────────────────────────────────
# 3. 资产目录
# ─────────────────────────────────────────────────────────

class TestAssetCatalog:
    def test_unranked_sorts_last(self):
        assets = [_asset("NIL", None), _asset("ETH", 2), _asset("BTC", 1)]
        assert [a.cmc_rank for a in sort_by_rank(assets)] == [1, 2, None]

    def test_ties_keep_insertion_order(self):
        assets = [_asset("A", 3), _asset("B", 1), _asset("C", 3), _asset("D", None), _asset("E", None)]
        assert [a.symbol for a in sort_by_rank(assets)] == ["B", "A", "C", "D", "E"]

    def test_non_numeric_rank_is_unranked(self):
        assert Asset(id=1, name="X", symbol="X", cmcRank="N/A").cmc_rank is None

    def test_load(self):
        client = FakeClient(assets=[_asset("ETH", 2), _asset("BTC", 1)])
        catalog = AssetCatalog(client)
        asyncio.run(catalog.load())
        assert [a.symbol for a in catalog.assets] == ["BTC", "ETH"]
        assert catalog.first().symbol == "BTC"
        assert catalog.find("eth").symbol == "ETH"
        assert catalog.error is None

    def test_load_failure_keeps_catalog_empty(self):
        client = FakeClient()
        client.assets = UpstreamError("Listings", 429, "rate limited")
        catalog = AssetCatalog(client)
        asyncio.run(catalog.load())
        assert len(catalog) == 0
        assert "429 - rate limited" in catalog.error
        assert catalog.loaded


# ─────────────────────────────────────────────────────────
# 4. 选择控制器
# ─────────────────────────────────────────────────────────

class TestSelectionController:
    def test_full_cycle(self):
        closes = _random_closes(200)
        client = FakeClient(assets=[_asset("BTC", 1)], history={"BTC": _td_payload(closes)})
        ctrl = _controller(client)
        state = asyncio.run(ctrl.select("BTC"))

        assert state.symbol == "BTC" and state.status == RefreshStatus.READY
        assert not state.loading
        assert len(state.chart.prices) == 200
        assert state.indicators.sma200 is not None
        assert state.indicators.volume == 5e9
        assert state.analysis == "BTC looks steady."
        assert [n.title for n in state.news] == ["BTC headline"]
        assert client.history_calls == [("twelvedata", "BTC", "1day", 200)]

        payload = client.analyze_calls[0]
        assert payload["rsi"] == state.indicators.rsi
        assert payload["marketCap"] == 1e9
        assert payload["news"] == []

    def test_auto_selects_top_ranked(self):
        client = FakeClient(
            assets=[_asset("ETH", 2), _asset("BTC", 1)],
            history={"BTC": _td_payload(_random_closes(60)), "ETH": _td_payload(_random_closes(60))},
        )
        ctrl = _controller(client)
        state = asyncio.run(ctrl.on_catalog_loaded())
        assert state.symbol == "BTC"

    def test_empty_catalog_stays_idle(self):
        client = FakeClient(assets=[])
        ctrl = _controller(client)
        assert asyncio.run(ctrl.on_catalog_loaded()) is None
        assert ctrl.state.status == RefreshStatus.IDLE

    def test_unknown_symbol(self):
        client = FakeClient(assets=[_asset("BTC", 1)])
        ctrl = _controller(client)
        with pytest.raises(ValidationError):
            asyncio.run(ctrl.select("DOGE"))

    def test_history_failure_keeps_other_steps(self):
        client = FakeClient(
            assets=[_asset("BTC", 1)],
            history={"BTC": UpstreamError("Twelve Data OHLCV", 429, "quota")},
        )
        ctrl = _controller(client)
        state = asyncio.run(ctrl.select("BTC"))

        assert "429 - quota" in state.chart_error
        assert state.chart is None
        assert state.indicators == IndicatorSnapshot.unavailable()
        assert state.analysis == "BTC looks steady."
        assert state.news and state.news_error is None
        assert client.analyze_calls[0]["rsi"] == "N/A"
        assert state.status == RefreshStatus.FAILED

    def test_empty_history_is_chart_error(self):
        client = FakeClient(assets=[_asset("BTC", 1)], history={"BTC": {"values": []}})
        ctrl = _controller(client)
        state = asyncio.run(ctrl.select("BTC"))
        assert state.chart_error == "No OHLCV data found for BTC."
        assert client.news_calls == ["BTC"]

    def test_analysis_failure_sets_error_text(self):
        client = FakeClient(
            assets=[_asset("BTC", 1)],
            history={"BTC": _td_payload(_random_closes(40))},
            analysis={"BTC": UpstreamTimeoutError("AI Analysis request timed out after 20s.")},
        )
        ctrl = _controller(client)
        state = asyncio.run(ctrl.select("BTC"))
        assert state.analysis.startswith("AI analysis error:")
        assert state.analysis_error
        assert [n.title for n in state.news] == ["BTC headline"]
        assert state.chart_error is None

    def test_news_failure_empties_list(self):
        client = FakeClient(
            assets=[_asset("BTC", 1)],
            history={"BTC": _td_payload(_random_closes(40))},
            news={"BTC": TransportError("News request failed: ConnectError.")},
        )
        ctrl = _controller(client)
        state = asyncio.run(ctrl.select("BTC"))
        assert state.news == ()
        assert state.news_error.startswith("News error:")
        assert state.analysis == "BTC looks steady."

    def test_previous_news_feeds_next_prompt(self):
        client = FakeClient(
            assets=[_asset("BTC", 1), _asset("ETH", 2)],
            history={"BTC": _td_payload(_random_closes(40)), "ETH": _td_payload(_random_closes(40))},
        )
        ctrl = _controller(client)

        async def scenario():
            await ctrl.select("BTC")
            return await ctrl.select("ETH")

        state = asyncio.run(scenario())
        assert client.analyze_calls[1]["news"] == [{"title": "BTC headline", "url": "https://n/BTC"}]
        assert [n.title for n in state.news] == ["ETH headline"]

    def test_loading_state_published_first(self):
        client = FakeClient(assets=[_asset("BTC", 1)], history={"BTC": _td_payload(_random_closes(40))})
        ctrl = _controller(client)
        seen = []
        ctrl.subscribe(seen.append)
        asyncio.run(ctrl.select("BTC"))

        assert seen[0].status == RefreshStatus.LOADING
        assert seen[0].analysis == ANALYSIS_LOADING_TEXT
        assert seen[0].chart_loading and seen[0].news_loading
        assert seen[-1].status == RefreshStatus.READY

    def test_state_is_immutable(self):
        state = RefreshState(symbol="BTC")
        with pytest.raises(PydanticValidationError):
            state.symbol = "ETH"

    @pytest.mark.parametrize("first_to_resolve", ["A", "B"])
    def test_superseded_cycle_never_overwrites(self, first_to_resolve):
        client = FakeClient(
            assets=[_asset("A", 1, volume=1.0), _asset("B", 2, volume=2.0)],
            history={"A": _td_payload([100.0] * 60), "B": _td_payload([200.0] * 60)},
        )
        ctrl = _controller(client)
        seen = []
        ctrl.subscribe(seen.append)

        async def scenario():
            client.gates = {("history", "A"): asyncio.Event(), ("history", "B"): asyncio.Event()}
            task_a = asyncio.create_task(ctrl.select("A"))
            await asyncio.sleep(0)
            task_b = asyncio.create_task(ctrl.select("B"))
            await asyncio.sleep(0)
            order = ["A", "B"] if first_to_resolve == "A" else ["B", "A"]
            tasks = {"A": task_a, "B": task_b}
            for symbol in order:
                client.gates[("history", symbol)].set()
                await tasks[symbol]

        asyncio.run(scenario())
        state = ctrl.state
        assert state.symbol == "B" and state.cycle == 2
        assert state.indicators.sma50 == 200.0
        assert state.indicators.volume == 2.0
        assert [n.title for n in state.news] == ["B headline"]
        assert state.status == RefreshStatus.READY

        first_b = next(i for i, s in enumerate(seen) if s.symbol == "B")
        assert all(s.symbol == "B" for s in seen[first_b:])
        assert "A" not in client.news_calls

    @pytest.mark.parametrize("step", ["analyze", "news"])
    def test_superseded_cycle_discards_in_flight_step(self, step):
        client = FakeClient(
            assets=[_asset("A", 1, volume=1.0), _asset("B", 2, volume=2.0)],
            history={"A": _td_payload([100.0] * 60), "B": _td_payload([200.0] * 60)},
        )
        ctrl = _controller(client)
        seen = []
        ctrl.subscribe(seen.append)

        def started(symbol):
            if step == "analyze":
                return symbol in [p["symbol"] for p in client.analyze_calls]
            return symbol in client.news_calls

        async def scenario():
            gate = asyncio.Event()
            client.gates = {(step, "A"): gate}
            task_a = asyncio.create_task(ctrl.select("A"))
            while not started("A"):
                await asyncio.sleep(0)
            await ctrl.select("B")
            gate.set()
            return await task_a

        returned = asyncio.run(scenario())
        state = ctrl.state
        assert state.symbol == "B" and state.cycle == 2
        assert state.analysis == "B looks steady."
        assert [n.title for n in state.news] == ["B headline"]
        assert state.indicators.sma50 == 200.0
        assert state.status == RefreshStatus.READY
        assert not state.loading and not state.has_errors
        # 被取代的 select 返回的是控制器当前状态（属于 B）
        assert returned is state

        first_b = next(i for i, s in enumerate(seen) if s.symbol == "B")
        assert all(s.symbol == "B" for s in seen[first_b:])

        # A 的迟到新闻不会进入下一周期的提示词
        asyncio.run(ctrl.select("A"))
        assert client.analyze_calls[-1]["symbol"] == "A"
        assert client.analyze_calls[-1]["news"] == [{"title": "B headline", "url": "https://n/B"}]

    def test_unsubscribe_is_idempotent(self):
        client = FakeClient(assets=[_asset("BTC", 1)], history={"BTC": _td_payload(_random_closes(40))})
        ctrl = _controller(client)
        seen = []
        unsubscribe = ctrl.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        asyncio.run(ctrl.select("BTC"))
        assert seen == []

    def test_coinalyze_history_source(self):
        payload = [{"symbol": "BTCUSDT_PERP.A", "history": [
            {"t": 1704067200 + 86400 * i, "o": 1, "h": 1, "l": 1, "c": 10.0 + i, "v": 1}
            for i in range(60)
        ]}]
        client = FakeClient(assets=[_asset("BTC", 1)], history={"BTCUSDT_PERP.A": payload})
        ctrl = _controller(client, HISTORY_SOURCE="coinalyze")
        state = asyncio.run(ctrl.select("BTC"))
        source, symbol, interval, window = client.history_calls[0]
        assert (source, symbol, interval) == ("coinalyze", "BTCUSDT_PERP.A", "daily")
        assert window == 200 * 86400
        assert state.chart.prices[-1] == 69.0

    def test_unknown_history_source_is_chart_error(self):
        client = FakeClient(assets=[_asset("BTC", 1)])
        ctrl = _controller(client, HISTORY_SOURCE="nowhere")
        state = asyncio.run(ctrl.select("BTC"))
        assert "Unknown history source" in state.chart_error
        assert client.news_calls == ["BTC"]


# ─────────────────────────────────────────────────────────
# 5. 网关客户端
# ─────────────────────────────────────────────────────────

class TestGatewayClient:
    def _client(self, handler) -> GatewayClient:
        return GatewayClient(
            base_url="http://gateway.test/",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

    def test_listings(self):
        def handler(request):
            assert request.url.path == "/api/cryptocurrency/listings/latest"
            return httpx.Response(200, json=[
                {"id": 1, "name": "Bitcoin", "symbol": "BTC", "logo": "x", "currentPrice": 1,
                 "volume24h": 2, "percentChange1h": 0, "percentChange24h": 0, "percentChange7d": 0,
                 "marketCap": 3, "cmcRank": None},
            ])

        assets = asyncio.run(self._client(handler).listings())
        assert assets[0].symbol == "BTC" and assets[0].cmc_rank is None

    def test_error_body_is_restored(self):
        def handler(request):
            return httpx.Response(429, json={"error": "Twelve Data API error: 429 - quota"})

        with pytest.raises(UpstreamError) as info:
            asyncio.run(self._client(handler).twelvedata_history("BTC", "1day", 200))
        assert info.value.status_code == 429
        assert "quota" in info.value.message

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(UpstreamTimeoutError):
            asyncio.run(self._client(handler).news("BTC"))

    def test_analyze_posts_payload(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"analysis": "ok"})

        text = asyncio.run(self._client(handler).analyze({"symbol": "BTC", "rsi": "N/A"}))
        assert text == "ok"
        assert captured["body"]["rsi"] == "N/A"


# ─────────────────────────────────────────────────────────
# 6. 文本视图
# ─────────────────────────────────────────────────────────

class TestRender:
    def test_unavailable_indicators_render_na(self):
        state = RefreshState(symbol="BTC", status=RefreshStatus.FAILED,
                             chart_error="No OHLCV data found for BTC.",
                             analysis="AI analysis error: boom")
        text = render(state, _asset("BTC", 1))
        assert "RSI: N/A" in text
        assert "Chart error: No OHLCV data found for BTC." in text
        assert "AI analysis error: boom" in text

    def test_news_and_values(self):
        state = RefreshState(
            symbol="ETH", status=RefreshStatus.READY,
            indicators=IndicatorSnapshot(rsi=55.5, sma50=2000.1234),
            news=(NewsItem(title="Upgrade live", url="https://e"),),
        )
        text = render(state)
        assert "RSI: 55.5" in text and "SMA50: 2000.1234" in text
        assert "- Upgrade live <https://e>" in text
