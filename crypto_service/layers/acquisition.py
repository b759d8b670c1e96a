"""
Layer 1 – 数据获取层（上游网关）
向 CoinMarketCap / CoinAPI / Coinalyze / Twelve Data / Gemini / Tavily 转发请求，
注入各自的 API Key，并把上游失败统一为 UpstreamError。

约定：
  - 每个操作只做一次往返，不重试
  - 每次调用使用固定超时（settings.UPSTREAM_TIMEOUT）
  - 只有 listings 做字段重塑，其余接口基本原样透传
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx
from pydantic import SecretStr

from crypto_service.config import ServiceSettings, settings
from crypto_service.errors import (
    ConfigurationError,
    TransportError,
    UpstreamError,
    UpstreamTimeoutError,
    ValidationError,
)
from crypto_service.models.market import AnalyzeRequest, Asset, NewsItem

logger = logging.getLogger(__name__)

NO_ANALYSIS_TEXT = "No analysis available."

_PROVIDER_LABELS = {
    "coinmarketcap": "CoinMarketCap",
    "coinapi": "CoinAPI",
    "coinalyze": "Coinalyze",
    "twelvedata": "Twelve Data",
    "gemini": "Gemini",
    "tavily": "Tavily",
}

# ── 各上游错误信息所在字段（按顺序尝试） ────────────────────
_MESSAGE_PATHS: Dict[str, List[Tuple[str, ...]]] = {
    "coinmarketcap": [("status", "error_message")],
    "coinapi": [("error",)],
    "coinalyze": [("error",), ("message",)],
    "twelvedata": [("message",)],
    "gemini": [("error",), ("message",)],
    "tavily": [("error",), ("message",), ("detail", "error")],
}


def _dig(body: Any, path: Sequence[str]) -> Any:
    for key in path:
        if not isinstance(body, dict):
            return None
        body = body.get(key)
    return body


def _as_message(value: Any) -> Optional[str]:
    # Gemini 的 error 字段是对象：{"code": ..., "message": ...}
    if isinstance(value, dict):
        value = value.get("message")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def extract_error_message(provider: str, response: httpx.Response) -> str:
    """尽力从上游错误响应中提取可读信息，失败时回退到 HTTP 状态描述"""
    try:
        body = response.json()
    except ValueError:
        body = None
    for path in _MESSAGE_PATHS.get(provider, [("error",), ("message",)]):
        message = _as_message(_dig(body, path))
        if message:
            return message
    return response.reason_phrase or str(response.status_code)


def _fmt(value: Any) -> str:
    if value is None:
        return "N/A"
    # 整数值不带 ".0"：65000.0 渲染为 65000
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}"


def build_analysis_prompt(req: AnalyzeRequest) -> str:
    """把价格 / 指标 / 新闻拼成给生成式模型的自然语言提示"""
    lines = [
        f"Analyze the following cryptocurrency data for {req.symbol}:",
        f"- Current Price: ${_fmt(req.current_price)}",
        f"- 24h Change: {_fmt(req.percent_change_24h)}%",
        f"- Market Cap: ${_fmt(req.market_cap)}",
        f"- RSI (14): {_fmt(req.rsi)}",
        f"- MACD: {_fmt(req.macd)}",
        f"- 50-Day MA: {_fmt(req.sma50)}",
        f"- 200-Day MA: {_fmt(req.sma200)}",
        f"- 24h Volume: {_fmt(req.volume)}",
    ]
    prompt = "\n".join(lines)
    if req.news:
        titles = "\n".join(f"{i}. {item.title}" for i, item in enumerate(req.news, start=1))
        prompt += f"\n\nLatest News:\n{titles}"
    prompt += (
        f"\n\nProvide a concise market sentiment analysis and potential short-term "
        f"outlook for {req.symbol} in 2-3 sentences."
    )
    return prompt


class UpstreamGateway:
    """上游网关：无状态，每个方法对应一个对外接口"""

    def __init__(
        self,
        config: Optional[ServiceSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = config or settings
        self._client = client

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.UPSTREAM_TIMEOUT)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ── 公共工具 ──────────────────────────────────────────

    @staticmethod
    def _require_key(secret: Optional[SecretStr], provider: str) -> str:
        value = secret.get_secret_value() if secret else ""
        if not value:
            raise ConfigurationError(f"{_PROVIDER_LABELS[provider]} API key not configured.")
        return value

    @staticmethod
    def _require_params(**params: Optional[str]) -> None:
        missing = [name for name, value in params.items() if value in (None, "")]
        if missing:
            raise ValidationError(
                f"Missing required parameter(s): {', '.join(missing)}."
            )

    async def _request(self, provider: str, method: str, url: str, **kwargs) -> Any:
        label = _PROVIDER_LABELS[provider]
        timeout = self._settings.UPSTREAM_TIMEOUT
        try:
            response = await self._http().request(method, url, timeout=timeout, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning(f"{label} 请求超时（{timeout}s）: {type(exc).__name__}")
            raise UpstreamTimeoutError(f"{label} API timed out after {timeout:g}s.")
        except httpx.TransportError as exc:
            logger.warning(f"{label} 网络错误: {type(exc).__name__}")
            raise TransportError(f"{label} API unreachable: {type(exc).__name__}.")

        if not response.is_success:
            detail = extract_error_message(provider, response)
            logger.warning(f"{label} 返回错误: {response.status_code} - {detail}")
            raise UpstreamError(label, response.status_code, detail)

        try:
            return response.json()
        except ValueError:
            raise UpstreamError(label, 502, "invalid JSON in upstream response")

    # ── CoinMarketCap 列表 ────────────────────────────────

    async def listings(self, extra_params: Optional[Mapping[str, str]] = None) -> List[Asset]:
        """获取市值排名列表（固定 limit），并重塑为 Asset 字段"""
        key = self._require_key(self._settings.COINMARKETCAP_API_KEY, "coinmarketcap")
        params = dict(extra_params or {})
        params["limit"] = str(self._settings.LISTINGS_LIMIT)

        body = await self._request(
            "coinmarketcap",
            "GET",
            f"{self._settings.COINMARKETCAP_BASE_URL}/v1/cryptocurrency/listings/latest",
            params=params,
            headers={"X-CMC_PRO_API_KEY": key},
        )
        coins = body.get("data") if isinstance(body, dict) else None
        assets = [self._reshape_listing(coin) for coin in (coins or [])]
        logger.info(f"CoinMarketCap 列表获取成功，共 {len(assets)} 条")
        return assets

    def _reshape_listing(self, coin: Dict[str, Any]) -> Asset:
        quote = (coin.get("quote") or {}).get(self._settings.QUOTE_CURRENCY) or {}
        slug = coin.get("slug")
        logo = (
            self._settings.LOGO_URL_TEMPLATE.format(slug=slug)
            if slug
            else self._settings.LOGO_PLACEHOLDER_URL
        )
        return Asset(
            id=coin.get("id") or "",
            name=coin.get("name") or "",
            symbol=coin.get("symbol") or "",
            logo=logo,
            current_price=quote.get("price"),
            volume_24h=quote.get("volume_24h"),
            percent_change_1h=quote.get("percent_change_1h"),
            percent_change_24h=quote.get("percent_change_24h"),
            percent_change_7d=quote.get("percent_change_7d"),
            market_cap=quote.get("market_cap"),
            cmc_rank=coin.get("cmc_rank"),
        )

    # ── OHLCV 历史 ────────────────────────────────────────

    async def coinapi_history(
        self, symbol: Optional[str], time_start: Optional[str], time_end: Optional[str]
    ) -> Any:
        """CoinAPI 日线 OHLCV"""
        key = self._require_key(self._settings.COINAPI_IO_API_KEY, "coinapi")
        self._require_params(symbol=symbol, time_start=time_start, time_end=time_end)
        return await self._request(
            "coinapi",
            "GET",
            f"{self._settings.COINAPI_BASE_URL}/v1/ohlcv/1DAY/history",
            params={"symbol_id": symbol, "time_start": time_start, "time_end": time_end},
            headers={"X-CoinAPI-Key": key},
        )

    async def coinalyze_history(
        self,
        symbol: Optional[str],
        interval: Optional[str],
        from_: Optional[str],
        to: Optional[str],
    ) -> Any:
        """Coinalyze OHLCV"""
        key = self._require_key(self._settings.COINALYZE_API_KEY, "coinalyze")
        self._require_params(**{"symbol": symbol, "interval": interval, "from": from_, "to": to})
        return await self._request(
            "coinalyze",
            "GET",
            f"{self._settings.COINALYZE_BASE_URL}/v1/ohlcv-history",
            params={"symbols": symbol, "interval": interval, "from": from_, "to": to},
            headers={"api_key": key},
        )

    async def twelvedata_history(
        self, symbol: Optional[str], interval: Optional[str], outputsize: Optional[str]
    ) -> Any:
        """Twelve Data 时间序列，symbol 自动拼接计价货币"""
        key = self._require_key(self._settings.TWELVEDATA_API_KEY, "twelvedata")
        self._require_params(symbol=symbol, interval=interval, outputsize=outputsize)
        return await self._request(
            "twelvedata",
            "GET",
            f"{self._settings.TWELVEDATA_BASE_URL}/time_series",
            params={
                "symbol": f"{symbol}/{self._settings.QUOTE_CURRENCY}",
                "interval": interval,
                "outputsize": outputsize,
            },
            headers={"Authorization": f"apikey {key}"},
        )

    # ── Gemini 点评 ───────────────────────────────────────

    async def analyze(self, req: AnalyzeRequest) -> str:
        """生成 AI 行情点评，取第一个候选文本"""
        key = self._require_key(self._settings.GOOGLE_AI_API_KEY, "gemini")
        self._require_params(symbol=req.symbol)
        body = await self._request(
            "gemini",
            "POST",
            f"{self._settings.GEMINI_BASE_URL}/v1beta/models/"
            f"{self._settings.GEMINI_MODEL}:generateContent",
            headers={"x-goog-api-key": key},
            json={"contents": [{"parts": [{"text": build_analysis_prompt(req)}]}]},
        )
        try:
            text = body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        return text or NO_ANALYSIS_TEXT

    # ── Tavily 新闻 ───────────────────────────────────────

    async def news(self, symbol: Optional[str]) -> List[NewsItem]:
        """搜索资产相关新闻，只保留标题与链接"""
        key = self._require_key(self._settings.TAVILY_API_KEY, "tavily")
        self._require_params(symbol=symbol)
        body = await self._request(
            "tavily",
            "POST",
            f"{self._settings.TAVILY_BASE_URL}/search",
            headers={"Authorization": f"Bearer {key}"},
            json={
                "query": f"{symbol} crypto news",
                "topic": "news",
                "max_results": self._settings.NEWS_MAX_RESULTS,
            },
        )
        results = body.get("results") if isinstance(body, dict) else None
        return [
            NewsItem(title=item.get("title") or "", url=item.get("url") or "")
            for item in (results or [])
            if isinstance(item, dict)
        ]


# ── 模块级别单例 ──────────────────────────────────────────
_gateway: Optional[UpstreamGateway] = None


def get_gateway() -> UpstreamGateway:
    global _gateway
    if _gateway is None:
        _gateway = UpstreamGateway()
    return _gateway


async def close_gateway() -> None:
    global _gateway
    if _gateway is not None:
        await _gateway.aclose()
        _gateway = None
