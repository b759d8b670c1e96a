"""
网关 HTTP 客户端（看板侧）
通过 GATEWAY_BASE_URL 访问本服务的各个接口，把 {"error": ...} 响应还原为统一错误类型
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from crypto_service.config import ServiceSettings, settings
from crypto_service.errors import TransportError, UpstreamError, UpstreamTimeoutError
from crypto_service.models.market import Asset, NewsItem

logger = logging.getLogger(__name__)


class GatewayClient:
    """对网关接口的异步封装，每个方法一次往返、固定超时"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[ServiceSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = config or settings
        self._base_url = (base_url or self._settings.GATEWAY_BASE_URL).rstrip("/")
        self._client = client

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.GATEWAY_TIMEOUT)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _call(self, name: str, method: str, path: str, **kwargs) -> Any:
        timeout = self._settings.GATEWAY_TIMEOUT
        try:
            response = await self._http().request(
                method, f"{self._base_url}{path}", timeout=timeout, **kwargs
            )
        except httpx.TimeoutException:
            raise UpstreamTimeoutError(f"{name} request timed out after {timeout:g}s.")
        except httpx.TransportError as exc:
            raise TransportError(f"{name} request failed: {type(exc).__name__}.")

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("error") if isinstance(body, dict) else None
            raise UpstreamError(name, response.status_code, detail or response.reason_phrase)
        return response.json()

    # ── 接口 ──────────────────────────────────────────────

    async def listings(self) -> List[Asset]:
        data = await self._call("Listings", "GET", "/api/cryptocurrency/listings/latest")
        return [Asset.model_validate(item) for item in (data or [])]

    async def twelvedata_history(self, symbol: str, interval: str, outputsize: int) -> Any:
        return await self._call(
            "Twelve Data OHLCV",
            "GET",
            "/api/cryptocurrency/ohlcv/twelvedata-historical",
            params={"symbol": symbol, "interval": interval, "outputsize": outputsize},
        )

    async def coinapi_history(self, symbol: str, time_start: str, time_end: str) -> Any:
        return await self._call(
            "CoinAPI OHLCV",
            "GET",
            "/api/cryptocurrency/ohlcv/historical",
            params={"symbol": symbol, "time_start": time_start, "time_end": time_end},
        )

    async def coinalyze_history(self, symbol: str, interval: str, from_: int, to: int) -> Any:
        return await self._call(
            "Coinalyze OHLCV",
            "GET",
            "/api/cryptocurrency/ohlcv/coinalyze-historical",
            params={"symbol": symbol, "interval": interval, "from": from_, "to": to},
        )

    async def analyze(self, payload: Dict[str, Any]) -> str:
        data = await self._call("AI Analysis", "POST", "/api/ai/analyze-crypto", json=payload)
        return (data or {}).get("analysis") or ""

    async def news(self, symbol: str) -> List[NewsItem]:
        data = await self._call("News", "GET", "/api/news/tavily", params={"symbol": symbol})
        return [NewsItem.model_validate(item) for item in (data or {}).get("news") or []]
