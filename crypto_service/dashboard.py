"""
看板（文本视图）
只读取 SelectionController 的状态快照并渲染；不做任何计算

运行:
    python -m crypto_service.dashboard --symbol ETH
"""

import argparse
import asyncio
import logging
from typing import Optional, Sequence

from crypto_service.client import GatewayClient
from crypto_service.config import settings
from crypto_service.errors import GatewayError
from crypto_service.models.market import Asset
from crypto_service.services.catalog_service import AssetCatalog
from crypto_service.services.selection_service import RefreshState, SelectionController

logger = logging.getLogger(__name__)

_INDICATOR_ROWS = [
    ("RSI", "rsi"),
    ("MACD", "macd"),
    ("MACD Signal", "macd_signal"),
    ("MACD Histogram", "macd_histogram"),
    ("SMA50", "sma50"),
    ("SMA200", "sma200"),
    ("Volume 24h", "volume"),
]


def render(state: RefreshState, asset: Optional[Asset] = None) -> str:
    lines = []
    if asset is not None:
        rank = asset.cmc_rank if asset.cmc_rank is not None else "N/A"
        lines.append(f"#{rank} {asset.name} ({asset.symbol})  ${asset.current_price}  "
                     f"24h {asset.percent_change_24h}%")
    lines.append(f"[{state.status.value}] {state.symbol or '-'}")

    lines.append("")
    if state.chart_loading:
        lines.append("Loading chart...")
    if state.chart_error:
        lines.append(f"Chart error: {state.chart_error}")
    if state.chart and state.chart.prices:
        prices = state.chart.prices
        lines.append(f"{state.chart.label}: {len(prices)} points, "
                     f"{state.chart.labels[0]} → {state.chart.labels[-1]}, "
                     f"last {prices[-1]}, min {min(prices)}, max {max(prices)}")

    lines.append("")
    lines.append("Technical Indicators")
    for title, field in _INDICATOR_ROWS:
        lines.append(f"  {title}: {state.indicators.display(field)}")

    lines.append("")
    lines.append("AI Analysis")
    lines.append(f"  {state.analysis}")

    lines.append("")
    lines.append("News")
    if state.news_loading:
        lines.append("  Loading news...")
    if state.news_error:
        lines.append(f"  {state.news_error}")
    for item in state.news:
        lines.append(f"  - {item.title} <{item.url}>")
    return "\n".join(lines)


async def run(symbol: Optional[str], base_url: Optional[str]) -> int:
    client = GatewayClient(base_url=base_url)
    try:
        catalog = AssetCatalog(client)
        await catalog.load()
        if catalog.error:
            print(f"Error loading coins: {catalog.error}")
            return 1

        controller = SelectionController(client, catalog)
        try:
            state = await (controller.select(symbol) if symbol else controller.on_catalog_loaded())
        except GatewayError as exc:
            print(exc.message)
            return 2
        if state is None:
            print("No coins available.")
            return 1
        print(render(state, catalog.find(state.symbol)))
        return 0
    finally:
        await client.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Crypto dashboard (text view)")
    parser.add_argument("--symbol", help="资产代码，默认排名第一的资产")
    parser.add_argument("--base-url", default=None, help=f"网关地址（默认 {settings.GATEWAY_BASE_URL}）")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return asyncio.run(run(args.symbol, args.base_url))


if __name__ == "__main__":
    raise SystemExit(main())
