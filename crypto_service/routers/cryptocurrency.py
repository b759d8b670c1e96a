"""
行情数据路由
GET /api/cryptocurrency/listings/latest                 - 市值排名列表（CoinMarketCap，固定 100 条）
GET /api/cryptocurrency/ohlcv/historical                - 日线 OHLCV（CoinAPI）
GET /api/cryptocurrency/ohlcv/coinalyze-historical      - OHLCV（Coinalyze）
GET /api/cryptocurrency/ohlcv/twelvedata-historical     - OHLCV（Twelve Data）
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from crypto_service.layers.acquisition import UpstreamGateway, get_gateway

router = APIRouter(prefix="/api/cryptocurrency", tags=["行情数据"])


@router.get("/listings/latest")
async def listings_latest(
    request: Request,
    gateway: UpstreamGateway = Depends(get_gateway),
):
    """市值排名列表；额外查询参数原样透传，limit 固定"""
    assets = await gateway.listings(dict(request.query_params))
    return [asset.model_dump(by_alias=True) for asset in assets]


@router.get("/ohlcv/historical")
async def coinapi_historical(
    symbol: Optional[str] = Query(default=None, description="CoinAPI symbol_id"),
    time_start: Optional[str] = Query(default=None, description="ISO 8601 开始时间"),
    time_end: Optional[str] = Query(default=None, description="ISO 8601 结束时间"),
    gateway: UpstreamGateway = Depends(get_gateway),
):
    return await gateway.coinapi_history(symbol, time_start, time_end)


@router.get("/ohlcv/coinalyze-historical")
async def coinalyze_historical(
    symbol: Optional[str] = Query(default=None),
    interval: Optional[str] = Query(default=None),
    from_: Optional[str] = Query(default=None, alias="from", description="UNIX 秒"),
    to: Optional[str] = Query(default=None, description="UNIX 秒"),
    gateway: UpstreamGateway = Depends(get_gateway),
):
    return await gateway.coinalyze_history(symbol, interval, from_, to)


@router.get("/ohlcv/twelvedata-historical")
async def twelvedata_historical(
    symbol: Optional[str] = Query(default=None, description="不带计价货币，例如 BTC"),
    interval: Optional[str] = Query(default=None, description="1day / 1h ..."),
    outputsize: Optional[str] = Query(default=None),
    gateway: UpstreamGateway = Depends(get_gateway),
):
    return await gateway.twelvedata_history(symbol, interval, outputsize)
