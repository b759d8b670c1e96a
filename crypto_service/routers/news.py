"""
新闻路由
GET /api/news/tavily  - 搜索资产相关新闻（最多 10 条，仅标题与链接）
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from crypto_service.layers.acquisition import UpstreamGateway, get_gateway
from crypto_service.models.response import NewsResponse

router = APIRouter(prefix="/api/news", tags=["新闻"])


@router.get("/tavily", response_model=NewsResponse)
async def tavily_news(
    symbol: Optional[str] = Query(default=None),
    gateway: UpstreamGateway = Depends(get_gateway),
):
    return NewsResponse(news=await gateway.news(symbol))
