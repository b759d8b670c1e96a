"""网关 API 响应模型"""

from typing import List

from pydantic import BaseModel

from crypto_service.models.market import NewsItem


class ErrorResponse(BaseModel):
    """所有错误统一为 {"error": "..."}"""
    error: str


class AnalysisResponse(BaseModel):
    analysis: str


class NewsResponse(BaseModel):
    news: List[NewsItem]
