"""
AI 点评路由
POST /api/ai/analyze-crypto  - 根据价格 / 指标 / 新闻生成行情点评
"""

from fastapi import APIRouter, Depends

from crypto_service.layers.acquisition import UpstreamGateway, get_gateway
from crypto_service.models.market import AnalyzeRequest
from crypto_service.models.response import AnalysisResponse

router = APIRouter(prefix="/api/ai", tags=["AI 点评"])


@router.post("/analyze-crypto", response_model=AnalysisResponse)
async def analyze_crypto(
    payload: AnalyzeRequest,
    gateway: UpstreamGateway = Depends(get_gateway),
):
    analysis = await gateway.analyze(payload)
    return AnalysisResponse(analysis=analysis)
