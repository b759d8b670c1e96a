"""健康检查路由"""

import time

from fastapi import APIRouter

from crypto_service import __version__
from crypto_service.config import settings

router = APIRouter(tags=["健康检查"])


@router.get("/health")
async def health():
    """服务健康检查：列出各上游是否已配置 Key（不返回 Key 本身）"""
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": int(time.time()),
        "service": "Crypto Dashboard Gateway",
        "providers": settings.configured_providers(),
    }


@router.get("/healthz")
async def healthz():
    """Kubernetes liveness probe"""
    return {"status": "ok"}
