"""
Crypto Dashboard 网关
独立 FastAPI 应用程序入口

启动方式:
    uvicorn crypto_service.main:app --host 0.0.0.0 --port 5000
    python -m crypto_service.main
"""

import logging
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crypto_service import __version__
from crypto_service.config import settings
from crypto_service.errors import GatewayError
from crypto_service.layers.acquisition import close_gateway
from crypto_service.routers import ai, cryptocurrency, health, news

# ── 日志配置 ──────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
# httpx 在 INFO 级别记录完整请求 URL
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


# ── 生命周期管理 ──────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用启动/关闭生命周期钩子"""
    logger.info("=" * 60)
    logger.info(f"🚀 Crypto Dashboard Gateway v{__version__} 启动中")
    logger.info(f"   Port      : {settings.PORT}")
    logger.info(f"   Timeout   : {settings.UPSTREAM_TIMEOUT}s / 上游调用")
    logger.info("=" * 60)

    # 缺少 Key 不阻断启动，只让对应接口返回 500
    missing = [name for name, ok in settings.configured_providers().items() if not ok]
    if missing:
        logger.warning(f"⚠️ 以下上游未配置 API Key，对应接口将不可用: {', '.join(missing)}")
    else:
        logger.info("✅ 所有上游 API Key 已配置")

    yield

    logger.info("🔄 网关正在关闭...")
    await close_gateway()
    logger.info("✅ 网关已关闭")


# ── 应用实例 ──────────────────────────────────────────────
app = FastAPI(
    title="Crypto Dashboard 网关",
    description=(
        "行情看板的代理后端：注入 API Key 并转发到第三方服务\n"
        "- 📊 市值排名（CoinMarketCap）\n"
        "- 📈 OHLCV 历史（CoinAPI / Coinalyze / Twelve Data）\n"
        "- 🤖 AI 行情点评（Gemini）\n"
        "- 📰 新闻搜索（Tavily）\n\n"
        "错误统一返回 `{\"error\": \"...\"}`，状态码与上游一致；"
        "本地参数错误 400，缺少配置 500。"
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS 中间件 ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── 请求计时中间件 ─────────────────────────────────────────
@app.middleware("http")
async def add_process_time(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = f"{(time.time() - start) * 1000:.1f}ms"
    return response


# ── 异常处理 ──────────────────────────────────────────────
@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = sorted({
        ".".join(str(p) for p in err.get("loc", ())[1:]) or "body"
        for err in exc.errors()
    })
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request parameter(s): {', '.join(fields)}."},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"未处理的异常: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


# ── 注册路由 ──────────────────────────────────────────────
app.include_router(health.router)
app.include_router(cryptocurrency.router)
app.include_router(ai.router)
app.include_router(news.router)


# ── 根路由 ───────────────────────────────────────────────
@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "Crypto Dashboard Gateway",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


# ── 直接运行入口 ──────────────────────────────────────────
if __name__ == "__main__":
    uvicorn.run(
        "crypto_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
