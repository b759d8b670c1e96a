"""
行情聚合服务配置模块
支持从环境变量 / .env 读取配置；第三方 API Key 均为可选，缺失时仅影响对应接口
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceSettings(BaseSettings):
    """网关 + 看板配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 基础配置 ──────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=5000)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"]
    )

    # ── 第三方 API Key（不得写入日志） ──────────────────────
    COINMARKETCAP_API_KEY: Optional[SecretStr] = Field(default=None)
    COINAPI_IO_API_KEY: Optional[SecretStr] = Field(default=None)
    COINALYZE_API_KEY: Optional[SecretStr] = Field(default=None)
    TWELVEDATA_API_KEY: Optional[SecretStr] = Field(default=None)
    GOOGLE_AI_API_KEY: Optional[SecretStr] = Field(default=None)
    TAVILY_API_KEY: Optional[SecretStr] = Field(default=None)

    # ── 上游地址 ──────────────────────────────────────────
    COINMARKETCAP_BASE_URL: str = Field(default="https://pro-api.coinmarketcap.com")
    COINAPI_BASE_URL: str = Field(default="https://rest.coinapi.io")
    COINALYZE_BASE_URL: str = Field(default="https://api.coinalyze.net")
    TWELVEDATA_BASE_URL: str = Field(default="https://api.twelvedata.com")
    GEMINI_BASE_URL: str = Field(default="https://generativelanguage.googleapis.com")
    TAVILY_BASE_URL: str = Field(default="https://api.tavily.com")
    GEMINI_MODEL: str = Field(default="gemini-2.5-flash")

    # ── 网关行为 ──────────────────────────────────────────
    UPSTREAM_TIMEOUT: float = Field(default=15.0)   # 单次上游调用超时（秒）
    LISTINGS_LIMIT: int = Field(default=100)
    NEWS_MAX_RESULTS: int = Field(default=10)
    QUOTE_CURRENCY: str = Field(default="USD")
    LOGO_URL_TEMPLATE: str = Field(
        default="https://cryptologos.cc/logos/{slug}/{slug}-icon.svg"
    )
    LOGO_PLACEHOLDER_URL: str = Field(
        default="https://cryptologos.cc/logos/placeholder-logo.png"
    )

    # ── 看板（客户端）配置 ─────────────────────────────────
    GATEWAY_BASE_URL: str = Field(default="http://localhost:5000")
    GATEWAY_TIMEOUT: float = Field(default=20.0)
    HISTORY_SOURCE: str = Field(default="twelvedata")  # twelvedata / coinapi / coinalyze
    HISTORY_INTERVAL: str = Field(default="1day")
    HISTORY_OUTPUT_SIZE: int = Field(default=200)
    COINAPI_SYMBOL_TEMPLATE: str = Field(default="BITSTAMP_SPOT_{symbol}_USD")
    COINALYZE_SYMBOL_TEMPLATE: str = Field(default="{symbol}USDT_PERP.A")
    COINALYZE_INTERVAL: str = Field(default="daily")

    # ── 日志配置 ──────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")

    def configured_providers(self) -> dict:
        """各上游是否已配置 Key（只返回布尔值）"""
        return {
            "coinmarketcap": _has_secret(self.COINMARKETCAP_API_KEY),
            "coinapi": _has_secret(self.COINAPI_IO_API_KEY),
            "coinalyze": _has_secret(self.COINALYZE_API_KEY),
            "twelvedata": _has_secret(self.TWELVEDATA_API_KEY),
            "gemini": _has_secret(self.GOOGLE_AI_API_KEY),
            "tavily": _has_secret(self.TAVILY_API_KEY),
        }


def _has_secret(value: Optional[SecretStr]) -> bool:
    return bool(value and value.get_secret_value())


@lru_cache
def get_settings() -> ServiceSettings:
    """获取全局配置（单例）"""
    return ServiceSettings()


settings = get_settings()
