"""
Layer 2 – 数据处理层
把三家 OHLCV 上游的原始 JSON 统一为标准 DataFrame，并生成图表序列。
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from crypto_service.models.market import ChartSeries, PricePoint

logger = logging.getLogger(__name__)

_COLUMNS = ["date", "open", "high", "low", "close", "volume"]


class HistoryPayloadError(ValueError):
    """上游 OHLCV 响应为空或不可用"""


class ProcessingLayer:
    """数据处理层：清洗 + 格式化 + 排序"""

    def normalize_ohlcv(self, records: List[Dict[str, Any]]) -> pd.DataFrame:
        """
        将 OHLCV 记录列表标准化为 DataFrame

        标准列：date, open, high, low, close, volume
        按时间升序稳定排序；同一时间戳的重复记录保留，顺序沿用上游
        """
        if not records:
            return pd.DataFrame(columns=_COLUMNS)

        df = pd.DataFrame(records)

        for col in _COLUMNS:
            if col not in df.columns:
                df[col] = None

        for col in ["open", "high", "low", "close", "volume"]:
            df[col] = pd.to_numeric(df[col], errors="coerce")

        df["date"] = pd.to_datetime(df["date"], errors="coerce", utc=True)
        df = df.dropna(subset=["date", "close"])
        df = df.sort_values("date", kind="mergesort").reset_index(drop=True)
        return df[_COLUMNS]

    # ── 各上游格式 ────────────────────────────────────────

    def from_twelvedata(self, payload: Any) -> pd.DataFrame:
        """Twelve Data: {"values": [{"datetime", "open", "high", "low", "close", "volume"}]}"""
        if isinstance(payload, dict) and payload.get("status") == "error":
            raise HistoryPayloadError(payload.get("message") or "Twelve Data returned an error.")
        values = payload.get("values") if isinstance(payload, dict) else None
        records = [
            {
                "date": v.get("datetime"),
                "open": v.get("open"),
                "high": v.get("high"),
                "low": v.get("low"),
                "close": v.get("close"),
                "volume": v.get("volume"),
            }
            for v in (values or [])
        ]
        return self.normalize_ohlcv(records)

    def from_coinapi(self, payload: Any) -> pd.DataFrame:
        """CoinAPI: [{"time_period_start", "price_open", ..., "volume_traded"}]"""
        records = [
            {
                "date": v.get("time_period_start"),
                "open": v.get("price_open"),
                "high": v.get("price_high"),
                "low": v.get("price_low"),
                "close": v.get("price_close"),
                "volume": v.get("volume_traded"),
            }
            for v in (payload if isinstance(payload, list) else [])
        ]
        return self.normalize_ohlcv(records)

    def from_coinalyze(self, payload: Any) -> pd.DataFrame:
        """Coinalyze: [{"symbol": ..., "history": [{"t", "o", "h", "l", "c", "v"}]}]，t 为秒级时间戳"""
        history: List[Dict[str, Any]] = []
        for entry in (payload if isinstance(payload, list) else []):
            history.extend(entry.get("history") or [])
        records = [
            {
                "date": pd.to_datetime(v.get("t"), unit="s", utc=True) if v.get("t") is not None else None,
                "open": v.get("o"),
                "high": v.get("h"),
                "low": v.get("l"),
                "close": v.get("c"),
                "volume": v.get("v"),
            }
            for v in history
        ]
        return self.normalize_ohlcv(records)

    # ── 输出 ──────────────────────────────────────────────

    def close_series(self, df: pd.DataFrame) -> pd.Series:
        if df.empty:
            return pd.Series(dtype="float64")
        return df["close"].astype("float64").reset_index(drop=True)

    def to_price_points(self, df: pd.DataFrame) -> List[PricePoint]:
        points = []
        for row in df.itertuples(index=False):
            points.append(PricePoint(
                timestamp=row.date.to_pydatetime(),
                close=float(row.close),
                open=_opt(row.open),
                high=_opt(row.high),
                low=_opt(row.low),
                volume=_opt(row.volume),
            ))
        return points

    def to_chart_series(self, df: pd.DataFrame, symbol: str, currency: str = "USD") -> ChartSeries:
        """收盘价走势图：日期标签 + 价格"""
        label = f"{symbol} Price ({currency})"
        if df.empty:
            return ChartSeries(label=label)
        return ChartSeries(
            label=label,
            labels=tuple(df["date"].dt.strftime("%Y-%m-%d")),
            prices=tuple(float(p) for p in df["close"]),
        )


def _opt(value: Any) -> Optional[float]:
    return None if pd.isna(value) else float(value)


# ── 模块级别单例 ──────────────────────────────────────────
_processor: Optional[ProcessingLayer] = None


def get_processing_layer() -> ProcessingLayer:
    global _processor
    if _processor is None:
        _processor = ProcessingLayer()
    return _processor
