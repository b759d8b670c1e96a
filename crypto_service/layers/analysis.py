"""
Layer 3 – 技术分析层
在收盘价序列上计算 RSI(14)、MACD(12,26,9)、SMA(50/200)。

纯函数、无 I/O；各指标内部计算完整序列，对外只取最新值。
历史长度不足时返回 None（不可用），不抛异常。
"""

import logging
import math
from typing import Optional, Sequence, Union

import pandas as pd

from crypto_service.models.market import IndicatorSnapshot

logger = logging.getLogger(__name__)

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
SMA_SHORT = 50
SMA_LONG = 200

Prices = Union[pd.Series, Sequence[float]]


def _as_series(values: Prices) -> pd.Series:
    if isinstance(values, pd.Series):
        return values.astype("float64").reset_index(drop=True)
    return pd.Series(list(values), dtype="float64")


def _seeded_ema(series: pd.Series, period: int, alpha: Optional[float] = None) -> pd.Series:
    """以首个完整窗口的 SMA 为初值的指数平均；只允许前导 NaN"""
    valid = series.dropna()
    if len(valid) < period:
        return pd.Series(float("nan"), index=series.index, dtype="float64")
    seeded = valid.iloc[period - 1:].copy()
    seeded.iloc[0] = valid.iloc[:period].mean()
    ema = seeded.ewm(alpha=alpha or 2 / (period + 1), adjust=False).mean()
    return ema.reindex(series.index)


def _latest(series: pd.Series, digits: int) -> Optional[float]:
    if series.empty:
        return None
    value = float(series.iloc[-1])
    if not math.isfinite(value):
        return None
    # + 0.0 把 -0.0 归一为 0.0
    return round(value, digits) + 0.0


class AnalysisLayer:
    """技术分析层：指标引擎"""

    # ── RSI ───────────────────────────────────────────────

    def rsi(self, close: Prices, period: int = RSI_PERIOD) -> pd.Series:
        """Wilder RSI；首个值需要 period + 1 个收盘价"""
        close = _as_series(close)
        delta = close.diff()
        gain = delta.clip(lower=0)
        loss = (-delta).clip(lower=0)
        avg_gain = _seeded_ema(gain, period, alpha=1 / period)
        avg_loss = _seeded_ema(loss, period, alpha=1 / period)
        rs = avg_gain / avg_loss
        rsi = 100 - 100 / (1 + rs)
        # 只涨不跌记为 100；完全走平无法计算
        rsi = rsi.mask((avg_loss == 0) & (avg_gain > 0), 100.0)
        rsi = rsi.mask((avg_loss == 0) & (avg_gain == 0))
        return rsi

    # ── MACD ──────────────────────────────────────────────

    def macd(
        self,
        close: Prices,
        fast: int = MACD_FAST,
        slow: int = MACD_SLOW,
        signal: int = MACD_SIGNAL,
    ) -> pd.DataFrame:
        """
        MACD 线 / 信号线 / 柱

        MACD 线需要 slow 个收盘价；信号线和柱需要 slow + signal 个
        """
        close = _as_series(close)
        line = _seeded_ema(close, fast) - _seeded_ema(close, slow)
        sig = _seeded_ema(line, signal)
        sig.iloc[: slow + signal - 1] = float("nan")
        return pd.DataFrame({
            "macd": line,
            "signal": sig,
            "histogram": line - sig,
        })

    # ── SMA ───────────────────────────────────────────────

    def sma(self, close: Prices, period: int) -> pd.Series:
        """简单移动平均，窗口不足为 NaN"""
        return _as_series(close).rolling(window=period).mean()

    # ── 快照 ──────────────────────────────────────────────

    def snapshot(self, close: Prices, volume: Optional[float] = None) -> IndicatorSnapshot:
        """计算全部指标并取最新值（RSI 保留 2 位，其余 4 位）"""
        close = _as_series(close)
        macd = self.macd(close)
        volume_value = float(volume) if volume is not None and math.isfinite(volume) else None
        return IndicatorSnapshot(
            rsi=_latest(self.rsi(close), 2),
            macd=_latest(macd["macd"], 4),
            macd_signal=_latest(macd["signal"], 4),
            macd_histogram=_latest(macd["histogram"], 4),
            sma50=_latest(self.sma(close, SMA_SHORT), 4),
            sma200=_latest(self.sma(close, SMA_LONG), 4),
            volume=volume_value,
        )


# ── 模块级别单例 ──────────────────────────────────────────
_analysis: Optional[AnalysisLayer] = None


def get_analysis_layer() -> AnalysisLayer:
    global _analysis
    if _analysis is None:
        _analysis = AnalysisLayer()
    return _analysis
