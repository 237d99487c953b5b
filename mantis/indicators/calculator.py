# -*- coding: utf-8 -*-
"""
Indicator Calculator
====================

정렬된 일봉 -> 지표 스냅샷.

talib 라이브러리 사용:
- oscillator: RSI(2), Wilder smoothing, 0~100
- trend strength: ADX(14), 0~100
- short/long MA: 단순이동평균 (50/200)

모든 지표는 하나의 DatetimeIndex DataFrame 컬럼으로 계산한다.
행 i의 값은 행 0..i 에만 의존 (causal).

사용법:
```python
from mantis.indicators import compute_snapshots

snapshots = compute_snapshots(rows, config.instruments, config.indicators)
print(snapshots[-1].oscillator)
```
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import talib

from mantis.config.loader import IndicatorParams
from mantis.data.aligner import AlignedRow, rows_to_frame
from mantis.errors import InsufficientHistoryError
from mantis.instruments import Instrument, InstrumentMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndicatorSnapshot:
    """거래일 1개의 지표 스냅샷 (모든 값 유효)"""
    date: str
    close: float             # 신호 자산 종가
    volatility_close: float  # 변동성 지수 종가
    long_close: float        # 롱 레버리지 종가
    short_close: float       # 숏 레버리지 종가
    safe_close: float        # 대기 자산 종가
    volume: float            # 신호 자산 거래량
    oscillator: float
    trend_strength: float
    short_ma: float
    long_ma: float
    prev_short_ma: float

    def price_of(self, instrument: Instrument) -> float:
        if instrument is Instrument.LONG_LEVERAGED:
            return self.long_close
        if instrument is Instrument.SHORT_LEVERAGED:
            return self.short_close
        return self.safe_close


def indicator_frame(
    rows: Sequence[AlignedRow],
    instruments: InstrumentMap,
    params: Optional[IndicatorParams] = None,
) -> pd.DataFrame:
    """
    전체 지표 DataFrame (warm-up 절삭 전)

    Returns:
        DataFrame[close, high, low, volume, volatility_close, long_close,
                  short_close, safe_close, oscillator, trend_strength,
                  short_ma, long_ma, prev_short_ma]
    """
    params = params or IndicatorParams()
    rows = list(rows)
    signal = rows_to_frame(rows, instruments.signal)

    close = signal['close'].astype('float64')
    high = signal['high'].astype('float64').to_numpy()
    low = signal['low'].astype('float64').to_numpy()

    df = pd.DataFrame(index=signal.index)
    df['close'] = close
    df['high'] = high
    df['low'] = low
    df['volume'] = signal['volume'].astype('float64')
    df['volatility_close'] = [r.close(instruments.volatility) for r in rows]
    df['long_close'] = [r.close(instruments.long_leveraged) for r in rows]
    df['short_close'] = [r.close(instruments.short_leveraged) for r in rows]
    df['safe_close'] = [r.close(instruments.safe) for r in rows]

    # RSI / ADX (talib 사용)
    df['oscillator'] = talib.RSI(close.to_numpy(), timeperiod=int(params.oscillator_period))
    df['trend_strength'] = talib.ADX(
        high, low, close.to_numpy(), timeperiod=int(params.trend_period)
    )

    n_short = int(params.short_ma_period)
    n_long = int(params.long_ma_period)
    df['short_ma'] = close.rolling(n_short, min_periods=n_short).mean()
    df['long_ma'] = close.rolling(n_long, min_periods=n_long).mean()
    df['prev_short_ma'] = df['short_ma'].shift(1)
    return df


def compute_snapshots(
    rows: Sequence[AlignedRow],
    instruments: InstrumentMap,
    params: Optional[IndicatorParams] = None,
) -> List[IndicatorSnapshot]:
    """
    정렬된 행 -> IndicatorSnapshot 리스트

    warm-up = max(long MA, trend * 2) 이전 행은 버리고,
    NaN이 남은 행도 제외한다.

    Raises:
        InsufficientHistoryError: len(rows) <= warm-up
    """
    params = params or IndicatorParams()
    warmup = params.warmup
    if len(rows) <= warmup:
        raise InsufficientHistoryError(
            f"Need more than {warmup} aligned rows for indicator warm-up, got {len(rows)}"
        )

    df = indicator_frame(rows, instruments, params).iloc[warmup:]
    cols = [
        'close', 'volatility_close', 'long_close', 'short_close', 'safe_close',
        'volume', 'oscillator', 'trend_strength', 'short_ma', 'long_ma', 'prev_short_ma',
    ]
    usable = df[cols].replace([np.inf, -np.inf], np.nan).dropna()
    if len(usable) < len(df):
        logger.debug("Dropped %d rows with undefined indicators", len(df) - len(usable))
    if usable.empty:
        raise InsufficientHistoryError("No rows with fully defined indicators after warm-up")

    return [
        IndicatorSnapshot(
            date=ts.strftime('%Y-%m-%d'),
            close=float(row.close),
            volatility_close=float(row.volatility_close),
            long_close=float(row.long_close),
            short_close=float(row.short_close),
            safe_close=float(row.safe_close),
            volume=float(row.volume),
            oscillator=float(row.oscillator),
            trend_strength=float(row.trend_strength),
            short_ma=float(row.short_ma),
            long_ma=float(row.long_ma),
            prev_short_ma=float(row.prev_short_ma),
        )
        for ts, row in zip(usable.index, usable.itertuples(index=False))
    ]


def latest_snapshot(
    rows: Sequence[AlignedRow],
    instruments: InstrumentMap,
    params: Optional[IndicatorParams] = None,
) -> IndicatorSnapshot:
    """라이브 경로: 마지막 유효 스냅샷"""
    return compute_snapshots(rows, instruments, params)[-1]
