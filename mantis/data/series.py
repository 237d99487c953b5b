# -*- coding: utf-8 -*-
"""
Price Series
============

일봉 OHLCV 시계열 컨테이너 + CSV/DataFrame 로더.

사용법:
```python
from mantis.data.series import load_series_csv

qqq = load_series_csv("data/QQQ.csv", "QQQ")
print(qqq.bars[-1].close)
```
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

import pandas as pd


@dataclass(frozen=True)
class Bar:
    """일봉 1개"""
    date: str  # YYYY-MM-DD
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class InstrumentSeries:
    """티커 1개의 일봉 시계열 (날짜 오름차순, 중복 없음)"""
    ticker: str
    bars: Tuple[Bar, ...]

    def __len__(self) -> int:
        return len(self.bars)

    @classmethod
    def from_bars(cls, ticker: str, bars: Iterable[Bar]) -> "InstrumentSeries":
        """정렬 + 날짜 중복 제거 (같은 날짜는 마지막 bar 유지)"""
        by_date: Dict[str, Bar] = {}
        for bar in bars:
            by_date[bar.date] = bar
        return cls(ticker=ticker, bars=tuple(by_date[d] for d in sorted(by_date)))

    @classmethod
    def from_frame(cls, ticker: str, df: pd.DataFrame) -> "InstrumentSeries":
        """
        DataFrame -> InstrumentSeries

        Args:
            ticker: 티커
            df: DatetimeIndex 또는 date 컬럼 + OHLCV 컬럼 (대소문자 무관)
        """
        frame = _standardize_columns(df)
        if 'date' in frame.columns:
            frame = frame.set_index('date')
        frame.index = pd.to_datetime(frame.index)
        if frame.index.tz is not None:
            frame.index = frame.index.tz_convert(None)

        missing = [c for c in ('open', 'high', 'low', 'close', 'volume') if c not in frame.columns]
        if missing:
            raise ValueError(f"{ticker}: missing columns {missing}")

        # 거래량 결측은 NaN 유지 -> compute_snapshots 에서 해당 날짜 제외
        frame = frame.dropna(subset=['open', 'high', 'low', 'close'])
        bars = [
            Bar(
                date=ts.strftime('%Y-%m-%d'),
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=float(row.volume),
            )
            for ts, row in zip(frame.index, frame.itertuples(index=False))
        ]
        return cls.from_bars(ticker, bars)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            [(b.open, b.high, b.low, b.close, b.volume) for b in self.bars],
            columns=['open', 'high', 'low', 'close', 'volume'],
            index=pd.to_datetime([b.date for b in self.bars]),
        )
        df.index.name = 'date'
        return df


def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    frame = df.copy()
    frame.columns = [str(c).strip().lower().replace(' ', '_') for c in frame.columns]
    # adjusted close가 있으면 무시 (raw close 사용)
    return frame.drop(columns=[c for c in ('adj_close',) if c in frame.columns])


def load_series_csv(path: Union[str, Path], ticker: Optional[str] = None) -> InstrumentSeries:
    """CSV (Date,Open,High,Low,Close,Volume) -> InstrumentSeries"""
    path = Path(path)
    df = pd.read_csv(path)
    return InstrumentSeries.from_frame(ticker or path.stem, df)


def load_series_dir(directory: Union[str, Path], tickers: Iterable[str]) -> Mapping[str, InstrumentSeries]:
    """
    디렉토리에서 티커별 CSV 로드.

    파일명: `<TICKER>.csv` (`^VIX` -> `VIX.csv` 도 허용)
    """
    directory = Path(directory)
    result: Dict[str, InstrumentSeries] = {}
    for ticker in tickers:
        candidates = [directory / f"{ticker}.csv", directory / f"{ticker.lstrip('^')}.csv"]
        path = next((p for p in candidates if p.exists()), None)
        if path is None:
            raise FileNotFoundError(f"No CSV for {ticker} in {directory}")
        result[ticker] = load_series_csv(path, ticker)
    return result
