# -*- coding: utf-8 -*-
"""
Indicator Aligner
=================

티커별 일봉을 공통 거래일 기준으로 정렬 (strict inner join).

- forward-fill / 보간 없음: 한 티커라도 bar가 없는 날짜는 제외
- 결과는 날짜 오름차순
"""
import logging
from dataclasses import dataclass
from typing import List, Mapping

import pandas as pd

from mantis.data.series import Bar, InstrumentSeries
from mantis.errors import InsufficientDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlignedRow:
    """모든 추적 티커의 bar가 존재하는 거래일 1개"""
    date: str
    bars: Mapping[str, Bar]

    def close(self, ticker: str) -> float:
        return self.bars[ticker].close


def align_series(series_by_ticker: Mapping[str, InstrumentSeries]) -> List[AlignedRow]:
    """
    공통 날짜 inner join

    Args:
        series_by_ticker: {ticker: InstrumentSeries}

    Returns:
        날짜 오름차순 AlignedRow 리스트

    Raises:
        InsufficientDataError: 입력이 비었거나 공통 날짜가 없을 때
    """
    if not series_by_ticker:
        raise InsufficientDataError("No instrument series supplied")

    by_ticker = {}
    for ticker, series in series_by_ticker.items():
        if len(series) == 0:
            raise InsufficientDataError(f"Series for {ticker} is empty")
        by_ticker[ticker] = {bar.date: bar for bar in series.bars}

    date_sets = [set(bars) for bars in by_ticker.values()]
    common = set.intersection(*date_sets)
    if not common:
        raise InsufficientDataError(
            f"No common trading dates across {sorted(series_by_ticker)}"
        )

    dropped = len(set.union(*date_sets)) - len(common)
    if dropped:
        logger.debug("Alignment dropped %d dates missing from at least one ticker", dropped)

    return [
        AlignedRow(date=d, bars={t: bars[d] for t, bars in by_ticker.items()})
        for d in sorted(common)
    ]


def rows_to_frame(rows: List[AlignedRow], ticker: str) -> pd.DataFrame:
    """정렬된 행에서 티커 1개의 OHLCV DataFrame 추출 (DatetimeIndex)"""
    df = pd.DataFrame(
        [
            (r.bars[ticker].open, r.bars[ticker].high, r.bars[ticker].low,
             r.bars[ticker].close, r.bars[ticker].volume)
            for r in rows
        ],
        columns=['open', 'high', 'low', 'close', 'volume'],
        index=pd.to_datetime([r.date for r in rows]),
    )
    df.index.name = 'date'
    return df
