# -*- coding: utf-8 -*-
"""
Backtest Engine
===============

스냅샷 시퀀스를 하루씩 재생하는 백테스트.

주요 기능:
1. 0번째 행에서 SAFE 전액 매수로 시작 (BUY leg 1개)
2. 매 행마다 Decision Engine -> Position State Machine
3. 행마다 에쿼티 포인트 1개 기록
4. 시계/난수 없음: 같은 입력이면 같은 결과

사용법:
```python
from mantis.backtest.engine import BacktestEngine

engine = BacktestEngine(initial_capital=100000, transaction_cost=5.0)
result = engine.run(snapshots, thresholds)
print(result.final_equity)
```
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from mantis.config.loader import TradingConfig
from mantis.data.aligner import align_series
from mantis.data.series import InstrumentSeries
from mantis.errors import InsufficientDataError
from mantis.indicators.calculator import IndicatorSnapshot, compute_snapshots
from mantis.instruments import InstrumentMap
from mantis.metrics.performance import EquityPoint, Metrics, calculate_metrics
from mantis.strategy.decision import decide
from mantis.strategy.position import PositionState, TradeRecord, apply, open_position
from mantis.strategy.thresholds import RuleThresholds

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    """백테스트 결과"""
    equity_curve: List[EquityPoint] = field(default_factory=list)
    trades: List[TradeRecord] = field(default_factory=list)
    final_state: Optional[PositionState] = None
    initial_capital: float = 100000.0

    @property
    def final_equity(self) -> float:
        return self.equity_curve[-1].equity if self.equity_curve else self.initial_capital

    def equity_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            {
                'equity': [p.equity for p in self.equity_curve],
                'held': [p.held.value if p.held else None for p in self.equity_curve],
            },
            index=pd.to_datetime([p.date for p in self.equity_curve]),
        )
        df.index.name = 'date'
        return df

    def trades_frame(self) -> pd.DataFrame:
        return pd.DataFrame([t.to_dict() for t in self.trades])


class BacktestEngine:
    """백테스트 엔진"""

    def __init__(
        self,
        instruments: Optional[InstrumentMap] = None,
        initial_capital: float = 100000.0,
        transaction_cost: float = 5.0,  # leg당 고정 비용
    ):
        self.instruments = instruments or InstrumentMap()
        self.initial_capital = initial_capital
        self.transaction_cost = transaction_cost

    def run(
        self,
        snapshots: Sequence[IndicatorSnapshot],
        thresholds: RuleThresholds,
    ) -> BacktestResult:
        """
        백테스트 실행

        Args:
            snapshots: 날짜 오름차순 IndicatorSnapshot
            thresholds: 검증된 임계값

        Returns:
            BacktestResult

        Raises:
            InsufficientDataError: 스냅샷 없음
        """
        if not snapshots:
            raise InsufficientDataError("No indicator snapshots to backtest")

        logger.info(
            "Backtest start: %s ~ %s (%d rows, capital $%.0f)",
            snapshots[0].date, snapshots[-1].date, len(snapshots), self.initial_capital,
        )

        state, trades = open_position(
            snapshots[0], self.initial_capital, self.instruments, self.transaction_cost
        )
        equity_curve: List[EquityPoint] = []

        for snap in snapshots:
            decision = decide(snap, state, thresholds)
            state, records = apply(
                decision, snap, state, self.instruments, self.transaction_cost
            )
            trades.extend(records)
            equity_curve.append(EquityPoint(date=snap.date, equity=state.equity, held=state.held))

        logger.info(
            "Backtest done: final equity $%.0f, %d trade legs",
            state.equity, len(trades),
        )
        return BacktestResult(
            equity_curve=equity_curve,
            trades=trades,
            final_state=state,
            initial_capital=self.initial_capital,
        )


def _within_dates(
    snapshots: List[IndicatorSnapshot],
    start_date: Optional[str],
    end_date: Optional[str],
) -> List[IndicatorSnapshot]:
    # YYYY-MM-DD 문자열은 사전순 == 날짜순
    return [
        s for s in snapshots
        if (not start_date or s.date >= str(start_date))
        and (not end_date or s.date <= str(end_date))
    ]


def run_backtest(
    series_by_ticker: Mapping[str, InstrumentSeries],
    config: TradingConfig,
    thresholds: RuleThresholds,
) -> Tuple[BacktestResult, Metrics]:
    """
    정렬 -> 지표 -> 백테스트 -> 성과 지표

    지표 warm-up은 전체 이력으로 계산한 뒤 start/end 날짜로 자른다.
    """
    rows = align_series(series_by_ticker)
    snapshots = compute_snapshots(rows, config.instruments, config.indicators)
    snapshots = _within_dates(snapshots, config.backtest.start_date, config.backtest.end_date)

    engine = BacktestEngine(
        instruments=config.instruments,
        initial_capital=config.backtest.initial_capital,
        transaction_cost=config.backtest.transaction_cost,
    )
    result = engine.run(snapshots, thresholds)
    metrics = calculate_metrics(
        result.equity_curve,
        result.trades,
        config.backtest.initial_capital,
        config.backtest.risk_free_rate,
    )
    return result, metrics
