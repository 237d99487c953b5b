# -*- coding: utf-8 -*-
"""
Live Trader
===========

단발성 라이브 사이클: 락 -> 상태 로드 -> 최신 스냅샷 -> 결정 -> 적용 -> 저장.

- 최초 실행(상태 파일 없음)은 SAFE 전액 매수로 시작
- 실패한 사이클은 상태를 저장하지 않는다
- run_cycle_safely: MantisError를 에러 태그 HOLD 로 변환 (리포트용)

사용법:
```python
from mantis.live import LiveTrader, StateStore

trader = LiveTrader(config, thresholds, StateStore(config.live.state_path))
result = trader.run_cycle_safely(series_by_ticker)
print(result.decision.action, result.decision.reason)
```
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Mapping, Optional, Union

import pandas as pd

from mantis.config.loader import TradingConfig
from mantis.data.aligner import align_series
from mantis.data.series import InstrumentSeries
from mantis.errors import MantisError
from mantis.indicators.calculator import IndicatorSnapshot, latest_snapshot
from mantis.instruments import Instrument
from mantis.live.market_hours import MarketHours
from mantis.live.state_store import RunLock, StateStore
from mantis.strategy.assessment import (
    MarketConditions,
    RiskAssessment,
    assess_market_conditions,
    assess_risk,
    suggest_position_size,
)
from mantis.strategy.decision import Action, Decision, decide
from mantis.strategy.position import PositionState, TradeRecord, apply, open_position
from mantis.strategy.thresholds import RuleThresholds

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """라이브 사이클 결과"""
    decision: Decision
    state: Optional[PositionState] = None
    trades: List[TradeRecord] = field(default_factory=list)
    snapshot: Optional[IndicatorSnapshot] = None
    market: Optional[MarketConditions] = None
    risk: Optional[RiskAssessment] = None
    suggested_shares: Optional[float] = None  # 레버리지 진입 시 리스크 기반 권장 수량 (참고용)
    persisted: bool = False


class LiveTrader:
    """라이브 의사결정 드라이버"""

    def __init__(
        self,
        config: TradingConfig,
        thresholds: RuleThresholds,
        store: Optional[StateStore] = None,
        market_hours: Optional[MarketHours] = None,
    ):
        self.config = config
        self.thresholds = thresholds
        self.store = store or StateStore(config.live.state_path)
        self.market_hours = market_hours or MarketHours(
            market_open=config.live.market_open,
            market_close=config.live.market_close,
            timezone=config.live.timezone,
        )
        self.lock = RunLock(config.live.lock_path)

    def run_cycle(
        self,
        series_by_ticker: Mapping[str, InstrumentSeries],
        now: Optional[Union[datetime, pd.Timestamp, str]] = None,
    ) -> CycleResult:
        """
        사이클 1회 실행

        Args:
            series_by_ticker: 티커별 최근 일봉 (warm-up 이상)
            now: 현재 시각 (장중 여부 판단용, None이면 현재 UTC)

        Raises:
            MantisError: 데이터/설정/상태/락 오류 (상태는 저장되지 않음)
        """
        with self.lock:
            rows = align_series(series_by_ticker)
            lookback = int(self.config.live.lookback_days)
            if len(rows) > lookback:
                # 최근 lookback_days 거래일만 사용
                rows = rows[-lookback:]
            snapshot = latest_snapshot(rows, self.config.instruments, self.config.indicators)

            state = self.store.load()
            ledger = self.store.load_trades()
            new_trades: List[TradeRecord] = []
            if state is None:
                logger.info("No saved state; opening in %s", self.config.instruments.safe)
                state, opening = open_position(
                    snapshot,
                    self.config.backtest.initial_capital,
                    self.config.instruments,
                    self.config.backtest.transaction_cost,
                )
                new_trades.extend(opening)

            session_open = self.market_hours.is_open(now)
            decision = decide(snapshot, state, self.thresholds, session_open=session_open)
            logger.info(
                "%s decision: %s %s (%s, confidence %.0f%%)",
                snapshot.date, decision.action.value, decision.target.value,
                decision.reason, decision.confidence * 100,
            )

            new_state, records = apply(
                decision, snapshot, state,
                self.config.instruments, self.config.backtest.transaction_cost,
            )
            new_trades.extend(records)
            self.store.save(new_state, list(ledger) + new_trades)

        suggested = None
        if decision.action is Action.BUY and decision.target.is_leveraged:
            suggested = suggest_position_size(
                state.mark(snapshot),
                snapshot.price_of(decision.target),
                self.thresholds.stop_loss_fraction,
            )

        return CycleResult(
            decision=decision,
            state=new_state,
            trades=new_trades,
            snapshot=snapshot,
            market=assess_market_conditions(snapshot),
            risk=assess_risk(snapshot, decision, self.thresholds),
            suggested_shares=suggested,
            persisted=True,
        )

    def _last_known_held(self) -> Optional[Instrument]:
        """저장된 보유 자산 (상태 파일이 없으면 SAFE, 읽을 수 없으면 None)"""
        try:
            state = self.store.load()
        except MantisError as exc:
            logger.warning("Held position unknown: %s", exc)
            return None
        return state.held if state is not None else Instrument.SAFE

    def run_cycle_safely(
        self,
        series_by_ticker: Mapping[str, InstrumentSeries],
        now: Optional[Union[datetime, pd.Timestamp, str]] = None,
    ) -> CycleResult:
        """실패 시 에러 태그 HOLD 반환 (상태 파일 변경 없음)"""
        try:
            return self.run_cycle(series_by_ticker, now)
        except MantisError as exc:
            logger.exception("Live cycle aborted")
            return CycleResult(
                decision=Decision.failed(self._last_known_held(), f"{type(exc).__name__}: {exc}"),
                persisted=False,
            )
