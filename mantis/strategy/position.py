# -*- coding: utf-8 -*-
"""
Position State Machine
======================

Decision + 스냅샷을 적용해 새 PositionState와 거래 기록(TradeRecord)을 만든다.

규칙:
- BUY (target != held): 보유 자산 SELL leg -> target BUY leg, days_held = 0
- SELL (레버리지 보유 중): SELL leg -> SAFE BUY leg, days_held = 0
- HOLD: 거래 없음, days_held += 1, equity 재평가
- 거래 비용은 leg마다 고정 금액으로 차감 (면제 없음)

입력 상태는 변경하지 않는다 (frozen dataclass, 새 객체 반환).
"""
import logging
from dataclasses import dataclass, replace, asdict
from typing import Any, Dict, List, Optional, Tuple

from mantis.indicators.calculator import IndicatorSnapshot
from mantis.instruments import Instrument, InstrumentMap
from mantis.strategy.decision import Action, Decision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionState:
    """현재 보유 포지션"""
    held: Instrument
    shares: float
    entry_price: float
    days_held: int
    is_leveraged: bool
    equity: float
    cash: float = 0.0  # 미투자 잔액 (보통 0)
    last_update: Optional[str] = None

    def __post_init__(self):
        if self.shares < 0:
            raise ValueError(f"shares must be >= 0, got {self.shares}")
        if self.days_held < 0:
            raise ValueError(f"days_held must be >= 0, got {self.days_held}")
        if self.is_leveraged != self.held.is_leveraged:
            raise ValueError(
                f"is_leveraged={self.is_leveraged} inconsistent with held={self.held.value}"
            )

    def mark(self, snapshot: IndicatorSnapshot) -> float:
        """현재가 기준 평가금액"""
        return self.cash + self.shares * snapshot.price_of(self.held)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['held'] = self.held.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PositionState":
        return cls(
            held=Instrument(data['held']),
            shares=float(data['shares']),
            entry_price=float(data['entry_price']),
            days_held=int(data['days_held']),
            is_leveraged=bool(data['is_leveraged']),
            equity=float(data['equity']),
            cash=float(data.get('cash', 0.0)),
            last_update=data.get('last_update'),
        )


@dataclass(frozen=True)
class TradeRecord:
    """거래 기록 (leg 1개)"""
    date: str
    action: Action  # BUY / SELL
    instrument: Instrument
    ticker: str
    shares: float
    price: float
    equity_at_event: float  # leg 직후 평가금액
    cost: float
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['action'] = self.action.value
        data['instrument'] = self.instrument.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TradeRecord":
        return cls(
            date=str(data['date']),
            action=Action(data['action']),
            instrument=Instrument(data['instrument']),
            ticker=str(data['ticker']),
            shares=float(data['shares']),
            price=float(data['price']),
            equity_at_event=float(data['equity_at_event']),
            cost=float(data['cost']),
            reason=str(data.get('reason', "") or ""),
        )


def _buy_leg(
    cash: float,
    instrument: Instrument,
    snapshot: IndicatorSnapshot,
    instruments: InstrumentMap,
    transaction_cost: float,
    reason: str,
) -> Tuple[float, float, TradeRecord]:
    """현금 전액 매수 -> (shares, 잔여 cash, record)"""
    price = snapshot.price_of(instrument)
    cash -= transaction_cost
    shares = 0.0
    if cash > 0 and price > 0:
        shares = cash / price
        cash = 0.0
    record = TradeRecord(
        date=snapshot.date,
        action=Action.BUY,
        instrument=instrument,
        ticker=instruments.ticker_for(instrument),
        shares=shares,
        price=price,
        equity_at_event=cash + shares * price,
        cost=transaction_cost,
        reason=reason,
    )
    return shares, cash, record


def _sell_leg(
    state: PositionState,
    snapshot: IndicatorSnapshot,
    instruments: InstrumentMap,
    transaction_cost: float,
    reason: str,
) -> Tuple[float, TradeRecord]:
    """보유 전량 매도 -> (cash, record)"""
    price = snapshot.price_of(state.held)
    cash = state.cash + state.shares * price - transaction_cost
    record = TradeRecord(
        date=snapshot.date,
        action=Action.SELL,
        instrument=state.held,
        ticker=instruments.ticker_for(state.held),
        shares=state.shares,
        price=price,
        equity_at_event=cash,
        cost=transaction_cost,
        reason=reason,
    )
    return cash, record


def open_position(
    snapshot: IndicatorSnapshot,
    capital: float,
    instruments: InstrumentMap,
    transaction_cost: float = 5.0,
    reason: str = "initial allocation",
) -> Tuple[PositionState, List[TradeRecord]]:
    """최초 진입: 자본 전액 SAFE 매수 (BUY leg 1개)"""
    shares, cash, record = _buy_leg(
        capital, Instrument.SAFE, snapshot, instruments, transaction_cost, reason
    )
    state = PositionState(
        held=Instrument.SAFE,
        shares=shares,
        entry_price=record.price,
        days_held=0,
        is_leveraged=False,
        equity=record.equity_at_event,
        cash=cash,
        last_update=snapshot.date,
    )
    return state, [record]


def _switch(
    state: PositionState,
    target: Instrument,
    snapshot: IndicatorSnapshot,
    instruments: InstrumentMap,
    transaction_cost: float,
    reason: str,
) -> Tuple[PositionState, List[TradeRecord]]:
    # 보유 자산 변경은 항상 SELL leg 1개 + BUY leg 1개 (보유 수량 0 포함)
    cash, sell = _sell_leg(state, snapshot, instruments, transaction_cost, reason)
    shares, cash, buy = _buy_leg(cash, target, snapshot, instruments, transaction_cost, reason)
    records = [sell, buy]

    new_state = PositionState(
        held=target,
        shares=shares,
        entry_price=buy.price,
        days_held=0,
        is_leveraged=target.is_leveraged,
        equity=cash + shares * buy.price,
        cash=cash,
        last_update=snapshot.date,
    )
    return new_state, records


def _hold(state: PositionState, snapshot: IndicatorSnapshot) -> PositionState:
    return replace(
        state,
        days_held=state.days_held + 1,
        equity=state.mark(snapshot),
        last_update=snapshot.date,
    )


def apply(
    decision: Decision,
    snapshot: IndicatorSnapshot,
    state: PositionState,
    instruments: Optional[InstrumentMap] = None,
    transaction_cost: float = 5.0,
) -> Tuple[PositionState, List[TradeRecord]]:
    """
    Decision 적용

    Args:
        decision: Decision Engine 결과
        snapshot: 체결 기준 스냅샷 (종가 체결)
        state: 현재 상태 (변경되지 않음)
        instruments: 역할 -> 티커
        transaction_cost: leg당 고정 비용

    Returns:
        (new_state, trade_records)
    """
    instruments = instruments or InstrumentMap()

    if decision.action is Action.BUY and decision.target is not state.held:
        new_state, records = _switch(
            state, decision.target, snapshot, instruments, transaction_cost, decision.reason
        )
        logger.info(
            "%s: %s -> %s (%s)", snapshot.date, state.held.value,
            decision.target.value, decision.reason,
        )
        return new_state, records

    if decision.action is Action.SELL:
        if not state.is_leveraged:
            logger.warning("%s: SELL while already in SAFE, treated as HOLD", snapshot.date)
            return _hold(state, snapshot), []
        new_state, records = _switch(
            state, Instrument.SAFE, snapshot, instruments, transaction_cost, decision.reason
        )
        logger.info(
            "%s: exit %s -> safe (%s)", snapshot.date, state.held.value, decision.reason
        )
        return new_state, records

    # HOLD 또는 이미 보유 중인 자산으로의 BUY
    return _hold(state, snapshot), []
