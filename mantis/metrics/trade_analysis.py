# -*- coding: utf-8 -*-
"""
Trade Analysis
==============

거래 기록(leg)을 BUY -> SELL 라운드트립으로 묶어 통계를 낸다.

- 각 BUY는 다음 SELL과 짝을 이룬다 (SAFE 보유 구간 포함)
- win rate = 수익 라운드트립 / 전체 라운드트립 * 100
- profit/loss ratio = |평균 수익| / |평균 손실|
  - 손실 거래 없이 수익만 있으면 inf
  - 라운드트립이 없거나 손익이 모두 0이면 None (정의 불가)
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

import numpy as np

from mantis.instruments import Instrument
from mantis.strategy.decision import Action
from mantis.strategy.position import TradeRecord


@dataclass(frozen=True)
class RoundTrip:
    """진입 -> 청산 1회"""
    instrument: Instrument
    ticker: str
    entry_date: str
    exit_date: str
    entry_price: float
    exit_price: float
    shares: float
    profit: float
    profit_pct: float  # %
    duration_days: int
    is_short: bool
    exit_reason: str = ""


@dataclass
class TradeStats:
    """라운드트립 통계"""
    total_round_trips: int = 0
    profitable: int = 0
    losing: int = 0
    win_rate: float = 0.0  # %
    total_profit: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    profit_loss_ratio: Optional[float] = None
    total_fees: float = 0.0
    round_trips: List[RoundTrip] = field(default_factory=list)
    top_trades: List[RoundTrip] = field(default_factory=list)
    bottom_trades: List[RoundTrip] = field(default_factory=list)


def pair_round_trips(trades: Sequence[TradeRecord]) -> List[RoundTrip]:
    """BUY -> 다음 SELL 매칭"""
    trips: List[RoundTrip] = []
    entry: Optional[TradeRecord] = None

    for rec in trades:
        if rec.action is Action.BUY:
            entry = rec
        elif rec.action is Action.SELL and entry is not None:
            profit = (rec.price - entry.price) * entry.shares
            profit_pct = (rec.price / entry.price - 1) * 100 if entry.price > 0 else 0.0
            duration = (date.fromisoformat(rec.date) - date.fromisoformat(entry.date)).days
            trips.append(RoundTrip(
                instrument=entry.instrument,
                ticker=entry.ticker,
                entry_date=entry.date,
                exit_date=rec.date,
                entry_price=entry.price,
                exit_price=rec.price,
                shares=entry.shares,
                profit=profit,
                profit_pct=profit_pct,
                duration_days=duration,
                is_short=entry.instrument is Instrument.SHORT_LEVERAGED,
                exit_reason=rec.reason,
            ))
            entry = None

    return trips


def analyze_trades(trades: Sequence[TradeRecord], top_n: int = 10) -> TradeStats:
    """
    거래 기록 분석

    Args:
        trades: 시간순 TradeRecord 리스트
        top_n: 상위/하위 라운드트립 개수

    Returns:
        TradeStats
    """
    trips = pair_round_trips(trades)
    total_fees = float(sum(t.cost for t in trades))
    if not trips:
        return TradeStats(total_fees=total_fees)

    winners = [t.profit for t in trips if t.profit > 0]
    losers = [t.profit for t in trips if t.profit < 0]

    avg_win = float(np.mean(winners)) if winners else 0.0
    avg_loss = float(np.mean(losers)) if losers else 0.0

    if winners and losers:
        ratio: Optional[float] = abs(avg_win / avg_loss)
    elif winners:
        ratio = float('inf')
    elif losers:
        ratio = 0.0
    else:
        ratio = None

    ranked = sorted(trips, key=lambda t: t.profit, reverse=True)
    return TradeStats(
        total_round_trips=len(trips),
        profitable=len(winners),
        losing=len(losers),
        win_rate=len(winners) / len(trips) * 100,
        total_profit=float(sum(t.profit for t in trips)),
        avg_win=avg_win,
        avg_loss=avg_loss,
        profit_loss_ratio=ratio,
        total_fees=total_fees,
        round_trips=trips,
        top_trades=ranked[:top_n],
        bottom_trades=list(reversed(ranked[-top_n:])),
    )
