# -*- coding: utf-8 -*-
"""
Performance Metrics
===================

에쿼티 커브 -> 성과 지표.

- 일간 수익률: r_i = E_i / E_{i-1} - 1
- Sharpe: (mean(r) * 252 - rf) / (std(r) * sqrt(252)), 모표준편차 (ddof=0)
- Drawdown: dd_i = (E_i - peak_i) / peak_i, peak_i = max(E_0..E_i)
- CAGR: (final / initial) ^ (1 / years) - 1, years = 기간일수 / 365.25

포인트가 2개 미만이면 모든 비율 0, drawdown 없음, final = initial capital.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from mantis.indicators.calculator import IndicatorSnapshot
from mantis.instruments import Instrument
from mantis.metrics.trade_analysis import TradeStats, analyze_trades
from mantis.strategy.position import TradeRecord


TRADING_DAYS_PER_YEAR = 252
DAYS_PER_YEAR = 365.25


@dataclass(frozen=True)
class EquityPoint:
    """에쿼티 커브 포인트 (종가 기준)"""
    date: str
    equity: float
    held: Optional[Instrument] = None


@dataclass(frozen=True)
class DrawdownPoint:
    date: str
    equity: float
    peak: float
    drawdown: float  # <= 0


@dataclass
class Metrics:
    """백테스트 성과"""
    initial_capital: float
    final_equity: float
    total_return: float = 0.0  # 소수
    cagr: float = 0.0
    sharpe_ratio: float = 0.0
    annual_volatility: float = 0.0
    max_drawdown: float = 0.0  # <= 0
    drawdowns: List[DrawdownPoint] = field(default_factory=list)
    trade_stats: TradeStats = field(default_factory=TradeStats)
    start_date: Optional[str] = None
    end_date: Optional[str] = None


def daily_returns(equities: Sequence[float]) -> np.ndarray:
    values = np.asarray(equities, dtype='float64')
    if len(values) < 2:
        return np.array([], dtype='float64')
    return values[1:] / values[:-1] - 1


def sharpe_ratio(returns: np.ndarray, risk_free_rate: float = 0.02) -> float:
    """연율화 Sharpe (변동성 0이면 0)"""
    if len(returns) == 0:
        return 0.0
    annual_return = float(np.mean(returns)) * TRADING_DAYS_PER_YEAR
    annual_vol = float(np.std(returns)) * np.sqrt(TRADING_DAYS_PER_YEAR)
    if annual_vol == 0:
        return 0.0
    return (annual_return - risk_free_rate) / annual_vol


def drawdown_series(equity_curve: Sequence[EquityPoint]) -> List[DrawdownPoint]:
    if not equity_curve:
        return []
    values = np.array([p.equity for p in equity_curve], dtype='float64')
    peaks = np.maximum.accumulate(values)
    dd = np.where(peaks > 0, (values - peaks) / peaks, 0.0)
    return [
        DrawdownPoint(date=p.date, equity=float(v), peak=float(pk), drawdown=float(d))
        for p, v, pk, d in zip(equity_curve, values, peaks, dd)
    ]


def compound_annual_growth(
    final_equity: float,
    initial_capital: float,
    start_date: str,
    end_date: str,
) -> float:
    years = (pd.Timestamp(end_date) - pd.Timestamp(start_date)).days / DAYS_PER_YEAR
    if years <= 0 or initial_capital <= 0:
        return 0.0
    if final_equity <= 0:
        return -1.0
    return (final_equity / initial_capital) ** (1 / years) - 1


def calculate_metrics(
    equity_curve: Sequence[EquityPoint],
    trades: Sequence[TradeRecord],
    initial_capital: float,
    risk_free_rate: float = 0.02,
) -> Metrics:
    """
    성과 지표 계산

    Args:
        equity_curve: 날짜순 EquityPoint
        trades: 거래 기록 (라운드트립 통계용)
        initial_capital: 초기 자본
        risk_free_rate: 연 무위험 수익률

    Returns:
        Metrics
    """
    trade_stats = analyze_trades(trades)

    if len(equity_curve) < 2:
        return Metrics(
            initial_capital=initial_capital,
            final_equity=initial_capital,
            trade_stats=trade_stats,
        )

    equities = [p.equity for p in equity_curve]
    returns = daily_returns(equities)
    drawdowns = drawdown_series(equity_curve)
    final_equity = float(equities[-1])
    start, end = equity_curve[0].date, equity_curve[-1].date

    return Metrics(
        initial_capital=initial_capital,
        final_equity=final_equity,
        total_return=final_equity / initial_capital - 1 if initial_capital > 0 else 0.0,
        cagr=compound_annual_growth(final_equity, initial_capital, start, end),
        sharpe_ratio=sharpe_ratio(returns, risk_free_rate),
        annual_volatility=float(np.std(returns)) * np.sqrt(TRADING_DAYS_PER_YEAR),
        max_drawdown=min(d.drawdown for d in drawdowns),
        drawdowns=drawdowns,
        trade_stats=trade_stats,
        start_date=start,
        end_date=end,
    )


def monthly_returns(equity_curve: Sequence[EquityPoint]) -> pd.DataFrame:
    """
    월별/연간 수익률 테이블

    Returns:
        DataFrame (index=연도, columns=1..12 + 'Year'), 값은 소수 수익률
    """
    columns = list(range(1, 13)) + ['Year']
    if not equity_curve:
        return pd.DataFrame(columns=columns)

    s = pd.Series(
        [p.equity for p in equity_curve],
        index=pd.to_datetime([p.date for p in equity_curve]),
        dtype='float64',
    )

    month_last = s.groupby(s.index.to_period('M')).last()
    month_prev = month_last.shift(1)
    month_prev.iloc[0] = s.iloc[0]
    month_ret = month_last / month_prev - 1

    year_last = s.groupby(s.index.year).last()
    year_prev = year_last.shift(1)
    year_prev.iloc[0] = s.iloc[0]
    year_ret = year_last / year_prev - 1

    frame = pd.DataFrame({
        'year': month_ret.index.year,
        'month': month_ret.index.month,
        'ret': month_ret.to_numpy(),
    })
    table = frame.pivot(index='year', columns='month', values='ret')
    table = table.reindex(columns=range(1, 13))
    table['Year'] = year_ret
    table.index.name = 'year'
    return table


def benchmark_curve(
    snapshots: Sequence[IndicatorSnapshot],
    initial_capital: float,
) -> List[EquityPoint]:
    """신호 자산 buy-and-hold 에쿼티 커브 (거래 비용 없음)"""
    if not snapshots:
        return []
    shares = initial_capital / snapshots[0].close
    return [EquityPoint(date=s.date, equity=shares * s.close) for s in snapshots]


def _ratio_text(value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    if np.isinf(value):
        return "inf (no losing trades)"
    return f"{value:.2f}"


def format_metrics(metrics: Metrics) -> str:
    """성과 요약 포맷팅"""
    ts = metrics.trade_stats
    lines = [
        "=" * 50,
        "Backtest Performance",
        "=" * 50,
        f"Period: {metrics.start_date} ~ {metrics.end_date}",
        f"Initial Capital: ${metrics.initial_capital:,.0f}",
        f"Final Equity: ${metrics.final_equity:,.0f} ({metrics.total_return:+.2%})",
        f"CAGR: {metrics.cagr:+.2%}",
        f"Sharpe Ratio: {metrics.sharpe_ratio:.2f}",
        f"Max Drawdown: {metrics.max_drawdown:.2%}",
        "",
        "--- Trades ---",
        f"Round Trips: {ts.total_round_trips} (W:{ts.profitable} L:{ts.losing})",
        f"Win Rate: {ts.win_rate:.1f}%",
        f"Avg Win / Avg Loss: ${ts.avg_win:,.0f} / ${ts.avg_loss:,.0f}",
        f"Profit/Loss Ratio: {_ratio_text(ts.profit_loss_ratio)}",
        f"Total Fees: ${ts.total_fees:,.2f}",
        "=" * 50,
    ]
    return "\n".join(lines)
