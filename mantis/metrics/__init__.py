"""
Metrics
=======

- performance.py: 수익률 / Sharpe / Drawdown / CAGR / 월별 수익률 / 벤치마크
- trade_analysis.py: 라운드트립 통계
"""
from .trade_analysis import (
    RoundTrip,
    TradeStats,
    pair_round_trips,
    analyze_trades,
)
from .performance import (
    EquityPoint,
    DrawdownPoint,
    Metrics,
    daily_returns,
    sharpe_ratio,
    drawdown_series,
    compound_annual_growth,
    calculate_metrics,
    monthly_returns,
    benchmark_curve,
    format_metrics,
)

__all__ = [
    'RoundTrip',
    'TradeStats',
    'pair_round_trips',
    'analyze_trades',
    'EquityPoint',
    'DrawdownPoint',
    'Metrics',
    'daily_returns',
    'sharpe_ratio',
    'drawdown_series',
    'compound_annual_growth',
    'calculate_metrics',
    'monthly_returns',
    'benchmark_curve',
    'format_metrics',
]
