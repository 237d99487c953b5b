"""
Backtest Module
===============

일봉 재생 백테스트 엔진.
"""
from .engine import (
    BacktestEngine,
    BacktestResult,
    run_backtest,
)

__all__ = [
    'BacktestEngine',
    'BacktestResult',
    'run_backtest',
]
