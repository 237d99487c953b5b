"""
Live Layer
==========

- state_store.py: PositionState JSON 저장 + 실행 락 + 백테스트 CSV
- market_hours.py: 정규장 시간 체크
- trader.py: 단발성 라이브 사이클
"""
from .state_store import (
    StateStore,
    RunLock,
    save_backtest,
    load_backtest,
)
from .market_hours import MarketHours
from .trader import (
    CycleResult,
    LiveTrader,
)

__all__ = [
    'StateStore',
    'RunLock',
    'save_backtest',
    'load_backtest',
    'MarketHours',
    'CycleResult',
    'LiveTrader',
]
