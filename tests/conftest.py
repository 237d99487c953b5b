# -*- coding: utf-8 -*-
"""공용 fixture: 스냅샷/포지션/임계값/합성 시계열 생성기."""
import copy

import numpy as np
import pandas as pd
import pytest

from mantis.config.loader import RiskParams, SignalParams
from mantis.data.series import Bar, InstrumentSeries
from mantis.indicators.calculator import IndicatorSnapshot
from mantis.instruments import Instrument, InstrumentMap
from mantis.strategy.position import PositionState
from mantis.strategy.thresholds import parse_thresholds


RULES = {
    'min_adx_threshold': 20,
    'max_vix_threshold': 30,
    'min_volume_threshold': 1_000_000,
    'bullish_confirmation': {
        'require_price_above_sma50': True,
        'require_price_above_sma200': True,
        'require_rising_sma': True,
    },
    'bearish_confirmation': {
        'require_price_below_sma50': True,
        'require_price_below_sma200': True,
        'require_falling_sma': True,
    },
    'risk_management': {
        'max_position_size': 1.0,
        'intraday_stop_loss': 0.10,
        'profit_target': 0.15,
    },
    'market_hours_only': True,
    'justification': "test rules",
}


@pytest.fixture
def rules():
    """advisory 룰셋 원본 (dict, 깊은 복사)"""
    return copy.deepcopy(RULES)


@pytest.fixture
def thresholds():
    return parse_thresholds(RULES, SignalParams(), RiskParams())


@pytest.fixture
def make_snapshot():
    def _make(**overrides) -> IndicatorSnapshot:
        base = dict(
            date="2024-01-09",
            close=400.0,
            volatility_close=18.0,
            long_close=50.0,
            short_close=20.0,
            safe_close=400.0,
            volume=2_000_000.0,
            oscillator=50.0,
            trend_strength=30.0,
            short_ma=390.0,
            long_ma=370.0,
            prev_short_ma=389.0,
        )
        base.update(overrides)
        return IndicatorSnapshot(**base)
    return _make


@pytest.fixture
def make_state():
    def _make(held: Instrument = Instrument.SAFE, **overrides) -> PositionState:
        base = dict(
            held=held,
            shares=100.0,
            entry_price=50.0,
            days_held=0,
            is_leveraged=held.is_leveraged,
            equity=5000.0,
            cash=0.0,
            last_update="2024-01-08",
        )
        base.update(overrides)
        return PositionState(**base)
    return _make


def synthetic_series(n: int = 260, start: str = "2020-01-01", noise: float = 0.0, seed: int = 7):
    """
    사인파 + 완만한 추세 합성 일봉 (RSI(2) 극단값이 주기적으로 발생)

    Returns:
        {ticker: InstrumentSeries} (QQQ, ^VIX, TQQQ, SQQQ)
    """
    rng = np.random.RandomState(seed)
    idx = np.arange(n)
    close = 100 + 0.05 * idx + 8 * np.sin(2 * np.pi * idx / 20) + noise * rng.randn(n)
    vix = 20 + 5 * np.cos(2 * np.pi * idx / 30)
    dates = [d.strftime('%Y-%m-%d') for d in pd.bdate_range(start, periods=n)]

    def _bars(values, volume=2_000_000.0):
        return [
            Bar(date=d, open=float(v), high=float(v) + 1.0, low=float(v) - 1.0,
                close=float(v), volume=volume)
            for d, v in zip(dates, values)
        ]

    tickers = InstrumentMap()
    return {
        tickers.signal: InstrumentSeries.from_bars(tickers.signal, _bars(close)),
        tickers.volatility: InstrumentSeries.from_bars(tickers.volatility, _bars(vix, 0.0)),
        tickers.long_leveraged: InstrumentSeries.from_bars(
            tickers.long_leveraged, _bars(30 * (close / 100) ** 3)),
        tickers.short_leveraged: InstrumentSeries.from_bars(
            tickers.short_leveraged, _bars(30 * (100 / close) ** 3)),
    }


@pytest.fixture
def series_factory():
    return synthetic_series
