# -*- coding: utf-8 -*-
"""
Backtest Engine Test
====================

일봉 재생 백테스트 통합 테스트 (합성 사인파 데이터).
"""
from dataclasses import replace

import pytest

from mantis.backtest.engine import BacktestEngine, run_backtest
from mantis.config.loader import BacktestParams, TradingConfig
from mantis.data.aligner import align_series
from mantis.errors import InsufficientDataError, InsufficientHistoryError
from mantis.indicators.calculator import compute_snapshots
from mantis.instruments import Instrument, InstrumentMap
from mantis.strategy.decision import Action


@pytest.fixture
def snapshots(series_factory):
    return compute_snapshots(align_series(series_factory(320)), InstrumentMap())


@pytest.fixture
def permissive(thresholds):
    """확인 조건을 모두 끈 임계값 (신호가 자주 발생)"""
    flags_off = replace(thresholds.bullish, price_vs_short_ma=False,
                        price_vs_long_ma=False, short_ma_slope=False)
    return replace(
        thresholds,
        min_trend_strength=0.0,
        max_volatility=100.0,
        min_volume=0.0,
        bullish=flags_off,
        bearish=flags_off,
        max_hold_period=3,
    )


class TestBacktestEngine:
    """BacktestEngine.run() 테스트"""

    def test_one_point_per_row(self, snapshots, thresholds):
        result = BacktestEngine().run(snapshots, thresholds)

        assert len(result.equity_curve) == len(snapshots)
        assert [p.date for p in result.equity_curve] == [s.date for s in snapshots]

    def test_starts_in_safe(self, snapshots, thresholds):
        result = BacktestEngine().run(snapshots, thresholds)
        first = result.trades[0]

        assert first.action is Action.BUY
        assert first.instrument is Instrument.SAFE
        assert first.date == snapshots[0].date

    def test_deterministic(self, snapshots, permissive):
        a = BacktestEngine().run(snapshots, permissive)
        b = BacktestEngine().run(snapshots, permissive)

        assert a.equity_curve == b.equity_curve
        assert a.trades == b.trades

    def test_trades_come_in_pairs(self, snapshots, permissive):
        result = BacktestEngine(transaction_cost=5.0).run(snapshots, permissive)
        trades = result.trades

        assert len(trades) > 1
        assert len(trades) % 2 == 1  # 최초 BUY + (SELL, BUY) 쌍
        assert all(t.action is Action.SELL for t in trades[1::2])
        assert all(t.action is Action.BUY for t in trades[2::2])
        assert all(t.cost == 5.0 for t in trades)

    def test_leveraged_positions_taken(self, snapshots, permissive):
        result = BacktestEngine().run(snapshots, permissive)
        held = {p.held for p in result.equity_curve}

        assert Instrument.LONG_LEVERAGED in held or Instrument.SHORT_LEVERAGED in held
        assert result.final_state.equity == pytest.approx(result.final_equity)

    def test_zero_cost_single_row(self, snapshots, thresholds):
        result = BacktestEngine(initial_capital=1000.0, transaction_cost=0.0).run(
            snapshots[:1], replace(thresholds, oversold_bound=0.0, overbought_bound=100.0)
        )
        assert result.equity_curve[0].equity == pytest.approx(1000.0)

    def test_empty_snapshots_raise(self, thresholds):
        with pytest.raises(InsufficientDataError):
            BacktestEngine().run([], thresholds)

    def test_frames(self, snapshots, permissive):
        result = BacktestEngine().run(snapshots, permissive)

        eq = result.equity_frame()
        assert len(eq) == len(snapshots)
        assert list(eq.columns) == ['equity', 'held']

        tr = result.trades_frame()
        assert len(tr) == len(result.trades)
        assert set(tr['action']) <= {"BUY", "SELL"}


class TestRunBacktest:
    """run_backtest() 파이프라인 테스트"""

    def test_pipeline(self, series_factory, thresholds):
        config = TradingConfig(backtest=BacktestParams(start_date=None))
        result, metrics = run_backtest(series_factory(300), config, thresholds)

        assert len(result.equity_curve) == 100
        assert metrics.final_equity == pytest.approx(result.final_equity)
        assert metrics.max_drawdown <= 0

    def test_date_window(self, series_factory, thresholds):
        series = series_factory(300)
        config = TradingConfig(backtest=BacktestParams(start_date=None))
        full, _ = run_backtest(series, config, thresholds)

        start = full.equity_curve[10].date
        end = full.equity_curve[50].date
        config = TradingConfig(backtest=BacktestParams(start_date=start, end_date=end))
        windowed, _ = run_backtest(series, config, thresholds)

        assert windowed.equity_curve[0].date == start
        assert windowed.equity_curve[-1].date == end

    def test_short_history_fails(self, series_factory, thresholds):
        config = TradingConfig(backtest=BacktestParams(start_date=None))
        with pytest.raises(InsufficientHistoryError):
            run_backtest(series_factory(150), config, thresholds)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
