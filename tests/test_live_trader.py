# -*- coding: utf-8 -*-
"""
Live Trader Tests
=================

단발성 라이브 사이클 + 장중 판단 + 에러 태그 HOLD 테스트.
"""
import os
import subprocess
import sys

import pytest

from mantis.config.loader import LiveParams, TradingConfig
from mantis.data.aligner import align_series
from mantis.errors import InsufficientHistoryError, RunLockError
from mantis.indicators.calculator import latest_snapshot
from mantis.instruments import Instrument
from mantis.live.market_hours import MarketHours
from mantis.live.state_store import StateStore
from mantis.live.trader import LiveTrader
from mantis.strategy.assessment import suggest_position_size
from mantis.strategy.decision import Action, Decision

# 2024-01-09 (화) 15:00 UTC = 10:00 New York
OPEN_NOW = "2024-01-09T15:00:00Z"
# 2024-01-13 (토)
WEEKEND_NOW = "2024-01-13T15:00:00Z"


@pytest.fixture
def config(tmp_path):
    return TradingConfig(live=LiveParams(
        state_path=tmp_path / "state.json",
        lock_path=tmp_path / "mantis.lock",
    ))


@pytest.fixture
def trader(config, thresholds):
    return LiveTrader(config, thresholds)


class TestMarketHours:
    """MarketHours 테스트"""

    def test_regular_session(self):
        hours = MarketHours()
        assert hours.is_open("2024-01-09T14:30:00Z")       # 09:30 ET
        assert hours.is_open(OPEN_NOW)
        assert not hours.is_open("2024-01-09T14:29:00Z")   # 09:29 ET
        assert not hours.is_open("2024-01-09T21:00:00Z")   # 16:00 ET
        assert not hours.is_open(WEEKEND_NOW)

    def test_naive_is_utc(self):
        assert MarketHours().is_open("2024-01-09 15:00:00")

    def test_dst(self):
        # 7월: EDT (UTC-4) -> 13:30 UTC = 09:30
        assert MarketHours().is_open("2024-07-09T13:30:00Z")


class TestRunCycle:
    """LiveTrader.run_cycle() 테스트"""

    def test_first_cycle_opens_safe(self, trader, series_factory, config):
        result = trader.run_cycle(series_factory(260), now=OPEN_NOW)

        assert result.persisted
        assert result.trades[0].action is Action.BUY
        assert result.trades[0].instrument is Instrument.SAFE
        assert result.snapshot.date == series_factory(260)["QQQ"].bars[-1].date
        assert result.market is not None
        assert result.risk is not None

        store = StateStore(config.live.state_path)
        assert store.load() == result.state
        assert store.load_trades() == result.trades
        assert not config.live.lock_path.exists()

    def test_second_cycle_continues(self, trader, series_factory, config):
        first = trader.run_cycle(series_factory(260), now=OPEN_NOW)
        second = trader.run_cycle(series_factory(261), now=OPEN_NOW)

        ledger = StateStore(config.live.state_path).load_trades()
        assert ledger == first.trades + second.trades
        if second.decision.action is Action.HOLD:
            assert second.state.days_held == first.state.days_held + 1

    def test_outside_hours_hold(self, trader, series_factory):
        result = trader.run_cycle(series_factory(260), now=WEEKEND_NOW)

        assert result.decision.action is Action.HOLD
        assert result.decision.reason == "outside market hours"
        assert result.state.held is Instrument.SAFE

    def test_errors_propagate(self, trader, series_factory, config):
        with pytest.raises(InsufficientHistoryError):
            trader.run_cycle(series_factory(120), now=OPEN_NOW)
        assert not config.live.state_path.exists()
        assert not config.live.lock_path.exists()

    def test_lock_contention(self, trader, series_factory, config):
        config.live.lock_path.write_text(f"{os.getpid()}\n")
        with pytest.raises(RunLockError):
            trader.run_cycle(series_factory(260), now=OPEN_NOW)

    def test_stale_lock_recovered(self, trader, series_factory, config):
        """종료된 프로세스의 락이 남아 있어도 사이클 진행"""
        proc = subprocess.Popen([sys.executable, "-c", "pass"])
        proc.wait()
        config.live.lock_path.write_text(f"{proc.pid}\n")

        result = trader.run_cycle(series_factory(260), now=OPEN_NOW)

        assert result.persisted
        assert not config.live.lock_path.exists()

    def test_lookback_trims_history(self, tmp_path, thresholds, series_factory):
        """최근 lookback_days 거래일만으로 지표 계산"""
        config = TradingConfig(live=LiveParams(
            state_path=tmp_path / "state.json",
            lock_path=tmp_path / "mantis.lock",
            lookback_days=230,
        ))
        series = series_factory(400)
        result = LiveTrader(config, thresholds).run_cycle(series, now=OPEN_NOW)

        rows = align_series(series)
        expected = latest_snapshot(rows[-230:], config.instruments, config.indicators)
        assert result.snapshot == expected

    def test_suggested_size_on_leveraged_entry(self, trader, series_factory, monkeypatch):
        entry = Decision(Action.BUY, Instrument.LONG_LEVERAGED, "oversold", 1.0)
        monkeypatch.setattr("mantis.live.trader.decide", lambda *args, **kwargs: entry)

        result = trader.run_cycle(series_factory(260), now=OPEN_NOW)

        snap = result.snapshot
        opening = result.trades[0]
        expected = suggest_position_size(
            opening.equity_at_event, snap.price_of(Instrument.LONG_LEVERAGED), 0.10,
        )
        assert result.state.held is Instrument.LONG_LEVERAGED
        assert result.suggested_shares == pytest.approx(expected)
        assert result.suggested_shares > 0

    def test_no_suggested_size_on_hold(self, trader, series_factory):
        result = trader.run_cycle(series_factory(260), now=WEEKEND_NOW)
        assert result.suggested_shares is None


class TestRunCycleSafely:
    """에러 태그 HOLD 테스트"""

    def test_insufficient_data(self, trader, series_factory, config):
        result = trader.run_cycle_safely(series_factory(120), now=OPEN_NOW)

        assert result.decision.action is Action.HOLD
        assert result.decision.failed_cycle
        assert "InsufficientHistoryError" in result.decision.error
        assert not result.persisted
        assert not config.live.state_path.exists()

    def test_keeps_held_instrument(self, trader, series_factory, config, make_state):
        StateStore(config.live.state_path).save(make_state(Instrument.LONG_LEVERAGED))
        before = config.live.state_path.read_text()

        result = trader.run_cycle_safely({}, now=OPEN_NOW)

        assert result.decision.target is Instrument.LONG_LEVERAGED
        assert result.decision.reason == "error"
        assert config.live.state_path.read_text() == before

    def test_corrupt_state_untouched(self, trader, series_factory, config):
        config.live.state_path.write_text("{broken")
        result = trader.run_cycle_safely(series_factory(260), now=OPEN_NOW)

        assert result.decision.failed_cycle
        assert "StateCorruptionError" in result.decision.error
        # 손상된 상태 파일 -> 보유 자산 미상 (SAFE 로 보고하지 않음)
        assert result.decision.target is None
        assert "unknown" in result.decision.message
        assert config.live.state_path.read_text() == "{broken"

    def test_lock_contention(self, trader, series_factory, config):
        config.live.lock_path.write_text(f"{os.getpid()}\n")
        result = trader.run_cycle_safely(series_factory(260), now=OPEN_NOW)

        assert result.decision.failed_cycle
        assert "RunLockError" in result.decision.error
        # 다른 사이클의 락은 건드리지 않음
        assert config.live.lock_path.exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
