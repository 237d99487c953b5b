# -*- coding: utf-8 -*-
"""
Aligner Tests
=============

공통 거래일 inner join 단위 테스트.
"""
import pandas as pd
import pytest

from mantis.data.aligner import align_series, rows_to_frame
from mantis.data.series import Bar, InstrumentSeries, load_series_csv, load_series_dir
from mantis.errors import InsufficientDataError


def _series(ticker, dates, close=100.0):
    return InstrumentSeries.from_bars(
        ticker,
        [Bar(date=d, open=close, high=close + 1, low=close - 1, close=close, volume=1000) for d in dates],
    )


class TestInstrumentSeries:
    """InstrumentSeries 생성 테스트"""

    def test_from_bars_sorts_and_dedups(self):
        bars = [
            Bar("2024-01-03", 1, 1, 1, 3.0, 10),
            Bar("2024-01-02", 1, 1, 1, 2.0, 10),
            Bar("2024-01-03", 1, 1, 1, 33.0, 10),  # 같은 날짜 -> 마지막 유지
        ]
        s = InstrumentSeries.from_bars("QQQ", bars)
        assert [b.date for b in s.bars] == ["2024-01-02", "2024-01-03"]
        assert s.bars[-1].close == 33.0

    def test_from_frame_standardizes_columns(self):
        df = pd.DataFrame(
            {
                'Date': ['2024-01-03', '2024-01-02'],
                'Open': [1.0, 2.0],
                'High': [1.5, 2.5],
                'Low': [0.5, 1.5],
                'Close': [1.2, 2.2],
                'Adj Close': [1.1, 2.1],
                'Volume': [100, 200],
            }
        )
        s = InstrumentSeries.from_frame("QQQ", df)
        assert [b.date for b in s.bars] == ["2024-01-02", "2024-01-03"]
        assert s.bars[0].close == 2.2
        assert s.bars[0].volume == 200.0

    def test_from_frame_missing_column(self):
        df = pd.DataFrame({'Date': ['2024-01-02'], 'Close': [1.0]})
        with pytest.raises(ValueError):
            InstrumentSeries.from_frame("QQQ", df)

    def test_csv_loaders(self, tmp_path):
        for name in ("QQQ", "VIX"):
            pd.DataFrame({
                'Date': ['2024-01-02', '2024-01-03'],
                'Open': [1, 2], 'High': [1, 2], 'Low': [1, 2], 'Close': [1, 2], 'Volume': [5, 6],
            }).to_csv(tmp_path / f"{name}.csv", index=False)

        s = load_series_csv(tmp_path / "QQQ.csv")
        assert s.ticker == "QQQ"
        assert len(s) == 2

        loaded = load_series_dir(tmp_path, ["QQQ", "^VIX"])
        assert set(loaded) == {"QQQ", "^VIX"}
        assert loaded["^VIX"].ticker == "^VIX"

        with pytest.raises(FileNotFoundError):
            load_series_dir(tmp_path, ["TQQQ"])


class TestAlignSeries:
    """align_series() 테스트"""

    def test_inner_join(self):
        series = {
            "QQQ": _series("QQQ", ["2024-01-02", "2024-01-03", "2024-01-04"]),
            "TQQQ": _series("TQQQ", ["2024-01-03", "2024-01-04", "2024-01-05"]),
            "^VIX": _series("^VIX", ["2024-01-04", "2024-01-03"]),
        }
        rows = align_series(series)

        assert [r.date for r in rows] == ["2024-01-03", "2024-01-04"]
        for row in rows:
            assert set(row.bars) == {"QQQ", "TQQQ", "^VIX"}

    def test_every_row_has_every_ticker(self, series_factory):
        series = series_factory(40)
        rows = align_series(series)
        dates = [r.date for r in rows]

        assert dates == sorted(dates)
        assert len(dates) == len(set(dates))
        for row in rows:
            assert set(row.bars) == set(series)

    def test_empty_intersection_raises(self):
        series = {
            "QQQ": _series("QQQ", ["2024-01-02"]),
            "TQQQ": _series("TQQQ", ["2024-01-03"]),
        }
        with pytest.raises(InsufficientDataError):
            align_series(series)

    def test_empty_inputs_raise(self):
        with pytest.raises(InsufficientDataError):
            align_series({})
        with pytest.raises(InsufficientDataError):
            align_series({"QQQ": InstrumentSeries.from_bars("QQQ", [])})

    def test_rows_to_frame(self):
        series = {
            "QQQ": _series("QQQ", ["2024-01-02", "2024-01-03"], close=10.0),
            "TQQQ": _series("TQQQ", ["2024-01-02", "2024-01-03"], close=20.0),
        }
        df = rows_to_frame(align_series(series), "TQQQ")
        assert list(df.columns) == ['open', 'high', 'low', 'close', 'volume']
        assert (df['close'] == 20.0).all()
        assert isinstance(df.index, pd.DatetimeIndex)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
