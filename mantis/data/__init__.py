"""
Data Layer
==========

- series.py: Bar / InstrumentSeries + CSV 로더
- aligner.py: 공통 거래일 inner join
"""
from .series import (
    Bar,
    InstrumentSeries,
    load_series_csv,
    load_series_dir,
)
from .aligner import (
    AlignedRow,
    align_series,
    rows_to_frame,
)

__all__ = [
    'Bar',
    'InstrumentSeries',
    'load_series_csv',
    'load_series_dir',
    'AlignedRow',
    'align_series',
    'rows_to_frame',
]
