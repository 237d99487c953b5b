# -*- coding: utf-8 -*-
"""Operating-window check (exchange local time, weekdays only)."""
from dataclasses import dataclass
from typing import Optional, Union
from datetime import datetime

import pandas as pd


@dataclass(frozen=True)
class MarketHours:
    """정규장 시간"""
    market_open: str = "09:30"
    market_close: str = "16:00"
    timezone: str = "America/New_York"

    def local_time(self, now: Optional[Union[datetime, pd.Timestamp, str]] = None) -> pd.Timestamp:
        ts = pd.Timestamp.now(tz='UTC') if now is None else pd.Timestamp(now)
        if ts.tzinfo is None:
            # naive 시각은 UTC로 간주
            ts = ts.tz_localize('UTC')
        return ts.tz_convert(self.timezone)

    def is_open(self, now: Optional[Union[datetime, pd.Timestamp, str]] = None) -> bool:
        local = self.local_time(now)
        if local.weekday() >= 5:
            return False
        hhmm = local.strftime('%H:%M')
        return self.market_open <= hhmm < self.market_close
