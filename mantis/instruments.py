# -*- coding: utf-8 -*-
"""
Instruments
===========

보유 가능한 자산의 역할(role)과 티커 매핑.

- SAFE: 대기 자산 (기본값: 신호 자산 QQQ 자체)
- LONG_LEVERAGED: 롱 레버리지 프록시 (TQQQ)
- SHORT_LEVERAGED: 숏 레버리지 프록시 (SQQQ)
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class Instrument(Enum):
    """보유 자산 역할"""
    SAFE = "safe"
    LONG_LEVERAGED = "long_leveraged"
    SHORT_LEVERAGED = "short_leveraged"

    @property
    def is_leveraged(self) -> bool:
        return self is not Instrument.SAFE


@dataclass(frozen=True)
class InstrumentMap:
    """역할 -> 티커 조회 테이블"""
    signal: str = "QQQ"
    volatility: str = "^VIX"
    safe: str = "QQQ"
    long_leveraged: str = "TQQQ"
    short_leveraged: str = "SQQQ"

    def ticker_for(self, instrument: Instrument) -> str:
        return getattr(self, instrument.value)

    @property
    def tickers(self) -> Tuple[str, ...]:
        """정렬 대상 티커 (중복 제거, 선언 순서 유지)"""
        ordered = (self.signal, self.volatility, self.safe,
                   self.long_leveraged, self.short_leveraged)
        return tuple(dict.fromkeys(ordered))

    def to_dict(self) -> Dict[str, str]:
        return {
            'signal': self.signal,
            'volatility': self.volatility,
            'safe': self.safe,
            'long_leveraged': self.long_leveraged,
            'short_leveraged': self.short_leveraged,
        }
