# -*- coding: utf-8 -*-
"""
Decision Engine
===============

스냅샷 + 현재 포지션 + 임계값 -> BUY / SELL / HOLD.

우선순위 (첫 매칭만 적용):
1. 장외 시간 가드 (라이브 경로에서만, session_open=False 전달 시)
2. 리스크 청산 (레버리지 보유 중): stop loss -> profit target -> max hold
3. 진입 신호 (비레버리지): 과매도 -> 롱, 과매수 -> 숏
   6개 확인 조건 중 min_confirmations 이상 통과 시 BUY

순수 함수: 시계/전역 상태를 읽지 않는다.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

from mantis.instruments import Instrument
from mantis.strategy.exit_rules import check_risk_exit

if TYPE_CHECKING:
    from mantis.indicators.calculator import IndicatorSnapshot
    from mantis.strategy.position import PositionState
    from mantis.strategy.thresholds import ConfirmationFlags, RuleThresholds


TOTAL_CHECKS = 6


class Action(Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass(frozen=True)
class Decision:
    """의사결정 결과"""
    action: Action
    target: Optional[Instrument]  # 실패 사이클에서 보유 자산을 알 수 없으면 None
    reason: str
    confidence: float  # 0~1
    message: str = ""
    error: Optional[str] = None

    @property
    def failed_cycle(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(cls, held: Optional[Instrument], error: str) -> "Decision":
        """
        에러로 중단된 사이클의 HOLD (엔진의 'no signal' HOLD와 구분)

        held 가 None 이면 (상태 파일 손상 등) 보유 자산 미상으로 보고한다.
        """
        message = f"Cycle aborted: {error}"
        if held is None:
            message += " (held position unknown)"
        return cls(
            action=Action.HOLD,
            target=held,
            reason="error",
            confidence=0.0,
            message=message,
            error=error,
        )


def confirmation_checks(
    snapshot: IndicatorSnapshot,
    thresholds: RuleThresholds,
    bullish: bool,
) -> List[Tuple[str, bool]]:
    """
    6개 확인 조건 (순서 고정)

    1. trend strength > min
    2. volatility < max
    3. volume > min
    4. price vs short MA (플래그 off면 통과)
    5. price vs long MA (플래그 off면 통과)
    6. short MA slope (플래그 off면 통과)
    """
    flags: ConfirmationFlags = thresholds.bullish if bullish else thresholds.bearish
    price = snapshot.close

    if bullish:
        vs_short = price > snapshot.short_ma
        vs_long = price > snapshot.long_ma
        slope = snapshot.short_ma > snapshot.prev_short_ma
    else:
        vs_short = price < snapshot.short_ma
        vs_long = price < snapshot.long_ma
        slope = snapshot.short_ma < snapshot.prev_short_ma

    return [
        ("trend_strength", snapshot.trend_strength > thresholds.min_trend_strength),
        ("volatility", snapshot.volatility_close < thresholds.max_volatility),
        ("volume", snapshot.volume > thresholds.min_volume),
        ("price_vs_short_ma", vs_short if flags.price_vs_short_ma else True),
        ("price_vs_long_ma", vs_long if flags.price_vs_long_ma else True),
        ("short_ma_slope", slope if flags.short_ma_slope else True),
    ]


def decide(
    snapshot: IndicatorSnapshot,
    position: PositionState,
    thresholds: RuleThresholds,
    session_open: Optional[bool] = None,
) -> Decision:
    """
    다음 행동 결정

    Args:
        snapshot: 현재 지표 스냅샷
        position: 현재 포지션 상태
        thresholds: 검증된 임계값
        session_open: 라이브 경로의 장중 여부 (백테스트는 None)

    Returns:
        Decision
    """
    held = position.held

    # 1. 장외 시간 가드
    if thresholds.market_hours_only and session_open is False:
        return Decision(
            action=Action.HOLD,
            target=held,
            reason="outside market hours",
            confidence=1.0,
            message="Market closed; no action taken",
        )

    # 2. 리스크 청산
    if position.is_leveraged:
        exit_signal = check_risk_exit(snapshot, position, thresholds)
        if exit_signal is not None:
            return Decision(
                action=Action.SELL,
                target=Instrument.SAFE,
                reason=exit_signal.reason.value,
                confidence=exit_signal.confidence,
                message=exit_signal.message,
            )
        return Decision(
            action=Action.HOLD,
            target=held,
            reason="no exit condition",
            confidence=0.5,
            message=f"Holding {held.value} for {position.days_held} cycles",
        )

    # 3. 진입 신호 (과매도 우선)
    osc = snapshot.oscillator
    if osc < thresholds.oversold_bound:
        bullish, side, target = True, "oversold", Instrument.LONG_LEVERAGED
    elif osc > thresholds.overbought_bound:
        bullish, side, target = False, "overbought", Instrument.SHORT_LEVERAGED
    else:
        return Decision(
            action=Action.HOLD,
            target=held,
            reason="no signal",
            confidence=0.5,
            message=f"Oscillator {osc:.2f} inside [{thresholds.oversold_bound:g}, {thresholds.overbought_bound:g}]",
        )

    checks = confirmation_checks(snapshot, thresholds, bullish)
    passed = sum(1 for _, ok in checks if ok)
    confidence = passed / TOTAL_CHECKS
    failed = [name for name, ok in checks if not ok]
    direction = "bullish" if bullish else "bearish"
    detail = f"failed: {', '.join(failed)}" if failed else "all checks passed"

    if passed >= thresholds.min_confirmations:
        return Decision(
            action=Action.BUY,
            target=target,
            reason=f"{side} with {passed}/{TOTAL_CHECKS} {direction} confirmations",
            confidence=confidence,
            message=f"Oscillator {osc:.2f}; {detail}",
        )

    return Decision(
        action=Action.HOLD,
        target=held,
        reason=f"{side} but only {passed}/{TOTAL_CHECKS} {direction} confirmations",
        confidence=confidence,
        message=f"Oscillator {osc:.2f}; {detail}",
    )
