# -*- coding: utf-8 -*-
"""
Exit Rules - Stop Loss / Profit Target / Max Hold
=================================================

레버리지 포지션 청산 조건.

우선순위 (먼저 충족된 것만 반환):
1. Stop Loss: pnl <= -stop_loss_fraction
2. Profit Target: pnl >= profit_target_fraction
3. Max Hold: days_held >= max_hold_period

pnl = (현재가 - 진입가) / 진입가  (보유 중인 레버리지 자산 기준)
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mantis.indicators.calculator import IndicatorSnapshot
    from mantis.strategy.position import PositionState
    from mantis.strategy.thresholds import RuleThresholds


class ExitReason(Enum):
    """청산 사유"""
    STOP_LOSS = "stop loss"
    PROFIT_TARGET = "profit target"
    MAX_HOLD = "max hold period"


# 사유별 신뢰도
EXIT_CONFIDENCE = {
    ExitReason.STOP_LOSS: 1.0,
    ExitReason.PROFIT_TARGET: 1.0,
    ExitReason.MAX_HOLD: 0.8,
}


@dataclass(frozen=True)
class ExitSignal:
    """청산 신호"""
    reason: ExitReason
    pnl_pct: float  # 소수 (0.12 = +12%)
    days_held: int
    message: str = ""

    @property
    def confidence(self) -> float:
        return EXIT_CONFIDENCE[self.reason]


def position_pnl(snapshot: IndicatorSnapshot, position: PositionState) -> float:
    """진입가 대비 현재 수익률"""
    if position.entry_price <= 0:
        return 0.0
    price = snapshot.price_of(position.held)
    return (price - position.entry_price) / position.entry_price


def check_risk_exit(
    snapshot: IndicatorSnapshot,
    position: PositionState,
    thresholds: RuleThresholds,
) -> Optional[ExitSignal]:
    """
    청산 신호 체크

    Returns:
        ExitSignal if should exit, else None (비레버리지 포지션은 항상 None)
    """
    if not position.is_leveraged:
        return None

    pnl = position_pnl(snapshot, position)

    # 1. Stop Loss
    if pnl <= -thresholds.stop_loss_fraction:
        return ExitSignal(
            reason=ExitReason.STOP_LOSS,
            pnl_pct=pnl,
            days_held=position.days_held,
            message=f"Stop loss hit at {pnl:+.2%} (limit -{thresholds.stop_loss_fraction:.2%})",
        )

    # 2. Profit Target
    if pnl >= thresholds.profit_target_fraction:
        return ExitSignal(
            reason=ExitReason.PROFIT_TARGET,
            pnl_pct=pnl,
            days_held=position.days_held,
            message=f"Profit target hit at {pnl:+.2%} (target {thresholds.profit_target_fraction:.2%})",
        )

    # 3. Max Hold
    if position.days_held >= thresholds.max_hold_period:
        return ExitSignal(
            reason=ExitReason.MAX_HOLD,
            pnl_pct=pnl,
            days_held=position.days_held,
            message=f"Held {position.days_held} cycles (max {thresholds.max_hold_period}), pnl {pnl:+.2%}",
        )

    return None
