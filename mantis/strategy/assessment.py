# -*- coding: utf-8 -*-
"""
Market / Risk Assessment
========================

리포트용 보조 판단 (의사결정에는 영향 없음).

- assess_market_conditions: 변동성/추세 레짐 라벨
- assess_risk: 리스크 레벨 + 요인
- suggest_position_size: 거래당 리스크 기반 수량 (최대 비중 제한)
"""
from dataclasses import dataclass, field
from typing import List

from mantis.indicators.calculator import IndicatorSnapshot
from mantis.strategy.decision import Action, Decision
from mantis.strategy.thresholds import RuleThresholds


# 레짐 경계 (VIX / ADX)
HIGH_VOLATILITY_LEVEL = 30.0
LOW_VOLATILITY_LEVEL = 15.0
TRENDING_LEVEL = 25.0
SIDEWAYS_LEVEL = 20.0
EXTREME_VOLATILITY_LEVEL = 35.0
WEAK_TREND_LEVEL = 15.0


@dataclass(frozen=True)
class MarketConditions:
    """시장 상태"""
    volatility_regime: str  # HIGH_VOLATILITY / LOW_VOLATILITY / NEUTRAL
    trend_regime: str       # TRENDING / SIDEWAYS / NEUTRAL
    long_term_trend: str    # BULLISH / BEARISH (price vs long MA)
    short_term_trend: str   # BULLISH / BEARISH (price vs short MA)


@dataclass(frozen=True)
class RiskAssessment:
    """리스크 평가"""
    level: str  # LOW / MEDIUM / HIGH
    factors: List[str] = field(default_factory=list)
    recommendation: str = "Normal risk parameters"


def assess_market_conditions(snapshot: IndicatorSnapshot) -> MarketConditions:
    vix = snapshot.volatility_close
    adx = snapshot.trend_strength

    if vix > HIGH_VOLATILITY_LEVEL:
        volatility = "HIGH_VOLATILITY"
    elif vix < LOW_VOLATILITY_LEVEL:
        volatility = "LOW_VOLATILITY"
    else:
        volatility = "NEUTRAL"

    if adx > TRENDING_LEVEL:
        trend = "TRENDING"
    elif adx < SIDEWAYS_LEVEL:
        trend = "SIDEWAYS"
    else:
        trend = "NEUTRAL"

    return MarketConditions(
        volatility_regime=volatility,
        trend_regime=trend,
        long_term_trend="BULLISH" if snapshot.close > snapshot.long_ma else "BEARISH",
        short_term_trend="BULLISH" if snapshot.close > snapshot.short_ma else "BEARISH",
    )


def assess_risk(
    snapshot: IndicatorSnapshot,
    decision: Decision,
    thresholds: RuleThresholds,
) -> RiskAssessment:
    """
    리스크 레벨 평가

    - 레버리지 진입(BUY)이면 기본 MEDIUM, 그 외 LOW
    - VIX > 35: HIGH
    - 요인 2개 초과 시 포지션 축소 권고
    """
    level = "MEDIUM" if decision.action is Action.BUY and decision.target.is_leveraged else "LOW"
    factors: List[str] = []

    if snapshot.volatility_close > EXTREME_VOLATILITY_LEVEL:
        level = "HIGH"
        factors.append(f"Extreme volatility (VIX {snapshot.volatility_close:.1f})")
    elif snapshot.volatility_close > thresholds.max_volatility:
        factors.append(f"Volatility above threshold (VIX {snapshot.volatility_close:.1f})")

    if snapshot.trend_strength < WEAK_TREND_LEVEL:
        factors.append(f"Very weak trend (ADX {snapshot.trend_strength:.1f})")

    if snapshot.volume < thresholds.min_volume:
        factors.append(f"Low volume ({snapshot.volume:,.0f})")

    if decision.confidence < 0.5 and decision.action is not Action.HOLD:
        factors.append(f"Low signal confidence ({decision.confidence:.0%})")

    recommendation = (
        "Consider reducing position size" if len(factors) > 2 else "Normal risk parameters"
    )
    return RiskAssessment(level=level, factors=factors, recommendation=recommendation)


def suggest_position_size(
    capital: float,
    price: float,
    stop_loss_fraction: float,
    risk_per_trade: float = 0.02,
    max_position_fraction: float = 0.25,
) -> float:
    """
    리스크 기반 수량

    손절 시 손실 = capital * risk_per_trade 가 되도록 수량 산정,
    단 포지션 금액은 capital * max_position_fraction 이하.

    Returns:
        수량 (주)
    """
    if capital <= 0 or price <= 0 or stop_loss_fraction <= 0:
        return 0.0
    risk_amount = capital * risk_per_trade
    shares = risk_amount / (price * stop_loss_fraction)
    max_shares = capital * max_position_fraction / price
    return min(shares, max_shares)
