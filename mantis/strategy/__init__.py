"""
Strategy Layer - RSI(2) Mean Reversion + Leveraged Proxies
==========================================================

- thresholds.py: advisory 룰셋 검증 -> RuleThresholds
- exit_rules.py: stop loss / profit target / max hold
- decision.py: Decision Engine (BUY / SELL / HOLD)
- position.py: Position State Machine + TradeRecord
- assessment.py: 시장 상태 / 리스크 평가 (리포트용)
"""
from .thresholds import (
    ConfirmationFlags,
    RuleThresholds,
    parse_thresholds,
    extract_rules_json,
    load_thresholds,
)
from .exit_rules import (
    ExitReason,
    ExitSignal,
    check_risk_exit,
    position_pnl,
)
from .decision import (
    Action,
    Decision,
    decide,
    confirmation_checks,
)
from .position import (
    PositionState,
    TradeRecord,
    open_position,
    apply,
)
from .assessment import (
    MarketConditions,
    RiskAssessment,
    assess_market_conditions,
    assess_risk,
    suggest_position_size,
)

__all__ = [
    'ConfirmationFlags',
    'RuleThresholds',
    'parse_thresholds',
    'extract_rules_json',
    'load_thresholds',
    'ExitReason',
    'ExitSignal',
    'check_risk_exit',
    'position_pnl',
    'Action',
    'Decision',
    'decide',
    'confirmation_checks',
    'PositionState',
    'TradeRecord',
    'open_position',
    'apply',
    'MarketConditions',
    'RiskAssessment',
    'assess_market_conditions',
    'assess_risk',
    'suggest_position_size',
]
