"""
Config Module
=============

전략 파라미터 관리.
YAML 파일에서 설정 로드 + 환경변수 오버라이드.
"""

from .loader import (
    load_config,
    load_trading_config,
    TradingConfig,
    IndicatorParams,
    SignalParams,
    RiskParams,
    BacktestParams,
    LiveParams,
    CONFIG_DIR,
)

__all__ = [
    'load_config',
    'load_trading_config',
    'TradingConfig',
    'IndicatorParams',
    'SignalParams',
    'RiskParams',
    'BacktestParams',
    'LiveParams',
    'CONFIG_DIR',
]
