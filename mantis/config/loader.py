"""
Config Loader
=============

YAML 기반 전략 파라미터 로더.

사용법:
    from mantis.config import load_trading_config

    config = load_trading_config()
    print(config.indicators.long_ma_period)      # 200
    print(config.backtest.transaction_cost)      # 5.0

    # 전략별 오버라이드 (config/strategies/<name>.yaml)
    config = load_trading_config("aggressive")

환경변수 오버라이드:
    MANTIS_CONFIG_DIR=/etc/mantis      # 설정 디렉토리 교체
    MANTIS_STATE_PATH=/var/mantis.json # 라이브 상태 파일
    MANTIS_RULES_PATH=rules.json       # advisory 룰셋 파일
    MANTIS_TRANSACTION_COST=1.0        # leg당 거래 비용
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import yaml

from mantis.errors import ConfigurationError
from mantis.instruments import InstrumentMap


CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


@dataclass
class IndicatorParams:
    """지표 파라미터"""
    oscillator_period: int = 2
    short_ma_period: int = 50
    long_ma_period: int = 200
    trend_period: int = 14

    @property
    def warmup(self) -> int:
        # ADX는 2 * period 이후부터 안정
        return max(self.long_ma_period, self.trend_period * 2)


@dataclass
class SignalParams:
    """진입 신호 파라미터"""
    oversold: float = 10.0
    overbought: float = 90.0
    min_confirmations: int = 4


@dataclass
class RiskParams:
    """리스크 파라미터"""
    max_hold_period: int = 10


@dataclass
class BacktestParams:
    """백테스트 파라미터"""
    initial_capital: float = 100000.0
    transaction_cost: float = 5.0
    risk_free_rate: float = 0.02
    start_date: Optional[str] = "2010-01-01"
    end_date: Optional[str] = None


@dataclass
class LiveParams:
    """라이브 사이클 파라미터"""
    state_path: Path = Path("state/current_state.json")
    lock_path: Path = Path("state/mantis.lock")
    lookback_days: int = 400
    market_open: str = "09:30"
    market_close: str = "16:00"
    timezone: str = "America/New_York"


@dataclass
class TradingConfig:
    """통합 전략 설정"""
    instruments: InstrumentMap = field(default_factory=InstrumentMap)
    indicators: IndicatorParams = field(default_factory=IndicatorParams)
    signal: SignalParams = field(default_factory=SignalParams)
    risk: RiskParams = field(default_factory=RiskParams)
    backtest: BacktestParams = field(default_factory=BacktestParams)
    live: LiveParams = field(default_factory=LiveParams)
    rules_path: Path = Path("config/rules/default.yaml")
    raw: Dict[str, Any] = field(default_factory=dict)


def _config_dir() -> Path:
    override = os.getenv("MANTIS_CONFIG_DIR")
    return Path(override) if override else CONFIG_DIR


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: Dict, override: Dict) -> Dict:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: Dict) -> Dict:
    if os.getenv("MANTIS_STATE_PATH"):
        config.setdefault("live", {})
        config["live"]["state_path"] = os.getenv("MANTIS_STATE_PATH")
    if os.getenv("MANTIS_RULES_PATH"):
        config.setdefault("rules", {})
        config["rules"]["path"] = os.getenv("MANTIS_RULES_PATH")
    if os.getenv("MANTIS_TRANSACTION_COST"):
        config.setdefault("backtest", {})
        try:
            config["backtest"]["transaction_cost"] = float(os.getenv("MANTIS_TRANSACTION_COST"))
        except ValueError as exc:
            raise ConfigurationError(
                f"MANTIS_TRANSACTION_COST is not a number: {os.getenv('MANTIS_TRANSACTION_COST')!r}"
            ) from exc
    return config


def _resolve(path_value: str, root: Path) -> Path:
    path = Path(path_value)
    return path if path.is_absolute() else root / path


def _validate(config: TradingConfig) -> None:
    ind = config.indicators
    for name in ("oscillator_period", "short_ma_period", "long_ma_period", "trend_period"):
        if int(getattr(ind, name)) < 1:
            raise ConfigurationError(f"indicators.{name} must be >= 1")
    if ind.short_ma_period >= ind.long_ma_period:
        raise ConfigurationError("indicators.short_ma_period must be shorter than long_ma_period")
    if config.backtest.initial_capital <= 0:
        raise ConfigurationError("backtest.initial_capital must be positive")
    if config.backtest.transaction_cost < 0:
        raise ConfigurationError("backtest.transaction_cost must be >= 0")
    if not 1 <= config.signal.min_confirmations <= 6:
        raise ConfigurationError("signal.min_confirmations must be between 1 and 6")
    if config.risk.max_hold_period < 1:
        raise ConfigurationError("risk.max_hold_period must be >= 1")
    if config.live.lookback_days <= ind.warmup:
        raise ConfigurationError(
            f"live.lookback_days must exceed the indicator warm-up ({ind.warmup})"
        )


def load_config(strategy: Optional[str] = None) -> Dict[str, Any]:
    """기본 설정 로드 (default + strategy override + env)"""
    config_dir = _config_dir()
    base = _load_yaml(config_dir / "default.yaml")
    if strategy:
        strategy_path = config_dir / "strategies" / f"{strategy}.yaml"
        if not strategy_path.exists():
            raise ConfigurationError(f"Unknown strategy config: {strategy_path}")
        base = _deep_merge(base, _load_yaml(strategy_path))
    return _apply_env_overrides(base)


def load_trading_config(strategy: Optional[str] = None) -> TradingConfig:
    """설정 로드 -> TradingConfig"""
    merged = load_config(strategy)
    root = _config_dir().parent

    ins = merged.get("instruments", {})
    ind = merged.get("indicators", {})
    sig = merged.get("signal", {})
    rsk = merged.get("risk", {})
    bt = merged.get("backtest", {})
    live = merged.get("live", {})
    rules = merged.get("rules", {})

    defaults = InstrumentMap()
    config = TradingConfig(
        instruments=InstrumentMap(
            signal=ins.get("signal", defaults.signal),
            volatility=ins.get("volatility", defaults.volatility),
            safe=ins.get("safe", defaults.safe),
            long_leveraged=ins.get("long_leveraged", defaults.long_leveraged),
            short_leveraged=ins.get("short_leveraged", defaults.short_leveraged),
        ),
        indicators=IndicatorParams(
            oscillator_period=int(ind.get("oscillator_period", 2)),
            short_ma_period=int(ind.get("short_ma_period", 50)),
            long_ma_period=int(ind.get("long_ma_period", 200)),
            trend_period=int(ind.get("trend_period", 14)),
        ),
        signal=SignalParams(
            oversold=float(sig.get("oversold", 10.0)),
            overbought=float(sig.get("overbought", 90.0)),
            min_confirmations=int(sig.get("min_confirmations", 4)),
        ),
        risk=RiskParams(
            max_hold_period=int(rsk.get("max_hold_period", 10)),
        ),
        backtest=BacktestParams(
            initial_capital=float(bt.get("initial_capital", 100000.0)),
            transaction_cost=float(bt.get("transaction_cost", 5.0)),
            risk_free_rate=float(bt.get("risk_free_rate", 0.02)),
            start_date=bt.get("start_date", "2010-01-01"),
            end_date=bt.get("end_date"),
        ),
        live=LiveParams(
            state_path=_resolve(live.get("state_path", "state/current_state.json"), root),
            lock_path=_resolve(live.get("lock_path", "state/mantis.lock"), root),
            lookback_days=int(live.get("lookback_days", 400)),
            market_open=str(live.get("market_open", "09:30")),
            market_close=str(live.get("market_close", "16:00")),
            timezone=live.get("timezone", "America/New_York"),
        ),
        rules_path=_resolve(rules.get("path", "config/rules/default.yaml"), root),
        raw=merged,
    )
    _validate(config)
    return config
