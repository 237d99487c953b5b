# -*- coding: utf-8 -*-
"""
Rule Thresholds
===============

Advisory 룰셋 검증 + RuleThresholds 생성.

외부 어드바이저(예: LLM 리포트)가 돌려주는 JSON은 신뢰하지 않는다.
필수 필드/타입/범위를 모두 검사하고, 하나라도 틀리면 ConfigurationError.
부분 적용이나 기본값 대체는 하지 않는다.

오실레이터 경계, 최소 확인 수, 최대 보유 기간은 로컬 YAML 설정(신뢰)에서 가져온다.

사용법:
```python
from mantis.strategy.thresholds import load_thresholds

thresholds = load_thresholds(config.rules_path, config)
```
"""
import json
import logging
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from mantis.config.loader import RiskParams, SignalParams, TradingConfig
from mantis.errors import ConfigurationError

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {
    'min_adx_threshold', 'max_vix_threshold', 'min_volume_threshold',
    'bullish_confirmation', 'bearish_confirmation', 'risk_management',
    'market_hours_only', 'justification',
}

_FENCED_JSON = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL)
_BARE_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class ConfirmationFlags:
    """
    확인 조건 on/off

    방향은 side에 따라 결정:
    - bullish: 가격 > MA, 단기 MA 상승
    - bearish: 가격 < MA, 단기 MA 하락
    """
    price_vs_short_ma: bool
    price_vs_long_ma: bool
    short_ma_slope: bool


@dataclass(frozen=True)
class RuleThresholds:
    """검증 완료된 의사결정 임계값"""
    oversold_bound: float
    overbought_bound: float
    min_trend_strength: float
    max_volatility: float
    min_volume: float
    bullish: ConfirmationFlags
    bearish: ConfirmationFlags
    stop_loss_fraction: float
    profit_target_fraction: float
    max_hold_period: int
    min_confirmations: int = 4
    market_hours_only: bool = True
    justification: str = ""


def _require(raw: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in raw:
        raise ConfigurationError(f"Missing required rule field: {where}{key}")
    return raw[key]


def _number(raw: Mapping[str, Any], key: str, where: str = "") -> float:
    value = _require(raw, key, where)
    # bool은 int의 서브클래스이므로 명시적으로 제외
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(
            f"Rule field {where}{key} must be a number, got {type(value).__name__}"
        )
    if not math.isfinite(value):
        raise ConfigurationError(f"Rule field {where}{key} must be finite")
    return float(value)


def _flag(raw: Mapping[str, Any], key: str, where: str = "") -> bool:
    value = _require(raw, key, where)
    if not isinstance(value, bool):
        raise ConfigurationError(
            f"Rule field {where}{key} must be a boolean, got {type(value).__name__}"
        )
    return value


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = _require(raw, key, "")
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Rule field {key} must be an object")
    return value


def _check_range(name: str, value: float, low: float, high: float,
                 low_open: bool = False, high_open: bool = False) -> None:
    below = value <= low if low_open else value < low
    above = value >= high if high_open else value > high
    if below or above:
        lb = "(" if low_open else "["
        rb = ")" if high_open else "]"
        raise ConfigurationError(f"Rule field {name}={value} outside {lb}{low}, {high}{rb}")


def parse_thresholds(
    advisory: Mapping[str, Any],
    signal: Optional[SignalParams] = None,
    risk: Optional[RiskParams] = None,
) -> RuleThresholds:
    """
    Advisory dict -> RuleThresholds

    Args:
        advisory: 어드바이저 JSON (dict)
        signal: 오실레이터 경계 / 최소 확인 수 (신뢰 설정)
        risk: 최대 보유 기간 (신뢰 설정)

    Raises:
        ConfigurationError: 필드 누락, 타입 오류, 범위 초과
    """
    if not isinstance(advisory, Mapping):
        raise ConfigurationError(
            f"Rule set must be an object, got {type(advisory).__name__}"
        )
    signal = signal or SignalParams()
    risk = risk or RiskParams()

    unknown = set(advisory) - _KNOWN_KEYS
    if unknown:
        logger.debug("Ignoring unknown rule fields: %s", sorted(unknown))

    min_adx = _number(advisory, 'min_adx_threshold')
    max_vix = _number(advisory, 'max_vix_threshold')
    min_volume = _number(advisory, 'min_volume_threshold')

    bull = _section(advisory, 'bullish_confirmation')
    bear = _section(advisory, 'bearish_confirmation')
    rm = _section(advisory, 'risk_management')

    bullish = ConfirmationFlags(
        price_vs_short_ma=_flag(bull, 'require_price_above_sma50', 'bullish_confirmation.'),
        price_vs_long_ma=_flag(bull, 'require_price_above_sma200', 'bullish_confirmation.'),
        short_ma_slope=_flag(bull, 'require_rising_sma', 'bullish_confirmation.'),
    )
    bearish = ConfirmationFlags(
        price_vs_short_ma=_flag(bear, 'require_price_below_sma50', 'bearish_confirmation.'),
        price_vs_long_ma=_flag(bear, 'require_price_below_sma200', 'bearish_confirmation.'),
        short_ma_slope=_flag(bear, 'require_falling_sma', 'bearish_confirmation.'),
    )
    stop_loss = _number(rm, 'intraday_stop_loss', 'risk_management.')
    profit_target = _number(rm, 'profit_target', 'risk_management.')
    market_hours_only = _flag(advisory, 'market_hours_only')

    justification = advisory.get('justification', "")
    if not isinstance(justification, str):
        raise ConfigurationError("Rule field justification must be a string")

    _check_range('min_adx_threshold', min_adx, 0.0, 100.0)
    _check_range('max_vix_threshold', max_vix, 0.0, math.inf, low_open=True)
    _check_range('min_volume_threshold', min_volume, 0.0, math.inf)
    _check_range('risk_management.intraday_stop_loss', stop_loss, 0.0, 1.0,
                 low_open=True, high_open=True)
    _check_range('risk_management.profit_target', profit_target, 0.0, math.inf, low_open=True)
    _check_range('signal.oversold', float(signal.oversold), 0.0, 100.0)
    _check_range('signal.overbought', float(signal.overbought), 0.0, 100.0)
    if int(risk.max_hold_period) < 1:
        raise ConfigurationError("risk.max_hold_period must be >= 1")

    return RuleThresholds(
        oversold_bound=float(signal.oversold),
        overbought_bound=float(signal.overbought),
        min_trend_strength=min_adx,
        max_volatility=max_vix,
        min_volume=min_volume,
        bullish=bullish,
        bearish=bearish,
        stop_loss_fraction=stop_loss,
        profit_target_fraction=profit_target,
        max_hold_period=int(risk.max_hold_period),
        min_confirmations=int(signal.min_confirmations),
        market_hours_only=market_hours_only,
        justification=justification,
    )


def extract_rules_json(text: str) -> Dict[str, Any]:
    """
    어드바이저 응답 텍스트에서 룰셋 JSON 추출

    우선순위: ```json 코드 블록 -> 첫 번째 {...}

    Raises:
        ConfigurationError: JSON 없음 또는 파싱 실패
    """
    match = _FENCED_JSON.search(text) or _BARE_OBJECT.search(text)
    if match is None:
        raise ConfigurationError("No JSON rule set found in advisory text")
    blob = match.group(1) if match.re is _FENCED_JSON else match.group(0)
    try:
        parsed = json.loads(blob)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Advisory rule set is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ConfigurationError("Advisory rule set must be a JSON object")
    return parsed


def load_thresholds(
    path: Union[str, Path],
    config: Optional[TradingConfig] = None,
) -> RuleThresholds:
    """룰셋 파일 (.yaml/.yml/.json 또는 어드바이저 텍스트) 로드 + 검증"""
    path = Path(path)
    config = config or TradingConfig()
    if not path.exists():
        raise ConfigurationError(f"Rule file not found: {path}")

    text = path.read_text(encoding='utf-8')
    suffix = path.suffix.lower()
    if suffix in ('.yaml', '.yml'):
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Rule file {path} is not valid YAML: {exc}") from exc
    elif suffix == '.json':
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Rule file {path} is not valid JSON: {exc}") from exc
    else:
        raw = extract_rules_json(text)

    thresholds = parse_thresholds(raw, config.signal, config.risk)
    logger.info(
        "Loaded rule thresholds from %s (ADX>%.1f, VIX<%.1f, SL=%.1f%%, TP=%.1f%%)",
        path, thresholds.min_trend_strength, thresholds.max_volatility,
        thresholds.stop_loss_fraction * 100, thresholds.profit_target_fraction * 100,
    )
    return thresholds
