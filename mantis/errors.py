# -*- coding: utf-8 -*-
"""
Errors
======

mantis 공통 예외 계층.

모든 예외는 현재 백테스트/라이브 사이클을 중단시킨다 (core 내부 재시도 없음).
"""


class MantisError(RuntimeError):
    pass


class InsufficientDataError(MantisError):
    """Aligned series is empty (no common trading dates)."""


class InsufficientHistoryError(MantisError):
    """Not enough aligned rows to cover the indicator warm-up."""


class ConfigurationError(MantisError):
    """Rule thresholds or trusted config are missing, malformed or out of range."""


class StateCorruptionError(MantisError):
    """Persisted position state cannot be read back faithfully."""


class RunLockError(MantisError):
    """Another live cycle already holds the run lock."""
