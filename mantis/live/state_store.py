# -*- coding: utf-8 -*-
"""
State Store
===========

라이브 PositionState + 거래 원장 영속화 (JSON), 실행 락, 백테스트 산출물 (CSV).

파일 형식:
    {"version": 1, "saved_at": "...", "state": {...}, "trades": [...]}

- 저장은 원자적 (임시 파일 -> os.replace)
- 읽기 실패/필드 누락/타입 오류는 StateCorruptionError
  (자동 초기화 없음, reset(acknowledge=True) 로만 치움)
"""
import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from mantis.backtest.engine import BacktestResult
from mantis.errors import RunLockError, StateCorruptionError
from mantis.instruments import Instrument
from mantis.metrics.performance import EquityPoint
from mantis.strategy.position import PositionState, TradeRecord

logger = logging.getLogger(__name__)

STATE_VERSION = 1

TRADE_COLUMNS = [
    'date', 'action', 'instrument', 'ticker', 'shares',
    'price', 'equity_at_event', 'cost', 'reason',
]


def _now_iso() -> str:
    return pd.Timestamp.now(tz='UTC').isoformat()


def _atomic_write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, allow_nan=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class StateStore:
    """PositionState JSON 저장소"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def _read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            record = json.loads(self.path.read_text(encoding='utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StateCorruptionError(f"State file {self.path} is not valid JSON: {exc}") from exc

        if not isinstance(record, dict):
            raise StateCorruptionError(f"State file {self.path} must hold a JSON object")
        if record.get('version') != STATE_VERSION:
            raise StateCorruptionError(
                f"State file {self.path} has version {record.get('version')!r}, expected {STATE_VERSION}"
            )
        if not isinstance(record.get('state'), dict):
            raise StateCorruptionError(f"State file {self.path} has no state object")
        if not isinstance(record.get('trades', []), list):
            raise StateCorruptionError(f"State file {self.path} has a malformed trade ledger")
        return record

    def load(self) -> Optional[PositionState]:
        """
        저장된 상태 로드

        Returns:
            PositionState, 파일이 없으면 None (최초 실행)

        Raises:
            StateCorruptionError: 파일은 있으나 신뢰할 수 없음
        """
        record = self._read()
        if record is None:
            return None
        data = record['state']
        try:
            state = PositionState.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise StateCorruptionError(f"State file {self.path} has an invalid state: {exc}") from exc

        for name in ('shares', 'entry_price', 'equity', 'cash'):
            if not math.isfinite(getattr(state, name)):
                raise StateCorruptionError(f"State field {name} is not finite")
        return state

    def load_trades(self) -> List[TradeRecord]:
        record = self._read()
        if record is None:
            return []
        try:
            return [TradeRecord.from_dict(t) for t in record.get('trades', [])]
        except (KeyError, TypeError, ValueError) as exc:
            raise StateCorruptionError(f"State file {self.path} has an invalid trade record: {exc}") from exc

    def save(self, state: PositionState, trades: Sequence[TradeRecord] = ()) -> None:
        """상태 + 전체 원장 원자적 저장"""
        payload = {
            'version': STATE_VERSION,
            'saved_at': _now_iso(),
            'state': state.to_dict(),
            'trades': [t.to_dict() for t in trades],
        }
        _atomic_write_json(self.path, payload)
        logger.info(
            "State saved: %s, %.4f shares, equity $%.2f -> %s",
            state.held.value, state.shares, state.equity, self.path,
        )

    def reset(self, acknowledge: bool = False) -> Optional[Path]:
        """
        상태 파일 격리 (운영자 확인 필수)

        Returns:
            옮겨진 파일 경로 (파일이 없었으면 None)
        """
        if not acknowledge:
            raise StateCorruptionError(
                f"Refusing to reset {self.path} without explicit acknowledgement"
            )
        if not self.path.exists():
            return None
        stamp = pd.Timestamp.now(tz='UTC').strftime('%Y%m%dT%H%M%S')
        archived = self.path.with_name(f"{self.path.name}.{stamp}.bak")
        os.replace(self.path, archived)
        logger.warning("State file moved aside: %s -> %s", self.path, archived)
        return archived


class RunLock:
    """
    단일 실행 락 (lock 파일 O_CREAT | O_EXCL, 내용은 소유 PID)

    소유 프로세스가 죽어 남은 락(stale)은 한 번 치우고 다시 잡는다.

    사용법:
        with RunLock(path):
            ...  # load -> decide -> apply -> store
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._held = False

    def _owner_pid(self) -> Optional[int]:
        try:
            return int(self.path.read_text(encoding='utf-8').strip())
        except FileNotFoundError:
            return None
        except ValueError:
            # 내용을 알 수 없는 락은 살아있는 것으로 취급
            return -1

    @staticmethod
    def _pid_alive(pid: int) -> bool:
        if pid <= 0:
            return True
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True

    def _create(self) -> int:
        return os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)

    def __enter__(self) -> "RunLock":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = self._create()
        except FileExistsError as exc:
            owner = self._owner_pid()
            if owner is not None and self._pid_alive(owner):
                raise RunLockError(
                    f"Another cycle holds the run lock: {self.path} (pid {owner})"
                ) from exc
            logger.warning("Removing stale run lock %s (pid %s not running)", self.path, owner)
            self.path.unlink(missing_ok=True)
            try:
                fd = self._create()
            except FileExistsError as retry_exc:
                raise RunLockError(
                    f"Another cycle holds the run lock: {self.path}"
                ) from retry_exc
        with os.fdopen(fd, 'w') as f:
            f.write(f"{os.getpid()}\n")
        self._held = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False


def save_backtest(result: BacktestResult, directory: Union[str, Path]) -> Path:
    """equity_curve.csv + trades.csv 저장"""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    equity = pd.DataFrame({
        'date': [p.date for p in result.equity_curve],
        'equity': [p.equity for p in result.equity_curve],
        'held': [p.held.value if p.held else "" for p in result.equity_curve],
    })
    equity.to_csv(directory / 'equity_curve.csv', index=False)

    trades = pd.DataFrame([t.to_dict() for t in result.trades], columns=TRADE_COLUMNS)
    trades.to_csv(directory / 'trades.csv', index=False)
    logger.info("Backtest artefacts written to %s", directory)
    return directory


def load_backtest(directory: Union[str, Path], initial_capital: float = 100000.0) -> BacktestResult:
    """save_backtest 산출물 로드"""
    directory = Path(directory)
    equity = pd.read_csv(
        directory / 'equity_curve.csv', keep_default_na=False, float_precision='round_trip',
        dtype={'date': str, 'held': str},
    )
    curve = [
        EquityPoint(
            date=row['date'],
            equity=float(row['equity']),
            held=Instrument(row['held']) if row['held'] else None,
        )
        for row in equity.to_dict('records')
    ]

    trades = pd.read_csv(
        directory / 'trades.csv', keep_default_na=False, float_precision='round_trip',
        dtype={'date': str, 'reason': str},
    )
    ledger = [TradeRecord.from_dict(row) for row in trades.to_dict('records')]

    return BacktestResult(equity_curve=curve, trades=ledger, initial_capital=initial_capital)
