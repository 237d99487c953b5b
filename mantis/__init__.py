"""
Mantis - Leveraged Mean-Reversion Engine
========================================

RSI(2) 과매도/과매수 신호 + 레버리지 ETF 프록시 (TQQQ / SQQQ).

Core Components:
- data/: 일봉 로더 + 공통 거래일 정렬
- indicators/: RSI / SMA / ADX 스냅샷 (talib)
- strategy/: 임계값 검증, Decision Engine, Position State Machine
- backtest/: 일봉 재생 백테스트
- metrics/: Sharpe / Drawdown / CAGR / 라운드트립 통계
- live/: 상태 저장 + 단발성 라이브 사이클
- config/: YAML 설정 로더
"""

__version__ = "0.1.0"
