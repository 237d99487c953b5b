# -*- coding: utf-8 -*-
"""
Command Line
============

사용법:
    python -m mantis backtest --data-dir data/ --out results/
    python -m mantis decide --data-dir data/
    python -m mantis decide --data-dir data/ --reset-state

데이터 디렉토리에는 티커별 CSV (`QQQ.csv`, `TQQQ.csv`, `SQQQ.csv`, `VIX.csv`)가 있어야 한다.
"""
import argparse
import logging
import sys
from typing import List, Optional

from mantis.backtest.engine import run_backtest
from mantis.config.loader import load_trading_config
from mantis.data.series import load_series_dir
from mantis.errors import MantisError
from mantis.live.state_store import StateStore, save_backtest
from mantis.live.trader import LiveTrader
from mantis.metrics.performance import format_metrics, monthly_returns
from mantis.strategy.thresholds import load_thresholds

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='mantis', description='Leveraged RSI(2) mean-reversion engine')
    parser.add_argument('--strategy', type=str, default=None, help='config/strategies/<name>.yaml override')
    parser.add_argument('--rules', type=str, default=None, help='Rule set file (YAML/JSON/advisory text)')
    parser.add_argument('--log-level', type=str, default='INFO', help='Logging level')

    sub = parser.add_subparsers(dest='command', required=True)

    bt = sub.add_parser('backtest', help='Replay history and report performance')
    bt.add_argument('--data-dir', type=str, required=True, help='Directory with <TICKER>.csv files')
    bt.add_argument('--start', type=str, default=None, help='Start date (YYYY-MM-DD)')
    bt.add_argument('--end', type=str, default=None, help='End date (YYYY-MM-DD)')
    bt.add_argument('--out', type=str, default=None, help='Write equity_curve.csv / trades.csv here')
    bt.add_argument('--monthly', action='store_true', help='Print monthly return table')

    live = sub.add_parser('decide', help='Run one live decision cycle')
    live.add_argument('--data-dir', type=str, required=True, help='Directory with <TICKER>.csv files')
    live.add_argument('--reset-state', action='store_true',
                      help='Move the current state file aside before running')
    return parser


def _cmd_backtest(args, config, thresholds) -> int:
    if args.start:
        config.backtest.start_date = args.start
    if args.end:
        config.backtest.end_date = args.end

    series = load_series_dir(args.data_dir, config.instruments.tickers)
    result, metrics = run_backtest(series, config, thresholds)
    print(format_metrics(metrics))

    if args.monthly:
        print(monthly_returns(result.equity_curve).to_string(float_format=lambda v: f"{v:+.2%}"))
    if args.out:
        save_backtest(result, args.out)
    return 0


def _cmd_decide(args, config, thresholds) -> int:
    store = StateStore(config.live.state_path)
    if args.reset_state:
        store.reset(acknowledge=True)

    series = load_series_dir(args.data_dir, config.instruments.tickers)
    trader = LiveTrader(config, thresholds, store)
    result = trader.run_cycle_safely(series)

    d = result.decision
    target = config.instruments.ticker_for(d.target) if d.target is not None else "(unknown)"
    print(f"Decision: {d.action.value} {target} "
          f"({d.reason}, confidence {d.confidence:.0%})")
    if d.message:
        print(f"  {d.message}")
    if result.state is not None:
        print(f"Position: {result.state.held.value} {result.state.shares:.4f} shares, "
              f"equity ${result.state.equity:,.2f}")
    if result.market is not None:
        print(f"Market: {result.market.volatility_regime} / {result.market.trend_regime}")
    if result.risk is not None:
        print(f"Risk: {result.risk.level} - {result.risk.recommendation}")
    if result.suggested_shares is not None:
        print(f"Risk-based size: {result.suggested_shares:.4f} shares (advisory)")
    return 1 if d.failed_cycle else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        config = load_trading_config(args.strategy)
        thresholds = load_thresholds(args.rules or config.rules_path, config)
        if args.command == 'backtest':
            return _cmd_backtest(args, config, thresholds)
        return _cmd_decide(args, config, thresholds)
    except MantisError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
