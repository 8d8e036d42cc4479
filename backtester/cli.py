#!/usr/bin/env python3
"""
Run strategy backtests over a historical price file.

Usage:
    run-backtest --data data/bitcoin_90d.json
    run-backtest --data prices.csv --strategy macd_cross --strategy breakout
    run-backtest --data prices.csv --direction long --leverage 3 --amount 1000
    run-backtest --data prices.csv --json > results.json
"""

import argparse
import asyncio
import json
import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from backtester.backtest import BacktestConfig, BacktestEngine, BacktestSummary
from backtester.core.models import MalformedSeriesError
from backtester.historical import HistoricalDataSource
from backtester.strategies import list_strategies

console = Console()
logger = logging.getLogger(__name__)


def positive_float(value: str) -> float:
    """argparse type for strictly positive numbers."""
    try:
        number = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected a number, got '{value}'") from e
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    strategy_help = "\n".join(f"    {name:<14} {description}" for name, description in list_strategies())
    parser = argparse.ArgumentParser(
        description="Backtest and rank trading strategies over historical prices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Strategies:
{strategy_help}

Examples:
    # All strategies, both directions, no leverage
    %(prog)s --data prices.json

    # Long-only MACD cross at 3x with dollar summaries
    %(prog)s --data prices.csv --strategy macd_cross --direction long --leverage 3 --amount 1000
        """,
    )
    parser.add_argument(
        "--data",
        "-d",
        required=True,
        help="Path to CSV (timestamp,price[,volume]) or JSON price file",
    )
    parser.add_argument(
        "--strategy",
        "-s",
        action="append",
        dest="strategies",
        help="Strategy to run (repeatable, default: all)",
    )
    parser.add_argument(
        "--direction",
        choices=["long", "short", "both"],
        default="both",
        help="Trade direction (default: both)",
    )
    parser.add_argument(
        "--leverage",
        "-l",
        type=positive_float,
        default=1.0,
        help="Leverage multiplier applied to returns (default: 1)",
    )
    parser.add_argument(
        "--amount",
        "-a",
        type=positive_float,
        help="Starting capital; enables per-strategy dollar summaries",
    )
    parser.add_argument(
        "--concurrent",
        action="store_true",
        help="Run strategies concurrently in worker threads",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full summary as JSON",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging (per-trade events)",
    )
    return parser


def print_summary(summary: BacktestSummary) -> None:
    """Render ranked results (and dollar summaries if present) as tables."""
    table = Table(title="📊 Strategy Ranking")
    table.add_column("#", justify="right")
    table.add_column("Strategy")
    table.add_column("Return", justify="right")
    table.add_column("Spot Return", justify="right")
    table.add_column("Win Rate", justify="right")
    table.add_column("Trades", justify="right")
    table.add_column("W/L", justify="right")
    table.add_column("Accounting")

    for position, result in enumerate(summary.results, start=1):
        color = "green" if result.total_return > 0 else "red" if result.total_return < 0 else "white"
        table.add_row(
            str(position),
            result.strategy_name,
            f"[{color}]{result.total_return:+.2f}%[/{color}]",
            f"{result.spot_total_return:+.2f}%",
            f"{result.win_rate:.2f}%",
            str(result.total_trades),
            f"{result.winning_trades}/{result.losing_trades}",
            result.accounting.value,
        )
    console.print(table)

    if summary.strategy_summaries:
        dollars = Table(title=f"💰 Profit on ${summary.config.amount:,.2f}")
        dollars.add_column("Strategy")
        dollars.add_column("Return", justify="right")
        dollars.add_column("Profit", justify="right")
        dollars.add_column("Spot Profit", justify="right")
        dollars.add_column("Trades", justify="right")
        for s in summary.strategy_summaries:
            dollars.add_row(
                s.strategy_name,
                f"{s.total_return:+.2f}%",
                f"${s.profit:+,.2f}",
                f"${s.spot_profit:+,.2f}",
                str(s.trade_count),
            )
        console.print(dollars)

    if summary.retest and summary.retest.entry_zone:
        console.print(
            f"🎯 Entry zone: {summary.retest.entry_zone} "
            f"(breakout age {summary.retest.breakout_age} bars, "
            f"{'false breakout' if summary.retest.false_breakout else 'holding'})"
        )

    if summary.skipped:
        console.print(f"⚠️  Skipped unknown strategies: {', '.join(summary.skipped)}")

    console.print()
    console.print(summary.ranking_summary)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    try:
        source = HistoricalDataSource(args.data)
        prices = source.prices()
        volumes = source.volumes()
    except (FileNotFoundError, ValueError) as e:
        # MalformedSeriesError is a ValueError
        kind = "Malformed series" if isinstance(e, MalformedSeriesError) else "Could not load data"
        console.print(f"❌ {kind}: {e}")
        return 1

    config = BacktestConfig(direction=args.direction, leverage=args.leverage, amount=args.amount)
    strategy_names = args.strategies or [name for name, _ in list_strategies()]
    engine = BacktestEngine(config)

    if args.concurrent:
        summary = asyncio.run(engine.run_async(prices, strategy_names, volumes))
    else:
        summary = engine.run(prices, strategy_names, volumes)

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print_summary(summary)

    return 0


if __name__ == "__main__":
    sys.exit(main())
