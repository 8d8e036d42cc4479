"""
Backtest Engine - Runs named strategies over one series and ranks them.

Flow: PriceSeries → IndicatorCache → Strategies → Ranking → Summaries

The engine is computation only: it never fetches or writes data. Strategies
are independent pure functions over the same immutable series, so
`run_async` can execute them concurrently once the shared indicator cache
has been populated.
"""

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from typing import Any

from backtester.core.levels import detect_levels
from backtester.core.models import PriceSeries, VolumeSeries
from backtester.core.retest import detect_retest_structure
from backtester.indicators.snapshot import IndicatorCache
from backtester.strategies import StrategyFn, StrategyType, get_strategy, resolve_strategy_type

from .models import BacktestConfig, BacktestResult, BacktestSummary, StrategySummary, Trade

logger = logging.getLogger(__name__)

SeriesInput = PriceSeries | Iterable[Sequence[float]]


def rank_results(results: Iterable[BacktestResult]) -> tuple[BacktestResult, ...]:
    """Sort by total_return descending; ties keep their original order."""
    return tuple(sorted(results, key=lambda r: r.total_return, reverse=True))


def ranking_summary(ranked: Sequence[BacktestResult]) -> str:
    """
    Human-readable ranking text.

    The first block describes the best strategy, followed by one line per
    ranked result.
    """
    if not ranked:
        return "No strategies were run."

    best = ranked[0]
    lines = [
        f"📊 Best Strategy: {best.strategy_name}",
        f"- Total Return: {best.total_return:.2f}%",
        f"- Win Rate: {best.win_rate:.2f}%",
        f"- Trade Count: {best.total_trades}",
    ]
    if len(ranked) > 1:
        lines.append("")
        lines.append("Ranking:")
        for position, result in enumerate(ranked, start=1):
            lines.append(
                f"{position}. {result.strategy_name}: {result.total_return:.2f}% "
                f"({result.total_trades} trades, {result.win_rate:.2f}% win rate)"
            )
    return "\n".join(lines)


def summarize_trades(
    results: Sequence[BacktestResult],
    config: BacktestConfig,
) -> tuple[tuple[Trade, ...], tuple[StrategySummary, ...]]:
    """
    Flatten trades across strategies and build per-strategy dollar summaries.

    Trades are tagged with their producing strategy and restricted to the
    configured direction. Returns in the summaries are plain sums of trade
    percentages, regardless of each strategy's own accounting model.

    Args:
        results: Strategy results in ranked order
        config: Run configuration (amount must be set)

    Returns:
        (flattened trades, summaries in the same order as results)
    """
    amount = config.amount or 0.0
    trades = tuple(
        trade
        for result in results
        for trade in result.trades
        if trade.strategy == result.strategy_name and config.direction.includes(trade.direction)
    )

    summaries = []
    for result in results:
        own = [t for t in trades if t.strategy == result.strategy_name]
        total = sum(t.profit_percent for t in own)
        spot = sum(t.spot_profit_percent for t in own)
        wins = sum(1 for t in own if t.profit_percent > 0)
        summaries.append(
            StrategySummary(
                strategy_name=result.strategy_name,
                total_return=round(total, 2),
                win_rate=round(wins / len(own) * 100, 2) if own else 0.0,
                trade_count=len(own),
                profit=round(total / 100 * amount, 2),
                spot_return=round(spot, 2),
                spot_profit=round(spot / 100 * amount, 2),
                leverage_used=result.leverage_used,
            )
        )

    return trades, tuple(summaries)


class BacktestEngine:
    """
    Orchestrates strategy backtests over a single price series.

    Usage:
        engine = BacktestEngine(BacktestConfig(direction="both", leverage=2, amount=1000))
        summary = engine.run(prices, ["macd_cross", "rsi_reversal", "breakout"])
        print(summary.ranking_summary)
    """

    def __init__(
        self,
        config: BacktestConfig | None = None,
        params: dict[StrategyType, Any] | None = None,
    ) -> None:
        """
        Initialize the backtest engine.

        Args:
            config: Direction / leverage / amount shared by every strategy
            params: Optional per-strategy parameter overrides
        """
        self.config = config or BacktestConfig()
        self.params = params or {}

    def _resolve(self, strategy_names: Iterable[str]) -> tuple[list[tuple[StrategyType, StrategyFn]], list[str]]:
        """Map names to strategy functions, skipping unknown and duplicate names."""
        resolved: list[tuple[StrategyType, StrategyFn]] = []
        skipped: list[str] = []
        seen: set[StrategyType] = set()

        for name in strategy_names:
            try:
                strategy_type = resolve_strategy_type(name)
            except ValueError as e:
                logger.warning(f"Skipping strategy: {e}")
                skipped.append(name)
                continue

            if strategy_type in seen:
                logger.debug(f"Strategy {strategy_type.value} requested twice, running once")
                continue
            seen.add(strategy_type)
            resolved.append((strategy_type, get_strategy(strategy_type.value)))

        return resolved, skipped

    def _prepare(self, prices: SeriesInput) -> tuple[PriceSeries, IndicatorCache]:
        series = prices if isinstance(prices, PriceSeries) else PriceSeries.from_pairs(prices)
        cache = IndicatorCache(series)
        cache.warm()
        return series, cache

    def _summarize(
        self,
        series: PriceSeries,
        results: list[BacktestResult],
        skipped: list[str],
        volumes: VolumeSeries | Iterable[Sequence[float]] | None,
        started: float,
    ) -> BacktestSummary:
        ranked = rank_results(results)

        trades: tuple[Trade, ...] = ()
        summaries: tuple[StrategySummary, ...] = ()
        if self.config.amount is not None:
            trades, summaries = summarize_trades(ranked, self.config)

        structure = None
        retest = None
        if volumes is not None:
            volume_series = volumes if isinstance(volumes, VolumeSeries) else VolumeSeries.from_pairs(volumes)
            structure = detect_levels(series, volume_series)
            retest = detect_retest_structure(series, volume_series)

        elapsed = time.perf_counter() - started
        if ranked:
            logger.info(
                f"Backtest complete: {len(ranked)} strategies over {len(series)} bars "
                f"in {elapsed:.3f}s, best {ranked[0].strategy_name} ({ranked[0].total_return:+.2f}%)"
            )
        else:
            logger.info(f"Backtest complete: no strategies run over {len(series)} bars")

        return BacktestSummary(
            config=self.config,
            results=ranked,
            ranking_summary=ranking_summary(ranked),
            skipped=tuple(skipped),
            trades=trades,
            strategy_summaries=summaries,
            structure=structure,
            retest=retest,
        )

    def run(
        self,
        prices: SeriesInput,
        strategy_names: Iterable[str],
        volumes: VolumeSeries | Iterable[Sequence[float]] | None = None,
    ) -> BacktestSummary:
        """
        Run each named strategy and rank the results.

        Args:
            prices: PriceSeries or raw [timestamp_ms, price] pairs
            strategy_names: Registry keys or display names; unknown names are skipped
            volumes: Optional volume series for structure / retest detection

        Returns:
            BacktestSummary with results ranked by total_return

        Raises:
            MalformedSeriesError: If the price or volume series is invalid
        """
        started = time.perf_counter()
        series, cache = self._prepare(prices)
        resolved, skipped = self._resolve(strategy_names)
        logger.info(
            f"Running {len(resolved)} strategies over {len(series)} bars "
            f"(direction={self.config.direction.value}, leverage={self.config.leverage})"
        )

        results = [
            strategy(series, self.config, self.params.get(strategy_type), cache)
            for strategy_type, strategy in resolved
        ]
        return self._summarize(series, results, skipped, volumes, started)

    async def run_async(
        self,
        prices: SeriesInput,
        strategy_names: Iterable[str],
        volumes: VolumeSeries | Iterable[Sequence[float]] | None = None,
    ) -> BacktestSummary:
        """
        Same as `run`, with strategies executed concurrently in worker threads.

        The indicator cache is warmed before the strategies start, so the
        threads only read shared state.
        """
        started = time.perf_counter()
        series, cache = self._prepare(prices)
        resolved, skipped = self._resolve(strategy_names)
        logger.info(f"Running {len(resolved)} strategies concurrently over {len(series)} bars")

        results = await asyncio.gather(
            *(
                asyncio.to_thread(strategy, series, self.config, self.params.get(strategy_type), cache)
                for strategy_type, strategy in resolved
            )
        )
        return self._summarize(series, list(results), skipped, volumes, started)
