"""
Data models for backtesting configuration and results.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from backtester.core.models import Direction, DirectionFilter

if TYPE_CHECKING:
    from backtester.core.levels import StructureSnapshot
    from backtester.core.retest import RetestStructure


class TradeAction(Enum):
    """Order action, always derived from the trade direction."""

    BUY_TO_OPEN = "buy-to-open"
    SELL_TO_OPEN = "sell-to-open"
    SELL_TO_CLOSE = "sell-to-close"
    BUY_TO_CLOSE = "buy-to-close"


class ExitReason(Enum):
    """Why a position was closed."""

    MACD_CROSS = "macd-cross"
    TREND_FADE = "trend-fade"
    STOP_LOSS_HIT = "stop-loss-hit"
    RSI_TARGET = "rsi-target"
    RSI_EXIT = "rsi-exit"
    TIME_EXPIRY = "time-expiry"
    FAKEOUT = "fakeout"


class EntryReason(Enum):
    """Why a position was opened."""

    MACD_BULLISH_CROSS = "macd-bullish-cross"
    MACD_BEARISH_CROSS = "macd-bearish-cross"
    RSI_OVERSOLD = "rsi-oversold"
    RSI_OVERBOUGHT = "rsi-overbought"
    PATTERN_BREAKOUT = "pattern-breakout"


class Accounting(Enum):
    """How a strategy turns per-trade returns into total_return."""

    SUM = "sum"  # Plain sum of trade percentages, no compounding
    COMPOUND = "compound"  # Account value evolves trade over trade


ENTRY_ACTIONS = {Direction.LONG: TradeAction.BUY_TO_OPEN, Direction.SHORT: TradeAction.SELL_TO_OPEN}
EXIT_ACTIONS = {Direction.LONG: TradeAction.SELL_TO_CLOSE, Direction.SHORT: TradeAction.BUY_TO_CLOSE}


@dataclass(frozen=True)
class Trade:
    """
    A completed simulated trade.

    All fields are set once when the exit condition fires.
    """

    entry_index: int
    exit_index: int
    entry_price: float
    exit_price: float
    direction: Direction
    profit_percent: float  # Leverage-adjusted % return
    spot_profit_percent: float  # Unleveraged % return
    exit_reason: ExitReason
    strategy: str
    entry_reason: EntryReason | None = None

    # Sizing (only when a starting amount is supplied)
    position_size: float | None = None
    profit_amount: float | None = None
    spot_profit_amount: float | None = None

    def __post_init__(self) -> None:
        if self.exit_index <= self.entry_index:
            raise ValueError(
                f"exit_index ({self.exit_index}) must be after entry_index ({self.entry_index})"
            )

    @property
    def entry_action(self) -> TradeAction:
        return ENTRY_ACTIONS[self.direction]

    @property
    def exit_action(self) -> TradeAction:
        return EXIT_ACTIONS[self.direction]

    @property
    def is_win(self) -> bool:
        return self.profit_percent > 0

    @property
    def bars_held(self) -> int:
        return self.exit_index - self.entry_index

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data = {
            "entryIndex": self.entry_index,
            "exitIndex": self.exit_index,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "profitPercent": self.profit_percent,
            "spotProfitPercent": self.spot_profit_percent,
            "direction": self.direction.value,
            "entryAction": self.entry_action.value,
            "exitAction": self.exit_action.value,
            "exitReason": self.exit_reason.value,
            "strategy": self.strategy,
        }
        if self.entry_reason is not None:
            data["entryReason"] = self.entry_reason.value
        if self.position_size is not None:
            data["positionSize"] = self.position_size
            data["profitAmount"] = self.profit_amount
            data["spotProfitAmount"] = self.spot_profit_amount
        return data


@dataclass(frozen=True)
class BacktestConfig:
    """
    Configuration shared by every strategy in a backtest run.

    Defines which directions may trade, the leverage multiplier and the
    optional starting capital used for sizing fields.
    """

    direction: DirectionFilter = DirectionFilter.BOTH
    leverage: float = 1.0
    amount: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration."""
        if isinstance(self.direction, str):
            try:
                object.__setattr__(self, "direction", DirectionFilter(self.direction.lower()))
            except ValueError:
                raise ValueError(
                    f"direction must be one of long, short, both (got {self.direction!r})"
                ) from None
        if self.leverage <= 0:
            raise ValueError("leverage must be positive")
        if self.amount is not None and self.amount <= 0:
            raise ValueError("amount must be positive")

    @classmethod
    def from_dict(cls, data: dict) -> "BacktestConfig":
        """Create config from dictionary."""
        return cls(
            direction=data.get("direction", "both"),
            leverage=float(data.get("leverage", 1.0)),
            amount=float(data["amount"]) if data.get("amount") is not None else None,
        )


@dataclass(frozen=True)
class BacktestResult:
    """
    Results of one strategy over one series.

    total_return follows the strategy's `accounting` model: a plain sum of
    trade percentages for SUM, account growth in percent for COMPOUND.
    """

    strategy_name: str
    trades: tuple[Trade, ...]
    total_return: float
    win_rate: float  # % of trades with profit_percent > 0
    accounting: Accounting = Accounting.SUM
    leverage_used: float = 1.0
    spot_total_return: float = 0.0

    # Compounding strategies only
    account_value: float | None = None
    spot_account_value: float | None = None

    @classmethod
    def empty(
        cls,
        strategy_name: str,
        accounting: Accounting = Accounting.SUM,
        leverage: float = 1.0,
    ) -> "BacktestResult":
        """Zero-valued result for runs without enough data."""
        return cls(
            strategy_name=strategy_name,
            trades=(),
            total_return=0.0,
            win_rate=0.0,
            accounting=accounting,
            leverage_used=leverage,
        )

    @property
    def total_trades(self) -> int:
        return len(self.trades)

    @property
    def winning_trades(self) -> int:
        return sum(1 for t in self.trades if t.is_win)

    @property
    def losing_trades(self) -> int:
        return sum(1 for t in self.trades if t.profit_percent < 0)

    def trades_for(self, direction: Direction) -> list[Trade]:
        return [t for t in self.trades if t.direction == direction]

    def to_dict(self) -> dict:
        data = {
            "strategyName": self.strategy_name,
            "trades": [t.to_dict() for t in self.trades],
            "totalReturn": self.total_return,
            "spotTotalReturn": self.spot_total_return,
            "winRate": self.win_rate,
            "accounting": self.accounting.value,
            "leverageUsed": self.leverage_used,
        }
        if self.account_value is not None:
            data["accountValue"] = self.account_value
            data["spotAccountValue"] = self.spot_account_value
        return data


@dataclass(frozen=True)
class StrategySummary:
    """Per-strategy dollar summary for a run with a starting amount."""

    strategy_name: str
    total_return: float  # Sum of trade percentages, not compounded
    win_rate: float
    trade_count: int
    profit: float
    spot_return: float
    spot_profit: float
    leverage_used: float

    def to_dict(self) -> dict:
        return {
            "strategyName": self.strategy_name,
            "totalReturn": self.total_return,
            "winRate": self.win_rate,
            "tradeCount": self.trade_count,
            "profit": self.profit,
            "spotReturn": self.spot_return,
            "spotProfit": self.spot_profit,
            "leverageUsed": self.leverage_used,
        }


@dataclass(frozen=True)
class BacktestSummary:
    """Cross-strategy results of one orchestrated run."""

    config: BacktestConfig
    results: tuple[BacktestResult, ...]  # Ranked by total_return, best first
    ranking_summary: str
    skipped: tuple[str, ...] = ()

    # Populated when config.amount is set
    trades: tuple[Trade, ...] = ()
    strategy_summaries: tuple[StrategySummary, ...] = ()

    # Populated when a volume series is supplied
    structure: "StructureSnapshot | None" = None
    retest: "RetestStructure | None" = None

    @property
    def best(self) -> BacktestResult | None:
        """Highest total_return result (None if no strategy ran)."""
        return self.results[0] if self.results else None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "config": {
                "direction": self.config.direction.value,
                "leverage": self.config.leverage,
                "amount": self.config.amount,
            },
            "bestStrategy": self.best.to_dict() if self.best else None,
            "summary": self.ranking_summary,
            "allResults": [r.to_dict() for r in self.results],
            "skipped": list(self.skipped),
            "trades": [t.to_dict() for t in self.trades],
            "strategySummaries": [s.to_dict() for s in self.strategy_summaries],
            "structure": self.structure.to_dict() if self.structure else None,
            "retest": self.retest.to_dict() if self.retest else None,
        }
