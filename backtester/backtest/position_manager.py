"""
Position Manager - Per-direction position state and its transitions.

Each strategy tracks one state value per direction:

    Flat(last_exit_index)  --open_position-->  Open(entry_index, entry_price, ...)
    Open(...)              --close_position--> Flat(exit_index) + Trade

Transitions are pure functions returning new state values, so a strategy's
bar loop is a fold over the series and every transition can be unit-tested
without running the loop.
"""

from dataclasses import dataclass

from backtester.core.models import Direction

from .models import EntryReason, ExitReason, Trade


@dataclass(frozen=True)
class Flat:
    """No open position in this direction."""

    last_exit_index: int | None = None

    def bars_since_exit(self, index: int) -> int | None:
        """Bars elapsed since the last exit, None if there never was one."""
        if self.last_exit_index is None:
            return None
        return index - self.last_exit_index


@dataclass(frozen=True)
class Open:
    """An open position in one direction."""

    direction: Direction
    entry_index: int
    entry_price: float
    entry_reason: EntryReason | None = None

    # Breakout high/low the position was opened against
    reference_level: float | None = None

    # Capital committed (only when sizing is tracked)
    position_size: float | None = None

    def spot_return(self, price: float) -> float:
        """Unleveraged % return if closed at `price`."""
        return spot_return_percent(self.direction, self.entry_price, price)

    def bars_held(self, index: int) -> int:
        return index - self.entry_index


PositionState = Flat | Open


def spot_return_percent(direction: Direction, entry_price: float, exit_price: float) -> float:
    """
    Unleveraged percentage return of a trade.

    Long:  (exit - entry) / entry * 100
    Short: (entry - exit) / entry * 100
    """
    return (exit_price - entry_price) / entry_price * 100 * direction.sign


def can_enter(state: PositionState, index: int, cooldown_bars: int = 0) -> bool:
    """
    Check whether a new position may open at bar `index`.

    Requires the direction to be flat and, after a previous exit, at least
    `cooldown_bars` bars to have passed.
    """
    if isinstance(state, Open):
        return False

    elapsed = state.bars_since_exit(index)
    return elapsed is None or elapsed >= cooldown_bars


def open_position(
    state: PositionState,
    direction: Direction,
    index: int,
    price: float,
    entry_reason: EntryReason | None = None,
    reference_level: float | None = None,
    position_size: float | None = None,
) -> Open:
    """
    Transition Flat -> Open.

    Raises:
        ValueError: If a position in this direction is already open
    """
    if isinstance(state, Open):
        raise ValueError(
            f"{direction.value} position already open since bar {state.entry_index}"
        )

    return Open(
        direction=direction,
        entry_index=index,
        entry_price=price,
        entry_reason=entry_reason,
        reference_level=reference_level,
        position_size=position_size,
    )


def close_position(
    state: Open,
    index: int,
    price: float,
    reason: ExitReason,
    leverage: float,
    strategy: str,
) -> tuple[Flat, Trade]:
    """
    Transition Open -> Flat, producing the completed Trade.

    profit_percent is the spot return scaled linearly by leverage. Sizing
    fields are filled when the open state carries a position size.

    Returns:
        (new flat state, trade record)
    """
    spot = state.spot_return(price)
    leveraged = spot * leverage

    profit_amount = None
    spot_profit_amount = None
    if state.position_size is not None:
        profit_amount = state.position_size * leveraged / 100
        spot_profit_amount = state.position_size * spot / 100

    trade = Trade(
        entry_index=state.entry_index,
        exit_index=index,
        entry_price=state.entry_price,
        exit_price=price,
        direction=state.direction,
        profit_percent=leveraged,
        spot_profit_percent=spot,
        exit_reason=reason,
        strategy=strategy,
        entry_reason=state.entry_reason,
        position_size=state.position_size,
        profit_amount=profit_amount,
        spot_profit_amount=spot_profit_amount,
    )

    return Flat(last_exit_index=index), trade
