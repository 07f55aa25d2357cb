# src/depeg_guard/oracle/twap.py

# --- Built Ins  ---
from collections.abc import Callable
from decimal import ROUND_DOWN, Decimal, localcontext

# --- Installed  ---
from loguru import logger as log

# --- Local Application Imports ---
from depeg_guard.exceptions import NonMonotonicTimestamp
from depeg_guard.models import MAX_TICK, MIN_TICK
from depeg_guard.oracle.observation_log import ObservationLog

PRICE_SCALE = 10**18
TICK_BASE = Decimal("1.0001")

TickToPrice = Callable[[int], int]


def tick_to_price(tick: int) -> int:
    """
    1.0001 ** tick as an 18-decimal fixed-point integer, rounded down.
    Defined for MIN_TICK..MAX_TICK; deep negative ticks price to 0.
    """
    if not MIN_TICK <= tick <= MAX_TICK:
        raise ValueError(f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]")
    with localcontext() as ctx:
        ctx.prec = 60
        price = (TICK_BASE**tick) * PRICE_SCALE
        return int(price.to_integral_value(rounding=ROUND_DOWN))


def trunc_div(numerator: int, denominator: int) -> int:
    """Integer division truncating toward zero, for signed tick integrals."""
    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient


def twap_tick(observations: ObservationLog, window: int, now: int, current_tick: int) -> int:
    """
    Average tick over [now - window, now].

    The integral at `now` is extrapolated from the newest sample with
    `current_tick`; the integral at the window start is interpolated between
    its bracketing samples. Degenerate brackets fall back to `current_tick`.
    """
    if observations.is_empty:
        return current_tick

    target = max(now - window, 0)
    before, after = observations.query_bracket(target)
    if before.timestamp == after.timestamp:
        return current_tick

    newest = observations.newest
    if now < newest.timestamp:
        raise NonMonotonicTimestamp(
            f"[{observations.pool_id}] query time {now} is older than newest observation {newest.timestamp}"
        )
    cumulative_now = newest.cumulative_tick + current_tick * (now - newest.timestamp)
    cumulative_target = before.cumulative_tick + trunc_div(
        (after.cumulative_tick - before.cumulative_tick) * (target - before.timestamp),
        after.timestamp - before.timestamp,
    )
    return trunc_div(cumulative_now - cumulative_target, now - target)


def twap(
    observations: ObservationLog,
    window: int,
    now: int,
    current_tick: int,
    tick_to_price: TickToPrice = tick_to_price,
) -> int:
    """
    Time-weighted average price over the trailing `window` seconds.
    An empty log is a cold start and prices `current_tick` directly.
    """
    if window <= 0:
        raise ValueError(f"TWAP window must be positive, got {window}")
    if observations.is_empty:
        log.debug(f"[{observations.pool_id}] cold start: pricing current tick {current_tick}")
        return tick_to_price(current_tick)

    average_tick = twap_tick(observations, window, now, current_tick)
    return tick_to_price(average_tick)
