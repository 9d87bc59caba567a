"""Linear (non-compounding) reward accrual for launch pool positions."""

from datetime import timedelta
from decimal import ROUND_DOWN, Decimal, localcontext

ZERO = Decimal("0")
SECONDS_PER_HOUR = Decimal(3600)
HOURS_PER_DAY = Decimal(24)
DAYS_PER_YEAR = Decimal(365)
# Matches the 18 decimal places of the amount columns
REWARD_QUANTUM = Decimal("1e-18")


def _to_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _elapsed_hours(delta: timedelta) -> Decimal:
    seconds = Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds) / Decimal(10**6)
    return seconds / SECONDS_PER_HOUR


def accrual_end(pool, now):
    """Accrual stops at pool close."""
    return pool.end_time if now > pool.end_time else now


def calculate_reward(position, pool, now) -> Decimal:
    """
    Reward accrued by `position` since its last claim, as of `now`.

    reward = amount * apy * elapsed_years, where elapsed_years is hours / 24 / 365
    between ``last_claim_at`` and ``now`` clamped to ``pool.end_time``. Pure: reads
    only the two objects passed in. Never negative; a claim timestamp at or after
    the accrual end (clock skew, stake after close) yields zero.
    """
    elapsed = accrual_end(pool, now) - position.last_claim_at
    with localcontext() as ctx:
        ctx.prec = 60
        years = _elapsed_hours(elapsed) / HOURS_PER_DAY / DAYS_PER_YEAR
        reward = _to_decimal(position.amount) * _to_decimal(pool.apy) * years
        if reward <= ZERO:
            return ZERO
        return reward.quantize(REWARD_QUANTUM, rounding=ROUND_DOWN)
