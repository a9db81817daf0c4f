"""Fixed-point arithmetic shared by the accrual engine.

Key Concepts:
- All rates and the income index are integers scaled by WAD (1.0 == 10**18)
- All token amounts are integers in base units
- Every division floors, so rounding always favours the reward vault
"""

from decimal import ROUND_DOWN, Decimal
from typing import Union

WAD = 10 ** 18
SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

Numeric = Union[int, float, str, Decimal]


def wad_mul(a: int, b: int) -> int:
    """Multiply a base-unit amount by a WAD value, flooring the result."""
    return a * b // WAD


def to_wad(value: Numeric) -> int:
    """
    Convert a human-readable fraction to WAD.

    Floats go through their shortest repr so that 0.1 becomes exactly 10**17.

    Args:
        value: Fraction such as 0.10 or "0.10"

    Returns:
        WAD-scaled integer, floored
    """
    return to_units(value, 18)


def to_units(value: Numeric, decimals: int) -> int:
    """
    Convert a human-readable token amount to integer base units.

    Args:
        value: Amount in whole tokens
        decimals: Token decimals

    Returns:
        Amount in base units, floored
    """
    if isinstance(value, float):
        value = repr(value)
    scaled = Decimal(value) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_units(amount: int, decimals: int) -> Decimal:
    """Convert integer base units back to a Decimal token amount."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def index_delta(elapsed: int, rate: int, seconds_per_year: int = SECONDS_PER_YEAR) -> int:
    """
    Income index growth over an interval.

    Formula: Δindex = elapsed × rate // seconds_per_year
    """
    if elapsed <= 0 or rate <= 0:
        return 0
    return elapsed * rate // seconds_per_year


def deposit_capacity(
    reward_budget: int,
    duration: int,
    rate: int,
    seconds_per_year: int = SECONDS_PER_YEAR,
) -> int:
    """
    Largest total deposit a reward budget can pay for over a campaign.

    Formula: capacity = reward_budget × WAD × seconds_per_year // (rate × duration)
    """
    return reward_budget * WAD * seconds_per_year // (rate * duration)
