"""stakeledger - time-weighted reward accrual with a cooldown-gated redemption queue."""

__version__ = "0.1.0"
