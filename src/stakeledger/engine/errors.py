"""Error taxonomy for the staking engine.

Every failure is raised synchronously to the caller and the failing
operation leaves no partial effect behind.
"""

from typing import Any, Optional


class StakingError(Exception):
    """Base class for all engine failures."""

    code = "staking_error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.details = details
        super().__init__(message or self.code)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        extra = ", ".join(f"{k}={v!r}" for k, v in sorted(self.details.items()))
        return f"{base} ({extra})"


class InvalidZeroAmount(StakingError):
    code = "invalid_zero_amount"


class CapacityExceeded(StakingError):
    code = "capacity_exceeded"


class CampaignInactive(StakingError):
    code = "campaign_inactive"


class InsufficientRewardBudget(StakingError):
    code = "insufficient_reward_budget"


class CampaignRegression(StakingError):
    code = "campaign_regression"


class CapacityBelowCurrentSupply(StakingError):
    code = "capacity_below_current_supply"


class CampaignAlreadyEnded(StakingError):
    code = "campaign_already_ended"


class ZeroBalance(StakingError):
    code = "zero_balance"


class RedeemableZeroAmount(StakingError):
    code = "redeemable_zero_amount"


class CooldownNotFinished(StakingError):
    code = "cooldown_not_finished"


class ZeroAmountToClaim(StakingError):
    code = "zero_amount_to_claim"


class Unauthorized(StakingError):
    code = "unauthorized"


class ZeroAddress(StakingError):
    code = "zero_address"


# Raised by the in-memory balance store
class InsufficientBalance(StakingError):
    code = "insufficient_balance"


class InsufficientAllowance(StakingError):
    code = "insufficient_allowance"
