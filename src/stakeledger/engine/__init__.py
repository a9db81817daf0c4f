"""Accrual and redemption engine."""

from .access import AccessControl, OwnerAccessControl
from .balances import BoundToken, FungibleBalanceStore, InMemoryToken
from .campaign import Campaign, CampaignController
from .clock import ManualClock, SystemClock
from .errors import (
    CampaignAlreadyEnded,
    CampaignInactive,
    CampaignRegression,
    CapacityBelowCurrentSupply,
    CapacityExceeded,
    CooldownNotFinished,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientRewardBudget,
    InvalidZeroAmount,
    RedeemableZeroAmount,
    StakingError,
    Unauthorized,
    ZeroAddress,
    ZeroAmountToClaim,
    ZeroBalance,
)
from .fixed_point import SECONDS_PER_DAY, SECONDS_PER_YEAR, WAD, to_units, to_wad
from .income import IncomeTracker, NormalizedIncomeState
from .pool import LedgerSnapshot, StakingPool
from .redemption import DEFAULT_COOLDOWN_SECONDS, RedeemRequest, RedemptionQueue
from .rewards import RewardLedger, UserAccount

__all__ = [
    # Collaborators
    "AccessControl",
    "OwnerAccessControl",
    "FungibleBalanceStore",
    "InMemoryToken",
    "BoundToken",
    "ManualClock",
    "SystemClock",
    # Engine
    "Campaign",
    "CampaignController",
    "IncomeTracker",
    "NormalizedIncomeState",
    "RewardLedger",
    "UserAccount",
    "RedeemRequest",
    "RedemptionQueue",
    "DEFAULT_COOLDOWN_SECONDS",
    "StakingPool",
    "LedgerSnapshot",
    # Fixed point
    "WAD",
    "SECONDS_PER_DAY",
    "SECONDS_PER_YEAR",
    "to_wad",
    "to_units",
    # Errors
    "StakingError",
    "InvalidZeroAmount",
    "CapacityExceeded",
    "CampaignInactive",
    "InsufficientRewardBudget",
    "CampaignRegression",
    "CapacityBelowCurrentSupply",
    "CampaignAlreadyEnded",
    "ZeroBalance",
    "RedeemableZeroAmount",
    "CooldownNotFinished",
    "ZeroAmountToClaim",
    "Unauthorized",
    "ZeroAddress",
    "InsufficientBalance",
    "InsufficientAllowance",
]
