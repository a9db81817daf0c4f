"""Campaign Controller - reward epoch configuration and capacity rules.

Key Concepts:
- A campaign fixes an annualized rate until `end_time`
- Capacity: max_deposit_capacity = reward_budget × WAD × year / (rate × duration)
- Campaigns only extend forward; ending one early freezes end_time and zeroes the rate
- The reward vault must cover outstanding claims plus the new budget
"""

import logging
from dataclasses import dataclass

from .errors import (
    CampaignAlreadyEnded,
    CampaignRegression,
    CapacityBelowCurrentSupply,
    InsufficientRewardBudget,
    InvalidZeroAmount,
)
from .fixed_point import SECONDS_PER_YEAR, deposit_capacity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Campaign:
    """Active reward epoch."""
    rate: int = 0  # WAD-scaled annual yield
    end_time: int = 0  # Timestamp after which nothing accrues
    max_deposit_capacity: int = 0  # Base units

    def is_active(self, now: int) -> bool:
        return now < self.end_time


class CampaignController:
    """Validates and applies campaign changes.

    Holds the current Campaign value; the pool refreshes the income index
    before any change so the old rate covers time already elapsed.
    """

    def __init__(self, seconds_per_year: int = SECONDS_PER_YEAR):
        self.seconds_per_year = seconds_per_year
        self.campaign = Campaign()

    def plan_campaign(
        self,
        now: int,
        reward_budget: int,
        duration: int,
        rate: int,
        outstanding_rewards: int,
        available_rewards: int,
        total_staked_supply: int,
    ) -> Campaign:
        """
        Validate a new campaign without applying it.

        Args:
            now: Current timestamp
            reward_budget: Reward the campaign may pay out (base units)
            duration: Campaign length in seconds
            rate: WAD-scaled annual yield
            outstanding_rewards: Accrued but not yet claimed reward
            available_rewards: Reward the vault can actually release to the pool
            total_staked_supply: Current total staked

        Returns:
            The campaign that would become active

        Raises:
            InvalidZeroAmount: budget, duration or rate is zero
            InsufficientRewardBudget: vault cannot cover outstanding + budget
            CampaignRegression: new end time precedes the current one
            CapacityBelowCurrentSupply: new capacity strands existing deposits
        """
        if reward_budget <= 0 or duration <= 0 or rate <= 0:
            raise InvalidZeroAmount(
                "reward budget, duration and rate must be positive",
                reward_budget=reward_budget, duration=duration, rate=rate,
            )

        if outstanding_rewards + reward_budget > available_rewards:
            raise InsufficientRewardBudget(
                "reward vault cannot cover outstanding rewards plus the new budget",
                outstanding=outstanding_rewards,
                requested=reward_budget,
                available=available_rewards,
            )

        end_time = now + duration
        if end_time < self.campaign.end_time:
            raise CampaignRegression(
                "campaign end time cannot move backwards",
                current_end=self.campaign.end_time, new_end=end_time,
            )

        capacity = deposit_capacity(reward_budget, duration, rate, self.seconds_per_year)
        if capacity < total_staked_supply:
            raise CapacityBelowCurrentSupply(
                "new capacity is below the current staked supply",
                capacity=capacity, total_staked=total_staked_supply,
            )

        return Campaign(rate=rate, end_time=end_time, max_deposit_capacity=capacity)

    def apply(self, campaign: Campaign):
        self.campaign = campaign
        logger.info(
            "Campaign set: rate=%d end_time=%d capacity=%d",
            campaign.rate, campaign.end_time, campaign.max_deposit_capacity,
        )

    def plan_end(self, now: int) -> Campaign:
        """Campaign frozen at `now` with a zero rate."""
        if not self.campaign.is_active(now):
            raise CampaignAlreadyEnded(
                "campaign has already ended", end_time=self.campaign.end_time, now=now
            )
        return Campaign(
            rate=0,
            end_time=now,
            max_deposit_capacity=self.campaign.max_deposit_capacity,
        )
