"""Normalized Income Tracker - lazily refreshed global reward index.

Key Concepts:
- index: cumulative reward per unit staked since inception (WAD-scaled)
- Growth: Δindex = elapsed × rate // seconds_per_year, elapsed clamped to campaign end
- total_accrued += supply × Δindex // WAD (floored, never over-accrues per step)
- Nothing accrues while the pool is empty
"""

import logging
from dataclasses import dataclass, replace

from .campaign import Campaign
from .fixed_point import SECONDS_PER_YEAR, index_delta, wad_mul

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedIncomeState:
    """Global accrual state. Replaced wholesale on every committed refresh."""
    index: int = 0
    last_update_time: int = 0
    total_accrued: int = 0
    total_claimed: int = 0
    version: int = 0

    @property
    def outstanding(self) -> int:
        """Reward attributed to users and not yet claimed."""
        return max(0, self.total_accrued - self.total_claimed)


class IncomeTracker:
    """Owns the NormalizedIncomeState and applies lazy refreshes."""

    def __init__(self, start_time: int = 0, seconds_per_year: int = SECONDS_PER_YEAR):
        self.seconds_per_year = seconds_per_year
        self.state = NormalizedIncomeState(last_update_time=start_time)

    def preview(
        self,
        now: int,
        total_staked_supply: int,
        campaign: Campaign,
    ) -> NormalizedIncomeState:
        """
        Compute the refreshed state without committing it.

        Args:
            now: Current timestamp
            total_staked_supply: Supply staked over the whole interval since last update
            campaign: Active campaign (rate and end time)

        Returns:
            New state; identical to the current one if nothing accrues
        """
        state = self.state
        last_update = max(state.last_update_time, now)

        effective_now = min(now, campaign.end_time)
        elapsed = effective_now - state.last_update_time
        if total_staked_supply == 0 or elapsed <= 0:
            if last_update == state.last_update_time:
                return state
            return replace(state, last_update_time=last_update)

        growth = index_delta(elapsed, campaign.rate, self.seconds_per_year)
        return replace(
            state,
            index=state.index + growth,
            total_accrued=state.total_accrued + wad_mul(total_staked_supply, growth),
            last_update_time=last_update,
        )

    def refresh(self, now: int, total_staked_supply: int, campaign: Campaign) -> int:
        """Commit a refresh and return the current index."""
        new_state = self.preview(now, total_staked_supply, campaign)
        if new_state is not self.state:
            self.state = replace(new_state, version=self.state.version + 1)
            logger.debug(
                "Index refreshed to %d at t=%d (accrued=%d)",
                new_state.index, now, new_state.total_accrued,
            )
        return self.state.index

    def record_claim(self, amount: int):
        self.state = replace(
            self.state,
            total_claimed=self.state.total_claimed + amount,
            version=self.state.version + 1,
        )

    def revert_claim(self, amount: int):
        """Undo record_claim for a payout that did not go through."""
        self.record_claim(-amount)
