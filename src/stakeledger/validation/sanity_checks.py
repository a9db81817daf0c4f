"""Sanity checks and validation for pool configuration and ledger history."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..config.schema import Config
from ..engine.fixed_point import deposit_capacity
from ..engine.pool import LedgerSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "monotonicity", "bounds"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on configuration and ledger snapshots."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []
        pool = self.config.pool
        campaign = self.config.campaign
        sim = self.config.simulation

        # Vault must be able to fund the initial campaign
        if sim.vault_funding < campaign.reward_budget:
            warnings.append(ValidationWarning(
                severity="error",
                category="input",
                message="Reward vault funding is below the campaign reward budget",
                details=f"Vault: {sim.vault_funding:,.2f}, budget: {campaign.reward_budget:,.2f}"
            ))

        if campaign.rate > 1.0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message="Campaign rate above 100% APY is unusually high",
                details=f"Current rate: {campaign.rate*100:.1f}%"
            ))

        if pool.cooldown_seconds == 0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Cooldown is zero; redemptions are executable immediately",
            ))
        elif pool.cooldown_seconds >= campaign.duration_seconds:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Cooldown is as long as the whole campaign",
                details=f"Cooldown: {pool.cooldown_seconds}s, campaign: {campaign.duration_seconds}s"
            ))

        if pool.seconds_per_year not in (365 * 86_400, 366 * 86_400, 31_557_600):
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="seconds_per_year does not match a calendar or Julian year",
                details=f"Current value: {pool.seconds_per_year}"
            ))

        if campaign.duration_seconds > 0 and campaign.rate_wad > 0:
            capacity = deposit_capacity(
                pool.to_units(campaign.reward_budget),
                campaign.duration_seconds,
                campaign.rate_wad,
                pool.seconds_per_year,
            )
            total_user_funds = pool.to_units(sim.initial_balance) * sim.num_users
            if capacity < pool.to_units(sim.mean_stake):
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="bounds",
                    message="Deposit capacity is smaller than a typical deposit",
                    details=f"Capacity: {capacity} base units"
                ))
            elif capacity > total_user_funds * 1000:
                warnings.append(ValidationWarning(
                    severity="warning",
                    category="bounds",
                    message="Deposit capacity dwarfs the funds users can deposit",
                    details=f"Capacity: {capacity}, user funds: {total_user_funds}"
                ))

        return warnings

    def check_snapshot(self, snapshot: LedgerSnapshot, tolerance: int = 0) -> List[ValidationWarning]:
        """
        Check one ledger snapshot.

        Args:
            snapshot: Ledger snapshot to check
            tolerance: Allowed conservation gap in base units (floor rounding)

        Returns:
            List of validation warnings
        """
        warnings = []

        for name, value in (
            ("index", snapshot.index),
            ("total_accrued", snapshot.total_accrued),
            ("total_claimed", snapshot.total_claimed),
            ("total_staked", snapshot.total_staked),
            ("total_pending_redemption", snapshot.total_pending_redemption),
            ("total_claimable", snapshot.total_claimable),
        ):
            if value < 0:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"{name} went negative at t={snapshot.t}",
                    details=f"Value: {value}"
                ))

        if abs(snapshot.conservation_gap) > tolerance:
            warnings.append(ValidationWarning(
                severity="error",
                category="conservation",
                message=f"Reward conservation violated at t={snapshot.t}",
                details=(
                    f"Claimable={snapshot.total_claimable}, outstanding={snapshot.outstanding}, "
                    f"gap={snapshot.conservation_gap}, tolerance={tolerance}"
                )
            ))

        if snapshot.max_deposit_capacity and snapshot.total_staked > snapshot.max_deposit_capacity:
            warnings.append(ValidationWarning(
                severity="error",
                category="bounds",
                message=f"Staked supply exceeds deposit capacity at t={snapshot.t}",
                details=f"Staked={snapshot.total_staked}, capacity={snapshot.max_deposit_capacity}"
            ))

        return warnings

    def check_history(self, snapshots: Sequence[LedgerSnapshot]) -> List[ValidationWarning]:
        """
        Check that monotone quantities never decrease across a history.

        Returns:
            List of validation warnings
        """
        warnings = []
        monotone = ("index", "total_accrued", "total_claimed", "campaign_end_time")

        for prev, curr in zip(snapshots, snapshots[1:]):
            for name in monotone:
                before = getattr(prev, name)
                after = getattr(curr, name)
                if after < before and not self._is_early_end(name, prev, curr):
                    warnings.append(ValidationWarning(
                        severity="error",
                        category="monotonicity",
                        message=f"{name} decreased between t={prev.t} and t={curr.t}",
                        details=f"{before} -> {after}"
                    ))

        return warnings

    @staticmethod
    def _is_early_end(name: str, prev: LedgerSnapshot, curr: LedgerSnapshot) -> bool:
        # Ending a campaign early pulls end_time back to the moment it ended
        return name == "campaign_end_time" and curr.campaign_rate == 0 and curr.campaign_end_time <= curr.t


def validate_simulation_results(result) -> List[ValidationWarning]:
    """
    Validate a SimulationResult.

    Args:
        result: SimulationResult from SimulationRunner.run

    Returns:
        All warnings from config, per-snapshot and history checks
    """
    checker = SanityChecker(result.config)
    warnings = checker.check_config_inputs()

    num_users = result.config.simulation.num_users
    for snapshot in result.snapshots:
        tolerance = (snapshot.state_version + 1) * num_users
        warnings.extend(checker.check_snapshot(snapshot, tolerance=tolerance))

    warnings.extend(checker.check_history(result.snapshots))

    for message in result.conservation_errors:
        warnings.append(ValidationWarning(
            severity="error",
            category="conservation",
            message="Conservation error recorded during simulation",
            details=message
        ))

    for warning in warnings:
        if warning.severity == "error":
            logger.warning("%s: %s (%s)", warning.category, warning.message, warning.details)

    return warnings
