"""Simulation runner - drive a staking pool through random operation sequences.

Key Features:
- Seeded numpy randomness for reproducible scenarios
- Engine rejections are expected outcomes and are counted per error code
- Reward conservation checked after every step (within floor-rounding tolerance)
- Staked-asset custody checked exactly: pool balance == staked + pending redemption
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..config.schema import Config
from ..engine.access import OwnerAccessControl
from ..engine.balances import InMemoryToken
from ..engine.clock import ManualClock
from ..engine.errors import StakingError
from ..engine.fixed_point import from_units
from ..engine.pool import LedgerSnapshot, StakingPool

logger = logging.getLogger(__name__)

UNLIMITED_ALLOWANCE = 2 ** 256 - 1


@dataclass
class SimulationResult:
    """Complete simulation result."""
    config: Config
    snapshots: List[LedgerSnapshot]
    final_metrics: Dict[str, Any]
    conservation_errors: List[str] = field(default_factory=list)
    rejections: Dict[str, int] = field(default_factory=dict)
    actions: Dict[str, int] = field(default_factory=dict)


class SimulationRunner:
    """Builds a pool from config and replays random user behaviour against it."""

    def __init__(self, config: Config, start_time: int = 0):
        """
        Initialize simulation runner.

        Args:
            config: Scenario configuration
            start_time: Initial clock value in seconds
        """
        self.config = config
        pool_cfg = config.pool
        sim = config.simulation

        self.clock = ManualClock(start_time)
        self.staked_token = InMemoryToken("STK")
        self.reward_token = InMemoryToken("RWD")
        self.users = [f"user_{i}" for i in range(sim.num_users)]

        self.pool = StakingPool(
            address=pool_cfg.pool_address,
            staked_token=self.staked_token.bind(pool_cfg.pool_address),
            reward_token=self.reward_token.bind(pool_cfg.pool_address),
            reward_vault=pool_cfg.reward_vault,
            access_control=OwnerAccessControl(pool_cfg.admin),
            clock=self.clock,
            cooldown_seconds=pool_cfg.cooldown_seconds,
            seconds_per_year=pool_cfg.seconds_per_year,
        )

        initial_balance = pool_cfg.to_units(sim.initial_balance)
        for user in self.users:
            self.staked_token.mint(user, initial_balance)
            self.staked_token.approve(user, pool_cfg.pool_address, UNLIMITED_ALLOWANCE)

        vault_funding = pool_cfg.to_units(sim.vault_funding)
        if vault_funding > 0:
            self.reward_token.mint(pool_cfg.reward_vault, vault_funding)
        self.reward_token.approve(pool_cfg.reward_vault, pool_cfg.pool_address, vault_funding)

        self._rejections: Dict[str, int] = {}
        self._actions: Dict[str, int] = {}
        self._conservation_errors: List[str] = []

    def start_campaign(self):
        """Start the configured campaign as the administrator."""
        campaign = self.config.campaign
        return self.pool.start_campaign(
            self.config.pool.admin,
            reward_budget=self.config.pool.to_units(campaign.reward_budget),
            duration=campaign.duration_seconds,
            rate=campaign.rate_wad,
        )

    def run(self, random_seed: Optional[int] = None) -> SimulationResult:
        """
        Run the simulation.

        Args:
            random_seed: Random seed for reproducibility

        Returns:
            Simulation result
        """
        if random_seed is not None:
            np.random.seed(random_seed)
        else:
            np.random.seed(self.config.simulation.random_seed)

        sim = self.config.simulation
        self._rejections = {}
        self._actions = {}
        self._conservation_errors = []

        self.start_campaign()
        snapshots = [self.pool.snapshot()]

        probabilities = sim.action_probabilities
        action_names = list(probabilities.keys())
        action_p = list(probabilities.values())

        logger.info(
            "Simulating %d steps with %d users (config %s)",
            sim.num_steps, sim.num_users, self.config.compute_hash(),
        )

        for step in range(sim.num_steps):
            self.clock.advance(sim.step_seconds)

            if sim.extend_probability > 0 and np.random.random() < sim.extend_probability:
                self._attempt("extend_campaign", self.start_campaign)

            action = str(np.random.choice(action_names, p=action_p))
            user = self.users[np.random.randint(len(self.users))]
            self._dispatch(action, user)

            snapshot = self.pool.snapshot()
            snapshots.append(snapshot)
            self._check_step(step, snapshot)

        final_metrics = self._final_metrics(snapshots)
        logger.info(
            "Simulation finished: %d actions, %d rejections, %d conservation errors",
            sum(self._actions.values()), sum(self._rejections.values()),
            len(self._conservation_errors),
        )

        return SimulationResult(
            config=self.config,
            snapshots=snapshots,
            final_metrics=final_metrics,
            conservation_errors=list(self._conservation_errors),
            rejections=dict(self._rejections),
            actions=dict(self._actions),
        )

    def _attempt(self, name: str, operation, *args, **kwargs):
        self._actions[name] = self._actions.get(name, 0) + 1
        try:
            return operation(*args, **kwargs)
        except StakingError as e:
            self._rejections[e.code] = self._rejections.get(e.code, 0) + 1
            logger.debug("%s rejected: %s", name, e)
            return None

    def _dispatch(self, action: str, user: str):
        pool = self.pool
        to_units = self.config.pool.to_units

        if action == "stake":
            amount = to_units(round(float(np.random.exponential(self.config.simulation.mean_stake)), 6))
            amount = min(max(amount, 1), max(self.staked_token.balance_of(user), 1))
            self._attempt(action, pool.stake, user, amount)

        elif action == "request_redeem":
            balance = pool.staked_balance(user)
            amount = max(int(balance * float(np.random.uniform(0.1, 1.0))), 1)
            self._attempt(action, pool.request_redeem, user, user, amount)

        elif action == "redeem":
            eligible = pool.redeemable_requests(user)
            pending = eligible or pool.pending_requests(user)
            if not pending:
                self._actions["redeem_skipped"] = self._actions.get("redeem_skipped", 0) + 1
                return
            # Oldest eligible, else oldest still cooling down
            self._attempt(action, pool.redeem, user, pending[0][0])

        elif action == "claim":
            amount = pool.total_reward_balance(user)
            self._attempt(action, pool.claim_reward, user, user, amount)

        else:
            raise ValueError(f"Unknown action: {action}")

    def _check_step(self, step: int, snapshot: LedgerSnapshot):
        # Each refresh can round every user's share by at most one unit
        tolerance = (snapshot.state_version + 1) * len(self.users)
        if abs(snapshot.conservation_gap) > tolerance:
            self._conservation_errors.append(
                f"Reward conservation violated at step {step} (t={snapshot.t}): "
                f"claimable={snapshot.total_claimable}, outstanding={snapshot.outstanding}, "
                f"gap={snapshot.conservation_gap}, tolerance={tolerance}"
            )

        custody = self.staked_token.balance_of(self.pool.address)
        expected = snapshot.total_staked + snapshot.total_pending_redemption
        if custody != expected:
            self._conservation_errors.append(
                f"Staked custody mismatch at step {step} (t={snapshot.t}): "
                f"pool holds {custody}, ledger expects {expected}"
            )

    def _final_metrics(self, snapshots: List[LedgerSnapshot]) -> Dict[str, Any]:
        decimals = self.config.pool.token_decimals
        final = snapshots[-1]
        vault = self.config.pool.reward_vault
        return {
            'final_time': final.t,
            'final_index': final.index,
            'total_accrued': final.total_accrued,
            'total_claimed': final.total_claimed,
            'total_staked': final.total_staked,
            'total_pending_redemption': final.total_pending_redemption,
            'outstanding_rewards': final.outstanding,
            'max_abs_conservation_gap': max(abs(s.conservation_gap) for s in snapshots),
            'total_accrued_tokens': float(from_units(final.total_accrued, decimals)),
            'total_claimed_tokens': float(from_units(final.total_claimed, decimals)),
            'total_staked_tokens': float(from_units(final.total_staked, decimals)),
            'vault_remaining_tokens': float(
                from_units(self.reward_token.balance_of(vault), decimals)
            ),
            'num_actions': sum(self._actions.values()),
            'num_rejections': sum(self._rejections.values()),
        }
