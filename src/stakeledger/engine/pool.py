"""Staking pool - the public surface of the accrual/redemption engine.

Every mutating operation follows the same order:
1. checks
2. refresh the income index, reconcile the affected user
3. ledger, queue and campaign effects
4. the balance store call, last

Each operation runs inside an atomic section that journals the records it
touches. If anything raises (including the balance store), those records are
put back. Bookkeeping is committed before the external call, so a reentrant
call made from a transfer hook sees consistent state. When such a nested call
has committed and the outer operation then fails, only the outer operation's
own effects are reversed and the nested bookkeeping stands.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from .access import AccessControl
from .balances import FungibleBalanceStore
from .campaign import Campaign, CampaignController
from .clock import SystemClock
from .errors import (
    CampaignInactive,
    CapacityExceeded,
    InvalidZeroAmount,
    Unauthorized,
    ZeroAddress,
    ZeroAmountToClaim,
    ZeroBalance,
)
from .fixed_point import SECONDS_PER_YEAR
from .income import IncomeTracker, NormalizedIncomeState
from .redemption import DEFAULT_COOLDOWN_SECONDS, RedeemRequest, RedemptionQueue
from .rewards import RewardLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerSnapshot:
    """Point-in-time view of the engine, used by simulation and validation."""
    t: int
    index: int
    total_accrued: int
    total_claimed: int
    total_staked: int
    total_pending_redemption: int
    total_claimable: int  # Σ claimable + owed since snapshot, at `index`
    campaign_rate: int
    campaign_end_time: int
    max_deposit_capacity: int
    num_users: int
    state_version: int

    @property
    def outstanding(self) -> int:
        return self.total_accrued - self.total_claimed

    @property
    def conservation_gap(self) -> int:
        """Ledger obligations minus global outstanding; 0 when exactly conserved."""
        return self.total_claimable - self.outstanding


class UndoLog:
    """Undo records for one atomic section.

    `restores` put touched records back exactly as they were. `compensations`
    reverse this operation's own deltas and are used instead once a nested
    operation has committed on top of it; refresh and reconciliation carry no
    compensation since they do not change what anyone is owed.
    """

    def __init__(self):
        self.restores: List[Callable[[], None]] = []
        self.compensations: List[Callable[[], None]] = []

    def record(
        self,
        restore: Optional[Callable[[], None]] = None,
        compensate: Optional[Callable[[], None]] = None,
    ):
        if restore is not None:
            self.restores.append(restore)
        if compensate is not None:
            self.compensations.append(compensate)

    def rollback(self, nested_commit: bool):
        actions = self.compensations if nested_commit else self.restores
        for action in reversed(actions):
            action()


class StakingPool:
    """Time-weighted reward accrual with a cooldown-gated redemption queue."""

    def __init__(
        self,
        address: str,
        staked_token: FungibleBalanceStore,
        reward_token: FungibleBalanceStore,
        reward_vault: str,
        access_control: AccessControl,
        clock: Optional[Callable[[], int]] = None,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        seconds_per_year: int = SECONDS_PER_YEAR,
    ):
        """
        Initialize the pool.

        Args:
            address: The pool's own account in both balance stores
            staked_token: Store for the deposited asset, bound to `address`
            reward_token: Store for the reward asset, bound to `address`
            reward_vault: Account rewards are paid from (must approve `address`)
            access_control: Decides who may run administrative operations
            clock: Callable returning the current timestamp in seconds
            cooldown_seconds: Wait between a redemption request and its execution
            seconds_per_year: Annualization base for the campaign rate
        """
        if not address:
            raise ZeroAddress("pool address must not be empty")
        if not reward_vault:
            raise ZeroAddress("reward vault must not be empty")

        self.address = address
        self.staked_token = staked_token
        self.reward_token = reward_token
        self.reward_vault = reward_vault
        self.access_control = access_control
        self.clock = clock or SystemClock()

        self.campaigns = CampaignController(seconds_per_year=seconds_per_year)
        self.income = IncomeTracker(start_time=self.clock(), seconds_per_year=seconds_per_year)
        self.ledger = RewardLedger()
        self.queue = RedemptionQueue(cooldown_seconds=cooldown_seconds)
        self._commits = 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _atomic(self):
        undo = UndoLog()
        commits = self._commits
        try:
            yield undo
        except Exception:
            undo.rollback(nested_commit=self._commits != commits)
            raise
        self._commits += 1

    def _require_admin(self, caller: str):
        if not self.access_control.is_administrator(caller):
            raise Unauthorized("caller is not an administrator", caller=caller)

    def _save_income(self, undo: UndoLog):
        saved = self.income.state

        def restore():
            self.income.state = saved

        undo.record(restore)

    def _save_campaign(self, undo: UndoLog):
        saved = self.campaigns.campaign

        def restore():
            self.campaigns.campaign = saved

        undo.record(restore, restore)

    def _refresh(self, now: int, undo: UndoLog) -> int:
        self._save_income(undo)
        return self.income.refresh(now, self.ledger.total_staked_supply, self.campaigns.campaign)

    def _reconcile(self, user: str, index: int, undo: UndoLog) -> int:
        undo.record(self.ledger.save_account(user))
        return self.ledger.reconcile(user, index)

    def _available_rewards(self) -> int:
        allowance = self.reward_token.allowance(self.reward_vault, self.address)
        return min(allowance, self.reward_token.balance_of(self.reward_vault))

    # ------------------------------------------------------------------
    # Staking / claim surface
    # ------------------------------------------------------------------

    def stake(self, caller: str, amount: int, on_behalf_of: Optional[str] = None):
        """
        Deposit `amount` from `caller` into the position of `on_behalf_of`.

        Raises:
            InvalidZeroAmount: amount is zero
            CampaignInactive: no running campaign
            CapacityExceeded: deposit would exceed the campaign's capacity
        """
        user = on_behalf_of or caller
        now = self.clock()
        if amount <= 0:
            raise InvalidZeroAmount("stake amount must be positive", amount=amount)
        campaign = self.campaigns.campaign
        if not campaign.is_active(now):
            raise CampaignInactive("campaign is not active", end_time=campaign.end_time, now=now)
        total = self.ledger.total_staked_supply
        if total + amount > campaign.max_deposit_capacity:
            raise CapacityExceeded(
                "deposit exceeds campaign capacity",
                total_staked=total, amount=amount, capacity=campaign.max_deposit_capacity,
            )

        with self._atomic() as undo:
            index = self._refresh(now, undo)
            self._reconcile(user, index, undo)
            self.ledger.increase_position(user, amount)
            undo.record(compensate=lambda: self.ledger.decrease_position(user, amount))
            self.staked_token.transfer_in(caller, amount)

        logger.debug("Staked %d for %s (from %s)", amount, user, caller)

    def request_redeem(self, caller: str, recipient: str, amount: int) -> int:
        """
        Burn up to `amount` of the caller's position and queue it for release.

        Returns:
            Id of the new redemption request

        Raises:
            ZeroAddress: empty recipient
            ZeroBalance: caller has no staked position
            InvalidZeroAmount: amount is zero
        """
        now = self.clock()
        if not recipient:
            raise ZeroAddress("redemption recipient must not be empty")
        balance = self.ledger.staked_balance(caller)
        if balance == 0:
            raise ZeroBalance("caller has no staked position", caller=caller)
        if amount <= 0:
            raise InvalidZeroAmount("redeem amount must be positive", amount=amount)
        amount = min(amount, balance)

        with self._atomic() as undo:
            request_id = self.queue.enqueue(caller, recipient, amount, now)
            undo.record(
                lambda: self.queue.cancel(caller, request_id),
                lambda: self.queue.cancel(caller, request_id),
            )
            index = self._refresh(now, undo)
            self._reconcile(caller, index, undo)
            self.ledger.decrease_position(caller, amount)
            undo.record(compensate=lambda: self.ledger.increase_position(caller, amount))

        return request_id

    def redeem(self, caller: str, request_id: int):
        """
        Execute a redemption request once its cooldown has elapsed.

        Raises:
            RedeemableZeroAmount: unknown or already consumed request
            CooldownNotFinished: cooldown still running
        """
        now = self.clock()
        with self._atomic() as undo:
            self._refresh(now, undo)
            request = self.queue.consume(caller, request_id, now)

            def reinstate():
                self.queue.reinstate(caller, replace(request))

            undo.record(reinstate, reinstate)
            self.staked_token.transfer_out(request.recipient, request.amount)

        logger.debug("Redeemed %s#%d: %d to %s", caller, request_id, request.amount, request.recipient)

    def claim_reward(self, caller: str, recipient: str, amount: int) -> int:
        """
        Pay up to `amount` of the caller's claimable reward to `recipient`.

        Returns:
            Amount actually paid

        Raises:
            ZeroAddress: empty recipient
            ZeroAmountToClaim: nothing to pay after clamping
        """
        now = self.clock()
        if not recipient:
            raise ZeroAddress("reward recipient must not be empty")

        with self._atomic() as undo:
            index = self._refresh(now, undo)
            claimable = self._reconcile(caller, index, undo)
            to_claim = min(amount, claimable)
            if to_claim <= 0:
                raise ZeroAmountToClaim("nothing to claim", caller=caller, claimable=claimable)
            self.ledger.debit_claim(caller, to_claim)
            undo.record(compensate=lambda: self.ledger.credit_claim(caller, to_claim))
            self.income.record_claim(to_claim)
            undo.record(compensate=lambda: self.income.revert_claim(to_claim))
            self.reward_token.transfer_from(self.reward_vault, recipient, to_claim)

        logger.debug("Claimed %d for %s to %s", to_claim, caller, recipient)
        return to_claim

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def start_campaign(self, caller: str, reward_budget: int, duration: int, rate: int) -> Campaign:
        """
        Start or extend a campaign. See CampaignController.plan_campaign for rules.

        Args:
            caller: Must be an administrator
            reward_budget: Reward budget in base units
            duration: Length in seconds from now
            rate: WAD-scaled annual yield
        """
        self._require_admin(caller)
        now = self.clock()
        with self._atomic() as undo:
            # Old rate covers everything up to now
            self._refresh(now, undo)
            campaign = self.campaigns.plan_campaign(
                now=now,
                reward_budget=reward_budget,
                duration=duration,
                rate=rate,
                outstanding_rewards=self.income.state.outstanding,
                available_rewards=self._available_rewards(),
                total_staked_supply=self.ledger.total_staked_supply,
            )
            self._save_campaign(undo)
            self.campaigns.apply(campaign)
        return campaign

    def end_campaign(self, caller: str) -> Campaign:
        """Stop accrual now. Raises CampaignAlreadyEnded after natural expiry."""
        self._require_admin(caller)
        now = self.clock()
        with self._atomic() as undo:
            campaign = self.campaigns.plan_end(now)
            self._refresh(now, undo)
            self._save_campaign(undo)
            self.campaigns.apply(campaign)
        logger.info("Campaign ended early at t=%d", now)
        return campaign

    def set_reward_vault(self, caller: str, vault: str):
        self._require_admin(caller)
        if not vault:
            raise ZeroAddress("reward vault must not be empty")
        self.reward_vault = vault
        logger.info("Reward vault set to %s", vault)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_index(self) -> int:
        """Index as of now, without committing the refresh."""
        return self.income.preview(
            self.clock(), self.ledger.total_staked_supply, self.campaigns.campaign
        ).index

    def total_reward_balance(self, user: str) -> int:
        """Claimable reward of `user` as of now, read-only."""
        return self.ledger.reconcile(user, self.current_index(), persist=False)

    def pending_requests(self, user: str) -> List[Tuple[int, RedeemRequest]]:
        return [(request_id, replace(request)) for request_id, request in self.queue.pending(user)]

    def redeemable_requests(self, user: str) -> List[Tuple[int, RedeemRequest]]:
        now = self.clock()
        return [(request_id, replace(request)) for request_id, request in self.queue.eligible(user, now)]

    def campaign_end_time(self) -> int:
        return self.campaigns.campaign.end_time

    def campaign_rate(self) -> int:
        return self.campaigns.campaign.rate

    def max_deposit_capacity(self) -> int:
        return self.campaigns.campaign.max_deposit_capacity

    def is_campaign_active(self) -> bool:
        return self.campaigns.campaign.is_active(self.clock())

    def staked_balance(self, user: str) -> int:
        return self.ledger.staked_balance(user)

    def total_staked_supply(self) -> int:
        return self.ledger.total_staked_supply

    def income_state(self) -> NormalizedIncomeState:
        return self.income.state

    def outstanding_rewards(self) -> int:
        """Accrued and unclaimed reward as of now."""
        return self.income.preview(
            self.clock(), self.ledger.total_staked_supply, self.campaigns.campaign
        ).outstanding

    def snapshot(self) -> LedgerSnapshot:
        """Read-only view of the engine as of now."""
        now = self.clock()
        state = self.income.preview(now, self.ledger.total_staked_supply, self.campaigns.campaign)
        campaign = self.campaigns.campaign
        return LedgerSnapshot(
            t=now,
            index=state.index,
            total_accrued=state.total_accrued,
            total_claimed=state.total_claimed,
            total_staked=self.ledger.total_staked_supply,
            total_pending_redemption=self.queue.total_pending(),
            total_claimable=self.ledger.total_claimable(state.index),
            campaign_rate=campaign.rate,
            campaign_end_time=campaign.end_time,
            max_deposit_capacity=campaign.max_deposit_capacity,
            num_users=len(self.ledger.accounts),
            state_version=self.income.state.version,
        )
