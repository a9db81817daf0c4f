"""User Reward Ledger - per-user reconciliation against the global index.

Key Concepts:
- owed = staked_balance × (current_index − last_observed_index) // WAD
- Reconcile before every balance change so the old balance covers elapsed time
- Read-only reconciliation (persist=False) computes the same total without writing
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterator, Tuple

from .fixed_point import wad_mul

logger = logging.getLogger(__name__)


@dataclass
class UserAccount:
    """Staked position and reward bookkeeping for one user."""
    staked_balance: int = 0
    last_observed_index: int = 0
    claimable_reward: int = 0

    def owed_since_snapshot(self, current_index: int) -> int:
        if current_index <= self.last_observed_index:
            return 0
        return wad_mul(self.staked_balance, current_index - self.last_observed_index)


class RewardLedger:
    """Per-user accounts plus the total staked supply they add up to."""

    def __init__(self):
        self.accounts: Dict[str, UserAccount] = {}
        self.total_staked_supply = 0

    def account(self, user: str) -> UserAccount:
        """Account for `user`; a fresh, unsaved account if unknown."""
        return self.accounts.get(user) or UserAccount()

    def _account_for_write(self, user: str) -> UserAccount:
        if user not in self.accounts:
            self.accounts[user] = UserAccount()
        return self.accounts[user]

    def staked_balance(self, user: str) -> int:
        return self.account(user).staked_balance

    def reconcile(self, user: str, current_index: int, persist: bool = True) -> int:
        """
        Convert index movement since the user's snapshot into claimable reward.

        Args:
            user: Account to reconcile
            current_index: Freshly refreshed global index
            persist: Write the result back; False for pure balance queries

        Returns:
            Total claimable reward after reconciliation
        """
        account = self.account(user)
        owed = account.owed_since_snapshot(current_index)
        total = account.claimable_reward + owed
        if not persist:
            return total

        account = self._account_for_write(user)
        account.claimable_reward = total
        account.last_observed_index = max(account.last_observed_index, current_index)
        if owed:
            logger.debug("Reconciled %s: +%d (claimable=%d)", user, owed, total)
        return total

    def increase_position(self, user: str, amount: int):
        """Mint staked position. Caller must reconcile first."""
        account = self._account_for_write(user)
        account.staked_balance += amount
        self.total_staked_supply += amount

    def decrease_position(self, user: str, amount: int):
        """Burn staked position. Caller must reconcile first."""
        account = self._account_for_write(user)
        if amount > account.staked_balance:
            raise ValueError(
                f"Cannot burn {amount} from {user}: staked balance is {account.staked_balance}"
            )
        account.staked_balance -= amount
        self.total_staked_supply -= amount

    def debit_claim(self, user: str, amount: int):
        account = self._account_for_write(user)
        if amount > account.claimable_reward:
            raise ValueError(
                f"Cannot debit {amount} from {user}: claimable is {account.claimable_reward}"
            )
        account.claimable_reward -= amount

    def credit_claim(self, user: str, amount: int):
        """Return a debited claim to the user (reverses debit_claim)."""
        self._account_for_write(user).claimable_reward += amount

    def save_account(self, user: str):
        """Capture one account and the staked total; returns a callable that restores both."""
        existing = self.accounts.get(user)
        saved = replace(existing) if existing is not None else None
        total = self.total_staked_supply

        def restore():
            if saved is None:
                self.accounts.pop(user, None)
            else:
                self.accounts[user] = saved
            self.total_staked_supply = total

        return restore

    def total_claimable(self, current_index: int) -> int:
        """Sum of every user's claimable reward at `current_index`, without writing."""
        return sum(
            account.claimable_reward + account.owed_since_snapshot(current_index)
            for account in self.accounts.values()
        )

    def items(self) -> Iterator[Tuple[str, UserAccount]]:
        return iter(self.accounts.items())
