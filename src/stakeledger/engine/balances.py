"""Fungible balance store interface and an in-memory reference token.

The staking engine never holds balances itself. It pulls deposits, pays
redemptions and pays rewards through a store bound to the pool's address.
"""

import logging
from typing import Callable, Dict, List, Protocol, Tuple

from .errors import InsufficientAllowance, InsufficientBalance, InvalidZeroAmount, ZeroAddress

logger = logging.getLogger(__name__)

TransferHook = Callable[[str, str, int], None]


class FungibleBalanceStore(Protocol):
    """Balance operations the engine consumes, seen from the pool's address."""

    def transfer_in(self, sender: str, amount: int) -> None:
        """Pull `amount` from `sender` into the pool."""

    def transfer_out(self, recipient: str, amount: int) -> None:
        """Pay `amount` from the pool to `recipient`."""

    def transfer_from(self, owner: str, recipient: str, amount: int) -> None:
        """Move `amount` from `owner` to `recipient` using the pool's allowance."""

    def allowance(self, owner: str, spender: str) -> int:
        """Amount `spender` may still move on behalf of `owner`."""

    def balance_of(self, account: str) -> int:
        """Current balance of `account`."""


class InMemoryToken:
    """Minimal fungible token with balances, allowances and transfer hooks.

    Hooks run after every balance movement and may call back into the
    engine, which is how reentrancy is exercised in tests. A hook that
    raises reverts the movement it was notified about.
    """

    def __init__(self, symbol: str):
        self.symbol = symbol
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.total_supply = 0
        self.hooks: List[TransferHook] = []

    def mint(self, account: str, amount: int):
        if not account:
            raise ZeroAddress("cannot mint to an empty account")
        self.balances[account] = self.balances.get(account, 0) + amount
        self.total_supply += amount

    def approve(self, owner: str, spender: str, amount: int):
        self.allowances[(owner, spender)] = amount

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def transfer(self, sender: str, recipient: str, amount: int):
        """Move tokens between accounts, then run hooks."""
        if amount <= 0:
            raise InvalidZeroAmount("transfer amount must be positive", amount=amount)
        if not recipient:
            raise ZeroAddress("transfer to an empty account")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: balance too low", account=sender, balance=balance, amount=amount
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        logger.debug("%s transfer %s -> %s: %d", self.symbol, sender, recipient, amount)
        try:
            for hook in list(self.hooks):
                hook(sender, recipient, amount)
        except Exception:
            # A rejecting hook reverts the transfer
            self.balances[sender] += amount
            self.balances[recipient] -= amount
            raise

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int):
        """Move tokens on behalf of `owner`, consuming `spender`'s allowance."""
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: allowance too low",
                owner=owner, spender=spender, allowance=allowed, amount=amount,
            )
        self.allowances[(owner, spender)] = allowed - amount
        try:
            self.transfer(owner, recipient, amount)
        except Exception:
            self.allowances[(owner, spender)] = allowed
            raise

    def bind(self, holder: str) -> "BoundToken":
        """View of this token from the perspective of `holder` (the pool)."""
        return BoundToken(self, holder)


class BoundToken:
    """Adapts an InMemoryToken to the FungibleBalanceStore protocol."""

    def __init__(self, token: InMemoryToken, holder: str):
        self.token = token
        self.holder = holder

    def transfer_in(self, sender: str, amount: int) -> None:
        self.token.transfer_from(self.holder, sender, self.holder, amount)

    def transfer_out(self, recipient: str, amount: int) -> None:
        self.token.transfer(self.holder, recipient, amount)

    def transfer_from(self, owner: str, recipient: str, amount: int) -> None:
        self.token.transfer_from(self.holder, owner, recipient, amount)

    def allowance(self, owner: str, spender: str) -> int:
        return self.token.allowance(owner, spender)

    def balance_of(self, account: str) -> int:
        return self.token.balance_of(account)
