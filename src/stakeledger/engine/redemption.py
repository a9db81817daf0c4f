"""Redemption Queue - per-user arena of cooldown-gated redemption requests.

Request lifecycle: absent → pending → eligible (cooldown elapsed) → consumed.

Each user has a window [start_id, end_id) of ids that may still be live and
an incrementally maintained live count. Ids are allocated from end_id and are
never reused; consuming the request at start_id advances the window past any
leading consumed slots.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

from .errors import CooldownNotFinished, RedeemableZeroAmount

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 7 * 86_400


@dataclass
class RedeemRequest:
    """A pending redemption."""
    id: int
    recipient: str
    amount: int
    cooldown_start_time: int

    def eligible_at(self, cooldown_seconds: int) -> int:
        return self.cooldown_start_time + cooldown_seconds


@dataclass
class UserQueue:
    """Live id window and sparse request map for one user."""
    start_id: int = 0
    end_id: int = 0
    live_count: int = 0
    requests: Dict[int, RedeemRequest] = field(default_factory=dict)


class RedemptionQueue:
    """Indexed queues of pending redemption requests, keyed by user."""

    def __init__(self, cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS):
        self.cooldown_seconds = cooldown_seconds
        self.queues: Dict[str, UserQueue] = {}

    def window(self, user: str) -> UserQueue:
        return self.queues.get(user) or UserQueue()

    def enqueue(self, user: str, recipient: str, amount: int, now: int) -> int:
        """Store a new request and return its id."""
        queue = self.queues.setdefault(user, UserQueue())
        request_id = queue.end_id
        queue.requests[request_id] = RedeemRequest(
            id=request_id,
            recipient=recipient,
            amount=amount,
            cooldown_start_time=now,
        )
        queue.end_id += 1
        queue.live_count += 1
        logger.debug("Queued redemption %s#%d for %d", user, request_id, amount)
        return request_id

    def check_redeemable(self, user: str, request_id: int, now: int) -> RedeemRequest:
        """
        Return the request if it can be consumed at `now`.

        Raises:
            RedeemableZeroAmount: no live request under this id
            CooldownNotFinished: cooldown still running
        """
        request = self.window(user).requests.get(request_id)
        if request is None or request.amount == 0:
            raise RedeemableZeroAmount(
                "no redeemable amount for this request", user=user, request_id=request_id
            )
        ready_at = request.eligible_at(self.cooldown_seconds)
        if now < ready_at:
            raise CooldownNotFinished(
                "cooldown has not finished", request_id=request_id, now=now, ready_at=ready_at
            )
        return request

    def consume(self, user: str, request_id: int, now: int) -> RedeemRequest:
        """
        Retire an eligible request.

        Returns:
            Copy of the request as it was before consumption
        """
        request = self.check_redeemable(user, request_id, now)
        consumed = RedeemRequest(
            id=request.id,
            recipient=request.recipient,
            amount=request.amount,
            cooldown_start_time=request.cooldown_start_time,
        )

        queue = self.queues[user]
        self._retire(queue, request)

        logger.debug(
            "Consumed redemption %s#%d (window=[%d, %d), live=%d)",
            user, request_id, queue.start_id, queue.end_id, queue.live_count,
        )
        return consumed

    def cancel(self, user: str, request_id: int):
        """Drop a request that was enqueued by a failed operation. Its id stays spent."""
        queue = self.queues[user]
        request = queue.requests.get(request_id)
        if request is None or request.amount == 0:
            return
        self._retire(queue, request)

    def reinstate(self, user: str, request: RedeemRequest):
        """Put back a request consumed by a failed operation."""
        queue = self.queues.setdefault(user, UserQueue())
        queue.requests[request.id] = request
        queue.live_count += 1
        queue.start_id = min(queue.start_id, request.id)

    @staticmethod
    def _retire(queue: UserQueue, request: RedeemRequest):
        request.amount = 0
        queue.live_count -= 1
        while queue.start_id < queue.end_id:
            head = queue.requests.get(queue.start_id)
            if head is not None and head.amount != 0:
                break
            queue.requests.pop(queue.start_id, None)
            queue.start_id += 1

    def pending(self, user: str) -> Iterator[Tuple[int, RedeemRequest]]:
        """Live requests in id order. Stops once every live request was yielded."""
        queue = self.window(user)
        remaining = queue.live_count
        request_id = queue.start_id
        while remaining > 0 and request_id < queue.end_id:
            request = queue.requests.get(request_id)
            if request is not None and request.amount != 0:
                remaining -= 1
                yield request_id, request
            request_id += 1

    def eligible(self, user: str, now: int) -> Iterator[Tuple[int, RedeemRequest]]:
        for request_id, request in self.pending(user):
            if now >= request.eligible_at(self.cooldown_seconds):
                yield request_id, request

    def pending_amount(self, user: str) -> int:
        return sum(request.amount for _, request in self.pending(user))

    def total_pending(self) -> int:
        return sum(self.pending_amount(user) for user in self.queues)
