"""Unit tests for the redemption queue.

These tests verify:
- Cooldown enforcement at the exact boundary
- FIFO id retirement and start pointer advancement
- Ids are never reused
- Pending scan order and restartability
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from stakeledger.engine.errors import CooldownNotFinished, RedeemableZeroAmount
from stakeledger.engine.redemption import RedemptionQueue

COOLDOWN = 1_000


def _queue_with(amounts, now=0):
    queue = RedemptionQueue(cooldown_seconds=COOLDOWN)
    ids = [queue.enqueue("alice", "wallet", amount, now) for amount in amounts]
    return queue, ids


class TestCooldown:
    """Tests for the cooldown gate."""

    def test_redeem_before_cooldown_fails(self):
        """One second early is rejected."""
        queue, (request_id,) = _queue_with([50], now=10)
        with pytest.raises(CooldownNotFinished):
            queue.consume("alice", request_id, 10 + COOLDOWN - 1)

    def test_redeem_at_cooldown_boundary_succeeds(self):
        """Exactly cooldown_start + cooldown is eligible."""
        queue, (request_id,) = _queue_with([50], now=10)
        consumed = queue.consume("alice", request_id, 10 + COOLDOWN)
        assert consumed.amount == 50
        assert consumed.recipient == "wallet"

    def test_failed_cooldown_check_leaves_request(self):
        """A premature attempt does not consume anything."""
        queue, (request_id,) = _queue_with([50])
        with pytest.raises(CooldownNotFinished):
            queue.consume("alice", request_id, 0)
        assert queue.window("alice").live_count == 1
        assert [rid for rid, _ in queue.pending("alice")] == [request_id]

    def test_zero_cooldown(self):
        """With no cooldown requests are immediately eligible."""
        queue = RedemptionQueue(cooldown_seconds=0)
        request_id = queue.enqueue("alice", "wallet", 5, 100)
        assert queue.consume("alice", request_id, 100).amount == 5


class TestConsumption:
    """Tests for consumption bookkeeping."""

    def test_double_consume_fails(self):
        """A consumed request cannot be redeemed again."""
        queue, (request_id,) = _queue_with([50])
        queue.consume("alice", request_id, COOLDOWN)
        with pytest.raises(RedeemableZeroAmount):
            queue.consume("alice", request_id, COOLDOWN)

    def test_unknown_id_fails(self):
        """Ids outside the window are empty slots."""
        queue, _ = _queue_with([50])
        with pytest.raises(RedeemableZeroAmount):
            queue.consume("alice", 7, COOLDOWN)
        with pytest.raises(RedeemableZeroAmount):
            queue.consume("bob", 0, COOLDOWN)

    def test_fifo_retirement_advances_start(self):
        """Consuming the head advances start past every empty leading slot."""
        queue, ids = _queue_with([10, 20, 30])
        assert ids == [0, 1, 2]

        queue.consume("alice", 1, COOLDOWN)
        window = queue.window("alice")
        assert window.start_id == 0
        assert window.live_count == 2

        queue.consume("alice", 0, COOLDOWN)
        assert window.start_id == 2
        assert window.live_count == 1
        assert 0 not in window.requests and 1 not in window.requests

        queue.consume("alice", 2, COOLDOWN)
        assert window.start_id == window.end_id == 3
        assert window.live_count == 0

    def test_ids_never_reused(self):
        """New requests continue from end_id after the window empties."""
        queue, _ = _queue_with([10])
        queue.consume("alice", 0, COOLDOWN)
        new_id = queue.enqueue("alice", "wallet", 5, COOLDOWN)
        assert new_id == 1

    def test_reinstate_restores_head(self):
        """A reinstated request is live again and the window covers it."""
        queue, _ = _queue_with([10, 20])
        consumed = queue.consume("alice", 0, COOLDOWN)
        assert queue.window("alice").start_id == 1

        queue.reinstate("alice", consumed)
        window = queue.window("alice")
        assert window.start_id == 0
        assert window.live_count == 2
        assert [(rid, r.amount) for rid, r in queue.pending("alice")] == [(0, 10), (1, 20)]

    def test_cancel_keeps_id_spent(self):
        """Cancelling the newest request retires it without reusing its id."""
        queue, _ = _queue_with([10])
        request_id = queue.enqueue("alice", "wallet", 5, 0)
        queue.cancel("alice", request_id)

        assert [rid for rid, _ in queue.pending("alice")] == [0]
        assert queue.window("alice").live_count == 1
        assert queue.enqueue("alice", "wallet", 7, 0) == request_id + 1

    def test_queues_are_per_user(self):
        """Each user gets an independent id sequence."""
        queue = RedemptionQueue(cooldown_seconds=COOLDOWN)
        assert queue.enqueue("alice", "a", 1, 0) == 0
        assert queue.enqueue("bob", "b", 1, 0) == 0
        assert queue.enqueue("alice", "a", 1, 0) == 1


class TestPendingScan:
    """Tests for the pending-requests scan."""

    def test_pending_in_id_order_skipping_consumed(self):
        """Consumed slots in the middle are skipped."""
        queue, _ = _queue_with([10, 20, 30, 40])
        queue.consume("alice", 2, COOLDOWN)

        pending = list(queue.pending("alice"))
        assert [rid for rid, _ in pending] == [0, 1, 3]
        assert [r.amount for _, r in pending] == [10, 20, 40]

    def test_pending_is_restartable(self):
        """Each call starts a fresh scan."""
        queue, _ = _queue_with([10, 20])
        assert list(queue.pending("alice")) == list(queue.pending("alice"))

    def test_pending_empty_for_unknown_user(self):
        """Unknown users have no requests."""
        queue = RedemptionQueue(cooldown_seconds=COOLDOWN)
        assert list(queue.pending("nobody")) == []

    def test_eligible_subset(self):
        """eligible yields only requests whose cooldown finished."""
        queue = RedemptionQueue(cooldown_seconds=COOLDOWN)
        queue.enqueue("alice", "w", 10, 0)
        queue.enqueue("alice", "w", 20, 500)

        assert [rid for rid, _ in queue.eligible("alice", COOLDOWN)] == [0]
        assert [rid for rid, _ in queue.eligible("alice", 500 + COOLDOWN)] == [0, 1]

    def test_pending_totals(self):
        """pending_amount and total_pending sum live requests."""
        queue = RedemptionQueue(cooldown_seconds=COOLDOWN)
        queue.enqueue("alice", "w", 10, 0)
        queue.enqueue("alice", "w", 20, 0)
        queue.enqueue("bob", "w", 5, 0)
        queue.consume("alice", 0, COOLDOWN)

        assert queue.pending_amount("alice") == 20
        assert queue.total_pending() == 25
