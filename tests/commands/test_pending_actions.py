"""Tests for the confirmation store."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import redis

from hostops.commands.pending_actions import (
    PendingAction,
    PendingActionManager,
    RedisPendingActionManager,
)


class MutableClock:
    """Clock that tests can move forward."""

    def __init__(self, start) -> None:
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds: int) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def mutable_clock(now) -> MutableClock:
    return MutableClock(now)


@pytest.fixture
def manager(mutable_clock) -> PendingActionManager:
    """Create a pending actions manager."""
    return PendingActionManager(default_expiry_seconds=60, clock=mutable_clock)


@pytest.fixture
def approve_action(action_for):
    return action_for("approve booking bk-100")


class TestPendingActionCreation:
    """Test parking actions."""

    def test_create_keyed_by_action_id(self, manager, approve_action, now) -> None:
        pending = manager.create(approve_action, actor_id="admin-1", session_id="s-1")

        assert pending.action_id == approve_action.id
        assert pending.actor_id == "admin-1"
        assert pending.session_id == "s-1"
        assert pending.expires_at == now + timedelta(seconds=60)
        assert manager.get(approve_action.id) is pending

    def test_custom_expiry(self, manager, approve_action, now) -> None:
        pending = manager.create(approve_action, expiry_seconds=120)

        assert pending.expires_at == now + timedelta(seconds=120)

    def test_to_dict(self, manager, approve_action) -> None:
        data = manager.create(approve_action).to_dict()

        assert data["action_id"] == approve_action.id
        assert data["tag"] == "approve_booking"
        assert data["safety_level"] == "caution"


class TestPendingActionConsumption:
    """Test confirming and cancelling parked actions."""

    def test_get_does_not_consume(self, manager, approve_action) -> None:
        manager.create(approve_action)

        assert manager.get(approve_action.id) is not None
        assert manager.get(approve_action.id) is not None

    def test_confirm_consumes_once(self, manager, approve_action) -> None:
        manager.create(approve_action)

        first = manager.confirm(approve_action.id)
        second = manager.confirm(approve_action.id)

        assert first is not None
        assert first.action == approve_action
        assert second is None

    def test_confirm_unknown(self, manager) -> None:
        assert manager.confirm("act_missing") is None

    def test_cancel(self, manager, approve_action) -> None:
        manager.create(approve_action)

        assert manager.cancel(approve_action.id) is True
        assert manager.cancel(approve_action.id) is False
        assert manager.confirm(approve_action.id) is None


class TestPendingActionExpiry:
    def test_expired_action_cannot_be_confirmed(
        self, manager, approve_action, mutable_clock
    ) -> None:
        manager.create(approve_action)
        mutable_clock.advance(61)

        assert manager.get(approve_action.id) is None
        assert manager.confirm(approve_action.id) is None

    def test_cleanup_expired(self, manager, action_for, mutable_clock) -> None:
        manager.create(action_for("approve booking bk-1"), expiry_seconds=10)
        manager.create(action_for("approve booking bk-2"), expiry_seconds=100)
        mutable_clock.advance(30)

        assert manager.cleanup_expired() == 1
        assert manager.cleanup_expired() == 0


class TestSerialization:
    def test_serialize_round_trip(self, approve_action, now) -> None:
        pending = PendingAction(
            action=approve_action,
            expires_at=now + timedelta(seconds=300),
            actor_id="admin-1",
            session_id="s-1",
        )

        restored = PendingAction.deserialize(pending.serialize().encode())

        assert restored == pending


@pytest.fixture
def redis_client() -> MagicMock:
    return MagicMock(spec=redis.Redis)


@pytest.fixture
def redis_manager(redis_client, mutable_clock) -> RedisPendingActionManager:
    return RedisPendingActionManager(redis_client, default_expiry_seconds=300, clock=mutable_clock)


class TestRedisPendingActionManager:
    """Test the Redis-backed store against a mocked client."""

    def test_create_sets_ttl(self, redis_manager, redis_client, approve_action) -> None:
        pending = redis_manager.create(approve_action, actor_id="admin-1")

        key, ttl, payload = redis_client.setex.call_args.args
        assert key == f"hostops:pending_action:{approve_action.id}"
        assert ttl == 300
        assert PendingAction.deserialize(payload) == pending

    def test_create_survives_redis_error(self, redis_manager, redis_client, approve_action) -> None:
        redis_client.setex.side_effect = redis.ConnectionError("down")

        pending = redis_manager.create(approve_action)

        assert pending.action_id == approve_action.id

    def test_get(self, redis_manager, redis_client, approve_action, now) -> None:
        pending = PendingAction(approve_action, expires_at=now + timedelta(seconds=300))
        redis_client.get.return_value = pending.serialize().encode()

        assert redis_manager.get(approve_action.id) == pending
        redis_client.delete.assert_not_called()

    def test_get_missing(self, redis_manager, redis_client) -> None:
        redis_client.get.return_value = None

        assert redis_manager.get("act_missing") is None

    def test_get_expired_deletes_key(self, redis_manager, redis_client, approve_action, now) -> None:
        pending = PendingAction(approve_action, expires_at=now - timedelta(seconds=1))
        redis_client.get.return_value = pending.serialize()

        assert redis_manager.get(approve_action.id) is None
        redis_client.delete.assert_called_once_with(f"hostops:pending_action:{approve_action.id}")

    def test_confirm_deletes_in_transaction(
        self, redis_manager, redis_client, approve_action, now
    ) -> None:
        pending = PendingAction(approve_action, expires_at=now + timedelta(seconds=300))
        pipe = redis_client.pipeline.return_value
        pipe.get.return_value = pending.serialize().encode()

        assert redis_manager.confirm(approve_action.id) == pending
        key = f"hostops:pending_action:{approve_action.id}"
        pipe.watch.assert_called_once_with(key)
        pipe.multi.assert_called_once()
        pipe.delete.assert_called_once_with(key)
        pipe.execute.assert_called_once()

    def test_confirm_lost_race(self, redis_manager, redis_client, approve_action, now) -> None:
        pending = PendingAction(approve_action, expires_at=now + timedelta(seconds=300))
        pipe = redis_client.pipeline.return_value
        pipe.get.return_value = pending.serialize()
        pipe.execute.side_effect = redis.WatchError()

        assert redis_manager.confirm(approve_action.id) is None

    def test_confirm_missing(self, redis_manager, redis_client) -> None:
        pipe = redis_client.pipeline.return_value
        pipe.get.return_value = None

        assert redis_manager.confirm("act_missing") is None
        pipe.unwatch.assert_called_once()
        pipe.execute.assert_not_called()

    def test_cancel(self, redis_manager, redis_client, approve_action, now) -> None:
        pending = PendingAction(approve_action, expires_at=now + timedelta(seconds=300))
        redis_client.get.return_value = pending.serialize()
        redis_client.delete.return_value = 1

        assert redis_manager.cancel(approve_action.id) is True

    def test_redis_errors_read_as_missing(self, redis_manager, redis_client) -> None:
        redis_client.get.side_effect = redis.ConnectionError("down")
        redis_client.pipeline.side_effect = redis.ConnectionError("down")

        assert redis_manager.get("act_1") is None
        assert redis_manager.confirm("act_1") is None
        assert redis_manager.cancel("act_1") is False
