"""Confirmation store for actions awaiting human approval."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import redis

from hostops.commands.actions import CandidateAction
from hostops.db.documents import utc_now

logger = logging.getLogger(__name__)


@dataclass
class PendingAction:
    """A candidate action parked until a user confirms or cancels it."""

    action: CandidateAction
    expires_at: datetime
    actor_id: str | None = None
    session_id: str | None = None

    @property
    def action_id(self) -> str:
        return self.action.id

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if this action has expired."""
        return (now or utc_now()) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "action_id": self.action.id,
            "tag": self.action.tag.value,
            "description": self.action.description,
            "safety_level": self.action.safety_level.value,
            "expires_at": self.expires_at.isoformat(),
        }

    def serialize(self) -> str:
        return json.dumps(
            {
                "action": self.action.to_dict(),
                "expires_at": self.expires_at.isoformat(),
                "actor_id": self.actor_id,
                "session_id": self.session_id,
            }
        )

    @classmethod
    def deserialize(cls, data: str | bytes) -> "PendingAction":
        if isinstance(data, bytes):
            data = data.decode()
        obj = json.loads(data)
        return cls(
            action=CandidateAction.from_dict(obj["action"]),
            expires_at=datetime.fromisoformat(obj["expires_at"]),
            actor_id=obj.get("actor_id"),
            session_id=obj.get("session_id"),
        )


class PendingActionManager:
    """In-process confirmation store keyed by action id."""

    def __init__(
        self,
        default_expiry_seconds: int = 300,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the manager.

        Args:
            default_expiry_seconds: Time until parked actions expire (default: 300s)
            clock: Source of the current time
        """
        self.default_expiry_seconds = default_expiry_seconds
        self.clock = clock
        self._pending: dict[str, PendingAction] = {}

    def create(
        self,
        action: CandidateAction,
        actor_id: str | None = None,
        session_id: str | None = None,
        expiry_seconds: int | None = None,
    ) -> PendingAction:
        """Park an action for confirmation.

        Args:
            action: The candidate action to park
            actor_id: User the action was extracted for
            session_id: Optional session identifier
            expiry_seconds: Custom expiry time, or use default

        Returns:
            The parked PendingAction
        """
        expiry = expiry_seconds or self.default_expiry_seconds
        pending = PendingAction(
            action=action,
            expires_at=self.clock() + timedelta(seconds=expiry),
            actor_id=actor_id,
            session_id=session_id,
        )
        self._pending[action.id] = pending
        return pending

    def get(self, action_id: str) -> PendingAction | None:
        """Look up a parked action without consuming it.

        Returns:
            PendingAction if found and not expired, None otherwise
        """
        pending = self._pending.get(action_id)
        if pending is None:
            return None

        if pending.is_expired(self.clock()):
            del self._pending[action_id]
            return None

        return pending

    def confirm(self, action_id: str) -> PendingAction | None:
        """Consume a parked action.

        Returns:
            PendingAction if found, None if missing, expired or already consumed
        """
        pending = self.get(action_id)
        if pending is None:
            return None

        del self._pending[action_id]
        return pending

    def cancel(self, action_id: str) -> bool:
        """Discard a parked action.

        Returns:
            True if the action was discarded, False if not found or expired
        """
        if self.get(action_id) is None:
            return False

        del self._pending[action_id]
        return True

    def cleanup_expired(self) -> int:
        """Remove all expired actions.

        Returns:
            Number of expired actions removed
        """
        now = self.clock()
        expired = [
            action_id for action_id, pending in self._pending.items() if pending.expires_at <= now
        ]
        for action_id in expired:
            del self._pending[action_id]
        return len(expired)


class RedisPendingActionManager:
    """Redis-backed confirmation store.

    Parked actions survive process restarts, expire through Redis TTLs, and
    are consumed atomically (WATCH/MULTI) so each one executes at most once.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        default_expiry_seconds: int = 300,
        key_prefix: str = "hostops:pending_action:",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the Redis-backed manager.

        Args:
            redis_client: Redis client instance
            default_expiry_seconds: Time until parked actions expire (default: 300s)
            key_prefix: Prefix for Redis keys
            clock: Source of the current time
        """
        self.redis = redis_client
        self.default_expiry_seconds = default_expiry_seconds
        self.key_prefix = key_prefix
        self.clock = clock

    def _make_redis_key(self, action_id: str) -> str:
        return f"{self.key_prefix}{action_id}"

    def create(
        self,
        action: CandidateAction,
        actor_id: str | None = None,
        session_id: str | None = None,
        expiry_seconds: int | None = None,
    ) -> PendingAction:
        expiry = expiry_seconds or self.default_expiry_seconds
        pending = PendingAction(
            action=action,
            expires_at=self.clock() + timedelta(seconds=expiry),
            actor_id=actor_id,
            session_id=session_id,
        )

        try:
            self.redis.setex(self._make_redis_key(action.id), expiry, pending.serialize())
            logger.debug("Parked action %s with TTL %ds", action.id, expiry)
        except redis.RedisError as e:
            logger.error("Redis error parking action %s: %s", action.id, e)

        return pending

    def get(self, action_id: str) -> PendingAction | None:
        redis_key = self._make_redis_key(action_id)
        try:
            data = self.redis.get(redis_key)
            if data is None:
                return None

            pending = PendingAction.deserialize(data)
            if pending.is_expired(self.clock()):
                self.redis.delete(redis_key)
                return None
            return pending

        except redis.RedisError as e:
            logger.error("Redis error retrieving pending action %s: %s", action_id, e)
            return None
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error("Error deserializing pending action %s: %s", action_id, e)
            return None

    def confirm(self, action_id: str) -> PendingAction | None:
        """Consume a parked action atomically.

        Returns:
            PendingAction if consumed by this call, None otherwise
        """
        redis_key = self._make_redis_key(action_id)
        try:
            pipe = self.redis.pipeline()
            pipe.watch(redis_key)

            data = pipe.get(redis_key)
            if data is None:
                pipe.unwatch()
                return None

            pending = PendingAction.deserialize(data)
            if pending.is_expired(self.clock()):
                pipe.unwatch()
                self.redis.delete(redis_key)
                return None

            pipe.multi()
            pipe.delete(redis_key)
            pipe.execute()

            logger.debug("Consumed pending action %s", action_id)
            return pending

        except redis.WatchError:
            logger.debug("Concurrent consumption detected for action %s", action_id)
            return None
        except redis.RedisError as e:
            logger.error("Redis error confirming pending action %s: %s", action_id, e)
            return None
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error("Error deserializing pending action %s: %s", action_id, e)
            return None

    def cancel(self, action_id: str) -> bool:
        try:
            if self.get(action_id) is None:
                return False
            return self.redis.delete(self._make_redis_key(action_id)) > 0
        except redis.RedisError as e:
            logger.error("Redis error cancelling pending action %s: %s", action_id, e)
            return False

    def cleanup_expired(self) -> int:
        """Redis expires keys itself; kept for interface parity."""
        return 0
