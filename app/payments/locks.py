"""
Concurrency control for payout commands.

Two layers serialize work on a single payout:

1. DistributedLock (Redis, via django-redis): held for the whole command,
   including the provider call, so two operators cannot both dispatch the
   same payout to the provider.
2. check_version (database): row lock plus version comparison at write
   time, so a decision made on a stale read is refused even if the Redis
   lock expired.

Usage:
    from payments.locks import DistributedLock, check_version

    with DistributedLock(f"payout:transition:{payout_id}", ttl=60):
        payout = Payout.objects.get(pk=payout_id)
        ...provider call...
        with transaction.atomic():
            payout = check_version(Payout, payout_id, payout.version)
            payout.reject(reason)
            payout.save()
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, TypeVar

from django.db import models, transaction

from django_redis import get_redis_connection

from core.exceptions import NotFoundError
from payments.exceptions import LockAcquisitionError, StaleRecordError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=models.Model)


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis lock with TTL and token ownership.

    Args:
        key: Lock name, stored as "lock:{key}"
        ttl: Seconds before Redis drops the lock on its own
        blocking: Wait for the lock instead of failing immediately
        timeout: Maximum wait when blocking

    Raises:
        LockAcquisitionError: On timeout (blocking) or contention (non-blocking)
    """

    # Delete only if we still own the key
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def _try_acquire(self, redis: Redis) -> bool:
        return bool(redis.set(self.key, self._token, nx=True, ex=self.ttl))

    def acquire(self) -> bool:
        self._token = uuid.uuid4().hex
        redis = self._get_redis()

        if not self.blocking:
            if self._try_acquire(redis):
                return True
            self._token = None
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )

        deadline = time.monotonic() + self.timeout
        while time.monotonic() < deadline:
            if self._try_acquire(redis):
                return True
            time.sleep(self.POLL_INTERVAL)

        self._token = None
        logger.warning(
            "Lock acquisition timed out",
            extra={"key": self.key, "timeout": self.timeout},
        )
        raise LockAcquisitionError(
            f"Failed to acquire lock '{self.key}' within {self.timeout}s",
            details={"key": self.key, "timeout": self.timeout},
        )

    def release(self) -> bool:
        """Release if held by us; safe to call more than once."""
        if self._token is None:
            return False
        result = self._get_redis().eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False


# =============================================================================
# Optimistic Locking
# =============================================================================


def check_version(model_class: type[T], pk: Any, expected_version: int) -> T:
    """
    Row-lock a record and verify it is still at expected_version.

    Call inside transaction.atomic(); the row lock lasts until the outer
    transaction ends.

    Raises:
        NotFoundError: No record with that pk
        StaleRecordError: Record exists at a different version
    """
    with transaction.atomic():
        instance = (
            model_class.objects.select_for_update()
            .filter(pk=pk, version=expected_version)
            .first()
        )
        if instance is not None:
            return instance

        model_name = model_class.__name__
        current_version = (
            model_class.objects.filter(pk=pk).values_list("version", flat=True).first()
        )
        if current_version is None:
            raise NotFoundError(
                f"{model_name} {pk} not found",
                error_code=f"{model_name.upper()}_NOT_FOUND",
                details={"pk": str(pk)},
            )
        raise StaleRecordError(
            f"{model_name} {pk} has been modified "
            f"(expected version {expected_version}, current {current_version})",
            details={
                "pk": str(pk),
                "expected_version": expected_version,
                "current_version": current_version,
            },
        )


__all__ = [
    "DistributedLock",
    "check_version",
]
