"""OTP Caches — ephemeral email → (code, created_at) stores with TTL expiry.

Invariants:
    - set() is set-if-absent: returns False while an unexpired code exists
    - Expired entries are invisible to get() (no background sweep needed)
    - Redis failures surface as StorageUnavailableError

Design Decisions:
    - Redis value format "{code}:{created_at_epoch}" under key "otp:{email}", written with SET NX EX
    - InMemoryOtpCache serves single-process development and tests (REDIS_URL empty)
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone

import redis.asyncio as redis
from redis.exceptions import RedisError

from parley.core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

KEY_PREFIX = "otp:"


def _encode(code: str, created_at: datetime) -> str:
    return f"{code}:{int(created_at.timestamp())}"


def _decode(raw: str) -> tuple[str, datetime] | None:
    code, sep, created = raw.partition(":")
    if not sep:
        logger.warning("Discarding malformed OTP cache entry")
        return None
    try:
        created_at = datetime.fromtimestamp(int(created), tz=timezone.utc)
    except ValueError:
        created_at = datetime.fromtimestamp(0, tz=timezone.utc)
    return code, created_at


class RedisOtpCache:
    """OTP cache backed by Redis key expiry."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisOtpCache":
        return cls(redis.from_url(url, decode_responses=True))

    async def set(self, email: str, code: str, ttl_seconds: int) -> bool:
        value = _encode(code, datetime.now(timezone.utc))
        try:
            stored = await self.client.set(
                KEY_PREFIX + email, value, ex=ttl_seconds, nx=True,
            )
        except RedisError as e:
            logger.error(f"Redis error storing OTP: {e}")
            raise StorageUnavailableError("OTP cache unreachable", "set")
        return bool(stored)

    async def get(self, email: str) -> tuple[str, datetime] | None:
        try:
            raw = await self.client.get(KEY_PREFIX + email)
        except RedisError as e:
            logger.error(f"Redis error reading OTP: {e}")
            raise StorageUnavailableError("OTP cache unreachable", "get")
        if raw is None:
            return None
        return _decode(raw)

    async def delete(self, email: str) -> None:
        try:
            await self.client.delete(KEY_PREFIX + email)
        except RedisError as e:
            logger.error(f"Redis error deleting OTP: {e}")
            raise StorageUnavailableError("OTP cache unreachable", "delete")

    async def close(self) -> None:
        await self.client.aclose()


class InMemoryOtpCache:
    """Process-local OTP cache. Expiry uses an injectable monotonic clock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, datetime, float]] = {}

    async def set(self, email: str, code: str, ttl_seconds: int) -> bool:
        if self._live(email) is not None:
            return False
        self._entries[email] = (
            code, datetime.now(timezone.utc), self._clock() + ttl_seconds,
        )
        return True

    async def get(self, email: str) -> tuple[str, datetime] | None:
        entry = self._live(email)
        if entry is None:
            return None
        code, created_at, _ = entry
        return code, created_at

    async def delete(self, email: str) -> None:
        self._entries.pop(email, None)

    def _live(self, email: str) -> tuple[str, datetime, float] | None:
        entry = self._entries.get(email)
        if entry is None:
            return None
        if entry[2] <= self._clock():
            del self._entries[email]
            return None
        return entry
