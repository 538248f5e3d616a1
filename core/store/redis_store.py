"""Redis backend for authorization requests and codes."""

import math
from datetime import datetime

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from core.consts import REDIS_AUTH_CODE_PREFIX, REDIS_AUTH_REQUEST_PREFIX
from core.errors import StoreError
from core.models import AuthCode, AuthRequest
from core.security.utils import as_utc, is_expired, utcnow
from core.store.base import EphemeralStore
from core.utils.json import json_dumps, safe_json_loads
from core.utils.logging import get_logger

logger = get_logger(__name__)

_AUTH_REQUEST_FIELDS = tuple(c.name for c in AuthRequest.__table__.c)
_AUTH_CODE_FIELDS = tuple(c.name for c in AuthCode.__table__.c)


def _dump(record, fields: tuple[str, ...]) -> bytes:
    return json_dumps({name: getattr(record, name) for name in fields})


def _load(cls, raw: bytes | str | None, fields: tuple[str, ...]):
    if raw is None:
        return None
    data = safe_json_loads(raw)
    if not data or any(name not in data for name in fields):
        logger.warning("redis.record_malformed", record=cls.__name__)
        return None
    data["created_at"] = datetime.fromisoformat(data["created_at"])
    data["expires_at"] = datetime.fromisoformat(data["expires_at"])
    return cls(**{name: data[name] for name in fields})


def _ttl_seconds(expires_at: datetime) -> int:
    return max(1, math.ceil((as_utc(expires_at) - utcnow()).total_seconds()))


class RedisEphemeralStore(EphemeralStore):
    """Ephemeral records with native TTL and GETDEL consumption."""

    def __init__(self, redis: aioredis.Redis) -> None:
        """Constructor."""
        self.redis = redis

    @classmethod
    def from_url(cls, url: str, *, max_connections: int = 50, socket_timeout=None):
        """Build a pooled client from a redis:// URL."""
        pool = aioredis.ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
        )
        return cls(aioredis.Redis(connection_pool=pool))

    async def save_auth_request(self, auth_request: AuthRequest) -> None:
        """Store the request until it expires."""
        key = f"{REDIS_AUTH_REQUEST_PREFIX}{auth_request.request_id}"
        value = _dump(auth_request, _AUTH_REQUEST_FIELDS)
        try:
            await self.redis.set(key, value, ex=_ttl_seconds(auth_request.expires_at))
        except RedisError as err:
            raise StoreError(f"redis save_auth_request failed: {err}") from err

    async def pop_auth_request(
        self, request_id: str, now: datetime
    ) -> AuthRequest | None:
        """GETDEL the request; expired leftovers read as None."""
        try:
            raw = await self.redis.getdel(f"{REDIS_AUTH_REQUEST_PREFIX}{request_id}")
        except RedisError as err:
            raise StoreError(f"redis pop_auth_request failed: {err}") from err
        auth_request = _load(AuthRequest, raw, _AUTH_REQUEST_FIELDS)
        if auth_request is None or is_expired(auth_request.expires_at, now):
            return None
        return auth_request

    async def save_auth_code(self, auth_code: AuthCode) -> None:
        """Store the code hash until it expires."""
        key = f"{REDIS_AUTH_CODE_PREFIX}{auth_code.code_hash}"
        value = _dump(auth_code, _AUTH_CODE_FIELDS)
        try:
            await self.redis.set(key, value, ex=_ttl_seconds(auth_code.expires_at))
        except RedisError as err:
            raise StoreError(f"redis save_auth_code failed: {err}") from err

    async def consume_auth_code(self, code_hash: str) -> AuthCode | None:
        """GETDEL the code so only one exchange can see it."""
        try:
            raw = await self.redis.getdel(f"{REDIS_AUTH_CODE_PREFIX}{code_hash}")
        except RedisError as err:
            raise StoreError(f"redis consume_auth_code failed: {err}") from err
        return _load(AuthCode, raw, _AUTH_CODE_FIELDS)

    async def purge_expired(self, now: datetime) -> int:
        """Keys expire on their own."""
        return 0

    async def ping(self) -> None:
        """Raise StoreError if Redis does not answer."""
        try:
            await self.redis.ping()
        except RedisError as err:
            raise StoreError(f"redis ping failed: {err}") from err

    async def close(self) -> None:
        """Close the client and its pool."""
        await self.redis.aclose()
