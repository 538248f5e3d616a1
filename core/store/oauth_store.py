"""Persistence facade used by the protocol handlers."""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from core.db.session import DatabaseSessionManager
from core.errors import StoreError
from core.models import AuthCode, AuthRequest, Base, OAuthClient, RefreshToken
from core.repositories.access_token_repository import AccessTokenRepository
from core.repositories.client_repository import ClientRepository
from core.repositories.refresh_token_repository import RefreshTokenRepository
from core.security.issued import IssuedTokens
from core.security.utils import as_utc, utcnow
from core.store.base import EphemeralStore
from core.store.sql_store import SqlEphemeralStore
from core.utils.logging import get_logger

logger = get_logger(__name__)

MintTokens = Callable[[RefreshToken], IssuedTokens]


class OAuthStore:
    """Durable SQL records plus a pluggable backend for short-lived ones.

    Every call is bounded by `timeout`; writes are shielded so a caller
    that goes away mid-request does not cancel a half-done write.
    """

    def __init__(
        self,
        db_manager: DatabaseSessionManager,
        ephemeral: EphemeralStore | None = None,
        *,
        timeout: float = 5.0,
    ) -> None:
        """Constructor."""
        self.db_manager = db_manager
        self.ephemeral = ephemeral or SqlEphemeralStore(db_manager)
        self.timeout = timeout

    @property
    def uses_sql_ephemeral(self) -> bool:
        """True when auth requests and codes live in the database."""
        return isinstance(self.ephemeral, SqlEphemeralStore)

    async def _run(self, op: str, coro: Awaitable[Any], *, write: bool = False) -> Any:
        task = asyncio.ensure_future(coro)
        try:
            return await asyncio.wait_for(
                asyncio.shield(task) if write else task, self.timeout
            )
        except asyncio.TimeoutError as err:
            logger.error("store.timeout", op=op, timeout=self.timeout)
            raise StoreError(f"{op} timed out") from err
        except (SQLAlchemyError, RedisError, OSError) as err:
            logger.error("store.failure", op=op, error=str(err))
            raise StoreError(f"{op} failed: {err}") from err

    async def init_schema(self) -> None:
        """Create missing tables."""

        async def _create() -> None:
            async with self.db_manager.connect() as conn:
                await self.db_manager.create_all(conn, Base)

        await self._run("init_schema", _create(), write=True)

    # Clients

    async def save_client(self, client: OAuthClient) -> None:
        """Insert a newly registered client."""

        async def _save() -> None:
            async with self.db_manager.session() as db:
                await ClientRepository(db).create(client)
                await db.commit()

        await self._run("save_client", _save(), write=True)

    async def get_client(self, client_id: str) -> OAuthClient | None:
        """Look up a client; None when unknown."""

        async def _get() -> OAuthClient | None:
            async with self.db_manager.session() as db:
                return await ClientRepository(db).get_by_client_id(client_id)

        return await self._run("get_client", _get())

    # Authorization requests and codes

    async def save_auth_request(self, auth_request: AuthRequest) -> None:
        """Persist a pending authorization request."""
        await self._run(
            "save_auth_request",
            self.ephemeral.save_auth_request(auth_request),
            write=True,
        )

    async def pop_auth_request(self, request_id: str) -> AuthRequest | None:
        """Read-once access to a pending request; expired reads as None."""
        return await self._run(
            "pop_auth_request",
            self.ephemeral.pop_auth_request(request_id, utcnow()),
            write=True,
        )

    async def save_auth_code(self, auth_code: AuthCode) -> None:
        """Persist an authorization code by hash."""
        await self._run(
            "save_auth_code", self.ephemeral.save_auth_code(auth_code), write=True
        )

    async def consume_auth_code(self, code_hash: str) -> AuthCode | None:
        """Atomically take the code; a concurrent second caller gets None."""
        return await self._run(
            "consume_auth_code",
            self.ephemeral.consume_auth_code(code_hash),
            write=True,
        )

    # Tokens

    async def save_token_pair(self, issued: IssuedTokens) -> None:
        """Persist access and refresh records in one transaction."""

        async def _save() -> None:
            async with self.db_manager.session() as db:
                await AccessTokenRepository(db).create(issued.access_record)
                await RefreshTokenRepository(db).create(issued.refresh_record)
                await db.commit()

        await self._run("save_token_pair", _save(), write=True)

    async def rotate_refresh_token(
        self, token_hash: str, client_id: str, mint: MintTokens
    ) -> IssuedTokens | None:
        """Revoke a live refresh token and persist its successors atomically.

        `mint` receives the revoked record and returns the replacement
        tokens; nothing is committed unless both steps succeed. Returns
        None when the token is unknown, expired, revoked or owned by a
        different client.
        """

        async def _rotate() -> IssuedTokens | None:
            now = utcnow()
            async with self.db_manager.session() as db:
                old = await RefreshTokenRepository(db).revoke_valid(
                    token_hash, client_id, now
                )
                if old is None:
                    await db.rollback()
                    return None
                issued = mint(old)
                await AccessTokenRepository(db).create(issued.access_record)
                await RefreshTokenRepository(db).create(issued.refresh_record)
                await db.commit()
                return issued

        return await self._run("rotate_refresh_token", _rotate(), write=True)

    async def revoke_access_token(self, jti: str) -> bool:
        """Mark an access token revoked by jti."""

        async def _revoke() -> bool:
            async with self.db_manager.session() as db:
                revoked = await AccessTokenRepository(db).revoke(jti, utcnow())
                await db.commit()
                return revoked

        return await self._run("revoke_access_token", _revoke(), write=True)

    async def is_access_token_revoked(self, jti: str) -> bool:
        """True only for a known jti with a revocation timestamp."""

        async def _check() -> bool:
            async with self.db_manager.session() as db:
                record = await AccessTokenRepository(db).get_by_jti(jti)
            return record is not None and record.revoked_at is not None

        return await self._run("is_access_token_revoked", _check())

    # Maintenance

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Drop expired authorization requests and codes."""
        return await self._run(
            "purge_expired",
            self.ephemeral.purge_expired(as_utc(now) if now else utcnow()),
            write=True,
        )

    async def ping(self) -> None:
        """Raise StoreError unless every backend answers."""
        await self._run("ping", self.db_manager.ping())
        await self._run("ping", self.ephemeral.ping())

    async def close(self) -> None:
        """Release the ephemeral backend and the database engine."""
        await self.ephemeral.close()
        await self.db_manager.close()
