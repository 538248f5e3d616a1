"""SQL backend for authorization requests and codes."""

from datetime import datetime

from core.db.session import DatabaseSessionManager
from core.models import AuthCode, AuthRequest
from core.repositories.auth_code_repository import AuthCodeRepository
from core.repositories.auth_request_repository import AuthRequestRepository
from core.security.utils import is_expired
from core.store.base import EphemeralStore


class SqlEphemeralStore(EphemeralStore):
    """Ephemeral records kept in the durable database."""

    def __init__(self, db_manager: DatabaseSessionManager) -> None:
        """Constructor."""
        self.db_manager = db_manager

    async def save_auth_request(self, auth_request: AuthRequest) -> None:
        """Persist a pending authorization request."""
        async with self.db_manager.session() as db:
            await AuthRequestRepository(db).create(auth_request)
            await db.commit()

    async def pop_auth_request(
        self, request_id: str, now: datetime
    ) -> AuthRequest | None:
        """Delete the request and return it unless expired."""
        async with self.db_manager.session() as db:
            auth_request = await AuthRequestRepository(db).pop(request_id)
            await db.commit()
        if auth_request is None or is_expired(auth_request.expires_at, now):
            return None
        return auth_request

    async def save_auth_code(self, auth_code: AuthCode) -> None:
        """Persist an authorization code."""
        async with self.db_manager.session() as db:
            await AuthCodeRepository(db).create(auth_code)
            await db.commit()

    async def consume_auth_code(self, code_hash: str) -> AuthCode | None:
        """Delete the code and return it; expiry is checked by the caller."""
        async with self.db_manager.session() as db:
            auth_code = await AuthCodeRepository(db).consume(code_hash)
            await db.commit()
        return auth_code

    async def purge_expired(self, now: datetime) -> int:
        """Delete expired requests and codes."""
        async with self.db_manager.session() as db:
            removed = await AuthRequestRepository(db).delete_expired(now)
            removed += await AuthCodeRepository(db).delete_expired(now)
            await db.commit()
        return removed

    async def ping(self) -> None:
        """Shares the durable database; checked by the owning store."""

    async def close(self) -> None:
        """Engine lifecycle belongs to the owning store."""
