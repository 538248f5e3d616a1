"""AuthRequest repository."""

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import AuthRequest


class AuthRequestRepository:
    """Repository for pending authorization requests."""

    def __init__(self, db: AsyncSession):
        """Constructor."""
        self.db = db

    async def create(self, auth_request: AuthRequest) -> AuthRequest:
        """Add a new authorization request."""
        self.db.add(auth_request)
        await self.db.flush()
        return auth_request

    async def pop(self, request_id: str) -> AuthRequest | None:
        """Delete and return the request in one statement."""
        stmt = (
            delete(AuthRequest)
            .where(AuthRequest.request_id == request_id)
            .returning(*AuthRequest.__table__.c)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        row = res.first()
        return AuthRequest(**row._mapping) if row is not None else None

    async def delete_expired(self, now: datetime) -> int:
        """Remove requests past their expiry."""
        stmt = (
            delete(AuthRequest)
            .where(AuthRequest.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        return res.rowcount or 0
