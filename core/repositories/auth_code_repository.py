"""AuthCode repository."""

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import AuthCode


class AuthCodeRepository:
    """Repository for authorization codes."""

    def __init__(self, db: AsyncSession):
        """Constructor."""
        self.db = db

    async def create(self, auth_code: AuthCode) -> AuthCode:
        """Add a new authorization code."""
        self.db.add(auth_code)
        await self.db.flush()
        return auth_code

    async def consume(self, code_hash: str) -> AuthCode | None:
        """Delete and return the code; only one caller can win."""
        stmt = (
            delete(AuthCode)
            .where(AuthCode.code_hash == code_hash)
            .returning(*AuthCode.__table__.c)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        row = res.first()
        return AuthCode(**row._mapping) if row is not None else None

    async def delete_expired(self, now: datetime) -> int:
        """Remove codes past their expiry."""
        stmt = (
            delete(AuthCode)
            .where(AuthCode.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        return res.rowcount or 0
