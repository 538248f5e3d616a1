"""AccessToken repository."""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import AccessToken


class AccessTokenRepository:
    """Repository for the access token revocation index."""

    def __init__(self, db: AsyncSession):
        """Constructor."""
        self.db = db

    async def create(self, access_token: AccessToken) -> AccessToken:
        """Add a new access token record."""
        self.db.add(access_token)
        await self.db.flush()
        return access_token

    async def get_by_jti(self, jti: str) -> AccessToken | None:
        """Get an access token record by jti."""
        stmt = select(AccessToken).where(AccessToken.jti == jti)
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def revoke(self, jti: str, now: datetime) -> bool:
        """Mark the token revoked; False when unknown or already revoked."""
        stmt = (
            update(AccessToken)
            .where(AccessToken.jti == jti, AccessToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        return bool(res.rowcount)
