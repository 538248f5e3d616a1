"""RefreshToken repository."""

from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import RefreshToken


class RefreshTokenRepository:
    """Repository for refresh tokens."""

    def __init__(self, db: AsyncSession):
        """Constructor."""
        self.db = db

    async def create(self, refresh_token: RefreshToken) -> RefreshToken:
        """Add a new refresh token."""
        self.db.add(refresh_token)
        await self.db.flush()
        return refresh_token

    async def revoke_valid(
        self, token_hash: str, client_id: str, now: datetime
    ) -> RefreshToken | None:
        """Revoke a live token owned by `client_id` and return its prior state."""
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.client_id == client_id,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .values(revoked_at=now)
            .returning(*RefreshToken.__table__.c)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        row = res.first()
        return RefreshToken(**row._mapping) if row is not None else None
