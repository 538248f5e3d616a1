"""OAuthClient repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import OAuthClient


class ClientRepository:
    """Repository for registered clients."""

    def __init__(self, db: AsyncSession):
        """Constructor."""
        self.db = db

    async def create(self, client: OAuthClient) -> OAuthClient:
        """Add a new client."""
        self.db.add(client)
        await self.db.flush()
        return client

    async def get_by_client_id(self, client_id: str) -> OAuthClient | None:
        """Get a client by its id."""
        stmt = select(OAuthClient).where(OAuthClient.client_id == client_id)
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()
