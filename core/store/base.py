"""Storage interface for short-lived authorization records."""

from abc import ABC, abstractmethod
from datetime import datetime

from core.models import AuthCode, AuthRequest


class EphemeralStore(ABC):
    """Backend for AuthRequest and AuthCode records.

    Both record kinds expire within minutes and are read at most once, so a
    backend only needs insert, atomic read-and-delete and expiry cleanup.
    """

    @abstractmethod
    async def save_auth_request(self, auth_request: AuthRequest) -> None:
        """Persist a pending authorization request."""

    @abstractmethod
    async def pop_auth_request(
        self, request_id: str, now: datetime
    ) -> AuthRequest | None:
        """Atomically read and delete a request; expired requests read as None."""

    @abstractmethod
    async def save_auth_code(self, auth_code: AuthCode) -> None:
        """Persist an authorization code keyed by its hash."""

    @abstractmethod
    async def consume_auth_code(self, code_hash: str) -> AuthCode | None:
        """Atomically read and delete a code; at most one caller gets it."""

    @abstractmethod
    async def purge_expired(self, now: datetime) -> int:
        """Drop expired records; returns the number removed."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise if the backend is unreachable."""

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
