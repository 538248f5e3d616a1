"""OAuth persistence models."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, MetaData, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonList = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""

    metadata = MetaData()


class OAuthClient(Base):
    """Registered OAuth client."""

    __tablename__ = "oauth_clients"
    client_id: Mapped[str] = mapped_column(Text, primary_key=True)
    client_secret_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    redirect_uris: Mapped[list[str]] = mapped_column(JsonList, nullable=False)
    grant_types: Mapped[list[str]] = mapped_column(JsonList, nullable=False)
    response_types: Mapped[list[str]] = mapped_column(JsonList, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default="")
    token_endpoint_auth_method: Mapped[str] = mapped_column(
        Text, nullable=False, default="none"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, onupdate=func.now()
    )


class AuthRequest(Base):
    """Pending authorization awaiting login."""

    __tablename__ = "oauth_auth_requests"
    __table_args__ = (Index("idx_oauth_auth_requests_expires", "expires_at"),)
    request_id: Mapped[str] = mapped_column(Text, primary_key=True)
    client_id: Mapped[str] = mapped_column(Text, nullable=False)
    redirect_uri: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default="")
    state: Mapped[str] = mapped_column(Text, nullable=False, default="")
    response_type: Mapped[str] = mapped_column(Text, nullable=False, default="code")
    code_challenge: Mapped[str] = mapped_column(Text, nullable=False, default="")
    code_challenge_method: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class AuthCode(Base):
    """Single-use authorization code, stored by hash."""

    __tablename__ = "oauth_auth_codes"
    __table_args__ = (
        Index("idx_oauth_auth_codes_client", "client_id"),
        Index("idx_oauth_auth_codes_expires", "expires_at"),
    )
    code_hash: Mapped[str] = mapped_column(Text, primary_key=True)
    client_id: Mapped[str] = mapped_column(Text, nullable=False)
    redirect_uri: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default="")
    code_challenge: Mapped[str] = mapped_column(Text, nullable=False, default="")
    code_challenge_method: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class RefreshToken(Base):
    """Refresh token, stored by hash."""

    __tablename__ = "oauth_refresh_tokens"
    __table_args__ = (
        Index("idx_oauth_refresh_tokens_client", "client_id"),
        Index("idx_oauth_refresh_tokens_user", "user_id"),
    )
    token_hash: Mapped[str] = mapped_column(Text, primary_key=True)
    client_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class AccessToken(Base):
    """Issued access token, indexed by jti for revocation."""

    __tablename__ = "oauth_access_tokens"
    __table_args__ = (
        Index("idx_oauth_access_tokens_client", "client_id"),
        Index("idx_oauth_access_tokens_user", "user_id"),
    )
    jti: Mapped[str] = mapped_column(Text, primary_key=True)
    client_id: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
