"""Schemas for dynamic client registration."""

from pydantic import BaseModel, ConfigDict, Field


class ClientRegistrationIn(BaseModel):
    """Registration request metadata."""

    model_config = ConfigDict(extra="ignore")

    redirect_uris: list[str] = Field(default_factory=list)
    client_name: str | None = None
    grant_types: list[str] | None = None
    response_types: list[str] | None = None
    token_endpoint_auth_method: str | None = None
    scope: str | None = None


class ClientRegistrationOut(BaseModel):
    """Registration response; client_secret appears only when issued."""

    client_id: str
    client_id_issued_at: int
    client_secret_expires_at: int = 0
    client_secret: str | None = None
    client_name: str | None = None
    redirect_uris: list[str]
    grant_types: list[str]
    response_types: list[str]
    token_endpoint_auth_method: str
    scope: str | None = None
