"""Schemas for the authorization endpoint."""

from pydantic import BaseModel


class AuthorizeCompleteIn(BaseModel):
    """Body posted by the login page once the user has signed in."""

    request_id: str = ""
    clerk_token: str = ""


class AuthorizeCompleteOut(BaseModel):
    """Where the browser goes next."""

    redirect_to: str
