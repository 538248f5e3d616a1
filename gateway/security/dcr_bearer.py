"""Bearer guard for dynamic client registration."""

import hmac

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.consts import DcrMode
from gateway.config import Settings
from gateway.deps import get_settings

_security = HTTPBearer(auto_error=False)


def require_dcr_access(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    settings: Settings = Depends(get_settings),
) -> bool:
    """In protected mode, require the configured registration token."""
    if settings.DCR_MODE != DcrMode.PROTECTED:
        return True
    token = credentials.credentials if credentials else ""
    expected = settings.DCR_ACCESS_TOKEN
    if not token or not expected or not hmac.compare_digest(token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return True
