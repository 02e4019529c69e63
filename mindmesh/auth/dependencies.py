"""FastAPI dependencies for authentication."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from mindmesh.auth.jwt import decode_access_token

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Authenticated caller, taken from the token claims."""

    id: str
    email: Optional[str] = None


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Get the current user from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return CurrentUser(id=payload["sub"], email=payload.get("email"))


def require_same_user(body_user_id: Optional[str], user: CurrentUser) -> None:
    """Reject request bodies that name a different user than the token.

    Raises:
        HTTPException: 403 on mismatch
    """
    if body_user_id and body_user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="user_id does not match the authenticated user",
        )
