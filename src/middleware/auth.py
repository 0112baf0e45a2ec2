"""Authentication dependencies resolving the caller's identity."""

from typing import Mapping, Optional
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from ..config import settings
from ..core.security import decode_access_token

auth_scheme = HTTPBearer(auto_error=False)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def extract_socket_token(
    cookies: Mapping[str, str],
    query_params: Mapping[str, str],
    headers: Mapping[str, str],
) -> Optional[str]:
    """
    Find the credential presented on a WebSocket handshake.
    Checked in order: auth cookie, ``token`` query parameter, bearer header.
    """
    return (
        cookies.get(settings.auth_cookie_name)
        or query_params.get("token")
        or bearer_token(headers.get("authorization"))
        or None
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
) -> dict:
    """
    Resolve the authenticated user from the auth cookie or a Bearer token.
    Raises 401 if neither yields a valid identity.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token and credentials and credentials.scheme.lower() == "bearer":
        token = credentials.credentials

    email = decode_access_token(token)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"email": email}
