"""Rate limiting middleware using slowapi."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from ..config import settings
from ..core.security import decode_access_token
from .auth import bearer_token


def rate_limit_key(request: Request) -> str:
    """Limit per authenticated user, falling back to the client address."""
    token = request.cookies.get(settings.auth_cookie_name) or bearer_token(
        request.headers.get("authorization")
    )
    email = decode_access_token(token)
    return f"user:{email}" if email else get_remote_address(request)


# Initialize rate limiter
limiter = Limiter(
    key_func=rate_limit_key,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)
