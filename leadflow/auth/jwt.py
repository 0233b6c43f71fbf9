"""
JWT token handling.

Tokens are issued by the identity service; this service only verifies
them. Accepted from an Authorization: Bearer header or the access_token
cookie set by the dashboard.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from leadflow.config import settings

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Used by scripts and tests; production tokens come from the login service.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expire_hours)

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "type": TOKEN_TYPE,
        "iat": datetime.now(timezone.utc),
    }

    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """
    Verify and decode a JWT token.

    Returns:
        {"user_id": int} or None if the token is invalid/expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[ALGORITHM],
        )
    except JWTError:
        return None

    if payload.get("type") != TOKEN_TYPE:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    return {"user_id": int(user_id)}


def get_token_from_request(request) -> Optional[str]:
    """Extract the token from the Authorization header, falling back to the cookie."""
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()
    return request.cookies.get("access_token")
