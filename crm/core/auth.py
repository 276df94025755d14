"""JWT access tokens for sales accounts."""

from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from crm.settings import settings

DEFAULT_SECRET = "dev-secret-key-change-in-production"


def ensure_secure_secret() -> None:
    """Refuse to run in production with the development signing key."""
    if settings.environment == "production" and settings.jwt_secret_key == DEFAULT_SECRET:
        raise RuntimeError(
            "SECURITY ERROR: JWT_SECRET_KEY environment variable must be set in production. "
            "Cannot use default secret key."
        )


def create_access_token(
    subject: str, role: str, expires_delta: timedelta | None = None
) -> str:
    """Create a signed access token.

    Args:
        subject: Sales account ID, stored as ``sub``
        role: Account role, stored as ``role``
        expires_delta: Optional lifetime; defaults to the configured one

    Returns:
        Encoded JWT token
    """
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    claims: dict[str, Any] = {"sub": subject, "role": role, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and verify an access token; None if invalid or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
