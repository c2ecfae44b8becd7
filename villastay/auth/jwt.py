"""JWT access token creation and verification."""

from datetime import datetime, timedelta, timezone

from jose import jwt

from villastay.config import settings

ROLES = ("user", "host", "admin")


def create_access_token(subject: str, role: str = "user", expires_delta: timedelta | None = None) -> str:
    """Create an access token for a user, host or admin.

    Args:
        subject: The user's (or host's) UUID as a string.
        role: One of ``user``, ``host`` or ``admin``.
        expires_delta: Custom expiration duration. Defaults to
            ``settings.jwt_access_token_expire_minutes`` minutes.

    Returns:
        Encoded JWT string.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    to_encode = {"sub": subject, "role": role, "exp": expire, "iat": now, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
