import os
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import JWTError, jwt

SECRET_KEY = os.environ.get("SITE_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours


def verify_credentials(
    username: str,
    password: str,
    expected_username: str,
    expected_password: str,
) -> bool:
    """Constant-time comparison against the configured admin credentials."""
    if not expected_username or not expected_password:
        return False
    user_ok = secrets.compare_digest(username.encode(), expected_username.encode())
    pass_ok = secrets.compare_digest(password.encode(), expected_password.encode())
    return user_ok and pass_ok


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
    secret_key: str | None = None,
    algorithm: str = ALGORITHM,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode in the token
        expires_delta: Optional custom expiration delta
        now_utc: Current UTC time (for testing/determinism). Defaults to datetime.now(UTC).
        secret_key: Signing key. Defaults to SITE_SECRET_KEY.
        algorithm: Signing algorithm.
    """
    to_encode = data.copy()
    current_time = now_utc if now_utc is not None else datetime.now(UTC)

    if expires_delta:
        expire = current_time + expires_delta
    else:
        expire = current_time + timedelta(minutes=15)

    to_encode.update({"exp": expire})
    encoded_jwt: str = jwt.encode(to_encode, secret_key or SECRET_KEY, algorithm=algorithm)
    return encoded_jwt


def decode_access_token(
    token: str,
    secret_key: str | None = None,
    algorithm: str = ALGORITHM,
) -> dict[str, Any] | None:
    """Decode and verify a token. Returns None when invalid or expired."""
    try:
        payload = jwt.decode(token, secret_key or SECRET_KEY, algorithms=[algorithm])
        return cast(dict[str, Any], payload)
    except JWTError:
        return None
