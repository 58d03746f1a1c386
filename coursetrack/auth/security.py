"""Password hashing and access token handling.

Tokens are issued by the identity provider in front of this service; here
they are only verified. ``create_access_token`` mints tokens with the same
claims for scripts and tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError
from jose import JWTError, jwt

from coursetrack.config.settings import get_settings


# Argon2id, OWASP parameters
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,
    parallelism=1,
    hash_len=32,
    salt_len=16,
)

# Claims a token must carry to identify a caller
REQUIRED_CLAIMS = ("sub", "email", "role")


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against its stored hash."""
    try:
        return _password_hasher.verify(password_hash, password)
    except VerificationError:
        return False


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token.

    Args:
        data: Claims, typically {"sub": user_id, "email": email, "role": role}
        expires_delta: Token lifetime (default from settings)

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    now = datetime.now(UTC)

    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now
            + (
                expires_delta
                or timedelta(minutes=settings.auth_access_token_expire_minutes)
            ),
            "iat": now,
            "type": "access",
        }
    )
    return jwt.encode(
        to_encode, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates signature, expiry, token type and the presence of the caller
    claims.

    Raises:
        JWTError: If the token is not acceptable
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    missing = [claim for claim in REQUIRED_CLAIMS if not payload.get(claim)]
    if missing:
        msg = f"Token missing claims: {', '.join(missing)}"
        raise JWTError(msg)

    return payload
