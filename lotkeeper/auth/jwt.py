"""JWT token creation and decoding.

Token claims:
  - sub:   user ID (string)
  - role:  user role string
  - type:  "access"
  - exp:   expiry timestamp

Tokens are issued by the user-management service that shares
``settings.secret_key``; this API only needs to verify them.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from lotkeeper.config import settings

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
