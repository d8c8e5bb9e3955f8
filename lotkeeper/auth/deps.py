"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user   → decode the bearer JWT, load the user, return User
  require_role(...)  → restrict to specific roles
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.auth.jwt import decode_token
from lotkeeper.database import get_db
from lotkeeper.models.user import User, UserRole

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user from the database, and return it."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_token(credentials.credentials)
    subject = payload.get("sub")
    if not subject or payload.get("type") != "access":
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise _unauthorized("Invalid or expired token") from None

    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


# ── Role-based access control ───────────────────────────────

def require_role(*roles: UserRole):
    """Dependency factory: restrict to one or more roles.

    Usage:
        @router.post("/inbounds/{inbound_id}/reverse")
        async def reverse(user: User = Depends(require_role(UserRole.ADMINISTRATOR))):
            ...
    """
    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(r.value for r in roles)}",
            )
        return user

    return _check
