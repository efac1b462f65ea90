"""
Auth Module - Dependencies
===========================
FastAPI dependencies for user authentication and authorization.
These are injected into route handlers via Depends().

Identity comes from an `Authorization: Bearer <jwt>` header.
Role checks go through has_role(), a plain capability check that each
protected route applies explicitly via allowed_to(...).
"""

from typing import Iterable, Optional

from fastapi import Request, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import AuthenticationError, AuthorizationError
from common.helpers import as_utc, safe_int
from common.security import decode_token
from modules.user.models import User, UserRole


def get_bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def protect(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolve the current user from the bearer token.
    Raises 401 when the token is missing/invalid, the user is gone or
    deactivated, or the password was changed after the token was issued.
    """
    token = get_bearer_token(request)
    if not token:
        raise AuthenticationError("You are not logged in. Please log in to access this route.")

    payload = decode_token(token)
    user_id = safe_int(payload.get("sub"))
    user = db.query(User).filter(User.id == user_id).first() if user_id else None
    if not user or not user.active:
        raise AuthenticationError("The user that belongs to this token no longer exists.")

    if user.password_changed_at:
        changed_ts = int(as_utc(user.password_changed_at).timestamp())
        if changed_ts > int(payload.get("iat", 0)):
            raise AuthenticationError("User recently changed password. Please log in again.")

    return user


def has_role(user: Optional[User], roles: Iterable[str]) -> bool:
    """Capability check: is this user's role one of `roles`?"""
    if user is None:
        return False
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}
    return user.role in allowed


def allowed_to(*roles):
    """
    Factory: returns a dependency that requires an authenticated user whose
    role is in `roles`. Raises 403 otherwise.

    Usage:
      user=Depends(allowed_to(UserRole.ADMIN, UserRole.MANAGER))
    """
    def dependency(user: User = Depends(protect)) -> User:
        if not has_role(user, roles):
            raise AuthorizationError("You are not allowed to access this route")
        return user

    return dependency


# Shorthands used across route modules
STAFF = (UserRole.ADMIN, UserRole.MANAGER)
