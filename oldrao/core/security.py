"""
Session identity and password hashing.

The signed session cookie (Starlette SessionMiddleware) carries
``{"id", "name", "role"}`` for a logged-in user. Route handlers use the
dependencies below to read it and enforce roles.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import bcrypt
from fastapi import HTTPException, Request

from oldrao.core.config import get_settings
from oldrao.models import User, UserRole

logger = logging.getLogger(__name__)

SESSION_KEY = "user"


# =============================================================================
# PASSWORDS
# =============================================================================

def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt (input truncated to bcrypt's 72 bytes)."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or get_settings().bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# =============================================================================
# SESSION IDENTITY
# =============================================================================

@dataclass(frozen=True)
class SessionUser:
    id: int
    name: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def login_session(request: Request, user: User) -> SessionUser:
    """Store ``user`` in the session cookie."""
    request.session[SESSION_KEY] = {
        "id": user.id,
        "name": user.name,
        "role": user.role.value,
    }
    return SessionUser(id=user.id, name=user.name, role=user.role)


def logout_session(request: Request) -> None:
    request.session.clear()


def get_session_user(request: Request) -> Optional[SessionUser]:
    """Dependency: the logged-in user, or None for guests."""
    data = request.session.get(SESSION_KEY)
    if not data:
        return None
    try:
        return SessionUser(id=int(data["id"]), name=data["name"], role=UserRole(data["role"]))
    except (KeyError, TypeError, ValueError):
        logger.warning("Discarding malformed session payload")
        request.session.pop(SESSION_KEY, None)
        return None


def require_login(request: Request) -> SessionUser:
    """Dependency: any logged-in user."""
    user = get_session_user(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Login required")
    return user


def require_admin(request: Request) -> SessionUser:
    """Dependency: logged-in user with the admin role."""
    user = require_login(request)
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied - admins only")
    return user
