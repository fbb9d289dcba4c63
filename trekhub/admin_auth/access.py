"""
Admin access check: valid, unexpired session for an activated admin or owner.
Never raises; failures come back as AdminAccess(can_access=False, ...).
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from trekhub.admin_auth.db import get_session, get_user

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "owner")


class AdminUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: str = "user"
    is_activated: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AdminAccess(BaseModel):
    can_access: bool
    user: Optional[AdminUser] = None
    error: Optional[str] = None
    redirect_url: Optional[str] = None


def _denied(error: str, redirect_url: str) -> AdminAccess:
    return AdminAccess(can_access=False, error=error, redirect_url=redirect_url)


def _expired(expires_at: str, now: datetime) -> bool:
    try:
        expiry = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return True
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry < now


def can_user_access_admin(session_id: str, now: Optional[datetime] = None) -> AdminAccess:
    """
    Resolve session -> user and check activation and role.
    Redirect hints: /auth for session problems, /auth/activate for
    inactive accounts, / for non-admin roles.
    """
    now = now or datetime.now(timezone.utc)
    try:
        session = get_session(session_id)
        if not session:
            return _denied("Invalid session", "/auth")
        if _expired(session["expires_at"], now):
            return _denied("Session expired", "/auth")

        row = get_user(session["user_id"])
        if not row:
            return _denied("User not found", "/auth")
        user = AdminUser(**row)
    except sqlite3.Error as e:
        logger.error("Admin access check failed: %s", e)
        return _denied("Internal server error", "/auth")

    if not user.is_activated:
        return _denied("Account not activated", "/auth/activate")
    if user.role not in ADMIN_ROLES:
        return _denied("Insufficient permissions", "/")

    return AdminAccess(can_access=True, user=user)
