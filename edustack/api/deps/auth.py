# edustack/api/deps/auth.py - Bearer token authentication and role checks
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select
from edustack.core.config import settings
from edustack.core.db import get_db
from edustack.core.errors import AuthError, ForbiddenError
from edustack.core.security import token_manager
from edustack.models.user import User, UserRole
from uuid import UUID
from typing import Dict, Any, List, Optional
import secrets

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """
    Decode JWT and return user + claims.
    Returns: {"user": User, "claims": dict}
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Authentication token is missing")

    claims = token_manager.decode_token(credentials.credentials)

    user_id_str = claims.get("sub")
    if not user_id_str:
        raise AuthError("Token missing user ID")

    try:
        user_uuid = UUID(user_id_str)
    except ValueError:
        raise AuthError("Invalid user ID format")

    user = db.execute(
        select(User).options(selectinload(User.memberships)).where(User.id == user_uuid)
    ).scalar_one_or_none()

    if not user:
        raise AuthError("User not found")
    if not user.is_active:
        raise AuthError("Account deactivated")

    return {
        "user": user,
        "claims": claims
    }


def require_roles(required_roles: List[UserRole]):
    """
    Create a dependency that requires one of the roles in some school.
    Services narrow this to the schools an operation touches.
    Super admins always pass.
    Usage: ctx = Depends(require_roles([UserRole.ADMIN, UserRole.TEACHER]))
    """
    def role_checker(ctx=Depends(get_current_user)):
        user = ctx["user"]
        if not user.has_any_role(required_roles):
            raise ForbiddenError(
                f"Access denied. Required roles: {', '.join(UserRole(r).value for r in required_roles)}"
            )
        return ctx
    return role_checker


def require_super_admin(ctx=Depends(get_current_user)):
    """Require super admin role only"""
    if not ctx["user"].is_super_admin:
        raise ForbiddenError("Super admin access required")
    return ctx


require_admin = require_roles([UserRole.ADMIN])
require_teacher = require_roles([UserRole.ADMIN, UserRole.TEACHER])


def require_secure_header(
    x_header_secure_key: Optional[str] = Header(default=None, alias="x-header-secure-key")
) -> None:
    """Guard for platform bootstrap endpoints; closed when no key is configured"""
    expected = settings.EDUSTACK_SECURE_HEADER_KEY
    if not expected or not x_header_secure_key or not secrets.compare_digest(x_header_secure_key, expected):
        raise ForbiddenError("Secure header key is missing or invalid")
