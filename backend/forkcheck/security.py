"""
Security module for password hashing, JWT issuing/verification and role guards.

Architecture:
- Users live in the local store; the JWT carries the user id (sub),
  username and role
- The authenticated identity is an explicit AuthUser object passed through
  FastAPI dependencies, never module state
- Role guards enforce RBAC at the API level
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from forkcheck.config import settings
from forkcheck.database import get_db
from forkcheck.models import User, UserRole

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        # Unknown or malformed hash
        return False


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed bearer token for the given user."""
    now = datetime.now(tz=timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES))
    role = user.role.value if isinstance(user.role, UserRole) else user.role
    payload = {
        "sub": user.id,
        "username": user.username,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@dataclass
class AuthUser:
    """
    Authenticated user from JWT claims.
    Lifetime is one request; the client side keeps its own session object.
    """
    id: str
    username: str
    role: UserRole

    @property
    def is_supervisor(self) -> bool:
        return self.role == UserRole.SUPERVISOR

    def has_role(self, roles: List[UserRole]) -> bool:
        """Check if user has any of the specified roles."""
        return self.role in roles


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """
    Verify the JWT token and return the payload.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        return jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise _unauthorized("Could not validate credentials")


async def get_auth_user(
    payload: Dict[str, Any] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> AuthUser:
    """
    Resolve the authenticated user.
    The account must still exist; its stored role wins over the token claim.
    """
    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Token missing subject claim")

    user = db.get(User, user_id)
    if user is None:
        raise _unauthorized("User no longer exists")

    return AuthUser(id=user.id, username=user.username, role=UserRole(user.role))


# ==================== ROLE GUARDS ====================

def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/", dependencies=[Depends(require_supervisor())])
        def create_item(...):
            ...
    """
    async def role_checker(
        auth_user: AuthUser = Depends(get_auth_user)
    ) -> AuthUser:
        if not auth_user.has_role(allowed_roles):
            logger.warning(
                f"Access denied for user {auth_user.username} with role {auth_user.role.value}. "
                f"Required roles: {[r.value for r in allowed_roles]}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {', '.join(r.value for r in allowed_roles)}"
            )
        return auth_user

    return role_checker


def require_supervisor():
    """Shorthand for requiring the supervisor role."""
    return require_role([UserRole.SUPERVISOR])
