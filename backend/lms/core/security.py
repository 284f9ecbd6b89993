"""Firebase JWT verification and role dependencies."""

from typing import Any, Optional
from uuid import UUID

import firebase_admin
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth, credentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lms.core.config import get_settings
from lms.core.database import get_db
from lms.models.enums import UserRole

security = HTTPBearer(auto_error=False)


def _get_firebase_app() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK on first use."""
    if not firebase_admin._apps:
        settings = get_settings()
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        if settings.google_application_credentials:
            cred = credentials.Certificate(settings.google_application_credentials)
            return firebase_admin.initialize_app(cred, options)
        return firebase_admin.initialize_app(options=options)
    return firebase_admin.get_app()


class AuthenticatedUser:
    """Represents an authenticated user from Firebase JWT."""

    def __init__(
        self,
        uid: str,
        email: Optional[str] = None,
        email_verified: bool = False,
        claims: Optional[dict[str, Any]] = None,
    ):
        self.uid = uid
        self.email = email
        self.email_verified = email_verified
        self.claims = claims or {}
        self.db_user_id: Optional[UUID] = None
        self.role: Optional[UserRole] = None
        self.full_name: Optional[str] = None

    def has_role(self, *roles: UserRole) -> bool:
        return self.role in roles


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_firebase_token(
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """Verify a Firebase ID token. Tokens are only ever verified here, never issued."""
    if bearer is None or not bearer.credentials:
        raise _unauthorized("Missing authorization header")

    try:
        decoded_token = auth.verify_id_token(bearer.credentials, app=_get_firebase_app())
    except auth.ExpiredIdTokenError:
        raise _unauthorized("Token has expired")
    except auth.InvalidIdTokenError:
        raise _unauthorized("Invalid authentication token")
    except (ValueError, auth.CertificateFetchError) as e:
        raise _unauthorized(f"Token verification failed: {e}")

    return AuthenticatedUser(
        uid=decoded_token["uid"],
        email=decoded_token.get("email"),
        email_verified=decoded_token.get("email_verified", False),
        claims=decoded_token,
    )


async def get_current_user(
    auth_user: AuthenticatedUser = Depends(verify_firebase_token),
    db: AsyncSession = Depends(get_db),
) -> AuthenticatedUser:
    """Attach the staff profile (user id, role, name) to the verified token."""
    from lms.models.user import User

    result = await db.execute(
        select(User).where(User.firebase_uid == auth_user.uid)
    )
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise _unauthorized("User profile not found or inactive")

    auth_user.db_user_id = user.id
    auth_user.role = user.role
    auth_user.full_name = user.full_name
    return auth_user


def require_roles(*roles: UserRole):
    """Dependency factory: require the current user to hold one of ``roles``."""

    def dependency(
        current_user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        if not current_user.has_role(*roles):
            allowed = ", ".join(r.value for r in roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of roles: {allowed}",
            )
        return current_user

    return dependency


require_reviewer = require_roles(UserRole.APPROVER, UserRole.ADMINISTRATOR)
require_admin = require_roles(UserRole.ADMINISTRATOR)
