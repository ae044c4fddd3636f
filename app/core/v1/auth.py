"""Authentication handler for Supabase access tokens."""

import jwt
from datetime import datetime
from typing import Optional, Dict, Any
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.settings.v1.settings import SETTINGS
from app.core.v1.activity_manager import activity_tracker
from app.core.v1.exceptions import (
    DatabaseException,
    SessionExpiredException,
    UnauthorizedException
)
from app.core.v1.log_manager import LogManager
from app.core.v1.supabase_manager import SupabaseManager


# Initialize security scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

DEFAULT_ROLE = "operativo"
SUPERADMIN_ROLE = "superadmin"

# Roles a collaborator can hold in the portal
PORTAL_ROLES = ["administrador", "asistencial", "operativo", "externo"]

# Roles accepted when an administrator creates a user
CREATABLE_ROLES = PORTAL_ROLES + ["admin", "superadmin", "gerencia", "auditor"]


class AuthManager:
    """Authentication manager for Supabase-issued JWT tokens."""

    def __init__(self, supabase: Optional[SupabaseManager] = None):
        """Initialize Authentication Manager."""
        self.logger = LogManager(__name__)
        self.secret_key = SETTINGS.SUPABASE.SUPABASE_JWT_SECRET
        self.audience = SETTINGS.SUPABASE.SUPABASE_JWT_AUDIENCE
        self.algorithm = "HS256"
        self.supabase = supabase or SupabaseManager()

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify and decode a Supabase access token.

        Args:
            token (str): JWT token to verify.

        Returns:
            Dict[str, Any]: Decoded token payload.

        Raises:
            UnauthorizedException: If token verification fails.
        """
        if not self.secret_key:
            raise UnauthorizedException("Token verification is not configured")

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience
            )

            self.logger.debug("Token verified successfully", user_id=payload.get("sub"))
            return payload

        except jwt.ExpiredSignatureError:
            self.logger.warning("Token has expired")
            raise UnauthorizedException("Token has expired")
        except jwt.InvalidTokenError as err:
            self.logger.warning(f"Invalid token: {err}")
            raise UnauthorizedException(f"Invalid token: {err}")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user from token.

        Args:
            token (str): JWT token.

        Returns:
            Dict[str, Any]: User information.

        Raises:
            UnauthorizedException: If user extraction fails.
        """
        payload = self.verify_token(token)
        user_id = payload.get("sub")

        if user_id is None:
            raise UnauthorizedException("Could not validate credentials")

        app_metadata = payload.get("app_metadata") or {}
        user_metadata = payload.get("user_metadata") or {}

        return {
            "user_id": user_id,
            "session_id": payload.get("session_id") or user_id,
            "email": payload.get("email"),
            "role": app_metadata.get("role") or user_metadata.get("rol") or DEFAULT_ROLE,
            "identificacion": user_metadata.get("identificacion"),
            "primer_login": user_metadata.get("primer_login") is not False,
            "exp": datetime.fromtimestamp(payload["exp"]).isoformat() if payload.get("exp") else None,
            "expires_at": payload.get("exp")
        }

    def get_portal_role(self, email: Optional[str]) -> Optional[str]:
        """Look up the role stored in ``usuarios_portal`` for an email.

        Raises:
            DatabaseException: If the lookup fails.
        """
        if not email:
            return None

        try:
            response = (
                self.supabase.table("usuarios_portal")
                .select("rol")
                .eq("email_institucional", email)
                .maybe_single()
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Portal role lookup failed: {err}", email=email)
            raise DatabaseException(f"Portal role lookup failed: {err}") from err

        data = response.data if response else None
        return data.get("rol") if data else None


# Initialize global auth manager
auth_manager = AuthManager()


def _unauthorized(err: UnauthorizedException, error_code: str = "UNAUTHORIZED") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error_code": error_code, "message": err.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """FastAPI dependency returning the token's user without recording activity."""
    try:
        return auth_manager.get_current_user(credentials.credentials)
    except UnauthorizedException as err:
        raise _unauthorized(err) from err


def get_current_user_dependency(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> Dict[str, Any]:
    """FastAPI dependency for getting current user.

    Every authenticated request counts as activity for the inactivity timeout.

    Raises:
        HTTPException: 401 if the token is invalid or the session expired.
    """
    try:
        user = auth_manager.get_current_user(credentials.credentials)
        activity_tracker.touch(user["session_id"], user.get("expires_at"))
        return user
    except SessionExpiredException as err:
        raise _unauthorized(err, "SESSION_EXPIRED") from err
    except UnauthorizedException as err:
        raise _unauthorized(err) from err


def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)
) -> Optional[Dict[str, Any]]:
    """FastAPI dependency for optional authentication."""
    if credentials is None:
        return None

    try:
        return auth_manager.get_current_user(credentials.credentials)
    except UnauthorizedException:
        return None


def require_superadmin(
    user: Dict[str, Any] = Depends(get_current_user_dependency)
) -> Dict[str, Any]:
    """FastAPI dependency allowing only superadmin users.

    Raises:
        HTTPException: 403 if the caller is not a superadmin.
    """
    role = auth_manager.get_portal_role(user.get("email"))
    if role != SUPERADMIN_ROLE:
        auth_manager.logger.warning(
            "Superadmin action denied",
            user_id=user.get("user_id"),
            role=role
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error_code": "FORBIDDEN",
                "message": "Solo superadmin puede realizar esta acción"
            }
        )
    return user
