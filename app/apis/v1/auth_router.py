"""Authentication API router: login, password change and session activity."""

from typing import Dict, Any
from fastapi import APIRouter, HTTPException, Depends, status

from app.apis.v1.types_in import LoginData, ChangePasswordData
from app.apis.v1.types_out import (
    LoginResponse,
    CurrentUserResponse,
    MessageResponse,
    SessionStatusResponse
)
from app.core.v1.activity_manager import activity_tracker
from app.core.v1.auth import get_current_user_dependency, get_token_user
from app.core.v1.exceptions import (
    AccountLockedException,
    AppException,
    DatabaseException,
    UnauthorizedException,
    ValidationException
)
from app.core.v1.log_manager import LogManager
from app.core.v1.login_manager import LOGIN_TIMEOUT, LoginManager

# Initialize router
router = APIRouter()

# Initialize components
login_manager = LoginManager()
logger = LogManager(__name__)


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginData):
    """
    Log a collaborator in with identification number and password.

    Raises:
        400 Bad Request: Contact without institutional email
        401 Unauthorized: Wrong identification or password
        429 Too Many Requests: Identification temporarily locked
        504 Gateway Timeout: Supabase Auth did not answer in time
    """
    try:
        return login_manager.login(data.identificacion, data.password)
    except AccountLockedException as err:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"error_code": "ACCOUNT_LOCKED", "message": err.message}
        )
    except UnauthorizedException as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error_code": "INVALID_CREDENTIALS", "message": err.message}
        )
    except ValidationException as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "LOGIN_NOT_ALLOWED", "message": err.message}
        )
    except AppException as err:
        if err.message == LOGIN_TIMEOUT:
            raise HTTPException(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                detail={"error_code": "LOGIN_TIMEOUT", "message": err.message}
            )
        raise


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """Change the caller's password and clear the first-login flag."""
    try:
        return login_manager.change_password(
            current_user["user_id"],
            data.new_password,
            data.confirm_password
        )
    except ValidationException as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "WEAK_PASSWORD", "message": err.message}
        )
    except DatabaseException as err:
        logger.error(f"Password change failed: {err.message}", user_id=current_user["user_id"])
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error_code": "PASSWORD_CHANGE_FAILED", "message": "No se pudo actualizar la contraseña"}
        )


@router.get("/me", response_model=CurrentUserResponse)
async def me(current_user: Dict[str, Any] = Depends(get_current_user_dependency)):
    """Return the authenticated user."""
    return current_user


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: Dict[str, Any] = Depends(get_token_user)):
    """End the caller's activity session."""
    return login_manager.logout(current_user["session_id"])


@router.post("/session/heartbeat", response_model=SessionStatusResponse)
async def session_heartbeat(current_user: Dict[str, Any] = Depends(get_current_user_dependency)):
    """
    Record user activity (mouse, keyboard, scroll or touch on the client).

    The dependency already refreshed the session; the response carries the
    timer state so the client can schedule its next check.
    """
    return activity_tracker.status(current_user["session_id"])


@router.get("/session/status", response_model=SessionStatusResponse)
async def session_status(current_user: Dict[str, Any] = Depends(get_token_user)):
    """Report the inactivity state without counting the call as activity."""
    return activity_tracker.status(current_user["session_id"])
