"""Administrative user management API router (superadmin only)."""

from typing import Dict, Any
from fastapi import APIRouter, HTTPException, Depends, status

from app.apis.v1.types_in import CreateUserData, ResetPasswordData
from app.apis.v1.types_out import MessageResponse
from app.core.v1.auth import require_superadmin
from app.core.v1.exceptions import ConflictException, ValidationException
from app.core.v1.log_manager import LogManager
from app.core.v1.users_manager import UsersManager

# Initialize router
router = APIRouter()

# Initialize components
users_manager = UsersManager()
logger = LogManager(__name__)


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_user(
    data: CreateUserData,
    current_user: Dict[str, Any] = Depends(require_superadmin)
):
    """
    Create a portal user (Supabase Auth account plus ``usuarios_portal`` row).

    Raises:
        400 Bad Request: Missing fields, short password or unknown role
        403 Forbidden: Caller is not a superadmin
        409 Conflict: Identification or email already registered
    """
    logger.info("Creating portal user", identificacion=data.identificacion, created_by=current_user["email"])
    try:
        return users_manager.create_user(data.model_dump(), created_by=current_user["email"])
    except ValidationException as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "INVALID_USER_DATA", "message": err.message}
        )
    except ConflictException as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error_code": "USER_ALREADY_EXISTS", "message": err.message}
        )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordData,
    current_user: Dict[str, Any] = Depends(require_superadmin)
):
    """Reset a user's password to their identification number."""
    logger.info("Resetting portal user password", usuario_portal_id=data.usuario_portal_id)
    return users_manager.reset_password(data.usuario_portal_id)
