"""OneDrive synchronisation API router."""

from typing import Dict, Any
from fastapi import APIRouter, HTTPException, Depends, status

from app.apis.v1.types_in import OneDriveUploadData, OneDriveDeleteData
from app.apis.v1.types_out import OneDriveSyncResponse
from app.core.v1.auth import get_current_user_dependency
from app.core.v1.exceptions import ConfigurationException, NotFoundException, ValidationException
from app.core.v1.onedrive_manager import onedrive_manager

# Initialize router
router = APIRouter()


def _error(status_code: int, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"success": False, "error": message})


@router.post("/upload", response_model=OneDriveSyncResponse, response_model_exclude_none=True)
async def upload_radicado(
    data: OneDriveUploadData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    Copy every support of a radicado into a new OneDrive folder.

    A OneDrive failure still answers 200, with ``success=false`` and
    ``warning=true``: the radicado itself is already stored.
    """
    try:
        return onedrive_manager.sincronizar_radicado(data.radicado)
    except ValidationException as err:
        raise _error(status.HTTP_400_BAD_REQUEST, err.message)
    except NotFoundException as err:
        raise _error(status.HTTP_404_NOT_FOUND, err.message)
    except ConfigurationException as err:
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, err.message)


@router.post("/delete")
async def delete_folder(
    data: OneDriveDeleteData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """Delete a radicado's OneDrive folder, best effort."""
    try:
        return onedrive_manager.eliminar_carpeta(radicado=data.radicado, folder_id=data.folderId)
    except ValidationException as err:
        raise _error(status.HTTP_400_BAD_REQUEST, err.message)
    except ConfigurationException as err:
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, err.message)
