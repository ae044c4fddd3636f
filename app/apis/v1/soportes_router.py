"""Billing-support filing API router (radicación de soportes de facturación)."""

from typing import Dict, Any, Optional
from fastapi import APIRouter, HTTPException, Depends, Query, status

from app.apis.v1.types_in import (
    InitRadicacionData,
    FinalizeRadicacionData,
    SoporteEstadoData,
    SoporteSearchParams
)
from app.apis.v1.types_out import (
    InitRadicacionResponse,
    FinalizeRadicacionResponse,
    PaginatedResponse
)
from app.core.v1.auth import get_current_user_dependency, require_superadmin
from app.core.v1.exceptions import DatabaseException, ValidationException
from app.core.v1.log_manager import LogManager
from app.core.v1.soportes_manager import SoportesManager

# Initialize router
router = APIRouter()

# Initialize components
soportes_manager = SoportesManager()
logger = LogManager(__name__)


def get_soporte_search_params(
    estado: Optional[str] = None,
    eps: Optional[str] = None,
    fechaInicio: Optional[str] = None,
    fechaFin: Optional[str] = None,
    busqueda: Optional[str] = None,
    offset: int = 0,
    limit: int = 50
) -> SoporteSearchParams:
    """Parse and validate listing filters."""
    try:
        return SoporteSearchParams(
            estado=estado,
            eps=eps,
            fecha_inicio=fechaInicio,
            fecha_fin=fechaFin,
            busqueda=busqueda,
            offset=offset,
            limit=limit
        )
    except Exception as err:
        raise HTTPException(status_code=400, detail=f"Invalid search parameters: {err}")


@router.post("/init", response_model=InitRadicacionResponse)
async def init_radicacion(
    data: InitRadicacionData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    First phase of a filing: create the record and signed upload URLs.

    The client uploads every file straight to Storage with the returned
    tokens and then calls ``/finalize``.

    Raises:
        400 Bad Request: Required filing metadata missing
        500 Internal Server Error: The record could not be created
    """
    try:
        return soportes_manager.iniciar_radicacion(data.model_dump(), current_user)
    except DatabaseException as err:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error_code": "RADICACION_INIT_FAILED", "message": err.message}
        )


@router.post("/finalize", response_model=FinalizeRadicacionResponse, response_model_exclude_none=True)
async def finalize_radicacion(
    data: FinalizeRadicacionData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    Second phase of a filing: verify uploads and settle the record.

    A filing where no file arrived is deleted and reported with
    ``success=false, eliminado=true``.
    """
    return soportes_manager.finalizar_radicacion(data.radicado)


@router.post("/verify-pending")
async def verify_pending_uploads(current_user: Dict[str, Any] = Depends(require_superadmin)):
    """Settle filings stuck in ``uploading``/``partial`` for over 30 minutes."""
    return soportes_manager.verificar_uploads_pendientes()


@router.get("/", response_model=PaginatedResponse)
async def list_soportes(
    params: SoporteSearchParams = Depends(get_soporte_search_params),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """List filings with state, EPS, date and free-text filters."""
    return soportes_manager.listar(
        estado=params.estado,
        eps=params.eps,
        fecha_inicio=params.fecha_inicio,
        fecha_fin=params.fecha_fin,
        busqueda=params.busqueda,
        offset=params.offset,
        limit=params.limit
    )


@router.get("/counts")
async def count_by_estado(current_user: Dict[str, Any] = Depends(get_current_user_dependency)):
    return soportes_manager.conteos_por_estado()


@router.get("/history/{identificacion}")
async def soportes_history(
    identificacion: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """Filings of one patient, newest first."""
    return soportes_manager.historial(identificacion)


@router.get("/{radicado}")
async def get_soporte(
    radicado: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    return soportes_manager.obtener_por_radicado(radicado)


@router.patch("/{radicado}/estado")
async def update_estado(
    radicado: str,
    data: SoporteEstadoData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """Change the billing state; ``Devuelto`` emails the filer."""
    try:
        return soportes_manager.actualizar_estado(radicado, data.estado, data.observaciones)
    except ValidationException as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "INVALID_ESTADO", "message": err.message}
        )


@router.delete("/{radicado}")
async def delete_soporte(
    radicado: str,
    current_user: Dict[str, Any] = Depends(require_superadmin)
):
    """Delete a filing with its OneDrive folder and stored files."""
    logger.info("Deleting radicado", radicado=radicado, deleted_by=current_user["email"])
    return soportes_manager.eliminar(radicado)
