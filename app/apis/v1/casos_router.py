"""Back-office case filing API router (Radicación de casos)."""

from typing import Dict, Any, List, Optional
from fastapi import APIRouter, HTTPException, Depends, File, Form, UploadFile, status

from app.apis.v1.types_in import CasoUpdateData, CasoSearchParams
from app.core.v1.auth import get_current_user_dependency
from app.core.v1.casos_manager import (
    CasosManager,
    DIRECCIONAMIENTOS,
    ESPECIALIDADES,
    ESTADOS_RADICADO,
    TIPOS_SOLICITUD
)
from app.core.v1.exceptions import ValidationException
from app.core.v1.file_naming import extension_de
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS

# Initialize router
router = APIRouter()

# Initialize components
casos_manager = CasosManager()
logger = LogManager(__name__)


def get_caso_search_params(
    estadoRadicado: Optional[str] = None,
    tipoSolicitud: Optional[str] = None,
    especialidad: Optional[str] = None,
    fechaInicio: Optional[str] = None,
    fechaFin: Optional[str] = None,
    busqueda: Optional[str] = None,
    offset: int = 0,
    limit: int = 50
) -> CasoSearchParams:
    """Parse and validate case listing filters."""
    try:
        return CasoSearchParams(
            estado_radicado=estadoRadicado,
            tipo_solicitud=tipoSolicitud,
            especialidad=especialidad,
            fecha_inicio=fechaInicio,
            fecha_fin=fechaFin,
            busqueda=busqueda,
            offset=offset,
            limit=limit
        )
    except Exception as err:
        raise HTTPException(status_code=400, detail=f"Invalid search parameters: {err}")


async def _read_files(archivos: List[UploadFile]) -> List[tuple]:
    if len(archivos) > SETTINGS.GENERAL.MAX_FILES_PER_CASE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error_code": "TOO_MANY_FILES",
                "message": f"Máximo {SETTINGS.GENERAL.MAX_FILES_PER_CASE} soportes por caso"
            }
        )

    contenidos = []
    for archivo in archivos:
        extension = extension_de(archivo.filename or "")
        if extension not in SETTINGS.GENERAL.ALLOWED_FILE_EXTENSIONS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error_code": "INVALID_FILE_TYPE", "message": f"Tipo de archivo no permitido: {extension}"}
            )
        contenido = await archivo.read()
        if len(contenido) > SETTINGS.GENERAL.MAX_FILE_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail={"error_code": "FILE_TOO_LARGE", "message": f"{archivo.filename} excede el tamaño máximo"}
            )
        contenidos.append((archivo.filename or "soporte.pdf", contenido, archivo.content_type))
    return contenidos


@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_caso(
    radicador: str = Form(...),
    id: str = Form(..., description="Patient document number"),
    tipoSolicitud: str = Form(...),
    especialidad: Optional[str] = Form(default=None),
    ordenador: Optional[str] = Form(default=None),
    observaciones: Optional[str] = Form(default=None),
    archivos: List[UploadFile] = File(default=[]),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    File a back-office case with optional supports.

    Raises:
        400 Bad Request: Missing fields or unknown request type
        413 Request Entity Too Large: A support exceeds the size limit
    """
    contenidos = await _read_files(archivos)
    try:
        return casos_manager.crear_caso(
            {
                "radicador": radicador,
                "id": id,
                "tipoSolicitud": tipoSolicitud,
                "especialidad": especialidad,
                "ordenador": ordenador,
                "observaciones": observaciones,
            },
            contenidos,
            current_user
        )
    except ValidationException as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "INVALID_CASO", "message": err.message}
        )


@router.get("/options")
async def get_options(current_user: Dict[str, Any] = Depends(get_current_user_dependency)):
    """Dropdown values of the case forms."""
    return {
        "tiposSolicitud": TIPOS_SOLICITUD,
        "estados": ESTADOS_RADICADO,
        "direccionamiento": DIRECCIONAMIENTOS,
        "especialidades": ESPECIALIDADES,
    }


@router.get("/")
async def list_casos(
    params: CasoSearchParams = Depends(get_caso_search_params),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """List cases, pending first, each with its patient data."""
    return casos_manager.listar(
        estado_radicado=params.estado_radicado,
        tipo_solicitud=params.tipo_solicitud,
        especialidad=params.especialidad,
        fecha_inicio=params.fecha_inicio,
        fecha_fin=params.fecha_fin,
        busqueda=params.busqueda,
        offset=params.offset,
        limit=params.limit
    )


@router.get("/pending-counts")
async def pending_counts(current_user: Dict[str, Any] = Depends(get_current_user_dependency)):
    return casos_manager.conteos_pendientes()


@router.get("/history/{paciente_id}")
async def casos_history(
    paciente_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    return casos_manager.historial(paciente_id)


@router.get("/{radicado}")
async def get_caso(
    radicado: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    return casos_manager.obtener(radicado)


@router.patch("/{radicado}")
async def update_caso(
    radicado: str,
    data: CasoUpdateData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    Update direccionamiento, respuesta, estado or tipo of a case.

    State changes notify the patient (SMS) and, for ``Devuelto``, the filer
    (Teams and email); notification failures never fail the update.
    """
    try:
        return casos_manager.actualizar_caso(radicado, data.model_dump(exclude_unset=True))
    except ValidationException as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": "INVALID_CASO_UPDATE", "message": err.message}
        )


@router.delete("/{radicado}")
async def delete_caso(
    radicado: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    logger.info("Deleting case", radicado=radicado, deleted_by=current_user["email"])
    return casos_manager.eliminar_caso(radicado)
