"""Medical code lookup API router (CIE-10, CUPS, medicamentos)."""

from typing import Dict, Any, List
from fastapi import APIRouter, Depends, Query

from app.apis.v1.types_in import CupsUpdateData
from app.core.v1.auth import get_current_user_dependency, require_superadmin
from app.core.v1.log_manager import LogManager
from app.core.v1.lookup_manager import LookupManager, PERTINENCIA_OPTIONS

# Initialize router
router = APIRouter()

# Initialize components
lookup_manager = LookupManager()
logger = LogManager(__name__)


@router.get("/cie10/quick")
async def quick_search_cie10(
    q: str = Query(default=""),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
) -> List[Dict[str, Any]]:
    """CIE-10 autocomplete (15 rows, at least 2 characters)."""
    return lookup_manager.buscar_cie10_rapido(q)


@router.get("/cie10")
async def search_cie10(
    q: str = Query(default=""),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
) -> List[Dict[str, Any]]:
    """CIE-10 search by code prefix or description words."""
    return lookup_manager.buscar_cie10(q)


@router.get("/cie10/{codigo}")
async def get_cie10(
    codigo: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    return lookup_manager.obtener_cie10(codigo)


@router.get("/cups")
async def search_cups(
    q: str = Query(default=""),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
) -> List[Dict[str, Any]]:
    """CUPS search by code fragment or description words."""
    return lookup_manager.buscar_cups(q)


@router.get("/cups/pertinencia")
async def get_pertinencia_options(current_user: Dict[str, Any] = Depends(get_current_user_dependency)):
    return {"options": PERTINENCIA_OPTIONS}


@router.get("/cups/{codigo}")
async def get_cups(
    codigo: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    return lookup_manager.obtener_cups(codigo)


@router.put("/cups/{codigo}")
async def update_cups(
    codigo: str,
    data: CupsUpdateData,
    current_user: Dict[str, Any] = Depends(require_superadmin)
):
    """Update a CUPS row (superadmin only); the code itself cannot change."""
    logger.info("Updating CUPS", codigo=codigo, updated_by=current_user["email"])
    return lookup_manager.actualizar_cups(codigo, data.model_dump(exclude_unset=True))


@router.get("/medicamentos")
async def search_medicamentos(
    q: str = Query(default=""),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
) -> List[Dict[str, Any]]:
    """Medicamentos search by MAPIISS code or description words."""
    return lookup_manager.buscar_medicamentos(q)
