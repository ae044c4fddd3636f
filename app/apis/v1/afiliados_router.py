"""Affiliate search API router."""

from typing import Dict, Any
from fastapi import APIRouter, Depends, Query

from app.apis.v1.types_out import AfiliadoSearchResponse
from app.core.v1.afiliados_manager import AfiliadosManager
from app.core.v1.auth import get_current_user_dependency

# Initialize router
router = APIRouter()

# Initialize components
afiliados_manager = AfiliadosManager()


@router.get("/search", response_model=AfiliadoSearchResponse)
async def search_afiliados(
    q: str = Query(default="", description="Document number or name fragment"),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    Predictive affiliate search.

    Digit-only queries look up one document and fall back to a name search
    when nobody has it. Queries shorter than three characters stay idle;
    an unknown document comes back in ``state=error``.
    """
    return afiliados_manager.search(q, limit)


@router.get("/{documento}")
async def get_afiliado(
    documento: str,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """Get one affiliate by document number."""
    return afiliados_manager.buscar_por_documento(documento)
