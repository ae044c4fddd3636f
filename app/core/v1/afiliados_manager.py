"""Afiliados Manager for affiliate lookups."""

import re
from datetime import date
from typing import Any, Dict, List, Optional

from app.core.v1.exceptions import DatabaseException, NotFoundException, ValidationException
from app.core.v1.log_manager import LogManager
from app.core.v1.supabase_manager import SupabaseManager


INVALID_DOCUMENT = "Documento inválido. Ingresa solo números"
AFILIADO_NOT_FOUND = "No se encontró ningún afiliado con ese documento"
TEXT_TOO_SHORT = "Ingresa al menos 3 caracteres para buscar"
NO_RESULTS = "No se encontraron resultados"

MIN_TEXT_LENGTH = 3
DEFAULT_TEXT_LIMIT = 50
SUGGESTION_LIMIT = 10

# Search states reported to the predictive-search client
STATE_IDLE = "idle"
STATE_SUCCESS = "success"
STATE_ERROR = "error"

FIELD_MAP = {
    "tipo_id": "tipoId",
    "id": "id",
    "apellido1": "apellido1",
    "apellido2": "apellido2",
    "nombres": "nombres",
    "sexo": "sexo",
    "direccion": "direccion",
    "telefono": "telefono",
    "estado": "estado",
    "municipio": "municipio",
    "observaciones": "observaciones",
    "ips_primaria": "ipsPrimaria",
    "tipo_cotizante": "tipoCotizante",
    "departamento": "departamento",
    "rango": "rango",
    "email": "email",
    "regimen": "regimen",
    "edad": "edad",
    "eps": "eps",
    "fuente": "fuente",
    "busqueda_texto": "busquedaTexto",
}


def parse_date_only(value: Optional[str]) -> Optional[date]:
    """Parse the date part of a DB value, ignoring any time or timezone."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).split("T")[0])
    except ValueError:
        return None


def transform_afiliado(raw: Dict[str, Any]) -> Dict[str, Any]:
    afiliado = {api_key: raw.get(db_key) for db_key, api_key in FIELD_MAP.items()}
    afiliado["fechaNacimiento"] = parse_date_only(raw.get("fecha_nacimiento"))
    return afiliado


class AfiliadosManager:
    """Affiliate search over the ``afiliados`` view."""

    def __init__(self, supabase: Optional[SupabaseManager] = None):
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()

    def buscar_por_documento(self, documento: str) -> Dict[str, Any]:
        """Find one affiliate by document number.

        Raises:
            ValidationException: No digits in the document.
            NotFoundException: No affiliate with that document.
            DatabaseException: Query failed.
        """
        documento_limpio = re.sub(r"\D", "", documento or "")
        if not documento_limpio:
            raise ValidationException(INVALID_DOCUMENT)

        try:
            response = (
                self.supabase.table("afiliados")
                .select("*")
                .eq("id", documento_limpio)
                .maybe_single()
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Affiliate lookup failed: {err}", documento=documento_limpio)
            raise DatabaseException(f"Affiliate lookup failed: {err}") from err

        data = response.data if response else None
        if not data:
            raise NotFoundException(AFILIADO_NOT_FOUND)

        return transform_afiliado(data)

    def buscar_por_texto(self, texto: str, limite: int = DEFAULT_TEXT_LIMIT) -> List[Dict[str, Any]]:
        """Find affiliates whose search text contains the query."""
        texto_limpio = (texto or "").strip().upper()
        if len(texto_limpio) < MIN_TEXT_LENGTH:
            raise ValidationException(TEXT_TOO_SHORT)

        try:
            response = (
                self.supabase.table("afiliados")
                .select("*")
                .ilike("busqueda_texto", f"%{texto_limpio}%")
                .limit(limite)
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Affiliate text search failed: {err}", texto=texto_limpio)
            raise DatabaseException(f"Affiliate text search failed: {err}") from err

        return [transform_afiliado(row) for row in response.data or []]

    def search(self, query: str, limite: int = DEFAULT_TEXT_LIMIT) -> Dict[str, Any]:
        """Predictive-search entry point.

        Digit-only queries look up a single document first and fall back to
        a text search of up to ``SUGGESTION_LIMIT`` matches when no affiliate
        has that document. Other queries run a text search once they reach
        ``MIN_TEXT_LENGTH`` characters; shorter ones leave the search idle.
        """
        query = (query or "").strip()
        if not query or (not query.isdigit() and len(query) < MIN_TEXT_LENGTH):
            return {"state": STATE_IDLE, "data": [], "error": None, "message": None}

        if not query.isdigit():
            resultados = self.buscar_por_texto(query, limite)
            return {
                "state": STATE_SUCCESS,
                "data": resultados,
                "error": None,
                "message": NO_RESULTS if not resultados else None,
            }

        try:
            return {"state": STATE_SUCCESS, "data": [self.buscar_por_documento(query)], "error": None, "message": None}
        except NotFoundException as err:
            not_found = err.message

        resultados = []
        if len(query) >= MIN_TEXT_LENGTH:
            self.logger.debug("Document not found, searching by text", documento=query)
            resultados = self.buscar_por_texto(query, SUGGESTION_LIMIT)

        if not resultados:
            return {"state": STATE_ERROR, "data": [], "error": not_found, "message": None}
        return {"state": STATE_SUCCESS, "data": resultados, "error": None, "message": None}
