"""Lookup Manager for CIE-10, CUPS and medicamentos catalogues."""

import re
from typing import Any, Dict, List, Optional

from app.core.v1.exceptions import DatabaseException, NotFoundException, ValidationException
from app.core.v1.log_manager import LogManager
from app.core.v1.supabase_manager import SupabaseManager


CIE10_COLUMNS = "cie10, cie10_descripcion, st_dias_incapacidad, neps_dias_incapacidad"
QUICK_SEARCH_MIN_LENGTH = 2
QUICK_SEARCH_LIMIT = 15
SEARCH_LIMIT = 100

PERTINENCIA_OPTIONS = ["Médico General", "Médico Especialista"]

CIE10_CODE_PATTERN = re.compile(r"^[a-zA-Z]\d")
NUMERIC_PATTERN = re.compile(r"^\d+$")
MEDICAMENTO_CODE_PATTERN = re.compile(r"^(md)?\d+$", re.IGNORECASE)


def tokenize(query: str) -> List[str]:
    return [token for token in query.split() if token]


class LookupManager:
    """Token ``ilike`` search over the medical code catalogues."""

    def __init__(self, supabase: Optional[SupabaseManager] = None):
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()

    def _run(self, query, catalogue: str, term: str) -> List[Dict[str, Any]]:
        try:
            return query.execute().data or []
        except Exception as err:
            self.logger.error(f"{catalogue} search failed: {err}", term=term)
            raise DatabaseException(f"{catalogue} search failed: {err}") from err

    def _search_by_tokens(self, table: str, columns: str, column: str, order: str, term: str):
        query = self.supabase.table(table).select(columns)
        for token in tokenize(term):
            query = query.ilike(column, f"%{token}%")
        return query.order(order).limit(SEARCH_LIMIT)

    # CIE-10

    def buscar_cie10_rapido(self, term: str) -> List[Dict[str, Any]]:
        """Autocomplete: code prefix or description fragment, 15 rows."""
        term = (term or "").strip()
        if len(term) < QUICK_SEARCH_MIN_LENGTH:
            return []

        query = (
            self.supabase.table("cie10")
            .select(CIE10_COLUMNS)
            .or_(f"cie10.ilike.{term.upper()}%,cie10_descripcion.ilike.%{term.lower()}%")
            .order("cie10")
            .limit(QUICK_SEARCH_LIMIT)
        )
        return self._run(query, "CIE-10", term)

    def buscar_cie10(self, term: str) -> List[Dict[str, Any]]:
        """Search by code prefix (e.g. ``A09``) or by every word of the description."""
        term = (term or "").strip()
        if not term:
            return []

        if CIE10_CODE_PATTERN.match(term):
            query = (
                self.supabase.table("cie10")
                .select(CIE10_COLUMNS)
                .ilike("cie10", f"{term.upper()}%")
                .order("cie10")
                .limit(SEARCH_LIMIT)
            )
        else:
            query = self._search_by_tokens("cie10", CIE10_COLUMNS, "cie10_descripcion", "cie10", term)

        results = self._run(query, "CIE-10", term)
        self.logger.debug("CIE-10 search completed", term=term, results=len(results))
        return results

    def obtener_cie10(self, codigo: str) -> Dict[str, Any]:
        return self._get_one("cie10", CIE10_COLUMNS, "cie10", (codigo or "").strip().upper(), "CIE-10")

    # CUPS

    def buscar_cups(self, term: str) -> List[Dict[str, Any]]:
        """Numeric queries match the CUPS code, others every word of the description."""
        term = (term or "").strip()
        if not term:
            return []

        if NUMERIC_PATTERN.match(term):
            query = (
                self.supabase.table("cups")
                .select("*")
                .ilike("cups", f"%{term}%")
                .order("cups")
                .limit(SEARCH_LIMIT)
            )
        else:
            query = self._search_by_tokens("cups", "*", "descripcion", "cups", term)

        return self._run(query, "CUPS", term)

    def obtener_cups(self, codigo: str) -> Dict[str, Any]:
        return self._get_one("cups", "*", "cups", (codigo or "").strip(), "CUPS")

    def actualizar_cups(self, codigo: str, campos: Dict[str, Any]) -> Dict[str, Any]:
        """Update a CUPS row; the code itself is immutable.

        Raises:
            ValidationException: Nothing to update or invalid pertinencia.
            NotFoundException: Unknown code.
        """
        cambios = {key: value for key, value in campos.items() if key != "cups" and value is not None}
        if not cambios:
            raise ValidationException("No hay campos para actualizar")

        pertinencia = cambios.get("pertinencia")
        if pertinencia and pertinencia not in PERTINENCIA_OPTIONS:
            raise ValidationException(f"Pertinencia no válida: {pertinencia}")

        try:
            response = self.supabase.table("cups").update(cambios).eq("cups", codigo).execute()
        except Exception as err:
            self.logger.error(f"CUPS update failed: {err}", codigo=codigo)
            raise DatabaseException(f"CUPS update failed: {err}") from err

        if not response.data:
            raise NotFoundException(f"CUPS {codigo} no encontrado")

        self.logger.info("CUPS updated", codigo=codigo, fields=list(cambios))
        return response.data[0]

    # Medicamentos

    def buscar_medicamentos(self, term: str) -> List[Dict[str, Any]]:
        """``MD123``/``123`` match the MAPIISS code, others every word of the description."""
        term = (term or "").strip()
        if not term:
            return []

        if MEDICAMENTO_CODE_PATTERN.match(term):
            query = (
                self.supabase.table("medicamentos")
                .select("*")
                .ilike("mapiiss", f"%{term}%")
                .order("mapiiss")
                .limit(SEARCH_LIMIT)
            )
        else:
            query = self._search_by_tokens("medicamentos", "*", "map_descripcion", "mapiiss", term)

        return self._run(query, "Medicamentos", term)

    def _get_one(self, table: str, columns: str, column: str, value: str, catalogue: str) -> Dict[str, Any]:
        if not value:
            raise ValidationException("Código requerido")

        try:
            response = (
                self.supabase.table(table)
                .select(columns)
                .eq(column, value)
                .maybe_single()
                .execute()
            )
        except Exception as err:
            self.logger.error(f"{catalogue} lookup failed: {err}", codigo=value)
            raise DatabaseException(f"{catalogue} lookup failed: {err}") from err

        data = response.data if response else None
        if not data:
            raise NotFoundException(f"{catalogue} {value} no encontrado")
        return data
