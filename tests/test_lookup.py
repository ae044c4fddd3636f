"""
Tests de búsqueda en catálogos médicos: CIE-10, CUPS y medicamentos.
"""

import pytest
from unittest.mock import patch

from app.apis.v1.lookup_router import lookup_manager as router_lookup_manager
from app.core.v1.exceptions import DatabaseException, NotFoundException, ValidationException
from app.core.v1.lookup_manager import (
    PERTINENCIA_OPTIONS,
    QUICK_SEARCH_LIMIT,
    SEARCH_LIMIT,
    LookupManager,
    tokenize
)


@pytest.fixture
def manager(fake_supabase):
    return LookupManager(fake_supabase)


class TestCie10Search:
    """Tests de búsqueda CIE-10."""

    def test_quick_search(self, manager, fake_supabase):
        """El autocompletado busca por código o descripción."""
        fake_supabase.respond("cie10", [{"cie10": "A09X", "cie10_descripcion": "DIARREA"}])

        results = manager.buscar_cie10_rapido("a09")

        assert results[0]["cie10"] == "A09X"
        query = fake_supabase.queries_for("cie10")[0]
        assert query.args_of("or_") == [("cie10.ilike.A09%,cie10_descripcion.ilike.%a09%",)]
        assert query.args_of("limit") == [(QUICK_SEARCH_LIMIT,)]

    @pytest.mark.edge_case
    def test_quick_search_needs_two_characters(self, manager, fake_supabase):
        assert manager.buscar_cie10_rapido("a") == []
        assert fake_supabase.queries == []

    def test_search_by_code_prefix(self, manager, fake_supabase):
        fake_supabase.respond("cie10", [])

        manager.buscar_cie10("j45")

        query = fake_supabase.queries_for("cie10")[0]
        assert query.args_of("ilike") == [("cie10", "J45%")]

    def test_search_by_description_words(self, manager, fake_supabase):
        """Cada palabra de la descripción filtra por separado."""
        fake_supabase.respond("cie10", [])

        manager.buscar_cie10("diabetes  mellitus")

        query = fake_supabase.queries_for("cie10")[0]
        assert query.args_of("ilike") == [
            ("cie10_descripcion", "%diabetes%"),
            ("cie10_descripcion", "%mellitus%"),
        ]
        assert query.args_of("limit") == [(SEARCH_LIMIT,)]

    def test_get_cie10_uppercases_code(self, manager, fake_supabase):
        fake_supabase.respond("cie10", {"cie10": "A09X"})

        assert manager.obtener_cie10(" a09x ")["cie10"] == "A09X"
        assert fake_supabase.queries_for("cie10")[0].args_of("eq") == [("cie10", "A09X")]

    def test_get_cie10_not_found(self, manager, fake_supabase):
        fake_supabase.respond("cie10", None)

        with pytest.raises(NotFoundException):
            manager.obtener_cie10("Z999")

    @pytest.mark.edge_case
    def test_empty_term(self, manager, fake_supabase):
        assert manager.buscar_cie10("   ") == []
        assert tokenize("  a   b ") == ["a", "b"]


class TestCupsCatalogue:
    """Tests de búsqueda y edición de CUPS."""

    def test_numeric_search_matches_code(self, manager, fake_supabase):
        fake_supabase.respond("cups", [{"cups": "890201"}])

        manager.buscar_cups("8902")

        assert fake_supabase.queries_for("cups")[0].args_of("ilike") == [("cups", "%8902%")]

    def test_text_search_matches_description(self, manager, fake_supabase):
        fake_supabase.respond("cups", [])

        manager.buscar_cups("consulta medicina")

        assert fake_supabase.queries_for("cups")[0].args_of("ilike") == [
            ("descripcion", "%consulta%"),
            ("descripcion", "%medicina%"),
        ]

    def test_update_ignores_code_and_nulls(self, manager, fake_supabase):
        """El código CUPS no se modifica y los valores nulos se ignoran."""
        fake_supabase.respond("cups", [{"cups": "890201", "pertinencia": "Médico General"}])

        result = manager.actualizar_cups(
            "890201",
            {"cups": "999999", "pertinencia": "Médico General", "observaciones": None}
        )

        assert result["pertinencia"] == "Médico General"
        update = fake_supabase.queries_for("cups", "update")[0]
        assert update.args_of("update") == [({"pertinencia": "Médico General"},)]
        assert update.args_of("eq") == [("cups", "890201")]

    @pytest.mark.edge_case
    def test_update_invalid_pertinencia(self, manager):
        with pytest.raises(ValidationException):
            manager.actualizar_cups("890201", {"pertinencia": "Enfermería"})

    @pytest.mark.edge_case
    def test_update_without_fields(self, manager):
        with pytest.raises(ValidationException):
            manager.actualizar_cups("890201", {"cups": "1"})

    def test_update_unknown_code(self, manager, fake_supabase):
        fake_supabase.respond("cups", [])

        with pytest.raises(NotFoundException):
            manager.actualizar_cups("000000", {"descripcion": "Nueva"})


class TestMedicamentosSearch:
    """Tests de búsqueda de medicamentos."""

    @pytest.mark.parametrize("term", ["MD123", "md123", "123"])
    def test_code_search(self, manager, fake_supabase, term):
        fake_supabase.respond("medicamentos", [])

        manager.buscar_medicamentos(term)

        assert fake_supabase.queries_for("medicamentos")[0].args_of("ilike") == [("mapiiss", f"%{term}%")]

    def test_description_search(self, manager, fake_supabase):
        fake_supabase.respond("medicamentos", [{"mapiiss": "MD1", "map_descripcion": "ACETAMINOFEN"}])

        results = manager.buscar_medicamentos("acetaminofen 500")

        assert len(results) == 1
        assert fake_supabase.queries_for("medicamentos")[0].args_of("ilike")[0] == ("map_descripcion", "%acetaminofen%")

    def test_database_error(self, manager, fake_supabase):
        fake_supabase.respond("medicamentos", error=RuntimeError("timeout"))

        with pytest.raises(DatabaseException):
            manager.buscar_medicamentos("acetaminofen")


class TestLookupEndpoints:
    """Tests de los endpoints /api/v1/lookup."""

    def test_cie10_quick_endpoint(self, api_client):
        with patch.object(router_lookup_manager, "buscar_cie10_rapido", return_value=[{"cie10": "A09X"}]):
            response = api_client.get("/api/v1/lookup/cie10/quick", params={"q": "a09"})

        assert response.status_code == 200
        assert response.json() == [{"cie10": "A09X"}]

    def test_pertinencia_options(self, api_client):
        response = api_client.get("/api/v1/lookup/cups/pertinencia")

        assert response.status_code == 200
        assert response.json()["options"] == PERTINENCIA_OPTIONS

    def test_update_cups_requires_superadmin(self, api_client):
        response = api_client.put("/api/v1/lookup/cups/890201", json={"descripcion": "Nueva"})

        assert response.status_code == 403

    def test_update_cups_as_superadmin(self, admin_client):
        with patch.object(router_lookup_manager, "actualizar_cups", return_value={"cups": "890201"}) as mock_update:
            response = admin_client.put("/api/v1/lookup/cups/890201", json={"descripcion": "Nueva"})

        assert response.status_code == 200
        mock_update.assert_called_once_with("890201", {"descripcion": "Nueva"})

    def test_invalid_pertinencia_is_400(self, admin_client):
        with patch.object(router_lookup_manager, "actualizar_cups", side_effect=ValidationException("Pertinencia no válida")):
            response = admin_client.put("/api/v1/lookup/cups/890201", json={"pertinencia": "X"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"
