"""
Configuración de pytest y fixtures para tests del Portal de Colaboradores.
"""

import pytest
from fastapi.testclient import TestClient

from main import app
from app.core.v1.auth import get_current_user_dependency, get_token_user, require_superadmin
from utils import FakeSupabase


@pytest.fixture
def fake_supabase():
    """Supabase en memoria."""
    return FakeSupabase()


@pytest.fixture
def operativo_user():
    """Usuario autenticado con rol operativo."""
    return {
        "user_id": "user-1",
        "session_id": "session-1",
        "email": "colaborador@gestarsaludips.com",
        "role": "operativo",
        "identificacion": "1234567",
        "primer_login": False,
        "exp": None,
    }


@pytest.fixture
def superadmin_user(operativo_user):
    """Usuario autenticado con rol superadmin."""
    return {**operativo_user, "user_id": "admin-1", "email": "admin@gestarsaludips.com", "role": "superadmin"}


@pytest.fixture
def api_client(operativo_user):
    """
    Cliente de la API con la autenticación resuelta al usuario operativo.
    Las rutas de superadmin responden 403.
    """
    def _forbidden():
        from fastapi import HTTPException
        raise HTTPException(status_code=403, detail={"error_code": "FORBIDDEN", "message": "Solo superadmin"})

    app.dependency_overrides[get_current_user_dependency] = lambda: operativo_user
    app.dependency_overrides[get_token_user] = lambda: operativo_user
    app.dependency_overrides[require_superadmin] = _forbidden
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(superadmin_user):
    """Cliente de la API autenticado como superadmin."""
    app.dependency_overrides[get_current_user_dependency] = lambda: superadmin_user
    app.dependency_overrides[get_token_user] = lambda: superadmin_user
    app.dependency_overrides[require_superadmin] = lambda: superadmin_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client():
    """Cliente de la API sin autenticación."""
    app.dependency_overrides.clear()
    return TestClient(app)


# Configuración de pytest
def pytest_configure(config):
    """Configuración global de pytest."""
    config.addinivalue_line(
        "markers", "unit: marca tests unitarios"
    )
    config.addinivalue_line(
        "markers", "api: marca tests de API"
    )
    config.addinivalue_line(
        "markers", "edge_case: marca tests de casos límite"
    )


def pytest_collection_modifyitems(config, items):
    """Marcar como API los tests que usan un cliente HTTP."""
    for item in items:
        if any(fixture in item.fixturenames for fixture in ["api_client", "admin_client", "anonymous_client"]):
            item.add_marker(pytest.mark.api)
        else:
            item.add_marker(pytest.mark.unit)
