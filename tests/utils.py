"""
Utilidades auxiliares para los tests del Portal de Colaboradores.
"""

import time
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import jwt


TEST_JWT_SECRET = "test-jwt-secret"


class FakeResponse:
    """Respuesta de PostgREST con ``data`` y ``count``."""

    def __init__(self, data=None, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Constructor de consultas en memoria que registra cada llamada encadenada."""

    CHAIN_METHODS = {
        "select", "eq", "neq", "ilike", "or_", "in_", "gte", "lte", "lt", "gt",
        "order", "range", "limit", "insert", "update", "delete", "upsert", "match", "is_",
    }

    def __init__(self, table: str, result):
        self.table = table
        self.calls: List[tuple] = []
        self._result = result
        self._single = False

    def __getattr__(self, name):
        if name not in FakeQuery.CHAIN_METHODS:
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def maybe_single(self):
        self.calls.append(("maybe_single", (), {}))
        self._single = True
        return self

    def execute(self):
        self.calls.append(("execute", (), {}))
        if isinstance(self._result, Exception):
            raise self._result

        data, count = self._result
        if self._single:
            if isinstance(data, list):
                data = data[0] if data else None
            return FakeResponse(data) if data is not None else None
        return FakeResponse(data, count)

    def args_of(self, name: str) -> List[tuple]:
        """Argumentos de cada llamada a ``name``."""
        return [args for method, args, _ in self.calls if method == name]

    def kwargs_of(self, name: str) -> List[dict]:
        return [kwargs for method, _, kwargs in self.calls if method == name]

    @property
    def operation(self) -> str:
        for method, _, _ in self.calls:
            if method in ("insert", "update", "delete", "upsert"):
                return method
        return "select"


class FakeSupabase:
    """
    Doble de ``SupabaseManager``.

    Las respuestas se encolan por tabla; la última respuesta encolada se
    reutiliza para consultas posteriores a la misma tabla.
    """

    def __init__(self):
        self.responses: Dict[str, list] = {}
        self.queries: List[FakeQuery] = []
        self.buckets: Dict[str, MagicMock] = {}
        self.auth = MagicMock(name="auth")
        self.auth_client = MagicMock(name="auth_client")

    def respond(self, table: str, data=None, count: Optional[int] = None, error: Optional[Exception] = None):
        """Encolar la respuesta de la siguiente consulta a ``table``."""
        self.responses.setdefault(table, []).append(error if error is not None else (data, count))
        return self

    def _next(self, table: str):
        queue = self.responses.get(table) or []
        if len(queue) > 1:
            return queue.pop(0)
        if queue:
            return queue[0]
        return ([], None)

    def table(self, name: str) -> FakeQuery:
        query = FakeQuery(name, self._next(name))
        self.queries.append(query)
        return query

    def rpc(self, fn: str, params: Optional[Dict[str, Any]] = None) -> FakeQuery:
        key = f"rpc:{fn}"
        query = FakeQuery(key, self._next(key))
        query.calls.append(("rpc", (fn, params), {}))
        self.queries.append(query)
        return query

    def bucket(self, name: str) -> MagicMock:
        return self.buckets.setdefault(name, MagicMock(name=f"bucket:{name}"))

    def create_auth_client(self):
        return self.auth_client

    def queries_for(self, table: str, operation: Optional[str] = None) -> List[FakeQuery]:
        return [
            query for query in self.queries
            if query.table == table and (operation is None or query.operation == operation)
        ]


def make_token(
    user_id: str = "user-1",
    email: str = "colaborador@gestarsaludips.com",
    session_id: Optional[str] = "session-1",
    expires_in: int = 3600,
    secret: str = TEST_JWT_SECRET,
    **user_metadata
) -> str:
    """Firmar un access token con la forma de los emitidos por Supabase Auth."""
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "exp": int(time.time()) + expires_in,
        "email": email,
        "app_metadata": {},
        "user_metadata": user_metadata,
    }
    if session_id:
        payload["session_id"] = session_id
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_session(access_token: str = "access-token", user_id: str = "user-1", primer_login: bool = False):
    """Respuesta de ``sign_in_with_password``."""
    user = SimpleNamespace(
        id=user_id,
        user_metadata={"primer_login": primer_login},
        last_sign_in_at="2024-01-20T10:00:00+00:00",
    )
    session = SimpleNamespace(access_token=access_token, refresh_token="refresh-token", expires_in=3600)
    return SimpleNamespace(user=user, session=session)


class TestDataGenerator:
    """Generador de datos de prueba para tests."""

    __test__ = False

    @staticmethod
    def soporte(radicado: str = "FACT0001", **overrides) -> Dict[str, Any]:
        """Fila de ``soportes_facturacion``."""
        row = {
            "id": "c0a8012e-0000-4000-8000-000000000001",
            "radicado": radicado,
            "fecha_radicacion": "2024-01-20T15:30:00+00:00",
            "radicador_email": "radicador@gestarsaludips.com",
            "radicador_nombre": "Ana Pérez",
            "eps": "NUEVA EPS",
            "regimen": "CONTRIBUTIVO",
            "servicio_prestado": "Consulta Ambulatoria",
            "fecha_atencion": "2024-01-20",
            "tipo_id": "CC",
            "identificacion": "1234567",
            "nombres_completos": "MARIA GARCIA",
            "estado": "Pendiente",
            "upload_status": "uploading",
            "expected_files": [],
            "created_at": "2024-01-20T15:30:00+00:00",
        }
        row.update(overrides)
        return row

    @staticmethod
    def expected_file(path: str, category: str = "soporte_clinico", original: str = "historia.pdf") -> Dict[str, Any]:
        return {"path": path, "category": category, "originalName": original, "uploaded": False}

    @staticmethod
    def caso(radicado: str = "RAD-20240120-0001", **overrides) -> Dict[str, Any]:
        """Fila de la tabla ``back``."""
        row = {
            "radicado": radicado,
            "radicador": "ANA PEREZ",
            "correo_radicador": "radicador@gestarsaludips.com",
            "id": "1234567",
            "especialidad": "Ortopedia",
            "ordenador": None,
            "observaciones": "Control",
            "tipo_solicitud": "Auditoría Médica",
            "soportes": [],
            "estado_radicado": "Pendiente",
            "direccionamiento": None,
            "respuesta_back": None,
            "created_at": "2024-01-20T15:30:00+00:00",
            "updated_at": "2024-01-20T15:30:00+00:00",
        }
        row.update(overrides)
        return row

    @staticmethod
    def afiliado(documento: str = "1234567", **overrides) -> Dict[str, Any]:
        """Fila de la vista ``afiliados``."""
        row = {
            "tipo_id": "CC",
            "id": documento,
            "nombres": "MARIA JOSE",
            "apellido1": "GARCIA",
            "apellido2": "LOPEZ",
            "sexo": "F",
            "telefono": "3001234567",
            "municipio": "MONTERIA",
            "ips_primaria": "GESTAR SALUD",
            "eps": "NUEVA EPS",
            "regimen": "CONTRIBUTIVO",
            "fecha_nacimiento": "1990-05-15T00:00:00+00:00",
            "busqueda_texto": f"{documento} MARIA JOSE GARCIA LOPEZ",
        }
        row.update(overrides)
        return row
