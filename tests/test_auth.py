"""
Tests de autenticación: login por identificación, bloqueo por intentos
fallidos, cambio de contraseña, verificación de tokens e inactividad.
"""

import pytest
import threading
from unittest.mock import patch

from supabase import AuthApiError

from app.apis.v1.auth_router import login_manager as router_login_manager
from app.core.v1.activity_manager import (
    ActivityTracker,
    STATE_ACTIVE,
    STATE_EXPIRED,
    STATE_WARNING
)
from app.core.v1.auth import AuthManager, auth_manager
from app.core.v1.exceptions import (
    AccountLockedException,
    AppException,
    DatabaseException,
    SessionExpiredException,
    UnauthorizedException,
    ValidationException
)
from app.core.v1.login_manager import (
    ACCOUNT_LOCKED,
    EMAIL_NOT_CONFIRMED,
    INVALID_CREDENTIALS,
    LOGIN_TIMEOUT,
    LoginAttemptTracker,
    LoginManager,
    build_full_name,
    validate_password_strength
)
from utils import TEST_JWT_SECRET, auth_session, make_token


class FakeClock:
    """Reloj manual para controlar ventanas de tiempo."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeAuthError(AuthApiError):
    """Error de Supabase Auth construido solo con el mensaje."""

    def __init__(self, message: str):
        Exception.__init__(self, message)
        self.message = message


CONTACTO = {
    "identificacion": "1234567",
    "primer_nombre": "Ana",
    "segundo_nombre": None,
    "apellidos": "Pérez Gómez",
    "email_institucional": "ana.perez@gestarsaludips.com",
    "rol": "asistencial",
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return ActivityTracker(timeout_seconds=600, warning_seconds=60, enabled=True, clock=clock, wall_clock=clock)


@pytest.fixture
def login(fake_supabase, clock, tracker):
    attempts = LoginAttemptTracker(max_attempts=3, lockout_seconds=900, clock=clock)
    return LoginManager(fake_supabase, attempts=attempts, tracker=tracker)


class TestActivityTracker:
    """Tests del control de inactividad de sesiones."""

    def test_new_session_is_active(self, tracker):
        """Una sesión recién iniciada está activa con el tiempo completo."""
        snapshot = tracker.start("s1")

        assert snapshot["state"] == STATE_ACTIVE
        assert snapshot["seconds_remaining"] == 600

    def test_warning_before_expiry(self, tracker, clock):
        """Dentro del último minuto la sesión entra en advertencia."""
        tracker.start("s1")
        clock.advance(550)

        snapshot = tracker.status("s1")

        assert snapshot["state"] == STATE_WARNING
        assert snapshot["seconds_remaining"] == 50

    def test_activity_resets_countdown(self, tracker, clock):
        """La actividad reinicia el contador."""
        tracker.start("s1")
        clock.advance(550)
        tracker.touch("s1")
        clock.advance(300)

        assert tracker.status("s1")["state"] == STATE_ACTIVE

    def test_idle_session_expires(self, tracker, clock):
        """Una sesión inactiva más allá del límite expira y no se reactiva."""
        tracker.start("s1")
        clock.advance(601)

        with pytest.raises(SessionExpiredException):
            tracker.touch("s1")

        assert tracker.status("s1")["state"] == STATE_EXPIRED
        with pytest.raises(SessionExpiredException):
            tracker.touch("s1")

    def test_login_clears_expired_marker(self, tracker, clock):
        """Un nuevo login sobre la misma sesión la reactiva."""
        tracker.start("s1")
        clock.advance(601)
        tracker.status("s1")

        tracker.start("s1")

        assert tracker.touch("s1")["state"] == STATE_ACTIVE

    def test_unknown_session_starts_tracking(self, tracker):
        """Una sesión desconocida comienza a contarse al primer contacto."""
        assert tracker.touch("nueva")["state"] == STATE_ACTIVE
        assert tracker.status("nueva")["seconds_remaining"] == 600

    def test_disabled_tracker_never_expires(self, clock):
        """Con el control desactivado ninguna sesión expira."""
        tracker = ActivityTracker(timeout_seconds=10, warning_seconds=5, enabled=False, clock=clock)
        tracker.start("s1")
        clock.advance(1000)

        assert tracker.touch("s1")["state"] == STATE_ACTIVE

    def test_purge_expired(self, tracker, clock):
        """La purga expira sesiones inactivas y conserva la marca mientras el token sea válido."""
        tracker.start("s1", expires_at=clock.now + 3600)
        tracker.start("s2")
        clock.advance(400)
        tracker.touch("s2")
        clock.advance(300)

        assert tracker.purge_expired() == 1
        assert tracker.status("s1")["state"] == STATE_EXPIRED

        clock.advance(700)
        tracker.purge_expired()
        with pytest.raises(SessionExpiredException):
            tracker.touch("s1")

        clock.advance(2300)
        assert tracker.purge_expired() >= 1
        assert tracker.status("s1")["state"] == STATE_ACTIVE

    @pytest.mark.edge_case
    def test_expired_marker_without_token_expiry_is_kept(self, tracker, clock):
        """Sin expiración conocida del token la sesión sigue expirada hasta el logout."""
        tracker.start("s1")
        clock.advance(601)
        tracker.purge_expired()
        clock.advance(100000)
        tracker.purge_expired()

        with pytest.raises(SessionExpiredException):
            tracker.touch("s1")

    def test_touch_records_token_expiry(self, tracker, clock):
        """La expiración del token llega por la actividad si no se registró en el login."""
        tracker.touch("s1", expires_at=clock.now + 1200)
        clock.advance(601)
        tracker.purge_expired()
        clock.advance(100)

        with pytest.raises(SessionExpiredException):
            tracker.touch("s1")

        clock.advance(600)
        tracker.purge_expired()
        assert tracker.touch("s1")["state"] == STATE_ACTIVE

    def test_end_forgets_session(self, tracker, clock):
        """El logout elimina el estado de la sesión."""
        tracker.start("s1")
        clock.advance(601)
        tracker.status("s1")
        tracker.end("s1")

        assert tracker.touch("s1")["state"] == STATE_ACTIVE


class TestLoginAttemptTracker:
    """Tests del bloqueo por intentos fallidos."""

    def test_locks_after_max_attempts(self, clock):
        attempts = LoginAttemptTracker(max_attempts=3, lockout_seconds=900, clock=clock)
        for _ in range(3):
            attempts.register_failure("123")

        assert attempts.is_locked("123") is True
        assert attempts.is_locked("456") is False

    def test_lock_expires(self, clock):
        attempts = LoginAttemptTracker(max_attempts=2, lockout_seconds=900, clock=clock)
        attempts.register_failure("123")
        attempts.register_failure("123")
        clock.advance(901)

        assert attempts.is_locked("123") is False
        assert attempts.register_failure("123") == 1

    def test_old_failures_leave_window(self, clock):
        """Los fallos fuera de la ventana no cuentan."""
        attempts = LoginAttemptTracker(max_attempts=3, lockout_seconds=900, clock=clock)
        attempts.register_failure("123")
        attempts.register_failure("123")
        clock.advance(1000)

        assert attempts.register_failure("123") == 1
        assert attempts.is_locked("123") is False


class TestPasswordRules:
    """Tests de las reglas de contraseña."""

    def test_strong_password(self):
        assert validate_password_strength("Segura2024") == []

    @pytest.mark.parametrize("password", ["Ab1", "segura2024", "SeguraSinNumero"])
    def test_weak_passwords(self, password):
        assert validate_password_strength(password) != []

    def test_full_name_skips_missing_parts(self):
        assert build_full_name(CONTACTO) == "Ana Pérez Gómez"


class TestLoginManager:
    """Tests del flujo de login contra contactos y Supabase Auth."""

    def test_login_success(self, login, fake_supabase, tracker):
        """Login exitoso devuelve tokens y el perfil del colaborador."""
        fake_supabase.respond("contactos", CONTACTO)
        fake_supabase.auth_client.auth.sign_in_with_password.return_value = auth_session()

        result = login.login(" 1234567 ", "Segura2024")

        assert result["access_token"] == "access-token"
        assert result["token_type"] == "bearer"
        assert result["user"]["nombre_completo"] == "Ana Pérez Gómez"
        assert result["user"]["rol"] == "asistencial"
        assert result["user"]["primer_login"] is False
        fake_supabase.auth_client.auth.sign_in_with_password.assert_called_once_with(
            {"email": CONTACTO["email_institucional"], "password": "Segura2024"}
        )
        # La sesión queda registrada para el control de inactividad
        assert tracker.status("user-1")["state"] == STATE_ACTIVE

    def test_login_defaults_role(self, login, fake_supabase):
        """Sin rol en contactos se asigna el rol operativo."""
        fake_supabase.respond("contactos", {**CONTACTO, "rol": None})
        fake_supabase.auth_client.auth.sign_in_with_password.return_value = auth_session(primer_login=True)

        result = login.login("1234567", "Segura2024")

        assert result["user"]["rol"] == "operativo"
        assert result["user"]["primer_login"] is True

    def test_unknown_identification(self, login, fake_supabase):
        """Una identificación desconocida responde credenciales inválidas."""
        fake_supabase.respond("contactos", None)

        with pytest.raises(UnauthorizedException) as exc_info:
            login.login("999", "Segura2024")

        assert exc_info.value.message == INVALID_CREDENTIALS
        fake_supabase.auth_client.auth.sign_in_with_password.assert_not_called()

    def test_contact_without_institutional_email(self, login, fake_supabase):
        fake_supabase.respond("contactos", {**CONTACTO, "email_institucional": None})

        with pytest.raises(ValidationException):
            login.login("1234567", "Segura2024")

    def test_wrong_password_counts_attempt(self, login, fake_supabase):
        """Tres contraseñas incorrectas bloquean la identificación."""
        fake_supabase.respond("contactos", CONTACTO)
        fake_supabase.auth_client.auth.sign_in_with_password.side_effect = FakeAuthError(
            "Invalid login credentials"
        )

        for _ in range(3):
            with pytest.raises(UnauthorizedException) as exc_info:
                login.login("1234567", "incorrecta")
            assert exc_info.value.message == INVALID_CREDENTIALS

        with pytest.raises(AccountLockedException) as exc_info:
            login.login("1234567", "Segura2024")
        assert exc_info.value.message == ACCOUNT_LOCKED

    def test_email_not_confirmed(self, login, fake_supabase):
        fake_supabase.respond("contactos", CONTACTO)
        fake_supabase.auth_client.auth.sign_in_with_password.side_effect = FakeAuthError("Email not confirmed")

        with pytest.raises(UnauthorizedException) as exc_info:
            login.login("1234567", "Segura2024")

        assert exc_info.value.message == EMAIL_NOT_CONFIRMED

    def test_provider_rate_limit(self, login, fake_supabase):
        fake_supabase.respond("contactos", CONTACTO)
        fake_supabase.auth_client.auth.sign_in_with_password.side_effect = FakeAuthError(
            "Request rate limit reached"
        )

        with pytest.raises(AccountLockedException):
            login.login("1234567", "Segura2024")

    def test_successful_login_resets_attempts(self, login, fake_supabase):
        fake_supabase.respond("contactos", CONTACTO)
        sign_in = fake_supabase.auth_client.auth.sign_in_with_password
        sign_in.side_effect = FakeAuthError("Invalid login credentials")
        for _ in range(2):
            with pytest.raises(UnauthorizedException):
                login.login("1234567", "incorrecta")

        sign_in.side_effect = None
        sign_in.return_value = auth_session()
        login.login("1234567", "Segura2024")

        sign_in.side_effect = FakeAuthError("Invalid login credentials")
        with pytest.raises(UnauthorizedException):
            login.login("1234567", "incorrecta")
        assert login.attempts.is_locked("1234567") is False

    @pytest.mark.edge_case
    def test_empty_credentials(self, login):
        with pytest.raises(ValidationException):
            login.login("   ", "Segura2024")

    @pytest.mark.edge_case
    def test_contact_lookup_failure(self, login, fake_supabase):
        fake_supabase.respond("contactos", error=RuntimeError("connection reset"))

        with pytest.raises(DatabaseException):
            login.login("1234567", "Segura2024")

    def test_login_registers_token_expiry(self, login, fake_supabase, tracker):
        """El login guarda la expiración del token para la marca de sesión expirada."""
        token = make_token(session_id="sesion-login", expires_in=1800)
        fake_supabase.respond("contactos", CONTACTO)
        fake_supabase.auth_client.auth.sign_in_with_password.return_value = auth_session(access_token=token)

        with patch.object(auth_manager, "secret_key", TEST_JWT_SECRET):
            login.login("1234567", "Segura2024")

        assert "sesion-login" in tracker._last_activity
        assert tracker._token_expiry["sesion-login"] > 0

    @pytest.mark.edge_case
    def test_sign_in_timeout(self, login, fake_supabase, tracker):
        """Si Supabase Auth no responde a tiempo el login falla sin abrir sesión."""
        fake_supabase.respond("contactos", CONTACTO)
        release = threading.Event()
        fake_supabase.auth_client.auth.sign_in_with_password.side_effect = lambda credentials: release.wait(5)
        login.timeout = 0.05

        try:
            with pytest.raises(AppException) as exc_info:
                login.login("1234567", "Segura2024")
        finally:
            release.set()

        assert exc_info.value.message == LOGIN_TIMEOUT
        assert login.attempts.is_locked("1234567") is False
        assert "user-1" not in tracker._last_activity

    def test_change_password(self, login, fake_supabase):
        """El cambio de contraseña limpia la marca de primer login."""
        result = login.change_password("user-1", "Nueva2024", "Nueva2024")

        assert result["success"] is True
        fake_supabase.auth.admin.update_user_by_id.assert_called_once_with(
            "user-1",
            {"password": "Nueva2024", "user_metadata": {"primer_login": False}}
        )

    def test_change_password_mismatch(self, login, fake_supabase):
        with pytest.raises(ValidationException):
            login.change_password("user-1", "Nueva2024", "Nueva2025")

        fake_supabase.auth.admin.update_user_by_id.assert_not_called()

    def test_change_password_provider_error(self, login, fake_supabase):
        fake_supabase.auth.admin.update_user_by_id.side_effect = RuntimeError("boom")

        with pytest.raises(DatabaseException):
            login.change_password("user-1", "Nueva2024", "Nueva2024")


class TestAuthManager:
    """Tests de verificación de access tokens de Supabase."""

    def test_valid_token(self, fake_supabase):
        manager = AuthManager(fake_supabase)
        manager.secret_key = TEST_JWT_SECRET

        user = manager.get_current_user(make_token(rol="administrador", identificacion="123"))

        assert user["user_id"] == "user-1"
        assert user["session_id"] == "session-1"
        assert user["role"] == "administrador"
        assert user["identificacion"] == "123"

    def test_expired_token(self, fake_supabase):
        manager = AuthManager(fake_supabase)
        manager.secret_key = TEST_JWT_SECRET

        with pytest.raises(UnauthorizedException):
            manager.verify_token(make_token(expires_in=-60))

    def test_wrong_signature(self, fake_supabase):
        manager = AuthManager(fake_supabase)
        manager.secret_key = TEST_JWT_SECRET

        with pytest.raises(UnauthorizedException):
            manager.verify_token(make_token(secret="otro-secreto"))

    @pytest.mark.edge_case
    def test_missing_secret_rejects_tokens(self, fake_supabase):
        manager = AuthManager(fake_supabase)
        manager.secret_key = ""

        with pytest.raises(UnauthorizedException):
            manager.verify_token(make_token())

    def test_portal_role_lookup(self, fake_supabase):
        fake_supabase.respond("usuarios_portal", {"rol": "superadmin"})
        manager = AuthManager(fake_supabase)

        assert manager.get_portal_role("admin@gestarsaludips.com") == "superadmin"
        assert manager.get_portal_role(None) is None


class TestAuthEndpoints:
    """Tests de los endpoints /api/v1/auth."""

    def test_login_endpoint(self, anonymous_client):
        payload = {
            "access_token": "access-token",
            "refresh_token": "refresh-token",
            "expires_in": 3600,
            "token_type": "bearer",
            "user": {
                "id": "user-1",
                "identificacion": "1234567",
                "nombre_completo": "Ana Pérez Gómez",
                "email": "ana.perez@gestarsaludips.com",
                "rol": "asistencial",
                "primer_login": False,
                "ultimo_login": None,
            },
        }
        with patch.object(router_login_manager, "login", return_value=payload) as mock_login:
            response = anonymous_client.post(
                "/api/v1/auth/login",
                json={"identificacion": " 1234567 ", "password": "Segura2024"}
            )

        assert response.status_code == 200
        assert response.json()["user"]["rol"] == "asistencial"
        mock_login.assert_called_once_with("1234567", "Segura2024")

    def test_login_invalid_credentials(self, anonymous_client):
        with patch.object(router_login_manager, "login", side_effect=UnauthorizedException(INVALID_CREDENTIALS)):
            response = anonymous_client.post(
                "/api/v1/auth/login",
                json={"identificacion": "1234567", "password": "mala"}
            )

        assert response.status_code == 401
        assert response.json()["error_message"]["error_code"] == "INVALID_CREDENTIALS"

    def test_login_account_locked(self, anonymous_client):
        with patch.object(router_login_manager, "login", side_effect=AccountLockedException(ACCOUNT_LOCKED)):
            response = anonymous_client.post(
                "/api/v1/auth/login",
                json={"identificacion": "1234567", "password": "mala"}
            )

        assert response.status_code == 429
        assert response.json()["error_message"]["error_code"] == "ACCOUNT_LOCKED"

    def test_login_timeout(self, anonymous_client):
        with patch.object(router_login_manager, "login", side_effect=AppException(LOGIN_TIMEOUT)):
            response = anonymous_client.post(
                "/api/v1/auth/login",
                json={"identificacion": "1234567", "password": "Segura2024"}
            )

        assert response.status_code == 504

    @pytest.mark.edge_case
    def test_login_missing_password(self, anonymous_client):
        response = anonymous_client.post("/api/v1/auth/login", json={"identificacion": "1234567"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_me_with_valid_token(self, anonymous_client):
        """Un token firmado correctamente identifica al usuario."""
        token = make_token(session_id="session-me")
        with patch.object(auth_manager, "secret_key", TEST_JWT_SECRET):
            response = anonymous_client.get(
                "/api/v1/auth/me",
                headers={"Authorization": f"Bearer {token}"}
            )

        assert response.status_code == 200
        assert response.json()["user_id"] == "user-1"
        assert response.json()["role"] == "operativo"

    def test_me_with_invalid_token(self, anonymous_client):
        with patch.object(auth_manager, "secret_key", TEST_JWT_SECRET):
            response = anonymous_client.get(
                "/api/v1/auth/me",
                headers={"Authorization": "Bearer no-es-un-jwt"}
            )

        assert response.status_code == 401
        assert response.json()["error_message"]["error_code"] == "UNAUTHORIZED"

    def test_change_password_weak(self, api_client):
        response = api_client.post(
            "/api/v1/auth/change-password",
            json={"new_password": "corta", "confirm_password": "corta"}
        )

        assert response.status_code == 400
        assert response.json()["error_message"]["error_code"] == "WEAK_PASSWORD"

    def test_session_status(self, api_client):
        response = api_client.get("/api/v1/auth/session/status")

        assert response.status_code == 200
        assert response.json()["state"] in (STATE_ACTIVE, STATE_WARNING)

    def test_logout(self, api_client):
        response = api_client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        assert response.json()["success"] is True
