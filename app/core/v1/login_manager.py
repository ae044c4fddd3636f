"""Login Manager for collaborator authentication."""

import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional, Tuple

from supabase import AuthApiError

from app.core.v1.activity_manager import ActivityTracker, activity_tracker
from app.core.v1.auth import DEFAULT_ROLE, auth_manager
from app.core.v1.exceptions import (
    AccountLockedException,
    AppException,
    DatabaseException,
    UnauthorizedException,
    ValidationException
)
from app.core.v1.log_manager import LogManager
from app.core.v1.supabase_manager import SupabaseManager
from app.settings.v1.general import SETTINGS


INVALID_CREDENTIALS = "Identificación o contraseña incorrectas"
ACCOUNT_LOCKED = "Cuenta bloqueada temporalmente por múltiples intentos fallidos"
EMAIL_NOT_CONFIRMED = "Tu correo no ha sido confirmado. Revisa tu bandeja de entrada."
MISSING_INSTITUTIONAL_EMAIL = (
    "Este usuario no tiene email institucional configurado. Contacta al administrador."
)
LOGIN_TIMEOUT = "El servidor tardó demasiado en responder. Verifica tu conexión a internet."
PASSWORDS_DONT_MATCH = "Las contraseñas no coinciden"


class LoginAttemptTracker:
    """Counts failed logins per identification and locks repeated offenders."""

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        lockout_seconds: Optional[int] = None,
        clock=time.monotonic
    ):
        self.max_attempts = max_attempts or SETTINGS.MAX_LOGIN_ATTEMPTS
        self.lockout_seconds = lockout_seconds or SETTINGS.LOCKOUT_DURATION_SECONDS
        self._clock = clock
        self._failures: Dict[str, List[float]] = {}
        self._locked_until: Dict[str, float] = {}
        self._lock = threading.Lock()

    def is_locked(self, identificacion: str) -> bool:
        with self._lock:
            until = self._locked_until.get(identificacion)
            if until is None:
                return False
            if self._clock() >= until:
                self._locked_until.pop(identificacion, None)
                self._failures.pop(identificacion, None)
                return False
            return True

    def register_failure(self, identificacion: str) -> int:
        """Record a failed attempt; returns failures inside the window."""
        with self._lock:
            now = self._clock()
            window_start = now - self.lockout_seconds
            failures = [t for t in self._failures.get(identificacion, []) if t > window_start]
            failures.append(now)
            self._failures[identificacion] = failures

            if len(failures) >= self.max_attempts:
                self._locked_until[identificacion] = now + self.lockout_seconds
            return len(failures)

    def reset(self, identificacion: str):
        with self._lock:
            self._failures.pop(identificacion, None)
            self._locked_until.pop(identificacion, None)


def validate_password_strength(password: str) -> List[str]:
    """Return the unmet password requirements (empty when the password is valid)."""
    errors = []
    min_length = SETTINGS.PASSWORD_MIN_LENGTH

    if len(password or "") < min_length:
        errors.append(f"La contraseña debe tener al menos {min_length} caracteres")
    if not re.search(r"[A-Z]", password or ""):
        errors.append("La contraseña debe contener al menos una mayúscula")
    if not re.search(r"\d", password or ""):
        errors.append("La contraseña debe contener al menos un número")

    return errors


def build_full_name(contacto: Dict[str, Any]) -> str:
    parts = [
        contacto.get("primer_nombre"),
        contacto.get("segundo_nombre"),
        contacto.get("apellidos"),
    ]
    return " ".join(part.strip() for part in parts if part and part.strip())


class LoginManager:
    """Collaborator login against ``contactos`` and Supabase Auth."""

    def __init__(
        self,
        supabase: Optional[SupabaseManager] = None,
        attempts: Optional[LoginAttemptTracker] = None,
        tracker: Optional[ActivityTracker] = None
    ):
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()
        self.attempts = attempts or LoginAttemptTracker()
        self.tracker = tracker or activity_tracker
        self.timeout = SETTINGS.LOGIN_TIMEOUT_SECONDS
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="login")

    def _find_contacto(self, identificacion: str) -> Optional[Dict[str, Any]]:
        try:
            response = (
                self.supabase.table("contactos")
                .select("identificacion, primer_nombre, segundo_nombre, apellidos, email_institucional, rol")
                .eq("identificacion", identificacion)
                .maybe_single()
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Contact lookup failed: {err}", identificacion=identificacion)
            raise DatabaseException(f"Contact lookup failed: {err}") from err

        return response.data if response else None

    def _sign_in(self, email: str, password: str):
        auth_client = self.supabase.create_auth_client()
        future = self._executor.submit(
            auth_client.auth.sign_in_with_password,
            {"email": email, "password": password}
        )
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError as err:
            future.cancel()
            self.logger.error("Supabase sign-in timed out", email=email, timeout=self.timeout)
            raise AppException(LOGIN_TIMEOUT) from err

    def _map_auth_error(self, identificacion: str, err: AuthApiError) -> UnauthorizedException:
        message = str(getattr(err, "message", err))
        self.logger.info(f"Login failed: {message}", identificacion=identificacion)

        if "Invalid login credentials" in message:
            self.attempts.register_failure(identificacion)
            return UnauthorizedException(INVALID_CREDENTIALS)
        if "Email not confirmed" in message:
            return UnauthorizedException(EMAIL_NOT_CONFIRMED)
        if "rate limit" in message.lower():
            return AccountLockedException(ACCOUNT_LOCKED)
        return UnauthorizedException(message)

    def login(self, identificacion: str, password: str) -> Dict[str, Any]:
        """Authenticate a collaborator by identification number.

        Args:
            identificacion: Document number registered in ``contactos``.
            password: Supabase Auth password.

        Returns:
            Dict with the session tokens and the portal user profile.

        Raises:
            AccountLockedException: Too many failed attempts.
            UnauthorizedException: Unknown identification or wrong password.
            ValidationException: Contact has no institutional email.
            AppException: The auth provider did not answer in time.
        """
        identificacion = (identificacion or "").strip()
        if not identificacion or not password:
            raise ValidationException(INVALID_CREDENTIALS)

        if self.attempts.is_locked(identificacion):
            self.logger.warning("Login rejected: account locked", identificacion=identificacion)
            raise AccountLockedException(ACCOUNT_LOCKED)

        contacto = self._find_contacto(identificacion)
        if not contacto:
            self.attempts.register_failure(identificacion)
            self.logger.info("Login failed: contact not found", identificacion=identificacion)
            raise UnauthorizedException(INVALID_CREDENTIALS)

        email = contacto.get("email_institucional")
        if not email:
            self.logger.info("Login failed: contact without institutional email", identificacion=identificacion)
            raise ValidationException(MISSING_INSTITUTIONAL_EMAIL)

        try:
            auth_response = self._sign_in(email, password)
        except AuthApiError as err:
            raise self._map_auth_error(identificacion, err) from err

        user = getattr(auth_response, "user", None)
        session = getattr(auth_response, "session", None)
        if user is None or session is None:
            raise AppException("Error del servidor. Intenta más tarde")

        self.attempts.reset(identificacion)
        self.tracker.purge_expired()
        user_metadata = user.user_metadata or {}
        session_id, expires_at = self._session_key(session.access_token, user.id)
        self.tracker.start(session_id, expires_at)

        rol = contacto.get("rol") or DEFAULT_ROLE
        self.logger.info("Login successful", identificacion=identificacion, rol=rol)

        return {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "expires_in": session.expires_in,
            "token_type": "bearer",
            "user": {
                "id": user.id,
                "identificacion": contacto.get("identificacion"),
                "nombre_completo": build_full_name(contacto),
                "email": email,
                "rol": rol,
                "primer_login": user_metadata.get("primer_login") is not False,
                "ultimo_login": str(user.last_sign_in_at) if user.last_sign_in_at else None,
            },
        }

    def _session_key(self, access_token: str, user_id: str) -> Tuple[str, Optional[float]]:
        # Same key the auth dependency uses for the tracker
        try:
            token_user = auth_manager.get_current_user(access_token)
        except UnauthorizedException:
            return user_id, None
        return token_user["session_id"], token_user.get("expires_at")

    def change_password(self, user_id: str, new_password: str, confirm_password: str) -> Dict[str, Any]:
        """Change a user's password and clear the first-login flag.

        Raises:
            ValidationException: Passwords differ or are too weak.
            DatabaseException: The auth admin API rejected the update.
        """
        if new_password != confirm_password:
            raise ValidationException(PASSWORDS_DONT_MATCH)

        problems = validate_password_strength(new_password)
        if problems:
            raise ValidationException(problems[0])

        try:
            self.supabase.auth.admin.update_user_by_id(
                user_id,
                {"password": new_password, "user_metadata": {"primer_login": False}}
            )
        except Exception as err:
            self.logger.error(f"Password change failed: {err}", user_id=user_id)
            raise DatabaseException(f"Password change failed: {err}") from err

        self.logger.info("Password changed", user_id=user_id)
        return {"success": True, "message": "Contraseña actualizada exitosamente"}

    def logout(self, session_id: str) -> Dict[str, Any]:
        self.tracker.end(session_id)
        self.logger.info("Session closed", session_id=session_id)
        return {"success": True, "message": "Sesión cerrada"}
