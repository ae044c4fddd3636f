"""Users Manager for administrative portal user management."""

from datetime import datetime
from typing import Any, Dict, Optional

from app.core.v1.auth import CREATABLE_ROLES
from app.core.v1.exceptions import (
    ConflictException,
    DatabaseException,
    NotFoundException,
    ValidationException
)
from app.core.v1.log_manager import LogManager
from app.core.v1.supabase_manager import SupabaseManager


REQUIRED_USER_FIELDS = ["identificacion", "nombre_completo", "email_institucional", "rol", "password"]
MIN_INITIAL_PASSWORD_LENGTH = 6


class UsersManager:
    """Creates portal users and resets their passwords."""

    def __init__(self, supabase: Optional[SupabaseManager] = None):
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()

    def _validate(self, data: Dict[str, Any]):
        missing = [field for field in REQUIRED_USER_FIELDS if not str(data.get(field) or "").strip()]
        if missing:
            raise ValidationException(f"Faltan campos requeridos: {', '.join(missing)}")

        if len(data["password"]) < MIN_INITIAL_PASSWORD_LENGTH:
            raise ValidationException(
                f"La contraseña debe tener al menos {MIN_INITIAL_PASSWORD_LENGTH} caracteres"
            )

        if data["rol"] not in CREATABLE_ROLES:
            raise ValidationException(f"Rol no válido: {data['rol']}")

    def _ensure_unique(self, identificacion: str, email: str):
        try:
            response = (
                self.supabase.table("usuarios_portal")
                .select("id, identificacion, email_institucional")
                .or_(f"identificacion.eq.{identificacion},email_institucional.eq.{email}")
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Duplicate user check failed: {err}")
            raise DatabaseException(f"Duplicate user check failed: {err}") from err

        if response.data:
            raise ConflictException("Ya existe un usuario con esta identificación o email")

    def create_user(self, data: Dict[str, Any], created_by: Optional[str] = None) -> Dict[str, Any]:
        """Create a Supabase Auth user plus its ``usuarios_portal`` row.

        The auth user is deleted again when the portal row cannot be
        inserted, so both records exist or neither does.

        Args:
            data: identificacion, nombre_completo, email_institucional, rol, password.
            created_by: Email of the administrator performing the action.

        Returns:
            Dict with the created portal user.

        Raises:
            ValidationException: Missing or invalid fields.
            ConflictException: Identification or email already registered.
            DatabaseException: Supabase rejected one of the writes.
        """
        self._validate(data)
        identificacion = str(data["identificacion"]).strip()
        email = data["email_institucional"].strip().lower()
        self._ensure_unique(identificacion, email)

        try:
            auth_response = self.supabase.auth.admin.create_user({
                "email": email,
                "password": data["password"],
                "email_confirm": True,
                "user_metadata": {"identificacion": identificacion, "primer_login": True},
            })
        except Exception as err:
            self.logger.error(f"Auth user creation failed: {err}", email=email)
            raise DatabaseException(f"Error al crear usuario en autenticación: {err}") from err

        auth_user_id = auth_response.user.id

        try:
            response = self.supabase.table("usuarios_portal").insert({
                "identificacion": identificacion,
                "nombre_completo": data["nombre_completo"].strip(),
                "email_institucional": email,
                "rol": data["rol"],
                "activo": True,
                "created_by": created_by,
            }).execute()
        except Exception as err:
            self.logger.error(f"Portal user insert failed, rolling back auth user: {err}", email=email)
            try:
                self.supabase.auth.admin.delete_user(auth_user_id)
            except Exception as rollback_err:
                self.logger.critical(
                    f"Rollback of auth user failed: {rollback_err}",
                    auth_user_id=auth_user_id
                )
            raise DatabaseException(f"Error al crear usuario del portal: {err}") from err

        self._link_contact_email(identificacion, email)

        usuario = response.data[0] if response.data else {}
        self.logger.info("Portal user created", identificacion=identificacion, rol=data["rol"])
        return {
            "success": True,
            "message": "Usuario creado exitosamente",
            "user": {**usuario, "auth_user_id": auth_user_id},
        }

    def _link_contact_email(self, identificacion: str, email: str):
        try:
            self.supabase.table("contactos").update(
                {"email_institucional": email}
            ).eq("identificacion", identificacion).execute()
        except Exception as err:
            self.logger.warning(f"Could not update contact email: {err}", identificacion=identificacion)

    def reset_password(self, usuario_portal_id: str) -> Dict[str, Any]:
        """Reset a user's password to their identification number.

        The user is forced to change it again on next login.

        Raises:
            NotFoundException: Unknown portal user or auth account.
            DatabaseException: Supabase rejected the update.
        """
        try:
            response = (
                self.supabase.table("usuarios_portal")
                .select("id, identificacion, email_institucional")
                .eq("id", usuario_portal_id)
                .maybe_single()
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Portal user lookup failed: {err}", usuario_portal_id=usuario_portal_id)
            raise DatabaseException(f"Portal user lookup failed: {err}") from err

        usuario = response.data if response else None
        if not usuario:
            raise NotFoundException("Usuario no encontrado")

        try:
            auth_user_id = self.supabase.rpc(
                "get_auth_user_id_by_email",
                {"target_email": usuario["email_institucional"]}
            ).execute().data
        except Exception as err:
            self.logger.error(f"Auth user lookup failed: {err}")
            raise DatabaseException(f"Auth user lookup failed: {err}") from err

        if not auth_user_id:
            raise NotFoundException("El usuario no tiene cuenta de autenticación")

        try:
            self.supabase.auth.admin.update_user_by_id(auth_user_id, {
                "password": str(usuario["identificacion"]),
                "user_metadata": {"primer_login": True},
            })
        except Exception as err:
            self.logger.error(f"Password reset failed: {err}", usuario_portal_id=usuario_portal_id)
            raise DatabaseException(f"Error al restablecer contraseña: {err}") from err

        self.logger.info("Password reset", usuario_portal_id=usuario_portal_id)
        return {
            "success": True,
            "message": "Contraseña restablecida. El usuario deberá cambiarla al iniciar sesión.",
            "reset_at": datetime.now().isoformat(),
        }
