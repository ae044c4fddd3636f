"""Casos Manager for back-office case filing (Radicación de casos)."""

import unicodedata
from typing import Any, Dict, List, Optional, Tuple

from app.core.v1.email_manager import EmailManager, email_manager
from app.core.v1.exceptions import DatabaseException, NotFoundException, StorageException, ValidationException
from app.core.v1.file_naming import extension_de
from app.core.v1.log_manager import LogManager
from app.core.v1.sms_manager import SMSManager, sms_manager
from app.core.v1.supabase_manager import SupabaseManager
from app.core.v1.teams_manager import TIPO_DEVOLUCION_BACK, TeamsManager, teams_manager
from app.settings.v1.settings import SETTINGS


TABLE = "back"

TIPOS_SOLICITUD = [
    "Auditoría Médica",
    "Solicitud de Historia Clínica",
    "Ajuste de Ordenamiento",
    "Renovación de prequirúrgicos",
    "Gestión de Mipres",
    "Activación de Ruta",
]
ESTADOS_RADICADO = [
    "Pendiente",
    "Contrarreferido",
    "Devuelto",
    "Gestionado",
    "Autorizado",
    "Enrutado",
    "En espera",
    "Rechazado",
]
DIRECCIONAMIENTOS = ["Médico Experto", "Médico Especialista", "Nueva EPS"]
ESPECIALIDADES = [
    "Medicina Interna",
    "Dermatología",
    "Ortopedia",
    "Urología",
    "Otorrinolaringología",
    "Reumatología",
]

UPDATABLE_FIELDS = ["direccionamiento", "respuesta_back", "estado_radicado", "tipo_solicitud"]
PACIENTE_COLUMNS = "id, nombres, apellido1, apellido2, tipo_id, municipio, direccion, ips_primaria, email, eps"
DEFAULT_PAGE_SIZE = 50

DEVOLUCION_SIN_RESPUESTA = (
    "Para devolver el caso, debe ingresar una Respuesta Auditoría / Back explicando el motivo."
)


def normalizar_texto(texto: str) -> str:
    """Upper case without accents: ``José Peña`` -> ``JOSE PENA``."""
    normalized = unicodedata.normalize("NFD", (texto or "").upper())
    return "".join(char for char in normalized if not unicodedata.combining(char))


def transform_caso(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "radicado": raw.get("radicado"),
        "radicador": raw.get("radicador"),
        "emailRadicador": raw.get("correo_radicador") or None,
        "id": raw.get("id"),
        "especialidad": raw.get("especialidad"),
        "ordenador": raw.get("ordenador"),
        "observaciones": raw.get("observaciones"),
        "tipoSolicitud": raw.get("tipo_solicitud"),
        "soportes": raw.get("soportes"),
        "estadoRadicado": raw.get("estado_radicado"),
        "direccionamiento": raw.get("direccionamiento"),
        "respuestaBack": raw.get("respuesta_back"),
        "createdAt": raw.get("created_at"),
        "updatedAt": raw.get("updated_at"),
    }


def transform_paciente(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    return {
        "nombres": raw.get("nombres"),
        "apellido1": raw.get("apellido1"),
        "apellido2": raw.get("apellido2"),
        "tipoId": raw.get("tipo_id"),
        "municipio": raw.get("municipio"),
        "direccion": raw.get("direccion"),
        "ipsPrimaria": raw.get("ips_primaria"),
        "email": raw.get("email"),
        "eps": raw.get("eps"),
    }


def nombre_paciente(paciente: Optional[Dict[str, Any]]) -> str:
    if not paciente:
        return ""
    partes = [paciente.get("nombres"), paciente.get("apellido1"), paciente.get("apellido2")]
    return " ".join(parte for parte in partes if parte)


class CasosManager:
    """Back-office cases over the ``back`` table and its supports bucket."""

    def __init__(
        self,
        supabase: Optional[SupabaseManager] = None,
        sms: Optional[SMSManager] = None,
        teams: Optional[TeamsManager] = None,
        emails: Optional[EmailManager] = None
    ):
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()
        self.sms = sms or sms_manager
        self.teams = teams or teams_manager
        self.emails = emails or email_manager
        self.bucket_name = SETTINGS.SUPABASE.BUCKET_SOPORTES_BACK
        self.signed_url_expiration = SETTINGS.SUPABASE.SIGNED_URL_EXPIRATION

    @property
    def bucket(self):
        return self.supabase.bucket(self.bucket_name)

    def subir_soportes(self, archivos: List[Tuple[str, bytes, str]], radicado: str) -> List[str]:
        """Upload supports as ``{radicado}/{radicado}_soporte_{n}.{ext}``.

        Args:
            archivos: ``(filename, content, content_type)`` tuples.

        Returns:
            List of signed URLs (one year).

        Raises:
            StorageException: An upload failed.
        """
        urls = []
        for idx, (nombre, contenido, content_type) in enumerate(archivos):
            ruta = f"{radicado}/{radicado}_soporte_{idx + 1}.{extension_de(nombre)}"
            try:
                self.bucket.upload(
                    ruta,
                    contenido,
                    file_options={"content-type": content_type or "application/pdf", "upsert": "false"}
                )
                signed = self.bucket.create_signed_url(ruta, self.signed_url_expiration)
            except Exception as err:
                self.logger.error(f"Support upload failed: {err}", path=ruta)
                raise StorageException(f"Error subiendo {nombre}: {err}") from err

            signed_url = signed.get("signedURL") or signed.get("signedUrl")
            if signed_url:
                urls.append(signed_url)
        return urls

    def crear_caso(
        self,
        data: Dict[str, Any],
        archivos: Optional[List[Tuple[str, bytes, str]]] = None,
        user: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """File a new case; the DB trigger assigns the radicado.

        A failed support upload does not fail the filing.

        Raises:
            ValidationException: Missing radicador, patient id or unknown tipo.
            DatabaseException: Insert failed.
        """
        if not data.get("radicador") or not data.get("id") or not data.get("tipoSolicitud"):
            raise ValidationException("Campos requeridos faltantes: radicador, id, tipoSolicitud")
        if data["tipoSolicitud"] not in TIPOS_SOLICITUD:
            raise ValidationException(f"Tipo de solicitud no válido: {data['tipoSolicitud']}")

        values = {
            "radicador": normalizar_texto(data["radicador"]),
            "id": data["id"],
            "tipo_solicitud": data["tipoSolicitud"],
            "especialidad": data.get("especialidad") or None,
            "ordenador": normalizar_texto(data["ordenador"]) if data.get("ordenador") else None,
            "observaciones": data.get("observaciones") or None,
            "soportes": [],
        }
        if user and user.get("email"):
            values["correo_radicador"] = user["email"]

        try:
            response = self.supabase.table(TABLE).insert(values).execute()
        except Exception as err:
            self.logger.error(f"Case insert failed: {err}")
            raise DatabaseException(f"Error al crear la radicación: {err}") from err

        if not response.data:
            raise DatabaseException("Error al crear la radicación: desconocido")

        caso = response.data[0]
        radicado = caso["radicado"]

        if archivos:
            try:
                urls = self.subir_soportes(archivos, radicado)
                self.supabase.table(TABLE).update({"soportes": urls}).eq("radicado", radicado).execute()
                caso["soportes"] = urls
            except Exception as err:
                self.logger.error(f"Case supports not stored: {err}", radicado=radicado)

        self.logger.info("Case filed", radicado=radicado, tipo=data["tipoSolicitud"])
        return {
            "success": True,
            "data": transform_caso(caso),
            "message": f"Radicación {radicado} creada exitosamente",
        }

    def _get_raw(self, radicado: str) -> Dict[str, Any]:
        try:
            response = self.supabase.table(TABLE).select("*").eq("radicado", radicado).maybe_single().execute()
        except Exception as err:
            self.logger.error(f"Case lookup failed: {err}", radicado=radicado)
            raise DatabaseException(f"Case lookup failed: {err}") from err

        caso = response.data if response else None
        if not caso:
            raise NotFoundException(f"No se encontró el radicado {radicado}")
        return caso

    def obtener(self, radicado: str) -> Dict[str, Any]:
        return transform_caso(self._get_raw(radicado))

    def historial(self, paciente_id: str) -> List[Dict[str, Any]]:
        try:
            response = (
                self.supabase.table(TABLE)
                .select("*")
                .eq("id", paciente_id)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Case history failed: {err}", paciente_id=paciente_id)
            raise DatabaseException(f"Case history failed: {err}") from err
        return [transform_caso(row) for row in response.data or []]

    def _pacientes(self, ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not ids:
            return {}
        try:
            response = self.supabase.table("afiliados").select(PACIENTE_COLUMNS).in_("id", ids).execute()
        except Exception as err:
            self.logger.warning(f"Patient data not loaded: {err}")
            return {}
        return {row["id"]: row for row in response.data or []}

    def listar(
        self,
        estado_radicado: Optional[str] = None,
        tipo_solicitud: Optional[str] = None,
        especialidad: Optional[str] = None,
        fecha_inicio: Optional[str] = None,
        fecha_fin: Optional[str] = None,
        busqueda: Optional[str] = None,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        """Filtered case listing, pending first, each case with its patient."""
        query = self.supabase.table(TABLE).select("*", count="exact")

        if estado_radicado and estado_radicado != "Todos":
            query = query.eq("estado_radicado", estado_radicado)
        if tipo_solicitud:
            query = query.eq("tipo_solicitud", tipo_solicitud)
        if especialidad:
            query = query.eq("especialidad", especialidad)
        if fecha_inicio:
            query = query.gte("created_at", fecha_inicio)
        if fecha_fin:
            query = query.lte("created_at", f"{fecha_fin}T23:59:59")
        if busqueda and busqueda.strip():
            termino = busqueda.strip()
            query = query.or_(f"radicado.ilike.%{termino}%,id.ilike.%{termino}%")

        try:
            response = (
                query.order("estado_radicado", desc=True)
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Case listing failed: {err}")
            raise DatabaseException(f"Case listing failed: {err}") from err

        rows = response.data or []
        pacientes = self._pacientes(list(dict.fromkeys(row["id"] for row in rows)))
        casos = [
            {**transform_caso(row), "paciente": transform_paciente(pacientes.get(row["id"]))}
            for row in rows
        ]
        return {"casos": casos, "total": response.count or 0, "offset": offset, "limit": limit}

    def conteos_pendientes(self) -> Dict[str, List[Dict[str, Any]]]:
        """Pending cases grouped by request type and by speciality."""
        try:
            response = (
                self.supabase.table(TABLE)
                .select("tipo_solicitud, especialidad")
                .or_("estado_radicado.eq.Pendiente,estado_radicado.is.null")
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Pending counts failed: {err}")
            raise DatabaseException(f"Pending counts failed: {err}") from err

        por_tipo: Dict[str, int] = {}
        por_especialidad: Dict[str, int] = {}
        for caso in response.data or []:
            tipo = caso.get("tipo_solicitud") or "Sin clasificar"
            por_tipo[tipo] = por_tipo.get(tipo, 0) + 1
            if caso.get("especialidad"):
                por_especialidad[caso["especialidad"]] = por_especialidad.get(caso["especialidad"], 0) + 1

        return {
            "porTipoSolicitud": [{"tipo": tipo, "cantidad": n} for tipo, n in por_tipo.items()],
            "porEspecialidad": [{"especialidad": esp, "cantidad": n} for esp, n in por_especialidad.items()],
        }

    def actualizar_caso(self, radicado: str, campos: Dict[str, Any]) -> Dict[str, Any]:
        """Partially update a case and fan out state-change notifications.

        Raises:
            ValidationException: Unknown estado, or Devuelto without respuesta_back.
            NotFoundException: Unknown radicado.
        """
        values = {field: campos[field] for field in UPDATABLE_FIELDS if field in campos}
        if not values:
            raise ValidationException("No hay campos para actualizar")

        estado = values.get("estado_radicado")
        if estado is not None and estado not in ESTADOS_RADICADO:
            raise ValidationException(f"Estado no válido: {estado}")
        if estado == "Devuelto":
            if "respuesta_back" in values:
                respuesta = values["respuesta_back"]
            else:
                respuesta = self._get_raw(radicado).get("respuesta_back")
            if not (respuesta or "").strip():
                raise ValidationException(DEVOLUCION_SIN_RESPUESTA)

        try:
            response = self.supabase.table(TABLE).update(values).eq("radicado", radicado).execute()
        except Exception as err:
            self.logger.error(f"Case update failed: {err}", radicado=radicado)
            raise DatabaseException(f"Error al actualizar el caso: {err}") from err

        if not response.data:
            raise NotFoundException(f"No se encontró el radicado {radicado}")

        caso = response.data[0]
        notificaciones = {}
        if estado:
            notificaciones = self._notificar_estado(caso, estado)

        self.logger.info("Case updated", radicado=radicado, fields=list(values))
        return {
            "success": True,
            "data": transform_caso(caso),
            "message": "Caso actualizado exitosamente",
            "notificaciones": notificaciones,
        }

    def _notificar_estado(self, caso: Dict[str, Any], estado: str) -> Dict[str, bool]:
        """SMS, Teams and email side effects of a state change; never raises."""
        resultado = {"sms": self.sms.notificar_cambio_estado(caso, estado)}
        if estado != "Devuelto":
            return resultado

        radicado = caso.get("radicado")
        paciente = transform_paciente(self._pacientes([caso.get("id")]).get(caso.get("id")))
        identificacion = f"{(paciente or {}).get('tipoId') or ''} - {caso.get('id')}"

        try:
            self.teams.notify(TIPO_DEVOLUCION_BACK, {
                "radicado": radicado,
                "paciente": nombre_paciente(paciente),
                "identificacion": identificacion,
                "tipoSolicitud": caso.get("tipo_solicitud"),
                "fechaRadicacion": caso.get("created_at"),
                "radicador": caso.get("radicador"),
                "motivoDevolucion": caso.get("respuesta_back"),
            })
            resultado["teams"] = True
        except Exception as err:
            self.logger.error(f"Teams notification failed: {err}", radicado=radicado)
            resultado["teams"] = False

        destinatario = caso.get("correo_radicador")
        if not destinatario:
            self.logger.warning("Filer has no email, return notice skipped", radicado=radicado)
            resultado["email"] = False
            return resultado

        try:
            self.emails.send("devolucion", destinatario, radicado, {
                "eps": (paciente or {}).get("eps") or "",
                "pacienteNombre": nombre_paciente(paciente),
                "pacienteIdentificacion": identificacion,
                "pacienteTipoId": (paciente or {}).get("tipoId") or "",
                "archivos": [],
                "fechaRadicacion": caso.get("created_at"),
                "observacionesDevolucion": caso.get("respuesta_back"),
                "tipoSolicitud": caso.get("tipo_solicitud") or "",
            })
            resultado["email"] = True
        except Exception as err:
            self.logger.error(f"Return email failed: {err}", radicado=radicado)
            resultado["email"] = False
        return resultado

    def eliminar_caso(self, radicado: str) -> Dict[str, Any]:
        """Delete a case and its stored supports."""
        self._get_raw(radicado)

        try:
            archivos = self.bucket.list(radicado) or []
            paths = [f"{radicado}/{item['name']}" for item in archivos if item.get("name")]
            if paths:
                self.bucket.remove(paths)
        except Exception as err:
            self.logger.error(f"Case supports cleanup failed: {err}", radicado=radicado)
            raise StorageException(f"Error eliminando soportes: {err}") from err

        try:
            self.supabase.table(TABLE).delete().eq("radicado", radicado).execute()
        except Exception as err:
            self.logger.error(f"Case delete failed: {err}", radicado=radicado)
            raise DatabaseException("Error al eliminar el caso. Verifica tus permisos.") from err

        self.logger.info("Case deleted", radicado=radicado)
        return {"success": True, "message": "Caso eliminado exitosamente"}
