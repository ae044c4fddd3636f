"""Soportes Manager for billing-support filing (radicación de soportes de facturación)."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from app.core.v1.critical_error_manager import CriticalErrorManager, critical_error_manager
from app.core.v1.email_manager import EmailManager, email_manager
from app.core.v1.exceptions import (
    ConfigurationException,
    DatabaseException,
    NotFoundException,
    StorageException,
    ValidationException
)
from app.core.v1.file_naming import (
    CATEGORIA_LABELS,
    CATEGORIAS,
    ID_TYPE_PREFIX,
    columna_categoria,
    extraer_identificacion,
    generar_ruta_archivo,
    url_columns
)
from app.core.v1.log_manager import LogManager
from app.core.v1.onedrive_manager import OneDriveManager, onedrive_manager
from app.core.v1.supabase_manager import SupabaseManager
from app.settings.v1.settings import SETTINGS


TABLE = "soportes_facturacion"
FEATURE = "Soportes de Facturación"

ESTADOS = ["Pendiente", "En Revisión", "Aprobado", "Devuelto", "Facturado"]
EPS_OPCIONES = ["NUEVA EPS", "SALUD TOTAL", "FAMILIAR"]
REGIMENES = ["CONTRIBUTIVO", "SUBSIDIADO"]
SERVICIOS = [
    "Consulta Ambulatoria",
    "Procedimientos Menores",
    "Imágenes Diagnósticas",
    "Cirugía ambulatoria",
    "Terapias",
    "Aplicación de medicamentos",
    "Laboratorio clínico",
]
SYNC_STATUSES = ["pending", "syncing", "synced", "error", "failed"]

UPLOAD_UPLOADING = "uploading"
UPLOAD_COMPLETED = "completed"
UPLOAD_PARTIAL = "partial"
UPLOAD_FAILED = "failed"

REQUIRED_INIT_FIELDS = ["radicadorEmail", "eps", "regimen", "servicioPrestado", "fechaAtencion"]
DEFAULT_PAGE_SIZE = 50
STALE_UPLOAD_MINUTES = 30
STALE_BATCH_SIZE = 50

MISSING_FILE_REASON = "Archivo no recibido en el servidor. Posible interrupción de la conexión."
TOTAL_FAILURE_MESSAGE = (
    "Ningún archivo fue recibido. El radicado fue eliminado. Debe realizar una nueva radicación."
)

FIELD_MAP = {
    "id": "id",
    "radicado": "radicado",
    "fecha_radicacion": "fechaRadicacion",
    "radicador_email": "radicadorEmail",
    "radicador_nombre": "radicadorNombre",
    "eps": "eps",
    "regimen": "regimen",
    "servicio_prestado": "servicioPrestado",
    "fecha_atencion": "fechaAtencion",
    "tipo_id": "tipoId",
    "identificacion": "identificacion",
    "nombres_completos": "nombresCompletos",
    "bd_id": "bdId",
    "estado": "estado",
    "observaciones_facturacion": "observacionesFacturacion",
    "onedrive_folder_id": "onedriveFolderId",
    "onedrive_folder_url": "onedriveFolderUrl",
    "onedrive_sync_status": "onedriveSyncStatus",
    "onedrive_sync_at": "onedriveSyncAt",
    "upload_status": "uploadStatus",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}


def _camel(column: str) -> str:
    head, *rest = column.split("_")
    return head + "".join(part.capitalize() for part in rest)


def transform_soporte(raw: Dict[str, Any]) -> Dict[str, Any]:
    """DB row (snake_case) to API model (camelCase); URL lists default to []."""
    soporte = {api_key: raw.get(db_key) for db_key, api_key in FIELD_MAP.items()}
    for column in url_columns():
        soporte[_camel(column)] = raw.get(column) or []
    return soporte


def archivos_para_email(urls_por_columna: Dict[str, List[str]]) -> List[Dict[str, Any]]:
    return [
        {"categoria": CATEGORIA_LABELS[categoria], "urls": urls_por_columna.get(columna_categoria(categoria)) or []}
        for categoria in CATEGORIAS
    ]


def agrupar_fallidos(faltantes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    grupos: Dict[str, List[str]] = {}
    for archivo in faltantes:
        grupos.setdefault(archivo["category"], []).append(archivo["originalName"])
    return [{"categoria": categoria, "nombres": nombres} for categoria, nombres in grupos.items()]


class SoportesManager:
    """
    Two-phase filing of billing supports.

    ``iniciar_radicacion`` creates the record and hands out signed upload
    URLs; the browser uploads straight to Storage; ``finalizar_radicacion``
    checks which files arrived and settles the record.
    """

    def __init__(
        self,
        supabase: Optional[SupabaseManager] = None,
        emails: Optional[EmailManager] = None,
        critical: Optional[CriticalErrorManager] = None,
        onedrive: Optional[OneDriveManager] = None
    ):
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()
        self.emails = emails or email_manager
        self.critical = critical or critical_error_manager
        self.onedrive = onedrive or onedrive_manager
        self.bucket_name = SETTINGS.SUPABASE.BUCKET_SOPORTES_FACTURACION
        self.signed_url_expiration = SETTINGS.SUPABASE.SIGNED_URL_EXPIRATION

    @property
    def bucket(self):
        return self.supabase.bucket(self.bucket_name)

    # Filing

    def iniciar_radicacion(self, data: Dict[str, Any], user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Create the soporte and signed upload URLs for its file manifest.

        Args:
            data: Filing metadata plus ``archivos``: ``[{categoria, files: [{name, size}]}]``.
            user: Authenticated user; its email fills a missing ``radicadorEmail``.

        Returns:
            Dict with radicado, soporteId and one upload token per accepted file.

        Raises:
            ValidationException: Required metadata missing.
            DatabaseException: The record could not be created.
        """
        if user and not data.get("radicadorEmail"):
            data = {**data, "radicadorEmail": user.get("email")}

        missing = [field for field in REQUIRED_INIT_FIELDS if not data.get(field)]
        if missing:
            raise ValidationException(f"Campos requeridos faltantes: {', '.join(REQUIRED_INIT_FIELDS)}")

        try:
            registro = self._insert({
                "radicador_email": data["radicadorEmail"],
                "radicador_nombre": data.get("radicadorNombre"),
                "eps": data["eps"],
                "regimen": data["regimen"],
                "servicio_prestado": data["servicioPrestado"],
                "fecha_atencion": str(data["fechaAtencion"]),
                "tipo_id": data.get("tipoId"),
                "identificacion": data.get("identificacion"),
                "nombres_completos": data.get("nombresCompletos"),
                "observaciones_facturacion": data.get("observaciones"),
                "upload_status": UPLOAD_UPLOADING,
                "upload_started_at": datetime.now(timezone.utc).isoformat(),
            })
        except DatabaseException as err:
            self.critical.notify_critical_error(
                "DATABASE_ERROR", f"Error en init-radicacion: {err.message}", FEATURE, error=err
            )
            raise

        radicado = registro["radicado"]
        soporte_id = registro["id"]
        upload_tokens, expected_files = self._signed_uploads(radicado, data)

        try:
            self.supabase.table(TABLE).update({"expected_files": expected_files}).eq("id", soporte_id).execute()
        except Exception as err:
            self.logger.warning(f"Could not store expected files: {err}", radicado=radicado)

        self.logger.info("Radicación started", radicado=radicado, files=len(upload_tokens))
        return {
            "success": True,
            "radicado": radicado,
            "soporteId": soporte_id,
            "uploadTokens": upload_tokens,
        }

    def _insert(self, values: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.supabase.table(TABLE).insert(values).execute()
        except Exception as err:
            self.logger.error(f"Soporte insert failed: {err}")
            raise DatabaseException(f"Error al crear la radicación: {err}") from err

        if not response.data:
            raise DatabaseException("Error al crear la radicación: desconocido")
        return response.data[0]

    def _signed_uploads(self, radicado: str, data: Dict[str, Any]) -> Tuple[List[Dict], List[Dict]]:
        upload_tokens = []
        expected_files = []
        contadores: Dict[str, int] = {}

        for grupo in data.get("archivos") or []:
            categoria = grupo.get("categoria")
            for archivo in grupo.get("files") or []:
                nombre_original = archivo.get("name", "")
                _, ruta, _ = generar_ruta_archivo(
                    nombre_original, categoria, radicado, data["eps"], data["servicioPrestado"], contadores
                )
                try:
                    signed = self.bucket.create_signed_upload_url(ruta)
                except Exception as err:
                    self.logger.error(f"Signed upload URL failed: {err}", path=ruta)
                    continue

                upload_tokens.append({
                    "signedUrl": signed.get("signed_url") or signed.get("signedUrl"),
                    "token": signed.get("token"),
                    "path": ruta,
                    "category": categoria,
                    "originalName": nombre_original,
                })
                expected_files.append({
                    "path": ruta,
                    "category": categoria,
                    "originalName": nombre_original,
                    "uploaded": False,
                })

        return upload_tokens, expected_files

    def _signed_download_url(self, path: str) -> Optional[str]:
        try:
            signed = self.bucket.create_signed_url(path, self.signed_url_expiration)
        except Exception as err:
            self.logger.debug(f"File not in storage: {err}", path=path)
            return None
        return signed.get("signedURL") or signed.get("signedUrl")

    def _verificar_archivos(self, expected_files: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Check which expected files reached Storage."""
        urls: Dict[str, List[str]] = {}
        identificaciones: List[str] = []
        exitosos: List[str] = []
        faltantes: List[Dict[str, Any]] = []

        for archivo in expected_files:
            signed_url = self._signed_download_url(archivo["path"])
            if not signed_url:
                faltantes.append(archivo)
                continue

            urls.setdefault(columna_categoria(archivo["category"]), []).append(signed_url)
            exitosos.append(archivo["originalName"])

            identificacion = extraer_identificacion(archivo["path"].split("/")[-1])
            if identificacion:
                for value in (identificacion, ID_TYPE_PREFIX.sub("", identificacion)):
                    if value and value not in identificaciones:
                        identificaciones.append(value)

        if not faltantes:
            status = UPLOAD_COMPLETED
        elif exitosos:
            status = UPLOAD_PARTIAL
        else:
            status = UPLOAD_FAILED

        missing_paths = {archivo["path"] for archivo in faltantes}
        return {
            "urls": urls,
            "identificaciones": identificaciones,
            "exitosos": exitosos,
            "faltantes": faltantes,
            "status": status,
            "expected_files": [
                {**archivo, "uploaded": archivo["path"] not in missing_paths} for archivo in expected_files
            ],
        }

    def _guardar_verificacion(self, registro: Dict[str, Any], verificacion: Dict[str, Any]):
        values = {
            **verificacion["urls"],
            "upload_status": verificacion["status"],
            "upload_completed_at": datetime.now(timezone.utc).isoformat(),
            "expected_files": verificacion["expected_files"],
        }
        if verificacion["identificaciones"]:
            values["identificaciones_archivos"] = verificacion["identificaciones"]

        try:
            self.supabase.table(TABLE).update(values).eq("id", registro["id"]).execute()
        except Exception as err:
            self.logger.error(f"Soporte update failed: {err}", radicado=registro.get("radicado"))
            raise DatabaseException(f"Soporte update failed: {err}") from err

    def _datos_confirmacion(self, registro: Dict[str, Any], urls: Dict[str, List[str]]) -> Dict[str, Any]:
        return {
            "eps": registro.get("eps"),
            "regimen": registro.get("regimen"),
            "servicioPrestado": registro.get("servicio_prestado"),
            "fechaAtencion": registro.get("fecha_atencion"),
            "pacienteNombre": registro.get("nombres_completos") or "No especificado",
            "pacienteIdentificacion": registro.get("identificacion") or "No especificado",
            "pacienteTipoId": registro.get("tipo_id") or "CC",
            "archivos": archivos_para_email(urls),
            "fechaRadicacion": registro.get("fecha_radicacion") or registro.get("created_at"),
            "radicadorEmail": registro.get("radicador_email"),
        }

    def _datos_fallo(self, verificacion: Dict[str, Any], total: int, fallo_total: bool) -> Dict[str, Any]:
        datos = {
            "archivosFallidos": agrupar_fallidos(verificacion["faltantes"]),
            "archivosExitosos": len(verificacion["exitosos"]),
            "totalArchivos": total,
            "timestamp": datetime.now().isoformat(),
            "falloTotal": fallo_total,
            "erroresDetalle": [
                {"nombre": archivo["originalName"], "razon": MISSING_FILE_REASON}
                for archivo in verificacion["faltantes"]
            ],
        }
        if fallo_total:
            datos["radicadoEliminado"] = True
        return datos

    def _send_email_safely(self, tipo: str, destinatario: str, radicado: str, datos: Dict[str, Any]) -> bool:
        if not destinatario:
            return False
        try:
            self.emails.send(tipo, destinatario, radicado, datos)
            return True
        except Exception as err:
            self.logger.error(f"Could not send {tipo} email: {err}", radicado=radicado)
            return False

    def finalizar_radicacion(self, radicado: str) -> Dict[str, Any]:
        """Settle a radicación once the browser finished uploading.

        ``completed``: every file arrived, the confirmation email is sent.
        ``partial``: some files are missing, the filer gets a failure report.
        ``failed``: nothing arrived; storage and record are deleted.

        Raises:
            ValidationException: Missing radicado.
            NotFoundException: Unknown radicado.
        """
        if not radicado:
            raise ValidationException("Campo requerido: radicado")

        registro = self._get_raw(radicado)
        expected_files = registro.get("expected_files") or []

        try:
            verificacion = self._verificar_archivos(expected_files)
            total = len(expected_files)

            if verificacion["status"] == UPLOAD_FAILED:
                return self._fallo_total(registro, verificacion, total)

            self._guardar_verificacion(registro, verificacion)
        except DatabaseException as err:
            self.critical.notify_critical_error(
                "DATABASE_ERROR", f"Error en finalizar-radicacion: {err.message}", FEATURE, error=err
            )
            raise

        destinatario = registro.get("radicador_email")
        if verificacion["status"] == UPLOAD_COMPLETED:
            self._send_email_safely(
                "radicacion", destinatario, radicado, self._datos_confirmacion(registro, verificacion["urls"])
            )
        else:
            self._send_email_safely(
                "fallo_subida", destinatario, radicado, self._datos_fallo(verificacion, total, False)
            )
            self.critical.notify_critical_error(
                "STORAGE_FAILURE",
                f"Radicado {radicado}: {len(verificacion['faltantes'])}/{total} archivos no llegaron a Storage",
                FEATURE,
                severity="HIGH",
                metadata={
                    "radicado": radicado,
                    "archivosFaltantes": [archivo["originalName"] for archivo in verificacion["faltantes"]],
                    "archivosExitosos": len(verificacion["exitosos"]),
                }
            )

        self.logger.info("Radicación finalized", radicado=radicado, status=verificacion["status"])
        return {
            "success": True,
            "radicado": radicado,
            "uploadStatus": verificacion["status"],
            "archivosExitosos": len(verificacion["exitosos"]),
            "archivosFaltantes": len(verificacion["faltantes"]),
            "totalEsperados": total,
        }

    def _fallo_total(self, registro: Dict[str, Any], verificacion: Dict[str, Any], total: int) -> Dict[str, Any]:
        radicado = registro["radicado"]
        self.logger.warning(f"Total upload failure: 0/{total} files received", radicado=radicado)

        self._send_email_safely(
            "fallo_subida", registro.get("radicador_email"), radicado, self._datos_fallo(verificacion, total, True)
        )
        try:
            self._remove_files([archivo["path"] for archivo in registro.get("expected_files") or []])
        except StorageException as err:
            self.logger.warning(f"Partial files left in storage: {err.message}", radicado=radicado)

        try:
            self.supabase.table(TABLE).delete().eq("radicado", radicado).execute()
        except Exception as err:
            self.logger.error(f"Could not delete failed radicado: {err}", radicado=radicado)

        self.critical.notify_critical_error(
            "STORAGE_FAILURE",
            f"Radicado {radicado}: FALLO TOTAL - 0/{total} archivos. Registro eliminado.",
            FEATURE,
            metadata={
                "radicado": radicado,
                "archivosFaltantes": [archivo["originalName"] for archivo in verificacion["faltantes"]],
                "radicadorEmail": registro.get("radicador_email"),
                "eliminado": True,
            }
        )
        return {
            "success": False,
            "radicado": radicado,
            "uploadStatus": UPLOAD_FAILED,
            "archivosExitosos": 0,
            "archivosFaltantes": len(verificacion["faltantes"]),
            "totalEsperados": total,
            "eliminado": True,
            "mensaje": TOTAL_FAILURE_MESSAGE,
        }

    def verificar_uploads_pendientes(self, minutos: int = STALE_UPLOAD_MINUTES) -> Dict[str, Any]:
        """Settle radicaciones stuck in ``uploading``/``partial`` for too long.

        Unlike ``finalizar_radicacion`` a stale record is never deleted;
        it is marked ``failed`` when nothing arrived.
        """
        cutoff = (datetime.now(timezone.utc) - timedelta(minutes=minutos)).isoformat()
        try:
            response = (
                self.supabase.table(TABLE)
                .select("*")
                .in_("upload_status", [UPLOAD_UPLOADING, UPLOAD_PARTIAL])
                .lt("upload_started_at", cutoff)
                .limit(STALE_BATCH_SIZE)
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Stale upload lookup failed: {err}")
            raise DatabaseException("Error consultando registros estancados") from err

        registros = response.data or []
        if not registros:
            return {"success": True, "message": "No hay uploads estancados", "processed": 0, "results": []}

        results = []
        for registro in registros:
            radicado = registro["radicado"]
            expected_files = registro.get("expected_files") or []
            try:
                verificacion = self._verificar_archivos(expected_files)
                self._guardar_verificacion(registro, verificacion)
            except (DatabaseException, StorageException) as err:
                self.logger.error(f"Stale upload recovery failed: {err.message}", radicado=radicado)
                results.append({
                    "radicado": radicado,
                    "status": UPLOAD_FAILED,
                    "error": err.message,
                })
                continue

            if verificacion["status"] == UPLOAD_COMPLETED and expected_files:
                self._send_email_safely(
                    "radicacion", registro.get("radicador_email"), radicado,
                    self._datos_confirmacion(registro, verificacion["urls"])
                )
            if verificacion["faltantes"]:
                self.critical.notify_critical_error(
                    "STORAGE_FAILURE",
                    f"[Recovery] Radicado {radicado}: {len(verificacion['faltantes'])}/{len(expected_files)} "
                    f"archivos no llegaron tras {minutos} min",
                    FEATURE,
                    severity="HIGH",
                    metadata={"radicado": radicado, "archivosExitosos": len(verificacion["exitosos"])}
                )

            results.append({
                "radicado": radicado,
                "status": verificacion["status"],
                "exitosos": len(verificacion["exitosos"]),
                "faltantes": len(verificacion["faltantes"]),
            })

        failed = sum(1 for result in results if "error" in result)
        self.logger.info("Stale uploads settled", processed=len(results), failed=failed)
        return {"success": True, "processed": len(results), "failed": failed, "results": results}

    # Queries

    def _get_raw(self, radicado: str) -> Dict[str, Any]:
        try:
            response = (
                self.supabase.table(TABLE)
                .select("*")
                .eq("radicado", radicado)
                .maybe_single()
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Soporte lookup failed: {err}", radicado=radicado)
            raise DatabaseException(f"Soporte lookup failed: {err}") from err

        registro = response.data if response else None
        if not registro:
            raise NotFoundException(f"Radicado {radicado} no encontrado")
        return registro

    def obtener_por_radicado(self, radicado: str) -> Dict[str, Any]:
        return transform_soporte(self._get_raw(radicado))

    def historial(self, identificacion: str) -> List[Dict[str, Any]]:
        """Soportes filed for a patient, newest first."""
        try:
            response = (
                self.supabase.table(TABLE)
                .select("*")
                .eq("identificacion", identificacion)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Soporte history failed: {err}", identificacion=identificacion)
            raise DatabaseException(f"Soporte history failed: {err}") from err
        return [transform_soporte(row) for row in response.data or []]

    def listar(
        self,
        estado: Optional[str] = None,
        eps: Optional[str] = None,
        fecha_inicio: Optional[str] = None,
        fecha_fin: Optional[str] = None,
        busqueda: Optional[str] = None,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> Dict[str, Any]:
        """Filtered, paginated listing for the billing dashboard."""
        query = self.supabase.table(TABLE).select("*", count="exact")

        if estado and estado != "Todos":
            query = query.eq("estado", estado)
        if eps:
            query = query.eq("eps", eps)
        if fecha_inicio:
            query = query.gte("fecha_radicacion", fecha_inicio)
        if fecha_fin:
            query = query.lte("fecha_radicacion", f"{fecha_fin}T23:59:59")
        if busqueda and busqueda.strip():
            termino = busqueda.strip()
            query = query.or_(
                f"radicado.ilike.%{termino}%,identificacion.ilike.%{termino}%,"
                f"nombres_completos.ilike.%{termino}%"
            )

        try:
            response = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
        except Exception as err:
            self.logger.error(f"Soporte listing failed: {err}")
            raise DatabaseException(f"Soporte listing failed: {err}") from err

        return {
            "data": [transform_soporte(row) for row in response.data or []],
            "total": response.count or 0,
            "offset": offset,
            "limit": limit,
        }

    def conteos_por_estado(self) -> Dict[str, int]:
        try:
            response = self.supabase.table(TABLE).select("estado").execute()
        except Exception as err:
            self.logger.error(f"Soporte counts failed: {err}")
            raise DatabaseException(f"Soporte counts failed: {err}") from err

        conteos: Dict[str, int] = {}
        for row in response.data or []:
            estado = row.get("estado") or "Sin estado"
            conteos[estado] = conteos.get(estado, 0) + 1
        return conteos

    # Changes

    def actualizar_estado(
        self,
        radicado: str,
        estado: str,
        observaciones: Optional[str] = None
    ) -> Dict[str, Any]:
        """Change the billing state; ``Devuelto`` emails the filer.

        Raises:
            ValidationException: Unknown state.
            NotFoundException: Unknown radicado.
        """
        if estado not in ESTADOS:
            raise ValidationException(f"Estado no válido: {estado}")

        values: Dict[str, Any] = {"estado": estado}
        if observaciones is not None:
            values["observaciones_facturacion"] = observaciones

        try:
            response = self.supabase.table(TABLE).update(values).eq("radicado", radicado).execute()
        except Exception as err:
            self.logger.error(f"State update failed: {err}", radicado=radicado)
            raise DatabaseException(f"Error al actualizar el estado: {err}") from err

        if not response.data:
            raise NotFoundException(f"Radicado {radicado} no encontrado")

        registro = response.data[0]
        if estado == "Devuelto":
            urls = {column: registro.get(column) or [] for column in url_columns()}
            datos = {
                **self._datos_confirmacion(registro, urls),
                "observacionesFacturacion": registro.get("observaciones_facturacion") or "",
            }
            self._send_email_safely("rechazo", registro.get("radicador_email"), radicado, datos)

        self.logger.info("Soporte state updated", radicado=radicado, estado=estado)
        return {
            "success": True,
            "data": transform_soporte(registro),
            "message": "Estado actualizado exitosamente",
        }

    def _remove_files(self, paths: List[str]):
        if not paths:
            return
        try:
            self.bucket.remove(paths)
        except Exception as err:
            self.logger.error(f"Storage cleanup failed: {err}", files=len(paths))
            raise StorageException(f"Storage cleanup failed: {err}") from err

    def _stored_paths(self, radicado: str, registro: Dict[str, Any]) -> List[str]:
        paths = [archivo["path"] for archivo in registro.get("expected_files") or []]
        try:
            listed = self.bucket.list(radicado) or []
        except Exception as err:
            self.logger.warning(f"Storage listing failed: {err}", radicado=radicado)
            listed = []
        for item in listed:
            path = f"{radicado}/{item['name']}"
            if path not in paths:
                paths.append(path)
        return paths

    def eliminar(self, radicado: str) -> Dict[str, Any]:
        """Delete a radicado: OneDrive folder (best effort), files and record.

        Raises:
            NotFoundException: Unknown radicado.
            StorageException: Files could not be removed.
        """
        registro = self._get_raw(radicado)

        onedrive_result = None
        if registro.get("onedrive_folder_id"):
            try:
                onedrive_result = self.onedrive.eliminar_carpeta(
                    radicado=radicado, folder_id=registro["onedrive_folder_id"]
                )
            except ConfigurationException as err:
                self.logger.warning(f"OneDrive cleanup skipped: {err.message}", radicado=radicado)

        self._remove_files(self._stored_paths(radicado, registro))

        try:
            self.supabase.table(TABLE).delete().eq("radicado", radicado).execute()
        except Exception as err:
            self.logger.error(f"Soporte delete failed: {err}", radicado=radicado)
            raise DatabaseException(f"Soporte delete failed: {err}") from err

        self.logger.info("Radicado deleted", radicado=radicado)
        return {"success": True, "message": f"Radicado {radicado} eliminado", "onedrive": onedrive_result}
