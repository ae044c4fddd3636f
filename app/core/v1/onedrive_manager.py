"""OneDrive Manager for synchronising billing supports through Microsoft Graph."""

import requests
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.core.v1.critical_error_manager import CriticalErrorManager, critical_error_manager
from app.core.v1.exceptions import (
    ConfigurationException,
    DatabaseException,
    NotFoundException,
    OneDriveException,
    ValidationException
)
from app.core.v1.file_naming import CATEGORIAS, LEGACY_URL_COLUMNS, nombre_carpeta, nombre_desde_url
from app.core.v1.log_manager import LogManager
from app.core.v1.supabase_manager import SupabaseManager
from app.settings.v1.settings import SETTINGS


TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
FEATURE = "Sincronización con OneDrive"

AZURE_NOT_CONFIGURED = "Credenciales de Azure no configuradas"
SYNC_FAILED = "Radicado procesado, pero falló la sincronización con OneDrive. Se reintentará luego."
NO_FOLDER = "No se encontró ID de carpeta en OneDrive, se omitió eliminación remota."
DELETE_FAILED = "Falló la eliminación en OneDrive, pero se puede continuar con la eliminación local"

# Column order used when walking a soporte's files
SYNC_COLUMNS = [
    "urls_validacion_derechos",
    "urls_autorizacion",
    "urls_soporte_clinico",
    "urls_comprobante_recibo",
] + LEGACY_URL_COLUMNS + [f"urls_{categoria}" for categoria in CATEGORIAS[4:]]


class OneDriveManager:
    """
    Microsoft Graph client (client-credentials flow) for the billing
    supports drive.
    """

    def __init__(
        self,
        supabase: Optional[SupabaseManager] = None,
        critical: Optional[CriticalErrorManager] = None
    ):
        """Initialize OneDrive Manager."""
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()
        self.critical = critical or critical_error_manager

        self.tenant_id = SETTINGS.MICROSOFT.AZURE_TENANT_ID
        self.client_id = SETTINGS.MICROSOFT.AZURE_CLIENT_ID
        self.client_secret = SETTINGS.MICROSOFT.AZURE_CLIENT_SECRET
        self.scope = SETTINGS.MICROSOFT.GRAPH_SCOPE
        self.drive_url = f"{SETTINGS.MICROSOFT.GRAPH_BASE_URL}/users/{SETTINGS.MICROSOFT.ONEDRIVE_USER}/drive"
        self.folder_id = SETTINGS.MICROSOFT.ONEDRIVE_FOLDER_ID
        self.folder_path = SETTINGS.MICROSOFT.ONEDRIVE_FOLDER_PATH
        self.timeout = SETTINGS.GENERAL.HTTP_TIMEOUT

        # Token cache
        self._cached_token = None
        self._token_expires_at = None

    @property
    def configured(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)

    def _is_token_valid(self) -> bool:
        if self._cached_token is None or self._token_expires_at is None:
            return False
        return datetime.now() < self._token_expires_at

    def get_token(self) -> str:
        """Get a Graph access token, cached until 60 s before expiry.

        Raises:
            ConfigurationException: Azure credentials are missing.
            OneDriveException: Azure AD rejected the request.
        """
        if not self.configured:
            raise ConfigurationException(AZURE_NOT_CONFIGURED)

        if self._is_token_valid():
            return self._cached_token

        try:
            response = requests.post(
                TOKEN_URL.format(tenant=self.tenant_id),
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "scope": self.scope,
                },
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as err:
            self.logger.error(f"Network error while requesting Graph token: {err}")
            raise OneDriveException(f"Network error while requesting Graph token: {err}") from err

        if not response.ok:
            if response.status_code in (400, 401, 403):
                self.logger.critical("Azure OAuth2 credentials are invalid or expired", status=response.status_code)
                self.critical.notify_authentication_error(
                    "Azure AD (Microsoft Graph)", FEATURE, response.status_code
                )
            raise OneDriveException(
                f"Error obteniendo token de Graph: {response.status_code} - {response.text}",
                status_code=response.status_code
            )

        data = response.json()
        self._cached_token = data["access_token"]
        self._token_expires_at = datetime.now() + timedelta(seconds=int(data.get("expires_in", 3600)) - 60)
        return self._cached_token

    def _request(self, method: str, url: str, action: str, **kwargs) -> requests.Response:
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self.get_token()}"

        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as err:
            self.logger.error(f"Network error while calling Graph ({action}): {err}")
            raise OneDriveException(f"Network error while calling Graph ({action}): {err}") from err

        if response.status_code >= 500:
            self.critical.notify_service_unavailable(
                "Microsoft Graph API", f"{FEATURE} - {action}", response.status_code
            )
        return response

    def obtener_id_por_path(self, folder_path: str) -> str:
        response = self._request("GET", f"{self.drive_url}/root:{folder_path}", "Obtener Carpeta")
        if not response.ok:
            raise OneDriveException(
                f"Error obteniendo carpeta por path: {response.status_code}",
                status_code=response.status_code
            )
        return response.json()["id"]

    def carpeta_base(self) -> str:
        return self.folder_id or self.obtener_id_por_path(self.folder_path)

    def crear_carpeta(self, nombre: str, parent_id: str) -> Dict[str, Any]:
        """Create a folder; an existing name gets renamed by Graph."""
        response = self._request(
            "POST",
            f"{self.drive_url}/items/{parent_id}/children",
            "Crear Carpeta",
            json={"name": nombre, "folder": {}, "@microsoft.graph.conflictBehavior": "rename"}
        )
        if not response.ok:
            raise OneDriveException(
                f"Error creando carpeta: {response.status_code} - {response.text}",
                status_code=response.status_code
            )
        return response.json()

    def subir_archivo(self, folder_id: str, nombre: str, contenido: bytes) -> Dict[str, Any]:
        response = self._request(
            "PUT",
            f"{self.drive_url}/items/{folder_id}:/{nombre}:/content",
            "Subir Archivo",
            headers={"Content-Type": "application/octet-stream"},
            data=contenido
        )
        if not response.ok:
            raise OneDriveException(
                f"Error subiendo archivo: {response.status_code} - {response.text}",
                status_code=response.status_code
            )
        return response.json()

    def eliminar_item(self, item_id: str):
        """Delete a drive item; already-missing items are fine."""
        response = self._request("DELETE", f"{self.drive_url}/items/{item_id}", "Eliminar")
        if not response.ok and response.status_code != 404:
            raise OneDriveException(
                f"Error eliminando item en OneDrive: {response.status_code} - {response.text}",
                status_code=response.status_code
            )

    def _soporte(self, radicado: str, columns: str = "*") -> Optional[Dict[str, Any]]:
        try:
            response = (
                self.supabase.table("soportes_facturacion")
                .select(columns)
                .eq("radicado", radicado)
                .maybe_single()
                .execute()
            )
        except Exception as err:
            self.logger.error(f"Soporte lookup failed: {err}", radicado=radicado)
            raise DatabaseException(f"Soporte lookup failed: {err}") from err
        return response.data if response else None

    def _update_soporte(self, radicado: str, values: Dict[str, Any]):
        try:
            self.supabase.table("soportes_facturacion").update(values).eq("radicado", radicado).execute()
        except Exception as err:
            self.logger.error(f"Soporte update failed: {err}", radicado=radicado)
            raise DatabaseException(f"Soporte update failed: {err}") from err

    def _descargar(self, url: str) -> Optional[bytes]:
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as err:
            self.logger.warning(f"File download failed: {err}")
            return None
        return response.content if response.ok else None

    def _subir_archivos(self, soporte: Dict[str, Any], folder_id: str) -> int:
        radicado = soporte.get("radicado")
        subidos = 0
        for columna in SYNC_COLUMNS:
            categoria = columna.replace("urls_", "", 1)
            for idx, url in enumerate(soporte.get(columna) or []):
                contenido = self._descargar(url)
                if contenido is None:
                    continue

                nombre = nombre_desde_url(url) or f"DOC_{radicado}_{categoria}_{idx + 1}.pdf"
                try:
                    self.subir_archivo(folder_id, nombre, contenido)
                    subidos += 1
                except OneDriveException as err:
                    self.logger.error(f"File upload to OneDrive failed: {err.message}", categoria=categoria)
        return subidos

    def sincronizar_radicado(self, radicado: str) -> Dict[str, Any]:
        """Copy every support of a radicado into its own OneDrive folder.

        OneDrive failures do not raise: the soporte is marked ``failed``
        and the result carries ``success=False, warning=True``.

        Raises:
            ValidationException: Missing radicado.
            ConfigurationException: Azure credentials are missing.
            NotFoundException: Unknown radicado.
        """
        if not radicado:
            raise ValidationException("Radicado es requerido")
        if not self.configured:
            raise ConfigurationException(AZURE_NOT_CONFIGURED)

        soporte = self._soporte(radicado)
        if not soporte:
            raise NotFoundException(f"No se encontró el radicado {radicado}")

        self._update_soporte(radicado, {"onedrive_sync_status": "syncing"})

        try:
            nombre = nombre_carpeta(soporte)
            carpeta = self.crear_carpeta(nombre, self.carpeta_base())
            subidos = self._subir_archivos(soporte, carpeta["id"])
        except (OneDriveException, ConfigurationException) as err:
            self.logger.error(f"OneDrive synchronisation failed: {err.message}", radicado=radicado)
            self._update_soporte(radicado, {
                "onedrive_sync_status": "failed",
                "onedrive_sync_at": datetime.now().isoformat(),
            })
            return {
                "success": False,
                "warning": True,
                "message": SYNC_FAILED,
                "errorDetails": err.message,
            }

        self._update_soporte(radicado, {
            "onedrive_folder_id": carpeta["id"],
            "onedrive_folder_url": carpeta.get("webUrl"),
            "onedrive_sync_status": "synced",
            "onedrive_sync_at": datetime.now().isoformat(),
        })
        self.logger.info("Radicado synchronised with OneDrive", radicado=radicado, archivos=subidos)

        return {
            "success": True,
            "folderId": carpeta["id"],
            "folderUrl": carpeta.get("webUrl"),
            "archivosSubidos": subidos,
            "message": f"Sincronizado exitosamente: {subidos} archivo(s) en carpeta {nombre}",
        }

    def eliminar_carpeta(self, radicado: Optional[str] = None, folder_id: Optional[str] = None) -> Dict[str, Any]:
        """Delete a radicado's OneDrive folder, best effort.

        Raises:
            ValidationException: Neither radicado nor folder id given.
            ConfigurationException: Azure credentials are missing.
        """
        if not radicado and not folder_id:
            raise ValidationException("Radicado o FolderID requeridos")
        if not self.configured:
            raise ConfigurationException(AZURE_NOT_CONFIGURED)

        try:
            target = folder_id
            if not target:
                soporte = self._soporte(radicado, "onedrive_folder_id")
                target = (soporte or {}).get("onedrive_folder_id")

            if not target:
                return {"success": True, "message": NO_FOLDER}

            self.eliminar_item(target)
        except (OneDriveException, DatabaseException) as err:
            self.logger.error(f"OneDrive folder deletion failed: {err.message}", radicado=radicado)
            return {"success": False, "error": err.message, "message": DELETE_FAILED}

        self.logger.info("OneDrive folder deleted", radicado=radicado, folder_id=target)
        return {"success": True, "message": "Carpeta eliminada de OneDrive exitosamente"}


# Initialize global onedrive manager
onedrive_manager = OneDriveManager()
