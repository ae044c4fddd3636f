"""Teams Manager for incoming-webhook notifications."""

import re
import requests
from html import unescape
from typing import Any, Dict

from app.core.v1.exceptions import ConfigurationException, TeamsException, ValidationException
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS


TIPO_DEVOLUCION_BACK = "devolucion_back"
HTML_TAG = re.compile(r"<[^>]*>")


def strip_html(text: str) -> str:
    return unescape(HTML_TAG.sub("", text or "")).replace("\xa0", " ").strip()


def build_devolucion_card(datos: Dict[str, Any]) -> Dict[str, Any]:
    """MessageCard for a returned back-office case."""
    return {
        "@type": "MessageCard",
        "@context": "https://schema.org/extensions",
        "summary": f"Radicado Devuelto - {datos.get('radicado')}",
        "themeColor": "EA580C",
        "title": "⚠️ RADICADO DEVUELTO",
        "sections": [
            {
                "facts": [
                    {"name": "📋 Radicado:", "value": datos.get("radicado") or ""},
                    {"name": "👤 Paciente:", "value": datos.get("paciente") or ""},
                    {"name": "🆔 Identificación:", "value": datos.get("identificacion") or ""},
                    {"name": "📝 Tipo Solicitud:", "value": datos.get("tipoSolicitud") or ""},
                    {"name": "📅 Fecha Radicación:", "value": datos.get("fechaRadicacion") or ""},
                    {"name": "👨‍💼 Radicador:", "value": datos.get("radicador") or ""},
                ],
                "text": "",
            },
            {
                "title": "❌ Motivo de Devolución:",
                "text": strip_html(datos.get("motivoDevolucion")) or "Sin motivo especificado",
            },
        ],
    }


class TeamsManager:
    """Posts cards to the configured Teams channel."""

    def __init__(self):
        self.logger = LogManager(__name__)
        self.webhook_url = SETTINGS.MICROSOFT.TEAMS_WEBHOOK_DEVOLUCION_BACK
        self.timeout = SETTINGS.GENERAL.HTTP_TIMEOUT

    def notify(self, tipo: str, datos: Dict[str, Any]) -> Dict[str, Any]:
        """Send a notification card.

        Raises:
            ValidationException: Unsupported type or missing data.
            ConfigurationException: Webhook not configured.
            TeamsException: Teams answered with an error.
        """
        if tipo != TIPO_DEVOLUCION_BACK:
            raise ValidationException("Tipo de notificación no soportado")

        if not datos or not datos.get("radicado") or not datos.get("motivoDevolucion"):
            raise ValidationException("Faltan datos requeridos (radicado, motivoDevolucion)")

        if not self.webhook_url:
            self.logger.error("Teams webhook is not configured")
            raise ConfigurationException("Webhook de Teams no configurado")

        try:
            response = requests.post(self.webhook_url, json=build_devolucion_card(datos), timeout=self.timeout)
        except requests.exceptions.RequestException as err:
            self.logger.error(f"Network error while posting to Teams: {err}")
            raise TeamsException(f"Error al enviar a Teams: {err}") from err

        if not response.ok:
            self.logger.error("Teams webhook error", status=response.status_code, body=response.text)
            raise TeamsException(
                f"Error al enviar a Teams: {response.status_code}",
                status_code=response.status_code
            )

        self.logger.info("Teams notification sent", radicado=datos["radicado"])
        return {"success": True, "message": "Notificación enviada a Teams"}


# Initialize global teams manager
teams_manager = TeamsManager()
