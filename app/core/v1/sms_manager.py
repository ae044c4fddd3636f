"""SMS Manager for LabsMobile text messages."""

import re
import unicodedata
import requests
from typing import Any, Dict, Optional

from app.core.v1.exceptions import ConfigurationException, SMSException, ValidationException
from app.core.v1.log_manager import LogManager
from app.core.v1.supabase_manager import SupabaseManager
from app.settings.v1.settings import SETTINGS


COLOMBIA_MOBILE = re.compile(r"^3\d{9}$")
COUNTRY_CODE = "57"
LOCAL_NUMBER_LENGTH = 10
MAX_SMS_LENGTH = 160

# Case states that notify the patient
ESTADOS_NOTIFICABLES = ["Autorizado", "Contrarreferido"]

INVALID_PHONE = "Número de teléfono inválido"
MISSING_PARAMS = "Faltan parámetros requeridos (phone, message)"


def strip_accents(text: str) -> str:
    """Plain ASCII letters keep the message in GSM-7 encoding."""
    normalized = unicodedata.normalize("NFD", text or "")
    return "".join(char for char in normalized if not unicodedata.combining(char))


def normalize_phone(phone: str) -> str:
    """Return the LabsMobile msisdn.

    Non-digits are dropped and 10-digit local numbers get the ``57`` prefix;
    longer numbers are taken as already carrying their country code.

    Raises:
        ValidationException: The number has no digits.
    """
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        raise ValidationException(INVALID_PHONE)
    if len(digits) == LOCAL_NUMBER_LENGTH:
        return f"{COUNTRY_CODE}{digits}"
    return digits


def build_estado_message(nombres: str, radicado: str, estado: str) -> str:
    primer_nombre = strip_accents((nombres or "").split(" ")[0])
    mensaje = (
        f"GESTAR SALUD: Hola {primer_nombre}, el estado de su radicado {radicado} "
        f"ha cambiado a {estado.upper()}. Mas info al call center {SETTINGS.NOTIFICATIONS.SMS_CALL_CENTER}."
    )
    mensaje = strip_accents(mensaje)
    if len(mensaje) > MAX_SMS_LENGTH:
        mensaje = mensaje[:MAX_SMS_LENGTH - 3] + "..."
    return mensaje


class SMSManager:
    """Sends SMS through the LabsMobile JSON API."""

    def __init__(self, supabase: Optional[SupabaseManager] = None):
        self.logger = LogManager(__name__)
        self.supabase = supabase or SupabaseManager()
        self.username = SETTINGS.NOTIFICATIONS.LABSMOBILE_USERNAME
        self.token = SETTINGS.NOTIFICATIONS.LABSMOBILE_TOKEN
        self.url = SETTINGS.NOTIFICATIONS.LABSMOBILE_URL
        self.sender = SETTINGS.NOTIFICATIONS.SMS_SENDER
        self.timeout = SETTINGS.GENERAL.HTTP_TIMEOUT

    def send_sms(self, phone: str, message: str) -> Dict[str, Any]:
        """Send one SMS.

        Raises:
            ValidationException: Missing parameters or invalid phone.
            ConfigurationException: LabsMobile credentials are missing.
            SMSException: LabsMobile rejected the message (502).
        """
        if not phone or not message:
            raise ValidationException(MISSING_PARAMS)

        msisdn = normalize_phone(phone)

        if not self.username or not self.token:
            self.logger.error("LabsMobile credentials are not configured")
            raise ConfigurationException("Error de configuración del servidor")

        payload = {
            "message": message,
            "tpoa": self.sender,
            "recipient": [{"msisdn": msisdn}],
        }

        try:
            response = requests.post(
                self.url,
                json=payload,
                auth=(self.username, self.token),
                timeout=self.timeout
            )
            data = response.json()
        except requests.exceptions.RequestException as err:
            self.logger.error(f"Network error while sending SMS: {err}")
            raise SMSException(f"Error al enviar SMS: {err}") from err
        except ValueError as err:
            raise SMSException("Error al enviar SMS", status_code=response.status_code,
                               details=response.text) from err

        if response.ok and str(data.get("code")) == "0":
            self.logger.info("SMS sent", msisdn=msisdn)
            return {"success": True, "data": data}

        self.logger.error("LabsMobile rejected the SMS", status=response.status_code, detail=data)
        raise SMSException(
            "Error al enviar SMS",
            status_code=response.status_code,
            details=data.get("message") or "Unknown error"
        )

    def notificar_cambio_estado(self, caso: Dict[str, Any], nuevo_estado: str) -> bool:
        """Tell the patient their case changed state.

        Only ``Autorizado`` and ``Contrarreferido`` notify. Failures are
        logged and never propagate.

        Returns:
            bool: True when an SMS was sent.
        """
        if nuevo_estado not in ESTADOS_NOTIFICABLES:
            return False

        radicado = caso.get("radicado")
        try:
            response = (
                self.supabase.table("bd")
                .select("nombres, apellido1, telefono")
                .eq("id", caso.get("id"))
                .maybe_single()
                .execute()
            )
            paciente = response.data if response else None
            if not paciente:
                self.logger.warning("Patient not found, SMS skipped", radicado=radicado)
                return False

            telefono = re.sub(r"\D", "", paciente.get("telefono") or "")
            if not COLOMBIA_MOBILE.match(telefono):
                self.logger.warning("Patient without a valid mobile number, SMS skipped", radicado=radicado)
                return False

            self.send_sms(telefono, build_estado_message(paciente.get("nombres"), radicado, nuevo_estado))
            return True
        except Exception as err:
            self.logger.error(f"State change SMS failed: {err}", radicado=radicado)
            return False


# Initialize global sms manager
sms_manager = SMSManager()
