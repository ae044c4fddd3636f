"""Email Manager for sending portal emails through the Gmail API."""

import base64
import requests
from datetime import datetime, timedelta
from email.headerregistry import Address
from email.message import EmailMessage
from typing import Any, Dict, List, Optional, Union

from app.core.v1 import email_templates
from app.core.v1.decorators import retry
from app.core.v1.exceptions import ConfigurationException, EmailException, ValidationException
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS


GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"
SENDER_NAME = "Gestar Salud IPS"

MISSING_CREDENTIALS = "Faltan credenciales de Google OAuth2 en variables de entorno"
INVALID_EMAIL_TYPE = "Tipo de correo no válido"
MISSING_FIELDS = "Faltan campos requeridos: type, destinatario, radicado, datos"


def encode_message(message: EmailMessage) -> str:
    """Gmail ``raw`` field: base64url without padding."""
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


class EmailManager:
    """
    Gmail sender using an OAuth2 refresh token.

    Access tokens are cached until shortly before they expire.
    """

    def __init__(self):
        """Initialize Email Manager."""
        self.logger = LogManager(__name__)
        self.client_id = SETTINGS.GOOGLE.GOOGLE_CLIENT_ID
        self.client_secret = SETTINGS.GOOGLE.GOOGLE_CLIENT_SECRET
        self.refresh_token = SETTINGS.GOOGLE.GOOGLE_REFRESH_TOKEN
        self.sender = SETTINGS.GOOGLE.GOOGLE_USER_EMAIL
        self.timeout = SETTINGS.GENERAL.HTTP_TIMEOUT

        # Token cache
        self._cached_token = None
        self._token_expires_at = None

    def _is_token_valid(self) -> bool:
        if self._cached_token is None or self._token_expires_at is None:
            return False
        return datetime.now() < self._token_expires_at

    def get_access_token(self) -> str:
        """Exchange the refresh token for an access token.

        Raises:
            ConfigurationException: OAuth2 credentials are missing.
            EmailException: Google rejected the refresh token.
        """
        if self._is_token_valid():
            return self._cached_token

        if not (self.client_id and self.client_secret and self.refresh_token):
            raise ConfigurationException(MISSING_CREDENTIALS)

        try:
            response = requests.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as err:
            self.logger.error(f"Network error while refreshing Gmail token: {err}")
            raise EmailException(f"Network error while refreshing Gmail token: {err}") from err

        if not response.ok:
            if response.status_code in (400, 401, 403):
                self.logger.critical("Gmail OAuth2 credentials are invalid or expired", status=response.status_code)
            raise EmailException(
                f"Error renovando token de Gmail: {response.text}",
                status_code=response.status_code
            )

        data = response.json()
        self._cached_token = data["access_token"]
        # Refresh one minute before Google does
        self._token_expires_at = datetime.now() + timedelta(seconds=int(data.get("expires_in", 3600)) - 60)
        return self._cached_token

    def invalidate_token(self):
        """Invalidate the cached token."""
        self._cached_token = None
        self._token_expires_at = None

    def build_message(
        self,
        to: Union[str, List[str]],
        subject: str,
        html_body: str,
        cc: Optional[Union[str, List[str]]] = None
    ) -> EmailMessage:
        message = EmailMessage()
        message["To"] = to if isinstance(to, str) else ", ".join(to)
        if cc:
            message["Cc"] = cc if isinstance(cc, str) else ", ".join(cc)
        message["From"] = Address(SENDER_NAME, addr_spec=self.sender)
        message["Subject"] = subject
        message.set_content(html_body, subtype="html", charset="utf-8")
        return message

    @retry(exceptions=(requests.exceptions.ConnectionError, requests.exceptions.Timeout), reraise=True)
    def _post_message(self, raw: str) -> requests.Response:
        return requests.post(
            GMAIL_SEND_URL,
            headers={"Authorization": f"Bearer {self.get_access_token()}"},
            json={"raw": raw},
            timeout=self.timeout
        )

    def send_email(
        self,
        to: Union[str, List[str]],
        subject: str,
        html_body: str,
        cc: Optional[Union[str, List[str]]] = None
    ) -> Dict[str, Any]:
        """Send an HTML email from the portal mailbox.

        Returns:
            Dict[str, Any]: Gmail API response (message id and thread id).

        Raises:
            ConfigurationException: OAuth2 credentials are missing.
            EmailException: The Gmail API rejected the message.
        """
        raw = encode_message(self.build_message(to, subject, html_body, cc))

        try:
            response = self._post_message(raw)
        except requests.exceptions.RequestException as err:
            self.logger.error(f"Network error while sending email: {err}", to=to)
            raise EmailException(f"Network error while sending email: {err}") from err

        if response.status_code == 401:
            self.invalidate_token()

        if not response.ok:
            self.logger.error("Gmail API rejected the message", status=response.status_code, to=to)
            raise EmailException(
                f"Error enviando correo: {response.text}",
                status_code=response.status_code
            )

        self.logger.info("Email sent", to=to, subject=subject)
        return response.json()

    def send(self, tipo: str, destinatario: str, radicado: str, datos: Dict[str, Any]) -> Dict[str, Any]:
        """Render one of the portal templates and send it.

        Args:
            tipo: Template name (``radicacion``, ``rechazo``, ``devolucion``...).
            destinatario: Recipient address.
            radicado: Radicado (or recobro consecutive) shown in subject and body.
            datos: Template data.

        Raises:
            ValidationException: Missing fields or unknown template.
        """
        if not (tipo and destinatario and radicado and datos):
            raise ValidationException(MISSING_FIELDS)

        if tipo not in email_templates.EMAIL_TYPES:
            raise ValidationException(INVALID_EMAIL_TYPE)

        subject_template, render = email_templates.EMAIL_TYPES[tipo]
        self.send_email(destinatario, subject_template.format(radicado=radicado), render(radicado, datos))
        return {"success": True, "message": f"Correo de {tipo} enviado exitosamente"}


# Initialize global email manager
email_manager = EmailManager()
