"""Critical error alerts for the technical team."""

import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.core.v1 import email_templates
from app.core.v1.email_manager import EmailManager, email_manager
from app.core.v1.exceptions import ValidationException
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS


SEVERITIES = ["CRITICAL", "HIGH", "MEDIUM"]
CATEGORIES = list(email_templates.CATEGORY_EMOJIS)
REQUIRED_FIELDS = ["severity", "category", "errorMessage", "feature", "timestamp"]


class CriticalErrorManager:
    """Sends alert emails when an integration or storage operation fails."""

    def __init__(self, emails: Optional[EmailManager] = None, recipients: Optional[List[str]] = None):
        self.logger = LogManager(__name__)
        self.emails = emails or email_manager
        self.recipients = recipients or SETTINGS.NOTIFICATIONS.TECH_ALERT_EMAILS

    def validate(self, payload: Dict[str, Any]):
        missing = [field for field in REQUIRED_FIELDS if not payload.get(field)]
        if missing:
            raise ValidationException(f"Faltan campos requeridos: {', '.join(missing)}")
        if payload["severity"] not in SEVERITIES:
            raise ValidationException(f"Severidad no válida: {payload['severity']}")
        if payload["category"] not in CATEGORIES:
            raise ValidationException(f"Categoría no válida: {payload['category']}")

    def send_alert(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Validate an alert payload and email it to the technical team.

        Raises:
            ValidationException: Missing or invalid fields.
            EmailException: Gmail rejected the alert.
        """
        self.validate(payload)
        self.emails.send_email(
            self.recipients,
            email_templates.asunto_error_critico(payload),
            email_templates.error_critico(payload)
        )
        self.logger.info(
            "Critical error alert sent",
            category=payload["category"],
            feature=payload["feature"]
        )
        return {"success": True, "message": "Notificación de error crítico enviada"}

    def notify_critical_error(
        self,
        category: str,
        error_message: str,
        feature: str,
        severity: str = "CRITICAL",
        error: Optional[BaseException] = None,
        metadata: Optional[Dict[str, Any]] = None,
        user_email: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> bool:
        """Best-effort alert; never raises.

        Returns:
            bool: True when the alert email was sent.
        """
        payload = {
            "severity": severity,
            "category": category,
            "errorMessage": error_message,
            "errorStack": "".join(traceback.format_exception(type(error), error, error.__traceback__))
            if error is not None else None,
            "feature": feature,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata,
            "userEmail": user_email,
            "userId": user_id,
        }
        self.logger.error(f"[{severity}] {category} in {feature}: {error_message}")

        try:
            self.send_alert(payload)
            return True
        except Exception as err:
            self.logger.error(f"Could not send critical error alert: {err}", category=category)
            return False

    def notify_api_key_failure(self, api_name: str, feature: str, status_code: int, error=None) -> bool:
        return self.notify_critical_error(
            "API_KEY_FAILURE",
            f"{api_name} retornó error {status_code} - Posible API key inválida o expirada",
            feature,
            error=error,
            metadata={"apiName": api_name, "statusCode": status_code}
        )

    def notify_authentication_error(self, provider: str, feature: str, status_code: int, error=None) -> bool:
        return self.notify_critical_error(
            "AUTHENTICATION_ERROR",
            f"Error de autenticación con {provider} ({status_code}) - Credenciales OAuth2 pueden estar expiradas",
            feature,
            error=error,
            metadata={"provider": provider, "statusCode": status_code}
        )

    def notify_service_unavailable(self, service_name: str, feature: str, status_code: int, error=None) -> bool:
        return self.notify_critical_error(
            "SERVICE_UNAVAILABLE",
            f"Servicio '{service_name}' no disponible (HTTP {status_code})",
            feature,
            error=error,
            metadata={"serviceName": service_name, "statusCode": status_code}
        )


# Initialize global critical error manager
critical_error_manager = CriticalErrorManager()
