"""
Tests de notificaciones: SMS por LabsMobile, tarjetas de Teams, correos por
Gmail con plantillas HTML y alertas de errores críticos.
"""

import base64
import pytest
import requests
from email import message_from_bytes
from unittest.mock import MagicMock, patch

from app.core.v1 import email_templates
from app.core.v1.critical_error_manager import CriticalErrorManager, critical_error_manager
from app.core.v1.email_manager import (
    GMAIL_SEND_URL,
    GOOGLE_TOKEN_URL,
    EmailManager,
    email_manager,
    encode_message
)
from app.core.v1.exceptions import (
    ConfigurationException,
    EmailException,
    SMSException,
    TeamsException,
    ValidationException
)
from app.core.v1.sms_manager import (
    MAX_SMS_LENGTH,
    SMSManager,
    build_estado_message,
    normalize_phone,
    sms_manager,
    strip_accents
)
from app.core.v1.teams_manager import (
    TIPO_DEVOLUCION_BACK,
    TeamsManager,
    build_devolucion_card,
    strip_html,
    teams_manager
)
from utils import TestDataGenerator


def _http_response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = json_data if json_data is not None else {}
    response.text = text
    return response


class TestSMSHelpers:
    """Tests de normalización de teléfonos y mensajes."""

    @pytest.mark.parametrize("phone,esperado", [
        ("3001234567", "573001234567"),
        ("300 123 4567", "573001234567"),
        ("+57 300-123-4567", "573001234567"),
        ("573001234567", "573001234567"),
        ("6041234567", "576041234567"),
        ("+34 600 123 456", "34600123456"),
    ])
    def test_normalize_phone(self, phone, esperado):
        """Los fijos y los números internacionales también son destinos válidos."""
        assert normalize_phone(phone) == esperado

    @pytest.mark.edge_case
    @pytest.mark.parametrize("phone", ["", "abc", "+-"])
    def test_invalid_phone(self, phone):
        with pytest.raises(ValidationException):
            normalize_phone(phone)

    def test_estado_message(self):
        mensaje = build_estado_message("María José", "RAD-1", "Autorizado")

        assert mensaje.startswith("GESTAR SALUD: Hola Maria,")
        assert "RAD-1" in mensaje
        assert "AUTORIZADO" in mensaje
        assert mensaje == strip_accents(mensaje)

    @pytest.mark.edge_case
    def test_estado_message_is_truncated(self):
        mensaje = build_estado_message("Ana", "R" * 120, "Contrarreferido")

        assert len(mensaje) == MAX_SMS_LENGTH
        assert mensaje.endswith("...")


class TestSMSManager:
    """Tests de envío de SMS."""

    @pytest.fixture
    def manager(self, fake_supabase):
        manager = SMSManager(fake_supabase)
        manager.username = "portal@gestarsaludips.com"
        manager.token = "labs-token"
        return manager

    def test_send_sms(self, manager):
        with patch("app.core.v1.sms_manager.requests.post", return_value=_http_response(200, {"code": "0"})) as mock_post:
            result = manager.send_sms("300 123 4567", "Hola")

        assert result["success"] is True
        payload = mock_post.call_args[1]["json"]
        assert payload["recipient"] == [{"msisdn": "573001234567"}]
        assert payload["tpoa"] == manager.sender
        assert mock_post.call_args[1]["auth"] == ("portal@gestarsaludips.com", "labs-token")

    @pytest.mark.parametrize("phone,msisdn", [("6041234567", "576041234567"), ("+34600123456", "34600123456")])
    def test_send_sms_to_landline_or_international(self, manager, phone, msisdn):
        """El envío genérico no exige un celular colombiano."""
        with patch("app.core.v1.sms_manager.requests.post", return_value=_http_response(200, {"code": "0"})) as mock_post:
            manager.send_sms(phone, "Hola")

        assert mock_post.call_args[1]["json"]["recipient"] == [{"msisdn": msisdn}]

    def test_provider_rejects_message(self, manager):
        """Un código distinto de 0 es un rechazo del proveedor."""
        response = _http_response(200, {"code": "23", "message": "Insufficient credits"})
        with patch("app.core.v1.sms_manager.requests.post", return_value=response):
            with pytest.raises(SMSException) as exc_info:
                manager.send_sms("3001234567", "Hola")

        assert exc_info.value.details == "Insufficient credits"

    def test_network_error(self, manager):
        with patch("app.core.v1.sms_manager.requests.post", side_effect=requests.exceptions.ConnectionError("down")):
            with pytest.raises(SMSException):
                manager.send_sms("3001234567", "Hola")

    def test_missing_credentials(self, manager):
        manager.token = ""

        with pytest.raises(ConfigurationException):
            manager.send_sms("3001234567", "Hola")

    @pytest.mark.edge_case
    def test_missing_params(self, manager):
        with pytest.raises(ValidationException):
            manager.send_sms("", "Hola")

    def test_notify_state_change(self, manager, fake_supabase):
        fake_supabase.respond("bd", {"nombres": "MARIA JOSE", "apellido1": "GARCIA", "telefono": "300-123-4567"})
        caso = TestDataGenerator.caso()

        with patch.object(manager, "send_sms") as mock_send:
            assert manager.notificar_cambio_estado(caso, "Autorizado") is True

        telefono, mensaje = mock_send.call_args[0]
        assert telefono == "3001234567"
        assert caso["radicado"] in mensaje
        assert fake_supabase.queries_for("bd")[0].args_of("eq") == [("id", caso["id"])]

    def test_notify_ignores_other_states(self, manager, fake_supabase):
        assert manager.notificar_cambio_estado(TestDataGenerator.caso(), "Devuelto") is False
        assert fake_supabase.queries == []

    @pytest.mark.edge_case
    def test_notify_without_mobile(self, manager, fake_supabase):
        fake_supabase.respond("bd", {"nombres": "MARIA", "telefono": "6047777777"})

        with patch.object(manager, "send_sms") as mock_send:
            assert manager.notificar_cambio_estado(TestDataGenerator.caso(), "Contrarreferido") is False

        mock_send.assert_not_called()

    def test_notify_never_raises(self, manager, fake_supabase):
        fake_supabase.respond("bd", {"nombres": "MARIA", "telefono": "3001234567"})

        with patch.object(manager, "send_sms", side_effect=SMSException("rejected")):
            assert manager.notificar_cambio_estado(TestDataGenerator.caso(), "Autorizado") is False


class TestTeamsManager:
    """Tests de notificaciones a Teams."""

    DATOS = {
        "radicado": "RAD-1",
        "paciente": "MARIA GARCIA",
        "identificacion": "CC - 1234567",
        "tipoSolicitud": "Auditoría Médica",
        "motivoDevolucion": "<p>Falta&nbsp;orden <b>médica</b></p>",
    }

    @pytest.fixture
    def manager(self):
        manager = TeamsManager()
        manager.webhook_url = "https://outlook.office.com/webhook/test"
        return manager

    def test_strip_html(self):
        assert strip_html("<p>Falta&nbsp;orden <b>médica</b></p>") == "Falta orden médica"
        assert strip_html(None) == ""

    def test_card(self):
        card = build_devolucion_card(self.DATOS)

        assert card["@type"] == "MessageCard"
        assert card["summary"] == "Radicado Devuelto - RAD-1"
        facts = {fact["name"]: fact["value"] for fact in card["sections"][0]["facts"]}
        assert facts["👤 Paciente:"] == "MARIA GARCIA"
        assert card["sections"][1]["text"] == "Falta orden médica"

    def test_notify(self, manager):
        with patch("app.core.v1.teams_manager.requests.post", return_value=_http_response(200)) as mock_post:
            result = manager.notify(TIPO_DEVOLUCION_BACK, self.DATOS)

        assert result["success"] is True
        assert mock_post.call_args[0][0] == manager.webhook_url

    def test_webhook_error(self, manager):
        with patch("app.core.v1.teams_manager.requests.post", return_value=_http_response(400, text="Bad payload")):
            with pytest.raises(TeamsException) as exc_info:
                manager.notify(TIPO_DEVOLUCION_BACK, self.DATOS)

        assert exc_info.value.status_code == 400

    @pytest.mark.edge_case
    def test_unsupported_type(self, manager):
        with pytest.raises(ValidationException):
            manager.notify("otro", self.DATOS)

    @pytest.mark.edge_case
    def test_missing_motivo(self, manager):
        with pytest.raises(ValidationException):
            manager.notify(TIPO_DEVOLUCION_BACK, {"radicado": "RAD-1"})

    def test_webhook_not_configured(self, manager):
        manager.webhook_url = ""

        with pytest.raises(ConfigurationException):
            manager.notify(TIPO_DEVOLUCION_BACK, self.DATOS)


class TestEmailTemplates:
    """Tests de las plantillas de correo."""

    def test_format_date_keeps_calendar_day(self):
        assert email_templates.format_date("2024-01-20") == "20/1/2024"
        assert email_templates.format_date("sin fecha") == "sin fecha"

    def test_format_datetime(self):
        assert email_templates.format_datetime("2024-01-20T15:30:00") == "20 de enero de 2024, 15:30"

    def test_radicacion_escapes_values(self):
        html = email_templates.radicacion("FACT0001", {
            "pacienteNombre": "<script>alert(1)</script>",
            "pacienteIdentificacion": "1234567",
            "archivos": [{"categoria": "Autorización", "urls": ["https://a/1"]}],
        })

        assert "FACT0001" in html
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_fallo_subida_total(self):
        html = email_templates.fallo_subida("FACT0001", {
            "falloTotal": True,
            "radicadoEliminado": True,
            "archivosFallidos": [{"categoria": "autorizacion", "nombres": ["a.pdf"]}],
            "archivosExitosos": 0,
            "totalArchivos": 1,
        })

        assert "Radicación Fallida" in html
        assert "El radicado fue eliminado" in html
        assert "a.pdf" in html

    def test_fallo_subida_partial(self):
        html = email_templates.fallo_subida("FACT0001", {"falloTotal": False, "archivosFallidos": []})

        assert "Carga Incompleta" in html

    def test_error_critico_includes_metadata(self):
        error = {
            "severity": "HIGH",
            "category": "STORAGE_FAILURE",
            "errorMessage": "1/2 archivos",
            "feature": "Soportes de Facturación",
            "timestamp": "2024-01-20T15:30:00+00:00",
            "metadata": {"radicado": "FACT0001"},
            "userEmail": "ana@gestarsaludips.com",
        }

        html = email_templates.error_critico(error)

        assert "STORAGE FAILURE" in html
        assert "FACT0001" in html
        assert "ana@gestarsaludips.com" in html
        assert email_templates.asunto_error_critico(error).startswith("⚠️ Error HIGH")

    def test_every_type_has_subject(self):
        for tipo, (subject, render) in email_templates.EMAIL_TYPES.items():
            assert "{radicado}" in subject
            assert callable(render)


class TestEmailManager:
    """Tests de envío de correos por Gmail."""

    @pytest.fixture
    def manager(self):
        manager = EmailManager()
        manager.client_id = "client-id"
        manager.client_secret = "client-secret"
        manager.refresh_token = "refresh-token"
        manager.sender = "info@gestarsaludips.com"
        return manager

    def test_encode_message_has_no_padding(self, manager):
        message = manager.build_message("ana@gestarsaludips.com", "Asunto", "<p>Hola</p>")
        raw = encode_message(message)

        assert "=" not in raw
        decoded = message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))
        assert decoded["Subject"] == "Asunto"
        assert "Gestar Salud IPS" in decoded["From"]

    def test_send_template(self, manager):
        """El correo se envía con el token renovado y el asunto de la plantilla."""
        responses = [
            _http_response(200, {"access_token": "gmail-token", "expires_in": 3600}),
            _http_response(200, {"id": "msg-1"}),
        ]
        with patch("app.core.v1.email_manager.requests.post", side_effect=responses) as mock_post:
            result = manager.send("rechazo", "ana@gestarsaludips.com", "FACT0001", {"eps": "NUEVA EPS"})

        assert result["success"] is True
        token_call, send_call = mock_post.call_args_list
        assert token_call[0][0] == GOOGLE_TOKEN_URL
        assert token_call[1]["data"]["grant_type"] == "refresh_token"
        assert send_call[0][0] == GMAIL_SEND_URL
        assert send_call[1]["headers"]["Authorization"] == "Bearer gmail-token"

        raw = send_call[1]["json"]["raw"]
        decoded = message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))
        assert decoded["Subject"] == "Rechazo de Radicado - FACT0001"

    def test_token_is_cached(self, manager):
        with patch("app.core.v1.email_manager.requests.post",
                   return_value=_http_response(200, {"access_token": "gmail-token", "expires_in": 3600})) as mock_post:
            manager.get_access_token()
            manager.get_access_token()

        assert mock_post.call_count == 1

    def test_missing_credentials(self, manager):
        manager.refresh_token = ""

        with pytest.raises(ConfigurationException):
            manager.get_access_token()

    def test_unauthorized_send_invalidates_token(self, manager):
        manager._cached_token = "expired"
        manager._token_expires_at = None
        responses = [
            _http_response(200, {"access_token": "gmail-token"}),
            _http_response(401, text="Invalid Credentials"),
        ]
        with patch("app.core.v1.email_manager.requests.post", side_effect=responses):
            with pytest.raises(EmailException) as exc_info:
                manager.send_email("ana@gestarsaludips.com", "Asunto", "<p>Hola</p>")

        assert exc_info.value.status_code == 401
        assert manager._cached_token is None

    @pytest.mark.edge_case
    def test_unknown_template(self, manager):
        with pytest.raises(ValidationException):
            manager.send("otro", "ana@gestarsaludips.com", "FACT0001", {"a": 1})

    @pytest.mark.edge_case
    def test_missing_fields(self, manager):
        with pytest.raises(ValidationException):
            manager.send("radicacion", "", "FACT0001", {"a": 1})


class TestCriticalErrorManager:
    """Tests de alertas de errores críticos."""

    PAYLOAD = {
        "severity": "CRITICAL",
        "category": "DATABASE_ERROR",
        "errorMessage": "connection refused",
        "feature": "Radicación de Casos",
        "timestamp": "2024-01-20T15:30:00Z",
    }

    @pytest.fixture
    def emails(self):
        return MagicMock(name="emails")

    @pytest.fixture
    def manager(self, emails):
        return CriticalErrorManager(emails=emails, recipients=["tecnologia@gestarsaludips.com"])

    def test_send_alert(self, manager, emails):
        result = manager.send_alert(dict(self.PAYLOAD))

        assert result["success"] is True
        recipients, subject, html = emails.send_email.call_args[0]
        assert recipients == ["tecnologia@gestarsaludips.com"]
        assert "DATABASE_ERROR" in subject
        assert "connection refused" in html

    @pytest.mark.edge_case
    @pytest.mark.parametrize("overrides", [
        {"severity": "LOW"},
        {"category": "OTRA"},
        {"feature": ""},
    ])
    def test_invalid_alert(self, manager, emails, overrides):
        with pytest.raises(ValidationException):
            manager.send_alert({**self.PAYLOAD, **overrides})

        emails.send_email.assert_not_called()

    def test_notify_includes_stack(self, manager, emails):
        try:
            raise RuntimeError("boom")
        except RuntimeError as err:
            assert manager.notify_critical_error("STORAGE_FAILURE", "boom", "Soportes", error=err) is True

        html = emails.send_email.call_args[0][2]
        assert "RuntimeError" in html

    def test_notify_never_raises(self, manager, emails):
        emails.send_email.side_effect = EmailException("gmail down")

        assert manager.notify_critical_error("DATABASE_ERROR", "x", "Soportes") is False

    def test_typed_helpers(self, manager, emails):
        manager.notify_api_key_failure("Gemini", "OCR", 401)
        manager.notify_service_unavailable("LabsMobile", "SMS", 503)

        subjects = [call[0][1] for call in emails.send_email.call_args_list]
        assert "API_KEY_FAILURE" in subjects[0]
        assert "SERVICE_UNAVAILABLE" in subjects[1]


class TestNotificationsEndpoints:
    """Tests de los endpoints /api/v1/notifications."""

    def test_email_endpoint(self, api_client):
        with patch.object(email_manager, "send", return_value={"success": True, "message": "ok"}) as mock_send:
            response = api_client.post("/api/v1/notifications/email", json={
                "type": "radicacion",
                "destinatario": "ana@gestarsaludips.com",
                "radicado": "FACT0001",
                "datos": {"eps": "NUEVA EPS"},
            })

        assert response.status_code == 200
        mock_send.assert_called_once_with("radicacion", "ana@gestarsaludips.com", "FACT0001", {"eps": "NUEVA EPS"})

    def test_email_invalid_type(self, api_client):
        with patch.object(email_manager, "send", side_effect=ValidationException("Tipo de correo no válido")):
            response = api_client.post("/api/v1/notifications/email", json={"type": "x"})

        assert response.status_code == 400
        assert response.json()["error_message"]["error"] == "Tipo de correo no válido"

    def test_email_provider_error(self, api_client):
        with patch.object(email_manager, "send", side_effect=EmailException("Gmail down", status_code=500)):
            response = api_client.post("/api/v1/notifications/email", json={"type": "radicacion"})

        assert response.status_code == 502

    def test_sms_provider_error_details(self, api_client):
        with patch.object(sms_manager, "send_sms", side_effect=SMSException("Error al enviar SMS", details="No credits")):
            response = api_client.post("/api/v1/notifications/sms", json={"phone": "3001234567", "message": "Hola"})

        assert response.status_code == 502
        assert response.json()["error_message"]["details"] == "No credits"

    def test_sms_missing_credentials(self, api_client):
        with patch.object(sms_manager, "send_sms", side_effect=ConfigurationException("Error de configuración del servidor")):
            response = api_client.post("/api/v1/notifications/sms", json={"phone": "3001234567", "message": "Hola"})

        assert response.status_code == 500

    def test_teams_endpoint(self, api_client):
        with patch.object(teams_manager, "notify", return_value={"success": True, "message": "ok"}) as mock_notify:
            response = api_client.post("/api/v1/notifications/teams", json={"tipo": TIPO_DEVOLUCION_BACK})

        assert response.status_code == 200
        mock_notify.assert_called_once_with(TIPO_DEVOLUCION_BACK, {})

    def test_critical_error_without_auth(self, anonymous_client):
        """Los errores críticos se pueden reportar sin sesión."""
        with patch.object(critical_error_manager, "send_alert", return_value={"success": True, "message": "ok"}) as mock_alert:
            response = anonymous_client.post(
                "/api/v1/notifications/critical-error",
                json=TestCriticalErrorManager.PAYLOAD
            )

        assert response.status_code == 200
        assert mock_alert.call_args[0][0]["userEmail"] is None

    def test_critical_error_delivery_failure(self, anonymous_client):
        with patch.object(critical_error_manager, "send_alert", side_effect=EmailException("down")):
            response = anonymous_client.post(
                "/api/v1/notifications/critical-error",
                json=TestCriticalErrorManager.PAYLOAD
            )

        assert response.status_code == 500
        assert response.json()["error_message"]["error"] == "Error enviando notificación"
