"""Notification fan-out API router: email, SMS, Teams and critical errors."""

from typing import Dict, Any
from fastapi import APIRouter, HTTPException, Depends, status

from app.apis.v1.types_in import EmailData, SMSData, TeamsData, CriticalErrorData
from app.apis.v1.types_out import MessageResponse
from app.core.v1.auth import get_current_user_dependency, get_optional_current_user
from app.core.v1.critical_error_manager import critical_error_manager
from app.core.v1.email_manager import email_manager
from app.core.v1.exceptions import (
    ConfigurationException,
    IntegrationException,
    ValidationException
)
from app.core.v1.log_manager import LogManager
from app.core.v1.sms_manager import sms_manager
from app.core.v1.teams_manager import teams_manager

# Initialize router
router = APIRouter()

logger = LogManager(__name__)


def _integration_error(err: IntegrationException) -> HTTPException:
    detail = {"success": False, "error": err.message}
    if err.details is not None:
        detail["details"] = err.details
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


@router.post("/email", response_model=MessageResponse)
async def send_email(
    data: EmailData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    Send one of the portal's templated emails through Gmail.

    Raises:
        400 Bad Request: Missing fields or unknown template
        500 Internal Server Error: Gmail credentials missing
        502 Bad Gateway: Gmail rejected the message
    """
    try:
        return email_manager.send(data.type, data.destinatario, data.radicado, data.datos)
    except ValidationException as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"success": False, "error": err.message})
    except ConfigurationException as err:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "error": err.message}
        )
    except IntegrationException as err:
        raise _integration_error(err)


@router.post("/sms")
async def send_sms(
    data: SMSData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """Send an SMS through LabsMobile."""
    try:
        return sms_manager.send_sms(data.phone, data.message)
    except ValidationException as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"success": False, "error": err.message})
    except ConfigurationException as err:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "error": err.message}
        )
    except IntegrationException as err:
        raise _integration_error(err)


@router.post("/teams", response_model=MessageResponse)
async def send_teams(
    data: TeamsData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """Post a card to the back-office Teams channel."""
    try:
        return teams_manager.notify(data.tipo, data.datos or {})
    except ValidationException as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"success": False, "error": err.message})
    except ConfigurationException as err:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "error": err.message}
        )
    except IntegrationException as err:
        raise _integration_error(err)


@router.post("/critical-error", response_model=MessageResponse)
async def notify_critical_error(
    data: CriticalErrorData,
    current_user=Depends(get_optional_current_user)
):
    """
    Email a critical error alert to the technical team.

    Authentication is optional so failures during login can be reported.
    """
    payload = data.model_dump()
    if current_user:
        payload["userEmail"] = payload.get("userEmail") or current_user.get("email")
        payload["userId"] = payload.get("userId") or current_user.get("user_id")

    try:
        return critical_error_manager.send_alert(payload)
    except ValidationException as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"success": False, "error": err.message})
    except (ConfigurationException, IntegrationException) as err:
        logger.error(f"Critical error alert not delivered: {err.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"success": False, "error": "Error enviando notificación"}
        )
