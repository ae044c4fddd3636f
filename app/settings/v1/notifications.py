"""Notification channels configuration settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationSettings(BaseSettings):
    """SMS and alerting configuration settings."""

    # LabsMobile
    LABSMOBILE_USERNAME: str = Field(
        default="", description="LabsMobile account username"
    )
    LABSMOBILE_TOKEN: str = Field(
        default="", description="LabsMobile API token"
    )
    LABSMOBILE_URL: str = Field(
        default="https://api.labsmobile.com/json/send", description="LabsMobile send endpoint"
    )
    SMS_SENDER: str = Field(
        default="GESTARSALUD", description="Sender ID (tpoa) shown on the handset"
    )
    SMS_CALL_CENTER: str = Field(
        default="333 6026080", description="Call center number quoted in SMS"
    )

    # Critical error alerts
    TECH_ALERT_EMAILS: list = Field(
        default=["coordinacionmedica@gestarsaludips.com"],
        description="Recipients of critical error alerts"
    )

    model_config = SettingsConfigDict(env_file="app/env/v1/notifications.env")


# Create settings instance
SETTINGS = NotificationSettings()
