"""Microsoft (Azure AD / Graph / Teams) configuration settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MicrosoftSettings(BaseSettings):
    """Microsoft configuration settings."""

    # Azure Active Directory (client credentials for Graph)
    AZURE_TENANT_ID: str = Field(
        default="", description="Azure Active Directory tenant ID"
    )
    AZURE_CLIENT_ID: str = Field(
        default="", description="Azure Active Directory client ID"
    )
    AZURE_CLIENT_SECRET: str = Field(
        default="", description="Azure Active Directory client secret"
    )

    # Microsoft Graph / OneDrive
    GRAPH_BASE_URL: str = Field(
        default="https://graph.microsoft.com/v1.0", description="Microsoft Graph base URL"
    )
    GRAPH_SCOPE: str = Field(
        default="https://graph.microsoft.com/.default", description="Graph token scope"
    )
    ONEDRIVE_USER: str = Field(
        default="coordinacionmedica@gestarsaludips.com",
        description="Owner of the OneDrive where supports are synchronised"
    )
    ONEDRIVE_FOLDER_ID: str = Field(
        default="", description="Parent folder ID; takes precedence over the path"
    )
    ONEDRIVE_FOLDER_PATH: str = Field(
        default="/Documents/Soportes Facturación", description="Parent folder path"
    )

    # Teams
    TEAMS_WEBHOOK_DEVOLUCION_BACK: str = Field(
        default="", description="Incoming webhook for returned back-office cases"
    )

    model_config = SettingsConfigDict(env_file="app/env/v1/microsoft.env")


# Create settings instance
SETTINGS = MicrosoftSettings()
