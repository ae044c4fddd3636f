"""Google (Document AI / Gemini / Gmail) configuration settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSettings(BaseSettings):
    """Google configuration settings."""

    # Document AI
    GCP_PROJECT_ID: str = Field(
        default="", description="Google Cloud project ID"
    )
    GCP_LOCATION: str = Field(
        default="us", description="Document AI processor location"
    )
    GCP_PROCESSOR_ID: str = Field(
        default="", description="Document AI OCR processor ID"
    )
    GCP_SERVICE_ACCOUNT_KEY: str = Field(
        default="", description="Service account key as a JSON string"
    )

    # Gemini
    GEMINI_API_KEY: str = Field(
        default="", description="Gemini API key"
    )
    GEMINI_OCR_MODEL: str = Field(
        default="gemini-1.5-flash", description="Model used for PDF text extraction"
    )
    GEMINI_EMBEDDING_MODEL: str = Field(
        default="text-embedding-004", description="Model used for embeddings"
    )
    GEMINI_MAX_OUTPUT_TOKENS: int = Field(
        default=8192, description="Maximum output tokens for text extraction"
    )
    EMBEDDING_MAX_CHARS: int = Field(
        default=10000, description="Maximum text length accepted for embeddings"
    )

    # Gmail (OAuth2 refresh token flow)
    GOOGLE_CLIENT_ID: str = Field(
        default="", description="OAuth2 client ID"
    )
    GOOGLE_CLIENT_SECRET: str = Field(
        default="", description="OAuth2 client secret"
    )
    GOOGLE_REFRESH_TOKEN: str = Field(
        default="", description="OAuth2 refresh token of the sending mailbox"
    )
    GOOGLE_USER_EMAIL: str = Field(
        default="info@gestarsaludips.com", description="Sending mailbox"
    )

    model_config = SettingsConfigDict(env_file="app/env/v1/google.env")


# Create settings instance
SETTINGS = GoogleSettings()
