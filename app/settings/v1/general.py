"""General configuration settings."""

from pydantic import Field
from pydantic_settings import BaseSettings


class GeneralSettings(BaseSettings):
    """General application settings."""

    # Application configuration
    APP_NAME: str = Field(
        default="Gestar Salud Portal API",
        description="Application name"
    )

    PRODUCTION: bool = Field(
        default=False,
        description="Production mode"
    )

    # Login lockouts and inactivity timers are held in process memory; more
    # than one worker splits them and each worker keeps its own copy
    WEB_CONCURRENCY: int = Field(
        default=1,
        ge=1,
        description="Gunicorn workers. Keep at 1: session and lockout state is per process"
    )

    # Logging configuration
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    LOG_FORMAT: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )

    # Request limits
    MAX_FILE_SIZE: int = Field(
        default=20 * 1024 * 1024,  # 20MB
        description="Maximum file size in bytes"
    )

    MAX_FILES_PER_CASE: int = Field(
        default=10,
        description="Maximum number of support files per back-office case"
    )

    ALLOWED_FILE_EXTENSIONS: list = Field(
        default=["pdf", "jpg", "jpeg", "png", "tiff", "tif", "doc", "docx", "xls", "xlsx"],
        description="Allowed file extensions"
    )

    # Retry configuration
    NUMBER_OF_RETRIES: int = Field(
        default=2,
        description="Number of retry attempts for outbound HTTP calls"
    )

    SECONDS_BETWEEN_RETRIES: int = Field(
        default=1,
        description="Seconds before the first retry"
    )

    RETRY_BACKOFF_FACTOR: float = Field(
        default=2.0,
        description="Multiplier applied to the wait after every retry"
    )

    SLOW_OPERATION_SECONDS: float = Field(
        default=10.0,
        description="Provider calls slower than this are logged as warnings"
    )

    HTTP_TIMEOUT: int = Field(
        default=30,
        description="Timeout in seconds for outbound HTTP calls"
    )

    # CORS configuration
    CORS_ORIGINS: list = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="CORS allowed origins"
    )

    # Security configuration
    MAX_LOGIN_ATTEMPTS: int = Field(
        default=5,
        description="Failed logins allowed before the account is locked"
    )

    LOCKOUT_DURATION_SECONDS: int = Field(
        default=900,  # 15 minutes
        description="Lockout duration after too many failed logins"
    )

    LOGIN_TIMEOUT_SECONDS: int = Field(
        default=15,
        description="Maximum time to wait for the auth provider during login"
    )

    SESSION_TIMEOUT_ENABLED: bool = Field(
        default=True,
        description="Close sessions after a period of inactivity"
    )

    SESSION_TIMEOUT_SECONDS: int = Field(
        default=3600,  # 1 hour
        description="Inactivity time before a session expires"
    )

    INACTIVITY_WARNING_SECONDS: int = Field(
        default=60,
        description="Seconds before expiry when the session enters warning state"
    )

    PASSWORD_MIN_LENGTH: int = Field(
        default=8,
        description="Minimum password length for password changes"
    )

    class Config:
        env_file = "app/env/v1/general.env"
        case_sensitive = True


# Create settings instance
SETTINGS = GeneralSettings()
