"""Output types for the collaborator portal API."""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Generic success/message response."""

    success: bool = Field(description="Whether the operation succeeded")
    message: Optional[str] = Field(default=None, description="Human readable outcome")


# Auth

class LoginUser(BaseModel):
    """Collaborator returned by a successful login."""

    id: str = Field(description="Supabase Auth user ID")
    identificacion: str = Field(description="Identification number")
    nombre_completo: str = Field(description="Full name built from the directory contact")
    email: str = Field(description="Institutional email")
    rol: str = Field(description="Portal role")
    primer_login: bool = Field(description="True until the first password change")
    ultimo_login: Optional[str] = Field(default=None, description="Previous sign-in timestamp")


class LoginResponse(BaseModel):
    """Response schema for login."""

    access_token: str = Field(description="Supabase access token")
    refresh_token: Optional[str] = Field(default=None, description="Supabase refresh token")
    expires_in: Optional[int] = Field(default=None, description="Access token lifetime in seconds")
    token_type: str = Field(default="bearer", description="Token type")
    user: LoginUser


class CurrentUserResponse(BaseModel):
    """Response schema for the authenticated user."""

    user_id: str
    email: Optional[str] = None
    role: str
    identificacion: Optional[str] = None
    primer_login: bool
    exp: Optional[str] = None


class SessionStatusResponse(BaseModel):
    """Inactivity-timeout state of the caller's session."""

    state: str = Field(description="active, warning or expired")
    seconds_remaining: int = Field(description="Seconds before the session expires")
    timeout_seconds: int = Field(description="Configured inactivity timeout")
    warning_seconds: int = Field(description="Seconds before expiry at which the warning starts")


# Afiliados

class AfiliadoSearchResponse(BaseModel):
    """Predictive search outcome, mirroring the client hook state."""

    state: str = Field(description="idle, success or error")
    data: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None


# Billing supports

class UploadTokenResponse(BaseModel):
    signedUrl: Optional[str] = Field(default=None, description="Signed upload URL")
    token: Optional[str] = Field(default=None, description="Upload token")
    path: str = Field(description="Storage path")
    category: str = Field(description="Support category")
    originalName: str = Field(description="Name of the file on the client")


class InitRadicacionResponse(BaseModel):
    """Response schema for the first phase of a filing."""

    success: bool
    radicado: str = Field(description="Radicado assigned by the database")
    soporteId: Any = Field(description="Row ID of the soporte")
    uploadTokens: List[UploadTokenResponse]


class FinalizeRadicacionResponse(BaseModel):
    """Response schema for the second phase of a filing."""

    success: bool
    radicado: str
    uploadStatus: str = Field(description="completed, partial or failed")
    archivosExitosos: int
    archivosFaltantes: int
    totalEsperados: int
    eliminado: Optional[bool] = Field(default=None, description="True when the record was deleted")
    mensaje: Optional[str] = None


class PaginatedResponse(BaseModel):
    """Paginated listing."""

    data: List[Dict[str, Any]]
    total: int = Field(description="Total rows matching the filters")
    offset: int
    limit: int


# Documents

class OCRResponse(BaseModel):
    """Response schema for OCR."""

    success: bool
    text: str = Field(description="Extracted text")
    pages: int = Field(description="Number of pages processed")
    engine: Optional[str] = Field(default=None, description="document_ai or gemini")
    message: Optional[str] = None


class EmbeddingResponse(BaseModel):
    """Response schema for embeddings."""

    success: bool
    embedding: List[float]
    dimensions: int


# OneDrive

class OneDriveSyncResponse(BaseModel):
    """Response schema for OneDrive synchronisation."""

    success: bool
    message: str
    folderId: Optional[str] = None
    folderUrl: Optional[str] = None
    archivosSubidos: Optional[int] = None
    warning: Optional[bool] = None
    errorDetails: Optional[str] = None


class HealthCheckResponse(BaseModel):
    """Response schema for health check."""

    status: str = Field(
        description="Overall health status"
    )

    timestamp: float = Field(
        description="Timestamp of the health check"
    )

    version: str = Field(
        description="API version"
    )

    environment: str = Field(
        description="production or development"
    )


class ErrorResponse(BaseModel):
    """Response schema for error responses."""

    error_code: str = Field(
        description="Error type"
    )

    error_message: Any = Field(
        description="Error message"
    )

    timestamp: float = Field(
        description="Error timestamp"
    )
