"""Input validation models for the collaborator portal API."""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, validator


def _blank_to_none(v):
    if v is not None and isinstance(v, str) and v.strip() == "":
        return None
    return v


# Auth

class LoginData(BaseModel):
    """Validation model for collaborator login."""

    identificacion: str = Field(
        min_length=1,
        max_length=20,
        description="Identification number of the collaborator"
    )

    password: str = Field(
        min_length=1,
        description="Account password"
    )

    @validator('identificacion')
    def validate_identificacion(cls, v):
        """Strip surrounding whitespace from the identification."""
        v = v.strip()
        if not v:
            raise ValueError("La identificación es requerida")
        return v


class ChangePasswordData(BaseModel):
    """Validation model for password change."""

    new_password: str = Field(
        min_length=1,
        description="New password"
    )

    confirm_password: str = Field(
        min_length=1,
        description="New password repeated"
    )


# Users

class CreateUserData(BaseModel):
    """Validation model for administrative user creation."""

    identificacion: str = Field(max_length=20, description="Identification number")
    nombre_completo: str = Field(max_length=200, description="Full name")
    email_institucional: str = Field(max_length=200, description="Institutional email")
    rol: str = Field(description="Portal role")
    password: str = Field(description="Initial password (at least 6 characters)")
    contacto_id: Optional[str] = Field(default=None, description="Linked directory contact")

    @validator('email_institucional')
    def validate_email(cls, v):
        """Lower-case the institutional email."""
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Email institucional no válido")
        return v


class ResetPasswordData(BaseModel):
    """Validation model for password reset."""

    usuario_portal_id: str = Field(min_length=1, description="usuarios_portal row ID")


# Lookup

class CupsUpdateData(BaseModel):
    """Fields of a CUPS row to update; unknown keys are passed through."""

    model_config = {"extra": "allow"}

    descripcion: Optional[str] = None
    pertinencia: Optional[str] = None
    observaciones: Optional[str] = None


# Billing supports

class SoporteFileData(BaseModel):
    """One file of the upload manifest."""

    name: str = Field(min_length=1, description="Original file name")
    size: Optional[int] = Field(default=None, ge=0, description="Size in bytes")


class SoporteCategoriaData(BaseModel):
    """Files of one support category."""

    categoria: str = Field(description="Support category")
    files: List[SoporteFileData] = Field(default_factory=list)


class InitRadicacionData(BaseModel):
    """Validation model for the first phase of a billing-support filing."""

    radicadorEmail: Optional[str] = None
    radicadorNombre: Optional[str] = None
    eps: Optional[str] = None
    regimen: Optional[str] = None
    servicioPrestado: Optional[str] = None
    fechaAtencion: Optional[str] = None
    tipoId: Optional[str] = None
    identificacion: Optional[str] = None
    nombresCompletos: Optional[str] = None
    observaciones: Optional[str] = None
    archivos: List[SoporteCategoriaData] = Field(default_factory=list)

    @validator('identificacion', 'nombresCompletos', 'observaciones')
    def validate_optional_text(cls, v):
        return _blank_to_none(v)


class FinalizeRadicacionData(BaseModel):
    """Validation model for the second phase of a filing."""

    radicado: Optional[str] = None


class SoporteEstadoData(BaseModel):
    """Validation model for billing state changes."""

    estado: str = Field(description="New billing state")
    observaciones: Optional[str] = Field(default=None, description="Billing remarks")


class SoporteSearchParams(BaseModel):
    """Validation model for billing-support listing filters."""

    estado: Optional[str] = None
    eps: Optional[str] = None
    fecha_inicio: Optional[str] = None
    fecha_fin: Optional[str] = None
    busqueda: Optional[str] = None
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=1, le=500)

    @validator('estado', 'eps', 'busqueda')
    def validate_filters(cls, v):
        return _blank_to_none(v)


# Back-office cases

class CasoUpdateData(BaseModel):
    """Partial update of a back-office case; only sent fields change."""

    direccionamiento: Optional[str] = None
    respuesta_back: Optional[str] = None
    estado_radicado: Optional[str] = None
    tipo_solicitud: Optional[str] = None


class CasoSearchParams(BaseModel):
    """Validation model for case listing filters."""

    estado_radicado: Optional[str] = None
    tipo_solicitud: Optional[str] = None
    especialidad: Optional[str] = None
    fecha_inicio: Optional[str] = None
    fecha_fin: Optional[str] = None
    busqueda: Optional[str] = None
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=1, le=500)

    @validator('estado_radicado', 'tipo_solicitud', 'especialidad', 'busqueda')
    def validate_filters(cls, v):
        return _blank_to_none(v)


# Documents

class OCRData(BaseModel):
    """Validation model for PDF OCR."""

    pdfBase64: Optional[str] = Field(default=None, description="PDF encoded in base64")


class EmbeddingData(BaseModel):
    """Validation model for embedding generation."""

    text: Optional[str] = Field(default=None, description="Text to embed (1..10000 chars)")


# OneDrive

class OneDriveUploadData(BaseModel):
    radicado: Optional[str] = None


class OneDriveDeleteData(BaseModel):
    radicado: Optional[str] = None
    folderId: Optional[str] = None


# Notifications

class EmailData(BaseModel):
    """Validation model for templated emails."""

    type: Optional[str] = Field(default=None, description="Template name")
    destinatario: Optional[str] = Field(default=None, description="Recipient address")
    radicado: Optional[str] = Field(default=None, description="Radicado shown in the email")
    datos: Optional[Dict[str, Any]] = Field(default=None, description="Template data")


class SMSData(BaseModel):
    """Validation model for SMS sending."""

    phone: Optional[str] = None
    message: Optional[str] = None


class TeamsData(BaseModel):
    """Validation model for Teams notifications."""

    tipo: Optional[str] = None
    datos: Optional[Dict[str, Any]] = None


class CriticalErrorData(BaseModel):
    """Validation model for critical error alerts."""

    severity: Optional[str] = None
    category: Optional[str] = None
    errorMessage: Optional[str] = None
    errorStack: Optional[str] = None
    userEmail: Optional[str] = None
    userId: Optional[str] = None
    feature: Optional[str] = None
    timestamp: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
