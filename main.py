"""Main FastAPI application for the Gestar Salud Portal API."""

import uvicorn
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.openapi.utils import get_openapi
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from contextlib import asynccontextmanager
import time
from typing import Optional

from app import TITLE, DESCRIPTION, VERSION, CONTACT, TAGS_METADATA
from app.apis.v1.afiliados_router import router as afiliados_router
from app.apis.v1.auth_router import router as auth_router
from app.apis.v1.casos_router import router as casos_router
from app.apis.v1.documents_router import router as documents_router
from app.apis.v1.lookup_router import router as lookup_router
from app.apis.v1.notifications_router import router as notifications_router
from app.apis.v1.onedrive_router import router as onedrive_router
from app.apis.v1.soportes_router import router as soportes_router
from app.apis.v1.users_router import router as users_router
from app.core.v1.log_manager import LogManager
from app.core.v1.exceptions import (
    AppException,
    UnauthorizedException,
    ForbiddenException,
    ValidationException,
    NotFoundException,
    ConflictException,
    ConfigurationException,
    StorageException,
    OCRException,
    EmbeddingException,
    DatabaseException,
    IntegrationException,
    RuntimeException
)
from app.core.v1.email_manager import email_manager
from app.core.v1.gemini_manager import gemini_manager
from app.core.v1.ocr_manager import ocr_manager
from app.core.v1.onedrive_manager import onedrive_manager
from app.core.v1.sms_manager import sms_manager
from app.core.v1.supabase_manager import SupabaseManager
from app.core.v1.teams_manager import teams_manager
from app.settings.v1.settings import SETTINGS


# Initialize logger
logger = LogManager(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Gestar Salud Portal API")
    logger.info(f"Environment: {'Production' if SETTINGS.GENERAL.PRODUCTION else 'Development'}")
    logger.info(f"Version: {VERSION}")

    # Validate database connection
    try:
        SupabaseManager().ping()
        logger.info("Supabase connection validated successfully")
    except Exception as err:
        # Startup continues; each manager reports its own connection errors
        logger.error(f"Supabase connection validation failed: {err}")

    yield

    # Shutdown
    logger.info("Shutting down Gestar Salud Portal API")


# Create FastAPI application
app = FastAPI(
    title=TITLE,
    description=DESCRIPTION,
    version=VERSION,
    contact=CONTACT,
    openapi_tags=TAGS_METADATA,
    lifespan=lifespan,
    docs_url="/docs" if not SETTINGS.GENERAL.PRODUCTION else None,
    redoc_url="/redoc" if not SETTINGS.GENERAL.PRODUCTION else None
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.GENERAL.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error_code: str, message, **extra) -> JSONResponse:
    content = {
        "error_code": error_code,
        "error_message": message,
        "timestamp": time.time()
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


# Domain exception -> (status, error_code, public message). None keeps the
# exception message; outages hide provider details from the portal.
DOMAIN_ERRORS = [
    (UnauthorizedException, 401, "UNAUTHORIZED", None),
    (ForbiddenException, 403, "FORBIDDEN", None),
    (ValidationException, 400, "VALIDATION_ERROR", None),
    (NotFoundException, 404, "NOT_FOUND", None),
    (ConflictException, 409, "CONFLICT", None),
    (ConfigurationException, 500, "CONFIGURATION_ERROR", None),
    (DatabaseException, 503, "DATABASE_ERROR", "Database service temporarily unavailable"),
    (StorageException, 503, "STORAGE_ERROR", "Storage service temporarily unavailable"),
    (OCRException, 503, "OCR_ERROR", "OCR service temporarily unavailable"),
    (EmbeddingException, 502, "EMBEDDING_ERROR", None),
    (RuntimeException, 500, "RUNTIME_ERROR", None),
    (AppException, 500, "APPLICATION_ERROR", None),
]


def _domain_handler(status_code: int, error_code: str, public_message: Optional[str]):
    async def handler(request: Request, exc):
        log = logger.warning if status_code < 500 else logger.error
        log(f"{error_code} on {request.method} {request.url.path}: {exc.message}")
        return _error_response(status_code, error_code, public_message or exc.message)
    return handler


for exception_class, status_code, error_code, public_message in DOMAIN_ERRORS:
    app.add_exception_handler(exception_class, _domain_handler(status_code, error_code, public_message))


@app.exception_handler(IntegrationException)
async def integration_exception_handler(request: Request, exc: IntegrationException):
    """Handle failures of external providers (Graph, Gmail, LabsMobile, Teams)."""
    logger.error(
        f"Integration error: {exc.message}",
        provider=type(exc).__name__,
        provider_status=exc.status_code
    )
    return _error_response(
        502,
        "INTEGRATION_ERROR",
        exc.message,
        provider_status=exc.status_code,
        details=exc.details
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": f"HTTP_{exc.status_code}",
            "error_message": exc.detail,
            "timestamp": time.time()
        },
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle malformed bodies, query strings and multipart forms."""
    fields = [".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()]
    logger.warning(
        f"Invalid request on {request.method} {request.url.path}",
        fields=", ".join(fields)
    )
    return _error_response(
        422,
        "VALIDATION_ERROR",
        "Los datos enviados no son válidos",
        details=jsonable_encoder(exc.errors())
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request except CORS preflights."""
    if request.method == "OPTIONS":
        return await call_next(request)

    started = time.perf_counter()
    logger.log_request(method=request.method, path=request.url.path)
    response = await call_next(request)
    logger.log_response(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration=time.perf_counter() - started
    )
    return response


# Include routers
app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
app.include_router(afiliados_router, prefix="/api/v1/afiliados", tags=["afiliados"])
app.include_router(lookup_router, prefix="/api/v1/lookup", tags=["lookup"])
app.include_router(soportes_router, prefix="/api/v1/soportes", tags=["soportes"])
app.include_router(casos_router, prefix="/api/v1/casos", tags=["casos"])
app.include_router(documents_router, prefix="/api/v1/documents", tags=["documents"])
app.include_router(onedrive_router, prefix="/api/v1/onedrive", tags=["onedrive"])
app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])



@app.get("/", tags=["health"])
async def root():
    """Root endpoint with basic API information."""
    return {
        "message": "Gestar Salud Portal API",
        "version": VERSION,
        "status": "healthy",
        "timestamp": time.time(),
        "docs_url": "/docs" if not SETTINGS.GENERAL.PRODUCTION else None,
        "api_version": "v1"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Liveness check plus which third-party integrations have credentials.

    Integrations are never called here; a missing one only degrades the
    features that use it.
    """
    integrations = {
        "supabase": bool(SETTINGS.SUPABASE.SUPABASE_URL and SETTINGS.SUPABASE.SUPABASE_SERVICE_ROLE_KEY),
        "document_ai": ocr_manager.configured,
        "gemini": gemini_manager.configured,
        "onedrive": onedrive_manager.configured,
        "gmail": bool(email_manager.client_id and email_manager.refresh_token),
        "labsmobile": bool(sms_manager.username and sms_manager.token),
        "teams": bool(teams_manager.webhook_url),
    }
    return {
        "status": "healthy" if integrations["supabase"] else "degraded",
        "timestamp": time.time(),
        "version": VERSION,
        "environment": "production" if SETTINGS.GENERAL.PRODUCTION else "development",
        "integrations": integrations
    }


# Custom OpenAPI schema
def custom_openapi():
    """Generate custom OpenAPI schema."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=TITLE,
        version=VERSION,
        description=DESCRIPTION,
        routes=app.routes,
        tags=TAGS_METADATA
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "bearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT"
        }
    }

    # Login, root and health are public
    public_paths = {"/", "/health", "/api/v1/auth/login"}
    for path in openapi_schema["paths"]:
        if path in public_paths:
            continue
        for method in openapi_schema["paths"][path]:
            if method != "options":
                openapi_schema["paths"][path][method]["security"] = [
                    {"bearerAuth": []}
                ]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi


# Run the application
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=not SETTINGS.GENERAL.PRODUCTION,
        log_level=SETTINGS.GENERAL.LOG_LEVEL.lower(),
        access_log=True
    )
