"""Document processing API router: OCR and embeddings."""

from typing import Dict, Any
from fastapi import APIRouter, HTTPException, Depends, status

from app.apis.v1.types_in import OCRData, EmbeddingData
from app.apis.v1.types_out import OCRResponse, EmbeddingResponse
from app.core.v1.auth import get_current_user_dependency
from app.core.v1.exceptions import (
    ConfigurationException,
    EmbeddingException,
    OCRException,
    ValidationException
)
from app.core.v1.gemini_manager import gemini_manager
from app.core.v1.log_manager import LogManager
from app.core.v1.ocr_manager import ocr_manager

# Initialize router
router = APIRouter()

logger = LogManager(__name__)


@router.post("/ocr", response_model=OCRResponse, response_model_exclude_none=True)
async def extract_text(
    data: OCRData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    Extract the text of a PDF sent as base64.

    Document AI runs first; Gemini transcribes the PDF when Document AI is
    unavailable.

    Raises:
        400 Bad Request: pdfBase64 missing or malformed
        500 Internal Server Error: No OCR engine configured, or OCR failed
    """
    try:
        return ocr_manager.extract_text(data.pdfBase64)
    except ValidationException as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": err.message})
    except ConfigurationException as err:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": err.message})
    except OCRException as err:
        logger.error(f"OCR failed: {err.message}", user_id=current_user["user_id"])
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "OCR processing failed", "details": err.message}
        )


@router.post("/embeddings", response_model=EmbeddingResponse)
async def generate_embedding(
    data: EmbeddingData,
    current_user: Dict[str, Any] = Depends(get_current_user_dependency)
):
    """
    Generate a Gemini text embedding.

    Raises:
        400 Bad Request: Empty text or more than 10000 characters
        500 Internal Server Error: Gemini key missing
        502 Bad Gateway: Gemini failed
    """
    try:
        return gemini_manager.generate_embedding(data.text)
    except ValidationException as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": err.message})
    except ConfigurationException as err:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": err.message})
    except EmbeddingException as err:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail={"error": err.message})
