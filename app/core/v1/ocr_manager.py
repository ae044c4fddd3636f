"""OCR Manager for PDF text extraction using Google Cloud Document AI."""

import base64
import binascii
import json
import threading
import time
from typing import Any, Dict, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import documentai
from google.oauth2 import service_account

from app.core.v1.decorators import log_execution_time, retry
from app.core.v1.exceptions import ConfigurationException, OCRException, ValidationException
from app.core.v1.gemini_manager import GeminiManager, gemini_manager
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS


NOT_CONFIGURED = "OCR service not configured"
NO_TEXT = "No text extracted from document"
MISSING_PDF = "pdfBase64 is required"


class OCRManager:
    """
    OCR Manager for PDF text extraction.
    Implements Singleton pattern to ensure only one Document AI client exists.

    Document AI is the primary engine; Gemini transcribes the PDF when
    Document AI is not configured or fails and a Gemini key exists.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        """Create singleton instance with thread safety."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, gemini: Optional[GeminiManager] = None):
        """
        Initialize OCR Manager (only once due to singleton pattern).
        """
        if hasattr(self, '_initialized') and self._initialized:
            return

        self.logger = LogManager(__name__)
        self.gemini = gemini or gemini_manager
        self.project_id = SETTINGS.GOOGLE.GCP_PROJECT_ID
        self.location = SETTINGS.GOOGLE.GCP_LOCATION or "us"
        self.processor_id = SETTINGS.GOOGLE.GCP_PROCESSOR_ID
        self.service_account_key = SETTINGS.GOOGLE.GCP_SERVICE_ACCOUNT_KEY

        # The Document AI client is created on first use
        self._client: Optional[documentai.DocumentProcessorServiceClient] = None

        self._initialized = True

    @property
    def configured(self) -> bool:
        return bool(self.service_account_key and self.project_id and self.processor_id)

    @property
    def processor_name(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}/processors/{self.processor_id}"

    @property
    def client(self) -> documentai.DocumentProcessorServiceClient:
        if not self.configured:
            raise ConfigurationException(NOT_CONFIGURED)

        if self._client is None:
            try:
                credentials = service_account.Credentials.from_service_account_info(
                    json.loads(self.service_account_key)
                )
            except (ValueError, KeyError) as err:
                self.logger.error(f"Invalid GCP service account key: {err}")
                raise ConfigurationException(NOT_CONFIGURED) from err

            self._client = documentai.DocumentProcessorServiceClient(
                credentials=credentials,
                client_options={"api_endpoint": f"{self.location}-documentai.googleapis.com"}
            )
            self.logger.info("Document AI client created", processor=self.processor_name)
        return self._client

    @retry(exceptions=(GoogleAPIError,), reraise=True)
    def _process(self, pdf_bytes: bytes) -> documentai.Document:
        request = documentai.ProcessRequest(
            name=self.processor_name,
            raw_document=documentai.RawDocument(content=pdf_bytes, mime_type="application/pdf"),
        )
        return self.client.process_document(request=request).document

    @log_execution_time
    def extract_with_document_ai(self, pdf_bytes: bytes) -> Dict[str, Any]:
        """Run the Document AI OCR processor.

        Args:
            pdf_bytes (bytes): PDF content.

        Returns:
            Dict[str, Any]: ``{text, pages}``.

        Raises:
            ConfigurationException: Document AI is not configured.
            OCRException: Document AI failed.
        """
        try:
            document = self._process(pdf_bytes)
        except GoogleAPIError as err:
            self.logger.error(f"Document AI processing failed: {err}")
            raise OCRException(f"OCR processing failed: {err}") from err

        return {"text": document.text or "", "pages": len(document.pages)}

    def extract_text(self, pdf_base64: str) -> Dict[str, Any]:
        """Extract the text of a base64-encoded PDF.

        Args:
            pdf_base64 (str): PDF content encoded in base64.

        Returns:
            Dict[str, Any]: ``{success, text, pages, engine}`` plus a
            ``message`` when nothing was extracted.

        Raises:
            ValidationException: Missing or malformed PDF.
            ConfigurationException: No OCR engine configured.
            OCRException: Every configured engine failed.
        """
        if not pdf_base64:
            raise ValidationException(MISSING_PDF)

        try:
            pdf_bytes = base64.b64decode(pdf_base64, validate=True)
        except (binascii.Error, ValueError) as err:
            raise ValidationException("pdfBase64 is not valid base64") from err

        started = time.time()
        result = None
        engine = "document_ai"

        if self.configured:
            try:
                result = self.extract_with_document_ai(pdf_bytes)
            except (OCRException, ConfigurationException) as err:
                if not self.gemini.configured:
                    raise
                self.logger.warning(f"Document AI failed, falling back to Gemini: {err.message}")

        if result is None:
            if not self.gemini.configured:
                raise ConfigurationException(NOT_CONFIGURED)
            engine = "gemini"
            result = {"text": self.gemini.extract_pdf_text(pdf_bytes), "pages": 0}

        self.logger.info(
            "OCR processing completed",
            engine=engine,
            pages=result["pages"],
            text_length=len(result["text"]),
            seconds=f"{time.time() - started:.2f}"
        )

        response = {"success": True, "text": result["text"], "pages": result["pages"], "engine": engine}
        if not result["text"]:
            response["message"] = NO_TEXT
        return response


# Initialize global ocr manager
ocr_manager = OCRManager()
