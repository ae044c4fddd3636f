"""Gemini Manager for PDF text extraction and text embeddings."""

import threading
from typing import Any, Dict, Optional

from google import genai
from google.genai import errors, types

from app.core.v1.critical_error_manager import CriticalErrorManager, critical_error_manager
from app.core.v1.decorators import log_execution_time
from app.core.v1.exceptions import ConfigurationException, EmbeddingException, OCRException, ValidationException
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS


NO_TEXT_MARKER = "SIN_TEXTO"
OCR_PROMPT = (
    "Extrae TODO el texto de este documento PDF. Devuelve ÚNICAMENTE el texto extraído. "
    f"Si no hay texto, responde \"{NO_TEXT_MARKER}\"."
)
FEATURE = "Gemini"

NOT_CONFIGURED = "Configuración del servidor incompleta"
EMPTY_TEXT = "Texto inválido o vacío"
TEXT_TOO_LONG = "Texto demasiado largo (máximo 10,000 caracteres)"


class GeminiManager:
    """Wrapper around the ``google-genai`` client, created on first use."""

    def __init__(self, critical: Optional[CriticalErrorManager] = None):
        self.logger = LogManager(__name__)
        self.critical = critical or critical_error_manager
        self.api_key = SETTINGS.GOOGLE.GEMINI_API_KEY
        self.ocr_model = SETTINGS.GOOGLE.GEMINI_OCR_MODEL
        self.embedding_model = SETTINGS.GOOGLE.GEMINI_EMBEDDING_MODEL
        self.max_output_tokens = SETTINGS.GOOGLE.GEMINI_MAX_OUTPUT_TOKENS
        self.max_chars = SETTINGS.GOOGLE.EMBEDDING_MAX_CHARS

        self._client: Optional[genai.Client] = None
        self._client_lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self) -> genai.Client:
        if not self.configured:
            raise ConfigurationException(NOT_CONFIGURED)
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _report(self, err: errors.APIError, action: str):
        if err.code in (401, 403):
            self.critical.notify_api_key_failure("Gemini API", f"{FEATURE} - {action}", err.code, error=err)
        elif err.code and err.code >= 500:
            self.critical.notify_service_unavailable("Gemini API", f"{FEATURE} - {action}", err.code, error=err)

    @log_execution_time
    def extract_pdf_text(self, pdf_bytes: bytes) -> str:
        """Transcribe a PDF with Gemini.

        Returns:
            str: Extracted text, ``''`` when the document has none.

        Raises:
            ConfigurationException: No Gemini API key.
            OCRException: Gemini failed.
        """
        try:
            response = self.client.models.generate_content(
                model=self.ocr_model,
                contents=[
                    types.Part.from_bytes(data=pdf_bytes, mime_type="application/pdf"),
                    OCR_PROMPT,
                ],
                config=types.GenerateContentConfig(
                    temperature=0,
                    max_output_tokens=self.max_output_tokens,
                )
            )
        except errors.APIError as err:
            self.logger.error(f"Gemini OCR failed: {err}", status=err.code)
            self._report(err, "OCR")
            raise OCRException(f"Gemini OCR failed: {err}") from err

        text = (response.text or "").strip()
        return "" if text == NO_TEXT_MARKER else text

    def generate_embedding(self, text: str) -> Dict[str, Any]:
        """Embed a text of 1 to 10000 characters.

        Raises:
            ValidationException: Empty or too long text.
            ConfigurationException: No Gemini API key.
            EmbeddingException: Gemini failed or returned no vector.
        """
        if not text or not isinstance(text, str):
            raise ValidationException(EMPTY_TEXT)
        if len(text) > self.max_chars:
            raise ValidationException(TEXT_TOO_LONG)

        self.logger.info("Generating embedding", characters=len(text))
        try:
            response = self.client.models.embed_content(model=self.embedding_model, contents=text)
        except errors.APIError as err:
            self.logger.error(f"Gemini embedding failed: {err}", status=err.code)
            self._report(err, "Embeddings")
            raise EmbeddingException(f"Error de Gemini API: {err.code}") from err

        if not response.embeddings or not response.embeddings[0].values:
            raise EmbeddingException("Respuesta de Gemini sin embedding válido")

        embedding = list(response.embeddings[0].values)
        return {"success": True, "embedding": embedding, "dimensions": len(embedding)}


# Initialize global gemini manager
gemini_manager = GeminiManager()
