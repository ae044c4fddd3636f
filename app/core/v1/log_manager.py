"""Log Manager for application logging."""

import logging
import sys
from typing import Optional
from datetime import datetime

from app.settings.v1.general import SETTINGS


# Context keys whose values never reach the logs
SENSITIVE_KEYS = {"password", "token", "access_token", "refresh_token", "secret", "authorization"}
MAX_VALUE_LENGTH = 300


class LogManager:
    """Log Manager class for handling application logs."""

    def __init__(self, name: str = __name__):
        """Initialize Log Manager.

        Args:
            name (str): Logger name.
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, SETTINGS.LOG_LEVEL.upper()))

        # Avoid duplicate handlers
        if not self.logger.handlers:
            self._setup_logger()

    def _setup_logger(self):
        """Attach a stdout handler using the configured format."""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, SETTINGS.LOG_LEVEL.upper()))
        console_handler.setFormatter(
            logging.Formatter(fmt=SETTINGS.LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
        )
        self.logger.addHandler(console_handler)
        self.logger.propagate = False

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self.logger.info(self._compose(message, kwargs))

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self.logger.warning(self._compose(message, kwargs))

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self.logger.error(self._compose(message, kwargs))

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self.logger.debug(self._compose(message, kwargs))

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self.logger.critical(self._compose(message, kwargs))

    def _compose(self, message: str, context: dict) -> str:
        formatted = self._format_context(context)
        return f"{message} {formatted}" if formatted else message

    def _format_context(self, context: dict) -> str:
        """Format context information for logging.

        Args:
            context (dict): Context information.

        Returns:
            str: Formatted context string, e.g. ``[radicado='FACT1234', files=3]``.
        """
        if not context:
            return ""

        formatted_items = []
        for key, value in context.items():
            if value is None:
                continue
            if key.lower() in SENSITIVE_KEYS:
                formatted_items.append(f"{key}='***'")
            elif isinstance(value, str):
                # Provider error bodies can be whole HTML pages
                if len(value) > MAX_VALUE_LENGTH:
                    value = value[:MAX_VALUE_LENGTH] + "..."
                formatted_items.append(f"{key}='{value}'")
            else:
                formatted_items.append(f"{key}={value}")

        return f"[{', '.join(formatted_items)}]" if formatted_items else ""

    def log_request(self, method: str, path: str, user_id: Optional[str] = None):
        """Log an incoming HTTP request.

        Args:
            method (str): HTTP method.
            path (str): Request path.
            user_id (Optional[str]): Authenticated user, when known.
        """
        self.info(
            f"HTTP Request: {method} {path}",
            user_id=user_id,
            timestamp=datetime.now().isoformat()
        )

    def log_response(self, method: str, path: str, status_code: int, duration: float):
        """Log an HTTP response with its duration in seconds."""
        log = self.warning if status_code >= 500 else self.info
        log(
            f"HTTP Response: {method} {path} - {status_code}",
            duration=f"{duration:.3f}s",
            timestamp=datetime.now().isoformat()
        )
