"""Custom Exceptions for application."""


class BaseException(Exception):
    """Custom Base Exception."""

    def __init__(self, message: str):
        """Instance Custom Base Exception.

        Args:
            message (str): Message detail exception.
        """
        self.message = message
        super().__init__(self.message)


class AppException(BaseException):
    """Expected App Exception."""

    pass


class UnauthorizedException(BaseException):
    """Expected Unauthorized Exception."""

    pass


class ForbiddenException(BaseException):
    """Authenticated user lacks the required role."""

    pass


class SessionExpiredException(UnauthorizedException):
    """Session closed after the inactivity timeout."""

    pass


class AccountLockedException(UnauthorizedException):
    """Too many failed login attempts for an identification."""

    pass


class RuntimeException(BaseException):
    """RuntimeException Exception."""

    pass


class ConfigurationException(BaseException):
    """A required credential or setting is missing."""

    pass


class ValidationException(BaseException):
    """Validation related exception."""

    pass


class NotFoundException(BaseException):
    """Requested record does not exist."""

    pass


class ConflictException(BaseException):
    """Record already exists."""

    pass


class DatabaseException(BaseException):
    """Database related exception."""

    pass


class StorageException(BaseException):
    """Storage related exception."""

    pass


class OCRException(BaseException):
    """OCR processing related exception."""

    pass


class EmbeddingException(BaseException):
    """Embedding generation related exception."""

    pass


# Third-party integrations

class IntegrationException(BaseException):
    """Failure talking to an external provider."""

    def __init__(self, message: str, status_code: int = None, details=None):
        """Instance Integration Exception.

        Args:
            message (str): Message detail exception.
            status_code (int): HTTP status returned by the provider, if any.
            details: Raw provider error payload.
        """
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class OneDriveException(IntegrationException):
    """Microsoft Graph / OneDrive failure."""

    pass


class EmailException(IntegrationException):
    """Gmail API failure."""

    pass


class SMSException(IntegrationException):
    """LabsMobile failure."""

    pass


class TeamsException(IntegrationException):
    """Teams webhook failure."""

    pass
