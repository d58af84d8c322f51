"""Application exceptions.

Every error a request can end in is an ``AppException`` carrying the HTTP
status it maps to. ``main.py`` renders them as ``{"success": false, "error": ...}``.
"""

from fastapi import status


class AppException(Exception):
    """Base application exception."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class ValidationError(AppException):
    """Bad input shape, type or size. Fixable by the client."""

    def __init__(self, detail: str = "Validation error"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class MissingFileError(ValidationError):
    """No staged upload was found."""

    def __init__(self, detail: str = "No file was uploaded"):
        super().__init__(detail)


class AuthenticationError(AppException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail)


class AuthorizationError(AppException):
    def __init__(self, detail: str = "Not authorized"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)


class NotFoundError(AppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class DependencyUnavailable(AppException):
    """A backing store is not connected yet. Retryable."""

    def __init__(self, detail: str = "Service dependency is not ready"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)


class StorageError(AppException):
    """Binary store transfer failed."""

    def __init__(self, detail: str = "Binary store error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)


class RepositoryError(AppException):
    """Metadata repository read or write failed."""

    def __init__(self, detail: str = "Metadata repository error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)


class UpstreamError(AppException):
    """External AI provider returned a non-success response."""

    def __init__(self, detail: str = "Upstream service error"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)
