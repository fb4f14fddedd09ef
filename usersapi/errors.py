"""Error taxonomy shared by the storage layer and the HTTP handlers."""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import status


class APIError(Exception):
    """Base class for failures that map onto an error envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(APIError):
    """Raised when a payload violates the user schema."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.errors = errors


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND


class StorageError(APIError):
    """The data file could not be read or written.

    ``message`` is what callers see; ``detail`` stays in the server log.
    """

    def __init__(self, message: str = "Storage failure", *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.detail = detail


__all__ = ["APIError", "NotFoundError", "StorageError", "ValidationError"]
