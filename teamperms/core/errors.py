"""
Error types raised by the service layer.

They are HTTPExceptions so routes let them propagate unchanged; the CLI and the
migration runner catch them by type.
"""

from fastapi import HTTPException, status
from postgrest.exceptions import APIError

UNIQUE_VIOLATION = "23505"


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ValidationError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class MigrationNotCompletedError(HTTPException):
    def __init__(self, detail: str = "Permissions migration has not completed"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class StoreError(HTTPException):
    def __init__(self, detail: str, cause: Exception = None):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
        self.cause = cause


class PartialFailureError(StoreError):
    """A multi-step write failed after its first step; the partial writes were removed."""


def is_unique_violation(exc: Exception) -> bool:
    return isinstance(exc, APIError) and exc.code == UNIQUE_VIOLATION
