"""Custom exception types for the gateway and API layers."""
from __future__ import annotations

from enum import Enum


class AppError(Exception):
    """Base app exception."""


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    WORKFLOW_NOT_FOUND = "workflow_not_found"
    ACTION_NOT_FOUND = "action_not_found"
    EXTERNAL_SERVICE_NOT_FOUND = "external_service_not_found"
    INVALID_ACTION_TYPE = "invalid_action_type"
    EMPTY_RESULT = "empty_result"
    MISSING_IDENTIFIER = "missing_identifier"
    DATABASE = "database"


class GatewayError(AppError):
    """Failure at the external database boundary, tagged with an ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str, detail: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail = detail

    def __repr__(self) -> str:
        return f"GatewayError(kind={self.kind.value!r}, message={self.message!r})"


class CoordinationError(AppError):
    """Key-value coordination service call failure."""


# Stored procedures signal these conditions through their error text.
_DATABASE_ERROR_MARKERS: tuple[tuple[str, ErrorKind], ...] = (
    ("Workflow not found", ErrorKind.WORKFLOW_NOT_FOUND),
    ("Invalid action type", ErrorKind.INVALID_ACTION_TYPE),
    ("External service not found", ErrorKind.EXTERNAL_SERVICE_NOT_FOUND),
    ("Action not found", ErrorKind.ACTION_NOT_FOUND),
)


def classify_database_error(message: str | None) -> ErrorKind:
    """Map raw database error text to an ErrorKind."""
    text = message or ""
    for marker, kind in _DATABASE_ERROR_MARKERS:
        if marker in text:
            return kind
    return ErrorKind.DATABASE
