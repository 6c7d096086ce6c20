"""
Custom exception classes for the catalog search bridge.
"""

from typing import Optional


class SearchBridgeException(Exception):
    """Base exception for all search bridge errors."""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)


class EngineConnectionError(SearchBridgeException):
    """Raised when the search engine cannot be reached or times out."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(f"Engine connection error: {message}", detail)


class EngineError(SearchBridgeException):
    """Raised when the search engine answers with an unexpected status."""

    def __init__(self, status_code: int, body: str, operation: Optional[str] = None):
        prefix = f"{operation} failed" if operation else "Engine request failed"
        super().__init__(f"{prefix}. Status code: {status_code}, Response: {body}", body)
        self.status_code = status_code
        self.body = body
        self.operation = operation


class PartialImportFailure(SearchBridgeException):
    """
    Raised when some lines of a batch import were rejected.

    Lines that succeeded stay persisted in the engine.
    """

    def __init__(self, success_count: int, failure_count: int, first_error: str):
        message = (
            f"Imported {success_count} documents, but {failure_count} failed. "
            f"First error: {first_error}"
        )
        super().__init__(message, first_error)
        self.success_count = success_count
        self.failure_count = failure_count
        self.first_error = first_error


class InvalidInputError(SearchBridgeException):
    """Raised when input validation fails before any network call."""

    def __init__(self, message: str, field: Optional[str] = None, detail: Optional[str] = None):
        if field:
            message = f"Validation error for field '{field}': {message}"
        super().__init__(message, detail)
        self.field = field


class CatalogItemNotFoundError(SearchBridgeException):
    """Raised when a catalog row to index does not exist."""

    def __init__(self, kind: str, item_id: int, detail: Optional[str] = None):
        super().__init__(f"{kind} not found: {item_id}", detail)
        self.kind = kind
        self.item_id = item_id


class SuggestionRequestError(SearchBridgeException):
    """Raised by suggestion clients when the search API call fails."""

    def __init__(self, status_code: int, message: str = "Suggestion request failed", detail: Optional[str] = None):
        super().__init__(f"{message} (status {status_code})", detail)
        self.status_code = status_code
