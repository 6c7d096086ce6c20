"""
Utility modules for the catalog search bridge.
"""

from .exceptions import (
    SearchBridgeException,
    EngineConnectionError,
    EngineError,
    PartialImportFailure,
    InvalidInputError,
    CatalogItemNotFoundError,
    SuggestionRequestError,
)

__all__ = [
    "SearchBridgeException",
    "EngineConnectionError",
    "EngineError",
    "PartialImportFailure",
    "InvalidInputError",
    "CatalogItemNotFoundError",
    "SuggestionRequestError",
]
