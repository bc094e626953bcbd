"""Adapter-specific exceptions."""


class AdapterError(Exception):
    """Base exception for adapter errors."""


class ConnectionError(AdapterError):
    """Raised when the adapter cannot connect to the search backend."""


class DocumentNotFoundError(AdapterError):
    """Raised when a document to fetch or delete does not exist in the index."""


class QueryError(AdapterError):
    """Raised when the backend rejects a search query.

    The message carries the backend diagnostic (e.g. ``parsing_exception``).
    """


class ConfigurationError(AdapterError):
    """Raised when adapter configuration is invalid."""
