"""
Error taxonomy for the expiry reconciler.

Adapters translate client library exceptions into these classes so the
reconciler only has to tell benign misses apart from fatal store failures.
"""

from typing import Optional


class ReconcilerError(Exception):
    """Base class for all reconciler errors."""

    code = "RECONCILER_ERROR"

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.key = key


class ConfigurationError(ReconcilerError):
    """A required parameter is missing or invalid. Raised before any I/O."""

    code = "CONFIGURATION_ERROR"


class NotFoundError(ReconcilerError):
    """The document for a key does not exist."""

    code = "NOT_FOUND"


class StoreError(ReconcilerError):
    """Fatal failure talking to one of the stores."""

    code = "STORE_ERROR"


class KeySourceError(StoreError):
    """Reading or removing members of the Redis set failed."""

    code = "KEY_SOURCE_ERROR"


class DocumentStoreError(StoreError):
    """Reading or writing a Firestore document failed."""

    code = "DOCUMENT_STORE_ERROR"
