"""
NormCache Errors
================

Exception hierarchy for the normalized cache. Every error raised by the
package derives from CacheError; errors raised by user supplied collaborators
(identity derivers, fragment matchers, transactions) propagate unchanged.
"""


class CacheError(Exception):
    """Base class for all normcache errors."""

    pass


class EvictionNotSupportedError(CacheError, NotImplementedError):
    """Raised by InMemoryCache.evict, which is not supported."""

    def __init__(self, message: str = "eviction is not implemented on InMemory Cache"):
        super().__init__(message)


class RecordingInProgressError(CacheError):
    """Raised when a store is cleared while a recording is active."""

    def __init__(
        self,
        message: str = "Clearing the cache while recording a transaction is not possible",
    ):
        super().__init__(message)


class MissingFieldError(CacheError):
    """Raised when a query needs a field the store does not have."""

    def __init__(self, field_name: str, data_id: str):
        self.field_name = field_name
        self.data_id = data_id
        super().__init__(f"Can't find field {field_name} on object {data_id}")


class StoreWriteError(CacheError):
    """Raised when a write would leave the store in an inconsistent state."""

    pass


class DocumentError(CacheError):
    """Raised when a document cannot be used for the requested operation."""

    pass
