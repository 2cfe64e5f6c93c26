"""
Cache exceptions.
"""


class CacheError(Exception):
    """Base class for cache failures."""
    pass


class CacheStoreError(CacheError):
    """Raised when the backing store cannot be read or written."""
    pass


class SchedulerError(CacheError):
    """Raised when a refresh job cannot be scheduled."""
    pass


class ProducerError(CacheError):
    """Raised when the value producer fails to compute a value."""
    pass
