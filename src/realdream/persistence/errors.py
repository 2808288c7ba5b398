class StorageError(Exception):
    """Base exception for key-value storage failures."""


class StorageUnavailable(StorageError):
    """Raised when the storage backend fails a read or write."""


class StorageCorrupt(StorageError):
    """Raised when a stored value cannot be parsed."""
