"""Persistence layer for entitlement data.

- KeyValueStorage: abstract durable string store (memory and file backends)
- Codec: tagged decode of each persisted value, never raising
- WriteBehindQueue: ordered, fire-and-forget flushing on a worker thread
"""

from .codec import (
    Decoded,
    StorageKeys,
    decode_active,
    decode_balance,
    decode_owned,
    encode_active,
    encode_balance,
    encode_owned,
)
from .errors import StorageCorrupt, StorageError, StorageUnavailable
from .storage import FileStorage, KeyValueStorage, MemoryStorage
from .writer import WriteBatch, WriteBehindQueue, WriteFailure

__all__ = [
    "Decoded",
    "StorageKeys",
    "decode_active",
    "decode_balance",
    "decode_owned",
    "encode_active",
    "encode_balance",
    "encode_owned",
    "StorageCorrupt",
    "StorageError",
    "StorageUnavailable",
    "FileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "WriteBatch",
    "WriteBehindQueue",
    "WriteFailure",
]
