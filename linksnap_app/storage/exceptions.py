"""
Storage error taxonomy.

"Not found" is never an error: lookups return ``None`` and mutations of a
missing code are no-ops. These exceptions are reserved for situations where
the backend could not answer at all, or refused a write.
"""


class StorageError(Exception):
    """Base class for all storage-layer errors."""


class StorageUnavailable(StorageError):
    """The persistence medium is unreachable, unreadable or unwritable."""


class StorageCorrupted(StorageError):
    """The persistence medium was read but its content could not be decoded."""


class DuplicateCode(StorageError):
    """A record with this short code already exists."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' already exists")
