# ==============================================
# Errors
# ==============================================
#
# PURPOSE:
#   Exception types shared by the source, parsing and
#   persistence layers.
#
#   DirectoryError
#   ├── SourceUnavailableError  → network / HTTP / payload failure
#   ├── MalformedRecordError    → raw record missing a required field
#   └── PersistenceError        → backend failure (never escapes save/load)
#
# ==============================================

from typing import Optional


class DirectoryError(Exception):
    """Base class for all user directory errors."""


class SourceUnavailableError(DirectoryError):
    """The remote directory could not be reached or returned garbage."""


class MalformedRecordError(DirectoryError):
    """A raw record could not be turned into a User."""

    def __init__(self, field: str, index: Optional[int] = None, reason: str = "missing required field"):
        self.field = field
        self.index = index
        self.reason = reason
        where = f" (record #{index})" if index is not None else ""
        super().__init__(f"{reason} '{field}'{where}")


class PersistenceError(DirectoryError):
    """A persistence backend failed to read or write."""
