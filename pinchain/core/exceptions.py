"""pinchain.core.exceptions

Errors are part of the interface.

Data conflicts are answered with booleans at the table boundary. Exceptions
are reserved for IO boundaries and for failures an operator must see.
"""

from __future__ import annotations


class PinchainError(Exception):
    """Base exception for pinchain."""


class ConfigError(PinchainError):
    """Configuration is missing, invalid, or inconsistent."""


class CheckpointError(PinchainError):
    """Checkpoint table failures: integrity, parsing, or lifecycle."""


class ConflictingEntryError(CheckpointError):
    """A height is already pinned to a different hash or difficulty."""

    def __init__(self, message: str, *, height: int | None = None) -> None:
        super().__init__(message)
        self.height = height


class MalformedRecordError(CheckpointError):
    """A single record could not be parsed."""


class DifficultyParseError(MalformedRecordError):
    """Difficulty text is not a non-negative integer."""


class TableFrozenError(CheckpointError):
    """The table was frozen after loading. Writes are closed."""


class UnparseableSourceError(CheckpointError):
    """A checkpoint source exists but could not be read or reached."""


class FeedDisabledError(UnparseableSourceError):
    """The remote feed is not configured to run."""


class CheckpointLoadError(CheckpointError):
    """Startup load failed. The node must not run on this table."""
