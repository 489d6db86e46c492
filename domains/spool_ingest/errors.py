"""
Error taxonomy for spool ingestion.

Per-file errors are raised inside the file processor and never escape a
worker; directory errors end a scan cycle early.
"""

from pathlib import Path
from typing import Optional


class SpoolIngestError(Exception):
    """Base class for all ingestion errors."""

    stage = "ingest"

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class DirectoryUnavailable(SpoolIngestError):
    """The spool directory could not be listed."""

    stage = "list"


class FileReadError(SpoolIngestError):
    """A spool file could not be opened or read."""

    stage = "read"


class LineTooLong(FileReadError):
    """A line exceeded the configured maximum length."""


class MalformedToken(SpoolIngestError):
    """A line token did not split into a key and a value."""

    stage = "parse"

    def __init__(self, token: str, path: Optional[Path] = None):
        super().__init__(f"Could not parse token {token!r}: invalid number of subtokens", path)
        self.token = token


class InvalidState(SpoolIngestError):
    """The ``state`` field is missing or not an integer."""

    stage = "parse"


class InvalidTimestamp(SpoolIngestError):
    """The ``timestamp`` field is missing or not an integer."""

    stage = "parse"


class MetricValueUnparseable(SpoolIngestError):
    """A performance-data value is not a finite number (skipped, never fatal)."""

    stage = "parse"


class DispatchFailure(SpoolIngestError):
    """The sink did not accept a batch."""

    stage = "dispatch"


class DeletionFailure(SpoolIngestError):
    """A dispatched file could not be removed from the spool."""

    stage = "delete"
