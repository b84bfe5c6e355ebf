"""
Error types raised by the Deduplicator engines

Only InvariantViolationError is fatal for a run; every other error is scoped
to a single file or a single group and the scan carries on without it.
"""

from pathlib import Path
from typing import Optional

class DeduplicatorError(Exception):
    """Base class for Deduplicator errors"""

class EntryUnreadableError(DeduplicatorError):
    """Metadata or content of one file could not be read"""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot read {path}: {cause}")

class DecodeFailureError(DeduplicatorError):
    """A file could not be decoded as an image"""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Could not read file as image: {path}: {cause}")

class MetadataMissingError(DeduplicatorError):
    """A timestamp required for ordering is unavailable"""

    def __init__(self, path: Path, field_name: str, cause: Optional[BaseException] = None):
        self.path = path
        self.field_name = field_name
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"No {field_name} time available for {path}{detail}")

class DeletionFailureError(DeduplicatorError):
    """Removing a duplicate from the filesystem failed"""

    def __init__(self, path: Path, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"Failure while deleting: {path}: {cause}")

class InvariantViolationError(DeduplicatorError):
    """Internal consistency check failed; the run cannot continue"""
