from __future__ import annotations


class DeadmarksError(Exception):
    """Base class for errors that abort a deadmarks operation."""


class InputError(DeadmarksError):
    """The bookmark file could not be read or decoded."""


class StoreError(DeadmarksError):
    """A persistence operation failed; the enclosing transaction is rolled back."""


class ValidationScanError(DeadmarksError):
    """A stored row could not be read during validation; the run is discarded."""


class OutputError(DeadmarksError):
    """An export or report file could not be written."""
