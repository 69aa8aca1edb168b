"""Exception types raised inside the apply pipeline."""

from __future__ import annotations


class SafeFixError(Exception):
    """Base class for SafeFix errors."""


class BackupError(SafeFixError):
    """A backup could not be created or a fix id is already in flight."""


class ChangeError(SafeFixError):
    """A single change could not be applied to its file."""


class CancelledError(SafeFixError):
    """The caller cancelled an apply attempt between stages."""
