"""
User-facing exception hierarchy.
"""

from __future__ import annotations


class BrownHamError(Exception):
    """Base class for all errors reported to the user."""


class ConfigurationError(BrownHamError):
    """Bad command-line value, incompatible mode combination or malformed
    configuration content.  Raised before any model evaluation."""

    def __init__(self, message: str, parameter: str | None = None):
        super().__init__(message)
        self.parameter = parameter


class InputFileError(BrownHamError):
    """A file could not be read or written."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"'{path}': {reason}")
        self.path = path
        self.reason = reason
