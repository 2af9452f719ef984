"""Exceptions raised by linkforge.

Only fatal conditions are exceptions. Problems limited to one class or
method are reported as diagnostics and the run continues.
"""


class LinkForgeError(Exception):
    """Base class for all linkforge errors."""


class ConfigurationError(LinkForgeError):
    """The settings file is unreadable or holds invalid values."""


class PersistenceError(LinkForgeError):
    """A generated file could not be written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}")
