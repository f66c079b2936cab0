"""Exceptions raised while reading a store and building inventories."""

from __future__ import annotations


class OcflExportError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigurationError(OcflExportError):
    """Unsupported digest algorithm or unusable settings."""


class PreconditionError(OcflExportError):
    """A builder was called with a version it cannot work on."""


class StoreUnavailable(OcflExportError):
    """The versioned store could not answer a query."""

    def __init__(self, message: str, object_id: str | None = None, version: int | None = None):
        super().__init__(message)
        self.object_id = object_id
        self.version = version
