"""Exception types raised across sdrcatalog."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for sdrcatalog errors."""


class FatalInitError(CatalogError):
    """A subsystem initializer or the registry singleton could not be brought up.

    There is no retry; startup is expected to abort.
    """


class ObjectError(CatalogError):
    """Operation not supported by the kind of config Object it was applied to."""


class TLEParseError(CatalogError):
    """Raw text is not a valid two-line element set."""
