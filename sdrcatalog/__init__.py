"""
sdrcatalog: configuration and catalog registry for SDR front-ends.

This package keeps the catalogs an SDR application needs between runs:
- Device profiles, detected devices and network (SoapyRemote) profiles
- Frequency bookmarks, locations and the home site (QTH)
- TLE sources and the satellite orbit catalog
- Spectrum display units, UI state blobs and recently used profiles

Usage:
    from sdrcatalog import get_instance
    registry = get_instance()
    registry.startup()
    registry.register_spectrum_unit("dBuV", 1.0, -107.0)
    registry.sync()
"""
from __future__ import annotations

__version__ = "0.1.0"

from sdrcatalog.registry import Registry, get_instance, release_instance

__all__ = ["Registry", "get_instance", "release_instance", "__version__"]
