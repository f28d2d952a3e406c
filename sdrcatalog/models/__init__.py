"""
Catalog models.

- source: devices and source profiles
- bookmark: frequency bookmarks with storage slot tracking
- location: geographic locations and the QTH
- tle: TLE sources and parsed orbits
- spectrum: spectrum display units
- allocation: frequency allocation tables
"""
from __future__ import annotations
