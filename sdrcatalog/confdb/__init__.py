"""
Configuration database.

- object: generic Object tree used as the serialization unit
- context: named contexts layered over system seeds and the user store
- store: SQLite user store and JSON seed reader
"""
from __future__ import annotations

from sdrcatalog.confdb.context import ConfigContext, ConfigDB
from sdrcatalog.confdb.object import Object, ObjectType
from sdrcatalog.confdb.store import ConfigStore

__all__ = ["ConfigContext", "ConfigDB", "ConfigStore", "Object", "ObjectType"]
