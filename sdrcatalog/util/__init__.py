"""Shared helpers: logging, exit codes, ordered maps."""
from __future__ import annotations
