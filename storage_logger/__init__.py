"""Storage Logger package."""
from __future__ import annotations

from .models import Entry, TransportEntry
from .reconcile import ImportMode
from .repository import EntryRepository

__all__ = ["create_app", "Entry", "EntryRepository", "ImportMode", "TransportEntry"]


def create_app(*args, **kwargs):
    from .app import create_app as _create_app

    return _create_app(*args, **kwargs)
