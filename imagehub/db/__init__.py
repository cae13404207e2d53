"""Manifest store package.

Public re-exports so callers can write::

    from imagehub.db import get_connection, init_db
"""

from imagehub.db.connection import get_connection
from imagehub.db.migrations import init_db

__all__ = ["get_connection", "init_db"]
