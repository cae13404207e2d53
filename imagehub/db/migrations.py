"""Database initialisation.

``init_db(conn, settings)`` is idempotent — safe to call on an existing
database.
"""

from __future__ import annotations

import sqlite3

from imagehub.config import Settings


def init_db(conn: sqlite3.Connection, settings: Settings) -> None:
    """Create the ``manifests`` and ``canvases`` tables if they are missing.

    Every DDL statement in ``schema.sql`` uses ``IF NOT EXISTS``.
    """
    sql = settings.schema_path.read_text(encoding="utf-8")
    conn.executescript(sql)
