"""SQLite connection factory.

Usage::

    from imagehub.db.connection import get_connection

    with get_connection(settings) as conn:
        cursor = conn.execute("SELECT 1")
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional, Union

from imagehub.config import Settings


def get_connection(
    settings: Settings,
    db_path: Optional[Union[Path, str]] = None,
) -> sqlite3.Connection:
    """Open and configure a SQLite connection to the manifest store.

    Args:
        settings: Active settings; provides the default DB path.
        db_path: Override the DB path (``":memory:"`` works for tests).

    Returns:
        A :class:`sqlite3.Connection` with ``row_factory`` set to
        :class:`sqlite3.Row` so columns can be accessed by name.
    """
    path = db_path or settings.db_path

    # Create parent directory if needed (no-op for `:memory:`)
    if str(path) != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn
