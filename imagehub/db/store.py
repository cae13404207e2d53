"""Operations on the ``manifests`` and ``canvases`` tables."""

from __future__ import annotations

import json
import sqlite3
from typing import Any, Optional

from imagehub.models import ManifestBundle


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _load(row: Optional[sqlite3.Row]) -> Optional[dict[str, Any]]:
    return json.loads(row["data"]) if row else None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def clear_store(conn: sqlite3.Connection) -> None:
    """Remove every manifest and canvas document."""
    with conn:
        conn.execute("DELETE FROM manifests")
        conn.execute("DELETE FROM canvases")


def save_bundle(conn: sqlite3.Connection, bundle: ManifestBundle) -> None:
    """Persist one manifest and its canvases, committing once.

    ``INSERT OR REPLACE`` keeps a rerun over the same records idempotent.
    """
    with conn:
        conn.executemany(
            "INSERT OR REPLACE INTO canvases (canvas_id, data) VALUES (?, ?)",
            [(canvas["@id"], json.dumps(canvas)) for canvas in bundle.canvases],
        )
        conn.execute(
            "INSERT OR REPLACE INTO manifests (manifest_id, data) VALUES (?, ?)",
            (bundle.manifest_uri, json.dumps(bundle.manifest)),
        )


def get_manifest(conn: sqlite3.Connection, manifest_uri: str) -> Optional[dict[str, Any]]:
    """Fetch a manifest document by URI.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT data FROM manifests WHERE manifest_id = ?", (manifest_uri,)
    ).fetchone()
    return _load(row)


def get_canvas(conn: sqlite3.Connection, canvas_uri: str) -> Optional[dict[str, Any]]:
    """Fetch a canvas document by URI.  Returns ``None`` if not found."""
    row = conn.execute(
        "SELECT data FROM canvases WHERE canvas_id = ?", (canvas_uri,)
    ).fetchone()
    return _load(row)


def list_manifest_ids(conn: sqlite3.Connection) -> list[str]:
    """Return every stored manifest URI, sorted."""
    rows = conn.execute("SELECT manifest_id FROM manifests ORDER BY manifest_id").fetchall()
    return [r["manifest_id"] for r in rows]


def count_documents(conn: sqlite3.Connection) -> tuple[int, int]:
    """Return ``(manifests, canvases)`` row counts."""
    manifests = conn.execute("SELECT COUNT(*) FROM manifests").fetchone()[0]
    canvases = conn.execute("SELECT COUNT(*) FROM canvases").fetchone()[0]
    return manifests, canvases
