"""ImageHub CLI — entry-point for manifest generation and store inspection.

Usage:
    python cli/main.py --help

Command groups:
    generate   → rebuild the manifest store from all upstream sources
    db         → store initialisation
    manifests  → inspect stored manifests
    canvases   → inspect stored canvases
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from imagehub.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import dataclasses
import json
import logging
from typing import Optional

import typer

from imagehub.config import settings
from imagehub.db import get_connection, init_db
from imagehub.db.store import count_documents, get_canvas, get_manifest, list_manifest_ids
from imagehub.errors import CatalogError

app = typer.Typer(
    name="imagehub",
    help="ImageHub IIIF manifest generator.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output."),
) -> None:
    """Configure logging for every sub-command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------
@app.command("generate")
def generate(
    url: Optional[str] = typer.Argument(None, help="Datahub OAI-PMH URL (defaults to DATAHUB_URL)."),
) -> None:
    """Fetch all data from ResourceSpace, Cantaloupe and the Datahub and rebuild the store."""
    from imagehub.pipeline import generate_manifests
    from imagehub.sources import CantaloupeClient, DatahubClient, ResourceSpaceClient

    active = dataclasses.replace(settings, datahub_url=url) if url else settings

    conn = get_connection(active)
    init_db(conn, active)
    typer.echo(f"[generate] Harvesting {active.datahub_url} …")
    try:
        with ResourceSpaceClient(active) as catalog, CantaloupeClient(active) as images, \
                DatahubClient(active) as datahub:
            report = generate_manifests(conn, active, catalog, images, datahub)
    except CatalogError as exc:
        typer.echo(f"[generate] Aborted: {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        conn.close()

    typer.echo(f"[generate] Records fetched   : {report.records_fetched}")
    typer.echo(f"[generate] Records dropped   : {len(report.records_dropped)}")
    typer.echo(f"[generate] Missing dimensions: {report.dimensions_missing}")
    typer.echo(f"[generate] Relations added   : {report.relations_added}")
    typer.echo(f"[generate] Manifests written : {report.manifests_written}")
    typer.echo(f"[generate] Canvases written  : {report.canvases_written}")


# ---------------------------------------------------------------------------
# Store commands
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Store operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite store (create tables if they do not exist)."""
    conn = get_connection(settings)
    init_db(conn, settings)
    manifests, canvases = count_documents(conn)
    conn.close()
    typer.echo(f"[db init] Store ready at {settings.db_path} ({manifests} manifests, {canvases} canvases)")


manifests_app = typer.Typer(help="Inspect stored manifests.", no_args_is_help=True)
app.add_typer(manifests_app, name="manifests")


@manifests_app.command("list")
def manifests_list() -> None:
    """List the URI of every stored manifest."""
    conn = get_connection(settings)
    init_db(conn, settings)
    ids = list_manifest_ids(conn)
    conn.close()
    if not ids:
        typer.echo("[manifests list] No manifests found.")
        return
    for manifest_id in ids:
        typer.echo(f"  {manifest_id}")


@manifests_app.command("show")
def manifests_show(
    manifest_id: str = typer.Argument(..., help="Manifest id (e.g. 123) or full manifest URI."),
) -> None:
    """Print one stored manifest as JSON."""
    uri = manifest_id if "://" in manifest_id else f"{settings.service_url}{manifest_id}/manifest.json"
    conn = get_connection(settings)
    init_db(conn, settings)
    document = get_manifest(conn, uri)
    conn.close()
    if document is None:
        typer.echo(f"[manifests show] Not found: {uri}")
        raise typer.Exit(1)
    typer.echo(json.dumps(document, indent=2, ensure_ascii=False))


canvases_app = typer.Typer(help="Inspect stored canvases.", no_args_is_help=True)
app.add_typer(canvases_app, name="canvases")


@canvases_app.command("show")
def canvases_show(
    canvas_uri: str = typer.Argument(..., help="Full canvas URI."),
) -> None:
    """Print one stored canvas as JSON."""
    conn = get_connection(settings)
    init_db(conn, settings)
    document = get_canvas(conn, canvas_uri)
    conn.close()
    if document is None:
        typer.echo(f"[canvases show] Not found: {canvas_uri}")
        raise typer.Exit(1)
    typer.echo(json.dumps(document, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
