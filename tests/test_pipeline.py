"""End-to-end pipeline tests against mocked upstream sources.

Mocking strategy:
- ``respx`` serves ResourceSpace, Cantaloupe and the Datahub from in-test
  dictionaries; each host is routed through a side-effect callable.
- The store is an in-memory SQLite database.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Generator

import httpx
import pytest
import respx

from imagehub.db.connection import get_connection
from imagehub.db.migrations import init_db
from imagehub.db.store import get_manifest, list_manifest_ids, save_bundle
from imagehub.errors import CatalogError
from imagehub.models import ManifestBundle
from imagehub.pipeline import generate_manifests
from imagehub.sources import CantaloupeClient, DatahubClient, ResourceSpaceClient

RESOURCES = {
    "1": ("X:Y:1", "one.jpg"),
    "2": ("X:Y:2", "two.jpg"),
    "3": ("X:Y:3", "three.jpg"),
    "4": ("X:Y:123", "broken.jpg"),
}
SIZES = {
    "one.jpg": (100, 200),
    "two.jpg": (300, 400),
    "three.jpg": (500, 600),
    "broken.jpg": (1, 1),
}


@pytest.fixture()
def conn(settings) -> Generator[sqlite3.Connection, None, None]:
    connection = get_connection(settings, db_path=":memory:")
    init_db(connection, settings)
    yield connection
    connection.close()


@pytest.fixture()
def upstream(lido, oai):
    """Mock all three upstream hosts; X:Y:123 fails to harvest."""
    records = {
        "X:Y:1": lido("X:Y:1", related=[("X:Y:2", "hasPart", 1), ("X:Y:3", "hasPart", 2)], publisher="MSK"),
        "X:Y:2": lido("X:Y:2"),
        "X:Y:3": lido("X:Y:3"),
    }

    def resourcespace(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if params["function"] == "do_search":
            return httpx.Response(200, json=[{"ref": ref} for ref in RESOURCES])
        data_pid, filename = RESOURCES[params["param1"]]
        return httpx.Response(
            200,
            json=[
                {"name": "data_pid", "value": data_pid},
                {"name": "originalfilename", "value": filename},
            ],
        )

    def cantaloupe(request: httpx.Request) -> httpx.Response:
        image_id = request.url.path.split("/")[-2]
        width, height = SIZES[image_id]
        return httpx.Response(200, json={"width": width, "height": height})

    def datahub(request: httpx.Request) -> httpx.Response:
        identifier = request.url.params["identifier"]
        if identifier not in records:
            raise httpx.ConnectError("harvest failed", request=request)
        return httpx.Response(200, text=oai(identifier, records[identifier]))

    with respx.mock:
        respx.get(url__startswith="https://rs.test/api/").mock(side_effect=resourcespace)
        respx.get(url__startswith="https://img.test/iiif/2/").mock(side_effect=cantaloupe)
        respx.get(url__startswith="https://dh.test/oai").mock(side_effect=datahub)
        yield


def _run(conn, settings):
    with ResourceSpaceClient(settings) as catalog, CantaloupeClient(settings) as images, \
            DatahubClient(settings) as datahub:
        return generate_manifests(conn, settings, catalog, images, datahub)


def _snapshot(conn: sqlite3.Connection) -> tuple[list, list]:
    manifests = conn.execute("SELECT manifest_id, data FROM manifests ORDER BY manifest_id").fetchall()
    canvases = conn.execute("SELECT canvas_id, data FROM canvases ORDER BY canvas_id").fetchall()
    return [tuple(r) for r in manifests], [tuple(r) for r in canvases]


def _canvas_labels(manifest: dict) -> list[str]:
    return [canvas["label"] for canvas in manifest["sequences"][0]["canvases"]]


class TestGenerateManifests:
    def test_report(self, conn, settings, upstream) -> None:
        report = _run(conn, settings)

        assert report.records_fetched == 4
        assert report.records_dropped == ["X:Y:123"]
        assert report.dimensions_missing == 0
        assert report.manifests_written == 3
        assert report.canvases_written == 9

    def test_dropped_record_has_no_manifest(self, conn, settings, upstream) -> None:
        _run(conn, settings)
        assert list_manifest_ids(conn) == [
            "https://hub.test/iiif/2/1/manifest.json",
            "https://hub.test/iiif/2/2/manifest.json",
            "https://hub.test/iiif/2/3/manifest.json",
        ]
        assert get_manifest(conn, "https://hub.test/iiif/2/123/manifest.json") is None

    def test_primary_manifest_canvas_order(self, conn, settings, upstream) -> None:
        _run(conn, settings)
        manifest = get_manifest(conn, "https://hub.test/iiif/2/1/manifest.json")

        assert _canvas_labels(manifest) == ["one.jpg", "two.jpg", "three.jpg"]
        canvases = manifest["sequences"][0]["canvases"]
        assert [c["@id"].rsplit("/", 1)[-1] for c in canvases] == ["1.json", "2.json", "3.json"]
        assert [(c["width"], c["height"]) for c in canvases] == [(100, 200), (300, 400), (500, 600)]
        assert manifest["attribution"] == "MSK"
        assert manifest["related"] == "https://arthub.test/nl/catalog/1"

    def test_closure_reaches_related_manifests(self, conn, settings, upstream) -> None:
        _run(conn, settings)
        second = get_manifest(conn, "https://hub.test/iiif/2/2/manifest.json")
        third = get_manifest(conn, "https://hub.test/iiif/2/3/manifest.json")

        assert _canvas_labels(second) == ["two.jpg", "one.jpg", "three.jpg"]
        assert _canvas_labels(third) == ["three.jpg", "one.jpg", "two.jpg"]

    def test_rerun_is_idempotent(self, conn, settings, upstream) -> None:
        _run(conn, settings)
        first = _snapshot(conn)
        _run(conn, settings)
        assert _snapshot(conn) == first

    def test_stale_documents_are_cleared(self, conn, settings, upstream) -> None:
        stale = ManifestBundle(
            manifest_uri="https://hub.test/iiif/2/old/manifest.json",
            manifest={"@id": "old"},
            canvases=[{"@id": "https://hub.test/iiif/2/old/canvas/1.json"}],
        )
        save_bundle(conn, stale)
        _run(conn, settings)

        assert "https://hub.test/iiif/2/old/manifest.json" not in list_manifest_ids(conn)
        row = conn.execute(
            "SELECT COUNT(*) FROM canvases WHERE canvas_id LIKE '%/old/%'"
        ).fetchone()
        assert row[0] == 0

    def test_canvases_are_stored_standalone(self, conn, settings, upstream) -> None:
        _run(conn, settings)
        row = conn.execute(
            "SELECT data FROM canvases WHERE canvas_id = ?",
            ("https://hub.test/iiif/2/1/canvas/2.json",),
        ).fetchone()
        canvas = json.loads(row["data"])
        assert canvas["label"] == "two.jpg"
        assert canvas["images"][0]["on"] == "https://hub.test/iiif/2/1/canvas/2.json"


def test_failed_search_aborts_run(conn, settings) -> None:
    with respx.mock:
        respx.get(url__startswith="https://rs.test/api/").mock(return_value=httpx.Response(500))
        with pytest.raises(CatalogError):
            _run(conn, settings)


def test_colliding_manifest_ids_are_logged(conn, settings, lido, oai, caplog) -> None:
    resources = {"1": ("a:b:1", "one.jpg"), "2": ("c:d:1", "two.jpg")}

    def resourcespace(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if params["function"] == "do_search":
            return httpx.Response(200, json=[{"ref": ref} for ref in resources])
        data_pid, filename = resources[params["param1"]]
        return httpx.Response(
            200,
            json=[
                {"name": "data_pid", "value": data_pid},
                {"name": "originalfilename", "value": filename},
            ],
        )

    def datahub(request: httpx.Request) -> httpx.Response:
        identifier = request.url.params["identifier"]
        return httpx.Response(200, text=oai(identifier, lido(identifier)))

    with respx.mock:
        respx.get(url__startswith="https://rs.test/api/").mock(side_effect=resourcespace)
        respx.get(url__startswith="https://img.test/iiif/2/").mock(
            return_value=httpx.Response(200, json={"width": 10, "height": 10})
        )
        respx.get(url__startswith="https://dh.test/oai").mock(side_effect=datahub)
        with caplog.at_level("WARNING", logger="imagehub.pipeline"):
            report = _run(conn, settings)

    assert report.manifests_written == 2
    assert list_manifest_ids(conn) == ["https://hub.test/iiif/2/1/manifest.json"]
    assert "c:d:1 overwrites manifest https://hub.test/iiif/2/1/manifest.json" in caplog.text
