"""Manifest generation pipeline.

``generate_manifests`` rebuilds the whole store from the three upstream
sources:

    clear store → ResourceSpace records → Cantaloupe dimensions →
    Datahub metadata → relation closure → related links → assemble & store
"""

from __future__ import annotations

import logging
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from lxml import etree

from imagehub.config import Settings
from imagehub.db.store import clear_store, save_bundle
from imagehub.errors import HarvestError
from imagehub.manifests.assembler import assemble
from imagehub.manifests.relations import close_relations
from imagehub.metadata.extractor import Extraction, MetadataExtractor
from imagehub.models import ImageRecord
from imagehub.sources.cantaloupe import CantaloupeClient, add_dimensions
from imagehub.sources.datahub import DatahubClient
from imagehub.sources.resourcespace import ResourceSpaceClient, fetch_records

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    records_fetched: int = 0
    records_dropped: list[str] = field(default_factory=list)
    dimensions_missing: int = 0
    relations_added: int = 0
    manifests_written: int = 0
    canvases_written: int = 0


def add_datahub_data(
    records: dict[str, ImageRecord],
    datahub: DatahubClient,
    extractor: MetadataExtractor,
    settings: Settings,
) -> list[str]:
    """Harvest and extract every record; drop the ones that fail.

    Harvesting runs on a worker pool that only reads *records*; extractions
    are applied afterwards on the calling thread.

    Returns:
        The data pids that were dropped.
    """

    def harvest(data_id: str) -> Optional[Extraction]:
        try:
            document = datahub.get_record(data_id)
            return extractor.extract(data_id, document, records)
        except (HarvestError, etree.XPathError) as exc:
            logger.error("Dropping %s: %s", data_id, exc)
            return None

    data_ids = list(records)
    with ThreadPoolExecutor(max_workers=max(1, settings.max_workers)) as pool:
        extractions = list(pool.map(harvest, data_ids))

    dropped: list[str] = []
    for data_id, extraction in zip(data_ids, extractions):
        if extraction is None:
            del records[data_id]
            dropped.append(data_id)
        else:
            extraction.apply(records[data_id])
    return dropped


def add_related_links(records: dict[str, ImageRecord], settings: Settings) -> None:
    """Point every record at its public catalog page."""
    for record in records.values():
        record.related_uri = f"{settings.related_base_url}{record.manifest_id}"


def generate_manifests(
    conn: sqlite3.Connection,
    settings: Settings,
    catalog: ResourceSpaceClient,
    images: CantaloupeClient,
    datahub: DatahubClient,
) -> RunReport:
    """Rebuild the manifest store from scratch.

    Raises:
        CatalogError: If the initial ResourceSpace search fails.  This is the
            only failure that aborts the run.
    """
    report = RunReport()
    extractor = MetadataExtractor(settings)

    # ------------------------------------------------------------------
    # 1 — Start from an empty store
    # ------------------------------------------------------------------
    clear_store(conn)

    # ------------------------------------------------------------------
    # 2 & 3 — Catalog records and their pixel dimensions
    # ------------------------------------------------------------------
    records = fetch_records(catalog, settings)
    report.records_fetched = len(records)
    report.dimensions_missing = add_dimensions(records, images, settings)

    # ------------------------------------------------------------------
    # 4 — Datahub metadata and direct relations
    # ------------------------------------------------------------------
    report.records_dropped = add_datahub_data(records, datahub, extractor, settings)

    # ------------------------------------------------------------------
    # 5 & 6 — Relation closure (needs the complete record set) and links
    # ------------------------------------------------------------------
    report.relations_added = close_relations(records)
    add_related_links(records, settings)

    # ------------------------------------------------------------------
    # 7 — Assemble and persist, one commit per manifest
    # ------------------------------------------------------------------
    written: dict[str, str] = {}
    for data_id, record in records.items():
        bundle = assemble(record, settings)
        if bundle.manifest_uri in written:
            logger.warning(
                "%s overwrites manifest %s already written for %s",
                data_id,
                bundle.manifest_uri,
                written[bundle.manifest_uri],
            )
        written[bundle.manifest_uri] = data_id
        save_bundle(conn, bundle)
        report.manifests_written += 1
        report.canvases_written += len(bundle.canvases)

    logger.info(
        "Generated %d manifests (%d canvases); %d records dropped",
        report.manifests_written,
        report.canvases_written,
        len(report.records_dropped),
    )
    return report
