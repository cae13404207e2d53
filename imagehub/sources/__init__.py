"""Upstream sources — ResourceSpace, Cantaloupe and the Datahub."""

from imagehub.sources.cantaloupe import CantaloupeClient, add_dimensions
from imagehub.sources.datahub import DatahubClient
from imagehub.sources.resourcespace import ResourceSpaceClient, fetch_records

__all__ = [
    "ResourceSpaceClient",
    "CantaloupeClient",
    "DatahubClient",
    "fetch_records",
    "add_dimensions",
]
