"""Exception hierarchy for the manifest generator.

Each upstream source wraps its transport and parse failures in one of these,
so the pipeline can decide per stage whether a failure aborts the run, drops
a record, or only degrades it.
"""

from __future__ import annotations


class ImageHubError(Exception):
    """Base class for all manifest generator errors."""


class CatalogError(ImageHubError):
    """ResourceSpace returned an error or an unusable payload."""


class DimensionError(ImageHubError):
    """Cantaloupe could not report the size of an image."""


class HarvestError(ImageHubError):
    """The Datahub record for a data pid could not be fetched or parsed."""

    def __init__(self, data_id: str, message: str) -> None:
        super().__init__(f"{data_id}: {message}")
        self.data_id = data_id
