"""ResourceSpace API client: the catalog every run starts from.

Every call is authenticated with a signed query string::

    sign = sha256(api_key + query)

The query is signed exactly as sent, so parameters are concatenated by hand
instead of being encoded by httpx.
"""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import httpx

from imagehub.config import Settings
from imagehub.errors import CatalogError
from imagehub.models import RELATED_TO, ImageRecord

logger = logging.getLogger(__name__)

DUPLICATE_FIRST_SEEN = "first_seen"
DUPLICATE_SKIP = "skip"


class ResourceSpaceClient:
    """Thin signed wrapper around the two read-only API functions we need."""

    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        # Make sure the API URL does not end with a '?' character
        self.api_url = settings.api_url.rstrip("?")
        self._client = client or httpx.Client(timeout=settings.request_timeout)

    def __enter__(self) -> ResourceSpaceClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def sign(self, query: str) -> str:
        return hashlib.sha256((self.settings.api_key + query).encode("utf-8")).hexdigest()

    def _call(self, function: str, param: str = "") -> Any:
        query = f"user={self.settings.api_username}&function={function}&param1={param}"
        url = f"{self.api_url}?{query}&sign={self.sign(query)}"
        try:
            response = self._client.get(url)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogError(f"{function}({param!r}) failed: {exc}") from exc

    def search_all(self) -> list[str]:
        """Return the refs of every resource in the catalog.

        Raises:
            CatalogError: If the search fails or does not return a list.
        """
        resources = self._call("do_search")
        if not isinstance(resources, list):
            raise CatalogError(f"do_search returned {type(resources).__name__}, expected a list")
        refs = [
            str(resource["ref"])
            for resource in resources
            if isinstance(resource, dict) and "ref" in resource
        ]
        if len(refs) != len(resources):
            logger.warning("Skipped %d search results without a ref", len(resources) - len(refs))
        return refs

    def get_resource_fields(self, ref: str) -> dict[str, str]:
        """Return the field name/value pairs of resource *ref*."""
        data = self._call("get_resource_field_data", ref)
        if not isinstance(data, list):
            raise CatalogError(f"get_resource_field_data({ref!r}) returned no field list")
        return {
            str(item.get("name")): "" if item.get("value") is None else str(item["value"])
            for item in data
            if isinstance(item, dict)
        }


def _safe_fields(client: ResourceSpaceClient, ref: str) -> Optional[dict[str, str]]:
    try:
        return client.get_resource_fields(ref)
    except CatalogError as exc:
        logger.error("Dropping resource %s: %s", ref, exc)
        return None


def fetch_records(client: ResourceSpaceClient, settings: Settings) -> dict[str, ImageRecord]:
    """Build the initial data pid -> record map from the catalog.

    Field lookups run on a worker pool; records are merged in catalog order.
    A second image for an already known data pid is attached to the first
    record as an additional image (``first_seen`` policy) or ignored
    (``skip`` policy).

    Raises:
        CatalogError: If the initial search fails.  Nothing can be built
            without it, so the run aborts.
    """
    refs = client.search_all()
    logger.info("ResourceSpace returned %d resources", len(refs))

    with ThreadPoolExecutor(max_workers=max(1, settings.max_workers)) as pool:
        all_fields = list(pool.map(lambda ref: _safe_fields(client, ref), refs))

    records: dict[str, ImageRecord] = {}
    for ref, fields in zip(refs, all_fields):
        if fields is None:
            continue
        data_id = fields.get(settings.pid_field, "")
        if not data_id:
            logger.warning("Resource %s has no %s, skipping", ref, settings.pid_field)
            continue
        image_id = fields.get(settings.image_field, "")

        existing = records.get(data_id)
        if existing is None:
            records[data_id] = ImageRecord(data_id=data_id, image_id=image_id)
        elif settings.duplicate_image_policy == DUPLICATE_SKIP:
            logger.warning("Ignoring extra image %s for %s", image_id, data_id)
        else:
            extra = ImageRecord(data_id=data_id, image_id=image_id).as_related(RELATED_TO)
            existing.additional_images.append(extra)
    return records
