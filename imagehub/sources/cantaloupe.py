"""Cantaloupe image server: pixel dimensions from IIIF ``info.json``."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import httpx

from imagehub.config import Settings
from imagehub.errors import DimensionError
from imagehub.models import ImageRecord, RelatedWorkRef

logger = logging.getLogger(__name__)


class CantaloupeClient:
    def __init__(self, settings: Settings, client: Optional[httpx.Client] = None) -> None:
        self.base_url = settings.cantaloupe_url
        self._client = client or httpx.Client(timeout=settings.request_timeout)

    def __enter__(self) -> CantaloupeClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get_dimensions(self, image_id: str) -> tuple[int, int]:
        """Return ``(width, height)`` for *image_id*.

        Raises:
            DimensionError: On any HTTP failure or an ``info.json`` without
                usable ``width``/``height`` values.
        """
        if not image_id:
            raise DimensionError("record has no image id")
        url = f"{self.base_url}{image_id}/info.json"
        try:
            response = self._client.get(url)
            response.raise_for_status()
            info = response.json()
            return int(info["width"]), int(info["height"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            raise DimensionError(f"{url}: {exc}") from exc


def add_dimensions(
    records: dict[str, ImageRecord],
    client: CantaloupeClient,
    settings: Settings,
) -> int:
    """Fill in width/height for every record and additional image.

    A failed lookup leaves the image at 0x0 and is only logged.

    Returns:
        The number of images whose lookup failed.
    """
    targets: list[ImageRecord | RelatedWorkRef] = []
    for record in records.values():
        targets.append(record)
        targets.extend(record.additional_images)

    def lookup(target: ImageRecord | RelatedWorkRef) -> Optional[tuple[int, int]]:
        try:
            return client.get_dimensions(target.image_id)
        except DimensionError as exc:
            logger.warning("No dimensions for %s: %s", target.data_id, exc)
            return None

    with ThreadPoolExecutor(max_workers=max(1, settings.max_workers)) as pool:
        results = list(pool.map(lookup, targets))

    failed = 0
    for target, dimensions in zip(targets, results):
        if dimensions is None:
            failed += 1
            continue
        target.width, target.height = dimensions
    return failed
