"""Datahub OAI-PMH harvester: one ``GetRecord`` call per data pid."""

from __future__ import annotations

from typing import Optional

import httpx
from lxml import etree

from imagehub.config import Settings
from imagehub.errors import HarvestError

OAI_NS = "http://www.openarchives.org/OAI/2.0/"
_NS = {"oai": OAI_NS}


class DatahubClient:
    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.Client] = None,
        url: Optional[str] = None,
    ) -> None:
        self.url = url or settings.datahub_url
        self.metadata_prefix = settings.metadata_prefix
        self._client = client or httpx.Client(timeout=settings.request_timeout)

    def __enter__(self) -> DatahubClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get_record(self, data_id: str) -> etree._Element:
        """Fetch *data_id* and return the root element of its metadata payload.

        Raises:
            HarvestError: On transport failure, an OAI-PMH ``<error>``
                response, malformed XML, or a record without metadata
                (e.g. a deleted record).
        """
        params = {
            "verb": "GetRecord",
            "identifier": data_id,
            "metadataPrefix": self.metadata_prefix,
        }
        try:
            response = self._client.get(self.url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise HarvestError(data_id, str(exc)) from exc

        try:
            root = etree.fromstring(response.content)
        except etree.XMLSyntaxError as exc:
            raise HarvestError(data_id, f"malformed response: {exc}") from exc

        error = root.find("oai:error", _NS)
        if error is not None:
            code = error.get("code", "error")
            raise HarvestError(data_id, f"{code}: {(error.text or '').strip()}")

        metadata = root.find("oai:GetRecord/oai:record/oai:metadata", _NS)
        payload = None
        if metadata is not None:
            payload = next((child for child in metadata if isinstance(child.tag, str)), None)
        if payload is None:
            raise HarvestError(data_id, "record has no metadata")
        # Detach the payload from the OAI-PMH envelope
        return etree.fromstring(etree.tostring(payload))
