"""Metadata extraction: turns a harvested LIDO record into an :class:`Extraction`.

The extractor is schema-agnostic.  Which fields exist, where they live and
how they are labelled all come from the data definition table in
:class:`~imagehub.config.Settings`; only the related-works block has a fixed
structure (``relatedWorkSet`` → ``relatedWork`` / ``relatedWorkRelType``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from lxml import etree

from imagehub.config import Settings
from imagehub.metadata.xpath import PathTemplate, parse_template
from imagehub.models import DEFAULT_SORT_ORDER, RELATED, ImageRecord, RelatedWorkRef

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "n/a"

# Data definition keys that feed the manifest-level display fields.
DISPLAY_FIELDS = {
    "title": "label",
    "publisher": "attribution",
    "short_description": "description",
}


@dataclass
class Extraction:
    """Everything the Datahub contributes to one record."""

    data_id: str
    related: list[RelatedWorkRef] = field(default_factory=list)
    metadata: dict[str, dict[str, str]] = field(default_factory=dict)
    label: str = ""
    attribution: str = ""
    description: str = ""

    def apply(self, record: ImageRecord) -> None:
        """Copy the extracted values onto *record*."""
        for ref in self.related:
            record.related_works.add(ref)
        record.metadata = {label: dict(values) for label, values in self.metadata.items()}
        record.label = self.label
        record.attribution = self.attribution
        record.description = self.description


def _text(node: object) -> str:
    """Return the string value of an XPath result item."""
    if isinstance(node, etree._Element):
        return "".join(node.itertext()).strip()
    return str(node).strip()


def _parse_sort_order(value: Optional[str]) -> int:
    try:
        sort_order = int(value) if value is not None else DEFAULT_SORT_ORDER
    except ValueError:
        return DEFAULT_SORT_ORDER
    return sort_order if sort_order >= 1 else DEFAULT_SORT_ORDER


class MetadataExtractor:
    """Evaluate the data definition against harvested records.

    Templates are parsed once, on construction, so a broken data definition
    fails the run before any record is harvested.
    """

    def __init__(self, settings: Settings) -> None:
        self.namespace = settings.namespace
        self.namespace_uri = settings.namespace_uri
        self.default_language = settings.datahub_language
        self.languages = settings.datahub_languages
        self.related_works_template = parse_template(settings.related_works_xpath)
        self.fields: dict[str, tuple[PathTemplate, Optional[str]]] = {
            key: (parse_template(definition.xpath), definition.label)
            for key, definition in settings.data_definition.items()
            if definition.label or key == "short_description"
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _namespaces(self, document: etree._Element) -> dict[str, str]:
        uri = document.nsmap.get(self.namespace) or self.namespace_uri
        return {self.namespace: uri}

    def _qualified(self, namespaces: dict[str, str], local: str) -> str:
        return f"{{{namespaces[self.namespace]}}}{local}"

    def _query(
        self,
        document: etree._Element,
        template: PathTemplate,
        language: str,
        namespaces: dict[str, str],
    ) -> list:
        result = document.xpath(template.render(self.namespace, language), namespaces=namespaces)
        return result if isinstance(result, list) else [result]

    def _attribute(self, node: etree._Element, namespaces: dict[str, str], local: str) -> Optional[str]:
        value = node.get(self._qualified(namespaces, local))
        return value if value is not None else node.get(local)

    # ------------------------------------------------------------------
    # Related works
    # ------------------------------------------------------------------

    def _related_work(
        self,
        node: etree._Element,
        namespaces: dict[str, str],
        records: Mapping[str, ImageRecord],
    ) -> Optional[RelatedWorkRef]:
        related_id: Optional[str] = None
        relation: Optional[str] = None
        for child in node:
            if not isinstance(child.tag, str):
                continue
            if child.tag == self._qualified(namespaces, "relatedWork"):
                for candidate in child.iterdescendants():
                    if not isinstance(candidate.tag, str):
                        continue
                    if self._attribute(candidate, namespaces, "type") == "oai":
                        related_id = _text(candidate)
            elif child.tag == self._qualified(namespaces, "relatedWorkRelType"):
                for concept in child.iterchildren(self._qualified(namespaces, "conceptID")):
                    concept_id = _text(concept)
                    relation = concept_id[concept_id.rfind("/") + 1:]

        if not related_id:
            return None

        related = records.get(related_id)
        return RelatedWorkRef(
            relation_kind=relation or RELATED,
            data_id=related_id,
            image_id=related.image_id if related else "",
            sort_order=_parse_sort_order(self._attribute(node, namespaces, "sortorder")),
            width=related.width if related else 0,
            height=related.height if related else 0,
        )

    def extract_related_works(
        self,
        data_id: str,
        document: etree._Element,
        records: Mapping[str, ImageRecord],
    ) -> list[RelatedWorkRef]:
        """Return the direct related-work edges of *document*, in document order.

        Sets without a resolvable ``oai`` identifier are skipped, as are
        references back to *data_id* itself.
        """
        namespaces = self._namespaces(document)
        refs: list[RelatedWorkRef] = []
        nodes = self._query(document, self.related_works_template, self.default_language, namespaces)
        for node in nodes:
            if not isinstance(node, etree._Element):
                continue
            ref = self._related_work(node, namespaces, records)
            if ref is None:
                logger.debug("%s: related work without oai identifier skipped", data_id)
                continue
            if ref.data_id == data_id:
                continue
            refs.append(ref)
        return refs

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(
        self,
        data_id: str,
        document: etree._Element,
        records: Mapping[str, ImageRecord],
    ) -> Extraction:
        """Extract related works and multilingual metadata for *data_id*.

        Args:
            data_id: The data pid the document was harvested for.
            document: Root element of the harvested metadata payload.
            records: The current record map, read to copy image ids and
                dimensions onto related-work refs.  It is not modified.
        """
        extraction = Extraction(
            data_id=data_id,
            related=self.extract_related_works(data_id, document, records),
        )
        namespaces = self._namespaces(document)

        for language in self.languages:
            for key, (template, label) in self.fields.items():
                value: Optional[str] = None
                # Last non-"n/a" match wins
                for node in self._query(document, template, language, namespaces):
                    text = _text(node)
                    if text and text != NOT_AVAILABLE:
                        value = text
                if not value:
                    continue
                if label:
                    extraction.metadata.setdefault(label, {})[language] = value
                if language == self.default_language and key in DISPLAY_FIELDS:
                    setattr(extraction, DISPLAY_FIELDS[key], value)

        return extraction
