"""Datahub metadata extraction driven by the data definition table."""

from imagehub.metadata.extractor import Extraction, MetadataExtractor
from imagehub.metadata.xpath import PathTemplate, build_query, parse_template

__all__ = ["MetadataExtractor", "Extraction", "PathTemplate", "parse_template", "build_query"]
