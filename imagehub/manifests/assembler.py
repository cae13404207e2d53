"""IIIF Presentation 2 document assembly.

Pure functions: they build plain dicts ready for ``json.dumps`` and never
touch the store.
"""

from __future__ import annotations

from typing import Any

from imagehub.config import Settings
from imagehub.manifests.ordering import order_canvases
from imagehub.models import CanvasEntry, ImageRecord, ManifestBundle

PRESENTATION_CONTEXT = "http://iiif.io/api/presentation/2/context.json"
IMAGE_CONTEXT = "http://iiif.io/api/image/2/context.json"
IMAGE_PROFILE = "http://iiif.io/api/image/2/level2.json"


def manifest_uri(settings: Settings, manifest_id: str) -> str:
    return f"{settings.service_url}{manifest_id}/manifest.json"


def canvas_uri(settings: Settings, manifest_id: str, index: int) -> str:
    return f"{settings.service_url}{manifest_id}/canvas/{index}.json"


def build_canvas(entry: CanvasEntry, manifest_id: str, settings: Settings) -> dict[str, Any]:
    """Return the ``sc:Canvas`` document for one ordered entry."""
    canvas_id = canvas_uri(settings, manifest_id, entry.position)
    image_service = f"{settings.image_base_url}{entry.image_id}"
    resource = {
        "@id": f"{image_service}/full/full/0/default.jpg",
        "@type": "dctypes:Image",
        "format": "image/jpeg",
        "service": {
            "@context": IMAGE_CONTEXT,
            "@id": image_service,
            "profile": IMAGE_PROFILE,
        },
        "height": entry.height,
        "width": entry.width,
    }
    image = {
        "@context": PRESENTATION_CONTEXT,
        "@type": "oa:Annotation",
        "motivation": "sc:painting",
        "resource": resource,
        "on": canvas_id,
    }
    return {
        "@id": canvas_id,
        "@type": "sc:Canvas",
        "label": entry.image_id,
        "height": entry.height,
        "width": entry.width,
        "images": [image],
    }


def build_metadata(record: ImageRecord) -> list[dict[str, Any]]:
    """Reshape ``label -> {language -> value}`` into IIIF metadata pairs."""
    return [
        {
            "label": label,
            "value": [
                {"@language": language, "@value": value}
                for language, value in values.items()
            ],
        }
        for label, values in record.metadata.items()
    ]


def build_manifest(
    record: ImageRecord,
    canvases: list[dict[str, Any]],
    settings: Settings,
) -> dict[str, Any]:
    """Return the ``sc:Manifest`` document embedding *canvases*."""
    return {
        "@context": PRESENTATION_CONTEXT,
        "@type": "sc:Manifest",
        "@id": manifest_uri(settings, record.manifest_id),
        "label": record.label,
        "attribution": record.attribution,
        "related": record.related_uri,
        "description": record.description,
        "metadata": build_metadata(record),
        "viewingDirection": "left-to-right",
        "viewingHint": "individuals",
        "sequences": [
            {
                "@type": "sc:Sequence",
                "@context": PRESENTATION_CONTEXT,
                "canvases": canvases,
            }
        ],
    }


def assemble(record: ImageRecord, settings: Settings) -> ManifestBundle:
    """Order *record*'s canvases and build its manifest and canvas documents."""
    canvases = [
        build_canvas(entry, record.manifest_id, settings)
        for entry in order_canvases(record)
    ]
    return ManifestBundle(
        manifest_uri=manifest_uri(settings, record.manifest_id),
        manifest=build_manifest(record, canvases, settings),
        canvases=canvases,
    )
