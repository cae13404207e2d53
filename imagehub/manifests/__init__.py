"""Relation closure, canvas ordering and manifest assembly."""

from imagehub.manifests.assembler import assemble, build_canvas, build_manifest
from imagehub.manifests.ordering import order_canvases
from imagehub.manifests.relations import build_relation_graph, close_relations, connected_components

__all__ = [
    "assemble",
    "build_canvas",
    "build_manifest",
    "order_canvases",
    "build_relation_graph",
    "close_relations",
    "connected_components",
]
