"""Data models shared by the pipeline stages.

These are plain Python objects.  Every stage reads and enriches
:class:`ImageRecord` instances keyed by their data pid; nothing here talks to
the network or the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

DEFAULT_SORT_ORDER = 1

# Relation kinds that are not read from the Datahub.
RELATED = "related"
RELATED_TO = "relatedto"


def manifest_id_for(data_id: str) -> str:
    """Strip the institution and collection segments from *data_id*.

    ``"oai:datahub:123"`` becomes ``"123"``; any further ``:`` segments are
    kept, so ``"a:b:c:d"`` becomes ``"c:d"``.
    """
    return ":".join(data_id.split(":")[2:])


@dataclass
class RelatedWorkRef:
    """Enough of a related record to place it as a canvas."""

    relation_kind: str
    data_id: str
    image_id: str = ""
    sort_order: int = DEFAULT_SORT_ORDER
    width: int = 0
    height: int = 0


class RelatedWorks:
    """Related works of one record, keyed by data pid.

    Lookup goes through the mapping; iteration follows the explicit
    insertion sequence, which is the order canvases get placed in.
    """

    def __init__(self, owner: str) -> None:
        self.owner = owner
        self._refs: dict[str, RelatedWorkRef] = {}
        self._sequence: list[str] = []

    def add(self, ref: RelatedWorkRef) -> bool:
        """Attach *ref* unless it points at the owner or is already present.

        Returns ``True`` when the ref was added.
        """
        if ref.data_id == self.owner or ref.data_id in self._refs:
            return False
        self._refs[ref.data_id] = ref
        self._sequence.append(ref.data_id)
        return True

    def get(self, data_id: str) -> Optional[RelatedWorkRef]:
        return self._refs.get(data_id)

    def keys(self) -> list[str]:
        return list(self._sequence)

    def __contains__(self, data_id: object) -> bool:
        return data_id in self._refs

    def __iter__(self) -> Iterator[RelatedWorkRef]:
        return (self._refs[data_id] for data_id in self._sequence)

    def __len__(self) -> int:
        return len(self._sequence)

    def __repr__(self) -> str:
        return f"RelatedWorks({self.owner!r}, {self._sequence!r})"


@dataclass
class ImageRecord:
    """One catalog work and everything gathered about it during a run."""

    data_id: str
    image_id: str = ""
    label: str = ""
    attribution: str = ""
    description: str = ""
    related_uri: str = ""
    width: int = 0
    height: int = 0
    sort_order: int = DEFAULT_SORT_ORDER
    metadata: dict[str, dict[str, str]] = field(default_factory=dict)
    related_works: RelatedWorks = field(init=False)
    # Further catalog images that share this record's data pid.
    additional_images: list[RelatedWorkRef] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.related_works = RelatedWorks(self.data_id)

    @property
    def manifest_id(self) -> str:
        return manifest_id_for(self.data_id)

    def as_related(self, relation_kind: str) -> RelatedWorkRef:
        """Return a placeholder ref pointing at this record."""
        return RelatedWorkRef(
            relation_kind=relation_kind,
            data_id=self.data_id,
            image_id=self.image_id,
            sort_order=self.sort_order,
            width=self.width,
            height=self.height,
        )


@dataclass
class CanvasEntry:
    """A canvas slot of a manifest after ordering."""

    position: int
    data_id: str
    image_id: str
    width: int
    height: int


@dataclass
class ManifestBundle:
    """The documents produced for one record."""

    manifest_uri: str
    manifest: dict[str, Any]
    canvases: list[dict[str, Any]] = field(default_factory=list)
