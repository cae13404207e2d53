"""Canvas ordering within one manifest."""

from __future__ import annotations

from imagehub.models import CanvasEntry, ImageRecord, RelatedWorkRef


def order_canvases(record: ImageRecord) -> list[CanvasEntry]:
    """Place *record* and its related works on distinct positions.

    The record itself takes its own sort order.  Each related work (then each
    additional image) starts at its declared sort order and moves up one slot
    at a time until it finds a free position.  The result is sorted by
    position and renumbered 1..K, so declared sort orders only decide the
    relative order, never the emitted index.
    """
    slots: dict[int, CanvasEntry] = {
        record.sort_order: CanvasEntry(
            position=record.sort_order,
            data_id=record.data_id,
            image_id=record.image_id,
            width=record.width,
            height=record.height,
        )
    }

    refs: list[RelatedWorkRef] = list(record.related_works) + list(record.additional_images)
    for ref in refs:
        position = ref.sort_order
        while position in slots:
            position += 1
        slots[position] = CanvasEntry(
            position=position,
            data_id=ref.data_id,
            image_id=ref.image_id,
            width=ref.width,
            height=ref.height,
        )

    ordered = [slots[position] for position in sorted(slots)]
    for index, entry in enumerate(ordered, start=1):
        entry.position = index
    return ordered
