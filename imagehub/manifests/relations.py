"""Relation closure across the whole record set.

Works are related when a chain of related-work references connects them, in
either direction.  After :func:`close_relations` every connected component
of the relation graph is a clique: each record lists every other member of
its component, and the lists are symmetric.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from imagehub.models import RELATED, ImageRecord

logger = logging.getLogger(__name__)


class UnionFind:
    """Disjoint sets over data pids (path halving, union by size)."""

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._parent: dict[str, str] = {}
        self._size: dict[str, int] = {}
        for item in items:
            self.add(item)

    def add(self, item: str) -> None:
        if item not in self._parent:
            self._parent[item] = item
            self._size[item] = 1

    def find(self, item: str) -> str:
        self.add(item)
        while self._parent[item] != item:
            self._parent[item] = self._parent[self._parent[item]]
            item = self._parent[item]
        return item

    def union(self, a: str, b: str) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return
        if self._size[root_a] < self._size[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        self._size[root_a] += self._size[root_b]

    def groups(self) -> list[set[str]]:
        members: dict[str, set[str]] = {}
        for item in self._parent:
            members.setdefault(self.find(item), set()).add(item)
        return list(members.values())


def build_relation_graph(records: Mapping[str, ImageRecord]) -> dict[str, set[str]]:
    """Return the undirected adjacency of the current related-work keys.

    Only edges between two records count; refs to data pids that are not
    records (dropped at harvest, or never catalogued) link nothing.
    """
    graph: dict[str, set[str]] = {data_id: set() for data_id in records}
    for data_id, record in records.items():
        for related_id in record.related_works.keys():
            if related_id == data_id or related_id not in records:
                continue
            graph[data_id].add(related_id)
            graph[related_id].add(data_id)
    return graph


def connected_components(graph: Mapping[str, Iterable[str]]) -> list[set[str]]:
    uf = UnionFind(graph)
    for node, neighbours in graph.items():
        for neighbour in neighbours:
            uf.union(node, neighbour)
    return uf.groups()


def close_relations(records: Mapping[str, ImageRecord]) -> int:
    """Complete every record's related works to its whole component.

    Missing refs are synthesized with relation kind ``related`` from the
    target's current record.  Existing refs, including direct refs to
    non-records, are never replaced.  Synthesized refs are added in sorted
    data pid order.

    Returns:
        The number of refs added.
    """
    added = 0
    for component in connected_components(build_relation_graph(records)):
        if len(component) < 2:
            continue
        members = sorted(component)
        for data_id in members:
            record = records[data_id]
            for other in members:
                if other != data_id and other not in record.related_works:
                    record.related_works.add(records[other].as_related(RELATED))
                    added += 1
    logger.info("Relation closure added %d related works", added)
    return added
