"""
Temporal Graph Resolver

Folds a TemporalGraph's slices 0..N into an immutable Snapshot.

Resolution is a pure function of (graph, slice index). Events are applied in
declared order within a slice and slices in declared order. Any event that
cannot be applied fails the whole resolution; no partial snapshot is returned
or cached.

Because resolving N+1 equals resolving N with slice N+1 folded on top, the
Resolver can resume from the nearest cached lower slice. The cache is keyed
by (graph version, slice index) and never changes results.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Optional

from ..config import get_settings
from ..exceptions import (
    DanglingReferenceError,
    DuplicateIdError,
    GraphIntegrityError,
    OutOfRangeError,
    UnknownEntityError,
    UnknownRelationError,
)
from ..models.enums import RelationType
from ..models.graph import (
    AddEntity,
    AddRelation,
    Entity,
    Event,
    MarkDeceased,
    Relation,
    RemoveRelation,
    TemporalGraph,
    UpdateRelation,
)
from ..models.snapshot import Snapshot


logger = logging.getLogger(__name__)


# =============================================================================
# Accumulator
# =============================================================================

@dataclass
class _Accumulator:
    """Mutable fold state. Never escapes this module."""
    entities: dict[str, Entity] = field(default_factory=dict)
    relations: dict[str, Relation] = field(default_factory=dict)
    relation_since: dict[str, int] = field(default_factory=dict)
    type_history: dict[str, list[tuple[int, RelationType]]] = field(default_factory=dict)
    removed_relations: set[str] = field(default_factory=set)

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, graph: TemporalGraph) -> _Accumulator:
        # Removed ids are not kept on snapshots; recover them from the definitions.
        removed = {
            rid for rid in graph.relations
            if rid not in snapshot.relations and _was_added(graph, rid, snapshot.slice_index)
        }
        return cls(
            entities=dict(snapshot.entities),
            relations=dict(snapshot.relations),
            relation_since=dict(snapshot.relation_since),
            type_history={k: list(v) for k, v in snapshot.type_history.items()},
            removed_relations=removed,
        )

    def to_snapshot(self, slice_index: int) -> Snapshot:
        return Snapshot(
            slice_index=slice_index,
            entities=dict(self.entities),
            relations=dict(self.relations),
            relation_since=dict(self.relation_since),
            type_history={k: tuple(v) for k, v in self.type_history.items()},
        )


def _was_added(graph: TemporalGraph, relation_id: str, up_to: int) -> bool:
    for s in graph.slices[: up_to + 1]:
        for event in s.events:
            if isinstance(event, AddRelation) and event.relation_id == relation_id:
                return True
    return False


# =============================================================================
# Event Application
# =============================================================================

def _context(graph: TemporalGraph, slice_index: int, position: int, event: Event) -> dict:
    return {
        "slice_id": graph.slices[slice_index].id,
        "event_position": position,
        "event_type": event.event_type.value,
    }


def _check_endpoints(
    acc: _Accumulator,
    relation: Relation,
    graph: TemporalGraph,
    slice_index: int,
    ctx: dict,
) -> None:
    for endpoint in relation.endpoints:
        if endpoint not in acc.entities:
            raise DanglingReferenceError(
                message=f"Relation '{relation.id}' references entity '{endpoint}' which is not present",
                details={**ctx, "relation_id": relation.id, "entity_id": endpoint},
                slice_index=slice_index,
            )
    if relation.source_id == relation.target_id:
        raise DanglingReferenceError(
            message=f"Relation '{relation.id}' must connect two distinct entities",
            details={**ctx, "relation_id": relation.id, "entity_id": relation.source_id},
            slice_index=slice_index,
        )
    for child_id in relation.child_ids:
        if child_id not in graph.entities:
            raise DanglingReferenceError(
                message=f"Relation '{relation.id}' lists undefined child '{child_id}'",
                details={**ctx, "relation_id": relation.id, "entity_id": child_id},
                slice_index=slice_index,
            )


def _apply_event(
    acc: _Accumulator,
    graph: TemporalGraph,
    event: Event,
    slice_index: int,
    position: int,
) -> None:
    ctx = _context(graph, slice_index, position, event)

    if isinstance(event, AddEntity):
        if event.entity_id in acc.entities:
            raise DuplicateIdError(
                message=f"Entity '{event.entity_id}' was already added",
                details={**ctx, "entity_id": event.entity_id},
                slice_index=slice_index,
            )
        definition = graph.entities.get(event.entity_id)
        if definition is None:
            raise UnknownEntityError(
                message=f"Entity '{event.entity_id}' has no definition in the graph",
                details={**ctx, "entity_id": event.entity_id},
                slice_index=slice_index,
            )
        acc.entities[event.entity_id] = replace(
            definition, introduced_slice=slice_index, death_slice=None
        )

    elif isinstance(event, AddRelation):
        if event.relation_id in acc.relations or event.relation_id in acc.removed_relations:
            raise DuplicateIdError(
                message=f"Relation '{event.relation_id}' was already added",
                details={**ctx, "relation_id": event.relation_id},
                slice_index=slice_index,
            )
        definition = graph.relations.get(event.relation_id)
        if definition is None:
            raise UnknownRelationError(
                message=f"Relation '{event.relation_id}' has no definition in the graph",
                details={**ctx, "relation_id": event.relation_id},
                slice_index=slice_index,
            )
        relation = replace(definition, introduced_slice=slice_index)
        _check_endpoints(acc, relation, graph, slice_index, ctx)
        acc.relations[relation.id] = relation
        acc.relation_since[relation.id] = slice_index
        acc.type_history[relation.id] = [(slice_index, relation.type)]

    elif isinstance(event, MarkDeceased):
        entity = acc.entities.get(event.entity_id)
        if entity is None:
            raise UnknownEntityError(
                message=f"Cannot mark unknown entity '{event.entity_id}' as deceased",
                details={**ctx, "entity_id": event.entity_id},
                slice_index=slice_index,
            )
        if entity.death_slice is not None:
            raise GraphIntegrityError(
                message=f"Entity '{event.entity_id}' is already deceased "
                        f"(slice {entity.death_slice})",
                details={**ctx, "entity_id": event.entity_id},
                slice_index=slice_index,
            )
        acc.entities[event.entity_id] = replace(entity, death_slice=slice_index)

    elif isinstance(event, UpdateRelation):
        current = acc.relations.get(event.relation_id)
        if current is None:
            raise UnknownRelationError(
                message=f"Cannot update unknown relation '{event.relation_id}'",
                details={**ctx, "relation_id": event.relation_id},
                slice_index=slice_index,
            )
        updated = replace(current, **event.changes)
        _check_endpoints(acc, updated, graph, slice_index, ctx)
        # Reassigning an existing key keeps introduction order.
        acc.relations[updated.id] = updated
        acc.relation_since[updated.id] = slice_index
        if updated.type != current.type:
            acc.type_history[updated.id].append((slice_index, updated.type))

    elif isinstance(event, RemoveRelation):
        if event.relation_id not in acc.relations:
            raise UnknownRelationError(
                message=f"Cannot remove unknown relation '{event.relation_id}'",
                details={**ctx, "relation_id": event.relation_id},
                slice_index=slice_index,
            )
        del acc.relations[event.relation_id]
        del acc.relation_since[event.relation_id]
        del acc.type_history[event.relation_id]
        acc.removed_relations.add(event.relation_id)

    else:
        raise GraphIntegrityError(
            message=f"Unsupported event {type(event).__name__}",
            details={"event": repr(event)},
            slice_index=slice_index,
        )


def _fold(
    graph: TemporalGraph,
    acc: _Accumulator,
    start: int,
    end: int,
) -> _Accumulator:
    for slice_index in range(start, end + 1):
        for position, event in enumerate(graph.slices[slice_index].events):
            _apply_event(acc, graph, event, slice_index, position)
    return acc


def _check_range(graph: TemporalGraph, slice_index: int) -> None:
    if slice_index < 0 or slice_index >= graph.slice_count:
        raise OutOfRangeError(
            message=f"Slice {slice_index} is outside the timeline of {graph.slice_count} slice(s)",
            details={"slice_count": graph.slice_count},
            slice_index=slice_index,
        )


# =============================================================================
# Public API
# =============================================================================

def resolve(graph: TemporalGraph, slice_index: int) -> Snapshot:
    """
    Resolve the graph's effective state at slice_index.

    Raises:
        OutOfRangeError: slice_index < 0 or >= graph.slice_count
        DuplicateIdError, DanglingReferenceError, UnknownEntityError,
        UnknownRelationError: an event could not be applied
    """
    _check_range(graph, slice_index)
    acc = _fold(graph, _Accumulator(), 0, slice_index)
    return acc.to_snapshot(slice_index)


def resolve_all(graph: TemporalGraph) -> list[Snapshot]:
    """Snapshots for every slice, built in one pass."""
    snapshots: list[Snapshot] = []
    acc = _Accumulator()
    for slice_index in range(graph.slice_count):
        _fold(graph, acc, slice_index, slice_index)
        snapshots.append(acc.to_snapshot(slice_index))
    return snapshots


class SnapshotCache:
    """
    LRU cache of snapshots keyed by (graph version, slice index).

    Usage:
        cache = SnapshotCache(max_size=32)
        resolver = Resolver(cache=cache)
    """

    def __init__(self, max_size: int = 64):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._entries: OrderedDict[tuple[str, int], Snapshot] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, int]) -> bool:
        return key in self._entries

    def get(self, version: str, slice_index: int) -> Optional[Snapshot]:
        snapshot = self._entries.get((version, slice_index))
        if snapshot is None:
            self.misses += 1
            return None
        self.hits += 1
        self._entries.move_to_end((version, slice_index))
        return snapshot

    def put(self, version: str, snapshot: Snapshot) -> None:
        key = (version, snapshot.slice_index)
        self._entries[key] = snapshot
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def nearest_below(self, version: str, slice_index: int) -> Optional[Snapshot]:
        """The cached snapshot of this graph closest below slice_index."""
        best: Optional[Snapshot] = None
        for (cached_version, cached_index), snapshot in self._entries.items():
            if cached_version != version or cached_index >= slice_index:
                continue
            if best is None or cached_index > best.slice_index:
                best = snapshot
        return best

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0


class Resolver:
    """
    Resolver with an optional read-through snapshot cache.

    With the cache disabled every call is a full fold from slice 0; results
    are identical either way.
    """

    def __init__(self, cache: Optional[SnapshotCache] = None, use_cache: Optional[bool] = None):
        settings = get_settings()
        if use_cache is None:
            use_cache = settings.snapshot_cache
        if use_cache and cache is None:
            cache = SnapshotCache(max_size=settings.snapshot_cache_size)
        self.cache: Optional[SnapshotCache] = cache if use_cache else None

    def resolve(self, graph: TemporalGraph, slice_index: int) -> Snapshot:
        """Resolve through the cache; see resolve()."""
        if self.cache is None:
            return resolve(graph, slice_index)

        _check_range(graph, slice_index)
        version = graph.version
        cached = self.cache.get(version, slice_index)
        if cached is not None:
            logger.debug("Snapshot cache hit for slice %d", slice_index,
                         extra={"slice_index": slice_index, "graph_version": version[:12]})
            return cached

        base = self.cache.nearest_below(version, slice_index)
        if base is None:
            acc = _fold(graph, _Accumulator(), 0, slice_index)
        else:
            logger.debug("Folding slices %d..%d onto cached slice %d",
                         base.slice_index + 1, slice_index, base.slice_index)
            acc = _fold(graph, _Accumulator.from_snapshot(base, graph), base.slice_index + 1, slice_index)

        snapshot = acc.to_snapshot(slice_index)
        self.cache.put(version, snapshot)
        return snapshot

    def resolve_all(self, graph: TemporalGraph) -> list[Snapshot]:
        snapshots = resolve_all(graph)
        if self.cache is not None:
            for snapshot in snapshots:
                self.cache.put(graph.version, snapshot)
        return snapshots
