"""
Resolved Snapshot

A Snapshot is the effective state of a TemporalGraph as of one slice:
the entities and relations present at that point, with every update up to
and including the slice applied. Snapshots are immutable; the derived
lookups (relations touching an entity, family queries) are indexes built
once at construction and excluded from equality.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from ..canon import content_hash
from ..exceptions import UnknownEntityError, UnknownRelationError
from .enums import RelationType
from .graph import Entity, Relation


@dataclass(frozen=True)
class Snapshot:
    """
    Effective graph state at a slice.

    Attributes:
        slice_index: The slice this snapshot was resolved at
        entities: Entities present, by id, in introduction order
        relations: Relations present, by id, in introduction order
        relation_since: Slice at which each relation's current state took effect
        type_history: (slice, type) pairs for each relation, one per type change
    """
    slice_index: int
    entities: Mapping[str, Entity]
    relations: Mapping[str, Relation]
    relation_since: Mapping[str, int]
    type_history: Mapping[str, tuple[tuple[int, RelationType], ...]] = field(default_factory=dict)

    _by_entity: Mapping[str, tuple[str, ...]] = field(
        init=False, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        for name in ("entities", "relations", "relation_since", "type_history"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

        by_entity: dict[str, list[str]] = {}
        for relation in self.relations.values():
            for endpoint in relation.endpoints:
                by_entity.setdefault(endpoint, []).append(relation.id)
        object.__setattr__(
            self,
            "_by_entity",
            MappingProxyType({k: tuple(v) for k, v in by_entity.items()}),
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self.entities

    def entity(self, entity_id: str) -> Entity:
        """Get an entity or raise UnknownEntityError."""
        try:
            return self.entities[entity_id]
        except KeyError:
            raise UnknownEntityError(
                message=f"Entity '{entity_id}' is not present",
                details={"entity_id": entity_id},
                slice_index=self.slice_index,
            ) from None

    def relation(self, relation_id: str) -> Relation:
        """Get a relation or raise UnknownRelationError."""
        try:
            return self.relations[relation_id]
        except KeyError:
            raise UnknownRelationError(
                message=f"Relation '{relation_id}' is not present",
                details={"relation_id": relation_id},
                slice_index=self.slice_index,
            ) from None

    def relations_of(self, entity_id: str) -> tuple[Relation, ...]:
        """All relations touching an entity, in introduction order."""
        return tuple(self.relations[rid] for rid in self._by_entity.get(entity_id, ()))

    def relations_between(self, a: str, b: str) -> tuple[Relation, ...]:
        return tuple(r for r in self.relations_of(a) if r.connects(a, b))

    def union_children(self, relation_id: str) -> tuple[str, ...]:
        """Children recorded on a union that are present in this snapshot."""
        relation = self.relation(relation_id)
        return tuple(c for c in relation.child_ids if c in self.entities)

    def type_history_of(self, relation_id: str) -> tuple[tuple[int, RelationType], ...]:
        """Every (slice, type) the relation has had, oldest first."""
        return self.type_history.get(relation_id, ())

    def without_relation(self, relation_id: str) -> Snapshot:
        """A copy of this snapshot with one relation left out."""
        return Snapshot(
            slice_index=self.slice_index,
            entities=self.entities,
            relations={k: v for k, v in self.relations.items() if k != relation_id},
            relation_since={k: v for k, v in self.relation_since.items() if k != relation_id},
            type_history={k: v for k, v in self.type_history.items() if k != relation_id},
        )

    def fingerprint(self) -> str:
        """Content hash of the resolved state."""
        return content_hash(self)

    # -------------------------------------------------------------------------
    # Family Queries
    # -------------------------------------------------------------------------

    def is_alive(self, entity_id: str) -> bool:
        entity = self.entities.get(entity_id)
        return entity is not None and entity.is_alive_at(self.slice_index)

    def parents(self, entity_id: str) -> tuple[str, ...]:
        """Parents via parent-child relations or any relation listing the entity as a child."""
        found: dict[str, None] = {}
        for relation in self.relations.values():
            if relation.type == RelationType.PARENT_CHILD and relation.target_id == entity_id:
                found[relation.source_id] = None
            elif entity_id in relation.child_ids:
                found[relation.source_id] = None
                found[relation.target_id] = None
        return tuple(p for p in found if p in self.entities)

    def children(self, entity_id: str) -> tuple[str, ...]:
        """Children via parent-child relations or any relation of the entity that lists children."""
        found: dict[str, None] = {}
        for relation in self.relations_of(entity_id):
            if relation.type == RelationType.PARENT_CHILD:
                if relation.source_id == entity_id:
                    found[relation.target_id] = None
            elif relation.records_children:
                for child_id in relation.child_ids:
                    found[child_id] = None
        return tuple(c for c in found if c in self.entities)

    def has_children(self, entity_id: str) -> bool:
        return bool(self.children(entity_id))

    def siblings(self, entity_id: str, include_half: bool = True) -> tuple[str, ...]:
        """
        Siblings in order of the relation that first makes them siblings.

        Siblings share at least one parent, or are linked by an explicit
        sibling relation. A sibling is full when both have exactly the same
        recorded parents; explicit sibling relations count as full.
        """
        own_parents = set(self.parents(entity_id))
        found: dict[str, bool] = {}  # sibling id -> linked explicitly

        for relation in self.relations.values():
            candidates: tuple[str, ...] = ()
            explicit = False
            if relation.type == RelationType.SIBLING and relation.involves(entity_id):
                candidates = (relation.other_end(entity_id),)
                explicit = True
            elif relation.type == RelationType.PARENT_CHILD and relation.source_id in own_parents:
                candidates = (relation.target_id,)
            elif relation.records_children and (
                entity_id in relation.child_ids
                or relation.source_id in own_parents
                or relation.target_id in own_parents
            ):
                candidates = relation.child_ids
            for candidate in candidates:
                if candidate == entity_id or candidate not in self.entities:
                    continue
                found[candidate] = found.get(candidate, False) or explicit

        if include_half:
            return tuple(found)
        return tuple(
            s for s, explicit in found.items()
            if explicit or set(self.parents(s)) == own_parents
        )

    def brothers(self, entity_id: str, include_half: bool = True) -> tuple[str, ...]:
        return tuple(
            s for s in self.siblings(entity_id, include_half=include_half)
            if self.entities[s].is_male
        )

    def union_relations(self, entity_id: str) -> tuple[Relation, ...]:
        """Betrothal, marriage and levirate-marriage relations of an entity."""
        return tuple(r for r in self.relations_of(entity_id) if r.is_union)

    def spouses(self, entity_id: str) -> tuple[str, ...]:
        """Every union partner, living or deceased, in introduction order."""
        found: dict[str, None] = {}
        for relation in self.union_relations(entity_id):
            found[relation.other_end(entity_id)] = None
        return tuple(found)

    def current_spouses(self, entity_id: str) -> tuple[str, ...]:
        """Union partners while both sides are alive at this slice."""
        if not self.is_alive(entity_id):
            return ()
        return tuple(s for s in self.spouses(entity_id) if self.is_alive(s))

    def is_married(self, entity_id: str) -> bool:
        return bool(self.current_spouses(entity_id))

    def get(self, entity_id: str) -> Optional[Entity]:
        return self.entities.get(entity_id)
