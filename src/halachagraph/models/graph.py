"""
Temporal Graph Models

The temporal graph is the input to resolution: entity and relation
definitions plus an ordered list of slices, each holding an ordered list
of events that refer to the definitions by id.

Nothing here is ever edited in place. A change to a relation after it was
introduced is an UpdateRelation event at the slice where it happened.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Any, ClassVar, Optional, Union

from ..canon import content_hash
from .enums import EventType, RelationType, Sex


# =============================================================================
# Entities and Relations
# =============================================================================

@dataclass(frozen=True)
class Entity:
    """
    A person in the graph.

    Attributes:
        id: Unique, immutable identifier
        name: Display name
        sex: Male or female
        introduced_slice: Slice at which the person entered the graph
        death_slice: Slice of death, if deceased
        position: Layout coordinates (presentation only)
    """
    id: str
    name: str
    sex: Sex
    introduced_slice: int = 0
    death_slice: Optional[int] = None
    position: Optional[tuple[float, float]] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.sex, Sex):
            object.__setattr__(self, "sex", Sex(self.sex))

    @property
    def is_male(self) -> bool:
        return self.sex == Sex.MALE

    @property
    def is_female(self) -> bool:
        return self.sex == Sex.FEMALE

    def is_alive_at(self, slice_index: int) -> bool:
        """A person is alive from introduction until (excluding) the death slice."""
        if slice_index < self.introduced_slice:
            return False
        return self.death_slice is None or slice_index < self.death_slice


# Fields an UpdateRelation event is allowed to change
MUTABLE_RELATION_FIELDS = frozenset({
    "type", "source_id", "target_id", "child_ids", "hidden", "label",
})


@dataclass(frozen=True)
class Relation:
    """
    A relation between two distinct entities.

    For parent-child relations the source is the parent and the target
    is the child. Unions (betrothal, marriage, levirate marriage) may list
    the children born of them in child_ids. The children stay recorded when
    the union is later updated to divorce or release.
    """
    id: str
    type: RelationType
    source_id: str
    target_id: str
    introduced_slice: int = 0
    child_ids: tuple[str, ...] = ()
    hidden: bool = False
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, RelationType):
            object.__setattr__(self, "type", RelationType(self.type))
        if not isinstance(self.child_ids, tuple):
            object.__setattr__(self, "child_ids", tuple(self.child_ids))

    @property
    def endpoints(self) -> tuple[str, str]:
        return (self.source_id, self.target_id)

    @property
    def is_union(self) -> bool:
        return self.type.is_union

    @property
    def records_children(self) -> bool:
        """True if children are listed on this relation, whatever its current type."""
        return bool(self.child_ids)

    def involves(self, entity_id: str) -> bool:
        return entity_id in (self.source_id, self.target_id)

    def connects(self, a: str, b: str) -> bool:
        """True if this relation links a and b in either direction."""
        return {self.source_id, self.target_id} == {a, b}

    def other_end(self, entity_id: str) -> str:
        """Return the endpoint that is not entity_id."""
        if entity_id == self.source_id:
            return self.target_id
        if entity_id == self.target_id:
            return self.source_id
        raise ValueError(f"Entity '{entity_id}' is not an endpoint of relation '{self.id}'")


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class AddEntity:
    """Bring a defined entity into the graph."""
    entity_id: str
    event_type: ClassVar[EventType] = EventType.ADD_ENTITY


@dataclass(frozen=True)
class AddRelation:
    """Bring a defined relation into the graph."""
    relation_id: str
    event_type: ClassVar[EventType] = EventType.ADD_RELATION


@dataclass(frozen=True)
class MarkDeceased:
    """Record the death of an entity at the event's slice."""
    entity_id: str
    event_type: ClassVar[EventType] = EventType.MARK_DECEASED


@dataclass(frozen=True)
class UpdateRelation:
    """
    Change some fields of a relation from this slice onward.

    Example:
        UpdateRelation("r-marriage", {"type": RelationType.DIVORCE})
    """
    relation_id: str
    changes: Mapping[str, Any]
    event_type: ClassVar[EventType] = EventType.UPDATE_RELATION

    def __post_init__(self) -> None:
        unknown = set(self.changes) - MUTABLE_RELATION_FIELDS
        if unknown:
            raise ValueError(
                f"UpdateRelation for '{self.relation_id}' cannot change "
                f"{sorted(unknown)}; allowed: {sorted(MUTABLE_RELATION_FIELDS)}"
            )
        changes = dict(self.changes)
        if "type" in changes:
            changes["type"] = RelationType(changes["type"])
        if "child_ids" in changes:
            changes["child_ids"] = tuple(changes["child_ids"])
        object.__setattr__(self, "changes", MappingProxyType(changes))


@dataclass(frozen=True)
class RemoveRelation:
    """Remove a relation from this slice onward; earlier slices still see it."""
    relation_id: str
    event_type: ClassVar[EventType] = EventType.REMOVE_RELATION


Event = Union[AddEntity, AddRelation, MarkDeceased, UpdateRelation, RemoveRelation]


# =============================================================================
# Slices and the Graph
# =============================================================================

@dataclass(frozen=True)
class Slice:
    """An ordered point on the timeline holding the events that occurred there."""
    id: str
    label: str = ""
    events: tuple[Event, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.events, tuple):
            object.__setattr__(self, "events", tuple(self.events))


def _freeze_by_id(items: Union[Mapping[str, Any], Iterable[Any]], kind: str) -> Mapping[str, Any]:
    if isinstance(items, Mapping):
        for key, item in items.items():
            if key != item.id:
                raise ValueError(f"{kind} keyed as '{key}' has id '{item.id}'")
        return MappingProxyType(dict(items))
    by_id: dict[str, Any] = {}
    for item in items:
        if item.id in by_id:
            raise ValueError(f"Duplicate {kind.lower()} definition '{item.id}'")
        by_id[item.id] = item
    return MappingProxyType(by_id)


@dataclass(frozen=True)
class TemporalGraph:
    """
    Entity and relation definitions plus the ordered slice timeline.

    Definitions are inert until an AddEntity/AddRelation event brings them
    in; the resolver stamps introduction and death slices from the events.

    Attributes:
        entities: Entity definitions by id (a list is accepted and indexed)
        relations: Relation definitions by id (a list is accepted and indexed)
        slices: Ordered timeline
        title: Graph title
        description: Free-form description
    """
    entities: Mapping[str, Entity] = field(default_factory=dict)
    relations: Mapping[str, Relation] = field(default_factory=dict)
    slices: tuple[Slice, ...] = ()
    title: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "entities", _freeze_by_id(self.entities, "Entity"))
        object.__setattr__(self, "relations", _freeze_by_id(self.relations, "Relation"))
        if not isinstance(self.slices, tuple):
            object.__setattr__(self, "slices", tuple(self.slices))

    @property
    def slice_count(self) -> int:
        return len(self.slices)

    @cached_property
    def version(self) -> str:
        """Content hash identifying this graph value; the snapshot cache key."""
        return content_hash({
            "entities": self.entities,
            "relations": self.relations,
            "slices": [
                {
                    "id": s.id,
                    "events": [
                        {"event_type": e.event_type, **_event_fields(e)} for e in s.events
                    ],
                }
                for s in self.slices
            ],
        })

    def slice_index_of(self, slice_id: str) -> int:
        """Position of the slice with the given id."""
        for index, s in enumerate(self.slices):
            if s.id == slice_id:
                return index
        raise KeyError(slice_id)


def _event_fields(event: Event) -> dict[str, Any]:
    return dict(vars(event))
