"""
Levirate Tie Tracker

Derives levirate ties (zikah) from resolved snapshots. A tie is never stored:
it is recomputed for the queried slice, so a resolution recorded at slice k
is invisible to queries before k.

For a widow W at slice s, each union U between W and a man H gives a tie when:
- H died at slice d <= s, W was alive at d and is alive at s
- U was still a union (not divorced) at d
- H left no living child at d, counting children recorded on any of his
  relations and parent-child relations present at d
- at least one brother of H was alive at d and is not exempt from her

A brother is exempt when the optional ervah check says W is forbidden to him
for some other reason, such as being his wife's sister. The check sees the
snapshot at d without U, so the brother's-wife relationship itself does not
count. The remaining brothers are the candidates (half-brothers only if the
registry includes them). Levirate marriage or release by any candidate,
effective at or after d, ends the tie for all of them.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Optional

from ..models.enums import RelationType, TieStatus
from ..models.graph import Entity, TemporalGraph
from ..models.registry import Registry
from ..models.snapshot import Snapshot
from ..models.status import NO_TIE, TieInfo
from .resolver import Resolver


logger = logging.getLogger(__name__)

_RESOLVING_STATUS = {
    RelationType.LEVIRATE_MARRIAGE: TieStatus.RESOLVED_BY_MARRIAGE,
    RelationType.RELEASE: TieStatus.RESOLVED_BY_RELEASE,
}

# (snapshot, brother_id, widow_id) -> True if she is forbidden to him regardless of the tie
ErvahCheck = Callable[[Snapshot, str, str], bool]


@dataclass
class _TieRecord:
    """Working state of one tie while it is being derived."""
    widow_id: str
    deceased_id: str
    union_id: str
    created_at: int
    candidates: tuple[str, ...]
    holders: tuple[str, ...] = ()
    status: TieStatus = TieStatus.ACTIVE
    resolved_by: Optional[str] = None
    resolved_at: Optional[int] = None

    def to_info(self) -> TieInfo:
        return TieInfo(
            status=self.status,
            widow_id=self.widow_id,
            deceased_id=self.deceased_id,
            originating_relation_id=self.union_id,
            created_at_slice=self.created_at,
            resolved_at_slice=self.resolved_at,
            resolved_by=self.resolved_by,
            holders=self.holders,
        )


class TieTracker:
    """
    Levirate tie queries over a temporal graph.

    Usage:
        tracker = TieTracker(graph, registry)
        tracker.yevamim_for("widow", 3)   # brothers still bound to her
        tracker.yevamos(3)                # widows still bound to someone
    """

    def __init__(
        self,
        graph: TemporalGraph,
        registry: Registry,
        resolver: Optional[Resolver] = None,
        ervah_check: Optional[ErvahCheck] = None,
    ):
        self.graph = graph
        self.registry = registry
        self.resolver = resolver or Resolver()
        self.ervah_check = ervah_check

    @property
    def include_half_siblings(self) -> bool:
        return self.registry.levirate.include_half_siblings

    # -------------------------------------------------------------------------
    # Derivation
    # -------------------------------------------------------------------------

    def _derive(self, snapshot: Snapshot, widow_id: str) -> list[_TieRecord]:
        if not snapshot.is_alive(widow_id) or not snapshot.entity(widow_id).is_female:
            return []

        records: list[_TieRecord] = []
        for union in snapshot.union_relations(widow_id):
            husband_id = union.other_end(widow_id)
            husband = snapshot.entity(husband_id)
            if not husband.is_male or husband.death_slice is None:
                continue
            died_at = husband.death_slice
            at_death = self.resolver.resolve(self.graph, died_at)

            union_at_death = at_death.relations.get(union.id)
            if union_at_death is None or not union_at_death.is_union:
                continue
            if not union_at_death.connects(widow_id, husband_id):
                continue
            if not at_death.is_alive(widow_id):
                continue
            if any(at_death.is_alive(c) for c in at_death.children(husband_id)):
                logger.debug("No tie for %s: %s left children", widow_id, husband_id)
                continue

            candidates = self._candidates(snapshot, at_death, union.id, husband_id, widow_id)
            if not candidates:
                continue

            record = _TieRecord(
                widow_id=widow_id,
                deceased_id=husband_id,
                union_id=union.id,
                created_at=died_at,
                candidates=candidates,
            )
            self._apply_resolutions(snapshot, record)
            records.append(record)
            logger.debug(
                "Tie %s/%s at slice %d: %s holders=%s",
                widow_id, husband_id, snapshot.slice_index, record.status.value, record.holders,
                extra={"slice_index": snapshot.slice_index},
            )
        return records

    def _candidates(
        self,
        snapshot: Snapshot,
        at_death: Snapshot,
        union_id: str,
        husband_id: str,
        widow_id: str,
    ) -> tuple[str, ...]:
        brothers = [
            b for b in snapshot.brothers(husband_id, include_half=self.include_half_siblings)
            if at_death.is_alive(b)
        ]
        if self.ervah_check is None or not brothers:
            return tuple(brothers)

        without_union = at_death.without_relation(union_id)
        candidates = []
        for brother in brothers:
            if self.ervah_check(without_union, brother, widow_id):
                logger.debug(
                    "%s is exempt from %s: she is forbidden to him",
                    brother, widow_id,
                    extra={"slice_index": at_death.slice_index},
                )
                continue
            candidates.append(brother)
        return tuple(candidates)

    def _apply_resolutions(self, snapshot: Snapshot, record: _TieRecord) -> None:
        events: list[tuple[int, int, RelationType, str]] = []
        for order, relation in enumerate(snapshot.relations_of(record.widow_id)):
            brother = relation.other_end(record.widow_id)
            if brother not in record.candidates:
                continue
            for since, rel_type in snapshot.type_history_of(relation.id):
                if rel_type in _RESOLVING_STATUS and since >= record.created_at:
                    events.append((since, order, rel_type, brother))

        if events:
            since, _, rel_type, brother = min(events, key=lambda e: (e[0], e[1]))
            record.status = _RESOLVING_STATUS[rel_type]
            record.resolved_by = brother
            record.resolved_at = since
            return

        record.holders = tuple(b for b in record.candidates if snapshot.is_alive(b))
        if record.holders:
            at_creation = snapshot.slice_index == record.created_at
            record.status = TieStatus.CREATED if at_creation else TieStatus.ACTIVE
        else:
            record.status = TieStatus.LAPSED
            record.resolved_at = max(snapshot.entity(b).death_slice for b in record.candidates)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def ties_for(self, widow_id: str, slice_index: int) -> list[TieInfo]:
        """Every tie (active or resolved) binding widow_id as of slice_index."""
        snapshot = self.resolver.resolve(self.graph, slice_index)
        return [r.to_info() for r in self._derive(snapshot, widow_id)]

    def yevamim_for(self, person_id: str, slice_index: int) -> list[Entity]:
        """Brothers currently holding a tie toward person_id, in sibling order."""
        snapshot = self.resolver.resolve(self.graph, slice_index)
        return [snapshot.entity(b) for b in self._holders(snapshot, person_id)]

    def _holders(self, snapshot: Snapshot, widow_id: str) -> list[str]:
        holders: dict[str, None] = {}
        for record in self._derive(snapshot, widow_id):
            if record.status.is_active:
                for brother in record.holders:
                    holders[brother] = None
        return list(holders)

    def yevamos(self, slice_index: int) -> list[Entity]:
        """Widows bound by at least one active tie at slice_index."""
        snapshot = self.resolver.resolve(self.graph, slice_index)
        return [
            entity for entity in snapshot.entities.values()
            if self._holders(snapshot, entity.id)
        ]

    def partners(self, snapshot: Snapshot, entity_id: str) -> list[str]:
        """
        People bound to entity_id by an active tie at the snapshot's slice:
        the holders if entity_id is a widow, the widows if entity_id is a brother.
        """
        partners: dict[str, None] = {b: None for b in self._holders(snapshot, entity_id)}
        for sibling in snapshot.siblings(entity_id):
            for widow in snapshot.spouses(sibling):
                if widow != entity_id and entity_id in self._holders(snapshot, widow):
                    partners[widow] = None
        return list(partners)

    def is_bound(self, snapshot: Snapshot, a: str, b: str) -> bool:
        """Whether a and b are bound to each other by an active tie."""
        return b in self._holders(snapshot, a) or a in self._holders(snapshot, b)

    def tie_between(self, snapshot: Snapshot, a: str, b: str) -> TieInfo:
        """
        The tie linking a widow and a brother, seen from that pair.

        A tie still active for other brothers reads as lapsed for a brother
        who has since died.
        """
        chosen: Optional[TieInfo] = None
        for widow, brother in ((a, b), (b, a)):
            for record in self._derive(snapshot, widow):
                if brother not in record.candidates:
                    continue
                info = _pair_view(record, brother)
                if info.is_active:
                    return info
                chosen = info
        return chosen or NO_TIE


def _pair_view(record: _TieRecord, brother: str) -> TieInfo:
    info = record.to_info()
    if not record.status.is_active or brother in record.holders:
        return replace(info, tie_involves_pair=True)
    return replace(info, status=TieStatus.LAPSED, tie_involves_pair=True)
