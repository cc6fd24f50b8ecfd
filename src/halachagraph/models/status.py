"""
Computed Status Models

Result values returned by the status engine. All are frozen: the engine
builds a fresh result for every query.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .enums import OpinionSource, TieStatus
from .registry import Category, Dispute


@dataclass(frozen=True)
class RelationshipPath:
    """The people and relations walked to reach B from A."""
    entity_ids: tuple[str, ...]
    relation_ids: tuple[str, ...] = ()

    def describe(self) -> str:
        return " -> ".join(self.entity_ids)


@dataclass(frozen=True)
class AppliedStatus:
    """
    One matched rule.

    Attributes:
        rule_id: Originating rule
        category: Category of the status
        status_name: Display name of the status
        explanation: What matched
        path: Relationship path for path patterns
        opinion_id: Governing opinion when the rule is disputed
    """
    rule_id: str
    category: Category
    status_name: str
    explanation: str
    path: Optional[RelationshipPath] = None
    opinion_id: Optional[str] = None

    @property
    def severity(self) -> int:
        return self.category.severity

    @property
    def prohibits_marriage(self) -> bool:
        return self.category.prohibits_marriage


@dataclass(frozen=True)
class AlternativeOutcome:
    """What the consulted rules would produce under another opinion."""
    opinion_id: str
    statuses: tuple[AppliedStatus, ...]


@dataclass(frozen=True)
class DisputeConsultation:
    """
    A dispute that was consulted while computing a status.

    Attributes:
        dispute: The dispute
        opinion_id: The opinion that governed the computation
        source: Whether the opinion came from the profile or the registry default
        rule_ids: Rules that consulted the dispute
        alternatives: Outcomes under every other opinion
    """
    dispute: Dispute
    opinion_id: str
    source: OpinionSource
    rule_ids: tuple[str, ...]
    alternatives: tuple[AlternativeOutcome, ...] = ()


@dataclass(frozen=True)
class TieInfo:
    """
    Levirate tie state relevant to a person or pair.

    Attributes:
        status: Lifecycle state of the tie
        widow_id: The yevama bound by the tie
        deceased_id: The husband whose death created it
        originating_relation_id: The union the tie arose from
        created_at_slice: Death slice of the husband
        resolved_at_slice: Slice of the resolving event, if resolved
        resolved_by: Brother who married or released, if resolved
        holders: Brothers still holding the tie at the queried slice
        tie_involves_pair: For pair queries, whether the other person of the
            pair holds (or held) this tie
    """
    status: TieStatus
    widow_id: Optional[str] = None
    deceased_id: Optional[str] = None
    originating_relation_id: Optional[str] = None
    created_at_slice: Optional[int] = None
    resolved_at_slice: Optional[int] = None
    resolved_by: Optional[str] = None
    holders: tuple[str, ...] = ()
    tie_involves_pair: bool = False

    @property
    def is_active(self) -> bool:
        return self.status.is_active


NO_TIE = TieInfo(status=TieStatus.NONE)


@dataclass(frozen=True)
class ComputedStatus:
    """
    Result of computing the status between an ordered pair at a slice.

    Attributes:
        from_id: Person A
        to_id: Person B
        slice_index: Slice the status was computed at
        all_statuses: Matches, most severe first; equal severity keeps
            rule declaration order
        primary_status: The first entry of all_statuses, or None
        tie: Levirate tie state between the pair
        relevant_disputes: Disputes consulted and the opinion that governed each
    """
    from_id: str
    to_id: str
    slice_index: int
    all_statuses: tuple[AppliedStatus, ...]
    primary_status: Optional[AppliedStatus]
    tie: TieInfo
    relevant_disputes: tuple[DisputeConsultation, ...] = ()

    @property
    def is_permitted(self) -> bool:
        return not any(s.prohibits_marriage for s in self.all_statuses)

    @property
    def category_ids(self) -> tuple[str, ...]:
        return tuple(s.category.id for s in self.all_statuses)

    @property
    def rule_ids(self) -> tuple[str, ...]:
        return tuple(s.rule_id for s in self.all_statuses)

    def governing_opinion(self, dispute_id: str) -> Optional[str]:
        for consultation in self.relevant_disputes:
            if consultation.dispute.id == dispute_id:
                return consultation.opinion_id
        return None

    def to_dict(self) -> dict[str, Any]:
        """Summary for logging and display."""
        return {
            "from_id": self.from_id,
            "to_id": self.to_id,
            "slice_index": self.slice_index,
            "primary": self.primary_status.rule_id if self.primary_status else None,
            "statuses": [
                {"rule_id": s.rule_id, "category": s.category.id, "name": s.status_name}
                for s in self.all_statuses
            ],
            "tie": self.tie.status.value,
            "disputes": {
                c.dispute.id: {"opinion": c.opinion_id, "source": c.source.value}
                for c in self.relevant_disputes
            },
            "permitted": self.is_permitted,
        }
