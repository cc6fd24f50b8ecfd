"""
Status Engine

Answers status, permission and levirate tie queries by composing the
resolver, the registry, an opinion profile and the tie tracker.

Primary status selection is a fixed total order: highest category severity
first, and among equal severities the rule declared first. The synthetic
levirate tie status, when the registry configures one, counts as declared
after every rule.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from ..exceptions import InvalidPairError
from ..models.graph import Entity, TemporalGraph
from ..models.profile import OpinionProfile
from ..models.registry import Category, Registry, Rule
from ..models.snapshot import Snapshot
from ..models.status import (
    AlternativeOutcome,
    AppliedStatus,
    ComputedStatus,
    DisputeConsultation,
    RelationshipPath,
    TieInfo,
)
from .opinions import OpinionLedger, empty_profile
from .pattern_matcher import MatchContext, PatternMatcher
from .resolver import Resolver
from .tie_tracker import TieTracker


logger = logging.getLogger(__name__)

LEVIRATE_TIE_RULE_ID = "levirate-tie"


class StatusEngine:
    """
    Computes halachic status between people in a temporal graph.

    Usage:
        engine = StatusEngine(graph, registry)
        status = engine.compute_status("reuven", "leah", slice_index=2)
        if not status.is_permitted:
            print(status.primary_status.status_name)
    """

    def __init__(
        self,
        graph: TemporalGraph,
        registry: Registry,
        resolver: Optional[Resolver] = None,
        matcher: Optional[PatternMatcher] = None,
    ):
        self.graph = graph
        self.registry = registry
        self.resolver = resolver or Resolver()
        self.matcher = matcher or PatternMatcher()
        self.ties = TieTracker(
            graph, registry, self.resolver, ervah_check=self.is_forbidden_regardless_of_tie
        )

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def compute_status(
        self,
        from_id: str,
        to_id: str,
        slice_index: int,
        profile: Optional[OpinionProfile] = None,
    ) -> ComputedStatus:
        """
        Compute every status from from_id toward to_id at slice_index.

        Args:
            from_id: Person A of the ordered pair
            to_id: Person B of the ordered pair
            slice_index: Slice to resolve
            profile: Opinion profile; registry defaults apply where it is silent

        Raises:
            OutOfRangeError: slice_index is outside the timeline
            InvalidPairError: from_id == to_id, or either is absent at the slice
        """
        snapshot = self.resolver.resolve(self.graph, slice_index)
        self._check_pair(snapshot, from_id, to_id)
        profile = profile or empty_profile()

        ledger = OpinionLedger(self.registry, profile)
        ctx = MatchContext(snapshot=snapshot, ties=self.ties)

        matches: list[AppliedStatus] = []
        for rule in self.registry.rules:
            for dispute_id in rule.consulted_dispute_ids:
                ledger.consult(dispute_id, rule.id)
            applied = self._evaluate_rule(rule, from_id, to_id, ctx, ledger.consult)
            if applied is not None:
                matches.append(applied)

        tie = self.ties.tie_between(snapshot, from_id, to_id)
        tie_status = self._tie_status(from_id, to_id, tie)
        if tie_status is not None:
            matches.append(tie_status)

        # sorted() is stable: equal severities keep declaration order
        all_statuses = tuple(sorted(matches, key=lambda s: -s.severity))
        primary = all_statuses[0] if all_statuses else None

        result = ComputedStatus(
            from_id=from_id,
            to_id=to_id,
            slice_index=slice_index,
            all_statuses=all_statuses,
            primary_status=primary,
            tie=tie,
            relevant_disputes=self._consultations(ledger, from_id, to_id, ctx),
        )
        logger.debug(
            "Status %s -> %s at slice %d: %s",
            from_id, to_id, slice_index,
            primary.rule_id if primary else "no match",
            extra={"slice_index": slice_index, "from_id": from_id, "to_id": to_id,
                   "profile_id": profile.id, "registry_id": self.registry.id},
        )
        return result

    def is_marriage_permitted(
        self,
        from_id: str,
        to_id: str,
        slice_index: int,
        profile: Optional[OpinionProfile] = None,
    ) -> bool:
        """True iff no matched status belongs to a marriage-prohibiting category."""
        return self.compute_status(from_id, to_id, slice_index, profile).is_permitted

    def is_forbidden_regardless_of_tie(self, snapshot: Snapshot, brother_id: str, widow_id: str) -> bool:
        """
        Whether a marriage-prohibiting rule links brother_id to widow_id without
        consulting levirate ties, under the registry's default opinions.

        Brothers for whom this holds are exempt from the tie.
        """
        prohibiting = self.registry.prohibiting_category_ids
        ctx = MatchContext(snapshot=snapshot, ties=self.ties)
        for rule in self.registry.rules:
            if any(self.registry.default_opinion(g.dispute_id) != g.opinion_id for g in rule.applies_when):
                continue
            opinion_id = self.registry.default_opinion(rule.dispute_id) if rule.dispute_id is not None else None
            effective = rule.effective(opinion_id)
            if effective is None or effective.category_id not in prohibiting:
                continue
            if effective.pattern.uses_ties:
                continue
            if self.matcher.match(effective.pattern, brother_id, widow_id, ctx):
                return True
        return False

    def _check_pair(self, snapshot: Snapshot, from_id: str, to_id: str) -> None:
        if from_id == to_id:
            raise InvalidPairError(
                message=f"Cannot compute status of '{from_id}' toward themselves",
                details={"from_id": from_id, "to_id": to_id},
                slice_index=snapshot.slice_index,
            )
        missing = [eid for eid in (from_id, to_id) if not snapshot.has_entity(eid)]
        if missing:
            raise InvalidPairError(
                message=f"Not present at slice {snapshot.slice_index}: {', '.join(missing)}",
                details={"from_id": from_id, "to_id": to_id, "missing": missing},
                slice_index=snapshot.slice_index,
            )

    def _evaluate_rule(
        self,
        rule: Rule,
        a: str,
        b: str,
        ctx: MatchContext,
        opinion_for: Callable[[str], str],
    ) -> Optional[AppliedStatus]:
        for gate in rule.applies_when:
            if opinion_for(gate.dispute_id) != gate.opinion_id:
                return None

        opinion_id = opinion_for(rule.dispute_id) if rule.dispute_id is not None else None
        effective = rule.effective(opinion_id)
        if effective is None:
            return None

        result = self.matcher.match(effective.pattern, a, b, ctx)
        if not result:
            return None

        return AppliedStatus(
            rule_id=rule.id,
            category=self.registry.category(effective.category_id),
            status_name=effective.status_name,
            explanation=result.explanation,
            path=result.path,
            opinion_id=effective.opinion_id,
        )

    def _tie_status(self, a: str, b: str, tie: TieInfo) -> Optional[AppliedStatus]:
        category_id = self.registry.levirate.tie_category_id
        if category_id is None or not tie.is_active:
            return None
        return AppliedStatus(
            rule_id=LEVIRATE_TIE_RULE_ID,
            category=self.registry.category(category_id),
            status_name="Levirate tie",
            explanation=f"{tie.widow_id} is bound to {', '.join(tie.holders)} "
                        f"since the death of {tie.deceased_id}",
            path=RelationshipPath((a, b)),
        )

    def _consultations(
        self,
        ledger: OpinionLedger,
        a: str,
        b: str,
        ctx: MatchContext,
    ) -> tuple[DisputeConsultation, ...]:
        consultations: list[DisputeConsultation] = []
        for dispute_id, opinion_id, source, rule_ids in ledger.consulted():
            dispute = self.registry.dispute(dispute_id)
            alternatives: list[AlternativeOutcome] = []
            for alternative in dispute.opinion_ids:
                if alternative == opinion_id:
                    continue

                def opinion_for(d: str, _alt: str = alternative, _disputed: str = dispute_id) -> str:
                    return _alt if d == _disputed else ledger.consult(d)

                statuses: list[AppliedStatus] = []
                for rule_id in rule_ids:
                    applied = self._evaluate_rule(self.registry.rule(rule_id), a, b, ctx, opinion_for)
                    if applied is not None:
                        statuses.append(applied)
                alternatives.append(AlternativeOutcome(alternative, tuple(statuses)))

            consultations.append(DisputeConsultation(
                dispute=dispute,
                opinion_id=opinion_id,
                source=source,
                rule_ids=rule_ids,
                alternatives=tuple(alternatives),
            ))
        return tuple(consultations)

    # -------------------------------------------------------------------------
    # Levirate Ties
    # -------------------------------------------------------------------------

    def get_yevamim_for(self, person_id: str, slice_index: int) -> list[Entity]:
        """Brothers holding a levirate tie toward person_id at slice_index."""
        return self.ties.yevamim_for(person_id, slice_index)

    def get_yevamos(self, slice_index: int) -> list[Entity]:
        """Widows bound by an active levirate tie at slice_index."""
        return self.ties.yevamos(slice_index)

    def get_tie_info(self, person_id: str, slice_index: int) -> list[TieInfo]:
        """Every levirate tie, active or resolved, binding person_id."""
        return self.ties.ties_for(person_id, slice_index)

    # -------------------------------------------------------------------------
    # Bulk Queries
    # -------------------------------------------------------------------------

    def compute_all_statuses(
        self,
        person_id: str,
        slice_index: int,
        profile: Optional[OpinionProfile] = None,
    ) -> dict[str, ComputedStatus]:
        """Status from person_id toward everyone else present at slice_index."""
        snapshot = self.resolver.resolve(self.graph, slice_index)
        return {
            other: self.compute_status(person_id, other, slice_index, profile)
            for other in snapshot.entities
            if other != person_id
        }

    def get_people_with_status(
        self,
        person_id: str,
        category_id: str,
        slice_index: int,
        profile: Optional[OpinionProfile] = None,
    ) -> list[str]:
        """Everyone toward whom person_id has a status in category_id."""
        self.registry.category(category_id)
        return [
            other
            for other, status in self.compute_all_statuses(person_id, slice_index, profile).items()
            if category_id in status.category_ids
        ]

    def has_status(
        self,
        from_id: str,
        to_id: str,
        category_id: str,
        slice_index: int,
        profile: Optional[OpinionProfile] = None,
    ) -> bool:
        return category_id in self.compute_status(from_id, to_id, slice_index, profile).category_ids

    def get_primary_category(
        self,
        from_id: str,
        to_id: str,
        slice_index: int,
        profile: Optional[OpinionProfile] = None,
    ) -> Optional[Category]:
        primary = self.compute_status(from_id, to_id, slice_index, profile).primary_status
        return primary.category if primary else None
