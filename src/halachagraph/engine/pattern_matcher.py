"""
Pattern Matcher

Evaluates relationship patterns against an ordered pair (A, B) in a
resolved snapshot.

Key features:
- Direct relation checks in either direction
- Multi-hop path walking with per-step sex filters
- Single-person state checks on either side of the pair
- Levirate tie checks through the tie tracker
- AND / OR composition and negation at every level

A valid snapshot always yields a result: evaluation never raises.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models.enums import CompositeOp, PairRole, PathStep, PatternType, RelationType, StateCondition
from ..models.patterns import Pattern
from ..models.snapshot import Snapshot
from ..models.status import RelationshipPath
from .tie_tracker import TieTracker


@dataclass(frozen=True)
class MatchResult:
    """Outcome of evaluating a pattern."""
    matched: bool
    explanation: str
    path: Optional[RelationshipPath] = None

    def __bool__(self) -> bool:
        return self.matched

    def __invert__(self) -> MatchResult:
        return MatchResult(matched=not self.matched, explanation=f"NOT ({self.explanation})")


@dataclass(frozen=True)
class MatchContext:
    """What a pattern is evaluated against."""
    snapshot: Snapshot
    ties: TieTracker

    @property
    def slice_index(self) -> int:
        return self.snapshot.slice_index


# =============================================================================
# Path Steps
# =============================================================================

def step_neighbors(ctx: MatchContext, entity_id: str, step: PathStep) -> list[tuple[str, Optional[str]]]:
    """
    People one step away from entity_id, with the relation walked (if any).

    Order follows relation introduction order.
    """
    snapshot = ctx.snapshot
    found: dict[str, Optional[str]] = {}

    if step == PathStep.SPOUSE:
        for relation in snapshot.union_relations(entity_id):
            found.setdefault(relation.other_end(entity_id), relation.id)
    elif step == PathStep.PARENT:
        for relation in snapshot.relations.values():
            if relation.type == RelationType.PARENT_CHILD and relation.target_id == entity_id:
                found.setdefault(relation.source_id, relation.id)
            elif entity_id in relation.child_ids:
                found.setdefault(relation.source_id, relation.id)
                found.setdefault(relation.target_id, relation.id)
    elif step == PathStep.CHILD:
        for relation in snapshot.relations_of(entity_id):
            if relation.type == RelationType.PARENT_CHILD and relation.source_id == entity_id:
                found.setdefault(relation.target_id, relation.id)
            elif relation.records_children:
                for child_id in relation.child_ids:
                    found.setdefault(child_id, relation.id)
    elif step == PathStep.SIBLING:
        for sibling in snapshot.siblings(entity_id):
            found.setdefault(sibling, None)
    elif step == PathStep.TIE:
        for partner in ctx.ties.partners(snapshot, entity_id):
            found.setdefault(partner, None)

    return [(k, v) for k, v in found.items() if k in snapshot.entities]


# =============================================================================
# Pattern Matcher
# =============================================================================

class PatternMatcher:
    """
    Evaluates Pattern trees.

    Usage:
        matcher = PatternMatcher()
        result = matcher.match(pattern, "a", "b", MatchContext(snapshot, tracker))
        if result:
            print(result.explanation)
    """

    def match(self, pattern: Pattern, a: str, b: str, ctx: MatchContext) -> MatchResult:
        """Evaluate pattern for the ordered pair (a, b)."""
        result = self._match_positive(pattern, a, b, ctx)
        return ~result if pattern.negate else result

    def _match_positive(self, pattern: Pattern, a: str, b: str, ctx: MatchContext) -> MatchResult:
        if pattern.type == PatternType.DIRECT:
            return self._match_direct(pattern, a, b, ctx)
        if pattern.type == PatternType.PATH:
            return self._match_path(pattern, a, b, ctx)
        if pattern.type == PatternType.STATE:
            return self._match_state(pattern, a, b, ctx)
        if pattern.type == PatternType.TIE:
            bound = ctx.ties.is_bound(ctx.snapshot, a, b)
            return MatchResult(bound, f"{a} and {b} {'are' if bound else 'are not'} bound by a levirate tie")
        return self._match_composite(pattern, a, b, ctx)

    def _match_direct(self, pattern: Pattern, a: str, b: str, ctx: MatchContext) -> MatchResult:
        for relation in ctx.snapshot.relations_between(a, b):
            if relation.type in pattern.relation_types:
                return MatchResult(
                    True,
                    f"{a} and {b} are linked by {relation.type.value} ({relation.id})",
                    RelationshipPath((a, b), (relation.id,)),
                )
        wanted = "/".join(t.value for t in pattern.relation_types)
        return MatchResult(False, f"no {wanted} relation between {a} and {b}")

    def _match_path(self, pattern: Pattern, a: str, b: str, ctx: MatchContext) -> MatchResult:
        found = self._walk(pattern, 0, a, b, ctx, (a,), ())
        if found is None:
            return MatchResult(False, f"{b} is not reachable from {a} by {pattern.path_expression}")
        return MatchResult(True, f"{b} is {a}'s {pattern.path_expression.replace('.', ' -> ')}", found)

    def _walk(
        self,
        pattern: Pattern,
        index: int,
        current: str,
        target: str,
        ctx: MatchContext,
        entities: tuple[str, ...],
        relations: tuple[str, ...],
    ) -> Optional[RelationshipPath]:
        if index == len(pattern.steps):
            return RelationshipPath(entities, relations) if current == target else None

        wanted_sex = pattern.sex_for_step(index)
        for neighbor, relation_id in step_neighbors(ctx, current, pattern.steps[index]):
            if neighbor in entities:
                continue
            if wanted_sex is not None and ctx.snapshot.entities[neighbor].sex != wanted_sex:
                continue
            walked = relations + ((relation_id,) if relation_id else ())
            path = self._walk(pattern, index + 1, neighbor, target, ctx, entities + (neighbor,), walked)
            if path is not None:
                return path
        return None

    def _match_state(self, pattern: Pattern, a: str, b: str, ctx: MatchContext) -> MatchResult:
        for predicate in pattern.conditions:
            person = a if predicate.role == PairRole.A else b
            holds = check_state(ctx, person, predicate.condition)
            if predicate.negate:
                holds = not holds
            if not holds:
                return MatchResult(False, f"{predicate.describe()} does not hold")
        return MatchResult(True, " and ".join(p.describe() for p in pattern.conditions))

    def _match_composite(self, pattern: Pattern, a: str, b: str, ctx: MatchContext) -> MatchResult:
        results: list[MatchResult] = []
        if pattern.op == CompositeOp.AND:
            for child in pattern.children:
                result = self.match(child, a, b, ctx)
                if not result:
                    return MatchResult(False, result.explanation)
                results.append(result)
            path = next((r.path for r in results if r.path is not None), None)
            return MatchResult(True, "; ".join(r.explanation for r in results), path)

        for child in pattern.children:
            result = self.match(child, a, b, ctx)
            if result:
                return result
            results.append(result)
        return MatchResult(False, "; ".join(r.explanation for r in results))


# =============================================================================
# State Conditions
# =============================================================================

def check_state(ctx: MatchContext, entity_id: str, condition: StateCondition) -> bool:
    """Evaluate a single-person state condition at the context's slice."""
    snapshot = ctx.snapshot
    entity = snapshot.entities[entity_id]

    if condition == StateCondition.ALIVE:
        return snapshot.is_alive(entity_id)
    if condition == StateCondition.DEAD:
        return not snapshot.is_alive(entity_id)
    if condition == StateCondition.MARRIED:
        return snapshot.is_married(entity_id)
    if condition == StateCondition.UNMARRIED:
        return not snapshot.is_married(entity_id)
    if condition == StateCondition.HAS_CHILDREN:
        return snapshot.has_children(entity_id)
    if condition == StateCondition.CHILDLESS:
        return not snapshot.has_children(entity_id)
    if condition == StateCondition.HAS_BROTHERS:
        return any(snapshot.is_alive(b) for b in snapshot.brothers(entity_id))
    if condition == StateCondition.MALE:
        return entity.is_male
    return entity.is_female
