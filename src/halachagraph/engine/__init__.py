"""
halachagraph Engine

Services for resolving temporal graphs and computing halachic status.

Services:
- Resolver: Fold a temporal graph into the snapshot at a slice
- PatternMatcher: Evaluate relationship patterns for a pair
- TieTracker: Derive levirate ties (zikah) for any slice
- StatusEngine: Status, permission and tie-holder queries

Usage:
    from halachagraph.engine import StatusEngine, resolve

    snapshot = resolve(graph, 3)
    engine = StatusEngine(graph, registry)
    engine.is_marriage_permitted("reuven", "leah", 3)
"""
from __future__ import annotations

from .opinions import (
    DEFAULT_PROFILE_ID,
    OpinionLedger,
    create_default_opinion_profile,
    effective_opinion,
    empty_profile,
    unknown_selections,
)
from .pattern_matcher import (
    MatchContext,
    MatchResult,
    PatternMatcher,
    check_state,
    step_neighbors,
)
from .resolver import (
    Resolver,
    SnapshotCache,
    resolve,
    resolve_all,
)
from .status_engine import (
    LEVIRATE_TIE_RULE_ID,
    StatusEngine,
)
from .tie_tracker import TieTracker

__all__ = [
    # Resolver
    "Resolver",
    "SnapshotCache",
    "resolve",
    "resolve_all",
    # Opinions
    "DEFAULT_PROFILE_ID",
    "OpinionLedger",
    "create_default_opinion_profile",
    "effective_opinion",
    "empty_profile",
    "unknown_selections",
    # Pattern Matching
    "MatchContext",
    "MatchResult",
    "PatternMatcher",
    "check_state",
    "step_neighbors",
    # Levirate Ties
    "TieTracker",
    # Status
    "LEVIRATE_TIE_RULE_ID",
    "StatusEngine",
]
