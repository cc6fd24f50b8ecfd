"""
halachagraph Domain Models

Graph inputs, resolved snapshots, the rule registry, opinion profiles and
computed status results.
"""
from __future__ import annotations

from .enums import (
    UNION_TYPES,
    CompositeOp,
    DisputeLevel,
    EventType,
    HalachicLevel,
    OpinionSource,
    PairRole,
    PathStep,
    PatternType,
    RelationType,
    Sex,
    StateCondition,
    TieStatus,
)
from .graph import (
    MUTABLE_RELATION_FIELDS,
    AddEntity,
    AddRelation,
    Entity,
    Event,
    MarkDeceased,
    Relation,
    RemoveRelation,
    Slice,
    TemporalGraph,
    UpdateRelation,
)
from .patterns import ALL, ANY, DIRECT, NOT, PATH, STATE, TIE, Pattern, StatePredicate
from .profile import OpinionProfile
from .registry import (
    Category,
    Dispute,
    EffectiveRule,
    LevirateSettings,
    Opinion,
    OpinionGate,
    Registry,
    Rule,
    RuleVariant,
    validate_registry,
)
from .snapshot import Snapshot
from .status import (
    NO_TIE,
    AlternativeOutcome,
    AppliedStatus,
    ComputedStatus,
    DisputeConsultation,
    RelationshipPath,
    TieInfo,
)

__all__ = [
    # Enums
    "UNION_TYPES",
    "CompositeOp",
    "DisputeLevel",
    "EventType",
    "HalachicLevel",
    "OpinionSource",
    "PairRole",
    "PathStep",
    "PatternType",
    "RelationType",
    "Sex",
    "StateCondition",
    "TieStatus",
    # Graph
    "MUTABLE_RELATION_FIELDS",
    "AddEntity",
    "AddRelation",
    "Entity",
    "Event",
    "MarkDeceased",
    "Relation",
    "RemoveRelation",
    "Slice",
    "TemporalGraph",
    "UpdateRelation",
    "Snapshot",
    # Patterns
    "ALL",
    "ANY",
    "DIRECT",
    "NOT",
    "PATH",
    "STATE",
    "TIE",
    "Pattern",
    "StatePredicate",
    # Registry
    "Category",
    "Dispute",
    "EffectiveRule",
    "LevirateSettings",
    "Opinion",
    "OpinionGate",
    "OpinionProfile",
    "Registry",
    "Rule",
    "RuleVariant",
    "validate_registry",
    # Status
    "NO_TIE",
    "AlternativeOutcome",
    "AppliedStatus",
    "ComputedStatus",
    "DisputeConsultation",
    "RelationshipPath",
    "TieInfo",
]
