"""
halachagraph - Temporal Family Graph Resolution and Halachic Status Engine

halachagraph reconstructs a family graph as it stood at any point in a
timeline and computes the halachic status between two people at that point,
following a configurable rule registry and a caller-chosen opinion profile
for disputed questions.

Key Features:
- Deterministic event fold from a base graph into per-slice snapshots
- Severity-ranked rule matching over relationship patterns
- Disputes (machlokos) resolved through substitutable opinion profiles
- Levirate ties (zikah) derived per slice from deaths, children and siblings
- YAML/JSON registry packs validated with pydantic

Quick Start:
    from halachagraph import StatusEngine, load_sample_registry

    registry = load_sample_registry()
    engine = StatusEngine(graph, registry)

    status = engine.compute_status("reuven", "leah", slice_index=2)
    status.primary_status.status_name
    engine.get_yevamim_for("leah", 2)

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"

# =============================================================================
# Core Models (Re-exported for convenience)
# =============================================================================
from .models import (
    # Enums
    HalachicLevel,
    OpinionSource,
    RelationType,
    Sex,
    TieStatus,
    # Graph
    AddEntity,
    AddRelation,
    Entity,
    MarkDeceased,
    Relation,
    RemoveRelation,
    Slice,
    Snapshot,
    TemporalGraph,
    UpdateRelation,
    # Patterns
    ALL,
    ANY,
    DIRECT,
    NOT,
    PATH,
    STATE,
    TIE,
    Pattern,
    # Registry
    Category,
    Dispute,
    LevirateSettings,
    Opinion,
    OpinionGate,
    OpinionProfile,
    Registry,
    Rule,
    RuleVariant,
    # Status
    AppliedStatus,
    ComputedStatus,
    TieInfo,
)

# =============================================================================
# Engine
# =============================================================================
from .engine import (
    Resolver,
    StatusEngine,
    TieTracker,
    create_default_opinion_profile,
    resolve,
    resolve_all,
)

# =============================================================================
# Registry Packs
# =============================================================================
from .packs import (
    RegistryPackLoader,
    load_registry_pack,
    load_registry_pack_from_string,
    load_sample_registry,
)

# =============================================================================
# Utilities
# =============================================================================
from .canon import canonical_json, content_hash, content_hash_short
from .config import Settings, configure_logging, get_settings

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    CategoryNotFoundError,
    DanglingReferenceError,
    DisputeNotFoundError,
    DuplicateIdError,
    GraphIntegrityError,
    HalachaGraphError,
    InvalidPairError,
    OutOfRangeError,
    RegistryError,
    RegistryLoadError,
    RegistryValidationError,
    RegistryVersionMismatch,
    RuleNotFoundError,
    UnknownEntityError,
    UnknownOpinionError,
    UnknownRelationError,
)

# =============================================================================
# Public API
# =============================================================================
__all__ = [
    # Version
    "__version__",
    # Enums
    "HalachicLevel",
    "OpinionSource",
    "RelationType",
    "Sex",
    "TieStatus",
    # Graph
    "AddEntity",
    "AddRelation",
    "Entity",
    "MarkDeceased",
    "Relation",
    "RemoveRelation",
    "Slice",
    "Snapshot",
    "TemporalGraph",
    "UpdateRelation",
    # Patterns
    "ALL",
    "ANY",
    "DIRECT",
    "NOT",
    "PATH",
    "STATE",
    "TIE",
    "Pattern",
    # Registry
    "Category",
    "Dispute",
    "LevirateSettings",
    "Opinion",
    "OpinionGate",
    "OpinionProfile",
    "Registry",
    "Rule",
    "RuleVariant",
    # Status
    "AppliedStatus",
    "ComputedStatus",
    "TieInfo",
    # Engine
    "Resolver",
    "StatusEngine",
    "TieTracker",
    "create_default_opinion_profile",
    "resolve",
    "resolve_all",
    # Registry Packs
    "RegistryPackLoader",
    "load_registry_pack",
    "load_registry_pack_from_string",
    "load_sample_registry",
    # Utilities
    "canonical_json",
    "content_hash",
    "content_hash_short",
    "Settings",
    "configure_logging",
    "get_settings",
    # Exceptions
    "HalachaGraphError",
    "GraphIntegrityError",
    "DuplicateIdError",
    "DanglingReferenceError",
    "UnknownEntityError",
    "UnknownRelationError",
    "OutOfRangeError",
    "InvalidPairError",
    "UnknownOpinionError",
    "RegistryError",
    "RegistryValidationError",
    "RegistryLoadError",
    "RegistryVersionMismatch",
    "CategoryNotFoundError",
    "DisputeNotFoundError",
    "RuleNotFoundError",
]
