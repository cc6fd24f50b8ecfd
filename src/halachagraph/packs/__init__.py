"""
halachagraph Registry Packs

Schema validation and loading for registry packs.

Registry packs are YAML or JSON files that define status categories,
rules with their relationship patterns, disputes with named opinions,
opinion profiles and levirate tie settings.

Usage:
    from halachagraph.packs import load_registry_pack, load_sample_registry

    # Load a single registry pack
    registry = load_registry_pack("path/to/registry.yaml")

    # The bundled sample registry
    registry = load_sample_registry()
"""
from __future__ import annotations

from .loader import (
    RegistryPackLoader,
    load_registry_pack,
    load_registry_pack_from_string,
    load_sample_registry,
)
from .schema import (
    SCHEMA_VERSION,
    CategorySchema,
    DisputeSchema,
    LevirateSchema,
    OpinionGateSchema,
    OpinionSchema,
    PatternSchema,
    ProfileSchema,
    RegistryPackSchema,
    RuleSchema,
    RuleVariantSchema,
    StatePredicateSchema,
    check_schema_version,
    validate_registry_pack,
)

__all__ = [
    # Version
    "SCHEMA_VERSION",
    # Loader
    "RegistryPackLoader",
    "load_registry_pack",
    "load_registry_pack_from_string",
    "load_sample_registry",
    # Validation
    "validate_registry_pack",
    "check_schema_version",
    # Schemas (for advanced usage)
    "RegistryPackSchema",
    "CategorySchema",
    "DisputeSchema",
    "OpinionSchema",
    "RuleSchema",
    "RuleVariantSchema",
    "OpinionGateSchema",
    "PatternSchema",
    "StatePredicateSchema",
    "ProfileSchema",
    "LevirateSchema",
]
