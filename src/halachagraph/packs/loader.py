"""
halachagraph Registry Pack Loader

Loads and validates registry packs from YAML or JSON files.

Converts Pydantic schema models to halachagraph domain models, which run
their own reference integrity checks on construction.
"""
from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..config import get_settings
from ..exceptions import RegistryError, RegistryLoadError, RegistryValidationError, RegistryVersionMismatch
from ..models import (
    Category,
    CompositeOp,
    Dispute,
    DisputeLevel,
    HalachicLevel,
    LevirateSettings,
    Opinion,
    OpinionGate,
    OpinionProfile,
    PairRole,
    PathStep,
    Pattern,
    PatternType,
    Registry,
    RelationType,
    Rule,
    RuleVariant,
    Sex,
    StateCondition,
    StatePredicate,
)
from .schema import (
    SCHEMA_VERSION,
    CategorySchema,
    DisputeSchema,
    PatternSchema,
    ProfileSchema,
    RegistryPackSchema,
    RuleSchema,
    RuleVariantSchema,
    check_schema_version,
    validate_registry_pack,
)


logger = logging.getLogger(__name__)

SAMPLE_REGISTRY_RESOURCE = "registries/sample.yaml"


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _convert_pattern(schema: PatternSchema) -> Pattern:
    """Convert PatternSchema to Pattern model."""
    pattern_type = PatternType(schema.type)
    steps: tuple[PathStep, ...] = ()
    if pattern_type == PatternType.PATH and schema.path:
        steps = tuple(PathStep(s) for s in schema.path.split("."))

    return Pattern(
        type=pattern_type,
        negate=schema.negate,
        relation_types=tuple(RelationType(t) for t in schema.relation_types),
        steps=steps,
        through_sex=Sex(schema.through_sex) if schema.through_sex else None,
        step_sexes=tuple(Sex(s) if s else None for s in schema.path_sexes),
        conditions=tuple(
            StatePredicate(PairRole(c.role), StateCondition(c.condition), c.negate)
            for c in schema.conditions
        ),
        op=CompositeOp(schema.op) if schema.op else None,
        children=tuple(_convert_pattern(c) for c in schema.children),
        description=schema.description,
    )


def _convert_category(schema: CategorySchema) -> Category:
    """Convert CategorySchema to Category model."""
    return Category(
        id=schema.id,
        name=schema.name,
        level=HalachicLevel(schema.level),
        severity=schema.severity,
        prohibits_marriage=schema.prohibits_marriage,
        description=schema.description,
        color=schema.color,
    )


def _convert_dispute(schema: DisputeSchema) -> Dispute:
    """Convert DisputeSchema to Dispute model."""
    return Dispute(
        id=schema.id,
        title=schema.title,
        opinions=tuple(
            Opinion(
                id=o.id,
                position=o.position,
                holders=tuple(o.holders),
                sources=tuple(o.sources),
            )
            for o in schema.opinions
        ),
        default_opinion_id=schema.default_opinion,
        question=schema.question,
        level=DisputeLevel(schema.level) if schema.level else None,
        sources=tuple(schema.sources),
        description=schema.description,
    )


def _convert_variant(schema: RuleVariantSchema) -> RuleVariant:
    return RuleVariant(
        category_id=schema.category,
        pattern=_convert_pattern(schema.pattern) if schema.pattern else None,
        status_name=schema.status_name,
        description=schema.description,
    )


def _convert_rule(schema: RuleSchema) -> Rule:
    """Convert RuleSchema to Rule model."""
    return Rule(
        id=schema.id,
        name=schema.name,
        pattern=_convert_pattern(schema.pattern),
        category_id=schema.category,
        status_name=schema.status_name,
        description=schema.description,
        sources=tuple(schema.sources),
        dispute_id=schema.dispute,
        variants={opinion_id: _convert_variant(v) for opinion_id, v in schema.variants.items()},
        applies_when=tuple(OpinionGate(g.dispute, g.opinion) for g in schema.applies_when),
    )


def _convert_profile(schema: ProfileSchema) -> OpinionProfile:
    return OpinionProfile(
        id=schema.id,
        name=schema.name,
        selections=dict(schema.selections),
        description=schema.description,
    )


def _convert_registry_pack(schema: RegistryPackSchema) -> Registry:
    """
    Convert RegistryPackSchema to Registry model.

    Raises:
        RegistryValidationError: If reference integrity checks fail
        ValueError: If a model rejects its own structure
    """
    return Registry(
        id=schema.id,
        name=schema.name,
        version=schema.version,
        description=schema.description,
        categories=tuple(_convert_category(c) for c in schema.categories),
        rules=tuple(_convert_rule(r) for r in schema.rules),
        disputes=tuple(_convert_dispute(d) for d in schema.disputes),
        profiles=tuple(_convert_profile(p) for p in schema.profiles),
        levirate=LevirateSettings(
            include_half_siblings=schema.levirate.include_half_siblings,
            tie_category_id=schema.levirate.tie_category,
        ),
    )


def _build_registry(data: Any, source: str, strict_version: bool) -> Registry:
    """Validate raw pack data and convert it, raising registry errors only."""
    if not isinstance(data, dict):
        raise RegistryLoadError(
            message=f"Registry pack must be a mapping, got {type(data).__name__}",
            details={"source": source},
        )

    # Check schema version
    if strict_version and not check_schema_version(data):
        pack_version = data.get("schema_version", "unknown")
        raise RegistryVersionMismatch(
            message=f"Schema version mismatch: pack has {pack_version}, expected {SCHEMA_VERSION}",
            details={
                "pack_version": pack_version,
                "expected_version": SCHEMA_VERSION,
                "source": source,
            },
        )

    # Validate against schema
    try:
        schema = validate_registry_pack(data)
    except ValidationError as e:
        raise RegistryValidationError(
            message=f"Registry pack validation failed: {e.error_count()} errors",
            details={"errors": e.errors(include_url=False), "source": source},
        ) from e

    # Convert to domain models (reference integrity runs in Registry)
    try:
        return _convert_registry_pack(schema)
    except RegistryError as e:
        e.details.setdefault("source", source)
        raise
    except ValueError as e:
        raise RegistryValidationError(
            message=f"Registry pack structure invalid: {e}",
            details={"errors": [str(e)], "source": source},
        ) from e


# =============================================================================
# Registry Pack Loader
# =============================================================================

class RegistryPackLoader:
    """
    Loads registry packs from YAML or JSON files.

    Usage:
        loader = RegistryPackLoader()
        registry = loader.load("path/to/registry.yaml")
    """

    def __init__(self, strict_version: Optional[bool] = None):
        """
        Initialize the loader.

        Args:
            strict_version: If True, reject packs with incompatible schema
                versions. Defaults to HALACHAGRAPH_STRICT_SCHEMA_VERSION.
        """
        if strict_version is None:
            strict_version = get_settings().strict_schema_version
        self.strict_version = strict_version
        self._registries: dict[str, Registry] = {}

    def load(self, path: Union[str, Path]) -> Registry:
        """
        Load a registry pack from a file.

        Args:
            path: Path to YAML or JSON file

        Returns:
            Loaded Registry model

        Raises:
            RegistryLoadError: If file cannot be read or parsed
            RegistryValidationError: If validation fails
            RegistryVersionMismatch: If schema version incompatible
        """
        path = Path(path)

        try:
            data = self._load_file(path)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise RegistryLoadError(
                message=f"Failed to load registry pack: {e}",
                details={"path": str(path), "error": str(e)},
            ) from e

        registry = _build_registry(data, str(path), self.strict_version)
        self._registries[registry.id] = registry
        logger.info(
            "Loaded registry pack '%s' from %s: %d categories, %d rules, %d disputes",
            registry.id, path, len(registry.categories), len(registry.rules), len(registry.disputes),
            extra={"registry_id": registry.id},
        )
        return registry

    def _load_file(self, path: Path) -> Any:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)

    def get_registry(self, registry_id: str) -> Optional[Registry]:
        """Get a previously loaded registry by ID."""
        return self._registries.get(registry_id)

    def list_registries(self) -> list[str]:
        """List IDs of all loaded registries."""
        return list(self._registries.keys())


# =============================================================================
# Convenience Functions
# =============================================================================

def load_registry_pack(path: Union[str, Path]) -> Registry:
    """
    Load a registry pack from a file.

    Convenience function that creates a temporary loader.
    """
    return RegistryPackLoader().load(path)


def load_registry_pack_from_string(
    content: str,
    format: str = "yaml",
    strict_version: Optional[bool] = None,
) -> Registry:
    """
    Load a registry pack from a string.

    Args:
        content: YAML or JSON string
        format: "yaml" or "json"
        strict_version: Reject incompatible schema versions (settings default)

    Returns:
        Loaded Registry model
    """
    if strict_version is None:
        strict_version = get_settings().strict_schema_version
    try:
        if format.lower() == "json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise RegistryLoadError(
            message=f"Failed to parse registry pack: {e}",
            details={"format": format, "error": str(e)},
        ) from e
    return _build_registry(data, f"<{format} string>", strict_version)


def load_sample_registry() -> Registry:
    """
    Load the bundled sample registry: the standard categories, the Torah
    and rabbinic marriage prohibitions and the yesh-zikah dispute.
    """
    content = resources.files("halachagraph.packs").joinpath(SAMPLE_REGISTRY_RESOURCE).read_text(
        encoding="utf-8"
    )
    return load_registry_pack_from_string(content, format="yaml")
