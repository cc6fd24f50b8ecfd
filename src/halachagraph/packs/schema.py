"""
halachagraph Registry Pack Schemas

Pydantic models for validating registry pack YAML/JSON files.

These schemas define the structure of registry packs that can be loaded
at runtime. They map to the domain models in halachagraph.models.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders should check version compatibility
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

HalachicLevelValue = Literal["doraita", "drabbanan", "minhag", "chumra", "kula"]

DisputeLevelValue = Literal["tanaim", "amoraim", "rishonim", "achronim"]

PatternTypeValue = Literal["direct", "path", "state", "tie", "composite"]

RelationTypeValue = Literal[
    "betrothal", "full-marriage", "divorce", "levirate-marriage",
    "release", "parent-child", "sibling", "unmarried-relation"
]

SexValue = Literal["male", "female"]

StateConditionValue = Literal[
    "alive", "dead", "married", "unmarried",
    "has-children", "childless", "has-brothers", "male", "female"
]

PATH_STEPS = frozenset({"spouse", "parent", "child", "sibling", "tie"})


# =============================================================================
# Pattern Schemas
# =============================================================================

class StatePredicateSchema(BaseModel):
    """Schema for a state check on one side of the pair."""
    role: Literal["A", "B"] = Field(..., description="Side of the pair to inspect")
    condition: StateConditionValue = Field(..., description="State to check")
    negate: bool = Field(False, description="Invert the check")

    model_config = {"extra": "forbid"}


class PatternSchema(BaseModel):
    """
    Schema for a composable relationship pattern.

    Which fields are required depends on type:
        direct    -> relation_types
        path      -> path (dotted steps), optional through_sex / path_sexes
        state     -> conditions
        tie       -> nothing
        composite -> op, children
    """
    type: PatternTypeValue = Field(..., description="Pattern kind")
    negate: bool = Field(False, description="Invert the pattern")

    relation_types: list[RelationTypeValue] = Field(default_factory=list)

    path: Optional[str] = Field(None, description="Dotted steps, e.g. 'parent.sibling.spouse'")
    through_sex: Optional[SexValue] = Field(None, description="Sex required at every step")
    path_sexes: list[Optional[SexValue]] = Field(
        default_factory=list,
        description="Sex required at each step (null = any)"
    )

    conditions: list[StatePredicateSchema] = Field(default_factory=list)

    op: Optional[Literal["and", "or"]] = Field(None, description="Composite operator")
    children: list["PatternSchema"] = Field(default_factory=list)

    description: Optional[str] = Field(None, description="Human-readable description")

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_structure(self) -> "PatternSchema":
        """Validate pattern structure based on type."""
        if self.type == "direct" and not self.relation_types:
            raise ValueError("Direct pattern requires 'relation_types'")

        if self.type == "path":
            if not self.path:
                raise ValueError("Path pattern requires 'path'")
            steps = self.path.split(".")
            unknown = [s for s in steps if s not in PATH_STEPS]
            if unknown:
                raise ValueError(f"Unknown path step(s): {', '.join(unknown)}")
            if self.path_sexes and len(self.path_sexes) != len(steps):
                raise ValueError(
                    f"'path_sexes' has {len(self.path_sexes)} entries for {len(steps)} steps"
                )

        if self.type == "state" and not self.conditions:
            raise ValueError("State pattern requires 'conditions'")

        if self.type == "composite":
            if self.op is None:
                raise ValueError("Composite pattern requires 'op'")
            if not self.children:
                raise ValueError(f"Composite operator '{self.op}' requires 'children'")

        return self


# =============================================================================
# Category and Dispute Schemas
# =============================================================================

class CategorySchema(BaseModel):
    """Schema for a status category."""
    id: str = Field(..., description="Unique identifier (e.g., 'ervah-doraita')")
    name: str = Field(..., description="Display name")
    level: HalachicLevelValue = Field(..., description="Authority level")
    severity: int = Field(..., description="Higher is more severe")
    prohibits_marriage: bool = Field(False, description="Whether this category forbids marriage")
    description: Optional[str] = None
    color: Optional[str] = Field(None, description="Display color hint")

    model_config = {"extra": "forbid"}


class OpinionSchema(BaseModel):
    """Schema for one opinion in a dispute."""
    id: str = Field(..., description="Opinion identifier")
    position: str = Field(..., description="What this opinion holds")
    holders: list[str] = Field(default_factory=list, description="Authorities holding it")
    sources: list[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class DisputeSchema(BaseModel):
    """Schema for a dispute (machlokas)."""
    id: str = Field(..., description="Unique identifier")
    title: str = Field(..., description="Display title")
    question: Optional[str] = Field(None, description="The question in dispute")
    level: Optional[DisputeLevelValue] = Field(None, description="Era of the disputants")
    opinions: list[OpinionSchema] = Field(..., min_length=1)
    default_opinion: str = Field(..., description="Opinion applied when a profile is silent")
    sources: list[str] = Field(default_factory=list)
    description: Optional[str] = None

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_default(self) -> "DisputeSchema":
        if self.default_opinion not in {o.id for o in self.opinions}:
            raise ValueError(
                f"Default opinion '{self.default_opinion}' is not one of the dispute's opinions"
            )
        return self


# =============================================================================
# Rule Schemas
# =============================================================================

class RuleVariantSchema(BaseModel):
    """Schema for what a disputed rule produces under one opinion."""
    category: Optional[str] = Field(None, description="Category override")
    pattern: Optional[PatternSchema] = Field(None, description="Pattern override")
    status_name: Optional[str] = None
    description: Optional[str] = None

    model_config = {"extra": "forbid"}


class OpinionGateSchema(BaseModel):
    """Schema for an opinion gate on a rule."""
    dispute: str = Field(..., description="Dispute ID")
    opinion: str = Field(..., description="Opinion the dispute must resolve to")

    model_config = {"extra": "forbid"}


class RuleSchema(BaseModel):
    """Schema for a rule."""
    id: str = Field(..., description="Unique identifier")
    name: str = Field(..., description="Display name")
    category: str = Field(..., description="Category of the produced status")
    pattern: PatternSchema = Field(..., description="Relationship pattern")
    status_name: Optional[str] = Field(None, description="Status display name (defaults to name)")
    description: Optional[str] = None
    sources: list[str] = Field(default_factory=list)
    dispute: Optional[str] = Field(None, description="Dispute selecting a variant")
    variants: dict[str, RuleVariantSchema] = Field(
        default_factory=dict,
        description="Opinion ID -> variant; opinions without a variant disable the rule"
    )
    applies_when: list[OpinionGateSchema] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def validate_variants(self) -> "RuleSchema":
        if self.variants and self.dispute is None:
            raise ValueError("Rule 'variants' require 'dispute'")
        return self


# =============================================================================
# Profile and Levirate Schemas
# =============================================================================

class ProfileSchema(BaseModel):
    """Schema for a named opinion profile."""
    id: str = Field(..., description="Profile identifier")
    name: str = Field(..., description="Display name")
    description: Optional[str] = None
    selections: dict[str, str] = Field(default_factory=dict, description="Dispute ID -> opinion ID")

    model_config = {"extra": "forbid"}


class LevirateSchema(BaseModel):
    """Schema for levirate tie settings."""
    include_half_siblings: bool = Field(True, description="Half-brothers hold a tie")
    tie_category: Optional[str] = Field(None, description="Category added for a bound pair")

    model_config = {"extra": "forbid"}


# =============================================================================
# Registry Pack Schema
# =============================================================================

class RegistryPackSchema(BaseModel):
    """
    Top-level schema for a registry pack YAML/JSON file.

    A registry pack defines the categories, rules, disputes and profiles
    the status engine evaluates.
    """
    # Metadata
    schema_version: str = Field(SCHEMA_VERSION, description="Schema version for compatibility")
    id: str = Field(..., description="Unique identifier")
    name: str = Field(..., description="Human-readable name")
    version: str = Field("1.0", description="Registry revision label")
    description: Optional[str] = None

    categories: list[CategorySchema] = Field(..., min_length=1)
    disputes: list[DisputeSchema] = Field(default_factory=list)
    rules: list[RuleSchema] = Field(default_factory=list, description="Rules in declaration order")
    profiles: list[ProfileSchema] = Field(default_factory=list)
    levirate: LevirateSchema = Field(default_factory=LevirateSchema)

    model_config = {
        "extra": "forbid",  # Reject unknown fields
    }


# =============================================================================
# Validation Helpers
# =============================================================================

def validate_registry_pack(data: dict[str, Any]) -> RegistryPackSchema:
    """
    Validate a registry pack dictionary against the schema.

    Args:
        data: Dictionary loaded from YAML/JSON

    Returns:
        Validated RegistryPackSchema

    Raises:
        pydantic.ValidationError: If validation fails
    """
    return RegistryPackSchema.model_validate(data)


def check_schema_version(data: dict[str, Any]) -> bool:
    """
    Check if a registry pack's schema version is compatible.

    Only the major version has to match.
    """
    pack_version = str(data.get("schema_version", SCHEMA_VERSION))
    return pack_version.split(".")[0] == SCHEMA_VERSION.split(".")[0]
