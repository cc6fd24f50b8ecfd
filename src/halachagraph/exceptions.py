"""
halachagraph Exception Hierarchy

Domain-specific exceptions for temporal graph resolution and status computation.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: HG_<CATEGORY>_<SPECIFIC>

Graph integrity errors are hard failures: a malformed graph or event sequence
is an upstream data defect and is never repaired or skipped by the engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class HalachaGraphError(Exception):
    """
    Base exception for all halachagraph errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (HG_*)
        details: Additional context about the error
        slice_index: Slice being resolved or queried, if applicable
    """
    message: str
    code: str = "HG_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    slice_index: Optional[int] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.slice_index is not None:
            parts.append(f"(slice: {self.slice_index})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/API responses."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.slice_index is not None:
            result["slice_index"] = self.slice_index
        return result


# =============================================================================
# Graph Resolution Errors
# =============================================================================

@dataclass
class GraphIntegrityError(HalachaGraphError):
    """An event cannot be applied to the accumulated graph state."""
    code: str = "HG_GRAPH_INTEGRITY"


@dataclass
class DuplicateIdError(GraphIntegrityError):
    """An entity or relation id was added twice."""
    code: str = "HG_DUPLICATE_ID"


@dataclass
class DanglingReferenceError(GraphIntegrityError):
    """A relation points at an entity that is not present."""
    code: str = "HG_DANGLING_REFERENCE"


@dataclass
class UnknownEntityError(GraphIntegrityError):
    """An event names an entity that was never defined or added."""
    code: str = "HG_UNKNOWN_ENTITY"


@dataclass
class UnknownRelationError(GraphIntegrityError):
    """An event names a relation that was never defined or added."""
    code: str = "HG_UNKNOWN_RELATION"


@dataclass
class OutOfRangeError(HalachaGraphError):
    """Requested slice index is outside the timeline."""
    code: str = "HG_OUT_OF_RANGE"


# =============================================================================
# Query Errors
# =============================================================================

@dataclass
class InvalidPairError(HalachaGraphError):
    """Status was requested for a person against themselves or an absent person."""
    code: str = "HG_INVALID_PAIR"


@dataclass
class UnknownOpinionError(HalachaGraphError):
    """A profile selects an opinion that the dispute does not define."""
    code: str = "HG_UNKNOWN_OPINION"


# =============================================================================
# Registry Errors
# =============================================================================

@dataclass
class RegistryError(HalachaGraphError):
    """Base class for registry construction and loading failures."""
    code: str = "HG_REGISTRY_ERROR"


@dataclass
class RegistryValidationError(RegistryError):
    """Registry content failed schema or reference integrity validation."""
    code: str = "HG_REGISTRY_VALIDATION_ERROR"


@dataclass
class RegistryLoadError(RegistryError):
    """Failed to read a registry pack from disk."""
    code: str = "HG_REGISTRY_LOAD_ERROR"


@dataclass
class RegistryVersionMismatch(RegistryError):
    """Registry pack schema version is not supported."""
    code: str = "HG_REGISTRY_VERSION_MISMATCH"


@dataclass
class CategoryNotFoundError(RegistryError):
    """Requested category is not in the registry."""
    code: str = "HG_CATEGORY_NOT_FOUND"


@dataclass
class DisputeNotFoundError(RegistryError):
    """Requested dispute is not in the registry."""
    code: str = "HG_DISPUTE_NOT_FOUND"


@dataclass
class RuleNotFoundError(RegistryError):
    """Requested rule is not in the registry."""
    code: str = "HG_RULE_NOT_FOUND"
