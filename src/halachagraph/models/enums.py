"""
halachagraph Enumerations

All enumeration types used throughout the package.
Organized by domain area for clarity.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum


# =============================================================================
# Graph
# =============================================================================

class Sex(str, Enum):
    """Sex of a person in the graph."""
    MALE = "male"
    FEMALE = "female"


class RelationType(str, Enum):
    """Relation kinds between two entities."""
    BETROTHAL = "betrothal"                  # erusin
    FULL_MARRIAGE = "full-marriage"          # nisuin
    DIVORCE = "divorce"
    LEVIRATE_MARRIAGE = "levirate-marriage"  # yibum
    RELEASE = "release"                      # chalitzah
    PARENT_CHILD = "parent-child"            # source is the parent
    SIBLING = "sibling"
    UNMARRIED = "unmarried-relation"

    @property
    def is_union(self) -> bool:
        """True for relation types that bind the pair as spouses."""
        return self in UNION_TYPES


UNION_TYPES = frozenset({
    RelationType.BETROTHAL,
    RelationType.FULL_MARRIAGE,
    RelationType.LEVIRATE_MARRIAGE,
})


class EventType(str, Enum):
    """Kinds of timeline events."""
    ADD_ENTITY = "add-entity"
    ADD_RELATION = "add-relation"
    MARK_DECEASED = "mark-deceased"
    UPDATE_RELATION = "update-relation"
    REMOVE_RELATION = "remove-relation"


# =============================================================================
# Registry
# =============================================================================

class HalachicLevel(str, Enum):
    """Authority level of a status category."""
    DORAITA = "doraita"      # Torah law
    DRABBANAN = "drabbanan"  # Rabbinic law
    MINHAG = "minhag"        # Custom
    CHUMRA = "chumra"        # Stringency
    KULA = "kula"            # Leniency / permitted


class DisputeLevel(str, Enum):
    """Era of the authorities in a dispute."""
    TANAIM = "tanaim"
    AMORAIM = "amoraim"
    RISHONIM = "rishonim"
    ACHRONIM = "achronim"


class PatternType(str, Enum):
    """Kinds of relationship pattern a rule can test."""
    DIRECT = "direct"
    PATH = "path"
    STATE = "state"
    TIE = "tie"
    COMPOSITE = "composite"


class PathStep(str, Enum):
    """One hop in a path pattern such as 'parent.sibling.spouse'."""
    SPOUSE = "spouse"
    PARENT = "parent"
    CHILD = "child"
    SIBLING = "sibling"
    TIE = "tie"  # levirate tie partner


class StateCondition(str, Enum):
    """Single-person state checks used by state patterns."""
    ALIVE = "alive"
    DEAD = "dead"
    MARRIED = "married"
    UNMARRIED = "unmarried"
    HAS_CHILDREN = "has-children"
    CHILDLESS = "childless"
    HAS_BROTHERS = "has-brothers"
    MALE = "male"
    FEMALE = "female"


class CompositeOp(str, Enum):
    """Logical combination of sub-patterns."""
    AND = "and"
    OR = "or"


class PairRole(str, Enum):
    """Which side of the ordered pair a state condition inspects."""
    A = "A"
    B = "B"


# =============================================================================
# Levirate Ties
# =============================================================================

class TieStatus(str, Enum):
    """Lifecycle of a single levirate tie (zikah)."""
    NONE = "none"
    CREATED = "created"                            # death slice itself
    ACTIVE = "active"
    RESOLVED_BY_MARRIAGE = "resolved-by-marriage"  # yibum with one brother
    RESOLVED_BY_RELEASE = "resolved-by-release"    # chalitzah from every holder
    LAPSED = "lapsed"                              # no living holder remains

    @property
    def is_active(self) -> bool:
        return self in (TieStatus.CREATED, TieStatus.ACTIVE)


class OpinionSource(str, Enum):
    """Where the governing opinion for a dispute came from."""
    PROFILE = "profile"
    DEFAULT = "default"
