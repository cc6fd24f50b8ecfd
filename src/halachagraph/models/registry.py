"""
Registry Models

The Registry is the static rule base: status categories, rules with their
relationship patterns, disputes (machlokos) with named opinions, and the
settings that govern levirate ties. Declaration order of rules is part of
the contract: it breaks severity ties when choosing a primary status.

Registries are validated for reference integrity on construction.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Optional

from ..canon import content_hash
from ..exceptions import (
    CategoryNotFoundError,
    DisputeNotFoundError,
    RegistryValidationError,
    RuleNotFoundError,
)
from .enums import DisputeLevel, HalachicLevel
from .patterns import Pattern
from .profile import OpinionProfile


# =============================================================================
# Categories
# =============================================================================

@dataclass(frozen=True)
class Category:
    """
    A status category that matched rules belong to.

    Attributes:
        id: Unique identifier (e.g., 'ervah-doraita')
        name: Display name
        level: Authority level
        severity: Higher is more severe; drives primary status selection
        prohibits_marriage: Whether a status in this category forbids marriage
    """
    id: str
    name: str
    level: HalachicLevel
    severity: int
    prohibits_marriage: bool = False
    description: Optional[str] = None
    color: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", HalachicLevel(self.level))


# =============================================================================
# Disputes
# =============================================================================

@dataclass(frozen=True)
class Opinion:
    """One position in a dispute."""
    id: str
    position: str
    holders: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class Dispute:
    """
    A machlokas: an unresolved question with named opinions.

    The default opinion applies whenever a profile makes no selection.
    """
    id: str
    title: str
    opinions: tuple[Opinion, ...]
    default_opinion_id: str
    question: Optional[str] = None
    level: Optional[DisputeLevel] = None
    sources: tuple[str, ...] = ()
    description: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "opinions", tuple(self.opinions))
        if self.level is not None:
            object.__setattr__(self, "level", DisputeLevel(self.level))

    @property
    def opinion_ids(self) -> tuple[str, ...]:
        return tuple(o.id for o in self.opinions)

    def has_opinion(self, opinion_id: str) -> bool:
        return opinion_id in self.opinion_ids

    def opinion(self, opinion_id: str) -> Optional[Opinion]:
        for opinion in self.opinions:
            if opinion.id == opinion_id:
                return opinion
        return None


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class RuleVariant:
    """What a disputed rule produces under one opinion. Unset fields inherit from the rule."""
    category_id: Optional[str] = None
    pattern: Optional[Pattern] = None
    status_name: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class OpinionGate:
    """The rule applies only when dispute_id is decided as opinion_id."""
    dispute_id: str
    opinion_id: str


@dataclass(frozen=True)
class EffectiveRule:
    """A rule as it reads under a specific opinion."""
    rule_id: str
    pattern: Pattern
    category_id: str
    status_name: str
    opinion_id: Optional[str] = None


@dataclass(frozen=True)
class Rule:
    """
    A halachic rule producing a status when its pattern matches.

    Attributes:
        id: Unique identifier
        name: Display name
        pattern: Relationship pattern tested on the ordered pair
        category_id: Category of the produced status
        status_name: Status display name (defaults to name)
        dispute_id: Dispute whose opinion selects a variant, if any
        variants: opinion id -> variant; an opinion without a variant
            means the rule does not apply under it
        applies_when: Additional opinion gates that must all hold
    """
    id: str
    name: str
    pattern: Pattern
    category_id: str
    status_name: Optional[str] = None
    description: Optional[str] = None
    sources: tuple[str, ...] = ()
    dispute_id: Optional[str] = None
    variants: Mapping[str, RuleVariant] = field(default_factory=dict)
    applies_when: tuple[OpinionGate, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "variants", MappingProxyType(dict(self.variants)))
        object.__setattr__(self, "applies_when", tuple(self.applies_when))
        object.__setattr__(self, "sources", tuple(self.sources))
        if self.variants and self.dispute_id is None:
            raise ValueError(f"Rule '{self.id}' has variants but no dispute_id")

    @property
    def consulted_dispute_ids(self) -> tuple[str, ...]:
        """Every dispute this rule depends on, in a fixed order."""
        ids: dict[str, None] = {}
        if self.dispute_id is not None:
            ids[self.dispute_id] = None
        for gate in self.applies_when:
            ids[gate.dispute_id] = None
        return tuple(ids)

    def effective(self, opinion_id: Optional[str] = None) -> Optional[EffectiveRule]:
        """
        The rule as it reads under opinion_id for its own dispute.

        Returns None when the opinion has no variant for a disputed rule.
        """
        base_name = self.status_name or self.name
        if self.dispute_id is None:
            return EffectiveRule(self.id, self.pattern, self.category_id, base_name)
        variant = self.variants.get(opinion_id) if opinion_id is not None else None
        if variant is None:
            return None
        return EffectiveRule(
            rule_id=self.id,
            pattern=variant.pattern or self.pattern,
            category_id=variant.category_id or self.category_id,
            status_name=variant.status_name or base_name,
            opinion_id=opinion_id,
        )


# =============================================================================
# Registry
# =============================================================================

@dataclass(frozen=True)
class LevirateSettings:
    """
    Settings for levirate tie derivation.

    Attributes:
        include_half_siblings: Whether half-brothers of the deceased hold a tie
        tie_category_id: Category of the status added for a pair bound by
            an active tie (None adds no status)
    """
    include_half_siblings: bool = True
    tie_category_id: Optional[str] = None


@dataclass(frozen=True)
class Registry:
    """
    The complete rule base.

    Attributes:
        id: Registry identifier
        name: Display name
        version: Registry revision label
        categories: Status categories
        rules: Rules in declaration order
        disputes: Disputes in declaration order
        profiles: Named opinion profiles shipped with the registry
        levirate: Levirate tie settings
    """
    id: str
    name: str
    categories: tuple[Category, ...]
    rules: tuple[Rule, ...]
    disputes: tuple[Dispute, ...] = ()
    profiles: tuple[OpinionProfile, ...] = ()
    levirate: LevirateSettings = field(default_factory=LevirateSettings)
    version: str = "1.0"
    description: Optional[str] = None

    _categories: Mapping[str, Category] = field(init=False, compare=False, repr=False)
    _rules: Mapping[str, Rule] = field(init=False, compare=False, repr=False)
    _disputes: Mapping[str, Dispute] = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        for name in ("categories", "rules", "disputes", "profiles"):
            object.__setattr__(self, name, tuple(getattr(self, name)))
        object.__setattr__(self, "_categories", MappingProxyType({c.id: c for c in self.categories}))
        object.__setattr__(self, "_rules", MappingProxyType({r.id: r for r in self.rules}))
        object.__setattr__(self, "_disputes", MappingProxyType({d.id: d for d in self.disputes}))
        validate_registry(self)

    @cached_property
    def fingerprint(self) -> str:
        """Content hash of the registry definition."""
        return content_hash(self)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_category(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def category(self, category_id: str) -> Category:
        """Get a category or raise CategoryNotFoundError."""
        category = self._categories.get(category_id)
        if category is None:
            raise CategoryNotFoundError(
                message=f"Category not found: {category_id}",
                details={"category_id": category_id, "registry_id": self.id},
            )
        return category

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def rule(self, rule_id: str) -> Rule:
        """Get a rule or raise RuleNotFoundError."""
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(
                message=f"Rule not found: {rule_id}",
                details={"rule_id": rule_id, "registry_id": self.id},
            )
        return rule

    def get_dispute(self, dispute_id: str) -> Optional[Dispute]:
        return self._disputes.get(dispute_id)

    def dispute(self, dispute_id: str) -> Dispute:
        """Get a dispute or raise DisputeNotFoundError."""
        dispute = self._disputes.get(dispute_id)
        if dispute is None:
            raise DisputeNotFoundError(
                message=f"Dispute not found: {dispute_id}",
                details={"dispute_id": dispute_id, "registry_id": self.id},
            )
        return dispute

    def default_opinion(self, dispute_id: str) -> str:
        return self.dispute(dispute_id).default_opinion_id

    def get_profile(self, profile_id: str) -> Optional[OpinionProfile]:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None

    @property
    def prohibiting_category_ids(self) -> frozenset[str]:
        return frozenset(c.id for c in self.categories if c.prohibits_marriage)


# =============================================================================
# Reference Integrity Validation
# =============================================================================

def _duplicates(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for item in ids:
        if item in seen and item not in dupes:
            dupes.append(item)
        seen.add(item)
    return dupes


def validate_registry(registry: Registry) -> None:
    """
    Validate internal references are consistent.

    Catches:
    - Duplicate category, rule, dispute or profile IDs
    - Rules and variants referencing non-existent categories
    - Rules referencing non-existent disputes or opinions
    - Disputes without opinions or with a default outside their opinions
    - Profiles selecting unknown disputes or opinions

    Raises:
        RegistryValidationError: With every problem found listed in details
    """
    errors: list[str] = []

    for kind, items in (
        ("category", registry.categories),
        ("rule", registry.rules),
        ("dispute", registry.disputes),
        ("profile", registry.profiles),
    ):
        for dupe in _duplicates([item.id for item in items]):
            errors.append(f"Duplicate {kind} ID: '{dupe}'")

    category_ids = {c.id for c in registry.categories}
    disputes = {d.id: d for d in registry.disputes}

    for dispute in registry.disputes:
        if not dispute.opinions:
            errors.append(f"Dispute '{dispute.id}' has no opinions")
        elif not dispute.has_opinion(dispute.default_opinion_id):
            errors.append(
                f"Dispute '{dispute.id}' default opinion '{dispute.default_opinion_id}' "
                f"is not one of its opinions"
            )
        for dupe in _duplicates(list(dispute.opinion_ids)):
            errors.append(f"Dispute '{dispute.id}' has duplicate opinion '{dupe}'")

    for rule in registry.rules:
        if rule.category_id not in category_ids:
            errors.append(f"Rule '{rule.id}' references non-existent category '{rule.category_id}'")
        if rule.dispute_id is not None:
            dispute = disputes.get(rule.dispute_id)
            if dispute is None:
                errors.append(f"Rule '{rule.id}' references non-existent dispute '{rule.dispute_id}'")
            else:
                for opinion_id, variant in rule.variants.items():
                    if not dispute.has_opinion(opinion_id):
                        errors.append(
                            f"Rule '{rule.id}' has a variant for unknown opinion "
                            f"'{opinion_id}' of dispute '{dispute.id}'"
                        )
                    if variant.category_id is not None and variant.category_id not in category_ids:
                        errors.append(
                            f"Rule '{rule.id}' variant '{opinion_id}' references "
                            f"non-existent category '{variant.category_id}'"
                        )
        for gate in rule.applies_when:
            dispute = disputes.get(gate.dispute_id)
            if dispute is None:
                errors.append(f"Rule '{rule.id}' is gated on non-existent dispute '{gate.dispute_id}'")
            elif not dispute.has_opinion(gate.opinion_id):
                errors.append(
                    f"Rule '{rule.id}' is gated on unknown opinion '{gate.opinion_id}' "
                    f"of dispute '{gate.dispute_id}'"
                )

    tie_category = registry.levirate.tie_category_id
    if tie_category is not None and tie_category not in category_ids:
        errors.append(f"Levirate tie category '{tie_category}' does not exist")

    for profile in registry.profiles:
        for dispute_id, opinion_id in profile.selections.items():
            dispute = disputes.get(dispute_id)
            if dispute is None:
                errors.append(f"Profile '{profile.id}' selects non-existent dispute '{dispute_id}'")
            elif not dispute.has_opinion(opinion_id):
                errors.append(
                    f"Profile '{profile.id}' selects unknown opinion '{opinion_id}' "
                    f"for dispute '{dispute_id}'"
                )

    if errors:
        raise RegistryValidationError(
            message=f"Registry '{registry.id}' has {len(errors)} reference integrity error(s)",
            details={"registry_id": registry.id, "errors": errors},
        )
