"""
Relationship Patterns

A Pattern is the condition a rule tests over an ordered pair of people
(A, B) in a resolved snapshot. Patterns compose like a condition tree:

- DIRECT: a relation of a listed type connects A and B
- PATH: B is reachable from A along steps such as "parent.sibling.spouse"
- STATE: single-person checks on A or B (alive, married, childless, ...)
- TIE: A and B are bound by an active levirate tie
- COMPOSITE: AND / OR over sub-patterns

Every pattern may be negated. Helper functions DIRECT(), PATH(), STATE(),
TIE(), ALL(), ANY() and NOT() build patterns in code.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Union

from .enums import CompositeOp, PairRole, PathStep, PatternType, RelationType, Sex, StateCondition


@dataclass(frozen=True)
class StatePredicate:
    """A state check on one side of the pair, e.g. 'B is married'."""
    role: PairRole
    condition: StateCondition
    negate: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", PairRole(self.role))
        object.__setattr__(self, "condition", StateCondition(self.condition))

    def describe(self) -> str:
        prefix = "not " if self.negate else ""
        return f"{self.role.value} is {prefix}{self.condition.value}"


@dataclass(frozen=True)
class Pattern:
    """
    A composable relationship pattern.

    Which fields are used depends on type:
        DIRECT    -> relation_types
        PATH      -> steps, through_sex, step_sexes
        STATE     -> conditions
        TIE       -> (none)
        COMPOSITE -> op, children
    """
    type: PatternType
    negate: bool = False

    relation_types: tuple[RelationType, ...] = ()

    steps: tuple[PathStep, ...] = ()
    through_sex: Optional[Sex] = None
    step_sexes: tuple[Optional[Sex], ...] = ()

    conditions: tuple[StatePredicate, ...] = ()

    op: Optional[CompositeOp] = None
    children: tuple[Pattern, ...] = ()

    description: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate pattern structure."""
        object.__setattr__(self, "type", PatternType(self.type))
        object.__setattr__(self, "relation_types", tuple(RelationType(t) for t in self.relation_types))
        object.__setattr__(self, "steps", tuple(PathStep(s) for s in self.steps))
        object.__setattr__(
            self, "step_sexes", tuple(None if s is None else Sex(s) for s in self.step_sexes)
        )
        if self.through_sex is not None:
            object.__setattr__(self, "through_sex", Sex(self.through_sex))
        object.__setattr__(self, "conditions", tuple(self.conditions))
        object.__setattr__(self, "children", tuple(self.children))

        if self.type == PatternType.DIRECT and not self.relation_types:
            raise ValueError("Direct pattern requires relation_types")
        if self.type == PatternType.PATH:
            if not self.steps:
                raise ValueError("Path pattern requires steps")
            if self.step_sexes and len(self.step_sexes) != len(self.steps):
                raise ValueError(
                    f"Path pattern has {len(self.steps)} steps but "
                    f"{len(self.step_sexes)} step sexes"
                )
        if self.type == PatternType.STATE and not self.conditions:
            raise ValueError("State pattern requires conditions")
        if self.type == PatternType.COMPOSITE:
            if self.op is None:
                raise ValueError("Composite pattern requires op")
            object.__setattr__(self, "op", CompositeOp(self.op))
            if not self.children:
                raise ValueError(f"Composite '{self.op.value}' requires children")

    def sex_for_step(self, index: int) -> Optional[Sex]:
        """Sex filter for the person reached at a path step."""
        if self.step_sexes:
            return self.step_sexes[index]
        return self.through_sex

    @property
    def uses_ties(self) -> bool:
        """True if evaluating this pattern consults levirate ties."""
        if self.type == PatternType.TIE or PathStep.TIE in self.steps:
            return True
        return any(child.uses_ties for child in self.children)

    @property
    def path_expression(self) -> str:
        return ".".join(step.value for step in self.steps)

    def describe(self) -> str:
        """Short human-readable rendering used in explanations."""
        if self.description:
            text = self.description
        elif self.type == PatternType.DIRECT:
            text = "direct " + "/".join(t.value for t in self.relation_types)
        elif self.type == PatternType.PATH:
            text = f"path {self.path_expression}"
        elif self.type == PatternType.STATE:
            text = " and ".join(c.describe() for c in self.conditions)
        elif self.type == PatternType.TIE:
            text = "levirate tie"
        else:
            joiner = f" {self.op.value.upper()} "
            text = "(" + joiner.join(c.describe() for c in self.children) + ")"
        return f"NOT {text}" if self.negate else text


# =============================================================================
# Helper Functions for Building Patterns
# =============================================================================

SexSpec = Union[Sex, str, None]


def DIRECT(*relation_types: Union[RelationType, str], description: Optional[str] = None) -> Pattern:
    """
    A relation of one of the given types connects A and B.

    Example:
        pattern = DIRECT(RelationType.FULL_MARRIAGE, RelationType.BETROTHAL)
    """
    return Pattern(type=PatternType.DIRECT, relation_types=tuple(relation_types), description=description)


def PATH(
    expression: str,
    through: SexSpec = None,
    sexes: Optional[tuple[SexSpec, ...]] = None,
    description: Optional[str] = None,
) -> Pattern:
    """
    B is reached from A by walking the dotted steps.

    Example:
        pattern = PATH("parent.sibling.spouse", sexes=("male", "male", "female"))
    """
    return Pattern(
        type=PatternType.PATH,
        steps=tuple(PathStep(s) for s in expression.split(".")),
        through_sex=through,
        step_sexes=tuple(sexes or ()),
        description=description,
    )


def STATE(*conditions: Union[StatePredicate, tuple[str, str]]) -> Pattern:
    """
    State checks on either side of the pair.

    Example:
        pattern = STATE(("B", "married"), ("A", "male"))
    """
    predicates = tuple(
        c if isinstance(c, StatePredicate) else StatePredicate(PairRole(c[0]), StateCondition(c[1]))
        for c in conditions
    )
    return Pattern(type=PatternType.STATE, conditions=predicates)


def TIE(description: Optional[str] = None) -> Pattern:
    """A and B are bound by an active levirate tie."""
    return Pattern(type=PatternType.TIE, description=description)


def ALL(*patterns: Pattern) -> Pattern:
    """Every sub-pattern matches."""
    return Pattern(type=PatternType.COMPOSITE, op=CompositeOp.AND, children=tuple(patterns))


def ANY(*patterns: Pattern) -> Pattern:
    """At least one sub-pattern matches."""
    return Pattern(type=PatternType.COMPOSITE, op=CompositeOp.OR, children=tuple(patterns))


def NOT(pattern: Pattern) -> Pattern:
    """Negate a pattern."""
    return replace(pattern, negate=not pattern.negate)
