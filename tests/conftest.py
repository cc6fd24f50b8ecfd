"""
Pytest configuration and fixtures for halachagraph tests.

Provides helper factories and common fixtures matching actual model definitions.
"""
import pytest

from halachagraph.config import reset_settings
from halachagraph.models import (
    AddEntity,
    AddRelation,
    Category,
    Dispute,
    Entity,
    HalachicLevel,
    LevirateSettings,
    Opinion,
    Pattern,
    Registry,
    Relation,
    RelationType,
    Rule,
    Sex,
    Slice,
    TemporalGraph,
)
from halachagraph.packs import load_sample_registry

from tests.helpers import ScenarioBuilder


# =============================================================================
# Factory Helpers
# =============================================================================

def make_entity(entity_id: str, sex: Sex = Sex.MALE, name: str = None) -> Entity:
    """Create an Entity with required fields."""
    return Entity(id=entity_id, name=name or entity_id.title(), sex=sex)


def make_relation(
    relation_id: str,
    type: RelationType,
    source_id: str,
    target_id: str,
    child_ids: tuple = (),
) -> Relation:
    """Create a Relation with required fields."""
    return Relation(
        id=relation_id,
        type=type,
        source_id=source_id,
        target_id=target_id,
        child_ids=tuple(child_ids),
    )


def make_graph(
    entities: list = None,
    relations: list = None,
    slices: list = None,
) -> TemporalGraph:
    """
    Create a TemporalGraph.

    slices is a list of event lists. Without slices, one slice adds every
    entity and then every relation.
    """
    entities = entities or []
    relations = relations or []
    if slices is None:
        slices = [
            [AddEntity(e.id) for e in entities] + [AddRelation(r.id) for r in relations]
        ]
    return TemporalGraph(
        entities=entities,
        relations=relations,
        slices=tuple(Slice(id=f"s{i}", events=tuple(events)) for i, events in enumerate(slices)),
    )


def make_category(
    id: str = "ervah",
    severity: int = 100,
    prohibits_marriage: bool = True,
    level: HalachicLevel = HalachicLevel.DORAITA,
) -> Category:
    """Create a Category with required fields."""
    return Category(
        id=id,
        name=id.replace("-", " ").title(),
        level=level,
        severity=severity,
        prohibits_marriage=prohibits_marriage,
    )


def make_rule(
    id: str,
    pattern: Pattern,
    category_id: str = "ervah",
    **kwargs,
) -> Rule:
    """Create a Rule with required fields."""
    return Rule(id=id, name=id.replace("-", " ").title(), pattern=pattern, category_id=category_id, **kwargs)


def make_dispute(
    id: str = "yesh-zikah",
    opinion_ids: tuple = ("yesh-zikah", "ein-zikah"),
    default_opinion_id: str = None,
) -> Dispute:
    """Create a Dispute with one opinion per id."""
    return Dispute(
        id=id,
        title=id.replace("-", " ").title(),
        opinions=tuple(Opinion(id=o, position=f"Holds {o}") for o in opinion_ids),
        default_opinion_id=default_opinion_id or opinion_ids[0],
    )


def make_registry(
    categories: list = None,
    rules: list = None,
    disputes: list = None,
    levirate: LevirateSettings = None,
    **kwargs,
) -> Registry:
    """Create a Registry; defaults to a single prohibiting category and no rules."""
    return Registry(
        id=kwargs.pop("id", "test-registry"),
        name=kwargs.pop("name", "Test Registry"),
        categories=tuple(categories if categories is not None else [make_category()]),
        rules=tuple(rules or []),
        disputes=tuple(disputes or []),
        levirate=levirate or LevirateSettings(),
        **kwargs,
    )


def build_levirate_family(b: ScenarioBuilder = None, setup=None) -> dict:
    """
    Yaakov and Leah with sons Reuven, Shimon and Levi. Reuven marries Tamar
    at slice 0 and dies childless at slice 1.

    setup(builder, ids) runs at the end of slice 0 to add more people.
    Returns a dict of ids plus the builder, positioned at slice 1.
    """
    b = b or ScenarioBuilder(title="levirate")
    ids = {"builder": b}
    ids["yaakov"] = b.male("Yaakov")
    ids["leah"] = b.female("Leah")
    ids["parents"] = b.marry(ids["yaakov"], ids["leah"])
    ids["reuven"] = b.add_child(ids["parents"], "Reuven", Sex.MALE)
    ids["shimon"] = b.add_child(ids["parents"], "Shimon", Sex.MALE)
    ids["levi"] = b.add_child(ids["parents"], "Levi", Sex.MALE)
    ids["tamar"] = b.female("Tamar")
    ids["marriage"] = b.marry(ids["reuven"], ids["tamar"])
    if setup is not None:
        setup(b, ids)
    b.next_slice("death")
    b.die(ids["reuven"])
    return ids


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Every test reads settings from a clean environment."""
    for name in (
        "HALACHAGRAPH_LOG_LEVEL",
        "HALACHAGRAPH_LOG_FORMAT",
        "HALACHAGRAPH_SNAPSHOT_CACHE",
        "HALACHAGRAPH_SNAPSHOT_CACHE_SIZE",
        "HALACHAGRAPH_STRICT_SCHEMA_VERSION",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(scope="session")
def sample_registry() -> Registry:
    """The bundled sample registry."""
    return load_sample_registry()


@pytest.fixture
def scenario() -> ScenarioBuilder:
    return ScenarioBuilder()


@pytest.fixture
def levirate_family() -> dict:
    """Ids of the levirate family; call ids['builder'].build() after extending it."""
    return build_levirate_family()
