"""
Tests for canonical serialization and the exception hierarchy.
"""
from halachagraph.canon import canonical_json, content_hash, content_hash_short
from halachagraph.exceptions import (
    GraphIntegrityError,
    HalachaGraphError,
    OutOfRangeError,
    RegistryError,
    RegistryValidationError,
    UnknownEntityError,
)
from halachagraph.models import RelationType, Sex

from tests.conftest import make_entity, make_relation


class TestCanonicalJson:
    """Tests for deterministic serialization."""

    def test_sorted_compact(self):
        assert canonical_json({"b": 1, "a": [2, 3]}) == '{"a":[2,3],"b":1}'

    def test_enums_and_sets(self):
        assert canonical_json({"sex": Sex.FEMALE, "ids": {"b", "a"}}) == '{"ids":["a","b"],"sex":"female"}'

    def test_dataclasses_serialize_by_field(self):
        relation = make_relation("m", RelationType.FULL_MARRIAGE, "a", "b")
        data = canonical_json(relation)
        assert '"type":"full-marriage"' in data
        assert '"source_id":"a"' in data

    def test_hash_stable_and_content_sensitive(self):
        assert content_hash(make_entity("a")) == content_hash(make_entity("a"))
        assert content_hash(make_entity("a")) != content_hash(make_entity("a", Sex.FEMALE))
        assert len(content_hash({"x": 1})) == 64
        assert content_hash_short({"x": 1}) == content_hash({"x": 1})[:12]


class TestExceptions:
    """Tests for error codes and serialization."""

    def test_hierarchy(self):
        assert issubclass(UnknownEntityError, GraphIntegrityError)
        assert issubclass(RegistryValidationError, RegistryError)
        assert issubclass(OutOfRangeError, HalachaGraphError)

    def test_str_includes_code_and_slice(self):
        error = OutOfRangeError(message="Slice 9 is out of range", slice_index=9)
        assert str(error) == "[HG_OUT_OF_RANGE] Slice 9 is out of range (slice: 9)"

    def test_to_dict(self):
        error = RegistryValidationError(message="bad", details={"errors": ["x"]})
        assert error.to_dict() == {
            "code": "HG_REGISTRY_VALIDATION_ERROR",
            "message": "bad",
            "details": {"errors": ["x"]},
        }

    def test_to_dict_omits_empty_fields(self):
        assert HalachaGraphError(message="oops").to_dict() == {"code": "HG_INTERNAL_ERROR", "message": "oops"}
