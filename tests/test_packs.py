"""
Tests for registry pack loading.

Validates:
- The bundled sample registry loads
- YAML and JSON strings and files load
- Unknown fields and malformed patterns fail schema validation
- Broken references fail registry validation
- Schema version compatibility
- Unparseable content fails to load
"""
import copy
import json

import pytest
import yaml

from halachagraph.exceptions import RegistryLoadError, RegistryValidationError, RegistryVersionMismatch
from halachagraph.models import HalachicLevel, PathStep, PatternType, Sex
from halachagraph.packs import (
    SCHEMA_VERSION,
    RegistryPackLoader,
    check_schema_version,
    load_registry_pack,
    load_registry_pack_from_string,
    load_sample_registry,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def minimal_pack():
    """Minimal valid pack: one category, one rule, one dispute."""
    return {
        "schema_version": SCHEMA_VERSION,
        "id": "minimal",
        "name": "Minimal Registry",
        "categories": [
            {"id": "ervah", "name": "Ervah", "level": "doraita", "severity": 100, "prohibits_marriage": True},
        ],
        "disputes": [
            {
                "id": "yesh-zikah",
                "title": "Is There Zikah?",
                "opinions": [
                    {"id": "yesh-zikah", "position": "Yes"},
                    {"id": "ein-zikah", "position": "No"},
                ],
                "default_opinion": "yesh-zikah",
            }
        ],
        "rules": [
            {
                "id": "mother",
                "name": "Mother",
                "category": "ervah",
                "pattern": {"type": "path", "path": "parent", "through_sex": "female"},
            }
        ],
    }


# ============================================================================
# SAMPLE REGISTRY
# ============================================================================

class TestSampleRegistry:
    """The bundled sample registry."""

    def test_loads(self):
        registry = load_sample_registry()
        assert registry.id == "sample"
        assert registry.levirate.tie_category_id == "zikah-active"
        assert registry.levirate.include_half_siblings is True

    def test_categories(self, sample_registry):
        assert sample_registry.category("ervah-doraita").severity == 100
        assert sample_registry.category("ervah-doraita").level == HalachicLevel.DORAITA
        assert sample_registry.category("mutar").prohibits_marriage is False
        assert "shniyah" in sample_registry.prohibiting_category_ids
        assert "zikah-active" not in sample_registry.prohibiting_category_ids

    def test_rules_keep_declaration_order(self, sample_registry):
        ids = [rule.id for rule in sample_registry.rules]
        assert ids[:3] == ["ervah-mother", "ervah-daughter", "ervah-sister"]
        assert ids.index("ervah-aishes-ish") < ids.index("ervah-brothers-wife")

    def test_path_pattern_converted(self, sample_registry):
        pattern = sample_registry.rule("ervah-uncles-wife").pattern
        assert pattern.type == PatternType.PATH
        assert pattern.steps == (PathStep.PARENT, PathStep.SIBLING, PathStep.SPOUSE)
        assert pattern.step_sexes == (Sex.MALE, Sex.MALE, Sex.FEMALE)

    def test_null_step_sex_means_any(self, sample_registry):
        pattern = sample_registry.rule("shniyah-grandmother").pattern
        assert pattern.step_sexes == (None, Sex.FEMALE)

    def test_disputed_rule(self, sample_registry):
        rule = sample_registry.rule("achos-zekukah")
        assert rule.dispute_id == "yesh-zikah"
        assert rule.effective("ein-zikah") is None
        assert rule.effective("yesh-zikah").category_id == "ervah-drabbanan"

    def test_profile(self, sample_registry):
        profile = sample_registry.get_profile("follow-shmuel")
        assert profile.selection_for("yesh-zikah") == "ein-zikah"
        assert sample_registry.get_profile("missing") is None


# ============================================================================
# LOADING
# ============================================================================

class TestLoadFromString:
    """Tests for load_registry_pack_from_string."""

    def test_yaml(self, minimal_pack):
        registry = load_registry_pack_from_string(yaml.safe_dump(minimal_pack))
        assert registry.id == "minimal"
        assert registry.rule("mother").status_name is None
        assert registry.default_opinion("yesh-zikah") == "yesh-zikah"

    def test_json(self, minimal_pack):
        registry = load_registry_pack_from_string(json.dumps(minimal_pack), format="json")
        assert [c.id for c in registry.categories] == ["ervah"]

    def test_same_content_same_fingerprint(self, minimal_pack):
        first = load_registry_pack_from_string(yaml.safe_dump(minimal_pack))
        second = load_registry_pack_from_string(json.dumps(minimal_pack), format="json")
        assert first.fingerprint == second.fingerprint

    def test_malformed_yaml(self):
        with pytest.raises(RegistryLoadError):
            load_registry_pack_from_string("id: [unclosed")

    def test_malformed_json(self):
        with pytest.raises(RegistryLoadError):
            load_registry_pack_from_string("{not json", format="json")

    def test_not_a_mapping(self):
        with pytest.raises(RegistryLoadError) as exc_info:
            load_registry_pack_from_string("- just\n- a list\n")
        assert "mapping" in exc_info.value.message


class TestLoadFromFile:
    """Tests for RegistryPackLoader and load_registry_pack."""

    def test_yaml_file(self, tmp_path, minimal_pack):
        path = tmp_path / "registry.yaml"
        path.write_text(yaml.safe_dump(minimal_pack), encoding="utf-8")
        assert load_registry_pack(path).id == "minimal"

    def test_json_file(self, tmp_path, minimal_pack):
        path = tmp_path / "registry.json"
        path.write_text(json.dumps(minimal_pack), encoding="utf-8")
        assert load_registry_pack(str(path)).id == "minimal"

    def test_loader_remembers_registries(self, tmp_path, minimal_pack):
        path = tmp_path / "registry.yaml"
        path.write_text(yaml.safe_dump(minimal_pack), encoding="utf-8")
        loader = RegistryPackLoader()
        registry = loader.load(path)

        assert loader.get_registry("minimal") is registry
        assert loader.get_registry("other") is None
        assert loader.list_registries() == ["minimal"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(RegistryLoadError) as exc_info:
            load_registry_pack(tmp_path / "missing.yaml")
        assert exc_info.value.details["path"].endswith("missing.yaml")


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidation:
    """Schema and reference validation failures."""

    def test_unknown_field(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["categories"][0]["weight"] = 3
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))

    def test_missing_categories(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["categories"] = []
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))

    def test_unknown_path_step(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["rules"][0]["pattern"] = {"type": "path", "path": "parent.cousin"}
        with pytest.raises(RegistryValidationError) as exc_info:
            load_registry_pack_from_string(yaml.safe_dump(pack))
        assert "cousin" in json.dumps(exc_info.value.details["errors"], default=str)

    def test_path_sexes_length(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["rules"][0]["pattern"] = {"type": "path", "path": "parent.parent", "path_sexes": ["female"]}
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))

    def test_composite_requires_children(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["rules"][0]["pattern"] = {"type": "composite", "op": "and"}
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))

    def test_default_opinion_must_exist(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["disputes"][0]["default_opinion"] = "nobody"
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))

    def test_variants_require_dispute(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["rules"][0]["variants"] = {"yesh-zikah": {"status_name": "Mother"}}
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))

    def test_unknown_category_reference(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["rules"][0]["category"] = "missing"
        with pytest.raises(RegistryValidationError) as exc_info:
            load_registry_pack_from_string(yaml.safe_dump(pack))
        assert exc_info.value.details["source"] == "<yaml string>"
        assert any("missing" in e for e in exc_info.value.details["errors"])

    def test_profile_selecting_unknown_opinion(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["profiles"] = [{"id": "p", "name": "P", "selections": {"yesh-zikah": "maybe"}}]
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))

    def test_unknown_tie_category(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["levirate"] = {"tie_category": "zikah"}
        with pytest.raises(RegistryValidationError):
            load_registry_pack_from_string(yaml.safe_dump(pack))


# ============================================================================
# SCHEMA VERSION
# ============================================================================

class TestSchemaVersion:
    """Major-version compatibility checks."""

    def test_minor_difference_is_compatible(self):
        assert check_schema_version({"schema_version": "1.4.0"})

    def test_missing_version_is_compatible(self):
        assert check_schema_version({})

    def test_major_mismatch_rejected(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["schema_version"] = "2.0.0"
        with pytest.raises(RegistryVersionMismatch) as exc_info:
            load_registry_pack_from_string(yaml.safe_dump(pack), strict_version=True)
        assert exc_info.value.details["pack_version"] == "2.0.0"

    def test_lenient_loading(self, minimal_pack):
        pack = copy.deepcopy(minimal_pack)
        pack["schema_version"] = "2.0.0"
        registry = load_registry_pack_from_string(yaml.safe_dump(pack), strict_version=False)
        assert registry.id == "minimal"

    def test_strictness_from_environment(self, monkeypatch, minimal_pack):
        monkeypatch.setenv("HALACHAGRAPH_STRICT_SCHEMA_VERSION", "false")
        pack = copy.deepcopy(minimal_pack)
        pack["schema_version"] = "2.0.0"
        assert RegistryPackLoader().strict_version is False
        assert load_registry_pack_from_string(yaml.safe_dump(pack)).id == "minimal"
