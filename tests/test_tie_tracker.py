"""
Tests for levirate tie derivation.

Tests cover:
- Tie creation on a childless death
- Blocking conditions (children, divorce, no brothers, widow's death)
- Resolution by levirate marriage and by release
- Earliest resolution, lapse and ervah exemption
- Half-sibling eligibility
- Temporal visibility of resolutions
"""
from halachagraph.engine import TieTracker, resolve
from halachagraph.models import LevirateSettings, Sex, TieStatus

from tests.conftest import build_levirate_family, make_registry
from tests.helpers import ScenarioBuilder


def _tracker(graph, include_half_siblings: bool = True) -> TieTracker:
    registry = make_registry(levirate=LevirateSettings(include_half_siblings=include_half_siblings))
    return TieTracker(graph, registry)


def _ids(entities) -> list:
    return [e.id for e in entities]


# =============================================================================
# Creation
# =============================================================================

class TestTieCreation:
    """Tests for when a tie arises."""

    def test_brothers_bound_after_childless_death(self, levirate_family):
        graph = levirate_family["builder"].build()
        tracker = _tracker(graph)
        assert _ids(tracker.yevamim_for("tamar", 1)) == ["shimon", "levi"]
        assert _ids(tracker.yevamos(1)) == ["tamar"]

    def test_no_tie_before_death(self, levirate_family):
        tracker = _tracker(levirate_family["builder"].build())
        assert tracker.yevamim_for("tamar", 0) == []
        assert tracker.ties_for("tamar", 0) == []

    def test_created_then_active(self, levirate_family):
        b = levirate_family["builder"]
        b.next_slice()
        tracker = _tracker(b.build())

        [created] = tracker.ties_for("tamar", 1)
        assert created.status == TieStatus.CREATED
        assert created.created_at_slice == 1
        assert created.deceased_id == "reuven"
        assert created.originating_relation_id == levirate_family["marriage"]

        [active] = tracker.ties_for("tamar", 2)
        assert active.status == TieStatus.ACTIVE
        assert active.holders == ("shimon", "levi")

    def test_child_blocks_tie(self):
        def setup(b, ids):
            b.add_child(ids["marriage"], "Chanoch", Sex.MALE)

        ids = build_levirate_family(setup=setup)
        tracker = _tracker(ids["builder"].build())
        assert tracker.yevamim_for("tamar", 1) == []
        assert tracker.ties_for("tamar", 1) == []

    def test_child_born_in_later_slice_blocks_tie(self):
        b = ScenarioBuilder()
        parents = b.marry(b.male("Yaakov"), b.female("Leah"))
        husband = b.add_child(parents, "Reuven", Sex.MALE)
        b.add_child(parents, "Shimon", Sex.MALE)
        wife = b.female("Tamar")
        union = b.marry(husband, wife)
        b.next_slice("birth")
        b.add_child(union, "Chanoch", Sex.MALE)
        b.next_slice("death")
        b.die(husband)
        assert _tracker(b.build()).yevamim_for(wife, 2) == []

    def test_child_dying_with_father_does_not_block(self):
        def setup(b, ids):
            ids["chanoch"] = b.add_child(ids["marriage"], "Chanoch", Sex.MALE)

        ids = build_levirate_family(setup=setup)
        ids["builder"].die(ids["chanoch"])
        tracker = _tracker(ids["builder"].build())
        assert _ids(tracker.yevamim_for("tamar", 1)) == ["shimon", "levi"]

    def test_child_from_other_wife_blocks_tie(self):
        def setup(b, ids):
            other = b.marry(ids["reuven"], b.female("Adah"))
            b.add_child(other, "Peretz", Sex.FEMALE)

        ids = build_levirate_family(setup=setup)
        assert _tracker(ids["builder"].build()).yevamim_for("tamar", 1) == []

    def test_child_from_divorced_wife_blocks_tie(self):
        def setup(b, ids):
            first = b.marry(ids["reuven"], b.female("Adah"))
            b.add_child(first, "Peretz", Sex.MALE)
            b.divorce(first)

        ids = build_levirate_family(setup=setup)
        tracker = _tracker(ids["builder"].build())
        assert tracker.yevamim_for("tamar", 1) == []
        assert tracker.ties_for("tamar", 1) == []

    def test_divorce_before_death_blocks_tie(self):
        def setup(b, ids):
            b.divorce(ids["marriage"])

        ids = build_levirate_family(setup=setup)
        assert _tracker(ids["builder"].build()).yevamim_for("tamar", 1) == []

    def test_no_brothers_no_tie(self):
        b = ScenarioBuilder()
        husband = b.male("Er")
        wife = b.female("Tamar")
        b.marry(husband, wife)
        b.next_slice()
        b.die(husband)
        tracker = _tracker(b.build())
        assert tracker.ties_for(wife, 1) == []
        assert tracker.yevamos(1) == []

    def test_brother_dying_with_husband_is_not_candidate(self):
        ids = build_levirate_family()
        b = ids["builder"]
        # Levi dies in the same slice as Reuven: not alive at the death slice
        b.die(ids["levi"])
        tracker = _tracker(b.build())
        assert _ids(tracker.yevamim_for("tamar", 1)) == ["shimon"]

    def test_widow_death_ends_tie(self, levirate_family):
        b = levirate_family["builder"]
        b.next_slice()
        b.die("tamar")
        tracker = _tracker(b.build())
        assert tracker.yevamim_for("tamar", 2) == []
        assert tracker.ties_for("tamar", 2) == []

    def test_betrothal_creates_tie(self):
        b = ScenarioBuilder()
        father = b.male("Yaakov")
        parents = b.marry(father, b.female("Leah"))
        reuven = b.add_child(parents, "Reuven", Sex.MALE)
        shimon = b.add_child(parents, "Shimon", Sex.MALE)
        tamar = b.female("Tamar")
        b.erusin(reuven, tamar)
        b.next_slice()
        b.die(reuven)
        assert _ids(_tracker(b.build()).yevamim_for(tamar, 1)) == [shimon]


# =============================================================================
# Resolution
# =============================================================================

class TestTieResolution:
    """Tests for levirate marriage and release."""

    def test_levirate_marriage_resolves_for_all(self, levirate_family):
        b = levirate_family["builder"]
        b.next_slice("yibum")
        b.yibum("shimon", "tamar")
        tracker = _tracker(b.build())

        assert tracker.yevamim_for("tamar", 2) == []
        [tie] = tracker.ties_for("tamar", 2)
        assert tie.status == TieStatus.RESOLVED_BY_MARRIAGE
        assert tie.resolved_by == "shimon"
        assert tie.resolved_at_slice == 2

    def test_resolution_invisible_before_its_slice(self, levirate_family):
        b = levirate_family["builder"]
        b.next_slice()
        b.next_slice()
        b.yibum("levi", "tamar")
        tracker = _tracker(b.build())
        assert _ids(tracker.yevamim_for("tamar", 2)) == ["shimon", "levi"]
        assert tracker.yevamim_for("tamar", 3) == []

    def test_release_resolves_for_all(self, levirate_family):
        b = levirate_family["builder"]
        b.next_slice("chalitzah")
        b.chalitzah("levi", "tamar")
        graph = b.build()
        tracker = _tracker(graph)

        assert tracker.yevamim_for("tamar", 2) == []
        assert tracker.yevamos(2) == []
        [tie] = tracker.ties_for("tamar", 2)
        assert tie.status == TieStatus.RESOLVED_BY_RELEASE
        assert tie.resolved_by == "levi"
        assert tie.resolved_at_slice == 2
        assert tie.holders == ()

        snapshot = resolve(graph, 2)
        for brother in ("shimon", "levi"):
            view = tracker.tie_between(snapshot, brother, "tamar")
            assert view.status == TieStatus.RESOLVED_BY_RELEASE
            assert view.resolved_by == "levi"

    def test_earliest_resolution_wins(self, levirate_family):
        b = levirate_family["builder"]
        b.next_slice()
        b.chalitzah("levi", "tamar")
        b.next_slice()
        b.yibum("shimon", "tamar")
        tracker = _tracker(b.build())

        [tie] = tracker.ties_for("tamar", 3)
        assert tie.status == TieStatus.RESOLVED_BY_RELEASE
        assert tie.resolved_at_slice == 2
        assert tie.resolved_by == "levi"

    def test_marriage_survives_later_divorce(self, levirate_family):
        """A later change to the levirate union does not revive the tie."""
        b = levirate_family["builder"]
        b.next_slice()
        union = b.yibum("shimon", "tamar")
        b.next_slice()
        b.divorce(union)
        tracker = _tracker(b.build())
        [tie] = tracker.ties_for("tamar", 3)
        assert tie.status == TieStatus.RESOLVED_BY_MARRIAGE

    def test_lapses_when_last_holder_dies(self):
        b = ScenarioBuilder()
        father = b.male("Yaakov")
        parents = b.marry(father, b.female("Leah"))
        reuven = b.add_child(parents, "Reuven", Sex.MALE)
        shimon = b.add_child(parents, "Shimon", Sex.MALE)
        tamar = b.female("Tamar")
        b.marry(reuven, tamar)
        b.next_slice()
        b.die(reuven)
        b.next_slice()
        b.die(shimon)
        tracker = _tracker(b.build())

        [tie] = tracker.ties_for(tamar, 2)
        assert tie.status == TieStatus.LAPSED
        assert tie.resolved_at_slice == 2
        assert tracker.yevamim_for(tamar, 2) == []

    def test_pair_view_for_unrelated_pair(self, levirate_family):
        graph = levirate_family["builder"].build()
        tracker = _tracker(graph)
        assert tracker.tie_between(resolve(graph, 1), "yaakov", "tamar").status == TieStatus.NONE


# =============================================================================
# Half Siblings
# =============================================================================

class TestHalfSiblings:
    """Tests for the half-sibling eligibility flag."""

    def _graph(self):
        def setup(b, ids):
            second = b.marry(ids["yaakov"], b.female("Bilhah"))
            ids["dan"] = b.add_child(second, "Dan", Sex.MALE)

        ids = build_levirate_family(setup=setup)
        return ids["builder"].build()

    def test_half_brothers_included(self):
        assert _ids(_tracker(self._graph()).yevamim_for("tamar", 1)) == ["shimon", "levi", "dan"]

    def test_half_brothers_excluded(self):
        tracker = _tracker(self._graph(), include_half_siblings=False)
        assert _ids(tracker.yevamim_for("tamar", 1)) == ["shimon", "levi"]


# =============================================================================
# Ervah Exemption
# =============================================================================

class TestErvahExemption:
    """Tests for brothers exempt because the widow is forbidden to them."""

    def _family(self):
        def setup(b, ids):
            ids["yael"] = b.add_sibling(ids["tamar"], "Yael", Sex.FEMALE)
            b.marry(ids["levi"], ids["yael"])

        ids = build_levirate_family(setup=setup)
        ids["graph"] = ids["builder"].build()
        return ids

    def test_exempt_brother_is_not_candidate(self):
        ids = self._family()
        calls = []

        def married_to_her_sister(snapshot, brother_id, widow_id):
            calls.append((snapshot, brother_id, widow_id))
            return brother_id == "levi"

        tracker = TieTracker(ids["graph"], make_registry(), ervah_check=married_to_her_sister)

        assert _ids(tracker.yevamim_for("tamar", 1)) == ["shimon"]
        [tie] = tracker.ties_for("tamar", 1)
        assert tie.holders == ("shimon",)
        assert tracker.tie_between(resolve(ids["graph"], 1), "levi", "tamar").status == TieStatus.NONE
        assert {(brother, widow) for _, brother, widow in calls} == {("shimon", "tamar"), ("levi", "tamar")}

    def test_check_sees_death_slice_without_originating_union(self):
        ids = self._family()
        snapshots = []

        def record(snapshot, brother_id, widow_id):
            snapshots.append(snapshot)
            return False

        tracker = TieTracker(ids["graph"], make_registry(), ervah_check=record)
        tracker.ties_for("tamar", 1)

        assert snapshots
        for snapshot in snapshots:
            assert snapshot.slice_index == 1
            assert ids["marriage"] not in snapshot.relations
            assert snapshot.spouses("tamar") == ()

    def test_every_brother_exempt_means_no_tie(self):
        ids = self._family()
        tracker = TieTracker(ids["graph"], make_registry(), ervah_check=lambda snapshot, brother, widow: True)
        assert tracker.ties_for("tamar", 1) == []
        assert tracker.yevamos(1) == []
