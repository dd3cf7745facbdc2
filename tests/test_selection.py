"""Tests for SelectionController and SavedSet."""

import pytest

from conftest import DEFAULT_CENTER, make_result, raw_provider, record
from healthspot.core.errors import EmptyQuery, NetworkError
from healthspot.core.saved import SavedSet
from healthspot.core.selection import OutcomeStatus
from healthspot.providers.base import Coordinate


def assert_consistent(state):
    assert (state.selected is None) == (state.active_marker_id is None)
    if state.selected is not None:
        assert state.selected in state.providers
        assert state.active_marker_id == state.selected.id


class TestApplyFetchResult:
    def test_non_empty_selects_first_in_source_order(self, controller):
        result = make_result(raw_provider("b", rating=3.0), raw_provider("a", rating=5.0))

        outcome = controller.apply_fetch_result(result)

        assert outcome.status == OutcomeStatus.LOADED
        assert outcome.count == 2
        assert controller.state.selected.id == "b"
        assert controller.state.active_marker_id == "b"
        assert_consistent(controller.state)

    def test_recommended_center_is_adopted(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a"), center={"lat": 40.5, "lng": -74.0}))
        assert controller.center == Coordinate(lat=40.5, lng=-74.0)

    def test_without_center_keeps_previous(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a")))
        assert controller.center == DEFAULT_CENTER

    def test_empty_result_clears_and_keeps_center(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a"), center={"lat": 1.0, "lng": 2.0}))

        outcome = controller.apply_fetch_result(make_result())

        assert outcome.status == OutcomeStatus.EMPTY
        assert controller.state.providers == ()
        assert controller.state.selected is None
        assert controller.state.active_marker_id is None
        assert controller.center == Coordinate(lat=1.0, lng=2.0)

    def test_failure_clears_and_surfaces_error(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a"), center={"lat": 1.0, "lng": 2.0}))
        error = NetworkError("boom")

        outcome = controller.apply_fetch_result(error)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error is error
        assert controller.state.providers == ()
        assert_consistent(controller.state)
        assert controller.center == Coordinate(lat=1.0, lng=2.0)

    def test_empty_query_is_a_failure_outcome(self, controller):
        outcome = controller.apply_fetch_result(EmptyQuery())
        assert outcome.status == OutcomeStatus.FAILED

    def test_new_fetch_resets_selection_to_first(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a"), raw_provider("b")))
        controller.select_by_id("b")

        controller.apply_fetch_result(make_result(raw_provider("a"), raw_provider("b")))

        assert controller.state.selected.id == "a"

    def test_each_list_replacement_bumps_version(self, controller):
        versions = [controller.state.list_version]
        controller.apply_fetch_result(make_result(raw_provider("a")))
        versions.append(controller.state.list_version)
        controller.apply_fetch_result(make_result())
        versions.append(controller.state.list_version)
        assert versions == [0, 1, 2]


class TestSelectProvider:
    def test_selection_recenters_on_coordinate(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a", lat=1.0, lng=1.0), raw_provider("b", lat=40.0, lng=-73.9)))
        version = controller.state.list_version

        controller.select_provider(record("b", lat=40.0, lng=-73.9))

        assert controller.state.selected.id == "b"
        assert controller.state.active_marker_id == "b"
        assert controller.center == Coordinate(lat=40.0, lng=-73.9)
        assert controller.state.list_version == version
        assert_consistent(controller.state)

    def test_selects_list_instance(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a")))
        listed = controller.state.providers[0]

        selected = controller.select_provider(record("a"))

        assert selected is listed
        assert controller.state.selected is listed

    def test_unmappable_selection_keeps_center(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a"), raw_provider("b", lat=None)))
        controller.set_center(Coordinate(lat=5.0, lng=5.0))

        controller.select_by_id("b")

        assert controller.state.active_marker_id == "b"
        assert controller.center == Coordinate(lat=5.0, lng=5.0)

    def test_record_outside_list_is_rejected(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a")))
        with pytest.raises(ValueError):
            controller.select_provider(record("zzz"))
        with pytest.raises(KeyError):
            controller.select_by_id("zzz")
        assert controller.state.selected.id == "a"

    def test_invariant_holds_over_operation_sequences(self, controller):
        steps = [
            lambda: controller.apply_fetch_result(make_result(raw_provider("a"), raw_provider("b"))),
            lambda: controller.select_by_id("b"),
            lambda: controller.apply_fetch_result(NetworkError("down")),
            lambda: controller.apply_fetch_result(make_result(raw_provider("c"))),
            lambda: controller.apply_fetch_result(make_result()),
        ]
        for step in steps:
            step()
            assert_consistent(controller.state)


class TestToggleSaved:
    def test_toggle_adds_then_removes(self, controller):
        provider = record("a")
        assert controller.toggle_saved(provider) is True
        assert controller.saved.has("a")
        assert controller.toggle_saved(provider) is False
        assert not controller.saved.has("a")

    def test_toggle_pairs_restore_membership(self, controller):
        controller.saved.add(record("a"))
        controller.toggle_saved(record("a"))
        controller.toggle_saved(record("a"))
        assert controller.saved.has("a")

    def test_toggle_does_not_touch_selection(self, controller):
        controller.apply_fetch_result(make_result(raw_provider("a"), raw_provider("b")))
        before = controller.state
        controller.toggle_saved(controller.state.providers[1])
        assert controller.state is before


class TestSavedSet:
    def test_keyed_by_identity_in_insertion_order(self):
        saved = SavedSet()
        saved.add(record("b"))
        saved.add(record("a"))
        saved.add(record("b"))
        assert [r.id for r in saved] == ["b", "a"]
        assert len(saved) == 2

    def test_remove_missing_is_harmless(self):
        saved = SavedSet()
        saved.remove("nope")
        assert len(saved) == 0
