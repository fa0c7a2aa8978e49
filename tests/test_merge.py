"""
Tests for payload reconciliation.
"""

import copy

import pytest

from idrepo.identity.compare import compare
from idrepo.identity.errors import ProcessingFailedError
from idrepo.identity.merge import PayloadReconciler


@pytest.fixture
def reconciler():
    return PayloadReconciler(max_passes=5)


class TestIdempotence:
    """Equal payloads are never touched."""

    def test_equal_payloads_unchanged(self, reconciler):
        stored = {"fullName": [{"language": "eng", "value": "A"}], "phone": "1"}
        submitted = copy.deepcopy(stored)

        result = reconciler.reconcile(submitted, stored)

        assert result.changed is False
        assert result.rounds == 0
        assert result.stored is stored
        assert result.input is submitted

    def test_subset_submission_unchanged(self, reconciler):
        stored = {"phone": "1", "email": "a@b.c"}
        result = reconciler.reconcile({"phone": "1"}, stored)
        assert result.changed is False
        assert result.stored == {"phone": "1", "email": "a@b.c"}


class TestScalarConflicts:
    """Tests for failing-field resolution."""

    def test_submitted_value_wins(self, reconciler):
        result = reconciler.reconcile({"phone": "2"}, {"phone": "1", "email": "x"})
        assert result.stored == {"phone": "2", "email": "x"}
        assert result.changed is True
        assert result.converged is True

    def test_null_never_erases_stored_value(self, reconciler):
        stored = {"field": "x"}
        result = reconciler.reconcile({"field": None}, stored)

        assert result.input["field"] == "x"
        assert result.stored["field"] == "x"
        assert result.changed is False

    def test_containers_replace_wholesale_on_both_sides(self, reconciler):
        result = reconciler.reconcile({"address": ["line"]}, {"address": {"city": "X"}})
        assert result.stored["address"] == ["line"]
        assert result.input["address"] == ["line"]

    def test_conflict_inside_locale_array(self, reconciler):
        stored = {"names": [{"language": "en", "value": "A"}, {"language": "fr", "value": "B"}]}
        submitted = {"names": [{"language": "en", "value": "Z"}, {"language": "fr", "value": "B"}]}

        result = reconciler.reconcile(submitted, stored)

        assert {"language": "en", "value": "Z"} in result.stored["names"]
        assert {"language": "fr", "value": "B"} in result.stored["names"]


class TestMissingFields:
    """Tests for missing-field insertion."""

    def test_nested_field_inserted(self, reconciler):
        result = reconciler.reconcile({"address": {"city": "X"}}, {"address": {"zip": "1"}})
        assert result.stored["address"] == {"zip": "1", "city": "X"}

    def test_top_level_field_inserted(self, reconciler):
        result = reconciler.reconcile({"address": {"city": "X"}}, {"phone": "1"})
        assert result.stored == {"phone": "1", "address": {"city": "X"}}

    def test_scalar_array_value_appended(self, reconciler):
        result = reconciler.reconcile({"tags": ["a", "b"]}, {"tags": ["a", "c"]})
        assert sorted(result.stored["tags"]) == ["a", "b", "c"]

    def test_key_containing_dot_inserted(self, reconciler):
        result = reconciler.reconcile({"geo.lat": "1"}, {"name": "x"})
        assert result.stored == {"name": "x", "geo.lat": "1"}
        assert result.converged is True

    def test_key_containing_dot_overwritten(self, reconciler):
        result = reconciler.reconcile({"geo.lat": "1"}, {"geo.lat": "2"})
        assert result.stored == {"geo.lat": "1"}

    @pytest.mark.parametrize("item_id", ["a]b", "o'neil", "x')] || (@.id=='y"])
    def test_unique_key_value_with_path_characters(self, reconciler, item_id):
        stored = {"n": [{"id": item_id, "v": 2}, {"id": "other", "v": 3}]}
        submitted = {"n": [{"id": item_id, "v": 1}, {"id": "other", "v": 3}]}

        result = reconciler.reconcile(submitted, stored)

        assert result.stored["n"] == [{"id": item_id, "v": 1}, {"id": "other", "v": 3}]
        assert result.converged is True


class TestLocaleUnion:
    """Tests for the bidirectional locale union."""

    def test_both_sides_receive_missing_locales(self, reconciler):
        stored = {"names": [{"language": "en", "value": "A"}]}
        submitted = {"names": [{"language": "fr", "value": "B"}]}

        result = reconciler.reconcile(submitted, stored)

        for side in (result.stored, result.input):
            assert {entry["language"] for entry in side["names"]} == {"en", "fr"}
        assert result.converged is True

    def test_locale_match_is_case_insensitive(self, reconciler):
        submitted = {"names": [{"language": "EN", "value": "A"}]}
        stored = {"names": [{"language": "en", "value": "A"}, {"language": "ar", "value": "C"}]}

        reconciler.apply_missing_values(submitted, stored, compare(submitted, stored))

        assert len(stored["names"]) == 2
        assert [entry["language"] for entry in submitted["names"]] == ["EN", "ar"]

    def test_locale_case_change_replaces_entry(self, reconciler):
        stored = {"names": [{"language": "en", "value": "A"}]}
        result = reconciler.reconcile({"names": [{"language": "EN", "value": "B"}]}, stored)

        assert result.stored["names"] == [{"language": "EN", "value": "B"}]
        assert result.converged is True

    def test_locale_union_then_case_change(self, reconciler):
        submitted = {"names": [{"language": "EN", "value": "A"}]}
        stored = {"names": [{"language": "en", "value": "A"}, {"language": "ar", "value": "C"}]}

        result = reconciler.reconcile(submitted, stored)

        assert result.stored["names"] == [
            {"language": "EN", "value": "A"},
            {"language": "ar", "value": "C"},
        ]
        assert result.converged is True

    def test_arguments_not_mutated(self, reconciler):
        stored = {"names": [{"language": "en", "value": "A"}]}
        submitted = {"names": [{"language": "fr", "value": "B"}]}
        stored_before = copy.deepcopy(stored)
        submitted_before = copy.deepcopy(submitted)

        reconciler.reconcile(submitted, stored)

        assert stored == stored_before
        assert submitted == submitted_before


class TestConvergence:
    """Tests for the bounded fixpoint."""

    def test_stops_when_round_changes_nothing(self, reconciler):
        result = reconciler.reconcile({"tags": ["a"]}, {"tags": ["a", "b"]})
        assert result.converged is False
        assert result.rounds == 1
        assert result.changed is False
        assert result.stored == {"tags": ["a", "b"]}

    def test_max_passes_must_be_positive(self):
        with pytest.raises(ValueError):
            PayloadReconciler(max_passes=0)

    def test_non_mapping_root_rejected(self, reconciler):
        with pytest.raises(ProcessingFailedError):
            reconciler.reconcile(["a"], {"a": 1})
