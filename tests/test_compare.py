"""
Tests for the lenient structural comparator.
"""

from idrepo.identity.compare import compare, find_unique_key
from idrepo.identity.enums import DifferenceKind
from idrepo.identity.tree import Key, Where


class TestScalarsAndObjects:
    """Tests for mappings and scalar values."""

    def test_equal_trees_pass(self):
        tree = {"a": 1, "b": {"c": "x"}, "d": [1, 2]}
        assert not compare(tree, dict(tree)).failed

    def test_extra_stored_keys_are_tolerated(self):
        assert not compare({"a": 1}, {"a": 1, "b": 2}).failed

    def test_numbers_compare_numerically(self):
        assert not compare({"v": 1}, {"v": 1.0}).failed

    def test_booleans_are_not_numbers(self):
        result = compare({"v": True}, {"v": 1})
        assert [d.expression for d in result.failing_fields] == ["$.v"]

    def test_missing_field_reports_submitted_value(self):
        result = compare({"address": {"city": "X"}}, {"address": {}})
        assert len(result.missing_fields) == 1
        difference = result.missing_fields[0]
        assert difference.kind == DifferenceKind.MISSING_FIELD
        assert difference.path == (Key("address"), Key("city"))
        assert difference.expression == "$.address.city"
        assert difference.expected == "X"

    def test_failing_field_carries_both_values(self):
        result = compare({"phone": "1"}, {"phone": "2"})
        difference = result.failing_fields[0]
        assert (difference.expression, difference.expected, difference.actual) == ("$.phone", "1", "2")

    def test_kind_mismatch_is_failing(self):
        result = compare({"tags": {"x": 1}}, {"tags": [1]})
        assert [d.expression for d in result.failing_fields] == ["$.tags"]


class TestArrays:
    """Tests for array comparison."""

    def test_order_is_ignored(self):
        assert not compare({"t": ["a", "b"]}, {"t": ["b", "a"]}).failed

    def test_length_mismatch_is_missing_value(self):
        result = compare({"t": ["a"]}, {"t": ["a", "b"]})
        assert result.missing_value_paths() == [(Key("t"),)]
        assert not result.missing_fields

    def test_scalar_surplus_on_submitted_side(self):
        result = compare({"t": ["a", "b"]}, {"t": ["a", "c"]})
        assert [d.expression for d in result.missing_fields] == ["$.t[*]"]
        assert result.missing_fields[0].expected == "b"
        assert result.missing_value_paths() == [(Key("t"),)]

    def test_unique_key_pairs_elements(self):
        submitted = {"names": [{"language": "eng", "value": "A"}, {"language": "fra", "value": "B"}]}
        stored = {"names": [{"language": "fra", "value": "B"}, {"language": "eng", "value": "X"}]}
        result = compare(submitted, stored)
        assert [d.expression for d in result.failing_fields] == ["$.names[?(@.language=='eng')].value"]

    def test_unpaired_elements(self):
        submitted = {"names": [{"language": "fr", "value": "B"}]}
        stored = {"names": [{"language": "en", "value": "A"}]}
        result = compare(submitted, stored)
        assert [d.expression for d in result.missing_fields] == ["$.names[?(@.language=='fr')]"]
        assert result.missing_value_paths() == [(Key("names"),)]

    def test_language_preferred_as_unique_key(self):
        items = [{"id": 1, "language": "en"}, {"id": 2, "language": "fr"}]
        assert find_unique_key(items) == "language"

    def test_first_usable_key_when_no_language(self):
        items = [{"kind": "a", "id": 1}, {"kind": "a", "id": 2}]
        assert find_unique_key(items) == "id"

    def test_no_unique_key_falls_back_to_search(self):
        submitted = {"items": [{"k": 1}, {"k": 1}]}
        assert not compare(submitted, {"items": [{"k": 1}, {"k": 1}]}).failed
        result = compare(submitted, {"items": [{"k": 1}, {"k": 2}]})
        assert result.missing_value_paths() == [(Key("items"),)]

    def test_describe_lists_every_difference(self):
        result = compare({"a": 1, "b": 2}, {"a": 2})
        text = result.describe()
        assert "$.a:" in text
        assert "$.b:" in text


class TestPaths:
    """Tests for the paths carried by differences."""

    def test_dotted_key_stays_one_segment(self):
        result = compare({"geo.lat": "1"}, {"geo.lat": "2"})
        assert result.failing_fields[0].path == (Key("geo.lat"),)
        assert result.failing_fields[0].expression == "$['geo.lat']"

    def test_unique_key_value_with_bracket_and_quote(self):
        submitted = {"n": [{"id": "a]b", "v": 1}, {"id": "o'neil", "v": 1}]}
        stored = {"n": [{"id": "a]b", "v": 2}, {"id": "o'neil", "v": 1}]}
        result = compare(submitted, stored)
        assert [d.path for d in result.failing_fields] == [(Key("n"), Where("id", "a]b"), Key("v"))]

    def test_locales_pair_ignoring_case(self):
        submitted = {"names": [{"language": "EN", "value": "A"}]}
        stored = {"names": [{"language": "en", "value": "A"}]}
        result = compare(submitted, stored)
        assert not result.missing_fields
        assert not result.missing_values
        difference = result.failing_fields[0]
        assert difference.path == (Key("names"), Where("language", "EN", ignore_case=True), Key("language"))
        assert (difference.expected, difference.actual) == ("EN", "en")

    def test_locales_differing_only_in_case_are_not_unique(self):
        items = [{"language": "en", "v": 1}, {"language": "EN", "v": 2}]
        assert find_unique_key(items) == "v"
