"""
Tests for payload tree path handling.
"""

import pytest

from idrepo.identity.errors import PathResolutionError
from idrepo.identity.tree import (
    Each,
    Key,
    Where,
    append,
    format_key_value,
    put,
    render,
    select,
    select_one,
)


class TestRender:
    """Tests for rendering paths as predicate expressions."""

    def test_root(self):
        assert render(()) == "$"

    def test_plain_path(self):
        assert render((Key("address"), Key("city"))) == "$.address.city"

    def test_unique_key_filter(self):
        path = (Key("names"), Where("language", "en"), Key("value"))
        assert render(path) == "$.names[?(@.language=='en')].value"

    def test_each(self):
        assert render((Key("tags"), Each())) == "$.tags[*]"

    def test_dotted_key_is_bracketed(self):
        assert render((Key("geo.lat"),)) == "$['geo.lat']"

    def test_filter_literal_is_escaped(self):
        assert render((Key("n"), Where("id", "a]b"))) == "$.n[?(@.id=='a]b')]"
        assert render((Key("n"), Where("id", "o'neil"))) == "$.n[?(@.id=='o\\'neil')]"

    def test_format_key_value(self):
        assert format_key_value(True) == "true"
        assert format_key_value(None) == "null"
        assert format_key_value(3) == "3"


class TestReadWrite:
    """Tests for select, put and append."""

    @pytest.fixture
    def tree(self):
        return {
            "address": {"city": "Paris"},
            "names": [
                {"language": "en", "value": "A"},
                {"language": "fr", "value": "B"},
            ],
            "tags": ["x", "y"],
            "geo.lat": "48.8",
        }

    def test_select_by_filter(self, tree):
        assert select_one(tree, (Key("names"), Where("language", "fr"), Key("value"))) == "B"

    def test_filter_can_ignore_case(self, tree):
        path = (Key("names"), Where("language", "FR", ignore_case=True), Key("value"))
        assert select_one(tree, path) == "B"
        assert select_one(tree, (Key("names"), Where("language", "FR"), Key("value"))) is None

    def test_select_each(self, tree):
        assert select(tree, (Key("tags"), Each())) == ["x", "y"]

    def test_select_key_containing_dot(self, tree):
        assert select_one(tree, (Key("geo.lat"),)) == "48.8"
        assert select(tree, (Key("geo"), Key("lat"))) == []

    def test_select_missing_returns_nothing(self, tree):
        assert select(tree, (Key("address"), Key("zip"))) == []
        assert select_one(tree, (Key("tags"), Where("id", "1"))) is None

    def test_select_returns_live_references(self, tree):
        select_one(tree, (Key("address"),))["zip"] = "75001"
        assert tree["address"]["zip"] == "75001"

    def test_filter_literal_with_brackets_and_quotes(self):
        tree = {"n": [{"id": "a]b", "v": 1}, {"id": "o'neil", "v": 2}]}
        put(tree, (Key("n"), Where("id", "a]b")), "v", 10)
        put(tree, (Key("n"), Where("id", "o'neil")), "v", 20)
        assert tree["n"] == [{"id": "a]b", "v": 10}, {"id": "o'neil", "v": 20}]

    def test_put_on_filtered_element(self, tree):
        put(tree, (Key("names"), Where("language", "en")), "value", "Z")
        assert tree["names"][0]["value"] == "Z"
        assert tree["names"][1]["value"] == "B"

    def test_put_on_root(self, tree):
        put(tree, (), "phone", "555")
        assert tree["phone"] == "555"

    def test_put_without_target_raises(self, tree):
        with pytest.raises(PathResolutionError) as exc_info:
            put(tree, (Key("contact"),), "email", "a@b.c")
        assert exc_info.value.path == "$.contact.email"

    def test_append(self, tree):
        append(tree, (Key("tags"),), "z")
        assert tree["tags"] == ["x", "y", "z"]

    def test_append_to_non_array_raises(self, tree):
        with pytest.raises(PathResolutionError) as exc_info:
            append(tree, (Key("address"),), "z")
        assert exc_info.value.path == "$.address"
