"""Tests for request body field shaping."""

import pytest

from tools.errors import ValidationError
from tools.fields import (
    collect_non_empty,
    collect_present,
    fold_custom_fields,
    parse_id_list,
    require_identifier,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1,2", [1, 2]),
        ("1,x,3", [1, 3]),
        (" 4 , 5 ", [4, 5]),
        ("12abc,7", [12, 7]),
        ("", []),
        (None, []),
        ("news,events", []),
        (3, [3]),
        ("\u0663,4", [4]),
    ],
)
def test_parse_id_list(raw, expected):
    assert parse_id_list(raw) == expected


class TestFoldCustomFields:
    def test_folds_key_value_pairs(self):
        entries = [{"key": "rating", "value": "5"}, {"key": "director", "value": "Kurosawa"}]
        assert fold_custom_fields(entries) == {"rating": "5", "director": "Kurosawa"}

    def test_skips_empty_keys_and_defaults_missing_values(self):
        entries = [{"key": "", "value": "ignored"}, {"value": "ignored"}, {"key": "flag"}]
        assert fold_custom_fields(entries) == {"flag": ""}

    def test_accepts_properties_wrapper_as_json(self):
        raw = '{"properties": [{"key": "rating", "value": "4"}]}'
        assert fold_custom_fields(raw) == {"rating": "4"}

    def test_accepts_plain_mapping(self):
        assert fold_custom_fields({"rating": "3"}) == {"rating": "3"}

    @pytest.mark.parametrize("raw", [None, "", []])
    def test_empty_input(self, raw):
        assert fold_custom_fields(raw) == {}

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            fold_custom_fields("{not json")


class TestRequireIdentifier:
    def test_returns_stripped_value(self):
        assert require_identifier(" 12 ", "post_id", 0) == "12"

    def test_accepts_integers(self):
        assert require_identifier(7, "media_id", 0) == "7"

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_value(self, value):
        with pytest.raises(ValidationError) as excinfo:
            require_identifier(value, "post_id", 2)
        assert excinfo.value.field == "post_id"
        assert excinfo.value.item_index == 2
        assert "post_id" in str(excinfo.value)


def test_collect_present_keeps_empty_strings():
    assert collect_present([("title", ""), ("content", None), ("status", "draft")]) == {
        "title": "",
        "status": "draft",
    }


def test_collect_non_empty_drops_empty_strings():
    assert collect_non_empty([("title", ""), ("caption", None), ("alt_text", "Alt")]) == {"alt_text": "Alt"}
