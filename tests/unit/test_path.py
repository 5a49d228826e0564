"""Tests for path parsing and resolution."""

import pytest

from runback.errors import PathSyntaxError, PathTypeError
from runback.path import (
    MISSING,
    Index,
    IndexKind,
    Key,
    format_path,
    get_path,
    parse_path,
    set_path,
)


def test_parse_plain_and_bracket_segments():
    segments = parse_path("items[0].tags[*].name")
    assert segments[0] == Key("items")
    assert isinstance(segments[1], Index) and segments[1].kind is IndexKind.SINGLE
    assert segments[2] == Key("tags")
    assert segments[3].kind is IndexKind.WILDCARD
    assert segments[4] == Key("name")


def test_parse_range_and_multi():
    (rng,) = parse_path("[1-3]")
    assert rng.kind is IndexKind.RANGE
    assert rng.spec.expand() == [1, 2, 3]

    (multi,) = parse_path("[0,2,4]")
    assert multi.kind is IndexKind.MULTI
    assert multi.spec.expand() == [0, 2, 4]


def test_parse_leading_operator_and_iteration_names():
    assert parse_path("[].url")[0].kind is IndexKind.EMPTY
    assert parse_path("$item.name") == (Key("$item"), Key("name"))


def test_format_path_round_trips_text():
    assert format_path(parse_path("a.b[0-2].c[*]")) == "a.b[0-2].c[*]"


@pytest.mark.parametrize(
    "path",
    ["", "a..b", "a[3-1]", "a[x]", "a[1", "a.b-c", "a[1,]", "user@name", "a."],
)
def test_malformed_paths_raise(path):
    with pytest.raises(PathSyntaxError) as exc_info:
        parse_path(path)
    assert exc_info.value.code == "PATH_SYNTAX"


def test_get_plain_and_indexed_values():
    data = {"user": {"name": "Ada", "tags": ["a", "b"]}, "list": [{"id": 1}, {"id": 2}]}
    assert get_path(data, "user.name") == "Ada"
    assert get_path(data, "user.tags[1]") == "b"
    assert get_path(data, "list.1.id") == 2


def test_get_missing_and_out_of_bounds_return_sentinel():
    data = {"items": [1, 2]}
    assert get_path(data, "nope") is MISSING
    assert get_path(data, "items[5]") is MISSING
    assert get_path({"value": None}, "value") is None


def test_get_whole_array_and_field_extraction():
    data = {"rows": [{"id": 1}, {"id": 2}, {"name": "x"}]}
    assert get_path(data, "rows[]") == data["rows"]
    assert get_path(data, "rows[].id") == [1, 2]
    assert get_path(data, "rows[*].id") == [1, 2]
    assert get_path(data, "rows[0,2]") == [{"id": 1}, {"name": "x"}]
    assert get_path(data, "rows[1-5].id") == [2]


def test_get_index_on_non_array_raises_type_error():
    with pytest.raises(PathTypeError) as exc_info:
        get_path({"user": {"name": "Ada"}}, "user[0]")
    assert exc_info.value.data["segment"] == "[0]"
    assert exc_info.value.data["received"] == "object"


def test_set_creates_intermediate_objects():
    root = {}
    set_path(root, "a.b.c", 1)
    assert root == {"a": {"b": {"c": 1}}}


def test_set_grows_arrays_with_empty_objects():
    root = {"items": [{"id": 0}]}
    set_path(root, "items[2].id", 2)
    assert root["items"] == [{"id": 0}, {}, {"id": 2}]

    set_path(root, "items[3-4].flag", True)
    assert len(root["items"]) == 5
    assert root["items"][4] == {"flag": True}


def test_set_range_clipped_when_not_growing():
    root = [{}, {}]
    set_path(root, "[0-3].flag", True, grow_ranges=False)
    assert root == [{"flag": True}, {"flag": True}]


def test_set_distribute_and_broadcast():
    root = [{"id": 1}, {"id": 2}]
    set_path(root, "[].name", ["a", "b", "c"])
    assert root == [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}, {"name": "c"}]

    set_path(root, "[*].ok", True)
    assert all(item["ok"] is True for item in root)
    assert len(root) == 3


def test_set_whole_array_replace_requires_list():
    root = {"items": [1, 2, 3]}
    set_path(root, "items[]", [9])
    assert root["items"] == [9]

    with pytest.raises(PathTypeError):
        set_path(root, "items[]", "nope")


def test_set_index_on_non_array_raises():
    with pytest.raises(PathTypeError):
        set_path({"user": "Ada"}, "user[0]", 1)


@pytest.mark.parametrize("path", ["[*].meta", "[].meta", "[0-1].meta", "[0,1].meta"])
def test_set_broadcast_values_are_not_shared(path):
    root = [{}, {}]
    set_path(root, path, {"n": 0})
    root[0]["meta"]["n"] = 1
    assert root[1]["meta"]["n"] == 0
