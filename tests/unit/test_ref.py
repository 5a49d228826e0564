"""Tests for reference placeholders."""

import copy

from runback.ref import (
    RefKey,
    collect,
    collect_from_ref_string,
    create_ref,
    get_dotted,
    inject,
    resolve_references,
    select_alternatives,
    to_ref_strings,
)


def test_collect_from_ref_string_locations():
    template = {
        "user": {"name": "$ref.getUser.name", "age": 3},
        "message": ["$ref.logId", "plain", "$ref.a.x,$ref.b.x"],
        "first": "$ref.list[0].id",
    }
    assert collect_from_ref_string(template) == {
        "user.name": "getUser.name",
        "message.0": "logId",
        "message.2": ["a.x", "b.x"],
        "first": "list.0.id",
    }


def test_create_ref_builds_paths():
    user = create_ref("getUser")
    key = user.profile.name.__ref__
    assert key == RefKey("getUser", "profile.name")
    assert str(key) == "getUser.profile.name"
    assert str(user["items"][0].__ref__) == "getUser.items.0"


def test_collect_finds_ref_leaves():
    api = create_ref("api")
    template = {"settings": {"token": api.auth.token, "theme": "dark"}, "list": [api.data]}
    assert collect(template) == {"settings.token": "api.auth.token", "list.0": "api.data"}


def test_to_ref_strings_replaces_refs():
    api = create_ref("api")
    template = {"token": api.auth.token, "theme": "dark"}
    assert to_ref_strings(template) == {"token": "$ref.api.auth.token", "theme": "dark"}
    assert to_ref_strings(api.value) == "$ref.api.value"
    assert to_ref_strings({"plain": 1}) == {"plain": 1}


def test_inject_writes_values_and_none_for_missing():
    target = {"profile": {"keep": True}}
    source = {"user": {"name": "Ada"}}
    inject(target, source, {"profile.username": "user.name", "profile.email": "user.email"})
    assert target == {"profile": {"keep": True, "username": "Ada", "email": None}}


def test_inject_creates_intermediate_dicts_and_indexes_lists():
    target = {}
    inject(target, {"rows": [{"id": 7}]}, {"a.b.c": "rows.0.id"})
    assert target == {"a": {"b": {"c": 7}}}


def test_select_alternatives_prefers_written_branch():
    mapping = {"x": ["left.value", "right.value"], "y": "plain.path"}
    context = {"right": {"value": 2}}
    assert select_alternatives(mapping, context, {"right"}) == {
        "x": "right.value",
        "y": "plain.path",
    }


def test_select_alternatives_iteration_names():
    mapping = {"x": ["$item", "fallback"]}
    assert select_alternatives(mapping, {"$item": "a"}, set()) == {"x": "$item"}
    assert select_alternatives(mapping, {"fallback": 1}, set()) == {"x": "fallback"}


def test_resolve_references_does_not_mutate_template_or_context():
    template = {"name": "$ref.getUser.name", "static": [1, 2]}
    context = {"getUser": {"name": "Ada", "tags": ["x"]}}
    template_before = copy.deepcopy(template)

    result = resolve_references(template, context, {"getUser"})

    assert result == {"name": "Ada", "static": [1, 2]}
    assert template == template_before


def test_resolve_references_whole_string_template():
    context = {"src": ["a", "b"]}
    result = resolve_references("$ref.src", context, {"src"})
    assert result == ["a", "b"]
    assert result is not context["src"]


def test_resolve_references_or_merge():
    template = {"result": "$ref.fail.msg,$ref.ok.msg"}
    context = {"ok": {"msg": "fine"}}
    assert resolve_references(template, context, {"ok"}) == {"result": "fine"}


def test_get_dotted_handles_missing_and_indexes():
    data = {"a": [{"b": 1}]}
    assert get_dotted(data, "a.0.b") == 1
    assert get_dotted(data, "a.3.b") is None
    assert get_dotted(data, "x.y") is None


def test_select_alternatives_written_beats_stale_value():
    mapping = {"result": ["onTrue", "onFalse"]}
    context = {"onTrue": "L", "onFalse": "R"}
    assert select_alternatives(mapping, context, {"onFalse"}) == {"result": "onFalse"}


def test_select_alternatives_falls_back_to_present_value():
    mapping = {"result": ["onTrue", "onFalse"]}
    assert select_alternatives(mapping, {"onFalse": "R"}, set()) == {"result": "onFalse"}
    assert select_alternatives(mapping, {}, set()) == {"result": "onTrue"}
