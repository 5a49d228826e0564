"""Tests for the run execution context."""

from runback.context import ExecutionContext
from runback.path import MISSING


def test_set_records_exact_path_only():
    ctx = ExecutionContext()
    ctx.set("check.true", True)
    assert ctx.data == {"check": {"true": True}}
    assert ctx.written == frozenset({"check.true"})


def test_get_reads_nested_values():
    ctx = ExecutionContext()
    ctx.set("getUser", {"name": "Ada", "tags": ["x", "y"]})
    assert ctx.get("getUser.name") == "Ada"
    assert ctx.get("getUser.tags.1") == "y"
    assert ctx.get("missing") is MISSING


def test_listeners_are_notified():
    ctx = ExecutionContext()
    seen = []
    ctx.subscribe(lambda path, value: seen.append((path, value)))
    ctx.set("a", 1)
    ctx.set("b.false", True)
    assert seen == [("a", 1), ("b.false", True)]


def test_snapshot_is_deep_copy():
    ctx = ExecutionContext()
    ctx.set("a", {"list": [1]})
    snap = ctx.snapshot()
    snap["a"]["list"].append(2)
    assert ctx.get("a.list") == [1]


def test_restore_copies_snapshot_and_starts_unwritten():
    snapshot = {"step1": {"value": 1}}
    ctx = ExecutionContext.restore(snapshot)
    assert ctx.data == snapshot
    assert ctx.data is not snapshot
    assert ctx.written == frozenset()

    ctx.set("step1", 2)
    assert snapshot == {"step1": {"value": 1}}


def test_step_ids_with_dashes_are_plain_keys():
    ctx = ExecutionContext()
    ctx.set("fetch-user", {"id": 1})
    assert ctx.get("fetch-user.id") == 1


def test_discard_removes_value_and_written_path():
    ctx = ExecutionContext.restore({"check": {"true": True}})
    ctx.discard("check.true")
    ctx.set("check.false", True)
    assert ctx.data == {"check": {"false": True}}
    assert ctx.written == frozenset({"check.false"})
    ctx.discard("missing.path")
