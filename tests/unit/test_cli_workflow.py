import json
import textwrap

import pytest
from typer.testing import CliRunner

from runback.cli import app

runner = CliRunner()

DEFINITION = textwrap.dedent(
    """
    - id: getUser
      action: getUser
    - id: greet
      action: greet
      options:
        name: $ref.getUser.name
    - id: check
      action: check
      type: if
      options: $ref.greet
    - id: done
      action: done
      depends: [check.true]
    """
)

ACTIONS = textwrap.dedent(
    """
    ACTIONS = {
        "getUser": lambda: {"name": "Ada"},
        "greet": lambda opts: "hi " + opts["name"],
        "check": lambda text: text.startswith("hi"),
        "done": lambda: "ok",
    }

    def broken():
        return {"getUser": lambda: 1 / 0}
    """
)


@pytest.fixture
def flow(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("RUNBACK_CONFIG", "RUNBACK_STORE_PATH", "RUNBACK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "cli_flow_actions.py").write_text(ACTIONS)
    path = tmp_path / "flow.yaml"
    path.write_text(DEFINITION)
    return path


def test_deps_lists_every_step(flow):
    result = runner.invoke(app, ["workflow", "deps", str(flow)])
    assert result.exit_code == 0
    assert "getUser: (none)" in result.output
    assert "greet: getUser.name" in result.output
    assert "done: check.true" in result.output


def test_roots_and_path(flow):
    result = runner.invoke(app, ["workflow", "roots", str(flow), "done"])
    assert result.exit_code == 0
    assert "roots: getUser" in result.output
    assert "path: check, done, getUser, greet" in result.output


def test_roots_unknown_step(flow):
    result = runner.invoke(app, ["workflow", "roots", str(flow), "ghost"])
    assert result.exit_code == 1
    assert "ghost" in result.output


def test_missing_definition(tmp_path):
    result = runner.invoke(app, ["workflow", "deps", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1
    assert "Definition file not found" in result.output


def test_run_save_and_show(flow):
    result = runner.invoke(
        app,
        [
            "--log-level",
            "none",
            "workflow",
            "run",
            str(flow),
            "--actions",
            "cli_flow_actions:ACTIONS",
            "--entry",
            "getUser",
            "--save",
        ],
    )
    assert result.exit_code == 0, result.output
    assert ": success" in result.output
    assert "- done: success" in result.output

    saved = json.loads(flow.read_text())
    assert saved["lastRun"]["context"]["greet"] == "hi Ada"

    result = runner.invoke(app, ["workflow", "show", str(flow)])
    assert result.exit_code == 0
    assert "- greet: success" in result.output
    assert "hi Ada" in result.output

    result = runner.invoke(
        app,
        [
            "--log-level",
            "none",
            "workflow",
            "run",
            str(flow),
            "--actions",
            "cli_flow_actions:ACTIONS",
            "--only",
            "greet",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "- greet: success [only]" in result.output


def test_run_failure_exits_non_zero(flow):
    result = runner.invoke(
        app,
        [
            "--log-level",
            "none",
            "workflow",
            "run",
            str(flow),
            "--actions",
            "cli_flow_actions:broken",
            "--entry",
            "getUser",
        ],
    )
    assert result.exit_code == 1
    assert "- getUser: failed" in result.output
    assert "division by zero" in result.output


def test_run_requires_a_mode(flow):
    result = runner.invoke(
        app, ["workflow", "run", str(flow), "--actions", "cli_flow_actions:ACTIONS"]
    )
    assert result.exit_code == 1
    assert "Must specify either entry, exit, or only_runs" in result.output


def test_show_without_runs(flow):
    result = runner.invoke(app, ["workflow", "show", str(flow)])
    assert result.exit_code == 0
    assert "No runs recorded" in result.output
