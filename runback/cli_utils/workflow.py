"""Utility functions to load workflow definitions and action tables for the CLI."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Type

import yaml

from runback.dependencies import Dependency
from runback.engine import WorkflowEngine
from runback.persistence.models import WorkflowDocument
from runback.workflow import Workflow
from runback.workflow2 import Workflow2


def _load_definition(path: Path) -> WorkflowDocument:
    """Read a JSON or YAML definition: a list of steps or a persisted document."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return WorkflowDocument()
    if isinstance(data, list):
        return WorkflowDocument(steps=data)
    if isinstance(data, Mapping) and "steps" in data:
        return WorkflowDocument.model_validate(data)
    raise ValueError(f"{path} does not contain a list of steps or a workflow document")


def _engine_class(v2: bool) -> Type[WorkflowEngine]:
    return Workflow2 if v2 else Workflow


def _load_actions(target: str) -> Dict[str, Callable[..., Any]]:
    """Import ``module:attribute`` and return it as an action table.

    The attribute may be a mapping of action names to callables or a
    zero-argument factory returning one. The current directory is importable.
    """
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"Actions must be given as 'module:attribute', got '{target}'")
    if str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))
    module = importlib.import_module(module_name)
    actions = getattr(module, attribute)
    if callable(actions) and not isinstance(actions, Mapping):
        actions = actions()
    if not isinstance(actions, Mapping):
        raise ValueError(f"{target} is not a mapping of actions")
    return dict(actions)


def _format_dependency(dependency: Dependency) -> str:
    if isinstance(dependency, str):
        return dependency
    return " | ".join(dependency)
