"""Structured error hierarchy for runback.

Every hard failure raised by the engine carries a machine readable ``code``
and a ``data`` dictionary with the offending path, step or types so callers
can react without parsing messages.

Hierarchy::

    RunbackError
      ├── PathSyntaxError        ── malformed path or bracket operator
      ├── PathTypeError          ── array operator applied to a non-array
      ├── MappingTypeError       ── whole-array replace with a non-array source
      ├── MappingInputError      ── ``None`` passed as mapping input
      ├── ContextError           ── context is not a keyed object
      ├── UnknownStepError       ── dependency root or target step unknown
      ├── DependencyCycleError   ── dependency graph has a cycle
      ├── StepDefinitionError    ── invalid or duplicate step definition
      ├── ActionNotFoundError    ── step action missing from the action table
      ├── RunModeError           ── run() called without entry/exit/only_runs
      └── IterationSourceError   ── iteration source did not resolve to a list
"""

from __future__ import annotations

from typing import Any, Optional


class RunbackError(Exception):
    """Base exception for all runback errors."""

    code = "RUNBACK_ERROR"

    def __init__(self, message: str, data: Optional[dict[str, Any]] = None):
        self.data = data or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self), "data": self.data}


class PathSyntaxError(RunbackError):
    """Raised when a path string cannot be tokenised or parsed."""

    code = "PATH_SYNTAX"

    def __init__(self, path: str, reason: str, position: Optional[int] = None):
        self.path = path
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(
            f"Invalid path '{path}'{where}: {reason}",
            {"path": path, "position": position, "reason": reason},
        )


class PathTypeError(RunbackError):
    """Raised when an array operator meets something that is not an array."""

    code = "PATH_TYPE"

    def __init__(self, path: str, segment: str, expected: str, received: str):
        self.path = path
        self.segment = segment
        super().__init__(
            f"Segment '{segment}' of path '{path}' expected {expected} but found {received}",
            {
                "path": path,
                "segment": segment,
                "expected": expected,
                "received": received,
            },
        )


class MappingTypeError(RunbackError):
    """Raised when a mapping operator receives a value of the wrong type."""

    code = "MAPPING_TYPE"

    def __init__(self, target: str, expected: str, received: str):
        self.target = target
        super().__init__(
            f"Mapping target '{target}' expected {expected} but received {received}",
            {"target": target, "expected": expected, "received": received},
        )


class MappingInputError(RunbackError):
    """Raised when mapping input is ``None``."""

    code = "MAPPING_INPUT"


class ContextError(RunbackError):
    """Raised when the mapping context is not a keyed object."""

    code = "INVALID_CONTEXT"

    def __init__(self, received: str):
        super().__init__(
            f"Context must be a mapping of step results, received {received}",
            {"expected": "mapping", "received": received},
        )


class UnknownStepError(RunbackError):
    """Raised when a dependency or lookup names a step that does not exist."""

    code = "UNKNOWN_STEP"

    def __init__(self, step_id: str, dependency: Optional[str] = None):
        self.step_id = step_id
        self.dependency = dependency
        if dependency is None:
            message = f"Step {step_id} not found"
        else:
            message = f"Step {step_id} depends on non-existent step: {dependency}"
        super().__init__(message, {"step_id": step_id, "dependency": dependency})


class DependencyCycleError(RunbackError):
    """Raised when the step dependency graph contains a cycle."""

    code = "DEPENDENCY_CYCLE"

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(
            f"Cycle detected in dependency graph: {' -> '.join(cycle)}",
            {"cycle": cycle},
        )


class StepDefinitionError(RunbackError):
    """Raised when a step definition is invalid."""

    code = "STEP_DEFINITION"

    def __init__(self, step_id: str, reason: str):
        self.step_id = step_id
        super().__init__(f"Step {step_id}: {reason}", {"step_id": step_id})


class ActionNotFoundError(RunbackError):
    """Raised when a step's action is missing from the action table."""

    code = "ACTION_NOT_FOUND"

    def __init__(self, action: str, step_id: str):
        self.action = action
        super().__init__(
            f"Action not found: {action}", {"action": action, "step_id": step_id}
        )


class RunModeError(RunbackError):
    """Raised when run() is called without a starting mode."""

    code = "RUN_MODE"

    def __init__(
        self, message: str = "Must specify either entry, exit, or only_runs in run options"
    ) -> None:
        super().__init__(message)


class IterationSourceError(RunbackError):
    """Raised when an iteration step's source is not a list."""

    code = "ITERATION_SOURCE"

    def __init__(self, step_id: str, received: str):
        self.step_id = step_id
        super().__init__(
            f"Data source for iteration step {step_id} is not an array (got {received})",
            {"step_id": step_id, "expected": "array", "received": received},
        )


def type_name(value: Any) -> str:
    """Return a JSON flavoured type name used in error payloads."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
