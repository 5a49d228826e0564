"""Dependency normalisation, validation and graph queries.

A dependency is either a single dotted context path (``"getUser.name"``) or
a tuple of alternative paths, any one of which satisfies it. Only the root
segment of each path names a step; deeper segments are never checked
statically.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from typing import Any, Collection, Iterable, Mapping, Sequence, Union

from .errors import DependencyCycleError, UnknownStepError

logger = logging.getLogger(__name__)

Dependency = Union[str, tuple[str, ...]]

ITERATION_NAMES = frozenset({"$item", "$index"})

_REF_PREFIX_RE = re.compile(r"^\s*\$ref\.")
_INDEX_RE = re.compile(r"\[(\d+)\]")
_OPERATOR_RE = re.compile(r"\[[^\]]*\]")


def normalize_path(path: str) -> str:
    """Reduce a reference path to the dotted form used for readiness.

    ``[n]`` becomes ``.n`` and every other bracket operator is dropped, so
    ``src.items[].id`` becomes ``src.items.id``.
    """
    path = _REF_PREFIX_RE.sub("", path.strip(), count=1)
    path = _INDEX_RE.sub(r".\1", path)
    path = _OPERATOR_RE.sub("", path)
    return path.strip(".")


def as_dependency(value: Union[str, Sequence[str]]) -> Dependency:
    """Normalise a declared dependency into its canonical form.

    A list of paths or a comma joined string both become a tuple of
    alternatives; a single path stays a string.
    """
    if isinstance(value, str):
        parts = [part for part in value.split(",") if part.strip()]
    else:
        parts = [part for part in value if part.strip()]
    paths = tuple(normalize_path(part) for part in parts)
    if len(paths) == 1:
        return paths[0]
    return paths


def alternatives(dependency: Dependency) -> tuple[str, ...]:
    return (dependency,) if isinstance(dependency, str) else dependency


def root_of(path: str) -> str:
    return path.split(".", 1)[0]


def is_iteration_local(path: str) -> bool:
    return root_of(path) in ITERATION_NAMES


def prefixes(path: str) -> list[str]:
    parts = path.split(".")
    return [".".join(parts[: i + 1]) for i in range(len(parts))]


def _path_met(path: str, written: Collection[str]) -> bool:
    if is_iteration_local(path):
        return True
    return any(prefix in written for prefix in prefixes(path))


def is_met(dependency: Dependency, written: Collection[str]) -> bool:
    """Return True when some prefix of the dependency (or any alternative) was written."""
    return any(_path_met(path, written) for path in alternatives(dependency))


def validate_roots(
    dependencies: Iterable[Dependency], known_ids: Collection[str], step_id: str
) -> None:
    """Check that every dependency root names a known step."""
    for dependency in dependencies:
        for path in alternatives(dependency):
            if is_iteration_local(path):
                continue
            if root_of(path) not in known_ids:
                raise UnknownStepError(step_id, path)


class DependencyGraph:
    """Step-level view over the per-step dependency lists."""

    def __init__(self, dependencies: Mapping[str, Sequence[Dependency]]):
        self.dependencies = dependencies

    def upstream(self, step_id: str) -> list[str]:
        """Return the distinct step ids ``step_id`` depends on, in declaration order."""
        seen: dict[str, None] = {}
        for dependency in self.dependencies.get(step_id, ()):
            for path in alternatives(dependency):
                if is_iteration_local(path):
                    continue
                root = root_of(path)
                if root in self.dependencies:
                    seen.setdefault(root, None)
        return list(seen)

    def check_acyclic(self) -> None:
        """Raise ``DependencyCycleError`` if the step graph has a cycle (Kahn's algorithm)."""
        remaining = {step_id: len(self.upstream(step_id)) for step_id in self.dependencies}
        downstream: dict[str, list[str]] = {step_id: [] for step_id in self.dependencies}
        for step_id in self.dependencies:
            for parent in self.upstream(step_id):
                downstream[parent].append(step_id)

        queue = deque(step_id for step_id, count in remaining.items() if count == 0)
        while queue:
            step_id = queue.popleft()
            del remaining[step_id]
            for child in downstream[step_id]:
                remaining[child] -= 1
                if remaining[child] == 0:
                    queue.append(child)

        if remaining:
            raise DependencyCycleError(self._find_cycle(set(remaining)))

    def _find_cycle(self, candidates: set[str]) -> list[str]:
        start = sorted(candidates)[0]
        order: list[str] = []
        current = start
        while current not in order:
            order.append(current)
            current = next(p for p in self.upstream(current) if p in candidates)
        cycle = order[order.index(current):] + [current]
        cycle.reverse()
        return cycle

    def _require(self, step_id: str) -> None:
        if step_id not in self.dependencies:
            raise UnknownStepError(step_id)

    def root_steps(self, target: str) -> list[str]:
        """Return the dependency-free steps ``target`` transitively relies on.

        Every alternative of an OR dependency is followed, since which one
        will be satisfied is only known at run time.
        """
        self._require(target)
        visited: set[str] = set()
        roots: set[str] = set()

        def visit(step_id: str) -> None:
            if step_id in visited:
                return
            visited.add(step_id)
            if not self.dependencies.get(step_id):
                roots.add(step_id)
                return
            for parent in self.upstream(step_id):
                visit(parent)

        visit(target)
        return sorted(roots)

    def path_steps(self, target: str) -> list[str]:
        """Return ``target`` and every step on any dependency path leading to it."""
        self._require(target)
        visited: set[str] = set()

        def visit(step_id: str) -> None:
            if step_id in visited:
                return
            visited.add(step_id)
            for parent in self.upstream(step_id):
                visit(parent)

        visit(target)
        return sorted(visited)

    def to_json(self) -> dict[str, list[Any]]:
        return {
            step_id: [dep if isinstance(dep, str) else list(dep) for dep in deps]
            for step_id, deps in self.dependencies.items()
        }
