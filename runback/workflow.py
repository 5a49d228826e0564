"""Generation-1 workflows: ``options`` templates with ``$ref.`` placeholders."""

from __future__ import annotations

from typing import Any, List, Tuple

from .context import ExecutionContext
from .contracts import Step
from .dependencies import Dependency, as_dependency
from .engine import ItemRenderer, WorkflowEngine
from .ref import collect_from_ref_string, resolve_references


class Workflow(WorkflowEngine[Step]):
    """Workflow whose steps reference earlier results with ``$ref.`` strings.

    Example:
        >>> wf = Workflow([
        ...     {"id": "getUser", "action": "getUser"},
        ...     {"id": "greet", "action": "log", "options": {"name": "$ref.getUser.name"}},
        ... ])
        >>> wf.dependencies["greet"]
        ['getUser.name']
    """

    step_model = Step

    def parse_dependencies(self, step: Step) -> List[Dependency]:
        deps: List[Dependency] = [as_dependency(dep) for dep in step.depends]
        deps.extend(as_dependency(path) for path in collect_from_ref_string(step.options).values())
        if isinstance(step.each, str):
            deps.append(as_dependency(step.each))
        elif isinstance(step.each, list):
            deps.extend(as_dependency(path) for path in collect_from_ref_string(step.each).values())
        return deps

    def _is_iteration(self, step: Step) -> bool:
        return isinstance(step.each, list) or bool(step.each)

    def _render_input(self, step: Step, template: Any, ctx: ExecutionContext) -> Any:
        if template is None:
            return None
        return resolve_references(template, ctx.data, ctx.written)

    def _render_items(
        self, step: Step, template: Any, ctx: ExecutionContext
    ) -> Tuple[Any, ItemRenderer]:
        written = ctx.written
        if isinstance(step.each, list):
            items = [resolve_references(item, ctx.data, written) for item in step.each]
            return items, lambda item, index: item

        items = resolve_references(step.each, ctx.data, written)
        if template is None:
            return items, lambda item, index: item

        def render(item: Any, index: int) -> Any:
            local = {**ctx.data, "$item": item, "$index": index}
            return resolve_references(template, local, written)

        return items, render
