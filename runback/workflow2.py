"""Generation-2 workflows: ``input`` templates filled through a ``ref`` mapping."""

from __future__ import annotations

from typing import Any, List, Tuple

from .context import ExecutionContext
from .contracts import Step2
from .dependencies import Dependency, as_dependency
from .engine import ItemRenderer, WorkflowEngine
from .mapping import inject_input


class Workflow2(WorkflowEngine[Step2]):
    """Workflow whose steps declare data flow as ``target path -> source path`` maps.

    Example:
        >>> wf = Workflow2([
        ...     {"id": "getUrls", "action": "getUrls"},
        ...     {
        ...         "id": "fetch",
        ...         "action": "fetch",
        ...         "each": True,
        ...         "input": [{"url": "", "timeout": 30}],
        ...         "ref": {"[].url": "getUrls.list[]"},
        ...     },
        ... ])
        >>> wf.dependencies["fetch"]
        ['getUrls.list']
    """

    step_model = Step2

    def parse_dependencies(self, step: Step2) -> List[Dependency]:
        deps: List[Dependency] = [as_dependency(dep) for dep in step.depends]
        for source in (step.ref or {}).values():
            deps.append(as_dependency(source))
        return deps

    def _is_iteration(self, step: Step2) -> bool:
        return step.each

    def _render_input(self, step: Step2, template: Any, ctx: ExecutionContext) -> Any:
        if template is None and not step.ref:
            return None
        return inject_input(template if template is not None else {}, step.ref, ctx.data)

    def _render_items(
        self, step: Step2, template: Any, ctx: ExecutionContext
    ) -> Tuple[Any, ItemRenderer]:
        return self._render_input(step, template, ctx), lambda item, index: item
