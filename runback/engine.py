"""Dialect independent workflow scheduler.

``WorkflowEngine`` runs steps in waves: it computes every step whose
dependencies are met, runs that batch concurrently, waits for all of it and
then looks again. Dialect subclasses decide how dependencies are declared
and how a step's input is rendered from the run context.
"""

from __future__ import annotations

import abc
import asyncio
import inspect
import logging
import types
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from .context import ExecutionContext
from .contracts import BaseStep
from .dependencies import Dependency, DependencyGraph, is_met, validate_roots
from .errors import (
    ActionNotFoundError,
    IterationSourceError,
    RunModeError,
    StepDefinitionError,
    UnknownStepError,
    type_name,
)
from .log import LogLevel, set_level
from .persistence.models import History, RunRecord, StepExecutionRecord

logger = logging.getLogger(__name__)

StepT = TypeVar("StepT", bound=BaseStep)
Action = Callable[..., Any]
ItemRenderer = Callable[[Any, int], Any]


async def invoke_action(action: Action, argument: Any) -> Any:
    """Call ``action`` with ``argument`` (or nothing when it is ``None``) and await if needed."""
    result = action(argument) if argument is not None else action()
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass
class _RunState:
    """Mutable state of one ``run()`` call."""

    actions: Mapping[str, Action]
    record: RunRecord
    context: ExecutionContext
    entry_steps: List[str]
    only_runs: List[str]
    templates: Dict[str, Any] = field(default_factory=dict)
    completed: Set[str] = field(default_factory=set)


class WorkflowEngine(abc.ABC, Generic[StepT]):
    """Wave based scheduler shared by both workflow dialects."""

    step_model: Type[StepT]

    def __init__(
        self,
        steps: Iterable[Union[StepT, Mapping[str, Any]]],
        log_level: Optional[Union[LogLevel, str, int]] = None,
    ) -> None:
        if log_level is not None:
            set_level(log_level)
        self.steps: List[StepT] = [self._coerce_step(step) for step in steps]
        self._steps_by_id: Dict[str, StepT] = {}
        for step in self.steps:
            if step.id in self._steps_by_id:
                raise StepDefinitionError(step.id, "duplicate step id")
            self._steps_by_id[step.id] = step

        self._deps: Dict[str, List[Dependency]] = {}
        for step in self.steps:
            if step.is_conditional and self._is_iteration(step):
                raise StepDefinitionError(
                    step.id, "cannot use 'each' and 'if' simultaneously"
                )
            deps = self.parse_dependencies(step)
            validate_roots(deps, self._steps_by_id, step.id)
            self._deps[step.id] = deps

        self._graph = DependencyGraph(self._deps)
        self._graph.check_acyclic()
        logger.debug(f"Dependency parsing completed: {self._graph.to_json()}")

    @classmethod
    def _coerce_step(cls, step: Union[StepT, Mapping[str, Any]]) -> StepT:
        if isinstance(step, cls.step_model):
            return step
        if isinstance(step, BaseStep):
            return cls.step_model.model_validate(step.model_dump())
        return cls.step_model.model_validate(step)

    # ------------------------------------------------------------------
    # Dialect hooks

    @abc.abstractmethod
    def parse_dependencies(self, step: StepT) -> List[Dependency]:
        """Return the dependency list of ``step``."""

    @abc.abstractmethod
    def _is_iteration(self, step: StepT) -> bool:
        ...

    @abc.abstractmethod
    def _render_input(self, step: StepT, template: Any, ctx: ExecutionContext) -> Any:
        """Render the action argument of a plain step."""

    @abc.abstractmethod
    def _render_items(
        self, step: StepT, template: Any, ctx: ExecutionContext
    ) -> Tuple[Any, ItemRenderer]:
        """Return the iteration source and a renderer for each item."""

    def _apply_entry_options(self, template: Any, entry_options: Any) -> Any:
        """Shallow-merge ``entry_options`` over a dict template."""
        if isinstance(entry_options, Mapping) and (
            template is None or isinstance(template, Mapping)
        ):
            return {**(template or {}), **entry_options}
        return entry_options

    # ------------------------------------------------------------------
    # Graph queries

    @property
    def dependencies(self) -> Mapping[str, List[Dependency]]:
        return types.MappingProxyType(self._deps)

    def get_step(self, step_id: str) -> StepT:
        try:
            return self._steps_by_id[step_id]
        except KeyError:
            raise UnknownStepError(step_id) from None

    def get_root_steps(self, step_id: str) -> List[str]:
        return self._graph.root_steps(step_id)

    def get_path_steps(self, step_id: str) -> List[str]:
        return self._graph.path_steps(step_id)

    def to_json(self) -> Dict[str, Any]:
        return {
            "steps": [step.snapshot() for step in self.steps],
            "dependencies": self._graph.to_json(),
        }

    # ------------------------------------------------------------------
    # Running

    async def run(
        self,
        actions: Optional[Mapping[str, Action]] = None,
        history: Optional[History] = None,
        entry: Optional[str] = None,
        exit: Optional[str] = None,
        only_runs: Optional[Sequence[str]] = None,
        resume: bool = False,
        entry_options: Any = None,
        log_level: Optional[Union[LogLevel, str, int]] = None,
    ) -> History:
        """Run the workflow once and append a ``RunRecord`` to ``history``.

        Exactly one of ``entry``, ``exit`` or ``only_runs`` selects the mode:

        * ``entry``: start from one step and run until nothing is ready.
        * ``exit``: run every root of ``exit`` and only the steps on a path
          to it, stopping once ``exit`` has run.
        * ``only_runs``: run exactly the named steps against the context of
          the last history record, skipping dependency checks.

        ``resume`` restores the last record's context in entry or exit mode.
        Step failures do not raise; they mark the appended record failed.

        Returns:
            The history list, with the new record appended.
        """
        if log_level is not None:
            set_level(log_level)

        modes = [name for name, value in (("entry", entry), ("exit", exit), ("only_runs", only_runs)) if value]
        if not modes:
            raise RunModeError()
        if len(modes) > 1:
            raise RunModeError(f"Only one of entry, exit or only_runs may be given, got {', '.join(modes)}")

        pending: List[StepT] = list(self.steps)
        entry_steps: List[str] = []
        if only_runs:
            logger.info(f"Running only specified steps: {', '.join(only_runs)}")
        elif entry:
            self.get_step(entry)
            entry_steps = [entry]
            logger.info(f"Entry-driven execution: starting from {entry}")
        else:
            entry_steps = self.get_root_steps(exit)
            path = set(self.get_path_steps(exit))
            pending = [step for step in pending if step.id in path]
            logger.info(f"Exit-driven execution: root steps for {exit}: {entry_steps}")
            logger.info(f"Exit-driven execution: path steps: {sorted(path)}")

        history = history if history is not None else []
        state = _RunState(
            actions=actions or {},
            record=RunRecord(),
            context=ExecutionContext(),
            entry_steps=entry_steps,
            only_runs=list(only_runs or []),
        )
        if entry_options is not None:
            for step_id in entry_steps:
                step = self.get_step(step_id)
                state.templates[step_id] = self._apply_entry_options(step.template, entry_options)

        try:
            if (only_runs or resume) and history:
                if resume:
                    logger.info("Resuming workflow execution")
                state.context = ExecutionContext.restore(history[-1].context)
                logger.debug("Restored context from history")

            logger.info("Starting workflow execution")
            while pending:
                ready = self._ready_steps(pending, state)
                if not ready:
                    logger.info("No runnable steps, workflow execution completed")
                    break

                logger.info(
                    f"Preparing to execute {len(ready)} step(s): {[s.id for s in ready]}"
                )
                results = await asyncio.gather(
                    *(self._execute_step(step, state) for step in ready),
                    return_exceptions=True,
                )
                for step, result in zip(ready, results):
                    if not isinstance(result, BaseException):
                        pending.remove(step)
                errors = [r for r in results if isinstance(r, BaseException)]
                if errors:
                    raise errors[0]

                if exit and exit in state.completed:
                    logger.info(f"Exit node {exit} executed, stopping workflow execution")
                    break
            state.record.mark_success(state.context.snapshot())
        except Exception as e:
            logger.error(f"Workflow execution failed: {e}")
            state.record.mark_failed(state.context.snapshot(), e)

        history.append(state.record.model_copy(deep=True))
        logger.info("Workflow execution completed")
        return history

    def _ready_steps(self, pending: List[StepT], state: _RunState) -> List[StepT]:
        if state.only_runs:
            return [step for step in pending if step.id in state.only_runs]

        written = state.context.written
        ready = []
        for step in pending:
            if step.id in state.entry_steps:
                logger.debug(f"Step {step.id} is entry step, can run")
                ready.append(step)
                continue
            deps = self._deps[step.id]
            if not deps:
                logger.warning(f"Step {step.id} has no dependencies but is not an entry step")
                continue
            if all(is_met(dep, written) for dep in deps):
                logger.debug(f"Dependencies for step {step.id} are satisfied, can run")
                ready.append(step)
        return ready

    def _template(self, step: StepT, state: _RunState) -> Any:
        if step.id in state.templates:
            return state.templates[step.id]
        return step.template

    async def _execute_step(self, step: StepT, state: _RunState) -> Any:
        logger.info(f"Executing step: {step.id} (action={step.action}, type={step.type.value})")
        template = self._template(step, state)
        step_record = StepExecutionRecord(
            step=step.snapshot(),
            options=template,
            only_run=step.id in state.only_runs,
            context=state.context.snapshot(),
        )
        state.record.steps[step.id] = step_record

        try:
            action = state.actions.get(step.action)
            if action is None:
                raise ActionNotFoundError(step.action, step.id)
            if self._is_iteration(step):
                result = await self._execute_iteration(step, template, action, state, step_record)
            else:
                result = await self._execute_plain(step, template, action, state, step_record)
        except Exception as e:
            logger.error(f"Step {step.id} failed: {e}")
            step_record.mark_failed(e)
            raise

        step_record.mark_success()
        state.completed.add(step.id)
        return result

    async def _execute_plain(
        self,
        step: StepT,
        template: Any,
        action: Action,
        state: _RunState,
        step_record: StepExecutionRecord,
    ) -> Any:
        argument = self._render_input(step, template, state.context)
        logger.debug(f"Input for step {step.id}: {argument}")
        step_record.inputs = argument

        result = await invoke_action(action, argument)
        logger.debug(f"Result of step {step.id}: {result}")
        step_record.outputs = result
        self._write_result(step, result, state.context)
        return result

    async def _execute_iteration(
        self,
        step: StepT,
        template: Any,
        action: Action,
        state: _RunState,
        step_record: StepExecutionRecord,
    ) -> List[Any]:
        items, render_item = self._render_items(step, template, state.context)
        if not isinstance(items, list):
            raise IterationSourceError(step.id, type_name(items))
        logger.debug(f"Data source for iteration step {step.id}: {len(items)} item(s)")

        arguments = [render_item(item, index) for index, item in enumerate(items)]
        step_record.inputs = arguments
        outcomes = await asyncio.gather(
            *(invoke_action(action, argument) for argument in arguments),
            return_exceptions=True,
        )
        results = [o for o in outcomes if not isinstance(o, BaseException)]
        step_record.outputs = results
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        if errors:
            raise errors[0]

        logger.debug(f"All results for iteration step {step.id}: {len(results)}")
        self._write_result(step, results, state.context)
        return results

    def _write_result(self, step: StepT, result: Any, ctx: ExecutionContext) -> None:
        if step.is_conditional:
            branch, other = ("true", "false") if result else ("false", "true")
            ctx.discard(f"{step.id}.{other}")
            ctx.set(f"{step.id}.{branch}", True)
            logger.debug(f"Conditional step {step.id} branch: {branch}")
        else:
            ctx.set(step.id, result)
