"""Incremental workflow authoring.

``Work`` lets a workflow be built one step at a time: each new step is run
immediately against the context left by the previous run, so its output can
be inspected before the next step is written.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from .config import load_config
from .contracts import BaseStep
from .engine import Action, WorkflowEngine
from .persistence import DocumentStore, get_store
from .persistence.models import History, RunRecord, WorkflowDocument
from .persistence.store import DOCUMENT_VERSION
from .workflow import Workflow

logger = logging.getLogger(__name__)


class Work:
    """Step-by-step workflow builder backed by a document store.

    Example:
        >>> work = Work(actions={"getUser": get_user, "greet": greet}, save_path="flow.json")
        >>> await work.step({"id": "getUser", "action": "getUser"})
        >>> await work.step({"id": "greet", "action": "greet", "options": {"name": "$ref.getUser.name"}})
        >>> await work.run(entry="getUser")
    """

    def __init__(
        self,
        actions: Optional[Mapping[str, Action]] = None,
        save_path: Optional[str] = None,
        workflow_cls: Type[WorkflowEngine] = Workflow,
        store: Optional[DocumentStore] = None,
    ) -> None:
        self.actions: Dict[str, Action] = dict(actions or {})
        config = load_config()
        self.save_path = save_path or config.store_path
        self.workflow_cls = workflow_cls
        self.store = store or get_store(self.save_path, config)
        self.last_run: Optional[RunRecord] = None
        self._steps: Dict[str, BaseStep] = {}

    @property
    def steps(self) -> List[BaseStep]:
        return list(self._steps.values())

    def workflow(self) -> WorkflowEngine:
        return self.workflow_cls(self.steps)

    def to_document(self) -> WorkflowDocument:
        return WorkflowDocument(
            version=DOCUMENT_VERSION,
            steps=[step.snapshot() for step in self.steps],
            last_run=self.last_run,
        )

    async def save(self) -> WorkflowDocument:
        document = self.to_document()
        await self.store.save(document)
        return document

    async def load(self) -> Optional[WorkflowDocument]:
        """Replace the in-memory steps and last run with the stored document."""
        document = await self.store.load()
        if document is None:
            return None
        model = self.workflow_cls.step_model
        self._steps = {}
        for raw in document.steps:
            step = model.model_validate(raw)
            self._steps[step.id] = step
        self.last_run = document.last_run
        logger.info(f"Loaded {len(self._steps)} step(s)")
        return document

    async def step(
        self, step: Union[BaseStep, Mapping[str, Any]], run: bool = True
    ) -> WorkflowDocument:
        """Register or replace ``step`` and, when ``run`` is set, execute only it.

        The step runs against the context of the last run, so references to
        earlier steps resolve to the values they produced then.
        """
        model = self.workflow_cls.step_model
        parsed = step if isinstance(step, model) else model.model_validate(
            step.model_dump() if isinstance(step, BaseStep) else step
        )
        self._steps[parsed.id] = parsed
        workflow = self.workflow()

        if run:
            history = await workflow.run(
                actions=self.actions, history=self.to_document().history(), only_runs=[parsed.id]
            )
            self.last_run = history[-1]
            logger.info(f"Step {parsed.id} finished with status {self.last_run.status.value}")

        document = self.to_document()
        if self.save_path:
            await self.store.save(document)
        return document

    async def run(self, **options: Any) -> History:
        """Run the whole definition; ``options`` are passed to ``run()``."""
        options.setdefault("actions", self.actions)
        options.setdefault("history", self.to_document().history())
        history = await self.workflow().run(**options)
        self.last_run = history[-1]
        if self.save_path:
            await self.store.save(self.to_document())
        return history
