"""Execution records kept in run history and persisted documents."""

from __future__ import annotations

import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() * 1000)


class RunStatus(str, Enum):
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    ABORTED = "aborted"
    PENDING = "pending"


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorInfo(_Record):
    message: str
    stack: Optional[str] = None

    @classmethod
    def from_exception(cls, error: BaseException) -> "ErrorInfo":
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return cls(message=str(error), stack=stack)


class StepExecutionRecord(_Record):
    """What happened to one step during one run."""

    step: Dict[str, Any]
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: int = 0
    status: RunStatus = RunStatus.RUNNING
    options: Any = None
    inputs: Any = None
    outputs: Any = None
    only_run: bool = False
    error: Optional[ErrorInfo] = None
    context: Dict[str, Any] = Field(default_factory=dict)

    def _finish(self, status: RunStatus) -> None:
        self.end_time = utcnow()
        self.duration = _elapsed_ms(self.start_time, self.end_time)
        self.status = status

    def mark_success(self) -> None:
        self._finish(RunStatus.SUCCESS)

    def mark_failed(self, error: BaseException) -> None:
        self._finish(RunStatus.FAILED)
        self.error = ErrorInfo.from_exception(error)


class RunRecord(_Record):
    """One invocation of ``run()``: per-step records plus the final context."""

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: int = 0
    status: RunStatus = RunStatus.RUNNING
    steps: Dict[str, StepExecutionRecord] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[ErrorInfo] = None

    def _finish(self, status: RunStatus, context: Dict[str, Any]) -> None:
        self.end_time = utcnow()
        self.duration = _elapsed_ms(self.start_time, self.end_time)
        self.status = status
        self.context = context

    def mark_success(self, context: Dict[str, Any]) -> None:
        self._finish(RunStatus.SUCCESS, context)

    def mark_failed(self, context: Dict[str, Any], error: BaseException) -> None:
        self._finish(RunStatus.FAILED, context)
        self.error = ErrorInfo.from_exception(error)


History = List[RunRecord]


class WorkflowDocument(_Record):
    """Persisted workflow: the step definitions plus the most recent run."""

    version: str = "1"
    steps: List[Dict[str, Any]] = Field(default_factory=list)
    last_run: Optional[RunRecord] = None

    def history(self) -> History:
        """History seeded from ``last_run``, as expected by ``run()``."""
        return [self.last_run.model_copy(deep=True)] if self.last_run else []
