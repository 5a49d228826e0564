"""runback: declarative step-graph workflows with reference-driven data flow."""

from .context import ExecutionContext
from .contracts import Step, Step2, StepKind
from .engine import WorkflowEngine
from .errors import RunbackError
from .log import LogLevel, configure_logging
from .mapping import inject_input
from .path import MISSING, get_path, parse_path, set_path
from .persistence import RunRecord, RunStatus, StepExecutionRecord, WorkflowStore, get_store
from .ref import create_ref
from .work import Work
from .workflow import Workflow
from .workflow2 import Workflow2

__version__ = "0.1.0"
__all__ = [
    "ExecutionContext",
    "LogLevel",
    "MISSING",
    "RunRecord",
    "RunStatus",
    "RunbackError",
    "Step",
    "Step2",
    "StepExecutionRecord",
    "StepKind",
    "Work",
    "Workflow",
    "Workflow2",
    "WorkflowEngine",
    "WorkflowStore",
    "configure_logging",
    "create_ref",
    "get_path",
    "get_store",
    "inject_input",
    "parse_path",
    "set_path",
]
