"""Persistence layer for runback workflows."""

from __future__ import annotations

from typing import Optional

from ..config import RunbackConfig, load_config
from .inmemory import InMemoryDocumentStore
from .models import (
    ErrorInfo,
    History,
    RunRecord,
    RunStatus,
    StepExecutionRecord,
    WorkflowDocument,
)
from .repository import DocumentStore
from .store import DOCUMENT_VERSION, WorkflowStore


def get_store(
    path: Optional[str] = None, config: Optional[RunbackConfig] = None
) -> DocumentStore:
    """Factory function to obtain a document store.

    The file location is taken from ``path``, or from ``store_path`` in the
    loaded configuration (``RUNBACK_STORE_PATH`` overrides the file). When no
    location is configured, an in-memory store is returned.
    """

    config = config or load_config()
    path = path or config.store_path
    if not path:
        return InMemoryDocumentStore()
    return WorkflowStore(path, version=config.document_version)


__all__ = [
    "DOCUMENT_VERSION",
    "DocumentStore",
    "ErrorInfo",
    "History",
    "InMemoryDocumentStore",
    "RunRecord",
    "RunStatus",
    "StepExecutionRecord",
    "WorkflowDocument",
    "WorkflowStore",
    "get_store",
]
