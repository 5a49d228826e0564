"""In-memory implementation of the document store."""

from __future__ import annotations

from .models import WorkflowDocument
from .repository import DocumentStore


class InMemoryDocumentStore(DocumentStore):
    """Keep the workflow document in local memory.

    Useful for tests or when no store path is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self._document: WorkflowDocument | None = None

    async def load(self) -> WorkflowDocument | None:
        if self._document is None:
            return None
        return self._document.model_copy(deep=True)

    async def save(self, document: WorkflowDocument) -> None:
        self._document = document.model_copy(deep=True)
