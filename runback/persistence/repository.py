"""Storage abstraction for persisted workflow documents."""

from __future__ import annotations

from typing import Protocol

from .models import WorkflowDocument


class DocumentStore(Protocol):
    """Protocol for workflow document backends."""

    async def load(self) -> WorkflowDocument | None:
        """Return the stored document, or ``None`` when nothing was saved yet."""

    async def save(self, document: WorkflowDocument) -> None:
        """Persist ``document``, replacing any previous one."""
