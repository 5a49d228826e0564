"""JSON file implementation of the document store."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .models import WorkflowDocument
from .repository import DocumentStore

logger = logging.getLogger(__name__)

DOCUMENT_VERSION = "1"


class WorkflowStore(DocumentStore):
    """Persist a workflow document as a JSON file.

    File access runs in a worker thread so callers on the event loop are not
    blocked. A document written by a different version is loaded anyway,
    with a warning.
    """

    def __init__(self, path: str | Path, version: str = DOCUMENT_VERSION):
        self.path = Path(path)
        self.version = version

    # ------------------------------------------------------------------
    # Helper methods
    def _read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def _write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding="utf-8")

    # ------------------------------------------------------------------
    # Store API
    async def load(self) -> WorkflowDocument | None:
        text = await asyncio.to_thread(self._read)
        if text is None:
            logger.info(f"No workflow document at {self.path}")
            return None
        document = WorkflowDocument.model_validate_json(text)
        if document.version != self.version:
            logger.warning(
                f"Workflow document version mismatch: file has {document.version}, "
                f"expected {self.version}"
            )
        return document

    async def save(self, document: WorkflowDocument) -> None:
        text = document.model_dump_json(by_alias=True, indent=2)
        await asyncio.to_thread(self._write, text)
        logger.info(f"Saved workflow document to {self.path}")
