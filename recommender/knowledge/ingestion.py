from __future__ import annotations

"""Document ingestion into knowledge bases: text extraction and storage."""

import csv
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import docx
from fastapi.concurrency import run_in_threadpool
from pypdf import PdfReader

from .knowledge_store import KnowledgeStore

logger = logging.getLogger("recommender.knowledge")


class IngestionError(Exception):
    """Raised when a batch of files cannot be ingested."""


@dataclass(frozen=True)
class UploadedFile:
    """File handle received from the client."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return Path(self.filename or "").suffix.lower()


class IngestionClient(Protocol):
    async def ingest(self, knowledge_base_id: str, files: Sequence[UploadedFile]) -> int:
        ...


class KnowledgeIngestionService:
    """Ingestion collaborator backed by local KnowledgeStore directories."""

    def __init__(self, root_dir: Path) -> None:
        self._root_dir = Path(root_dir)
        self._stores: Dict[str, KnowledgeStore] = {}

    def store_for(self, knowledge_base_id: str) -> KnowledgeStore:
        if knowledge_base_id not in self._stores:
            self._stores[knowledge_base_id] = KnowledgeStore(self._root_dir, knowledge_base_id)
        return self._stores[knowledge_base_id]

    async def ingest(self, knowledge_base_id: str, files: Sequence[UploadedFile]) -> int:
        """Purpose: Extract text from every file and add it to the knowledge base.
        Inputs/Outputs: Inputs are the knowledge base id and files; returns the count.
        Side Effects / State: Writes documents and invalidates the chunk index.
        Dependencies: extract_text, KnowledgeStore, run_in_threadpool.
        Failure Modes: Raises IngestionError when any file yields no text; nothing
            from the batch is stored in that case.
        If Removed: Operators cannot grow the product catalog.
        Testing Notes: Upload text files and confirm retrieval; upload an empty file
            and confirm the batch fails.
        """
        if not files:
            raise IngestionError("No files provided")
        return await run_in_threadpool(self._ingest_sync, knowledge_base_id, list(files))

    def _ingest_sync(self, knowledge_base_id: str, files: List[UploadedFile]) -> int:
        extracted: List[Tuple[str, str]] = []
        for uploaded in files:
            name = Path(uploaded.filename or "").name or "document"
            text = extract_text(uploaded)
            if not text.strip():
                raise IngestionError(f"No readable text found in {name}")
            extracted.append((name, text))

        store = self.store_for(knowledge_base_id)
        for name, text in extracted:
            store.add_document(name, text)
        logger.info("kb=%s step=ingest status=success files=%d", knowledge_base_id, len(extracted))
        return len(extracted)


def extract_text(uploaded: UploadedFile) -> str:
    """Best-effort text extraction keyed by file extension."""
    ext = uploaded.extension
    try:
        if ext == ".pdf":
            reader = PdfReader(io.BytesIO(uploaded.content))
            return "\n\n".join(page.extract_text() or "" for page in reader.pages)
        if ext == ".docx":
            document = docx.Document(io.BytesIO(uploaded.content))
            return "\n".join(paragraph.text for paragraph in document.paragraphs)
        if ext == ".json":
            return _flatten_json(_decode(uploaded.content))
        if ext == ".csv":
            rows = csv.reader(io.StringIO(_decode(uploaded.content)))
            return "\n".join(" ".join(row) for row in rows)
        return _decode(uploaded.content)
    except Exception as exc:
        raise IngestionError(f"Could not read {uploaded.filename}: {exc}") from exc


def _decode(content: bytes) -> str:
    text = content.decode("utf-8", errors="ignore")
    # Legacy binary formats decode to control-character noise.
    return "".join(ch for ch in text if ch.isprintable() or ch in "\n\t")


def _flatten_json(text: str) -> str:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(data, list):
        return "\n".join(
            " ".join(str(value) for value in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        )
    if isinstance(data, dict):
        return " ".join(str(value) for value in data.values())
    return str(data)
