from __future__ import annotations

"""Per-knowledge-base document store with chunking and keyword retrieval."""

import json
import logging
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from ..utils import normalize_text

logger = logging.getLogger("recommender.knowledge")

DOCUMENT_SUFFIX = ".md"


class KnowledgeStore:
    """Manage ingested product documents for one knowledge base and retrieve chunks."""

    def __init__(self, root_dir: Path, knowledge_base_id: str) -> None:
        self._knowledge_base_id = knowledge_base_id
        self._base_dir = Path(root_dir) / _safe_name(knowledge_base_id)
        self._documents_dir = self._base_dir / "documents"
        self._index_path = self._base_dir / "index.json"
        self._index_cache: Optional[Dict[str, object]] = None
        self._lock = threading.Lock()

    @property
    def knowledge_base_id(self) -> str:
        return self._knowledge_base_id

    @property
    def documents_dir(self) -> Path:
        return self._documents_dir

    def add_document(self, filename: str, text: str) -> Path:
        """Purpose: Store extracted document text as a markdown file.
        Inputs/Outputs: Inputs are the original filename and its text; returns the path.
        Side Effects / State: Writes under documents/ and invalidates the index cache.
        Dependencies: Filesystem under the knowledge base directory.
        Failure Modes: IO errors propagate to the ingestion service.
        If Removed: Uploaded files never reach retrieval.
        Testing Notes: Add a document and verify retrieve_topk finds its content.
        """
        self._documents_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
        target = self._documents_dir / f"{stamp}_{_safe_name(Path(filename).stem)}{DOCUMENT_SUFFIX}"
        body = f"# {Path(filename).name}\n\n{text.strip()}\n"
        tmp_path = target.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(target)
        with self._lock:
            self._index_cache = None
        logger.info("kb=%s step=add_document file=%s chars=%d", self._knowledge_base_id, target.name, len(text))
        return target

    def list_documents(self) -> List[Path]:
        if not self._documents_dir.exists():
            return []
        return sorted(self._documents_dir.glob(f"*{DOCUMENT_SUFFIX}"))

    def build_or_load_index(self) -> Dict[str, object]:
        """Purpose: Build or load the chunk index for the stored documents.
        Inputs/Outputs: No inputs; returns an index dict with chunks and a signature.
        Side Effects / State: Writes index.json when rebuilding.
        Dependencies: chunk_document and list_documents.
        Failure Modes: A corrupt index file triggers a rebuild.
        If Removed: retrieve_topk must re-chunk every document per query.
        Testing Notes: Add a document and confirm the index rebuilds.
        """
        with self._lock:
            documents = self.list_documents()
            signature = [[path.name, path.stat().st_mtime] for path in documents]

            if self._index_cache and self._index_cache.get("signature") == signature:
                return self._index_cache

            if self._index_path.exists():
                try:
                    cached = json.loads(self._index_path.read_text(encoding="utf-8"))
                    if isinstance(cached, dict) and cached.get("signature") == signature:
                        self._index_cache = cached
                        return cached
                except json.JSONDecodeError:
                    pass

            chunks: List[Dict[str, str]] = []
            for path in documents:
                chunks.extend(self.chunk_document(path.read_text(encoding="utf-8"), source=path.name))
            index = {"signature": signature, "chunks": chunks}
            if documents:
                self._write_index(index)
            self._index_cache = index
            return index

    def retrieve_topk(self, query: str, topk: int = 6) -> List[str]:
        """Purpose: Retrieve the top-K chunks relevant to a query.
        Inputs/Outputs: Input is a query string and topk; output is formatted chunks.
        Side Effects / State: May rebuild the index.
        Dependencies: normalize_text and build_or_load_index.
        Failure Modes: Empty query, no documents or topk <= 0 return [].
        If Removed: The agent prompt carries no catalog context.
        Testing Notes: Query with words from a title and verify ranking.
        """
        if not query or topk <= 0:
            return []
        query_tokens = _tokenize(query)
        if not query_tokens:
            return []

        chunks = self.build_or_load_index().get("chunks", [])
        scored = []
        for chunk in chunks:
            score = _score_chunk(query_tokens, chunk.get("content", ""), chunk.get("title", ""), chunk.get("section", ""))
            if score > 0:
                scored.append((score, chunk))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [_format_chunk(chunk) for _, chunk in scored[:topk]]

    def chunk_document(self, text: str, source: str) -> List[Dict[str, str]]:
        """Split document text into chunks at markdown headings."""
        if not text:
            return []

        chunks: List[Dict[str, str]] = []
        section = ""
        title = ""
        buffer: List[str] = []

        def flush() -> None:
            nonlocal buffer
            content = "\n".join(buffer).strip()
            buffer = []
            if not content:
                return
            for part in _split_long_content(content):
                chunks.append(
                    {
                        "chunk_id": f"{source}-{len(chunks)}",
                        "section": section,
                        "title": title or section,
                        "content": part,
                        "source": source,
                    }
                )

        for line in text.splitlines():
            if line.startswith("# "):
                flush()
                section = line[2:].strip()
                title = section
                continue
            if line.startswith("## ") or line.startswith("### "):
                flush()
                title = line.lstrip("#").strip()
                continue
            buffer.append(line)

        flush()
        return chunks

    def _write_index(self, index: Dict[str, object]) -> None:
        self._base_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = self._index_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(index, ensure_ascii=True), encoding="utf-8")
        tmp_path.replace(self._index_path)


def _safe_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
    return cleaned or "document"


def _tokenize(text: str) -> List[str]:
    return [token for token in normalize_text(text).split() if token]


def _score_chunk(tokens: List[str], content: str, title: str, section: str) -> float:
    content_tokens = _tokenize(content)
    if not content_tokens:
        return 0.0
    content_counts: Dict[str, int] = {}
    for token in content_tokens:
        content_counts[token] = content_counts.get(token, 0) + 1

    title_tokens = set(_tokenize(title))
    section_tokens = set(_tokenize(section))

    score = 0.0
    for token in tokens:
        score += content_counts.get(token, 0)
        if token in title_tokens:
            score += 2.0
        if token in section_tokens:
            score += 1.0
    return score


def _format_chunk(chunk: Dict[str, str]) -> str:
    header_parts = [part for part in (chunk.get("section", ""), chunk.get("title", "")) if part]
    header = " / ".join(dict.fromkeys(header_parts))
    return f"[{header}]\n{chunk.get('content', '')}".strip()


def _split_long_content(content: str, max_words: int = 300) -> List[str]:
    words = content.split()
    if len(words) <= max_words:
        return [content]
    return [" ".join(words[idx : idx + max_words]) for idx in range(0, len(words), max_words)]
