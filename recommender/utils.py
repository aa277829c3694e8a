import json
import re
import unicodedata
from pathlib import Path
from typing import Any, Optional


def normalize_text(text: str) -> str:
    """Purpose: Normalize free-form text for keyword matching in knowledge retrieval.
    Inputs/Outputs: Input is a raw string; output is a lowercase ASCII-only string with
        diacritics removed and whitespace collapsed.
    Side Effects / State: None; pure function.
    Dependencies: Uses unicodedata and regex; called by the knowledge store tokenizer.
    Failure Modes: Returns an empty string when input is falsy.
    If Removed: Query and chunk tokens stop lining up and retrieval misses matches.
    Testing Notes: Validate accented text is folded (e.g., "Café" -> "cafe") and
        punctuation/whitespace are collapsed.
    """
    # Normalize to lowercase and strip diacritics for consistent matching.
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    cleaned = re.sub(r"[^a-z0-9\s\-_/.$]+", " ", stripped)
    return re.sub(r"\s+", " ", cleaned).strip()


def extract_json_block(text: str) -> Optional[str]:
    """Purpose: Extract the outermost JSON object block from an arbitrary string.
    Inputs/Outputs: Input is a raw string; output is JSON substring or None.
    Side Effects / State: None; pure function.
    Dependencies: None beyond built-ins; used by safe_json_loads.
    Failure Modes: Returns None if braces are missing or inverted.
    If Removed: Model replies wrapped in prose or code fences cannot be parsed.
    Testing Notes: Provide strings with extra text before/after JSON and ensure extraction.
    """
    # Locate the outermost JSON braces to extract a parseable block.
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def safe_json_loads(text: str) -> Optional[Any]:
    """Purpose: Parse a JSON object from a model or service reply safely.
    Inputs/Outputs: Input is raw text; output is the decoded value or None.
    Side Effects / State: None; pure function.
    Dependencies: Uses extract_json_block and json.loads.
    Failure Modes: Returns None on JSONDecodeError or missing JSON block.
    If Removed: Agent replies and text payloads crash the normalizer on bad JSON.
    Testing Notes: Validate valid JSON parses and malformed JSON returns None.
    """
    # Parse only the extracted JSON block to avoid non-JSON prefixes/suffixes.
    block = extract_json_block(text)
    if not block:
        return None
    try:
        return json.loads(block)
    except json.JSONDecodeError:
        return None


def load_prompt(prompt_path: Path) -> str:
    """Purpose: Load a prompt file as UTF-8 text and strip BOM if present.
    Inputs/Outputs: Input is a Path to the prompt file; output is the decoded string.
    Side Effects / State: None; reads the filesystem.
    Dependencies: Uses Path.read_text/read_bytes; used by the recommendation agent.
    Failure Modes: UnicodeDecodeError triggers a tolerant decode that drops bad bytes;
        a missing file raises FileNotFoundError.
    If Removed: The agent cannot load its system instruction.
    Testing Notes: Validate BOM-stripping and fallback decoding on non-UTF8 files.
    """
    # Read as UTF-8 and fall back to a tolerant decode if needed.
    try:
        return prompt_path.read_text(encoding="utf-8").lstrip("\ufeff")
    except UnicodeDecodeError:
        raw = prompt_path.read_bytes()
        return raw.decode("utf-8", errors="ignore").lstrip("\ufeff")
