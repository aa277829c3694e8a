from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

INPUT_LIMIT = 200
CATEGORY_SHORTCUTS = ("Electronics", "Home & Garden", "Budget-friendly options", "Premium products")
ACCEPTED_UPLOAD_EXTENSIONS = (".pdf", ".txt", ".doc", ".docx")


@dataclass(frozen=True)
class Settings:
    """Configuration container for collaborators, knowledge base, and runtime limits."""
    agent_backend: str
    agent_id: str
    agent_url: str
    agent_timeout: float
    gemini_api_key: str
    gemini_model: str
    knowledge_base_id: str
    knowledge_dir: Path
    knowledge_topk: int
    knowledge_enabled: bool
    prompts_dir: Path
    upload_status_clear_seconds: float
    max_sessions: int
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Invalid numeric env values raise ValueError; an unknown
        AGENT_BACKEND raises ValueError.
    If Removed: App cannot wire its collaborators and fails at startup.
    Testing Notes: Verify defaults and overrides via environment variables.
    """
    # Resolve knowledge/prompt paths, then build Settings.
    knowledge_dir = os.getenv("KNOWLEDGE_DIR")
    if knowledge_dir:
        knowledge_path = Path(knowledge_dir)
    else:
        knowledge_path = (BASE_DIR / ".." / "knowledge_bases").resolve()

    agent_backend = os.getenv("AGENT_BACKEND", "gemini").strip().lower()
    if agent_backend not in {"gemini", "http"}:
        raise ValueError(f"Unsupported AGENT_BACKEND: {agent_backend}")

    return Settings(
        agent_backend=agent_backend,
        agent_id=os.getenv("AGENT_ID", "product-recommendation-agent"),
        agent_url=os.getenv("AGENT_URL", ""),
        agent_timeout=float(os.getenv("AGENT_TIMEOUT", "30")),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        knowledge_base_id=os.getenv("KNOWLEDGE_BASE_ID", "product-catalog"),
        knowledge_dir=knowledge_path,
        knowledge_topk=int(os.getenv("KNOWLEDGE_TOPK", "6")),
        knowledge_enabled=os.getenv("KNOWLEDGE_ENABLED", "1") != "0",
        prompts_dir=(BASE_DIR / "prompts").resolve(),
        upload_status_clear_seconds=float(os.getenv("UPLOAD_STATUS_CLEAR_SECONDS", "5")),
        max_sessions=int(os.getenv("MAX_SESSIONS", "100")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
