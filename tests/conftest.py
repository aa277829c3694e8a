import asyncio
from pathlib import Path
from typing import Any, List, Optional

import pytest

from recommender.config import Settings


class FakeAgent:
    """Agent collaborator double that records calls."""

    def __init__(self, reply: Any = None, error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None
        self.started: Optional[asyncio.Event] = None

    async def invoke(self, agent_id, message, history):
        self.calls.append((agent_id, message, [dict(entry) for entry in history]))
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


class FakeIngestion:
    """Ingestion collaborator double."""

    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None

    async def ingest(self, knowledge_base_id, files):
        self.calls.append((knowledge_base_id, list(files)))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return len(files)


def reply(message="Here are laptops", recommendations=None, suggestions=None):
    return {
        "response": {
            "result": {
                "message": message,
                "recommendations": recommendations if recommendations is not None else [{"productName": "X"}],
                "suggestions": suggestions if suggestions is not None else ["cheaper options"],
            }
        }
    }


@pytest.fixture
def fake_agent():
    return FakeAgent(reply=reply())


@pytest.fixture
def fake_ingestion():
    return FakeIngestion()


@pytest.fixture
def clock():
    ticks = iter(range(1_700_000_000_000, 1_700_000_000_000 + 10_000))
    return lambda: next(ticks)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        agent_backend="gemini",
        agent_id="agent-test",
        agent_url="",
        agent_timeout=5.0,
        gemini_api_key="",
        gemini_model="gemini-2.5-flash",
        knowledge_base_id="kb-test",
        knowledge_dir=tmp_path / "kb",
        knowledge_topk=3,
        knowledge_enabled=True,
        prompts_dir=Path(__file__).resolve().parents[1] / "recommender" / "prompts",
        upload_status_clear_seconds=0.05,
        max_sessions=10,
        log_level="INFO",
    )
