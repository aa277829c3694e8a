from __future__ import annotations

"""Agent invocation collaborators.

Role:
    An AgentClient turns (agent_id, message, history) into an arbitrary JSON-shaped
    reply. Only response.result.{message, recommendations, suggestions} is read
    downstream, through the normalizer.

Implementations:
    HttpAgentClient:
        Forwards the turn to a remote agent service over HTTP.
    GeminiRecommendationAgent:
        Local reference agent: knowledge retrieval, Gemini generation, JSON parse.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from fastapi.concurrency import run_in_threadpool

from .config import Settings
from .gemini_client import GeminiClient
from .knowledge.knowledge_store import KnowledgeStore
from .step_runner import PipelineStep, StepRunner
from .utils import load_prompt, safe_json_loads

logger = logging.getLogger("recommender.agent")

SYSTEM_PROMPT_FILE = "recommendation_agent.txt"


class AgentInvocationError(Exception):
    """Raised when the agent collaborator cannot produce a reply."""


class AgentClient(Protocol):
    async def invoke(self, agent_id: str, message: str, history: Sequence[Dict[str, str]]) -> Any:
        ...


class HttpAgentClient:
    """Agent collaborator reached over HTTP."""

    def __init__(self, url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        if not url:
            raise ValueError("AGENT_URL is required for the http agent backend")
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def invoke(self, agent_id: str, message: str, history: Sequence[Dict[str, str]]) -> Any:
        """Purpose: POST one turn to the remote agent and return its JSON body.
        Inputs/Outputs: Inputs are agent id, message and history; returns decoded JSON.
        Side Effects / State: One outbound HTTP request.
        Dependencies: httpx.AsyncClient.
        Failure Modes: Timeouts, connection errors, non-2xx statuses and non-JSON
            bodies raise AgentInvocationError with a readable message.
        If Removed: Deployments backed by a hosted agent cannot be used.
        Testing Notes: Use httpx.MockTransport to simulate each failure.
        """
        payload = {"agent_id": agent_id, "message": message, "history": list(history)}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as exc:
            raise AgentInvocationError(f"Request timed out after {self._timeout:g} seconds") from exc
        except httpx.ConnectError as exc:
            raise AgentInvocationError("Connection failed - agent service may be down") from exc
        except httpx.HTTPStatusError as exc:
            raise AgentInvocationError(f"HTTP {exc.response.status_code}: {exc.response.text}") from exc
        except ValueError as exc:
            raise AgentInvocationError("Agent returned a non-JSON response") from exc


@dataclass
class AgentRun:
    """Mutable context passed across the reference agent's steps."""
    agent_id: str
    message: str
    history: List[Dict[str, str]]
    knowledge_chunks: List[str] = field(default_factory=list)
    raw_text: str = ""
    result: Dict[str, Any] = field(default_factory=dict)


class GeminiRecommendationAgent:
    """Reference recommendation agent backed by Gemini and the product knowledge base."""

    def __init__(
        self,
        gemini: GeminiClient,
        knowledge: Optional[KnowledgeStore],
        prompts_dir: Path,
        knowledge_topk: int = 6,
        model: Optional[str] = None,
    ) -> None:
        self._gemini = gemini
        self._knowledge = knowledge
        self._prompts_dir = prompts_dir
        self._knowledge_topk = knowledge_topk
        self._model = model
        self._runner = StepRunner(
            [
                PipelineStep("knowledge_retrieval", self._step_knowledge_retrieval, skip_if=self._knowledge_disabled),
                PipelineStep("generation", self._step_generation),
                PipelineStep("parse", self._step_parse),
            ]
        )

    async def invoke(self, agent_id: str, message: str, history: Sequence[Dict[str, str]]) -> Any:
        """Purpose: Produce a recommendation reply for one turn.
        Inputs/Outputs: Inputs are agent id, message and history; returns
            {"status": "success", "response": {"result": {...}}}.
        Side Effects / State: Reads the knowledge base, calls Gemini.
        Dependencies: StepRunner, GeminiClient, KnowledgeStore.
        Failure Modes: Gemini errors raise AgentInvocationError.
        If Removed: The default deployment has no agent.
        Testing Notes: Inject a fake Gemini client returning JSON or prose.
        """
        run = AgentRun(agent_id=agent_id, message=message, history=[dict(entry) for entry in history])
        try:
            await run_in_threadpool(self._runner.run, run)
        except Exception as exc:
            raise AgentInvocationError(str(exc) or "Gemini request failed") from exc
        return {"status": "success", "response": {"result": run.result}}

    def _knowledge_disabled(self, run: AgentRun) -> bool:
        return self._knowledge is None or self._knowledge_topk <= 0

    def _step_knowledge_retrieval(self, run: AgentRun) -> None:
        run.knowledge_chunks = self._knowledge.retrieve_topk(run.message, topk=self._knowledge_topk)
        logger.info("agent=%s step=knowledge_retrieval chunks=%d", run.agent_id, len(run.knowledge_chunks))

    def _step_generation(self, run: AgentRun) -> None:
        contents = build_contents(run.history, run.message, run.knowledge_chunks)
        system_instruction = load_prompt(self._prompts_dir / SYSTEM_PROMPT_FILE)
        run.raw_text = self._gemini.generate_content(
            contents,
            model=self._model,
            system_instruction=system_instruction,
        )
        logger.info("agent=%s step=generation chars=%d", run.agent_id, len(run.raw_text))

    def _step_parse(self, run: AgentRun) -> None:
        data = safe_json_loads(run.raw_text)
        if isinstance(data, dict):
            run.result = data
        else:
            # Prose reply: surface it as the message with no products.
            run.result = {"message": run.raw_text, "recommendations": [], "suggestions": []}


def build_contents(history: Sequence[Dict[str, str]], message: str, knowledge_chunks: Sequence[str]) -> List[dict]:
    """Purpose: Turn the history snapshot plus catalog context into Gemini contents.
    Inputs/Outputs: Inputs are history, current message and chunks; returns contents.
    Side Effects / State: None.
    Dependencies: None.
    Failure Modes: Entries without content are skipped.
    If Removed: Gemini loses conversation context.
    Testing Notes: The current user turn must appear exactly once, last.
    """
    entries = list(history)
    # The snapshot ends with the current user turn; it is re-sent with context below.
    if entries and entries[-1].get("role") == "user" and entries[-1].get("content") == message:
        entries = entries[:-1]

    contents = []
    for entry in entries:
        content = entry.get("content", "")
        if not content:
            continue
        role = "user" if entry.get("role") == "user" else "model"
        contents.append({"role": role, "parts": [{"text": content}]})

    if knowledge_chunks:
        catalog = "\n\n".join(knowledge_chunks)
        prompt = f"PRODUCT CATALOG CONTEXT:\n{catalog}\n\nCUSTOMER REQUEST:\n{message}"
    else:
        prompt = f"CUSTOMER REQUEST:\n{message}"
    contents.append({"role": "user", "parts": [{"text": prompt}]})
    return contents


def build_agent_client(settings: Settings, knowledge: Optional[KnowledgeStore]) -> AgentClient:
    """Select the agent collaborator configured by AGENT_BACKEND."""
    if settings.agent_backend == "http":
        return HttpAgentClient(settings.agent_url, timeout=settings.agent_timeout)
    return GeminiRecommendationAgent(
        gemini=GeminiClient(settings),
        knowledge=knowledge if settings.knowledge_enabled else None,
        prompts_dir=settings.prompts_dir,
        knowledge_topk=settings.knowledge_topk,
        model=settings.gemini_model,
    )
