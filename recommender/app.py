from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse

from .agent_client import AgentClient, build_agent_client
from .config import Settings, load_settings
from .knowledge.ingestion import IngestionClient, KnowledgeIngestionService, UploadedFile
from .models import (
    CategoryRequest,
    ComposerRequest,
    CreateSessionRequest,
    ProductCardView,
    SampleDataRequest,
    SessionView,
    SubmitRequest,
    SuggestionRequest,
    UploadStatusView,
)
from .session import SessionRegistry, ShoppingSession, UnknownProductError, UnknownSessionError

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".." / ".env"

logger = logging.getLogger("recommender.app")


def configure_logging(level_name: str) -> None:
    log_level = getattr(logging, level_name, logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    logging.getLogger("recommender").setLevel(log_level)


def create_app(
    settings: Optional[Settings] = None,
    agent: Optional[AgentClient] = None,
    ingestion: Optional[IngestionClient] = None,
) -> FastAPI:
    """Purpose: Build the FastAPI application and wire its collaborators.
    Inputs/Outputs: Optional Settings and collaborator overrides; returns FastAPI.
    Side Effects / State: Loads .env, configures logging, creates the registry.
    Dependencies: load_settings, build_agent_client, KnowledgeIngestionService.
    Failure Modes: Missing GEMINI_API_KEY (gemini backend) or AGENT_URL (http
        backend) raises ValueError unless an agent override is given.
    If Removed: The service cannot start.
    Testing Notes: Pass fake collaborators and drive it with TestClient.
    """
    if settings is None:
        if ENV_PATH.exists():
            load_dotenv(ENV_PATH, override=True)
        settings = load_settings()
    configure_logging(settings.log_level)

    knowledge_service = KnowledgeIngestionService(settings.knowledge_dir)
    if ingestion is None:
        ingestion = knowledge_service
    if agent is None:
        agent = build_agent_client(settings, knowledge_service.store_for(settings.knowledge_base_id))

    def new_session(session_id: str) -> ShoppingSession:
        return ShoppingSession(
            session_id=session_id,
            agent=agent,
            agent_id=settings.agent_id,
            ingestion=ingestion,
            knowledge_base_id=settings.knowledge_base_id,
            clear_after=settings.upload_status_clear_seconds,
        )

    registry = SessionRegistry(new_session, max_sessions=settings.max_sessions)

    app = FastAPI(title="Product Recommendation Assistant")
    app.state.settings = settings
    app.state.registry = registry
    logger.info("step=startup agent_backend=%s kb=%s", settings.agent_backend, settings.knowledge_base_id)

    @app.exception_handler(UnknownSessionError)
    async def unknown_session(request: Request, exc: UnknownSessionError) -> JSONResponse:
        return JSONResponse({"detail": f"Unknown session: {exc}"}, status_code=404)

    @app.exception_handler(UnknownProductError)
    async def unknown_product(request: Request, exc: UnknownProductError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "agent_backend": settings.agent_backend, "sessions": len(registry)}

    @app.post("/api/sessions", response_model=SessionView)
    def create_session(request: Optional[CreateSessionRequest] = None) -> SessionView:
        session_id = request.session_id if request else None
        return registry.ensure_session(session_id).view()

    @app.get("/api/sessions/{session_id}", response_model=SessionView)
    def get_session(session_id: str) -> SessionView:
        return registry.get(session_id).view()

    @app.delete("/api/sessions/{session_id}", status_code=204)
    def delete_session(session_id: str) -> None:
        registry.remove(session_id)

    @app.put("/api/sessions/{session_id}/composer", response_model=SessionView)
    def update_composer(session_id: str, request: ComposerRequest) -> SessionView:
        session = registry.get(session_id)
        session.set_input(request.value)
        return session.view()

    @app.post("/api/sessions/{session_id}/submit", response_model=SessionView)
    async def submit(session_id: str, request: Optional[SubmitRequest] = None) -> SessionView:
        """Purpose: Send the composer text (or explicit text) as a new turn.
        Inputs/Outputs: Path session id and optional text; returns the SessionView.
        Side Effects / State: Runs one dispatch; suspends while the agent replies.
        Dependencies: ShoppingSession.submit.
        Failure Modes: Rejected submits return accepted=false with no change.
        If Removed: The chat cannot be used.
        Testing Notes: Submit with a fake agent and check both new turns.
        """
        session = registry.get(session_id)
        accepted = await session.submit(request.text if request else None)
        return session.view(accepted=accepted)

    @app.post("/api/sessions/{session_id}/suggestions", response_model=SessionView)
    async def click_suggestion(session_id: str, request: SuggestionRequest) -> SessionView:
        session = registry.get(session_id)
        accepted = await session.click_suggestion(request.suggestion)
        return session.view(accepted=accepted)

    @app.post("/api/sessions/{session_id}/categories", response_model=SessionView)
    def select_category(session_id: str, request: CategoryRequest) -> SessionView:
        session = registry.get(session_id)
        session.select_category(request.name)
        return session.view()

    @app.post("/api/sessions/{session_id}/new-chat", response_model=SessionView)
    def new_chat(session_id: str) -> SessionView:
        session = registry.get(session_id)
        session.new_chat()
        return session.view()

    @app.put("/api/sessions/{session_id}/sample-data", response_model=SessionView)
    def toggle_sample_data(session_id: str, request: SampleDataRequest) -> SessionView:
        session = registry.get(session_id)
        session.toggle_sample_data(request.enabled)
        return session.view()

    @app.post(
        "/api/sessions/{session_id}/messages/{message_index}/products/{product_index}/toggle",
        response_model=ProductCardView,
    )
    def toggle_product(session_id: str, message_index: int, product_index: int) -> ProductCardView:
        return registry.get(session_id).toggle_product(message_index, product_index)

    @app.post(
        "/api/sessions/{session_id}/messages/{message_index}/products/{product_index}/image-error",
        response_model=ProductCardView,
    )
    def report_image_error(session_id: str, message_index: int, product_index: int) -> ProductCardView:
        return registry.get(session_id).report_image_error(message_index, product_index)

    @app.post("/api/sessions/{session_id}/uploads", response_model=UploadStatusView)
    async def upload_files(session_id: str, files: Optional[List[UploadFile]] = File(default=None)) -> UploadStatusView:
        """Purpose: Forward selected files to the knowledge base via the coordinator.
        Inputs/Outputs: Multipart files; returns the upload status view.
        Side Effects / State: Reads file bodies, runs one upload.
        Dependencies: ShoppingSession.upload, UploadedFile.
        Failure Modes: Ingestion errors appear in the status, not as HTTP errors.
        If Removed: Operators cannot extend the catalog.
        Testing Notes: Upload two text files and check the success status.
        """
        session = registry.get(session_id)
        uploaded = []
        for item in files or []:
            uploaded.append(
                UploadedFile(filename=item.filename or "", content=await item.read(), content_type=item.content_type)
            )
        await session.upload(uploaded)
        return session.uploads.view()

    @app.get("/api/sessions/{session_id}/uploads", response_model=UploadStatusView)
    def upload_status(session_id: str) -> UploadStatusView:
        return registry.get(session_id).uploads.view()

    return app
