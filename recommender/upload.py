from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional, Sequence

from .config import ACCEPTED_UPLOAD_EXTENSIONS
from .knowledge.ingestion import IngestionClient, UploadedFile
from .models import UploadStatusView

logger = logging.getLogger("recommender.upload")

UPLOADING_STATUS = "Uploading and processing files..."
UNKNOWN_ERROR = "Unknown error"
DEFAULT_CLEAR_SECONDS = 5.0


class UploadState(str, enum.Enum):
    IDLE = "idle"
    UPLOADING = "uploading"


class UploadCoordinator:
    """Serialized knowledge-base uploads with a self-clearing status line."""

    def __init__(
        self,
        ingestion: IngestionClient,
        knowledge_base_id: str,
        clear_after: float = DEFAULT_CLEAR_SECONDS,
        session_id: str = "",
    ) -> None:
        self._ingestion = ingestion
        self._knowledge_base_id = knowledge_base_id
        self._clear_after = clear_after
        self._session_id = session_id
        self._state = UploadState.IDLE
        self._status = ""
        self._is_error = False
        self._selection_generation = 0
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def status(self) -> str:
        return self._status

    @property
    def selection_generation(self) -> int:
        # Bumped after every finished upload so the client resets its file input.
        return self._selection_generation

    @property
    def clear_pending(self) -> bool:
        return self._clear_handle is not None

    async def upload(self, files: Sequence[UploadedFile]) -> bool:
        """Purpose: Send a file set to the ingestion collaborator and track status.
        Inputs/Outputs: Input is the selected files; returns True when an upload ran.
        Side Effects / State: Updates state/status, cancels and schedules the
            status-clear timer, bumps the selection generation.
        Dependencies: IngestionClient and the running asyncio loop.
        Failure Modes: Collaborator errors become "Upload failed: ..." and persist.
        If Removed: Operators cannot add catalog documents from the session.
        Testing Notes: Cover success with timer expiry, failure, empty and busy guards.
        """
        if not files:
            return False
        if self._state is UploadState.UPLOADING:
            logger.info("session=%s step=upload status=rejected reason=in_flight", self._session_id)
            return False

        self._cancel_clear()
        self._state = UploadState.UPLOADING
        self._set_status(UPLOADING_STATUS)
        logger.info("session=%s step=upload status=started files=%d", self._session_id, len(files))
        try:
            await self._ingestion.ingest(self._knowledge_base_id, list(files))
        except Exception as exc:
            reason = str(exc) or UNKNOWN_ERROR
            logger.warning("session=%s step=upload status=error reason=%s", self._session_id, reason, exc_info=True)
            self._set_status(f"Upload failed: {reason}", is_error=True)
        else:
            self._set_status(f"Successfully uploaded {len(files)} file(s) to product catalog")
            self._schedule_clear()
            logger.info("session=%s step=upload status=success files=%d", self._session_id, len(files))
        finally:
            self._state = UploadState.IDLE
            self._selection_generation += 1
        return True

    def view(self) -> UploadStatusView:
        return UploadStatusView(
            state=self._state.value,
            status=self._status,
            is_error=self._is_error,
            selection_generation=self._selection_generation,
            accept=",".join(ACCEPTED_UPLOAD_EXTENSIONS),
        )

    def close(self) -> None:
        self._cancel_clear()

    def _set_status(self, status: str, is_error: bool = False) -> None:
        self._status = status
        self._is_error = is_error

    def _schedule_clear(self) -> None:
        loop = asyncio.get_running_loop()
        self._clear_handle = loop.call_later(self._clear_after, self._clear_status)

    def _cancel_clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    def _clear_status(self) -> None:
        self._clear_handle = None
        self._set_status("")
