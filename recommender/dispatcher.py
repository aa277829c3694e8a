from __future__ import annotations

"""Turn dispatch state machine: user turn, agent call, assistant or error turn."""

import enum
import logging
from typing import Optional

from .agent_client import AgentClient
from .composer import Composer
from .conversation_store import ConversationStore
from .models import Message
from .normalizer import normalize_agent_response

logger = logging.getLogger("recommender.dispatch")

ERROR_PREFIX = "Sorry, I encountered an error: "
UNKNOWN_ERROR = "Unknown error"


class DispatchState(str, enum.Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"


class TurnDispatcher:
    """Serializes submits for one session and threads replies into the store."""

    def __init__(
        self,
        store: ConversationStore,
        composer: Composer,
        agent: AgentClient,
        agent_id: str,
        session_id: str = "",
    ) -> None:
        self._store = store
        self._composer = composer
        self._agent = agent
        self._agent_id = agent_id
        self._session_id = session_id
        self._state = DispatchState.IDLE

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is DispatchState.DISPATCHING

    async def submit(self, text: str) -> Optional[Message]:
        """Purpose: Run one conversation turn against the agent collaborator.
        Inputs/Outputs: Input is the text to send; output is the assistant or error
            Message, or None when the submit was rejected.
        Side Effects / State: Appends the user turn, clears the composer, flips the
            loading state around the agent call, appends the reply turn. A failed
            call drops its user turn from the history again.
        Dependencies: ConversationStore, Composer, AgentClient, normalizer.
        Failure Modes: Collaborator errors become an error turn; never raises for them.
        If Removed: The session cannot talk to the agent.
        Testing Notes: Check the reject paths, the success path and the error path.
        """
        # Guard: blank text or a dispatch already in flight.
        if not text or not text.strip():
            return None
        if self._state is DispatchState.DISPATCHING:
            logger.info("session=%s step=submit status=rejected reason=in_flight", self._session_id)
            return None

        self._store.append_user(text)
        self._composer.clear()
        self._state = DispatchState.DISPATCHING
        # The snapshot already holds the new user turn exactly once.
        history = self._store.history_snapshot()
        logger.info(
            "session=%s step=submit status=dispatching chars=%d history=%d",
            self._session_id,
            len(text),
            len(history),
        )

        try:
            raw = await self._agent.invoke(
                self._agent_id,
                text,
                [entry.model_dump() for entry in history],
            )
        except Exception as exc:
            reason = str(exc) or UNKNOWN_ERROR
            logger.warning(
                "session=%s step=agent status=error reason=%s", self._session_id, reason, exc_info=True
            )
            self._store.discard_last_history()
            message = self._store.append_error(ERROR_PREFIX + reason)
        else:
            agent_data = normalize_agent_response(raw)
            message = self._store.append_assistant(agent_data)
            logger.info(
                "session=%s step=agent status=success recommendations=%d suggestions=%d",
                self._session_id,
                len(agent_data.recommendations),
                len(agent_data.suggestions),
            )
        finally:
            self._state = DispatchState.IDLE
        return message
