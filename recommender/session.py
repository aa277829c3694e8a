from __future__ import annotations

"""Session state and controls for one browser conversation, plus the registry.

Every user action or collaborator completion lands on one ShoppingSession method.
All methods run on the event loop; only submit and upload suspend (while awaiting
their collaborator), so state transitions never interleave mid-update.
"""

import logging
import time
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .agent_client import AgentClient
from .composer import Composer
from .config import CATEGORY_SHORTCUTS
from .conversation_store import ConversationStore, now_millis
from .dispatcher import TurnDispatcher
from .knowledge.ingestion import IngestionClient, UploadedFile
from .models import Message, MessageView, ProductCardView, SessionView
from .product_view import ProductCardState, build_product_card
from .sample_data import build_sample_conversation
from .upload import DEFAULT_CLEAR_SECONDS, UploadCoordinator, UploadState

logger = logging.getLogger("recommender.session")

READY_STATUS = "Ready to help"
SEARCHING_STATUS = "Searching catalog..."


class UnknownSessionError(LookupError):
    """Raised when a session id is not registered."""


class UnknownProductError(LookupError):
    """Raised when a message/product position does not name a rendered card."""


class ShoppingSession:
    """Owns the conversation, composer, card states and upload status of one session."""

    def __init__(
        self,
        session_id: str,
        agent: AgentClient,
        agent_id: str,
        ingestion: IngestionClient,
        knowledge_base_id: str,
        clear_after: float = DEFAULT_CLEAR_SECONDS,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.session_id = session_id
        self._clock = clock or now_millis
        self.store = ConversationStore(clock=self._clock)
        self.composer = Composer()
        self.dispatcher = TurnDispatcher(self.store, self.composer, agent, agent_id, session_id=session_id)
        self.uploads = UploadCoordinator(ingestion, knowledge_base_id, clear_after=clear_after, session_id=session_id)
        self.sample_data_enabled = False
        self._card_states: Dict[Tuple[int, int], ProductCardState] = {}
        self.updated_at = time.time()

    @property
    def is_loading(self) -> bool:
        return self.dispatcher.is_loading

    def set_input(self, value: str) -> str:
        self._touch()
        return self.composer.set(value)

    async def submit(self, text: Optional[str] = None) -> bool:
        """Purpose: Send explicit text (suggestion) or the trimmed composer value.
        Inputs/Outputs: Input is optional text; returns True when a turn was dispatched.
        Side Effects / State: Delegates to TurnDispatcher.submit.
        Dependencies: Composer and TurnDispatcher.
        Failure Modes: Blank text or an in-flight dispatch returns False.
        If Removed: No entry point sends turns to the agent.
        Testing Notes: Composer text is trimmed; explicit text is cut to the input limit.
        """
        self._touch()
        # Explicit text obeys the same input limit as the composer.
        text_to_send = text[: self.composer.limit] if text else self.composer.value.strip()
        message = await self.dispatcher.submit(text_to_send)
        self._touch()
        return message is not None

    async def click_suggestion(self, suggestion: str) -> bool:
        return await self.submit(suggestion)

    def select_category(self, name: str) -> str:
        # Seeds the composer only; the user still has to submit.
        return self.set_input(f"Show me {name}")

    def new_chat(self) -> None:
        self._touch()
        self.store.reset()
        self.composer.clear()
        self.sample_data_enabled = False
        self._card_states = {}
        logger.info("session=%s step=new_chat", self.session_id)

    def toggle_sample_data(self, enabled: bool) -> None:
        """Purpose: Switch the demonstration conversation on or off.
        Inputs/Outputs: Input is the desired flag; no return value.
        Side Effects / State: On with an empty conversation seeds the demo turns and
            their history; off behaves exactly like new_chat.
        Dependencies: build_sample_conversation, ConversationStore.seed.
        Failure Modes: None; the agent is never called.
        If Removed: The UI cannot demo product cards without a live agent.
        Testing Notes: Enable on an empty session and compare to the fixed set.
        """
        if not enabled:
            self.new_chat()
            return
        self._touch()
        self.sample_data_enabled = True
        if self.store.is_empty():
            messages, history = build_sample_conversation(self._clock())
            self.store.seed(messages, history)
            logger.info("session=%s step=sample_data status=seeded", self.session_id)

    def toggle_product(self, message_index: int, product_index: int) -> ProductCardView:
        state = self._card_state(message_index, product_index)
        state.toggle()
        return self._card(message_index, product_index)

    def report_image_error(self, message_index: int, product_index: int) -> ProductCardView:
        state = self._card_state(message_index, product_index)
        state.image_failed = True
        return self._card(message_index, product_index)

    async def upload(self, files: Sequence[UploadedFile]) -> bool:
        self._touch()
        return await self.uploads.upload(files)

    def close(self) -> None:
        self.uploads.close()

    def view(self, accepted: bool = True) -> SessionView:
        messages = self.store.messages
        is_loading = self.is_loading
        return SessionView(
            session_id=self.session_id,
            messages=[self._message_view(index, message) for index, message in enumerate(messages)],
            input_value=self.composer.value,
            input_length=len(self.composer.value),
            input_limit=self.composer.limit,
            input_counter=self.composer.counter(),
            is_loading=is_loading,
            can_send=bool(self.composer.value.strip()) and not is_loading,
            sample_data_enabled=self.sample_data_enabled,
            show_welcome=not messages,
            categories=list(CATEGORY_SHORTCUTS),
            agent_status=SEARCHING_STATUS if is_loading else READY_STATUS,
            upload=self.uploads.view(),
            accepted=accepted,
        )

    def _message_view(self, index: int, message: Message) -> MessageView:
        products: List[ProductCardView] = []
        suggestions: List[str] = []
        if message.role == "assistant" and message.agent_data is not None:
            products = [
                build_product_card(raw, index, product_index, self._card_states.get((index, product_index)))
                for product_index, raw in enumerate(message.agent_data.recommendations)
            ]
            suggestions = _suggestion_labels(message.agent_data.suggestions)
        return MessageView(
            index=index,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            products=products,
            suggestions=suggestions,
        )

    def _recommendations(self, message_index: int) -> List[object]:
        messages = self.store.messages
        if not 0 <= message_index < len(messages):
            raise UnknownProductError(f"No message at position {message_index}")
        agent_data = messages[message_index].agent_data
        return list(agent_data.recommendations) if agent_data is not None else []

    def _card_state(self, message_index: int, product_index: int) -> ProductCardState:
        recommendations = self._recommendations(message_index)
        if not 0 <= product_index < len(recommendations):
            raise UnknownProductError(f"No product {product_index} in message {message_index}")
        self._touch()
        return self._card_states.setdefault((message_index, product_index), ProductCardState())

    def _card(self, message_index: int, product_index: int) -> ProductCardView:
        raw = self._recommendations(message_index)[product_index]
        return build_product_card(raw, message_index, product_index, self._card_states.get((message_index, product_index)))

    def _touch(self) -> None:
        self.updated_at = time.time()


def _suggestion_labels(suggestions: Sequence[object]) -> List[str]:
    labels = []
    for suggestion in suggestions:
        if isinstance(suggestion, str):
            labels.append(suggestion)
        elif isinstance(suggestion, (int, float)) and not isinstance(suggestion, bool):
            labels.append(str(suggestion))
    return labels


class SessionRegistry:
    """In-memory registry of live sessions, capped by least-recent activity."""

    def __init__(self, factory: Callable[[str], ShoppingSession], max_sessions: Optional[int] = None) -> None:
        self._factory = factory
        self._max_sessions = max_sessions
        self._sessions: Dict[str, ShoppingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def ensure_session(self, session_id: Optional[str] = None) -> ShoppingSession:
        """Purpose: Return the session for an id, creating it when missing.
        Inputs/Outputs: Input is an optional id; returns a ShoppingSession.
        Side Effects / State: May create a session and prune old ones.
        Dependencies: The session factory and _prune_sessions.
        Failure Modes: None.
        If Removed: Clients cannot open a conversation.
        Testing Notes: A None id creates a fresh session with a random id.
        """
        session_id = session_id or uuid.uuid4().hex
        session = self._sessions.get(session_id)
        if session is None:
            session = self._factory(session_id)
            self._sessions[session_id] = session
            logger.info("session=%s step=create sessions=%d", session_id, len(self._sessions))
            self._prune_sessions(keep=session_id)
        return session

    def get(self, session_id: str) -> ShoppingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise UnknownSessionError(session_id)
        session.close()

    def _prune_sessions(self, keep: str) -> bool:
        # Drop least-recent sessions above the cap; sessions dispatching or uploading are kept.
        if not self._max_sessions or self._max_sessions <= 0:
            return False
        if len(self._sessions) <= self._max_sessions:
            return False
        candidates = sorted(
            (
                s
                for s in self._sessions.values()
                if s.session_id != keep and not s.is_loading and s.uploads.state is not UploadState.UPLOADING
            ),
            key=lambda s: s.updated_at,
        )
        removed = candidates[: len(self._sessions) - self._max_sessions]
        for session in removed:
            self._sessions.pop(session.session_id, None)
            session.close()
        return bool(removed)
