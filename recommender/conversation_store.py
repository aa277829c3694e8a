from __future__ import annotations

import time
from typing import Callable, List, Optional, Sequence

from .models import AgentResponse, ConversationMessage, Message
from .normalizer import display_text


def now_millis() -> int:
    return int(time.time() * 1000)


class ConversationStore:
    """Ordered display turns plus the minimal history replayed to the agent."""

    def __init__(self, clock: Optional[Callable[[], int]] = None) -> None:
        """Purpose: Initialize empty turn and history lists.
        Inputs/Outputs: Input is an optional millisecond clock; no return value.
        Side Effects / State: Creates the in-memory lists owned by this store.
        Dependencies: Defaults to now_millis for timestamps.
        Failure Modes: None.
        If Removed: Sessions have nowhere to keep their conversation.
        Testing Notes: Inject a fixed clock to assert timestamps.
        """
        self._clock = clock or now_millis
        self._messages: List[Message] = []
        self._history: List[ConversationMessage] = []

    @property
    def messages(self) -> List[Message]:
        return list(self._messages)

    @property
    def conversation_history(self) -> List[ConversationMessage]:
        return list(self._history)

    def is_empty(self) -> bool:
        return not self._messages

    def append_user(self, text: str) -> Message:
        """Purpose: Record a user turn in both the display list and the history.
        Inputs/Outputs: Input is the user text; output is the created Message.
        Side Effects / State: Appends one entry to messages and one to history.
        Dependencies: Uses the store clock.
        Failure Modes: None; non-empty text is enforced by the dispatcher.
        If Removed: User turns are never shown or replayed to the agent.
        Testing Notes: Verify both lists grow by one with identical content.
        """
        message = Message(role="user", content=text, timestamp=self._clock())
        self._messages.append(message)
        self._history.append(ConversationMessage(role="user", content=text))
        return message

    def append_assistant(self, agent_data: AgentResponse) -> Message:
        """Purpose: Record a successful agent reply.
        Inputs/Outputs: Input is a normalized AgentResponse; output is the Message.
        Side Effects / State: Appends to messages and history.
        Dependencies: Uses display_text for the bubble fallback.
        Failure Modes: None.
        If Removed: Agent replies never reach the conversation.
        Testing Notes: An empty message shows fallback text but history keeps ''.
        """
        # History carries the raw message, not the display fallback.
        message = Message(
            role="assistant",
            content=display_text(agent_data),
            agent_data=agent_data,
            timestamp=self._clock(),
        )
        self._messages.append(message)
        self._history.append(ConversationMessage(role="assistant", content=agent_data.message))
        return message

    def append_error(self, text: str) -> Message:
        """Purpose: Record a failed dispatch as an assistant bubble.
        Inputs/Outputs: Input is the error text; output is the Message.
        Side Effects / State: Appends to messages only.
        Dependencies: Uses the store clock.
        Failure Modes: None.
        If Removed: Agent failures are invisible to the user.
        Testing Notes: History length must not change.
        """
        message = Message(role="assistant", content=text, timestamp=self._clock())
        self._messages.append(message)
        return message

    def discard_last_history(self) -> None:
        # Rolls back the user turn of a dispatch that never got a reply.
        if self._history and self._history[-1].role == "user":
            self._history.pop()

    def seed(self, messages: Sequence[Message], history: Sequence[ConversationMessage]) -> None:
        # Replaces both lists in one step; used for the demonstration conversation.
        self._messages = list(messages)
        self._history = list(history)

    def history_snapshot(self) -> List[ConversationMessage]:
        return list(self._history)

    def reset(self) -> None:
        self._messages = []
        self._history = []
