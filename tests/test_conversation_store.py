import pytest
from pydantic import ValidationError

from recommender.conversation_store import ConversationStore
from recommender.models import AgentResponse, ConversationMessage


def test_append_user_grows_both_lists(clock):
    store = ConversationStore(clock=clock)

    message = store.append_user("I need a laptop")

    assert message.role == "user"
    assert message.content == "I need a laptop"
    assert message.agent_data is None
    assert store.messages == [message]
    assert store.conversation_history == [ConversationMessage(role="user", content="I need a laptop")]


def test_append_assistant_uses_fallback_display_but_raw_history(clock):
    store = ConversationStore(clock=clock)
    store.append_user("hello")

    message = store.append_assistant(AgentResponse(message="", recommendations=[{"productName": "X"}]))

    assert message.content == "I found some recommendations for you."
    assert message.agent_data.recommendations == [{"productName": "X"}]
    assert store.conversation_history[-1] == ConversationMessage(role="assistant", content="")


def test_error_turn_is_not_replayed(clock):
    store = ConversationStore(clock=clock)
    store.append_user("hello")

    error = store.append_error("Sorry, I encountered an error: timeout")

    assert error.role == "assistant"
    assert error.agent_data is None
    assert len(store.messages) == 2
    assert len(store.conversation_history) == 1


def test_timestamps_are_non_decreasing(clock):
    store = ConversationStore(clock=clock)
    store.append_user("a")
    store.append_assistant(AgentResponse(message="b"))
    store.append_error("c")

    stamps = [message.timestamp for message in store.messages]
    assert stamps == sorted(stamps)


def test_messages_are_immutable(clock):
    store = ConversationStore(clock=clock)
    message = store.append_user("a")

    with pytest.raises(ValidationError):
        message.content = "b"


def test_returned_lists_are_copies(clock):
    store = ConversationStore(clock=clock)
    store.append_user("a")

    store.messages.clear()
    store.history_snapshot().clear()

    assert len(store.messages) == 1
    assert len(store.conversation_history) == 1


def test_reset_clears_everything(clock):
    store = ConversationStore(clock=clock)
    store.append_user("a")
    store.append_assistant(AgentResponse(message="b"))

    store.reset()

    assert store.messages == []
    assert store.conversation_history == []
    assert store.is_empty()


def test_discard_last_history_drops_only_a_trailing_user_turn(clock):
    store = ConversationStore(clock=clock)
    store.append_user("a")
    store.append_assistant(AgentResponse(message="b"))

    store.discard_last_history()
    assert len(store.conversation_history) == 2

    store.append_user("c")
    store.discard_last_history()

    assert store.conversation_history == [
        ConversationMessage(role="user", content="a"),
        ConversationMessage(role="assistant", content="b"),
    ]
    assert [m.content for m in store.messages] == ["a", "b", "c"]
