import asyncio

from conftest import FakeAgent, reply

from recommender.composer import Composer
from recommender.conversation_store import ConversationStore
from recommender.dispatcher import DispatchState, TurnDispatcher


def make_dispatcher(agent, clock):
    store = ConversationStore(clock=clock)
    composer = Composer()
    dispatcher = TurnDispatcher(store, composer, agent, "agent-1", session_id="s1")
    return store, composer, dispatcher


def test_successful_turn(fake_agent, clock):
    store, composer, dispatcher = make_dispatcher(fake_agent, clock)
    composer.set("I need a laptop")

    message = asyncio.run(dispatcher.submit("I need a laptop"))

    assert message.role == "assistant"
    assert message.content == "Here are laptops"
    assert message.agent_data.recommendations == [{"productName": "X"}]
    assert message.agent_data.suggestions == ["cheaper options"]
    assert composer.value == ""
    assert dispatcher.state is DispatchState.IDLE
    assert [entry.model_dump() for entry in store.conversation_history] == [
        {"role": "user", "content": "I need a laptop"},
        {"role": "assistant", "content": "Here are laptops"},
    ]


def test_agent_sees_new_user_turn_exactly_once(clock):
    agent = FakeAgent(reply=reply(message="first"))
    store, _, dispatcher = make_dispatcher(agent, clock)

    asyncio.run(dispatcher.submit("one"))
    asyncio.run(dispatcher.submit("two"))

    agent_id, text, history = agent.calls[1]
    assert agent_id == "agent-1"
    assert text == "two"
    assert history == [
        {"role": "user", "content": "one"},
        {"role": "assistant", "content": "first"},
        {"role": "user", "content": "two"},
    ]


def test_user_turn_is_recorded_before_agent_resolves(clock):
    agent = FakeAgent(reply=reply())
    store, _, dispatcher = make_dispatcher(agent, clock)

    async def scenario():
        agent.gate = asyncio.Event()
        agent.started = asyncio.Event()
        task = asyncio.create_task(dispatcher.submit("T"))
        await agent.started.wait()
        snapshot = (store.messages, store.conversation_history, dispatcher.is_loading)
        agent.gate.set()
        await task
        return snapshot

    messages, history, loading = asyncio.run(scenario())

    assert [m.content for m in messages] == ["T"]
    assert [h.content for h in history] == ["T"]
    assert loading is True


def test_submit_while_dispatching_is_rejected(clock):
    agent = FakeAgent(reply=reply())
    store, _, dispatcher = make_dispatcher(agent, clock)

    async def scenario():
        agent.gate = asyncio.Event()
        agent.started = asyncio.Event()
        first = asyncio.create_task(dispatcher.submit("first"))
        await agent.started.wait()
        count_before = len(store.messages)
        second = await dispatcher.submit("second")
        count_after = len(store.messages)
        agent.gate.set()
        await first
        return second, count_before, count_after

    second, count_before, count_after = asyncio.run(scenario())

    assert second is None
    assert count_before == count_after == 1
    assert len(agent.calls) == 1
    assert len(store.messages) == 2


def test_blank_text_is_rejected(fake_agent, clock):
    store, _, dispatcher = make_dispatcher(fake_agent, clock)

    assert asyncio.run(dispatcher.submit("")) is None
    assert asyncio.run(dispatcher.submit("   \n")) is None
    assert store.messages == []
    assert fake_agent.calls == []


def test_agent_failure_becomes_error_turn(clock):
    agent = FakeAgent(reply=reply(message="ok"))
    store, _, dispatcher = make_dispatcher(agent, clock)
    asyncio.run(dispatcher.submit("first"))
    history_before = store.conversation_history

    agent.error = TimeoutError("timeout")
    message = asyncio.run(dispatcher.submit("second"))

    assert message.content == "Sorry, I encountered an error: timeout"
    assert message.agent_data is None
    assert dispatcher.state is DispatchState.IDLE
    assert store.conversation_history == history_before
    assert len(store.messages) == 4

    agent.error = None
    asyncio.run(dispatcher.submit("third"))

    sent = agent.calls[-1][2]
    assert [entry["content"] for entry in sent] == ["first", "ok", "third"]


def test_error_without_text_uses_unknown_error(clock):
    agent = FakeAgent(error=RuntimeError())
    _, _, dispatcher = make_dispatcher(agent, clock)

    message = asyncio.run(dispatcher.submit("hi"))

    assert message.content == "Sorry, I encountered an error: Unknown error"


def test_can_submit_again_after_failure(clock):
    agent = FakeAgent(error=ConnectionError("down"))
    store, _, dispatcher = make_dispatcher(agent, clock)
    asyncio.run(dispatcher.submit("hi"))

    agent.error = None
    agent.reply = reply(message="back")
    message = asyncio.run(dispatcher.submit("retry"))

    assert message.content == "back"
    assert len(agent.calls) == 2


def test_malformed_reply_still_produces_turn(clock):
    agent = FakeAgent(reply=["unexpected"])
    _, _, dispatcher = make_dispatcher(agent, clock)

    message = asyncio.run(dispatcher.submit("hi"))

    assert message.content == "I found some recommendations for you."
    assert message.agent_data.recommendations == []
    assert message.agent_data.suggestions == []
