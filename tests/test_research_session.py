import pytest

from src.agents.research_session import ResearchSession
from src.specs.agents.research_instructions import AGENT_INSTRUCTIONS, MAX_INSTRUCTIONS_LENGTH
from src.specs.common.enums import PhaseId
from src.specs.common.errors import AuthError, PreconditionError, RemoteRunFailure
from src.specs.models.domain import AssistantSummary

from tests.fakes import FakeTransport, HttpError, RecordingSleep


def _session(transport, settings):
    factory_calls = []

    def factory(api_key, cfg):
        factory_calls.append(api_key)
        return transport

    session = ResearchSession(settings=settings, transport_factory=factory, sleep=RecordingSleep())
    return session, factory_calls


async def _connected(transport, settings):
    session, _ = _session(transport, settings)
    await session.connect("key-123")
    session.select_assistant(session.snapshot().assistants[0].id)
    return session


@pytest.mark.asyncio
async def test_connect_creates_missing_research_assistant(settings):
    transport = FakeTransport()
    session, factory_calls = _session(transport, settings)

    state = await session.connect("  key-123  ")

    assert factory_calls == ["key-123"]
    assert state.isConnected is True
    assert state.apiKey.get_secret_value() == "key-123"
    created = [c for c in transport.calls if c[0] == "create_assistant"]
    assert len(created) == 1
    spec = created[0][1]
    assert spec["name"] == "SEO Content Assistant"
    assert spec["model"] == "gpt-4o"
    assert spec["metadata"] == {"type": "seo_content", "version": "1.0"}
    assert [a.id for a in state.assistants] == ["asst-1"]
    assert ("list_assistants", 100) in transport.calls
    assert ("list_assistants", 20) in transport.calls


@pytest.mark.asyncio
async def test_connect_reconciles_existing_assistant(settings):
    existing = AssistantSummary(id="asst-9", name="SEO Content Assistant", instructions="stale", model="gpt-35")
    transport = FakeTransport(assistants=[existing])
    session, _ = _session(transport, settings)

    state = await session.connect("key-123")

    assert transport.count("create_assistant") == 0
    update = next(c for c in transport.calls if c[0] == "update_assistant")
    assert update[1] == "asst-9"
    assert update[2]["instructions"] == AGENT_INSTRUCTIONS
    assert update[2]["model"] == "gpt-4o"
    assert state.assistants[0].instructions == AGENT_INSTRUCTIONS


@pytest.mark.asyncio
async def test_connect_requires_key(settings):
    transport = FakeTransport()
    session, factory_calls = _session(transport, settings)

    with pytest.raises(PreconditionError):
        await session.connect("   ")

    assert factory_calls == []
    assert session.snapshot().isConnected is False


@pytest.mark.asyncio
async def test_connect_auth_failure_closes_transport(settings):
    transport = FakeTransport()
    transport.fail_on["list_assistants"] = HttpError("Incorrect API key", 401)
    session, _ = _session(transport, settings)

    with pytest.raises(AuthError):
        await session.connect("bad-key")

    assert transport.closed is True
    assert session.snapshot().isConnected is False
    assert session.snapshot().apiKey is None


@pytest.mark.asyncio
async def test_disconnect_resets_everything(settings):
    transport = FakeTransport(["completed"])
    session = await _connected(transport, settings)
    await session.start_research_phase(PhaseId.TOPIC, "espresso")

    await session.disconnect()

    state = session.snapshot()
    assert transport.closed is True
    assert state.isConnected is False
    assert state.apiKey is None
    assert state.selectedAssistant is None
    assert state.researchThreads[PhaseId.TOPIC] is None
    with pytest.raises(PreconditionError):
        await session.start_research_phase(PhaseId.TOPIC, "espresso")


@pytest.mark.asyncio
async def test_select_unknown_assistant(settings):
    session = await _connected(FakeTransport(), settings)
    with pytest.raises(PreconditionError):
        session.select_assistant("asst-404")


@pytest.mark.asyncio
async def test_start_phase_checks_keyword_before_connection(settings):
    transport = FakeTransport()
    session, factory_calls = _session(transport, settings)

    with pytest.raises(PreconditionError) as info:
        await session.start_research_phase(PhaseId.TOPIC, "")

    assert str(info.value) == "No keyword provided"
    assert transport.calls == []


@pytest.mark.asyncio
async def test_start_phase_and_generate_article(settings):
    transport = FakeTransport(["completed"], reply="phase text")
    session = await _connected(transport, settings)

    assert await session.start_research_phase("topic", "espresso") is True
    transport.reply = "the article"
    generation = await session.generate_article()

    assert session.snapshot().researchThreads[PhaseId.TOPIC].resultText == "phase text"
    assert generation.content == "the article"
    assert "TOPIC:\nphase text" in transport.posted[-1][2]


@pytest.mark.asyncio
async def test_update_user_content_merges_fields(settings):
    session, _ = _session(FakeTransport(), settings)

    session.update_user_content({"additionalContent": {"companyInfo": "Bean Co"}})
    content = session.update_user_content(
        {"additionalContent": {"specialNotes": "No jargon"}, "links": [{"url": "https://example.com"}]}
    )

    assert content.additionalContent.companyInfo == "Bean Co"
    assert content.additionalContent.specialNotes == "No jargon"
    assert content.links[0].url == "https://example.com"
    assert session.snapshot().userContent == content


def test_update_user_content_rejects_unknown_field(settings):
    session, _ = _session(FakeTransport(), settings)
    with pytest.raises(PreconditionError):
        session.update_user_content({"favouriteColour": "blue"})


@pytest.mark.asyncio
async def test_update_assistant_validates_instructions(settings):
    transport = FakeTransport()
    session = await _connected(transport, settings)
    calls_before = transport.count("update_assistant")

    with pytest.raises(PreconditionError):
        await session.update_assistant("asst-1", {"instructions": "x" * (MAX_INSTRUCTIONS_LENGTH + 1)})
    with pytest.raises(PreconditionError):
        await session.update_assistant("asst-1", {"instructions": "  \n "})

    assert transport.count("update_assistant") == calls_before


@pytest.mark.asyncio
async def test_update_assistant_formats_and_refreshes_selection(settings):
    transport = FakeTransport()
    session = await _connected(transport, settings)

    updated = await session.update_assistant(
        "asst-1", {"instructions": "  Line one   \n\n\n\nLine two  ", "temperature": 0.4}
    )

    patch = [c for c in transport.calls if c[0] == "update_assistant"][-1][2]
    assert patch == {"instructions": "Line one\n\nLine two", "temperature": 0.4}
    state = session.snapshot()
    assert state.selectedAssistant == updated
    assert state.assistants[0].temperature == 0.4


@pytest.mark.asyncio
async def test_chat_round_trip(settings):
    transport = FakeTransport(["queued", "completed"], reply="Hello back")
    session = await _connected(transport, settings)

    thread_id = await session.proceed_to_chat()
    reply = await session.send_message("Hello")

    state = session.snapshot()
    assert state.showChat is True
    assert state.threadId == thread_id
    assert reply.content == "Hello back"
    assert [(m.role, m.content) for m in state.messages] == [("user", "Hello"), ("assistant", "Hello back")]
    assert state.isLoading is False
    assert transport.count("create_thread") == 1
    assert transport.posted[-1] == (thread_id, "user", "Hello")

    session.go_back()
    state = session.snapshot()
    assert state.showChat is False
    assert state.messages == []
    assert state.threadId is None


@pytest.mark.asyncio
async def test_chat_failure_clears_loading(settings):
    transport = FakeTransport(["failed"])
    session = await _connected(transport, settings)
    await session.proceed_to_chat()

    with pytest.raises(RemoteRunFailure):
        await session.send_message("Hello")

    state = session.snapshot()
    assert state.isLoading is False
    assert [m.role for m in state.messages] == ["user"]


@pytest.mark.asyncio
async def test_chat_requires_thread(settings):
    transport = FakeTransport()
    session = await _connected(transport, settings)
    with pytest.raises(PreconditionError):
        await session.send_message("Hello")


@pytest.mark.asyncio
async def test_chat_rejects_concurrent_turn(settings):
    transport = FakeTransport()
    session = await _connected(transport, settings)
    await session.proceed_to_chat()
    session.store.update(isLoading=True)

    with pytest.raises(PreconditionError):
        await session.send_message("Hello")


@pytest.mark.asyncio
async def test_fetch_instructions_formats_remote_text(settings):
    existing = AssistantSummary(id="asst-9", name="Other", instructions="Keep it short.  \n\n\n\nCite sources.")
    transport = FakeTransport(assistants=[existing])
    session, _ = _session(transport, settings)
    await session.connect("key-123")
    session.select_assistant("asst-9")

    text = await session.fetch_instructions()

    assert text == "Keep it short.\n\nCite sources."
    assert ("retrieve_assistant", "asst-9") in transport.calls
