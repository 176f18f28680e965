import pytest
from pydantic import SecretStr

from src.shared.config import EngineSettings
from src.shared.state import StateStore
from src.specs.models.domain import ResearchState

from tests.fakes import ASSISTANT, FakeTransport, RecordingSleep


@pytest.fixture()
def settings() -> EngineSettings:
    return EngineSettings(projectEndpoint="https://example.services.ai.azure.com/api/projects/demo")


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def connected_store() -> StateStore:
    return StateStore(
        ResearchState(
            apiKey=SecretStr("key-123"),
            assistants=[ASSISTANT],
            selectedAssistant=ASSISTANT,
            isConnected=True,
        )
    )
