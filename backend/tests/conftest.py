"""
StudyBuddy Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── test_settings:     Settings built explicitly (no .env, no real keys)
    ├── fake_llm:          FakeLLMService recording every ModelInvocation
    ├── assistant_service: AssistantService wired to fake_llm
    └── test_client:       HTTPX AsyncClient against an app using assistant_service
"""

import os
from typing import List, Optional

# Override settings for testing BEFORE any app imports
os.environ["OPENAI_API_KEY"] = "test-key-not-real"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from studybuddy.config import Settings
from studybuddy.schemas.invocation import ModelInvocation
from studybuddy.services.assistant_service import AssistantService
from studybuddy.services.llm_base import LLMService


class FakeLLMService(LLMService):
    """
    Stand-in provider: records invocations, returns a canned reply or raises.

    Goes through LLMService.complete(), so circuit breaker and error
    translation behave exactly as with a real provider.
    """

    name = "fake"

    def __init__(
        self,
        settings: Settings,
        response: Optional[str] = "Canned model reply",
        error: Optional[BaseException] = None,
    ):
        super().__init__(settings, vision_model="vision-model", text_model="text-model")
        self.response = response
        self.error = error
        self.healthy = True
        self.invocations: List[ModelInvocation] = []

    @property
    def last_invocation(self) -> ModelInvocation:
        return self.invocations[-1]

    async def _generate(self, invocation: ModelInvocation) -> Optional[str]:
        self.invocations.append(invocation)
        if self.error is not None:
            raise self.error
        return self.response

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        llm_provider="openai",
        openai_api_key="test-key-not-real",
        gemini_api_key="test-key-not-real",
        vision_model="vision-model",
        text_model="text-model",
        log_level="WARNING",
    )


@pytest.fixture
def fake_llm(test_settings) -> FakeLLMService:
    return FakeLLMService(test_settings)


@pytest.fixture
def assistant_service(fake_llm, test_settings) -> AssistantService:
    return AssistantService(llm=fake_llm, settings=test_settings)


@pytest.fixture
def sample_notes() -> list:
    return [
        {
            "title": "B-Trees",
            "content": ["Balanced search trees.", "Nodes hold many keys."],
            "tags": ["databases", "indexes"],
        },
        {
            "title": "Hashing",
            "content": ["Constant-time lookup on average."],
            "tags": [],
        },
    ]


@pytest_asyncio.fixture
async def test_client(assistant_service, test_settings):
    """
    HTTPX AsyncClient talking to a fresh app with the fake provider injected.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from studybuddy.main import create_app

    app = create_app(settings=test_settings, assistant_service=assistant_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
