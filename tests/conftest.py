"""
Test Configuration

Pytest configuration and shared fixtures for all tests.
"""

import json
import pytest
from types import SimpleNamespace
from typing import AsyncGenerator
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport

from services.ai.models import FormSchema
from services.ai.remote_gateway import RemoteUnderstandingGateway
from services.ai.session_manager import SessionManager
from services.ai.understanding import UnderstandingService
from services.voice.speech import SpeechService
from utils.circuit_breaker import ServiceHealth


# =============================================================================
# Form Fixtures
# =============================================================================

@pytest.fixture
def personal_sections():
    """Two required fields in one section."""
    return [
        {
            "id": 1,
            "title": "Personal",
            "fields": [
                {"fieldKey": "fullName", "label": "Full Name", "required": True},
                {"fieldKey": "email", "label": "Email", "required": True},
            ],
        }
    ]


@pytest.fixture
def personal_schema(personal_sections) -> FormSchema:
    return FormSchema.from_dict(personal_sections, form_code="default")


@pytest.fixture
def gender_schema() -> FormSchema:
    """A single required radio field."""
    return FormSchema.from_dict([
        {
            "id": 1,
            "title": "Personal Details",
            "fields": [
                {
                    "fieldKey": "gender",
                    "label": "Gender",
                    "required": True,
                    "type": "radio",
                    "options": ["Male", "Female"],
                },
            ],
        }
    ])


@pytest.fixture
def contact_schema() -> FormSchema:
    """Name, contact and an optional field across two sections."""
    return FormSchema.from_dict([
        {
            "id": 1,
            "title": "Personal Details",
            "fields": [
                {"fieldKey": "fullName", "label": "Full Name", "required": True},
                {"fieldKey": "city", "label": "City", "required": True},
            ],
        },
        {
            "id": 2,
            "title": "Contact Information",
            "fields": [
                {"fieldKey": "email", "label": "Email", "required": True},
                {"fieldKey": "phone", "label": "Phone Number", "required": True},
                {"fieldKey": "nickname", "label": "Nickname", "required": False},
            ],
        },
    ])


# =============================================================================
# Remote Service Fixtures
# =============================================================================

def completion(content: str) -> SimpleNamespace:
    """Chat-completion response shaped like the OpenAI SDK's."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def json_completion(data: dict) -> SimpleNamespace:
    return completion(json.dumps(data))


class QuotaError(Exception):
    """Mimics openai.RateLimitError for insufficient quota."""

    status_code = 429
    code = "insufficient_quota"


@pytest.fixture
def service_health() -> ServiceHealth:
    """A fresh breaker per test; never the process-wide one."""
    return ServiceHealth()


@pytest.fixture
def fake_client():
    """OpenAI-compatible client whose create() is an AsyncMock."""
    create = AsyncMock(return_value=completion("{}"))
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.fixture
def remote_gateway(service_health, fake_client) -> RemoteUnderstandingGateway:
    return RemoteUnderstandingGateway(
        health=service_health, client=fake_client, model="test-model", enabled=True
    )


@pytest.fixture
def local_understanding() -> UnderstandingService:
    """Understanding with no remote service at all."""
    return UnderstandingService(gateway=None)


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def session_manager() -> SessionManager:
    return SessionManager()


@pytest.fixture
def speech_service() -> SpeechService:
    """Text-to-speech without an API key (disabled)."""
    return SpeechService(api_key="")


@pytest.fixture
async def client(
    service_health, local_understanding, session_manager, speech_service
) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client for API testing, with local-only understanding and no TTS."""
    from main import app
    from core import dependencies
    from utils.rate_limit import limiter

    app.dependency_overrides[dependencies.get_service_health] = lambda: service_health
    app.dependency_overrides[dependencies.get_understanding_service] = lambda: local_understanding
    app.dependency_overrides[dependencies.get_session_manager] = lambda: session_manager
    app.dependency_overrides[dependencies.get_speech_service] = lambda: speech_service
    limiter.enabled = False

    # Create test transport
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = True
    app.dependency_overrides.clear()
