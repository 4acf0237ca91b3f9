"""Shared pytest fixtures: temporary stores, a fake Gemini model and an API client."""

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from ai_service import AIService, get_ai_service
from api_server import app
from storage import JsonFileStore, SqlDocumentStore, get_store

TIP_REPLY = {
    "tip": "Read a short picture book together every evening.",
    "milestone": "Watch for two-word phrases.",
    "safety": "Keep small objects out of reach.",
    "nutrition": "Offer a variety of colourful vegetables.",
}


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """Stands in for a Gemini GenerativeModel."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def generate_content(self, prompt, **kwargs):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return FakeResponse(self.reply)


@pytest.fixture
def json_store(tmp_path):
    return JsonFileStore(str(tmp_path / "data" / "models.json"))


@pytest.fixture
def sql_store():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return SqlDocumentStore(engine)


@pytest.fixture(params=["json", "database"])
def store(request, json_store, sql_store):
    """Runs a test once against each backend."""
    return json_store if request.param == "json" else sql_store


@pytest.fixture
def fake_model():
    return FakeModel(reply=json.dumps(TIP_REPLY))


@pytest.fixture
def client(json_store, fake_model):
    app.dependency_overrides[get_store] = lambda: json_store
    app.dependency_overrides[get_ai_service] = lambda: AIService(model=fake_model)
    yield TestClient(app)
    app.dependency_overrides.clear()
