"""
Pytest configuration and fixtures for the matching service tests.

No test talks to OpenAI: clients are faked with SimpleNamespace objects and
injected with monkeypatch.
"""

from types import SimpleNamespace

import pytest

import cv_parser
import embeddings
from embeddings import EmbeddingService


class FakeEmbeddingsAPI:
    """Records calls and returns a fixed vector per known text."""

    def __init__(self, vectors=None, fail=False):
        self.vectors = vectors or {}
        self.fail = fail
        self.calls = []

    def create(self, model, input):
        self.calls.append({"model": model, "input": list(input)})
        if self.fail:
            raise RuntimeError("embedding API unavailable")
        data = [SimpleNamespace(embedding=self.vectors.get(text, [0.0, 0.0, 1.0])) for text in input]
        return SimpleNamespace(data=data)


def make_embedding_client(vectors=None, fail=False):
    return SimpleNamespace(embeddings=FakeEmbeddingsAPI(vectors, fail))


def make_chat_client(content=None, fail=False):
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        if fail:
            raise RuntimeError("chat API unavailable")
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
                           calls=calls)


@pytest.fixture
def embedding_client():
    return make_embedding_client


@pytest.fixture
def chat_client():
    return make_chat_client


@pytest.fixture
def offline_service():
    """EmbeddingService that never reaches an API (keyword fallback only)."""
    service = EmbeddingService()
    service._client = None
    service._client_resolved = True
    return service


@pytest.fixture(autouse=True)
def isolate_globals(monkeypatch, offline_service):
    """Every test starts with an offline embedding service and empty CV cache."""
    monkeypatch.setattr(embeddings, "_service", offline_service)
    monkeypatch.setattr(cv_parser, "get_client", lambda: None)
    cv_parser.clear_cache()
    yield
    cv_parser.clear_cache()


@pytest.fixture
def client(tmp_path):
    from app import app
    app.config["TESTING"] = True
    app.config["REPORTS_FOLDER"] = str(tmp_path / "reports")
    with app.test_client() as c:
        yield c


@pytest.fixture
def role():
    return {
        "id": 10,
        "name": "Backend Developer",
        "description": "Backend developer building APIs and database services",
        "skills": [
            {"id": 1, "importance": 2, "years": 2},
            {"id": 2, "importance": 1, "years": 1},
        ],
    }


@pytest.fixture
def employees():
    return [
        {
            "id": "u1",
            "name": "Ana Ruiz",
            "bio": "Senior backend developer, server and api design",
            "skills": [
                {"skill_ID": 1, "proficiency": "Expert", "year_Exp": 4},
                {"skill_ID": 2, "proficiency": "Expert", "year_Exp": 3},
            ],
        },
        {
            "id": "u2",
            "name": "Luis Gómez",
            "bio": "Graphic designer who loves illustration",
            "skills": [],
        },
    ]
