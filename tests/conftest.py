import os

# Settings are read at import time; seed what app.config requires.
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:5173")

import pytest
from fastapi.testclient import TestClient
from app.main import app
from app.api.deps import get_text_generator_factory, verify_token


class FakeTextGenerator:
    """Stands in for the vision model; records every instruction it receives."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls: list[str] = []
        self.reference_images: list = []

    def factory(self, reference_image):
        self.reference_images.append(reference_image)
        return self

    async def __call__(self, instruction: str) -> str:
        self.calls.append(instruction)
        if self.error is not None:
            raise self.error
        return self.response


class NodeRecorder:
    """Collects node-creation callback invocations."""

    def __init__(self):
        self.calls: list[tuple] = []

    def __call__(self, kind, x, y, edge_hint, data):
        self.calls.append((kind, x, y, edge_hint, data))

    @property
    def prompts(self) -> list[str]:
        return [c[4]["prompt"] for c in self.calls]

    @property
    def positions(self) -> list[tuple]:
        return [(c[1], c[2]) for c in self.calls]


@pytest.fixture
def recorder():
    return NodeRecorder()


@pytest.fixture
def fake_llm():
    return FakeTextGenerator(response="")


@pytest.fixture
def client(fake_llm):
    # Override auth and the model for functional tests
    app.dependency_overrides[verify_token] = lambda: "test-user-id"
    app.dependency_overrides[get_text_generator_factory] = lambda: fake_llm.factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_generator():
    return FakeTextGenerator
