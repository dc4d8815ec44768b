import pytest
from fastapi.testclient import TestClient

from database import MessageStore
from main import create_app
from providers import Success
from settings import Settings


class FakeProvider:
    """Returns scripted results in order, repeating the last one."""
    name = "fake"

    def __init__(self, *results):
        self.results = list(results) or [Success("ok")]
        self.prompts = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt):
        self.prompts.append(prompt)
        return self.results[min(len(self.prompts), len(self.results)) - 1]


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        AI_PROVIDER="gemini",
        GEMINI_API_KEY="test-key",
        DATABASE_URL=f"sqlite:///{tmp_path / 'chat.db'}",
        STATIC_DIR=str(tmp_path / "no-frontend"),
    )


@pytest.fixture
def store(settings):
    s = MessageStore(settings.DATABASE_URL)
    s.init_db()
    return s


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_client(settings, store, sleeper):
    def _make(*results, **overrides):
        provider = FakeProvider(*results)
        app = create_app(settings.model_copy(update=overrides), provider=provider, store=store, sleep=sleeper)
        return TestClient(app, raise_server_exceptions=False), provider
    return _make
