"""Shared test fixtures for the form engine."""
import pytest

from forms.formset import FormSet
from forms.session import initialize
from models.schemas import Session
from sessions.store_memory import MemorySessionStore


class Recorder:
    """Collects (args) tuples from FormSet event subscribers."""

    def __init__(self):
        self.calls: list[tuple] = []

    async def __call__(self, *args):
        self.calls.append(args)

    @property
    def last(self):
        return self.calls[-1] if self.calls else None

    def __len__(self):
        return len(self.calls)


@pytest.fixture
def chat_id() -> str:
    return "12345"


@pytest.fixture
def ref() -> dict:
    return {"chat": {"id": 12345}}


@pytest.fixture
def profile_queries() -> list[dict]:
    """A realistic three-step profile form without hooks."""
    return [
        {"name": "name", "text": "What is your name?"},
        {"name": "age", "text": "How old are you?"},
        {
            "name": "color",
            "question": {
                "text": "Pick a color",
                "choices": ["red", "green", "blue"],
                "retryText": "Please pick one of the listed colors",
            },
        },
    ]


@pytest.fixture
def memory_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def queries_seen() -> Recorder:
    return Recorder()


@pytest.fixture
def completions() -> Recorder:
    return Recorder()


@pytest.fixture
def formset(memory_store, queries_seen, completions) -> FormSet:
    return FormSet(store=memory_store, on_query=queries_seen, on_complete=completions)


@pytest.fixture
def make_session(chat_id):
    def _make(form_name: str = "form", query: str = None, **fields) -> Session:
        session = initialize(chat_id, form_name)
        session.query = query
        for k, v in fields.items():
            setattr(session, k, v)
        return session
    return _make

