import os

# Set env vars BEFORE any imports from the project happen
os.environ.setdefault("OMDB_API_KEY", "test-omdb")
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("DEBUG", "true")

import pytest

from app.models.auth import AuthSession
from app.services.notifications import Notifier
from tests.fakes import FakeMovieClient, InMemoryBackend


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def movies():
    return FakeMovieClient()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def user_session():
    return AuthSession(
        user_id="user-u", email="u@example.com", access_token="token-u"
    )
