"""Pytest fixtures for the service unit tests.

Collaborators are replaced with in-process fakes: an in-memory document
store, a publisher that records messages, and the election API served
through FastAPI's TestClient.
"""

import time
from typing import Dict

import pytest
from fastapi.testclient import TestClient

from services.election_api.main import create_app as create_election_app
from services.shared.store import StoreError
from services.vote_api.main import create_app as create_vote_app
from tests.fakes import InMemoryDataAccessLayer, RecordingPublisher, RecordingVoteStore


@pytest.fixture
def store() -> InMemoryDataAccessLayer:
    return InMemoryDataAccessLayer()


@pytest.fixture
def failing_store() -> InMemoryDataAccessLayer:
    failing = InMemoryDataAccessLayer()
    failing.fail_with = StoreError("connection refused")
    return failing


@pytest.fixture
def election_api(store):
    """TestClient for the election API backed by the in-memory store."""
    with TestClient(create_election_app(store=store)) as client:
        yield client


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def vote_api(publisher):
    """TestClient for the vote API backed by the recording publisher."""
    with TestClient(create_vote_app(publisher=publisher)) as client:
        yield client


@pytest.fixture
def vote_store() -> RecordingVoteStore:
    return RecordingVoteStore()


@pytest.fixture
def future_end() -> Dict[str, int]:
    return {"seconds": int(time.time()) + 1000, "nanos": 0}


@pytest.fixture
def past_end() -> Dict[str, int]:
    return {"seconds": int(time.time()) - 1000, "nanos": 0}


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring the docker-compose stack"
    )
