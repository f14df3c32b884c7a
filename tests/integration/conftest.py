"""Pytest fixtures for integration tests.

These tests talk to a running stack: election API, vote API, vote processor,
RabbitMQ and PostgreSQL. Service locations come from the environment; every
test is skipped when the APIs are not reachable.
"""

import os
import random
import time
from typing import AsyncGenerator, Callable, Dict, List

import httpx
import psycopg2
import pytest
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT


@pytest.fixture(scope="session")
def election_url() -> str:
    """Base URL for the election API."""
    return os.getenv("ELECTION_API_URL", "http://localhost:9223")


@pytest.fixture(scope="session")
def vote_url() -> str:
    """Base URL for the vote API."""
    return os.getenv("VOTE_API_URL", "http://localhost:9222")


@pytest.fixture(scope="session")
def live_stack(election_url: str, vote_url: str):
    """Skip unless both APIs report healthy."""
    for url in (election_url, vote_url):
        try:
            response = httpx.get(f"{url}/health", timeout=2.0)
        except httpx.HTTPError:
            pytest.skip(f"service not reachable at {url}")
        if response.status_code != 200:
            pytest.skip(f"service at {url} is unhealthy")


@pytest.fixture
async def election_client(live_stack, election_url: str) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(base_url=election_url, timeout=10.0) as client:
        yield client


@pytest.fixture
async def vote_client(live_stack, vote_url: str) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(base_url=vote_url, timeout=10.0) as client:
        yield client


@pytest.fixture(scope="session")
def postgres_connection(live_stack):
    """PostgreSQL connection to the document store."""
    try:
        conn = psycopg2.connect(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            dbname=os.getenv("POSTGRES_DB", "elections"),
            user=os.getenv("POSTGRES_USER", "election_user"),
            password=os.getenv("POSTGRES_PASSWORD", "election_pass"),
            connect_timeout=5
        )
    except psycopg2.OperationalError:
        pytest.skip("PostgreSQL not available")
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)

    yield conn

    conn.close()


@pytest.fixture
def count_votes(postgres_connection) -> Callable[[int, str], int]:
    """Returns a function counting stored votes for an election and candidate."""
    collection = os.getenv("VOTE_COLLECTION", "vote")

    def _count(election_id: int, candidate: str) -> int:
        query = sql.SQL(
            "SELECT COUNT(*) FROM {table} "
            "WHERE (document->>'electionId')::int = %s AND document->>'candidate' = %s"
        ).format(table=sql.Identifier(collection))
        with postgres_connection.cursor() as cursor:
            cursor.execute(query, (election_id, candidate))
            return cursor.fetchone()[0]

    return _count


@pytest.fixture
def wait_for_votes(count_votes) -> Callable[..., int]:
    """Poll the vote collection until the expected count shows up or time runs out."""
    def _wait(election_id: int, candidate: str, expected: int, timeout: float = 10.0) -> int:
        deadline = time.monotonic() + timeout
        count = count_votes(election_id, candidate)
        while count < expected and time.monotonic() < deadline:
            time.sleep(0.25)
            count = count_votes(election_id, candidate)
        return count

    return _wait


@pytest.fixture
async def election_ids(election_client: httpx.AsyncClient) -> AsyncGenerator[List[int], None]:
    """Fresh election ids; elections created with them are deleted afterwards."""
    ids = random.sample(range(1_000_000, 2_000_000_000), 5)

    yield ids

    for election_id in ids:
        await election_client.delete(f"/election/{election_id}")


@pytest.fixture
def open_end() -> Dict[str, int]:
    return {"seconds": int(time.time()) + 3600, "nanos": 0}


@pytest.fixture
def closed_end() -> Dict[str, int]:
    return {"seconds": int(time.time()) - 3600, "nanos": 0}


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring the running service stack"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow running"
    )
