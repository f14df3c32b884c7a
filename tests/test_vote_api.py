"""Tests for the vote API endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

from services.vote_api.main import create_app
from tests.fakes import RecordingPublisher


class TestSubmitVote:
    """Tests for POST /vote."""

    def test_valid_vote_is_published(self, vote_api, publisher):
        response = vote_api.post("/vote", json={"electionId": 1, "candidate": "x"})

        assert response.status_code == 201
        assert response.json() == {"electionId": 1, "candidate": "x"}

        assert len(publisher.messages) == 1
        channel, body = publisher.messages[0]
        assert channel == "create-vote"
        assert json.loads(body) == {"electionId": 1, "candidate": "x"}

    @pytest.mark.parametrize("election_id", [0, -1, -2147483648])
    def test_non_positive_election_id(self, vote_api, publisher, election_id):
        response = vote_api.post("/vote", json={"electionId": election_id, "candidate": "x"})

        assert response.status_code == 400
        error = response.json()
        assert error["message"] == "Invalid Vote Data"
        assert "electionId" in error["details"]
        assert publisher.messages == []

    @pytest.mark.parametrize("candidate", ["", "   "])
    def test_empty_candidate(self, vote_api, publisher, candidate):
        response = vote_api.post("/vote", json={"electionId": 1, "candidate": candidate})

        assert response.status_code == 400
        assert "candidate" in response.json()["details"]
        assert publisher.messages == []

    def test_bad_election_id_wins_over_other_fields(self, vote_api):
        response = vote_api.post("/vote", json={"electionId": 0, "candidate": ""})
        assert response.status_code == 400

    @pytest.mark.parametrize("body", [
        {},
        {"electionId": 1},
        {"candidate": "x"},
        {"electionId": "1", "candidate": "x"},
        {"electionId": 1.0, "candidate": "x"},
        {"electionId": 2 ** 31, "candidate": "x"},
        {"electionId": 1, "candidate": 5},
        {"electionId": 1, "user": "x"},
        {"electionId": 1, "candidate": "x", "extra_field": "rejected"},
        {"election_id": 1, "candidate": "x"},
    ])
    def test_structural_errors(self, vote_api, publisher, body):
        response = vote_api.post("/vote", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
        assert publisher.messages == []

    def test_malformed_json(self, vote_api):
        response = vote_api.post(
            "/vote",
            content="not valid json",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400

    def test_publish_failure(self):
        failing = RecordingPublisher(succeed=False)
        with TestClient(create_app(publisher=failing)) as client:
            response = client.post("/vote", json={"electionId": 1, "candidate": "x"})

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to publish vote"

    def test_publisher_exception_is_a_publish_failure(self):
        class BrokenPublisher(RecordingPublisher):
            async def publish(self, channel_name, body):
                raise ConnectionError("bus unreachable")

        with TestClient(create_app(publisher=BrokenPublisher())) as client:
            response = client.post("/vote", json={"electionId": 1, "candidate": "x"})

        assert response.status_code == 500


class TestHealth:

    def test_healthy(self, vote_api):
        response = vote_api.get("/health")

        assert response.status_code == 200
        assert response.json()["services"] == {"rabbitmq": "connected"}

    def test_unhealthy(self):
        with TestClient(create_app(publisher=RecordingPublisher(succeed=False))) as client:
            response = client.get("/health")

        assert response.status_code == 503

    def test_root(self, vote_api):
        assert vote_api.get("/").json()["service"] == "vote-api"

    def test_submitted_votes_metric_has_no_per_election_series(self, vote_api):
        vote_api.post("/vote", json={"electionId": 123456, "candidate": "x"})

        samples = [
            line for line in vote_api.get("/metrics").text.splitlines()
            if line.startswith("votes_submitted_total")
        ]
        assert samples
        assert all("election_id" not in line for line in samples)
