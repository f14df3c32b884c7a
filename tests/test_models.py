"""Tests for the shared election and vote models."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from services.shared.models import (
    MAX_VALID_SECONDS,
    MIN_VALID_SECONDS,
    Election,
    Timestamp,
    Vote,
    contains_candidate,
    is_election_over,
    parse_int32,
)


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestIsElectionOver:
    """Open/closed predicate."""

    def test_end_in_the_past_is_over(self):
        end = Timestamp.from_datetime(NOW - timedelta(seconds=1000))
        assert is_election_over(end, NOW) is True

    def test_end_in_the_future_is_open(self):
        end = Timestamp.from_datetime(NOW + timedelta(seconds=1000))
        assert is_election_over(end, NOW) is False

    def test_end_equal_to_now_is_over(self):
        assert is_election_over(Timestamp.from_datetime(NOW), NOW) is True

    @pytest.mark.parametrize("end", [
        None,
        Timestamp(seconds=-1000, nanos=-1000),
        Timestamp(seconds=0, nanos=1_000_000_000),
        Timestamp(seconds=MAX_VALID_SECONDS + 1),
        Timestamp(seconds=MIN_VALID_SECONDS - 1),
    ])
    def test_unparseable_end_is_over(self, end):
        assert is_election_over(end, NOW) is True

    def test_defaults_to_current_time(self):
        assert is_election_over(Timestamp(seconds=1)) is True
        assert is_election_over(Timestamp(seconds=MAX_VALID_SECONDS)) is False


class TestTimestamp:

    def test_to_datetime_keeps_microseconds(self):
        ts = Timestamp(seconds=1536525322, nanos=123456789)
        assert ts.to_datetime() == datetime(2018, 9, 9, 20, 35, 22, 123456, tzinfo=timezone.utc)

    def test_range_bounds_are_valid(self):
        assert Timestamp(seconds=MIN_VALID_SECONDS).is_valid()
        assert Timestamp(seconds=MAX_VALID_SECONDS, nanos=999999999).is_valid()

    def test_from_dict_defaults_missing_fields(self):
        assert Timestamp.from_dict({"seconds": 5}) == Timestamp(seconds=5, nanos=0)

    def test_from_dict_rejects_non_integers(self):
        with pytest.raises(ValueError):
            Timestamp.from_dict({"seconds": "5"})

    def test_now_is_close_to_wall_clock(self):
        delta = Timestamp.now().to_datetime() - datetime.now(timezone.utc)
        assert abs(delta.total_seconds()) < 2


class TestElection:

    def test_document_shape(self):
        election = Election(
            id=5,
            candidates=["a", "b"],
            start=Timestamp(seconds=10),
            end=Timestamp(seconds=20, nanos=3),
        )
        assert election.to_dict() == {
            "id": 5,
            "start": {"seconds": 10, "nanos": 0},
            "end": {"seconds": 20, "nanos": 3},
            "candidates": ["a", "b"],
        }
        assert Election.from_dict(election.to_dict()) == election

    def test_missing_end_is_over(self):
        election = Election.from_dict({"id": 1, "candidates": ["a"]})
        assert election.end is None
        assert election.is_over(NOW)

    def test_candidate_membership_is_exact(self):
        election = Election(id=1, candidates=["Alice", "Bob"])
        assert election.has_candidate("Alice")
        assert not election.has_candidate("alice")
        assert not contains_candidate("Carol", election.candidates)


class TestVote:

    def test_json_shape(self):
        vote = Vote(election_id=1, candidate="x")
        assert json.loads(vote.to_json()) == {"electionId": 1, "candidate": "x"}

    def test_from_json_accepts_bytes(self):
        assert Vote.from_json(b'{"electionId": 7, "candidate": "y"}') == Vote(7, "y")

    @pytest.mark.parametrize("payload", [
        b"not json",
        b"[]",
        b'{"electionId": "1", "candidate": "x"}',
        b'{"electionId": true, "candidate": "x"}',
        b'{"electionId": 1}',
        b'{"electionId": 1, "user": "x"}',
        b'\xff\xfe',
    ])
    def test_from_json_rejects_malformed_payloads(self, payload):
        with pytest.raises(ValueError):
            Vote.from_json(payload)

    @pytest.mark.parametrize("vote,message", [
        (Vote(0, "x"), "electionId must be positive"),
        (Vote(-3, "x"), "electionId must be positive"),
        (Vote(2 ** 31, "x"), "electionId must be a 32-bit integer"),
        (Vote(1, ""), "candidate is required"),
        (Vote(1, "   "), "candidate is required"),
    ])
    def test_validate_rejects(self, vote, message):
        assert vote.validate() == (False, message)

    def test_validate_accepts(self):
        assert Vote(1, "x").validate() == (True, None)


class TestParseInt32:

    @pytest.mark.parametrize("raw,expected", [("1", 1), ("+5", 5), ("-7", -7), ("2147483647", 2147483647)])
    def test_parses(self, raw, expected):
        assert parse_int32(raw) == expected

    @pytest.mark.parametrize("raw", ["", "abc", "1.5", " 1", "1_0", "2147483648", "-2147483649", "5\n", "\u0663"])
    def test_rejects(self, raw):
        with pytest.raises(ValueError):
            parse_int32(raw)
