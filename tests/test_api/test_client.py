"""
Tests for medcompare/api/client.py.

All HTTP traffic goes through ``httpx.MockTransport``; nothing touches the
network.

What we test
------------
parse_lookup_response():
  - Valid payloads parse; duplicate and discontinued entries survive parsing.
  - Missing / null original_medicine and non-object payloads are malformed.
  - A null alternative list becomes empty.

MedCompareClient.fetch_comparison():
  - Sends GET /api/search?name=...
  - Non-2xx, transport errors, and non-JSON bodies → MalformedResponseError.

MedCompareClient.submit():
  - Sends the vote body; parses the returned aggregate.
  - Non-2xx → VoteRejectedError carrying the authority's "detail" verbatim,
    or a generic message when the body has none.
  - A 2xx body missing aggregate fields → MalformedResponseError.
"""

from __future__ import annotations

import json

import httpx
import pytest

from medcompare.api.client import MedCompareClient, parse_lookup_response, parse_vote_delta
from medcompare.config import ApiConfig
from medcompare.errors import ErrorKind, MalformedResponseError, VoteRejectedError
from medcompare.taxonomy.vote_taxonomy import VoteDirection


# ── Helpers ────────────────────────────────────────────────────────────────────

def _client(handler) -> MedCompareClient:
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://test")
    return MedCompareClient(ApiConfig(base_url="http://test"), http_client=http)


# ── parse_lookup_response ──────────────────────────────────────────────────────

class TestParseLookupResponse:
    def test_valid_payload(self, lookup_payload):
        lookup = parse_lookup_response(lookup_payload)
        assert lookup.original_medicine.name == "Augmentin 625 Duo Tablet"
        assert len(lookup.alternative_medicines) == 5
        assert lookup.alternative_medicines[-1].is_discontinued is True
        assert lookup.alternative_medicines[0].total_doctor_votes == 0
        assert lookup.original_medicine.compositions.unique_salts() == [
            "Amoxycillin (500mg)", "Clavulanic Acid (125mg)",
        ]

    @pytest.mark.parametrize("payload", [{}, {"original_medicine": None}, {"alternative_medicines": []}])
    def test_missing_original(self, payload):
        with pytest.raises(MalformedResponseError) as exc_info:
            parse_lookup_response(payload)
        assert exc_info.value.kind == ErrorKind.MALFORMED_RESPONSE

    @pytest.mark.parametrize("payload", [None, [], "oops"])
    def test_non_object(self, payload):
        with pytest.raises(MalformedResponseError):
            parse_lookup_response(payload)

    def test_null_alternatives(self, lookup_payload):
        lookup_payload["alternative_medicines"] = None
        assert parse_lookup_response(lookup_payload).alternative_medicines == []

    def test_invalid_medication_is_malformed(self, lookup_payload):
        lookup_payload["alternative_medicines"][0]["total_upvotes"] = 50
        lookup_payload["alternative_medicines"][0]["total_doctor_votes"] = 1
        with pytest.raises(MalformedResponseError) as exc_info:
            parse_lookup_response(lookup_payload)
        assert exc_info.value.detail["errors"]


class TestParseVoteDelta:
    def test_missing_field(self):
        with pytest.raises(MalformedResponseError):
            parse_vote_delta({"doctor_voting_factor": 0.5, "total_upvotes": 1})

    def test_extra_fields_ignored(self):
        delta = parse_vote_delta(
            {"doctor_voting_factor": 0.5, "total_upvotes": 1, "total_doctor_votes": 2, "ok": True}
        )
        assert delta.total_doctor_votes == 2


# ── fetch_comparison ───────────────────────────────────────────────────────────

class TestFetchComparison:
    def test_success(self, lookup_payload):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=lookup_payload)

        with _client(handler) as client:
            lookup = client.fetch_comparison("Augmentin 625 Duo Tablet")

        assert lookup.original_medicine.id == 1
        assert seen[0].method == "GET"
        assert seen[0].url.path == "/api/search"
        assert seen[0].url.params["name"] == "Augmentin 625 Duo Tablet"

    def test_http_error_status(self):
        with _client(lambda r: httpx.Response(404, json={"detail": "Not found"})) as client:
            with pytest.raises(MalformedResponseError) as exc_info:
                client.fetch_comparison("Nothing")
        assert exc_info.value.detail["status_code"] == 404

    def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _client(handler) as client:
            with pytest.raises(MalformedResponseError) as exc_info:
                client.fetch_comparison("Augmentin")
        assert "check your connection" in exc_info.value.message

    def test_non_json_body(self):
        with _client(lambda r: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(MalformedResponseError):
                client.fetch_comparison("Augmentin")

    def test_payload_without_original(self):
        body = {"alternative_medicines": []}
        with _client(lambda r: httpx.Response(200, json=body)) as client:
            with pytest.raises(MalformedResponseError):
                client.fetch_comparison("Augmentin")


# ── submit ─────────────────────────────────────────────────────────────────────

class TestSubmitVote:
    def test_success(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={"doctor_voting_factor": 0.6, "total_upvotes": 3, "total_doctor_votes": 5},
            )

        with _client(handler) as client:
            delta = client.submit(42, VoteDirection.UPVOTE, is_doctor=True)

        assert seen == [{"medicine_id": 42, "vote": "upvote", "is_doctor": True}]
        assert delta.total_upvotes == 3

    def test_rejection_detail_verbatim(self):
        body = {"detail": "You have already voted on this medicine"}
        with _client(lambda r: httpx.Response(400, json=body)) as client:
            with pytest.raises(VoteRejectedError) as exc_info:
                client.submit(42, VoteDirection.DOWNVOTE, is_doctor=True)
        assert exc_info.value.message == "You have already voted on this medicine"
        assert exc_info.value.status_code == 400

    def test_rejection_without_detail(self):
        with _client(lambda r: httpx.Response(500, text="Internal Server Error")) as client:
            with pytest.raises(VoteRejectedError) as exc_info:
                client.submit(42, VoteDirection.UPVOTE, is_doctor=True)
        assert exc_info.value.message == "Failed to update vote"

    def test_transport_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with _client(handler) as client:
            with pytest.raises(VoteRejectedError):
                client.submit(42, VoteDirection.UPVOTE, is_doctor=True)

    def test_incomplete_aggregate(self):
        body = {"doctor_voting_factor": 0.6}
        with _client(lambda r: httpx.Response(200, json=body)) as client:
            with pytest.raises(MalformedResponseError):
                client.submit(42, VoteDirection.UPVOTE, is_doctor=True)


class TestClientLifecycle:
    def test_injected_client_not_closed(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with MedCompareClient(http_client=http):
            pass
        assert http.is_closed is False
        http.close()

    def test_owned_client_closed(self):
        client = MedCompareClient(ApiConfig(base_url="http://test"))
        client.close()
        assert client._http.is_closed is True
