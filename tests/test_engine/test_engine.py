"""
Tests for medcompare/engine.py — the ComparisonEngine facade.

Uses the ``lookup_payload`` fixture (original Augmentin, cheapest alternative
Advent at ₹180.00, Clavam duplicated) and the in-memory vote transport.

What we test
------------
- Every operation returns Success / Failure instead of raising EngineError.
- load_lookup(): dedupes, picks the cheapest as best, resets history.
- select(): changes current; unknown, out-of-context, or de-duplicated refs fail.
- vote(): on success the new aggregate is visible in best, selected,
  remaining, and history contexts alike; rejection leaves values unchanged;
  no actor yields AuthenticationRequired, with or without a transport.
- navigate() / back(): re-ranking around the new original and returning.
- trust_score(): raw dict votes parse; bad records are malformed; a partial
  weight table falls back to the default weights.
- load_lookup(): price ratios beyond Decimal precision fail as ARITHMETIC_ERROR.
- Operations without a context fail with MISSING_CONTEXT.
"""

from __future__ import annotations

import pytest

from medcompare.config import AppConfig, CurationConfig, TrustConfig
from medcompare.engine import ComparisonEngine
from medcompare.errors import ErrorKind
from medcompare.models.vote import Actor, VoteDelta
from medcompare.taxonomy.vote_taxonomy import BestSelection, DedupeKey, VoteDirection
from medcompare.voting.updater import AuthenticationRequired, VoteApplied

_DOCTOR = Actor(user_id="dr-rao")


def _names(meds) -> list[str]:
    return [m.name for m in meds]


@pytest.fixture
def engine(fake_transport) -> ComparisonEngine:
    return ComparisonEngine(AppConfig(), transport=fake_transport)


@pytest.fixture
def loaded(engine, lookup_payload) -> ComparisonEngine:
    assert engine.load_lookup(lookup_payload).ok
    return engine


# ── Loading and selection ──────────────────────────────────────────────────────

class TestLoadLookup:
    def test_curated_view(self, engine, lookup_payload):
        result = engine.load_lookup(lookup_payload)
        assert result.ok
        view = result.value
        assert view.original.name == "Augmentin 625 Duo Tablet"
        assert len(view.alternatives) == 4
        assert view.best.name == "Advent 625mg Tablet"
        assert view.current.name == "Advent 625mg Tablet"
        assert "Advent 625mg Tablet" not in _names(view.remaining)
        assert engine.has_context

    def test_malformed_payload(self, engine):
        result = engine.load_lookup({"alternative_medicines": []})
        assert not result.ok
        assert result.kind == ErrorKind.MALFORMED_RESPONSE
        assert not engine.has_context

    def test_zero_original_price(self, engine, lookup_payload):
        lookup_payload["original_medicine"]["price"] = "₹0"
        result = engine.load_lookup(lookup_payload)
        assert result.kind == ErrorKind.ARITHMETIC_ERROR

    def test_price_ratio_beyond_precision(self, engine, lookup_payload):
        lookup_payload["original_medicine"]["price"] = "₹0.000001"
        lookup_payload["alternative_medicines"][0]["price"] = "₹1e30"
        result = engine.load_lookup(lookup_payload)
        assert not result.ok
        assert result.kind == ErrorKind.ARITHMETIC_ERROR

    def test_flagged_or_first_config(self, fake_transport, lookup_payload):
        lookup_payload["alternative_medicines"][1]["isBest"] = True
        config = AppConfig(curation=CurationConfig(best_selection=BestSelection.FLAGGED_OR_FIRST))
        view = ComparisonEngine(config, fake_transport).load_lookup(lookup_payload).value
        assert view.best.name == "Clavam 625 Tablet"


class TestCompareAndSelect:
    def test_compare_without_context(self, engine):
        result = engine.compare()
        assert not result.ok
        assert result.kind == ErrorKind.MISSING_CONTEXT

    def test_select_by_name(self, loaded):
        view = loaded.select("Clavam 625 Tablet").value
        assert view.current.name == "Clavam 625 Tablet"
        assert view.best.name == "Advent 625mg Tablet"
        assert set(_names(view.remaining)) == {"Moxikind-CV 625 Tablet", "Mega CV 625 Tablet"}

    def test_select_by_id(self, loaded):
        assert loaded.select("2").value.current.name == "Moxikind-CV 625 Tablet"

    def test_clear_selection(self, loaded):
        loaded.select("3")
        assert loaded.select(None).value.current.name == "Advent 625mg Tablet"

    def test_select_original_rejected(self, loaded):
        result = loaded.select("Augmentin 625 Duo Tablet")
        assert result.kind == ErrorKind.MISSING_CONTEXT

    def test_select_unknown(self, loaded):
        assert loaded.select("Ghost Tablet").kind == ErrorKind.MISSING_CONTEXT

    def test_select_name_collapsed_duplicate_rejected(self, fake_transport, lookup_payload):
        lookup_payload["alternative_medicines"].append(
            {"id": 9, "name": "Advent 625mg Tablet", "price": "₹300.00"}
        )
        config = AppConfig(curation=CurationConfig(dedupe_by=DedupeKey.NAME))
        engine = ComparisonEngine(config, fake_transport)
        engine.load_lookup(lookup_payload)
        result = engine.select("9")
        assert result.kind == ErrorKind.MISSING_CONTEXT
        view = engine.compare().value
        assert view.selected is None
        assert view.delta_for(view.best).is_more_expensive is False

    def test_compare_repeats_view(self, loaded):
        assert loaded.compare().value == loaded.compare().value


# ── Voting ─────────────────────────────────────────────────────────────────────

class TestVote:
    def test_vote_updates_every_projection(self, loaded, fake_transport):
        loaded.select("Clavam 625 Tablet")
        result = loaded.vote("Clavam 625 Tablet", VoteDirection.UPVOTE, _DOCTOR)
        assert isinstance(result.value, VoteApplied)
        assert fake_transport.calls == [(3, VoteDirection.UPVOTE, True)]

        view = loaded.compare().value
        assert view.current.total_doctor_votes == 5
        clavam = next(m for m in view.alternatives if m.name == "Clavam 625 Tablet")
        assert clavam.total_upvotes == 3
        assert clavam.doctor_voting_factor == 0.6

    def test_vote_on_current_when_no_ref(self, loaded, fake_transport):
        loaded.vote(None, VoteDirection.DOWNVOTE, _DOCTOR)
        assert fake_transport.calls == [(4, VoteDirection.DOWNVOTE, True)]
        assert loaded.compare().value.best.total_doctor_votes == 5

    def test_vote_on_remaining_entry(self, loaded):
        loaded.vote("Moxikind-CV 625 Tablet", VoteDirection.UPVOTE, _DOCTOR)
        moxi = next(m for m in loaded.compare().value.remaining if m.id == 2)
        assert moxi.doctor_voting_factor == 0.6

    def test_unauthenticated(self, loaded, fake_transport):
        result = loaded.vote("Clavam 625 Tablet", VoteDirection.UPVOTE, None)
        assert result.ok
        assert isinstance(result.value, AuthenticationRequired)
        assert fake_transport.calls == []

    def test_rejected_vote_leaves_values(self, lookup_payload, make_transport):
        engine = ComparisonEngine(
            transport=make_transport(reject_with="You have already voted on this medicine")
        )
        engine.load_lookup(lookup_payload)
        result = engine.vote("Clavam 625 Tablet", VoteDirection.UPVOTE, _DOCTOR)
        assert result.kind == ErrorKind.VOTE_REJECTED
        assert result.message == "You have already voted on this medicine"
        assert result.detail["status_code"] == 409
        clavam = next(m for m in engine.compare().value.alternatives if m.id == 3)
        assert clavam.total_upvotes == 2

    def test_vote_visible_after_back(self, loaded):
        loaded.navigate("Clavam 625 Tablet")
        loaded.vote("Advent 625mg Tablet", VoteDirection.UPVOTE, _DOCTOR)
        view = loaded.back().value
        assert view.best.name == "Advent 625mg Tablet"
        assert view.best.total_doctor_votes == 5

    def test_without_transport(self, lookup_payload):
        engine = ComparisonEngine()
        engine.load_lookup(lookup_payload)
        with pytest.raises(RuntimeError):
            engine.vote(None, VoteDirection.UPVOTE, _DOCTOR)

    def test_unauthenticated_without_transport(self, lookup_payload):
        engine = ComparisonEngine()
        engine.load_lookup(lookup_payload)
        result = engine.vote(None, VoteDirection.UPVOTE, None)
        assert result.ok
        assert isinstance(result.value, AuthenticationRequired)
        assert result.value.medication.name == "Advent 625mg Tablet"

    def test_custom_delta(self, loaded, fake_transport):
        fake_transport.delta = VoteDelta(
            doctor_voting_factor=0.0, total_upvotes=0, total_doctor_votes=1
        )
        loaded.vote("Moxikind-CV 625 Tablet", VoteDirection.DOWNVOTE, _DOCTOR)
        summary = loaded.summarize("Moxikind-CV 625 Tablet").value
        assert summary.has_assessments is True
        assert summary.label == "Not Yet Recommended"


# ── Navigation ─────────────────────────────────────────────────────────────────

class TestNavigation:
    def test_navigate_reranks(self, loaded):
        view = loaded.navigate("Clavam 625 Tablet").value
        assert view.original.name == "Clavam 625 Tablet"
        assert _names(view.alternatives) == [
            "Advent 625mg Tablet", "Moxikind-CV 625 Tablet", "Mega CV 625 Tablet",
        ]
        assert view.best.name == "Advent 625mg Tablet"
        assert view.selected is None

    def test_navigate_excludes_previous_selection(self, loaded):
        loaded.select("Moxikind-CV 625 Tablet")
        view = loaded.navigate("Clavam 625 Tablet").value
        assert "Moxikind-CV 625 Tablet" not in _names(view.alternatives)
        assert "Augmentin 625 Duo Tablet" not in _names(view.alternatives)

    def test_back_restores_previous(self, loaded):
        loaded.select("Clavam 625 Tablet")
        loaded.navigate("Advent 625mg Tablet")
        view = loaded.back().value
        assert view.original.name == "Augmentin 625 Duo Tablet"
        assert view.current.name == "Clavam 625 Tablet"

    def test_back_without_history(self, loaded):
        assert loaded.back().kind == ErrorKind.MISSING_CONTEXT

    def test_navigate_unknown(self, loaded):
        assert loaded.navigate("Ghost Tablet").kind == ErrorKind.MISSING_CONTEXT

    def test_reload_clears_history(self, loaded, lookup_payload):
        loaded.navigate("Clavam 625 Tablet")
        loaded.load_lookup(lookup_payload)
        assert loaded.back().kind == ErrorKind.MISSING_CONTEXT


# ── Scoring ────────────────────────────────────────────────────────────────────

class TestTrustScore:
    def test_raw_votes(self, engine):
        votes = [
            {"doctorId": "d1", "credential": "General", "isVerified": True,
             "expertiseLevel": 5, "vote": 5},
            {"doctorId": "d2", "credential": "Resident", "isVerified": True,
             "expertiseLevel": 5, "vote": 2},
            {"doctorId": "d3", "credential": "Specialist", "isVerified": False,
             "expertiseLevel": 5, "vote": 1},
        ]
        assert engine.trust_score(votes).value == 3.2

    def test_bad_record(self, engine):
        result = engine.trust_score([{"doctorId": "d1", "vote": 9}])
        assert result.kind == ErrorKind.MALFORMED_RESPONSE

    def test_partial_weight_table_keeps_defaults(self):
        config = AppConfig(trust=TrustConfig(credential_weights={"Specialist": 2.0}))
        votes = [{"doctorId": "d1", "credential": "General", "isVerified": True,
                  "expertiseLevel": 5, "vote": 4}]
        result = ComparisonEngine(config).trust_score(votes)
        assert result.ok
        assert result.value == 4.0

    def test_summarize_unassessed(self, loaded):
        summary = loaded.summarize("Moxikind-CV 625 Tablet").value
        assert summary.has_assessments is False
        assert summary.percentage == 0.0
