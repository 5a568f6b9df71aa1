"""
Shared pytest fixtures for the MedCompare test suite.

Provides:
  - ``make_med``: factory for ``Medication`` with sensible defaults.
  - ``lookup_payload``: a realistic search-service payload (raw dict) with a
    duplicate alternative and a discontinued alternative.
  - ``FakeTransport``: an in-memory ``VoteTransport`` recording its calls.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Union

import pytest

from medcompare.errors import VoteRejectedError
from medcompare.models.medication import Medication
from medcompare.models.vote import VoteDelta
from medcompare.taxonomy.vote_taxonomy import VoteDirection


# ── Factories ─────────────────────────────────────────────────────────────────

def build_med(name: str = "Augmentin 625 Duo Tablet", price: str = "₹100", **overrides: Any) -> Medication:
    return Medication(name=name, price=price, **overrides)


@pytest.fixture
def make_med() -> Callable[..., Medication]:
    return build_med


@pytest.fixture
def lookup_payload() -> dict:
    """Search payload: cheapest alternative is Advent (id 4, ₹180.00).

    Clavam (id 3) appears twice; the first copy (₹201.47) must win.
    """
    return {
        "original_medicine": {
            "id": 1,
            "name": "Augmentin 625 Duo Tablet",
            "price": "₹223.42",
            "manufacturer": "Glaxo SmithKline Pharmaceuticals Ltd",
            "pack_size": "strip of 10 tablets",
            "description": "Augmentin 625 Duo Tablet is a penicillin-type of antibiotic. It helps your immune system.",
            "compositions": {
                "composition1": "Amoxycillin (500mg)",
                "composition2": "Clavulanic Acid (125mg)",
                "salt_composition": "Amoxycillin (500mg) + Clavulanic Acid (125mg)",
            },
            "side_effect_factor": 1.2,
            "doctor_voting_factor": 0.8,
            "total_upvotes": 8,
            "total_doctor_votes": 10,
            "is_discontinued": False,
        },
        "alternative_medicines": [
            {
                "id": 2,
                "name": "Moxikind-CV 625 Tablet",
                "price": "₹199.00",
                "doctor_voting_factor": None,
                "total_upvotes": None,
                "total_doctor_votes": None,
                "is_discontinued": False,
            },
            {
                "id": 3,
                "name": "Clavam 625 Tablet",
                "price": "₹201.47",
                "doctor_voting_factor": 0.5,
                "total_upvotes": 2,
                "total_doctor_votes": 4,
                "is_discontinued": False,
            },
            {
                "id": 4,
                "name": "Advent 625mg Tablet",
                "price": "₹180.00",
                "doctor_voting_factor": 0.25,
                "total_upvotes": 1,
                "total_doctor_votes": 4,
                "is_discontinued": False,
            },
            {
                "id": 3,
                "name": "Clavam 625 Tablet",
                "price": "₹250.00",
                "doctor_voting_factor": 1.0,
                "total_upvotes": 9,
                "total_doctor_votes": 9,
                "is_discontinued": False,
            },
            {
                "id": 5,
                "name": "Mega CV 625 Tablet",
                "price": "₹240.00",
                "Is_discontinued": True,
            },
        ],
    }


# ── Vote transport double ─────────────────────────────────────────────────────

class FakeTransport:
    """Records submissions; returns ``delta`` or raises ``reject_with``."""

    def __init__(
        self,
        delta: Optional[VoteDelta] = None,
        reject_with: Optional[str] = None,
    ) -> None:
        self.delta = delta or VoteDelta(
            doctor_voting_factor=0.6, total_upvotes=3, total_doctor_votes=5
        )
        self.reject_with = reject_with
        self.calls: list[tuple[Union[int, str], VoteDirection, bool]] = []

    def submit(
        self,
        medicine_id: Union[int, str],
        direction:   VoteDirection,
        is_doctor:   bool,
    ) -> VoteDelta:
        self.calls.append((medicine_id, direction, is_doctor))
        if self.reject_with is not None:
            raise VoteRejectedError(self.reject_with, status_code=409)
        return self.delta


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport
