"""
Vocabulary for doctor votes, recommendation bands, and risk tiers.

Four orthogonal enumerations:
  - ``Credential``          — the *who*: which tier of doctor cast a vote?
  - ``VoteDirection``       — the *what*: recommend or not recommend?
  - ``RecommendationBand``  — the *how much*: severity band of a 0–100 percentage.
  - ``RiskLevel``           — side-effect / trust derived risk tier.

``BestSelection`` and ``DedupeKey`` name the curator's selectable contracts.

Usage example::

    from medcompare.taxonomy.vote_taxonomy import Credential, VoteDirection

    credential = Credential.SPECIALIST
    direction  = VoteDirection.UPVOTE

This module has NO imports from any other ``medcompare`` package.
"""

from enum import StrEnum


class Credential(StrEnum):
    """Credential tier of a voting doctor."""

    SPECIALIST = "Specialist"
    """Board-certified specialist; heaviest default weight."""

    GENERAL = "General"
    """General practitioner; reference weight of 1.0."""

    RESIDENT = "Resident"
    """Doctor in residency training; lightest default weight."""


class VoteDirection(StrEnum):
    """Direction of a vote as sent to the aggregate authority."""

    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class RecommendationBand(StrEnum):
    """Four-tier severity band for a recommendation percentage."""

    HIGH = "high"
    """At or above the high threshold (default 75%)."""

    MID = "mid"
    """At or above the mid threshold (default 50%)."""

    LOW = "low"
    """At or above the low threshold (default 25%)."""

    MINIMAL = "minimal"
    """Below the low threshold, including exactly 0%."""


class RiskLevel(StrEnum):
    """Risk tier shown alongside a medication."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BestSelection(StrEnum):
    """How the curator designates the best alternative."""

    CHEAPEST = "cheapest"
    """Lowest parsed price wins; incoming ``isBest`` flags are ignored."""

    FLAGGED_OR_FIRST = "flagged_or_first"
    """Trust an incoming ``isBest`` flag, else take the first entry."""


class DedupeKey(StrEnum):
    """Identity used to de-duplicate an alternative set."""

    ID = "id"
    """Stable medication id; falls back to name when the id is absent."""

    NAME = "name"
    """Display name only."""
