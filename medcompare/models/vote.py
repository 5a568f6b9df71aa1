"""
Doctor vote, vote aggregate, and actor models.

``DoctorVote`` is an ephemeral scoring input: one doctor's 1–5 rating of a
medication together with their credential tier and self-reported expertise.

``VoteDelta`` is the authoritative aggregate returned by the remote vote
authority after a vote. The engine merges it as-is; it never recomputes
aggregates locally.

``VoteRequest`` is the wire body for a vote submission.
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from medcompare.taxonomy.vote_taxonomy import Credential, VoteDirection


class DoctorVote(BaseModel):
    """One doctor's rating of a medication.

    Accepts both snake_case and the camelCase wire spelling
    (``doctorId``, ``isVerified``, ``expertiseLevel``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    doctor_id: str = Field(alias="doctorId")
    credential: Credential
    is_verified: bool = Field(alias="isVerified")
    expertise_level: int = Field(alias="expertiseLevel", ge=1, le=5)
    vote: int = Field(ge=1, le=5)


class VoteDelta(BaseModel):
    """Server-computed vote aggregate for one medication."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    doctor_voting_factor: float = Field(ge=0.0, le=1.0)
    total_upvotes: int = Field(ge=0)
    total_doctor_votes: int = Field(ge=0)

    @model_validator(mode="after")
    def validate_counts(self) -> "VoteDelta":
        if self.total_upvotes > self.total_doctor_votes:
            raise ValueError(
                f"total_upvotes ({self.total_upvotes}) must be <= "
                f"total_doctor_votes ({self.total_doctor_votes})."
            )
        return self


class Actor(BaseModel):
    """The authenticated user casting a vote."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    is_doctor: bool = True


class VoteRequest(BaseModel):
    """Body of ``POST /api/vote``."""

    model_config = ConfigDict(frozen=True)

    medicine_id: Union[int, str]
    vote: VoteDirection
    is_doctor: bool
