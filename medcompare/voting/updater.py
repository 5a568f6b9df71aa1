"""
Vote aggregate merging.

``apply_vote_result`` replaces a medication's three aggregate fields with the
authority's response and preserves everything else. The aggregate is trusted
as-is: nothing is recomputed locally, and repeat votes by the same actor are
the authority's concern, not this module's.

``submit_vote`` runs one vote round trip:

    no actor            → AuthenticationRequired (transport never called)
    transport success   → VoteApplied(updated medication, delta)
    transport rejection → VoteRejectedError propagates; the input medication
                          is untouched

Concurrent votes on the same medication are not fenced here; a caller that
needs at-most-one-in-flight must serialize them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from medcompare.errors import MissingContextError
from medcompare.models.medication import Medication
from medcompare.models.vote import Actor, VoteDelta
from medcompare.taxonomy.vote_taxonomy import VoteDirection

logger = logging.getLogger(__name__)


class VoteTransport(Protocol):
    """Anything that can deliver a vote to the aggregate authority.

    Implementations raise ``VoteRejectedError`` when the vote is declined.
    """

    def submit(
        self,
        medicine_id: Union[int, str],
        direction:   VoteDirection,
        is_doctor:   bool,
    ) -> VoteDelta: ...


@dataclass(frozen=True)
class VoteApplied:
    medication: Medication
    delta:      VoteDelta
    direction:  VoteDirection


@dataclass(frozen=True)
class AuthenticationRequired:
    """No authenticated actor: the caller should prompt for sign-in."""

    medication: Medication


VoteOutcome = Union[VoteApplied, AuthenticationRequired]


def apply_vote_result(medication: Medication, delta: VoteDelta) -> Medication:
    """Return a copy of ``medication`` carrying the aggregate from ``delta``."""
    return medication.model_copy(
        update={
            "doctor_voting_factor": delta.doctor_voting_factor,
            "total_upvotes":        delta.total_upvotes,
            "total_doctor_votes":   delta.total_doctor_votes,
        }
    )


def submit_vote(
    medication: Medication,
    direction:  VoteDirection,
    actor:      Optional[Actor],
    transport:  Optional[VoteTransport],
) -> VoteOutcome:
    """Submit a vote and merge the authority's aggregate into ``medication``.

    Args:
        medication: Medication being voted on.
        direction:  Upvote or downvote.
        actor:      Authenticated actor, or ``None``.
        transport:  Delivers the vote and returns the new aggregate. Not
                    consulted when ``actor`` is ``None``.

    Returns:
        ``AuthenticationRequired`` when ``actor`` is ``None``, else
        ``VoteApplied`` with the updated medication.

    Raises:
        MissingContextError: If the medication has no id to vote on.
        VoteRejectedError:   If the authority declines the vote.
        RuntimeError:        If an authenticated vote has no transport.
    """
    if actor is None:
        logger.info("Vote on %s needs an authenticated actor", medication.name,
                    extra={"operation": "vote", "medication": medication.entity_key})
        return AuthenticationRequired(medication=medication)

    if medication.id is None:
        raise MissingContextError(
            f"Medication {medication.name!r} has no id; cannot submit a vote.",
            name=medication.name,
        )
    if transport is None:
        raise RuntimeError("No vote transport configured.")

    delta = transport.submit(medication.id, direction, actor.is_doctor)
    updated = apply_vote_result(medication, delta)
    logger.info(
        "Vote %s on %s applied: factor=%.3f upvotes=%d total=%d",
        direction.value, medication.name,
        delta.doctor_voting_factor, delta.total_upvotes, delta.total_doctor_votes,
        extra={"operation": "vote", "medication": medication.entity_key},
    )
    return VoteApplied(medication=updated, delta=delta, direction=direction)
