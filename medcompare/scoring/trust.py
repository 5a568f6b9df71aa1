"""
Trust score: weighted average of verified doctor votes.

Score formula
-------------
For each *verified* vote::

    weight       = credential_weights[credential] * (expertise_level / 5)
    contribution = vote * weight

    score = round_1dp( sum(contribution) / count(verified votes) )

Unverified votes are dropped before both the sum and the count. No votes, or
no verified votes, score 0.0.

Range
-----
The score is NOT bounded to the 0–5 display range by default. With the
default weights a single verified Specialist at expertise 5 voting 5 scores
``5 * 1.5 * 1.0 = 7.5``. Set ``TrustConfig.clamp_to_display_range`` to clamp
into [0, 5] instead.

Risk tiers
----------
    trust score >= 4.0  → low
    trust score >= 2.5  → medium
    otherwise           → high

When no trust score is available, the side-effect factor decides:
``None`` / negative / < 1.5 → low, < 3 → medium, else high.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from medcompare.config import TrustConfig
from medcompare.models.vote import DoctorVote
from medcompare.taxonomy.vote_taxonomy import RiskLevel

logger = logging.getLogger(__name__)

DISPLAY_MIN = 0.0
DISPLAY_MAX = 5.0


def vote_weight(vote: DoctorVote, policy: TrustConfig) -> float:
    """Credential weight scaled by normalized expertise (expertise / 5).

    ``TrustConfig`` fills omitted tiers from the defaults, so every
    credential has a weight.
    """
    credential_weight = policy.credential_weights[vote.credential]
    return credential_weight * (vote.expertise_level / 5.0)


def calculate_trust_score(
    votes:  Iterable[DoctorVote],
    policy: Optional[TrustConfig] = None,
) -> float:
    """Compute the weighted trust score for a set of doctor votes.

    Args:
        votes:  Doctor votes; may be empty.
        policy: Credential weights and clamping switch. Defaults to
                ``TrustConfig()``.

    Returns:
        Score rounded to one decimal place (half-up).
    """
    policy = policy or TrustConfig()

    verified = [v for v in votes if v.is_verified]
    if not verified:
        return 0.0

    weighted_sum = sum(v.vote * vote_weight(v, policy) for v in verified)
    score = _round_half_up_1dp(weighted_sum / len(verified))

    if policy.clamp_to_display_range:
        return _clamp(score, DISPLAY_MIN, DISPLAY_MAX)
    if score > DISPLAY_MAX:
        logger.debug("Trust score %.1f exceeds display range 0-5", score)
    return score


def trust_based_risk_level(trust_score: float) -> RiskLevel:
    if trust_score >= 4.0:
        return RiskLevel.LOW
    if trust_score >= 2.5:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def side_effect_risk_level(side_effect_factor: Optional[float]) -> RiskLevel:
    """Risk tier from ``side_effect_factor``; unreported (None or -1) is low."""
    if side_effect_factor is None or side_effect_factor < 0:
        return RiskLevel.LOW
    if side_effect_factor < 1.5:
        return RiskLevel.LOW
    if side_effect_factor < 3:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def risk_level(
    side_effect_factor: Optional[float],
    trust_score:        Optional[float] = None,
) -> RiskLevel:
    """Prefer the trust score when one is known, else fall back to side effects."""
    if trust_score is not None:
        return trust_based_risk_level(trust_score)
    return side_effect_risk_level(side_effect_factor)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _round_half_up_1dp(value: float) -> float:
    return math.floor(value * 10.0 + 0.5) / 10.0


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
