"""
Recommendation classification: 0–100 percentage → label, band, display values.

Thresholds (defaults; injected via ``BandThresholds``)
------------------------------------------------------
    p >= 75  → HIGH     "Highly Recommended"       emerald
    p >= 50  → MID      "Recommended"              blue
    p >= 25  → LOW      "Moderately Recommended"   amber
    else     → MINIMAL  "Minimally Recommended"    red

``recommendation_label`` alone special-cases exactly 0 as
"Not Yet Recommended": a never-assessed medication must not read the same as
one that doctors assessed unfavourably. The band and colour mappings do not
special-case zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from medcompare.config import BandThresholds
from medcompare.models.medication import Medication
from medcompare.taxonomy.vote_taxonomy import RecommendationBand

NOT_YET_RECOMMENDED = "Not Yet Recommended"

_BAND_LABELS: dict[RecommendationBand, str] = {
    RecommendationBand.HIGH:    "Highly Recommended",
    RecommendationBand.MID:     "Recommended",
    RecommendationBand.LOW:     "Moderately Recommended",
    RecommendationBand.MINIMAL: "Minimally Recommended",
}

_TEXT_CLASSES: dict[RecommendationBand, str] = {
    RecommendationBand.HIGH:    "text-emerald-600 dark:text-emerald-400",
    RecommendationBand.MID:     "text-blue-600 dark:text-blue-400",
    RecommendationBand.LOW:     "text-amber-600 dark:text-amber-400",
    RecommendationBand.MINIMAL: "text-red-600 dark:text-red-400",
}

_BG_CLASSES: dict[RecommendationBand, str] = {
    RecommendationBand.HIGH:    "bg-emerald-500",
    RecommendationBand.MID:     "bg-blue-500",
    RecommendationBand.LOW:     "bg-amber-500",
    RecommendationBand.MINIMAL: "bg-red-500",
}


def recommendation_band(
    percentage: float,
    thresholds: Optional[BandThresholds] = None,
) -> RecommendationBand:
    t = thresholds or BandThresholds()
    if percentage >= t.high:
        return RecommendationBand.HIGH
    if percentage >= t.mid:
        return RecommendationBand.MID
    if percentage >= t.low:
        return RecommendationBand.LOW
    return RecommendationBand.MINIMAL


def recommendation_label(
    percentage: float,
    thresholds: Optional[BandThresholds] = None,
) -> str:
    if percentage == 0:
        return NOT_YET_RECOMMENDED
    return _BAND_LABELS[recommendation_band(percentage, thresholds)]


def color_class(percentage: float, thresholds: Optional[BandThresholds] = None) -> str:
    """Text colour class for the percentage's band."""
    return _TEXT_CLASSES[recommendation_band(percentage, thresholds)]


def band_class(percentage: float, thresholds: Optional[BandThresholds] = None) -> str:
    """Background (progress bar) colour class for the percentage's band."""
    return _BG_CLASSES[recommendation_band(percentage, thresholds)]


def format_count(count: int) -> str:
    """Abbreviate vote counts: 999 → "999", 1500 → "1.5K", 2_500_000 → "2.5M"."""
    if count >= 1_000_000:
        return f"{count / 1_000_000:.1f}M"
    if count >= 1_000:
        return f"{count / 1_000:.1f}K"
    return str(count)


def progress_width(percentage: float) -> str:
    """Clamp into [0, 100] and render as a CSS width, e.g. ``"42.5%"``.

    Fixed-point to four decimals with trailing zeros stripped; never
    scientific notation.
    """
    value = min(100.0, max(0.0, float(percentage)))
    return f"{value:.4f}".rstrip("0").rstrip(".") + "%"


@dataclass(frozen=True)
class RecommendationSummary:
    """Everything the voting panel shows for one medication.

    Attributes:
        percentage:      ``doctor_voting_factor * 100``; 0.0 when never assessed.
        label:           Human-readable recommendation label.
        band:            Severity band.
        text_class:      Text colour class.
        bg_class:        Progress-bar colour class.
        width:           Clamped CSS width string.
        upvotes:         Abbreviated upvote count.
        downvotes:       Abbreviated downvote count.
        total_votes:     Abbreviated total vote count.
        has_assessments: False when ``doctor_voting_factor`` is absent.
    """

    percentage:      float
    label:           str
    band:            RecommendationBand
    text_class:      str
    bg_class:        str
    width:           str
    upvotes:         str
    downvotes:       str
    total_votes:     str
    has_assessments: bool

    @property
    def percentage_text(self) -> str:
        return f"{self.percentage:.1f}%"


def summarize_recommendation(
    medication: Medication,
    thresholds: Optional[BandThresholds] = None,
) -> RecommendationSummary:
    """Build the voting-panel summary for ``medication``."""
    pct = medication.recommendation_percentage
    percentage = pct if pct is not None else 0.0
    return RecommendationSummary(
        percentage=percentage,
        label=recommendation_label(percentage, thresholds),
        band=recommendation_band(percentage, thresholds),
        text_class=color_class(percentage, thresholds),
        bg_class=band_class(percentage, thresholds),
        width=progress_width(percentage),
        upvotes=format_count(medication.total_upvotes),
        downvotes=format_count(medication.downvotes),
        total_votes=format_count(medication.total_doctor_votes),
        has_assessments=medication.has_assessments,
    )
