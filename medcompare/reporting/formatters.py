"""
ASCII terminal formatters for CLI output.

All formatters accept engine results and return plain multi-line strings
suitable for ``typer.echo()``. No third-party dependencies.

Comparison layout::

  === Comparison: Augmentin 625 Duo Tablet ===
    Original:  Augmentin 625 Duo Tablet        ₹223.42
    Best:      Advent 625mg Tablet [BEST]        ₹180.00   19% Cheaper (Save ₹43.42)
               Moderately Recommended -- 25.0% of 4 assessments (1 up / 3 down)

    Other alternatives (3 of 3)
       #  Name                            Price      vs. Original   Doctors
      --------------------------------------------------------------------
       1  Moxikind-CV 625 Tablet            ₹199.00     11% Cheaper  Not Yet Recommended
"""

from __future__ import annotations

from typing import Optional

from medcompare.config import BandThresholds
from medcompare.curation.curator import CuratedComparison, first_sentence, visible_remaining
from medcompare.models.medication import Medication
from medcompare.scoring.classifier import summarize_recommendation

_RULE = "-" * 84


def format_recommendation_line(
    medication: Medication,
    thresholds: Optional[BandThresholds] = None,
) -> str:
    """One-line doctor recommendation status for a medication."""
    summary = summarize_recommendation(medication, thresholds)
    if not summary.has_assessments:
        return "No doctor assessments yet"
    return (
        f"{summary.label} -- {summary.percentage_text} of {summary.total_votes} "
        f"assessments ({summary.upvotes} up / {summary.downvotes} down)"
    )


def format_comparison(
    view:            CuratedComparison,
    show_all:        bool = False,
    page_size:       int = 6,
    currency_symbol: str = "₹",
    thresholds:      Optional[BandThresholds] = None,
) -> str:
    """Format a curated comparison as an ASCII block.

    Args:
        view:            Output of ``curate_alternatives()``.
        show_all:        Show every remaining alternative instead of one page.
        page_size:       Remaining alternatives shown when ``show_all`` is False.
        currency_symbol: Symbol used in the savings text.
        thresholds:      Band thresholds for recommendation labels.

    Returns:
        Multi-line string.
    """
    lines: list[str] = []
    original = view.original
    lines.append("")
    lines.append(f"=== Comparison: {original.name} ===")
    lines.append(f"  Original:  {_name_cell(original, 32)}  {original.price:>10}")
    lines.append(f"             {first_sentence(original.description)}")

    current = view.current
    if current is None:
        lines.append("")
        lines.append("  (no alternatives available for this medication)")
        return "\n".join(lines)

    delta = view.delta_for(current)
    tag = "Selected" if view.is_selected(current) else "Best"
    lines.append(
        f"  {tag + ':':<10} {_name_cell(current, 32)}  {current.price:>10}   "
        f"{delta.caption} ({delta.savings_text(currency_symbol)})"
    )
    lines.append(f"             {format_recommendation_line(current, thresholds)}")

    shown = visible_remaining(view.remaining, show_all, page_size)
    if shown:
        lines.append("")
        lines.append(f"  Other alternatives ({len(shown)} of {len(view.remaining)})")
        lines.append(
            f"    {'#':>2}  {'Name':<32}  {'Price':>10}  {'vs. Original':>14}  Doctors"
        )
        lines.append(f"    {_RULE}")
        for idx, med in enumerate(shown, start=1):
            summary = summarize_recommendation(med, thresholds)
            lines.append(
                f"    {idx:>2}  {_name_cell(med, 32)}  {med.price:>10}  "
                f"{view.delta_for(med).caption:>14}  {summary.label}"
            )
        hidden = len(view.remaining) - len(shown)
        if hidden > 0:
            lines.append(f"    ... {hidden} more (use --all to show every alternative)")

    return "\n".join(lines)


def format_trust_score(score: float, vote_count: int, verified_count: int) -> str:
    """One-block trust score summary, flagging scores beyond the 0-5 display range."""
    lines = [
        f"  Trust score:    {score:.1f}",
        f"  Votes:          {vote_count} ({verified_count} verified)",
    ]
    if score > 5.0:
        lines.append("  [NOTE] Score exceeds the nominal 0-5 display range.")
    return "\n".join(lines)


def _name_cell(medication: Medication, width: int) -> str:
    name = medication.name
    if medication.is_best:
        name = f"{name} [BEST]"
    if medication.is_discontinued:
        name = f"{name} [DISC]"
    if len(name) > width:
        name = name[: width - 3] + "..."
    return f"{name:<{width}}"
