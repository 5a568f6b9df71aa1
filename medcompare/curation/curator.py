"""
Alternative-set curation: de-duplicate, pick the best alternative, partition
the remaining alternatives, and compute price deltas for display.

Usage flow
----------
1. curate_alternatives(original, alternatives, selected)
   -> CuratedComparison  (best / current / remaining / price deltas)

2. rerank_for_navigation(target, alternatives, previous_original, selected)
   -> ComparisonContext  (new original + cheapest-first, re-flagged pool)
   Feed the context back into curate_alternatives() to display it.

Identity
--------
Entries are identified by ``identity_key()``: the medication id when present
(falling back to the name when the payload has no id), or the name alone
under ``DedupeKey.NAME``. Every equality test below (de-duplication,
selected/best exclusion, flagging) compares identity keys, never object
identity.

Best selection
--------------
``BestSelection.CHEAPEST`` (default): lowest parsed price; ties keep list
order; incoming ``is_best`` flags are ignored.
``BestSelection.FLAGGED_OR_FIRST``: the first entry flagged ``is_best``,
otherwise the first entry. Use this only when the caller has already ranked
the list.

Exactly one entry of a curated set carries ``is_best=True``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from medcompare.config import CurationConfig
from medcompare.curation.pricing import PriceDelta, parse_price, price_difference
from medcompare.errors import MissingContextError
from medcompare.models.medication import Medication
from medcompare.taxonomy.vote_taxonomy import BestSelection, DedupeKey

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description available for this medication."

_FIRST_SENTENCE_RE = re.compile(r"^[^.!?]+[.!?]")


@dataclass(frozen=True)
class CuratedComparison:
    """Display-ready view of one comparison context.

    Attributes:
        original:     The medication being compared against.
        alternatives: De-duplicated alternatives, best flagged, input order kept.
        best:         The single best alternative (``None`` if no alternatives).
        selected:     The user's explicit selection, if any.
        current:      What the comparison panel shows: ``selected or best``.
        remaining:    Alternatives minus ``selected`` and minus ``best``.
        price_deltas: Identity key -> PriceDelta vs. the original, for every
                      alternative and for ``selected``.
    """

    original:     Medication
    alternatives: list[Medication]
    best:         Optional[Medication]
    selected:     Optional[Medication]
    current:      Optional[Medication]
    remaining:    list[Medication]
    price_deltas: dict[str, PriceDelta] = field(default_factory=dict)
    dedupe_by:    DedupeKey = DedupeKey.ID

    def delta_for(self, medication: Medication) -> PriceDelta:
        return self.price_deltas[identity_key(medication, self.dedupe_by)]

    def is_selected(self, medication: Medication) -> bool:
        return self.selected is not None and _same(medication, self.selected, self.dedupe_by)


@dataclass(frozen=True)
class ComparisonContext:
    """Inputs for a comparison: an original, its alternatives, a selection."""

    original:     Medication
    alternatives: list[Medication]
    selected:     Optional[Medication] = None


# ── Identity ──────────────────────────────────────────────────────────────────

def identity_key(medication: Medication, dedupe_by: DedupeKey = DedupeKey.ID) -> str:
    if dedupe_by == DedupeKey.NAME:
        return f"name:{medication.name}"
    return medication.entity_key


def _same(a: Optional[Medication], b: Optional[Medication], dedupe_by: DedupeKey) -> bool:
    if a is None or b is None:
        return False
    return identity_key(a, dedupe_by) == identity_key(b, dedupe_by)


# ── Set operations ────────────────────────────────────────────────────────────

def deduplicate(
    alternatives: Iterable[Medication],
    dedupe_by:    DedupeKey = DedupeKey.ID,
) -> list[Medication]:
    """Keep the first occurrence of each identity, preserving input order.

    Later duplicates are dropped even when they carry different vote
    aggregates or prices.
    """
    seen: set[str] = set()
    unique: list[Medication] = []
    for med in alternatives:
        key = identity_key(med, dedupe_by)
        if key in seen:
            continue
        seen.add(key)
        unique.append(med)
    return unique


def select_best(
    alternatives:    list[Medication],
    strategy:        BestSelection = BestSelection.CHEAPEST,
    currency_symbol: str = "₹",
) -> Optional[Medication]:
    """Designate the best alternative.

    Raises:
        PriceArithmeticError: Under ``CHEAPEST``, if any price is unparsable.
    """
    if not alternatives:
        return None
    if strategy == BestSelection.FLAGGED_OR_FIRST:
        return next((m for m in alternatives if m.is_best), alternatives[0])
    # min() returns the first of equal minima, so ties keep list order.
    return min(alternatives, key=lambda m: parse_price(m.price, currency_symbol))


def flag_best(
    alternatives: list[Medication],
    best:         Optional[Medication],
    dedupe_by:    DedupeKey = DedupeKey.ID,
) -> list[Medication]:
    """Return copies where only ``best`` carries ``is_best=True``."""
    flagged: list[Medication] = []
    for med in alternatives:
        want = _same(med, best, dedupe_by)
        flagged.append(med if med.is_best == want else med.model_copy(update={"is_best": want}))
    return flagged


def partition_remaining(
    alternatives: list[Medication],
    best:         Optional[Medication],
    selected:     Optional[Medication],
    dedupe_by:    DedupeKey = DedupeKey.ID,
) -> list[Medication]:
    """Alternatives other than ``selected`` and ``best``.

    When ``selected`` is the best entry it is excluded once; an entry equal to
    ``selected`` is excluded regardless of whether it is also ``best``.
    """
    excluded = {identity_key(m, dedupe_by) for m in (best, selected) if m is not None}
    return [m for m in alternatives if identity_key(m, dedupe_by) not in excluded]


def visible_remaining(
    remaining: list[Medication],
    show_all:  bool = False,
    limit:     int = 6,
) -> list[Medication]:
    """Page the remaining list: first ``limit`` entries unless ``show_all``."""
    return list(remaining) if show_all else list(remaining[:limit])


def first_sentence(description: Optional[str], limit: int = 150) -> str:
    """First complete sentence of a description, else its first ``limit`` chars."""
    if not description or description == "No Description Available":
        return NO_DESCRIPTION
    match = _FIRST_SENTENCE_RE.match(description)
    if match:
        return match.group(0).strip()
    if len(description) > limit:
        return f"{description[:limit]}..."
    return description


# ── Curation ──────────────────────────────────────────────────────────────────

def curate_alternatives(
    original:     Optional[Medication],
    alternatives: Iterable[Medication],
    selected:     Optional[Medication] = None,
    config:       Optional[CurationConfig] = None,
) -> CuratedComparison:
    """Build the display view of a comparison.

    Deterministic: the same inputs always produce an equal result.

    Args:
        original:     Medication being compared against. Required.
        alternatives: Raw alternative list (may contain duplicates).
        selected:     The user's explicit selection, or ``None``. Its own
                      field values are shown as-is (only ``is_best`` is
                      re-derived), unless it is a different medication that
                      shares an identity key with a listed entry; the listed
                      entry is then shown instead.
        config:       Curation contract. Defaults to ``CurationConfig()``.

    Returns:
        CuratedComparison.

    Raises:
        MissingContextError:  If ``original`` is ``None``.
        PriceArithmeticError: If a price needed for ranking or deltas is
            unparsable, or the original price is not positive.
    """
    if original is None:
        raise MissingContextError("No original medication to compare against.")

    cfg = config or CurationConfig()
    dedupe_by = cfg.dedupe_by

    raw = list(alternatives)
    unique = deduplicate(raw, dedupe_by)
    best = select_best(unique, cfg.best_selection, cfg.currency_symbol)
    flagged = flag_best(unique, best, dedupe_by)
    if best is not None:
        best = next(m for m in flagged if _same(m, best, dedupe_by))

    if selected is not None:
        listed = next((m for m in flagged if _same(m, selected, dedupe_by)), None)
        if listed is not None and listed.entity_key != selected.entity_key:
            # A name-collapsed duplicate resolves to the entry kept in the list.
            selected = listed
        is_best = _same(selected, best, dedupe_by)
        if selected.is_best != is_best:
            selected = selected.model_copy(update={"is_best": is_best})

    current = selected or best
    remaining = partition_remaining(flagged, best, selected, dedupe_by)

    price_deltas: dict[str, PriceDelta] = {}
    for med in [*flagged, *([selected] if selected is not None else [])]:
        price_deltas[identity_key(med, dedupe_by)] = price_difference(
            original.price, med.price, cfg.currency_symbol
        )

    logger.debug(
        "Curated %s: %d unique of %d, best=%s, remaining=%d",
        original.name, len(flagged), len(raw),
        best.name if best else None, len(remaining),
    )

    return CuratedComparison(
        original=original,
        alternatives=flagged,
        best=best,
        selected=selected,
        current=current,
        remaining=remaining,
        price_deltas=price_deltas,
        dedupe_by=dedupe_by,
    )


def rerank_for_navigation(
    target:            Optional[Medication],
    alternatives:      Iterable[Medication],
    previous_original: Optional[Medication] = None,
    selected:          Optional[Medication] = None,
    config:            Optional[CurationConfig] = None,
) -> ComparisonContext:
    """Re-rank alternatives when the user drills into ``target`` as the new original.

    The candidate pool is ``alternatives`` minus ``target``, minus the
    previous original, minus the previous selection, de-duplicated. It is
    sorted by ascending price (stable) and the cheapest entry becomes the
    sole ``is_best`` entry.

    Args:
        target:            Medication becoming the new original. Required.
        alternatives:      The previous context's alternative list.
        previous_original: The original being navigated away from.
        selected:          The previous context's selection.
        config:            Curation contract (currency symbol, identity).

    Returns:
        ComparisonContext with ``target`` as original, cheapest-first
        alternatives, and no selection.

    Raises:
        MissingContextError:  If ``target`` is ``None``.
        PriceArithmeticError: If a candidate price is unparsable.
    """
    if target is None:
        raise MissingContextError("No medication to navigate to.")

    cfg = config or CurationConfig()
    dedupe_by = cfg.dedupe_by

    excluded = {
        identity_key(m, dedupe_by)
        for m in (target, previous_original, selected)
        if m is not None
    }
    pool = [
        m for m in deduplicate(alternatives, dedupe_by)
        if identity_key(m, dedupe_by) not in excluded
    ]

    prices: dict[str, Decimal] = {
        identity_key(m, dedupe_by): parse_price(m.price, cfg.currency_symbol) for m in pool
    }
    ranked = sorted(pool, key=lambda m: prices[identity_key(m, dedupe_by)])
    best = ranked[0] if ranked else None

    logger.info(
        "Navigated to %s: %d candidate(s), best=%s",
        target.name, len(ranked), best.name if best else None,
    )
    return ComparisonContext(
        original=target.model_copy(update={"is_best": False}) if target.is_best else target,
        alternatives=flag_best(ranked, best, dedupe_by),
        selected=None,
    )
