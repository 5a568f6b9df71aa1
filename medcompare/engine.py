"""
Comparison engine facade: the session-level API a UI talks to.

Every public method returns ``Success(value)`` or ``Failure(kind, message)``
(see ``medcompare.errors``). ``EngineError`` subclasses raised by the pure
modules are converted here and logged at WARNING; any other exception is a
programming error and propagates.

State held per engine instance:
  - a ``MedicationStore`` (single source of truth for medication values);
  - the current comparison context, as store keys;
  - a navigation history stack for ``back()``.

Typical session::

    engine = ComparisonEngine(config, transport=client)
    engine.load_lookup(payload)                 # Result[CuratedComparison]
    engine.select("Moxikind-CV 625 Tablet")     # Result[CuratedComparison]
    engine.vote(None, VoteDirection.UPVOTE, actor)   # votes on the current panel
    engine.navigate("Moxikind-CV 625 Tablet")   # drill in; re-ranks alternatives
    engine.back()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, TypeVar

from pydantic import ValidationError

from medcompare.api.client import parse_lookup_response
from medcompare.config import AppConfig
from medcompare.curation.curator import (
    ComparisonContext,
    CuratedComparison,
    curate_alternatives,
    rerank_for_navigation,
)
from medcompare.errors import (
    EngineError,
    Failure,
    MalformedResponseError,
    MissingContextError,
    Result,
    Success,
)
from medcompare.models.vote import Actor, DoctorVote
from medcompare.scoring.classifier import RecommendationSummary, summarize_recommendation
from medcompare.scoring.trust import calculate_trust_score
from medcompare.store import ContextRef, MedicationStore
from medcompare.taxonomy.vote_taxonomy import VoteDirection
from medcompare.voting.updater import VoteApplied, VoteOutcome, VoteTransport, submit_vote

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ComparisonEngine:
    """Session facade over scoring, curation, voting, and the entity store.

    Attributes:
        config: Application config; trust, threshold and curation policy are
                read from it on every call.
        store:  The normalized medication store.
    """

    def __init__(
        self,
        config:    Optional[AppConfig] = None,
        transport: Optional[VoteTransport] = None,
        store:     Optional[MedicationStore] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store or MedicationStore()
        self._transport = transport
        self._current: Optional[ContextRef] = None
        self._history: list[ContextRef] = []

    # ── Context ────────────────────────────────────────────────────────────────

    @property
    def has_context(self) -> bool:
        return self._current is not None

    def load_lookup(self, payload: Any) -> Result[CuratedComparison]:
        """Load a search-service payload as the current comparison context.

        Clears the navigation history.
        """
        def _load() -> CuratedComparison:
            lookup = parse_lookup_response(payload)
            ref = self.store.context_ref(
                ComparisonContext(
                    original=lookup.original_medicine,
                    alternatives=list(lookup.alternative_medicines),
                )
            )
            self._history.clear()
            self._current = ref
            return self._curate(ref)

        return self._run("load_lookup", _load)

    def compare(self) -> Result[CuratedComparison]:
        """Curated view of the current context, read through the store."""
        return self._run("compare", lambda: self._curate(self._require_context()))

    def select(self, ref: Optional[str]) -> Result[CuratedComparison]:
        """Make ``ref`` the selected alternative (``None`` clears the selection).

        ``ref`` may be a store key, a bare id, or a display name. Entries
        dropped by de-duplication cannot be selected.
        """
        def _select() -> CuratedComparison:
            current = self._require_context()
            if ref is None:
                key = None
            else:
                key = self.store.resolve(ref)
                listed = self._curate(current.with_selection(None)).alternatives
                if key not in {m.entity_key for m in listed}:
                    raise MissingContextError(
                        f"{ref!r} is not an alternative in the current comparison.",
                        key=key,
                    )
            self._current = current.with_selection(key)
            return self._curate(self._current)

        return self._run("select", _select)

    def navigate(self, ref: str) -> Result[CuratedComparison]:
        """Drill into ``ref`` as the new original and re-rank the alternatives.

        The previous context is pushed onto the history stack.
        """
        def _navigate() -> CuratedComparison:
            current = self._require_context()
            previous = self.store.materialize(current)
            target = self.store.get(self.store.resolve(ref))
            context = rerank_for_navigation(
                target,
                previous.alternatives,
                previous_original=previous.original,
                selected=previous.selected,
                config=self.config.curation,
            )
            new_ref = self.store.context_ref(context)
            view = self._curate(new_ref)
            self._history.append(current)
            self._current = new_ref
            return view

        return self._run("navigate", _navigate)

    def back(self) -> Result[CuratedComparison]:
        """Return to the previous comparison context."""
        def _back() -> CuratedComparison:
            if not self._history:
                raise MissingContextError("No previous comparison to return to.")
            self._current = self._history.pop()
            return self._curate(self._current)

        return self._run("back", _back)

    # ── Voting ─────────────────────────────────────────────────────────────────

    def vote(
        self,
        ref:       Optional[str],
        direction: VoteDirection,
        actor:     Optional[Actor],
    ) -> Result[VoteOutcome]:
        """Vote on ``ref`` (or, when ``None``, on the medication currently shown).

        On success the new aggregate is written to the store once and every
        view of that medication reflects it. On rejection the stored aggregate
        is left unchanged.

        Raises:
            RuntimeError: If an authenticated vote is cast on an engine built
                without a vote transport.
        """
        if actor is not None and self._transport is None:
            raise RuntimeError("ComparisonEngine has no vote transport configured.")
        transport = self._transport

        def _vote() -> VoteOutcome:
            key = self._vote_target_key(ref)
            outcome = submit_vote(self.store.get(key), direction, actor, transport)
            if isinstance(outcome, VoteApplied):
                self.store.apply_vote(key, outcome.delta)
            return outcome

        return self._run("vote", _vote)

    # ── Scoring ────────────────────────────────────────────────────────────────

    def trust_score(self, votes: Iterable[Any]) -> Result[float]:
        """Trust score for raw vote records (dicts or ``DoctorVote``)."""
        def _score() -> float:
            try:
                parsed = [
                    v if isinstance(v, DoctorVote) else DoctorVote.model_validate(v)
                    for v in votes
                ]
            except ValidationError as exc:
                raise MalformedResponseError(
                    f"Invalid vote record: {exc.error_count()} validation error(s).",
                    errors=exc.errors(include_url=False),
                ) from exc
            return calculate_trust_score(parsed, self.config.trust)

        return self._run("trust_score", _score)

    def summarize(self, ref: str) -> Result[RecommendationSummary]:
        """Voting-panel summary for a stored medication."""
        return self._run(
            "summarize",
            lambda: summarize_recommendation(
                self.store.get(self.store.resolve(ref)), self.config.thresholds
            ),
        )

    # ── Internals ──────────────────────────────────────────────────────────────

    def _require_context(self) -> ContextRef:
        if self._current is None:
            raise MissingContextError("Please select a medication to compare alternatives.")
        return self._current

    def _curate(self, ref: ContextRef) -> CuratedComparison:
        context = self.store.materialize(ref)
        return curate_alternatives(
            context.original,
            context.alternatives,
            context.selected,
            self.config.curation,
        )

    def _vote_target_key(self, ref: Optional[str]) -> str:
        if ref is not None:
            return self.store.resolve(ref)
        current = self._curate(self._require_context()).current
        if current is None:
            raise MissingContextError("No alternative is shown to vote on.")
        return current.entity_key

    def _run(self, operation: str, fn: Callable[[], T]) -> Result[T]:
        try:
            return Success(fn())
        except EngineError as exc:
            logger.warning(
                "%s failed [%s]: %s", operation, exc.kind.value, exc.message,
                extra={"operation": operation, "error_kind": exc.kind.value},
            )
            return Failure.from_error(exc)
