"""
Normalized medication store: one entity per identity key.

Every comparison context (the current one and any in the navigation history)
holds identity keys, not medication values. Views are materialized from the
store on demand, so a vote written once through ``apply_vote`` is observed by
every projection that references the same medication: the best slot, the
selected slot, the remaining list, and contexts further back in history.

``is_best`` is view state, not entity state: the store keeps entities
unflagged and a context remembers which key arrived flagged (``best_hint``)
for the ``FLAGGED_OR_FIRST`` contract.

Not thread-safe; one store per UI session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, Optional

from medcompare.curation.curator import ComparisonContext
from medcompare.errors import MissingContextError
from medcompare.models.medication import Medication
from medcompare.models.vote import VoteDelta
from medcompare.voting.updater import apply_vote_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextRef:
    """A comparison context expressed as store keys."""

    original_key:     str
    alternative_keys: list[str] = field(default_factory=list)
    selected_key:     Optional[str] = None
    best_hint:        Optional[str] = None

    def with_selection(self, key: Optional[str]) -> "ContextRef":
        return replace(self, selected_key=key)


class MedicationStore:
    """Single source of truth for medication snapshots, keyed by ``entity_key``."""

    def __init__(self) -> None:
        self._entities: dict[str, Medication] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, key: object) -> bool:
        return key in self._entities

    def __iter__(self) -> Iterator[Medication]:
        return iter(self._entities.values())

    # ── Writes ─────────────────────────────────────────────────────────────────

    def upsert(self, medication: Medication) -> str:
        """Store a snapshot (replacing any previous one) and return its key."""
        key = medication.entity_key
        self._entities[key] = (
            medication.model_copy(update={"is_best": False}) if medication.is_best else medication
        )
        return key

    def upsert_many(self, medications: Iterable[Medication]) -> list[str]:
        return [self.upsert(m) for m in medications]

    def apply_vote(self, key: str, delta: VoteDelta) -> Medication:
        """Write a vote aggregate once; every projection observes it."""
        updated = apply_vote_result(self.get(key), delta)
        self._entities[key] = updated
        logger.debug("Store updated %s with new vote aggregate", key)
        return updated

    # ── Reads ──────────────────────────────────────────────────────────────────

    def get(self, key: str) -> Medication:
        try:
            return self._entities[key]
        except KeyError:
            raise MissingContextError(f"Unknown medication {key!r}.", key=key) from None

    def resolve(self, ref: str) -> str:
        """Resolve a key, a bare id, or a display name to a store key.

        Raises:
            MissingContextError: If nothing matches.
        """
        if ref in self._entities:
            return ref
        for candidate in (f"id:{ref}", f"name:{ref}"):
            if candidate in self._entities:
                return candidate
        for key, med in self._entities.items():
            if med.name == ref:
                return key
        raise MissingContextError(f"Unknown medication {ref!r}.", key=ref)

    def materialize(self, ref: ContextRef) -> ComparisonContext:
        """Project a ``ContextRef`` into current medication values."""
        alternatives = [
            self._entities[k].model_copy(update={"is_best": True}) if k == ref.best_hint
            else self._entities[k]
            for k in ref.alternative_keys
        ]
        selected = self.get(ref.selected_key) if ref.selected_key else None
        return ComparisonContext(
            original=self.get(ref.original_key),
            alternatives=alternatives,
            selected=selected,
        )

    def context_ref(self, context: ComparisonContext) -> ContextRef:
        """Store every medication of ``context`` and return its key form.

        Within one context the first snapshot of an identity wins; later
        duplicates neither overwrite it nor appear twice in the key list.
        """
        written: set[str] = set()

        def first_seen(med: Medication) -> str:
            key = med.entity_key
            if key not in written:
                written.add(key)
                self.upsert(med)
            return key

        original_key = first_seen(context.original)
        best_hint: Optional[str] = None
        keys: list[str] = []
        for med in context.alternatives:
            key = first_seen(med)
            if med.is_best and best_hint is None:
                best_hint = key
            if key not in keys:
                keys.append(key)
        selected_key = first_seen(context.selected) if context.selected else None
        return ContextRef(
            original_key=original_key,
            alternative_keys=keys,
            selected_key=selected_key,
            best_hint=best_hint,
        )
