"""
Medication and lookup-response models.

``Medication`` is the primary entity flowing through the engine: a read-only
snapshot from the search service, carrying its price string and the
doctor-vote aggregate (``doctor_voting_factor``, ``total_upvotes``,
``total_doctor_votes``).

``LookupResponse`` is the search service payload
``{original_medicine, alternative_medicines}``.

Both models are frozen. Vote results and best-flag recomputation produce new
values via ``model_copy(update=...)``; a snapshot owned by a caller is never
mutated in place.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class Compositions(BaseModel):
    """Active-ingredient composition fields as returned by the search service."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    composition1: Optional[str] = None
    composition2: Optional[str] = None
    salt_composition: Optional[str] = None

    def unique_salts(self) -> list[str]:
        """Distinct, trimmed ingredient names in first-seen order."""
        seen: dict[str, None] = {}
        for part in (self.composition1, self.composition2):
            if part and part.strip():
                seen.setdefault(part.strip(), None)
        if self.salt_composition:
            for salt in self.salt_composition.split("+"):
                if salt.strip():
                    seen.setdefault(salt.strip(), None)
        return list(seen)


class Medication(BaseModel):
    """A medication snapshot with its doctor-vote aggregate.

    Attributes:
        id: Stable identifier from the search service, or ``None`` when the
            payload omits it (identity then falls back to ``name``).
        name: Display name; unique within any displayed alternative set.
        price: Currency-formatted price string, e.g. ``"₹120.50"``.
        doctor_voting_factor: Normalized recommendation signal in ``[0, 1]``.
            ``None`` means no doctor has assessed this medication yet, which
            is not the same as ``0.0``.
        total_upvotes: Number of doctor upvotes.
        total_doctor_votes: Number of doctor votes of either direction.
        is_best: Best-alternative flag. Recomputed by the curator, never
            persisted. Accepts the wire spelling ``isBest``.
        is_discontinued: Whether the medication is off the market. Accepts
            the search service's ``Is_discontinued`` spelling as well.
        side_effect_factor: Side-effect severity used for risk tiers;
            ``-1`` or ``None`` means none reported.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: Optional[Union[int, str]] = None
    name: str
    price: str
    doctor_voting_factor: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    total_upvotes: int = Field(default=0, ge=0)
    total_doctor_votes: int = Field(default=0, ge=0)
    is_best: bool = Field(default=False, alias="isBest")
    is_discontinued: bool = Field(
        default=False,
        validation_alias=AliasChoices("is_discontinued", "Is_discontinued"),
    )
    side_effect_factor: Optional[float] = None
    manufacturer: Optional[str] = None
    pack_size: Optional[str] = None
    description: Optional[str] = None
    side_effects: Optional[str] = None
    drug_interactions: Optional[str] = None
    compositions: Optional[Compositions] = None

    @field_validator("name")
    @classmethod
    def validate_name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name must not be empty.")
        return v.strip()

    @field_validator("price", mode="before")
    @classmethod
    def coerce_numeric_price(cls, v: Any) -> Any:
        # Some listing endpoints send a bare number instead of "₹12.00".
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return f"{v:.2f}"
        return v

    @field_validator("total_upvotes", "total_doctor_votes", mode="before")
    @classmethod
    def coerce_missing_counts(cls, v: Any) -> Any:
        return 0 if v is None else v

    @model_validator(mode="after")
    def validate_vote_counts(self) -> "Medication":
        if self.total_upvotes > self.total_doctor_votes:
            raise ValueError(
                f"total_upvotes ({self.total_upvotes}) must be <= "
                f"total_doctor_votes ({self.total_doctor_votes})."
            )
        return self

    @property
    def entity_key(self) -> str:
        """Stable identity: ``"id:<id>"`` when an id is present, else ``"name:<name>"``."""
        if self.id is not None and str(self.id) != "":
            return f"id:{self.id}"
        return f"name:{self.name}"

    @property
    def downvotes(self) -> int:
        return self.total_doctor_votes - self.total_upvotes

    @property
    def has_assessments(self) -> bool:
        return self.doctor_voting_factor is not None

    @property
    def recommendation_percentage(self) -> Optional[float]:
        """``doctor_voting_factor * 100``, or ``None`` when never assessed."""
        if self.doctor_voting_factor is None:
            return None
        return self.doctor_voting_factor * 100.0


class LookupResponse(BaseModel):
    """Search service response: one original medication and its alternatives.

    A missing ``original_medicine`` fails validation; it is never coerced.
    A missing or ``null`` ``alternative_medicines`` becomes an empty list.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    original_medicine: Medication
    alternative_medicines: list[Medication] = Field(default_factory=list)

    @field_validator("alternative_medicines", mode="before")
    @classmethod
    def coerce_missing_alternatives(cls, v: Any) -> Any:
        return [] if v is None else v
