"""
HTTP client for the medication search service and the vote authority.

Endpoints::

    GET  {base_url}/api/search?name=<name>   → LookupResponse
    POST {base_url}/api/vote                 → VoteDelta
         body: {"medicine_id": ..., "vote": "upvote"|"downvote", "is_doctor": true}

Non-2xx vote responses carry ``{"detail": "<message>"}``; that message is
surfaced verbatim through ``VoteRejectedError``.

Usage::

    from medcompare.config import load_config

    cfg = load_config()
    with MedCompareClient(cfg.api) as client:
        lookup = client.fetch_comparison("Augmentin 625 Duo Tablet")

``MedCompareClient`` satisfies the ``VoteTransport`` protocol, so it can be
passed straight to ``submit_vote`` / ``ComparisonEngine``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from medcompare.config import ApiConfig
from medcompare.errors import MalformedResponseError, VoteRejectedError
from medcompare.models.medication import LookupResponse
from medcompare.models.vote import VoteDelta, VoteRequest
from medcompare.taxonomy.vote_taxonomy import VoteDirection

logger = logging.getLogger(__name__)

_DEFAULT_VOTE_ERROR = "Failed to update vote"


def parse_lookup_response(payload: Any) -> LookupResponse:
    """Validate a search payload.

    Raises:
        MalformedResponseError: If ``original_medicine`` is missing or any
            medication fails validation.
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError(
            f"Lookup response must be a JSON object, got {type(payload).__name__}."
        )
    if not payload.get("original_medicine"):
        raise MalformedResponseError(
            "Invalid response format: missing original_medicine.",
            keys=sorted(payload),
        )
    try:
        return LookupResponse.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Invalid lookup response: {exc.error_count()} validation error(s).",
            errors=exc.errors(include_url=False),
        ) from exc


def parse_vote_delta(payload: Any) -> VoteDelta:
    """Validate a vote response body.

    Raises:
        MalformedResponseError: If any aggregate field is missing or invalid.
    """
    try:
        return VoteDelta.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Invalid vote response: {exc.error_count()} validation error(s).",
            errors=exc.errors(include_url=False),
        ) from exc


class MedCompareClient:
    """Thin httpx wrapper around the search and vote endpoints.

    Attributes:
        config: API base URL and per-request timeout.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialise the client.

        Args:
            config:      API settings. Defaults to ``ApiConfig()``.
            http_client: Pre-built ``httpx.Client`` (tests inject one with a
                         ``MockTransport``). Owned by the caller when given.
        """
        self.config = config or ApiConfig()
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> "MedCompareClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    # ── Search ─────────────────────────────────────────────────────────────────

    def fetch_comparison(self, name: str) -> LookupResponse:
        """Look up a medication and its alternatives by name.

        Raises:
            MalformedResponseError: On transport failure, non-2xx status, a
                non-JSON body, or a payload without ``original_medicine``.
        """
        try:
            resp = self._http.get("/api/search", params={"name": name})
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            raise MalformedResponseError(
                f"Search failed with HTTP {exc.response.status_code}.",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise MalformedResponseError(
                "Failed to load medication details. "
                "Please check your connection and try again.",
                error=str(exc),
            ) from exc
        except ValueError as exc:
            raise MalformedResponseError("Search response is not valid JSON.") from exc

        lookup = parse_lookup_response(payload)
        logger.info(
            "Fetched %s with %d alternative(s)",
            lookup.original_medicine.name, len(lookup.alternative_medicines),
        )
        return lookup

    # ── Vote ───────────────────────────────────────────────────────────────────

    def submit(
        self,
        medicine_id: Union[int, str],
        direction:   VoteDirection,
        is_doctor:   bool,
    ) -> VoteDelta:
        """Post a vote and return the authority's new aggregate.

        Raises:
            VoteRejectedError:      On a non-2xx status (with the authority's
                                    ``detail``) or a transport failure.
            MalformedResponseError: If a 2xx body lacks aggregate fields.
        """
        body = VoteRequest(medicine_id=medicine_id, vote=direction, is_doctor=is_doctor)
        try:
            resp = self._http.post("/api/vote", json=body.model_dump(mode="json"))
        except httpx.HTTPError as exc:
            raise VoteRejectedError(
                f"Vote could not be delivered: {exc}", medicine_id=medicine_id
            ) from exc

        if resp.is_error:
            raise VoteRejectedError(
                _error_detail(resp),
                status_code=resp.status_code,
                medicine_id=medicine_id,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedResponseError("Vote response is not valid JSON.") from exc
        return parse_vote_delta(payload)


def _error_detail(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return _DEFAULT_VOTE_ERROR
    if isinstance(payload, dict) and payload.get("detail"):
        return str(payload["detail"])
    return _DEFAULT_VOTE_ERROR
