"""
MedCompare — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Run the engine.
  5. Report the result to stdout; engine failures exit with code 1.

Install and run::

    pip install -e .
    medcompare --help
    medcompare validate-config
    medcompare trust-score --file votes.json
    medcompare compare --file lookup.json --selected "Clavam 625 Tablet"
    medcompare navigate --file lookup.json --to "Clavam 625 Tablet"
    medcompare search "Augmentin 625 Duo Tablet"
    medcompare vote 42 --direction upvote --user dr-rao
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

app = typer.Typer(
    name="medcompare",
    help="Doctor-vote trust scoring and medication alternative ranking.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from pydantic import ValidationError

    from medcompare.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except (ValidationError, ValueError) as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config, command: str) -> None:
    from medcompare.utils.logging import configure_logging
    configure_logging(config.logging, command=command)


def _read_json_or_exit(path: str) -> Any:
    file_path = Path(path)
    if not file_path.exists():
        typer.echo(f"[ERROR] File not found: {file_path}", err=True)
        raise typer.Exit(code=1)
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        typer.echo(f"[ERROR] JSON parse error: {exc}", err=True)
        raise typer.Exit(code=1)


def _unwrap_or_exit(result):
    """Return ``result.value`` or print the failure and exit 1."""
    if not result.ok:
        typer.echo(f"[ERROR] {result.kind.value}: {result.message}", err=True)
        raise typer.Exit(code=1)
    return result.value


def _echo_view(view, config, show_all: bool) -> None:
    from medcompare.reporting.formatters import format_comparison

    typer.echo(
        format_comparison(
            view,
            show_all=show_all,
            page_size=config.curation.remaining_page_size,
            currency_symbol=config.curation.currency_symbol,
            thresholds=config.thresholds,
        )
    )


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(False, "--full", help="Print full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values."""
    config = _load_config_or_exit(config_path)

    weights = ", ".join(
        f"{cred}={w}" for cred, w in config.trust.credential_weights.items()
    )
    t = config.thresholds
    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Credential weights: {weights}")
    typer.echo(f"  Clamp trust score:  {config.trust.clamp_to_display_range}")
    typer.echo(f"  Band thresholds:    high={t.high} mid={t.mid} low={t.low}")
    typer.echo(f"  Best selection:     {config.curation.best_selection.value}")
    typer.echo(f"  Dedupe by:          {config.curation.dedupe_by.value}")
    typer.echo(f"  API base URL:       {config.api.base_url}")
    typer.echo(f"  Log level:          {config.logging.level}")

    if show_full:
        typer.echo("")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2, ensure_ascii=False))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("trust-score")
def trust_score(
    votes_file: str = typer.Option(..., "--file", "-f", help="JSON array of doctor votes."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Compute the weighted trust score for a JSON array of doctor votes."""
    from medcompare.engine import ComparisonEngine
    from medcompare.reporting.formatters import format_trust_score

    config = _load_config_or_exit(config_path)
    _configure_logging(config, "trust-score")

    raw_votes = _read_json_or_exit(votes_file)
    if not isinstance(raw_votes, list):
        typer.echo("[ERROR] Votes file must contain a JSON array.", err=True)
        raise typer.Exit(code=1)

    score = _unwrap_or_exit(ComparisonEngine(config).trust_score(raw_votes))
    verified = sum(
        1 for v in raw_votes
        if isinstance(v, dict) and (v.get("isVerified") or v.get("is_verified"))
    )
    typer.echo(format_trust_score(score, len(raw_votes), verified))


@app.command("compare")
def compare(
    lookup_file: str = typer.Option(..., "--file", "-f", help="Search-service JSON payload."),
    selected: Optional[str] = typer.Option(None, "--selected", help="Alternative to select (name or id)."),
    show_all: bool = typer.Option(False, "--all", help="Show every remaining alternative."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Curate and print the comparison for a saved lookup payload."""
    from medcompare.engine import ComparisonEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config, "compare")

    engine = ComparisonEngine(config)
    view = _unwrap_or_exit(engine.load_lookup(_read_json_or_exit(lookup_file)))
    if selected:
        view = _unwrap_or_exit(engine.select(selected))
    _echo_view(view, config, show_all)


@app.command("navigate")
def navigate(
    lookup_file: str = typer.Option(..., "--file", "-f", help="Search-service JSON payload."),
    target: str = typer.Option(..., "--to", help="Alternative to drill into (name or id)."),
    selected: Optional[str] = typer.Option(None, "--selected", help="Selection before navigating."),
    show_all: bool = typer.Option(False, "--all", help="Show every remaining alternative."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Drill into an alternative as the new original and print the re-ranked comparison."""
    from medcompare.engine import ComparisonEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config, "navigate")

    engine = ComparisonEngine(config)
    _unwrap_or_exit(engine.load_lookup(_read_json_or_exit(lookup_file)))
    if selected:
        _unwrap_or_exit(engine.select(selected))
    view = _unwrap_or_exit(engine.navigate(target))
    _echo_view(view, config, show_all)


@app.command("search")
def search(
    name: str = typer.Argument(..., help="Medication name to look up."),
    show_all: bool = typer.Option(False, "--all", help="Show every remaining alternative."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Fetch a medication from the search service and print its comparison."""
    from medcompare.api.client import MedCompareClient
    from medcompare.engine import ComparisonEngine
    from medcompare.errors import MalformedResponseError

    config = _load_config_or_exit(config_path)
    _configure_logging(config, "search")

    with MedCompareClient(config.api) as client:
        try:
            lookup = client.fetch_comparison(name)
        except MalformedResponseError as exc:
            typer.echo(f"[ERROR] {exc.kind.value}: {exc.message}", err=True)
            raise typer.Exit(code=1)
        engine = ComparisonEngine(config, transport=client)
        view = _unwrap_or_exit(engine.load_lookup(lookup.model_dump(by_alias=True)))
    _echo_view(view, config, show_all)


@app.command("vote")
def vote(
    medicine_id: str = typer.Argument(..., help="Medication id to vote on."),
    direction: str = typer.Option("upvote", "--direction", "-d", help="upvote or downvote."),
    user: Optional[str] = typer.Option(None, "--user", help="Authenticated doctor's user id."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Submit a doctor vote and print the updated aggregate."""
    from medcompare.api.client import MedCompareClient
    from medcompare.errors import EngineError
    from medcompare.models.medication import Medication
    from medcompare.models.vote import Actor
    from medcompare.scoring.classifier import format_count, recommendation_label
    from medcompare.taxonomy.vote_taxonomy import VoteDirection
    from medcompare.voting.updater import AuthenticationRequired, submit_vote

    config = _load_config_or_exit(config_path)
    _configure_logging(config, "vote")

    try:
        vote_direction = VoteDirection(direction.lower())
    except ValueError:
        typer.echo("[ERROR] --direction must be 'upvote' or 'downvote'.", err=True)
        raise typer.Exit(code=1)

    # Only the id travels to the vote service; the name labels log lines.
    medication = Medication(id=medicine_id, name=f"medicine {medicine_id}", price="0")
    actor = Actor(user_id=user) if user else None

    with MedCompareClient(config.api) as client:
        try:
            outcome = submit_vote(medication, vote_direction, actor, client)
        except EngineError as exc:
            typer.echo(f"[ERROR] {exc.kind.value}: {exc.message}", err=True)
            raise typer.Exit(code=1)

    if isinstance(outcome, AuthenticationRequired):
        typer.echo("[AUTH] Please log in as a verified healthcare professional (--user).", err=True)
        raise typer.Exit(code=2)

    delta = outcome.delta
    pct = delta.doctor_voting_factor * 100
    typer.echo(f"  Recommendation: {recommendation_label(pct, config.thresholds)} ({pct:.1f}%)")
    typer.echo(
        f"  Votes:          {format_count(delta.total_upvotes)} up / "
        f"{format_count(delta.total_doctor_votes - delta.total_upvotes)} down"
    )
    typer.echo("[OK] Vote recorded.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
