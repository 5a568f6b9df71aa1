"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``, or the file named by ``MEDCOMPARE_CONFIG``
  2. ``local.toml`` beside that file (gitignored local overrides)
  3. ``.env`` at the project root (gitignored, never overrides the shell)
  4. ``MEDCOMPARE_*`` environment variables, see ``_ENV_OVERRIDES``

Entry point: ``load_config(config_path=None) -> AppConfig``

Scoring policy (credential weights) and classification thresholds live here
as injected config models, so they can vary per test and per deployment
without touching the algorithms that consume them.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from medcompare.taxonomy.vote_taxonomy import BestSelection, Credential, DedupeKey

DEFAULT_CREDENTIAL_WEIGHTS: dict[Credential, float] = {
    Credential.SPECIALIST: 1.5,
    Credential.GENERAL:    1.0,
    Credential.RESIDENT:   0.7,
}

# ── Sub-config models ─────────────────────────────────────────────────────────


class TrustConfig(BaseModel):
    """Credential weighting policy for the trust score.

    ``credential_weights`` is overlaid on ``DEFAULT_CREDENTIAL_WEIGHTS``:
    tiers the caller omits keep their default weight.
    """

    model_config = ConfigDict(frozen=True)

    credential_weights: dict[Credential, float] = dict(DEFAULT_CREDENTIAL_WEIGHTS)
    clamp_to_display_range: bool = False   # True → clamp score into [0, 5]

    @field_validator("credential_weights", mode="before")
    @classmethod
    def merge_default_weights(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        return {**DEFAULT_CREDENTIAL_WEIGHTS, **{Credential(k): w for k, w in v.items()}}

    @field_validator("credential_weights")
    @classmethod
    def validate_weights(cls, v: dict[Credential, float]) -> dict[Credential, float]:
        negative = {str(k): w for k, w in v.items() if w < 0}
        if negative:
            raise ValueError(f"credential weights must be non-negative, got {negative}.")
        return v


class BandThresholds(BaseModel):
    """Recommendation percentage thresholds for label and band."""

    model_config = ConfigDict(frozen=True)

    high: float = 75.0
    mid: float = 50.0
    low: float = 25.0

    @model_validator(mode="after")
    def validate_ordering(self) -> "BandThresholds":
        if not self.high > self.mid > self.low >= 0.0:
            raise ValueError(
                f"thresholds must satisfy high > mid > low >= 0, "
                f"got high={self.high}, mid={self.mid}, low={self.low}."
            )
        return self


class CurationConfig(BaseModel):
    """Alternative-set curation contract."""

    model_config = ConfigDict(frozen=True)

    best_selection: BestSelection = BestSelection.CHEAPEST
    dedupe_by: DedupeKey = DedupeKey.ID
    currency_symbol: str = "₹"
    remaining_page_size: int = 6

    @field_validator("remaining_page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"remaining_page_size must be >= 1, got {v}.")
        return v


class ApiConfig(BaseModel):
    """Remote search / vote service settings."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:8000"
    timeout_seconds: float = 10.0

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    Constructed by ``load_config()``; ``AppConfig()`` alone yields the
    built-in defaults, which is what tests use.
    """

    model_config = ConfigDict(frozen=True)

    trust: TrustConfig = TrustConfig()
    thresholds: BandThresholds = BandThresholds()
    curation: CurationConfig = CurationConfig()
    api: ApiConfig = ApiConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
_DOTENV_PATH = _CONFIG_DIR.parent / ".env"


def _as_bool(text: str) -> bool:
    return text.strip().lower() in ("1", "true", "yes", "on")


# Env var -> (path into the raw config dict, parser for the string value).
_ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "MEDCOMPARE_API_URL":     (("api", "base_url"), str),
    "MEDCOMPARE_TIMEOUT":     (("api", "timeout_seconds"), float),
    "MEDCOMPARE_LOG_LEVEL":   (("logging", "level"), str),
    "MEDCOMPARE_LOG_FILE":    (("logging", "log_file"), str),
    "MEDCOMPARE_LOG_JSON":    (("logging", "json_format"), _as_bool),
    "MEDCOMPARE_CLAMP_TRUST": (("trust", "clamp_to_display_range"), _as_bool),
    "MEDCOMPARE_DEBUG":       (("debug",), _as_bool),
}


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. When omitted,
            ``MEDCOMPARE_CONFIG`` names the file; failing that the committed
            ``config/default.toml`` is used, or the built-in defaults when it
            is absent.

    Returns:
        Fully validated ``AppConfig`` instance. A partial
        ``[trust.credential_weights]`` table keeps the default weight of
        every tier it does not name.

    Raises:
        FileNotFoundError: If an explicit or env-named config file does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    load_dotenv(dotenv_path=_DOTENV_PATH, override=False)

    raw: dict[str, Any] = {}
    for layer in _read_toml_layers(_resolve_config_path(config_path)):
        raw = _merge_layer(raw, layer)
    for var, (path, parse) in _ENV_OVERRIDES.items():
        value = os.environ.get(var)
        if value:
            _set_path(raw, path, parse(value))

    return AppConfig(
        trust=TrustConfig(**raw.get("trust", {})),
        thresholds=BandThresholds(**raw.get("thresholds", {})),
        curation=CurationConfig(**raw.get("curation", {})),
        api=ApiConfig(**raw.get("api", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", False),
    )


def _resolve_config_path(config_path: Optional[Path]) -> Optional[Path]:
    if config_path is None and os.environ.get("MEDCOMPARE_CONFIG"):
        config_path = Path(os.environ["MEDCOMPARE_CONFIG"])
    if config_path is None:
        default_path = _CONFIG_DIR / "default.toml"
        return default_path if default_path.exists() else None
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return config_path


def _read_toml_layers(config_path: Optional[Path]) -> list[dict[str, Any]]:
    """The base file followed by its sibling ``local.toml``, when present."""
    if config_path is None:
        return []
    paths = [config_path, config_path.parent / "local.toml"]
    layers = []
    for path in paths:
        if path.exists():
            with open(path, "rb") as f:
                layers.append(tomllib.load(f))
    return layers


def _merge_layer(base: dict[str, Any], layer: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``layer`` on ``base`` table by table; scalars are replaced."""
    merged = dict(base)
    for key, val in layer.items():
        current = merged.get(key)
        merged[key] = (
            _merge_layer(current, val)
            if isinstance(current, dict) and isinstance(val, dict)
            else val
        )
    return merged


def _set_path(raw: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    *tables, leaf = path
    for table in tables:
        raw = raw.setdefault(table, {})
    raw[leaf] = value
