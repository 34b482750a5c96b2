"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    directory = _find_config_dir(config_dir)
    default_path = directory / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = directory / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


@dataclass(frozen=True)
class VenueConfig:
    """Resolved per-venue connection settings (credentials already read from env)."""

    name: str
    enabled: bool = True
    base_url: str = ""
    api_key: str | None = None


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        gateway: dict[str, Any] | None = None,
        cache: dict[str, Any] | None = None,
        matching: dict[str, Any] | None = None,
        limits: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        venues: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.gateway = gateway or {}
        self.cache = cache or {}
        self.matching = matching or {}
        self.limits = limits or {}
        self.api = api or {}
        self.venues = venues or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            gateway=raw.get("gateway"),
            cache=raw.get("cache"),
            matching=raw.get("matching"),
            limits=raw.get("limits"),
            api=raw.get("api"),
            venues=raw.get("venues"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def timeout_sec(self) -> float:
        return float(self.gateway.get("timeout_sec", 7.0))

    @property
    def max_retries(self) -> int:
        return int(self.gateway.get("max_retries", 2))

    @property
    def backoff_base_sec(self) -> float:
        return float(self.gateway.get("backoff_base_sec", 0.5))

    @property
    def max_concurrent(self) -> int:
        return int(self.gateway.get("max_concurrent", 10))

    @property
    def cache_ttl_sec(self) -> float:
        return float(self.cache.get("ttl_sec", 10.0))

    @property
    def stale_window_sec(self) -> float:
        return float(self.cache.get("stale_window_sec", 60.0))

    @property
    def min_similarity(self) -> float:
        return float(self.matching.get("min_similarity", 0.7))

    @property
    def similarity_weights(self) -> dict[str, float]:
        return {
            "keyword": float(self.matching.get("keyword_weight", 0.7)),
            "keyword_with_expiry": float(self.matching.get("keyword_weight_with_expiry", 0.6)),
            "title": float(self.matching.get("title_weight", 0.3)),
            "expiration": float(self.matching.get("expiration_weight", 0.1)),
        }

    @property
    def default_limit(self) -> int:
        return int(self.limits.get("default_limit", 20))

    @property
    def min_limit(self) -> int:
        return int(self.limits.get("min_limit", 5))

    @property
    def max_limit(self) -> int:
        return int(self.limits.get("max_limit", 40))

    @property
    def markets_default_limit(self) -> int:
        return int(self.limits.get("markets_default_limit", 40))

    @property
    def rate_limit_requests(self) -> int:
        return int(self.api.get("rate_limit_requests", 30))

    @property
    def rate_limit_window_sec(self) -> float:
        return float(self.api.get("rate_limit_window_sec", 15.0))

    @property
    def enabled_venues(self) -> list[str]:
        return [name for name, cfg in self.venues.items() if (cfg or {}).get("enabled", True)]

    def venue(self, name: str) -> VenueConfig:
        """Resolve one venue's config. Credentials and URL overrides are read from the env vars it names."""
        cfg = self.venues.get(name) or {}
        base_url = str(cfg.get("base_url") or "")
        if cfg.get("base_url_env"):
            base_url = os.environ.get(cfg["base_url_env"], base_url)
        api_key = os.environ.get(cfg["api_key_env"]) if cfg.get("api_key_env") else None
        return VenueConfig(
            name=name,
            enabled=bool(cfg.get("enabled", True)),
            base_url=base_url.rstrip("/"),
            api_key=api_key or None,
        )

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
