"""Configuration loading and validation.

Settings come from an optional ``settings.toml`` overlaid with environment
variables, and are validated at startup, before a browser is launched or
Redis is touched.  The resulting :class:`Settings` value is built once and
passed explicitly to the runner, controller and gateway; nothing below the
CLI reads the environment.

Recognized environment variables:

==================  ==============================
``DEBUG``           ``debug`` (``"true"``/``"1"``; empty is ignored)
``MS_JOBS_PAGE``    ``scraper.target_url``
``LOCATION``        ``scraper.location_filter``
``CATEGORY``        ``scraper.category_filter``
``REDIS_URL``       ``stream.redis_url``
``STREAM_NAME``     ``stream.stream_name``
``GROUP_NAME``      ``stream.group_name``
``CONSUMER_NAME``   ``stream.consumer_name``
==================  ==============================
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jobstream.errors import ActionableError

# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ScraperConfig:
    """Job-site traversal settings from ``[scraper]``."""

    target_url: str = ""
    location_filter: str = ""
    category_filter: str = "Students and graduates"
    company: str = "Microsoft"
    headless: bool = True
    stealth: bool = False
    wait_timeout_ms: int = 30_000
    max_pages: int = 0  # 0 = follow "next" until it is disabled
    rate_limit_seconds: tuple[float, float] = (0.5, 1.5)


@dataclass
class StreamConfig:
    """Redis stream settings from ``[stream]``."""

    redis_url: str = "redis://localhost:6379"
    stream_name: str = ""
    group_name: str = ""
    consumer_name: str = ""
    dedup_set: str = ""

    @property
    def dedup_key(self) -> str:
        """Membership set key, defaulting to ``<stream_name>:dedup``."""
        return self.dedup_set or f"{self.stream_name}:dedup"


@dataclass
class OutputConfig:
    """Output settings from ``[output]``."""

    raw_content_dir: str = "./data/raw_content"
    log_dir: str = "./data/logs"


@dataclass
class Settings:
    """Top-level validated configuration."""

    scraper: ScraperConfig
    stream: StreamConfig
    output: OutputConfig = field(default_factory=OutputConfig)
    debug: bool = False


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")

# env var -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "MS_JOBS_PAGE": ("scraper", "target_url"),
    "LOCATION": ("scraper", "location_filter"),
    "CATEGORY": ("scraper", "category_filter"),
    "REDIS_URL": ("stream", "redis_url"),
    "STREAM_NAME": ("stream", "stream_name"),
    "GROUP_NAME": ("stream", "group_name"),
    "CONSUMER_NAME": ("stream", "consumer_name"),
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


def load_settings(
    path: str | Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from TOML (optional) and the environment, then validate.

    When *path* is ``None`` the default ``config/settings.toml`` is read if
    it exists; an explicitly given path must exist.  *env* defaults to
    ``os.environ``; environment values win over file values.

    Raises :class:`~jobstream.errors.ActionableError`:
      - CONFIG if an explicit file is missing or a required value is absent
      - PARSE if the TOML is malformed
      - VALIDATION if a value is out of range
    """
    data: dict[str, Any] = {}
    if path is not None:
        filepath = Path(path)
        if not filepath.exists():
            raise ActionableError.config(
                field_name="settings_path",
                reason=f"Settings file not found: {filepath}",
                suggestion=f"Create {filepath} or omit --config to use environment variables",
            )
        data = _read_toml(filepath)
    elif DEFAULT_SETTINGS_PATH.exists():
        data = _read_toml(DEFAULT_SETTINGS_PATH)

    _apply_env(data, os.environ if env is None else env)
    return _validate(data)


def _read_toml(filepath: Path) -> dict[str, Any]:
    raw_text = filepath.read_text(encoding="utf-8")
    try:
        return tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as exc:
        raise ActionableError.parse(
            source=str(filepath),
            selector="TOML syntax",
            raw_error=str(exc),
            suggestion=f"Fix TOML syntax in {filepath}",
        ) from None


def _apply_env(data: dict[str, Any], env: Mapping[str, str]) -> None:
    """Overlay recognized environment variables onto raw settings data."""
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            section_data = data.setdefault(section, {})
            if isinstance(section_data, dict):
                section_data[key] = value
    if env.get("DEBUG", "").strip():
        data["debug"] = env["DEBUG"].strip().lower() in _TRUTHY


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ActionableError.config(
            field_name=name,
            reason=f"[{name}] must be a table, not {type(section).__name__}",
            suggestion=f"Define [{name}] as a TOML table",
        )
    return section


def _validate(data: dict[str, Any]) -> Settings:
    """Validate raw settings data and return a Settings instance."""

    # -- scraper section -----------------------------------------------------
    scraper_data = _section(data, "scraper")
    target_url = _require(scraper_data, "target_url", "scraper", env_var="MS_JOBS_PAGE")
    if not target_url.startswith(("http://", "https://")):
        raise ActionableError.validation(
            field_name="scraper.target_url",
            reason=f"'{target_url}' is missing a scheme (http:// or https://)",
            suggestion="Set MS_JOBS_PAGE to the full careers search URL",
        )

    rate_limit = scraper_data.get("rate_limit_seconds", [0.5, 1.5])
    if not isinstance(rate_limit, (list, tuple)) or len(rate_limit) != 2:
        raise ActionableError.validation(
            field_name="scraper.rate_limit_seconds",
            reason="must be a two-element list [min, max]",
        )
    lo, hi = float(rate_limit[0]), float(rate_limit[1])
    if lo < 0 or hi < lo:
        raise ActionableError.validation(
            field_name="scraper.rate_limit_seconds",
            reason=f"[{lo}, {hi}] must satisfy 0 <= min <= max",
        )

    scraper = ScraperConfig(
        target_url=target_url,
        location_filter=_require(scraper_data, "location_filter", "scraper", env_var="LOCATION"),
        category_filter=str(scraper_data.get("category_filter", "Students and graduates")),
        company=str(scraper_data.get("company", "Microsoft")),
        headless=bool(scraper_data.get("headless", True)),
        stealth=bool(scraper_data.get("stealth", False)),
        wait_timeout_ms=int(scraper_data.get("wait_timeout_ms", 30_000)),
        max_pages=int(scraper_data.get("max_pages", 0)),
        rate_limit_seconds=(lo, hi),
    )

    for name in ("wait_timeout_ms", "max_pages"):
        value = getattr(scraper, name)
        if value < 0:
            raise ActionableError.validation(
                field_name=f"scraper.{name}",
                reason=f"is {value}; must be >= 0",
            )

    # -- stream section ------------------------------------------------------
    stream_data = _section(data, "stream")
    redis_url = str(stream_data.get("redis_url", "redis://localhost:6379"))
    if not redis_url.startswith(("redis://", "rediss://", "unix://")):
        raise ActionableError.validation(
            field_name="stream.redis_url",
            reason=f"'{redis_url}' is not a redis://, rediss:// or unix:// URL",
            suggestion="Set REDIS_URL, e.g. redis://localhost:6379",
        )

    stream = StreamConfig(
        redis_url=redis_url,
        stream_name=_require(stream_data, "stream_name", "stream", env_var="STREAM_NAME"),
        group_name=_require(stream_data, "group_name", "stream", env_var="GROUP_NAME"),
        consumer_name=str(stream_data.get("consumer_name", "")),
        dedup_set=str(stream_data.get("dedup_set", "")),
    )

    # -- output section ------------------------------------------------------
    output_data = _section(data, "output")
    output = OutputConfig(
        raw_content_dir=str(output_data.get("raw_content_dir", "./data/raw_content")),
        log_dir=str(output_data.get("log_dir", "./data/logs")),
    )

    return Settings(
        scraper=scraper,
        stream=stream,
        output=output,
        debug=bool(data.get("debug", False)),
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _require(section: dict[str, Any], field_name: str, section_name: str, *, env_var: str) -> str:
    """Return a required non-empty string field, or raise CONFIG error."""
    value = section.get(field_name)
    if value is None or not str(value).strip():
        raise ActionableError.config(
            field_name=f"{section_name}.{field_name}",
            reason=f"Required value '{field_name}' is missing",
            suggestion=f"Export {env_var} or add '{field_name}' to the [{section_name}] section",
        )
    return str(value).strip()
