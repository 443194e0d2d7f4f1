"""Actionable error hierarchy for jobstream.

Errors are classified by **recovery path**, not by origin.
Each error type carries structured guidance for three audiences:
  - The calling code (typed ``error_type`` for routing)
  - The human operator (``suggestion`` + ``troubleshooting`` steps)
  - An AI agent (``ai_guidance`` with concrete next actions)

Rendering-surface failures are raised as :class:`SurfaceError`, which is
lower level: the controller decides whether a given failure only costs one
listing or the whole run, and wraps it with :meth:`ActionableError.render`
when it aborts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class ErrorType(StrEnum):
    """Recovery-path categories: what to *do*, not where it came from."""

    CONFIG = "config"
    CONNECTION = "connection"
    STORE = "store"
    PARSE = "parse"
    RENDER = "render"
    VALIDATION = "validation"


# ---------------------------------------------------------------------------
# Guidance dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AIGuidance:
    """Machine-readable guidance for an AI agent consuming this error."""

    action_required: str
    command: str | None = None
    checks: list[str] | None = None
    steps: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"action_required": self.action_required}
        if self.command is not None:
            result["command"] = self.command
        if self.checks is not None:
            result["checks"] = self.checks
        if self.steps is not None:
            result["steps"] = self.steps
        return result


@dataclass(frozen=True)
class Troubleshooting:
    """Sequential, human-readable recovery steps for the operator."""

    steps: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": self.steps}


# ---------------------------------------------------------------------------
# Base actionable error
# ---------------------------------------------------------------------------


@dataclass
class ActionableError(Exception):
    """Structured error with embedded recovery guidance.

    Use the factory classmethods rather than constructing directly.
    """

    error: str
    error_type: ErrorType
    service: str

    success: bool = field(default=False, init=False)
    suggestion: str | None = None
    ai_guidance: AIGuidance | None = None
    troubleshooting: Troubleshooting | None = None
    context: dict[str, Any] | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __post_init__(self) -> None:
        super().__init__(self.error)

    # -- serialisation -------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Compact JSON-ready dict with ``None`` values excluded."""
        result: dict[str, Any] = {
            "success": self.success,
            "error": self.error,
            "error_type": self.error_type.value,
            "service": self.service,
            "timestamp": self.timestamp,
        }
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.ai_guidance is not None:
            result["ai_guidance"] = self.ai_guidance.to_dict()
        if self.troubleshooting is not None:
            result["troubleshooting"] = self.troubleshooting.to_dict()
        if self.context is not None:
            result["context"] = self.context
        return result

    # -- factory methods -----------------------------------------------------

    @classmethod
    def config(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Missing or invalid configuration (settings.toml or environment)."""
        return cls(
            error=f"Configuration error: {field_name}: {reason}",
            error_type=ErrorType.CONFIG,
            service="settings",
            suggestion=suggestion or f"Set '{field_name}' in config/settings.toml or the environment",
            ai_guidance=AIGuidance(
                action_required=f"Provide a valid value for '{field_name}'",
                checks=[
                    "Verify config/settings.toml exists or the environment is exported",
                    f"Verify '{field_name}' is present and valid",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Open config/settings.toml (or check the exported environment)",
                    f"2. Locate the '{field_name}' setting",
                    f"3. Fix the issue: {reason}",
                    "4. Save and re-run",
                ]
            ),
        )

    @classmethod
    def connection(
        cls,
        service: str,
        url: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Service unreachable (Redis, job site)."""
        return cls(
            error=f"Cannot connect to {service} at {url}: {raw_error}",
            error_type=ErrorType.CONNECTION,
            service=service,
            suggestion=suggestion or f"Verify {service} is running at {url}",
            ai_guidance=AIGuidance(
                action_required=f"Verify {service} is reachable",
                command="redis-cli ping" if service == "Redis" else None,
                checks=[
                    f"Is {service} running?",
                    f"Is the URL {url} correct?",
                    "Is a VPN or firewall blocking the connection?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Verify {service} is running",
                    f"2. Check the URL {url} in config/settings.toml or REDIS_URL",
                    "3. Re-run the command; publishing is idempotent per listing",
                ]
            ),
        )

    @classmethod
    def store(
        cls,
        operation: str,
        key: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """A store command was rejected (wrong key type, OOM, READONLY replica)."""
        return cls(
            error=f"Store operation '{operation}' on '{key}' failed: {raw_error}",
            error_type=ErrorType.STORE,
            service="Redis",
            suggestion=suggestion or f"Inspect the Redis key '{key}' and server state",
            ai_guidance=AIGuidance(
                action_required=f"Diagnose why '{operation}' was rejected",
                command=f"redis-cli type {key}",
                checks=[
                    f"Does '{key}' hold the expected data type?",
                    "Is the server out of memory or a read-only replica?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Run: redis-cli type {key}",
                    "2. Check the Redis server log for rejected writes",
                    "3. Re-run; listings that failed were not marked as published",
                ]
            ),
        )

    @classmethod
    def parse(
        cls,
        source: str,
        selector: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Input structure changed: selector no longer matches, or file is malformed."""
        return cls(
            error=f"Parse failure on {source} (selector '{selector}'): {raw_error}",
            error_type=ErrorType.PARSE,
            service=source,
            suggestion=suggestion or f"The {source} structure may have changed; update the selector",
            ai_guidance=AIGuidance(
                action_required=f"Inspect {source} and update selector '{selector}'",
                checks=[
                    f"Open {source} in a real browser or editor",
                    f"Verify '{selector}' still matches",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Open {source}",
                    "2. Inspect the structure (DevTools for pages)",
                    f"3. Verify '{selector}' still exists",
                    "4. Update the scraper selectors if needed",
                ]
            ),
        )

    @classmethod
    def render(
        cls,
        stage: str,
        raw_error: str,
        *,
        page_number: int | None = None,
        listing_index: int | None = None,
        transient: bool = False,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Rendering surface failed at page level; the traversal was abandoned.

        *transient* marks a bounded wait that expired, as opposed to an
        element that was missing or detached.
        """
        if suggestion is None:
            suggestion = (
                "The page did not render in time; re-run, or raise scraper.wait_timeout_ms"
                if transient
                else "The page layout may have changed; re-run headed and check the selectors"
            )
        context: dict[str, Any] = {"stage": stage, "transient": transient}
        if page_number is not None:
            context["page_number"] = page_number
        if listing_index is not None:
            context["listing_index"] = listing_index
        return cls(
            error=f"Rendering surface failed during {stage}: {raw_error}",
            error_type=ErrorType.RENDER,
            service="browser",
            suggestion=suggestion,
            ai_guidance=AIGuidance(
                action_required="Re-run the scrape, headed if the failure repeats",
                command="python -m jobstream scrape --headed",
                checks=[
                    "Is the job site reachable from this host?",
                    "Did the page layout change (selectors no longer match)?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Re-run: python -m jobstream scrape",
                    "2. If it fails at the same stage, re-run with --headed and watch the browser",
                    "3. Update the selectors in jobstream/scraper/controller.py if the layout changed",
                ]
            ),
            context=context,
        )

    @classmethod
    def validation(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Input validation failure (settings values, incomplete listing record)."""
        return cls(
            error=f"Validation error: {field_name}: {reason}",
            error_type=ErrorType.VALIDATION,
            service="validation",
            suggestion=suggestion or f"Fix '{field_name}': {reason}",
            ai_guidance=AIGuidance(
                action_required=f"Correct the value for '{field_name}'",
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Check the value of '{field_name}'",
                    f"2. Issue: {reason}",
                    "3. Correct and retry",
                ]
            ),
        )


# ---------------------------------------------------------------------------
# Rendering surface failure
# ---------------------------------------------------------------------------


class SurfaceError(Exception):
    """A rendering-surface call failed.

    ``transient`` is ``True`` for bounded-wait timeouts.  Whether a failure
    is fatal depends on where it happened, so the caller decides.
    """

    def __init__(self, operation: str, selector: str, raw_error: str, *, transient: bool = False) -> None:
        self.operation = operation
        self.selector = selector
        self.raw_error = raw_error
        self.transient = transient
        super().__init__(f"{operation}({selector!r}) failed: {raw_error}")
