"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the API process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def build_log_context(
    *,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    variant: str | None = None,
    submission_id: int | str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    if variant:
        context["variant"] = variant
    if submission_id is not None and submission_id != "":
        context["submission_id"] = submission_id
    return context
