"""Structured logging helpers."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging once for the API, worker and CLI entry points."""
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def build_log_context(
    *,
    actor: str | None = None,
    case_id: int | None = None,
    reference: str | None = None,
    report_id: int | None = None,
    notification_id: int | None = None,
    recipient: str | None = None,
    job_id: int | None = None,
) -> dict[str, Any]:
    """Return a log context dict for ``extra=``, skipping empty fields."""
    context: dict[str, Any] = {}
    if actor:
        context["actor"] = actor
    if case_id is not None:
        context["case_id"] = case_id
    if reference:
        context["reference"] = reference
    if report_id is not None:
        context["report_id"] = report_id
    if notification_id is not None:
        context["notification_id"] = notification_id
    if recipient:
        context["recipient"] = recipient
    if job_id is not None:
        context["job_id"] = job_id
    return context
