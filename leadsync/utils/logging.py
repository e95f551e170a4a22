"""
Structured JSON logging for the webhook service.

One JSON object per line: timestamp, level, correlation_id, module, message,
plus the lead-pipeline identifiers (automation_id, lead_id, page_id, form_id)
when known. The correlation ID is set per request by middleware; lead
identifiers are bound for the duration of one lead via `lead_log_context`.
"""
import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterator, Optional

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
lead_ctx: ContextVar[dict] = ContextVar("lead_context", default={})

# Promoted to top-level keys; `extra=` values win over the bound lead context
EXTRA_FIELDS = ("automation_id", "lead_id", "page_id", "form_id", "provider", "error_code")


def get_correlation_id() -> Optional[str]:
    return correlation_id_ctx.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_ctx.set(cid)


def generate_correlation_id() -> str:
    """UUID4 hex, 32 chars."""
    return uuid.uuid4().hex


@contextmanager
def lead_log_context(**fields: Optional[str]) -> Iterator[None]:
    """Attach lead identifiers to every log line emitted inside the block."""
    bound = {**lead_ctx.get(), **{k: v for k, v in fields.items() if v}}
    token = lead_ctx.set(bound)
    try:
        yield
    finally:
        lead_ctx.reset(token)


class StructuredJsonFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "correlation_id": get_correlation_id(),
            "module": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        bound = lead_ctx.get()
        for key in EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is None:
                val = bound.get(key)
            if val is not None:
                log_entry[key] = val

        return json.dumps(log_entry, default=str)


def configure_structured_logging(log_level: str = "INFO") -> None:
    """
    Install a single stdout handler with JSON formatting on the root logger.
    Called once by the app factory, before any request is served.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(StructuredJsonFormatter())
    root_logger.addHandler(stream_handler)

    # Provider request lines are logged by the clients themselves
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
