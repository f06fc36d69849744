"""Structured logging for the workflow engine.

Standard library logging with a JSON formatter. Workflow errors attached to a
record (via ``logger.exception``) are flattened into the payload so failed runs
can be located by event type or field without parsing the traceback.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from agent_workflow_engine.errors import WorkflowError

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}

_NOISY_LOGGERS = ("openai", "httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            exc = record.exc_info[1]
            if isinstance(exc, WorkflowError):
                payload["workflow_error"] = exc.to_json()
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, *, debug: bool = False) -> None:
    """Configure root logging with JSON output on stderr.

    stdout is left to command output (workflow results, generated DSL).
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    if debug:
        logging.getLogger("agent_workflow_engine").setLevel(logging.DEBUG)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
