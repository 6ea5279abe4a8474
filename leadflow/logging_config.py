"""One JSON object per line on stdout.

Each line carries `ts`, `level`, `logger` and `message`. Records about a
single lead also carry `tenant_id` and `lead_id` at the top level so a
conversation can be followed with a plain grep; any other structured data
passed as `extra={"context": {...}}` lands under `context`.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

LEAD_KEYS = ("tenant_id", "lead_id")

# Client libraries log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        for key in LEAD_KEYS:
            if key in context:
                line[key] = context.pop(key)
        if context:
            line["context"] = context

        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)

        return json.dumps(line, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Route the root logger to stdout as JSON.

    `level` is `settings.log_level`; unknown names fall back to INFO.
    Handlers installed earlier (uvicorn's, a previous call) are replaced.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"leadflow.{name}")


class LeadLoggerAdapter(logging.LoggerAdapter):
    """Stamps tenant and lead ids on every record of one inbound turn.

    A `context={...}` keyword on a logging call is merged over the ids.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = {**self.extra, **(kwargs.pop("context", None) or {})}
        kwargs["extra"] = {**(kwargs.get("extra") or {}), "context": context}
        return msg, kwargs


def lead_logger(name: str, tenant_id: Any, lead_id: Any) -> LeadLoggerAdapter:
    return LeadLoggerAdapter(get_logger(name), {"tenant_id": str(tenant_id), "lead_id": str(lead_id)})
