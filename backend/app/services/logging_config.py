"""
Structured logging for the packaging materials advisor.

Every record emitted while a request is in flight carries that request's
X-Request-ID, so catalog, research and synthesis log lines can be joined
to the access line written by RequestTimingMiddleware.
"""
import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

# Set by RequestTimingMiddleware for the duration of one request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Extra attributes copied into the JSON entry when present on the record
_EXTRA_FIELDS = (
    "request_id",
    "duration_ms",
    "http_method",
    "http_path",
    "http_status",
    "function",
)


class RequestIdFilter(logging.Filter):
    """Stamps the in-flight request id on records that do not carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            request_id = request_id_var.get()
            if request_id is not None:
                record.request_id = request_id
        return True


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line. A ``function`` extra (set by the timing
    decorators) overrides the caller's funcName.
    """
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        # Japanese requirement names stay readable
        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = True):
    """Install a single stdout handler on the root logger (LOG_LEVEL / LOG_FORMAT)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # litellm and its HTTP stack log every call at INFO
    for name in ["uvicorn.access", "httpcore", "httpx", "LiteLLM", "litellm"]:
        logging.getLogger(name).setLevel(logging.WARNING)
