"""Root logger setup: console or JSON output, correlation ids, compact tracebacks."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, every inbound request gets a correlation id (see middleware.py). Provider
# tasks spawned by the aggregation engine COPY the context on create_task, so a flaky
# mirror's warning still carries the id of the search that triggered it.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# HTTP client internals log per connection / per chunk, the relay alone would flood stdout
_QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "asyncio", "uvicorn.access")


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context, generating a uuid4 if none is given."""
    value = correlation_id or str(uuid.uuid4())
    correlation_id_var.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the context's correlation id (full and 8-char short form)."""

    def filter(self, record: logging.LogRecord) -> bool:
        cid = get_correlation_id()
        record.correlation_id = cid
        record.cid = cid[:8] if cid else "--------"
        return True


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines, exception chains printed root cause first.

    Example output:
    12:00:01 │ WARNING │ 3f2a9c1d │ unistream.application.services.search_service:88 │ ...
    ╰─► httpx.ConnectError: All connection attempts failed
        File "youtube_mirror_client.py", line 61, in piped_search
          response = await client.get(url, params=params, timeout=timeout)
    """

    def formatException(self, ei: Any) -> str:  # noqa: N802
        exc_value = ei[1]
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__

        lines: list[str] = []
        for exc in reversed(chain):
            lines.append(f"╰─► {type(exc).__module__}.{type(exc).__name__}: {exc}")
            for frame in traceback.extract_tb(exc.__traceback__):
                # only our own frames, library internals are noise here
                if "unistream" not in frame.filename or "/site-packages/" in frame.filename:
                    continue
                lines.append(f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}')
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class JsonLogFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """One JSON object per line, for log shippers.

    Provider/song context passed via `extra=` (source, provider, song_id, ...) ends up
    as top-level keys. The correlation id is dropped when there is none (startup,
    background work) instead of being logged as "".
    """

    def __init__(self, app_name: str = "unistream") -> None:
        super().__init__(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
            static_fields={"app": app_name},
            datefmt="%Y-%m-%dT%H:%M:%S",
        )

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.pop("cid", None)
        if not log_record.get("correlation_id"):
            log_record.pop("correlation_id", None)


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "unistream",
) -> None:
    """Replace the root handlers with one stdout handler.

    Called once by the lifespan. Calling it again (tests) swaps the handler
    instead of stacking a second one.

    Args:
        log_level: Level name, unknown names fall back to INFO
        json_format: JSON lines instead of the console format
        app_name: Static "app" field of JSON records
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    if json_format:
        handler.setFormatter(JsonLogFormatter(app_name))
    else:
        handler.setFormatter(
            ConsoleFormatter(
                fmt="%(asctime)s │ %(levelname)-7s │ %(cid)s │ %(name)s:%(lineno)d │ %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s json=%s", logging.getLevelName(level), json_format
    )
