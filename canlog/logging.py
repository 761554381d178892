from __future__ import annotations

import contextlib
import contextvars
import datetime as _dt
import json
import logging
import os
import sys
import traceback
from typing import Any, Iterator

# Custom TRACE level (more verbose than DEBUG).
TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")


def _logger_trace(self: logging.Logger, msg: str, *args: Any, **kwargs: Any) -> None:
    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, msg, args, **kwargs)


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _logger_trace  # type: ignore[attr-defined]


# Name of the log/catalog file currently being ingested, stamped on every record.
_source_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("canlog_source", default=None)


@contextlib.contextmanager
def source_context(source: str) -> Iterator[None]:
    token = _source_var.set(str(source))
    try:
        yield
    finally:
        _source_var.reset(token)


def get_source() -> str | None:
    return _source_var.get()


class _SourceFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (filter)
        if not hasattr(record, "source"):
            record.source = get_source()  # type: ignore[attr-defined]
        return True


# Attributes every LogRecord has; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS and not k.startswith("_")}


def _iso_ts(record: logging.LogRecord) -> str:
    return _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc).astimezone().isoformat(timespec="milliseconds")


class PrettyFormatter(logging.Formatter):
    def __init__(self, *, use_color: bool) -> None:
        super().__init__()
        self._use_color = bool(use_color)

    def format(self, record: logging.LogRecord) -> str:
        parts = [_iso_ts(record), record.levelname, record.name, record.getMessage()]

        extras = _record_extras(record)
        source = extras.pop("source", None)
        if source:
            parts.append(f"source={source}")
        parts.extend(f"{k}={extras[k]}" for k in sorted(extras))

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        if self._use_color:
            line = _colorize(record.levelno, line)
        return line


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _iso_ts(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, separators=(",", ":"), sort_keys=True, default=str)


_LEVEL_COLORS = (
    (logging.ERROR, "31"),
    (logging.WARNING, "33"),
    (logging.INFO, "32"),
    (logging.DEBUG, "36"),
)


def _colorize(levelno: int, text: str) -> str:
    color = next((c for floor, c in _LEVEL_COLORS if levelno >= floor), "90")
    return f"\x1b[{color}m{text}\x1b[0m"


_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE_LEVEL,
}


def parse_log_level(value: str | None) -> int:
    raw = (value or "").strip().lower() or "info"
    if raw not in _LEVELS:
        raise ValueError("invalid log level")
    return _LEVELS[raw]


def setup_logging(
    *,
    level: int = logging.INFO,
    log_format: str = "pretty",
    log_file: str | None = None,
    no_color: bool = False,
) -> None:
    """Configure root logging.

    Logs go to stderr (plus an optional file); stdout carries converted output.
    """

    fmt = (log_format or "pretty").strip().lower()
    if fmt not in {"pretty", "json"}:
        raise ValueError("invalid log format")

    use_color = (not no_color) and bool(getattr(sys.stderr, "isatty", lambda: False)())

    if fmt == "json":
        formatter: logging.Formatter = JsonFormatter()
        file_formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = PrettyFormatter(use_color=use_color)
        file_formatter = PrettyFormatter(use_color=False)

    stderr_handler = logging.StreamHandler(stream=sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.addFilter(_SourceFilter())
    handlers: list[logging.Handler] = [stderr_handler]

    if log_file:
        path = os.path.expanduser(str(log_file))
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setFormatter(file_formatter)
        fh.addFilter(_SourceFilter())
        handlers.append(fh)

    logging.basicConfig(level=int(level), handlers=handlers, force=True)

    # python-can logs reader details at INFO; keep it quiet unless debugging.
    third_party_level = logging.DEBUG if int(level) <= logging.DEBUG else logging.WARNING
    logging.getLogger("can").setLevel(int(third_party_level))
