"""
multisig.logging
----------------

Structured logging for the engine host:
- JSON or one-line text format
- Context-local fields via `contextvars` (trace_id, op, wallet, proposal)
- Safe serialization (bytes → hex, dataclasses → dicts)

Usage
-----
    from multisig import logging as mlog

    mlog.configure(level="INFO")  # once at process start
    log = mlog.get_logger(__name__)

    with mlog.trace_scope():
        mlog.bind(op="execute", wallet=wallet_addr)
        log.info("proposal executed", extra={"amount": 500})

Stdlib only, so it can be configured before the record store is opened.
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterator, Optional

# ----------------------------
# Context
# ----------------------------

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_MULTISIG_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = ("trace_id", "op", "wallet", "proposal")

# LogRecord attributes that are never treated as structured extras.
_RECORD_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
    )
)


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def unbind(*keys: str) -> None:
    cur = dict(_LOG_CONTEXT.get())
    for k in keys:
        cur.pop(k, None)
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None, **fields: Any) -> Iterator[str]:
    """
    Ensure a trace_id (and any extra fields) for the duration of the scope.
    Restores the prior context on exit and yields the trace id.
    """
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or prev.get("trace_id") or short_uuid()
    try:
        bind(trace_id=tid, **fields)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


# ----------------------------
# Formatters
# ----------------------------


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, tuple):
        return [_coerce_value(x) for x in v]
    if isinstance(v, _dt.datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=_dt.timezone.utc)
        return v.isoformat()
    if is_dataclass(v) and not isinstance(v, type):
        return {k: _coerce_value(x) for k, x in asdict(v).items()}
    return str(v)


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in record.__dict__.items():
        if k.startswith("_") or k in _RECORD_ATTRS:
            continue
        out[k] = _coerce_value(v)
    return out


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    Human-friendly one-liner:
      2026-01-05T12:34:56.789+00:00 | INFO  | multisig.service | trace_id=abc123 op=execute | proposal executed amount=500
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        extras = " ".join(
            f"{k}={v}" for k, v in _extras(record).items() if k not in ctx
        )

        line = f"{_utcnow_iso()} | {record.levelname:<5} | {record.name}"
        if ctx_str:
            line += f" | {ctx_str}"
        line += f" | {record.getMessage()}"
        if extras:
            line += f" {extras}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: io.TextIOBase = sys.stderr,
    propagate_existing: bool = False,
) -> None:
    """
    Configure the root logger.

    Parameters
    ----------
    json : bool | None
        If None, determined by env MULTISIG_LOG_FORMAT=(json|text) and TTY detection.
    level : str | int
        Minimum log level.
    stream : TextIO
        Stream for the console handler (default: stderr).
    propagate_existing : bool
        If True, leave existing handlers in place.
    """
    lvl = _coerce_level(level)
    root = logging.getLogger()
    root.setLevel(lvl)

    if not propagate_existing:
        for h in list(root.handlers):
            root.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(lvl)
    console.setFormatter(JSONFormatter() if _decide_json(json, stream) else TextFormatter())
    root.addHandler(console)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "multisig")


# ----------------------------
# Internals
# ----------------------------


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def _decide_json(json_flag: Optional[bool], stream: io.TextIOBase) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get("MULTISIG_LOG_FORMAT", "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    # JSON when piped (services), text when interactive
    try:
        return not stream.isatty()
    except (AttributeError, ValueError):
        return True


__all__ = [
    "context",
    "bind",
    "unbind",
    "clear_context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "get_logger",
]
