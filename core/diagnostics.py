"""
Rolling diagnostic log.

A logging handler that keeps the most recent records in memory so the owner UI can
show (and copy) what just happened. It is attached to the application logger, so every
record still reaches the console as well.

Each entry is tagged with the uid of the caller that produced it, taken from the record's
``uid`` extra or from the request-scoped ``current_uid``. Listing, export and clear only
ever touch the caller's own entries; untagged records (startup, anonymous traffic) are
never returned to a tenant.
"""
import itertools
import logging
from collections import deque
from contextvars import ContextVar
from datetime import datetime
from typing import Optional

from fastapi import Request

_TYPE_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Pass as `extra=` to mark a record as a completed user action
SUCCESS = {"diag_type": "success"}

# Set once the request's identity is verified (see core.auth)
current_uid: ContextVar[Optional[str]] = ContextVar("diagnostics_uid", default=None)


def _type_for(record: logging.LogRecord) -> str:
    explicit = getattr(record, "diag_type", None)
    if explicit in _TYPE_LEVELS:
        return explicit
    if record.levelno >= logging.ERROR:
        return "error"
    if record.levelno >= logging.WARNING:
        return "warning"
    return "info"


class DiagnosticBuffer(logging.Handler):
    def __init__(self, capacity: int = 50, level: int = logging.INFO):
        super().__init__(level=level)
        self.capacity = capacity
        self._entries: deque = deque(maxlen=capacity)
        self._ids = itertools.count(1)
        self._logger: Optional[logging.Logger] = None

    def emit(self, record: logging.LogRecord):
        try:
            self._entries.append({
                "id": next(self._ids),
                "timestamp": datetime.fromtimestamp(record.created).strftime("%H:%M:%S"),
                "message": record.getMessage(),
                "type": _type_for(record),
                "uid": getattr(record, "uid", None) or current_uid.get(),
            })
        except Exception:
            self.handleError(record)

    def attach(self, logger: logging.Logger):
        self._logger = logger
        logger.addHandler(self)

    def detach(self):
        if self._logger is not None:
            self._logger.removeHandler(self)
            self._logger = None

    def entries(self, uid: Optional[str] = None) -> list[dict]:
        """Newest first. With a uid, only that caller's entries (without the tag)."""
        with self.lock:
            items = list(reversed(self._entries))
        if uid is None:
            return items
        return [{k: v for k, v in e.items() if k != "uid"} for e in items if e["uid"] == uid]

    def clear(self, uid: Optional[str] = None):
        with self.lock:
            if uid is None:
                self._entries.clear()
                return
            kept = [e for e in self._entries if e["uid"] != uid]
            self._entries = deque(kept, maxlen=self.capacity)

    def export_text(self, uid: Optional[str] = None) -> str:
        return "\n".join(f"[{e['timestamp']}] {e['type'].upper()}: {e['message']}" for e in self.entries(uid))


def get_diagnostics(request: Request) -> DiagnosticBuffer:
    return request.app.state.diagnostics
