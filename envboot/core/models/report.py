"""
RunReport — the explicit accumulator threaded through every component.

Replaces a process-global error list: each reconciler receives the
report, narrates what it checks and changes, and appends non-fatal
failures. Nothing here ever stops the run; fatal conditions raise
``FatalError`` instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Literal

logger = logging.getLogger("envboot.narration")

EventKind = Literal["check", "ok", "change", "warn", "error"]

_LOG_LEVELS = {
    "check": logging.DEBUG,
    "ok": logging.INFO,
    "change": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


@dataclass
class RunEvent:
    """One narrated step."""

    kind: EventKind
    component: str
    message: str
    at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "component": self.component,
            "message": self.message,
            "at": self.at,
        }


@dataclass
class RunReport:
    """Everything that happened during one bootstrap run."""

    events: list[RunEvent] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    shell_restart: bool = False
    degraded: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=_now_iso)
    listener: Callable[[RunEvent], None] | None = None

    # ── Narration ───────────────────────────────────────────────

    def _emit(self, kind: EventKind, component: str, message: str) -> RunEvent:
        event = RunEvent(kind=kind, component=component, message=message)
        self.events.append(event)
        logger.log(_LOG_LEVELS[kind], "[%s] %s", component, message)
        if self.listener is not None:
            self.listener(event)
        return event

    def check(self, component: str, message: str) -> None:
        """A state inspection is about to happen."""
        self._emit("check", component, message)

    def ok(self, component: str, message: str) -> None:
        """Desired state already holds (or an update check passed)."""
        self._emit("ok", component, message)

    def changed(self, component: str, message: str) -> None:
        """The machine was mutated."""
        self._emit("change", component, message)

    def warn(self, component: str, message: str) -> None:
        self._emit("warn", component, message)

    def error(self, component: str, message: str) -> None:
        """Record a non-fatal failure. The run continues."""
        self.errors.append(f"{component}: {message}")
        self._emit("error", component, message)

    def request_restart(self) -> None:
        """A startup file or PATH changed; a fresh shell is needed."""
        self.shell_restart = True

    def mark_degraded(self, name: str) -> None:
        if name not in self.degraded:
            self.degraded.append(name)

    # ── Summary ─────────────────────────────────────────────────

    @property
    def changes(self) -> list[RunEvent]:
        return [e for e in self.events if e.kind == "change"]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def status(self) -> str:
        if not self.errors:
            return "ok"
        return "partial"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "started_at": self.started_at,
            "errors": list(self.errors),
            "changes": [e.message for e in self.changes],
            "shell_restart": self.shell_restart,
            "degraded": list(self.degraded),
            "events": [e.to_dict() for e in self.events],
        }
