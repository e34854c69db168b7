"""
LastRun — summary of the most recent bootstrap run.

Serialized to ``<base>/.lib/.envboot-state.json`` after every run and
shown by ``envboot status``. It is a convenience record, not a
transaction log: delete it and nothing changes except the status
output.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class LastRun(BaseModel):
    """Persisted outcome of one run."""

    schema_version: int = 1

    started_at: str = ""
    ended_at: str = Field(default_factory=_now_iso)
    version: str = ""                    # envboot version that ran

    distro_family: str = ""
    status: str = ""                     # ok, partial, fatal
    fatal: str | None = None

    errors: list[str] = Field(default_factory=list)
    changes: list[str] = Field(default_factory=list)
    shell_restart: bool = False
    degraded: list[str] = Field(default_factory=list)

    @property
    def recorded(self) -> bool:
        """False for the blank record returned when no run was saved."""
        return bool(self.status)

    def touch(self) -> None:
        """Update the ended_at timestamp."""
        self.ended_at = _now_iso()
