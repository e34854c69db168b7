"""
Fatal errors — conditions that halt the whole run with exit status 1.

Everything else is recorded on the RunReport and the run continues.
"""

from __future__ import annotations


class FatalError(Exception):
    """A load-bearing precondition failed; nothing downstream can run."""

    def __init__(self, message: str, *, component: str = "", hint: str = ""):
        super().__init__(message)
        self.component = component
        self.hint = hint

    def __str__(self) -> str:
        text = super().__str__()
        if self.component:
            text = f"{self.component}: {text}"
        return text
