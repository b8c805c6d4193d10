"""Exception types raised by volt.

Validation rejections are not exceptions: they come back from
``validate_value`` as reason strings and are surfaced on the status line.
Save failures are not wrapped either; ``Document.save`` lets the
underlying ``OSError`` through so the caller reports it as-is.
"""

from __future__ import annotations


class VoltError(Exception):
    """Base class for volt errors."""


class DocumentParseError(VoltError):
    """The settings document exists but is not a JSON object."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"parsing {path}: {reason}")
        self.path = path
        self.reason = reason


class EditorError(VoltError):
    """The external editor could not be launched, failed, or returned bad JSON."""


class WizardBusyError(VoltError):
    """A wizard flow was started while another one is still active."""
