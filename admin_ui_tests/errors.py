"""Failure types raised by the UI harness.

Waits, mailbox polling and count checks all surface their failures as one of
these so a test report names the failing step instead of a bare Playwright
traceback.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


class UiTestError(Exception):
    """Base class for harness failures that are not plain assertions."""


@dataclass
class ToolError(UiTestError):
    """Raised when a browser operation fails."""

    name: str
    payload: Dict[str, Any]
    message: str

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


@dataclass
class WaitTimeoutError(ToolError):
    """A bounded wait elapsed before its condition held."""

    timeout: float = 0.0

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"{self.name} timed out after {self.timeout}s ({self.message}) with payload={self.payload}"


class CodeNotFoundError(UiTestError):
    """The mailbox never produced a verification code within the retry budget."""

    def __init__(self, mailbox_id: str, attempts: int) -> None:
        super().__init__(f"OTP not found in mailbox '{mailbox_id}' after {attempts} attempts")
        self.mailbox_id = mailbox_id
        self.attempts = attempts


class TotalParseError(UiTestError):
    """The aggregate label did not contain 'Total App Users: <n>'."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Could not parse 'Total App Users' count from {text!r}")
        self.text = text


class InvalidTransitionError(UiTestError):
    """A login step was invoked from a state that does not allow it."""


class StaleCodeError(UiTestError):
    """A verification code fetched before a resend was submitted."""


class CountMismatchError(AssertionError):
    """Observed row count differs from the reported total."""

    def __init__(self, observed: int, reported: int, context: str = "") -> None:
        label = f" {context}" if context else ""
        super().__init__(
            f"Total number of app users{label} does not match displayed number. "
            f"Found {observed}, UI shows {reported}"
        )
        self.observed = observed
        self.reported = reported


class LoginFailedError(AssertionError):
    """The login flow ended in a terminal state other than success."""

    def __init__(self, state: Any, message: str = "") -> None:
        detail = f": {message}" if message else ""
        super().__init__(f"Login ended in state {state}{detail}")
        self.state = state
        self.message = message


class MailboxEmptyError(UiTestError):
    """The inbox had no message to read on this attempt."""
