"""Compare a row tally with the "Total App Users: N" label."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from admin_ui_tests.errors import CountMismatchError, TotalParseError

TOTAL_PATTERN = re.compile(r"Total App Users:\s*(\d+)")


def parse_reported_total(text: str) -> int:
    match = TOTAL_PATTERN.search(text or "")
    if match is None:
        raise TotalParseError(text)
    return int(match.group(1))


@dataclass(frozen=True)
class ReconcilePass:
    total: int


@dataclass(frozen=True)
class CountMismatch:
    observed: int
    reported: int


def reconcile(observed: int, reported_text: str) -> Union[ReconcilePass, CountMismatch]:
    """Strictly compare ``observed`` with the number in ``reported_text``.

    Raises TotalParseError when the label has no count.
    """
    reported = parse_reported_total(reported_text)
    if observed == reported:
        return ReconcilePass(reported)
    return CountMismatch(observed, reported)


def assert_reconciled(observed: int, reported_text: str, context: str = "") -> int:
    """Like :func:`reconcile` but fails with both numbers on a mismatch."""
    outcome = reconcile(observed, reported_text)
    if isinstance(outcome, CountMismatch):
        raise CountMismatchError(outcome.observed, outcome.reported, context)
    return outcome.total
