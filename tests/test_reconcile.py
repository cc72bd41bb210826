"""Tests for checking a row tally against the 'Total App Users' label."""

import pytest

from admin_ui_tests.errors import CountMismatchError, TotalParseError
from admin_ui_tests.reconcile import (
    CountMismatch,
    ReconcilePass,
    assert_reconciled,
    parse_reported_total,
    reconcile,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Total App Users: 42", 42),
        ("Total App Users:7", 7),
        ("Total App Users:   0", 0),
        ("Showing page 1. Total App Users: 1234 (filtered)", 1234),
    ],
)
def test_parse_reported_total(text, expected):
    assert parse_reported_total(text) == expected


@pytest.mark.parametrize("text", ["", "Total Users: 4", "Total App Users: ", "Total App Users: many", None])
def test_unparseable_label(text):
    with pytest.raises(TotalParseError):
        parse_reported_total(text)


def test_equal_counts_pass():
    assert reconcile(42, "Total App Users: 42") == ReconcilePass(42)


@pytest.mark.parametrize("observed", [41, 43, 0])
def test_different_counts_mismatch(observed):
    assert reconcile(observed, "Total App Users: 42") == CountMismatch(observed, 42)


def test_reconcile_propagates_parse_failure():
    with pytest.raises(TotalParseError) as exc_info:
        reconcile(3, "No total here")
    assert exc_info.value.text == "No total here"


def test_assert_reconciled_returns_total():
    assert assert_reconciled(5, "Total App Users: 5") == 5


def test_assert_reconciled_reports_both_numbers():
    with pytest.raises(CountMismatchError) as exc_info:
        assert_reconciled(9, "Total App Users: 10", context="after search")

    error = exc_info.value
    assert isinstance(error, AssertionError)
    assert (error.observed, error.reported) == (9, 10)
    assert str(error) == (
        "Total number of app users after search does not match displayed number. Found 9, UI shows 10"
    )


def test_mismatch_message_without_context():
    error = CountMismatchError(1, 2)
    assert str(error).startswith("Total number of app users does not match")
