"""Tests for the App Users page object that do not need a live page."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from admin_ui_tests.errors import CountMismatchError
from admin_ui_tests.users_page import (
    CELL_TEXTS,
    NAME_CELLS,
    SCROLL_ONE_VIEWPORT,
    AppUsersPage,
    format_us_date,
    resolve_joined_range,
)

TODAY = date(2025, 9, 15)


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def browser():
    browser = MagicMock()
    for name in ("fill", "click", "evaluate", "eval_all", "count", "text", "wait_visible", "wait_for_value"):
        setattr(browser, name, AsyncMock())
    return browser


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def users_page(browser, sleep):
    page = AppUsersPage(browser, filter_settle=5.0, search_settle=10.0, scroll_settle=2.0, max_scroll_cycles=50, sleep=sleep)
    page.table = MagicMock()
    return page


def test_format_us_date():
    assert format_us_date(date(2025, 8, 3)) == "08/03/2025"


def test_past_range_is_kept():
    assert resolve_joined_range(date(2025, 8, 28), date(2025, 8, 30), TODAY) == (date(2025, 8, 28), date(2025, 8, 30))


def test_range_ending_today_is_kept():
    assert resolve_joined_range(date(2025, 9, 1), TODAY, TODAY) == (date(2025, 9, 1), TODAY)


def test_future_range_falls_back_to_last_week():
    assert resolve_joined_range(date(2025, 9, 20), date(2025, 9, 30), TODAY) == (date(2025, 9, 8), TODAY)


def test_rows_require_open():
    with pytest.raises(RuntimeError):
        AppUsersPage(MagicMock(), filter_settle=0, scroll_settle=0, max_scroll_cycles=1).rows


@pytest.mark.asyncio
class TestAppUsersPage:

    async def test_set_joined_range_fills_both_inputs(self, users_page, browser):
        used = await users_page.set_joined_range(date(2025, 8, 28), date(2025, 8, 30), today=TODAY)

        inputs = browser.locator.return_value
        assert used == ("08/28/2025", "08/30/2025")
        assert browser.fill.await_args_list == [
            call(inputs.first, "08/28/2025"),
            call(inputs.nth.return_value, "08/30/2025"),
        ]

    async def test_set_joined_range_future_fallback(self, users_page):
        used = await users_page.set_joined_range(date(2025, 9, 20), date(2025, 9, 30), today=TODAY)

        assert used == ("09/08/2025", "09/15/2025")

    async def test_collect_all_names_scrolls_until_stable(self, users_page, browser, sleep):
        browser.eval_all.side_effect = [
            ["Ann ", "Bob"],
            ["Bob", "Cy"],
            ["Cy", ""],
        ]

        names = await users_page.collect_all_names()

        assert names == {"Ann", "Bob", "Cy"}
        assert browser.eval_all.await_args_list == [call(NAME_CELLS, CELL_TEXTS)] * 3
        assert browser.evaluate.await_args_list == [call(SCROLL_ONE_VIEWPORT)] * 3
        assert sleep.delays == [2.0] * 3

    async def test_total_matches_rendered_rows(self, users_page, browser):
        browser.count.return_value = 12
        browser.text.return_value = "Total App Users: 12"

        assert await users_page.assert_total_matches_rows() == 12

    async def test_total_mismatch_after_scroll(self, users_page, browser):
        browser.eval_all.side_effect = [["Ann", "Bob"], ["Ann", "Bob"]]
        browser.text.return_value = "Total App Users: 3"

        with pytest.raises(CountMismatchError) as exc_info:
            await users_page.assert_total_matches_rows(context="for status Active", scroll=True)

        assert (exc_info.value.observed, exc_info.value.reported) == (2, 3)
        browser.count.assert_not_awaited()

    async def test_settle_waits_for_filter_delay(self, users_page, sleep):
        await users_page.settle()

        assert sleep.delays == [5.0]

    async def test_settle_search_waits_for_search_delay(self, users_page, sleep):
        await users_page.settle_search()

        assert sleep.delays == [10.0]

    async def test_clear_filters_waits_for_empty_search(self, users_page, browser):
        await users_page.clear_filters()

        browser.click.assert_awaited_once()
        assert browser.wait_for_value.await_args.args[1] == ""
