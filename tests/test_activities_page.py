"""Tests for the Create Activity form object."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from admin_ui_tests.activities_page import (
    END_DATE,
    END_TIME,
    FIELD_MESSAGE,
    START_DATE,
    START_TIME,
    ActivityForm,
)
from admin_ui_tests.browser import Presence


pytestmark = pytest.mark.asyncio


@pytest.fixture
def browser():
    browser = MagicMock()
    for name in ("click", "fill", "wait_visible", "wait_for_load_state", "probe", "text"):
        setattr(browser, name, AsyncMock())
    browser.role.side_effect = lambda role, name, exact=False: (role, name)
    return browser


async def test_open_goes_through_activities_link(browser):
    form = await ActivityForm(browser).open()

    assert isinstance(form, ActivityForm)
    assert browser.click.await_args_list == [
        call(("link", "Activities")),
        call(("button", "Create Activity")),
    ]
    browser.wait_visible.assert_awaited_once_with(("button", "Create Activity"), 10.0)


async def test_schedule_fields_are_filled_in_order(browser):
    await ActivityForm(browser).set_schedule(date(2025, 9, 3), date(2025, 9, 3), "15:00", "14:00")

    assert browser.fill.await_args_list == [
        call(START_DATE, "2025-09-03"),
        call(END_DATE, "2025-09-03"),
        call(START_TIME, "15:00"),
        call(END_TIME, "14:00"),
    ]


async def test_end_time_error_text(browser):
    browser.probe.return_value = Presence.PRESENT
    browser.text.return_value = "End time must be after start time"

    assert await ActivityForm(browser).end_time_error() == "End time must be after start time"

    browser.locator.assert_called_once_with(END_TIME)
    browser.locator.return_value.locator.assert_called_once_with(FIELD_MESSAGE)


@pytest.mark.parametrize("presence", [Presence.ABSENT, Presence.UNKNOWN])
async def test_no_end_time_error(browser, presence):
    browser.probe.return_value = presence

    assert await ActivityForm(browser).end_time_error() is None
    browser.text.assert_not_awaited()
