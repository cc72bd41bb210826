"""Page object for the admin "Create Activity" form.

Only the schedule fields are driven here; submitting an activity needs a
cover image upload, which this suite does not do.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from admin_ui_tests.browser import Browser, Presence
from admin_ui_tests.config import settings

logger = logging.getLogger(__name__)

START_DATE = 'input[name="startDate"]'
END_DATE = 'input[name="endDate"]'
START_TIME = 'input[name="startTime"]'
END_TIME = 'input[name="endTime"]'
FIELD_MESSAGE = "xpath=following-sibling::*[self::div or self::span][1]"


class ActivityForm:
    def __init__(self, browser: Browser) -> None:
        self.browser = browser

    async def open(self) -> "ActivityForm":
        await self.browser.click(self.browser.role("link", "Activities"))
        create = self.browser.role("button", "Create Activity")
        await self.browser.wait_visible(create, 10.0)
        await self.browser.click(create)
        await self.browser.wait_for_load_state("networkidle", timeout=settings.nav_timeout)
        return self

    async def fill_details(self, name: str, description: str) -> None:
        await self.browser.fill(self.browser.role("textbox", "Enter activity name"), name)
        await self.browser.fill(self.browser.role("textbox", "Describe what participants"), description)

    async def set_schedule(self, start_date: date, end_date: date, start_time: str, end_time: str) -> None:
        """Dates go in as YYYY-MM-DD, times as HH:MM (24h)."""
        await self.browser.fill(START_DATE, start_date.isoformat())
        await self.browser.fill(END_DATE, end_date.isoformat())
        await self.browser.fill(START_TIME, start_time)
        await self.browser.fill(END_TIME, end_time)
        logger.info(f"Activity schedule {start_date} {start_time} -> {end_date} {end_time}")

    async def end_time_error(self, timeout: float = 5.0) -> Optional[str]:
        """Validation message rendered right after the end-time input, if any."""
        message = self.browser.locator(END_TIME).locator(FIELD_MESSAGE)
        if await self.browser.probe(message, timeout) is not Presence.PRESENT:
            return None
        return await self.browser.text(message)
