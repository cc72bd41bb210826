"""Page object for the admin "App Users" view."""
from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Set, Tuple

import anyio
from playwright.async_api import Locator

from admin_ui_tests.browser import Browser, Presence
from admin_ui_tests.config import settings
from admin_ui_tests.errors import WaitTimeoutError
from admin_ui_tests.reconcile import assert_reconciled
from admin_ui_tests.rows import collect_all

logger = logging.getLogger(__name__)

USERS_TABLE = ".rounded-lg.border .w-full.overflow-auto > table.w-full"
FALLBACK_TABLE = "table.w-full"
NAME_CELLS = "table tr td:nth-child(2)"
TOTAL_LABEL = "div.mb-4.text-lg.font-semibold.text-gray-800.ml-2"
STATUS_OPTION = "div.px-4.py-2.text-sm.cursor-pointer"
DATE_INPUTS = 'input[placeholder="mm/dd/yyyy"]'
CLEAR_FILTERS = "span.flex.items-center.justify-center"

SCROLL_ONE_VIEWPORT = "() => window.scrollBy(0, window.innerHeight)"
CELL_TEXTS = "els => els.map(e => e.textContent)"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    BANNED = "Banned"


def format_us_date(value: date) -> str:
    return value.strftime("%m/%d/%Y")


def resolve_joined_range(start: date, end: date, today: date) -> Tuple[date, date]:
    """Requested range, or the last seven days when it ends in the future."""
    if end > today:
        return today - timedelta(days=7), today
    return start, end


class AppUsersPage:
    """The users listing: search, status and joined-date filters, totals."""

    def __init__(
        self,
        browser: Browser,
        *,
        filter_settle: float | None = None,
        search_settle: float | None = None,
        scroll_settle: float | None = None,
        max_scroll_cycles: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self.browser = browser
        self.filter_settle = settings.filter_settle if filter_settle is None else filter_settle
        self.search_settle = settings.search_settle if search_settle is None else search_settle
        self.scroll_settle = settings.scroll_settle if scroll_settle is None else scroll_settle
        self.max_scroll_cycles = settings.max_scroll_cycles if max_scroll_cycles is None else max_scroll_cycles
        self._sleep = sleep
        self.table: Optional[Locator] = None

    # ---- navigation -------------------------------------------------------------
    async def open(self) -> "AppUsersPage":
        await self.browser.click(self.browser.role("link", "App Users"))
        try:
            await self.browser.wait_for_url(re.compile(r"app-users"), timeout=10.0)
        except WaitTimeoutError:
            logger.warning(f"App Users link did not land on an app-users URL: {self.browser.page.url}")
        await self.browser.wait_for_load_state("networkidle", timeout=settings.nav_timeout)

        primary = self.browser.locator(USERS_TABLE)
        if await self.browser.probe(primary, 30.0) is Presence.PRESENT:
            self.table = primary
        else:
            logger.info("Users table not found by its container, falling back to table.w-full")
            self.table = await self.browser.wait_visible(self.browser.locator(FALLBACK_TABLE), 10.0)
        return self

    @property
    def rows(self) -> Locator:
        if self.table is None:
            raise RuntimeError("Users page not opened. Call open() first")
        return self.table.locator("tbody tr")

    @property
    def search_box(self) -> Locator:
        return self.browser.role("textbox", re.compile("search", re.IGNORECASE))

    async def settle(self) -> None:
        """Give the table time to refetch after a filter change."""
        await self._sleep(self.filter_settle)

    async def settle_search(self) -> None:
        """Wait for keyword search results to finish loading."""
        await self._sleep(self.search_settle)

    async def wait_for_first_row(self, timeout: float = 10.0) -> None:
        await self.browser.wait_visible(self.rows.first, timeout)

    # ---- filters ----------------------------------------------------------------
    async def search(self, keyword: str) -> None:
        await self.browser.wait_visible(self.search_box, 5.0)
        await self.browser.fill(self.search_box, keyword)
        logger.info(f"Searching users for '{keyword}'")

    async def select_status(self, status: UserStatus) -> None:
        dropdown = self.browser.role("button", re.compile("select status", re.IGNORECASE))
        await self.browser.wait_visible(dropdown, 10.0)
        await self.browser.click(dropdown)

        if status is UserStatus.ACTIVE:
            option = self.browser.locator(STATUS_OPTION, has_text=status.value).first
            await self.browser.wait_visible(option, 5.0)
            await self.browser.click(option, force=True)
        else:
            option = self.browser.locator(
                f"//div[contains(@class,'cursor-pointer') and normalize-space(text())='{status.value}']"
            )
            await self.browser.click(option)
        logger.info(f"Filtered users by status {status.value}")

    async def set_joined_range(self, start: date, end: date, today: date | None = None) -> Tuple[str, str]:
        """Fill the joined-date inputs; returns the mm/dd/yyyy strings used."""
        today = today or date.today()
        effective_start, effective_end = resolve_joined_range(start, end, today)
        if (effective_start, effective_end) != (start, end):
            logger.warning(
                f"Requested joined range ends in the future, using {format_us_date(effective_start)} "
                f"-> {format_us_date(effective_end)}"
            )
        start_text, end_text = format_us_date(effective_start), format_us_date(effective_end)

        inputs = self.browser.locator(DATE_INPUTS)
        await self.browser.fill(inputs.first, start_text)
        await self.browser.fill(inputs.nth(1), end_text)
        return start_text, end_text

    async def clear_filters(self) -> None:
        button = self.browser.locator(CLEAR_FILTERS, has_text="Clear Filters")
        await self.browser.wait_visible(button, 5.0)
        await self.browser.click(button)
        await self.browser.wait_for_value(self.search_box, "", timeout=5.0)

    # ---- reads ------------------------------------------------------------------
    async def row_count(self) -> int:
        return await self.browser.count(self.rows)

    async def row_texts(self) -> List[str]:
        return await self.browser.all_texts(self.rows)

    async def names(self) -> List[str]:
        """Name column of the rows rendered right now."""
        return await self.browser.all_texts(self.rows.locator("td:nth-child(2)"))

    async def scroll_one_viewport(self) -> None:
        await self.browser.evaluate(SCROLL_ONE_VIEWPORT)

    async def _rendered_names(self) -> List[str]:
        return await self.browser.eval_all(NAME_CELLS, CELL_TEXTS)

    async def collect_all_names(self) -> Set[str]:
        """Scroll until no new names appear and return all of them."""
        names = await collect_all(
            self._rendered_names,
            self.scroll_one_viewport,
            settle_delay=self.scroll_settle,
            sleep=self._sleep,
            max_cycles=self.max_scroll_cycles,
        )
        logger.info(f"Collected {len(names)} distinct users")
        return names

    async def total_text(self) -> str:
        return await self.browser.text(self.browser.locator(TOTAL_LABEL))

    async def assert_total_matches_rows(self, context: str = "", scroll: bool = False) -> int:
        """Fail unless the rendered (or fully scrolled) rows match the total label."""
        observed = len(await self.collect_all_names()) if scroll else await self.row_count()
        total_text = await self.total_text()
        return assert_reconciled(observed, total_text, context)
