"""Reusable flows shared by the live scenarios."""
from __future__ import annotations

import logging
import re
from typing import Iterable

from admin_ui_tests.browser import Browser
from admin_ui_tests.config import settings
from admin_ui_tests.errors import LoginFailedError
from admin_ui_tests.login import LoginFlow, LoginResult
from admin_ui_tests.mailbox import Credential, MailboxPoller

logger = logging.getLogger(__name__)


async def login_with_otp(
    browser: Browser,
    poller: MailboxPoller,
    email: str | None = None,
    resend: bool = True,
) -> LoginResult:
    """Log in with a freshly mailed code; every post-login scenario starts here."""
    credential = Credential(email or settings.admin_email)
    result = await LoginFlow(browser, poller).login(credential, resend=resend)
    if not result.succeeded:
        raise LoginFailedError(result.state.value, result.message)
    logger.info(f"Logged in as {credential.email}")
    return result


async def logout(browser: Browser) -> None:
    """Sign out through the account menu and land back on the login page."""
    await browser.click(browser.role("button", re.compile("Rainyday Parents", re.IGNORECASE)))
    await browser.click(browser.role("button", "Sign out", exact=True))
    await browser.click(browser.role("button", "Sign Out", exact=True))
    await browser.wait_for_url(settings.login_url)
    logger.info("Signed out")


def print_listing(title: str, names: Iterable[str], empty: str = "No users found") -> None:
    names = list(names)
    print(f"=== {title} ===")
    if not names:
        print(empty)
    for index, name in enumerate(names, start=1):
        print(f"{index}. {name}")
