"""Verification-code retrieval from the user's mailbox.

The poller repeatedly refreshes an inbox view and scans the newest message for
a six-digit code. Two inbox sources exist:

* Yopmail, driven through a dedicated browser context (the default);
* Mailpit, read over its REST API for deployments that deliver mail there.

Each source is opened through an async context manager so the browser context
or HTTP client is released however the poll ends.
"""
from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Awaitable, Callable, Optional, Protocol

import anyio
import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from admin_ui_tests.config import settings
from admin_ui_tests.errors import CodeNotFoundError, MailboxEmptyError, ToolError
from admin_ui_tests.mailpit_client import MailpitClient, html_to_text
from admin_ui_tests.playwright_client import PlaywrightClient

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
CODE_PATTERN = re.compile(r"\b\d{6}\b", re.ASCII)
_DIGITS = re.compile(r"[0-9]{6}")

# Failures that only cost one attempt
TRANSIENT_ERRORS = (PlaywrightError, ToolError, MailboxEmptyError, httpx.HTTPError)


@dataclass(frozen=True)
class Credential:
    """Identity submitted on the login page."""

    email: str

    def __post_init__(self) -> None:
        local, sep, domain = self.email.partition("@")
        if not sep or not local or not domain:
            raise ValueError(f"Not an email address: {self.email!r}")

    @property
    def mailbox_id(self) -> str:
        """Inbox name on the mail provider: the local-part of the address."""
        return self.email.split("@", 1)[0]


@dataclass(frozen=True)
class VerificationCode:
    """A six-digit one-time code.

    ``generation`` is the resend generation of the login flow the code was
    fetched in; the flow refuses codes from an older generation.
    """

    digits: str
    generation: int = 0

    def __post_init__(self) -> None:
        if not _DIGITS.fullmatch(self.digits):
            raise ValueError(f"Verification code must be {CODE_LENGTH} digits, got {self.digits!r}")

    @classmethod
    def find(cls, text: str, generation: int = 0) -> Optional["VerificationCode"]:
        """First six-digit group in ``text``, or None."""
        match = CODE_PATTERN.search(text or "")
        if match is None:
            return None
        return cls(match.group(0), generation)

    def __str__(self) -> str:
        return self.digits


class InboxSource(Protocol):
    async def refresh(self) -> None: ...

    async def latest_body(self) -> str: ...


OpenInbox = Callable[[str], AsyncContextManager[InboxSource]]


class YopmailInbox:
    """Yopmail web inbox: message list and message body live in two iframes."""

    INBOX_FRAME = "#ifinbox"
    MAIL_FRAME = "#ifmail"
    MESSAGE_ROW = "div.m"

    def __init__(self, page: Page, element_timeout: float = 5.0) -> None:
        self._page = page
        self._timeout_ms = element_timeout * 1000

    async def refresh(self) -> None:
        await self._page.reload()

    async def latest_body(self) -> str:
        newest = self._page.frame_locator(self.INBOX_FRAME).locator(self.MESSAGE_ROW).first
        await newest.wait_for(timeout=self._timeout_ms)
        await newest.click()

        body = self._page.frame_locator(self.MAIL_FRAME).locator("body")
        await body.wait_for(timeout=self._timeout_ms)
        return await body.inner_text()


class MailpitInbox:
    """Newest Mailpit message addressed to the mailbox."""

    def __init__(self, client: MailpitClient, mailbox_id: str) -> None:
        self._client = client
        self._mailbox_id = mailbox_id

    async def refresh(self) -> None:
        # Every REST query already reflects the current mailbox.
        return None

    async def latest_body(self) -> str:
        message = await self._client.latest_for(self._mailbox_id)
        if message is None:
            raise MailboxEmptyError(f"No message for '{self._mailbox_id}' yet")
        return message.text or html_to_text(message.html)


def yopmail_opener(
    client: PlaywrightClient,
    base_url: str | None = None,
    element_timeout: float = 5.0,
) -> OpenInbox:
    """Open Yopmail inboxes in contexts isolated from the scenario under test."""
    base = (base_url or settings.yopmail_url).rstrip("/")

    @asynccontextmanager
    async def open_inbox(mailbox_id: str) -> AsyncIterator[InboxSource]:
        async with client.isolated_page() as page:
            await page.goto(f"{base}/?{mailbox_id}", timeout=settings.nav_timeout * 1000)
            yield YopmailInbox(page, element_timeout)

    return open_inbox


def mailpit_opener(**client_kwargs) -> OpenInbox:
    """Open Mailpit inboxes, one HTTP client per poll."""

    @asynccontextmanager
    async def open_inbox(mailbox_id: str) -> AsyncIterator[InboxSource]:
        async with MailpitClient(**client_kwargs) as mailpit:
            yield MailpitInbox(mailpit, mailbox_id)

    return open_inbox


class MailboxPoller:
    """Poll an inbox until a verification code shows up.

    Example:
        poller = MailboxPoller(yopmail_opener(client))
        code = await poller.fetch_code("admin.devrainyday", max_tries=12, interval=3.0)
    """

    def __init__(self, open_inbox: OpenInbox, *, sleep: Callable[[float], Awaitable[None]] = anyio.sleep) -> None:
        self._open_inbox = open_inbox
        self._sleep = sleep

    async def fetch_code(
        self,
        mailbox_id: str,
        max_tries: int | None = None,
        interval: float | None = None,
        generation: int = 0,
    ) -> VerificationCode:
        """Return the first six-digit code in the newest message.

        Each attempt reloads the inbox, waits ``interval`` seconds, opens the
        newest message and scans its body. Attempts that fail for transient
        reasons are counted and retried; once ``max_tries`` attempts produced
        nothing, CodeNotFoundError is raised.
        """
        max_tries = settings.otp_max_tries if max_tries is None else max_tries
        interval = settings.otp_poll_interval if interval is None else interval

        async with self._open_inbox(mailbox_id) as inbox:
            for attempt in range(1, max_tries + 1):
                try:
                    await inbox.refresh()
                    await self._sleep(interval)
                    body = await inbox.latest_body()
                except TRANSIENT_ERRORS as exc:
                    logger.debug(f"Mailbox '{mailbox_id}' attempt {attempt}/{max_tries} failed: {exc}")
                    continue

                code = VerificationCode.find(body, generation)
                if code is not None:
                    logger.info(f"Found verification code for '{mailbox_id}' on attempt {attempt}/{max_tries}")
                    return code
                logger.debug(f"Mailbox '{mailbox_id}' attempt {attempt}/{max_tries}: no code in newest message")

        raise CodeNotFoundError(mailbox_id, max_tries)


def poller_from_settings(client: PlaywrightClient) -> MailboxPoller:
    """Build the poller for the configured MAILBOX_BACKEND."""
    if settings.mailbox_backend == "mailpit":
        return MailboxPoller(mailpit_opener())
    return MailboxPoller(yopmail_opener(client))
