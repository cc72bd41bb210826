"""Mailpit client for deployments that deliver mail to Mailpit.

Async client over Mailpit's REST API, used as an alternate inbox source for
the verification-code poller when MAILBOX_BACKEND=mailpit.

Configuration (environment first, then .env.defaults / .env):
    MAILPIT_URL       base URL, e.g. http://mailpit:8025 (API lives under /api/v1)
    MAILPIT_USERNAME  basic auth user
    MAILPIT_PASSWORD  basic auth password

Usage:
    async with MailpitClient() as client:
        latest = await client.latest_for("admin.devrainyday")
        if latest:
            print(latest.subject, latest.text)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx
from bs4 import BeautifulSoup

from admin_ui_tests.env_defaults import get_env_default


def _setting(key: str) -> str | None:
    return os.environ.get(key) or get_env_default(key)


def html_to_text(html: str) -> str:
    """Rendered text of an HTML body; styles, scripts and attributes are dropped."""
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup(["head", "style", "script"]):
        tag.decompose()
    return soup.get_text(" ", strip=True)


def _parse_created(value: str | None) -> datetime:
    if value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return datetime.now()


@dataclass
class MailpitMessageSummary:
    """Summary of a message as returned by the list/search endpoints."""

    id: str
    subject: str
    to: list[str]
    created: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MailpitMessageSummary:
        return cls(
            id=data.get("ID", ""),
            subject=data.get("Subject", ""),
            to=[a.get("Address", "") for a in (data.get("To") or [])],
            created=_parse_created(data.get("Created")),
        )


@dataclass
class MailpitMessage:
    """Full message with body content."""

    id: str
    subject: str
    created: datetime
    text: str
    html: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MailpitMessage:
        return cls(
            id=data.get("ID", ""),
            subject=data.get("Subject", ""),
            created=_parse_created(data.get("Created")),
            text=data.get("Text", ""),
            html=data.get("HTML", ""),
        )

    def __repr__(self) -> str:
        return f"<MailpitMessage id={self.id!r} subject={self.subject!r}>"


class MailpitClient:
    """Async client for the Mailpit REST API.

    Args:
        base_url: Mailpit base URL (default: MAILPIT_URL)
        timeout: Request timeout in seconds
        username/password: basic auth (default: MAILPIT_USERNAME / MAILPIT_PASSWORD)
        transport: optional httpx transport, for tests
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 10.0,
        username: str | None = None,
        password: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        base_url = base_url or _setting("MAILPIT_URL")
        if not base_url:
            raise ValueError("Mailpit backend requires MAILPIT_URL")
        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}/api/v1"

        username = username or _setting("MAILPIT_USERNAME")
        password = password or _setting("MAILPIT_PASSWORD")
        if not username or not password:
            raise ValueError(
                "Mailpit authentication required: set MAILPIT_USERNAME and MAILPIT_PASSWORD"
            )

        self._client = httpx.AsyncClient(timeout=timeout, auth=(username, password), transport=transport)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        response = await self._client.request(method, f"{self.api_url}{endpoint}", **kwargs)
        response.raise_for_status()
        return response

    async def search(self, query: str, limit: int = 50) -> list[MailpitMessageSummary]:
        """Search messages, newest first (e.g. ``to:someone``)."""
        response = await self._request("GET", "/search", params={"query": query, "limit": limit})
        return [MailpitMessageSummary.from_dict(m) for m in response.json().get("messages", [])]

    async def get_message(self, message_id: str) -> MailpitMessage:
        response = await self._request("GET", f"/message/{message_id}")
        return MailpitMessage.from_dict(response.json())

    async def latest_for(self, mailbox_id: str) -> MailpitMessage | None:
        """Most recent message addressed to ``mailbox_id@...``, if any."""
        summaries = await self.search(f"to:{mailbox_id}@", limit=1)
        if not summaries:
            return None
        return await self.get_message(summaries[0].id)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> MailpitClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
