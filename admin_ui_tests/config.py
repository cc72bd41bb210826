"""Shared configuration for the admin portal UI tests.

Every value is read from the environment first, then from `.env.defaults`
(see :mod:`admin_ui_tests.env_defaults`), then from the fallback below.

Set UI_LIVE=1 to run the scenarios that talk to the real deployment.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterator, List
from urllib.parse import urljoin

from admin_ui_tests.env_defaults import get_env_default

_TRUTHY = {"1", "true", "yes", "on"}


def _env(key: str, fallback: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None or value == "":
        value = get_env_default(key)
    if value is None or value == "":
        return fallback
    return value


def _env_bool(key: str, fallback: bool) -> bool:
    value = _env(key)
    if value is None:
        return fallback
    return value.strip().lower() in _TRUTHY


def _env_float(key: str, fallback: float) -> float:
    value = _env(key)
    if value is None:
        return fallback
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {value!r}") from exc


def _env_int(key: str, fallback: int) -> int:
    value = _env(key)
    if value is None:
        return fallback
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {value!r}") from exc


def _env_date(key: str, fallback: str) -> date:
    value = _env(key, fallback)
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"{key} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


@dataclass
class UiTargetProfile:
    """Concrete host + identities for one deployment under test."""

    name: str
    base_url: str
    admin_email: str
    unknown_email: str

    def url(self, path: str) -> str:
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))


class UiTestConfig:
    """Configuration for the UI harness, resolved once at import time."""

    def __init__(self) -> None:
        self.live: bool = _env_bool("UI_LIVE", False)
        self.playwright_headless: bool = _env_bool("PLAYWRIGHT_HEADLESS", True)
        self.browser_type: str = _env("PLAYWRIGHT_BROWSER", "chromium")
        self.log_level: str = _env("UI_LOG_LEVEL", "INFO").upper()
        self.screenshot_dir: str = _env("SCREENSHOT_DIR", "tmp/screenshots")

        # Timeouts are seconds; the browser layer converts to milliseconds.
        self.action_timeout: float = _env_float("UI_ACTION_TIMEOUT", 60.0)
        self.nav_timeout: float = _env_float("UI_NAV_TIMEOUT", 30.0)

        self.otp_max_tries: int = _env_int("OTP_MAX_TRIES", 12)
        self.otp_poll_interval: float = _env_float("OTP_POLL_INTERVAL", 3.0)
        self.otp_resend_settle: float = _env_float("OTP_RESEND_SETTLE", 3.0)
        self.wrong_code: str = _env("UI_WRONG_CODE", "609271")

        self.scroll_settle: float = _env_float("UI_SCROLL_SETTLE", 2.0)
        self.filter_settle: float = _env_float("UI_FILTER_SETTLE", 5.0)
        self.search_settle: float = _env_float("UI_SEARCH_SETTLE", 10.0)
        self.max_scroll_cycles: int = _env_int("UI_MAX_SCROLL_CYCLES", 200)

        self.search_keyword: str = _env("UI_SEARCH_KEYWORD", "fin")
        self.joined_start: date = _env_date("UI_JOINED_START", "2025-08-28")
        self.joined_end: date = _env_date("UI_JOINED_END", "2025-08-30")

        self.mailbox_backend: str = _env("MAILBOX_BACKEND", "yopmail").lower()
        if self.mailbox_backend not in ("yopmail", "mailpit"):
            raise ValueError(
                f"Invalid MAILBOX_BACKEND '{self.mailbox_backend}'. Must be 'yopmail' or 'mailpit'."
            )
        self.yopmail_url: str = _env("YOPMAIL_URL", "https://yopmail.com")

        primary = UiTargetProfile(
            name="primary",
            base_url=_env("UI_BASE_URL", "https://stage.rainydayparents.com"),
            admin_email=_env("UI_ADMIN_EMAIL", "admin.devrainyday@yopmail.com"),
            unknown_email=_env("UI_UNKNOWN_EMAIL", "admin.stage@yopmail.com"),
        )
        self._profiles: Dict[str, UiTargetProfile] = {primary.name: primary}

        # Optional smoke profile for a second deployment
        smoke_base = _env("UI_SMOKE_BASE_URL")
        if smoke_base:
            self._profiles["smoke"] = UiTargetProfile(
                name="smoke",
                base_url=smoke_base,
                admin_email=_env("UI_SMOKE_ADMIN_EMAIL", primary.admin_email),
                unknown_email=_env("UI_SMOKE_UNKNOWN_EMAIL", primary.unknown_email),
            )

        self._active: UiTargetProfile = primary

    # ---- active profile helpers -------------------------------------------------
    @property
    def base_url(self) -> str:
        return self._active.base_url

    @property
    def admin_email(self) -> str:
        return self._active.admin_email

    @property
    def unknown_email(self) -> str:
        return self._active.unknown_email

    @property
    def login_url(self) -> str:
        return self.url("/login")

    # ---- profile orchestration --------------------------------------------------
    def profiles(self) -> List[UiTargetProfile]:
        return list(self._profiles.values())

    @contextmanager
    def use_profile(self, profile: UiTargetProfile) -> Iterator[UiTargetProfile]:
        """Temporarily switch the active profile.

        A copy is activated so a test mutating it cannot leak into the next one.
        """
        previous = self._active
        self._active = deepcopy(profile)
        try:
            yield self._active
        finally:
            self._active = previous

    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return self._active.url(path)


# Singleton instance - initialized on first import
settings = UiTestConfig()
