"""Thin wrapper around Playwright for ergonomic, bounded UI steps."""
from __future__ import annotations

import logging
import os
import re
from enum import Enum
from typing import Any, Mapping, Pattern, TypeVar, Union

import anyio
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeout

from admin_ui_tests.config import settings
from admin_ui_tests.errors import ToolError, WaitTimeoutError

logger = logging.getLogger(__name__)

Target = Union[str, Locator]
K = TypeVar("K")


class Presence(Enum):
    """Outcome of probing an optional UI element."""

    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


class Browser:
    """Convenience wrapper over a Playwright page.

    Element arguments accept either a CSS/XPath selector string or a
    ready-made Locator (e.g. from :meth:`role`).
    """

    def __init__(self, page: Page, action_timeout: float | None = None) -> None:
        self._page = page
        self.action_timeout = settings.action_timeout if action_timeout is None else action_timeout
        self.current_url: str | None = None

    @property
    def page(self) -> Page:
        return self._page

    def _resolve(self, target: Target) -> Locator:
        if isinstance(target, str):
            return self._page.locator(target)
        return target

    def _ms(self, timeout: float | None) -> float:
        return (self.action_timeout if timeout is None else timeout) * 1000

    # ---- locators ---------------------------------------------------------------
    def locator(self, selector: str, has_text: str | Pattern[str] | None = None) -> Locator:
        if has_text is None:
            return self._page.locator(selector)
        return self._page.locator(selector, has_text=has_text)

    def role(self, role: str, name: str | Pattern[str], exact: bool = False) -> Locator:
        return self._page.get_by_role(role, name=name, exact=exact)

    # ---- navigation -------------------------------------------------------------
    async def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: float | None = None) -> dict[str, Any]:
        """Navigate to URL and return the landing url and HTTP status."""
        try:
            response = await self._page.goto(url, wait_until=wait_until, timeout=self._ms(timeout or settings.nav_timeout))
        except PlaywrightTimeout as exc:
            raise WaitTimeoutError(
                name="goto", payload={"url": url, "wait_until": wait_until}, message=str(exc),
                timeout=timeout or settings.nav_timeout,
            ) from exc
        except PlaywrightError as exc:
            raise ToolError(name="goto", payload={"url": url}, message=str(exc)) from exc
        self.current_url = self._page.url
        return {"url": self.current_url, "status": response.status if response else None}

    async def wait_for_url(self, url: str | Pattern[str], timeout: float | None = None) -> str:
        try:
            await self._page.wait_for_url(url, timeout=self._ms(timeout))
        except PlaywrightTimeout as exc:
            raise WaitTimeoutError(
                name="wait_for_url", payload={"url": str(url), "current": self._page.url},
                message=str(exc), timeout=timeout or self.action_timeout,
            ) from exc
        self.current_url = self._page.url
        return self.current_url

    async def wait_for_load_state(self, state: str = "networkidle", timeout: float | None = None) -> None:
        try:
            await self._page.wait_for_load_state(state, timeout=self._ms(timeout))
        except PlaywrightTimeout as exc:
            raise WaitTimeoutError(
                name="wait_for_load_state", payload={"state": state}, message=str(exc),
                timeout=timeout or self.action_timeout,
            ) from exc

    # ---- actions ----------------------------------------------------------------
    async def fill(self, target: Target, value: str) -> dict[str, Any]:
        """Fill input field."""
        try:
            await self._resolve(target).fill(value, timeout=self._ms(None))
            return {"target": str(target), "value": value}
        except PlaywrightError as exc:
            raise ToolError(name="fill", payload={"target": str(target), "value": value}, message=str(exc)) from exc

    async def click(self, target: Target, force: bool = False) -> dict[str, Any]:
        """Click element."""
        try:
            await self._resolve(target).click(force=force, timeout=self._ms(None))
            self.current_url = self._page.url
            return {"target": str(target), "url": self.current_url}
        except PlaywrightError as exc:
            raise ToolError(name="click", payload={"target": str(target)}, message=str(exc)) from exc

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Execute JavaScript in the page context."""
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise ToolError(name="evaluate", payload={"script": script}, message=str(exc)) from exc

    async def eval_all(self, selector: str, script: str) -> Any:
        """Run ``script`` over every element matching ``selector``."""
        try:
            return await self._page.eval_on_selector_all(selector, script)
        except PlaywrightError as exc:
            raise ToolError(name="eval_all", payload={"selector": selector}, message=str(exc)) from exc

    # ---- reads ------------------------------------------------------------------
    async def text(self, target: Target) -> str:
        """Rendered text of element."""
        try:
            return await self._resolve(target).inner_text(timeout=self._ms(None)) or ""
        except PlaywrightError as exc:
            raise ToolError(name="text", payload={"target": str(target)}, message=str(exc)) from exc

    async def input_value(self, target: Target) -> str:
        try:
            return await self._resolve(target).input_value(timeout=self._ms(None))
        except PlaywrightError as exc:
            raise ToolError(name="input_value", payload={"target": str(target)}, message=str(exc)) from exc

    async def count(self, target: Target) -> int:
        try:
            return await self._resolve(target).count()
        except PlaywrightError as exc:
            raise ToolError(name="count", payload={"target": str(target)}, message=str(exc)) from exc

    async def all_texts(self, target: Target) -> list[str]:
        """Rendered text of every matching element."""
        try:
            return await self._resolve(target).all_inner_texts()
        except PlaywrightError as exc:
            raise ToolError(name="all_texts", payload={"target": str(target)}, message=str(exc)) from exc

    # ---- waits ------------------------------------------------------------------
    async def wait_visible(self, target: Target, timeout: float | None = None) -> Locator:
        """Wait until element is visible, raising WaitTimeoutError otherwise."""
        locator = self._resolve(target)
        try:
            await locator.wait_for(state="visible", timeout=self._ms(timeout))
        except PlaywrightTimeout as exc:
            raise WaitTimeoutError(
                name="wait_visible", payload={"target": str(target), "url": self._page.url},
                message=str(exc), timeout=timeout or self.action_timeout,
            ) from exc
        return locator

    async def probe(self, target: Target, timeout: float) -> Presence:
        """Check for an optional element without failing the step.

        PRESENT when it became visible within ``timeout``; ABSENT when nothing
        matching is attached to the DOM afterwards; UNKNOWN when something
        matches but never became visible, or the DOM could not be queried.
        """
        locator = self._resolve(target)
        try:
            await locator.first.wait_for(state="visible", timeout=timeout * 1000)
            return Presence.PRESENT
        except PlaywrightTimeout:
            logger.debug(f"Probe timed out after {timeout}s: {target}")
        try:
            attached = await locator.count()
        except PlaywrightError as exc:
            logger.debug(f"Probe could not count {target}: {exc}")
            return Presence.UNKNOWN
        return Presence.ABSENT if attached == 0 else Presence.UNKNOWN

    async def wait_for_any(self, candidates: Mapping[K, Target], timeout: float, interval: float = 0.25) -> K:
        """Poll until one of ``candidates`` is visible and return its key.

        Candidates are checked in mapping order on every pass.
        """
        deadline = anyio.current_time() + timeout
        while True:
            for key, target in candidates.items():
                try:
                    if await self._resolve(target).first.is_visible():
                        return key
                except PlaywrightError as exc:
                    logger.debug(f"Visibility check failed for {target}: {exc}")
            if anyio.current_time() >= deadline:
                break
            await anyio.sleep(interval)
        raise WaitTimeoutError(
            name="wait_for_any", payload={"candidates": [str(t) for t in candidates.values()], "url": self._page.url},
            message="none of the expected elements became visible", timeout=timeout,
        )

    async def wait_for_value(self, target: Target, expected: str, timeout: float = 5.0, interval: float = 0.2) -> str:
        """Poll an input until its value equals ``expected``."""
        deadline = anyio.current_time() + timeout
        last_value = None
        while anyio.current_time() <= deadline:
            last_value = await self.input_value(target)
            if last_value == expected:
                return last_value
            await anyio.sleep(interval)
        raise WaitTimeoutError(
            name="wait_for_value", payload={"target": str(target), "expected": expected},
            message=f"last value={last_value!r}", timeout=timeout,
        )

    async def screenshot(self, name: str) -> str:
        """Save a full-page PNG under SCREENSHOT_DIR and return its path."""
        os.makedirs(settings.screenshot_dir, exist_ok=True)
        safe_name = re.sub(r"[^A-Za-z0-9_.-]+", "-", name).strip("-")
        path = os.path.join(settings.screenshot_dir, f"{safe_name}.png")
        try:
            await self._page.screenshot(path=path, type="png", full_page=True)
        except PlaywrightError as exc:
            raise ToolError(name="screenshot", payload={"name": name}, message=str(exc)) from exc
        return path

