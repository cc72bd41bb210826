"""Typing a one-time code into the per-digit input boxes.

The login page renders one text input per digit and verifies on its own once
the last box is filled, so nothing here submits.
"""
from __future__ import annotations

import logging
from typing import Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from admin_ui_tests.errors import ToolError
from admin_ui_tests.mailbox import VerificationCode

logger = logging.getLogger(__name__)

OTP_INPUTS = 'input[type="text"]'


async def enter_digits(digits: Sequence[str], inputs: Locator) -> None:
    """Fill input ``i`` with ``digits[i]``; surplus inputs are left alone."""
    available = await inputs.count()
    if available < len(digits):
        raise ToolError(
            name="enter_code",
            payload={"inputs": available, "digits": len(digits)},
            message=f"Expected at least {len(digits)} code inputs, found {available}",
        )
    for index, digit in enumerate(digits):
        try:
            await inputs.nth(index).fill(digit)
        except PlaywrightError as exc:
            raise ToolError(name="enter_code", payload={"index": index}, message=str(exc)) from exc
    logger.debug(f"Entered {len(digits)} code digits")


async def enter_code(code: VerificationCode, inputs: Locator) -> None:
    await enter_digits(list(code.digits), inputs)
