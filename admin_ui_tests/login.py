"""Passwordless email-OTP login, driven as an explicit state machine.

    START --submit_identity--> EMAIL_ENTERED --+--> REJECTED_IDENTITY
                                               |
                                               +--> AWAITING_CODE --submit_code--+--> CODE_VERIFIED
                                                      ^   |                      |
                                                      +---+ request_resend       +--> REJECTED_CODE

Outcomes are read off the page: a status message for the two rejections and
the code-sent instructions, the "Activities" navigation link for success.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Union

import anyio

from admin_ui_tests.browser import Browser, Presence
from admin_ui_tests.config import settings
from admin_ui_tests.errors import InvalidTransitionError, StaleCodeError
from admin_ui_tests.mailbox import Credential, MailboxPoller, VerificationCode
from admin_ui_tests.otp import OTP_INPUTS, enter_code, enter_digits

logger = logging.getLogger(__name__)

STATUS_MESSAGE = "div.text-sm.opacity-90"
IDENTITY_REJECTED_TEXT = "User not found with the provided email"
CODE_SENT_TEXT = "Please check your email for the verification code."
CODE_REJECTED_TEXT = "Wrong email or verification code."


class LoginState(str, Enum):
    START = "start"
    EMAIL_ENTERED = "email_entered"
    AWAITING_CODE = "awaiting_code"
    CODE_VERIFIED = "code_verified"
    REJECTED_IDENTITY = "rejected_identity"
    REJECTED_CODE = "rejected_code"

    @property
    def terminal(self) -> bool:
        return self in (LoginState.CODE_VERIFIED, LoginState.REJECTED_IDENTITY, LoginState.REJECTED_CODE)


@dataclass
class LoginTimeouts:
    """Upper bounds, in seconds, for each wait in the flow."""

    disclosure: float = 20.0
    email_field: float = 15.0
    continue_button: float = 10.0
    status: float = 10.0
    resend_probe: float = 1.0
    success: float = 30.0


@dataclass
class LoginResult:
    state: LoginState
    message: str = ""
    disclosure: Optional[Presence] = None
    resend: Optional[Presence] = None
    code: Optional[VerificationCode] = None
    history: List[LoginState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is LoginState.CODE_VERIFIED


class LoginFlow:
    """Drive one login attempt on one page.

    A flow is single-use: once it reaches a terminal state, start a new one.
    """

    def __init__(
        self,
        browser: Browser,
        poller: MailboxPoller | None = None,
        *,
        timeouts: LoginTimeouts | None = None,
        resend_settle: float | None = None,
        login_url: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
    ) -> None:
        self.browser = browser
        self.poller = poller
        self.timeouts = timeouts or LoginTimeouts()
        self.resend_settle = settings.otp_resend_settle if resend_settle is None else resend_settle
        self.login_url = login_url or settings.login_url
        self._sleep = sleep

        self.state = LoginState.START
        self.history: List[LoginState] = [LoginState.START]
        self.message = ""
        self.disclosure: Optional[Presence] = None
        self.resend: Optional[Presence] = None
        self.code: Optional[VerificationCode] = None
        self.credential: Optional[Credential] = None
        self._generation = 0

    # ---- page landmarks ---------------------------------------------------------
    def _continue_button(self):
        return self.browser.role("button", "Continue")

    def _status(self, text: str):
        return self.browser.locator(STATUS_MESSAGE, has_text=text)

    def _activities_link(self):
        return self.browser.role("link", "Activities")

    # ---- bookkeeping ------------------------------------------------------------
    def _require(self, *allowed: LoginState) -> None:
        if self.state not in allowed:
            expected = ", ".join(s.value for s in allowed)
            raise InvalidTransitionError(f"Login is in state '{self.state.value}', expected one of: {expected}")

    def _enter(self, state: LoginState, message: str = "") -> LoginState:
        logger.debug(f"Login state {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
        if message:
            self.message = message
        return state

    def result(self) -> LoginResult:
        return LoginResult(
            state=self.state,
            message=self.message,
            disclosure=self.disclosure,
            resend=self.resend,
            code=self.code,
            history=list(self.history),
        )

    # ---- transitions ------------------------------------------------------------
    async def submit_identity(self, credential: Credential) -> LoginState:
        """Open the login page, enter the email and continue.

        Ends in AWAITING_CODE or REJECTED_IDENTITY.
        """
        self._require(LoginState.START)
        await self.browser.goto(self.login_url)

        # The welcome screen sometimes hides the email field behind "Continue".
        continue_button = self._continue_button()
        self.disclosure = await self.browser.probe(continue_button, self.timeouts.disclosure)
        if self.disclosure is Presence.PRESENT:
            await self.browser.click(continue_button)
        logger.debug(f"Disclosure button: {self.disclosure.value}")

        email_input = self.browser.role("textbox", "Enter your email")
        await self.browser.wait_visible(email_input, self.timeouts.email_field)
        await self.browser.fill(email_input, credential.email)
        await self.browser.wait_visible(continue_button, self.timeouts.continue_button)
        await self.browser.click(continue_button)

        self.credential = credential
        self._enter(LoginState.EMAIL_ENTERED)

        outcome = await self.browser.wait_for_any(
            {
                LoginState.AWAITING_CODE: self._status(CODE_SENT_TEXT),
                LoginState.REJECTED_IDENTITY: self._status(IDENTITY_REJECTED_TEXT),
            },
            timeout=self.timeouts.status,
        )
        message = CODE_SENT_TEXT if outcome is LoginState.AWAITING_CODE else IDENTITY_REJECTED_TEXT
        logger.info(f"Submitted {credential.email}: {outcome.value}")
        return self._enter(outcome, message)

    async def request_resend(self) -> Presence:
        """Click "Resend Code" if the page offers it.

        A click invalidates every code fetched so far and waits for the new
        mail to be dispatched before returning.
        """
        self._require(LoginState.AWAITING_CODE)
        resend_button = self.browser.role("button", "Resend Code")
        self.resend = await self.browser.probe(resend_button, self.timeouts.resend_probe)
        if self.resend is Presence.PRESENT:
            await self.browser.click(resend_button)
            self._generation += 1
            self.code = None
            await self._sleep(self.resend_settle)
            logger.info("Requested a fresh verification code")
        else:
            logger.debug(f"Resend button: {self.resend.value}")
        self._enter(LoginState.AWAITING_CODE)
        return self.resend

    async def obtain_code(self) -> VerificationCode:
        """Poll the credential's mailbox for the current code."""
        self._require(LoginState.AWAITING_CODE)
        if self.poller is None:
            raise InvalidTransitionError("No mailbox poller configured for this login flow")
        self.code = await self.poller.fetch_code(self.credential.mailbox_id, generation=self._generation)
        return self.code

    async def submit_code(self, code: Union[VerificationCode, Sequence[str]]) -> LoginState:
        """Type the code into the digit boxes and wait for the verdict.

        Raw digit sequences are typed as given (used to submit a known-wrong
        code); a VerificationCode must come from the current resend generation.
        """
        self._require(LoginState.AWAITING_CODE)
        inputs = self.browser.locator(OTP_INPUTS)
        if isinstance(code, VerificationCode):
            if code.generation != self._generation:
                raise StaleCodeError(
                    f"Code from generation {code.generation} submitted after resend (current {self._generation})"
                )
            await enter_code(code, inputs)
        else:
            await enter_digits(list(code), inputs)

        outcome = await self.browser.wait_for_any(
            {
                LoginState.CODE_VERIFIED: self._activities_link(),
                LoginState.REJECTED_CODE: self._status(CODE_REJECTED_TEXT),
            },
            timeout=self.timeouts.success,
        )
        message = CODE_REJECTED_TEXT if outcome is LoginState.REJECTED_CODE else ""
        logger.info(f"Code submitted: {outcome.value}")
        return self._enter(outcome, message)

    async def login(self, credential: Credential, resend: bool = True) -> LoginResult:
        """Run the whole flow and return where it ended."""
        if await self.submit_identity(credential) is LoginState.AWAITING_CODE:
            if resend:
                await self.request_resend()
            code = await self.obtain_code()
            await self.submit_code(code)
        return self.result()
