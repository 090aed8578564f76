"""Authentication state machine for Moodle.

This module drives the Moodle login form, detects two-factor challenges
(Duo push, one-time codes) and waits for them to be approved.

Login flow: Course URL → (already logged in?) → Login form discovery →
Credentials submitted → Verification → Two-factor wait (if challenged)
"""

import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

import structlog

from moodle_scraper.capability import Page
from moodle_scraper.extraction.profile import AuthSelectors
from moodle_scraper.extraction.resolution import any_present, resolve_first
from moodle_scraper.models import Credentials

logger = structlog.get_logger(__name__)

VERIFICATION_DELAY_MS = 2000


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FINDING_LOGIN_FORM = "finding_login_form"
    SUBMITTING_CREDENTIALS = "submitting_credentials"
    AWAITING_VERIFICATION = "awaiting_verification"
    TWO_FACTOR_PENDING = "two_factor_pending"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class AuthFailure(str, Enum):
    LOGIN_FORM_MISSING = "login form elements missing"
    INVALID_CREDENTIALS = "invalid credentials"
    STILL_ON_LOGIN_PAGE = "still on login page"
    CHALLENGE_DENIED = "challenge denied"
    CHALLENGE_TIMEOUT = "challenge timeout"
    NOT_VERIFIED = "no authenticated marker found"


class AuthenticationError(Exception):
    """Raised when login cannot complete. ``reason`` says why."""

    def __init__(self, reason: AuthFailure, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = f"{reason.value}: {detail}" if detail else reason.value
        super().__init__(message)


class Authenticator:
    """Logs one page into Moodle.

    The authenticator owns no browser resources; it only drives the page it
    is given. ``state`` always holds the current AuthState and
    ``login_token`` the anti-forgery token found on the login form, if any.

    Args:
        page: Page capability to drive.
        credentials: Validated login identity and course URL.
        selectors: The ``auth`` section of the selector profile.
        strict_verification: Fail with NOT_VERIFIED instead of assuming
            success when no logged-in marker shows up after submitting.
        two_factor_timeout: Seconds to wait for a challenge to be approved.
        poll_interval: Seconds between challenge checks.
        progress_every: Log a progress event every this many polls.
        otp_code_file: File polled for a one-time code while a code input
            is shown.
        clock: Monotonic clock in seconds, injectable for tests.
        log: structlog logger receiving state and progress events.
    """

    def __init__(
        self,
        page: Page,
        credentials: Credentials,
        selectors: AuthSelectors,
        *,
        strict_verification: bool = False,
        two_factor_timeout: float = 180,
        poll_interval: float = 3,
        progress_every: int = 5,
        otp_code_file: str | Path | None = None,
        clock: Callable[[], float] = time.monotonic,
        log: Any = None,
    ) -> None:
        self.page = page
        self.credentials = credentials
        self.selectors = selectors
        self.strict_verification = strict_verification
        self.two_factor_timeout = two_factor_timeout
        self.poll_interval = poll_interval
        self.progress_every = progress_every
        self.otp_code_file = Path(otp_code_file) if otp_code_file else None
        self._clock = clock
        self._log = log or logger
        self.state = AuthState.UNAUTHENTICATED
        self.login_token: str | None = None

    async def login(self) -> bool:
        """Run the full login flow.

        Returns:
            True once the session is authenticated.

        Raises:
            AuthenticationError: If any step fails; ``reason`` says which.
        """
        self._log.info("login_started", url=self.credentials.class_url)
        await self.page.goto(self.credentials.class_url)

        if await self.is_already_logged_in():
            self._log.info("already_logged_in", url=self.page.url)
            self._transition(AuthState.AUTHENTICATED)
            return True

        self._transition(AuthState.FINDING_LOGIN_FORM)
        await self._find_login_form()

        self._transition(AuthState.SUBMITTING_CREDENTIALS)
        await self._submit_credentials()

        self._transition(AuthState.AWAITING_VERIFICATION)
        await self.page.wait_for_timeout(VERIFICATION_DELAY_MS)
        await self._verify()

        self._log.info("login_successful", url=self.page.url)
        return True

    async def is_already_logged_in(self) -> bool:
        if await self.has_login_form():
            return False
        return await any_present(self.page, self.selectors.logged_in_markers)

    async def has_login_form(self) -> bool:
        return await any_present(self.page, self.selectors.login_form_markers)

    async def detect_two_factor(self) -> bool:
        """Check the page for a two-factor challenge.

        Looks at challenge elements, then the URL, then the page text.
        """
        two_factor = self.selectors.two_factor
        if await any_present(self.page, two_factor.markers):
            return True

        url = self.page.url.lower()
        if any(marker in url for marker in two_factor.url_markers):
            return True

        content = (await self.page.content()).lower()
        return any(marker in content for marker in two_factor.content_markers)

    async def wait_for_two_factor(self) -> None:
        """Poll until the challenge is approved, denied or times out.

        Raises:
            AuthenticationError: CHALLENGE_DENIED or CHALLENGE_TIMEOUT.
        """
        self._transition(AuthState.TWO_FACTOR_PENDING)
        deadline = self._clock() + self.two_factor_timeout
        self._log.info(
            "two_factor_required",
            url=self.page.url,
            timeout_seconds=self.two_factor_timeout,
        )

        await self._request_push()
        if self.otp_code_file is not None:
            # Clean up any code left over from a previous run
            self.otp_code_file.unlink(missing_ok=True)
            self._log.info("otp_waiting_for_code", file=str(self.otp_code_file))

        polls = 0
        while True:
            try:
                status = await self._challenge_status()
            except Exception as e:
                # Reads fail while the challenge page redirects back to Moodle
                self._log.warning("two_factor_poll_interrupted", url=self.page.url, error=str(e))
                await self.page.wait_for_load_state()
                status = "pending"

            if status == "approved":
                break
            if status == "denied":
                self._fail(AuthFailure.CHALLENGE_DENIED)

            if self._clock() >= deadline:
                self._fail(
                    AuthFailure.CHALLENGE_TIMEOUT,
                    f"not approved within {self.two_factor_timeout:g} seconds",
                )

            await self._submit_one_time_code()
            await self.page.wait_for_timeout(self.poll_interval * 1000)

            polls += 1
            if polls % self.progress_every == 0:
                self._log.info(
                    "two_factor_waiting",
                    remaining_seconds=max(0, round(deadline - self._clock())),
                )

        self._log.info("two_factor_approved", url=self.page.url)
        self._transition(AuthState.AUTHENTICATED)

    def _transition(self, state: AuthState) -> None:
        self._log.info(
            "auth_state_changed",
            from_state=self.state.value,
            to_state=state.value,
        )
        self.state = state

    def _fail(self, reason: AuthFailure, detail: str = "") -> None:
        self._transition(AuthState.FAILED)
        self._log.error("login_failed", reason=reason.value, detail=detail or None)
        raise AuthenticationError(reason, detail)

    async def _challenge_status(self) -> str:
        """One poll of the challenge page: approved, denied or pending."""
        if await any_present(self.page, self.selectors.logged_in_markers):
            return "approved"

        content = (await self.page.content()).lower()
        if any(phrase in content for phrase in self.selectors.two_factor.denial_text):
            return "denied"

        if not await self.detect_two_factor():
            return "approved"
        return "pending"

    async def _find_login_form(self) -> None:
        if await self.has_login_form():
            return

        link = await resolve_first(self.page, self.selectors.login_links)
        href = await link.attribute("href") if link is not None else None
        if href:
            self._log.debug("following_login_link", url=href)
            await self.page.goto(href)
            if await self.has_login_form():
                return

        for path in self.selectors.login_paths:
            url = urljoin(self.credentials.origin, path)
            try:
                await self.page.goto(url)
            except Exception as e:
                self._log.debug("login_path_unavailable", url=url, error=str(e))
                continue
            if await self.has_login_form():
                self._log.debug("login_form_found", url=url)
                return

        self._log.warning("login_form_not_found", url=self.page.url)

    async def _submit_credentials(self) -> None:
        username = await resolve_first(self.page, self.selectors.username_fields)
        password = await resolve_first(self.page, self.selectors.password_fields)
        submit = await resolve_first(self.page, self.selectors.submit_controls)

        missing = [
            name
            for name, control in (
                ("username field", username),
                ("password field", password),
                ("submit control", submit),
            )
            if control is None
        ]
        if missing:
            self._fail(AuthFailure.LOGIN_FORM_MISSING, ", ".join(missing))

        token = await resolve_first(self.page, self.selectors.token_fields)
        if token is not None:
            self.login_token = await token.attribute("value")
            self._log.debug("login_token_captured", present=bool(self.login_token))

        await username.type(self.credentials.email)
        await password.type(self.credentials.password.get_secret_value())
        self._log.debug("credentials_entered")

        await self.page.submit(submit)
        self._log.debug("credentials_submitted", url=self.page.url)

    async def _verify(self) -> None:
        if await self._login_error_shown():
            self._fail(AuthFailure.INVALID_CREDENTIALS)

        if await self.has_login_form():
            self._fail(AuthFailure.STILL_ON_LOGIN_PAGE, self.page.url)

        if await self.detect_two_factor():
            await self.wait_for_two_factor()
            return

        if await any_present(self.page, self.selectors.logged_in_markers):
            self._transition(AuthState.AUTHENTICATED)
            return

        if self.strict_verification:
            self._fail(AuthFailure.NOT_VERIFIED, self.page.url)

        self._log.warning("login_verification_ambiguous", url=self.page.url)
        self._transition(AuthState.AUTHENTICATED)

    async def _login_error_shown(self) -> bool:
        words = [w.lower() for w in self.selectors.failure_words]
        for locator in self.selectors.error_regions:
            for region in await self.page.find_all(locator.css):
                if not await locator.matches(region):
                    continue
                text = (await region.text()).lower()
                if any(word in text for word in words):
                    self._log.debug("login_error_message", selector=locator.css)
                    return True
        return False

    async def _request_push(self) -> None:
        control = await resolve_first(self.page, self.selectors.two_factor.push_controls)
        if control is None:
            return
        try:
            await control.click()
            self._log.info("two_factor_push_requested")
        except Exception as e:
            self._log.warning("two_factor_push_failed", error=str(e))

    async def _submit_one_time_code(self) -> None:
        if self.otp_code_file is None or not self.otp_code_file.exists():
            return

        code = self.otp_code_file.read_text().strip()
        if not code:
            return

        code_input = await resolve_first(self.page, self.selectors.two_factor.code_inputs)
        if code_input is None:
            return

        self._log.info("otp_code_received", code_length=len(code))
        self.otp_code_file.unlink(missing_ok=True)

        await code_input.type(code)
        control = await resolve_first(self.page, self.selectors.two_factor.code_submit)
        if control is not None:
            await self.page.submit(control)
        self._log.info("otp_submitted", url=self.page.url)
