"""Portal login as an explicit state machine.

START → CREDENTIALS_ENTERED → CAPTCHA_CHECK → SUBMITTED | AWAITING_MANUAL_SOLVE
      → NAVIGATION_COMPLETE → LOGGED_IN | FAILED

A visible reCAPTCHA challenge in a headless session ends the run in
REQUIRES_MANUAL_INTERVENTION; the caller then reopens a headed browser and
calls :meth:`LoginFlow.complete_manually` to let a human finish.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from internpilot.browser import first_match, human_type, text_from_cascade, wiggle_mouse
from internpilot.config import LOGIN_URL, MANUAL_LOGIN_TIMEOUT
from internpilot.errors import LoginFailed, LoginFormNotFound
from internpilot.log import get_logger
from internpilot.models import Credentials
from internpilot.selectors import SelectorConfig, load_selectors
from internpilot.session_store import SessionStore

log = get_logger(__name__)


class LoginState(str, Enum):
    START = "start"
    CREDENTIALS_ENTERED = "credentials_entered"
    CAPTCHA_CHECK = "captcha_check"
    SUBMITTED = "submitted"
    AWAITING_MANUAL_SOLVE = "awaiting_manual_solve"
    NAVIGATION_COMPLETE = "navigation_complete"
    LOGGED_IN = "logged_in"
    FAILED = "failed"
    REQUIRES_MANUAL_INTERVENTION = "requires_manual_intervention"


_TRANSITIONS: dict[LoginState, set[LoginState]] = {
    LoginState.START: {LoginState.CREDENTIALS_ENTERED, LoginState.AWAITING_MANUAL_SOLVE, LoginState.FAILED},
    LoginState.CREDENTIALS_ENTERED: {LoginState.CAPTCHA_CHECK, LoginState.AWAITING_MANUAL_SOLVE, LoginState.FAILED},
    LoginState.CAPTCHA_CHECK: {
        LoginState.SUBMITTED,
        LoginState.AWAITING_MANUAL_SOLVE,
        LoginState.REQUIRES_MANUAL_INTERVENTION,
        LoginState.FAILED,
    },
    LoginState.SUBMITTED: {LoginState.NAVIGATION_COMPLETE, LoginState.FAILED},
    LoginState.AWAITING_MANUAL_SOLVE: {LoginState.NAVIGATION_COMPLETE, LoginState.FAILED},
    LoginState.NAVIGATION_COMPLETE: {LoginState.LOGGED_IN, LoginState.FAILED},
}


@dataclass
class LoginResult:
    state: LoginState
    cookies: list[dict[str, Any]] = field(default_factory=list)
    message: str = ""

    @property
    def logged_in(self) -> bool:
        return self.state is LoginState.LOGGED_IN

    @property
    def needs_manual_login(self) -> bool:
        return self.state is LoginState.REQUIRES_MANUAL_INTERVENTION


async def is_logged_in(page, selectors: SelectorConfig | None = None) -> bool:
    cfg = selectors or load_selectors()
    return await page.query_selector(cfg.login.logged_out_marker) is None


class LoginFlow:
    def __init__(
        self,
        store: SessionStore,
        selectors: SelectorConfig | None = None,
        *,
        headless: bool = True,
        login_url: str = LOGIN_URL,
        type_delay_ms: int = 100,
        pace: float = 1.0,
        navigation_timeout_ms: int = 60_000,
    ) -> None:
        self.store = store
        self.selectors = selectors or load_selectors()
        self.headless = headless
        self.login_url = login_url
        self.type_delay_ms = type_delay_ms
        self.pace = pace
        self.navigation_timeout_ms = navigation_timeout_ms
        self.state = LoginState.START
        self.history: list[LoginState] = [LoginState.START]

    def _to(self, state: LoginState) -> None:
        allowed = _TRANSITIONS.get(self.state, set())
        if state not in allowed:
            raise RuntimeError(f"illegal login transition {self.state.value} → {state.value}")
        log.debug("Login: %s → %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _fail(self, message: str) -> LoginFailed:
        self._to(LoginState.FAILED)
        return LoginFailed(message)

    async def _pause(self, seconds: float) -> None:
        if self.pace:
            await asyncio.sleep(seconds * self.pace)

    async def _enter_credentials(self, page, creds: Credentials) -> None:
        await page.goto(self.login_url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
        log.info("Login page: %s", page.url)
        await wiggle_mouse(page, settle=self.pace)
        await human_type(page, self.selectors.login.email, creds.email, self.type_delay_ms)
        await human_type(page, self.selectors.login.password, creds.password, self.type_delay_ms)

    async def _challenge_visible(self, page) -> bool:
        challenge = await first_match(page, self.selectors.login.captcha_challenge)
        if challenge is None:
            return False
        try:
            return bool(await challenge.is_visible())
        except Exception:
            return True

    async def run(self, page, creds: Credentials) -> LoginResult:
        """Drive the login; raises LoginFailed / LoginFormNotFound on failure."""
        sel = self.selectors.login
        await self._enter_credentials(page, creds)
        self._to(LoginState.CREDENTIALS_ENTERED)

        self._to(LoginState.CAPTCHA_CHECK)
        checkbox = await page.query_selector(sel.captcha_checkbox)
        invisible = await page.query_selector(sel.captcha_invisible) if sel.captcha_invisible else None
        if checkbox is not None:
            log.info("reCAPTCHA checkbox found, clicking...")
            await checkbox.click()
            await self._pause(3)
            if await self._challenge_visible(page):
                if self.headless:
                    log.warning("reCAPTCHA challenge appeared — manual login required")
                    self._to(LoginState.REQUIRES_MANUAL_INTERVENTION)
                    return LoginResult(self.state, message="reCAPTCHA challenge requires manual solving")
                log.info("reCAPTCHA challenge appeared — waiting for the user to solve it")
                self._to(LoginState.AWAITING_MANUAL_SOLVE)
                await self._await_human(page)
                return await self._finish(page, creds)
            log.info("No reCAPTCHA challenge appeared, proceeding with submission")
        elif invisible is not None:
            log.info("Invisible reCAPTCHA detected, proceeding with submission")
        else:
            log.debug("No reCAPTCHA found on the login page")

        button = await page.query_selector(sel.submit)
        form = await page.query_selector(sel.form)
        if button is None or form is None:
            self._to(LoginState.FAILED)
            raise LoginFormNotFound("Login form or submit button not found")

        await button.click()
        self._to(LoginState.SUBMITTED)
        try:
            await page.wait_for_load_state("networkidle", timeout=self.navigation_timeout_ms)
        except Exception as exc:
            log.warning("Navigation after login submit did not settle: %s", exc)
        return await self._finish(page, creds)

    async def _await_human(self, page, timeout: float | None = None) -> None:
        timeout_s = MANUAL_LOGIN_TIMEOUT if timeout is None else timeout
        try:
            await page.wait_for_url(lambda url: "login" not in url, timeout=timeout_s * 1000)
        except Exception as exc:
            log.warning("Manual login wait ended without navigation (%s)", exc)

    async def _finish(self, page, creds: Credentials) -> LoginResult:
        sel = self.selectors.login
        self._to(LoginState.NAVIGATION_COMPLETE)

        error = await text_from_cascade(page, sel.errors, "")
        if error:
            raise self._fail(f"Login failed: {error}")
        if not await is_logged_in(page, self.selectors):
            raise self._fail("Login failed - please check credentials or page behavior")

        cookies = await page.context.cookies()
        self.store.save(cookies, identity=creds.email)
        self._to(LoginState.LOGGED_IN)
        log.info("Logged in as %s; saved %d cookie(s)", creds.email, len(cookies))
        return LoginResult(self.state, cookies=cookies, message="Login successful")

    async def complete_manually(self, page, creds: Credentials, timeout: float | None = None) -> LoginResult:
        """Pre-fill credentials in a headed page and wait for a human to log in."""
        if self.state is not LoginState.START:
            self.state = LoginState.START
            self.history.append(LoginState.START)
        await self._enter_credentials(page, creds)
        self._to(LoginState.AWAITING_MANUAL_SOLVE)
        log.info("Please solve the reCAPTCHA manually and log in...")
        await self._await_human(page, timeout)
        return await self._finish(page, creds)
