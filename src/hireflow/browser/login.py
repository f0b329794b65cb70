from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from hireflow.browser.driver import BrowserPage
from hireflow.browser.matching import Found, first_match, is_present
from hireflow.browser.strategies import AUTH_URL_MARKERS
from hireflow.config import Settings
from hireflow.types import LoginCredentials

logger = logging.getLogger(__name__)

StepAction = Literal["open_entry", "click", "fill_email", "fill_password"]


@dataclass(frozen=True, slots=True)
class AuthStep:
    action: StepAction
    concept: str
    optional: bool = False
    settle: bool = False


_OPEN_ENTRY = AuthStep("open_entry", "login_entry", optional=True, settle=True)

AUTH_FLOWS: dict[str, tuple[AuthStep, ...]] = {
    "email": (
        _OPEN_ENTRY,
        AuthStep("fill_email", "email_input"),
        AuthStep("fill_password", "password_input"),
        AuthStep("click", "login_submit"),
    ),
    "google": (
        _OPEN_ENTRY,
        AuthStep("click", "oauth_google", settle=True),
        AuthStep("fill_email", "email_input"),
        AuthStep("click", "oauth_next", optional=True, settle=True),
        AuthStep("fill_password", "password_input"),
        AuthStep("click", "oauth_next", optional=True),
    ),
    "linkedin": (
        _OPEN_ENTRY,
        AuthStep("click", "oauth_linkedin", settle=True),
        AuthStep("fill_email", "email_input"),
        AuthStep("fill_password", "password_input"),
        AuthStep("click", "login_submit"),
    ),
}


def looks_like_auth_url(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in AUTH_URL_MARKERS)


class LoginCoordinator:
    def __init__(self, settings: Settings):
        self.settings = settings

    async def requires_login(self, page: BrowserPage) -> bool:
        return await is_present(page, "login_required")

    async def is_authenticated(self, page: BrowserPage, login_url: str = "") -> bool:
        if await is_present(page, "logged_in"):
            return True

        current_url = await page.get_url()
        if login_url and current_url != login_url and not looks_like_auth_url(current_url):
            return True

        return not await is_present(page, "login_required")

    async def attempt_login(self, page: BrowserPage, credentials: LoginCredentials) -> bool:
        flow = AUTH_FLOWS.get(credentials.method)
        if flow is None or not credentials.automatable:
            logger.info("Login method %s is not automated", credentials.method)
            return False

        start_url = await page.get_url()
        try:
            for step in flow:
                if not await self._run_step(page, step, credentials):
                    logger.info("Login step %s (%s) did not complete", step.action, step.concept)
                    return False
            await page.wait(self.settings.login_settle_sec)
            authenticated = await self.is_authenticated(page, start_url)
        except Exception as exc:
            logger.warning("Automated %s login failed: %s", credentials.method, exc)
            return False

        logger.info("Automated %s login authenticated=%s", credentials.method, authenticated)
        return authenticated

    async def _run_step(self, page: BrowserPage, step: AuthStep, credentials: LoginCredentials) -> bool:
        if step.action == "open_entry" and await is_present(page, "email_input"):
            return True

        result = await first_match(page, step.concept)
        if not isinstance(result, Found):
            return step.optional

        element = result.element
        if step.action == "fill_email":
            await element.fill(credentials.email)
        elif step.action == "fill_password":
            await element.fill(credentials.password)
        else:
            await element.click()

        if step.settle:
            await page.wait(self.settings.login_settle_sec)
        return True
