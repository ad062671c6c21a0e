"""
Shared helpers for CAS browser scenarios.

Scenarios stay short by delegating browser setup, navigation, login and the
ticket assertions to this module. Every helper raises on failure; scenarios
are expected to let those errors reach the process boundary.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from playwright.async_api import Browser, Error as PlaywrightError, Page, Response

from .settings import settings

logger = logging.getLogger(__name__)

LOGIN_ERRORS_PANEL = "#loginErrorsPanel"
TICKET_GRANTING_COOKIE = "TGC"
VIEWPORT = {"width": 1920, "height": 1080}


class NavigationError(Exception): ...

class LoginError(Exception): ...

class TicketAssertionError(AssertionError): ...


def browser_options() -> Dict[str, Any]:
    """Keyword arguments for ``BrowserType.launch``."""
    return {
        "headless": settings.HEADLESS,
        "slow_mo": settings.SLOW_MO,
        "args": ["--start-maximized", f"--window-size={VIEWPORT['width']},{VIEWPORT['height']}"],
    }


async def new_page(browser: Browser) -> Page:
    """Open a page in a fresh context that tolerates the self-signed CAS certificate."""
    context = await browser.new_context(ignore_https_errors=True, viewport=VIEWPORT)
    context.set_default_timeout(settings.NAVIGATION_TIMEOUT)
    return await context.new_page()


async def goto(page: Page, url: str, retries: Optional[int] = None) -> Optional[Response]:
    attempts = max(1, retries if retries is not None else settings.GOTO_RETRIES)
    last_error: Optional[PlaywrightError] = None

    for attempt in range(1, attempts + 1):
        try:
            response = await page.goto(url, wait_until="domcontentloaded")
            logger.info(f"Navigated to {url} status={response.status if response else 'n/a'}")
            return response
        except PlaywrightError as e:
            last_error = e
            logger.warning(f"#{attempt}: failed to go to {url}: {e}")
            if attempt < attempts:
                await asyncio.sleep(settings.GOTO_RETRY_DELAY)

    raise NavigationError(f"Could not load {url} after {attempts} attempt(s)") from last_error


async def login_with(
    page: Page,
    user: Optional[str] = None,
    password: Optional[str] = None,
    username_field: str = "#username",
    password_field: str = "#password",
) -> None:
    """Submit the CAS login form and wait for the resulting navigation.

    Raises ``LoginError`` when CAS answers with its authentication error panel.
    """
    user = settings.CAS_USERNAME if user is None else user
    password = settings.CAS_PASSWORD if password is None else password

    logger.info(f"Logging in as {user}")
    await page.fill(username_field, user)
    await page.fill(password_field, password)
    async with page.expect_navigation():
        await page.press(password_field, "Enter")

    if await page.locator(LOGIN_ERRORS_PANEL).count() > 0:
        raise LoginError(f"Authentication failed for {user} at {page.url}")


def ticket_from_url(url: str) -> Optional[str]:
    values = parse_qs(urlsplit(url).query, keep_blank_values=True).get("ticket")
    return values[0] if values else None


async def assert_ticket_parameter(page: Page, found: bool = True) -> Optional[str]:
    url = page.url
    ticket = ticket_from_url(url)

    if not found:
        if ticket is not None:
            raise TicketAssertionError(f"Unexpected ticket parameter in {url}")
        return None

    if not ticket:
        raise TicketAssertionError(f"No ticket parameter in {url}")
    logger.info(f"Ticket found: {ticket}")
    return ticket


async def assert_ticket_granting_cookie(page: Page, present: bool = True) -> None:
    cookies = await page.context.cookies()
    names = {c["name"] for c in cookies}
    if (TICKET_GRANTING_COOKIE in names) != present:
        state = "missing" if present else "unexpectedly present"
        raise TicketAssertionError(f"Ticket-granting cookie {TICKET_GRANTING_COOKIE} is {state}")


async def screenshot(page: Page, name: str = "screenshot") -> Path:
    path = Path(settings.SCREENSHOT_DIR) / f"{name}-{int(time.time())}.png"
    await page.screenshot(path=str(path), full_page=True)
    logger.info(f"Screenshot saved to {path}")
    return path
