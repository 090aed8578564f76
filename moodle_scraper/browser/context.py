"""Browser context management with Playwright.

This module provides the BrowserManager that launches one Chromium instance
per scraper, plus adapters exposing Playwright pages and element handles
through the capability protocols in ``moodle_scraper.capability``.
"""

import asyncio
from typing import Any

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Page as PlaywrightPageHandle,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from moodle_scraper.capability import URL_ATTRIBUTES

logger = structlog.get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class PlaywrightElement:
    """Element capability backed by a Playwright ElementHandle."""

    def __init__(self, handle: ElementHandle) -> None:
        self._handle = handle

    @property
    def handle(self) -> ElementHandle:
        return self._handle

    async def text(self) -> str:
        return await self._handle.text_content() or ""

    async def attribute(self, name: str) -> str | None:
        if name in URL_ATTRIBUTES:
            # DOM properties give absolute URLs, matching what a click would follow
            return await self._handle.evaluate(
                "(el, name) => el[name] || el.getAttribute(name)", name
            )
        return await self._handle.get_attribute(name)

    async def find(self, selector: str) -> "PlaywrightElement | None":
        found = await self._handle.query_selector(selector)
        return PlaywrightElement(found) if found else None

    async def find_all(self, selector: str) -> list["PlaywrightElement"]:
        return [PlaywrightElement(h) for h in await self._handle.query_selector_all(selector)]

    async def type(self, text: str) -> None:
        await self._handle.fill("")
        # Type with human-like delay to avoid bot detection
        await self._handle.type(text, delay=50)

    async def click(self) -> None:
        await self._handle.click()


class PlaywrightPage:
    """Page capability backed by a Playwright Page."""

    def __init__(self, page: PlaywrightPageHandle, timeout_ms: int = 30000) -> None:
        self._page = page
        self._timeout_ms = timeout_ms

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url: str) -> None:
        logger.debug("navigating_to_url", url=url)
        await self._page.goto(url, wait_until="networkidle")
        logger.debug("navigation_complete", url=self._page.url)

    async def find(self, selector: str) -> PlaywrightElement | None:
        found = await self._page.query_selector(selector)
        return PlaywrightElement(found) if found else None

    async def find_all(self, selector: str) -> list[PlaywrightElement]:
        return [PlaywrightElement(h) for h in await self._page.query_selector_all(selector)]

    async def content(self) -> str:
        return await self._page.content()

    async def submit(self, control: Any) -> None:
        handle = control.handle if isinstance(control, PlaywrightElement) else control
        try:
            async with self._page.expect_navigation(
                wait_until="networkidle", timeout=self._timeout_ms
            ):
                await handle.click()
        except PlaywrightTimeoutError:
            # Some login forms post via XHR and never navigate
            logger.debug("submit_without_navigation", url=self._page.url)
            await self._page.wait_for_load_state("networkidle")

    async def wait_for_selector(self, selector: str, timeout_ms: int) -> PlaywrightElement | None:
        try:
            found = await self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return None
        return PlaywrightElement(found) if found else None

    async def wait_for_timeout(self, timeout_ms: float) -> None:
        await self._page.wait_for_timeout(timeout_ms)

    async def wait_for_load_state(self) -> None:
        try:
            await self._page.wait_for_load_state("load", timeout=self._timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("load_state_timeout", url=self._page.url)

    async def cookies(self) -> list[dict[str, Any]]:
        return [dict(c) for c in await self._page.context.cookies()]

    async def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        await self._page.context.add_cookies(cookies)  # type: ignore[arg-type]

    async def close(self) -> None:
        await self._page.close()


class BrowserManager:
    """Manager for one Playwright Chromium instance.

    Each scraper owns its own manager, so independent scrapers never share
    browser state.

    Usage:
        manager = BrowserManager(headless=True, timeout_ms=30000)
        await manager.initialize()
        page = await manager.new_page()
        # ... use page ...
        await manager.shutdown()
    """

    _playwright: Playwright | None
    _browser: Browser | None
    _context: BrowserContext | None
    _lock: asyncio.Lock

    def __init__(self, headless: bool = True, timeout_ms: int = 30000) -> None:
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._playwright = None
        self._browser = None
        self._context = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Start Playwright and launch Chromium with a fresh context.

        Raises:
            RuntimeError: If browser fails to launch.
        """
        async with self._lock:
            if self._context is not None:
                logger.info("browser_already_initialized")
                return

            try:
                logger.info("initializing_playwright")
                self._playwright = await async_playwright().start()

                logger.info("launching_browser", headless=self.headless)
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=[
                        "--disable-blink-features=AutomationControlled",
                        "--no-sandbox",
                        "--disable-setuid-sandbox",
                        "--disable-dev-shm-usage",
                    ],
                )
                self._context = await self._browser.new_context(
                    viewport={"width": 1366, "height": 768},
                    user_agent=USER_AGENT,
                )
                self._context.set_default_timeout(self.timeout_ms)

                logger.info("browser_initialized_successfully")

            except Exception as e:
                logger.error(
                    "browser_initialization_failed",
                    error=str(e),
                    exc_info=True,
                )
                await self._release()
                raise RuntimeError(f"Failed to initialize browser: {e}") from e

    async def new_page(self) -> PlaywrightPage:
        """Create a new page in the browser context.

        Raises:
            RuntimeError: If the context is not available.
        """
        if self._context is None:
            await self.initialize()

        if self._context is None:
            raise RuntimeError("Browser context is not available")

        page = await self._context.new_page()
        logger.debug("new_page_created", total_pages=len(self._context.pages))
        return PlaywrightPage(page, timeout_ms=self.timeout_ms)

    async def shutdown(self) -> None:
        """Close the browser and stop Playwright. Safe to call repeatedly."""
        async with self._lock:
            await self._release()
            logger.info("browser_shutdown_complete")

    async def _release(self) -> None:
        if self._context is not None:
            logger.info("closing_browser_context")
            try:
                await self._context.close()
            except Exception as e:
                logger.warning("error_closing_context", error=str(e))
            finally:
                self._context = None

        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning("error_closing_browser", error=str(e))
            finally:
                self._browser = None

        if self._playwright is not None:
            logger.info("stopping_playwright")
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning("error_stopping_playwright", error=str(e))
            finally:
                self._playwright = None
