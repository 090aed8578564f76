"""Web scraping functionality for Moodle courses.

This module provides the MoodleScraper class that owns one browser session,
logs into Moodle and extracts assignments, grades, files and external tool
integrations from a course page.
"""

from collections.abc import Awaitable, Callable, Hashable, Sequence
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import parse_qs, urlencode, urljoin, urlparse

import structlog

from moodle_scraper.browser.auth import AuthState, Authenticator
from moodle_scraper.browser.context import BrowserManager
from moodle_scraper.browser.cookies import SessionCookie, load_cookies, save_cookies
from moodle_scraper.capability import BrowserSession, Element, Page
from moodle_scraper.extraction.extractors import (
    extract_assignment,
    extract_course,
    extract_file,
    extract_grade,
    extract_integration,
)
from moodle_scraper.extraction.profile import SelectorProfile, default_profile
from moodle_scraper.extraction.resolution import Locator, any_present, join_css, resolve_first
from moodle_scraper.models import (
    AggregateResult,
    Assignment,
    Course,
    Credentials,
    FileRecord,
    GradeRecord,
    IntegrationRecord,
    ScraperOptions,
)

logger = structlog.get_logger(__name__)

COURSE_CONTENT_TIMEOUT_MS = 10000
CATEGORY_WAIT_MS = 5000

T = TypeVar("T")


class ScraperError(Exception):
    """Raised when scraping operations fail."""

    pass


class NavigationError(ScraperError):
    """Raised when the course page cannot be reached or is not a course page."""

    pass


class BrowserNotInitializedError(ScraperError):
    """Raised when a page operation is attempted before initialize()."""

    pass


class MoodleScraper:
    """Scraper for one Moodle course.

    Each instance owns its own browser session and page. Operations run one
    at a time; use one instance per concurrent scrape.

    Usage:
        async with MoodleScraper(credentials) as scraper:
            await scraper.login()
            await scraper.navigate_to_course()
            assignments = await scraper.scrape_assignments()

    Attributes:
        credentials: Login identity and course URL.
        options: Browser and login behaviour.
        profile: Selector profile used for every lookup.
    """

    def __init__(
        self,
        credentials: Credentials,
        options: ScraperOptions | None = None,
        *,
        profile: SelectorProfile | None = None,
        browser: BrowserSession | None = None,
        log: Any = None,
    ) -> None:
        """Initialize MoodleScraper.

        Args:
            credentials: Validated Credentials.
            options: ScraperOptions; defaults are used if None.
            profile: Selector profile; the packaged one if None.
            browser: Browser session backend; a Playwright BrowserManager if None.
            log: structlog logger for scraper and extraction events.
        """
        self.credentials = credentials
        self.options = options or ScraperOptions()
        self.profile = profile or default_profile()
        self._browser = browser or BrowserManager(
            headless=self.options.headless,
            timeout_ms=self.options.timeout_ms,
        )
        self._log = log or logger
        self._page: Page | None = None
        self._authenticator: Authenticator | None = None

    async def __aenter__(self) -> "MoodleScraper":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserNotInitializedError("Browser not initialized; call initialize() first")
        return self._page

    @property
    def auth_state(self) -> AuthState:
        if self._authenticator is None:
            return AuthState.UNAUTHENTICATED
        return self._authenticator.state

    async def initialize(self) -> None:
        """Start the browser and open the scraper's page. Idempotent."""
        if self._page is not None:
            self._log.debug("scraper_already_initialized")
            return
        await self._browser.initialize()
        self._page = await self._browser.new_page()
        self._log.info("scraper_initialized")

    async def login(self) -> bool:
        """Log in to Moodle.

        Raises:
            AuthenticationError: If login fails.
            BrowserNotInitializedError: If initialize() was not called.
        """
        self._authenticator = Authenticator(
            self.page,
            self.credentials,
            self.profile.auth,
            strict_verification=self.options.strict_login_verification,
            two_factor_timeout=self.options.two_factor_timeout_seconds,
            poll_interval=self.options.two_factor_poll_seconds,
            otp_code_file=self.options.otp_code_file,
            log=self._log,
        )
        return await self._authenticator.login()

    async def navigate_to_course(self) -> None:
        """Open the course page and wait for course content to render.

        Raises:
            NavigationError: If the page fails to load or shows no course content.
        """
        page = self.page
        url = self.credentials.class_url
        self._log.info("navigating_to_course", url=url)

        try:
            await page.goto(url)
        except Exception as e:
            self._log.error("course_navigation_failed", url=url, error=str(e), exc_info=True)
            raise NavigationError(f"Failed to load course page {url}: {e}") from e

        selector = join_css(self.profile.course.content_markers)
        if await page.wait_for_selector(selector, COURSE_CONTENT_TIMEOUT_MS) is None:
            self._log.error("course_content_not_found", url=page.url)
            raise NavigationError(f"No course content found at {page.url}")

        self._log.info("course_page_loaded", url=page.url)

    async def scrape_assignments(self) -> list[Assignment]:
        """Assignments from the course activities, then any upcoming-event entries.

        Calendar entries pointing at an assignment already listed are dropped.
        """
        selectors = self.profile.assignments
        fallback_url = self.page.url

        async def extract(element: Element) -> Assignment | None:
            return await extract_assignment(element, selectors, fallback_url, self._log)

        def key(assignment: Assignment) -> str | None:
            # Link-less assignments only have a title digest, which can collide
            return assignment.id if assignment.url != fallback_url else None

        assignments = await self._collect("assignments", selectors.items, extract, key)
        if not await any_present(self.page, selectors.calendar_items):
            return assignments

        seen = {key(a) for a in assignments} - {None}
        for event in await self._collect("calendar", selectors.calendar_items, extract, key):
            identity = key(event)
            if identity in seen:
                continue
            assignments.append(event)
            if identity is not None:
                seen.add(identity)
        return assignments

    async def scrape_grades(self) -> list[GradeRecord]:
        """Open the gradebook, read every grade row, then go back.

        The gradebook is reached through a link on the course page or, when
        there is none, by trying the known report paths on the site origin.
        Returns an empty list if no gradebook can be opened.
        """
        selectors = self.profile.grades

        try:
            opened = await self._open_gradebook()
        except Exception as e:
            self._log.warning("category_scrape_failed", category="grades", error=str(e))
            opened = False

        if not opened:
            await self._return_to_course()
            return []

        try:
            return await self._collect(
                "grades",
                selectors.items,
                lambda el: extract_grade(el, selectors, self._log),
            )
        finally:
            await self._return_to_course()

    async def scrape_files(self) -> list[FileRecord]:
        selectors = self.profile.files
        return await self._collect(
            "files",
            selectors.items,
            lambda el: extract_file(el, selectors, self._log),
            key=lambda f: f.url or None,
        )

    async def scrape_integrations(self) -> list[IntegrationRecord]:
        selectors = self.profile.integrations
        return await self._collect(
            "integrations",
            selectors.items,
            lambda el: extract_integration(el, selectors, self._log),
            key=lambda i: i.url or None,
        )

    async def scrape_all(self) -> AggregateResult:
        """Initialize, log in, open the course and scrape every category.

        The browser is closed when this returns or raises.

        Raises:
            AuthenticationError: If login fails.
            NavigationError: If the course page cannot be opened.
        """
        try:
            await self.initialize()
            await self.login()
            await self.navigate_to_course()

            result = AggregateResult(
                assignments=await self.scrape_assignments(),
                grades=await self.scrape_grades(),
                files=await self.scrape_files(),
                integrations=await self.scrape_integrations(),
            )
            self._log.info(
                "course_scraped",
                assignments=len(result.assignments),
                grades=len(result.grades),
                files=len(result.files),
                integrations=len(result.integrations),
            )
            return result

        finally:
            await self.close()

    async def is_session_valid(self) -> bool:
        """Reload the course page and check that no login form is shown."""
        if self._page is None:
            return False
        try:
            await self._page.goto(self.credentials.class_url)
            is_valid = not await any_present(self._page, self.profile.auth.login_form_markers)
            self._log.info("session_validity_checked", is_valid=is_valid)
            return is_valid
        except Exception as e:
            self._log.warning("session_validation_error", error=str(e))
            return False

    async def discover_courses(self) -> list[Course]:
        """List the courses on the user's dashboard.

        Falls back to course links in the navigation when the dashboard
        shows no course cards. Courses are unique by URL.
        """
        page = self.page
        selectors = self.profile.course
        dashboard = urljoin(self.credentials.origin, selectors.dashboard_path)

        try:
            await page.goto(dashboard)
        except Exception as e:
            self._log.warning("dashboard_navigation_failed", url=dashboard, error=str(e))
            return []

        async def extract(element: Element) -> Course | None:
            return await extract_course(element, selectors, self._log)

        courses = await self._collect(
            "courses", selectors.items, extract, key=lambda c: c.url or None
        )
        if not courses and selectors.nav_items:
            courses = await self._collect(
                "courses", selectors.nav_items, extract, key=lambda c: c.url or None
            )
        return courses

    async def export_cookies(self, path: str | Path) -> int:
        """Write the session cookies to ``path``. Returns the number saved."""
        cookies = [SessionCookie.from_browser(c) for c in await self.page.cookies()]
        save_cookies(path, cookies)
        return len(cookies)

    async def import_cookies(self, path: str | Path) -> bool:
        """Load cookies saved by export_cookies into the browser session.

        Returns:
            False if the snapshot is missing or unreadable, True otherwise.
        """
        page = self.page
        try:
            cookies = load_cookies(path)
        except (OSError, ValueError) as e:
            self._log.warning("cookie_import_failed", path=str(path), error=str(e))
            return False

        await page.set_cookies([c.to_browser() for c in cookies])
        return True

    async def close(self) -> None:
        """Release the page and browser. Safe to call at any time, never raises."""
        page, self._page = self._page, None
        if page is not None:
            try:
                await page.close()
            except Exception as e:
                self._log.warning("error_closing_page", error=str(e))

        try:
            await self._browser.shutdown()
        except Exception as e:
            self._log.warning("error_closing_browser", error=str(e))

    async def _collect(
        self,
        category: str,
        items: Sequence[Locator],
        extract: Callable[[Element], Awaitable[T | None]],
        key: Callable[[T], Hashable | None] | None = None,
    ) -> list[T]:
        page = self.page
        selector = join_css(items)

        try:
            if self.options.wait_for_elements:
                if await page.wait_for_selector(selector, CATEGORY_WAIT_MS) is None:
                    self._log.info("category_empty", category=category)
                    return []

            records: list[T] = []
            seen: set[Hashable] = set()
            for element in await page.find_all(selector):
                record = await extract(element)
                if record is None:
                    continue
                if key is not None:
                    identity = key(record)
                    if identity is not None:
                        if identity in seen:
                            continue
                        seen.add(identity)
                records.append(record)

            self._log.info("category_scraped", category=category, count=len(records))
            return records

        except Exception as e:
            self._log.warning(
                "category_scrape_failed",
                category=category,
                error=str(e),
                exc_info=True,
            )
            return []

    async def _open_gradebook(self) -> bool:
        page = self.page
        selectors = self.profile.grades

        link = await resolve_first(page, selectors.report_links)
        href = await link.attribute("href") if link is not None else None
        if href:
            await page.goto(href)
            return True

        self._log.info("grades_link_not_found", url=page.url)
        course_id = parse_qs(urlparse(self.credentials.class_url).query).get("id")
        for path in selectors.report_paths:
            url = urljoin(self.credentials.origin, path)
            if course_id:
                url = f"{url}?{urlencode({'id': course_id[0]})}"
            try:
                await page.goto(url)
            except Exception as e:
                self._log.debug("gradebook_path_unavailable", url=url, error=str(e))
                continue
            if await any_present(page, selectors.items):
                self._log.info("gradebook_found", url=url)
                return True

        self._log.info("gradebook_not_found", course_url=self.credentials.class_url)
        return False

    async def _return_to_course(self) -> None:
        try:
            await self.page.goto(self.credentials.class_url)
        except Exception as e:
            self._log.warning("return_to_course_failed", error=str(e))
