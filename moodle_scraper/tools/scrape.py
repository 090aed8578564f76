"""MCP tools for scraping course content.

This module provides the scrape_course tool, which logs in and extracts
every category from one course page, and the list_courses tool, which reads
the user's dashboard.
"""

from collections.abc import Callable
from typing import Any

import structlog

from moodle_scraper.browser.scraper import MoodleScraper
from moodle_scraper.tools.common import build_exception_response, build_success_response

logger = structlog.get_logger(__name__)


async def scrape_course(build_scraper: Callable[[], MoodleScraper]) -> dict[str, Any]:
    """Scrape assignments, grades, files and integrations from a course.

    Args:
        build_scraper: Returns a fresh MoodleScraper; may raise
            ConfigurationError for unusable credentials.

    Returns:
        Standardized response containing:
            - assignments: List of assignment records
            - grades: List of gradebook rows
            - files: List of file resources
            - integrations: List of external tool activities

    Examples:
        >>> response = await scrape_course(lambda: MoodleScraper(credentials))
        >>> len(response["data"]["assignments"])
        12
    """
    logger.info("scrape_course_called")

    try:
        scraper = build_scraper()
        result = await scraper.scrape_all()
    except Exception as e:
        logger.error("scrape_course_failed", error=str(e), exc_info=True)
        return build_exception_response(e, "scrape course")

    return build_success_response(result.to_dict())


async def list_courses(
    build_scraper: Callable[[], MoodleScraper],
    cookie_path: str | None = None,
) -> dict[str, Any]:
    """List the courses on the user's Moodle dashboard.

    When ``cookie_path`` is set, a saved session is reused if still valid and
    the session cookies are saved back afterwards.

    Args:
        build_scraper: Returns a fresh MoodleScraper.
        cookie_path: Optional cookie snapshot file.

    Returns:
        Standardized response containing:
            - courses: List of {id, title, short_name, url}
            - count: Number of courses
    """
    logger.info("list_courses_called", reuse_session=cookie_path is not None)

    try:
        async with build_scraper() as scraper:
            restored = False
            if cookie_path and await scraper.import_cookies(cookie_path):
                restored = await scraper.is_session_valid()

            if not restored:
                await scraper.login()

            courses = await scraper.discover_courses()

            if cookie_path:
                await scraper.export_cookies(cookie_path)

    except Exception as e:
        logger.error("list_courses_failed", error=str(e), exc_info=True)
        return build_exception_response(e, "list courses")

    return build_success_response(
        {
            "courses": [course.model_dump() for course in courses],
            "count": len(courses),
        }
    )
